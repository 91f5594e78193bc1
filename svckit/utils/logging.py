"""Logging setup for applications embedding svckit.

svckit modules log through loggers under the ``svckit`` namespace (skipped
members in the mapper, unparseable response DTOs in ``WebServiceError``),
mostly at DEBUG. Nothing is configured on import. ``configure_root`` installs
a root handler and lets the environment raise or lower the ``svckit``
namespace independently of the application's own level.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

PACKAGE_LOGGER = "svckit"
LEVEL_ENV_VAR = "SVCKIT_LOG_LEVEL"
DEBUG_ENV_VAR = "SVCKIT_DEBUG"
_FORMAT = "%(asctime)s %(levelname)-7s [%(name)s] %(message)s"


def _coerce_level(value: Optional[str], fallback: int) -> int:
    text = (value or "").strip()
    if not text:
        return fallback
    if text.isdigit():
        return int(text)
    candidate = getattr(logging, text.upper(), None)
    return candidate if isinstance(candidate, int) else fallback


def env_level() -> Optional[int]:
    """Level forced on the ``svckit`` loggers by the environment, if any."""
    explicit = os.getenv(LEVEL_ENV_VAR)
    if explicit:
        return _coerce_level(explicit, logging.INFO)
    flag = os.getenv(DEBUG_ENV_VAR)
    if flag is not None and flag.strip().lower() in {"1", "true", "yes", "on"}:
        return logging.DEBUG
    return None


def configure_root(default_level: int | str = logging.INFO) -> int:
    """
    Install a root handler at ``default_level`` and apply svckit overrides.

    Environment overrides (``svckit`` namespace only):
      - SVCKIT_LOG_LEVEL: explicit level name or number
      - SVCKIT_DEBUG: truthy -> DEBUG
    Returns the effective level of the ``svckit`` loggers.
    """
    if isinstance(default_level, str):
        default_level = _coerce_level(default_level, logging.INFO)

    root = logging.getLogger()
    if not root.handlers:
        logging.basicConfig(format=_FORMAT)
    root.setLevel(default_level)

    package = logging.getLogger(PACKAGE_LOGGER)
    forced = env_level()
    package.setLevel(forced if forced is not None else logging.NOTSET)
    return package.getEffectiveLevel()


__all__ = ["DEBUG_ENV_VAR", "LEVEL_ENV_VAR", "PACKAGE_LOGGER", "configure_root", "env_level"]
