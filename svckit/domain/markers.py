"""Marker annotations attached to classes, modules, and members.

Markers are plain objects (instances of ``Marker`` subclasses) that tag a
declaration so reflection helpers can find it later. They are attached:

- to classes with ``@annotate(...)``,
- to modules with a module-level ``__markers__`` tuple,
- to properties with ``@marked(...)`` applied under ``@property``,
- to typed attributes with ``typing.Annotated[T, marker, ...]``.

Lookup helpers live in ``svckit.domain.reflection``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, ClassVar, Tuple, TypeVar

MARKERS_ATTR = "__markers__"

_T = TypeVar("_T")


class Marker:
    """Base class for marker annotations.

    Set ``inherited = False`` on a subclass to hide the marker from lookups
    that start at a derived class.
    """

    inherited: ClassVar[bool] = True


@dataclass(frozen=True)
class DataMember(Marker):
    """Opts a member into restricted copies and names it on the wire."""

    name: str = ""
    order: int = -1


@dataclass(frozen=True)
class Ignore(Marker):
    """Excludes a member from serialization-oriented copies."""


@dataclass(frozen=True)
class Debuggable(Marker):
    """Module-level marker describing how a module was built."""

    tracking_enabled: bool = True


def annotate(*markers: Marker) -> Callable[[_T], _T]:
    """Class decorator appending markers to the class's own declarations."""

    def decorator(cls: _T) -> _T:
        own = tuple(vars(cls).get(MARKERS_ATTR, ()))
        setattr(cls, MARKERS_ATTR, own + tuple(markers))
        return cls

    return decorator


def marked(*markers: Marker) -> Callable[[_T], _T]:
    """Attach markers to a getter; place it directly under ``@property``."""

    def decorator(func: _T) -> _T:
        own = tuple(getattr(func, MARKERS_ATTR, ()))
        setattr(func, MARKERS_ATTR, own + tuple(markers))
        return func

    return decorator


def own_markers(target: Any) -> Tuple[Marker, ...]:
    """Return markers declared directly on ``target`` (class, module or function)."""
    try:
        raw = vars(target).get(MARKERS_ATTR, ())
    except TypeError:
        raw = getattr(target, MARKERS_ATTR, ())
    return tuple(item for item in raw if isinstance(item, Marker))


__all__ = [
    "DataMember",
    "Debuggable",
    "Ignore",
    "MARKERS_ATTR",
    "Marker",
    "annotate",
    "marked",
    "own_markers",
]
