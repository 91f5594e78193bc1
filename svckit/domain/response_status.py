"""Structured error summaries returned inside failed service responses."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable


@dataclass
class ResponseError:
    """Validation error for a single request field."""

    error_code: Optional[str] = None
    field_name: Optional[str] = None
    message: Optional[str] = None


@dataclass
class ResponseStatus:
    """Error summary nested in a response envelope under ``ResponseStatus``."""

    error_code: Optional[str] = None
    message: Optional[str] = None
    stack_trace: Optional[str] = None
    errors: List[ResponseError] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        """No error code and no field errors."""
        return not self.error_code and not self.errors


@runtime_checkable
class HasResponseStatus(Protocol):
    """Capability of response DTOs that expose their status directly."""

    response_status: Optional[ResponseStatus]


@dataclass
class ErrorResponse:
    """Envelope used by services that return nothing but a status."""

    response_status: Optional[ResponseStatus] = None
    meta: Dict[str, Any] = field(default_factory=dict)


__all__ = ["ErrorResponse", "HasResponseStatus", "ResponseError", "ResponseStatus"]
