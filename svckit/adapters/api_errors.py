"""Client-side error for failed remote service calls.

``WebServiceError`` carries the raw HTTP status, the response body and the
decoded response DTO. Error code, message and server stack trace are read
lazily from the DTO's ``ResponseStatus`` envelope the first time any of
them is requested, and cached for the life of the error.

Dependencies:
    - ``requests`` for the ``Response`` type and ``CaseInsensitiveDict``.
    - ``svckit.adapters.text_codec`` for the JSON round trip.

Call context:
    Raised by service clients after a non-2xx response; callers inspect
    ``error_code`` and ``get_field_errors()`` to present validation errors.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Any, List, Mapping, Optional, Type

import requests
from requests.structures import CaseInsensitiveDict

from svckit.adapters.text_codec import (
    CodecError,
    CodecOptions,
    decode_dto,
    deserialize_string_map,
    serialize_to_string,
    wire_name,
)
from svckit.domain.reflection import describe_type
from svckit.domain.response_status import HasResponseStatus, ResponseError, ResponseStatus

LOGGER = logging.getLogger(__name__)

RESPONSE_STATUS_KEY = "ResponseStatus"


@dataclass(frozen=True)
class _ParsedStatus:
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    server_stack_trace: Optional[str] = None


class WebServiceError(RuntimeError):
    """A remote call that failed, with best-effort access to its error details."""

    def __init__(
        self,
        message: Optional[str] = None,
        inner_exception: Optional[BaseException] = None,
        *,
        status_code: int = 0,
        status_description: Optional[str] = None,
        response_dto: Any = None,
        response_body: Optional[str] = None,
    ) -> None:
        if message is None:
            super().__init__()
        else:
            super().__init__(message)
        self.message = message
        self.inner_exception = inner_exception
        if inner_exception is not None:
            self.__cause__ = inner_exception
        self.status_code = status_code
        self.status_description = status_description
        self.response_dto = response_dto
        self.response_body = response_body
        self._parse_lock = threading.Lock()
        self._parsed: Optional[_ParsedStatus] = None

    # ------------------------------------------------------------------
    @classmethod
    def from_response(
        cls,
        resp: requests.Response,
        response_type: Optional[Type[Any]] = None,
        *,
        context: Optional[str] = None,
        options: Optional[CodecOptions] = None,
    ) -> "WebServiceError":
        """Build an error from an already received non-2xx response.

        Args:
            resp: The failed response.
            response_type: DTO class to decode a JSON object body into.
            context: Prefix for the message, defaults to ``"<METHOD> <url>"``.
            options: Codec limits for non-JSON bodies.

        Returns:
            A ``WebServiceError`` whose ``response_dto`` is the decoded DTO,
            the raw JSON value, or ``None`` for non-JSON bodies.
        """
        opts = options or CodecOptions()
        status = resp.status_code
        payload = parse_error_payload(resp, limit=opts.snippet_limit)
        dto: Any = payload if isinstance(payload, (dict, list)) else None
        if response_type is not None and isinstance(payload, Mapping):
            try:
                dto = decode_dto(payload, response_type)
            except (CodecError, TypeError) as exc:
                LOGGER.debug("Keeping raw payload, %s not decodable: %s", response_type.__name__, exc)
        ctx = context or _response_context(resp)
        return cls(
            build_error_message(ctx, status, payload),
            status_code=status,
            status_description=resp.reason,
            response_dto=dto,
            response_body=resp.text,
        )

    # ------------------------------------------------------------------
    @property
    def error_code(self) -> Optional[str]:
        return self._details().error_code

    @property
    def error_message(self) -> Optional[str]:
        return self._details().error_message

    @property
    def server_stack_trace(self) -> Optional[str]:
        return self._details().server_stack_trace

    @property
    def is_any_400(self) -> bool:
        return 400 <= self.status_code < 500

    @property
    def is_any_500(self) -> bool:
        return 500 <= self.status_code < 600

    @property
    def response_status(self) -> Optional[ResponseStatus]:
        """Status envelope of the DTO, found directly or by member name."""
        dto = self.response_dto
        if dto is None:
            return None
        if isinstance(dto, HasResponseStatus):
            return dto.response_status
        if isinstance(dto, Mapping):
            lookup = CaseInsensitiveDict(
                {wire_name(key): value for key, value in dto.items() if isinstance(key, str)}
            )
            raw = lookup.get(RESPONSE_STATUS_KEY)
            return decode_dto(raw, ResponseStatus) if isinstance(raw, Mapping) else None

        declared = any(
            member.name == RESPONSE_STATUS_KEY and member.readable
            for member in describe_type(type(dto))
        )
        if not declared and RESPONSE_STATUS_KEY not in getattr(dto, "__dict__", {}):
            return None
        value = getattr(dto, RESPONSE_STATUS_KEY)
        return value if isinstance(value, ResponseStatus) else None

    def get_field_errors(self) -> List[ResponseError]:
        """Field-level validation errors; an empty list when there are none."""
        status = self.response_status
        if status is not None:
            errors = getattr(status, "errors", None)
            if errors is not None:
                return errors
        return []

    # ------------------------------------------------------------------
    def _details(self) -> _ParsedStatus:
        parsed = self._parsed
        if parsed is None:
            with self._parse_lock:
                if self._parsed is None:
                    self._parsed = self._parse_response_dto()
                parsed = self._parsed
        return parsed

    def _parse_response_dto(self) -> _ParsedStatus:
        if self.response_dto is None:
            return _ParsedStatus(error_code=self.status_description)
        try:
            envelope = deserialize_string_map(serialize_to_string(self.response_dto))
            if envelope is None:
                return _ParsedStatus()
            # A DTO without a status envelope leaves error_code unset, unlike
            # the no-DTO branch which falls back to the status description.
            raw_status = envelope.get(RESPONSE_STATUS_KEY)
            if raw_status is None:
                return _ParsedStatus()
            status = deserialize_string_map(raw_status)
        except CodecError as exc:
            LOGGER.debug("Response DTO %s not parseable: %s", type(self.response_dto).__name__, exc)
            return _ParsedStatus()
        if status is None:
            return _ParsedStatus()
        return _ParsedStatus(
            error_code=status.get("ErrorCode"),
            error_message=status.get("Message"),
            server_stack_trace=status.get("StackTrace"),
        )

    def __reduce__(self):
        state = {
            key: value
            for key, value in vars(self).items()
            if key not in ("_parse_lock", "_parsed")
        }
        return (self.__class__, (self.message, self.inner_exception), state)

    def __setstate__(self, state) -> None:
        self.__dict__.update(state)
        self._parse_lock = threading.Lock()
        self._parsed = None


def _response_context(resp: Any) -> str:
    request = getattr(resp, "request", None)
    if request is not None and getattr(request, "method", None):
        return f"{request.method} {request.url}"
    return getattr(resp, "url", None) or "Remote call"


def parse_error_payload(resp: Any, *, limit: int = 400) -> Any:
    """Best-effort extraction of error payload without raising."""
    try:
        return resp.json()
    except ValueError:
        snippet = getattr(resp, "text", "")
        if not snippet:
            return None
        return snippet[:limit]


def build_error_message(ctx: str, status: int, payload: Any) -> str:
    detail = first_string(payload)
    if detail:
        return f"{ctx}: {detail} (HTTP {status})"
    return f"{ctx}: HTTP {status}"


def first_string(payload: Any) -> Optional[str]:
    """First human-readable message in a payload, status envelope first."""
    if isinstance(payload, str):
        text = payload.strip()
        return text or None
    if isinstance(payload, Mapping):
        lookup = CaseInsensitiveDict(
            {wire_name(key): value for key, value in payload.items() if isinstance(key, str)}
        )
        for key in (RESPONSE_STATUS_KEY, "Message", "Detail", "Error", "Title"):
            value = lookup.get(key)
            if isinstance(value, str) and value.strip():
                return value.strip()
            if isinstance(value, (list, Mapping)):
                candidate = first_string(value)
                if candidate:
                    return candidate
    if isinstance(payload, list):
        for item in payload:
            candidate = first_string(item)
            if candidate:
                return candidate
    return None


__all__ = [
    "WebServiceError",
    "build_error_message",
    "first_string",
    "parse_error_payload",
]
