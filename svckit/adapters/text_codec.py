"""JSON text codec used to inspect response DTOs.

Python attribute names travel as PascalCase wire names
(``response_status`` -> ``ResponseStatus``). A dataclass field may override
its wire name with ``metadata={"wire_name": ...}`` or a ``DataMember(name=...)``
marker, and ``Ignore`` keeps a member off the wire. Decoding matches keys
case-insensitively and also accepts snake_case or camelCase keys.

Dependencies:
    - ``requests.structures.CaseInsensitiveDict`` for flat maps.
    - ``svckit.domain.reflection`` for member descriptors and population.
"""

from __future__ import annotations

import dataclasses
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Type, TypeVar, Union, get_args, get_origin

from requests.structures import CaseInsensitiveDict

from svckit.domain.markers import DataMember, Ignore
from svckit.domain.reflection import describe_type, first_member_attribute, populate_with

_T = TypeVar("_T")


class CodecError(ValueError):
    """Text could not be encoded or decoded."""


@dataclass
class CodecOptions:
    """Limits applied when surfacing raw payload text.

    Attributes:
        snippet_limit: Maximum characters kept from a non-JSON body.
    """

    snippet_limit: int = 400


def wire_name(name: str) -> str:
    """Return the PascalCase wire name for an attribute or key name."""
    if "_" not in name and name[:1].isupper():
        return name
    return "".join(part[:1].upper() + part[1:] for part in name.split("_") if part)


def _field_wire_name(cls: type, name: str, metadata: Optional[Mapping[str, Any]] = None) -> str:
    if metadata and metadata.get("wire_name"):
        return str(metadata["wire_name"])
    member = first_member_attribute(cls, name, DataMember)
    if member is not None and member.name:
        return member.name
    return wire_name(name)


_MISSING = object()


def to_plain(obj: Any) -> Any:
    """Convert ``obj`` into JSON-compatible builtins keyed by wire names.

    Objects contribute their readable declared members (dataclass fields,
    annotated attributes, properties) followed by undeclared public
    instance attributes. Declared attributes that were never set are left
    out.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj
    if isinstance(obj, Enum):
        return to_plain(obj.value)
    if isinstance(obj, Mapping):
        return {str(key): to_plain(value) for key, value in obj.items()}
    if isinstance(obj, (list, tuple, set, frozenset)):
        return [to_plain(item) for item in obj]
    if isinstance(obj, type):
        return str(obj)
    cls = type(obj)
    members = [member for member in describe_type(cls) if member.readable]
    if not members and not hasattr(obj, "__dict__"):
        return str(obj)

    metadata = {}
    if dataclasses.is_dataclass(cls):
        metadata = {field.name: field.metadata for field in dataclasses.fields(cls)}
    plain: Dict[str, Any] = {}
    for member in members:
        if member.has_marker(Ignore):
            continue
        value = getattr(obj, member.name, _MISSING)
        if value is _MISSING:
            continue
        plain[_field_wire_name(cls, member.name, metadata.get(member.name))] = to_plain(value)
    declared = {member.name for member in members}
    for name, value in getattr(obj, "__dict__", {}).items():
        if name.startswith("_") or name in declared:
            continue
        plain[wire_name(name)] = to_plain(value)
    return plain


def serialize_to_string(obj: Any) -> str:
    """Serialize ``obj`` to JSON text.

    Raises:
        CodecError: The object graph cannot be represented (cycles, getters
            that raise, values ``json`` rejects).
    """
    try:
        return json.dumps(to_plain(obj))
    except Exception as exc:
        raise CodecError(f"Cannot serialize {type(obj).__name__}: {exc}") from exc


def _flatten(value: Any) -> Optional[str]:
    if value is None or isinstance(value, str):
        return value
    return json.dumps(value)


def deserialize_string_map(text: Optional[str]) -> Optional[CaseInsensitiveDict]:
    """Parse a JSON object into a flat, case-insensitive string map.

    String values are kept verbatim, ``null`` becomes ``None`` and nested
    values are re-encoded as JSON text. Returns ``None`` when the text is
    empty or holds something other than an object.

    Raises:
        CodecError: ``text`` is not valid JSON.
    """
    if text is None or not text.strip():
        return None
    try:
        data = json.loads(text)
    except ValueError as exc:
        raise CodecError(f"Invalid JSON text: {text[:80]!r}") from exc
    if not isinstance(data, dict):
        return None
    return CaseInsensitiveDict(
        {wire_name(str(key)): _flatten(value) for key, value in data.items()}
    )


def _decode_value(value: Any, hint: Any) -> Any:
    origin = get_origin(hint)
    if origin is Union or (origin is not None and type(None) in get_args(hint)):
        for arg in get_args(hint):
            if arg is not type(None):
                decoded = _decode_value(value, arg)
                if decoded is not value:
                    return decoded
        return value
    if isinstance(value, Mapping) and isinstance(hint, type) and dataclasses.is_dataclass(hint):
        return decode_dto(value, hint)
    if isinstance(value, list) and origin in (list, List):
        args = get_args(hint)
        item_type = args[0] if args else None
        if isinstance(item_type, type) and dataclasses.is_dataclass(item_type):
            # Items that are not objects cannot become records; drop them.
            return [decode_dto(item, item_type) for item in value if isinstance(item, Mapping)]
    return value


def decode_dto(payload: Mapping[str, Any], dto_type: Type[_T]) -> _T:
    """Build ``dto_type()`` and fill it from a decoded JSON object.

    Nested objects fill dataclass-typed members and lists of objects fill
    ``List[<dataclass>]`` members. Keys with no matching member are ignored.

    Raises:
        CodecError: ``payload`` is not a mapping.
        TypeError: ``dto_type`` cannot be built without arguments.
    """
    if not isinstance(payload, Mapping):
        raise CodecError(f"Expected JSON object for {dto_type.__name__}, got {type(payload).__name__}")
    lookup = CaseInsensitiveDict(
        {wire_name(key): value for key, value in payload.items() if isinstance(key, str)}
    )
    metadata = {}
    if dataclasses.is_dataclass(dto_type):
        metadata = {field.name: field.metadata for field in dataclasses.fields(dto_type)}

    values: Dict[str, Any] = {}
    for member in describe_type(dto_type):
        if not member.writable:
            continue
        key = _field_wire_name(dto_type, member.name, metadata.get(member.name))
        if key not in lookup:
            continue
        values[member.name] = _decode_value(lookup[key], member.type)
    return populate_with(dto_type(), values)


__all__ = [
    "CodecError",
    "CodecOptions",
    "decode_dto",
    "deserialize_string_map",
    "serialize_to_string",
    "to_plain",
    "wire_name",
]
