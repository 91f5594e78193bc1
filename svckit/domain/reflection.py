"""Reflection helpers for populating objects and inspecting declarations.

Members are described once per class through ``FieldDescriptor`` tuples and
the matching between a source and a destination class is cached as a
mapping plan. Copy helpers drive everything from those cached descriptors
and only look at instance dictionaries for attributes a class never
declared.

Absence is never an error here: unmatched members are skipped, missing
markers and non-generic types come back as ``None``/``False``.
"""

from __future__ import annotations

import inspect
import logging
import numbers
import types
from dataclasses import dataclass
from functools import lru_cache
from typing import (
    Annotated,
    Any,
    ClassVar,
    Dict,
    Generic,
    List,
    Literal,
    Mapping,
    Optional,
    Protocol,
    Tuple,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
)

from .markers import Debuggable, Marker, own_markers

LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")
_M = TypeVar("_M", bound=Marker)

_NON_DEFINITION_ORIGINS = (Generic, Protocol, ClassVar, Annotated)
_UNION_TYPES: Tuple[Any, ...] = (Union, types.UnionType)


@dataclass(frozen=True)
class FieldDescriptor:
    """One member of a class as seen by the copy helpers."""

    name: str
    type: Any = Any
    readable: bool = True
    writable: bool = True
    markers: Tuple[Marker, ...] = ()

    def has_marker(self, marker_type: Type[Marker]) -> bool:
        return any(isinstance(marker, marker_type) for marker in self.markers)


# ---------------------------------------------------------------------------
# Descriptor layer
# ---------------------------------------------------------------------------


def _ancestry(cls: type) -> List[type]:
    return [klass for klass in cls.__mro__ if klass is not object]


def _own_annotations(klass: type) -> Dict[str, Any]:
    try:
        return dict(inspect.get_annotations(klass, eval_str=True))
    except Exception:
        # Unresolvable forward references: keep names, lose the types.
        return dict(inspect.get_annotations(klass))


def _split_annotation(hint: Any) -> Tuple[Any, Tuple[Marker, ...]]:
    """Return ``(bare type, markers)`` for a possibly ``Annotated`` hint."""
    if get_origin(hint) is Annotated:
        bare, *extras = get_args(hint)
        return bare, tuple(item for item in extras if isinstance(item, Marker))
    return hint, ()


def _is_class_var(hint: Any) -> bool:
    if hint is ClassVar or get_origin(hint) is ClassVar:
        return True
    return isinstance(hint, str) and hint.startswith(("ClassVar", "typing.ClassVar"))


def _member_markers(cls: type, name: str, inherit: bool) -> Tuple[Marker, ...]:
    """Markers of one member, own declaration first, then ancestors."""
    found: List[Marker] = []
    for depth, klass in enumerate(_ancestry(cls)):
        if depth and not inherit:
            break
        declared: List[Marker] = []
        hint = _own_annotations(klass).get(name)
        if hint is not None:
            declared.extend(_split_annotation(hint)[1])
        attr = vars(klass).get(name)
        if isinstance(attr, property) and attr.fget is not None:
            declared.extend(own_markers(attr.fget))
        if depth:
            declared = [marker for marker in declared if marker.inherited]
        found.extend(declared)
    return tuple(found)


@lru_cache(maxsize=None)
def describe_type(cls: type) -> Tuple[FieldDescriptor, ...]:
    """Enumerate the public members declared by ``cls`` and its bases.

    Members come from class annotations (dataclass fields included) and
    ``property`` objects, in base-first declaration order. Private names
    and ``ClassVar`` annotations are skipped.
    """
    if not isinstance(cls, type):
        return ()
    params = getattr(cls, "__dataclass_params__", None)
    frozen = bool(params is not None and params.frozen)

    entries: Dict[str, FieldDescriptor] = {}
    for klass in reversed(_ancestry(cls)):
        for name, hint in _own_annotations(klass).items():
            if name.startswith("_") or _is_class_var(hint):
                continue
            bare, _ = _split_annotation(hint)
            entries[name] = FieldDescriptor(
                name=name,
                type=Any if isinstance(bare, str) else bare,
                writable=not frozen,
            )
        for name, attr in vars(klass).items():
            if name.startswith("_") or not isinstance(attr, property):
                continue
            hint = inspect.get_annotations(attr.fget).get("return", Any) if attr.fget else Any
            entries[name] = FieldDescriptor(
                name=name,
                type=Any if isinstance(hint, str) else hint,
                readable=attr.fget is not None,
                writable=attr.fset is not None,
            )

    return tuple(
        FieldDescriptor(
            name=entry.name,
            type=entry.type,
            readable=entry.readable,
            writable=entry.writable,
            markers=_member_markers(cls, entry.name, inherit=True),
        )
        for entry in entries.values()
    )


@lru_cache(maxsize=None)
def mapping_plan(
    source_type: type, destination_type: type
) -> Tuple[Tuple[FieldDescriptor, FieldDescriptor], ...]:
    """Pairs of declared members sharing a name (case-sensitive)."""
    targets = {desc.name: desc for desc in describe_type(destination_type)}
    plan = []
    for source in describe_type(source_type):
        target = targets.get(source.name)
        if source.readable and target is not None and target.writable:
            plan.append((source, target))
    return tuple(plan)


def _instance_member(obj: Any, name: str) -> Optional[FieldDescriptor]:
    if name.startswith("_"):
        return None
    if name in getattr(obj, "__dict__", {}):
        return FieldDescriptor(name=name)
    return None


def _undeclared_sources(source: Any, declared: Mapping[str, FieldDescriptor]) -> List[FieldDescriptor]:
    if isinstance(source, Mapping):
        names = [key for key in source.keys() if isinstance(key, str)]
    else:
        names = list(getattr(source, "__dict__", {}))
    return [
        FieldDescriptor(name=name)
        for name in names
        if not name.startswith("_") and name not in declared
    ]


def _member_pairs(destination: Any, source: Any) -> List[Tuple[FieldDescriptor, FieldDescriptor]]:
    if isinstance(source, Mapping):
        declared_sources: Dict[str, FieldDescriptor] = {}
        pairs: List[Tuple[FieldDescriptor, FieldDescriptor]] = []
    else:
        declared_sources = {desc.name: desc for desc in describe_type(type(source))}
        pairs = list(mapping_plan(type(source), type(destination)))
    seen = {src.name for src, _ in pairs}
    targets = {desc.name: desc for desc in describe_type(type(destination))}

    candidates = [desc for desc in declared_sources.values() if desc.readable]
    candidates.extend(_undeclared_sources(source, declared_sources))
    for src in candidates:
        if src.name in seen:
            continue
        dst = targets.get(src.name) or _instance_member(destination, src.name)
        if dst is None or not dst.writable:
            continue
        pairs.append((src, dst))
        seen.add(src.name)
    return pairs


def _read(source: Any, member: FieldDescriptor) -> Any:
    if isinstance(source, Mapping):
        return source[member.name]
    return getattr(source, member.name)


# ---------------------------------------------------------------------------
# Copy helpers
# ---------------------------------------------------------------------------


def is_compatible(value: Any, declared: Any) -> bool:
    """Return whether ``value`` may be stored in a member typed ``declared``."""
    if declared is None:
        declared = type(None)
    if declared is Any or isinstance(declared, (str, TypeVar)):
        return True
    declared, _ = _split_annotation(declared)
    origin = get_origin(declared)
    if origin in _UNION_TYPES:
        return any(is_compatible(value, arg) for arg in get_args(declared))
    if origin is Literal:
        return value in get_args(declared)
    if declared is type(None):
        return value is None
    if value is None:
        return False
    if origin is not None:
        declared = origin
    if not isinstance(declared, type):
        return True
    if isinstance(value, bool) and declared in (int, float):
        return False
    if declared is float and isinstance(value, int):
        return True
    try:
        return isinstance(value, declared)
    except TypeError:
        # Non-runtime protocols and similar: nothing to check against.
        return True


def is_default_value(value: Any) -> bool:
    """Zero value test: ``None``, ``False``, numeric zero, empty text."""
    if value is None or value is False:
        return True
    if isinstance(value, bool):
        return False
    if isinstance(value, numbers.Number):
        return value == 0
    if isinstance(value, (str, bytes)):
        return not value
    return False


def _populate(
    destination: _T,
    source: Any,
    *,
    skip_defaults: bool = False,
    marker_type: Optional[Type[Marker]] = None,
) -> _T:
    if source is None:
        return destination
    for src, dst in _member_pairs(destination, source):
        if marker_type is not None and not src.has_marker(marker_type):
            continue
        value = _read(source, src)
        if skip_defaults and is_default_value(value):
            continue
        if not is_compatible(value, dst.type):
            LOGGER.debug(
                "Skipping %s: %r does not fit %s on %s",
                dst.name,
                type(value).__name__,
                dst.type,
                type(destination).__name__,
            )
            continue
        try:
            setattr(destination, dst.name, value)
        except (AttributeError, TypeError):
            LOGGER.debug("Skipping read-only member %s on %s", dst.name, type(destination).__name__)
    return destination


def populate_with(destination: _T, source: Any) -> _T:
    """Copy same-named, type-compatible members from ``source`` into ``destination``."""
    return _populate(destination, source)


def populate_with_non_default_values(destination: _T, source: Any) -> _T:
    """Like ``populate_with`` but leave members alone where ``source`` holds a zero value."""
    return _populate(destination, source, skip_defaults=True)


def populate_from_fields_with_marker(
    destination: _T, source: Any, marker_type: Type[Marker]
) -> _T:
    """Like ``populate_with`` restricted to source members carrying ``marker_type``."""
    return _populate(destination, source, marker_type=marker_type)


def translate_to(target_type: Type[_T], source: Any) -> _T:
    """Build ``target_type()`` and populate it from ``source``.

    Raises:
        TypeError: ``target_type`` cannot be constructed without arguments.
    """
    return populate_with(target_type(), source)


# ---------------------------------------------------------------------------
# Marker lookup
# ---------------------------------------------------------------------------


def first_attribute(target: Any, marker_type: Type[_M], inherit: bool = True) -> Optional[_M]:
    """Return the first ``marker_type`` marker on a class, module or member.

    For classes, own declarations are searched before ancestors when
    ``inherit`` is true. ``FieldDescriptor`` and ``property`` targets are
    searched in declaration order.
    """
    if isinstance(target, FieldDescriptor):
        candidates: Tuple[Marker, ...] = target.markers
        return next((m for m in candidates if isinstance(m, marker_type)), None)
    if isinstance(target, property):
        target = target.fget
    nodes = _ancestry(target) if isinstance(target, type) else [target]
    for depth, node in enumerate(nodes):
        if depth and not inherit:
            break
        for marker in own_markers(node):
            if isinstance(marker, marker_type) and (depth == 0 or marker.inherited):
                return marker
    return None


def first_member_attribute(
    cls: type, member: str, marker_type: Type[_M], inherit: bool = True
) -> Optional[_M]:
    """Return the first ``marker_type`` marker declared on ``cls.<member>``."""
    if not isinstance(cls, type):
        return None
    for marker in _member_markers(cls, member, inherit):
        if isinstance(marker, marker_type):
            return marker
    return None


# ---------------------------------------------------------------------------
# Generic types
# ---------------------------------------------------------------------------


def _own_generic_definition(klass: type) -> Optional[type]:
    if vars(klass).get("__parameters__"):
        return klass
    for base in vars(klass).get("__orig_bases__", ()):
        origin = get_origin(base)
        if origin is not None and origin not in _NON_DEFINITION_ORIGINS:
            return origin
    return None


def first_generic_type_definition(tp: Any) -> Optional[Any]:
    """Unbound definition of the first parameterized node on ``tp``'s ancestor walk."""
    if get_origin(tp) is Annotated:
        tp = get_args(tp)[0]
    origin = get_origin(tp)
    if origin is not None and origin not in _NON_DEFINITION_ORIGINS:
        return origin
    if not isinstance(tp, type):
        return None
    for klass in _ancestry(tp):
        if klass in (Generic, Protocol):
            continue
        definition = _own_generic_definition(klass)
        if definition is not None:
            return definition
    return None


def is_generic_type(tp: Any) -> bool:
    """True if ``tp`` or any of its ancestors is a parameterized type."""
    return first_generic_type_definition(tp) is not None


# ---------------------------------------------------------------------------
# Module probes
# ---------------------------------------------------------------------------


def is_dynamic_module(module: types.ModuleType) -> bool:
    """True for modules built at runtime rather than loaded from a location."""
    try:
        spec = module.__spec__
        if spec is None:
            return True
        if spec.origin in ("built-in", "frozen"):
            return False
        location = getattr(module, "__file__", None) or spec.origin
        return not location
    except AttributeError:
        # No spec attribute at all: nothing was loaded from disk.
        return True


def is_debug_build(module: types.ModuleType) -> bool:
    """Return ``tracking_enabled`` of the module's ``Debuggable`` marker."""
    marker = first_attribute(module, Debuggable, inherit=False)
    return bool(marker is not None and marker.tracking_enabled)


__all__ = [
    "FieldDescriptor",
    "describe_type",
    "first_attribute",
    "first_generic_type_definition",
    "first_member_attribute",
    "is_compatible",
    "is_debug_build",
    "is_default_value",
    "is_dynamic_module",
    "is_generic_type",
    "mapping_plan",
    "populate_from_fields_with_marker",
    "populate_with",
    "populate_with_non_default_values",
    "translate_to",
]
