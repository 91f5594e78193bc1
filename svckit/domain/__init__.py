"""Domain package exports for markers, reflection helpers, and status DTOs."""

from .markers import DataMember, Debuggable, Ignore, Marker, annotate, marked
from .reflection import (
    FieldDescriptor,
    describe_type,
    first_attribute,
    first_generic_type_definition,
    first_member_attribute,
    is_debug_build,
    is_dynamic_module,
    is_generic_type,
    populate_from_fields_with_marker,
    populate_with,
    populate_with_non_default_values,
    translate_to,
)
from .response_status import ErrorResponse, HasResponseStatus, ResponseError, ResponseStatus

__all__ = [
    "DataMember",
    "Debuggable",
    "ErrorResponse",
    "FieldDescriptor",
    "HasResponseStatus",
    "Ignore",
    "Marker",
    "ResponseError",
    "ResponseStatus",
    "annotate",
    "describe_type",
    "first_attribute",
    "first_generic_type_definition",
    "first_member_attribute",
    "is_debug_build",
    "is_dynamic_module",
    "is_generic_type",
    "marked",
    "populate_from_fields_with_marker",
    "populate_with",
    "populate_with_non_default_values",
    "translate_to",
]
