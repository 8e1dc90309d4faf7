"""Domain-specific errors for structmap."""

from __future__ import annotations


class StructMapError(Exception):
    """Base error for structmap."""


class InvalidTypeError(StructMapError):
    """Raised when a Value cannot be converted into the requested type.

    `type_name` names the target type (or the field type of a missing
    record field).
    """

    def __init__(self, type_name: str):
        super().__init__(f"invalid type: {type_name}")
        self.type_name = type_name


class UnsupportedTypeError(StructMapError):
    """Raised when an annotation, type expression or object has no conversion rule."""


class UnsupportedRecordError(StructMapError):
    """Raised when code generation is requested for a non-record shape."""


class SchemaError(StructMapError):
    """Raised when a schema document cannot be parsed."""
