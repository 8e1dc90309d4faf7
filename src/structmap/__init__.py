"""structmap: convert typed records to and from a dynamic Value mapping."""

from __future__ import annotations

from . import errors
from .convert import Converter, converter_for, from_value, parse_type, to_value
from .record import RecordMapping, convertible, from_map, is_convertible, to_map
from .schema import Schema, read_schema
from .typed import make_record_types
from .value import NULL, Array, Bool, Float, Int, Map, Null, String, Value, render

__all__ = [
    "NULL",
    "Array",
    "Bool",
    "Converter",
    "Float",
    "Int",
    "Map",
    "Null",
    "RecordMapping",
    "Schema",
    "String",
    "Value",
    "converter_for",
    "convertible",
    "errors",
    "from_map",
    "from_value",
    "is_convertible",
    "make_record_types",
    "parse_type",
    "read_schema",
    "render",
    "to_map",
    "to_value",
]
