"""The record mapping capability and the `convertible` decorator."""

from __future__ import annotations

import builtins
import enum
import sys
from collections.abc import Mapping
from dataclasses import fields, is_dataclass
from typing import Any, Protocol, TypeVar, runtime_checkable

from .codegen import check_record_shape, compile_record_methods
from .convert import Converter, converter_for, is_record_class, parse_type
from .errors import InvalidTypeError, UnsupportedRecordError, UnsupportedTypeError
from .schema import FieldSchema, RecordSchema
from .value import Map, Value

T = TypeVar("T")


@runtime_checkable
class RecordMapping(Protocol):
    """A record that flattens to, and builds from, a field-name mapping."""

    def to_map(self) -> dict[str, Value]: ...

    @classmethod
    def from_map(cls, mapping: Mapping[str, Value]) -> Any: ...


def _shape_of(cls: type) -> str:
    if isinstance(cls, type) and issubclass(cls, enum.Enum):
        return "enum"
    if isinstance(cls, type) and issubclass(cls, tuple):
        return "tuple"
    if not is_dataclass(cls):
        return "unit"
    return "struct"


def _pending_record(name: str, namespace: Mapping[str, Any]) -> type:
    def resolve() -> type:
        cls = namespace.get(name)
        if not is_record_class(cls):
            raise UnsupportedTypeError(f"unknown record type {name!r}")
        return cls  # type: ignore[return-value]

    return type(name, (), {"__structmap_resolve__": staticmethod(resolve)})


class _AnnotationScope(dict):
    """Names a record's string annotations may use.

    The record itself, its module's globals and builtins resolve normally.
    Any other name is taken to be a record declared later in the module and
    is looked up there when a conversion runs.
    """

    def __init__(self, cls: type):
        super().__init__({cls.__name__: cls})
        module = sys.modules.get(cls.__module__)
        self.module_globals: dict[str, Any] = vars(module) if module is not None else {}

    def __missing__(self, name: str) -> Any:
        if name in self.module_globals:
            return self.module_globals[name]
        if hasattr(builtins, name):
            return getattr(builtins, name)
        return _pending_record(name, self.module_globals)


def _field_converter(cls: type, f: Any, scope: _AnnotationScope) -> Converter:
    override = f.metadata.get("type") if f.metadata else None
    if override is not None:
        return parse_type(override) if isinstance(override, str) else converter_for(override)
    annotation = f.type
    if isinstance(annotation, str):
        annotation = eval(annotation, scope.module_globals, scope)  # noqa: S307
    return converter_for(annotation, self_type=cls)


def convertible(cls: type[T]) -> type[T]:
    """Make a dataclass convertible to and from a `Value` mapping.

    The field list is read once, here. A field's type comes from its
    annotation (`int` is i64, `float` is f64) unless overridden with
    `field(metadata={"type": "i32"})`. Annotations may name records that are
    declared further down the same module.
    """
    check_record_shape(RecordSchema(name=cls.__name__, fields=(), kind=_shape_of(cls)))

    scope = _AnnotationScope(cls)
    converters: dict[str, Converter] = {}
    schema_fields: list[FieldSchema] = []
    for f in fields(cls):  # type: ignore[arg-type]
        if not f.init:
            raise UnsupportedRecordError(f"{cls.__name__}: field {f.name} is not an init field")
        conv = _field_converter(cls, f, scope)
        converters[f.name] = conv
        schema_fields.append(FieldSchema(name=f.name, type=conv.type_name))

    record = RecordSchema(name=cls.__name__, fields=tuple(schema_fields))
    install_record_methods(cls, record, converters)
    return cls


def install_record_methods(cls: type, record: RecordSchema, converters: Mapping[str, Converter]) -> None:
    """Attach generated to_map/from_map and the delegating to_value/from_value."""
    to_map, from_map = compile_record_methods(record, converters)
    cls.to_map = to_map  # type: ignore[attr-defined]
    cls.from_map = classmethod(from_map)  # type: ignore[attr-defined]
    cls.to_value = record_to_value  # type: ignore[attr-defined]
    cls.from_value = classmethod(record_from_value)  # type: ignore[attr-defined]
    cls.__structmap_fields__ = record.fields  # type: ignore[attr-defined]


def record_to_value(record: Any) -> Value:
    return Map(record.to_map())


def record_from_value(cls: type[T], value: Value) -> T:
    if not isinstance(value, Map):
        raise InvalidTypeError(cls.__name__)
    return cls.from_map(value.entries)  # type: ignore[attr-defined]


def is_convertible(obj: Any) -> bool:
    cls = obj if isinstance(obj, type) else type(obj)
    return is_record_class(cls) and callable(getattr(cls, "to_map", None))


def to_map(record: Any) -> dict[str, Value]:
    """Flatten a convertible record into a field-name mapping."""
    if not is_convertible(record):
        raise UnsupportedRecordError(f"{type(record).__name__} is not a convertible record")
    return record.to_map()


def from_map(cls: type[T], mapping: Mapping[str, Value] | Map) -> T:
    """Build a record of type `cls` from a field-name mapping (or a Map value).

    Keys that are not fields of `cls` are ignored.
    """
    if not is_convertible(cls):
        raise UnsupportedRecordError(f"{cls.__name__} is not a convertible record")
    if isinstance(mapping, Map):
        mapping = mapping.entries
    return cls.from_map(mapping)  # type: ignore[attr-defined]
