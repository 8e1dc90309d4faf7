"""The conversion protocol: typed Python values to and from `Value`.

Every convertible type is represented by a `Converter`. Scalars have one
module-level instance each; optional values, sequences and mappings compose
around the converter of their element type; records delegate to their
generated `to_map`/`from_map`.
"""

from __future__ import annotations

import ctypes
import re
import types
import typing
from collections.abc import Callable, Mapping
from typing import Any, Union

from .errors import InvalidTypeError, UnsupportedTypeError
from .schema import INT_RANGES, KEY_TYPES, map_key_type
from .schema import parse_type as _parse_type
from .value import NULL, Array, Bool, Float, Int, Map, Null, String, Value, from_python

_INT_KEY_RE = re.compile(r"^-?[0-9]+$")


class Converter:
    """Converts one type to and from `Value`.

    `to_value` is total for well-typed input. `from_value` raises
    `InvalidTypeError(type_name)` when the Value's variant or magnitude does
    not fit the type.
    """

    type_name: str = ""

    def to_value(self, obj: Any) -> Value:
        raise NotImplementedError

    def from_value(self, value: Value) -> Any:
        raise NotImplementedError

    def invalid(self) -> InvalidTypeError:
        return InvalidTypeError(self.type_name)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.type_name}>"


class KeyConverter(Converter):
    """A converter whose values can also serve as mapping keys."""

    def format_key(self, obj: Any) -> str:
        raise NotImplementedError

    def parse_key(self, key: str) -> Any:
        raise NotImplementedError


class BoolConverter(Converter):
    type_name = "bool"

    def to_value(self, obj: bool) -> Value:
        return Bool(obj)

    def from_value(self, value: Value) -> bool:
        if isinstance(value, Bool):
            return value.value
        raise self.invalid()


class IntConverter(KeyConverter):
    def __init__(self, type_name: str):
        self.type_name = type_name
        self.lo, self.hi = INT_RANGES[type_name]

    def to_value(self, obj: int) -> Value:
        if not isinstance(obj, int) or isinstance(obj, bool):
            raise TypeError(f"{self.type_name}: expected int, got {type(obj).__name__}")
        if obj < self.lo or obj > self.hi:
            raise ValueError(f"{self.type_name}: {obj} out of range")
        return Int(obj)

    def from_value(self, value: Value) -> int:
        if isinstance(value, Int) and self.lo <= value.value <= self.hi:
            return value.value
        raise self.invalid()

    def format_key(self, obj: int) -> str:
        return str(obj)

    def parse_key(self, key: str) -> int:
        if not _INT_KEY_RE.match(key):
            raise self.invalid()
        n = int(key)
        # Only the canonical spelling, so "01" and "1" cannot name one key twice.
        if str(n) != key or n < self.lo or n > self.hi:
            raise self.invalid()
        return n


class FloatConverter(Converter):
    def __init__(self, type_name: str):
        self.type_name = type_name
        self.single = type_name == "f32"

    def to_value(self, obj: float) -> Value:
        return Float(obj)

    def from_value(self, value: Value) -> float:
        if not isinstance(value, Float):
            raise self.invalid()
        if self.single:
            # Lossy: rounds to single precision, overflows to +/-inf.
            return ctypes.c_float(value.value).value
        return value.value


class StringConverter(KeyConverter):
    type_name = "string"

    def to_value(self, obj: str) -> Value:
        return String(obj)

    def from_value(self, value: Value) -> str:
        if isinstance(value, String):
            return value.value
        raise self.invalid()

    def format_key(self, obj: str) -> str:
        return obj

    def parse_key(self, key: str) -> str:
        return key


class CharConverter(KeyConverter):
    type_name = "char"

    def to_value(self, obj: str) -> Value:
        if not isinstance(obj, str) or len(obj) != 1:
            raise TypeError(f"char: expected a single-character str, got {obj!r}")
        return String(obj)

    def from_value(self, value: Value) -> str:
        if isinstance(value, String) and len(value.value) == 1:
            return value.value
        raise self.invalid()

    def format_key(self, obj: str) -> str:
        return obj

    def parse_key(self, key: str) -> str:
        if len(key) != 1:
            raise self.invalid()
        return key


BOOL = BoolConverter()
I8 = IntConverter("i8")
I16 = IntConverter("i16")
I32 = IntConverter("i32")
I64 = IntConverter("i64")
ISIZE = IntConverter("isize")
U8 = IntConverter("u8")
U16 = IntConverter("u16")
U32 = IntConverter("u32")
F32 = FloatConverter("f32")
F64 = FloatConverter("f64")
STRING = StringConverter()
CHAR = CharConverter()

SCALARS: dict[str, Converter] = {
    c.type_name: c for c in (BOOL, I8, I16, I32, I64, ISIZE, U8, U16, U32, F32, F64, STRING, CHAR)
}


class OptionalConverter(Converter):
    def __init__(self, inner: Converter):
        self.inner = inner
        self.type_name = f"*{inner.type_name}"

    def to_value(self, obj: Any) -> Value:
        if obj is None:
            return NULL
        return self.inner.to_value(obj)

    def from_value(self, value: Value) -> Any:
        if isinstance(value, Null):
            return None
        # A present value of the wrong type surfaces the inner type's error.
        return self.inner.from_value(value)


class SequenceConverter(Converter):
    def __init__(self, inner: Converter):
        self.inner = inner
        self.type_name = f"[]{inner.type_name}"

    def to_value(self, obj: Any) -> Value:
        return Array(tuple(self.inner.to_value(item) for item in obj))

    def from_value(self, value: Value) -> list[Any]:
        if not isinstance(value, Array):
            raise self.invalid()
        return [self.inner.from_value(item) for item in value.items]


class MappingConverter(Converter):
    def __init__(self, key: KeyConverter, inner: Converter):
        self.key = key
        self.inner = inner
        self.type_name = f"map[{key.type_name}]{inner.type_name}"

    def to_value(self, obj: Mapping[Any, Any]) -> Value:
        return Map({self.key.format_key(k): self.inner.to_value(v) for k, v in obj.items()})

    def from_value(self, value: Value) -> dict[Any, Any]:
        if not isinstance(value, Map):
            raise self.invalid()
        out: dict[Any, Any] = {}
        for k, v in value.entries.items():
            try:
                key = self.key.parse_key(k)
            except InvalidTypeError:
                raise self.invalid() from None
            out[key] = self.inner.from_value(v)
        return out


class RecordConverter(Converter):
    """Delegates to a record class' `to_map`/`from_map`.

    The class is looked up through `resolve` on every call, so converters for
    records that are not declared yet (forward or self references) can be
    built ahead of time.
    """

    def __init__(self, type_name: str, resolve: Callable[[], type]):
        self.type_name = type_name
        self._resolve = resolve

    @property
    def record_type(self) -> type:
        return self._resolve()

    def to_value(self, obj: Any) -> Value:
        return Map(obj.to_map())

    def from_value(self, value: Value) -> Any:
        if not isinstance(value, Map):
            raise self.invalid()
        return self.record_type.from_map(value.entries)


def parse_type(expr: str, *, records: Mapping[str, type] | None = None) -> Converter:
    """Resolve a type expression into a converter.

    Record names are looked up in `records` when a conversion runs, not here.
    """
    base, ops = _parse_type(expr)
    conv = SCALARS.get(base)
    if conv is None:
        if records is None:
            raise UnsupportedTypeError(f"unknown type {base!r} (no record registry given)")
        conv = RecordConverter(base, _registry_lookup(records, base))

    for op in reversed(ops):
        if op == "*":
            conv = OptionalConverter(conv)
        elif op == "[]":
            conv = SequenceConverter(conv)
        else:
            key = map_key_type(op)
            if key not in KEY_TYPES:
                raise UnsupportedTypeError(f"unsupported map key type {key!r} in {expr!r}")
            conv = MappingConverter(SCALARS[key], conv)  # type: ignore[arg-type]
    return conv


def _registry_lookup(records: Mapping[str, type], name: str) -> Callable[[], type]:
    def resolve() -> type:
        try:
            return records[name]
        except KeyError:
            raise UnsupportedTypeError(f"unknown record type {name!r}") from None

    return resolve


def is_record_class(tp: Any) -> bool:
    """True for classes that carry their own generated record methods.

    A subclass of a record inherits the methods but not its own field list,
    so it does not count until it is made convertible itself.
    """
    return isinstance(tp, type) and "__structmap_fields__" in vars(tp)


_ANNOTATION_SCALARS: dict[Any, Converter] = {
    bool: BOOL,
    int: I64,
    float: F64,
    str: STRING,
}


def converter_for(tp: Any, *, self_type: type | None = None) -> Converter:
    """Resolve a Python annotation, type expression or Converter into a Converter.

    `self_type` is a record class still being declared; annotations naming it
    resolve to a record converter even though it is not convertible yet.
    """
    if isinstance(tp, Converter):
        return tp
    if isinstance(tp, str):
        return parse_type(tp)
    if isinstance(tp, type) and tp in _ANNOTATION_SCALARS:
        return _ANNOTATION_SCALARS[tp]
    if isinstance(tp, type) and (tp is self_type or is_record_class(tp)):
        return RecordConverter(tp.__name__, lambda: tp)
    resolve = getattr(tp, "__structmap_resolve__", None) if isinstance(tp, type) else None
    if resolve is not None:
        # A record named in an annotation before it was declared.
        return RecordConverter(tp.__name__, resolve)

    origin = typing.get_origin(tp)
    args = typing.get_args(tp)
    if origin is Union or origin is getattr(types, "UnionType", None):
        non_none = [a for a in args if a is not type(None)]
        if len(non_none) == 1 and len(args) == 2:
            return OptionalConverter(converter_for(non_none[0], self_type=self_type))
        raise UnsupportedTypeError(f"only Optional unions are supported: {tp!r}")
    if origin is list:
        if len(args) != 1:
            raise UnsupportedTypeError(f"list needs one type argument: {tp!r}")
        return SequenceConverter(converter_for(args[0], self_type=self_type))
    if origin is dict:
        if len(args) != 2:
            raise UnsupportedTypeError(f"dict needs two type arguments: {tp!r}")
        key = converter_for(args[0])
        if not isinstance(key, KeyConverter):
            raise UnsupportedTypeError(f"unsupported dict key type: {args[0]!r}")
        return MappingConverter(key, converter_for(args[1], self_type=self_type))
    raise UnsupportedTypeError(f"no conversion rule for {tp!r}")


def to_value(obj: Any, tp: Any = None) -> Value:
    """Convert `obj` to a Value, using `tp` when given and runtime inspection otherwise."""
    if tp is None:
        return from_python(obj)
    return converter_for(tp).to_value(obj)


def from_value(value: Value, tp: Any) -> Any:
    """Convert a Value into the type described by `tp`."""
    return converter_for(tp).from_value(value)

