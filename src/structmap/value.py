"""The dynamic Value tagged union and its diagnostic rendering."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, ClassVar

from .errors import UnsupportedTypeError

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


class Value:
    """Base class of every Value variant."""

    tag: ClassVar[str] = ""

    def __str__(self) -> str:
        return render(self)


@dataclass(frozen=True)
class Null(Value):
    tag: ClassVar[str] = "null"


@dataclass(frozen=True)
class Bool(Value):
    value: bool
    tag: ClassVar[str] = "bool"

    def __post_init__(self) -> None:
        if not isinstance(self.value, bool):
            raise TypeError(f"Bool payload must be bool, got {type(self.value).__name__}")


@dataclass(frozen=True)
class Int(Value):
    value: int
    tag: ClassVar[str] = "int"

    def __post_init__(self) -> None:
        if not isinstance(self.value, int) or isinstance(self.value, bool):
            raise TypeError(f"Int payload must be int, got {type(self.value).__name__}")
        if self.value < INT64_MIN or self.value > INT64_MAX:
            raise ValueError(f"Int payload out of 64-bit range: {self.value}")


@dataclass(frozen=True)
class Float(Value):
    value: float
    tag: ClassVar[str] = "float"

    def __post_init__(self) -> None:
        if isinstance(self.value, bool) or not isinstance(self.value, (int, float)):
            raise TypeError(f"Float payload must be float, got {type(self.value).__name__}")
        if isinstance(self.value, int):
            object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True)
class String(Value):
    value: str
    tag: ClassVar[str] = "string"

    def __post_init__(self) -> None:
        if not isinstance(self.value, str):
            raise TypeError(f"String payload must be str, got {type(self.value).__name__}")


@dataclass(frozen=True)
class Array(Value):
    items: tuple[Value, ...] = ()
    tag: ClassVar[str] = "array"

    def __post_init__(self) -> None:
        items = tuple(self.items)
        for item in items:
            if not isinstance(item, Value):
                raise TypeError(f"Array items must be Value, got {type(item).__name__}")
        object.__setattr__(self, "items", items)

    def __iter__(self):
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class Map(Value):
    entries: dict[str, Value] = field(default_factory=dict)
    tag: ClassVar[str] = "map"

    def __post_init__(self) -> None:
        entries = dict(self.entries)
        for k, v in entries.items():
            if not isinstance(k, str):
                raise TypeError(f"Map keys must be str, got {type(k).__name__}")
            if not isinstance(v, Value):
                raise TypeError(f"Map values must be Value, got {type(v).__name__}")
        object.__setattr__(self, "entries", entries)

    # Entries are a dict; frozen dataclasses would otherwise try to hash it.
    __hash__ = None  # type: ignore[assignment]


NULL = Null()


def render(value: Value) -> str:
    """Render a Value as text for diagnostics.

    The rendering is lossy: containers are flattened by concatenation, so the
    structure cannot be recovered from the output. Map entries follow the
    map's iteration order.
    """
    if isinstance(value, Null):
        return ""
    if isinstance(value, Bool):
        return "true" if value.value else "false"
    if isinstance(value, Int):
        return str(value.value)
    if isinstance(value, Float):
        return repr(value.value)
    if isinstance(value, String):
        return value.value
    if isinstance(value, Array):
        return "".join(render(item) for item in value.items)
    if isinstance(value, Map):
        return "".join(k + render(v) for k, v in value.entries.items())
    raise UnsupportedTypeError(f"not a Value: {type(value).__name__}")


def from_python(obj: Any) -> Value:
    """Build a Value from plain Python data (e.g. decoded JSON)."""
    if isinstance(obj, Value):
        return obj
    if obj is None:
        return NULL
    if isinstance(obj, bool):
        return Bool(obj)
    if isinstance(obj, int):
        if obj < INT64_MIN or obj > INT64_MAX:
            raise UnsupportedTypeError(f"int out of 64-bit range: {obj}")
        return Int(obj)
    if isinstance(obj, float):
        return Float(obj)
    if isinstance(obj, str):
        return String(obj)
    if isinstance(obj, (list, tuple)):
        return Array(tuple(from_python(item) for item in obj))
    if isinstance(obj, dict):
        out: dict[str, Value] = {}
        for k, v in obj.items():
            if not isinstance(k, str):
                raise UnsupportedTypeError(f"expected dict with str keys, got {type(k).__name__} key")
            out[k] = from_python(v)
        return Map(out)
    to_value = getattr(obj, "to_value", None)
    if callable(to_value):
        # Convertible records.
        return to_value()
    raise UnsupportedTypeError(f"cannot convert {type(obj).__name__} to Value")


def to_python(value: Value) -> Any:
    """Inverse of `from_python`: unwrap a Value into plain Python data."""
    if isinstance(value, Null):
        return None
    if isinstance(value, (Bool, Int, Float, String)):
        return value.value
    if isinstance(value, Array):
        return [to_python(item) for item in value.items]
    if isinstance(value, Map):
        return {k: to_python(v) for k, v in value.entries.items()}
    raise UnsupportedTypeError(f"not a Value: {type(value).__name__}")
