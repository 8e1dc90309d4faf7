from __future__ import annotations

import enum
from dataclasses import dataclass, field, make_dataclass
from typing import NamedTuple

import pytest

from structmap.convert import converter_for
from structmap.errors import InvalidTypeError, UnsupportedRecordError, UnsupportedTypeError
from structmap.record import RecordMapping, convertible, from_map, is_convertible, to_map
from structmap.value import NULL, Array, Bool, Float, Int, Map, String


@convertible
@dataclass
class Foo:
    a: int = field(metadata={"type": "i32"})
    b: int = field(metadata={"type": "i32"})


@convertible
@dataclass(frozen=True)
class Point:
    x: int
    y: int


@convertible
@dataclass
class Shape:
    name: str
    points: list[Point]
    origin: Point | None
    tags: dict[str, int]
    scale: float
    visible: bool
    initial: str = field(default="s", metadata={"type": "char"})


@convertible
@dataclass
class Node:
    label: str
    children: list[Node]


def _shape() -> Shape:
    return Shape(
        name="tri",
        points=[Point(0, 0), Point(3, 0), Point(0, 4)],
        origin=None,
        tags={"edges": 3},
        scale=1.5,
        visible=True,
    )


def test_flatten_foo():
    assert Foo(a=1, b=2).to_map() == {"a": Int(1), "b": Int(2)}


def test_build_foo():
    assert Foo.from_map({"a": Int(3), "b": Int(4)}) == Foo(a=3, b=4)


def test_build_foo_missing_field_names_its_type():
    with pytest.raises(InvalidTypeError) as exc:
        Foo.from_map({"a": Int(3)})
    assert exc.value.type_name == "i32"


def test_missing_field_fails_even_with_defaults():
    m = _shape().to_map()
    del m["initial"]
    with pytest.raises(InvalidTypeError, match="invalid type: char"):
        Shape.from_map(m)


def test_extra_keys_are_ignored():
    assert Foo.from_map({"a": Int(3), "b": Int(4), "c": String("x")}) == Foo(a=3, b=4)


def test_field_type_error_propagates():
    with pytest.raises(InvalidTypeError, match="invalid type: i32"):
        Foo.from_map({"a": Int(2**40), "b": Int(4)})
    with pytest.raises(InvalidTypeError, match="invalid type: i32"):
        Foo.from_map({"a": Bool(True), "b": Int(4)})


def test_input_mapping_is_not_mutated():
    m = {"a": Int(3), "b": Int(4), "extra": NULL}
    Foo.from_map(m)
    assert m == {"a": Int(3), "b": Int(4), "extra": NULL}


def test_roundtrip_nested_records():
    s = _shape()
    assert Shape.from_map(s.to_map()) == s


def test_nested_records_flatten_to_maps():
    m = _shape().to_map()
    assert m["points"] == Array(
        (
            Map({"x": Int(0), "y": Int(0)}),
            Map({"x": Int(3), "y": Int(0)}),
            Map({"x": Int(0), "y": Int(4)}),
        )
    )
    assert m["origin"] == NULL
    assert m["tags"] == Map({"edges": Int(3)})
    assert m["scale"] == Float(1.5)
    assert m["initial"] == String("s")


def test_sequence_field_order_is_preserved():
    s = _shape()
    out = Shape.from_map(s.to_map())
    assert [p.x for p in out.points] == [0, 3, 0]
    assert [p.y for p in out.points] == [0, 0, 4]


def test_nested_error_surfaces_inner_field_type():
    m = _shape().to_map()
    m["points"] = Array((Map({"x": Int(1)}),))
    with pytest.raises(InvalidTypeError) as exc:
        Shape.from_map(m)
    assert exc.value.type_name == "i64"


def test_nested_record_requires_map():
    m = _shape().to_map()
    m["origin"] = Int(1)
    with pytest.raises(InvalidTypeError, match="invalid type: Point"):
        Shape.from_map(m)


def test_self_referencing_record():
    tree = Node("root", [Node("a", []), Node("b", [Node("c", [])])])
    assert Node.from_map(tree.to_map()) == tree


def test_record_is_a_value_too():
    p = Point(1, 2)
    assert p.to_value() == Map({"x": Int(1), "y": Int(2)})
    assert Point.from_value(Map({"x": Int(1), "y": Int(2)})) == p
    with pytest.raises(InvalidTypeError, match="Point"):
        Point.from_value(Array(()))


def test_module_level_helpers():
    p = Point(5, 6)
    assert to_map(p) == {"x": Int(5), "y": Int(6)}
    assert from_map(Point, Map({"x": Int(5), "y": Int(6)})) == p
    assert is_convertible(Point)
    assert is_convertible(p)
    assert isinstance(p, RecordMapping)
    assert not is_convertible(object())
    with pytest.raises(UnsupportedRecordError):
        to_map(object())


def test_field_list_is_fixed_at_declaration():
    assert [f.name for f in Shape.__structmap_fields__] == [
        "name",
        "points",
        "origin",
        "tags",
        "scale",
        "visible",
        "initial",
    ]
    assert [f.type for f in Foo.__structmap_fields__] == ["i32", "i32"]
    assert Shape.__structmap_fields__[1].type == "[]Point"
    assert Shape.__structmap_fields__[2].type == "*Point"


class Color(enum.Enum):
    RED = 1


class Pair(NamedTuple):
    left: int
    right: int


class Plain:
    pass


@pytest.mark.parametrize(
    "cls, message",
    [
        (Color, "invalid type: Enum"),
        (Pair, "invalid type: Unnamed"),
        (Plain, "invalid type: Unit"),
    ],
)
def test_non_record_shapes_are_rejected(cls, message):
    with pytest.raises(UnsupportedRecordError, match=message):
        convertible(cls)


@dataclass
class Derived:
    a: int
    b: int = field(init=False, default=0)


def test_non_init_fields_are_rejected():
    with pytest.raises(UnsupportedRecordError, match="init"):
        convertible(Derived)


@convertible
@dataclass
class Outer:
    inner: Later
    others: list[Later]
    maybe: Later | None


@convertible
@dataclass
class Later:
    n: int


@convertible
@dataclass
class Ping:
    pong: Pong | None


@convertible
@dataclass
class Pong:
    ping: Ping | None


@convertible
@dataclass
class Dangling:
    ref: NeverDeclared  # noqa: F821


def test_records_declared_later_resolve_at_conversion():
    o = Outer(inner=Later(1), others=[Later(2), Later(3)], maybe=None)
    m = o.to_map()
    assert m["inner"] == Map({"n": Int(1)})
    assert Outer.from_map(m) == o
    assert [f.type for f in Outer.__structmap_fields__] == ["Later", "[]Later", "*Later"]


def test_mutually_recursive_records():
    p = Ping(pong=Pong(ping=Ping(pong=None)))
    assert p.to_map() == {"pong": Map({"ping": Map({"pong": NULL})})}
    assert Ping.from_map(p.to_map()) == p


def test_unknown_record_reference_fails_on_conversion():
    with pytest.raises(UnsupportedTypeError, match="NeverDeclared"):
        Dangling.from_map({"ref": Map({})})


@convertible
@dataclass
class Base:
    a: int


@dataclass
class Sub(Base):
    extra: str = "x"


def test_undecorated_subclass_is_not_convertible():
    assert is_convertible(Base)
    assert not is_convertible(Sub)
    with pytest.raises(UnsupportedRecordError, match="Sub"):
        to_map(Sub(a=1, extra="y"))
    with pytest.raises(UnsupportedRecordError, match="Sub"):
        from_map(Sub, {"a": Int(1), "extra": String("y")})
    with pytest.raises(UnsupportedTypeError, match="Sub"):
        converter_for(list[Sub])


def test_decorated_subclass_carries_its_own_fields():
    @dataclass
    class Child(Base):
        extra: str = "x"

    Child = convertible(Child)
    c = Child(a=1, extra="y")
    assert c.to_map() == {"a": Int(1), "extra": String("y")}
    assert Child.from_map(c.to_map()) == c
    assert Base(a=1).to_map() == {"a": Int(1)}


@pytest.mark.parametrize("name", ["to_map", "from_map", "to_value", "from_value"])
def test_fields_named_after_record_methods_are_rejected(name):
    cls = make_dataclass("Clash", [(name, int)])
    with pytest.raises(UnsupportedRecordError, match="reserved"):
        convertible(cls)
