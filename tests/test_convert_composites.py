from __future__ import annotations

from typing import Optional

import pytest

from structmap.convert import (
    I64,
    MappingConverter,
    OptionalConverter,
    SequenceConverter,
    converter_for,
    parse_type,
)
from structmap.errors import InvalidTypeError, UnsupportedTypeError
from structmap.value import NULL, Array, Bool, Int, Map, String


@pytest.mark.parametrize("expr", ["*bool", "*i8", "*string", "*[]i32", "*map[string]f64"])
def test_optional_null_is_absent_for_any_inner_type(expr):
    assert parse_type(expr).from_value(NULL) is None


def test_optional_present_delegates_to_inner():
    conv = parse_type("*i32")
    assert conv.from_value(Int(7)) == 7
    assert conv.to_value(None) == NULL
    assert conv.to_value(7) == Int(7)


def test_optional_wrong_type_surfaces_inner_error():
    with pytest.raises(InvalidTypeError) as exc:
        parse_type("*bool").from_value(Int(1))
    assert exc.value.type_name == "bool"


def test_sequence_preserves_order():
    conv = parse_type("[]string")
    v = conv.to_value(["c", "a", "b"])
    assert v == Array((String("c"), String("a"), String("b")))
    assert conv.from_value(v) == ["c", "a", "b"]


def test_sequence_requires_array():
    with pytest.raises(InvalidTypeError, match=r"invalid type: \[\]i8"):
        parse_type("[]i8").from_value(Map({}))


def test_sequence_fails_on_first_bad_element():
    conv = parse_type("[]i8")
    with pytest.raises(InvalidTypeError) as exc:
        conv.from_value(Array((Int(1), Int(1000), Bool(True))))
    assert exc.value.type_name == "i8"


def test_mapping_roundtrip_with_integer_keys():
    conv = parse_type("map[u16][]bool")
    v = conv.to_value({1: [True], 20: []})
    assert v == Map({"1": Array((Bool(True),)), "20": Array(())})
    assert conv.from_value(v) == {1: [True], 20: []}


def test_mapping_unparseable_key_names_the_mapping_type():
    conv = parse_type("map[i32]string")
    with pytest.raises(InvalidTypeError, match=r"invalid type: map\[i32\]string$"):
        conv.from_value(Map({"x": String("a")}))
    with pytest.raises(InvalidTypeError, match=r"map\[char\]i64"):
        parse_type("map[char]i64").from_value(Map({"ab": Int(1)}))


@pytest.mark.parametrize("key", ["01", "+1", "-0", " 1", "1_0"])
def test_mapping_integer_keys_must_be_canonical(key):
    conv = parse_type("map[i32]bool")
    with pytest.raises(InvalidTypeError, match=r"invalid type: map\[i32\]bool$"):
        conv.from_value(Map({"1": Bool(True), key: Bool(False)}))
    assert conv.from_value(Map({"-1": Bool(True), "0": Bool(False)})) == {-1: True, 0: False}


def test_mapping_value_error_propagates_unchanged():
    conv = parse_type("map[string]u8")
    with pytest.raises(InvalidTypeError) as exc:
        conv.from_value(Map({"a": Int(1), "b": Int(-1)}))
    assert exc.value.type_name == "u8"


def test_mapping_requires_map():
    with pytest.raises(InvalidTypeError, match=r"map\[string\]string"):
        parse_type("map[string]string").from_value(Array(()))


def test_parse_type_rejects_bad_expressions():
    with pytest.raises(UnsupportedTypeError, match="key type"):
        parse_type("map[f64]string")
    with pytest.raises(UnsupportedTypeError):
        parse_type("[]")
    with pytest.raises(UnsupportedTypeError, match="no record registry"):
        parse_type("Point")


def test_converter_for_annotations():
    assert converter_for(int) is I64
    assert converter_for(str).type_name == "string"
    assert converter_for(dict[int, list[str]]).type_name == "map[i64][]string"
    assert isinstance(converter_for(Optional[float]), OptionalConverter)
    assert isinstance(converter_for(int | None), OptionalConverter)
    assert isinstance(converter_for(list[bool]), SequenceConverter)
    assert isinstance(converter_for(dict[str, int]), MappingConverter)
    assert converter_for("[]u8").type_name == "[]u8"


def test_converter_for_rejects_unsupported_annotations():
    with pytest.raises(UnsupportedTypeError):
        converter_for(bytes)
    with pytest.raises(UnsupportedTypeError, match="Optional"):
        converter_for(int | str)
    with pytest.raises(UnsupportedTypeError, match="key type"):
        converter_for(dict[float, int])
