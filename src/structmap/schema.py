"""Record schemas and the type expression grammar.

A type expression is a scalar name or a record name, wrapped by any number of
prefix operators:

    *T          optional T
    []T         sequence of T
    map[K]V     mapping from key type K to V

e.g. `[]*i32`, `map[string][]Point`, `*map[u8]string`.
"""

from __future__ import annotations

import json
import keyword
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from .errors import SchemaError, UnsupportedTypeError

SCHEMA_VERSION = 1

INT_RANGES = {
    "i8": (-(2**7), 2**7 - 1),
    "i16": (-(2**15), 2**15 - 1),
    "i32": (-(2**31), 2**31 - 1),
    "i64": (-(2**63), 2**63 - 1),
    # Treat `isize` as 64-bit.
    "isize": (-(2**63), 2**63 - 1),
    "u8": (0, 2**8 - 1),
    "u16": (0, 2**16 - 1),
    "u32": (0, 2**32 - 1),
}

FLOAT_TYPES = ("f32", "f64")

SCALAR_TYPES = frozenset({"bool", "string", "char", *INT_RANGES, *FLOAT_TYPES})

KEY_TYPES = frozenset({"string", "char", *INT_RANGES})

RECORD_KINDS = ("struct", "enum", "tuple", "unit")


def _split_prefix(t: str) -> tuple[str, str]:
    t = t.strip()
    if t.startswith("*"):
        return "*", t[1:].strip()
    if t.startswith("[]"):
        return "[]", t[2:].strip()
    if t.startswith("map["):
        end = t.find("]", 4)
        if end == -1:
            raise UnsupportedTypeError(f"unterminated map key in type expression: {t!r}")
        key = t[4:end].strip()
        if not key:
            raise UnsupportedTypeError(f"missing map key type in type expression: {t!r}")
        return f"map[{key}]", t[end + 1 :].strip()
    return "", t


def parse_type(t: str) -> tuple[str, list[str]]:
    """Split a type expression into its base name and prefix operators (outer first)."""
    t = t.strip()
    ops: list[str] = []
    while True:
        p, rest = _split_prefix(t)
        if not p:
            if not rest.isidentifier():
                raise UnsupportedTypeError(f"invalid type expression: {t!r}")
            return rest, ops
        ops.append(p)
        t = rest


def map_key_type(op: str) -> str:
    """Return K for a `map[K]` operator."""
    return op[4:-1]


def check_key_types(t: str) -> None:
    """Reject mapping key types that have no string form."""
    _base, ops = parse_type(t)
    for op in ops:
        if op.startswith("map[") and map_key_type(op) not in KEY_TYPES:
            raise UnsupportedTypeError(f"unsupported map key type {map_key_type(op)!r} in {t!r}")


def record_name(t: str) -> str | None:
    """Return the record name a type expression refers to, if any."""
    base, _ops = parse_type(t)
    if base in SCALAR_TYPES:
        return None
    return base


@dataclass(frozen=True)
class FieldSchema:
    name: str
    type: str


@dataclass(frozen=True)
class RecordSchema:
    name: str
    fields: tuple[FieldSchema, ...]
    kind: str = "struct"

    def field_names(self) -> list[str]:
        return [f.name for f in self.fields]


@dataclass(frozen=True)
class Schema:
    # record name -> schema, in declaration order
    records: dict[str, RecordSchema]

    def __getitem__(self, name: str) -> RecordSchema:
        return self.records[name]

    def struct_records(self) -> list[RecordSchema]:
        return [r for r in self.records.values() if r.kind == "struct"]

    @classmethod
    def from_document(cls, doc: Any) -> "Schema":
        if not isinstance(doc, dict):
            raise SchemaError("schema document must be an object")
        version = doc.get("schema_version", SCHEMA_VERSION)
        if version != SCHEMA_VERSION:
            raise SchemaError(f"unsupported schema_version: {version}")
        raw_records = doc.get("records")
        if not isinstance(raw_records, dict):
            raise SchemaError("schema document requires a 'records' object")

        records: dict[str, RecordSchema] = {}
        for name, raw in raw_records.items():
            if not isinstance(name, str) or not name.isidentifier():
                raise SchemaError(f"invalid record name: {name!r}")
            if not isinstance(raw, dict):
                raise SchemaError(f"record {name}: expected an object")
            kind = raw.get("kind", "struct")
            if kind not in RECORD_KINDS:
                raise SchemaError(f"record {name}: unknown kind {kind!r}")
            raw_fields = raw.get("fields", [])
            if not isinstance(raw_fields, list):
                raise SchemaError(f"record {name}: 'fields' must be a list")
            records[name] = RecordSchema(
                name=name,
                fields=tuple(_parse_field(name, i, f) for i, f in enumerate(raw_fields)),
                kind=kind,
            )
            _check_duplicates(records[name])

        schema = cls(records=records)
        schema.check_references()
        return schema

    def check_references(self) -> None:
        """Ensure every record name used in a field type is declared."""
        for record in self.struct_records():
            for f in record.fields:
                try:
                    check_key_types(f.type)
                    ref = record_name(f.type)
                except UnsupportedTypeError as e:
                    raise SchemaError(f"record {record.name}: field {f.name}: {e}") from None
                if ref is not None and ref not in self.records:
                    raise SchemaError(
                        f"record {record.name}: field {f.name} ({f.type}): unknown type {ref}"
                    )


def _parse_field(record: str, index: int, raw: Any) -> FieldSchema:
    if not isinstance(raw, dict):
        raise SchemaError(f"record {record}: field {index}: expected an object")
    fn = raw.get("name")
    ft = raw.get("type")
    if not (isinstance(fn, str) and fn):
        raise SchemaError(f"record {record}: field {index}: missing name")
    if not (isinstance(ft, str) and ft.strip()):
        raise SchemaError(f"record {record}: field {fn}: missing type")
    if not fn.isidentifier() or keyword.iskeyword(fn):
        raise SchemaError(f"record {record}: invalid field name {fn!r}")
    return FieldSchema(name=fn, type=ft.strip())


def _check_duplicates(record: RecordSchema) -> None:
    seen: set[str] = set()
    for f in record.fields:
        if f.name in seen:
            raise SchemaError(f"record {record.name}: duplicate field {f.name}")
        seen.add(f.name)


def read_schema(path: str | Path) -> Schema:
    """Load a schema document from a JSON file."""
    path = Path(path)
    if not path.exists():
        raise SchemaError(f"schema file not found: {path}")
    try:
        doc = json.loads(path.read_text(encoding="utf-8"))
    except Exception as e:  # noqa: BLE001 - boundary parse
        raise SchemaError(f"failed to parse {path.name}: {e}") from e
    return Schema.from_document(doc)
