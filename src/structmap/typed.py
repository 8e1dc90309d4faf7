"""Build convertible record classes from a schema at runtime."""

from __future__ import annotations

from dataclasses import dataclass, make_dataclass
from typing import Any

from .codegen import check_record_shape
from .convert import parse_type
from .record import install_record_methods
from .schema import Schema
from .value import Value


@dataclass(frozen=True)
class RecordTypes:
    schema: Schema
    records: dict[str, type]

    def __getattr__(self, name: str) -> type:
        try:
            return self.records[name]
        except KeyError:
            raise AttributeError(name) from None

    def __getitem__(self, name: str) -> type:
        return self.records[name]

    def build(self, name: str, mapping: dict[str, Value]) -> Any:
        return self.records[name].from_map(mapping)


def make_record_types(*, schema: Schema) -> RecordTypes:
    """Create one frozen dataclass per struct record, with generated methods."""
    created: dict[str, type] = {}

    for record in schema.struct_records():
        check_record_shape(record)
        # Record references resolve lazily through `created`, so declaration
        # order within the schema does not matter.
        converters = {f.name: parse_type(f.type, records=created) for f in record.fields}
        cls = make_dataclass(record.name, [(f.name, Any) for f in record.fields], frozen=True)
        install_record_methods(cls, record, converters)
        created[record.name] = cls

    return RecordTypes(schema=schema, records=created)
