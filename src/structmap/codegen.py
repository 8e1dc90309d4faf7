"""Record-to-map code generation.

For each record the generator emits the source of two functions, one
statement group per declared field:

    def to_map(self):
        return {'a': <conv a>.to_value(self.a), ...}

    def from_map(cls, mapping):
        if 'a' not in mapping:
            raise InvalidTypeError('i32')
        _v0 = <conv a>.from_value(mapping['a'])
        ...
        return cls(a=_v0, ...)

That source is written into a standalone bindings module
(`generate_python_module`). In-process records get the same two methods as
closures over the fixed field list (`compile_record_methods`).
"""

from __future__ import annotations

import keyword
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from .convert import Converter
from .errors import InvalidTypeError, UnsupportedRecordError
from .schema import INT_RANGES, RecordSchema, Schema, map_key_type, parse_type

logger = logging.getLogger(__name__)

_REJECTED_KINDS = {
    "enum": "Enum",
    "tuple": "Unnamed",
    "unit": "Unit",
}

# Attached to every record class; a field of the same name would shadow them.
RESERVED_FIELD_NAMES = frozenset({"to_map", "from_map", "to_value", "from_value"})


@dataclass(frozen=True)
class GenOptions:
    module_doc: str = "Generated record bindings."
    registry_name: str = "RECORDS"
    # Also emit to_value/from_value so records nest inside other records.
    value_methods: bool = True


def check_record_shape(record: RecordSchema) -> None:
    """Reject aggregates that do not have named fields."""
    rejected = _REJECTED_KINDS.get(record.kind)
    if rejected is not None:
        raise UnsupportedRecordError(f"invalid type: {rejected}")
    if record.kind != "struct":
        raise UnsupportedRecordError(f"invalid type: {record.kind}")
    for f in record.fields:
        if not f.name.isidentifier() or keyword.iskeyword(f.name) or f.name.startswith("__"):
            raise UnsupportedRecordError(f"{record.name}: invalid field name {f.name!r}")
        if f.name in RESERVED_FIELD_NAMES:
            raise UnsupportedRecordError(f"{record.name}: field name {f.name!r} is reserved")


def converter_name(record_index: int, field_index: int) -> str:
    return f"_conv_{record_index}_{field_index}"


def _method_lines(
    record: RecordSchema, *, index: int = 0, indent: str = "", as_class: bool = False
) -> list[str]:
    lines: list[str] = []
    lines.append(f"{indent}def to_map(self):")
    if record.fields:
        lines.append(f"{indent}    return {{")
        for i, f in enumerate(record.fields):
            conv = converter_name(index, i)
            lines.append(f"{indent}        {f.name!r}: {conv}.to_value(self.{f.name}),")
        lines.append(f"{indent}    }}")
    else:
        lines.append(f"{indent}    return {{}}")
    lines.append("")

    if as_class:
        lines.append(f"{indent}@classmethod")
    lines.append(f"{indent}def from_map(cls, mapping):")
    locals_: list[str] = []
    for i, f in enumerate(record.fields):
        conv = converter_name(index, i)
        local = f"_v{i}"
        lines.append(f"{indent}    if {f.name!r} not in mapping:")
        lines.append(f"{indent}        raise InvalidTypeError({f.type!r})")
        lines.append(f"{indent}    {local} = {conv}.from_value(mapping[{f.name!r}])")
        locals_.append(f"{f.name}={local}")
    lines.append(f"{indent}    return cls({', '.join(locals_)})")
    return lines


def record_methods_source(record: RecordSchema, *, index: int = 0) -> str:
    """Return the source of `to_map` and `from_map` for one record.

    `index` is the record's position in its module; converter globals are
    named after it and the field position.
    """
    check_record_shape(record)
    return "\n".join(_method_lines(record, index=index)) + "\n"


def compile_record_methods(
    record: RecordSchema, converters: Mapping[str, Converter]
) -> tuple[Callable[..., Any], Callable[..., Any]]:
    """Build `to_map`/`from_map` for a record from its fixed field list.

    `converters` maps field name to the field's converter. `from_map` is
    returned as a plain function; callers wrap it in `classmethod`.
    """
    check_record_shape(record)
    plan = tuple((f.name, f.type, converters[f.name]) for f in record.fields)

    def to_map(self: Any) -> dict[str, Any]:
        return {name: conv.to_value(getattr(self, name)) for name, _, conv in plan}

    def from_map(cls: type, mapping: Mapping[str, Any]) -> Any:
        kwargs: dict[str, Any] = {}
        for name, type_name, conv in plan:
            if name not in mapping:
                raise InvalidTypeError(type_name)
            kwargs[name] = conv.from_value(mapping[name])
        return cls(**kwargs)

    to_map.__qualname__ = f"{record.name}.to_map"
    from_map.__qualname__ = f"{record.name}.from_map"
    logger.debug("built record methods for %s (%d fields)", record.name, len(record.fields))
    return to_map, from_map

def _py_type_expr(*, schema: Schema, type_expr: str) -> str:
    base, ops = parse_type(type_expr)

    if base == "bool":
        expr = "bool"
    elif base in INT_RANGES:
        expr = "int"
    elif base in {"f32", "f64"}:
        expr = "float"
    elif base in {"string", "char"}:
        expr = "str"
    elif base in schema.records:
        expr = base
    else:
        expr = "Any"

    # ops are outer-first; rebuild wrappers inner to outer.
    for op in reversed(ops):
        if op == "*":
            expr = f"{expr} | None"
        elif op == "[]":
            expr = f"list[{expr}]"
        else:
            key = "int" if map_key_type(op) in INT_RANGES else "str"
            expr = f"dict[{key}, {expr}]"
    return expr


def generate_python_module(*, schema: Schema, out_file: Path, opts: GenOptions | None = None) -> Path:
    """Generate a static Python module with one dataclass per struct record."""
    opts = opts or GenOptions()
    records = schema.struct_records()
    if not records:
        raise UnsupportedRecordError("schema declares no struct records")
    for record in records:
        check_record_shape(record)

    lines: list[str] = []
    lines.append(f'"""{opts.module_doc}"""')
    lines.append("")
    lines.append("from __future__ import annotations")
    lines.append("")
    lines.append("from dataclasses import dataclass")
    lines.append("from typing import Any")
    lines.append("")
    lines.append("import structmap.convert")
    lines.append("import structmap.record")
    lines.append("from structmap.errors import InvalidTypeError")
    lines.append("from structmap.schema import FieldSchema")
    lines.append("")

    for ri, record in enumerate(records):
        lines.append("")
        lines.append("@dataclass(frozen=True)")
        lines.append(f"class {record.name}:")
        for f in record.fields:
            lines.append(f"    {f.name}: {_py_type_expr(schema=schema, type_expr=f.type)}")
        lines.append("")
        lines.append("    __structmap_fields__ = (")
        for f in record.fields:
            lines.append(f"        FieldSchema(name={f.name!r}, type={f.type!r}),")
        lines.append("    )")
        lines.append("")
        lines.extend(_method_lines(record, index=ri, indent="    ", as_class=True))
        if opts.value_methods:
            lines.append("")
            lines.append("    def to_value(self):")
            lines.append("        return structmap.record.record_to_value(self)")
            lines.append("")
            lines.append("    @classmethod")
            lines.append("    def from_value(cls, value):")
            lines.append("        return structmap.record.record_from_value(cls, value)")
        lines.append("")

    reg = opts.registry_name
    lines.append("")
    lines.append(f"{reg}: dict[str, type] = {{")
    for record in records:
        lines.append(f"    {record.name!r}: {record.name},")
    lines.append("}")
    lines.append("")

    for ri, record in enumerate(records):
        for fi, f in enumerate(record.fields):
            conv = converter_name(ri, fi)
            lines.append(f"{conv} = structmap.convert.parse_type({f.type!r}, records={reg})")
    lines.append("")

    out_file = Path(out_file)
    out_file.parent.mkdir(parents=True, exist_ok=True)
    out_file.write_text("\n".join(lines), encoding="utf-8")
    logger.debug("wrote %d record(s) to %s", len(records), out_file)
    return out_file
