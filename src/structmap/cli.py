from __future__ import annotations

import argparse
import importlib.metadata
import json
import logging
import sys
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)


def _schema_arg(value: str | None) -> Path:
    from .paths import default_schema_path

    if value:
        return Path(value)
    default = default_schema_path()
    if default is None:
        raise SystemExit("--schema is required (or set STRUCTMAP_SCHEMA)")
    return default


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except Exception as e:  # noqa: BLE001 - boundary parse
        raise SystemExit(f"failed to read {path}: {e}") from e


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(prog="structmap")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    sub = parser.add_subparsers(dest="cmd", required=True)

    sub.add_parser("version", help="Print structmap version.")

    p_gen = sub.add_parser("gen", help="Generate a Python module of convertible records from a schema.")
    p_gen.add_argument("--schema", default=None, help="Schema JSON file (default: STRUCTMAP_SCHEMA).")
    p_gen.add_argument("--out", required=True, help="Output .py file path.")
    p_gen.add_argument("--module-doc", default=None, help="Docstring for the generated module.")

    p_build = sub.add_parser("build", help="Build a record from JSON data and print it.")
    p_build.add_argument("--schema", default=None, help="Schema JSON file (default: STRUCTMAP_SCHEMA).")
    p_build.add_argument("--record", required=True, help="Record name declared in the schema.")
    p_build.add_argument("--data", required=True, help="JSON file holding the record's field mapping.")

    p_render = sub.add_parser("render", help="Print the diagnostic rendering of JSON data.")
    p_render.add_argument("--data", required=True, help="JSON file to render.")

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")

    if args.cmd == "version":
        try:
            print(importlib.metadata.version("structmap"))
        except importlib.metadata.PackageNotFoundError:
            # Source checkout without an installed distribution.
            print("0.0.0")
        return

    if args.cmd == "gen":
        from .codegen import GenOptions, generate_python_module
        from .schema import read_schema

        schema = read_schema(_schema_arg(args.schema))
        opts = GenOptions(module_doc=args.module_doc) if args.module_doc else GenOptions()
        out = generate_python_module(schema=schema, out_file=Path(args.out), opts=opts)
        print(str(out))
        return

    if args.cmd == "build":
        from .errors import InvalidTypeError
        from .schema import read_schema
        from .typed import make_record_types
        from .value import Map, from_python

        schema = read_schema(_schema_arg(args.schema))
        types = make_record_types(schema=schema)
        if args.record not in types.records:
            raise SystemExit(f"unknown record: {args.record}")
        data = from_python(_read_json(Path(args.data)))
        if not isinstance(data, Map):
            raise SystemExit("record data must be a JSON object")
        logger.debug("building %s from %d key(s)", args.record, len(data.entries))
        try:
            record = types.build(args.record, data.entries)
        except InvalidTypeError as e:
            print(f"structmap error: {e}", file=sys.stderr)
            raise SystemExit(1) from None
        print(repr(record))
        return

    if args.cmd == "render":
        from .value import from_python, render

        print(render(from_python(_read_json(Path(args.data)))))
        return
