from __future__ import annotations

import importlib.util
import json
import sys
from pathlib import Path

import pytest


@pytest.fixture
def write_json(tmp_path: Path):
    def _write(name: str, obj) -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(obj), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def import_from_path():
    # Generated modules are registered in sys.modules so dataclasses can
    # resolve their string annotations; drop them afterwards.
    names: list[str] = []

    def _import(name: str, path: Path):
        spec = importlib.util.spec_from_file_location(name, path)
        assert spec is not None
        mod = importlib.util.module_from_spec(spec)
        assert spec.loader is not None
        sys.modules[spec.name] = mod
        names.append(spec.name)
        spec.loader.exec_module(mod)  # type: ignore[attr-defined]
        return mod

    yield _import
    for name in names:
        sys.modules.pop(name, None)


@pytest.fixture
def point_schema_doc():
    return {
        "schema_version": 1,
        "records": {
            "Line": {
                "fields": [
                    {"name": "start", "type": "Point"},
                    {"name": "end", "type": "Point"},
                    {"name": "label", "type": "*string"},
                ]
            },
            "Point": {
                "kind": "struct",
                "fields": [
                    {"name": "x", "type": "i32"},
                    {"name": "y", "type": "i32"},
                ],
            },
            "Color": {"kind": "enum"},
        },
    }
