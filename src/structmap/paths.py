from __future__ import annotations

import os
from pathlib import Path


def default_schema_path() -> Path | None:
    """Return the schema file used when a command is not given `--schema`.

    Set with `STRUCTMAP_SCHEMA`.
    """
    override = os.environ.get("STRUCTMAP_SCHEMA")
    if override:
        return Path(override)
    return None
