"""Stage RocksDB's public headers next to the dependency headers."""

from __future__ import annotations

import shutil
from pathlib import Path

from rocksbuild.errors import ValidationError
from rocksbuild.models import BuildLayout


def prepare_headers(layout: BuildLayout) -> Path:
    """Replace ``build/include/rocksdb`` with a fresh copy of ``rocksdb/include``."""
    source = layout.rocksdb_source / "include"
    if not source.is_dir():
        raise ValidationError(
            "Missing rocksdb/include directory.",
            hint="Initialize the RocksDB submodule: git submodule update --init --recursive",
            context={"path": str(source)},
        )
    destination = layout.include_root / "rocksdb"
    shutil.rmtree(destination, ignore_errors=True)
    layout.dependency_include_dir.mkdir(parents=True, exist_ok=True)
    shutil.copytree(source, destination)
    return destination
