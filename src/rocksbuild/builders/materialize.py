"""Copy freshly built dependency outputs into the target output directory."""

from __future__ import annotations

import json
import shutil
from pathlib import Path

from rocksbuild.builders.base import DependencyArtifact
from rocksbuild.errors import NativeBuildError
from rocksbuild.models import DependencySpec, TargetConfig, Toolchain


def materialize_dependency(
    *,
    spec: DependencySpec,
    target: TargetConfig,
    toolchain: Toolchain,
    built_library: Path,
    source_dir: Path,
    lib_dir: Path,
    include_dir: Path,
) -> DependencyArtifact:
    if not built_library.is_file():
        raise NativeBuildError(
            f"{spec.name} build finished without producing {spec.library}.",
            context={"target": target.id, "expected": str(built_library)},
        )
    lib_dir.mkdir(parents=True, exist_ok=True)
    include_dir.mkdir(parents=True, exist_ok=True)

    header_paths: list[str] = []
    for header in spec.headers:
        header_source = source_dir / header
        if not header_source.is_file():
            raise NativeBuildError(
                f"{spec.name} header {header} is missing after the build.",
                context={"target": target.id, "expected": str(header_source)},
            )
        destination = include_dir / header_source.name
        shutil.copy2(header_source, destination)
        header_paths.append(str(destination))

    library_path = lib_dir / spec.library
    temp_path = library_path.with_name(library_path.name + ".tmp")
    shutil.copy2(built_library, temp_path)
    temp_path.replace(library_path)

    metadata_path = lib_dir / f"{spec.library}.json"
    metadata = {
        "name": spec.name,
        "version": spec.version,
        "sha256": spec.sha256,
        "url": spec.url,
        "target": target.id,
        "toolchain": toolchain.to_payload(),
        "library": str(library_path),
        "headers": header_paths,
    }
    metadata_path.write_text(
        json.dumps(metadata, indent=2, sort_keys=True) + "\n",
        encoding="utf-8",
    )
    return DependencyArtifact(
        name=spec.name,
        status="built",
        library_path=library_path,
        metadata_path=metadata_path,
    )
