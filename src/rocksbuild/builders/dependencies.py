"""Fetch, verify, extract and build the compression libraries for one target."""

from __future__ import annotations

import shutil
import tarfile
from collections.abc import Iterator, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from rocksbuild.builders.base import BuildContext, DependencyArtifact, DependencyRecipe
from rocksbuild.builders.bzip2 import Bzip2Recipe
from rocksbuild.builders.lz4 import Lz4Recipe
from rocksbuild.builders.materialize import materialize_dependency
from rocksbuild.builders.snappy import SnappyRecipe
from rocksbuild.builders.zlib import ZlibRecipe
from rocksbuild.builders.zstd import ZstdRecipe
from rocksbuild.errors import IntegrityError, ValidationError
from rocksbuild.fetch import fetch
from rocksbuild.models import DependencySpec


def default_recipes() -> dict[str, DependencyRecipe]:
    recipes: tuple[DependencyRecipe, ...] = (
        Bzip2Recipe(),
        ZlibRecipe(),
        ZstdRecipe(),
        SnappyRecipe(),
        Lz4Recipe(),
    )
    return {recipe.name: recipe for recipe in recipes}


def unpack_source(archive: Path, destination: Path, *, source_dirname: str) -> Path:
    """Extract ``archive`` into ``destination`` and return the fresh source tree."""
    source_dir = destination / source_dirname
    shutil.rmtree(source_dir, ignore_errors=True)
    destination.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(archive, "r:*") as bundle:
            bundle.extractall(destination, filter="data")
    except (tarfile.TarError, OSError) as exc:
        raise IntegrityError(
            f"Unable to extract {archive.name}.",
            hint="Delete the cached archive and retry.",
            context={"archive": str(archive), "reason": str(exc)},
        ) from exc
    if not source_dir.is_dir():
        raise IntegrityError(
            f"{archive.name} did not contain {source_dirname}/.",
            context={"archive": str(archive), "expected": source_dirname},
        )
    return source_dir


@dataclass(slots=True)
class DependencyBuilder:
    recipes: Mapping[str, DependencyRecipe] = field(default_factory=default_recipes)

    def build_all(
        self, ctx: BuildContext, specs: Sequence[DependencySpec]
    ) -> Iterator[DependencyArtifact]:
        for spec in specs:
            yield self.build_one(ctx, spec)

    def build_one(self, ctx: BuildContext, spec: DependencySpec) -> DependencyArtifact:
        library_path = ctx.lib_dir / spec.library
        if library_path.is_file():
            ctx.log(
                f"{spec.library} already exists, skipping {spec.name} build.",
                phase="dependencies",
                component=spec.name,
            )
            return DependencyArtifact(name=spec.name, status="skipped", library_path=library_path)

        recipe = self.recipes.get(spec.name)
        if recipe is None:
            raise ValidationError(
                f"No build recipe for dependency {spec.name}.",
                context={"dependency": spec.name},
            )

        ctx.log(f"Downloading {spec.name}-{spec.version}...", phase="dependencies", component=spec.name)
        archive = fetch(
            spec.url,
            sha256=spec.sha256,
            destination=ctx.layout.download_dir / spec.archive_name,
            policy=ctx.policy,
        )
        source_dir = unpack_source(archive, ctx.work_dir, source_dirname=spec.source_dirname)

        ctx.log(f"Building {spec.name}-{spec.version}...", phase="dependencies", component=spec.name)
        built_library = recipe.build(ctx, spec, source_dir)
        artifact = materialize_dependency(
            spec=spec,
            target=ctx.target,
            toolchain=ctx.toolchain(),
            built_library=built_library,
            source_dir=source_dir,
            lib_dir=ctx.lib_dir,
            include_dir=ctx.layout.dependency_include_dir,
        )
        ctx.log(
            f"Finished building {spec.library} into {ctx.lib_dir}",
            phase="dependencies",
            component=spec.name,
        )
        return artifact
