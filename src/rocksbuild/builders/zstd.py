"""zstd recipe: static library from ``lib/``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.builders.base import BuildContext
from rocksbuild.builders.common import extra_cflags, make_vars, step_log
from rocksbuild.models import DependencySpec


@dataclass(slots=True)
class ZstdRecipe:
    name: str = "zstd"

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        toolchain = ctx.toolchain()
        lib_dir = source_dir / "lib"
        tools = make_vars(toolchain)
        cflags = f"{extra_cflags(ctx)} -fPIC -O2".strip()
        ctx.runner.run(["make", *tools, "clean"], cwd=lib_dir, env=toolchain.env)
        ctx.runner.run(
            ["make", *tools, f"CFLAGS={cflags}", spec.library],
            cwd=lib_dir,
            env=toolchain.env,
            log_path=step_log(ctx, self.name, "make"),
        )
        return lib_dir / spec.library
