"""bzip2 recipe: the library target of the upstream Makefile."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.builders.base import BuildContext
from rocksbuild.builders.common import extra_cflags, make_vars, step_log
from rocksbuild.models import DependencySpec


@dataclass(slots=True)
class Bzip2Recipe:
    name: str = "bzip2"

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        toolchain = ctx.toolchain()
        tools = make_vars(toolchain)
        cflags = f"{extra_cflags(ctx)} -fPIC -O2 -g -D_FILE_OFFSET_BITS=64".strip()
        ctx.runner.run(["make", *tools, "clean"], cwd=source_dir, env=toolchain.env)
        ctx.runner.run(
            ["make", *tools, f"CFLAGS={cflags}", spec.library],
            cwd=source_dir,
            env=toolchain.env,
            log_path=step_log(ctx, self.name, "make"),
        )
        return source_dir / spec.library
