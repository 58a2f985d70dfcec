"""lz4 recipe: static library from ``lib/``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.builders.base import BuildContext
from rocksbuild.builders.common import extra_cflags, make_vars, step_log
from rocksbuild.models import DependencySpec


@dataclass(slots=True)
class Lz4Recipe:
    name: str = "lz4"

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        toolchain = ctx.toolchain()
        lib_dir = source_dir / "lib"
        ctx.runner.run(["make", f"CC={toolchain.cc}", "clean"], cwd=lib_dir, env=toolchain.env)
        cflags = f"{extra_cflags(ctx)} -fPIC -O2".strip()
        argv = ["make", *make_vars(toolchain)]
        if ctx.target.platform == "mingw":
            # The lz4 Makefile keys Windows-only rules off the host OS, not the compiler.
            argv.append("TARGET_OS=Linux")
        argv.extend((f"CFLAGS={cflags}", "LDFLAGS=", spec.library))
        ctx.runner.run(
            argv,
            cwd=lib_dir,
            env=toolchain.env,
            log_path=step_log(ctx, self.name, "make"),
        )
        return lib_dir / spec.library
