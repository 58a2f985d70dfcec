"""zlib recipe: ``./configure --static`` followed by ``make static``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.builders.base import BuildContext
from rocksbuild.builders.common import extra_cflags, step_log
from rocksbuild.errors import NativeBuildError
from rocksbuild.models import DependencySpec
from rocksbuild.runner import tail_text


@dataclass(slots=True)
class ZlibRecipe:
    name: str = "zlib"

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        toolchain = ctx.toolchain()
        cflags = " ".join(filter(None, (extra_cflags(ctx), "-fPIC")))
        tool_env = {"CC": toolchain.cc, "AR": toolchain.ar, "RANLIB": toolchain.ranlib}
        configure_env = {
            **toolchain.env,
            **tool_env,
            "CFLAGS": cflags,
            "CROSS_PREFIX": toolchain.cross_prefix,
        }
        configured = ctx.runner.run(
            ["./configure", "--static"],
            cwd=source_dir,
            env=configure_env,
            log_path=step_log(ctx, self.name, "configure"),
            check=False,
        )
        if not configured.ok:
            configure_log = source_dir / "configure.log"
            details = configured.output
            if configure_log.is_file():
                details = configure_log.read_text(encoding="utf-8", errors="replace")
            raise NativeBuildError(
                "zlib configure failed.",
                hint="configure.log is included below.",
                context={"target": ctx.target.id, "source": str(source_dir)},
                log_tail=tail_text(details),
            )

        make_env = {**toolchain.env, **tool_env}
        ctx.runner.run(["make", "clean"], cwd=source_dir, env=make_env)
        ctx.runner.run(
            ["make", "static"],
            cwd=source_dir,
            env=make_env,
            log_path=step_log(ctx, self.name, "make"),
        )
        return source_dir / spec.library
