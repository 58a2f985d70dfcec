"""Flag and environment helpers used by every dependency recipe."""

from __future__ import annotations

from pathlib import Path

from rocksbuild.builders.base import BuildContext
from rocksbuild.models import Toolchain


def extra_cflags(ctx: BuildContext) -> str:
    return " ".join((*ctx.target.extra_cflags, *ctx.toolchain().cflags))


def extra_cxxflags(ctx: BuildContext) -> str:
    return " ".join((*ctx.target.extra_cflags, *ctx.toolchain().cxxflags))


def make_vars(toolchain: Toolchain) -> list[str]:
    return [f"CC={toolchain.cc}", f"AR={toolchain.ar}", f"RANLIB={toolchain.ranlib}"]


def step_log(ctx: BuildContext, name: str, step: str) -> Path:
    return ctx.work_dir / "logs" / f"{name}-{step}.log"
