"""Toolchain taken verbatim from ``CC``/``CXX``/``AR``/``RANLIB``."""

from __future__ import annotations

from dataclasses import dataclass

from rocksbuild.models import Toolchain
from rocksbuild.toolchains.base import ResolveContext


@dataclass(slots=True)
class EnvironmentOverride:
    name: str = "environment"

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        cc = ctx.settings.get("CC")
        cxx = ctx.settings.get("CXX")
        if cc is None or cxx is None:
            return None
        return Toolchain(
            cc=cc,
            cxx=cxx,
            ar=ctx.settings.get("AR") or "ar",
            ranlib=ctx.settings.get("RANLIB") or "ranlib",
            strip=ctx.settings.get("STRIP"),
            source=self.name,
        )
