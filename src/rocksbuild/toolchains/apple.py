"""Xcode toolchains located through ``xcrun``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.models import Toolchain
from rocksbuild.toolchains.base import ResolveContext


@dataclass(slots=True)
class XcrunStrategy:
    name: str = "xcrun"

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        if ctx.host.platform != "MAC" or not ctx.target.is_apple:
            return None
        if ctx.which("xcrun") is None:
            return None
        sdk = ctx.target.apple_sdk or "macosx"
        sdk_path = self._query(ctx, "--sdk", sdk, "--show-sdk-path")
        if sdk_path is None:
            return None
        cc = ctx.settings.get("CC") or self._query(ctx, "--sdk", sdk, "--find", "clang") or "clang"
        cxx = (
            ctx.settings.get("CXX")
            or self._query(ctx, "--sdk", sdk, "--find", "clang++")
            or "clang++"
        )
        env: dict[str, str] = {}
        if ctx.target.platform == "macos" and ctx.target.min_os_version:
            env["MACOSX_DEPLOYMENT_TARGET"] = ctx.target.min_os_version
        return Toolchain(
            cc=cc,
            cxx=cxx,
            ar=self._query(ctx, "--sdk", sdk, "--find", "ar") or "ar",
            ranlib=self._query(ctx, "--sdk", sdk, "--find", "ranlib") or "ranlib",
            sysroot=Path(sdk_path),
            cflags=("-isysroot", sdk_path),
            cxxflags=("-isysroot", sdk_path),
            cmake_flags=(f"-DCMAKE_OSX_SYSROOT={sdk_path}",),
            env=env,
            uses_clang=True,
            source=self.name,
        )

    def _query(self, ctx: ResolveContext, *args: str) -> str | None:
        result = ctx.runner.run(["xcrun", *args], check=False)
        lines = result.output.strip().splitlines()
        if not result.ok or not lines:
            return None
        return lines[-1].strip()
