"""GNU/Linux toolchains: host gcc, the aarch64 cross gcc, and Kotlin/Native gcc bundles."""

from __future__ import annotations

from dataclasses import dataclass

from rocksbuild.models import Toolchain
from rocksbuild.toolchains.base import ResolveContext, first_program, latest_directory

_KONAN_TRIPLES = {
    "x86_64": "x86_64-unknown-linux-gnu",
    "arm64": "aarch64-unknown-linux-gnu",
}


@dataclass(slots=True)
class GnuPathStrategy:
    """Well-known gcc names on ``PATH``."""

    name: str = "path"

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        if ctx.host.platform != "LINUX":
            return None
        if ctx.target.arch == "arm64":
            return self._arm64(ctx)
        return self._native(ctx)

    def _arm64(self, ctx: ResolveContext) -> Toolchain | None:
        cc = ctx.which("aarch64-linux-gnu-gcc")
        cxx = ctx.which("aarch64-linux-gnu-g++")
        if cc is not None and cxx is not None:
            return Toolchain(
                cc=cc,
                cxx=cxx,
                ar=first_program(ctx, "aarch64-linux-gnu-ar", "ar") or "ar",
                ranlib=first_program(ctx, "aarch64-linux-gnu-ranlib", "ranlib") or "ranlib",
                triple="aarch64-linux-gnu",
                cross_prefix="aarch64-linux-gnu-",
                source=self.name,
            )
        if ctx.host.is_arm:
            return self._native(ctx)
        return None

    def _native(self, ctx: ResolveContext) -> Toolchain | None:
        cc = ctx.which("gcc")
        cxx = ctx.which("g++")
        if cc is None or cxx is None:
            return None
        return Toolchain(
            cc=cc,
            cxx=cxx,
            ar=ctx.which("ar") or "ar",
            ranlib=ctx.which("ranlib") or "ranlib",
            source=self.name,
        )


@dataclass(slots=True)
class KonanGccStrategy:
    """gcc shipped in ``~/.konan/dependencies``."""

    name: str = "konan"

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        triple = _KONAN_TRIPLES.get(ctx.target.arch)
        if triple is None:
            return None
        bundle = latest_directory(ctx.settings.home / ".konan" / "dependencies", f"{triple}-gcc-*")
        if bundle is None:
            return None
        bin_dir = bundle / "bin"
        cc = bin_dir / f"{triple}-gcc"
        cxx = bin_dir / f"{triple}-g++"
        if not cc.is_file() or not cxx.is_file():
            return None
        ar = bin_dir / f"{triple}-ar"
        ranlib = bin_dir / f"{triple}-ranlib"
        return Toolchain(
            cc=str(cc),
            cxx=str(cxx),
            ar=str(ar) if ar.is_file() else "ar",
            ranlib=str(ranlib) if ranlib.is_file() else "ranlib",
            triple=triple,
            cross_prefix=f"{bin_dir}/{triple}-",
            source=self.name,
        )
