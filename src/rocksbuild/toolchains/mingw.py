"""MinGW-w64 cross toolchains (gcc or llvm-mingw clang) and sysroot discovery."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from pathlib import Path

from rocksbuild.models import Toolchain
from rocksbuild.settings import MingwStdlib
from rocksbuild.toolchains.base import ResolveContext, first_program

MINGW_TRIPLES = {
    "x86_64": "x86_64-w64-mingw32",
    "arm64": "aarch64-w64-mingw32",
}

_MSYS_PREFIXES = ("/mingw64", "/ucrt64", "/clang64", "/mingw32", "/opt/mingw", "/opt/llvm-mingw")
# Host C headers live directly under these; only their <triple> subdirectory can be a sysroot.
_HOST_PREFIXES = (Path("/"), Path("/usr"), Path("/usr/local"))
_C_MARKERS = ("stdlib.h", "stdio.h")
_CXX_MARKERS = ("vector", "string", "memory")


@dataclass(frozen=True, slots=True)
class SysrootIncludes:
    sysroot: Path
    c_dirs: tuple[Path, ...]
    cxx_dirs: tuple[Path, ...]

    def cflags(self) -> tuple[str, ...]:
        return (f"--sysroot={self.sysroot}", *(f"-isystem{path}" for path in self.c_dirs))

    def cxxflags(self) -> tuple[str, ...]:
        return (
            f"--sysroot={self.sysroot}",
            *(f"-isystem{path}" for path in self.cxx_dirs),
            *(f"-isystem{path}" for path in self.c_dirs),
        )

    def cmake_flags(self) -> tuple[str, ...]:
        flags = [f"-DCMAKE_SYSROOT={self.sysroot}"]
        directories = ";".join(str(path) for path in (*self.cxx_dirs, *self.c_dirs))
        if directories:
            flags.append(f"-DCMAKE_C_STANDARD_INCLUDE_DIRECTORIES={directories}")
            flags.append(f"-DCMAKE_CXX_STANDARD_INCLUDE_DIRECTORIES={directories}")
        return tuple(flags)


@dataclass(slots=True)
class MingwStrategy:
    name: str = "mingw"

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        triple = MINGW_TRIPLES.get(ctx.target.arch)
        if ctx.target.platform != "mingw" or triple is None:
            return None

        cc = ctx.which(f"{triple}-gcc")
        cxx = ctx.which(f"{triple}-g++")
        uses_clang = False
        if (cc is None or cxx is None) and ctx.target.arch == "arm64":
            cc = ctx.which(f"{triple}-clang")
            cxx = first_program(ctx, f"{triple}-clang++", f"{triple}-clang")
            uses_clang = True
        if cc is None or cxx is None:
            return None

        ar = first_program(ctx, f"{triple}-ar", "llvm-ar") or "ar"
        ranlib = first_program(ctx, f"{triple}-ranlib", "llvm-ranlib") or "ranlib"
        has_prefixed_tools = first_program(ctx, f"{triple}-ar", f"{triple}-ranlib") is not None

        cflags: list[str] = []
        cxxflags: list[str] = []
        cmake_flags: list[str] = []
        if uses_clang:
            cflags.append(f"--target={triple}")
            cxxflags.append(f"--target={triple}")

        sysroot = discover_sysroot(ctx, triple=triple, compiler=cc)
        if sysroot is not None:
            includes = collect_includes(sysroot, triple=triple, stdlib=ctx.settings.mingw_stdlib)
            cflags.extend(includes.cflags())
            cxxflags.extend(includes.cxxflags())
            cmake_flags.extend(includes.cmake_flags())
        if uses_clang:
            cmake_flags.append(f"-DCMAKE_C_COMPILER_TARGET={triple}")
            cmake_flags.append(f"-DCMAKE_CXX_COMPILER_TARGET={triple}")

        return Toolchain(
            cc=cc,
            cxx=cxx,
            ar=ar,
            ranlib=ranlib,
            triple=triple,
            sysroot=sysroot,
            cflags=tuple(cflags),
            cxxflags=tuple(cxxflags),
            cmake_flags=tuple(cmake_flags),
            cross_prefix=f"{triple}-" if has_prefixed_tools else "",
            env={"uname": "mingw32"},
            uses_clang=uses_clang,
            source=self.name,
        )


def sysroot_with_includes(root: Path, *, triple: str) -> Path | None:
    candidates = (root / triple,) if root in _HOST_PREFIXES else (root / triple, root)
    for candidate in candidates:
        include = candidate / "include"
        if any((include / marker).is_file() for marker in _C_MARKERS):
            return candidate
    return None


def discover_sysroot(ctx: ResolveContext, *, triple: str, compiler: str) -> Path | None:
    """Find a MinGW sysroot that ships the C runtime headers."""
    for candidate in _sysroot_candidates(ctx, triple=triple, compiler=compiler):
        found = sysroot_with_includes(candidate, triple=triple)
        if found is not None:
            return found.resolve()
    return None


def _sysroot_candidates(ctx: ResolveContext, *, triple: str, compiler: str) -> Iterator[Path]:
    explicit = ctx.settings.get("MINGW_SYSROOT")
    if explicit is not None:
        yield Path(explicit)

    compiler_dir = Path(compiler).parent
    yield compiler_dir.parent
    yield compiler_dir.parent / triple
    yield compiler_dir.parent.parent / triple

    gcc = ctx.which(f"{triple}-gcc")
    if gcc is not None:
        result = ctx.runner.run([gcc, "-print-sysroot"], check=False)
        printed = result.output.strip()
        if result.ok and printed:
            yield Path(printed)

    llvm_mingw = ctx.settings.get("LLVM_MINGW_ROOT") or ctx.settings.get("MINGW_GCC_SYSROOT")
    if llvm_mingw is not None:
        yield Path(llvm_mingw)
        yield Path(llvm_mingw) / triple

    yield Path("/usr") / triple
    yield Path("/opt") / triple
    for prefix in _MSYS_PREFIXES:
        yield Path(prefix)
        yield Path(prefix) / triple


def collect_includes(sysroot: Path, *, triple: str, stdlib: MingwStdlib | None) -> SysrootIncludes:
    """Gather C runtime and C++ standard library include directories below ``sysroot``."""
    parent = sysroot.parent
    c_candidates = [
        sysroot / "include",
        sysroot / "ucrt" / "include",
        sysroot / triple / "include",
        sysroot / triple / "ucrt" / "include",
    ]
    gcc_root = sysroot / "lib" / "gcc" / triple
    if not gcc_root.is_dir():
        gcc_root = parent / "lib" / "gcc" / triple
    if gcc_root.is_dir():
        versions = sorted(path for path in gcc_root.iterdir() if path.is_dir())
        if versions:
            c_candidates.extend((versions[-1] / "include", versions[-1] / "include-fixed"))
    if parent != sysroot and parent not in _HOST_PREFIXES:
        c_candidates.extend(
            (
                parent / "include",
                parent / "ucrt" / "include",
                parent / triple / "include",
                parent / triple / "ucrt" / "include",
            )
        )
    c_dirs = _unique(
        path for path in c_candidates if any((path / marker).is_file() for marker in _C_MARKERS)
    )

    cxx_roots = [sysroot / "include", sysroot / triple / "include"]
    if parent != sysroot and parent not in _HOST_PREFIXES:
        cxx_roots.extend((parent / "include", parent / triple / "include"))
    cxx_dirs = _unique(_cxx_include_dirs(cxx_roots, triple=triple, skip_libcxx=stdlib == "libstdc++"))
    return SysrootIncludes(sysroot=sysroot, c_dirs=c_dirs, cxx_dirs=cxx_dirs)


def _cxx_include_dirs(roots: Iterable[Path], *, triple: str, skip_libcxx: bool) -> Iterator[Path]:
    for root in roots:
        cxx_root = root / "c++"
        if not cxx_root.is_dir():
            continue
        libcxx = cxx_root / "v1"
        if not skip_libcxx and any((libcxx / marker).is_file() for marker in _CXX_MARKERS):
            yield libcxx
        for version_dir in sorted(path for path in cxx_root.iterdir() if path.is_dir()):
            if skip_libcxx and version_dir.name == "v1":
                continue
            markers = (version_dir / "vector", version_dir / "string", version_dir / "bits" / "stdc++.h")
            if not any(marker.is_file() for marker in markers):
                continue
            yield version_dir
            if (version_dir / triple).is_dir():
                yield version_dir / triple


def _unique(paths: Iterable[Path]) -> tuple[Path, ...]:
    return tuple(dict.fromkeys(paths))
