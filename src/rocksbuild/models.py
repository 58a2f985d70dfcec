"""Core typed dataclasses for targets, dependencies, toolchains and build layout."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

HostPlatform = Literal["LINUX", "MAC", "WINDOWS"]
TargetPlatform = Literal["linux", "mingw", "macos", "ios", "watchos", "tvos", "android"]

APPLE_PLATFORMS: tuple[TargetPlatform, ...] = ("macos", "ios", "watchos", "tvos")

ROCKSDB_LIBRARY = "librocksdb.a"


@dataclass(frozen=True, slots=True)
class HostInfo:
    platform: HostPlatform
    arch: str

    @property
    def is_arm(self) -> bool:
        return "arm" in self.arch or "aarch64" in self.arch


@dataclass(frozen=True, slots=True)
class TargetConfig:
    """One (platform, architecture) pair from the build configuration table."""

    id: str
    platform: TargetPlatform
    arch: str
    hosts: tuple[HostPlatform, ...]
    output_dir: str
    artifact: str
    simulator: bool = False
    extra_cflags: tuple[str, ...] = ()
    cmake_flags: tuple[str, ...] = ()
    apple_arch: str | None = None
    apple_target: str | None = None
    apple_sdk: str | None = None
    min_os_version: str | None = None

    @property
    def is_apple(self) -> bool:
        return self.platform in APPLE_PLATFORMS

    def supports_host(self, host: HostPlatform) -> bool:
        return host in self.hosts

    def to_payload(self) -> dict[str, object]:
        return {
            "id": self.id,
            "platform": self.platform,
            "arch": self.arch,
            "hosts": list(self.hosts),
            "output_dir": self.output_dir,
            "artifact": self.artifact,
            "simulator": self.simulator,
            "extra_cflags": list(self.extra_cflags),
            "cmake_flags": list(self.cmake_flags),
            "apple_arch": self.apple_arch,
            "apple_target": self.apple_target,
            "apple_sdk": self.apple_sdk,
            "min_os_version": self.min_os_version,
        }


@dataclass(frozen=True, slots=True)
class DependencySpec:
    """A pinned compression-library source release."""

    name: str
    version: str
    url_base: str
    sha256: str
    remote_name: str
    library: str
    headers: tuple[str, ...]

    @property
    def url(self) -> str:
        return f"{self.url_base.rstrip('/')}/{self.remote_name}"

    @property
    def archive_name(self) -> str:
        return f"{self.name}-{self.version}.tar.gz"

    @property
    def source_dirname(self) -> str:
        return f"{self.name}-{self.version}"


@dataclass(frozen=True, slots=True)
class Toolchain:
    """Resolved compiler/archiver tuple plus the flags needed to target a platform."""

    cc: str
    cxx: str
    ar: str = "ar"
    ranlib: str = "ranlib"
    strip: str | None = None
    triple: str | None = None
    sysroot: Path | None = None
    cflags: tuple[str, ...] = ()
    cxxflags: tuple[str, ...] = ()
    cmake_flags: tuple[str, ...] = ()
    cmake_toolchain_file: Path | None = None
    cross_prefix: str = ""
    env: Mapping[str, str] = field(default_factory=dict)
    uses_clang: bool = False
    source: str = "unknown"

    def to_payload(self) -> dict[str, object]:
        return {
            "cc": self.cc,
            "cxx": self.cxx,
            "ar": self.ar,
            "ranlib": self.ranlib,
            "strip": self.strip,
            "triple": self.triple,
            "sysroot": str(self.sysroot) if self.sysroot is not None else None,
            "cflags": list(self.cflags),
            "cxxflags": list(self.cxxflags),
            "cmake_flags": list(self.cmake_flags),
            "cmake_toolchain_file": (
                str(self.cmake_toolchain_file) if self.cmake_toolchain_file is not None else None
            ),
            "cross_prefix": self.cross_prefix,
            "env": dict(sorted(self.env.items())),
            "uses_clang": self.uses_clang,
            "source": self.source,
        }


@dataclass(frozen=True, slots=True)
class BuildLayout:
    """Fixed on-disk layout rooted at the project checkout."""

    project_root: Path

    @property
    def build_root(self) -> Path:
        return self.project_root / "build"

    @property
    def rocksdb_source(self) -> Path:
        return self.project_root / "rocksdb"

    @property
    def include_root(self) -> Path:
        return self.build_root / "include"

    @property
    def dependency_include_dir(self) -> Path:
        return self.include_root / "dependencies"

    @property
    def download_dir(self) -> Path:
        return self.build_root / "dependencies"

    @property
    def archives_dir(self) -> Path:
        return self.build_root / "archives"

    @property
    def tools_dir(self) -> Path:
        return self.build_root / "tools"

    @property
    def reports_dir(self) -> Path:
        return self.build_root / "reports"

    def lib_dir(self, target: TargetConfig) -> Path:
        return self.build_root / "lib" / target.output_dir

    def work_dir(self, target: TargetConfig) -> Path:
        return self.build_root / "work" / target.output_dir

    def archive_path(self, target: TargetConfig) -> Path:
        return self.archives_dir / target.artifact

    def report_path(self, target: TargetConfig) -> Path:
        return self.reports_dir / f"{target.id}.json"
