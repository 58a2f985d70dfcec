"""Pinned compression-library sources and their environment overrides."""

from __future__ import annotations

from dataclasses import replace

from rocksbuild.models import DependencySpec
from rocksbuild.settings import BuildSettings

BZIP2 = DependencySpec(
    name="bzip2",
    version="1.0.8",
    url_base="https://sourceware.org/pub/bzip2",
    sha256="ab5a03176ee106d3f0fa90e381da478ddae405918153cca248e682cd0c4a2269",
    remote_name="bzip2-1.0.8.tar.gz",
    library="libbz2.a",
    headers=("bzlib.h",),
)

ZLIB = DependencySpec(
    name="zlib",
    version="1.3.1",
    url_base="https://zlib.net/fossils",
    sha256="9a93b2b7dfdac77ceba5a558a580e74667dd6fede4585b91eefb60f03b72df23",
    remote_name="zlib-1.3.1.tar.gz",
    library="libz.a",
    headers=("zlib.h", "zconf.h"),
)

ZSTD = DependencySpec(
    name="zstd",
    version="1.5.6",
    url_base="https://github.com/facebook/zstd/releases/download/v1.5.6",
    sha256="8c29e06cf42aacc1eafc4077ae2ec6c6fcb96a626157e0593d5e82a34fd403c1",
    remote_name="zstd-1.5.6.tar.gz",
    library="libzstd.a",
    headers=("lib/zstd.h", "lib/zdict.h"),
)

SNAPPY = DependencySpec(
    name="snappy",
    version="1.2.1",
    url_base="https://github.com/google/snappy/archive",
    sha256="736aeb64d86566d2236ddffa2865ee5d7a82d26c9016b36218fcc27ea4f09f86",
    remote_name="1.2.1.tar.gz",
    library="libsnappy.a",
    headers=("snappy.h", "snappy-stubs-public.h"),
)

LZ4 = DependencySpec(
    name="lz4",
    version="1.9.4",
    url_base="https://github.com/lz4/lz4/archive",
    sha256="0b0e3aa07c8c063ddf40b082bdf7e37a1562bda40a0ff5272957f3e987e0e54b",
    remote_name="v1.9.4.tar.gz",
    library="liblz4.a",
    headers=("lib/lz4.h", "lib/lz4hc.h"),
)

DEFAULT_DEPENDENCIES: tuple[DependencySpec, ...] = (BZIP2, ZLIB, ZSTD, SNAPPY, LZ4)


def resolve_dependencies(settings: BuildSettings) -> tuple[DependencySpec, ...]:
    """Apply ``<NAME>_VER``, ``<NAME>_SHA256`` and ``<NAME>_DOWNLOAD_BASE`` overrides."""
    return tuple(_with_overrides(spec, settings) for spec in DEFAULT_DEPENDENCIES)


def _with_overrides(spec: DependencySpec, settings: BuildSettings) -> DependencySpec:
    prefix = spec.name.upper()
    version = settings.get(f"{prefix}_VER") or spec.version
    sha256 = settings.get(f"{prefix}_SHA256") or spec.sha256
    url_base = settings.get(f"{prefix}_DOWNLOAD_BASE") or spec.url_base
    if version == spec.version and sha256 == spec.sha256 and url_base == spec.url_base:
        return spec
    if version != spec.version and url_base == spec.url_base:
        url_base = url_base.replace(spec.version, version)
    return replace(
        spec,
        version=version,
        sha256=sha256,
        url_base=url_base,
        remote_name=spec.remote_name.replace(spec.version, version),
    )
