"""CMake discovery, capability checks and the pinned bootstrap bundle."""

from __future__ import annotations

import re
import shutil
import tarfile
from dataclasses import dataclass
from pathlib import Path

from rocksbuild.errors import ToolchainNotFoundError
from rocksbuild.fetch import fetch
from rocksbuild.models import BuildLayout, HostInfo
from rocksbuild.observability import StructuredLogger
from rocksbuild.policy import Policy
from rocksbuild.runner import CommandRunner
from rocksbuild.settings import BuildSettings

Version = tuple[int, int, int]

MINIMUM_VERSION: Version = (3, 12, 0)
PARALLEL_VERSION: Version = (3, 12, 0)
SOURCE_BUILD_ARGS_VERSION: Version = (3, 13, 0)
INSTALL_COMMAND_VERSION: Version = (3, 15, 0)

BOOTSTRAP_VERSION = "3.27.9"
BOOTSTRAP_BUNDLES: dict[str, str] = {
    "x86_64": "72b01478eeb312bf1a0136208957784fe55a7b587f8d9f9142a7fc9b0b9e9a28",
    "aarch64": "11bf3d30697df465cdf43664a9473a586f010c528376a966fd310a3a22082461",
}
BOOTSTRAP_URL = (
    "https://github.com/Kitware/CMake/releases/download/"
    "v{version}/cmake-{version}-linux-{arch}.tar.gz"
)

_VERSION_RE = re.compile(r"cmake version (\d+)\.(\d+)(?:\.(\d+))?")
_MULTI_CONFIG_GENERATORS = ("Visual Studio", "Xcode", "Multi-Config")


@dataclass(frozen=True, slots=True)
class CMakeTool:
    path: str
    version: Version

    @property
    def supports_parallel(self) -> bool:
        return self.version >= PARALLEL_VERSION

    @property
    def supports_source_build_args(self) -> bool:
        return self.version >= SOURCE_BUILD_ARGS_VERSION

    @property
    def supports_install_command(self) -> bool:
        return self.version >= INSTALL_COMMAND_VERSION

    @property
    def version_string(self) -> str:
        return ".".join(str(part) for part in self.version)


def parse_cmake_version(text: str) -> Version | None:
    match = _VERSION_RE.search(text)
    if match is None:
        return None
    major, minor, patch = match.groups()
    return int(major), int(minor), int(patch or 0)


def probe_cmake(path: str, runner: CommandRunner) -> CMakeTool | None:
    result = runner.run([path, "--version"], check=False)
    if not result.ok:
        return None
    version = parse_cmake_version(result.output)
    if version is None:
        return None
    return CMakeTool(path=path, version=version)


def is_multi_config(build_dir: Path) -> bool:
    """Inspect ``CMakeCache.txt`` for a generator that needs ``--config``."""
    cache = build_dir / "CMakeCache.txt"
    if not cache.is_file():
        return False
    for line in cache.read_text(encoding="utf-8", errors="replace").splitlines():
        if line.startswith("CMAKE_GENERATOR:"):
            generator = line.partition("=")[2]
            if any(name in generator for name in _MULTI_CONFIG_GENERATORS):
                return True
        elif line.startswith("CMAKE_CONFIGURATION_TYPES:"):
            if line.partition("=")[2].strip():
                return True
    return False


def ensure_cmake(
    *,
    layout: BuildLayout,
    host: HostInfo,
    settings: BuildSettings,
    runner: CommandRunner,
    logger: StructuredLogger,
    policy: Policy | None = None,
) -> CMakeTool:
    """Return a CMake >= 3.12, bootstrapping the pinned Linux bundle when needed."""
    system_path = shutil.which("cmake", path=settings.search_path)
    if system_path is not None:
        tool = probe_cmake(system_path, runner)
        if tool is not None and tool.version >= MINIMUM_VERSION:
            return tool
        found = tool.version_string if tool is not None else "unknown"
        logger.log(
            operation="ensure_cmake",
            target=None,
            phase="cmake",
            component="cmake",
            message=f"System CMake {found} is too old; looking for CMake {BOOTSTRAP_VERSION}.",
            level="warning",
        )

    install_dir = layout.tools_dir / f"cmake-{BOOTSTRAP_VERSION}"
    bundled = install_dir / "bin" / "cmake"
    if bundled.is_file():
        tool = probe_cmake(str(bundled), runner)
        if tool is not None and tool.version >= MINIMUM_VERSION:
            return tool

    arch = _bundle_arch(host)
    if host.platform != "LINUX" or arch is None:
        raise ToolchainNotFoundError(
            f"CMake {_format(MINIMUM_VERSION)} or newer is required.",
            hint="Install a recent CMake and make sure it is on PATH.",
            context={"host": host.platform, "arch": host.arch},
        )

    _install_bundle(layout=layout, arch=arch, install_dir=install_dir, policy=policy, logger=logger)
    tool = probe_cmake(str(bundled), runner)
    if tool is None:
        raise ToolchainNotFoundError(
            f"Bootstrapped CMake at {bundled} is not runnable.",
            context={"path": str(bundled)},
        )
    return tool


def _install_bundle(
    *,
    layout: BuildLayout,
    arch: str,
    install_dir: Path,
    policy: Policy | None,
    logger: StructuredLogger,
) -> None:
    url = BOOTSTRAP_URL.format(version=BOOTSTRAP_VERSION, arch=arch)
    logger.log(
        operation="ensure_cmake",
        target=None,
        phase="cmake",
        component="cmake",
        message=f"Downloading CMake {BOOTSTRAP_VERSION} for {arch}.",
    )
    layout.tools_dir.mkdir(parents=True, exist_ok=True)
    archive = fetch(
        url,
        sha256=BOOTSTRAP_BUNDLES[arch],
        destination=layout.tools_dir / f"cmake-{BOOTSTRAP_VERSION}-linux-{arch}.tar.gz",
        policy=policy,
    )
    unpacked = layout.tools_dir / f"cmake-{BOOTSTRAP_VERSION}-linux-{arch}"
    shutil.rmtree(unpacked, ignore_errors=True)
    with tarfile.open(archive, "r:gz") as bundle:
        bundle.extractall(layout.tools_dir, filter="tar")
    shutil.rmtree(install_dir, ignore_errors=True)
    unpacked.rename(install_dir)
    archive.unlink()


def _bundle_arch(host: HostInfo) -> str | None:
    if host.arch in ("x86_64", "amd64"):
        return "x86_64"
    if host.arch in ("aarch64", "arm64"):
        return "aarch64"
    return None


def _format(version: Version) -> str:
    return ".".join(str(part) for part in version)
