"""Static target configuration table and host-aware target selection."""

from __future__ import annotations

import platform
from collections.abc import Iterable, Mapping

from rocksbuild.errors import ValidationError
from rocksbuild.models import HostInfo, HostPlatform, TargetConfig, TargetPlatform

_APPLE_SYSTEM_NAMES: Mapping[TargetPlatform, str] = {
    "macos": "Darwin",
    "ios": "iOS",
    "watchos": "watchOS",
    "tvos": "tvOS",
}


def _apple(
    target_id: str,
    *,
    platform: TargetPlatform,
    arch: str,
    output_dir: str,
    artifact: str,
    min_os_version: str,
    sdk: str | None,
    simulator: bool = False,
) -> TargetConfig:
    suffix = "-simulator" if simulator else ""
    apple_target = f"{arch}-apple-{platform}{min_os_version}{suffix}"
    cmake_flags = [
        f"-DCMAKE_OSX_ARCHITECTURES={arch}",
        f"-DCMAKE_OSX_DEPLOYMENT_TARGET={min_os_version}",
    ]
    if platform != "macos":
        cmake_flags.insert(0, f"-DCMAKE_SYSTEM_NAME={_APPLE_SYSTEM_NAMES[platform]}")
    return TargetConfig(
        id=target_id,
        platform=platform,
        arch=arch,
        hosts=("MAC",),
        output_dir=output_dir,
        artifact=artifact,
        simulator=simulator,
        extra_cflags=("-arch", arch, "-target", apple_target),
        cmake_flags=tuple(cmake_flags),
        apple_arch=arch,
        apple_target=apple_target,
        apple_sdk=sdk,
        min_os_version=min_os_version,
    )


def _android(target_id: str, *, arch: str) -> TargetConfig:
    return TargetConfig(
        id=target_id,
        platform="android",
        arch=arch,
        hosts=("LINUX", "MAC"),
        output_dir=f"android_{arch}",
        artifact=f"rocksdb-android-{arch}.zip",
    )


TARGETS: tuple[TargetConfig, ...] = (
    TargetConfig(
        id="linuxX64",
        platform="linux",
        arch="x86_64",
        hosts=("LINUX",),
        output_dir="linux_x86_64",
        artifact="rocksdb-linux-x86_64.zip",
        extra_cflags=("-m64",),
    ),
    TargetConfig(
        id="linuxArm64",
        platform="linux",
        arch="arm64",
        hosts=("LINUX",),
        output_dir="linux_arm64",
        artifact="rocksdb-linux-arm64.zip",
        extra_cflags=("-march=armv8-a",),
    ),
    TargetConfig(
        id="mingwX64",
        platform="mingw",
        arch="x86_64",
        hosts=("LINUX", "WINDOWS"),
        output_dir="mingw_x86_64",
        artifact="rocksdb-mingw-x86_64.zip",
        cmake_flags=("-DCMAKE_SYSTEM_NAME=Windows", "-DCMAKE_SYSTEM_PROCESSOR=x86_64"),
    ),
    TargetConfig(
        id="mingwArm64",
        platform="mingw",
        arch="arm64",
        hosts=("LINUX", "WINDOWS"),
        output_dir="mingw_arm64",
        artifact="rocksdb-mingw-arm64.zip",
        cmake_flags=("-DCMAKE_SYSTEM_NAME=Windows", "-DCMAKE_SYSTEM_PROCESSOR=ARM64"),
    ),
    _apple(
        "macosX64",
        platform="macos",
        arch="x86_64",
        output_dir="macos_x86_64",
        artifact="rocksdb-macos-x86_64.zip",
        min_os_version="11.0",
        sdk=None,
    ),
    _apple(
        "macosArm64",
        platform="macos",
        arch="arm64",
        output_dir="macos_arm64",
        artifact="rocksdb-macos-arm64.zip",
        min_os_version="11.0",
        sdk=None,
    ),
    _apple(
        "iosArm64",
        platform="ios",
        arch="arm64",
        output_dir="ios_arm64",
        artifact="rocksdb-ios-arm64.zip",
        min_os_version="13.0",
        sdk="iphoneos",
    ),
    _apple(
        "iosSimulatorArm64",
        platform="ios",
        arch="arm64",
        output_dir="ios_simulator_arm64",
        artifact="rocksdb-ios-simulator-arm64.zip",
        min_os_version="13.0",
        sdk="iphonesimulator",
        simulator=True,
    ),
    _apple(
        "watchosArm64",
        platform="watchos",
        arch="arm64_32",
        output_dir="watchos_arm64_32",
        artifact="rocksdb-watchos-arm64.zip",
        min_os_version="7.0",
        sdk="watchos",
    ),
    _apple(
        "watchosDeviceArm64",
        platform="watchos",
        arch="arm64",
        output_dir="watchos_arm64",
        artifact="rocksdb-watchos-device-arm64.zip",
        min_os_version="7.0",
        sdk="watchos",
    ),
    _apple(
        "watchosSimulatorArm64",
        platform="watchos",
        arch="arm64",
        output_dir="watchos_simulator_arm64",
        artifact="rocksdb-watchos-simulator-arm64.zip",
        min_os_version="7.0",
        sdk="watchsimulator",
        simulator=True,
    ),
    _apple(
        "tvosArm64",
        platform="tvos",
        arch="arm64",
        output_dir="tvos_arm64",
        artifact="rocksdb-tvos-arm64.zip",
        min_os_version="13.0",
        sdk="appletvos",
    ),
    _apple(
        "tvosSimulatorArm64",
        platform="tvos",
        arch="arm64",
        output_dir="tvos_simulator_arm64",
        artifact="rocksdb-tvos-simulator-arm64.zip",
        min_os_version="13.0",
        sdk="appletvsimulator",
        simulator=True,
    ),
    _android("androidNativeArm32", arch="arm32"),
    _android("androidNativeArm64", arch="arm64"),
    _android("androidNativeX86", arch="x86"),
    _android("androidNativeX64", arch="x64"),
)

TARGETS_BY_ID: Mapping[str, TargetConfig] = {target.id: target for target in TARGETS}

DEFAULT_TARGETS: Mapping[HostPlatform, tuple[str, ...]] = {
    "LINUX": ("linuxX64", "linuxArm64", "mingwX64", "mingwArm64"),
    "MAC": (
        "macosX64",
        "macosArm64",
        "iosArm64",
        "iosSimulatorArm64",
        "watchosArm64",
        "watchosDeviceArm64",
        "watchosSimulatorArm64",
        "tvosArm64",
        "tvosSimulatorArm64",
    ),
    "WINDOWS": ("mingwX64", "mingwArm64"),
}


def detect_host() -> HostInfo:
    """Classify the running machine the way the native build scripts expect."""
    system = platform.system()
    if system == "Linux":
        host: HostPlatform = "LINUX"
    elif system == "Darwin":
        host = "MAC"
    elif system == "Windows" or system.upper().startswith(("MINGW", "MSYS", "CYGWIN")):
        host = "WINDOWS"
    else:
        raise ValidationError(
            "Unsupported host platform.",
            hint="Run the build on Linux, macOS, or a Windows MSYS2 shell.",
            context={"system": system},
        )
    return HostInfo(platform=host, arch=platform.machine().lower())


def get_target(target_id: str) -> TargetConfig:
    try:
        return TARGETS_BY_ID[target_id]
    except KeyError:
        raise ValidationError(
            f"Unknown configuration: {target_id}",
            hint="Run with --list to see the available configurations.",
            context={"target": target_id},
        ) from None


def default_targets(host: HostPlatform) -> tuple[TargetConfig, ...]:
    ids = DEFAULT_TARGETS.get(host, ())
    if not ids:
        raise ValidationError(
            f"No builds are defined for {host} hosts.",
            context={"host": host},
        )
    return tuple(TARGETS_BY_ID[target_id] for target_id in ids)


def select_targets(requested: Iterable[str], *, host: HostInfo) -> tuple[TargetConfig, ...]:
    """Resolve requested ids (or the host default set) and validate all of them up front."""
    ids = list(dict.fromkeys(requested))
    if ids:
        targets = tuple(get_target(target_id) for target_id in ids)
    else:
        targets = default_targets(host.platform)
    for target in targets:
        if not target.supports_host(host.platform):
            raise ValidationError(
                f"Configuration {target.id} cannot be built on this host.",
                hint=f"Build {target.id} on a {'/'.join(target.hosts)} host.",
                context={"target": target.id, "host": host.platform},
            )
    return targets


def describe_targets() -> list[str]:
    return [f"  {target.id:<22} (host: {'|'.join(target.hosts)})" for target in TARGETS]
