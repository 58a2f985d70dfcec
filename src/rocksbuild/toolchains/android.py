"""Android NDK discovery and per-ABI clang toolchains."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from pathlib import Path

from rocksbuild.models import HostInfo, Toolchain
from rocksbuild.settings import BuildSettings
from rocksbuild.toolchains.base import ResolveContext, latest_directory


@dataclass(frozen=True, slots=True)
class AndroidAbi:
    triple_prefix: str
    abi: str
    flags: tuple[str, ...]


ANDROID_ABIS: dict[str, AndroidAbi] = {
    "arm32": AndroidAbi(
        triple_prefix="armv7a-linux-androideabi",
        abi="armeabi-v7a",
        flags=("-march=armv7-a", "-mthumb", "-mfpu=neon", "-mfloat-abi=softfp"),
    ),
    "arm64": AndroidAbi(
        triple_prefix="aarch64-linux-android",
        abi="arm64-v8a",
        flags=("-march=armv8-a",),
    ),
    "x86": AndroidAbi(
        triple_prefix="i686-linux-android",
        abi="x86",
        flags=("-march=i686", "-msse3", "-mstackrealign", "-mfpmath=sse"),
    ),
    "x64": AndroidAbi(
        triple_prefix="x86_64-linux-android",
        abi="x86_64",
        flags=("-march=x86-64", "-msse4.2", "-mpopcnt"),
    ),
}


def find_ndk_root(settings: BuildSettings) -> Path | None:
    """Locate an installed NDK from the environment, SDK installs, or Kotlin/Native caches."""
    for var in ("ANDROID_NDK_ROOT", "ANDROID_NDK_HOME"):
        value = settings.get(var)
        if value is not None and Path(value).is_dir():
            return Path(value)

    for sdk_root in _sdk_roots(settings):
        if (sdk_root / "ndk-bundle").is_dir():
            return sdk_root / "ndk-bundle"
        candidate = latest_directory(sdk_root / "ndk", "*")
        if candidate is not None:
            return candidate

    konan_dir = settings.home / ".konan" / "dependencies"
    for pattern in ("android-ndk-*", "target-toolchain-*-android_ndk"):
        candidate = latest_directory(konan_dir, pattern)
        if candidate is not None:
            return candidate
    return None


def host_tags(host: HostInfo) -> tuple[str, ...]:
    if host.platform == "LINUX":
        return ("linux-x86_64",)
    if host.platform == "MAC":
        if host.is_arm:
            return ("darwin-arm64", "darwin-x86_64")
        return ("darwin-x86_64", "darwin-arm64")
    return ("windows-x86_64",)


def _sdk_roots(settings: BuildSettings) -> Iterator[Path]:
    for var in ("ANDROID_HOME", "ANDROID_SDK_ROOT"):
        value = settings.get(var)
        if value is not None:
            yield Path(value)
    yield settings.home / "Android" / "Sdk"


def _bin_dir(ndk_root: Path, host: HostInfo) -> Path | None:
    prebuilt = ndk_root / "toolchains" / "llvm" / "prebuilt"
    for tag in host_tags(host):
        candidate = prebuilt / tag / "bin"
        if candidate.is_dir():
            return candidate
    if (ndk_root / "bin").is_dir():
        return ndk_root / "bin"
    return None


@dataclass(slots=True)
class AndroidNdkStrategy:
    name: str = "android-ndk"

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        abi = ANDROID_ABIS.get(ctx.target.arch)
        if ctx.target.platform != "android" or abi is None:
            return None
        ndk_root = find_ndk_root(ctx.settings)
        if ndk_root is None:
            return None
        bin_dir = _bin_dir(ndk_root, ctx.host)
        if bin_dir is None:
            return None

        api_level = ctx.settings.android_api_level
        triple = f"{abi.triple_prefix}{api_level}"
        cc = bin_dir / f"{triple}-clang"
        cxx = bin_dir / f"{triple}-clang++"
        if not cc.is_file() or not cxx.is_file():
            return None

        flags = (f"-D__ANDROID_API__={api_level}", *abi.flags)
        toolchain_file = ndk_root / "build" / "cmake" / "android.toolchain.cmake"
        return Toolchain(
            cc=str(cc),
            cxx=str(cxx),
            ar=str(bin_dir / "llvm-ar"),
            ranlib=str(bin_dir / "llvm-ranlib"),
            strip=str(bin_dir / "llvm-strip"),
            triple=triple,
            cflags=flags,
            cxxflags=flags,
            cmake_flags=(
                "-DANDROID=1",
                "-DCMAKE_SYSTEM_NAME=Android",
                f"-DANDROID_PLATFORM=android-{api_level}",
                f"-DANDROID_ABI={abi.abi}",
                f"-DANDROID_NDK={ndk_root}",
            ),
            cmake_toolchain_file=toolchain_file if toolchain_file.is_file() else None,
            env={"ANDROID_NDK_ROOT": str(ndk_root)},
            uses_clang=True,
            source=self.name,
        )
