"""Storage-engine builder: drives RocksDB's own CMake or Makefile build."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.builders.base import BuildContext, StepStatus
from rocksbuild.builders.snappy import snappy_prefix
from rocksbuild.builders.wrappers import wrap_compilers
from rocksbuild.cmake import is_multi_config
from rocksbuild.errors import NativeBuildError, ValidationError
from rocksbuild.models import ROCKSDB_LIBRARY, BuildLayout
from rocksbuild.runner import CommandResult, tail_text
from rocksbuild.settings import LINUX_ARM64_MAX_JOBS

CODEC_DEFINES = ("-DZLIB", "-DBZIP2", "-DSNAPPY", "-DLZ4", "-DZSTD")
WINDOWS_VERSION_FLAGS = (
    "-U_WIN32_WINNT",
    "-DWINVER=0x0A00",
    "-D_WIN32_WINNT=0x0A00",
    "-pthread",
    "-include",
    "stdint.h",
)
WINDOWS_CXX_FLAGS = ("-include", "system_error")
ANDROID_FLAGS = ("-fPIC", "-g0", "-ffunction-sections", "-fdata-sections", "-DANDROID")
APPLE_LD_FLAGS = "-lbz2 -lz -lz4 -lsnappy"
SHORTEN_WARNING_OFF = "-Wno-shorten-64-to-32"

_LINUX_ARCH = {
    "x86_64": ("-march=x86-64", "x86_64"),
    "arm64": ("-march=armv8-a", "aarch64"),
}
_APPLE_MIN_VERSION_FLAGS = {
    ("macos", False): "-mmacosx-version-min",
    ("ios", False): "-miphoneos-version-min",
    ("ios", True): "-mios-simulator-version-min",
    ("watchos", False): "-mwatchos-version-min",
    ("watchos", True): "-mwatchos-simulator-version-min",
    ("tvos", False): "-mtvos-version-min",
    ("tvos", True): "-mtvos-simulator-version-min",
}
# 32-bit pointer targets trip -Wshorten-64-to-32 throughout RocksDB.
_FLAG_FILTER_TARGETS = {("android", "arm32"), ("android", "x86"), ("watchos", "arm64_32")}


def find_engine_library(lib_dir: Path) -> Path | None:
    for candidate in (lib_dir / ROCKSDB_LIBRARY, lib_dir / "rocksdb-build" / ROCKSDB_LIBRARY):
        if candidate.is_file():
            return candidate
    return None


def rocksdb_cmake_args(
    *,
    layout: BuildLayout,
    lib_dir: Path,
    cflags: list[str],
    cxxflags: list[str],
) -> list[str]:
    """Options shared by every CMake-driven RocksDB build."""
    headers = layout.dependency_include_dir
    prefix = snappy_prefix(lib_dir)
    return [
        f"-DCMAKE_PREFIX_PATH={prefix}",
        f"-DSnappy_DIR={prefix / 'lib' / 'cmake' / 'Snappy'}",
        f"-DCMAKE_INCLUDE_PATH={layout.include_root};{headers}",
        f"-DCMAKE_LIBRARY_PATH={lib_dir}",
        f"-DZLIB_INCLUDE_DIR={headers}",
        f"-DZLIB_LIBRARY={lib_dir / 'libz.a'}",
        "-DZLIB_USE_STATIC_LIBS=ON",
        f"-DBZIP2_INCLUDE_DIR={headers}",
        f"-DBZIP2_LIBRARIES={lib_dir / 'libbz2.a'}",
        f"-Dlz4_INCLUDE_DIRS={headers}",
        f"-Dlz4_LIBRARIES={lib_dir / 'liblz4.a'}",
        f"-DZSTD_INCLUDE_DIRS={headers}",
        f"-DZSTD_LIBRARIES={lib_dir / 'libzstd.a'}",
        f"-DCMAKE_C_FLAGS={' '.join(cflags)}",
        f"-DCMAKE_CXX_FLAGS={' '.join(cxxflags)}",
        "-DCMAKE_BUILD_TYPE=Release",
        f"-DCMAKE_INSTALL_PREFIX={lib_dir}",
        "-DPORTABLE=1",
        "-DWITH_GFLAGS=OFF",
        "-DWITH_SNAPPY=ON",
        "-DWITH_LZ4=ON",
        "-DWITH_ZLIB=ON",
        "-DWITH_ZSTD=ON",
        "-DWITH_BZ2=ON",
        "-DROCKSDB_BUILD_SHARED=OFF",
        "-DROCKSDB_BUILD_STATIC=ON",
        "-DWITH_TESTS=OFF",
        "-DWITH_BENCHMARK_TOOLS=OFF",
        "-DWITH_TOOLS=OFF",
        "-DWITH_JNI=OFF",
        "-DWITH_JEMALLOC=OFF",
        "-DFAIL_ON_WARNINGS=OFF",
        "-DCMAKE_POSITION_INDEPENDENT_CODE=ON",
    ]


@dataclass(frozen=True, slots=True)
class CMakePlan:
    cflags: list[str]
    cxxflags: list[str]
    args: list[str]
    jobs: int


@dataclass(frozen=True, slots=True)
class EngineArtifact:
    status: StepStatus
    library_path: Path
    log_path: Path | None = None


@dataclass(slots=True)
class RocksDBBuilder:
    def build(self, ctx: BuildContext) -> EngineArtifact:
        existing = find_engine_library(ctx.lib_dir)
        if existing is not None:
            ctx.log(f"{existing} already exists, skipping build.", phase="engine", component="rocksdb")
            return EngineArtifact(status="skipped", library_path=existing)

        source = ctx.layout.rocksdb_source
        if not source.is_dir():
            raise ValidationError(
                "RocksDB sources are missing.",
                hint="Run `git submodule update --init` to fetch the rocksdb checkout.",
                context={"path": str(source)},
            )
        ctx.lib_dir.mkdir(parents=True, exist_ok=True)
        log_path = ctx.lib_dir / "build.log"

        ctx.log(f"Building RocksDB for {ctx.target.id}...", phase="engine", component="rocksdb")
        if ctx.target.is_apple:
            result = self._build_with_make(ctx, log_path)
        else:
            result = self._build_with_cmake(ctx, log_path)

        library = find_engine_library(ctx.lib_dir)
        if library is None:
            raise NativeBuildError(
                f"RocksDB build failed for {ctx.target.id}.",
                hint=f"Full output is in {log_path}.",
                context={
                    "target": ctx.target.id,
                    "returncode": str(result.returncode),
                    "log": str(log_path),
                },
                log_tail=tail_text(result.output),
            )
        ctx.log(f"Build succeeded for {ctx.lib_dir}", phase="engine", component="rocksdb")
        return EngineArtifact(status="built", library_path=library, log_path=log_path)

    def cmake_plan(self, ctx: BuildContext) -> CMakePlan:
        platform = ctx.target.platform
        if platform == "linux":
            return self._linux_plan(ctx)
        if platform == "mingw":
            return self._mingw_plan(ctx)
        if platform == "android":
            return self._android_plan(ctx)
        raise ValidationError(
            f"{ctx.target.id} is not built with CMake.",
            context={"target": ctx.target.id, "platform": platform},
        )

    def _linux_plan(self, ctx: BuildContext) -> CMakePlan:
        toolchain = ctx.toolchain()
        march, processor = _LINUX_ARCH[ctx.target.arch]
        cap = LINUX_ARM64_MAX_JOBS if ctx.target.arch == "arm64" else None
        return CMakePlan(
            cflags=["-fPIC", march, *toolchain.cflags],
            cxxflags=["-fPIC", march, *toolchain.cxxflags],
            args=[
                "-DCMAKE_SYSTEM_NAME=Linux",
                f"-DCMAKE_SYSTEM_PROCESSOR={processor}",
                f"-DCMAKE_C_COMPILER={toolchain.cc}",
                f"-DCMAKE_CXX_COMPILER={toolchain.cxx}",
                f"-DCMAKE_AR={toolchain.ar}",
                f"-DCMAKE_RANLIB={toolchain.ranlib}",
                *toolchain.cmake_flags,
            ],
            jobs=ctx.settings.parallel_jobs(cap=cap),
        )

    def _mingw_plan(self, ctx: BuildContext) -> CMakePlan:
        toolchain = ctx.toolchain()
        march = ["-march=x86-64"] if ctx.target.arch == "x86_64" else []
        return CMakePlan(
            cflags=[*march, *WINDOWS_VERSION_FLAGS, *toolchain.cflags],
            cxxflags=[*march, *WINDOWS_VERSION_FLAGS, *WINDOWS_CXX_FLAGS, *toolchain.cxxflags],
            args=[
                *ctx.target.cmake_flags,
                *toolchain.cmake_flags,
                "-G",
                "Ninja",
                "-DCMAKE_MAKE_PROGRAM=ninja",
                f"-DCMAKE_C_COMPILER={toolchain.cc}",
                f"-DCMAKE_CXX_COMPILER={toolchain.cxx}",
            ],
            jobs=ctx.settings.parallel_jobs(),
        )

    def _android_plan(self, ctx: BuildContext) -> CMakePlan:
        toolchain = ctx.toolchain()
        flags = [
            *ANDROID_FLAGS,
            f"-I{ctx.layout.include_root}",
            f"-I{ctx.layout.dependency_include_dir}",
            *CODEC_DEFINES,
            *toolchain.cflags,
        ]
        cc, cxx = toolchain.cc, toolchain.cxx
        if (ctx.target.platform, ctx.target.arch) in _FLAG_FILTER_TARGETS:
            flags.append(SHORTEN_WARNING_OFF)
            cc, cxx = wrap_compilers(ctx.lib_dir / "toolchain-wrappers", cc=cc, cxx=cxx)
        args = [
            f"-DCMAKE_C_COMPILER={cc}",
            f"-DCMAKE_CXX_COMPILER={cxx}",
            f"-DCMAKE_AR={toolchain.ar}",
            f"-DCMAKE_RANLIB={toolchain.ranlib}",
        ]
        if toolchain.strip is not None:
            args.append(f"-DCMAKE_STRIP={toolchain.strip}")
        args.append("-DCMAKE_ANDROID_STL_TYPE=c++_static")
        if toolchain.cmake_toolchain_file is not None:
            args.append(f"-DCMAKE_TOOLCHAIN_FILE={toolchain.cmake_toolchain_file}")
        if toolchain.triple is not None:
            args.append(f"-DCMAKE_C_COMPILER_TARGET={toolchain.triple}")
            args.append(f"-DCMAKE_CXX_COMPILER_TARGET={toolchain.triple}")
        args.extend(toolchain.cmake_flags)
        return CMakePlan(cflags=flags, cxxflags=list(flags), args=args, jobs=ctx.settings.parallel_jobs())

    def _build_with_cmake(self, ctx: BuildContext, log_path: Path) -> CommandResult:
        cmake = ctx.cmake()
        plan = self.cmake_plan(ctx)
        source = ctx.layout.rocksdb_source
        build_dir = ctx.lib_dir
        env = ctx.toolchain().env

        snappy_config = snappy_prefix(build_dir) / "lib" / "cmake" / "Snappy" / "SnappyConfig.cmake"
        if not snappy_config.is_file():
            ctx.log(
                f"Expected Snappy CMake package at {snappy_config} not found.",
                phase="engine",
                component="rocksdb",
                level="warning",
            )

        options = [
            *rocksdb_cmake_args(
                layout=ctx.layout, lib_dir=build_dir, cflags=plan.cflags, cxxflags=plan.cxxflags
            ),
            *plan.args,
        ]
        configure_log = build_dir / "configure.log"
        if cmake.supports_source_build_args:
            ctx.runner.run(
                [cmake.path, "-S", str(source), "-B", str(build_dir), *options],
                env=env,
                log_path=configure_log,
            )
        else:
            ctx.runner.run(
                [cmake.path, *options, str(source)],
                cwd=build_dir,
                env=env,
                log_path=configure_log,
            )

        command = [cmake.path, "--build", str(build_dir)]
        if is_multi_config(build_dir):
            command.extend(("--config", "Release"))
        command.extend(("--target", "rocksdb"))
        if cmake.supports_parallel:
            command.extend(("--parallel", str(plan.jobs)))
        else:
            ctx.log(
                "CMake without --parallel support; falling back to a serialized build.",
                phase="engine",
                component="rocksdb",
                level="warning",
            )
        return ctx.runner.run(command, env=env, log_path=log_path, check=False)

    def _build_with_make(self, ctx: BuildContext, log_path: Path) -> CommandResult:
        toolchain = ctx.toolchain()
        target = ctx.target
        flags = [f"{_APPLE_MIN_VERSION_FLAGS[(target.platform, target.simulator)]}={target.min_os_version}"]
        if target.simulator:
            flags.extend(("-target", target.apple_target or ""))
        else:
            flags.extend(("-arch", target.apple_arch or target.arch))
        if toolchain.sysroot is not None:
            flags.extend(("-isysroot", str(toolchain.sysroot)))
        flags.extend((f"-I{ctx.layout.include_root}", f"-I{ctx.layout.dependency_include_dir}"))
        flags.extend(CODEC_DEFINES)

        cc, cxx = toolchain.cc, toolchain.cxx
        command = ["make", f"-j{ctx.settings.parallel_jobs()}"]
        if (target.platform, target.arch) in _FLAG_FILTER_TARGETS:
            flags.append(SHORTEN_WARNING_OFF)
            cc, cxx = wrap_compilers(ctx.lib_dir / "toolchain-wrappers", cc=cc, cxx=cxx)
            command.append("DISABLE_WARNING_AS_ERROR=1")
        joined = " ".join(flags)
        command.extend(
            (
                "LIB_MODE=static",
                f"LIBNAME={ctx.lib_dir / 'librocksdb'}",
                "DEBUG_LEVEL=0",
                f"OBJ_DIR={ctx.lib_dir}",
                f"EXTRA_CXXFLAGS={joined}",
                f"EXTRA_CFLAGS={joined}",
                f"LD_FLAGS={APPLE_LD_FLAGS}",
                "static_lib",
            )
        )
        return ctx.runner.run(
            command,
            cwd=ctx.layout.rocksdb_source,
            env={**toolchain.env, "CC": cc, "CXX": cxx},
            log_path=log_path,
            check=False,
        )
