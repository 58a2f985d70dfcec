from pathlib import Path

import pytest

from rocksbuild.builders import RocksDBBuilder
from rocksbuild.cmake import CMakeTool
from rocksbuild.errors import NativeBuildError, ValidationError
from rocksbuild.models import Toolchain
from rocksbuild.runner import LOG_TAIL_LINES


def _produce_library(lib_dir: Path):
    def handler(call):
        if "--build" in call.argv or "static_lib" in call.argv:
            (lib_dir / "librocksdb.a").write_bytes(b"!<arch>\n")
            return 0, "[100%] Built target rocksdb\n"
        return 0, "-- Configuring done\n"

    return handler


def _unresolvable(_target):
    raise AssertionError("toolchain must not be resolved")


def test_existing_library_is_not_rebuilt(make_context, fake_runner) -> None:
    ctx = make_context("linuxX64")
    ctx.toolchain_resolver = _unresolvable
    ctx.lib_dir.mkdir(parents=True)
    (ctx.lib_dir / "librocksdb.a").write_bytes(b"cached")

    artifact = RocksDBBuilder().build(ctx)

    assert artifact.status == "skipped"
    assert fake_runner.calls == []


def test_library_in_cmake_subdirectory_counts_as_built(make_context, fake_runner) -> None:
    ctx = make_context("linuxX64")
    nested = ctx.lib_dir / "rocksdb-build"
    nested.mkdir(parents=True)
    (nested / "librocksdb.a").write_bytes(b"cached")

    artifact = RocksDBBuilder().build(ctx)

    assert artifact.library_path == nested / "librocksdb.a"
    assert fake_runner.calls == []


def test_linux_build_configures_then_builds_rocksdb_target(make_context, fake_runner) -> None:
    ctx = make_context("linuxArm64")
    fake_runner.handler = _produce_library(ctx.lib_dir)

    artifact = RocksDBBuilder().build(ctx)

    configure, build = fake_runner.calls
    assert configure.argv[:5] == ("cmake", "-S", str(ctx.layout.rocksdb_source), "-B", str(ctx.lib_dir))
    assert "-DCMAKE_SYSTEM_PROCESSOR=aarch64" in configure.argv
    assert "-DWITH_GFLAGS=OFF" in configure.argv
    assert "-DROCKSDB_BUILD_SHARED=OFF" in configure.argv
    assert f"-DZLIB_LIBRARY={ctx.lib_dir / 'libz.a'}" in configure.argv
    assert "-DCMAKE_CXX_FLAGS=-fPIC -march=armv8-a" in configure.argv
    assert build.argv == ("cmake", "--build", str(ctx.lib_dir), "--target", "rocksdb", "--parallel", "3")
    assert artifact.status == "built"
    assert artifact.log_path == ctx.lib_dir / "build.log"


def test_old_cmake_configures_from_build_directory(make_context, fake_runner) -> None:
    ctx = make_context("linuxX64", cmake=CMakeTool(path="cmake", version=(3, 12, 0)))
    fake_runner.handler = _produce_library(ctx.lib_dir)

    RocksDBBuilder().build(ctx)

    configure = fake_runner.calls[0]
    assert configure.cwd == ctx.lib_dir
    assert configure.argv[-1] == str(ctx.layout.rocksdb_source)
    assert "-S" not in configure.argv


def test_multi_config_build_adds_release_config(make_context, fake_runner) -> None:
    ctx = make_context("linuxX64")
    ctx.lib_dir.mkdir(parents=True)
    (ctx.lib_dir / "CMakeCache.txt").write_text("CMAKE_GENERATOR:INTERNAL=Xcode\n", encoding="utf-8")
    fake_runner.handler = _produce_library(ctx.lib_dir)

    RocksDBBuilder().build(ctx)

    assert ("--config", "Release") == fake_runner.calls[-1].argv[3:5]


def test_failed_build_reports_tail_of_output(make_context, fake_runner) -> None:
    ctx = make_context("linuxX64")
    output = "\n".join(f"line {index}" for index in range(1000))
    fake_runner.handler = lambda call: (2, output) if "--build" in call.argv else (0, "")

    with pytest.raises(NativeBuildError) as excinfo:
        RocksDBBuilder().build(ctx)

    tail = excinfo.value.log_tail.splitlines()
    assert len(tail) == LOG_TAIL_LINES
    assert tail[0] == "line 600"
    assert tail[-1] == "line 999"
    assert excinfo.value.context["returncode"] == "2"
    assert (ctx.lib_dir / "build.log").read_text(encoding="utf-8") == output


def test_missing_rocksdb_checkout_is_a_validation_error(make_context, fake_runner) -> None:
    ctx = make_context("linuxX64")
    (ctx.layout.rocksdb_source / "include" / "rocksdb" / "db.h").unlink()
    (ctx.layout.rocksdb_source / "include" / "rocksdb" / "options.h").unlink()
    for directory in ("include/rocksdb", "include", ""):
        (ctx.layout.rocksdb_source / directory).rmdir()

    with pytest.raises(ValidationError, match="submodule"):
        RocksDBBuilder().build(ctx)


def test_mingw_plan_uses_ninja_and_windows_defines(make_context) -> None:
    plan = RocksDBBuilder().cmake_plan(make_context("mingwX64"))

    assert plan.args[plan.args.index("-G") + 1] == "Ninja"
    assert "-DCMAKE_SYSTEM_NAME=Windows" in plan.args
    assert "-D_WIN32_WINNT=0x0A00" in plan.cflags
    assert plan.cxxflags[-2:] == ["-include", "system_error"]


def test_android_32bit_plan_wraps_compilers(make_context) -> None:
    ndk = Toolchain(
        cc="/ndk/bin/armv7a-linux-androideabi21-clang",
        cxx="/ndk/bin/armv7a-linux-androideabi21-clang++",
        ar="/ndk/bin/llvm-ar",
        ranlib="/ndk/bin/llvm-ranlib",
        strip="/ndk/bin/llvm-strip",
        triple="armv7a-linux-androideabi21",
        cmake_toolchain_file=Path("/ndk/build/cmake/android.toolchain.cmake"),
        source="android-ndk",
    )
    ctx = make_context("androidNativeArm32", toolchain=ndk)

    plan = RocksDBBuilder().cmake_plan(ctx)

    wrapper = ctx.lib_dir / "toolchain-wrappers" / "cc"
    assert f"-DCMAKE_C_COMPILER={wrapper}" in plan.args
    assert ndk.cc in wrapper.read_text(encoding="utf-8")
    assert "-DCMAKE_ANDROID_STL_TYPE=c++_static" in plan.args
    assert "-DCMAKE_STRIP=/ndk/bin/llvm-strip" in plan.args
    assert "-Wno-shorten-64-to-32" in plan.cflags
    assert "-DSNAPPY" in plan.cflags


def test_android_64bit_plan_uses_real_compilers(make_context) -> None:
    ndk = Toolchain(cc="/ndk/bin/clang", cxx="/ndk/bin/clang++", source="android-ndk")

    plan = RocksDBBuilder().cmake_plan(make_context("androidNativeArm64", toolchain=ndk))

    assert "-DCMAKE_C_COMPILER=/ndk/bin/clang" in plan.args
    assert "-Wno-shorten-64-to-32" not in plan.cflags


def test_apple_targets_use_rocksdb_makefile(make_context, fake_runner) -> None:
    xcode = Toolchain(
        cc="/usr/bin/clang",
        cxx="/usr/bin/clang++",
        sysroot=Path("/SDKs/iPhoneOS.sdk"),
        source="xcrun",
    )
    ctx = make_context("iosArm64", toolchain=xcode)
    fake_runner.handler = _produce_library(ctx.lib_dir)

    RocksDBBuilder().build(ctx)

    (call,) = fake_runner.calls
    assert call.argv[:2] == ("make", "-j3")
    assert call.argv[-1] == "static_lib"
    assert "LIB_MODE=static" in call.argv
    assert f"LIBNAME={ctx.lib_dir / 'librocksdb'}" in call.argv
    extra = next(arg for arg in call.argv if arg.startswith("EXTRA_CFLAGS="))
    assert "-miphoneos-version-min=13.0 -arch arm64 -isysroot /SDKs/iPhoneOS.sdk" in extra
    assert call.cwd == ctx.layout.rocksdb_source
    assert call.env["CXX"] == "/usr/bin/clang++"


def test_watchos_arm64_32_filters_shorten_warning(make_context, fake_runner) -> None:
    xcode = Toolchain(cc="/usr/bin/clang", cxx="/usr/bin/clang++", source="xcrun")
    ctx = make_context("watchosArm64", toolchain=xcode)
    fake_runner.handler = _produce_library(ctx.lib_dir)

    RocksDBBuilder().build(ctx)

    (call,) = fake_runner.calls
    assert "DISABLE_WARNING_AS_ERROR=1" in call.argv
    assert call.env["CC"] == str(ctx.lib_dir / "toolchain-wrappers" / "cc")
