"""snappy recipe: in-tree CMake build installed under ``<output>/deps/snappy``."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from rocksbuild.builders.base import BuildContext
from rocksbuild.builders.common import extra_cflags, extra_cxxflags, step_log
from rocksbuild.models import DependencySpec


def snappy_prefix(lib_dir: Path) -> Path:
    return lib_dir / "deps" / "snappy"


def write_toolchain_file(path: Path, *, cflags: str, cxxflags: str) -> Path:
    lines = [
        f'set(CMAKE_C_FLAGS "${{CMAKE_C_FLAGS}} {cflags}")',
        f'set(CMAKE_CXX_FLAGS "${{CMAKE_CXX_FLAGS}} {cxxflags}")',
        "set(CMAKE_POSITION_INDEPENDENT_CODE ON)",
        "set(CMAKE_BUILD_TYPE Release)",
        "set(CMAKE_C_COMPILER_WORKS ON)",
        "set(CMAKE_CXX_COMPILER_WORKS ON)",
        'set(CMAKE_16BIT_TYPE "unsigned long")',
    ]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path


@dataclass(slots=True)
class SnappyRecipe:
    name: str = "snappy"

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        toolchain = ctx.toolchain()
        cmake = ctx.cmake()
        cflags = extra_cflags(ctx)
        cxxflags = extra_cxxflags(ctx)
        install_prefix = snappy_prefix(ctx.lib_dir)
        install_prefix.mkdir(parents=True, exist_ok=True)

        args = [
            cmake.path,
            "-DCMAKE_POLICY_VERSION_MINIMUM=3.5",
            "-DCMAKE_POSITION_INDEPENDENT_CODE=ON",
            f"-DCMAKE_C_COMPILER={toolchain.cc}",
            f"-DCMAKE_CXX_COMPILER={toolchain.cxx}",
        ]
        if toolchain.cmake_toolchain_file is not None:
            args.append(f"-DCMAKE_TOOLCHAIN_FILE={toolchain.cmake_toolchain_file}")
        else:
            toolchain_file = write_toolchain_file(
                source_dir / "toolchain.cmake", cflags=cflags, cxxflags=cxxflags
            )
            args.append(f"-DCMAKE_TOOLCHAIN_FILE={toolchain_file}")
        args.extend(ctx.target.cmake_flags)
        if ctx.target.platform == "mingw":
            args.append("-DSNAPPY_IS_BIG_ENDIAN=0")
        args.extend(toolchain.cmake_flags)
        args.extend(
            (
                f"-DCMAKE_AR={toolchain.ar}",
                f"-DCMAKE_RANLIB={toolchain.ranlib}",
                f"-DCMAKE_INSTALL_PREFIX={install_prefix}",
                f"-DCMAKE_C_FLAGS={cflags}",
                f"-DCMAKE_CXX_FLAGS={cxxflags}",
                "-DSNAPPY_BUILD_BENCHMARKS=OFF",
                "-DSNAPPY_BUILD_TESTS=OFF",
                "-Wno-dev",
                ".",
            )
        )
        ctx.runner.run(
            args,
            cwd=source_dir,
            env=toolchain.env,
            log_path=step_log(ctx, self.name, "configure"),
        )

        build = [cmake.path, "--build", ".", "--target", "snappy"]
        if cmake.supports_parallel:
            build.extend(("--parallel", str(ctx.settings.parallel_jobs())))
        ctx.runner.run(build, cwd=source_dir, env=toolchain.env, log_path=step_log(ctx, self.name, "build"))
        if cmake.supports_install_command:
            install = [cmake.path, "--install", ".", "--prefix", str(install_prefix)]
        else:
            install = [cmake.path, f"-DCMAKE_INSTALL_PREFIX={install_prefix}", "-P", "cmake_install.cmake"]
        ctx.runner.run(
            install,
            cwd=source_dir,
            env=toolchain.env,
            log_path=step_log(ctx, self.name, "install"),
        )
        return source_dir / spec.library
