"""Shared test fixtures."""

from __future__ import annotations

import hashlib
import io
import tarfile
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path

import pytest

from rocksbuild.builders import BuildContext
from rocksbuild.cmake import CMakeTool
from rocksbuild.errors import NativeBuildError
from rocksbuild.models import BuildLayout, DependencySpec, HostInfo, TargetConfig, Toolchain
from rocksbuild.observability import StructuredLogger
from rocksbuild.runner import CommandResult, tail_text
from rocksbuild.settings import BuildSettings
from rocksbuild.targets import get_target

LINUX_HOST = HostInfo(platform="LINUX", arch="x86_64")


@dataclass
class RecordedCall:
    argv: tuple[str, ...]
    cwd: Path | None
    env: dict[str, str]
    log_path: Path | None


@dataclass
class FakeRunner:
    """Records commands instead of executing them; ``handler`` scripts the outcome."""

    handler: Callable[[RecordedCall], tuple[int, str]] | None = None
    calls: list[RecordedCall] = field(default_factory=list)

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        log_path: Path | None = None,
        check: bool = True,
    ) -> CommandResult:
        call = RecordedCall(
            argv=tuple(str(arg) for arg in argv),
            cwd=cwd,
            env=dict(env or {}),
            log_path=log_path,
        )
        self.calls.append(call)
        returncode, output = self.handler(call) if self.handler is not None else (0, "")
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_path.write_text(output, encoding="utf-8")
        result = CommandResult(argv=call.argv, returncode=returncode, output=output)
        if check and not result.ok:
            raise NativeBuildError(f"Command failed: {call.argv[0]}", log_tail=tail_text(output))
        return result


@dataclass(slots=True)
class PrebuiltRecipe:
    """Recipe double: the "build" output is already inside the unpacked tarball."""

    name: str

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        ctx.toolchain()
        return source_dir / spec.library


@pytest.fixture
def fake_runner() -> FakeRunner:
    return FakeRunner()


@pytest.fixture
def project(tmp_path: Path) -> BuildLayout:
    """A project checkout with a minimal rocksdb/include tree."""
    root = tmp_path / "project"
    headers = root / "rocksdb" / "include" / "rocksdb"
    headers.mkdir(parents=True)
    (headers / "db.h").write_text("#pragma once\n", encoding="utf-8")
    (headers / "options.h").write_text("#pragma once\n", encoding="utf-8")
    return BuildLayout(project_root=root)


@pytest.fixture
def gcc_toolchain() -> Toolchain:
    return Toolchain(cc="/usr/bin/gcc", cxx="/usr/bin/g++", source="test")


@pytest.fixture
def make_context(
    project: BuildLayout, fake_runner: FakeRunner, gcc_toolchain: Toolchain
) -> Callable[..., BuildContext]:
    def factory(
        target_id: str = "linuxX64",
        *,
        toolchain: Toolchain | None = None,
        cmake: CMakeTool | None = None,
        settings: BuildSettings | None = None,
        host: HostInfo = LINUX_HOST,
    ) -> BuildContext:
        resolved = toolchain or gcc_toolchain
        tool = cmake or CMakeTool(path="cmake", version=(3, 27, 9))
        return BuildContext(
            target=get_target(target_id),
            layout=project,
            settings=settings or BuildSettings(environ={}, jobs=3),
            host=host,
            runner=fake_runner,
            logger=StructuredLogger(),
            toolchain_resolver=lambda _target: resolved,
            cmake_provider=lambda: tool,
        )

    return factory


@pytest.fixture
def dependency_source(tmp_path: Path) -> Callable[..., DependencySpec]:
    """Build a ``file://`` source tarball whose tree already contains the static library."""
    upstream = tmp_path / "upstream"
    upstream.mkdir()

    def factory(
        name: str,
        *,
        library: str,
        headers: tuple[str, ...],
        version: str = "1.0.0",
    ) -> DependencySpec:
        top = f"{name}-{version}"
        members = {f"{top}/{library}": f"!<arch>\n{name}\n".encode()}
        members.update({f"{top}/{header}": f"/* {header} */\n".encode() for header in headers})
        archive = upstream / f"{top}.tar.gz"
        with tarfile.open(archive, "w:gz") as bundle:
            for member_name, payload in sorted(members.items()):
                info = tarfile.TarInfo(member_name)
                info.size = len(payload)
                bundle.addfile(info, io.BytesIO(payload))
        return DependencySpec(
            name=name,
            version=version,
            url_base=upstream.as_uri(),
            sha256=hashlib.sha256(archive.read_bytes()).hexdigest(),
            remote_name=archive.name,
            library=library,
            headers=headers,
        )

    return factory


@pytest.fixture
def local_dependencies(dependency_source: Callable[..., DependencySpec]) -> tuple[DependencySpec, ...]:
    return (
        dependency_source("bzip2", library="libbz2.a", headers=("bzlib.h",)),
        dependency_source("zlib", library="libz.a", headers=("zlib.h", "zconf.h")),
        dependency_source("zstd", library="libzstd.a", headers=("lib/zstd.h",)),
        dependency_source("snappy", library="libsnappy.a", headers=("snappy.h",)),
        dependency_source("lz4", library="liblz4.a", headers=("lib/lz4.h",)),
    )


@pytest.fixture
def prebuilt_recipes() -> dict[str, PrebuiltRecipe]:
    return {name: PrebuiltRecipe(name) for name in ("bzip2", "zlib", "zstd", "snappy", "lz4")}


def populate_outputs(layout: BuildLayout, target: TargetConfig) -> Path:
    """Place every packaged static library in the target's output directory."""
    lib_dir = layout.lib_dir(target)
    lib_dir.mkdir(parents=True, exist_ok=True)
    for name in ("librocksdb.a", "libsnappy.a", "libzstd.a", "libbz2.a", "libz.a", "liblz4.a"):
        (lib_dir / name).write_bytes(f"!<arch>\n{name}\n".encode())
    return lib_dir


@pytest.fixture
def prebuilt_outputs(project: BuildLayout) -> Callable[[str], Path]:
    def factory(target_id: str) -> Path:
        return populate_outputs(project, get_target(target_id))

    return factory


def make_executable(path: Path) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text("#!/bin/sh\nexit 0\n", encoding="utf-8")
    path.chmod(0o755)
    return path


@pytest.fixture
def fake_programs(tmp_path: Path) -> Callable[..., Path]:
    """Create stub executables in a bin directory and return that directory."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def factory(*names: str) -> Path:
        for name in names:
            make_executable(bin_dir / name)
        return bin_dir

    return factory
