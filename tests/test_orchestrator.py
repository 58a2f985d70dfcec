from dataclasses import replace
from pathlib import Path

import pytest

from rocksbuild.builders import DependencyBuilder
from rocksbuild.cmake import CMakeTool
from rocksbuild.errors import NativeBuildError, ToolchainNotFoundError, ValidationError
from rocksbuild.models import HostInfo, Toolchain
from rocksbuild.observability import StructuredLogger
from rocksbuild.orchestrator import Orchestrator
from rocksbuild.report import TargetReport
from rocksbuild.settings import BuildSettings

LINUX = HostInfo(platform="LINUX", arch="x86_64")


@pytest.fixture
def resolved_toolchains(monkeypatch: pytest.MonkeyPatch) -> list[str]:
    resolved: list[str] = []

    def fake_resolve(target, *, settings, host, runner):
        resolved.append(target.id)
        if target.platform == "mingw":
            raise ToolchainNotFoundError(f"No toolchain found for {target.id}.")
        return Toolchain(cc="/usr/bin/gcc", cxx="/usr/bin/g++", source="path")

    monkeypatch.setattr("rocksbuild.orchestrator.resolve_toolchain", fake_resolve)
    return resolved


@pytest.fixture
def orchestrator(
    project, fake_runner, local_dependencies, prebuilt_recipes, monkeypatch: pytest.MonkeyPatch
) -> Orchestrator:
    monkeypatch.setattr("rocksbuild.orchestrator.resolve_dependencies", lambda settings: local_dependencies)

    def cmake_build(call):
        if "--build" in call.argv:
            (Path(call.argv[2]) / "librocksdb.a").write_bytes(b"!<arch>\nrocksdb\n")
        return 0, ""

    fake_runner.handler = cmake_build
    instance = Orchestrator(
        project_root=project.project_root,
        settings=BuildSettings(environ={}, jobs=2),
        host=LINUX,
        logger=StructuredLogger(),
        runner=fake_runner,
        dependency_builder=DependencyBuilder(recipes=prebuilt_recipes),
    )
    instance._cmake = CMakeTool(path="cmake", version=(3, 27, 9))
    return instance


def test_full_build_produces_archive_and_report(orchestrator, project, resolved_toolchains) -> None:
    result = orchestrator.run(["linuxX64"])

    assert result.ok
    (report,) = result.reports
    assert report.dependencies_built == ("bzip2", "zlib", "zstd", "snappy", "lz4")
    assert report.engine == "built"
    assert report.toolchain_source == "path"
    assert Path(report.archive).is_file()
    assert report.config_digest is not None
    assert TargetReport.from_json(project.reports_dir / "linuxX64.json") == report
    assert resolved_toolchains == ["linuxX64"]


def test_rerun_with_existing_artifacts_does_no_work(
    orchestrator, project, fake_runner, resolved_toolchains, local_dependencies, monkeypatch
) -> None:
    first = orchestrator.run(["linuxX64"])
    calls_after_first = len(fake_runner.calls)
    unreachable = tuple(replace(spec, url_base="https://example.invalid") for spec in local_dependencies)
    monkeypatch.setattr("rocksbuild.orchestrator.resolve_dependencies", lambda settings: unreachable)

    second = orchestrator.run(["linuxX64"])

    assert len(fake_runner.calls) == calls_after_first
    assert resolved_toolchains == ["linuxX64"]
    (report,) = second.reports
    assert report.dependencies_built == ()
    assert report.dependencies_skipped == ("bzip2", "zlib", "zstd", "snappy", "lz4")
    assert report.engine == "skipped"
    assert report.archive_sha256 == first.reports[0].archive_sha256


def test_unknown_target_is_rejected_before_any_work(orchestrator, project, fake_runner) -> None:
    with pytest.raises(ValidationError, match="Unknown configuration: linuxSparc"):
        orchestrator.run(["linuxX64", "linuxSparc"])

    assert fake_runner.calls == []
    assert not project.build_root.exists()


def test_target_for_another_host_is_rejected_before_any_work(orchestrator, project) -> None:
    with pytest.raises(ValidationError, match="macosArm64"):
        orchestrator.run(["linuxX64", "macosArm64"])

    assert not project.build_root.exists()


def test_targets_in_one_run_use_their_own_directories(orchestrator, project, prebuilt_outputs) -> None:
    linux_lib = prebuilt_outputs("linuxX64")
    mingw_lib = prebuilt_outputs("mingwX64")

    result = orchestrator.run(["linuxX64", "mingwX64"])

    assert result.ok
    archives = {Path(report.archive) for report in result.reports}
    assert archives == {
        project.archives_dir / "rocksdb-linux-x86_64.zip",
        project.archives_dir / "rocksdb-mingw-x86_64.zip",
    }
    assert linux_lib != mingw_lib
    assert sorted(path.name for path in project.reports_dir.iterdir()) == ["linuxX64.json", "mingwX64.json"]


def test_first_failure_stops_the_run(orchestrator, project, resolved_toolchains, prebuilt_outputs) -> None:
    prebuilt_outputs("linuxX64")

    result = orchestrator.run(["mingwX64", "linuxX64"])

    assert not result.ok
    assert [report.target for report in result.reports] == ["mingwX64"]
    assert isinstance(result.errors[0], ToolchainNotFoundError)
    assert not (project.archives_dir / "rocksdb-linux-x86_64.zip").exists()
    failed = TargetReport.from_json(project.reports_dir / "mingwX64.json")
    assert failed.status == "failed"
    assert failed.error["code"] == "E_TOOLCHAIN_NOT_FOUND"
    assert failed.dependencies_built == ()


def test_keep_going_builds_remaining_targets(orchestrator, project, resolved_toolchains, prebuilt_outputs) -> None:
    prebuilt_outputs("linuxX64")
    orchestrator.keep_going = True

    result = orchestrator.run(["mingwX64", "linuxX64"])

    assert [(report.target, report.status) for report in result.reports] == [
        ("mingwX64", "failed"),
        ("linuxX64", "succeeded"),
    ]
    assert [failure.target for failure in result.failures] == ["mingwX64"]
    assert (project.archives_dir / "rocksdb-linux-x86_64.zip").is_file()


def test_progress_is_logged_per_target(orchestrator, prebuilt_outputs) -> None:
    prebuilt_outputs("linuxX64")

    orchestrator.run(["linuxX64"])

    messages = [record["message"] for record in orchestrator.logger.records_for_target("linuxX64")]
    assert messages[0] == "Building configuration: linuxX64"
    assert any("libbz2.a already exists" in message for message in messages)
    assert messages[-1].startswith("Completed linuxX64")


def test_from_environment_uses_detected_host(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("rocksbuild.orchestrator.detect_host", lambda: LINUX)

    instance = Orchestrator.from_environment(tmp_path, settings=BuildSettings(environ={"PATH": "/usr/bin"}))

    assert instance.host == LINUX
    assert instance.layout.build_root == tmp_path.resolve() / "build"
    assert instance.policy.network_mode == "online"


class FailingRecipe:
    name = "lz4"

    def build(self, ctx, spec, source_dir):
        raise NativeBuildError("lz4 build failed", log_tail="make: *** [lib] Error 2")


def test_failed_dependency_reports_libraries_built_before_it(
    orchestrator, project, resolved_toolchains, prebuilt_recipes
) -> None:
    orchestrator.dependency_builder = DependencyBuilder(recipes={**prebuilt_recipes, "lz4": FailingRecipe()})

    result = orchestrator.run(["linuxX64"])

    (report,) = result.reports
    assert report.status == "failed"
    assert report.dependencies_built == ("bzip2", "zlib", "zstd", "snappy")
    assert report.engine is None
    assert report.error["code"] == "E_NATIVE_BUILD"
    assert TargetReport.from_json(project.reports_dir / "linuxX64.json") == report
