import os
from pathlib import Path

import pytest

from rocksbuild.dependencies import DEFAULT_DEPENDENCIES, ZSTD, resolve_dependencies
from rocksbuild.errors import ValidationError
from rocksbuild.settings import DEFAULT_ANDROID_API_LEVEL, BuildSettings


def test_settings_read_jobs_and_api_level() -> None:
    settings = BuildSettings.from_environ({"ROCKSDB_MAKE_JOBS": "6", "ANDROID_API_LEVEL": "24"})

    assert settings.parallel_jobs() == 6
    assert settings.parallel_jobs(cap=2) == 6
    assert settings.android_api_level == 24


def test_explicit_jobs_win_over_environment() -> None:
    settings = BuildSettings.from_environ({"ROCKSDB_MAKE_JOBS": "6"}, jobs=1)

    assert settings.parallel_jobs() == 1


def test_parallel_jobs_cap_applies_to_cpu_count(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(os, "cpu_count", lambda: 16)
    settings = BuildSettings.from_environ({})

    assert settings.parallel_jobs() == 16
    assert settings.parallel_jobs(cap=2) == 2
    assert settings.android_api_level == DEFAULT_ANDROID_API_LEVEL


@pytest.mark.parametrize(
    "environ",
    [
        {"ROCKSDB_MAKE_JOBS": "many"},
        {"ROCKSDB_MAKE_JOBS": "0"},
        {"BUILD_COMMON_MINGW_STDLIB": "msvcrt"},
    ],
)
def test_invalid_settings_are_rejected(environ: dict[str, str]) -> None:
    with pytest.raises(ValidationError):
        BuildSettings.from_environ(environ)


def test_search_path_prepends_llvm_mingw_bin(tmp_path: Path) -> None:
    llvm_mingw = tmp_path / "llvm-mingw"
    (llvm_mingw / "bin").mkdir(parents=True)
    settings = BuildSettings.from_environ({"PATH": "/usr/bin", "LLVM_MINGW_ROOT": str(llvm_mingw)})

    assert settings.search_path.split(os.pathsep) == [str(llvm_mingw / "bin"), "/usr/bin"]


def test_dependencies_default_to_pinned_releases() -> None:
    specs = resolve_dependencies(BuildSettings.from_environ({}))

    assert specs == DEFAULT_DEPENDENCIES
    assert [spec.library for spec in specs] == [
        "libbz2.a",
        "libz.a",
        "libzstd.a",
        "libsnappy.a",
        "liblz4.a",
    ]


def test_dependency_version_override_rewrites_download() -> None:
    settings = BuildSettings.from_environ({"ZSTD_VER": "1.5.7", "ZSTD_SHA256": "ab" * 32})
    zstd = next(spec for spec in resolve_dependencies(settings) if spec.name == "zstd")

    assert zstd.version == "1.5.7"
    assert zstd.sha256 == "ab" * 32
    assert zstd.url == "https://github.com/facebook/zstd/releases/download/v1.5.7/zstd-1.5.7.tar.gz"
    assert zstd.archive_name == "zstd-1.5.7.tar.gz"
    assert zstd.source_dirname == "zstd-1.5.7"
    assert ZSTD.version == "1.5.6"


def test_dependency_download_base_override() -> None:
    settings = BuildSettings.from_environ({"LZ4_DOWNLOAD_BASE": "https://mirror.example/lz4/"})
    lz4 = next(spec for spec in resolve_dependencies(settings) if spec.name == "lz4")

    assert lz4.url == "https://mirror.example/lz4/v1.9.4.tar.gz"
