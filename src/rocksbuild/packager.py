"""Bundle headers and static libraries for one target into a zip archive."""

from __future__ import annotations

import os
import shutil
import zipfile
from dataclasses import dataclass
from pathlib import Path

from rocksbuild.errors import PackagingError
from rocksbuild.fetch import file_sha256
from rocksbuild.models import ROCKSDB_LIBRARY, BuildLayout, TargetConfig

HEADER_SUFFIXES = frozenset({".h", ".hh", ".hpp", ".hxx", ".inc", ".ipp"})
PACKAGED_LIBRARIES = (
    ROCKSDB_LIBRARY,
    "libsnappy.a",
    "libzstd.a",
    "libbz2.a",
    "libz.a",
    "liblz4.a",
)
LIBRARY_SEARCH_SUBDIRS = ("", "dependencies", "lib", "lib64", "rocksdb-build", "rocksdb-build/lib")

# Fixed entry timestamp keeps archives byte-identical across rebuilds.
_ZIP_EPOCH = (1980, 1, 1, 0, 0, 0)


@dataclass(frozen=True, slots=True)
class PackageResult:
    archive_path: Path
    sha256: str
    checksum_path: Path
    libraries: tuple[str, ...]
    header_count: int


def collect_headers(include_root: Path) -> list[Path]:
    return sorted(
        path
        for path in include_root.rglob("*")
        if path.is_file() and path.suffix in HEADER_SUFFIXES
    )


def locate_libraries(lib_dir: Path) -> dict[str, Path]:
    """Find every packaged library under ``lib_dir`` or fail naming the first missing one."""
    found: dict[str, Path] = {}
    for name in PACKAGED_LIBRARIES:
        for subdir in LIBRARY_SEARCH_SUBDIRS:
            candidate = lib_dir / subdir / name if subdir else lib_dir / name
            if candidate.is_file():
                found[name] = candidate
                break
        else:
            raise PackagingError(
                f"Required library {name} not found under {lib_dir}",
                hint="Rebuild the target; packaging needs all six static libraries.",
                context={"library": name, "lib_dir": str(lib_dir)},
            )
    return found


def package_target(target: TargetConfig, layout: BuildLayout) -> PackageResult:
    include_root = layout.include_root
    lib_dir = layout.lib_dir(target)
    archive_path = layout.archive_path(target)
    checksum_path = archive_path.with_name(archive_path.name + ".sha256")
    archive_path.unlink(missing_ok=True)
    checksum_path.unlink(missing_ok=True)
    if not include_root.is_dir():
        raise PackagingError(
            f"Expected include directory {include_root} not found",
            context={"target": target.id},
        )
    if not lib_dir.is_dir():
        raise PackagingError(
            f"Expected library directory {lib_dir} not found",
            context={"target": target.id},
        )
    libraries = locate_libraries(lib_dir)
    headers = collect_headers(include_root)

    archive_path.parent.mkdir(parents=True, exist_ok=True)
    temp_path = archive_path.with_name(archive_path.name + ".tmp")
    try:
        with zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
            for header in headers:
                _write_entry(bundle, header, f"include/{header.relative_to(include_root).as_posix()}")
            for name, path in libraries.items():
                _write_entry(bundle, path, f"lib/{name}")
        os.replace(temp_path, archive_path)
    except OSError as exc:
        temp_path.unlink(missing_ok=True)
        raise PackagingError(
            f"Failed to create archive {archive_path}",
            context={"target": target.id, "reason": str(exc)},
        ) from exc

    digest = file_sha256(archive_path)
    checksum_path.write_text(f"{digest}  {archive_path.name}\n", encoding="utf-8")
    return PackageResult(
        archive_path=archive_path,
        sha256=digest,
        checksum_path=checksum_path,
        libraries=tuple(libraries),
        header_count=len(headers),
    )


def _write_entry(bundle: zipfile.ZipFile, source: Path, arcname: str) -> None:
    info = zipfile.ZipInfo(arcname, date_time=_ZIP_EPOCH)
    info.compress_type = zipfile.ZIP_DEFLATED
    info.external_attr = 0o644 << 16
    info.file_size = source.stat().st_size
    with source.open("rb") as reader, bundle.open(info, "w") as writer:
        shutil.copyfileobj(reader, writer)
