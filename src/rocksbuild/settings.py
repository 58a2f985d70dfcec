"""Environment-driven build settings."""

from __future__ import annotations

import os
from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal

from rocksbuild.errors import ValidationError

MingwStdlib = Literal["libc++", "libstdc++"]

DEFAULT_ANDROID_API_LEVEL = 21
DEFAULT_PARALLEL_JOBS = 4
LINUX_ARM64_MAX_JOBS = 2


@dataclass(frozen=True, slots=True)
class BuildSettings:
    """Knobs the native scripts historically read from environment variables."""

    environ: Mapping[str, str] = field(default_factory=dict)
    jobs: int | None = None
    android_api_level: int = DEFAULT_ANDROID_API_LEVEL
    mingw_stdlib: MingwStdlib | None = None

    @classmethod
    def from_environ(
        cls,
        environ: Mapping[str, str] | None = None,
        *,
        jobs: int | None = None,
    ) -> BuildSettings:
        env = dict(os.environ if environ is None else environ)
        if jobs is None and env.get("ROCKSDB_MAKE_JOBS"):
            jobs = _parse_int(env["ROCKSDB_MAKE_JOBS"], name="ROCKSDB_MAKE_JOBS")
        api_level = DEFAULT_ANDROID_API_LEVEL
        if env.get("ANDROID_API_LEVEL"):
            api_level = _parse_int(env["ANDROID_API_LEVEL"], name="ANDROID_API_LEVEL")
        stdlib = env.get("BUILD_COMMON_MINGW_STDLIB") or None
        if stdlib not in (None, "libc++", "libstdc++"):
            raise ValidationError(
                "BUILD_COMMON_MINGW_STDLIB must be 'libc++' or 'libstdc++'.",
                context={"value": str(stdlib)},
            )
        return cls(environ=env, jobs=jobs, android_api_level=api_level, mingw_stdlib=stdlib)

    def get(self, name: str) -> str | None:
        value = self.environ.get(name)
        return value if value else None

    @property
    def home(self) -> Path:
        return Path(self.environ.get("HOME") or Path.home())

    @property
    def search_path(self) -> str:
        """``PATH`` with the llvm-mingw and MinGW sysroot bin directories prepended."""
        entries = [entry for entry in self.environ.get("PATH", "").split(os.pathsep) if entry]
        for root_var in ("LLVM_MINGW_ROOT", "MINGW_GCC_SYSROOT"):
            root = self.get(root_var)
            if root is None:
                continue
            bin_dir = str(Path(root) / "bin")
            if Path(bin_dir).is_dir() and bin_dir not in entries:
                entries.insert(0, bin_dir)
        return os.pathsep.join(entries)

    def parallel_jobs(self, *, cap: int | None = None) -> int:
        if self.jobs is not None:
            return self.jobs
        count = os.cpu_count() or DEFAULT_PARALLEL_JOBS
        if cap is not None:
            count = min(count, cap)
        return count


def _parse_int(raw: str, *, name: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise ValidationError(
            f"{name} must be an integer.",
            context={"variable": name, "value": raw},
        ) from None
    if value < 1:
        raise ValidationError(f"{name} must be positive.", context={"variable": name, "value": raw})
    return value
