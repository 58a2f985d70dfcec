"""Typed interfaces shared by toolchain resolution strategies."""

from __future__ import annotations

import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from rocksbuild.models import HostInfo, TargetConfig, Toolchain
from rocksbuild.runner import CommandRunner
from rocksbuild.settings import BuildSettings


@dataclass(frozen=True, slots=True)
class ResolveContext:
    target: TargetConfig
    settings: BuildSettings
    host: HostInfo
    runner: CommandRunner

    def which(self, name: str) -> str | None:
        return shutil.which(name, path=self.settings.search_path)


class ToolchainStrategy(Protocol):
    name: str

    def resolve(self, ctx: ResolveContext) -> Toolchain | None:
        """Return a toolchain for ``ctx.target`` or ``None`` when this strategy does not apply."""


def latest_directory(parent: Path, pattern: str) -> Path | None:
    if not parent.is_dir():
        return None
    matches = sorted(path for path in parent.glob(pattern) if path.is_dir())
    return matches[-1] if matches else None


def first_program(ctx: ResolveContext, *names: str) -> str | None:
    for name in names:
        found = ctx.which(name)
        if found is not None:
            return found
    return None
