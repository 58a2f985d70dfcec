"""Typed interfaces shared by the dependency and storage-engine builders."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal, Protocol

from rocksbuild.cmake import CMakeTool
from rocksbuild.models import BuildLayout, DependencySpec, HostInfo, TargetConfig, Toolchain
from rocksbuild.observability import StructuredLogger
from rocksbuild.policy import Policy
from rocksbuild.runner import CommandRunner
from rocksbuild.settings import BuildSettings

StepStatus = Literal["built", "skipped"]


@dataclass
class BuildContext:
    """Everything a build step needs for one target.

    The toolchain and CMake are looked up on first use so that a target whose
    artifacts already exist never touches either.
    """

    target: TargetConfig
    layout: BuildLayout
    settings: BuildSettings
    host: HostInfo
    runner: CommandRunner
    logger: StructuredLogger
    toolchain_resolver: Callable[[TargetConfig], Toolchain]
    cmake_provider: Callable[[], CMakeTool]
    policy: Policy = field(default_factory=Policy)
    _toolchain: Toolchain | None = field(default=None, init=False, repr=False)

    @property
    def lib_dir(self) -> Path:
        return self.layout.lib_dir(self.target)

    @property
    def work_dir(self) -> Path:
        return self.layout.work_dir(self.target)

    @property
    def resolved_toolchain(self) -> Toolchain | None:
        return self._toolchain

    def toolchain(self) -> Toolchain:
        if self._toolchain is None:
            self._toolchain = self.toolchain_resolver(self.target)
            self.log(
                f"Using {self._toolchain.cc} ({self._toolchain.source})",
                phase="toolchain",
                component="toolchain",
            )
        return self._toolchain

    def cmake(self) -> CMakeTool:
        return self.cmake_provider()

    def log(
        self,
        message: str,
        *,
        phase: str,
        component: str | None = None,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        self.logger.log(
            operation="build",
            target=self.target.id,
            phase=phase,
            component=component,
            message=message,
            level=level,
            extra=extra,
        )


@dataclass(frozen=True, slots=True)
class DependencyArtifact:
    name: str
    status: StepStatus
    library_path: Path
    metadata_path: Path | None = None


class DependencyRecipe(Protocol):
    name: str

    def build(self, ctx: BuildContext, spec: DependencySpec, source_dir: Path) -> Path:
        """Compile ``source_dir`` and return the path of the produced static library."""
