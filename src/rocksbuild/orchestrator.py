"""Top-level driver: validate targets, then dependencies, engine and package per target."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field
from pathlib import Path

from rocksbuild.builders import BuildContext, DependencyBuilder, RocksDBBuilder
from rocksbuild.cmake import CMakeTool, ensure_cmake
from rocksbuild.dependencies import resolve_dependencies
from rocksbuild.errors import RocksBuildError
from rocksbuild.headers import prepare_headers
from rocksbuild.models import BuildLayout, DependencySpec, HostInfo, TargetConfig, Toolchain
from rocksbuild.observability import StructuredLogger
from rocksbuild.packager import package_target
from rocksbuild.policy import Policy
from rocksbuild.report import BuildResult, TargetReport, config_digest
from rocksbuild.runner import CommandRunner, SubprocessRunner
from rocksbuild.settings import BuildSettings
from rocksbuild.targets import detect_host, select_targets
from rocksbuild.toolchains import resolve_toolchain


@dataclass(slots=True)
class Orchestrator:
    """Runs one invocation of the build over a set of target ids.

    Every requested id is validated against the target table and the current
    host before any build step runs. Targets are then built one after another;
    by default the first failure stops the run, while ``keep_going`` records the
    failure and moves on to the next target.
    """

    project_root: Path
    settings: BuildSettings
    host: HostInfo
    logger: StructuredLogger = field(default_factory=StructuredLogger)
    policy: Policy = field(default_factory=Policy)
    runner: CommandRunner | None = None
    keep_going: bool = False
    dependency_builder: DependencyBuilder = field(default_factory=DependencyBuilder)
    engine_builder: RocksDBBuilder = field(default_factory=RocksDBBuilder)
    _cmake: CMakeTool | None = field(default=None, init=False, repr=False)

    @classmethod
    def from_environment(
        cls,
        project_root: str | Path,
        *,
        settings: BuildSettings | None = None,
        logger: StructuredLogger | None = None,
        policy: Policy | None = None,
        keep_going: bool = False,
    ) -> Orchestrator:
        resolved_settings = settings if settings is not None else BuildSettings.from_environ()
        resolved_logger = logger if logger is not None else StructuredLogger()
        return cls(
            project_root=Path(project_root).resolve(),
            settings=resolved_settings,
            host=detect_host(),
            logger=resolved_logger,
            policy=policy if policy is not None else Policy(),
            keep_going=keep_going,
        )

    @property
    def layout(self) -> BuildLayout:
        return BuildLayout(project_root=self.project_root)

    def _runner(self) -> CommandRunner:
        if self.runner is None:
            self.runner = SubprocessRunner(
                base_env={**self.settings.environ, "PATH": self.settings.search_path},
                logger=self.logger,
            )
        return self.runner

    def run(self, requested: Iterable[str] = ()) -> BuildResult:
        targets = select_targets(requested, host=self.host)
        self._log(f"Building configurations: {' '.join(target.id for target in targets)}")
        prepare_headers(self.layout)
        dependencies = resolve_dependencies(self.settings)

        reports: list[TargetReport] = []
        errors: list[RocksBuildError] = []
        for target in targets:
            report, error = self.build_target(target, dependencies)
            reports.append(report)
            if error is None:
                continue
            errors.append(error)
            if not self.keep_going:
                break
        return BuildResult(reports=tuple(reports), errors=tuple(errors))

    def build_target(
        self, target: TargetConfig, dependencies: Sequence[DependencySpec]
    ) -> tuple[TargetReport, RocksBuildError | None]:
        ctx = self._context(target)
        self._log(f"Building configuration: {target.id}", target=target.id)
        built: list[str] = []
        skipped: list[str] = []
        engine: str | None = None
        try:
            for artifact in self.dependency_builder.build_all(ctx, dependencies):
                (built if artifact.status == "built" else skipped).append(artifact.name)
            engine = self.engine_builder.build(ctx).status
            package = package_target(target, self.layout)
        except RocksBuildError as exc:
            self._log(str(exc), target=target.id, level="error", extra=exc.to_dict())
            report = TargetReport(
                target=target.id,
                status="failed",
                dependencies_built=tuple(built),
                dependencies_skipped=tuple(skipped),
                engine=engine,
                toolchain_source=_source(ctx.resolved_toolchain),
                config_digest=config_digest(target, ctx.resolved_toolchain, dependencies),
                error=exc.to_dict(),
            )
            report.to_json(self.layout.report_path(target))
            return report, exc

        self._log(f"Completed {target.id}: {package.archive_path}", target=target.id)
        report = TargetReport(
            target=target.id,
            status="succeeded",
            dependencies_built=tuple(built),
            dependencies_skipped=tuple(skipped),
            engine=engine,
            archive=str(package.archive_path),
            archive_sha256=package.sha256,
            toolchain_source=_source(ctx.resolved_toolchain),
            config_digest=config_digest(target, ctx.resolved_toolchain, dependencies),
        )
        report.to_json(self.layout.report_path(target))
        return report, None

    def cmake(self) -> CMakeTool:
        if self._cmake is None:
            self._cmake = ensure_cmake(
                layout=self.layout,
                host=self.host,
                settings=self.settings,
                runner=self._runner(),
                logger=self.logger,
                policy=self.policy,
            )
            self._log(f"Using CMake {self._cmake.version_string} at {self._cmake.path}")
        return self._cmake

    def _context(self, target: TargetConfig) -> BuildContext:
        runner = self._runner()
        return BuildContext(
            target=target,
            layout=self.layout,
            settings=self.settings,
            host=self.host,
            runner=runner,
            logger=self.logger,
            toolchain_resolver=lambda config: resolve_toolchain(
                config, settings=self.settings, host=self.host, runner=runner
            ),
            cmake_provider=self.cmake,
            policy=self.policy,
        )

    def _log(
        self,
        message: str,
        *,
        target: str | None = None,
        level: str = "info",
        extra: dict[str, object] | None = None,
    ) -> None:
        self.logger.log(
            operation="build",
            target=target,
            phase="orchestrate",
            component=None,
            message=message,
            level=level,
            extra=extra,
        )


def _source(toolchain: Toolchain | None) -> str | None:
    return toolchain.source if toolchain is not None else None
