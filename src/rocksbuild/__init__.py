"""Public package entrypoint for the RocksDB cross-compilation build."""

from .errors import (
    IntegrityError,
    NativeBuildError,
    PackagingError,
    PolicyError,
    RocksBuildError,
    ToolchainNotFoundError,
    ValidationError,
)
from .models import BuildLayout, DependencySpec, HostInfo, TargetConfig, Toolchain
from .orchestrator import Orchestrator
from .packager import PackageResult, package_target
from .policy import Policy
from .report import BuildResult, TargetReport
from .settings import BuildSettings
from .targets import TARGETS, select_targets
from .toolchains import resolve_toolchain

__all__ = [
    "BuildLayout",
    "BuildResult",
    "BuildSettings",
    "DependencySpec",
    "HostInfo",
    "IntegrityError",
    "NativeBuildError",
    "Orchestrator",
    "PackageResult",
    "PackagingError",
    "Policy",
    "PolicyError",
    "RocksBuildError",
    "TARGETS",
    "TargetConfig",
    "TargetReport",
    "Toolchain",
    "ToolchainNotFoundError",
    "ValidationError",
    "package_target",
    "resolve_toolchain",
    "select_targets",
]
