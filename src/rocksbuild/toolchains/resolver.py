"""Ordered strategy chain that turns a target into a usable toolchain."""

from __future__ import annotations

from collections.abc import Sequence

from rocksbuild.errors import ToolchainNotFoundError
from rocksbuild.models import HostInfo, TargetConfig, Toolchain
from rocksbuild.runner import CommandRunner
from rocksbuild.settings import BuildSettings
from rocksbuild.toolchains.android import AndroidNdkStrategy
from rocksbuild.toolchains.apple import XcrunStrategy
from rocksbuild.toolchains.base import ResolveContext, ToolchainStrategy
from rocksbuild.toolchains.environment import EnvironmentOverride
from rocksbuild.toolchains.linux import GnuPathStrategy, KonanGccStrategy
from rocksbuild.toolchains.mingw import MingwStrategy

_HINTS = {
    "linux": "Install gcc/g++ (or aarch64-linux-gnu-gcc for arm64), or set CC and CXX.",
    "mingw": "Put a MinGW-w64 toolchain on PATH or point LLVM_MINGW_ROOT at llvm-mingw.",
    "android": "Set ANDROID_NDK_ROOT (or ANDROID_NDK_HOME) to an installed NDK.",
    "apple": "Install Xcode and its command line tools.",
}


def strategies_for(target: TargetConfig) -> Sequence[ToolchainStrategy]:
    if target.platform == "linux":
        return (EnvironmentOverride(), GnuPathStrategy(), KonanGccStrategy())
    if target.platform == "mingw":
        return (MingwStrategy(),)
    if target.platform == "android":
        return (AndroidNdkStrategy(),)
    return (XcrunStrategy(),)


def resolve_toolchain(
    target: TargetConfig,
    *,
    settings: BuildSettings,
    host: HostInfo,
    runner: CommandRunner,
    strategies: Sequence[ToolchainStrategy] | None = None,
) -> Toolchain:
    """Return the first toolchain produced by the strategy chain for ``target``."""
    ctx = ResolveContext(target=target, settings=settings, host=host, runner=runner)
    chain = strategies if strategies is not None else strategies_for(target)
    for strategy in chain:
        toolchain = strategy.resolve(ctx)
        if toolchain is not None:
            return toolchain
    family = "apple" if target.is_apple else target.platform
    raise ToolchainNotFoundError(
        f"No toolchain found for {target.id}.",
        hint=_HINTS.get(family),
        context={
            "target": target.id,
            "host": host.platform,
            "tried": ",".join(strategy.name for strategy in chain),
        },
    )
