"""Toolchain resolution for every supported target family."""

from .base import ResolveContext, ToolchainStrategy
from .resolver import resolve_toolchain, strategies_for

__all__ = ["ResolveContext", "ToolchainStrategy", "resolve_toolchain", "strategies_for"]
