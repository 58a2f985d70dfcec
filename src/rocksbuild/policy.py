"""Policy configuration and enforcement helpers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from rocksbuild.errors import PolicyError

NetworkMode = Literal["online", "offline"]


@dataclass(frozen=True, slots=True)
class Policy:
    require_integrity: bool = True
    network_mode: NetworkMode = "online"


def ensure_network_allowed(*, policy: Policy, operation: str, url: str = "") -> None:
    if policy.network_mode == "offline":
        raise PolicyError(
            "Network operations are disabled by policy.",
            hint="Pre-populate the download cache or drop --offline for this run.",
            context={"operation": operation, "url": url},
        )
