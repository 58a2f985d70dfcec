"""Per-target build reports and their JSON/CBOR export."""

from __future__ import annotations

import hashlib
import json
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Literal

import cbor2

from rocksbuild.errors import RocksBuildError
from rocksbuild.models import DependencySpec, TargetConfig, Toolchain

TargetStatus = Literal["succeeded", "failed"]


def config_digest(
    target: TargetConfig,
    toolchain: Toolchain | None,
    dependencies: Sequence[DependencySpec] = (),
) -> str:
    """SHA-256 over the canonical CBOR encoding of everything that shapes the build."""
    payload = {
        "target": target.to_payload(),
        "toolchain": toolchain.to_payload() if toolchain is not None else None,
        "dependencies": [
            {"name": spec.name, "version": spec.version, "sha256": spec.sha256}
            for spec in dependencies
        ],
    }
    return hashlib.sha256(cbor2.dumps(payload, canonical=True)).hexdigest()


@dataclass(frozen=True, slots=True)
class TargetReport:
    target: str
    status: TargetStatus
    dependencies_built: tuple[str, ...] = ()
    dependencies_skipped: tuple[str, ...] = ()
    engine: str | None = None
    archive: str | None = None
    archive_sha256: str | None = None
    toolchain_source: str | None = None
    config_digest: str | None = None
    error: dict[str, Any] | None = None
    schema_version: int = 1

    @property
    def ok(self) -> bool:
        return self.status == "succeeded"

    def to_json(self, path: str | Path | None = None) -> str:
        encoded = json.dumps(self._payload(), indent=2, sort_keys=True) + "\n"
        if path is not None:
            _write(Path(path), encoded.encode("utf-8"))
        return encoded

    def to_cbor(self, path: str | Path | None = None) -> bytes:
        encoded = cbor2.dumps(self._payload(), canonical=True)
        if path is not None:
            _write(Path(path), encoded)
        return encoded

    @classmethod
    def from_json(cls, path: str | Path) -> TargetReport:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        return cls(
            target=payload["target"],
            status=payload["status"],
            dependencies_built=tuple(payload.get("dependencies_built", ())),
            dependencies_skipped=tuple(payload.get("dependencies_skipped", ())),
            engine=payload.get("engine"),
            archive=payload.get("archive"),
            archive_sha256=payload.get("archive_sha256"),
            toolchain_source=payload.get("toolchain_source"),
            config_digest=payload.get("config_digest"),
            error=payload.get("error"),
            schema_version=payload.get("schema_version", 1),
        )

    def _payload(self) -> dict[str, Any]:
        return {
            "schema_version": self.schema_version,
            "target": self.target,
            "status": self.status,
            "dependencies_built": list(self.dependencies_built),
            "dependencies_skipped": list(self.dependencies_skipped),
            "engine": self.engine,
            "archive": self.archive,
            "archive_sha256": self.archive_sha256,
            "toolchain_source": self.toolchain_source,
            "config_digest": self.config_digest,
            "error": self.error,
        }


@dataclass(frozen=True, slots=True)
class BuildResult:
    reports: tuple[TargetReport, ...] = ()
    errors: tuple[RocksBuildError, ...] = field(default=(), repr=False)

    @property
    def ok(self) -> bool:
        return all(report.ok for report in self.reports)

    @property
    def failures(self) -> tuple[TargetReport, ...]:
        return tuple(report for report in self.reports if not report.ok)

    def raise_for_failure(self) -> None:
        if self.errors:
            raise self.errors[0]


def _write(path: Path, payload: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(payload)
