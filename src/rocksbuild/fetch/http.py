"""Integrity-enforced HTTP/file fetch implementation."""

from __future__ import annotations

import hashlib
import os
from pathlib import Path
from urllib.error import URLError
from urllib.request import urlopen

from rocksbuild.errors import IntegrityError, NativeBuildError, ValidationError
from rocksbuild.policy import Policy, ensure_network_allowed

_CHUNK_SIZE = 1024 * 1024


def fetch(
    url: str,
    *,
    sha256: str,
    destination: str | Path,
    policy: Policy | None = None,
) -> Path:
    """Download ``url`` to ``destination`` and refuse content that fails the pinned digest.

    An existing file at ``destination`` is reused without touching the network
    as long as its digest still matches.
    """
    if not sha256 and (policy is None or policy.require_integrity):
        raise ValidationError(
            "fetch() requires a sha256 value.",
            hint="Pin the download with its SHA-256 digest.",
            context={"operation": "fetch", "url": url},
        )
    artifact_path = Path(destination)
    artifact_path.parent.mkdir(parents=True, exist_ok=True)

    if artifact_path.exists():
        if sha256:
            _assert_hash_matches(artifact_path, expected_sha256=sha256)
        return artifact_path

    if policy is not None:
        ensure_network_allowed(policy=policy, operation="fetch", url=url)

    try:
        with urlopen(url) as response:  # noqa: S310 - integrity check is mandatory below
            payload = response.read()
    except (URLError, OSError) as exc:
        raise NativeBuildError(
            f"Error downloading {artifact_path.name}.",
            hint="Check network access or override the download base URL.",
            context={"operation": "fetch", "url": url, "reason": str(exc)},
        ) from exc

    actual_sha256 = hashlib.sha256(payload).hexdigest()
    if sha256 and actual_sha256 != sha256:
        raise IntegrityError(
            f"{artifact_path.name} checksum mismatch.",
            hint="Update the expected hash or source URL to a trusted immutable artifact.",
            context={"operation": "fetch", "url": url, "expected": sha256, "actual": actual_sha256},
        )

    temp_path = artifact_path.with_name(artifact_path.name + ".tmp")
    temp_path.write_bytes(payload)
    os.replace(temp_path, artifact_path)
    return artifact_path


def file_sha256(path: str | Path) -> str:
    digest = hashlib.sha256()
    with Path(path).open("rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _assert_hash_matches(path: Path, *, expected_sha256: str) -> None:
    actual_sha256 = file_sha256(path)
    if actual_sha256 != expected_sha256:
        raise IntegrityError(
            "Cached download hash mismatch.",
            hint="Delete the cached file and refetch from a trusted source.",
            context={
                "operation": "fetch",
                "path": str(path),
                "expected": expected_sha256,
                "actual": actual_sha256,
            },
        )
