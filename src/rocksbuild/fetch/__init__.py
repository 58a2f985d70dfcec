"""Checksum-verified source retrieval."""

from .http import fetch, file_sha256

__all__ = ["fetch", "file_sha256"]
