"""Compiler wrapper scripts that drop selected flags before exec'ing the real compiler."""

from __future__ import annotations

import shlex
from collections.abc import Sequence
from pathlib import Path

SHORTEN_64_TO_32_FLAGS = ("-Wshorten-64-to-32", "-Werror=shorten-64-to-32")


def render_flag_filter(real_binary: str, filtered_flags: Sequence[str]) -> str:
    lines = [
        "#!/usr/bin/env bash",
        "set -euo pipefail",
        "args=()",
        'for arg in "$@"; do',
    ]
    if filtered_flags:
        pattern = "|".join(shlex.quote(flag) for flag in filtered_flags)
        lines.extend(
            (
                '  case "$arg" in',
                f"    {pattern})",
                "      continue",
                "      ;;",
                "  esac",
            )
        )
    lines.extend(
        (
            '  args+=("$arg")',
            "done",
            f'exec {shlex.quote(real_binary)} "${{args[@]}}"',
        )
    )
    return "\n".join(lines) + "\n"


def create_flag_filter_wrapper(
    output_path: Path, real_binary: str, filtered_flags: Sequence[str]
) -> Path:
    output_path.parent.mkdir(parents=True, exist_ok=True)
    output_path.write_text(render_flag_filter(real_binary, filtered_flags), encoding="utf-8")
    output_path.chmod(0o755)
    return output_path


def wrap_compilers(wrapper_dir: Path, *, cc: str, cxx: str) -> tuple[str, str]:
    """Install shorten-64-to-32 filtering wrappers and return their paths as ``(cc, cxx)``."""
    cc_wrapper = create_flag_filter_wrapper(wrapper_dir / "cc", cc, SHORTEN_64_TO_32_FLAGS)
    cxx_wrapper = create_flag_filter_wrapper(wrapper_dir / "cxx", cxx, SHORTEN_64_TO_32_FLAGS)
    return str(cc_wrapper), str(cxx_wrapper)
