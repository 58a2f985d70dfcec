"""Blocking external-process execution for native build steps."""

from __future__ import annotations

import shlex
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Protocol

from rocksbuild.errors import NativeBuildError
from rocksbuild.observability import StructuredLogger

LOG_TAIL_LINES = 400


@dataclass(frozen=True, slots=True)
class CommandResult:
    argv: tuple[str, ...]
    returncode: int
    output: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


class CommandRunner(Protocol):
    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        log_path: Path | None = None,
        check: bool = True,
    ) -> CommandResult:
        """Run ``argv`` to completion and return its combined output."""


@dataclass(slots=True)
class SubprocessRunner:
    base_env: Mapping[str, str] = field(default_factory=dict)
    logger: StructuredLogger | None = None
    tail_lines: int = LOG_TAIL_LINES

    def run(
        self,
        argv: Sequence[str],
        *,
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        log_path: Path | None = None,
        check: bool = True,
    ) -> CommandResult:
        command = tuple(str(arg) for arg in argv)
        merged_env = {**self.base_env, **(env or {})}
        if self.logger is not None:
            self.logger.log(
                operation="run",
                target=None,
                phase=None,
                component=None,
                message=shlex.join(command),
                level="debug",
                extra={"cwd": str(cwd) if cwd is not None else None},
            )
        if cwd is not None and not Path(cwd).is_dir():
            raise NativeBuildError(
                f"Working directory not found: {cwd}",
                context={"command": shlex.join(command), "cwd": str(cwd)},
            )
        try:
            completed = subprocess.run(
                command,
                cwd=str(cwd) if cwd is not None else None,
                env=merged_env or None,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                text=True,
                errors="replace",
                check=False,
            )
        except FileNotFoundError as exc:
            raise NativeBuildError(
                f"Executable not found: {command[0]}",
                hint="Install the tool or make sure it is on PATH.",
                context={"command": shlex.join(command)},
            ) from exc
        except OSError as exc:
            raise NativeBuildError(
                f"Cannot execute {command[0]}: {exc.strerror or exc}",
                hint="Check that the tool is executable.",
                context={"command": shlex.join(command), "errno": str(exc.errno)},
            ) from exc

        output = completed.stdout or ""
        if log_path is not None:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            log_path.write_text(output, encoding="utf-8")

        result = CommandResult(argv=command, returncode=completed.returncode, output=output)
        if check and not result.ok:
            raise NativeBuildError(
                f"Command failed: {Path(command[0]).name}",
                hint="Inspect the build output below.",
                context={
                    "command": shlex.join(command),
                    "cwd": str(cwd) if cwd is not None else "",
                    "returncode": str(result.returncode),
                    "log": str(log_path) if log_path is not None else "",
                },
                log_tail=tail_text(output, self.tail_lines),
            )
        return result


def tail_text(text: str, lines: int = LOG_TAIL_LINES) -> str:
    return "\n".join(text.splitlines()[-lines:])
