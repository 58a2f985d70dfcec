"""Structured logging and observability helpers."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, TextIO


@dataclass(slots=True)
class StructuredLogger:
    """Collects build events and optionally echoes them as readable progress lines."""

    records: list[dict[str, Any]] = field(default_factory=list)
    stream: TextIO | None = None

    def log(
        self,
        *,
        operation: str,
        target: str | None,
        phase: str | None,
        component: str | None,
        message: str,
        level: str = "info",
        extra: dict[str, Any] | None = None,
    ) -> None:
        record: dict[str, Any] = {
            "level": level,
            "operation": operation,
            "target": target,
            "phase": phase,
            "component": component,
            "message": message,
        }
        if extra is not None:
            record["extra"] = extra
        self.records.append(record)
        if self.stream is not None:
            self.stream.write(_render(record) + "\n")
            self.stream.flush()

    def records_for_target(self, target: str) -> list[dict[str, Any]]:
        return [record for record in self.records if record.get("target") == target]

    def to_json_lines(self, path: str | Path) -> Path:
        output_path = Path(path)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        lines = [json.dumps(record, sort_keys=True) for record in self.records]
        output_path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return output_path


def _render(record: dict[str, Any]) -> str:
    prefix = f"[{record['target']}]" if record.get("target") else "[rocksbuild]"
    if record.get("component"):
        prefix = f"{prefix}[{record['component']}]"
    line = f"{prefix} {record['message']}"
    if record["level"] != "info":
        line = f"{record['level'].upper()}: {line}"
    return line
