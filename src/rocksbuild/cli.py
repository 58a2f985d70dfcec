"""Command-line entrypoint.

Usage:
    rocksbuild [CONFIG ...]
    rocksbuild --list
    rocksbuild --offline --keep-going linuxX64 mingwX64
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from pathlib import Path

from rocksbuild.errors import RocksBuildError
from rocksbuild.observability import StructuredLogger
from rocksbuild.orchestrator import Orchestrator
from rocksbuild.policy import Policy
from rocksbuild.settings import BuildSettings
from rocksbuild.targets import describe_targets


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rocksbuild",
        description="Cross-compile RocksDB and its compression libraries into per-target archives.",
    )
    parser.add_argument("configs", nargs="*", metavar="CONFIG", help="Target ids to build")
    parser.add_argument("--list", action="store_true", help="List available configurations and exit")
    parser.add_argument(
        "--project-root",
        type=Path,
        default=Path.cwd(),
        help="Directory containing rocksdb/ and build/ (default: current directory)",
    )
    parser.add_argument("--jobs", type=_positive_int, default=None, help="Parallel build jobs")
    parser.add_argument("--offline", action="store_true", help="Refuse all network downloads")
    parser.add_argument(
        "--keep-going", action="store_true", help="Continue with remaining targets after a failure"
    )
    parser.add_argument("--log-json", type=Path, default=None, help="Write build events as JSON lines")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    if args.list:
        print("Available configurations:")
        for line in describe_targets():
            print(line)
        return 0

    logger = StructuredLogger(stream=sys.stderr)
    try:
        settings = BuildSettings.from_environ(jobs=args.jobs)
        orchestrator = Orchestrator.from_environment(
            args.project_root,
            settings=settings,
            logger=logger,
            policy=Policy(network_mode="offline" if args.offline else "online"),
            keep_going=args.keep_going,
        )
        result = orchestrator.run(args.configs)
    except RocksBuildError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    finally:
        if args.log_json is not None:
            logger.to_json_lines(args.log_json)

    if not result.ok:
        failed = ", ".join(report.target for report in result.failures)
        print(f"Build failed for: {failed}", file=sys.stderr)
        return 1
    print("Build completed successfully.", file=sys.stderr)
    return 0


def _positive_int(raw: str) -> int:
    try:
        value = int(raw)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid integer: {raw}") from None
    if value < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return value


if __name__ == "__main__":
    raise SystemExit(main())
