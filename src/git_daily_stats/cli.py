from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import NoReturn

from .identity import IDENTITY_MODES
from .render import FORMATS
from .run import run_report


class UsageError(Exception):
    pass


class _Parser(argparse.ArgumentParser):
    def error(self, message: str) -> NoReturn:
        raise UsageError(message)


def _non_negative_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value!r}")
    if n < 0:
        raise argparse.ArgumentTypeError(f"expected a non-negative integer, got {value!r}")
    return n


def _positive_int(value: str) -> int:
    try:
        n = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    if n < 1:
        raise argparse.ArgumentTypeError(f"expected a positive integer, got {value!r}")
    return n


def _build_parser() -> argparse.ArgumentParser:
    parser = _Parser(prog="git-daily-stats", description="Prints daily code line stats per author.")
    parser.add_argument("path", type=Path, help="Path to repo.")
    parser.add_argument("days", type=_non_negative_int, help="Number of trailing days to print, counted back from the latest commit.")
    parser.add_argument("--format", choices=list(FORMATS), default=None, help="Output format (default: text).")
    parser.add_argument("--output", type=Path, default=None, help="Write the report to this file instead of stdout.")
    parser.add_argument("--jobs", type=_positive_int, default=None, help="Parallel git jobs (default: min(8, cpu count)).")
    parser.add_argument(
        "--identity",
        choices=list(IDENTITY_MODES),
        default=None,
        help="How commits seen on several branches are matched (default: id-or-author-time).",
    )
    parser.add_argument("--config", type=Path, default=None, help="Path to a JSON config file (default: ./git-daily-stats.json if present).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Print progress to stderr.")
    return parser


def main(argv: list[str] | None = None) -> int:
    if argv is None:
        argv = sys.argv[1:]

    parser = _build_parser()
    try:
        args = parser.parse_args(argv)
    except UsageError as e:
        parser.print_usage(sys.stderr)
        print(f"{parser.prog}: error: {e}", file=sys.stderr)
        return 1
    return run_report(args=args)


if __name__ == "__main__":
    raise SystemExit(main())
