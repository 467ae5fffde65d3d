from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable

from .aggregate import AggregationContext, aggregate_stats
from .backend import Backend
from .collect import collect_commits
from .config import DEFAULT_CONFIG_NAME, Settings, load_config, resolve_settings
from .errors import GitStatsError
from .git import GitBackend
from .models import ReportModel
from .render import render
from .window import filter_window, latest_timestamp, timestamp_iso
from .write import write_output


def build_report(
    backend: Backend,
    path: Path,
    days: int,
    *,
    settings: Settings = Settings(),
    progress: Callable[[str], None] | None = None,
) -> ReportModel:
    def note(msg: str) -> None:
        if progress is not None:
            progress(msg)

    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")

    repo = backend.open(path)
    try:
        branches = backend.list_branches(repo)
        note(f"Found {len(branches)} branches in {repo.path}")

        # Phase 1: every branch is walked before anything is filtered.
        commits = collect_commits(
            backend,
            repo,
            branches,
            identity=settings.identity,
            jobs=settings.jobs,
            progress=progress,
        )
        latest = latest_timestamp(commits)
        note(f"Collected {len(commits)} unique commits; latest at {timestamp_iso(latest) or 'n/a'}")

        # Phase 2: window and aggregate against the repository-wide latest commit.
        in_window = filter_window(commits, days, latest=latest)
        note(f"{len(in_window)} commits within {days} days of the latest commit")

        ctx = AggregationContext(ReportModel(latest_timestamp=latest, days=days))
        return aggregate_stats(backend, repo, in_window, jobs=settings.jobs, ctx=ctx)
    finally:
        backend.close(repo)


def _stderr_progress(msg: str) -> None:
    print(msg, file=sys.stderr)


def run_report(*, args: argparse.Namespace, backend: Backend | None = None) -> int:
    config_path: Path = args.config if args.config is not None else Path(DEFAULT_CONFIG_NAME)
    try:
        if args.config is not None and not config_path.exists():
            print(f"error: config file not found: {config_path}", file=sys.stderr)
            return 1
        settings = resolve_settings(args, load_config(config_path))
        if backend is None:
            backend = GitBackend(ref_prefixes=settings.ref_prefixes)
        report = build_report(
            backend,
            Path(args.path),
            int(args.days),
            settings=settings,
            progress=_stderr_progress if args.verbose else None,
        )
        text = render(report, settings.format)
        write_output(text, args.output)
    except GitStatsError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"error: {e}", file=sys.stderr)
        return 1

    if args.verbose and args.output is not None:
        _stderr_progress(f"Done. Report in: {args.output}")
    return 0
