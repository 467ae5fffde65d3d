from __future__ import annotations

import datetime as dt
from typing import Iterable

from .models import CommitRecord

SECONDS_PER_DAY = 86_400


def latest_timestamp(commits: Iterable[CommitRecord]) -> int | None:
    latest: int | None = None
    for c in commits:
        if latest is None or c.timestamp > latest:
            latest = c.timestamp
    return latest


def filter_window(commits: Iterable[CommitRecord], days: int, *, latest: int | None = None) -> list[CommitRecord]:
    """
    Keep commits no more than `days` days older than the latest commit.

    The window is anchored to the newest commit in `commits` (not to the
    wall clock) and the boundary is inclusive. Pass `latest` when it has
    already been computed over the same set.
    """
    if days < 0:
        raise ValueError(f"days must be non-negative, got {days}")
    items = list(commits)
    if latest is None:
        latest = latest_timestamp(items)
    if latest is None:
        return []
    span = days * SECONDS_PER_DAY
    return [c for c in items if latest - c.timestamp <= span]


def commit_date(timestamp: int) -> str:
    d = dt.datetime.fromtimestamp(timestamp, tz=dt.timezone.utc)
    return d.strftime("%Y/%m/%d")


def timestamp_iso(timestamp: int | None) -> str | None:
    if timestamp is None:
        return None
    d = dt.datetime.fromtimestamp(timestamp, tz=dt.timezone.utc)
    return d.isoformat().replace("+00:00", "Z")
