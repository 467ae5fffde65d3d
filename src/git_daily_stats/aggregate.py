from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Iterable

from .backend import Backend, Repository
from .models import CommitRecord, DiffStats, ReportModel
from .window import commit_date


class AggregationContext:
    """
    Shared date -> author accumulator for one run.

    Folds from concurrent workers are serialized per (date, author) bucket;
    the bucket lookup itself is guarded by a short global lock.
    """

    def __init__(self, report: ReportModel | None = None) -> None:
        self.report = report if report is not None else ReportModel()
        self._lock = threading.Lock()
        self._bucket_locks: dict[tuple[str, str], threading.Lock] = {}

    def _bucket_lock(self, key: tuple[str, str]) -> threading.Lock:
        with self._lock:
            lock = self._bucket_locks.get(key)
            if lock is None:
                lock = threading.Lock()
                self._bucket_locks[key] = lock
            return lock

    def fold(self, commit: CommitRecord, stats: DiffStats) -> None:
        date = commit_date(commit.timestamp)
        with self._lock:
            ls = self.report.bucket(date).author_stats(commit.author)
        with self._bucket_lock((date, commit.author)):
            ls.commits += 1
            ls.lines_added += stats.insertions
            ls.lines_removed += stats.deletions


def fold_commit(backend: Backend, repo: Repository, commit: CommitRecord, ctx: AggregationContext) -> bool:
    # Merges and root commits carry no single-parent diff.
    if commit.parent_count != 1:
        return False
    stats = backend.diff_stats(repo, commit.id, commit.parent_ids[0])
    ctx.fold(commit, stats)
    return True


def aggregate_stats(
    backend: Backend,
    repo: Repository,
    commits: Iterable[CommitRecord],
    *,
    jobs: int = 1,
    ctx: AggregationContext | None = None,
) -> ReportModel:
    if ctx is None:
        ctx = AggregationContext()
    candidates = [c for c in commits if c.parent_count == 1]

    if jobs <= 1 or len(candidates) <= 1:
        for c in candidates:
            fold_commit(backend, repo, c, ctx)
        return ctx.report

    with ThreadPoolExecutor(max_workers=jobs) as ex:
        futs = [ex.submit(fold_commit, backend, repo, c, ctx) for c in candidates]
        try:
            for fut in as_completed(futs):
                fut.result()
        except BaseException:
            for f in futs:
                f.cancel()
            raise
    return ctx.report
