from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Sequence

from .backend import Backend, BranchRef, Repository
from .identity import IDENTITY_ID_OR_AUTHOR_TIME, CommitSet
from .models import CommitRecord


def walk_branch(backend: Backend, repo: Repository, branch: BranchRef) -> list[CommitRecord]:
    """Walk one branch from its tip and return every reachable commit, tip first."""
    head = backend.resolve_head(repo, branch)
    return [backend.load_commit(repo, commit_id) for commit_id in backend.walk(repo, head)]


def collect_commits(
    backend: Backend,
    repo: Repository,
    branches: Sequence[BranchRef],
    *,
    identity: str = IDENTITY_ID_OR_AUTHOR_TIME,
    jobs: int = 1,
    progress: Callable[[str], None] | None = None,
) -> CommitSet:
    """
    Walk every branch into one CommitSet.

    Walks may run concurrently, but their records are inserted only after
    every walk has finished and always in `branches` order, so which record
    survives an identity clash does not depend on thread timing. The first
    backend error is re-raised and no partial set is returned.
    """
    commits = CommitSet(identity=identity)
    if not branches:
        return commits

    if jobs <= 1 or len(branches) == 1:
        walked = [walk_branch(backend, repo, branch) for branch in branches]
    else:
        with ThreadPoolExecutor(max_workers=min(jobs, len(branches))) as ex:
            futs = [ex.submit(walk_branch, backend, repo, branch) for branch in branches]
            try:
                walked = [fut.result() for fut in futs]
            except BaseException:
                for f in futs:
                    f.cancel()
                raise

    for branch, records in zip(branches, walked):
        for r in records:
            commits.add(r)
        if progress is not None:
            progress(f"Walked {branch.short_name}: {len(records)} commits")
    return commits
