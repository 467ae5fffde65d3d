from __future__ import annotations

import os
import subprocess
import threading
from pathlib import Path
from typing import Iterator

import pytest

from git_daily_stats.backend import BranchRef, Repository
from git_daily_stats.errors import CommitReadError, RepositoryNotFound, WalkerInitError
from git_daily_stats.models import CommitRecord, DiffStats

DAY = 86_400
# 2024-01-02T00:00:00Z
D = 1_704_153_600


class FakeBackend:
    def __init__(
        self,
        commits: list[CommitRecord],
        branches: dict[str, str],
        diffs: dict[str, DiffStats] | None = None,
        *,
        path: Path = Path("/fake/repo"),
    ) -> None:
        self.commits = {c.id: c for c in commits}
        self.branches = dict(branches)
        self.diffs = dict(diffs or {})
        self.path = path
        self.unresolvable: set[str] = set()
        self.unreadable: set[str] = set()
        self.diff_calls: list[tuple[str, str]] = []
        self.closed = False
        self._lock = threading.Lock()

    def open(self, path: Path) -> Repository:
        if Path(path) != self.path:
            raise RepositoryNotFound(f"Could not find repository: {path}")
        return Repository(path=self.path)

    def close(self, repo: Repository) -> None:
        self.closed = True

    def list_branches(self, repo: Repository) -> list[BranchRef]:
        return [BranchRef(name=name) for name in self.branches]

    def resolve_head(self, repo: Repository, branch: BranchRef) -> str:
        if branch.name in self.unresolvable:
            raise WalkerInitError(f"Could not resolve head of branch {branch.short_name}")
        return self.branches[branch.name]

    def walk(self, repo: Repository, start_id: str) -> Iterator[str]:
        seen: set[str] = set()
        stack = [start_id]
        while stack:
            cid = stack.pop()
            if cid in seen:
                continue
            seen.add(cid)
            yield cid
            c = self.commits.get(cid)
            if c is not None:
                stack.extend(c.parent_ids)

    def load_commit(self, repo: Repository, commit_id: str) -> CommitRecord:
        if commit_id in self.unreadable or commit_id not in self.commits:
            raise CommitReadError(f"Could not read commit {commit_id}")
        return self.commits[commit_id]

    def diff_stats(self, repo: Repository, commit_id: str, parent_id: str) -> DiffStats:
        with self._lock:
            self.diff_calls.append((commit_id, parent_id))
        return self.diffs.get(commit_id, DiffStats())


def commit(cid: str, author: str, ts: int, *parents: str) -> CommitRecord:
    return CommitRecord(id=cid, author=author, timestamp=ts, parent_ids=tuple(parents))


@pytest.fixture
def linear_backend() -> FakeBackend:
    # C1 (root, day D) -> C2 (A, +10/-2, day D) -> C3 (B, +5/-1, day D+1)
    commits = [
        commit("c1", "A", D + 100),
        commit("c2", "A", D + 200, "c1"),
        commit("c3", "B", D + DAY + 300, "c2"),
    ]
    diffs = {"c2": DiffStats(10, 2), "c3": DiffStats(5, 1)}
    return FakeBackend(commits, {"refs/heads/main": "c3"}, diffs)


@pytest.fixture
def forked_backend() -> FakeBackend:
    # main and feature share c1..c2, then diverge at c3a (A) and c3b (B) on the same day.
    commits = [
        commit("c1", "A", D + 100),
        commit("c2", "A", D + 200, "c1"),
        commit("c3a", "A", D + 300, "c2"),
        commit("c3b", "B", D + 400, "c2"),
    ]
    diffs = {"c2": DiffStats(3, 0), "c3a": DiffStats(7, 1), "c3b": DiffStats(2, 2)}
    branches = {"refs/heads/main": "c3a", "refs/heads/feature": "c3b", "refs/remotes/origin/main": "c3a"}
    return FakeBackend(commits, branches, diffs)


def run_cmd(cmd: list[str], *, cwd: Path, env: dict[str, str] | None = None) -> str:
    proc = subprocess.run(cmd, cwd=str(cwd), env=env, check=True, capture_output=True, text=True)
    return proc.stdout


def init_repo(repo: Path) -> None:
    repo.mkdir(parents=True, exist_ok=True)
    run_cmd(["git", "init", "-q"], cwd=repo)
    run_cmd(["git", "symbolic-ref", "HEAD", "refs/heads/main"], cwd=repo)
    run_cmd(["git", "config", "user.name", "Repo User"], cwd=repo)
    run_cmd(["git", "config", "user.email", "repo@example.com"], cwd=repo)
    run_cmd(["git", "config", "commit.gpgsign", "false"], cwd=repo)


def commit_files(*, repo: Path, files: dict[str, str | bytes], author: str, ts: int, message: str = "") -> str:
    for name, content in files.items():
        p = repo / name
        p.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            p.write_bytes(content)
        else:
            p.write_text(content, encoding="utf-8")
        run_cmd(["git", "add", name], cwd=repo)
    env = os.environ.copy()
    env["GIT_AUTHOR_NAME"] = author
    env["GIT_AUTHOR_EMAIL"] = f"{author.lower()}@example.com"
    env["GIT_COMMITTER_NAME"] = author
    env["GIT_COMMITTER_EMAIL"] = f"{author.lower()}@example.com"
    env["GIT_AUTHOR_DATE"] = f"{ts} +0000"
    env["GIT_COMMITTER_DATE"] = f"{ts} +0000"
    run_cmd(["git", "commit", "-q", "--allow-empty", "-m", message or f"commit by {author}"], cwd=repo, env=env)
    return run_cmd(["git", "rev-parse", "HEAD"], cwd=repo).strip()


def _lines(prefix: str, n: int) -> str:
    return "".join(f"{prefix}{i}\n" for i in range(n))


@pytest.fixture
def scenario_repo(tmp_path: Path) -> Path:
    """C1 (root, day D) -> C2 (A, +10/-2, day D) -> C3 (B, +5/-1, day D+1) on main."""
    repo = tmp_path / "repo"
    init_repo(repo)
    commit_files(repo=repo, files={"a.txt": _lines("old", 2)}, author="A", ts=D + 100)
    commit_files(repo=repo, files={"a.txt": _lines("x", 10)}, author="A", ts=D + 200)
    commit_files(repo=repo, files={"a.txt": _lines("x", 9), "b.txt": _lines("b", 5)}, author="B", ts=D + DAY + 300)
    return repo
