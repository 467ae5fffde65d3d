from __future__ import annotations

import dataclasses
from pathlib import Path
from typing import Iterator, Protocol

from .models import CommitRecord, DiffStats


@dataclasses.dataclass(frozen=True)
class Repository:
    path: Path


@dataclasses.dataclass(frozen=True)
class BranchRef:
    name: str  # full ref name, e.g. refs/heads/main

    @property
    def short_name(self) -> str:
        for prefix in ("refs/heads/", "refs/remotes/"):
            if self.name.startswith(prefix):
                return self.name[len(prefix) :]
        return self.name


class Backend(Protocol):
    def open(self, path: Path) -> Repository: ...

    def close(self, repo: Repository) -> None: ...

    def list_branches(self, repo: Repository) -> list[BranchRef]: ...

    def resolve_head(self, repo: Repository, branch: BranchRef) -> str: ...

    def walk(self, repo: Repository, start_id: str) -> Iterator[str]: ...

    def load_commit(self, repo: Repository, commit_id: str) -> CommitRecord: ...

    def diff_stats(self, repo: Repository, commit_id: str, parent_id: str) -> DiffStats: ...
