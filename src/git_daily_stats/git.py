from __future__ import annotations

import subprocess
import threading
from pathlib import Path
from typing import Iterator

from .backend import BranchRef, Repository
from .errors import CommitReadError, RepositoryNotFound, WalkerInitError
from .models import CommitRecord, DiffStats

DEFAULT_REF_PREFIXES = ("refs/heads", "refs/remotes")

# %x00-separated so author names may contain tabs.
COMMIT_FORMAT = "%H%x00%an%x00%ct%x00%P"

MAX_STDERR_CHARS = 50_000


def run_git(args: list[str], cwd: Path, timeout_s: int | None = None) -> tuple[int, str, str]:
    proc = subprocess.run(
        ["git", *args],
        cwd=str(cwd),
        capture_output=True,
        text=True,
        timeout=timeout_s,
    )
    return proc.returncode, proc.stdout, proc.stderr


def _excerpt(stderr: str) -> str:
    return stderr.strip()[:500]


def parse_commit_line(line: str) -> CommitRecord:
    parts = line.rstrip("\n").split("\x00")
    if len(parts) != 4:
        raise ValueError(f"unexpected commit line: {line!r}")
    sha, author, ts, parents = parts
    return CommitRecord(
        id=sha.strip(),
        author=author,
        timestamp=int(ts.strip()),
        parent_ids=tuple(parents.split()),
    )


def parse_numstat(out: str) -> DiffStats:
    insertions = 0
    deletions = 0
    for line in out.splitlines():
        parts = line.split("\t", 2)
        if len(parts) < 2:
            continue
        added_s, deleted_s = parts[0], parts[1]
        # Binary files are reported as "-\t-".
        if added_s == "-" or deleted_s == "-":
            continue
        try:
            insertions += int(added_s)
            deletions += int(deleted_s)
        except ValueError:
            continue
    return DiffStats(insertions=insertions, deletions=deletions)


class GitBackend:
    """
    Backend adapter driving the `git` executable.

    `walk` streams `git log` for a branch head and keeps the parsed records,
    so `load_commit` for a walked id does not spawn another process.
    """

    def __init__(self, *, ref_prefixes: tuple[str, ...] | list[str] = DEFAULT_REF_PREFIXES) -> None:
        self.ref_prefixes = tuple(ref_prefixes)
        self._records: dict[Path, dict[str, CommitRecord]] = {}
        self._lock = threading.Lock()

    def open(self, path: Path) -> Repository:
        path = Path(path)
        if not path.is_dir():
            raise RepositoryNotFound(f"Could not find repository: {path}")
        try:
            code, out, _ = run_git(["rev-parse", "--absolute-git-dir"], cwd=path)
        except OSError as e:
            raise RepositoryNotFound(f"Could not run git in {path}: {e}") from e
        if code != 0 or not out.strip():
            raise RepositoryNotFound(f"Could not find repository: {path}")
        repo = Repository(path=path.resolve())
        with self._lock:
            self._records.setdefault(repo.path, {})
        return repo

    def close(self, repo: Repository) -> None:
        with self._lock:
            self._records.pop(repo.path, None)

    def list_branches(self, repo: Repository) -> list[BranchRef]:
        code, out, err = run_git(
            ["for-each-ref", "--format=%(refname)%00%(symref)", *self.ref_prefixes],
            cwd=repo.path,
        )
        if code != 0:
            raise WalkerInitError(f"Could not list branches in {repo.path}: {_excerpt(err)}")
        branches: list[BranchRef] = []
        for line in out.splitlines():
            name, _, symref = line.partition("\x00")
            name = name.strip()
            if not name or symref.strip():
                continue
            branches.append(BranchRef(name=name))
        return branches

    def resolve_head(self, repo: Repository, branch: BranchRef) -> str:
        code, out, err = run_git(["rev-parse", "--verify", "--quiet", f"{branch.name}^{{commit}}"], cwd=repo.path)
        head = out.strip()
        if code != 0 or not head:
            raise WalkerInitError(f"Could not resolve head of branch {branch.short_name}: {_excerpt(err) or 'not a commit'}")
        return head

    def walk(self, repo: Repository, start_id: str) -> Iterator[str]:
        cmd = ["git", "log", "--no-color", "--no-show-signature", f"--format={COMMIT_FORMAT}", start_id, "--"]
        try:
            proc = subprocess.Popen(
                cmd,
                cwd=str(repo.path),
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
                text=True,
            )
        except OSError as e:
            raise WalkerInitError(f"Could not initialize walker at {start_id}: {e}") from e

        stderr_chunks: list[str] = []
        stderr_chars = 0

        def drain_stderr() -> None:
            nonlocal stderr_chars
            if proc.stderr is None:
                return
            while True:
                chunk = proc.stderr.read(8192)
                if not chunk:
                    return
                if stderr_chars >= MAX_STDERR_CHARS:
                    continue
                take = chunk[: MAX_STDERR_CHARS - stderr_chars]
                stderr_chunks.append(take)
                stderr_chars += len(take)

        stderr_thread = threading.Thread(target=drain_stderr, daemon=True)
        stderr_thread.start()

        with self._lock:
            cache = self._records.setdefault(repo.path, {})

        finished = False
        try:
            assert proc.stdout is not None
            for raw_line in proc.stdout:
                if not raw_line.strip():
                    continue
                try:
                    record = parse_commit_line(raw_line)
                except ValueError as e:
                    raise WalkerInitError(f"Could not iterate history from {start_id}: {e}") from e
                cache[record.id] = record
                yield record.id
            finished = True
        finally:
            if not finished and proc.poll() is None:
                proc.kill()
            code = proc.wait()
            stderr_thread.join()
            if proc.stdout is not None:
                proc.stdout.close()
            if proc.stderr is not None:
                proc.stderr.close()

        if code != 0:
            raise WalkerInitError(f"Could not iterate history from {start_id}: {_excerpt(''.join(stderr_chunks))}")

    def load_commit(self, repo: Repository, commit_id: str) -> CommitRecord:
        cached = self._records.get(repo.path, {}).get(commit_id)
        if cached is not None:
            return cached
        code, out, err = run_git(["show", "-s", "--no-color", "--no-show-signature", f"--format={COMMIT_FORMAT}", f"{commit_id}^{{commit}}"], cwd=repo.path)
        if code != 0:
            raise CommitReadError(f"Could not read commit {commit_id}: {_excerpt(err)}")
        try:
            record = parse_commit_line(out.strip("\n"))
        except ValueError as e:
            raise CommitReadError(f"Could not read commit {commit_id}: {e}") from e
        with self._lock:
            self._records.setdefault(repo.path, {})[record.id] = record
        return record

    def diff_stats(self, repo: Repository, commit_id: str, parent_id: str) -> DiffStats:
        code, out, err = run_git(
            ["diff", "--numstat", "--no-renames", "--no-color", "--no-ext-diff", parent_id, commit_id, "--"],
            cwd=repo.path,
        )
        if code != 0:
            raise CommitReadError(f"Could not diff commit {commit_id} against parent {parent_id}: {_excerpt(err)}")
        return parse_numstat(out)
