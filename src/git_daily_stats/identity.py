from __future__ import annotations

import threading
from typing import Iterable, Iterator

from .models import CommitRecord

IDENTITY_ID = "id"
IDENTITY_ID_OR_AUTHOR_TIME = "id-or-author-time"
IDENTITY_MODES = (IDENTITY_ID, IDENTITY_ID_OR_AUTHOR_TIME)


def author_time_key(record: CommitRecord) -> tuple[str, int]:
    return record.author, record.timestamp


class CommitSet:
    """
    Commits collected across branches, deduplicated by commit identity.

    With the default mode two records are the same commit when their ids
    match OR their (author, timestamp) match. That relation is not
    transitive, so it is kept as two indexes rather than a hash key; the
    first record inserted wins.
    """

    def __init__(self, records: Iterable[CommitRecord] = (), *, identity: str = IDENTITY_ID_OR_AUTHOR_TIME) -> None:
        if identity not in IDENTITY_MODES:
            raise ValueError(f"Invalid identity mode: {identity!r} (expected one of {', '.join(IDENTITY_MODES)})")
        self.identity = identity
        self._by_id: dict[str, CommitRecord] = {}
        self._by_author_time: dict[tuple[str, int], CommitRecord] = {}
        self._lock = threading.Lock()
        for r in records:
            self.add(r)

    def _match_author_time(self) -> bool:
        return self.identity == IDENTITY_ID_OR_AUTHOR_TIME

    def add(self, record: CommitRecord) -> bool:
        key = author_time_key(record)
        with self._lock:
            if record.id in self._by_id:
                return False
            if self._match_author_time() and key in self._by_author_time:
                return False
            self._by_id[record.id] = record
            self._by_author_time.setdefault(key, record)
            return True

    def __contains__(self, record: object) -> bool:
        if not isinstance(record, CommitRecord):
            return False
        if record.id in self._by_id:
            return True
        return self._match_author_time() and author_time_key(record) in self._by_author_time

    def has_id(self, commit_id: str) -> bool:
        return commit_id in self._by_id

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self) -> Iterator[CommitRecord]:
        return iter(list(self._by_id.values()))
