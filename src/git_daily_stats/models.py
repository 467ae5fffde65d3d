from __future__ import annotations

import dataclasses
from typing import Iterator, NamedTuple


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    id: str
    author: str
    timestamp: int  # committer time, seconds since epoch (UTC)
    parent_ids: tuple[str, ...] = ()

    @property
    def parent_count(self) -> int:
        return len(self.parent_ids)


@dataclasses.dataclass(frozen=True)
class DiffStats:
    insertions: int = 0
    deletions: int = 0


@dataclasses.dataclass
class LineStats:
    author: str = ""
    commits: int = 0
    lines_added: int = 0
    lines_removed: int = 0


@dataclasses.dataclass
class DateBucket:
    date: str  # YYYY/MM/DD, UTC
    authors: dict[str, LineStats] = dataclasses.field(default_factory=dict)

    def author_stats(self, author: str) -> LineStats:
        stats = self.authors.get(author)
        if stats is None:
            stats = LineStats(author=author)
            self.authors[author] = stats
        return stats

    def __iter__(self) -> Iterator[LineStats]:
        for author in sorted(self.authors):
            yield self.authors[author]


class ReportRow(NamedTuple):
    date: str
    author: str
    commits: int
    lines_added: int
    lines_removed: int


@dataclasses.dataclass
class ReportModel:
    buckets: dict[str, DateBucket] = dataclasses.field(default_factory=dict)
    latest_timestamp: int | None = None
    days: int = 0

    def bucket(self, date: str) -> DateBucket:
        b = self.buckets.get(date)
        if b is None:
            b = DateBucket(date=date)
            self.buckets[date] = b
        return b

    def is_empty(self) -> bool:
        return not self.buckets

    def __iter__(self) -> Iterator[DateBucket]:
        # YYYY/MM/DD sorts chronologically as a string.
        for date in sorted(self.buckets):
            yield self.buckets[date]

    def rows(self) -> Iterator[ReportRow]:
        """Yield one row per (date, author), date-ascending then author-ascending."""
        for b in self:
            for st in b:
                yield ReportRow(b.date, st.author, st.commits, st.lines_added, st.lines_removed)
