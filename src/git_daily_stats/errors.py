from __future__ import annotations


class GitStatsError(Exception):
    pass


class RepositoryNotFound(GitStatsError):
    pass


class WalkerInitError(GitStatsError):
    pass


class CommitReadError(GitStatsError):
    pass


class ConfigError(GitStatsError):
    pass
