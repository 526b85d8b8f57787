from __future__ import annotations


class RepoStatsError(Exception):
    """Base error for a run. `code` is stable and safe to show to users."""

    code = "REPO_STATS_ERROR"

    def __init__(self, message: str, *, code: str | None = None) -> None:
        super().__init__(message)
        if code:
            self.code = code

    def __str__(self) -> str:
        return f"[{self.code}] {super().__str__()}"


class RepositoryNotFoundError(RepoStatsError):
    code = "REPO_NOT_FOUND"


class EmptyRepositoryError(RepoStatsError):
    code = "NO_COMMITS"


class InvalidRecordError(RepoStatsError):
    """A record factory rejected its input."""

    code = "INVALID_RECORD"


class ConfigError(RepoStatsError):
    code = "INVALID_CONFIG"
