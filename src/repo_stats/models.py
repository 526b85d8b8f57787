from __future__ import annotations

import dataclasses

from .analysis_periods import parse_commit_time
from .errors import InvalidRecordError

CHANGE_STATUSES = ("A", "M", "D", "R", "C", "T")


def _require_count(name: str, value: object) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidRecordError(f"{name} must be an int, got {value!r}")
    if value < 0:
        raise InvalidRecordError(f"{name} must be >= 0, got {value}")
    return value


def _optional_count(name: str, value: object) -> int | None:
    if value is None:
        return None
    return _require_count(name, value)


@dataclasses.dataclass(frozen=True)
class FileChange:
    path: str
    old_path: str | None  # None for additions; equal to `path` for in-place edits
    lines_added: int
    lines_deleted: int
    language: str
    status: str = "M"
    bytes_added: int | None = None
    bytes_deleted: int | None = None
    binary: bool = False
    bytes_estimated: bool = False
    synthetic: bool = False  # whole-file size emitted for a move across the exclusion boundary

    @classmethod
    def create(
        cls,
        path: str,
        *,
        lines_added: int = 0,
        lines_deleted: int = 0,
        language: str = "Other",
        old_path: str | None = None,
        status: str | None = None,
        bytes_added: int | None = None,
        bytes_deleted: int | None = None,
        binary: bool = False,
        bytes_estimated: bool = False,
    ) -> "FileChange":
        p = (path or "").strip()
        if not p:
            raise InvalidRecordError("file change path must not be empty")
        old = (old_path or "").strip() or None
        if status is None:
            status = "R" if old and old != p else "M"
        status = status.upper()[:1]
        if status not in CHANGE_STATUSES:
            raise InvalidRecordError(f"unknown change status {status!r} for {p}")
        if status == "A":
            old = None
        elif old is None:
            old = p
        return cls(
            path=p,
            old_path=old,
            lines_added=_require_count("lines_added", lines_added),
            lines_deleted=_require_count("lines_deleted", lines_deleted),
            language=language or "Other",
            status=status,
            bytes_added=_optional_count("bytes_added", bytes_added),
            bytes_deleted=_optional_count("bytes_deleted", bytes_deleted),
            binary=bool(binary),
            bytes_estimated=bool(bytes_estimated),
        )

    @property
    def is_rename(self) -> bool:
        return self.old_path is not None and self.old_path != self.path

    @property
    def net_lines(self) -> int:
        return self.lines_added - self.lines_deleted

    @property
    def net_bytes(self) -> int:
        return (self.bytes_added or 0) - (self.bytes_deleted or 0)


@dataclasses.dataclass(frozen=True)
class CommitRecord:
    sha: str
    author_name: str
    author_email: str
    timestamp: str
    message: str
    lines_added: int
    lines_deleted: int
    bytes_added: int
    bytes_deleted: int
    files: tuple[FileChange, ...]
    parents: int = 1
    extraction_error: str = ""
    excluded_files: int = 0
    committed_at: str = ""

    @classmethod
    def create(
        cls,
        *,
        sha: str,
        author_name: str,
        author_email: str,
        timestamp: str,
        message: str,
        files: tuple[FileChange, ...] | list[FileChange] = (),
        parents: int = 1,
        extraction_error: str = "",
        committed_at: str = "",
    ) -> "CommitRecord":
        s = (sha or "").strip()
        if not s:
            raise InvalidRecordError("commit sha must not be empty")
        if parse_commit_time(timestamp) is None:
            raise InvalidRecordError(f"commit {s[:12]} has an invalid timestamp: {timestamp!r}")
        committed = (committed_at or "").strip() or timestamp.strip()
        if parse_commit_time(committed) is None:
            raise InvalidRecordError(f"commit {s[:12]} has an invalid commit time: {committed_at!r}")
        files_t = tuple(files)
        for fc in files_t:
            if not isinstance(fc, FileChange):
                raise InvalidRecordError(f"commit {s[:12]} holds a non-FileChange entry: {fc!r}")
        return cls(
            sha=s,
            author_name=author_name or "",
            author_email=author_email or "",
            timestamp=timestamp.strip(),
            message=message or "",
            lines_added=sum(f.lines_added for f in files_t),
            lines_deleted=sum(f.lines_deleted for f in files_t),
            bytes_added=sum(f.bytes_added or 0 for f in files_t),
            bytes_deleted=sum(f.bytes_deleted or 0 for f in files_t),
            files=files_t,
            parents=_require_count("parents", parents),
            extraction_error=extraction_error or "",
            committed_at=committed,
        )

    def with_files(self, files: list[FileChange], *, excluded_files: int = 0) -> "CommitRecord":
        """Adjusted copy whose totals are recomputed from `files`."""
        files_t = tuple(files)
        return dataclasses.replace(
            self,
            lines_added=sum(f.lines_added for f in files_t),
            lines_deleted=sum(f.lines_deleted for f in files_t),
            bytes_added=sum(f.bytes_added or 0 for f in files_t),
            bytes_deleted=sum(f.bytes_deleted or 0 for f in files_t),
            files=files_t,
            excluded_files=excluded_files,
        )

    @property
    def is_merge(self) -> bool:
        return self.parents > 1

    @property
    def net_lines(self) -> int:
        return self.lines_added - self.lines_deleted

    @property
    def net_bytes(self) -> int:
        return self.bytes_added - self.bytes_deleted


@dataclasses.dataclass
class PathState:
    lines: int = 0
    bytes: int = 0
    language: str = "Other"


@dataclasses.dataclass(frozen=True)
class RenameRecord:
    old_path: str
    new_path: str


@dataclasses.dataclass
class ContributorStats:
    key: str
    name: str = ""
    email: str = ""
    commits: int = 0
    real_commits: int = 0
    real_lines_changed: int = 0
    lines_added: int = 0
    lines_deleted: int = 0
    files_touched: int = 0
    first_commit: str = ""
    last_commit: str = ""
    active_days: int = 0
    first_index: int = 0  # position of the first commit in history

    @property
    def changed(self) -> int:
        return self.lines_added + self.lines_deleted


@dataclasses.dataclass(frozen=True)
class FileTypeStats:
    language: str
    lines: int
    files: int
    percentage: float


@dataclasses.dataclass(frozen=True)
class TimeSeriesPoint:
    bucket: str
    commits: int
    lines_added: int
    lines_deleted: int
    bytes_added: int
    bytes_deleted: int
    cumulative_commits: int
    cumulative_lines: int
    cumulative_bytes: int
    contributors: int
    files: int
    # category name -> value; every category in CATEGORIES is present
    lines_added_by_category: dict[str, int] = dataclasses.field(default_factory=dict)
    lines_deleted_by_category: dict[str, int] = dataclasses.field(default_factory=dict)
    bytes_added_by_category: dict[str, int] = dataclasses.field(default_factory=dict)
    bytes_deleted_by_category: dict[str, int] = dataclasses.field(default_factory=dict)
    cumulative_lines_by_category: dict[str, int] = dataclasses.field(default_factory=dict)
    cumulative_bytes_by_category: dict[str, int] = dataclasses.field(default_factory=dict)


@dataclasses.dataclass(frozen=True)
class LinearSeriesPoint:
    index: int
    sha: str
    timestamp: str
    lines_added: int
    lines_deleted: int
    net_lines: int
    bytes_added: int
    bytes_deleted: int
    cumulative_lines: int
    cumulative_bytes: int


@dataclasses.dataclass(frozen=True)
class FileHeat:
    path: str
    language: str
    lines: int
    churn: int
    commits: int
    last_modified: str
    heat_score: float


@dataclasses.dataclass(frozen=True)
class TopFile:
    path: str
    value: int
    percentage: float  # share of the listed files' combined value


@dataclasses.dataclass(frozen=True)
class CommitAward:
    sha: str
    author_name: str
    timestamp: str
    message: str
    value: int
    index: int


@dataclasses.dataclass(frozen=True)
class ContributorAward:
    name: str
    email: str
    commits: int
    value: float


@dataclasses.dataclass(frozen=True)
class Awards:
    most_files_changed: list[CommitAward]
    most_bytes_added: list[CommitAward]
    most_bytes_deleted: list[CommitAward]
    most_lines_added: list[CommitAward]
    most_lines_deleted: list[CommitAward]
    top_contributors: list[ContributorAward]
    lowest_average_lines_changed: list[ContributorAward]
    highest_average_lines_changed: list[ContributorAward]


@dataclasses.dataclass(frozen=True)
class WordFrequency:
    text: str
    count: int
    size: float


@dataclasses.dataclass
class AnalysisResult:
    repo_path: str
    remote_url: str
    web_url: str
    commits: list[CommitRecord]
    contributors: list[ContributorStats]
    file_types: list[FileTypeStats]
    time_series: list[TimeSeriesPoint]
    linear_series: list[LinearSeriesPoint]
    file_heat: list[FileHeat]
    largest_files: list[TopFile]
    most_churned_files: list[TopFile]
    awards: Awards
    word_cloud: list[WordFrequency]
    total_lines: int
    total_bytes: int
    errors: list[str]  # per-commit extraction failures
    anomalies: list[str]  # reconciliation diagnostics
