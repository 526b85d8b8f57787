from __future__ import annotations

import logging
import subprocess
from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Optional

from .analysis_paths import is_binary_path, language_for_path
from .analysis_progress import ProgressCallback, ThrottledProgress
from .analysis_renames import is_rename, parse_rename
from .config import AnalysisConfig
from .errors import EmptyRepositoryError, InvalidRecordError, RepoStatsError, RepositoryNotFoundError
from .git import (
    NULL_SHA,
    blob_line_count_at,
    blob_size_at,
    blob_sizes,
    diff_tree,
    get_head_sha,
    get_repo_toplevel,
    log_commits,
    parse_diff_tree,
)
from .models import CHANGE_STATUSES, CommitRecord, FileChange

logger = logging.getLogger(__name__)

SUBMODULE_MODE = "160000"


def open_repository(path: Path) -> Path:
    top = get_repo_toplevel(path)
    if top is None:
        raise RepositoryNotFoundError(f"not a git repository: {path}")
    if not get_head_sha(top):
        raise EmptyRepositoryError(f"repository has no commits: {top}")
    return top


def _blob_size(sizes: dict[str, int], blob: str, mode: str) -> Optional[int]:
    if not blob or blob == NULL_SHA:
        return 0
    if mode == SUBMODULE_MODE:
        return 0
    return sizes.get(blob)


def build_file_changes(
    raw: list[dict[str, str]],
    numstat: list[tuple[str, str, str]],
    sizes: dict[str, int],
    *,
    bytes_per_line: int = 50,
    language_overrides: dict[str, str] | None = None,
) -> list[FileChange]:
    """
    Pair raw entries (status, blobs) with numstat entries (line counts) and
    attach exact byte deltas from `sizes`. Files whose blob sizes are unknown
    get a line-based estimate and `bytes_estimated=True`.
    """
    if len(raw) != len(numstat):
        raise ValueError(f"raw/numstat entry count mismatch ({len(raw)} vs {len(numstat)})")

    changes: list[FileChange] = []
    for r, (added_s, deleted_s, token) in zip(raw, numstat):
        status = r["status"] if r["status"] in CHANGE_STATUSES else "M"
        rec = parse_rename(token)
        if rec.new_path != r["new_path"] or (is_rename(rec) and rec.old_path != r["old_path"]):
            logger.debug("numstat token %r disagrees with raw paths %s -> %s", token, r["old_path"], r["new_path"])
            old_path, new_path = r["old_path"], r["new_path"]
        else:
            old_path, new_path = rec.old_path, rec.new_path

        numstat_binary = added_s == "-" or deleted_s == "-"
        binary = numstat_binary or is_binary_path(new_path)
        lines_added = 0 if numstat_binary else int(added_s)
        lines_deleted = 0 if numstat_binary else int(deleted_s)

        old_size = _blob_size(sizes, r["old_blob"], r["old_mode"])
        new_size = _blob_size(sizes, r["new_blob"], r["new_mode"])
        if status == "A":
            old_size = 0
        elif status == "D":
            new_size = 0

        if old_size is None or new_size is None:
            logger.debug("blob size unavailable for %s; estimating bytes", new_path)
            bytes_added = lines_added * bytes_per_line
            bytes_deleted = lines_deleted * bytes_per_line
            estimated = True
        else:
            diff = new_size - old_size
            bytes_added, bytes_deleted = (diff, 0) if diff >= 0 else (0, -diff)
            estimated = False

        changes.append(
            FileChange.create(
                new_path,
                old_path=None if status == "A" else old_path,
                status=status,
                lines_added=lines_added,
                lines_deleted=lines_deleted,
                language=language_for_path(new_path, language_overrides),
                bytes_added=bytes_added,
                bytes_deleted=bytes_deleted,
                binary=binary,
                bytes_estimated=estimated,
            )
        )
    return changes


def extract_commit(repo: Path, header: dict[str, object], config: AnalysisConfig) -> CommitRecord:
    """One history entry. Raises on git or parse failure; the caller zero-fills."""
    sha = str(header["sha"])
    parents = int(header["parents"])  # type: ignore[arg-type]
    files: list[FileChange] = []
    if parents <= 1:
        code, out, err = diff_tree(repo, sha)
        if code != 0:
            raise RepoStatsError(f"git diff-tree failed for {sha[:12]}: {err.strip()}", code="GIT_FAILED")
        raw, numstat = parse_diff_tree(out)
        wanted = [r["old_blob"] for r in raw] + [r["new_blob"] for r in raw]
        sizes = blob_sizes(repo, wanted)
        files = build_file_changes(
            raw,
            numstat,
            sizes,
            bytes_per_line=config.bytes_per_line_estimate,
            language_overrides=config.language_map(),
        )
    return CommitRecord.create(
        sha=sha,
        author_name=str(header["author_name"]),
        author_email=str(header["author_email"]),
        timestamp=str(header["timestamp"]),
        message=str(header["message"]),
        files=files,
        parents=parents,
        committed_at=str(header.get("committed_at", "")),
    )


def _zero_filled(header: dict[str, object], error: str) -> CommitRecord:
    return CommitRecord.create(
        sha=str(header["sha"]),
        author_name=str(header["author_name"]),
        author_email=str(header["author_email"]),
        timestamp=str(header["timestamp"]),
        message=str(header["message"]),
        parents=int(header["parents"]),  # type: ignore[arg-type]
        extraction_error=error,
        committed_at=str(header.get("committed_at", "")),
    )


def _extract_or_zero(repo: Path, header: dict[str, object], config: AnalysisConfig) -> tuple[CommitRecord, str]:
    try:
        return extract_commit(repo, header, config), ""
    except (RepoStatsError, ValueError, OSError, subprocess.SubprocessError) as e:
        sha = str(header["sha"])
        error = f"{sha[:12]}: {e}"
        logger.warning("commit stats unavailable, zero-filled: %s", error)
        return _zero_filled(header, str(e)), error


def extract_history(
    repo: Path,
    config: AnalysisConfig,
    progress: ProgressCallback | None = None,
) -> tuple[list[CommitRecord], list[str]]:
    """
    Raw commit records oldest -> newest plus per-commit extraction errors.
    Commits are never dropped: a failed lookup yields a zero-stat record.
    """
    code, headers, err = log_commits(repo, config.max_commits)
    if code != 0:
        raise RepositoryNotFoundError(f"git log failed in {repo}: {err.strip()}")
    if not headers:
        raise EmptyRepositoryError(f"repository has no commits: {repo}")

    reporter = ThrottledProgress(progress, config.progress_interval_s)
    total = len(headers)
    slots: list[Optional[CommitRecord]] = [None] * total
    errors_by_index: dict[int, str] = {}

    with ThreadPoolExecutor(max_workers=max(1, config.jobs)) as ex:
        futs = {ex.submit(_extract_or_zero, repo, header, config): i for i, header in enumerate(headers)}
        for done, fut in enumerate(as_completed(futs), start=1):
            i = futs[fut]
            record, error = fut.result()
            slots[i] = record
            if error:
                errors_by_index[i] = error
            reporter("Processing commits", done, total)
    reporter.flush()

    commits: list[CommitRecord] = []
    for i, record in enumerate(slots):
        if record is None:
            raise InvalidRecordError(f"commit #{i} was not extracted")
        commits.append(record)
    errors = [errors_by_index[i] for i in sorted(errors_by_index)]
    return commits, errors


class GitSizeLookup:
    """(sha, path) -> (lines, bytes) of a file as of a commit, read from git."""

    def __init__(self, repo: Path) -> None:
        self.repo = repo

    def __call__(self, sha: str, path: str) -> Optional[tuple[int, int]]:
        nbytes = blob_size_at(self.repo, sha, path)
        if nbytes is None:
            return None
        lines = blob_line_count_at(self.repo, sha, path)
        return (lines or 0), nbytes
