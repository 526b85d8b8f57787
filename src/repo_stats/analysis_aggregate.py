from __future__ import annotations

import dataclasses
import math
from collections import defaultdict
from typing import Callable

from .analysis_filters import CommitFilter
from .analysis_paths import CATEGORIES, category_for_path
from .analysis_periods import bucket_key, days_between, utc_date
from .identity import author_key
from .models import (
    CommitRecord,
    ContributorStats,
    FileHeat,
    FileTypeStats,
    LinearSeriesPoint,
    PathState,
    TimeSeriesPoint,
    TopFile,
)


def contributor_stats(
    commits: list[CommitRecord],
    commit_filter: CommitFilter,
    aliases: dict[str, str] | None = None,
) -> list[ContributorStats]:
    """
    Per-author totals over adjusted commits. Sorted by commits desc, then by
    first appearance in history.
    """
    stats: dict[str, ContributorStats] = {}
    files: dict[str, set[str]] = defaultdict(set)
    days: dict[str, set[str]] = defaultdict(set)

    for i, c in enumerate(commits):
        key, display = author_key(c.author_name, c.author_email, aliases)
        st = stats.get(key)
        if st is None:
            st = ContributorStats(
                key=key, name=display, email=c.author_email, first_commit=c.timestamp, first_index=i
            )
            stats[key] = st
        st.commits += 1
        if commit_filter.is_real_commit(c):
            st.real_commits += 1
            st.real_lines_changed += c.lines_added + c.lines_deleted
        st.lines_added += c.lines_added
        st.lines_deleted += c.lines_deleted
        st.last_commit = c.timestamp
        files[key].update(f.path for f in c.files)
        d = utc_date(c.timestamp)
        if d is not None:
            days[key].add(d.isoformat())

    for key, st in stats.items():
        st.files_touched = len(files[key])
        st.active_days = len(days[key])

    return sorted(stats.values(), key=lambda s: (-s.commits, s.first_index))


def file_type_stats(included: dict[str, PathState]) -> list[FileTypeStats]:
    lines: dict[str, int] = defaultdict(int)
    counts: dict[str, int] = defaultdict(int)
    for st in included.values():
        lines[st.language] += st.lines
        counts[st.language] += 1
    total = sum(v for v in lines.values() if v > 0)
    out = [
        FileTypeStats(
            language=lang,
            lines=n,
            files=counts[lang],
            percentage=round(100.0 * n / total, 2) if total > 0 else 0.0,
        )
        for lang, n in lines.items()
    ]
    out.sort(key=lambda s: (-s.lines, s.language))
    return out


def _empty_breakdown() -> dict[str, int]:
    return {c: 0 for c in CATEGORIES}


def time_series(
    commits: list[CommitRecord],
    file_counts: list[int],
    bucket: str = "day",
    categorize: Callable[[str], str] = category_for_path,
) -> list[TimeSeriesPoint]:
    """
    Calendar buckets in chronological order with running totals. `file_counts`
    holds the tracked file count after each commit (same order as `commits`).

    Commits are bucketed by commit time, the order history is replayed in, so
    a bucket's running totals match the linear series at its last commit even
    when author dates were rewritten by a rebase.
    """
    per_bucket: dict[str, dict[str, int]] = defaultdict(
        lambda: {
            "commits": 0,
            "lines_added": 0,
            "lines_deleted": 0,
            "bytes_added": 0,
            "bytes_deleted": 0,
        }
    )
    by_category: dict[str, dict[str, dict[str, int]]] = defaultdict(
        lambda: {k: _empty_breakdown() for k in ("lines_added", "lines_deleted", "bytes_added", "bytes_deleted")}
    )
    authors_by_bucket: dict[str, set[str]] = defaultdict(set)
    files_at_end: dict[str, int] = {}
    categories: dict[str, str] = {}

    for i, c in enumerate(commits):
        key = bucket_key(c.committed_at or c.timestamp, bucket)
        if not key:
            continue
        b = per_bucket[key]
        b["commits"] += 1
        b["lines_added"] += c.lines_added
        b["lines_deleted"] += c.lines_deleted
        b["bytes_added"] += c.bytes_added
        b["bytes_deleted"] += c.bytes_deleted
        cat_b = by_category[key]
        for f in c.files:
            cat = categories.get(f.path)
            if cat is None:
                cat = categories[f.path] = categorize(f.path)
            cat_b["lines_added"][cat] += f.lines_added
            cat_b["lines_deleted"][cat] += f.lines_deleted
            cat_b["bytes_added"][cat] += f.bytes_added or 0
            cat_b["bytes_deleted"][cat] += f.bytes_deleted or 0
        authors_by_bucket[key].add(author_key(c.author_name, c.author_email)[0])
        if i < len(file_counts):
            files_at_end[key] = file_counts[i]

    points: list[TimeSeriesPoint] = []
    cum_commits = 0
    cum_lines = 0
    cum_bytes = 0
    cum_lines_cat = _empty_breakdown()
    cum_bytes_cat = _empty_breakdown()
    seen: set[str] = set()
    for key in sorted(per_bucket):
        b = per_bucket[key]
        cat_b = by_category[key]
        cum_commits += b["commits"]
        cum_lines += b["lines_added"] - b["lines_deleted"]
        cum_bytes += b["bytes_added"] - b["bytes_deleted"]
        for cat in CATEGORIES:
            cum_lines_cat[cat] += cat_b["lines_added"][cat] - cat_b["lines_deleted"][cat]
            cum_bytes_cat[cat] += cat_b["bytes_added"][cat] - cat_b["bytes_deleted"][cat]
        seen |= authors_by_bucket[key]
        points.append(
            TimeSeriesPoint(
                bucket=key,
                commits=b["commits"],
                lines_added=b["lines_added"],
                lines_deleted=b["lines_deleted"],
                bytes_added=b["bytes_added"],
                bytes_deleted=b["bytes_deleted"],
                cumulative_commits=cum_commits,
                cumulative_lines=cum_lines,
                cumulative_bytes=cum_bytes,
                contributors=len(seen),
                files=files_at_end.get(key, 0),
                lines_added_by_category=cat_b["lines_added"],
                lines_deleted_by_category=cat_b["lines_deleted"],
                bytes_added_by_category=cat_b["bytes_added"],
                bytes_deleted_by_category=cat_b["bytes_deleted"],
                cumulative_lines_by_category=dict(cum_lines_cat),
                cumulative_bytes_by_category=dict(cum_bytes_cat),
            )
        )
    return points


def linear_series(commits: list[CommitRecord]) -> list[LinearSeriesPoint]:
    points: list[LinearSeriesPoint] = []
    cum_lines = 0
    cum_bytes = 0
    for i, c in enumerate(commits):
        cum_lines += c.net_lines
        cum_bytes += c.net_bytes
        points.append(
            LinearSeriesPoint(
                index=i,
                sha=c.sha,
                timestamp=c.timestamp,
                lines_added=c.lines_added,
                lines_deleted=c.lines_deleted,
                net_lines=c.net_lines,
                bytes_added=c.bytes_added,
                bytes_deleted=c.bytes_deleted,
                cumulative_lines=cum_lines,
                cumulative_bytes=cum_bytes,
            )
        )
    return points


@dataclasses.dataclass
class FileHistory:
    churn: dict[str, int]
    touches: dict[str, int]
    last_touch: dict[str, str]
    newest: str


def file_history(commits: list[CommitRecord]) -> FileHistory:
    """
    Per-path churn, touch count and last touch, carried across renames and
    forgotten on delete. Whole-file emissions for moves across the exclusion
    boundary carry history along but add no churn.
    """
    churn: dict[str, int] = defaultdict(int)
    touches: dict[str, int] = defaultdict(int)
    last_touch: dict[str, str] = {}
    newest = ""

    for c in commits:
        if not newest or days_between(newest, c.timestamp) > 0:
            newest = c.timestamp
        for f in c.files:
            if f.is_rename and f.old_path in churn:
                churn[f.path] += churn.pop(f.old_path)
                touches[f.path] += touches.pop(f.old_path, 0)
                last_touch.pop(f.old_path, None)
            if not f.synthetic:
                churn[f.path] += f.lines_added + f.lines_deleted
            touches[f.path] += 1
            last_touch[f.path] = c.timestamp
            if f.status == "D":
                churn.pop(f.path, None)
                touches.pop(f.path, None)
                last_touch.pop(f.path, None)

    return FileHistory(churn=dict(churn), touches=dict(touches), last_touch=last_touch, newest=newest)


def file_heat(
    commits: list[CommitRecord],
    included: dict[str, PathState],
    *,
    max_files: int = 100,
    recency_decay_days: float = 30.0,
    frequency_weight: float = 0.4,
    recency_weight: float = 0.6,
) -> list[FileHeat]:
    """
    Hot files among those still included at the end of history.

    History follows renames, so a file's churn and commit count include its
    life under earlier names. Recency is measured against the newest commit.
    """
    hist = file_history(commits)
    decay = recency_decay_days if recency_decay_days > 0 else 1.0
    out: list[FileHeat] = []
    for path, st in included.items():
        n = hist.touches.get(path, 0)
        last = hist.last_touch.get(path, "")
        age = days_between(last, hist.newest) if last else 0.0
        score = n * frequency_weight + math.exp(-age / decay) * recency_weight
        out.append(
            FileHeat(
                path=path,
                language=st.language,
                lines=st.lines,
                churn=hist.churn.get(path, 0),
                commits=n,
                last_modified=last,
                heat_score=round(score, 6),
            )
        )
    out.sort(key=lambda h: (-h.heat_score, h.path))
    return out[: max(0, max_files)]


def _top_files(values: dict[str, int], limit: int) -> list[TopFile]:
    ranked = sorted(((p, v) for p, v in values.items() if v > 0), key=lambda pv: (-pv[1], pv[0]))[: max(0, limit)]
    total = sum(v for _, v in ranked)
    return [TopFile(path=p, value=v, percentage=round(100.0 * v / total, 2) if total else 0.0) for p, v in ranked]


def top_files_by_size(included: dict[str, PathState], limit: int = 5) -> list[TopFile]:
    return _top_files({p: st.lines for p, st in included.items()}, limit)


def top_files_by_churn(commits: list[CommitRecord], included: dict[str, PathState], limit: int = 5) -> list[TopFile]:
    churn = file_history(commits).churn
    return _top_files({p: churn.get(p, 0) for p in included}, limit)
