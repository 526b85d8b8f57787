from __future__ import annotations

from typing import Callable

from .analysis_filters import CommitFilter
from .models import Awards, CommitAward, CommitRecord, ContributorAward, ContributorStats


def _commit_award(index: int, c: CommitRecord, value: int) -> CommitAward:
    return CommitAward(
        sha=c.sha,
        author_name=c.author_name,
        timestamp=c.timestamp,
        message=c.message,
        value=value,
        index=index,
    )


def top_commits(
    indexed: list[tuple[int, CommitRecord]],
    metric: Callable[[CommitRecord], int],
    n: int,
) -> list[CommitAward]:
    # Stable sort on a chronological list: equal values keep the earlier commit first.
    ranked = sorted(indexed, key=lambda ic: -metric(ic[1]))
    return [_commit_award(i, c, metric(c)) for i, c in ranked[: max(0, n)] if metric(c) > 0]


def _contributor_award(st: ContributorStats, value: float) -> ContributorAward:
    return ContributorAward(name=st.name, email=st.email, commits=st.commits, value=value)


def compute_awards(
    commits: list[CommitRecord],
    contributors: list[ContributorStats],
    commit_filter: CommitFilter,
    *,
    top_n: int = 5,
    top_contributors: int = 10,
    min_commits: int = 5,
) -> Awards:
    """
    Leaderboards over real commits only. Contributor ties are broken by
    first appearance in history.
    """
    real = [(i, c) for i, c in enumerate(commits) if commit_filter.is_real_commit(c)]

    by_commits = sorted(contributors, key=lambda s: (-s.commits, s.first_index))
    leaders = [_contributor_award(st, float(st.commits)) for st in by_commits[: max(0, top_contributors)]]

    eligible = [st for st in contributors if st.real_commits >= max(1, min_commits)]
    averages = [(st, st.real_lines_changed / st.real_commits) for st in eligible]
    lowest = sorted(averages, key=lambda sa: (sa[1], sa[0].first_index))
    highest = sorted(averages, key=lambda sa: (-sa[1], sa[0].first_index))

    return Awards(
        most_files_changed=top_commits(real, lambda c: len(c.files), top_n),
        most_bytes_added=top_commits(real, lambda c: c.bytes_added, top_n),
        most_bytes_deleted=top_commits(real, lambda c: c.bytes_deleted, top_n),
        most_lines_added=top_commits(real, lambda c: c.lines_added, top_n),
        most_lines_deleted=top_commits(real, lambda c: c.lines_deleted, top_n),
        top_contributors=leaders,
        lowest_average_lines_changed=[_contributor_award(st, round(v, 2)) for st, v in lowest[:top_n]],
        highest_average_lines_changed=[_contributor_award(st, round(v, 2)) for st, v in highest[:top_n]],
    )
