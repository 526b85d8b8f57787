from __future__ import annotations

import functools
import logging
from pathlib import Path

from .analysis_aggregate import (
    contributor_stats,
    file_heat,
    file_type_stats,
    linear_series,
    time_series,
    top_files_by_churn,
    top_files_by_size,
)
from .analysis_awards import compute_awards
from .analysis_exclusions import ExclusionPolicy
from .analysis_extract import GitSizeLookup, extract_history, open_repository
from .analysis_filters import CommitFilter
from .analysis_paths import category_for_path
from .analysis_progress import ProgressCallback
from .analysis_reconcile import check_invariant, reconcile_history
from .analysis_text import DEFAULT_STOP_WORDS, word_cloud
from .config import AnalysisConfig
from .git import get_remote_urls, select_remote, web_url_for_remote
from .models import AnalysisResult

logger = logging.getLogger(__name__)


def run_pipeline(repo: Path, config: AnalysisConfig, progress: ProgressCallback | None = None) -> AnalysisResult:
    """
    Extract, reconcile and aggregate one repository. Every call starts from an
    empty state; nothing is shared between runs.
    """
    commit_filter = CommitFilter(config.merge_prefixes, config.automated_patterns)
    policy = ExclusionPolicy(config.exclusion_patterns)

    top = open_repository(repo)
    commits_raw, errors = extract_history(top, config, progress)

    if progress is not None:
        progress("Reconciling exclusions", None, None)
    recon = reconcile_history(commits_raw, policy, GitSizeLookup(top))
    commits = recon.commits
    anomalies = list(recon.state.anomalies)
    if not check_invariant(commits, recon.state):
        logger.error("cumulative totals disagree with tracked file sizes in %s", top)
        anomalies.append("cumulative totals disagree with tracked file sizes")

    if progress is not None:
        progress("Aggregating statistics", None, None)
    contributors = contributor_stats(commits, commit_filter, config.alias_map())
    stop_words = frozenset(w.lower() for w in config.stop_words) if config.stop_words is not None else DEFAULT_STOP_WORDS
    categorize = functools.partial(
        category_for_path,
        test_patterns=config.test_patterns,
        overrides=config.category_map(),
        language_overrides=config.language_map(),
    )

    _, remote = select_remote(get_remote_urls(top), list(config.remote_name_priority))

    return AnalysisResult(
        repo_path=str(top),
        remote_url=remote,
        web_url=web_url_for_remote(remote),
        commits=commits,
        contributors=contributors,
        file_types=file_type_stats(recon.state.included),
        time_series=time_series(commits, recon.file_counts, config.bucket, categorize),
        linear_series=linear_series(commits),
        file_heat=file_heat(
            commits,
            recon.state.included,
            max_files=config.heat_max_files,
            recency_decay_days=config.heat_recency_decay_days,
            frequency_weight=config.heat_frequency_weight,
            recency_weight=config.heat_recency_weight,
        ),
        largest_files=top_files_by_size(recon.state.included, config.top_files),
        most_churned_files=top_files_by_churn(commits, recon.state.included, config.top_files),
        awards=compute_awards(
            commits,
            contributors,
            commit_filter,
            top_n=config.top_n,
            top_contributors=config.top_contributors,
            min_commits=config.award_min_commits,
        ),
        word_cloud=word_cloud(
            (c.message for c in commits if commit_filter.is_real_commit(c)),
            min_length=config.word_min_length,
            max_words=config.word_max_words,
            min_size=config.word_min_size,
            max_size=config.word_max_size,
            stop_words=stop_words,
        ),
        total_lines=recon.state.total_lines,
        total_bytes=recon.state.total_bytes,
        errors=errors,
        anomalies=anomalies,
    )
