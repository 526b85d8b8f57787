from __future__ import annotations

import dataclasses
import json
import os
from pathlib import Path
from typing import Optional

from .analysis_filters import DEFAULT_AUTOMATED_PATTERNS, DEFAULT_MERGE_PREFIXES
from .analysis_paths import CATEGORIES
from .analysis_periods import BUCKETS
from .errors import ConfigError


def default_jobs() -> int:
    return max(1, min(8, (os.cpu_count() or 4)))


@dataclasses.dataclass(frozen=True)
class AnalysisConfig:
    exclusion_patterns: Optional[tuple[str, ...]] = None  # None = built-in defaults
    merge_prefixes: tuple[str, ...] = DEFAULT_MERGE_PREFIXES
    automated_patterns: tuple[str, ...] = DEFAULT_AUTOMATED_PATTERNS
    bucket: str = "day"
    max_commits: Optional[int] = None
    jobs: int = dataclasses.field(default_factory=default_jobs)
    bytes_per_line_estimate: int = 50
    progress_interval_s: float = 0.2
    top_n: int = 5
    top_contributors: int = 10
    award_min_commits: int = 5
    word_min_length: int = 3
    word_max_words: int = 100
    word_min_size: float = 10.0
    word_max_size: float = 80.0
    stop_words: Optional[tuple[str, ...]] = None  # None = built-in defaults
    heat_max_files: int = 100
    heat_recency_decay_days: float = 30.0
    heat_frequency_weight: float = 0.4
    heat_recency_weight: float = 0.6
    top_files: int = 5
    test_patterns: Optional[tuple[str, ...]] = None  # None = built-in defaults
    category_overrides: tuple[tuple[str, str], ...] = ()  # language -> category
    author_aliases: tuple[tuple[str, str], ...] = ()  # name or email -> display name
    language_overrides: tuple[tuple[str, str], ...] = ()  # ".ext" -> language
    remote_name_priority: tuple[str, ...] = ("origin", "upstream")

    def alias_map(self) -> dict[str, str]:
        return {k.strip().lower(): v for k, v in self.author_aliases}

    def language_map(self) -> dict[str, str]:
        return {k.lower() if k.startswith(".") else "." + k.lower(): v for k, v in self.language_overrides}

    def category_map(self) -> dict[str, str]:
        return dict(self.category_overrides)


def load_config(config_path: Path) -> dict:
    if not config_path.exists():
        return {}
    try:
        data = json.loads(config_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise ConfigError(f"{config_path}: invalid JSON ({e})") from e
    if not isinstance(data, dict):
        raise ConfigError(f"{config_path}: top-level value must be an object")
    return data


def _int(d: dict, key: str, default: Optional[int], *, minimum: int = 0, allow_none: bool = False) -> Optional[int]:
    if key not in d:
        return default
    v = d[key]
    if v is None and allow_none:
        return None
    if isinstance(v, bool) or not isinstance(v, int):
        raise ConfigError(f"{key} must be an integer, got {v!r}")
    if v < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {v}")
    return v


def _float(d: dict, key: str, default: float, *, minimum: float = 0.0) -> float:
    if key not in d:
        return default
    v = d[key]
    if isinstance(v, bool) or not isinstance(v, (int, float)):
        raise ConfigError(f"{key} must be a number, got {v!r}")
    if v < minimum:
        raise ConfigError(f"{key} must be >= {minimum}, got {v}")
    return float(v)


def _str_list(d: dict, key: str) -> Optional[tuple[str, ...]]:
    if key not in d or d[key] is None:
        return None
    v = d[key]
    if not isinstance(v, list) or not all(isinstance(x, str) for x in v):
        raise ConfigError(f"{key} must be a list of strings")
    return tuple(x for x in v if x.strip())


def _str_map(d: dict, key: str) -> tuple[tuple[str, str], ...]:
    v = d.get(key)
    if v is None:
        return ()
    if not isinstance(v, dict) or not all(isinstance(k, str) and isinstance(x, str) for k, x in v.items()):
        raise ConfigError(f"{key} must be an object mapping strings to strings")
    return tuple(sorted(v.items()))


def _section(d: dict, key: str) -> dict:
    v = d.get(key)
    if v is None:
        return {}
    if not isinstance(v, dict):
        raise ConfigError(f"{key} must be an object")
    return v


def config_from_dict(d: dict) -> AnalysisConfig:
    """
    Build an AnalysisConfig from a parsed config.json. Unknown keys are ignored;
    present keys with the wrong type or range raise ConfigError.
    """
    base = AnalysisConfig()

    bucket = d.get("bucket", base.bucket)
    if bucket not in BUCKETS:
        raise ConfigError(f"bucket must be one of {', '.join(BUCKETS)}, got {bucket!r}")

    words = _section(d, "word_cloud")
    heat = _section(d, "file_heat")
    categories = _section(d, "file_categories")

    merge_prefixes = _str_list(d, "merge_prefixes")
    automated = _str_list(d, "automated_patterns")
    remote_priority = _str_list(d, "remote_name_priority")
    max_commits = _int(d, "max_commits", None, minimum=1, allow_none=True)
    jobs = _int(d, "jobs", base.jobs, minimum=1)

    freq_w = _float(heat, "frequency_weight", base.heat_frequency_weight)
    rec_w = _float(heat, "recency_weight", base.heat_recency_weight)
    if abs(freq_w + rec_w - 1.0) > 0.01:
        raise ConfigError(f"file_heat weights must sum to 1.0, got {freq_w} + {rec_w}")

    min_size = _float(words, "min_size", base.word_min_size)
    max_size = _float(words, "max_size", base.word_max_size)
    if min_size > max_size:
        raise ConfigError(f"word_cloud min_size must be <= max_size, got {min_size} > {max_size}")

    category_overrides = _str_map(categories, "category_mappings")
    for lang, cat in category_overrides:
        if cat not in CATEGORIES:
            raise ConfigError(f"category for {lang!r} must be one of {', '.join(CATEGORIES)}, got {cat!r}")

    return AnalysisConfig(
        exclusion_patterns=_str_list(d, "exclusion_patterns"),
        merge_prefixes=merge_prefixes if merge_prefixes is not None else base.merge_prefixes,
        automated_patterns=automated if automated is not None else base.automated_patterns,
        bucket=str(bucket),
        max_commits=max_commits,
        jobs=int(jobs or base.jobs),
        bytes_per_line_estimate=int(_int(d, "bytes_per_line_estimate", base.bytes_per_line_estimate, minimum=1) or 1),
        progress_interval_s=_float(d, "progress_interval_s", base.progress_interval_s),
        top_n=int(_int(d, "top_n", base.top_n, minimum=1) or base.top_n),
        top_contributors=int(_int(d, "top_contributors", base.top_contributors, minimum=1) or base.top_contributors),
        award_min_commits=int(_int(d, "award_min_commits", base.award_min_commits, minimum=1) or base.award_min_commits),
        word_min_length=int(_int(words, "min_word_length", base.word_min_length, minimum=1) or 1),
        word_max_words=int(_int(words, "max_words", base.word_max_words, minimum=1) or 1),
        word_min_size=min_size,
        word_max_size=max_size,
        stop_words=_str_list(words, "stop_words"),
        heat_max_files=int(_int(heat, "max_files", base.heat_max_files, minimum=1) or 1),
        heat_recency_decay_days=_float(heat, "recency_decay_days", base.heat_recency_decay_days, minimum=0.001),
        heat_frequency_weight=freq_w,
        heat_recency_weight=rec_w,
        top_files=int(_int(d, "top_files", base.top_files, minimum=1) or base.top_files),
        test_patterns=_str_list(categories, "test_patterns"),
        category_overrides=category_overrides,
        author_aliases=_str_map(d, "author_aliases"),
        language_overrides=_str_map(d, "language_overrides"),
        remote_name_priority=remote_priority if remote_priority is not None else base.remote_name_priority,
    )
