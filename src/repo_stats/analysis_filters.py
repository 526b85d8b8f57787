from __future__ import annotations

import re
from typing import Iterable

from .errors import ConfigError
from .models import CommitRecord

DEFAULT_MERGE_PREFIXES: tuple[str, ...] = (
    "merge remote-tracking branch",
    "merge branch",
    "merge pull request",
)

DEFAULT_AUTOMATED_PATTERNS: tuple[str, ...] = (
    "resolved conflict",
    "resolving conflict",
    "accept.*conflict",
    "conflict.*accept",
    "auto-merge",
    "automated merge",
    'revert "',
    "bump version",
    "update dependencies",
    "update dependency",
    r"renovate\[bot\]",
    r"dependabot\[bot\]",
    "whitesource",
    "accepting remote",
    "accepting local",
    "accepting incoming",
    "accepting current",
)


class CommitFilter:
    """
    Separates author work from noise (merges, conflict resolution, bots).

    Only leaderboards, contributor quality and the word cloud consult this;
    cumulative totals never do.
    """

    def __init__(
        self,
        merge_prefixes: Iterable[str] = DEFAULT_MERGE_PREFIXES,
        automated_patterns: Iterable[str] = DEFAULT_AUTOMATED_PATTERNS,
    ) -> None:
        self.merge_prefixes = tuple(p.strip().lower() for p in merge_prefixes if p and p.strip())
        compiled: list[re.Pattern[str]] = []
        for pat in automated_patterns:
            if not pat:
                continue
            try:
                compiled.append(re.compile(pat))
            except re.error as e:
                raise ConfigError(f"invalid automated commit pattern {pat!r}: {e}") from e
        self.automated_patterns = tuple(compiled)

    def is_real(self, message: str) -> bool:
        msg = (message or "").strip().lower()
        if any(msg.startswith(p) for p in self.merge_prefixes):
            return False
        return not any(rx.search(msg) for rx in self.automated_patterns)

    def is_real_commit(self, commit: CommitRecord) -> bool:
        return self.is_real(commit.message)
