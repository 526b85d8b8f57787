from __future__ import annotations

import functools
import re
from typing import Iterable, Optional

import pathspec

from .analysis_paths import normalize_path
from .errors import ConfigError

DEFAULT_EXCLUSION_PATTERNS: tuple[str, ...] = (
    # images
    "**/*.jpg",
    "**/*.jpeg",
    "**/*.png",
    "**/*.gif",
    "**/*.svg",
    "**/*.bmp",
    "**/*.webp",
    "**/*.ico",
    # documents
    "**/*.md",
    "**/*.pdf",
    "**/*.doc",
    "**/*.docx",
    "**/*.xls",
    "**/*.xlsx",
    # lockfiles
    "**/package-lock.json",
    "**/yarn.lock",
    "**/pnpm-lock.yaml",
    "**/composer.lock",
    "**/Cargo.lock",
    "**/poetry.lock",
    "**/Pipfile.lock",
    "**/Gemfile.lock",
    "**/uv.lock",
    # build output and dependencies
    "**/node_modules/**",
    "**/dist/**",
    "**/build/**",
    "**/target/**",
    "**/vendor/**",
    "**/coverage/**",
    "**/test-results/**",
    "**/reports/**",
    "**/out/**",
    "**/bin/**",
    "**/obj/**",
    "**/data/**",
    "**/docs/**",
    # vcs
    ".git/**",
    "**/.gitignore",
    "**/.gitattributes",
    # environment
    "**/.env",
    "**/.env.*",
    # editors and OS
    "**/.vscode/**",
    "**/.idea/**",
    "**/.*.swp",
    "**/.*.swo",
    "**/*~",
    "**/.DS_Store",
    "**/Thumbs.db",
    "**/*.log",
    "**/*.tmp",
    "**/*.cache",
    # compiled artifacts
    "**/__pycache__/**",
    "**/*.pyc",
    "**/*.pyo",
    "**/*.class",
    "**/*.jar",
    "**/*.war",
    "**/*.ear",
)


def default_exclusion_patterns() -> list[str]:
    return list(DEFAULT_EXCLUSION_PATTERNS)


def anchor_pattern(pattern: str) -> str:
    """
    Root-anchor a pattern so it matches the full repository path. Under
    gitignore rules a pattern without a slash matches at any depth.
    """
    p = pattern.strip()
    negate = p.startswith("!")
    if negate:
        p = p[1:]
    while p.startswith("./"):
        p = p[2:]
    if p and not p.startswith(("/", "#")):
        p = "/" + p
    return ("!" if negate else "") + p


@functools.lru_cache(maxsize=32)
def compile_patterns(patterns: tuple[str, ...]) -> Optional[pathspec.GitIgnoreSpec]:
    lines = [anchor_pattern(p) for p in patterns if (p or "").strip()]
    if not lines:
        return None
    try:
        return pathspec.GitIgnoreSpec.from_lines(lines)
    except (ValueError, re.error) as e:
        raise ConfigError(f"invalid exclusion pattern: {e}") from e


class ExclusionPolicy:
    """
    Decides whether a repository path counts toward statistics.

    A custom pattern list replaces the defaults entirely. Patterns compile once
    into a `pathspec.GitIgnoreSpec` and verdicts are memoized for the lifetime
    of the policy.
    """

    def __init__(self, patterns: Iterable[str] | None = None, *, cache_size: int = 65536) -> None:
        if patterns is None:
            self.patterns: tuple[str, ...] = DEFAULT_EXCLUSION_PATTERNS
        else:
            self.patterns = tuple(str(p) for p in patterns)
        self._spec = compile_patterns(self.patterns)
        self._is_excluded = functools.lru_cache(maxsize=cache_size)(self._match)

    def _match(self, path: str) -> bool:
        if self._spec is None:
            return False
        return self._spec.match_file(path)

    def is_excluded(self, path: str) -> bool:
        p = normalize_path(path)
        if not p:
            return False
        return self._is_excluded(p)

    def is_included(self, path: str) -> bool:
        return not self.is_excluded(path)
