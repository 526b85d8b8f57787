from __future__ import annotations

import dataclasses
import logging
from typing import Callable, Iterable, Optional

from .analysis_exclusions import ExclusionPolicy
from .analysis_paths import normalize_path
from .models import CommitRecord, FileChange, PathState

logger = logging.getLogger(__name__)

# (commit sha, path) -> (lines, bytes) of the file as of that commit, or None.
SizeLookup = Callable[[str, str], Optional[tuple[int, int]]]


@dataclasses.dataclass
class ReconcileState:
    """
    Fold accumulator. `included` holds every path that currently counts;
    `dormant` remembers the size of files living in excluded paths so a later
    move back restores their current size. Dormant paths first seen mid-history
    are listed in `unsized` and sized only if they leave excluded space.
    """

    included: dict[str, PathState] = dataclasses.field(default_factory=dict)
    dormant: dict[str, PathState] = dataclasses.field(default_factory=dict)
    unsized: set[str] = dataclasses.field(default_factory=set)
    anomalies: list[str] = dataclasses.field(default_factory=list)

    @property
    def total_lines(self) -> int:
        return sum(s.lines for s in self.included.values())

    @property
    def total_bytes(self) -> int:
        return sum(s.bytes for s in self.included.values())

    @property
    def tracked_files(self) -> int:
        return len(self.included)


@dataclasses.dataclass(frozen=True)
class ReconcileResult:
    commits: list[CommitRecord]
    state: ReconcileState
    file_counts: list[int]  # tracked included files after each commit


def _signed(n: int) -> tuple[int, int]:
    return (n, 0) if n >= 0 else (0, -n)


def _emit_size(
    fc: FileChange, path: str, old_path: Optional[str], size: PathState, *, removing: bool, synthetic: bool = False
) -> FileChange:
    lines = -size.lines if removing else size.lines
    nbytes = -size.bytes if removing else size.bytes
    la, ld = _signed(lines)
    ba, bd = _signed(nbytes)
    return dataclasses.replace(
        fc,
        path=path,
        old_path=old_path,
        lines_added=la,
        lines_deleted=ld,
        bytes_added=ba,
        bytes_deleted=bd,
        synthetic=synthetic,
    )


def _grown(prior: PathState, fc: FileChange) -> PathState:
    return PathState(lines=prior.lines + fc.net_lines, bytes=prior.bytes + fc.net_bytes, language=fc.language)


def _adopt_size(fc: FileChange, sha: str, path: str, lookup: Optional[SizeLookup]) -> PathState:
    if lookup is not None:
        found = lookup(sha, path)
        if found is not None:
            return PathState(lines=found[0], bytes=found[1], language=fc.language)
    return PathState(lines=max(0, fc.net_lines), bytes=max(0, fc.net_bytes), language=fc.language)


def _anomaly(state: ReconcileState, commit: CommitRecord, text: str) -> None:
    msg = f"{commit.sha[:12]}: {text}"
    logger.warning("reconcile anomaly %s", msg)
    state.anomalies.append(msg)


def _defer(state: ReconcileState, commit: CommitRecord, path: str, fc: FileChange) -> None:
    # Nothing counts while the file stays excluded; its size is looked up on move-out.
    logger.debug("%s: %s has no known size and stays excluded", commit.sha[:12], path)
    state.dormant[path] = PathState(language=fc.language)
    state.unsized.add(path)


def reconcile_commit(
    state: ReconcileState,
    commit: CommitRecord,
    policy: ExclusionPolicy,
    lookup: Optional[SizeLookup] = None,
) -> CommitRecord:
    """
    Apply one commit to `state` and return the adjusted copy of the commit.

    Changes inside excluded space are dropped from the returned file list.
    Moves across the exclusion boundary turn into synthetic deletions or
    additions of the whole tracked size.
    """
    kept: list[FileChange] = []
    dropped = 0

    for fc in commit.files:
        new = normalize_path(fc.path)
        old = normalize_path(fc.old_path) if fc.old_path else None
        new_ex = policy.is_excluded(new)

        if fc.status == "D":
            if new_ex:
                state.dormant.pop(new, None)
                state.unsized.discard(new)
                dropped += 1
                continue
            prior = state.included.pop(new, None)
            if prior is None:
                _anomaly(state, commit, f"delete of untracked path {new}")
                continue
            kept.append(_emit_size(fc, new, new, prior, removing=True))
            continue

        if fc.status == "A" or old is None:
            target = state.dormant if new_ex else state.included
            size = _grown(target.pop(new, PathState(language=fc.language)), fc)
            target[new] = size
            if new_ex:
                state.unsized.discard(new)
                dropped += 1
            else:
                kept.append(dataclasses.replace(fc, path=new, old_path=None))
            continue

        old_ex = policy.is_excluded(old)

        if fc.status == "C":
            source = (state.dormant if old_ex else state.included).get(old)
            if old in state.unsized:
                source = None
            if source is None and new_ex:
                _defer(state, commit, new, fc)
                dropped += 1
                continue
            if source is None:
                _anomaly(state, commit, f"copy from untracked path {old} -> {new}")
                size = _adopt_size(fc, commit.sha, new, lookup)
            else:
                size = _grown(source, fc)
            if new_ex:
                state.dormant[new] = size
                dropped += 1
            else:
                state.included[new] = size
                kept.append(_emit_size(fc, new, old, size, removing=False))
            continue

        prior = (state.dormant if old_ex else state.included).pop(old, None)
        if old in state.unsized:
            state.unsized.discard(old)
            prior = None
        if prior is None and new_ex:
            _defer(state, commit, new, fc)
            dropped += 1
            continue
        if prior is None:
            # Source never seen (truncated history or a zero-filled commit).
            kind = "rename" if old != new else "edit"
            _anomaly(state, commit, f"{kind} of untracked path {old} -> {new}; counted as a new file")
            size = _adopt_size(fc, commit.sha, new, lookup)
            state.included[new] = size
            kept.append(_emit_size(fc, new, old, size, removing=False))
            continue

        size = _grown(prior, fc)
        if new_ex:
            state.dormant[new] = size
            if old_ex:
                dropped += 1
            else:
                logger.debug("%s: %s moved into excluded space (-%d lines)", commit.sha[:12], old, prior.lines)
                kept.append(_emit_size(fc, new, old, prior, removing=True, synthetic=True))
        else:
            state.included[new] = size
            if old_ex:
                logger.debug("%s: %s moved out of excluded space (+%d lines)", commit.sha[:12], new, size.lines)
                kept.append(_emit_size(fc, new, old, size, removing=False, synthetic=True))
            else:
                kept.append(dataclasses.replace(fc, path=new, old_path=old))

    return commit.with_files(kept, excluded_files=dropped)


def reconcile_history(
    commits: Iterable[CommitRecord],
    policy: ExclusionPolicy,
    lookup: Optional[SizeLookup] = None,
) -> ReconcileResult:
    state = ReconcileState()
    adjusted: list[CommitRecord] = []
    file_counts: list[int] = []
    for commit in commits:
        adjusted.append(reconcile_commit(state, commit, policy, lookup))
        file_counts.append(state.tracked_files)
    return ReconcileResult(commits=adjusted, state=state, file_counts=file_counts)


def check_invariant(commits: Iterable[CommitRecord], state: ReconcileState) -> bool:
    net_lines = 0
    net_bytes = 0
    for c in commits:
        net_lines += c.net_lines
        net_bytes += c.net_bytes
    return net_lines == state.total_lines and net_bytes == state.total_bytes
