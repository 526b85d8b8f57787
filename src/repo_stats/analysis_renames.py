from __future__ import annotations

import logging
import re

from .analysis_paths import normalize_path
from .models import RenameRecord

logger = logging.getLogger(__name__)

RENAME_SEPARATOR = " => "

# `git --numstat` compact notation: a shared prefix/suffix around `{old => new}`.
# Either side of the arrow may be empty (`src/{ => lib}/x.py`).
_COMPACT_RE = re.compile(r"^(?P<prefix>[^{}]*)\{(?P<old>[^{}]*?)\s*=>\s*(?P<new>[^{}]*?)\}(?P<suffix>[^{}]*)$")


def _join_parts(prefix: str, middle: str, suffix: str) -> str:
    p = f"{prefix}{middle}{suffix}"
    while "//" in p:
        p = p.replace("//", "/")
    return normalize_path(p.strip("/"))


def parse_rename(token: str) -> RenameRecord:
    """
    Turn one numstat path token into (old_path, new_path).

    Handles the compact form `src/{old => new}/file.py` and the full form
    `old/path.py => new/path.py`. Anything else is an unchanged path.
    """
    p = (token or "").strip()
    m = _COMPACT_RE.match(p)
    if m:
        prefix, suffix = m.group("prefix"), m.group("suffix")
        old = _join_parts(prefix, m.group("old").strip(), suffix)
        new = _join_parts(prefix, m.group("new").strip(), suffix)
        if old and new:
            return RenameRecord(old_path=old, new_path=new)
        logger.debug("compact rename %r produced an empty side; treating as plain path", p)

    if RENAME_SEPARATOR in p:
        parts = p.split(RENAME_SEPARATOR)
        if len(parts) > 2:
            # A literal " => " inside a filename cannot be told apart from the notation.
            logger.debug("ambiguous rename token %r; splitting on the first separator", p)
            parts = [parts[0], RENAME_SEPARATOR.join(parts[1:])]
        old, new = normalize_path(parts[0]), normalize_path(parts[1])
        if old and new:
            return RenameRecord(old_path=old, new_path=new)

    clean = normalize_path(p)
    return RenameRecord(old_path=clean, new_path=clean)


def is_rename(record: RenameRecord) -> bool:
    return record.old_path != record.new_path
