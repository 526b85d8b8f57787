from __future__ import annotations

import re
from collections import Counter
from typing import Iterable

from .models import WordFrequency

DEFAULT_STOP_WORDS: frozenset[str] = frozenset(
    """
    the is are was were been be have has had do does did will would should could may might must
    can a an and or but in on at to for of with by from up about into through during before
    after above below between under since without within along following across behind beyond
    plus except yet so if then than such both either neither all each every any some no not
    only just also very too quite almost always often never seldom rarely usually generally
    sometimes now once twice first second last next this that these those it its our their
    there here when where why how what which who whom whose i me my we you your he him his
    she her they them as more most other another much many few less least own same different
    small large big high low early late new old
    """.split()
)

_NON_WORD_RE = re.compile(r"[^a-z0-9\s]")


def extract_words(messages: Iterable[str]) -> list[str]:
    words: list[str] = []
    for message in messages:
        cleaned = _NON_WORD_RE.sub(" ", (message or "").lower())
        words.extend(w for w in cleaned.split() if w)
    return words


def filter_stop_words(
    words: Iterable[str],
    *,
    min_length: int = 3,
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS,
) -> list[str]:
    return [w for w in words if len(w) >= min_length and w not in stop_words and not w.isdigit()]


def word_frequencies(
    words: Iterable[str],
    *,
    max_words: int = 100,
    min_size: float = 10.0,
    max_size: float = 80.0,
) -> list[WordFrequency]:
    # Counter.most_common keeps first-seen order among equal counts.
    top = Counter(words).most_common(max_words if max_words > 0 else None)
    if not top:
        return []
    hi = top[0][1]
    lo = top[-1][1]
    span = (hi - lo) or 1
    return [
        WordFrequency(text=w, count=c, size=min_size + (max_size - min_size) * (c - lo) / span)
        for w, c in top
    ]


def word_cloud(
    messages: Iterable[str],
    *,
    min_length: int = 3,
    max_words: int = 100,
    min_size: float = 10.0,
    max_size: float = 80.0,
    stop_words: frozenset[str] = DEFAULT_STOP_WORDS,
) -> list[WordFrequency]:
    words = filter_stop_words(extract_words(messages), min_length=min_length, stop_words=stop_words)
    return word_frequencies(words, max_words=max_words, min_size=min_size, max_size=max_size)
