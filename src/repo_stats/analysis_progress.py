from __future__ import annotations

import threading
import time
from typing import Callable, Optional

ProgressCallback = Callable[[str, Optional[int], Optional[int]], None]


def print_progress(step: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
    if current is not None and total:
        print(f"{step}: {current}/{total}...")
    else:
        print(f"{step}...")


class ThrottledProgress:
    """
    Forwards at most one progress event per `interval_s` to `delegate`.
    The final event of a counted step (current == total) is always forwarded.
    Safe to call from worker threads.
    """

    def __init__(
        self,
        delegate: ProgressCallback | None,
        interval_s: float = 0.2,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._delegate = delegate
        self._interval_s = max(0.0, float(interval_s))
        self._clock = clock
        self._last_emit: float | None = None
        self._pending: tuple[str, Optional[int], Optional[int]] | None = None
        self._lock = threading.Lock()

    def __call__(self, step: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
        self.report(step, current, total)

    def report(self, step: str, current: Optional[int] = None, total: Optional[int] = None) -> None:
        if self._delegate is None:
            return
        with self._lock:
            now = self._clock()
            is_final = current is not None and total is not None and current >= total
            due = self._last_emit is None or (now - self._last_emit) >= self._interval_s
            if not (due or is_final):
                self._pending = (step, current, total)
                return
            self._last_emit = now
            self._pending = None
        self._delegate(step, current, total)

    def flush(self) -> None:
        if self._delegate is None:
            return
        with self._lock:
            pending = self._pending
            self._pending = None
            if pending is not None:
                self._last_emit = self._clock()
        if pending is not None:
            self._delegate(*pending)
