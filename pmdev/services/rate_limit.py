"""Fixed-window request quota for the contact endpoint."""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass

logger = logging.getLogger(__name__)


@dataclass
class RateRecord:
    """Requests seen from one source in the current window."""

    count: int
    window_start: float


class FixedWindowRateLimiter:
    """Allow at most ``limit`` hits per source within a fixed window.

    The window opens on the first hit from a source and resets once more
    than ``window_seconds`` have elapsed, so a burst straddling the
    boundary can reach twice the limit. Records whose window has elapsed
    are swept every ``sweep_seconds`` to keep the map bounded by the
    number of recently active sources.
    """

    def __init__(
        self,
        limit: int = 3,
        window_seconds: float = 60.0,
        *,
        sweep_seconds: float | None = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if limit < 1:
            raise ValueError("limit must be at least 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be positive")
        self.limit = limit
        self.window_seconds = window_seconds
        self.sweep_seconds = sweep_seconds
        self._clock = clock
        self._records: dict[str, RateRecord] = {}
        self._lock = threading.Lock()
        self._last_sweep = clock()

    def __len__(self) -> int:
        return len(self._records)

    def get(self, key: str) -> RateRecord | None:
        return self._records.get(key)

    def hit(self, key: str) -> bool:
        """Count a request from ``key``; False means it is over quota."""
        with self._lock:
            now = self._clock()
            self._maybe_sweep(now)
            record = self._records.get(key)
            if record is None:
                record = RateRecord(count=0, window_start=now)
                self._records[key] = record
            if now - record.window_start > self.window_seconds:
                record.count = 0
                record.window_start = now
            if record.count >= self.limit:
                return False
            record.count += 1
            return True

    def prune(self, now: float | None = None) -> int:
        """Drop records whose window has elapsed; returns how many."""
        with self._lock:
            return self._prune(self._clock() if now is None else now)

    def reset(self) -> None:
        with self._lock:
            self._records.clear()

    def _maybe_sweep(self, now: float) -> None:
        if self.sweep_seconds is None:
            return
        if now - self._last_sweep >= self.sweep_seconds:
            removed = self._prune(now)
            if removed:
                logger.debug("Pruned %d stale rate-limit records", removed)

    def _prune(self, now: float) -> int:
        stale = [
            key
            for key, record in self._records.items()
            if now - record.window_start > self.window_seconds
        ]
        for key in stale:
            del self._records[key]
        self._last_sweep = now
        return len(stale)
