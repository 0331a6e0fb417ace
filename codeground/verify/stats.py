"""
Running Statistics
===================

Per-instance counters shared by the verifiers. Each verifier owns one
accumulator; increments and snapshots are guarded by a lock so that
concurrent calls on one instance count exactly.
"""

from __future__ import annotations

import threading

from codeground.utils import safe_ratio


class StatsAccumulator:
    """
    Thread-safe {total, passed} counter.

    Usage:
        stats = StatsAccumulator()
        stats.record(result.verified)
        total, passed, accuracy = stats.snapshot()
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._total = 0
        self._passed = 0

    def record(self, passed: bool) -> None:
        with self._lock:
            self._total += 1
            if passed:
                self._passed += 1

    def snapshot(self) -> tuple[int, int, float]:
        """(total, passed, passed / total); accuracy is 0.0 when nothing was recorded."""
        with self._lock:
            return self._total, self._passed, safe_ratio(self._passed, self._total)

    def reset(self) -> None:
        with self._lock:
            self._total = 0
            self._passed = 0
