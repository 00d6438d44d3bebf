"""
/**
 * @file dialect_backend/services/activity_service.py
 * @description 真实访问活动计数（自我 ping 不计入）。
 */
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable


@dataclass(frozen=True)
class ActivitySnapshot:
    last_activity_at: float
    activity_count: int
    taken_at: float

    @property
    def minutes_since_last_activity(self) -> int:
        return int(max(0.0, self.taken_at - self.last_activity_at) // 60)


class ActivityTracker:
    """Single writer: only the request logging middleware calls record_activity()."""

    def __init__(self, clock: Callable[[], float] = time.time):
        self._clock = clock
        self._last_activity_at = clock()
        self._activity_count = 0

    def record_activity(self) -> None:
        self._last_activity_at = self._clock()
        self._activity_count += 1

    def snapshot(self) -> ActivitySnapshot:
        return ActivitySnapshot(
            last_activity_at=self._last_activity_at,
            activity_count=self._activity_count,
            taken_at=self._clock(),
        )
