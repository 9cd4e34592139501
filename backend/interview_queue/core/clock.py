"""Timezone-aware clock shared by every scheduling component."""

from __future__ import annotations

import threading
from datetime import datetime, timedelta

import pytz


class Clock:
    """Wall clock in the configured timezone."""

    def __init__(self, tz_name: str = "UTC") -> None:
        self.tz = pytz.timezone(tz_name)

    def now(self) -> datetime:
        return datetime.now(self.tz)

    def localize(self, naive: datetime) -> datetime:
        """Attach the configured timezone to a naive local datetime."""
        return self.tz.localize(naive)


class ManualClock(Clock):
    """Clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: datetime, tz_name: str = "UTC") -> None:
        super().__init__(tz_name)
        if start.tzinfo is None:
            start = self.tz.localize(start)
        self._now = start
        self._lock = threading.Lock()

    def now(self) -> datetime:
        with self._lock:
            return self._now

    def advance(self, minutes: float = 0, seconds: float = 0) -> datetime:
        with self._lock:
            self._now = self._now + timedelta(minutes=minutes, seconds=seconds)
            return self._now

    def set(self, moment: datetime) -> None:
        with self._lock:
            self._now = moment if moment.tzinfo else self.tz.localize(moment)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from ``start`` to ``end`` (negative when ``end`` is earlier)."""
    return int((end - start).total_seconds() // 60)
