"""Wait-time estimation for one position's queue."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable

from ..domain.models import ActivityWindow, EntryStatus, QueueEntry


def wait_for_rank(rank: int, window: ActivityWindow) -> int:
    """Minutes until the entry at ``rank`` (1-indexed) is reached."""
    if rank <= 1:
        return 0
    return (rank - 1) * window.slot_minutes


def _ceil_minutes(seconds: float) -> int:
    return int(-(-seconds // 60))


class WaitTimeEstimator:
    """
    Derives ``estimated_wait_minutes`` from queue rank.

    Assumes one interviewer working through the queue at a steady cadence
    of ``average_interview_time + buffer_time`` per candidate. An entry in
    an interview waits for nothing. Entries holding a delay additionally get
    ``hold_minutes`` so their projected arrival never precedes the time they
    asked for.
    """

    def recompute(self, entries: Iterable[QueueEntry], window: ActivityWindow, now: datetime) -> None:
        for entry in entries:
            if entry.status == EntryStatus.IN_INTERVIEW:
                entry.estimated_wait_minutes = 0
            else:
                entry.estimated_wait_minutes = wait_for_rank(entry.queue_rank, window)
            entry.hold_minutes = self.hold_for(entry, now)

    @staticmethod
    def hold_for(entry: QueueEntry, now: datetime) -> int:
        if entry.delayed_until is None or entry.delayed_until <= now:
            return 0
        until = _ceil_minutes((entry.delayed_until - now).total_seconds())
        return max(0, until - entry.estimated_wait_minutes)
