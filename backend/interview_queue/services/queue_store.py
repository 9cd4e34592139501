"""Per-position interview queues.

Each position owns one :class:`PositionQueue`, guarded by that position's
lock in :attr:`QueueStore.position_locks`. Operations that concern a single
candidate across positions also hold the candidate's lock, which is always
taken before any position lock.

Methods whose name ends in ``_locked`` assume the caller already holds the
relevant position lock; they exist so the session manager, the conflict
resolver and the group coordinator can compose several steps atomically.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections import defaultdict
from dataclasses import replace
from datetime import datetime, timedelta
from typing import Callable, Dict, List, Optional, Set

from ..core.errors import (
    ActiveQueueLimitReached,
    AlreadyPriority,
    AlreadyQueued,
    InvalidState,
    NotQueued,
    PositionInactive,
    PriorityQuotaExceeded,
    QueueFull,
    ValidationError,
)
from ..domain.models import (
    QUEUED_STATUSES,
    ActivityWindow,
    EntryStatus,
    QueueEntry,
)
from .activity import ActivityConfig, ActivityGate
from .estimator import WaitTimeEstimator
from .locks import KeyedLocks
from .positions import PositionRegistry

logger = logging.getLogger(__name__)

RemovalListener = Callable[[QueueEntry], None]


class PositionQueue:
    """Ordered entries of one position; list order is rank order."""

    def __init__(self, position_id: str) -> None:
        self.position_id = position_id
        self.entries: List[QueueEntry] = []

    def find(self, candidate_id: str) -> Optional[QueueEntry]:
        for entry in self.entries:
            if entry.candidate_id == candidate_id:
                return entry
        return None

    def priority_count(self) -> int:
        return sum(1 for e in self.entries if e.is_priority)

    def waiting_count(self) -> int:
        return sum(1 for e in self.entries if e.status != EntryStatus.IN_INTERVIEW)

    def priority_slot(self) -> int:
        """Index of the first regular entry still queued, else the tail.

        Called or interviewing entries keep their places; a skipped head can
        leave one of them behind a waiting regular entry.
        """
        for i, entry in enumerate(self.entries):
            if not entry.is_priority and entry.status in QUEUED_STATUSES:
                return i
        return len(self.entries)


class QueueStore:
    """Owns queue membership, ranking, priority and delay."""

    def __init__(
        self,
        config: ActivityConfig,
        gate: ActivityGate,
        positions: PositionRegistry,
        estimator: Optional[WaitTimeEstimator] = None,
        delay_range: tuple = (5, 30),
    ) -> None:
        self._config = config
        self._gate = gate
        self._positions = positions
        self._estimator = estimator or WaitTimeEstimator()
        self._delay_min, self._delay_max = delay_range

        self.position_locks = KeyedLocks("position")
        self.candidate_locks = KeyedLocks("candidate")

        self._queues: Dict[str, PositionQueue] = {}
        self._by_candidate: Dict[str, Set[str]] = defaultdict(set)
        self._guard = threading.Lock()
        self._ids = itertools.count(1)
        self._removal_listeners: List[RemovalListener] = []

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    def join(self, position_id: str, candidate_id: str) -> QueueEntry:
        self._gate.require_join_open()
        with self.candidate_locks.hold(candidate_id), self.position_locks.hold(position_id):
            position = self._positions.get(position_id)
            if not position.is_active:
                raise PositionInactive(f"{position.name} is not accepting candidates")
            window = self._config.snapshot()
            now = self.now()
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, window, now)

            if queue.find(candidate_id) is not None:
                raise AlreadyQueued(f"Already in queue for {position.name}")
            if len(queue.entries) >= window.max_queue_length:
                raise QueueFull(f"The queue for {position.name} is full")
            if len(self.candidate_position_ids(candidate_id)) >= window.active_queue_limit:
                raise ActiveQueueLimitReached(
                    f"You can be in at most {window.active_queue_limit} queues at once"
                )

            entry = QueueEntry(
                id=f"qe_{next(self._ids)}",
                position_id=position_id,
                candidate_id=candidate_id,
                joined_at=now,
            )
            queue.entries.append(entry)
            with self._guard:
                self._by_candidate[candidate_id].add(position_id)
            self.refresh_locked(queue, window, now)
            logger.info(
                "Candidate %s joined %s at rank %d",
                candidate_id,
                position_id,
                entry.queue_rank,
                extra={"candidate_id": candidate_id, "position_id": position_id},
            )
            return replace(entry)

    def leave(self, position_id: str, candidate_id: str) -> None:
        with self.candidate_locks.hold(candidate_id), self.position_locks.hold(position_id):
            window = self._config.snapshot()
            now = self.now()
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, window, now)
            entry = self._require_entry(queue, candidate_id)
            if entry.status == EntryStatus.IN_INTERVIEW:
                raise InvalidState("Cannot leave the queue while interviewing; end the interview first")
            self.remove_locked(queue, entry, window, now)
            logger.info(
                "Candidate %s left %s",
                candidate_id,
                position_id,
                extra={"candidate_id": candidate_id, "position_id": position_id},
            )

    def request_priority(self, position_id: str, candidate_id: str) -> QueueEntry:
        self._gate.require_priority_open()
        with self.candidate_locks.hold(candidate_id), self.position_locks.hold(position_id):
            window = self._config.snapshot()
            now = self.now()
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, window, now)
            entry = self._require_entry(queue, candidate_id)

            if entry.is_priority:
                raise AlreadyPriority("Already set as high priority")
            if entry.status not in QUEUED_STATUSES:
                raise InvalidState("High priority can only be requested while waiting")
            if queue.priority_count() >= window.high_priority_quota:
                raise PriorityQuotaExceeded(
                    f"High priority quota of {window.high_priority_quota} reached for this position"
                )

            entry.is_priority = True
            entry.priority_set_at = now
            entry.priority_expires_at = now + timedelta(minutes=window.high_priority_time_limit)
            queue.entries.remove(entry)
            queue.entries.insert(queue.priority_slot(), entry)
            self.refresh_locked(queue, window, now)
            logger.info(
                "Candidate %s took priority at %s, now rank %d",
                candidate_id,
                position_id,
                entry.queue_rank,
                extra={"candidate_id": candidate_id, "position_id": position_id},
            )
            return replace(entry)

    def delay(self, position_id: str, candidate_id: str, minutes: int) -> QueueEntry:
        if not self._delay_min <= minutes <= self._delay_max:
            raise ValidationError(
                f"Delay must be between {self._delay_min} and {self._delay_max} minutes"
            )
        with self.candidate_locks.hold(candidate_id), self.position_locks.hold(position_id):
            window = self._config.snapshot()
            now = self.now()
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, window, now)
            entry = self._require_entry(queue, candidate_id)
            self.delay_locked(queue, entry, minutes, window, now)
            return replace(entry)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self, position_id: str) -> List[QueueEntry]:
        with self.position_locks.hold(position_id):
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, self._config.snapshot(), self.now())
            return [replace(e) for e in queue.entries]

    def entry(self, position_id: str, candidate_id: str) -> QueueEntry:
        with self.position_locks.hold(position_id):
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, self._config.snapshot(), self.now())
            return replace(self._require_entry(queue, candidate_id))

    def candidate_entries(self, candidate_id: str) -> List[QueueEntry]:
        """Every live entry of ``candidate_id``, ordered by position id."""
        with self.candidate_locks.hold(candidate_id):
            ids = self.candidate_position_ids(candidate_id)
            with self.position_locks.hold(*ids):
                return self.candidate_entries_locked(candidate_id, ids)

    def candidate_entries_locked(self, candidate_id: str, position_ids: List[str]) -> List[QueueEntry]:
        window = self._config.snapshot()
        now = self.now()
        entries = []
        for pid in sorted(position_ids):
            queue = self.queue_for(pid)
            self.refresh_locked(queue, window, now)
            entry = queue.find(candidate_id)
            if entry is not None:
                entries.append(replace(entry))
        return entries

    def candidate_position_ids(self, candidate_id: str) -> List[str]:
        with self._guard:
            return sorted(self._by_candidate.get(candidate_id, ()))

    def queue_length(self, position_id: str) -> int:
        with self.position_locks.hold(position_id):
            queue = self.queue_for(position_id)
            self.refresh_locked(queue, self._config.snapshot(), self.now())
            return queue.waiting_count()

    def has_entries(self, position_id: str) -> bool:
        with self.position_locks.hold(position_id):
            return bool(self.queue_for(position_id).entries)

    def drop_queue(self, position_id: str) -> None:
        """Forget an empty position's queue. Caller holds the position lock."""
        with self._guard:
            queue = self._queues.pop(position_id, None)
        if queue is not None and queue.entries:
            raise InvalidState("Refusing to drop a queue that still has entries")

    # ------------------------------------------------------------------
    # Building blocks for callers that hold the position lock
    # ------------------------------------------------------------------

    def now(self) -> datetime:
        return self._config.clock.now()

    def add_removal_listener(self, listener: RemovalListener) -> None:
        self._removal_listeners.append(listener)

    def queue_for(self, position_id: str) -> PositionQueue:
        with self._guard:
            queue = self._queues.get(position_id)
            if queue is None:
                queue = self._queues[position_id] = PositionQueue(position_id)
            return queue

    def refresh_locked(
        self,
        queue: PositionQueue,
        window: ActivityWindow,
        now: datetime,
    ) -> None:
        """Expire priorities, re-rank densely from 1 and recompute waits.

        A delayed entry goes back to waiting once its rank is at or ahead of
        the rank it was delayed from, or once its hold has passed. The hold
        itself outlives the status.
        """
        self._expire_priorities(queue, now)
        for index, entry in enumerate(queue.entries):
            entry.queue_rank = index + 1
        for entry in queue.entries:
            if entry.status != EntryStatus.DELAYED:
                continue
            caught_up = entry.delayed_from_rank is not None and entry.queue_rank <= entry.delayed_from_rank
            elapsed = entry.delayed_until is None or entry.delayed_until <= now
            if caught_up or elapsed:
                entry.status = EntryStatus.WAITING
                entry.delayed_from_rank = None
        self._estimator.recompute(queue.entries, window, now)

    def remove_locked(
        self,
        queue: PositionQueue,
        entry: QueueEntry,
        window: ActivityWindow,
        now: datetime,
    ) -> QueueEntry:
        queue.entries.remove(entry)
        with self._guard:
            positions = self._by_candidate.get(entry.candidate_id)
            if positions is not None:
                positions.discard(queue.position_id)
                if not positions:
                    del self._by_candidate[entry.candidate_id]
        self.refresh_locked(queue, window, now)
        removed = replace(entry)
        for listener in self._removal_listeners:
            listener(removed)
        return removed

    def delay_locked(
        self,
        queue: PositionQueue,
        entry: QueueEntry,
        minutes: int,
        window: ActivityWindow,
        now: datetime,
    ) -> QueueEntry:
        """
        Push ``entry`` ``minutes`` later.

        The entry is demoted past as many following entries of its own
        priority class as fit in ``minutes`` at one slot each; whatever is
        left over becomes a hold on its projected arrival.
        """
        if entry.status not in QUEUED_STATUSES:
            raise InvalidState(f"Cannot delay an entry that is {entry.status.value}")
        target_wait = entry.projected_wait_minutes + minutes
        original_rank = entry.queue_rank

        index = queue.entries.index(entry)
        behind = [
            i
            for i in range(index + 1, len(queue.entries))
            if queue.entries[i].is_priority == entry.is_priority
            and queue.entries[i].status in QUEUED_STATUSES
        ]
        passes = min(minutes // window.slot_minutes, len(behind))
        if passes:
            target = behind[passes - 1]
            queue.entries.pop(index)
            queue.entries.insert(target, entry)

        entry.status = EntryStatus.DELAYED
        if entry.delayed_from_rank is None or original_rank < entry.delayed_from_rank:
            entry.delayed_from_rank = original_rank
        entry.delayed_until = now + timedelta(minutes=target_wait)
        entry.delay_count += 1
        self.refresh_locked(queue, window, now)
        logger.info(
            "Entry %s delayed %d minutes: rank %d -> %d, hold %d",
            entry.id,
            minutes,
            original_rank,
            entry.queue_rank,
            entry.hold_minutes,
            extra={"candidate_id": entry.candidate_id, "position_id": queue.position_id},
        )
        return entry

    # ------------------------------------------------------------------

    def _expire_priorities(self, queue: PositionQueue, now: datetime) -> None:
        expired = [
            e
            for e in queue.entries
            if e.is_priority and e.priority_expires_at is not None and e.priority_expires_at <= now
        ]
        if not expired:
            return
        for entry in expired:
            entry.is_priority = False
            entry.priority_expires_at = None
            logger.info("Priority expired for entry %s at %s", entry.id, queue.position_id)
        movable = [e for e in expired if e.status in QUEUED_STATUSES]
        for entry in movable:
            queue.entries.remove(entry)
        slot = queue.priority_slot()
        queue.entries[slot:slot] = movable

    @staticmethod
    def _require_entry(queue: PositionQueue, candidate_id: str) -> QueueEntry:
        entry = queue.find(candidate_id)
        if entry is None:
            raise NotQueued("Not in queue for this position")
        return entry
