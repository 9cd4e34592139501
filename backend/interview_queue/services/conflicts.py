"""Cross-queue time conflict detection and resolution for one candidate."""

from __future__ import annotations

import logging
import threading
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from typing import Deque, Dict, FrozenSet, List, Set, Tuple

from ..domain.models import QUEUED_STATUSES, ActivityWindow, QueueEntry
from .activity import ActivityConfig
from .optimization import QueueOptimizer
from .positions import PositionRegistry
from .queue_store import QueueStore

logger = logging.getLogger(__name__)

_LOG_SIZE = 50


@dataclass(frozen=True)
class ConflictShift:
    """One entry pushed later so it starts after another one ends."""

    entry_id: str
    position_id: str
    position_name: str
    other_position_id: str
    other_position_name: str
    minutes: int

    @property
    def message(self) -> str:
        return (
            f"Shifted {self.position_name} by {self.minutes} minutes "
            f"to avoid conflict with {self.other_position_name}"
        )


@dataclass(frozen=True)
class ConflictReport:
    candidate_id: str
    shifts: Tuple[ConflictShift, ...] = ()
    suppressed_by_optimization: bool = False

    @property
    def has_conflicts(self) -> bool:
        return bool(self.shifts)

    @property
    def messages(self) -> List[str]:
        return [s.message for s in self.shifts]


class _Slot:
    __slots__ = ("entry", "name", "start", "end")

    def __init__(self, entry: QueueEntry, name: str, duration: int) -> None:
        self.entry = entry
        self.name = name
        self.start = entry.projected_wait_minutes
        self.end = self.start + duration


class ConflictResolver:
    """
    Finds overlapping projected interview windows and staggers them.

    Windows are walked earliest first, priority before regular on ties.
    Whenever a window starts before the latest end seen so far it is pushed
    to start ``buffer_time`` minutes after that end. :meth:`detect` only
    reports the plan; :meth:`resolve` applies it through the store's delay
    mechanics so the projected windows move by exactly the planned amounts.
    """

    def __init__(
        self,
        store: QueueStore,
        positions: PositionRegistry,
        config: ActivityConfig,
        optimizer: QueueOptimizer,
    ) -> None:
        self._store = store
        self._positions = positions
        self._config = config
        self._optimizer = optimizer
        self._log: Dict[str, Deque[Tuple[datetime, str]]] = {}
        self._log_lock = threading.Lock()

    def plan(
        self,
        entries: List[QueueEntry],
        window: ActivityWindow,
        excluded_pairs: Set[FrozenSet[str]] = frozenset(),
    ) -> List[ConflictShift]:
        slots = []
        for entry in entries:
            if entry.status not in QUEUED_STATUSES:
                continue
            position = self._positions.get(entry.position_id)
            slots.append(_Slot(entry, position.name, position.duration(window)))
        if len(slots) < 2:
            return []
        slots.sort(key=lambda s: (s.start, not s.entry.is_priority, s.entry.position_id))

        shifts: List[ConflictShift] = []
        latest = slots[0]
        for slot in slots[1:]:
            pair = frozenset((slot.entry.position_id, latest.entry.position_id))
            if slot.start < latest.end and pair not in excluded_pairs:
                minutes = latest.end - slot.start + window.buffer_time
                shifts.append(
                    ConflictShift(
                        entry_id=slot.entry.id,
                        position_id=slot.entry.position_id,
                        position_name=slot.name,
                        other_position_id=latest.entry.position_id,
                        other_position_name=latest.name,
                        minutes=minutes,
                    )
                )
                slot.start += minutes
                slot.end += minutes
            if slot.end > latest.end:
                latest = slot
        return shifts

    def detect(self, candidate_id: str) -> ConflictReport:
        store = self._store
        with store.candidate_locks.hold(candidate_id):
            ids = store.candidate_position_ids(candidate_id)
            with store.position_locks.hold(*ids):
                entries = store.candidate_entries_locked(candidate_id, ids)
                return self._report(candidate_id, entries)

    def resolve(self, candidate_id: str) -> ConflictReport:
        """Apply the shift plan. Running it again finds nothing to do."""
        store = self._store
        with store.candidate_locks.hold(candidate_id):
            ids = store.candidate_position_ids(candidate_id)
            with store.position_locks.hold(*ids):
                entries = store.candidate_entries_locked(candidate_id, ids)
                report = self._report(candidate_id, entries)
                if not report.has_conflicts:
                    return report
                window = self._config.snapshot()
                now = store.now()
                for shift in report.shifts:
                    queue = store.queue_for(shift.position_id)
                    entry = queue.find(candidate_id)
                    store.delay_locked(queue, entry, shift.minutes, window, now)
                self._record(candidate_id, now, report.messages)
        for message in report.messages:
            logger.info("Candidate %s: %s", candidate_id, message)
        return report

    def resolution_log(self, candidate_id: str) -> List[Tuple[datetime, str]]:
        with self._log_lock:
            return list(self._log.get(candidate_id, ()))

    def _report(self, candidate_id: str, entries: List[QueueEntry]) -> ConflictReport:
        if self._optimizer.evaluate(candidate_id, entries) is not None:
            return ConflictReport(candidate_id, suppressed_by_optimization=True)
        excluded: Set[FrozenSet[str]] = set()
        decision = self._optimizer.decision_for(candidate_id, entries)
        if decision is not None and decision.accepted:
            excluded.add(decision.pair)
        shifts = self.plan(entries, self._config.snapshot(), excluded)
        return ConflictReport(candidate_id, tuple(shifts))

    def _record(self, candidate_id: str, when: datetime, messages: List[str]) -> None:
        with self._log_lock:
            log = self._log.setdefault(candidate_id, deque(maxlen=_LOG_SIZE))
            for message in messages:
                log.append((when, message))
