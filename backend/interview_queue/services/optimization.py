"""Two-queue attendance reordering.

A candidate holding one priority entry (P) and one regular entry (R) would
normally be seen at P first. Going to R first can finish sooner because the
wait at P keeps running down while the candidate is elsewhere. The
comparison is closed form and only defined for exactly two queues.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from ..core.errors import InvalidState
from ..domain.models import EntryStatus, OptimizationDecision, QueueEntry
from .positions import PositionRegistry
from .queue_store import QueueStore

logger = logging.getLogger(__name__)


def compare_plans(priority_wait: int, regular_wait: int, transfer_overhead: int) -> Tuple[int, int, int]:
    """
    Total elapsed minutes for both attendance orders.

    Returns:
        ``(current_total, optimized_total, time_saved)``.
    """
    current_total = priority_wait + (regular_wait + priority_wait + transfer_overhead)
    optimized_total = regular_wait + priority_wait
    return current_total, optimized_total, current_total - optimized_total


@dataclass(frozen=True)
class OptimizationOffer:
    candidate_id: str
    regular: QueueEntry
    priority: QueueEntry
    regular_name: str
    priority_name: str
    current_total: int
    optimized_total: int
    time_saved: int

    @property
    def message(self) -> str:
        return (
            f"You can interview for {self.regular_name} first ({self.regular.estimated_wait_minutes} min wait) "
            f"before {self.priority_name} ({self.priority.estimated_wait_minutes} min wait), "
            f"saving {self.time_saved} minutes!"
        )


class QueueOptimizer:
    """Offers, records and forgets reorder decisions."""

    def __init__(self, store: QueueStore, positions: PositionRegistry, transfer_overhead: int) -> None:
        self._store = store
        self._positions = positions
        self.transfer_overhead = transfer_overhead
        self._decisions: Dict[str, Dict[frozenset, OptimizationDecision]] = {}
        self._lock = threading.Lock()
        store.add_removal_listener(self._forget_entry)

    def split(self, entries: List[QueueEntry]) -> Optional[Tuple[QueueEntry, QueueEntry]]:
        """Return ``(priority, regular)`` when the two-queue shape applies."""
        if len(entries) != 2:
            return None
        priority = [e for e in entries if e.is_priority]
        regular = [e for e in entries if not e.is_priority]
        if len(priority) != 1 or len(regular) != 1:
            return None
        if priority[0].status != EntryStatus.WAITING or regular[0].status != EntryStatus.WAITING:
            return None
        return priority[0], regular[0]

    def evaluate(self, candidate_id: str, entries: List[QueueEntry]) -> Optional[OptimizationOffer]:
        shape = self.split(entries)
        if shape is None:
            return None
        priority, regular = shape
        if self.decision_for(candidate_id, entries) is not None:
            return None
        current, optimized, saved = compare_plans(
            priority.estimated_wait_minutes, regular.estimated_wait_minutes, self.transfer_overhead
        )
        if saved <= 0:
            return None
        return OptimizationOffer(
            candidate_id=candidate_id,
            regular=regular,
            priority=priority,
            regular_name=self._positions.get(regular.position_id).name,
            priority_name=self._positions.get(priority.position_id).name,
            current_total=current,
            optimized_total=optimized,
            time_saved=saved,
        )

    def check(self, candidate_id: str) -> Optional[OptimizationOffer]:
        return self.evaluate(candidate_id, self._store.candidate_entries(candidate_id))

    def decide(
        self,
        candidate_id: str,
        regular_position_id: str,
        priority_position_id: str,
        accept: bool,
    ) -> OptimizationDecision:
        """
        Record the candidate's answer to the current offer.

        Accepting puts the regular position first in the candidate's own
        attendance order; nobody else's rank changes.

        Raises:
            InvalidState: no offer exists for this pair right now.
        """
        store = self._store
        with store.candidate_locks.hold(candidate_id):
            ids = store.candidate_position_ids(candidate_id)
            with store.position_locks.hold(*ids):
                entries = store.candidate_entries_locked(candidate_id, ids)
                offer = self.evaluate(candidate_id, entries)
                if (
                    offer is None
                    or offer.regular.position_id != regular_position_id
                    or offer.priority.position_id != priority_position_id
                ):
                    raise InvalidState("No queue optimization is available for these positions")
                decision = OptimizationDecision(
                    candidate_id=candidate_id,
                    regular_position_id=regular_position_id,
                    priority_position_id=priority_position_id,
                    accepted=accept,
                    decided_at=store.now(),
                )
                with self._lock:
                    self._decisions.setdefault(candidate_id, {})[decision.pair] = decision
        logger.info(
            "Candidate %s %s optimization %s before %s",
            candidate_id,
            "accepted" if accept else "rejected",
            regular_position_id,
            priority_position_id,
        )
        return decision

    def apply(self, candidate_id: str, regular_position_id: str, priority_position_id: str) -> OptimizationDecision:
        return self.decide(candidate_id, regular_position_id, priority_position_id, True)

    def reject(self, candidate_id: str, regular_position_id: str, priority_position_id: str) -> OptimizationDecision:
        return self.decide(candidate_id, regular_position_id, priority_position_id, False)

    def decision_for(self, candidate_id: str, entries: List[QueueEntry]) -> Optional[OptimizationDecision]:
        """The recorded decision for the candidate's current pair, if still applicable."""
        if self.split(entries) is None:
            return None
        pair = frozenset(e.position_id for e in entries)
        with self._lock:
            return self._decisions.get(candidate_id, {}).get(pair)

    def attendance_order(self, candidate_id: str, entries: List[QueueEntry]) -> List[str]:
        """Position ids in the order the candidate should attend them."""
        decision = self.decision_for(candidate_id, entries)
        if decision is not None and decision.accepted:
            return [decision.regular_position_id, decision.priority_position_id]
        ordered = sorted(
            entries,
            key=lambda e: (not e.is_priority, e.projected_wait_minutes, e.position_id),
        )
        return [e.position_id for e in ordered]

    def _forget_entry(self, entry: QueueEntry) -> None:
        with self._lock:
            decisions = self._decisions.get(entry.candidate_id)
            if not decisions:
                return
            for pair in [p for p in decisions if entry.position_id in p]:
                del decisions[pair]
            if not decisions:
                del self._decisions[entry.candidate_id]
