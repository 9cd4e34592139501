"""Interviewer-facing lifecycle: call, start, end, extend, pause, stats."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import dataclass, replace
from typing import Any, Dict, Iterable, List, Optional

from ..core.errors import (
    AlreadyEnded,
    EmptyQueue,
    InterviewerBusy,
    InterviewerPaused,
    InterviewNotFound,
    PermissionDenied,
    ValidationError,
)
from ..domain.models import EntryStatus, Interview, InterviewStatus, Position, QueueEntry
from .activity import ActivityConfig
from .locks import KeyedLocks
from .positions import PositionRegistry
from .queue_store import PositionQueue, QueueStore

logger = logging.getLogger(__name__)


@dataclass
class InterviewerState:
    interviewer_id: str
    paused: bool = False
    current_interview_id: Optional[str] = None
    group_id: Optional[str] = None

    @property
    def busy(self) -> bool:
        return self.current_interview_id is not None or self.group_id is not None


class SessionManager:
    """
    Moves queue entries through ``ready`` and ``in_interview`` and keeps
    interview records.

    Each interviewer is served one operation at a time through
    :attr:`interviewer_locks`, which is taken before any position lock.
    """

    def __init__(self, store: QueueStore, positions: PositionRegistry, config: ActivityConfig) -> None:
        self._store = store
        self._positions = positions
        self._config = config
        self.interviewer_locks = KeyedLocks("interviewer")
        self._interviewers: Dict[str, InterviewerState] = {}
        self._interviews: Dict[str, Interview] = {}
        # candidate id -> interview id (or group id) they are currently in
        self._engaged: Dict[str, str] = {}
        self._guard = threading.Lock()
        self._ids = itertools.count(1)

    # ------------------------------------------------------------------

    def check_assignment(self, position: Position, interviewer_id: str) -> None:
        if position.interviewer_ids and interviewer_id not in position.interviewer_ids:
            raise PermissionDenied(f"You are not assigned to {position.name}")

    def call_next(self, position_id: str, interviewer_id: str) -> QueueEntry:
        """Mark the head waiting entry as called."""
        with self.interviewer_locks.hold(interviewer_id):
            position = self._positions.get(position_id)
            self.check_assignment(position, interviewer_id)
            store = self._store
            with store.position_locks.hold(position_id):
                window = self._config.snapshot()
                now = store.now()
                queue = store.queue_for(position_id)
                store.refresh_locked(queue, window, now)
                entry = self._head(queue, (EntryStatus.WAITING,))
                if entry is None:
                    raise EmptyQueue(f"No candidates waiting for {position.name}")
                entry.status = EntryStatus.READY
                store.refresh_locked(queue, window, now)
                logger.info("Interviewer %s called candidate %s for %s", interviewer_id, entry.candidate_id, position_id)
                return replace(entry)

    def start_next(self, position_id: str, interviewer_id: str) -> Interview:
        with self.interviewer_locks.hold(interviewer_id):
            position = self._positions.get(position_id)
            self.check_assignment(position, interviewer_id)
            state = self._state(interviewer_id)
            if state.paused:
                raise InterviewerPaused("Resume before starting the next interview")
            if state.busy:
                raise InterviewerBusy("You already have an interview in progress")

            store = self._store
            with store.position_locks.hold(position_id):
                window = self._config.snapshot()
                now = store.now()
                queue = store.queue_for(position_id)
                store.refresh_locked(queue, window, now)
                entry = self._head(queue, (EntryStatus.READY, EntryStatus.WAITING))
                if entry is None:
                    raise EmptyQueue(f"No candidates available for {position.name}")
                entry.status = EntryStatus.IN_INTERVIEW
                store.refresh_locked(queue, window, now)

                interview = Interview(
                    id=f"int_{next(self._ids)}",
                    position_id=position_id,
                    candidate_id=entry.candidate_id,
                    interviewer_id=interviewer_id,
                    start_time=now,
                )
                with self._guard:
                    self._interviews[interview.id] = interview
                    self._engaged[entry.candidate_id] = interview.id
                    state.current_interview_id = interview.id
        logger.info(
            "Interview %s started: %s with candidate %s for %s",
            interview.id,
            interviewer_id,
            interview.candidate_id,
            position_id,
            extra={
                "candidate_id": interview.candidate_id,
                "position_id": position_id,
                "interviewer_id": interviewer_id,
                "interview_id": interview.id,
            },
        )
        return self._copy(interview)

    def end(self, interview_id: str, notes: Optional[str] = None, exception: bool = False) -> Interview:
        """Complete an interview and drop its queue entry. Exceptions do not re-queue."""
        interview = self.get(interview_id)
        with self.interviewer_locks.hold(interview.interviewer_id):
            if interview.status == InterviewStatus.COMPLETED:
                raise AlreadyEnded("Interview already ended")
            store = self._store
            with store.position_locks.hold(interview.position_id):
                window = self._config.snapshot()
                now = store.now()
                queue = store.queue_for(interview.position_id)
                store.refresh_locked(queue, window, now)
                entry = queue.find(interview.candidate_id)
                if entry is not None and entry.status == EntryStatus.IN_INTERVIEW:
                    entry.status = EntryStatus.COMPLETED
                    store.remove_locked(queue, entry, window, now)
                with self._guard:
                    interview.end_time = now
                    interview.status = InterviewStatus.COMPLETED
                    interview.exception_flag = interview.exception_flag or exception
                    if notes:
                        interview.notes.append(notes)
                    if self._engaged.get(interview.candidate_id) == interview.id:
                        del self._engaged[interview.candidate_id]
                    state = self._interviewers.get(interview.interviewer_id)
                    if state is not None and state.current_interview_id == interview.id:
                        state.current_interview_id = None
        logger.info(
            "Interview %s ended%s after %.1f minutes",
            interview.id,
            " with exception" if interview.exception_flag else "",
            interview.duration_minutes or 0,
            extra={"interview_id": interview.id, "interviewer_id": interview.interviewer_id},
        )
        return self._copy(interview)

    def mark_exception(self, interview_id: str, notes: Optional[str] = None) -> Interview:
        return self.end(interview_id, notes, exception=True)

    def extend(self, interview_id: str, minutes: int, note: Optional[str] = None) -> Interview:
        if minutes < 1:
            raise ValidationError("Extension must be at least 1 minute")
        interview = self.get(interview_id)
        with self.interviewer_locks.hold(interview.interviewer_id):
            if interview.status == InterviewStatus.COMPLETED:
                raise AlreadyEnded("Interview already ended")
            with self._guard:
                interview.notes.append(f"Extended by {minutes} minutes" + (f": {note}" if note else ""))
        logger.info("Interview %s extended by %d minutes", interview_id, minutes)
        return self._copy(interview)

    def current(self, interviewer_id: str) -> Optional[Interview]:
        with self._guard:
            state = self._interviewers.get(interviewer_id)
            if state is None or state.current_interview_id is None:
                return None
            return self._copy(self._interviews[state.current_interview_id])

    def set_paused(self, interviewer_id: str, paused: bool) -> InterviewerState:
        with self.interviewer_locks.hold(interviewer_id):
            state = self._state(interviewer_id)
            state.paused = paused
        logger.info("Interviewer %s %s", interviewer_id, "paused" if paused else "resumed")
        return replace(state)

    def state(self, interviewer_id: str) -> InterviewerState:
        with self._guard:
            return replace(self._state_unlocked(interviewer_id))

    def stats(self, interviewer_id: str) -> Dict[str, Any]:
        today = self._store.now().date()
        with self._guard:
            done = [
                i
                for i in self._interviews.values()
                if i.interviewer_id == interviewer_id and i.status == InterviewStatus.COMPLETED
            ]
            durations = [i.duration_minutes for i in done]
            return {
                "total_interviews": len(done),
                "average_duration_minutes": round(sum(durations) / len(durations), 1) if durations else 0.0,
                "today_interviews": sum(1 for i in done if i.start_time.date() == today),
                "exceptions": sum(1 for i in done if i.exception_flag),
            }

    def available_interviewers(self, position: Position) -> int:
        with self._guard:
            count = 0
            for interviewer_id in position.interviewer_ids:
                state = self._interviewers.get(interviewer_id)
                if state is None or not (state.paused or state.busy):
                    count += 1
            return count

    def is_engaged(self, candidate_id: str) -> bool:
        with self._guard:
            return candidate_id in self._engaged

    # ------------------------------------------------------------------
    # Group sessions. Callers hold the interviewer lock.
    # ------------------------------------------------------------------

    def is_busy(self, interviewer_id: str) -> bool:
        with self._guard:
            return self._state_unlocked(interviewer_id).busy

    def reserve_for_group(self, interviewer_id: str, group_id: str) -> None:
        with self._guard:
            self._state_unlocked(interviewer_id).group_id = group_id

    def open_group(self, group_id: str, position_id: str, interviewer_id: str, candidate_ids: Iterable[str]) -> List[Interview]:
        now = self._store.now()
        opened = []
        with self._guard:
            for candidate_id in candidate_ids:
                interview = Interview(
                    id=f"int_{next(self._ids)}",
                    position_id=position_id,
                    candidate_id=candidate_id,
                    interviewer_id=interviewer_id,
                    start_time=now,
                    group_id=group_id,
                )
                self._interviews[interview.id] = interview
                self._engaged[candidate_id] = interview.id
                opened.append(self._copy(interview))
        return opened

    def close_group(self, group_id: str, interviewer_id: str) -> None:
        """Complete the group's interview records and free its interviewer."""
        now = self._store.now()
        with self._guard:
            for interview in self._interviews.values():
                if interview.group_id != group_id or interview.status == InterviewStatus.COMPLETED:
                    continue
                interview.end_time = now
                interview.status = InterviewStatus.COMPLETED
                if self._engaged.get(interview.candidate_id) == interview.id:
                    del self._engaged[interview.candidate_id]
            state = self._state_unlocked(interviewer_id)
            if state.group_id == group_id:
                state.group_id = None

    # ------------------------------------------------------------------

    def _head(self, queue: PositionQueue, statuses: tuple) -> Optional[QueueEntry]:
        for entry in queue.entries:
            if entry.status in statuses and not self.is_engaged(entry.candidate_id):
                return entry
        return None

    def _state(self, interviewer_id: str) -> InterviewerState:
        with self._guard:
            return self._state_unlocked(interviewer_id)

    def _state_unlocked(self, interviewer_id: str) -> InterviewerState:
        state = self._interviewers.get(interviewer_id)
        if state is None:
            state = self._interviewers[interviewer_id] = InterviewerState(interviewer_id)
        return state

    def get(self, interview_id: str) -> Interview:
        with self._guard:
            interview = self._interviews.get(interview_id)
        if interview is None:
            raise InterviewNotFound(f"Interview {interview_id} not found")
        return interview

    @staticmethod
    def _copy(interview: Interview) -> Interview:
        return replace(interview, notes=list(interview.notes))
