"""Group interviews offered when a queue cannot be cleared before the end."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from typing import Dict, Optional

from ..core.errors import (
    AlreadyEnded,
    EmptyQueue,
    GroupNotFound,
    InterviewerBusy,
    InvalidState,
    PermissionDenied,
    ValidationError,
)
from ..domain.models import (
    ActivityWindow,
    EntryStatus,
    GroupSession,
    GroupStatus,
    InvitationStatus,
    QueueEntry,
)
from .activity import ActivityConfig
from .positions import PositionRegistry
from .queue_store import PositionQueue, QueueStore
from .sessions import SessionManager

logger = logging.getLogger(__name__)


class GroupCoordinator:
    """
    Invites the head of a queue into one session with a single interviewer.

    Lock order matches :class:`SessionManager`: interviewer lock, then the
    position lock. Group records sit behind a leaf lock.
    """

    def __init__(
        self,
        store: QueueStore,
        positions: PositionRegistry,
        config: ActivityConfig,
        sessions: SessionManager,
        trigger_minutes: int = 5,
        min_accepts: int = 0,
    ) -> None:
        self._store = store
        self._positions = positions
        self._config = config
        self._sessions = sessions
        self.trigger_minutes = trigger_minutes
        self.min_accepts = min_accepts
        self._groups: Dict[str, GroupSession] = {}
        self._guard = threading.Lock()
        self._ids = itertools.count(1)
        store.add_removal_listener(self._on_entry_removed)

    def should_trigger(self, position_id: str) -> bool:
        """True when the waiting line exceeds what the remaining time can serve."""
        window = self._config.snapshot()
        now = self._store.now()
        remaining = (window.end_time - now).total_seconds() / 60
        if remaining <= 0 or remaining >= self.trigger_minutes:
            return False
        position = self._positions.get(position_id)
        waiting = sum(1 for e in self._store.snapshot(position_id) if e.status == EntryStatus.WAITING)
        capacity = int(remaining // window.slot_minutes) * max(1, len(position.interviewer_ids))
        return waiting > capacity

    def initiate(self, position_id: str, interviewer_id: str, max_participants: Optional[int] = None) -> GroupSession:
        window = self._config.snapshot()
        size = max_participants or window.group_interview_max_size
        if size < 2:
            raise ValidationError("A group interview needs room for at least 2 participants")
        if not self.should_trigger(position_id):
            raise InvalidState("Group interviews are only offered when the queue cannot be cleared before the end")

        sessions = self._sessions
        store = self._store
        with sessions.interviewer_locks.hold(interviewer_id):
            position = self._positions.get(position_id)
            sessions.check_assignment(position, interviewer_id)
            if sessions.is_busy(interviewer_id):
                raise InterviewerBusy("Finish the current interview before starting a group")
            with store.position_locks.hold(position_id):
                now = store.now()
                queue = store.queue_for(position_id)
                store.refresh_locked(queue, window, now)
                invitees = [
                    e
                    for e in queue.entries
                    if e.status == EntryStatus.WAITING and not sessions.is_engaged(e.candidate_id)
                ][:size]
                if not invitees:
                    raise EmptyQueue(f"No candidates waiting for {position.name}")
                for entry in invitees:
                    entry.status = EntryStatus.READY
                store.refresh_locked(queue, window, now)

                group = GroupSession(
                    id=f"grp_{next(self._ids)}",
                    position_id=position_id,
                    interviewer_id=interviewer_id,
                    max_participants=size,
                    created_at=now,
                    invitations={e.candidate_id: InvitationStatus.PENDING for e in invitees},
                )
                with self._guard:
                    self._groups[group.id] = group
                sessions.reserve_for_group(interviewer_id, group.id)
        logger.info(
            "Group %s initiated at %s with %d invitations",
            group.id,
            position_id,
            len(invitees),
            extra={"group_id": group.id, "position_id": position_id, "interviewer_id": interviewer_id},
        )
        return self.get(group.id)

    def respond(self, group_id: str, candidate_id: str, accept: bool) -> GroupSession:
        group = self._require(group_id)
        store = self._store
        with self._sessions.interviewer_locks.hold(group.interviewer_id):
            with store.position_locks.hold(group.position_id):
                with self._guard:
                    if group.status != GroupStatus.INVITING:
                        raise InvalidState(f"Group interview is {group.status.value}")
                    answer = group.invitations.get(candidate_id)
                    if answer is None:
                        raise PermissionDenied("You were not invited to this group interview")
                    if answer != InvitationStatus.PENDING:
                        raise InvalidState("You have already responded to this invitation")
                    group.invitations[candidate_id] = (
                        InvitationStatus.ACCEPTED if accept else InvitationStatus.DECLINED
                    )

                window = self._config.snapshot()
                now = store.now()
                queue = store.queue_for(group.position_id)
                if not accept:
                    self._release(queue, candidate_id)
                store.refresh_locked(queue, window, now)

                self._advance_locked(group, queue, window)
        logger.info("Candidate %s %s group %s", candidate_id, "accepted" if accept else "declined", group_id)
        return self.get(group_id)

    def end(self, group_id: str) -> GroupSession:
        group = self._require(group_id)
        store = self._store
        with self._sessions.interviewer_locks.hold(group.interviewer_id):
            if group.status in (GroupStatus.COMPLETED, GroupStatus.CANCELLED):
                raise AlreadyEnded(f"Group interview already {group.status.value}")
            if group.status != GroupStatus.IN_PROGRESS:
                raise InvalidState("Group interview has not started yet")
            with store.position_locks.hold(group.position_id):
                window = self._config.snapshot()
                now = store.now()
                queue = store.queue_for(group.position_id)
                store.refresh_locked(queue, window, now)
                for candidate_id in group.accepted():
                    entry = queue.find(candidate_id)
                    if entry is not None:
                        entry.status = EntryStatus.COMPLETED
                        store.remove_locked(queue, entry, window, now)
                with self._guard:
                    group.status = GroupStatus.COMPLETED
                    group.end_time = now
                self._sessions.close_group(group.id, group.interviewer_id)
        logger.info("Group %s completed", group_id)
        return self.get(group_id)

    def cancel(self, group_id: str) -> GroupSession:
        group = self._require(group_id)
        store = self._store
        with self._sessions.interviewer_locks.hold(group.interviewer_id):
            with store.position_locks.hold(group.position_id):
                if group.status != GroupStatus.INVITING:
                    raise InvalidState(f"Only an inviting group can be cancelled, this one is {group.status.value}")
                queue = store.queue_for(group.position_id)
                self._cancel_locked(group, queue, self._config.snapshot())
        logger.info("Group %s cancelled", group_id)
        return self.get(group_id)

    def get(self, group_id: str) -> GroupSession:
        with self._guard:
            group = self._groups.get(group_id)
            if group is None:
                raise GroupNotFound(f"Group interview {group_id} not found")
            return replace(group, invitations=dict(group.invitations))

    def invitations_for(self, candidate_id: str) -> list:
        """Groups still waiting on this candidate's answer."""
        with self._guard:
            return [
                replace(g, invitations=dict(g.invitations))
                for g in self._groups.values()
                if g.status == GroupStatus.INVITING
                and g.invitations.get(candidate_id) == InvitationStatus.PENDING
            ]

    def required_accepts(self, group: GroupSession) -> int:
        invited = len(group.invitations)
        if self.min_accepts > 0:
            return min(self.min_accepts, invited)
        return invited // 2 + 1

    # ------------------------------------------------------------------

    def _advance_locked(self, group: GroupSession, queue: PositionQueue, window: ActivityWindow) -> None:
        """Start once enough invitees accepted; cancel once that can no longer happen."""
        with self._guard:
            if group.status != GroupStatus.INVITING:
                return
            accepted = len(group.accepted())
            pending = len(group.pending())
        required = self.required_accepts(group)
        if accepted >= required:
            self._start_locked(group, queue, window)
        elif accepted + pending < required:
            self._cancel_locked(group, queue, window)
            logger.info(
                "Group %s cancelled: only %d of %d needed acceptances still possible",
                group.id,
                accepted + pending,
                required,
            )

    def _start_locked(self, group: GroupSession, queue: PositionQueue, window: ActivityWindow) -> None:
        now = self._store.now()
        with self._guard:
            for candidate_id in group.pending():
                group.invitations[candidate_id] = InvitationStatus.DECLINED
            accepted = group.accepted()
            group.status = GroupStatus.IN_PROGRESS
            group.start_time = now
        for candidate_id in list(group.invitations):
            if candidate_id in accepted:
                entry = queue.find(candidate_id)
                if entry is not None:
                    entry.status = EntryStatus.IN_INTERVIEW
            else:
                self._release(queue, candidate_id)
        self._store.refresh_locked(queue, window, now)
        self._sessions.open_group(group.id, group.position_id, group.interviewer_id, accepted)
        logger.info("Group %s started with %d participants", group.id, len(accepted))

    def _cancel_locked(self, group: GroupSession, queue: PositionQueue, window: ActivityWindow) -> None:
        for candidate_id in group.invitations:
            self._release(queue, candidate_id)
        with self._guard:
            group.status = GroupStatus.CANCELLED
            group.end_time = self._store.now()
        self._store.refresh_locked(queue, window, self._store.now())
        self._sessions.close_group(group.id, group.interviewer_id)

    @staticmethod
    def _release(queue: PositionQueue, candidate_id: str) -> None:
        entry = queue.find(candidate_id)
        if entry is not None and entry.status == EntryStatus.READY:
            entry.status = EntryStatus.WAITING

    def _require(self, group_id: str) -> GroupSession:
        with self._guard:
            group = self._groups.get(group_id)
        if group is None:
            raise GroupNotFound(f"Group interview {group_id} not found")
        return group

    def _on_entry_removed(self, entry: QueueEntry) -> None:
        """Treat an invitee leaving the queue as a decline. Runs under the position lock."""
        affected = []
        with self._guard:
            for group in self._groups.values():
                if (
                    group.status == GroupStatus.INVITING
                    and group.position_id == entry.position_id
                    and group.invitations.get(entry.candidate_id) == InvitationStatus.PENDING
                ):
                    group.invitations[entry.candidate_id] = InvitationStatus.DECLINED
                    affected.append(group)
        if not affected:
            return
        queue = self._store.queue_for(entry.position_id)
        window = self._config.snapshot()
        for group in affected:
            self._advance_locked(group, queue, window)
