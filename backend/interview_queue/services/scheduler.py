"""Facade wiring the scheduling components together for the HTTP layer."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from ..core.clock import Clock
from ..core.config import Settings
from ..core.errors import PermissionDenied, PositionHasLiveEntries, ValidationError
from ..domain.models import ActivityWindow, GroupSession, Interview, Position, QueueEntry
from .activity import ActivityConfig, ActivityGate
from .conflicts import ConflictReport, ConflictResolver
from .estimator import WaitTimeEstimator
from .groups import GroupCoordinator
from .optimization import OptimizationOffer, QueueOptimizer
from .positions import PositionRegistry
from .queue_store import QueueStore
from .sessions import SessionManager

logger = logging.getLogger(__name__)


class SchedulingService:
    """
    One instance per process, shared by every request.

    Components are exposed as attributes for callers that need the finer
    grained API; the methods below add the cross-component rules (automatic
    conflict resolution, ownership checks, derived read models).
    """

    def __init__(self, settings: Settings, clock: Optional[Clock] = None) -> None:
        self.settings = settings
        self.clock = clock or Clock(settings.TIMEZONE)
        self.activity = ActivityConfig.from_settings(settings, self.clock)
        self.gate = ActivityGate(self.activity)
        self.positions = PositionRegistry()
        self.queues = QueueStore(
            self.activity,
            self.gate,
            self.positions,
            WaitTimeEstimator(),
            delay_range=(settings.DELAY_MIN_MINUTES, settings.DELAY_MAX_MINUTES),
        )
        self.optimizer = QueueOptimizer(self.queues, self.positions, settings.transfer_overhead)
        self.conflicts = ConflictResolver(self.queues, self.positions, self.activity, self.optimizer)
        self.sessions = SessionManager(self.queues, self.positions, self.activity)
        self.groups = GroupCoordinator(
            self.queues,
            self.positions,
            self.activity,
            self.sessions,
            trigger_minutes=settings.GROUP_TRIGGER_MINUTES,
            min_accepts=settings.GROUP_MIN_ACCEPTS,
        )

    # ------------------------------------------------------------------
    # Candidate
    # ------------------------------------------------------------------

    def available_positions(self) -> List[Dict[str, Any]]:
        return [
            {
                "position": position,
                "candidates_in_queue": self.queues.queue_length(position.id),
                "available_interviewers": self.sessions.available_interviewers(position),
            }
            for position in self.positions.list(active_only=True)
        ]

    def join_queue(self, candidate_id: str, position_id: str) -> QueueEntry:
        self.queues.join(position_id, candidate_id)
        self._settle(candidate_id)
        return self.queues.entry(position_id, candidate_id)

    def leave_queue(self, candidate_id: str, position_id: str) -> None:
        self.queues.leave(position_id, candidate_id)

    def request_priority(self, candidate_id: str, position_id: str) -> QueueEntry:
        self.queues.request_priority(position_id, candidate_id)
        self._settle(candidate_id)
        return self.queues.entry(position_id, candidate_id)

    def delay(self, candidate_id: str, position_id: str, minutes: int) -> QueueEntry:
        return self.queues.delay(position_id, candidate_id, minutes)

    def queue_status(self, candidate_id: str) -> Dict[str, Any]:
        """Every live entry with its position plus the suggested attendance order."""
        entries = self.queues.candidate_entries(candidate_id)
        window = self.activity.snapshot()
        can_prioritize = self.gate.can_join_queue() and self.gate.can_request_priority()
        items = []
        for entry in entries:
            position = self.positions.get(entry.position_id)
            items.append(
                {
                    "entry": entry,
                    "position": position,
                    "interview_duration": position.duration(window),
                    "can_set_priority": can_prioritize and not entry.is_priority,
                }
            )
        return {
            "entries": items,
            "attendance_order": self.optimizer.attendance_order(candidate_id, entries),
            "group_invitations": self.groups.invitations_for(candidate_id),
        }

    def check_optimization(self, candidate_id: str) -> Optional[OptimizationOffer]:
        return self.optimizer.check(candidate_id)

    def decide_optimization(
        self,
        candidate_id: str,
        regular_position_id: str,
        priority_position_id: str,
        accept: bool,
    ) -> List[QueueEntry]:
        if accept:
            self.optimizer.apply(candidate_id, regular_position_id, priority_position_id)
        else:
            self.optimizer.reject(candidate_id, regular_position_id, priority_position_id)
            self.conflicts.resolve(candidate_id)
        return self.queues.candidate_entries(candidate_id)

    def detect_conflicts(self, candidate_id: str) -> ConflictReport:
        return self.conflicts.detect(candidate_id)

    def resolve_conflicts(self, candidate_id: str) -> ConflictReport:
        return self.conflicts.resolve(candidate_id)

    def respond_to_group(self, candidate_id: str, group_id: str, accept: bool) -> GroupSession:
        return self.groups.respond(group_id, candidate_id, accept)

    # ------------------------------------------------------------------
    # Interviewer
    # ------------------------------------------------------------------

    def interviewer_positions(self, interviewer_id: str) -> List[Position]:
        return [p for p in self.positions.list() if interviewer_id in p.interviewer_ids]

    def interviewer_queue(self, interviewer_id: str, position_id: Optional[str] = None) -> Dict[str, Any]:
        if position_id is None:
            assigned = self.interviewer_positions(interviewer_id)
            if not assigned:
                raise ValidationError("position_id is required when no position is assigned to you")
            position = assigned[0]
        else:
            position = self.positions.get(position_id)
        self.sessions.check_assignment(position, interviewer_id)
        return {
            "position": position,
            "entries": self.queues.snapshot(position.id),
            "group_recommended": self.groups.should_trigger(position.id),
        }

    def end_interview(
        self,
        interviewer_id: str,
        interview_id: str,
        notes: Optional[str] = None,
        exception: bool = False,
    ) -> Interview:
        self._own_interview(interviewer_id, interview_id)
        return self.sessions.end(interview_id, notes, exception=exception)

    def extend_interview(self, interviewer_id: str, interview_id: str, minutes: int, note: Optional[str]) -> Interview:
        self._own_interview(interviewer_id, interview_id)
        return self.sessions.extend(interview_id, minutes, note)

    def end_group(self, interviewer_id: str, group_id: str) -> GroupSession:
        self._own_group(interviewer_id, group_id)
        return self.groups.end(group_id)

    def cancel_group(self, interviewer_id: str, group_id: str) -> GroupSession:
        self._own_group(interviewer_id, group_id)
        return self.groups.cancel(group_id)

    # ------------------------------------------------------------------
    # Company admin
    # ------------------------------------------------------------------

    def create_position(self, company_id: Optional[str], **fields: Any) -> Position:
        if not company_id:
            raise PermissionDenied("Company admin token carries no company")
        return self.positions.create(company_id, **fields)

    def update_position(self, company_id: Optional[str], position_id: str, **changes: Any) -> Position:
        self.positions.owned(position_id, company_id)
        return self.positions.update(position_id, **changes)

    def delete_position(self, company_id: Optional[str], position_id: str) -> None:
        self.positions.owned(position_id, company_id)
        with self.queues.position_locks.hold(position_id):
            if self.queues.has_entries(position_id):
                raise PositionHasLiveEntries("Position still has candidates in its queue")
            self.positions.delete(position_id)
            self.queues.drop_queue(position_id)

    def assign_interviewer(self, company_id: Optional[str], position_id: str, interviewer_id: str) -> Position:
        self.positions.owned(position_id, company_id)
        return self.positions.assign(position_id, interviewer_id)

    def unassign_interviewer(self, company_id: Optional[str], position_id: str, interviewer_id: str) -> Position:
        self.positions.owned(position_id, company_id)
        return self.positions.unassign(position_id, interviewer_id)

    # ------------------------------------------------------------------
    # Control admin
    # ------------------------------------------------------------------

    def update_activity(self, **changes: Any) -> ActivityWindow:
        return self.activity.update(**changes)

    def start_activity(self) -> ActivityWindow:
        return self.activity.start_activity(self.settings.ACTIVITY_DURATION_HOURS)

    def end_activity(self) -> ActivityWindow:
        return self.activity.end_activity()

    # ------------------------------------------------------------------

    def _settle(self, candidate_id: str) -> None:
        if len(self.queues.candidate_position_ids(candidate_id)) < 2:
            return
        report = self.conflicts.resolve(candidate_id)
        if report.suppressed_by_optimization:
            logger.info("Candidate %s has a queue optimization on offer", candidate_id)

    def _own_interview(self, interviewer_id: str, interview_id: str) -> None:
        interview = self.sessions.get(interview_id)
        if interview.interviewer_id != interviewer_id:
            raise PermissionDenied("Interview belongs to another interviewer")

    def _own_group(self, interviewer_id: str, group_id: str) -> None:
        if self.groups.get(group_id).interviewer_id != interviewer_id:
            raise PermissionDenied("Group interview belongs to another interviewer")

