"""Domain error taxonomy and its HTTP mapping.

Every failure the scheduling core can report derives from
:class:`SchedulingError`. The first level of subclasses is the category a
client renders distinct messaging for; the leaves carry a stable ``code``.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

logger = logging.getLogger(__name__)


class SchedulingError(Exception):
    """Base class for all domain failures."""

    category = "scheduling_error"
    code = "scheduling_error"
    status_code = 400

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.code.replace("_", " "))
        self.message = message or self.code.replace("_", " ")

    def to_dict(self) -> dict[str, str]:
        return {"error": self.code, "category": self.category, "detail": self.message}


# Categories


class PermissionDenied(SchedulingError):
    category = code = "permission_denied"
    status_code = 403


class ActivityGateClosed(SchedulingError):
    category = code = "activity_gate_closed"
    status_code = 409


class NotFound(SchedulingError):
    category = code = "not_found"
    status_code = 404


class Conflict(SchedulingError):
    category = code = "conflict"
    status_code = 409


class InvalidState(SchedulingError):
    category = code = "invalid_state"
    status_code = 409


class ValidationError(SchedulingError):
    category = code = "validation_error"
    status_code = 422


# Gate


class ActivityNotOpen(ActivityGateClosed):
    code = "activity_not_open"


class PriorityWindowClosed(ActivityGateClosed):
    code = "priority_window_closed"


# Lookups


class PositionNotFound(NotFound):
    code = "position_not_found"


class NotQueued(NotFound):
    code = "not_queued"


class InterviewNotFound(NotFound):
    code = "interview_not_found"


class GroupNotFound(NotFound):
    code = "group_not_found"


# Conflicts


class AlreadyQueued(Conflict):
    code = "already_queued"


class QueueFull(Conflict):
    code = "queue_full"


class ActiveQueueLimitReached(Conflict):
    code = "active_queue_limit_reached"


class PriorityQuotaExceeded(Conflict):
    code = "priority_quota_exceeded"


class AlreadyPriority(Conflict):
    code = "already_priority"


class InterviewerBusy(Conflict):
    code = "interviewer_busy"


class PositionHasLiveEntries(Conflict):
    code = "position_has_live_entries"


# State


class EmptyQueue(InvalidState):
    code = "empty_queue"


class AlreadyEnded(InvalidState):
    code = "already_ended"


class InterviewerPaused(InvalidState):
    code = "interviewer_paused"


class PositionInactive(InvalidState):
    code = "position_inactive"


async def scheduling_error_handler(request: Request, exc: SchedulingError) -> JSONResponse:
    logger.warning("%s %s failed: %s (%s)", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_exception_handlers(app: FastAPI) -> None:
    """Install the domain error handler on ``app``."""
    app.add_exception_handler(SchedulingError, scheduling_error_handler)
