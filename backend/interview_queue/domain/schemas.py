"""Pydantic models used for request and response bodies.

These data transfer objects (DTOs) mirror the domain dataclasses but add
validation and serialization helpers for the API layer. Response models read
straight from the dataclasses through ``from_attributes``.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, EmailStr, Field, computed_field

from .models import EntryStatus, GroupStatus, InterviewStatus, InvitationStatus


# ----------------------------------------------------------------------
# Requests
# ----------------------------------------------------------------------


class PositionRef(BaseModel):
    """Body naming a single position.

    Example:
        >>> PositionRef(position_id="pos_1")
    """

    position_id: str

    class Config:
        frozen = True
        json_schema_extra = {"example": {"position_id": "pos_1"}}


class DelayRequest(BaseModel):
    """Ask to be seen later at one position.

    Example:
        >>> DelayRequest(position_id="pos_1", minutes=10)
    """

    position_id: str
    minutes: int

    class Config:
        frozen = True
        json_schema_extra = {"example": {"position_id": "pos_1", "minutes": 10}}


class OptimizationDecisionRequest(BaseModel):
    regular_position_id: str
    priority_position_id: str
    accept: bool = True

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "regular_position_id": "pos_2",
                "priority_position_id": "pos_1",
                "accept": True,
            }
        }


class GroupResponseRequest(BaseModel):
    accept: bool

    class Config:
        frozen = True


class EndInterviewRequest(BaseModel):
    """Close an interview, optionally flagging it as an exception.

    Example:
        >>> EndInterviewRequest(interview_id="int_1", notes="No show", exception=True)
    """

    interview_id: str
    notes: Optional[str] = None
    exception: bool = False

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {"interview_id": "int_1", "notes": "Strong Python", "exception": False}
        }


class ExtendInterviewRequest(BaseModel):
    interview_id: str
    minutes: int = Field(gt=0)
    note: Optional[str] = None

    class Config:
        frozen = True


class PauseRequest(BaseModel):
    paused: bool

    class Config:
        frozen = True


class GroupInitiateRequest(BaseModel):
    position_id: str
    max_participants: Optional[int] = None

    class Config:
        frozen = True
        json_schema_extra = {"example": {"position_id": "pos_1", "max_participants": 4}}


class ActivitySettingsUpdate(BaseModel):
    """Partial update of the activity window.

    Times accept ISO datetimes or ``HH:MM`` of the current day.

    Example:
        >>> ActivitySettingsUpdate(start_time="09:00", end_time="17:00", buffer_time=3)
    """

    start_time: Optional[str] = None
    end_time: Optional[str] = None
    active_flag: Optional[bool] = None
    active_queue_limit: Optional[int] = None
    high_priority_quota: Optional[int] = None
    average_interview_time: Optional[int] = None
    buffer_time: Optional[int] = None
    group_interview_max_size: Optional[int] = None
    high_priority_time_limit: Optional[int] = None
    max_queue_length: Optional[int] = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {"start_time": "09:00", "end_time": "17:00", "high_priority_quota": 3}
        }


class PositionCreate(BaseModel):
    """New position for the caller's company.

    Example:
        >>> PositionCreate(name="Backend Engineer", interview_duration=10)
    """

    name: str
    description: str = ""
    interview_duration: Optional[int] = None

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "name": "Backend Engineer",
                "description": "Python services",
                "interview_duration": 10,
            }
        }


class PositionUpdate(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    interview_duration: Optional[int] = None
    is_active: Optional[bool] = None

    class Config:
        frozen = True


class AssignRequest(BaseModel):
    interviewer_id: str

    class Config:
        frozen = True


# ----------------------------------------------------------------------
# Responses
# ----------------------------------------------------------------------


class Profile(BaseModel):
    """Authenticated caller as carried by the bearer token.

    Example:
        >>> Profile(user_id="cand_1", role="candidate", name="Carol", email="c@example.com")
    """

    user_id: str
    role: str
    name: str = ""
    company_id: Optional[str] = None
    email: Optional[EmailStr] = None

    class Config:
        frozen = True
        from_attributes = True
        json_schema_extra = {
            "example": {
                "user_id": "cand_1",
                "role": "candidate",
                "name": "Carol",
                "company_id": None,
                "email": "c@example.com",
            }
        }


class PositionOut(BaseModel):
    id: str
    company_id: str
    name: str
    description: str
    interview_duration: Optional[int]
    is_active: bool
    interviewer_ids: List[str]

    class Config:
        frozen = True
        from_attributes = True


class PositionSummary(BaseModel):
    """Position as listed to candidates.

    Example:
        >>> PositionSummary(
        ...     id="pos_1",
        ...     name="Backend Engineer",
        ...     company_id="acme",
        ...     interview_duration=8,
        ...     candidates_in_queue=3,
        ...     available_interviewers=1,
        ... )
    """

    id: str
    name: str
    company_id: str
    description: str = ""
    interview_duration: int
    candidates_in_queue: int
    available_interviewers: int

    class Config:
        frozen = True


class QueueEntryOut(BaseModel):
    """A live queue entry.

    Example:
        >>> QueueEntryOut(
        ...     id="qe_1",
        ...     position_id="pos_1",
        ...     candidate_id="cand_1",
        ...     joined_at=datetime(2024, 1, 1, 9, 5),
        ...     status="waiting",
        ...     is_priority=False,
        ...     queue_rank=1,
        ...     estimated_wait_minutes=0,
        ... )
    """

    id: str
    position_id: str
    candidate_id: str
    joined_at: datetime
    status: EntryStatus
    is_priority: bool
    priority_expires_at: Optional[datetime] = None
    queue_rank: int
    estimated_wait_minutes: int
    hold_minutes: int = 0
    projected_wait_minutes: int = 0
    delay_count: int = 0

    @computed_field
    @property
    def queue_position(self) -> int:
        return self.queue_rank

    @computed_field
    @property
    def estimated_wait_time(self) -> int:
        """Minutes until the candidate is expected, holds included."""
        return self.projected_wait_minutes

    class Config:
        frozen = True
        from_attributes = True
        json_schema_extra = {
            "example": {
                "id": "qe_1",
                "position_id": "pos_1",
                "candidate_id": "cand_1",
                "joined_at": "2024-01-01T09:05:00+05:30",
                "status": "waiting",
                "is_priority": False,
                "priority_expires_at": None,
                "queue_rank": 1,
                "estimated_wait_minutes": 0,
                "hold_minutes": 0,
                "projected_wait_minutes": 0,
                "delay_count": 0,
            }
        }


class QueueStatusItem(BaseModel):
    entry: QueueEntryOut
    position_name: str
    interview_duration: int
    can_set_priority: bool

    class Config:
        frozen = True


class GroupOut(BaseModel):
    id: str
    position_id: str
    interviewer_id: str
    max_participants: int
    created_at: datetime
    invitations: Dict[str, InvitationStatus]
    status: GroupStatus
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    class Config:
        frozen = True
        from_attributes = True


class QueueStatusOut(BaseModel):
    entries: List[QueueStatusItem]
    attendance_order: List[str]
    group_invitations: List[GroupOut] = []

    class Config:
        frozen = True


class OptimizationPosition(BaseModel):
    id: str
    name: str
    wait_time: int

    class Config:
        frozen = True


class OptimizationOut(BaseModel):
    """Result of the two-queue reorder check.

    Example:
        >>> OptimizationOut(can_optimize=False, message="No optimization available")
    """

    can_optimize: bool
    regular_position: Optional[OptimizationPosition] = None
    priority_position: Optional[OptimizationPosition] = None
    current_total: int = 0
    optimized_total: int = 0
    time_saved: int = 0
    message: str = ""

    class Config:
        frozen = True
        json_schema_extra = {
            "example": {
                "can_optimize": True,
                "regular_position": {"id": "pos_2", "name": "Frontend", "wait_time": 6},
                "priority_position": {"id": "pos_1", "name": "Backend", "wait_time": 10},
                "current_total": 39,
                "optimized_total": 16,
                "time_saved": 23,
                "message": "You can interview for Frontend first (6 min wait) before Backend (10 min wait), saving 23 minutes!",
            }
        }


class ConflictReportOut(BaseModel):
    has_conflicts: bool
    messages: List[str]
    resolved_messages: List[str] = []
    suppressed_by_optimization: bool = False

    class Config:
        frozen = True


class ActivityStatusOut(BaseModel):
    """Public view of the activity gate."""

    is_active: bool
    start_time: datetime
    end_time: datetime
    current_time: datetime
    is_started: bool
    is_ended: bool
    can_join_queue: bool
    can_request_priority: bool
    minutes_until_start: Optional[int] = None
    minutes_until_end: int

    class Config:
        frozen = True


class ActivitySettingsOut(BaseModel):
    start_time: datetime
    end_time: datetime
    active_flag: bool
    active_queue_limit: int
    high_priority_quota: int
    average_interview_time: int
    buffer_time: int
    group_interview_max_size: int
    high_priority_time_limit: int
    max_queue_length: int

    class Config:
        frozen = True
        from_attributes = True


class InterviewOut(BaseModel):
    """Interview record.

    Example:
        >>> InterviewOut(
        ...     id="int_1",
        ...     position_id="pos_1",
        ...     candidate_id="cand_1",
        ...     interviewer_id="iv_1",
        ...     start_time=datetime(2024, 1, 1, 9, 30),
        ...     status="in_progress",
        ... )
    """

    id: str
    position_id: str
    candidate_id: str
    interviewer_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: InterviewStatus
    exception_flag: bool = False
    notes: List[str] = []
    group_id: Optional[str] = None

    class Config:
        frozen = True
        from_attributes = True


class InterviewerQueueOut(BaseModel):
    position: PositionOut
    entries: List[QueueEntryOut]
    group_recommended: bool

    class Config:
        frozen = True


class InterviewerStateOut(BaseModel):
    interviewer_id: str
    paused: bool
    busy: bool

    class Config:
        frozen = True
        from_attributes = True


class InterviewerStats(BaseModel):
    total_interviews: int
    average_duration_minutes: float
    today_interviews: int
    exceptions: int

    class Config:
        frozen = True
