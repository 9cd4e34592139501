"""Core domain entities represented as dataclasses.

Configuration and positions are immutable and replaced wholesale on
change. Queue entries, interviews and group sessions are mutable but are
only ever touched while the owning position's lock is held; everything that
leaves a lock is a copy produced by :func:`dataclasses.replace`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple


class EntryStatus(str, Enum):
    WAITING = "waiting"
    READY = "ready"
    IN_INTERVIEW = "in_interview"
    DELAYED = "delayed"
    COMPLETED = "completed"


# Entries that can still be picked up, delayed or shifted.
QUEUED_STATUSES = (EntryStatus.WAITING, EntryStatus.DELAYED)

class InterviewStatus(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class GroupStatus(str, Enum):
    INVITING = "inviting"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class InvitationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"


@dataclass(frozen=True)
class ActivityWindow:
    """Global activity schedule and timing parameters.

    Example:
        >>> ActivityWindow(
        ...     start_time=datetime(2024, 1, 1, 9, 0),
        ...     end_time=datetime(2024, 1, 1, 17, 0),
        ... )
    """

    start_time: datetime
    end_time: datetime
    active_flag: bool = True
    active_queue_limit: int = 6
    high_priority_quota: int = 2
    average_interview_time: int = 8
    buffer_time: int = 5
    group_interview_max_size: int = 4
    high_priority_time_limit: int = 30
    max_queue_length: int = 500

    @property
    def slot_minutes(self) -> int:
        """Service time one queued candidate costs everybody behind them."""
        return self.average_interview_time + self.buffer_time


@dataclass(frozen=True)
class Position:
    """Interview slot type offered by a company.

    Example:
        >>> Position(id="pos_1", company_id="acme", name="Backend Engineer")
    """

    id: str
    company_id: str
    name: str
    description: str = ""
    interview_duration: Optional[int] = None
    is_active: bool = True
    interviewer_ids: Tuple[str, ...] = ()

    def duration(self, window: ActivityWindow) -> int:
        return self.interview_duration or window.average_interview_time


@dataclass
class QueueEntry:
    """A candidate's live membership in one position's queue.

    Example:
        >>> QueueEntry(
        ...     id="qe_1",
        ...     position_id="pos_1",
        ...     candidate_id="cand_1",
        ...     joined_at=datetime(2024, 1, 1, 9, 5),
        ... )
    """

    id: str
    position_id: str
    candidate_id: str
    joined_at: datetime
    status: EntryStatus = EntryStatus.WAITING
    is_priority: bool = False
    priority_set_at: Optional[datetime] = None
    priority_expires_at: Optional[datetime] = None
    queue_rank: int = 0
    estimated_wait_minutes: int = 0
    hold_minutes: int = 0
    delay_count: int = 0
    delayed_from_rank: Optional[int] = None
    delayed_until: Optional[datetime] = None

    @property
    def projected_wait_minutes(self) -> int:
        """Minutes until the candidate is expected at this position."""
        return self.estimated_wait_minutes + self.hold_minutes


@dataclass
class Interview:
    """One interviewer-candidate session.

    Example:
        >>> Interview(
        ...     id="int_1",
        ...     position_id="pos_1",
        ...     candidate_id="cand_1",
        ...     interviewer_id="iv_1",
        ...     start_time=datetime(2024, 1, 1, 9, 30),
        ... )
    """

    id: str
    position_id: str
    candidate_id: str
    interviewer_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    status: InterviewStatus = InterviewStatus.IN_PROGRESS
    exception_flag: bool = False
    notes: List[str] = field(default_factory=list)
    group_id: Optional[str] = None

    @property
    def duration_minutes(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return (self.end_time - self.start_time).total_seconds() / 60


@dataclass
class GroupSession:
    """Batched interview offered to the head of a queue near activity end.

    Example:
        >>> GroupSession(
        ...     id="grp_1",
        ...     position_id="pos_1",
        ...     interviewer_id="iv_1",
        ...     max_participants=4,
        ...     created_at=datetime(2024, 1, 1, 16, 56),
        ... )
    """

    id: str
    position_id: str
    interviewer_id: str
    max_participants: int
    created_at: datetime
    invitations: Dict[str, InvitationStatus] = field(default_factory=dict)
    status: GroupStatus = GroupStatus.INVITING
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None

    def accepted(self) -> List[str]:
        return [c for c, s in self.invitations.items() if s == InvitationStatus.ACCEPTED]

    def pending(self) -> List[str]:
        return [c for c, s in self.invitations.items() if s == InvitationStatus.PENDING]


@dataclass(frozen=True)
class OptimizationDecision:
    """A candidate's answer to a reorder offer.

    Example:
        >>> OptimizationDecision(
        ...     candidate_id="cand_1",
        ...     regular_position_id="pos_2",
        ...     priority_position_id="pos_1",
        ...     accepted=True,
        ...     decided_at=datetime(2024, 1, 1, 10, 0),
        ... )
    """

    candidate_id: str
    regular_position_id: str
    priority_position_id: str
    accepted: bool
    decided_at: datetime

    @property
    def pair(self) -> frozenset:
        return frozenset((self.regular_position_id, self.priority_position_id))
