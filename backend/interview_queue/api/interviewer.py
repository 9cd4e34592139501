"""Interviewer endpoints: queue view, interview lifecycle and group sessions."""

from typing import Optional

from fastapi import APIRouter, Depends

from ..core.security import Principal
from ..domain.schemas import (
    EndInterviewRequest,
    ExtendInterviewRequest,
    GroupInitiateRequest,
    GroupOut,
    InterviewerQueueOut,
    InterviewerStateOut,
    InterviewerStats,
    InterviewOut,
    PauseRequest,
    PositionOut,
    PositionRef,
    QueueEntryOut,
)
from ..services.scheduler import SchedulingService
from .deps import get_service, require_role

router = APIRouter(prefix="/interviewer", tags=["Interviewer"])

interviewer = require_role("interviewer")


@router.get("/queue", response_model=InterviewerQueueOut)
def interviewer_queue(
    position_id: Optional[str] = None,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    """Queue snapshot for ``position_id``, or the first assigned position."""
    view = service.interviewer_queue(principal.user_id, position_id)
    return InterviewerQueueOut(
        position=PositionOut.model_validate(view["position"]),
        entries=[QueueEntryOut.model_validate(e) for e in view["entries"]],
        group_recommended=view["group_recommended"],
    )


@router.post("/interview/call", response_model=QueueEntryOut)
def call_next(
    body: PositionRef,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    return QueueEntryOut.model_validate(service.sessions.call_next(body.position_id, principal.user_id))


@router.post("/interview/start", response_model=InterviewOut, status_code=201)
def start_interview(
    body: PositionRef,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    return InterviewOut.model_validate(service.sessions.start_next(body.position_id, principal.user_id))


@router.post("/interview/end", response_model=InterviewOut)
def end_interview(
    body: EndInterviewRequest,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    interview = service.end_interview(principal.user_id, body.interview_id, body.notes, body.exception)
    return InterviewOut.model_validate(interview)


@router.post("/interview/extend", response_model=InterviewOut)
def extend_interview(
    body: ExtendInterviewRequest,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    interview = service.extend_interview(principal.user_id, body.interview_id, body.minutes, body.note)
    return InterviewOut.model_validate(interview)


@router.get("/interview/current", response_model=Optional[InterviewOut])
def current_interview(
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    interview = service.sessions.current(principal.user_id)
    return InterviewOut.model_validate(interview) if interview else None


@router.post("/pause", response_model=InterviewerStateOut)
def pause(
    body: PauseRequest,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    return InterviewerStateOut.model_validate(service.sessions.set_paused(principal.user_id, body.paused))


@router.get("/stats", response_model=InterviewerStats)
def stats(
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    return InterviewerStats(**service.sessions.stats(principal.user_id))


@router.post("/group/initiate", response_model=GroupOut, status_code=201)
def initiate_group(
    body: GroupInitiateRequest,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    group = service.groups.initiate(body.position_id, principal.user_id, body.max_participants)
    return GroupOut.model_validate(group)


@router.post("/group/{group_id}/end", response_model=GroupOut)
def end_group(
    group_id: str,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    return GroupOut.model_validate(service.end_group(principal.user_id, group_id))


@router.post("/group/{group_id}/cancel", response_model=GroupOut)
def cancel_group(
    group_id: str,
    principal: Principal = Depends(interviewer),
    service: SchedulingService = Depends(get_service),
):
    return GroupOut.model_validate(service.cancel_group(principal.user_id, group_id))
