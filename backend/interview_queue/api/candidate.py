"""Candidate endpoints: positions, queue membership, conflicts and optimization."""

from typing import List, Optional

from fastapi import APIRouter, Depends

from ..core.security import Principal
from ..domain.schemas import (
    ConflictReportOut,
    DelayRequest,
    GroupOut,
    GroupResponseRequest,
    OptimizationDecisionRequest,
    OptimizationOut,
    OptimizationPosition,
    PositionRef,
    PositionSummary,
    QueueEntryOut,
    QueueStatusItem,
    QueueStatusOut,
)
from ..services.conflicts import ConflictReport
from ..services.optimization import OptimizationOffer
from ..services.scheduler import SchedulingService
from .deps import get_service, require_role

router = APIRouter(prefix="/candidate", tags=["Candidate"])

candidate = require_role("candidate")


def _offer_out(offer: Optional[OptimizationOffer]) -> OptimizationOut:
    if offer is None:
        return OptimizationOut(can_optimize=False, message="No optimization available")
    return OptimizationOut(
        can_optimize=True,
        regular_position=OptimizationPosition(
            id=offer.regular.position_id,
            name=offer.regular_name,
            wait_time=offer.regular.estimated_wait_minutes,
        ),
        priority_position=OptimizationPosition(
            id=offer.priority.position_id,
            name=offer.priority_name,
            wait_time=offer.priority.estimated_wait_minutes,
        ),
        current_total=offer.current_total,
        optimized_total=offer.optimized_total,
        time_saved=offer.time_saved,
        message=offer.message,
    )


def _report_out(report: ConflictReport, service: SchedulingService) -> ConflictReportOut:
    return ConflictReportOut(
        has_conflicts=report.has_conflicts,
        messages=report.messages,
        resolved_messages=[message for _, message in service.conflicts.resolution_log(report.candidate_id)],
        suppressed_by_optimization=report.suppressed_by_optimization,
    )


@router.get("/positions", response_model=List[PositionSummary])
def available_positions(
    _: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    window = service.activity.snapshot()
    return [
        PositionSummary(
            id=item["position"].id,
            name=item["position"].name,
            company_id=item["position"].company_id,
            description=item["position"].description,
            interview_duration=item["position"].duration(window),
            candidates_in_queue=item["candidates_in_queue"],
            available_interviewers=item["available_interviewers"],
        )
        for item in service.available_positions()
    ]


@router.get("/queue/status", response_model=QueueStatusOut)
def queue_status(
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    status = service.queue_status(principal.user_id)
    return QueueStatusOut(
        entries=[
            QueueStatusItem(
                entry=QueueEntryOut.model_validate(item["entry"]),
                position_name=item["position"].name,
                interview_duration=item["interview_duration"],
                can_set_priority=item["can_set_priority"],
            )
            for item in status["entries"]
        ],
        attendance_order=status["attendance_order"],
        group_invitations=[GroupOut.model_validate(g) for g in status["group_invitations"]],
    )


@router.post("/queue/join", response_model=QueueEntryOut, status_code=201)
def join_queue(
    body: PositionRef,
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return QueueEntryOut.model_validate(service.join_queue(principal.user_id, body.position_id))


@router.post("/queue/leave")
def leave_queue(
    body: PositionRef,
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
) -> dict[str, str]:
    service.leave_queue(principal.user_id, body.position_id)
    return {"message": "Left queue"}


@router.post("/queue/priority", response_model=QueueEntryOut)
def request_priority(
    body: PositionRef,
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return QueueEntryOut.model_validate(service.request_priority(principal.user_id, body.position_id))


@router.post("/queue/delay", response_model=QueueEntryOut)
def delay(
    body: DelayRequest,
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return QueueEntryOut.model_validate(service.delay(principal.user_id, body.position_id, body.minutes))


@router.get("/queue/optimization", response_model=OptimizationOut)
def check_optimization(
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return _offer_out(service.check_optimization(principal.user_id))


@router.post("/queue/optimize", response_model=List[QueueEntryOut])
def decide_optimization(
    body: OptimizationDecisionRequest,
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    """Accept or reject the current offer; rejecting staggers conflicting entries."""
    entries = service.decide_optimization(
        principal.user_id,
        body.regular_position_id,
        body.priority_position_id,
        body.accept,
    )
    return [QueueEntryOut.model_validate(e) for e in entries]


@router.get("/queue/conflicts", response_model=ConflictReportOut)
def check_conflicts(
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return _report_out(service.detect_conflicts(principal.user_id), service)


@router.post("/queue/conflicts/resolve", response_model=ConflictReportOut)
def resolve_conflicts(
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return _report_out(service.resolve_conflicts(principal.user_id), service)


@router.post("/group/{group_id}/respond", response_model=GroupOut)
def respond_to_group(
    group_id: str,
    body: GroupResponseRequest,
    principal: Principal = Depends(candidate),
    service: SchedulingService = Depends(get_service),
):
    return GroupOut.model_validate(service.respond_to_group(principal.user_id, group_id, body.accept))
