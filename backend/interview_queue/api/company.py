"""Company admin position management."""

from typing import List

from fastapi import APIRouter, Depends, Response

from ..core.security import Principal
from ..domain.schemas import AssignRequest, PositionCreate, PositionOut, PositionUpdate
from ..services.scheduler import SchedulingService
from .deps import get_service, require_role

router = APIRouter(prefix="/company", tags=["Company"])

company_admin = require_role("company_admin")


@router.get("/positions", response_model=List[PositionOut])
def list_positions(
    principal: Principal = Depends(company_admin),
    service: SchedulingService = Depends(get_service),
):
    positions = service.positions.list(company_id=principal.company_id or "")
    return [PositionOut.model_validate(p) for p in positions]


@router.post("/positions", response_model=PositionOut, status_code=201)
def create_position(
    body: PositionCreate,
    principal: Principal = Depends(company_admin),
    service: SchedulingService = Depends(get_service),
):
    position = service.create_position(principal.company_id, **body.model_dump())
    return PositionOut.model_validate(position)


@router.put("/positions/{position_id}", response_model=PositionOut)
def update_position(
    position_id: str,
    body: PositionUpdate,
    principal: Principal = Depends(company_admin),
    service: SchedulingService = Depends(get_service),
):
    position = service.update_position(principal.company_id, position_id, **body.model_dump(exclude_none=True))
    return PositionOut.model_validate(position)


@router.delete("/positions/{position_id}", status_code=204)
def delete_position(
    position_id: str,
    principal: Principal = Depends(company_admin),
    service: SchedulingService = Depends(get_service),
):
    service.delete_position(principal.company_id, position_id)
    return Response(status_code=204)


@router.post("/positions/{position_id}/assign", response_model=PositionOut)
def assign_interviewer(
    position_id: str,
    body: AssignRequest,
    principal: Principal = Depends(company_admin),
    service: SchedulingService = Depends(get_service),
):
    position = service.assign_interviewer(principal.company_id, position_id, body.interviewer_id)
    return PositionOut.model_validate(position)


@router.post("/positions/{position_id}/unassign", response_model=PositionOut)
def unassign_interviewer(
    position_id: str,
    body: AssignRequest,
    principal: Principal = Depends(company_admin),
    service: SchedulingService = Depends(get_service),
):
    position = service.unassign_interviewer(principal.company_id, position_id, body.interviewer_id)
    return PositionOut.model_validate(position)
