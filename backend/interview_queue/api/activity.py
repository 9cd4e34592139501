"""Activity window: public gate status and control-admin settings."""

from fastapi import APIRouter, Depends

from ..core.security import Principal
from ..domain.schemas import ActivitySettingsOut, ActivitySettingsUpdate, ActivityStatusOut
from ..services.scheduler import SchedulingService
from .deps import get_service, require_role

router = APIRouter(tags=["Activity"])

control_admin = require_role("control_admin")


@router.get("/activity/status", response_model=ActivityStatusOut)
def activity_status(service: SchedulingService = Depends(get_service)):
    return ActivityStatusOut(**service.gate.status())


@router.get("/admin/activity", response_model=ActivitySettingsOut)
def get_activity(
    _: Principal = Depends(control_admin),
    service: SchedulingService = Depends(get_service),
):
    return ActivitySettingsOut.model_validate(service.activity.snapshot())


@router.put("/admin/activity", response_model=ActivitySettingsOut)
def update_activity(
    body: ActivitySettingsUpdate,
    _: Principal = Depends(control_admin),
    service: SchedulingService = Depends(get_service),
):
    """Apply a partial update; omitted fields keep their value."""
    window = service.update_activity(**body.model_dump(exclude_none=True))
    return ActivitySettingsOut.model_validate(window)


@router.post("/admin/activity/start", response_model=ActivitySettingsOut)
def start_activity(
    _: Principal = Depends(control_admin),
    service: SchedulingService = Depends(get_service),
):
    return ActivitySettingsOut.model_validate(service.start_activity())


@router.post("/admin/activity/end", response_model=ActivitySettingsOut)
def end_activity(
    _: Principal = Depends(control_admin),
    service: SchedulingService = Depends(get_service),
):
    return ActivitySettingsOut.model_validate(service.end_activity())
