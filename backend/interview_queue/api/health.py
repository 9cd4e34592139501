"""Health check and caller profile endpoints."""

from fastapi import APIRouter, Depends

from ..core.security import Principal
from ..domain.schemas import Profile
from .deps import get_principal

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Return service health."""
    return {"status": "ok"}


@router.get("/api/profile", response_model=Profile)
async def profile(principal: Principal = Depends(get_principal)) -> Profile:
    """Return the authenticated caller."""
    return Profile.model_validate(principal)
