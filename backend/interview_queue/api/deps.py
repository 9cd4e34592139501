"""Shared FastAPI dependencies: the service instance and the caller."""

from __future__ import annotations

from typing import Callable, Optional

from fastapi import Depends, HTTPException, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..core.errors import PermissionDenied
from ..core.security import Principal, verify_access_token
from ..services.scheduler import SchedulingService

security = HTTPBearer(auto_error=False)


def get_service(request: Request) -> SchedulingService:
    return request.app.state.service


def get_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Principal:
    """Resolve the bearer token into a :class:`Principal` or answer 401."""
    if credentials is None:
        raise HTTPException(status_code=401, detail="Authorization header required")
    principal = verify_access_token(credentials.credentials)
    if principal is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return principal


def require_role(*roles: str) -> Callable[..., Principal]:
    """Dependency factory admitting only callers holding one of ``roles``."""

    def dependency(principal: Principal = Depends(get_principal)) -> Principal:
        if principal.role not in roles:
            raise PermissionDenied("Insufficient permissions")
        return principal

    return dependency
