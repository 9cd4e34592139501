"""Bearer token verification.

Tokens are issued by the platform's auth service; this module only checks
the signature and maps the claims onto a :class:`Principal`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Optional

from jose import JWTError
from jose import jwt as jose_jwt

from .config import settings

logger = logging.getLogger(__name__)

ROLES = ("candidate", "interviewer", "control_admin", "company_admin")


@dataclass(frozen=True)
class Principal:
    """Authenticated caller.

    Example:
        >>> Principal(user_id="cand_1", role="candidate", name="Carol")
    """

    user_id: str
    role: str
    name: str = ""
    company_id: Optional[str] = None
    email: Optional[str] = None


def create_access_token(
    principal: Principal,
    expires_delta: Optional[timedelta] = None,
    secret: Optional[str] = None,
) -> str:
    """
    Create a signed token for ``principal``.

    Only tooling and tests mint tokens; production tokens come from the
    auth service using the same secret.
    """
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(hours=24))
    claims: dict[str, Any] = {
        "sub": principal.user_id,
        "role": principal.role,
        "name": principal.name,
        "exp": expire,
    }
    if principal.company_id is not None:
        claims["company_id"] = principal.company_id
    if principal.email:
        claims["email"] = principal.email
    return jose_jwt.encode(claims, secret or settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def verify_access_token(token: str, secret: Optional[str] = None) -> Optional[Principal]:
    """
    Verify and decode a bearer token.

    Returns:
        The principal if the token is valid, None otherwise.
    """
    try:
        payload = jose_jwt.decode(token, secret or settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except JWTError as e:
        logger.warning("JWT verification failed: %s", e)
        return None

    role = payload.get("role")
    user_id = payload.get("sub")
    if role not in ROLES or not user_id:
        logger.warning("JWT carries unusable claims: role=%s", role)
        return None
    company_id = payload.get("company_id")
    return Principal(
        user_id=str(user_id),
        role=role,
        name=payload.get("name", ""),
        company_id=str(company_id) if company_id is not None else None,
        email=payload.get("email"),
    )
