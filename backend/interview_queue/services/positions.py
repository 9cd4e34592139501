"""Position registry administered by company admins."""

from __future__ import annotations

import itertools
import logging
import threading
from dataclasses import replace
from typing import Dict, List, Optional

from ..core.errors import Conflict, PermissionDenied, PositionNotFound, ValidationError
from ..domain.models import Position

logger = logging.getLogger(__name__)


class PositionRegistry:
    """Holds every :class:`Position`. Positions are immutable; edits replace them."""

    def __init__(self) -> None:
        self._positions: Dict[str, Position] = {}
        self._ids = itertools.count(1)
        self._lock = threading.Lock()

    def create(
        self,
        company_id: str,
        name: str,
        description: str = "",
        interview_duration: Optional[int] = None,
        position_id: Optional[str] = None,
    ) -> Position:
        name = (name or "").strip()
        if not name:
            raise ValidationError("Position name is required")
        if interview_duration is not None and interview_duration < 1:
            raise ValidationError("interview_duration must be at least 1 minute")
        with self._lock:
            pid = position_id or f"pos_{next(self._ids)}"
            if pid in self._positions:
                raise Conflict(f"Position {pid} already exists")
            position = Position(
                id=pid,
                company_id=company_id,
                name=name,
                description=description,
                interview_duration=interview_duration,
            )
            self._positions[pid] = position
        logger.info("Position %s created for company %s", pid, company_id)
        return position

    def get(self, position_id: str) -> Position:
        with self._lock:
            position = self._positions.get(position_id)
        if position is None:
            raise PositionNotFound(f"Position {position_id} not found")
        return position

    def list(self, company_id: Optional[str] = None, active_only: bool = False) -> List[Position]:
        with self._lock:
            positions = list(self._positions.values())
        if company_id is not None:
            positions = [p for p in positions if p.company_id == company_id]
        if active_only:
            positions = [p for p in positions if p.is_active]
        return sorted(positions, key=lambda p: p.id)

    def owned(self, position_id: str, company_id: Optional[str]) -> Position:
        """Return the position if ``company_id`` owns it."""
        position = self.get(position_id)
        if company_id is None or position.company_id != company_id:
            raise PermissionDenied("Position belongs to another company")
        return position

    def update(self, position_id: str, **changes) -> Position:
        allowed = {"name", "description", "interview_duration", "is_active"}
        cleaned = {k: v for k, v in changes.items() if k in allowed and v is not None}
        if "name" in cleaned and not cleaned["name"].strip():
            raise ValidationError("Position name cannot be blank")
        if cleaned.get("interview_duration", 1) < 1:
            raise ValidationError("interview_duration must be at least 1 minute")
        return self._replace(position_id, **cleaned)

    def assign(self, position_id: str, interviewer_id: str) -> Position:
        position = self.get(position_id)
        if interviewer_id in position.interviewer_ids:
            return position
        return self._replace(position_id, interviewer_ids=position.interviewer_ids + (interviewer_id,))

    def unassign(self, position_id: str, interviewer_id: str) -> Position:
        position = self.get(position_id)
        remaining = tuple(i for i in position.interviewer_ids if i != interviewer_id)
        return self._replace(position_id, interviewer_ids=remaining)

    def delete(self, position_id: str) -> None:
        with self._lock:
            if self._positions.pop(position_id, None) is None:
                raise PositionNotFound(f"Position {position_id} not found")
        logger.info("Position %s deleted", position_id)

    def _replace(self, position_id: str, **changes) -> Position:
        with self._lock:
            current = self._positions.get(position_id)
            if current is None:
                raise PositionNotFound(f"Position {position_id} not found")
            updated = replace(current, **changes)
            self._positions[position_id] = updated
        return updated
