"""Activity window configuration holder and join gate."""

from __future__ import annotations

import logging
import threading
from dataclasses import fields, replace
from datetime import datetime, time, timedelta
from typing import Any, Dict, Optional

from ..core.clock import Clock, minutes_between
from ..core.config import Settings
from ..core.errors import ActivityNotOpen, PriorityWindowClosed, ValidationError
from ..domain.models import ActivityWindow

logger = logging.getLogger(__name__)

_INT_FIELDS = (
    "active_queue_limit",
    "high_priority_quota",
    "average_interview_time",
    "buffer_time",
    "group_interview_max_size",
    "high_priority_time_limit",
    "max_queue_length",
)


class ActivityConfig:
    """
    Shared, read-mostly holder for the :class:`ActivityWindow`.

    Every component receives the same instance. Readers get the current
    frozen window; writers swap in a new one under the lock, so a reader
    never observes a half-applied update.
    """

    def __init__(self, window: ActivityWindow, clock: Clock) -> None:
        self._window = window
        self._clock = clock
        self._lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings, clock: Clock) -> "ActivityConfig":
        now = clock.now()
        window = ActivityWindow(
            start_time=now,
            end_time=now + timedelta(hours=settings.ACTIVITY_DURATION_HOURS),
            active_flag=True,
            active_queue_limit=settings.ACTIVE_QUEUE_LIMIT,
            high_priority_quota=settings.HIGH_PRIORITY_QUOTA,
            average_interview_time=settings.AVERAGE_INTERVIEW_TIME,
            buffer_time=settings.BUFFER_TIME,
            group_interview_max_size=settings.GROUP_INTERVIEW_MAX_SIZE,
            high_priority_time_limit=settings.HIGH_PRIORITY_TIME_LIMIT,
            max_queue_length=settings.MAX_QUEUE_LENGTH,
        )
        return cls(window, clock)

    @property
    def clock(self) -> Clock:
        return self._clock

    def snapshot(self) -> ActivityWindow:
        with self._lock:
            return self._window

    def update(self, **changes: Any) -> ActivityWindow:
        """
        Apply a partial update.

        Integer settings must be positive (``buffer_time`` may be zero).
        ``start_time``/``end_time`` accept datetimes, ISO strings or
        ``HH:MM`` of the current day.

        Raises:
            ValidationError: unknown field, bad value or an empty window.
        """
        known = {f.name for f in fields(ActivityWindow)}
        unknown = set(changes) - known
        if unknown:
            raise ValidationError(f"Unknown activity settings: {', '.join(sorted(unknown))}")

        cleaned: Dict[str, Any] = {}
        for name, value in changes.items():
            if value is None:
                continue
            if name in _INT_FIELDS:
                minimum = 0 if name == "buffer_time" else 1
                if not isinstance(value, int) or isinstance(value, bool) or value < minimum:
                    raise ValidationError(f"{name} must be an integer >= {minimum}")
            elif name in ("start_time", "end_time"):
                value = self._parse_time(name, value)
            elif name == "active_flag" and not isinstance(value, bool):
                raise ValidationError("active_flag must be a boolean")
            cleaned[name] = value

        with self._lock:
            updated = replace(self._window, **cleaned)
            if updated.end_time <= updated.start_time:
                raise ValidationError("end_time must be after start_time")
            self._window = updated
        logger.info("Activity settings updated: %s", ", ".join(sorted(cleaned)) or "no changes")
        return updated

    def start_activity(self, hours: int) -> ActivityWindow:
        now = self._clock.now()
        with self._lock:
            self._window = replace(
                self._window, start_time=now, end_time=now + timedelta(hours=hours), active_flag=True
            )
            window = self._window
        logger.info("Activity started, ends at %s", window.end_time.isoformat())
        return window

    def end_activity(self) -> ActivityWindow:
        now = self._clock.now()
        with self._lock:
            start = min(self._window.start_time, now - timedelta(seconds=1))
            self._window = replace(self._window, start_time=start, end_time=now, active_flag=False)
            window = self._window
        logger.info("Activity ended")
        return window

    def _parse_time(self, name: str, value: Any) -> datetime:
        if isinstance(value, datetime):
            return value if value.tzinfo else self._clock.localize(value)
        if not isinstance(value, str):
            raise ValidationError(f"{name} must be a datetime or HH:MM string")
        try:
            if len(value) <= 5 and ":" in value:
                hour, minute = (int(part) for part in value.split(":"))
                today = self._clock.now().date()
                return self._clock.localize(datetime.combine(today, time(hour, minute)))
            parsed = datetime.fromisoformat(value)
        except ValueError as e:
            raise ValidationError(f"{name}: {e}") from e
        return parsed if parsed.tzinfo else self._clock.localize(parsed)


class ActivityGate:
    """Answers whether queue operations are currently permitted."""

    def __init__(self, config: ActivityConfig) -> None:
        self._config = config

    def can_join_queue(self, now: Optional[datetime] = None) -> bool:
        window = self._config.snapshot()
        now = now or self._config.clock.now()
        return window.active_flag and window.start_time <= now < window.end_time

    def minutes_until_start(self, now: Optional[datetime] = None) -> Optional[int]:
        window = self._config.snapshot()
        now = now or self._config.clock.now()
        if now >= window.start_time:
            return None
        return max(1, -(-int((window.start_time - now).total_seconds()) // 60))

    def can_request_priority(self, now: Optional[datetime] = None) -> bool:
        window = self._config.snapshot()
        now = now or self._config.clock.now()
        remaining = (window.end_time - now).total_seconds() / 60
        return remaining >= window.high_priority_time_limit

    def require_join_open(self) -> None:
        if not self.can_join_queue():
            raise ActivityNotOpen("The interview activity is not open for joining queues")

    def require_priority_open(self) -> None:
        self.require_join_open()
        if not self.can_request_priority():
            window = self._config.snapshot()
            raise PriorityWindowClosed(
                f"High priority cannot be requested within {window.high_priority_time_limit} "
                "minutes of the activity end"
            )

    def status(self) -> Dict[str, Any]:
        window = self._config.snapshot()
        now = self._config.clock.now()
        return {
            "is_active": window.active_flag,
            "start_time": window.start_time,
            "end_time": window.end_time,
            "current_time": now,
            "is_started": now >= window.start_time,
            "is_ended": now >= window.end_time,
            "can_join_queue": self.can_join_queue(now),
            "can_request_priority": self.can_join_queue(now) and self.can_request_priority(now),
            "minutes_until_start": self.minutes_until_start(now),
            "minutes_until_end": max(0, minutes_between(now, window.end_time)),
        }
