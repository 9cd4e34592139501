"""Application configuration utilities."""

from __future__ import annotations

import os
from functools import lru_cache

from pydantic import BaseModel


def _int_env(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


class Settings(BaseModel):
    LOG_LEVEL: str = "INFO"
    TIMEZONE: str = "Asia/Kolkata"

    JWT_SECRET: str = "interview-queue-dev-secret"
    JWT_ALGORITHM: str = "HS256"

    # Activity window defaults, applied once at service start.
    ACTIVE_QUEUE_LIMIT: int = 6
    HIGH_PRIORITY_QUOTA: int = 2
    AVERAGE_INTERVIEW_TIME: int = 8
    BUFFER_TIME: int = 5
    GROUP_INTERVIEW_MAX_SIZE: int = 4
    HIGH_PRIORITY_TIME_LIMIT: int = 30
    MAX_QUEUE_LENGTH: int = 500
    ACTIVITY_DURATION_HOURS: int = 8

    # Moving between venues: walking time plus check-in at the next desk.
    TRANSFER_TRAVEL_MINUTES: int = 8
    TRANSFER_ADMIN_MINUTES: int = 5

    DELAY_MIN_MINUTES: int = 5
    DELAY_MAX_MINUTES: int = 30

    GROUP_TRIGGER_MINUTES: int = 5
    # 0 means a simple majority of invitees must accept.
    GROUP_MIN_ACCEPTS: int = 0

    @property
    def transfer_overhead(self) -> int:
        return self.TRANSFER_TRAVEL_MINUTES + self.TRANSFER_ADMIN_MINUTES


@lru_cache
def get_settings() -> Settings:
    defaults = Settings()
    overrides = {
        name: _int_env(name, getattr(defaults, name))
        for name, field in Settings.model_fields.items()
        if field.annotation is int
    }
    return Settings(
        LOG_LEVEL=os.getenv("LOG_LEVEL", "INFO"),
        TIMEZONE=os.getenv("TIMEZONE", "Asia/Kolkata"),
        JWT_SECRET=os.getenv("JWT_SECRET", defaults.JWT_SECRET),
        JWT_ALGORITHM=os.getenv("JWT_ALGORITHM", "HS256"),
        **overrides,
    )


settings = get_settings()
