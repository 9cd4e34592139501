"""Shared fixtures: a service on a manual clock, an app client and tokens."""

from datetime import datetime
from pathlib import Path
import sys

import pytest
from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))
from interview_queue.core.clock import ManualClock  # noqa: E402
from interview_queue.core.config import Settings  # noqa: E402
from interview_queue.core.security import Principal, create_access_token  # noqa: E402
from interview_queue.main import create_app  # noqa: E402
from interview_queue.services import SchedulingService  # noqa: E402

START = datetime(2024, 1, 1, 9, 0)


@pytest.fixture
def clock() -> ManualClock:
    return ManualClock(START, "Asia/Kolkata")


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def service(settings: Settings, clock: ManualClock) -> SchedulingService:
    return SchedulingService(settings, clock)


@pytest.fixture
def make_position(service: SchedulingService):
    def _make(name: str, company_id: str = "acme", interview_duration=None, interviewers=()):
        position = service.positions.create(company_id, name, interview_duration=interview_duration)
        for interviewer_id in interviewers:
            position = service.positions.assign(position.id, interviewer_id)
        return position

    return _make


@pytest.fixture
def client(service: SchedulingService) -> TestClient:
    return TestClient(create_app(service))


@pytest.fixture
def auth():
    def _headers(role: str, user_id: str, company_id=None, email=None) -> dict:
        token = create_access_token(
            Principal(user_id=user_id, role=role, name=user_id.title(), company_id=company_id, email=email)
        )
        return {"Authorization": f"Bearer {token}"}

    return _headers
