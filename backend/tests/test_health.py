"""Tests for health endpoint."""

from pathlib import Path
import sys

from fastapi.testclient import TestClient

sys.path.append(str(Path(__file__).resolve().parents[1]))
from interview_queue.main import app  # noqa: E402

client = TestClient(app)


def test_health_ok():
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_health_echoes_request_id():
    response = client.get("/health", headers={"X-Request-ID": "req-42"})
    assert response.headers["X-Request-ID"] == "req-42"


def test_activity_status_is_public():
    response = client.get("/api/activity/status")
    assert response.status_code == 200
    body = response.json()
    assert body["is_active"] is True
    assert body["can_join_queue"] is True
    assert body["minutes_until_start"] is None
