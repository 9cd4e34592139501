"""Tests for JSON log records and the per-request access line."""

import json
import logging

from interview_queue.core.logging import JsonFormatter, access_logger


class _Collect(logging.Handler):
    def __init__(self):
        super().__init__()
        self.records = []

    def emit(self, record):
        self.records.append(record)


def test_formatter_lifts_scheduling_ids():
    record = logging.makeLogRecord(
        {
            "name": "interview_queue.services.queue_store",
            "levelname": "INFO",
            "msg": "Candidate %s joined %s",
            "args": ("c1", "pos_1"),
            "candidate_id": "c1",
            "position_id": "pos_1",
            "request_id": "req-7",
        }
    )
    body = json.loads(JsonFormatter().format(record))
    assert body["message"] == "Candidate c1 joined pos_1"
    assert body["candidate_id"] == "c1"
    assert body["position_id"] == "pos_1"
    assert body["request_id"] == "req-7"
    assert "interview_id" not in body
    assert "ts" in body


def test_queue_operations_log_candidate_and_position(service, make_position, caplog):
    position = make_position("Backend")
    with caplog.at_level(logging.INFO, logger="interview_queue.services.queue_store"):
        service.queues.join(position.id, "c1")
    joined = [r for r in caplog.records if r.getMessage().startswith("Candidate c1 joined")]
    assert len(joined) == 1
    assert joined[0].candidate_id == "c1"
    assert joined[0].position_id == position.id


def test_each_request_writes_an_access_line(client):
    collect = _Collect()
    level = access_logger.level
    access_logger.setLevel(logging.INFO)
    access_logger.addHandler(collect)
    try:
        client.get("/health", headers={"X-Request-ID": "req-9"})
        client.get("/api/candidate/positions")
    finally:
        access_logger.removeHandler(collect)
        access_logger.setLevel(level)

    lines = [r.http for r in collect.records]
    assert [(line["method"], line["path"], line["status"]) for line in lines] == [
        ("GET", "/health", 200),
        ("GET", "/api/candidate/positions", 401),
    ]
    assert all(line["duration_ms"] >= 0 for line in lines)
