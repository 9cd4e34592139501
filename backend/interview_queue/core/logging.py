"""Logging utilities with request ID support.

Records are rendered as one JSON object per line. Scheduling code passes the
ids it acts on through ``extra`` (see :data:`CONTEXT_FIELDS`) so a single
candidate or position can be followed across requests.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from contextvars import ContextVar
from datetime import datetime, timezone

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

request_id_ctx: ContextVar[str | None] = ContextVar("request_id", default=None)

CONTEXT_FIELDS = ("candidate_id", "position_id", "interviewer_id", "interview_id", "group_id")

access_logger = logging.getLogger("interview_queue.access")


class RequestIDFilter(logging.Filter):
    """Attach request ID from context to log records."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.request_id = request_id_ctx.get()
        return True


class JsonFormatter(logging.Formatter):
    """Format logs as JSON, lifting scheduling ids out of ``extra``."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        log_record = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(timespec="milliseconds"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        if getattr(record, "request_id", None):
            log_record["request_id"] = record.request_id
        for field in CONTEXT_FIELDS:
            value = getattr(record, field, None)
            if value is not None:
                log_record[field] = value
        http = getattr(record, "http", None)
        if http:
            log_record["http"] = http
        if record.exc_info:
            log_record["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(log_record, default=str)


def init_logging(level: str) -> None:
    """Initialize application logging."""
    handler = logging.StreamHandler()
    handler.setFormatter(JsonFormatter())
    handler.addFilter(RequestIDFilter())
    logging.basicConfig(level=level, handlers=[handler], force=True)


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Tags each request with an ID and writes one access line for it."""

    async def dispatch(
        self, request: Request, call_next
    ):  # type: ignore[override]
        request_id = request.headers.get("X-Request-ID", str(uuid.uuid4()))
        token = request_id_ctx.set(request_id)
        started = time.perf_counter()
        status_code = 500
        try:
            response = await call_next(request)
            status_code = response.status_code
        finally:
            access_logger.info(
                "%s %s -> %d",
                request.method,
                request.url.path,
                status_code,
                extra={
                    "http": {
                        "method": request.method,
                        "path": request.url.path,
                        "status": status_code,
                        "duration_ms": round((time.perf_counter() - started) * 1000, 1),
                    }
                },
            )
            request_id_ctx.reset(token)
        response.headers["X-Request-ID"] = request_id
        return response
