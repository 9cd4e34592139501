"""Application entry point."""

from typing import Optional

from fastapi import FastAPI

from .api import api_router
from .core.config import settings
from .core.errors import register_exception_handlers
from .core.logging import RequestIDMiddleware, init_logging
from .services import SchedulingService


def create_app(service: Optional[SchedulingService] = None) -> FastAPI:
    """Create and configure the FastAPI application."""
    init_logging(settings.LOG_LEVEL)

    app = FastAPI(title="Interview Queue")
    app.state.service = service or SchedulingService(settings)
    app.add_middleware(RequestIDMiddleware)
    register_exception_handlers(app)
    app.include_router(api_router)
    return app


app = create_app()
