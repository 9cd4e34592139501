"""HTTP routers."""

from fastapi import APIRouter

from . import activity, candidate, company, health, interviewer

api_router = APIRouter()
api_router.include_router(health.router)
api_router.include_router(activity.router, prefix="/api")
api_router.include_router(candidate.router, prefix="/api")
api_router.include_router(interviewer.router, prefix="/api")
api_router.include_router(company.router, prefix="/api")
