"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from portal.api.v1 import health, questions, sessions, settings

api_router = APIRouter()

api_router.include_router(health.router, tags=["health"])
api_router.include_router(sessions.router, prefix="/session", tags=["session"])
api_router.include_router(questions.router, prefix="/questions", tags=["questions"])
api_router.include_router(settings.router, prefix="/settings", tags=["settings"])
