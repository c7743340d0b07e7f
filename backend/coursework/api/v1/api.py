"""
API v1 router combining all v1 endpoints.
"""
from fastapi import APIRouter
from coursework.api.v1 import health, submissions

api_router = APIRouter()

# Include all v1 routers
api_router.include_router(health.router, tags=["health"])
api_router.include_router(submissions.router, prefix="/submissions", tags=["submissions"])
