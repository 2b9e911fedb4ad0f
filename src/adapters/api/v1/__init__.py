"""API v1 router configuration.
"""

from fastapi import APIRouter

from .health import router as health_router
from .reports import router as reports_router
from .uploads import router as uploads_router

api_router = APIRouter()

api_router.include_router(health_router, prefix="/health", tags=["health"])
api_router.include_router(reports_router, prefix="/reports", tags=["reports"])
api_router.include_router(uploads_router, prefix="/uploads", tags=["uploads"])
