"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
All routes are mounted under /api.
"""

from fastapi import APIRouter

from medintake.api.routes.analyses import router as analyses_router
from medintake.api.routes.documents import router as documents_router
from medintake.api.routes.health import router as health_router
from medintake.api.routes.me import router as me_router

API_PREFIX = "/api"


def create_api_router() -> APIRouter:
    """Create and configure the API router."""
    api_router = APIRouter(prefix=API_PREFIX)
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(me_router, tags=["user"])
    api_router.include_router(documents_router, tags=["documents"])
    api_router.include_router(analyses_router, tags=["analyses"])
    return api_router


__all__ = ["create_api_router"]
