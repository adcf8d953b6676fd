"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
"""

from fastapi import APIRouter

from songbird.api.routes.health import router as health_router
from songbird.api.routes.likes import router as likes_router
from songbird.api.routes.me import router as me_router
from songbird.api.routes.songs import router as songs_router


def create_api_router() -> APIRouter:
    """Create the API router with all routes registered."""
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(me_router, tags=["user"])
    api_router.include_router(songs_router, tags=["songs"])
    api_router.include_router(likes_router, tags=["likes"])
    return api_router


__all__ = ["create_api_router"]
