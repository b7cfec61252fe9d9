"""FastAPI dependencies for injection."""
from fastapi import Request

from core.auth import get_current_owner_id
from core.config import get_settings
from db.session import get_async_session
from services.bookmark_service import BookmarkService


def get_bookmark_service(request: Request) -> BookmarkService:
    """Return the BookmarkService built during application startup."""
    return request.app.state.bookmark_service


__all__ = [
    "get_async_session",
    "get_bookmark_service",
    "get_current_owner_id",
    "get_settings",
]
