"""FastAPI application entry point."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from api.routers import bookmarks, health, tags
from core.bookmark_cache import BookmarkCache
from core.config import get_settings
from core.redis import RedisClient, set_redis_client
from db.session import get_engine, get_session_factory
from services.bookmark_service import BookmarkService
from services.exceptions import (
    BookmarkAccessDeniedError,
    BookmarkNotFoundError,
    BookmarkValidationError,
    StoreUnavailableError,
    TagRegistryCorruptionError,
    UnauthenticatedError,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None]:
    """Manage application lifespan - startup and shutdown."""
    app_settings = get_settings()

    # Startup: Connect to Redis
    redis_client = RedisClient(
        url=app_settings.redis_url,
        enabled=app_settings.redis_enabled,
        pool_size=app_settings.redis_pool_size,
    )
    await redis_client.connect()
    set_redis_client(redis_client)

    # Startup: Wire the bookmark service to the store and cache
    cache = BookmarkCache(
        redis_client,
        ttl=app_settings.bookmark_cache_ttl,
        tombstone_ttl=app_settings.bookmark_cache_tombstone_ttl,
    )
    app.state.bookmark_service = BookmarkService(get_session_factory(), cache)

    yield

    # Shutdown: Clean up Redis and the database pool
    await redis_client.close()
    set_redis_client(None)
    await get_engine().dispose()


app = FastAPI(
    title="Bookmarks API",
    description="Personal bookmarks with shared tags, search, and pagination.",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(BookmarkValidationError)
async def validation_exception_handler(
    _request: Request, exc: BookmarkValidationError,
) -> JSONResponse:
    """Input the store rejected even though it passed request validation."""
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(BookmarkNotFoundError)
async def not_found_exception_handler(
    _request: Request, exc: BookmarkNotFoundError,
) -> JSONResponse:
    """Bookmark ID does not exist."""
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(BookmarkAccessDeniedError)
async def access_denied_exception_handler(
    _request: Request, _exc: BookmarkAccessDeniedError,
) -> JSONResponse:
    """Bookmark exists but belongs to another owner."""
    return JSONResponse(
        status_code=403,
        content={"detail": "You do not have access to this bookmark"},
    )


@app.exception_handler(UnauthenticatedError)
async def unauthenticated_exception_handler(
    _request: Request, exc: UnauthenticatedError,
) -> JSONResponse:
    """No authenticated owner on the request."""
    return JSONResponse(
        status_code=401,
        content={"detail": str(exc)},
        headers={"WWW-Authenticate": "Bearer"},
    )


@app.exception_handler(StoreUnavailableError)
async def store_unavailable_exception_handler(
    _request: Request, _exc: StoreUnavailableError,
) -> JSONResponse:
    """Transient store failure; the client may retry."""
    return JSONResponse(
        status_code=503,
        content={"detail": "Bookmark store temporarily unavailable. Please try again."},
    )


@app.exception_handler(TagRegistryCorruptionError)
async def tag_corruption_exception_handler(
    _request: Request, exc: TagRegistryCorruptionError,
) -> JSONResponse:
    """Tag uniqueness is broken in the store; not recoverable by retrying."""
    logger.error("tag_registry_corruption tag=%s", exc.tag_name)
    return JSONResponse(status_code=500, content={"detail": "Internal server error"})


app.include_router(health.router)
app.include_router(bookmarks.router)
app.include_router(tags.router)
