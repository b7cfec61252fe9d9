"""Pytest fixtures for testing."""
import os
from collections.abc import AsyncGenerator

# Must be set before anything calls get_settings()
os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ.setdefault("DEV_MODE", "false")

import pytest
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from core.bookmark_cache import BookmarkCache
from core.config import get_settings
from core.redis import RedisClient
from models import Base
from services.bookmark_service import BookmarkService
from services.bookmark_store import BookmarkStore


class InMemoryRedis:
    """
    Stand-in for redis.asyncio.Redis covering the commands RedisClient issues.

    Assigned to RedisClient._client so the wrapper's own code path is exercised.
    """

    def __init__(self) -> None:
        self.data: dict[str, bytes] = {}
        self.ttls: dict[str, int] = {}

    async def ping(self) -> bool:
        return True

    async def get(self, key: str) -> bytes | None:
        return self.data.get(key)

    async def setex(self, key: str, seconds: int, value: str | bytes) -> bool:
        self.data[key] = value.encode() if isinstance(value, str) else value
        self.ttls[key] = seconds
        return True

    async def set(
        self,
        key: str,
        value: str | bytes,
        ex: int | None = None,
        nx: bool = False,
    ) -> bool | None:
        # Mirrors redis-py: None when NX prevents the write
        if nx and key in self.data:
            return None
        self.data[key] = value.encode() if isinstance(value, str) else value
        if ex is not None:
            self.ttls[key] = ex
        return True

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self.data.pop(key, None) is not None:
                removed += 1
            self.ttls.pop(key, None)
        return removed

    async def aclose(self) -> None:
        pass


@pytest.fixture(autouse=True)
def clear_settings_cache() -> None:
    """Re-read settings from the environment for every test."""
    get_settings.cache_clear()


@pytest.fixture
async def async_engine() -> AsyncGenerator[AsyncEngine]:
    """
    Create an in-memory SQLite engine with the schema applied.

    StaticPool keeps one connection so every session sees the same database. The
    connect/begin listeners are SQLAlchemy's documented recipe for making SQLite
    SAVEPOINTs (used by the tag registry) behave correctly under aiosqlite. Foreign
    keys are switched on so RESTRICT/CASCADE behave as they do on PostgreSQL.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def do_connect(dbapi_connection, _connection_record) -> None:  # noqa: ANN001
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    @event.listens_for(engine.sync_engine, "begin")
    def do_begin(conn) -> None:  # noqa: ANN001
        conn.exec_driver_sql("BEGIN")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """A session for store-level tests; the store only flushes, never commits."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def fake_redis() -> InMemoryRedis:
    """The in-memory Redis behind redis_client."""
    return InMemoryRedis()


@pytest.fixture
def redis_client(fake_redis: InMemoryRedis) -> RedisClient:
    """A connected RedisClient backed by InMemoryRedis."""
    client = RedisClient("redis://test:6379", enabled=True)
    client._client = fake_redis
    return client


@pytest.fixture
def bookmark_cache(redis_client: RedisClient) -> BookmarkCache:
    """Bookmark cache over the in-memory Redis."""
    return BookmarkCache(redis_client, ttl=300)


@pytest.fixture
def bookmark_store() -> BookmarkStore:
    """A fresh store with its own tag registry."""
    return BookmarkStore()


@pytest.fixture
def bookmark_service(
    session_factory: async_sessionmaker[AsyncSession],
    bookmark_cache: BookmarkCache,
    bookmark_store: BookmarkStore,
) -> BookmarkService:
    """Service wired to the test database and in-memory cache."""
    return BookmarkService(session_factory, bookmark_cache, bookmark_store)
