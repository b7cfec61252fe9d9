"""Fixtures for API tests."""
from collections.abc import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from services.bookmark_service import BookmarkService

DEFAULT_OWNER_ID = 1


class OwnerSwitch:
    """Mutable stand-in for the authenticated owner; None means unauthenticated."""

    def __init__(self, owner_id: int | None = DEFAULT_OWNER_ID) -> None:
        self.owner_id = owner_id


@pytest.fixture
def current_owner() -> OwnerSwitch:
    """Change current_owner.owner_id inside a test to act as someone else."""
    return OwnerSwitch()


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    bookmark_service: BookmarkService,
    current_owner: OwnerSwitch,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client wired to the test database and in-memory cache."""
    from api.dependencies import get_bookmark_service
    from api.main import app
    from core.auth import get_current_owner_id
    from db.session import get_async_session
    from services.exceptions import UnauthenticatedError

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        async with session_factory() as session:
            yield session

    def override_get_current_owner_id() -> int:
        if current_owner.owner_id is None:
            raise UnauthenticatedError()
        return current_owner.owner_id

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_bookmark_service] = lambda: bookmark_service
    app.dependency_overrides[get_current_owner_id] = override_get_current_owner_id

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()
