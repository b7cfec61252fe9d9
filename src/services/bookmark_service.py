"""Public bookmark operations: store transactions plus cache maintenance."""
import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.exc import TimeoutError as PoolTimeoutError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.bookmark_cache import BookmarkCache
from schemas.bookmark import BookmarkCreate, BookmarkRead, BookmarkUpdate
from schemas.pagination import Page, PageRequest
from schemas.tag import TagRead
from services.bookmark_store import BookmarkStore
from services.exceptions import StoreUnavailableError

logger = logging.getLogger(__name__)

# Driver/pool failures that mean "the store could not be reached", as opposed to
# errors in the statement itself
_UNAVAILABLE_ERRORS = (OperationalError, InterfaceError, PoolTimeoutError)


class BookmarkService:
    """
    Orchestrates BookmarkStore and BookmarkCache into the public operation set.

    Every method takes the caller's owner_id explicitly; resolving it from the
    request is the HTTP layer's job and happens once per request.

    Each method runs exactly one store transaction. For update and delete the cache
    is touched only after that transaction has committed, so a failed write never
    changes the cache and the cache never holds a value that was not persisted.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        cache: BookmarkCache,
        store: BookmarkStore | None = None,
    ) -> None:
        self._session_factory = session_factory
        self.cache = cache
        self.store = store or BookmarkStore()

    @asynccontextmanager
    async def _transaction(self, operation: str) -> AsyncGenerator[AsyncSession]:
        """
        Open a session and transaction; commit on success, roll back on error.

        Connectivity failures surface as StoreUnavailableError. Nothing is retried.
        """
        try:
            async with self._session_factory() as db, db.begin():
                yield db
        except _UNAVAILABLE_ERRORS as e:
            logger.warning("bookmark_store_unavailable operation=%s error=%s", operation, e)
            raise StoreUnavailableError(operation) from e

    async def create(self, owner_id: int, data: BookmarkCreate) -> BookmarkRead:
        """Create a bookmark. Not cached; the first get_by_id populates the cache."""
        async with self._transaction("create") as db:
            return await self.store.create(db, owner_id, data)

    async def get_by_id(self, owner_id: int, bookmark_id: int) -> BookmarkRead:
        """
        Get a bookmark through the cache.

        On a miss the ownership-checked store fetch runs and its result is cached.
        Not-found and access-denied results are never cached, so ownership is
        re-validated on every cache population.
        """
        async def load() -> BookmarkRead:
            async with self._transaction("get") as db:
                return await self.store.get_owned(db, owner_id, bookmark_id)

        return await self.cache.get_or_load(owner_id, bookmark_id, load)

    async def update(
        self,
        owner_id: int,
        bookmark_id: int,
        data: BookmarkUpdate,
    ) -> BookmarkRead:
        """Replace a bookmark, then refresh its cache entry with the committed result."""
        async with self._transaction("update") as db:
            bookmark = await self.store.update(db, owner_id, bookmark_id, data)
        await self.cache.put(owner_id, bookmark_id, bookmark)
        return bookmark

    async def delete(self, owner_id: int, bookmark_id: int) -> None:
        """Delete a bookmark, then evict its cache entry once the delete is committed."""
        async with self._transaction("delete") as db:
            await self.store.delete(db, owner_id, bookmark_id)
        await self.cache.evict(owner_id, bookmark_id)

    async def list_owned(self, owner_id: int, page_request: PageRequest) -> Page[BookmarkRead]:
        """List an owner's bookmarks. Not cached."""
        async with self._transaction("list") as db:
            return await self.store.list_owned(db, owner_id, page_request)

    async def list_by_tag(
        self,
        owner_id: int,
        tag_name: str,
        page_request: PageRequest,
    ) -> Page[BookmarkRead]:
        """List an owner's bookmarks carrying a tag. Not cached."""
        async with self._transaction("list_by_tag") as db:
            return await self.store.list_by_tag(db, owner_id, tag_name, page_request)

    async def search(
        self,
        owner_id: int,
        keyword: str,
        page_request: PageRequest,
    ) -> Page[BookmarkRead]:
        """Search an owner's bookmarks by title/url keyword. Not cached."""
        async with self._transaction("search") as db:
            return await self.store.search(db, owner_id, keyword, page_request)

    async def get_tag(self, name: str) -> TagRead | None:
        """Look up a tag in the shared vocabulary; None once it has been orphan-cleaned."""
        async with self._transaction("get_tag") as db:
            tag = await self.store.tag_registry.get_by_name(db, name)
            return TagRead.model_validate(tag) if tag is not None else None
