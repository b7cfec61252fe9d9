"""Read-through/write-through cache for single-bookmark lookups."""
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

from pydantic import ValidationError

from schemas.bookmark import BookmarkRead

if TYPE_CHECKING:
    from core.redis import RedisClient

logger = logging.getLogger(__name__)

# Cache schema version - included in all cache keys (e.g., "bookmark:v1:owner:...")
#
# Bump this version when BookmarkRead fields are added, removed, or renamed.
# Old entries are then never found (cache miss) and expire naturally via TTL,
# so deployments don't need an explicit flush.
CACHE_SCHEMA_VERSION = 1

# Marker written in place of a deleted bookmark. Never valid BookmarkRead JSON.
TOMBSTONE = b"__deleted__"


class BookmarkCache:
    """
    Cache of BookmarkRead records keyed by (owner_id, bookmark_id).

    Only single-item lookups are cached; list, filter and search results never are.
    The owner is part of the key and is checked again on every hit, so an entry can
    never be served to a different owner.

    Writers and read-through loaders are ordered as follows:
    - put() (after a committed update) overwrites unconditionally.
    - evict() (after a committed delete) writes a short-lived tombstone.
    - get_or_load() only populates a key that holds nothing (SET NX), so a loader
      that read the store before a concurrent update or delete can never overwrite
      the newer entry or the tombstone.

    Every operation is best-effort. Redis being disabled, unreachable, or holding an
    undecodable payload shows up as a miss, never as an error to the caller.
    """

    DEFAULT_TTL = 300  # 5 minutes
    DEFAULT_TOMBSTONE_TTL = 60

    def __init__(
        self,
        redis_client: "RedisClient",
        ttl: int = DEFAULT_TTL,
        tombstone_ttl: int = DEFAULT_TOMBSTONE_TTL,
    ) -> None:
        """Initialize bookmark cache with Redis client and TTLs in seconds."""
        self._redis = redis_client
        self._ttl = ttl
        self._tombstone_ttl = tombstone_ttl

    def _cache_key(self, owner_id: int, bookmark_id: int) -> str:
        """Generate cache key for an owner's bookmark."""
        return f"bookmark:v{CACHE_SCHEMA_VERSION}:owner:{owner_id}:id:{bookmark_id}"

    async def get(self, owner_id: int, bookmark_id: int) -> BookmarkRead | None:
        """
        Get a cached bookmark.

        Returns:
            The cached BookmarkRead, or None on a miss (including a tombstone).
        """
        key = self._cache_key(owner_id, bookmark_id)
        data = await self._redis.get(key)
        if not data:
            logger.debug("bookmark_cache_miss owner_id=%s id=%s", owner_id, bookmark_id)
            return None
        if data == TOMBSTONE:
            logger.debug("bookmark_cache_tombstone owner_id=%s id=%s", owner_id, bookmark_id)
            return None

        try:
            bookmark = BookmarkRead.model_validate_json(data)
        except ValidationError:
            logger.warning("bookmark_cache_corrupt key=%s, evicting", key)
            await self._redis.delete(key)
            return None

        if bookmark.owner_id != owner_id or bookmark.id != bookmark_id:
            logger.warning("bookmark_cache_key_mismatch key=%s, evicting", key)
            await self._redis.delete(key)
            return None

        logger.debug("bookmark_cache_hit owner_id=%s id=%s", owner_id, bookmark_id)
        return bookmark

    async def get_or_load(
        self,
        owner_id: int,
        bookmark_id: int,
        loader: Callable[[], Awaitable[BookmarkRead]],
    ) -> BookmarkRead:
        """
        Return the cached bookmark, or load, cache and return it on a miss.

        Args:
            owner_id: Owner making the request.
            bookmark_id: Bookmark to fetch.
            loader: Ownership-checked store fetch. Only called on a miss.

        Returns:
            The bookmark.

        Raises:
            Whatever loader raises (not-found, access denied, store unavailable).
            Nothing is cached in that case.
        """
        cached = await self.get(owner_id, bookmark_id)
        if cached is not None:
            return cached

        bookmark = await loader()
        await self._populate(owner_id, bookmark_id, bookmark)
        return bookmark

    async def put(self, owner_id: int, bookmark_id: int, bookmark: BookmarkRead) -> None:
        """
        Unconditionally overwrite the cache entry for a bookmark.

        Only call this after the write that produced bookmark has been committed.
        """
        stored = await self._redis.setex(
            self._cache_key(owner_id, bookmark_id),
            self._ttl,
            bookmark.model_dump_json(),
        )
        if stored:
            logger.debug("bookmark_cache_set owner_id=%s id=%s", owner_id, bookmark_id)

    async def evict(self, owner_id: int, bookmark_id: int) -> None:
        """
        Replace the cache entry for a bookmark with a tombstone.

        The tombstone reads as a miss and blocks in-flight loaders from writing the
        deleted record back. Only call this after the delete has been committed.
        """
        await self._redis.setex(
            self._cache_key(owner_id, bookmark_id),
            self._tombstone_ttl,
            TOMBSTONE,
        )
        logger.debug("bookmark_cache_evict owner_id=%s id=%s", owner_id, bookmark_id)

    async def _populate(
        self,
        owner_id: int,
        bookmark_id: int,
        bookmark: BookmarkRead,
    ) -> None:
        """Cache a freshly loaded bookmark unless the key already holds something."""
        stored = await self._redis.set(
            self._cache_key(owner_id, bookmark_id),
            bookmark.model_dump_json(),
            ex=self._ttl,
            nx=True,
        )
        if stored:
            logger.debug("bookmark_cache_fill owner_id=%s id=%s", owner_id, bookmark_id)
        else:
            logger.debug(
                "bookmark_cache_fill_skipped owner_id=%s id=%s", owner_id, bookmark_id,
            )
