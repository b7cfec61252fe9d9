"""
Data access for bookmarks and their tag associations.

Every operation is scoped to the caller's owner_id. Single-item operations tell
"does not exist" (BookmarkNotFoundError) apart from "exists but belongs to someone
else" (BookmarkAccessDeniedError); list operations simply never see other owners'
rows.

Nothing here commits. BookmarkService opens one transaction per public operation
and commits it, so each call below is all-or-nothing from the caller's view.
"""
import logging
from collections import defaultdict
from typing import Any

from sqlalchemy import delete, exists, func, insert, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute
from sqlalchemy.sql import Select

from models.base import utc_now
from models.bookmark import Bookmark
from models.tag import Tag, bookmark_tags
from schemas.bookmark import BookmarkRead, BookmarkWrite
from schemas.pagination import Page, PageRequest
from schemas.validators import (
    validate_and_dedupe_tags,
    validate_memo,
    validate_tag_name,
    validate_title,
    validate_url,
)
from services.exceptions import (
    BookmarkAccessDeniedError,
    BookmarkNotFoundError,
    BookmarkValidationError,
)
from services.tag_registry import TagRegistry
from services.utils import ILIKE_ESCAPE, as_utc, escape_ilike, next_timestamp

logger = logging.getLogger(__name__)


class BookmarkStore:
    """Ownership-checked CRUD, tag filtering, and keyword search over bookmarks."""

    def __init__(self, tag_registry: TagRegistry | None = None) -> None:
        self.tag_registry = tag_registry or TagRegistry()

    # --- Single-item operations ---

    async def create(
        self,
        db: AsyncSession,
        owner_id: int,
        data: BookmarkWrite,
    ) -> BookmarkRead:
        """
        Create a bookmark for an owner.

        Tag names are resolved (or created) through the tag registry and attached
        in the order given. created_at and updated_at are set to the same instant.

        Args:
            db: Database session.
            owner_id: Owner the bookmark will belong to.
            data: Title, url, memo and tag names.

        Returns:
            The created bookmark with its tags.

        Raises:
            BookmarkValidationError: If title/url are blank or malformed, or a tag
                name is blank.
        """
        fields, tag_names = self._checked_fields(data)
        now = utc_now()
        bookmark = Bookmark(owner_id=owner_id, created_at=now, updated_at=now, **fields)
        db.add(bookmark)
        await db.flush()

        await self._attach_tags(db, bookmark.id, tag_names)
        logger.debug(
            "bookmark_created id=%s owner_id=%s tags=%s",
            bookmark.id, owner_id, len(tag_names),
        )
        return self._to_read(bookmark, tag_names)

    async def get_owned(
        self,
        db: AsyncSession,
        owner_id: int,
        bookmark_id: int,
    ) -> BookmarkRead:
        """
        Get a bookmark with its tags, checking ownership.

        Raises:
            BookmarkNotFoundError: If no bookmark with this ID exists.
            BookmarkAccessDeniedError: If it exists but belongs to another owner.
        """
        bookmark = await self._get_entity(db, owner_id, bookmark_id)
        tag_names = await self._load_tag_names(db, [bookmark.id])
        return self._to_read(bookmark, tag_names[bookmark.id])

    async def update(
        self,
        db: AsyncSession,
        owner_id: int,
        bookmark_id: int,
        data: BookmarkWrite,
    ) -> BookmarkRead:
        """
        Replace a bookmark's title, url, memo and entire tag set.

        Tags use clear-then-add: every existing association is dropped, the new
        names are resolved and attached, then previously attached tags that nothing
        references any more are removed. Re-sending the same tags still goes through
        the full detach/attach cycle. updated_at always moves forward.

        Raises:
            BookmarkNotFoundError: If no bookmark with this ID exists.
            BookmarkAccessDeniedError: If it exists but belongs to another owner.
            BookmarkValidationError: If the new values fail validation.
        """
        fields, tag_names = self._checked_fields(data)
        bookmark = await self._get_entity(db, owner_id, bookmark_id)

        detached_tag_ids = await self._detach_tags(db, bookmark.id)
        for field, value in fields.items():
            setattr(bookmark, field, value)
        bookmark.updated_at = next_timestamp(bookmark.updated_at)
        await db.flush()

        await self._attach_tags(db, bookmark.id, tag_names)
        await self.tag_registry.remove_orphans(db, detached_tag_ids)
        logger.debug("bookmark_updated id=%s owner_id=%s", bookmark.id, owner_id)
        return self._to_read(bookmark, tag_names)

    async def delete(
        self,
        db: AsyncSession,
        owner_id: int,
        bookmark_id: int,
    ) -> None:
        """
        Permanently delete a bookmark, its tag associations, and any tags orphaned by it.

        Raises:
            BookmarkNotFoundError: If no bookmark with this ID exists.
            BookmarkAccessDeniedError: If it exists but belongs to another owner.
        """
        bookmark = await self._get_entity(db, owner_id, bookmark_id)
        detached_tag_ids = await self._detach_tags(db, bookmark.id)
        await db.delete(bookmark)
        await db.flush()
        await self.tag_registry.remove_orphans(db, detached_tag_ids)
        logger.debug("bookmark_deleted id=%s owner_id=%s", bookmark_id, owner_id)

    # --- Paginated queries ---

    async def list_owned(
        self,
        db: AsyncSession,
        owner_id: int,
        page_request: PageRequest,
    ) -> Page[BookmarkRead]:
        """List all of an owner's bookmarks, one page at a time."""
        return await self._paginate(db, owner_id, page_request)

    async def list_by_tag(
        self,
        db: AsyncSession,
        owner_id: int,
        tag_name: str,
        page_request: PageRequest,
    ) -> Page[BookmarkRead]:
        """
        List an owner's bookmarks carrying tag_name (exact match).

        Raises:
            BookmarkValidationError: If tag_name is blank.
        """
        try:
            tag_name = validate_tag_name(tag_name)
        except ValueError as e:
            raise BookmarkValidationError("tag", str(e)) from e

        has_tag = exists(
            select(bookmark_tags.c.bookmark_id)
            .join(Tag, bookmark_tags.c.tag_id == Tag.id)
            .where(
                bookmark_tags.c.bookmark_id == Bookmark.id,
                Tag.name == tag_name,
            ),
        )
        return await self._paginate(db, owner_id, page_request, has_tag)

    async def search(
        self,
        db: AsyncSession,
        owner_id: int,
        keyword: str,
        page_request: PageRequest,
    ) -> Page[BookmarkRead]:
        """
        List an owner's bookmarks whose title or url contains keyword.

        Matching is a case-insensitive substring match; % and _ in the keyword
        match literally.
        """
        pattern = f"%{escape_ilike(keyword)}%"
        matches = or_(
            Bookmark.title.ilike(pattern, escape=ILIKE_ESCAPE),
            Bookmark.url.ilike(pattern, escape=ILIKE_ESCAPE),
        )
        return await self._paginate(db, owner_id, page_request, matches)

    # --- Private Helper Methods ---

    async def _get_entity(
        self,
        db: AsyncSession,
        owner_id: int,
        bookmark_id: int,
    ) -> Bookmark:
        """Load the ORM row and apply the existence and ownership checks."""
        result = await db.execute(select(Bookmark).where(Bookmark.id == bookmark_id))
        bookmark = result.scalar_one_or_none()
        if bookmark is None:
            raise BookmarkNotFoundError(bookmark_id)
        if bookmark.owner_id != owner_id:
            logger.info(
                "bookmark_access_denied id=%s owner_id=%s", bookmark_id, owner_id,
            )
            raise BookmarkAccessDeniedError(bookmark_id, owner_id)
        return bookmark

    async def _attach_tags(
        self,
        db: AsyncSession,
        bookmark_id: int,
        tag_names: list[str],
    ) -> None:
        """
        Resolve tag names and insert association rows in order.

        If a resolved tag was orphan-cleaned by another transaction before the
        insert, the foreign key rejects it; the names are resolved again (which
        recreates the missing tag) and the insert is retried once.
        """
        tags = await self.tag_registry.resolve_many(db, tag_names)
        if not tags:
            return
        try:
            async with db.begin_nested():
                await self._insert_associations(db, bookmark_id, tags)
        except IntegrityError:
            logger.info("bookmark_tags_attach_conflict id=%s, re-resolving", bookmark_id)
            tags = await self.tag_registry.resolve_many(db, tag_names)
            await self._insert_associations(db, bookmark_id, tags)

    async def _insert_associations(
        self,
        db: AsyncSession,
        bookmark_id: int,
        tags: list[Tag],
    ) -> None:
        await db.execute(
            insert(bookmark_tags),
            [
                {"bookmark_id": bookmark_id, "tag_id": tag.id, "position": position}
                for position, tag in enumerate(tags)
            ],
        )

    async def _detach_tags(self, db: AsyncSession, bookmark_id: int) -> list[int]:
        """Remove all association rows for a bookmark, returning the detached tag IDs."""
        result = await db.execute(
            select(bookmark_tags.c.tag_id).where(bookmark_tags.c.bookmark_id == bookmark_id),
        )
        tag_ids = list(result.scalars())
        if tag_ids:
            await db.execute(
                delete(bookmark_tags).where(bookmark_tags.c.bookmark_id == bookmark_id),
            )
        return tag_ids

    async def _load_tag_names(
        self,
        db: AsyncSession,
        bookmark_ids: list[int],
    ) -> dict[int, list[str]]:
        """Fetch tag names for several bookmarks in one query, keeping insertion order."""
        names: dict[int, list[str]] = defaultdict(list)
        if not bookmark_ids:
            return names
        result = await db.execute(
            select(bookmark_tags.c.bookmark_id, Tag.name)
            .join(Tag, bookmark_tags.c.tag_id == Tag.id)
            .where(bookmark_tags.c.bookmark_id.in_(bookmark_ids))
            .order_by(bookmark_tags.c.bookmark_id, bookmark_tags.c.position),
        )
        for bookmark_id, name in result:
            names[bookmark_id].append(name)
        return names

    async def _paginate(
        self,
        db: AsyncSession,
        owner_id: int,
        page_request: PageRequest,
        *filters: Any,
    ) -> Page[BookmarkRead]:
        """Run an owner-scoped, optionally filtered query and wrap one page of it."""
        base_query = select(Bookmark).where(Bookmark.owner_id == owner_id, *filters)

        # Get total count before pagination
        count_query = select(func.count()).select_from(base_query.subquery())
        total = (await db.execute(count_query)).scalar() or 0

        page_query = (
            self._apply_sorting(base_query, page_request)
            .offset(page_request.offset)
            .limit(page_request.size)
        )
        bookmarks = list((await db.execute(page_query)).scalars().all())
        tag_names = await self._load_tag_names(db, [b.id for b in bookmarks])

        return Page[BookmarkRead](
            content=[self._to_read(b, tag_names[b.id]) for b in bookmarks],
            total_elements=total,
            page=page_request.page,
            size=page_request.size,
        )

    def _get_sort_columns(self) -> dict[str, InstrumentedAttribute]:
        return {
            "created_at": Bookmark.created_at,
            "updated_at": Bookmark.updated_at,
            "title": Bookmark.title,
            "url": Bookmark.url,
        }

    def _apply_sorting(
        self,
        query: Select[tuple[Bookmark]],
        page_request: PageRequest,
    ) -> Select[tuple[Bookmark]]:
        """Apply sorting with tiebreakers (created_at, then id)."""
        sort_column = self._get_sort_columns()[page_request.sort_by]
        if page_request.sort_order == "desc":
            return query.order_by(
                sort_column.desc(),
                Bookmark.created_at.desc(),
                Bookmark.id.desc(),
            )
        return query.order_by(
            sort_column.asc(),
            Bookmark.created_at.asc(),
            Bookmark.id.asc(),
        )

    @staticmethod
    def _checked_fields(data: BookmarkWrite) -> tuple[dict[str, Any], list[str]]:
        """
        Re-validate write input independently of the HTTP layer.

        Returns:
            Column values for the bookmark row, and de-duplicated tag names.
        """
        checks = (
            ("title", validate_title, data.title),
            ("url", validate_url, data.url),
            ("memo", validate_memo, data.memo),
        )
        fields = {}
        for field, check, value in checks:
            try:
                fields[field] = check(value)
            except ValueError as e:
                raise BookmarkValidationError(field, str(e)) from e
        try:
            tag_names = validate_and_dedupe_tags(data.tags)
        except ValueError as e:
            raise BookmarkValidationError("tags", str(e)) from e
        return fields, tag_names

    @staticmethod
    def _to_read(bookmark: Bookmark, tag_names: list[str]) -> BookmarkRead:
        return BookmarkRead(
            id=bookmark.id,
            owner_id=bookmark.owner_id,
            title=bookmark.title,
            url=bookmark.url,
            memo=bookmark.memo,
            tags=list(tag_names),
            created_at=as_utc(bookmark.created_at),
            updated_at=as_utc(bookmark.updated_at),
        )
