"""Service layer for the shared tag vocabulary."""
import logging

from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from models.tag import Tag, bookmark_tags
from schemas.validators import validate_tag_name
from services.exceptions import BookmarkValidationError, TagRegistryCorruptionError

logger = logging.getLogger(__name__)


class TagRegistry:
    """
    Maps tag names to Tag rows.

    Tag names are unique across all owners and matched exactly (case-sensitive).
    Tags are created lazily on first reference and removed by remove_orphans() once
    no bookmark references them. Nothing here commits; the caller owns the
    transaction.

    Resolution and cleanup can run concurrently in different transactions. Tags
    resolved for attaching are read with a share lock (FOR SHARE on PostgreSQL), so
    a concurrent orphan delete waits for the attaching transaction. The association
    foreign key is ON DELETE RESTRICT, so a delete that slips past its reference
    check fails instead of cascading away a freshly attached association.
    """

    async def get_by_name(
        self,
        db: AsyncSession,
        name: str,
        for_share: bool = False,
    ) -> Tag | None:
        """
        Get a tag by exact name.

        Args:
            db: Database session.
            name: Tag name to look up.
            for_share: Lock the row against concurrent deletes until the caller's
                transaction ends. Used when the tag is about to be attached.

        Returns:
            The Tag if it exists, None otherwise.
        """
        query = select(Tag).where(Tag.name == name)
        if for_share:
            query = query.with_for_update(read=True)
        result = await db.execute(query)
        return result.scalar_one_or_none()

    async def resolve_or_create(self, db: AsyncSession, name: str) -> Tag:
        """
        Find a tag by name, creating it if it does not exist yet.

        The insert runs inside a savepoint. If a concurrent request inserted the same
        name first, the unique constraint rejects ours, the savepoint is rolled back
        and the lookup is retried once.

        Args:
            db: Database session.
            name: Tag name (surrounding whitespace is trimmed).

        Returns:
            The existing or newly created Tag.

        Raises:
            BookmarkValidationError: If name is blank or too long.
            TagRegistryCorruptionError: If the insert conflicted but the retry
                still cannot find the tag.
        """
        name = self._checked_name(name)

        tag = await self.get_by_name(db, name, for_share=True)
        if tag is not None:
            return tag

        try:
            async with db.begin_nested():
                tag = Tag(name=name)
                db.add(tag)
                await db.flush()
        except IntegrityError:
            logger.info("tag_create_conflict name=%s, retrying lookup", name)
        else:
            logger.debug("tag_created name=%s id=%s", name, tag.id)
            return tag

        existing = await self.get_by_name(db, name, for_share=True)
        if existing is None:
            logger.error("tag_registry_corruption name=%s", name)
            raise TagRegistryCorruptionError(name)
        return existing

    async def resolve_many(self, db: AsyncSession, names: list[str]) -> list[Tag]:
        """
        Resolve a list of tag names, creating missing ones.

        Existing tags are fetched in a single query; only missing names go through
        resolve_or_create().

        Args:
            db: Database session.
            names: Tag names, already de-duplicated.

        Returns:
            Tags in the same order as names.
        """
        if not names:
            return []
        names = [self._checked_name(name) for name in names]

        result = await db.execute(
            select(Tag).where(Tag.name.in_(names)).with_for_update(read=True),
        )
        existing = {tag.name: tag for tag in result.scalars()}

        tags = []
        for name in names:
            tag = existing.get(name)
            if tag is None:
                tag = await self.resolve_or_create(db, name)
                existing[name] = tag
            tags.append(tag)
        return tags

    async def remove_orphans(self, db: AsyncSession, tag_ids: list[int]) -> int:
        """
        Delete the given tags that no bookmark references any more.

        Called by the bookmark store at the end of every operation that removes
        tag references. Tags still referenced elsewhere are left alone.

        The delete runs in a savepoint. If another transaction attached one of the
        candidates after the reference check, the foreign key rejects the statement;
        the candidates are then retried one at a time so only the tag that gained a
        reference is kept.

        Args:
            db: Database session.
            tag_ids: Candidate tag IDs (tags just detached from a bookmark).

        Returns:
            Number of tags deleted.
        """
        if not tag_ids:
            return 0

        try:
            async with db.begin_nested():
                removed = await self._delete_unreferenced(db, tag_ids)
        except IntegrityError:
            logger.info("tag_orphans_conflict ids=%s, retrying one by one", tag_ids)
            removed = 0
            for tag_id in tag_ids:
                try:
                    async with db.begin_nested():
                        removed += await self._delete_unreferenced(db, [tag_id])
                except IntegrityError:
                    logger.info("tag_orphan_kept id=%s, attached concurrently", tag_id)

        if removed:
            logger.debug("tag_orphans_removed count=%s", removed)
        return removed

    async def _delete_unreferenced(self, db: AsyncSession, tag_ids: list[int]) -> int:
        still_referenced = (
            select(bookmark_tags.c.tag_id)
            .where(bookmark_tags.c.tag_id.in_(tag_ids))
        )
        result = await db.execute(
            delete(Tag)
            .where(Tag.id.in_(tag_ids), Tag.id.not_in(still_referenced))
            .execution_options(synchronize_session=False),
        )
        return result.rowcount or 0

    @staticmethod
    def _checked_name(name: str) -> str:
        try:
            return validate_tag_name(name)
        except ValueError as e:
            raise BookmarkValidationError("tags", str(e)) from e
