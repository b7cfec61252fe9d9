"""Pydantic schemas for bookmarks."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from schemas.validators import (
    validate_and_dedupe_tags,
    validate_memo,
    validate_title,
    validate_url,
)


class BookmarkWrite(BaseModel):
    """
    Shared shape for create and full-replace update.

    Tags keep their first-seen order; duplicates are collapsed.
    """

    title: str
    url: str
    memo: str | None = None
    tags: list[str] | None = Field(default_factory=list)

    @field_validator("title")
    @classmethod
    def check_title(cls, v: str) -> str:
        """Reject blank or over-long titles."""
        return validate_title(v)

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Reject blank or malformed URLs."""
        return validate_url(v)

    @field_validator("memo")
    @classmethod
    def check_memo(cls, v: str | None) -> str | None:
        """Validate memo length."""
        return validate_memo(v)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: list[str] | None) -> list[str]:
        """Validate tag names and collapse duplicates; null means no tags."""
        return validate_and_dedupe_tags(v)


class BookmarkCreate(BookmarkWrite):
    """Schema for creating a new bookmark."""


class BookmarkUpdate(BookmarkWrite):
    """
    Schema for updating an existing bookmark.

    Update is a full replace: title, url, memo and the whole tag set are overwritten.
    Omitting tags clears them.
    """


class BookmarkRead(BaseModel):
    """
    A bookmark with its tag names expanded.

    This is also the cache payload. Bump CACHE_SCHEMA_VERSION in
    core/bookmark_cache.py when fields are added, removed, or renamed.
    """

    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    title: str
    url: str
    memo: str | None
    tags: list[str]
    created_at: datetime
    updated_at: datetime
