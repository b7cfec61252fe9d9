"""Bookmark model for storing owner bookmarks."""
from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin


class Bookmark(Base, TimestampMixin):
    """Bookmark model - stores a titled URL with an optional memo for one owner."""

    __tablename__ = "bookmarks"
    __table_args__ = (
        # Default listing order is per-owner creation time
        Index("ix_bookmarks_owner_id_created_at", "owner_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(primary_key=True)
    # Opaque id handed out by the authentication layer; immutable after creation
    owner_id: Mapped[int] = mapped_column(nullable=False, index=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    memo: Mapped[str | None] = mapped_column(Text, nullable=True)
