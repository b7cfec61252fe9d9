"""Pagination request and page envelope schemas."""
import math
from typing import Generic, Literal, TypeVar

from pydantic import BaseModel, Field, computed_field, field_validator

from core.config import get_settings

T = TypeVar("T")

SortField = Literal["created_at", "updated_at", "title", "url"]
SortOrder = Literal["asc", "desc"]


def _default_page_size() -> int:
    return get_settings().default_page_size


class PageRequest(BaseModel):
    """
    Page selection for list queries.

    page is 0-based. Ordering defaults to creation time ascending; created_at and id
    are always appended as tiebreakers so pages are stable.
    """

    page: int = Field(default=0, ge=0)
    size: int = Field(default_factory=_default_page_size, ge=1)
    sort_by: SortField = "created_at"
    sort_order: SortOrder = "asc"

    @field_validator("size")
    @classmethod
    def check_max_size(cls, v: int) -> int:
        """Cap page size at the configured maximum."""
        max_size = get_settings().max_page_size
        if v > max_size:
            raise ValueError(f"Page size must be at most {max_size} (got {v}).")
        return v

    @property
    def offset(self) -> int:
        """Row offset of the first item on this page."""
        return self.page * self.size


class Page(BaseModel, Generic[T]):
    """One page of results plus the metadata needed to navigate the rest."""

    content: list[T]
    total_elements: int
    page: int
    size: int

    @computed_field
    @property
    def total_pages(self) -> int:
        """Number of pages needed for total_elements at this page size."""
        return math.ceil(self.total_elements / self.size) if self.size else 0

    @computed_field
    @property
    def has_next(self) -> bool:
        """True when a later page exists."""
        return self.page + 1 < self.total_pages

    @computed_field
    @property
    def is_first(self) -> bool:
        """True for page 0."""
        return self.page == 0

    @computed_field
    @property
    def is_last(self) -> bool:
        """True when no later page exists."""
        return not self.has_next
