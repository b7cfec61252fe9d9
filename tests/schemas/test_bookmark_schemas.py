"""Tests for bookmark, pagination and validator schemas."""
import pytest
from pydantic import ValidationError

from schemas.bookmark import BookmarkCreate, BookmarkUpdate
from schemas.pagination import Page, PageRequest
from schemas.validators import validate_and_dedupe_tags, validate_tag_name, validate_url


class TestBookmarkCreate:
    """Tests for BookmarkCreate validation."""

    def test__valid_input__keeps_url_as_given(self) -> None:
        """The URL is not normalized (no trailing slash added)."""
        data = BookmarkCreate(title="Google", url="https://www.google.com")

        assert data.url == "https://www.google.com"
        assert data.tags == []
        assert data.memo is None

    def test__tags__deduplicated_in_first_seen_order(self) -> None:
        """Duplicates collapse, order is preserved, whitespace trimmed."""
        data = BookmarkCreate(
            title="T", url="https://example.com", tags=["b", " a ", "b", "a"],
        )

        assert data.tags == ["b", "a"]

    def test__tags__case_is_preserved(self) -> None:
        """'IT' and 'it' are both kept."""
        data = BookmarkCreate(title="T", url="https://example.com", tags=["IT", "it"])

        assert data.tags == ["IT", "it"]

    @pytest.mark.parametrize(
        "overrides",
        [
            {"title": ""},
            {"title": "   "},
            {"url": ""},
            {"url": "ftp//nope"},
            {"tags": [""]},
            {"memo": "x" * 2001},
            {"title": "x" * 501},
        ],
    )
    def test__invalid_input__raises_validation_error(self, overrides: dict) -> None:
        """Blank/malformed fields and over-long values are rejected."""
        values = {"title": "T", "url": "https://example.com"}
        values.update(overrides)

        with pytest.raises(ValidationError):
            BookmarkCreate(**values)

    @pytest.mark.parametrize("tags", ["abc", {"name": "abc"}, 3])
    def test__tags__non_list_is_rejected(self, tags: object) -> None:
        """A bare string is not split into one-letter tags, and other shapes fail too."""
        with pytest.raises(ValidationError):
            BookmarkCreate(title="T", url="https://example.com", tags=tags)

    def test__tags__null_means_no_tags(self) -> None:
        """An explicit null tag list is treated as empty."""
        data = BookmarkCreate(title="T", url="https://example.com", tags=None)

        assert data.tags == []

    def test__update__omitted_tags_clear_the_set(self) -> None:
        """Update is a full replace, so no tags means an empty tag list."""
        data = BookmarkUpdate(title="T", url="https://example.com")

        assert data.tags == []


class TestValidators:
    """Tests for the shared validation functions."""

    def test__validate_url__strips_whitespace(self) -> None:
        """Surrounding whitespace is removed before the shape check."""
        assert validate_url("  https://example.com/a?b=1 ") == "https://example.com/a?b=1"

    def test__validate_url__rejects_non_http_scheme(self) -> None:
        """Only http(s) URLs are accepted."""
        with pytest.raises(ValueError, match="Invalid URL"):
            validate_url("mailto:someone@example.com")

    def test__validate_tag_name__rejects_too_long(self) -> None:
        """Tag names longer than the configured limit fail."""
        with pytest.raises(ValueError, match="exceeds maximum length"):
            validate_tag_name("t" * 101)

    def test__validate_and_dedupe_tags__none_is_empty(self) -> None:
        """Missing tag list is treated as no tags."""
        assert validate_and_dedupe_tags(None) == []

    def test__validate_and_dedupe_tags__rejects_string(self) -> None:
        """A string is not a tag list."""
        with pytest.raises(ValueError, match="must be a list"):
            validate_and_dedupe_tags("abc")


class TestPagination:
    """Tests for PageRequest and Page."""

    def test__page_request__defaults(self) -> None:
        """Defaults come from settings: page 0, size 10, created_at ascending."""
        request = PageRequest()

        assert request.page == 0
        assert request.size == 10
        assert request.sort_by == "created_at"
        assert request.sort_order == "asc"
        assert request.offset == 0

    def test__page_request__offset(self) -> None:
        """offset is page * size."""
        assert PageRequest(page=3, size=20).offset == 60

    @pytest.mark.parametrize(
        "kwargs",
        [{"page": -1}, {"size": 0}, {"size": 101}, {"sort_by": "owner_id"}, {"sort_order": "up"}],
    )
    def test__page_request__rejects_invalid(self, kwargs: dict) -> None:
        """Negative pages, out-of-range sizes and unknown sort options fail."""
        with pytest.raises(ValidationError):
            PageRequest(**kwargs)

    def test__page__navigation_metadata(self) -> None:
        """Computed fields describe where the page sits."""
        page = Page[int](content=[5, 6], total_elements=6, page=1, size=2)

        assert page.total_pages == 3
        assert page.has_next is True
        assert page.is_first is False
        assert page.is_last is False

    def test__page__empty_result(self) -> None:
        """No results means zero pages, and page 0 is both first and last."""
        page = Page[int](content=[], total_elements=0, page=0, size=10)

        assert page.total_pages == 0
        assert page.is_first is True
        assert page.is_last is True

    def test__page__serializes_computed_fields(self) -> None:
        """Navigation fields are part of the JSON response."""
        dumped = Page[int](content=[1], total_elements=1, page=0, size=10).model_dump()

        assert dumped["total_pages"] == 1
        assert dumped["has_next"] is False
