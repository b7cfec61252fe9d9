"""
Shared validation functions for bookmark and tag input.

Used both by the Pydantic request schemas and by the store, which re-checks input so
that callers bypassing the HTTP layer cannot persist blank or malformed data. All
functions raise ValueError.
"""
from pydantic import HttpUrl, TypeAdapter, ValidationError

from core.config import get_settings

_HTTP_URL = TypeAdapter(HttpUrl)


def validate_title(title: str) -> str:
    """Validate that title is non-blank and within the configured length."""
    settings = get_settings()
    if title is None or not title.strip():
        raise ValueError("Title cannot be blank")
    if len(title) > settings.max_title_length:
        raise ValueError(
            f"Title exceeds maximum length of {settings.max_title_length:,} characters "
            f"(got {len(title):,} characters).",
        )
    return title


def validate_url(url: str) -> str:
    """
    Validate that url is non-blank and shaped like an http(s) URL.

    The caller's string is returned unchanged (apart from surrounding whitespace):
    HttpUrl is only used as a shape check so that 'https://example.com' is stored
    without the trailing slash HttpUrl would add.
    """
    settings = get_settings()
    if url is None or not url.strip():
        raise ValueError("URL cannot be blank")
    url = url.strip()
    if len(url) > settings.max_url_length:
        raise ValueError(
            f"URL exceeds maximum length of {settings.max_url_length:,} characters "
            f"(got {len(url):,} characters).",
        )
    try:
        _HTTP_URL.validate_python(url)
    except ValidationError as e:
        raise ValueError(f"Invalid URL: '{url}'") from e
    return url


def validate_memo(memo: str | None) -> str | None:
    """Validate that memo doesn't exceed maximum length."""
    settings = get_settings()
    if memo is not None and len(memo) > settings.max_memo_length:
        raise ValueError(
            f"Memo exceeds maximum length of {settings.max_memo_length:,} characters "
            f"(got {len(memo):,} characters).",
        )
    return memo


def validate_tag_name(tag: str) -> str:
    """
    Validate a single tag name.

    Tag names are case-sensitive; only surrounding whitespace is trimmed.

    Raises:
        ValueError: If tag is blank or too long.
    """
    settings = get_settings()
    trimmed = tag.strip() if isinstance(tag, str) else ""
    if not trimmed:
        raise ValueError("Tag name cannot be blank")
    if len(trimmed) > settings.max_tag_length:
        raise ValueError(
            f"Tag '{trimmed[:20]}...' exceeds maximum length of "
            f"{settings.max_tag_length} characters.",
        )
    return trimmed


def validate_and_dedupe_tags(tags: list[str] | None) -> list[str]:
    """
    Validate a list of tag names and collapse duplicates.

    Returns:
        Tag names in first-seen order with duplicates removed.

    Raises:
        ValueError: If tags is not a list, or any tag is blank or too long.
    """
    if tags is None:
        return []
    # A bare string is iterable too; it must not be split into one-letter tags
    if not isinstance(tags, list | tuple):
        raise ValueError("Tags must be a list of tag names")
    return list(dict.fromkeys(validate_tag_name(tag) for tag in tags))
