"""Shared exceptions for service layer operations."""


class BookmarkValidationError(Exception):
    """
    Raised when bookmark input fails the store's own checks.

    The HTTP layer validates first; the store re-checks title, url and tag names so
    that callers bypassing the HTTP layer cannot persist blank or malformed data.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        super().__init__(f"{field}: {message}")


class BookmarkNotFoundError(Exception):
    """Raised when no bookmark with the given ID exists for any owner."""

    def __init__(self, bookmark_id: int) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(f"Bookmark not found with id: {bookmark_id}")


class BookmarkAccessDeniedError(Exception):
    """
    Raised when a bookmark exists but belongs to a different owner.

    Kept distinct from BookmarkNotFoundError, which means a non-owner can learn that
    the ID exists. See DESIGN.md for the trade-off.
    """

    def __init__(self, bookmark_id: int, owner_id: int) -> None:
        self.bookmark_id = bookmark_id
        self.owner_id = owner_id
        super().__init__(f"Owner {owner_id} may not access bookmark {bookmark_id}")


class UnauthenticatedError(Exception):
    """Raised when no authenticated owner can be resolved for a request."""

    def __init__(self, message: str = "Not authenticated") -> None:
        super().__init__(message)


class StoreUnavailableError(Exception):
    """
    Raised on a transient failure talking to the database.

    Safe for the caller to retry, except for create which is never retried
    automatically.
    """

    def __init__(self, operation: str) -> None:
        self.operation = operation
        super().__init__(f"Bookmark store unavailable during {operation}")


class TagRegistryCorruptionError(Exception):
    """Raised when a tag name conflicts on insert but still cannot be found afterwards."""

    def __init__(self, tag_name: str) -> None:
        self.tag_name = tag_name
        super().__init__(
            f"Tag '{tag_name}' violated the unique constraint but is not resolvable",
        )
