"""Tests for application configuration."""
import pytest
from pydantic import ValidationError

from core.config import Settings


class TestDefaults:
    """Tests for default values."""

    def test__defaults__match_documented_limits(self) -> None:
        """Unset settings fall back to the documented defaults."""
        settings = Settings(_env_file=None, database_url="postgresql+asyncpg://db/x")

        assert settings.dev_mode is False
        assert settings.redis_enabled is True
        assert settings.bookmark_cache_ttl == 300
        assert settings.bookmark_cache_tombstone_ttl == 60
        assert settings.default_page_size == 10
        assert settings.max_page_size == 100
        assert settings.max_tag_length == 100

    def test__env_aliases__override_defaults(self) -> None:
        """Upper-case environment names populate the fields."""
        settings = Settings(
            _env_file=None,
            database_url="postgresql+asyncpg://db/x",
            BOOKMARK_CACHE_TTL="60",
            BOOKMARK_CACHE_TOMBSTONE_TTL="5",
            REDIS_ENABLED="false",
            MAX_PAGE_SIZE="25",
        )

        assert settings.bookmark_cache_ttl == 60
        assert settings.bookmark_cache_tombstone_ttl == 5
        assert settings.redis_enabled is False
        assert settings.max_page_size == 25

    def test__is_sqlite__detects_sqlite_urls(self) -> None:
        """is_sqlite is true only for SQLite URLs."""
        sqlite = Settings(_env_file=None, database_url="sqlite+aiosqlite:///./bookmarks.db")
        postgres = Settings(_env_file=None, database_url="postgresql+asyncpg://db/x")

        assert sqlite.is_sqlite is True
        assert postgres.is_sqlite is False


class TestDevModeSecurity:
    """DEV_MODE must only run against local databases."""

    @pytest.mark.parametrize(
        "database_url",
        [
            "postgresql+asyncpg://user:pw@localhost:5432/bookmarks",
            "postgresql+asyncpg://user:pw@127.0.0.1:5432/bookmarks",
            "sqlite+aiosqlite:///:memory:",
        ],
    )
    def test__dev_mode__allowed_with_local_database(self, database_url: str) -> None:
        """Local hosts and SQLite are accepted."""
        settings = Settings(_env_file=None, database_url=database_url, DEV_MODE="true")

        assert settings.dev_mode is True

    def test__dev_mode__rejected_with_remote_database(self) -> None:
        """A non-local host with DEV_MODE fails validation."""
        with pytest.raises(ValidationError, match="DEV_MODE cannot be enabled"):
            Settings(
                _env_file=None,
                database_url="postgresql+asyncpg://user:pw@db.prod.internal:5432/bookmarks",
                DEV_MODE="true",
            )

    def test__remote_database__allowed_without_dev_mode(self) -> None:
        """The check only applies when DEV_MODE is on."""
        settings = Settings(
            _env_file=None,
            database_url="postgresql+asyncpg://user:pw@db.prod.internal:5432/bookmarks",
            DEV_MODE="false",
        )

        assert settings.dev_mode is False
