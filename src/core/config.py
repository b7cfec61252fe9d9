"""Application configuration using pydantic-settings."""
from functools import lru_cache
from urllib.parse import urlparse

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Database
    database_url: str
    db_pool_size: int = Field(default=10, validation_alias="DB_POOL_SIZE")
    db_max_overflow: int = Field(default=20, validation_alias="DB_MAX_OVERFLOW")

    # Development mode - requests without an upstream-authenticated owner act as dev_owner_id
    dev_mode: bool = Field(default=False, validation_alias="DEV_MODE")
    dev_owner_id: int = Field(default=1, validation_alias="DEV_OWNER_ID")

    # Redis - backs the single-bookmark cache
    redis_url: str = Field(default="redis://localhost:6379", validation_alias="REDIS_URL")
    redis_enabled: bool = Field(default=True, validation_alias="REDIS_ENABLED")
    redis_pool_size: int = Field(default=20, validation_alias="REDIS_POOL_SIZE")
    bookmark_cache_ttl: int = Field(default=300, validation_alias="BOOKMARK_CACHE_TTL")
    # How long a deleted bookmark blocks read-through refills of its key
    bookmark_cache_tombstone_ttl: int = Field(
        default=60, validation_alias="BOOKMARK_CACHE_TOMBSTONE_TTL",
    )

    # Field length limits
    max_title_length: int = Field(default=500, validation_alias="MAX_TITLE_LENGTH")
    max_url_length: int = Field(default=2048, validation_alias="MAX_URL_LENGTH")
    max_memo_length: int = Field(default=2000, validation_alias="MAX_MEMO_LENGTH")
    max_tag_length: int = Field(default=100, validation_alias="MAX_TAG_LENGTH")

    # Pagination
    default_page_size: int = Field(default=10, validation_alias="DEFAULT_PAGE_SIZE")
    max_page_size: int = Field(default=100, validation_alias="MAX_PAGE_SIZE")

    @model_validator(mode="after")
    def validate_dev_mode_security(self) -> "Settings":
        """
        Prevent DEV_MODE from being enabled with a production database.

        DEV_MODE lets unauthenticated requests act as a fixed owner, so it must only be
        used with local development databases.
        """
        if not self.dev_mode:
            return self

        # SQLite URLs have no host and are always local
        if self.is_sqlite:
            return self

        try:
            hostname = urlparse(self.database_url).hostname or ""
        except ValueError:
            # If we can't parse the URL, block DEV_MODE (fail-safe)
            hostname = ""

        local_hosts = {"localhost", "127.0.0.1", "0.0.0.0", "::1"}
        if hostname.lower() not in local_hosts:
            raise ValueError(
                f"DEV_MODE cannot be enabled with a non-local database. "
                f"Database host '{hostname}' appears to be a production database. "
                f"DEV_MODE bypasses owner authentication and must only be used locally.",
            )

        return self

    @property
    def is_sqlite(self) -> bool:
        """True when the configured store is SQLite (no connection pool sizing)."""
        return self.database_url.startswith("sqlite")


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
