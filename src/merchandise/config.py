"""Application settings for the merchandise domain."""

from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``MERCHANDISE_*`` environment variables or ``.env``."""

    env: str = "development"
    database_url: str = "sqlite:///merchandise.db"
    echo_sql: bool = False

    # Logging
    log_level: str | None = None
    log_dir: str = "logs"
    log_file_prefix: str = "merchandise"

    # Downstream publication
    publish_topic: str = "ops.item_update"
    item_feed_topic: str = "item_feed"

    # Delayed jobs enqueued by after-commit hooks
    relist_delay_days: int = 7
    duplicate_listing_delay_minutes: int = 15

    # Re-selections after another writer committed the same item first
    conflict_retries: int = 3

    model_config = SettingsConfigDict(
        env_prefix="MERCHANDISE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
