# ABOUTME: Centralized configuration using Pydantic Settings.
# ABOUTME: Loads database, scheduler, fetcher, and logging settings from env and .env file.

from datetime import timedelta
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Database
    database_url: str = "postgresql+asyncpg://feedpulse:@localhost:5432/feedpulse"
    db_pool_size: int = 5
    db_pool_max_overflow: int = 10

    # Scheduler (fixed for the process lifetime)
    fetch_interval_seconds: float = Field(default=60.0, gt=0)
    fetch_concurrency: int = Field(default=10, gt=0)

    # Feeds
    feed_timeout: float = Field(default=10.0, gt=0)
    feed_user_agent: str = "FeedPulse/0.1 (+https://github.com/feedpulse/feedpulse)"

    # Logging
    log_level: str = "INFO"
    log_format: str = "console"  # "console" or "json"

    @property
    def fetch_interval(self) -> timedelta:
        """Time between scheduler ticks."""
        return timedelta(seconds=self.fetch_interval_seconds)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Settings are loaded from environment variables and .env file.
    """
    return Settings()
