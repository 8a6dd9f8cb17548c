"""Pydantic Settings — loads configuration from environment variables."""

from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "extra": "ignore"}

    database_url: str = "sqlite+aiosqlite:///./sitewatch.db"

    # Fallbacks used when the settings table has no value for a key
    google_api_key: str = ""
    google_cx: str = ""
    google_search_url: str = "https://www.googleapis.com/customsearch/v1"
    search_timeout_seconds: float = 30.0

    scheduler_enabled: bool = True
    log_level: str = "INFO"


@lru_cache
def get_settings() -> Settings:
    return Settings()
