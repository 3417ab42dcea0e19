from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Exporter settings loaded from environment variables and .env file.

    This uses pydantic-settings so that we get type validation and defaults.
    Command line flags override these values (see ``app.cli``).
    """

    # App basics
    ENV: Literal["development", "staging", "production"] = "development"
    """Environment mode: affects log rendering."""

    DEBUG: bool = False
    """Enable debug logging."""

    # Exposition
    BIND: str = "localhost:8080"
    """Address and port the metrics endpoint binds to (host:port)."""

    # Upstream strichliste API
    API_URL: str = "http://localhost:8080"
    """Base URL of the strichliste API."""

    API_TIMEOUT: float = 30.0
    """Timeout in seconds applied to every upstream request."""

    API_CLIENT_TYPE: Literal["http", "mock"] = "http"
    """Which client talks to the upstream: the real HTTP client or the in-memory mock."""

    UPSTREAM_TIMEZONE: str = "UTC"
    """IANA zone the upstream's naive createDate timestamps are expressed in."""

    # Scraping
    SCRAPE_INTERVAL: str = "5m"
    """Interval between scrape cycles, as a duration string (e.g. 30s, 5m, 1h30m)."""

    SCRAPE_USER_IDS: str = ""
    """Comma-separated user ids to scrape. Empty means discover all users every cycle."""

    # Model config
    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return a cached Settings instance to avoid re-parsing .env repeatedly."""
    return Settings()
