"""
Scraper configuration.

Validates process settings into an immutable configuration object that
is passed explicitly into the scraper.
"""

import re
from datetime import timedelta, tzinfo
from typing import Annotated, Iterable, List, Literal, Sequence, Union
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.core.config import Settings
from app.core.durations import parse_duration


class ConfigError(ValueError):
    """Raised when process configuration is invalid. Fatal at startup."""

    pass


class DiscoverTargets(BaseModel):
    """Scrape every user the upstream knows, re-discovered each cycle."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["discover"] = "discover"


class FixedTargets(BaseModel):
    """Scrape a fixed list of user ids established at startup."""

    model_config = ConfigDict(frozen=True)

    mode: Literal["fixed"] = "fixed"
    user_ids: tuple[int, ...] = Field(..., min_length=1)


ScrapeTargets = Annotated[
    Union[DiscoverTargets, FixedTargets], Field(discriminator="mode")
]


class ScraperConfig(BaseModel):
    """Validated, immutable configuration for the scrape loop."""

    model_config = ConfigDict(frozen=True)

    api_base_url: str = Field(
        default="http://localhost:8080", description="Base URL of the strichliste API"
    )
    api_timeout: float = Field(
        default=30.0, gt=0, description="Upstream request timeout in seconds"
    )
    api_client_type: Literal["http", "mock"] = Field(
        default="http", description="Type of API client"
    )
    interval: timedelta = Field(
        default=timedelta(minutes=5), description="Time between scrape cycles"
    )
    targets: ScrapeTargets = Field(default_factory=DiscoverTargets)
    upstream_timezone: str = Field(
        default="UTC", description="Zone of the upstream's naive timestamps"
    )
    history_size: int = Field(
        default=100, ge=1, description="Scrape runs kept in memory for status"
    )

    @field_validator("interval")
    @classmethod
    def _interval_positive(cls, value: timedelta) -> timedelta:
        if value <= timedelta(0):
            raise ValueError("interval must be positive")
        return value

    @field_validator("api_base_url")
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @field_validator("upstream_timezone")
    @classmethod
    def _known_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"unknown time zone {value!r}") from e
        return value

    @property
    def tz(self) -> tzinfo:
        return ZoneInfo(self.upstream_timezone)

    def get_interval_seconds(self) -> float:
        """Get scrape interval in seconds."""
        return self.interval.total_seconds()

    @classmethod
    def from_settings(cls, settings: Settings) -> "ScraperConfig":
        """Build the scraper config from process settings.

        Raises:
            ConfigError: If the interval, user ids or any other value is invalid
        """
        try:
            interval = parse_duration(settings.SCRAPE_INTERVAL)
        except ValueError as e:
            raise ConfigError(str(e)) from e

        user_ids = parse_user_ids(
            part for part in settings.SCRAPE_USER_IDS.split(",") if part.strip()
        )

        try:
            return cls(
                api_base_url=settings.API_URL,
                api_timeout=settings.API_TIMEOUT,
                api_client_type=settings.API_CLIENT_TYPE,
                interval=interval,
                targets=targets_for(user_ids),
                upstream_timezone=settings.UPSTREAM_TIMEZONE,
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e


# Optional sign and ASCII digits; no underscores
_USER_ID = re.compile(r"[+-]?[0-9]+")


def parse_user_ids(raw_ids: Iterable[str]) -> List[int]:
    """Parse user id arguments.

    Raises:
        ConfigError: If an argument isn't a plain decimal integer
    """
    user_ids = []
    for raw in raw_ids:
        text = raw.strip()
        if not _USER_ID.fullmatch(text):
            raise ConfigError(f"{text} isn't user id")
        user_ids.append(int(text))
    return user_ids


def targets_for(user_ids: Sequence[int]) -> Union[DiscoverTargets, FixedTargets]:
    """No ids means discovery mode."""
    if not user_ids:
        return DiscoverTargets()
    return FixedTargets(user_ids=tuple(user_ids))
