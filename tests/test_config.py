"""Tests for duration parsing and scraper configuration."""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from app.core.config import Settings
from app.core.durations import format_duration, parse_duration
from app.exporter.config import (
    ConfigError,
    DiscoverTargets,
    FixedTargets,
    ScraperConfig,
    parse_user_ids,
    targets_for,
)


class TestDurations:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("5m", timedelta(minutes=5)),
            ("30s", timedelta(seconds=30)),
            ("24h", timedelta(hours=24)),
            ("1h30m", timedelta(hours=1, minutes=30)),
            ("1.5h", timedelta(hours=1, minutes=30)),
            ("300ms", timedelta(milliseconds=300)),
            ("2h45m10s", timedelta(hours=2, minutes=45, seconds=10)),
            ("0", timedelta(0)),
            ("-1m", timedelta(minutes=-1)),
        ],
    )
    def test_parse(self, text, expected):
        assert parse_duration(text) == expected

    @pytest.mark.parametrize("text", ["", "5", "m", "five minutes", "5 m", "1d", "1h-5m"])
    def test_parse_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration(text)

    def test_parse_out_of_range(self):
        with pytest.raises(ValueError, match="out of range"):
            parse_duration("99999999999999h")

    @pytest.mark.parametrize(
        "value, expected",
        [
            (timedelta(minutes=5), "5m"),
            (timedelta(hours=1, minutes=30), "1h30m"),
            (timedelta(seconds=45), "45s"),
            (timedelta(milliseconds=250), "250ms"),
        ],
    )
    def test_format(self, value, expected):
        assert format_duration(value) == expected


class TestTargets:
    def test_no_ids_means_discover(self):
        assert targets_for([]) == DiscoverTargets()

    def test_ids_mean_fixed(self):
        targets = targets_for([3, 1])
        assert isinstance(targets, FixedTargets)
        assert targets.user_ids == (3, 1)

    def test_fixed_requires_ids(self):
        with pytest.raises(ValidationError):
            FixedTargets(user_ids=())

    def test_parse_user_ids(self):
        assert parse_user_ids(["1", " 2", "30 "]) == [1, 2, 30]

    def test_parse_user_ids_rejects_names(self):
        with pytest.raises(ConfigError, match="alice isn't user id"):
            parse_user_ids(["1", "alice"])

    def test_parse_user_ids_accepts_sign(self):
        assert parse_user_ids(["+3", "-1"]) == [3, -1]

    @pytest.mark.parametrize("raw", ["1_000", "1.0", "0x10", "\u0663", ""])
    def test_parse_user_ids_rejects_non_decimal(self, raw):
        with pytest.raises(ConfigError, match="isn't user id"):
            parse_user_ids([raw])


class TestScraperConfig:
    def test_from_settings_defaults(self):
        config = ScraperConfig.from_settings(Settings(_env_file=None))

        assert config.interval == timedelta(minutes=5)
        assert config.targets == DiscoverTargets()
        assert config.api_base_url == "http://localhost:8080"
        assert config.get_interval_seconds() == 300

    def test_from_settings_fixed_users(self):
        settings = Settings(
            _env_file=None,
            API_URL="http://kasse.local/api/",
            SCRAPE_INTERVAL="1h",
            SCRAPE_USER_IDS="4, 7",
        )
        config = ScraperConfig.from_settings(settings)

        assert config.api_base_url == "http://kasse.local/api"
        assert config.interval == timedelta(hours=1)
        assert config.targets == FixedTargets(user_ids=(4, 7))

    @pytest.mark.parametrize(
        "overrides",
        [
            {"SCRAPE_INTERVAL": "soon"},
            {"SCRAPE_INTERVAL": "0s"},
            {"SCRAPE_INTERVAL": "-5m"},
            {"SCRAPE_USER_IDS": "1,two"},
            {"UPSTREAM_TIMEZONE": "Mars/Olympus_Mons"},
        ],
    )
    def test_from_settings_invalid(self, overrides):
        with pytest.raises(ConfigError):
            ScraperConfig.from_settings(Settings(_env_file=None, **overrides))

    def test_config_is_immutable(self):
        config = ScraperConfig()
        with pytest.raises(ValidationError):
            config.interval = timedelta(seconds=1)

    def test_targets_discriminated_from_dict(self):
        config = ScraperConfig.model_validate(
            {"targets": {"mode": "fixed", "user_ids": [5]}}
        )
        assert config.targets == FixedTargets(user_ids=(5,))

    def test_settings_read_from_environment(self, monkeypatch):
        monkeypatch.setenv("SCRAPE_INTERVAL", "90s")
        monkeypatch.setenv("SCRAPE_USER_IDS", "2")
        config = ScraperConfig.from_settings(Settings(_env_file=None))

        assert config.interval == timedelta(seconds=90)
        assert config.targets == FixedTargets(user_ids=(2,))
