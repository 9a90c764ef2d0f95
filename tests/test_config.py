"""Tests for Settings.from_env."""

from __future__ import annotations

import pytest

from ecograph.config import Settings
from ecograph.exceptions import ConfigError


class TestSettings:
    def test_defaults(self):
        settings = Settings.from_env({})
        assert settings.repositories == ("fez", "cpan", "p6c")
        assert settings.batch_size == 50
        assert settings.store_retries == 3
        assert settings.deep_scan is True

    def test_overrides_from_env(self):
        settings = Settings.from_env(
            {
                "ECOGRAPH_DATABASE_URL": "sqlite:///x.db",
                "ECOGRAPH_REPOSITORIES": "cpan, fez",
                "ECOGRAPH_BATCH_SIZE": "10",
                "ECOGRAPH_STORE_RETRY_DELAY": "0.25",
                "ECOGRAPH_DEEP_SCAN": "no",
                "ECOGRAPH_EXTRA_NOISE": "Foo, Bar",
                "ECOGRAPH_LOG_LEVEL": "debug",
            }
        )
        assert settings.database_url == "sqlite:///x.db"
        assert settings.repositories == ("cpan", "fez")
        assert settings.batch_size == 10
        assert settings.store_retry_delay == 0.25
        assert settings.deep_scan is False
        assert settings.extra_noise == frozenset({"Foo", "Bar"})
        assert settings.log_level == "DEBUG"

    @pytest.mark.parametrize(
        "env",
        [
            {"ECOGRAPH_BATCH_SIZE": "ten"},
            {"ECOGRAPH_BATCH_SIZE": "0"},
            {"ECOGRAPH_STORE_RETRY_DELAY": "-1"},
            {"ECOGRAPH_DEEP_SCAN": "maybe"},
            {"ECOGRAPH_REPOSITORIES": " , "},
        ],
    )
    def test_invalid_values(self, env):
        with pytest.raises(ConfigError):
            Settings.from_env(env)

    def test_with_overrides_skips_none(self):
        settings = Settings().with_overrides(database_url=None, batch_size=5)
        assert settings.database_url == Settings().database_url
        assert settings.batch_size == 5
