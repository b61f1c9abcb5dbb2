"""Tests for application configuration."""

import pytest
from hypothesis import given, strategies as st
from pydantic import ValidationError
from unittest.mock import patch

from src.config import Settings, get_settings
from src.constants import DEFAULT_USER_AGENT, SCRAPE_TIMEOUT_SECONDS


class TestSettings:
    """Test Settings model validation."""

    _ENV_KEYS = (
        "STORAGE_BACKEND",
        "SUPABASE_URL",
        "SUPABASE_SERVICE_KEY",
        "SCRAPER_TIMEOUT_SECONDS",
        "MAX_CONCURRENT_SCRAPES",
        "DEFAULT_PAGE_SIZE",
        "ENV",
    )

    @pytest.fixture
    def clean_env(self, monkeypatch):
        for key in self._ENV_KEYS:
            monkeypatch.delenv(key, raising=False)

    def test_settings_default_values(self, clean_env):
        """Defaults run the scraper with no external services."""
        settings = Settings(_env_file=None)

        assert settings.env == "local"
        assert settings.storage_backend == "memory"
        assert settings.scraper_timeout_seconds == SCRAPE_TIMEOUT_SECONDS
        assert settings.scraper_user_agent == DEFAULT_USER_AGENT
        assert settings.max_concurrent_scrapes is None
        assert settings.default_page_size == 20
        assert settings.sentry_dsn is None

    def test_supabase_backend_requires_credentials(self, clean_env):
        with pytest.raises(ValidationError, match="SUPABASE_URL"):
            Settings(_env_file=None, storage_backend="supabase")

    def test_supabase_backend_with_credentials(self, clean_env):
        settings = Settings(
            _env_file=None,
            storage_backend="supabase",
            supabase_url="https://test.supabase.co",
            supabase_service_key="service-key",
        )
        assert settings.supabase_url == "https://test.supabase.co"

    def test_settings_read_from_environment(self, clean_env, monkeypatch):
        monkeypatch.setenv("SCRAPER_TIMEOUT_SECONDS", "3.5")
        monkeypatch.setenv("MAX_CONCURRENT_SCRAPES", "64")

        settings = Settings(_env_file=None)

        assert settings.scraper_timeout_seconds == 3.5
        assert settings.max_concurrent_scrapes == 64

    @pytest.mark.parametrize(
        "overrides",
        [
            {"scraper_timeout_seconds": 0},
            {"max_concurrent_scrapes": 0},
            {"default_page_size": 0},
            {"default_page_size": 101},
            {"storage_backend": "mongo"},
        ],
    )
    def test_invalid_values_rejected(self, clean_env, overrides):
        with pytest.raises(ValidationError):
            Settings(_env_file=None, **overrides)

    @given(
        timeout=st.floats(min_value=0.1, max_value=120, allow_nan=False),
        env=st.sampled_from(["local", "railway", "prod"]),
    )
    def test_settings_optional_fields_properties(self, timeout: float, env: str):
        """Property: Settings should accept valid optional field values."""
        settings = Settings(_env_file=None, scraper_timeout_seconds=timeout, env=env)
        assert settings.scraper_timeout_seconds == timeout
        assert settings.env == env

    def test_settings_env_validation(self, clean_env):
        """Test that env field only accepts valid values."""
        for env in ["local", "railway", "prod"]:
            assert Settings(_env_file=None, env=env).env == env

        with pytest.raises(ValidationError):
            Settings(_env_file=None, env="invalid")


class TestGetSettings:
    """Test get_settings() function."""

    @patch.dict("os.environ", {"STORAGE_BACKEND": "memory"})
    def test_get_settings_caching(self):
        """Test that get_settings() returns cached instance."""
        get_settings.cache_clear()
        try:
            settings1 = get_settings()
            settings2 = get_settings()
            assert settings1 is settings2
        finally:
            get_settings.cache_clear()
