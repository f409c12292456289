"""Tests for settings loading and the fetcher factory."""

import os
from unittest.mock import patch

import pytest

from app.market.coingecko_client import API_KEY_HEADER, DEFAULT_BASE_URL, CoinGeckoClient
from app.market.exceptions import ConfigurationError
from app.market.factory import MarketSettings, create_fetcher, load_settings


class TestLoadSettings:
    """Tests for load_settings()."""

    def test_missing_api_key_is_fatal(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError, match="api key"):
                load_settings()

    def test_whitespace_api_key_is_fatal(self):
        with patch.dict(os.environ, {"COINGECKO_API_KEY": "   "}, clear=True):
            with pytest.raises(ConfigurationError):
                load_settings()

    def test_defaults(self):
        with patch.dict(os.environ, {"COINGECKO_API_KEY": "test-key"}, clear=True):
            settings = load_settings()

        assert settings.api_key == "test-key"
        assert settings.base_url == DEFAULT_BASE_URL
        assert settings.poll_interval == 60.0
        assert settings.rate_limit_cooldown == 60.0

    def test_overrides(self):
        env = {
            "COINGECKO_API_KEY": "k",
            "COINGECKO_BASE_URL": "https://pro-api.coingecko.com/api/v3",
            "COINGECKO_POLL_INTERVAL": "30",
            "COINGECKO_RATE_LIMIT_COOLDOWN": "120",
        }
        with patch.dict(os.environ, env, clear=True):
            settings = load_settings()

        assert settings.base_url == "https://pro-api.coingecko.com/api/v3"
        assert settings.poll_interval == 30.0
        assert settings.rate_limit_cooldown == 120.0

    @pytest.mark.parametrize("value", ["abc", "0", "-5"])
    def test_bad_interval(self, value):
        env = {"COINGECKO_API_KEY": "k", "COINGECKO_POLL_INTERVAL": value}
        with patch.dict(os.environ, env, clear=True):
            with pytest.raises(ConfigurationError, match="COINGECKO_POLL_INTERVAL"):
                load_settings()


class TestCreateFetcher:
    """Tests for create_fetcher()."""

    def test_raises_without_api_key(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError):
                create_fetcher()

    def test_creates_client_from_env(self):
        with patch.dict(os.environ, {"COINGECKO_API_KEY": "test-key-123"}, clear=True):
            fetcher = create_fetcher()

        assert isinstance(fetcher, CoinGeckoClient)
        assert fetcher._api_key == "test-key-123"
        assert fetcher._client.headers[API_KEY_HEADER] == "test-key-123"

    def test_explicit_settings(self):
        settings = MarketSettings(api_key="k", base_url="http://localhost:9999/api/v3/")
        fetcher = create_fetcher(settings)
        assert fetcher.base_url == "http://localhost:9999/api/v3"
