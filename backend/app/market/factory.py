"""Factory for the CoinGecko fetcher and the settings it needs."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

from .coingecko_client import DEFAULT_BASE_URL, CoinGeckoClient
from .exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class MarketSettings:
    api_key: str
    base_url: str = DEFAULT_BASE_URL
    poll_interval: float = 60.0
    rate_limit_cooldown: float = 60.0


def _float_env(name: str, default: float) -> float:
    raw = os.environ.get(name, "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError as e:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from e
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive, got {raw!r}")
    return value


def load_settings() -> MarketSettings:
    """Read market settings from environment variables.

    - COINGECKO_API_KEY (required; blank counts as missing)
    - COINGECKO_BASE_URL (default: public v3 API)
    - COINGECKO_POLL_INTERVAL, COINGECKO_RATE_LIMIT_COOLDOWN (seconds, default 60)

    Raises ConfigurationError so the application fails at startup rather than
    on the first request.
    """
    api_key = os.environ.get("COINGECKO_API_KEY", "").strip()
    if not api_key:
        raise ConfigurationError("Could not get api key: COINGECKO_API_KEY is not set")

    base_url = os.environ.get("COINGECKO_BASE_URL", "").strip() or DEFAULT_BASE_URL

    return MarketSettings(
        api_key=api_key,
        base_url=base_url,
        poll_interval=_float_env("COINGECKO_POLL_INTERVAL", 60.0),
        rate_limit_cooldown=_float_env("COINGECKO_RATE_LIMIT_COOLDOWN", 60.0),
    )


def create_fetcher(settings: MarketSettings | None = None) -> CoinGeckoClient:
    """Create the CoinGecko client. Loads settings from the environment if none given."""
    settings = settings or load_settings()
    logger.info("Market data source: CoinGecko API at %s", settings.base_url)
    return CoinGeckoClient(api_key=settings.api_key, base_url=settings.base_url)
