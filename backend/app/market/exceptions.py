"""Exceptions raised by the CoinGecko market data layer."""

from __future__ import annotations


class CoinGeckoError(Exception):
    """Base exception for all upstream market data errors."""


class RateLimitError(CoinGeckoError):
    """Raised when the upstream answers HTTP 429."""

    status_code = 429


class UpstreamHTTPError(CoinGeckoError):
    """Raised for any non-2xx response other than 429."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"API Error: {status_code}: {message}")
        self.status_code = status_code


class UpstreamUnavailableError(CoinGeckoError):
    """Raised when the upstream cannot be reached (DNS, connect, timeout)."""


class MalformedPayloadError(CoinGeckoError):
    """Raised when a response body does not have the expected shape."""


class InvalidPoolIdError(CoinGeckoError):
    """Raised when a pool identifier is not '<network>:<address>' or '<network>_<address>'."""


class ConfigurationError(Exception):
    """Raised at startup when required settings (API key, base URL) are missing."""
