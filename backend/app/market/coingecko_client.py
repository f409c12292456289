"""CoinGecko REST API client."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .cache import ResponseCache
from .exceptions import (
    MalformedPayloadError,
    RateLimitError,
    UpstreamHTTPError,
    UpstreamUnavailableError,
)
from .interface import Fetcher, QueryValue

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.coingecko.com/api/v3"
API_KEY_HEADER = "x-cg-demo-api-key"


def build_query(params: Mapping[str, QueryValue] | None) -> dict[str, str]:
    """Drop None and empty-string values; render booleans the way the API expects."""
    query: dict[str, str] = {}
    for key, value in (params or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            query[key] = "true" if value else "false"
        else:
            query[key] = str(value)
    return query


class CoinGeckoClient(Fetcher):
    """Fetcher backed by the CoinGecko REST API over a shared httpx.AsyncClient.

    Rate limits (demo plan): ~30 calls/min. Most endpoints are cached
    upstream for 60s, which is why every poller in this package ticks once
    a minute.
    """

    def __init__(
        self,
        api_key: str | None,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 10.0,
        response_cache: ResponseCache | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._api_key = api_key
        self._base_url = base_url.rstrip("/")
        self._cache = response_cache if response_cache is not None else ResponseCache()

        headers = {"Accept": "application/json"}
        if api_key:
            headers[API_KEY_HEADER] = api_key
        self._client = httpx.AsyncClient(headers=headers, timeout=timeout, transport=transport)

    @property
    def base_url(self) -> str:
        return self._base_url

    def build_url(self, endpoint: str, params: Mapping[str, QueryValue] | None = None) -> httpx.URL:
        return httpx.URL(f"{self._base_url}/{endpoint.lstrip('/')}", params=build_query(params))

    async def fetch_json(
        self,
        endpoint: str,
        params: Mapping[str, QueryValue] | None = None,
        cache_seconds: int = 60,
    ) -> Any:
        url = self.build_url(endpoint, params)
        cache_key = str(url)

        if cache_seconds > 0:
            cached = self._cache.get(cache_key)
            if cached is not None:
                logger.debug("Cache hit: %s", url.path)
                return cached

        try:
            response = await self._client.get(url)
        except httpx.TransportError as e:
            raise UpstreamUnavailableError(f"Network error for {url.path}: {e}") from e

        if response.status_code == 429:
            raise RateLimitError(f"Rate limit exceeded for {url.path}")

        if not response.is_success:
            raise UpstreamHTTPError(response.status_code, self._error_message(response))

        try:
            payload = response.json()
        except ValueError as e:
            raise MalformedPayloadError(f"Invalid JSON from {url.path}: {e}") from e

        self._cache.put(cache_key, payload, cache_seconds)
        return payload

    async def aclose(self) -> None:
        self._cache.clear()
        if not self._client.is_closed:
            await self._client.aclose()

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        """Prefer the body's "error" field, fall back to the reason phrase."""
        try:
            body = response.json()
        except ValueError:
            body = {}
        if isinstance(body, dict):
            error = body.get("error")
            if isinstance(error, dict):
                error = error.get("message")
            if error:
                return str(error)
        return response.reason_phrase or "Unknown error"
