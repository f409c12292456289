"""Abstract interface for upstream market data fetchers."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Mapping
from typing import Any

QueryValue = str | int | float | bool | None


class Fetcher(ABC):
    """Contract for anything that can GET JSON from the market data API.

    MarketSession and the server-side queries only ever talk to this
    interface, never to httpx directly.

    Lifecycle:
        fetcher = create_fetcher()
        data = await fetcher.fetch_json("simple/price", {"ids": "bitcoin", ...}, 0)
        # ... app shutting down ...
        await fetcher.aclose()
    """

    @abstractmethod
    async def fetch_json(
        self,
        endpoint: str,
        params: Mapping[str, QueryValue] | None = None,
        cache_seconds: int = 60,
    ) -> Any:
        """GET `endpoint` and return the parsed JSON body.

        Query values that are None or "" are left out of the URL.
        `cache_seconds` > 0 lets the implementation serve a cached body that
        is younger than that; 0 always hits the network.

        Raises RateLimitError on HTTP 429, UpstreamHTTPError on any other
        non-2xx status, UpstreamUnavailableError on transport failure and
        MalformedPayloadError when the body is not JSON.
        """

    @abstractmethod
    async def aclose(self) -> None:
        """Release network resources. Safe to call multiple times."""
