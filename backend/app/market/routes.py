"""JSON endpoints for the server-rendered pages."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query

from . import queries
from .exceptions import CoinGeckoError, RateLimitError
from .interface import Fetcher

logger = logging.getLogger(__name__)


def _upstream_error(coin_id: str, e: CoinGeckoError) -> HTTPException:
    logger.error("Error fetching coin data for %s: %s", coin_id, e)
    if isinstance(e, RateLimitError):
        return HTTPException(status_code=429, detail="Upstream rate limit exceeded")
    return HTTPException(status_code=502, detail=str(e))


def create_market_router(fetcher: Fetcher) -> APIRouter:
    """Create the coin data router bound to the shared fetcher."""
    router = APIRouter(prefix="/api/coins", tags=["coins"])

    @router.get("/trending")
    async def trending(limit: int = Query(6, ge=1, le=50)) -> list[dict]:
        coins = await queries.get_trending_coins(fetcher)
        return [coin.to_dict() for coin in coins[:limit]]

    @router.get("/search")
    async def search(q: str = Query(..., min_length=1)) -> list[dict]:
        return [coin.to_dict() for coin in await queries.search_coins(fetcher, q)]

    @router.get("/markets")
    async def markets(
        per_page: int = Query(10, ge=1, le=250),
        page: int = Query(1, ge=1),
    ) -> list[dict]:
        try:
            return await queries.get_markets(fetcher, per_page=per_page, page=page)
        except CoinGeckoError as e:
            raise _upstream_error("markets", e) from e

    @router.get("/{coin_id}")
    async def coin_details(coin_id: str) -> dict:
        try:
            return await queries.get_coin_details(fetcher, coin_id)
        except CoinGeckoError as e:
            raise _upstream_error(coin_id, e) from e

    @router.get("/{coin_id}/ohlc")
    async def coin_ohlc(coin_id: str, days: str = "1") -> list[list[float]]:
        try:
            return await queries.get_coin_ohlc(fetcher, coin_id, days=days)
        except CoinGeckoError as e:
            raise _upstream_error(coin_id, e) from e

    @router.get("/{coin_id}/pool")
    async def coin_pool(
        coin_id: str,
        network: str | None = None,
        contract_address: str | None = None,
    ) -> dict:
        pool = await queries.get_pools(fetcher, coin_id, network, contract_address)
        return pool.to_dict()

    return router
