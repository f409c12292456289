"""Server-side market queries (coin details, OHLC, trending, search, pools).

These back the non-streaming pages. Details, OHLC and markets raise
CoinGeckoError; pools, search and trending log the error and return an
empty result.
"""

from __future__ import annotations

import logging
from typing import Any

from .exceptions import CoinGeckoError, MalformedPayloadError
from .interface import Fetcher
from .models import PoolData, SearchCoin, TrendingCoin

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10
TRENDING_CACHE_SECONDS = 300


async def get_coin_details(fetcher: Fetcher, coin_id: str) -> dict[str, Any]:
    return await fetcher.fetch_json(f"coins/{coin_id}", {"dex_pair_format": "symbol"})


async def get_coin_ohlc(
    fetcher: Fetcher,
    coin_id: str,
    days: int | str = 1,
    vs_currency: str = "usd",
) -> list[list[float]]:
    """Candles for the overview chart: [[timestamp_ms, open, high, low, close], ...]."""
    return await fetcher.fetch_json(
        f"coins/{coin_id}/ohlc",
        {"vs_currency": vs_currency, "days": days, "precision": "full"},
    )


async def get_markets(
    fetcher: Fetcher,
    ids: list[str] | None = None,
    vs_currency: str = "usd",
    per_page: int = 100,
    page: int = 1,
) -> list[dict[str, Any]]:
    return await fetcher.fetch_json(
        "coins/markets",
        {
            "vs_currency": vs_currency,
            "ids": ",".join(ids) if ids else None,
            "order": "market_cap_desc",
            "per_page": per_page,
            "page": page,
            "sparkline": False,
        },
    )


def _pool_from_entry(entry: Any) -> PoolData:
    if not isinstance(entry, dict):
        return PoolData()
    attributes = entry.get("attributes")
    if not isinstance(attributes, dict):
        attributes = {}
    pool_id = str(entry.get("id") or "")
    address = str(attributes.get("address") or "")
    # Onchain ids look like "eth_0xabc..."; the prefix is the network
    network = pool_id.split("_", 1)[0] if "_" in pool_id else ""
    return PoolData(
        id=pool_id,
        address=address,
        name=str(attributes.get("name") or ""),
        network=network,
    )


async def get_pools(
    fetcher: Fetcher,
    coin_id: str,
    network: str | None = None,
    contract_address: str | None = None,
) -> PoolData:
    """First DEX pool for a coin, or an empty PoolData if none is found or the call fails.

    With both network and contract address the token's own pool list is used;
    otherwise the pool search is queried by coin id.
    """
    if network and contract_address:
        endpoint, params = f"onchain/networks/{network}/tokens/{contract_address}/pools", None
    else:
        endpoint, params = "onchain/search/pools", {"query": coin_id}

    try:
        payload = await fetcher.fetch_json(endpoint, params)
    except CoinGeckoError as e:
        logger.warning("Pool lookup failed for %s: %s", coin_id, e)
        return PoolData()

    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list) or not data:
        return PoolData()
    return _pool_from_entry(data[0])


def _field(payload: Any, key: str) -> Any:
    return payload.get(key) if isinstance(payload, dict) else None


def _entries(value: Any, source: str) -> list[dict[str, Any]]:
    """Dict entries of a JSON list, skipping anything else. A non-list is malformed."""
    if value is None:
        return []
    if not isinstance(value, list):
        raise MalformedPayloadError(f"Expected a list from {source}, got {type(value).__name__}")
    return [entry for entry in value if isinstance(entry, dict)]


def _number(value: Any, default: float = 0.0) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return float(value)


async def search_coins(fetcher: Fetcher, query: str) -> list[SearchCoin]:
    """Search by name/symbol, then enrich the top hits with 24h change from /coins/markets."""
    try:
        search_data = await fetcher.fetch_json("search", {"query": query})
        coins = [
            coin
            for coin in _entries(_field(search_data, "coins"), "search")[:SEARCH_LIMIT]
            if isinstance(coin.get("id"), str) and coin["id"]
        ]
        if not coins:
            return []

        market_data = await get_markets(fetcher, ids=[coin["id"] for coin in coins], per_page=250)
        rows = _entries(market_data, "coins/markets")
    except CoinGeckoError as e:
        logger.error("Search error: %s", e)
        return []

    changes = {
        row["id"]: _number(row.get("price_change_percentage_24h"))
        for row in rows
        if isinstance(row.get("id"), str)
    }
    return [
        SearchCoin(
            id=coin["id"],
            name=str(coin.get("name") or ""),
            symbol=str(coin.get("symbol") or ""),
            thumb=coin.get("thumb"),
            price_change_percentage_24h=changes.get(coin["id"], 0.0),
        )
        for coin in coins
    ]


async def get_trending_coins(fetcher: Fetcher) -> list[TrendingCoin]:
    try:
        payload = await fetcher.fetch_json("search/trending", None, TRENDING_CACHE_SECONDS)
        entries = _entries(_field(payload, "coins"), "search/trending")
    except CoinGeckoError as e:
        logger.error("Trending coins error: %s", e)
        return []

    result: list[TrendingCoin] = []
    for coin in entries:
        item = coin.get("item", coin)
        if not isinstance(item, dict):
            continue
        data = item.get("data")
        if not isinstance(data, dict):
            data = {}
        change = data.get("price_change_percentage_24h")
        if isinstance(change, dict):
            change = change.get("usd")
        price = data.get("price")
        result.append(
            TrendingCoin(
                id=str(item.get("id") or ""),
                name=str(item.get("name") or ""),
                symbol=str(item.get("symbol") or ""),
                thumb=item.get("thumb"),
                large=item.get("large"),
                price=_number(price) if price is not None else None,
                price_change_percentage_24h=_number(change),
            )
        )
    return result
