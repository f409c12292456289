"""Market data subsystem for CoinPulse.

Public API:
    WatchTarget         - What a live session observes (coin, optional pool)
    PriceSnapshot, Trade, Candle - Live feed models
    MarketSession       - Polling session that simulates a live feed
    Fetcher             - Abstract interface for upstream JSON fetchers
    CoinGeckoClient     - httpx-backed Fetcher for the CoinGecko API
    create_fetcher      - Factory that reads settings and builds the client
    parse_pool_id       - "network:address" / "network_address" parser
    create_stream_router - FastAPI router factory for the SSE endpoint
    create_market_router - FastAPI router factory for coin data endpoints
"""

from .coingecko_client import CoinGeckoClient
from .factory import create_fetcher
from .interface import Fetcher
from .models import Candle, PriceSnapshot, Trade, WatchTarget
from .pools import parse_pool_id
from .routes import create_market_router
from .session import MarketSession
from .stream import create_stream_router

__all__ = [
    "WatchTarget",
    "PriceSnapshot",
    "Trade",
    "Candle",
    "MarketSession",
    "Fetcher",
    "CoinGeckoClient",
    "create_fetcher",
    "parse_pool_id",
    "create_stream_router",
    "create_market_router",
]
