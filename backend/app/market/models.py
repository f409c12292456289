"""Data models for market data."""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Literal

LiveInterval = Literal["1s", "1m"]
TradeKind = Literal["buy", "sell"]

# (timestamp_ms, open, high, low, close)
Candle = tuple[float, float, float, float, float]


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(frozen=True, slots=True)
class WatchTarget:
    """What a session observes: a coin, optionally one DEX pool for candles and trades."""

    coin_id: str
    pool_id: str | None = None
    live_interval: LiveInterval | None = None

    def same_entity(self, other: WatchTarget | None) -> bool:
        """True if `other` watches the same coin and pool (interval ignored)."""
        if other is None:
            return False
        return self.coin_id == other.coin_id and self.pool_id == other.pool_id


@dataclass(frozen=True, slots=True)
class PoolRef:
    """A parsed pool identifier."""

    network: str
    pool_address: str


@dataclass(frozen=True, slots=True)
class PriceSnapshot:
    """Latest simple-price quote for a coin, in USD."""

    coin: str
    price: float
    change24h: float = 0.0
    market_cap: float | None = None
    volume24h: float | None = None
    timestamp: int = field(default_factory=now_ms)  # epoch ms

    def to_dict(self) -> dict:
        return {
            "coin": self.coin,
            "price": self.price,
            "change24h": self.change24h,
            "market_cap": self.market_cap,
            "volume24h": self.volume24h,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True, slots=True)
class Trade:
    """One DEX trade from the onchain trades endpoint."""

    price: float
    value: float
    timestamp: int  # epoch ms
    type: TradeKind
    amount: float

    def to_dict(self) -> dict:
        return {
            "price": self.price,
            "value": self.value,
            "timestamp": self.timestamp,
            "type": self.type,
            "amount": self.amount,
        }


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    """Point-in-time view of a session, handed to readers (SSE, UI)."""

    price: PriceSnapshot | None
    trades: tuple[Trade, ...]
    ohlcv: Candle | None
    is_connected: bool
    version: int = 0

    def to_dict(self) -> dict:
        """Serialize for JSON / SSE transmission."""
        return {
            "price": self.price.to_dict() if self.price else None,
            "trades": [trade.to_dict() for trade in self.trades],
            "ohlcv": list(self.ohlcv) if self.ohlcv else None,
            "isConnected": self.is_connected,
            "version": self.version,
        }


@dataclass(frozen=True, slots=True)
class PoolData:
    """First matching pool for a coin. Empty strings mean 'not found'."""

    id: str = ""
    address: str = ""
    name: str = ""
    network: str = ""

    @property
    def pool_id(self) -> str | None:
        """Identifier usable as WatchTarget.pool_id, or None for the empty fallback."""
        if not self.network or not self.address:
            return None
        return f"{self.network}_{self.address}"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "address": self.address,
            "name": self.name,
            "network": self.network,
            "pool_id": self.pool_id,
        }


@dataclass(frozen=True, slots=True)
class SearchCoin:
    id: str
    name: str
    symbol: str
    thumb: str | None = None
    price_change_percentage_24h: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "thumb": self.thumb,
            "data": {"price_change_percentage_24h": self.price_change_percentage_24h},
        }


@dataclass(frozen=True, slots=True)
class TrendingCoin:
    id: str
    name: str
    symbol: str
    thumb: str | None = None
    large: str | None = None
    price: float | None = None
    price_change_percentage_24h: float = 0.0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "symbol": self.symbol,
            "thumb": self.thumb,
            "large": self.large,
            "price": self.price,
            "price_change_percentage_24h": self.price_change_percentage_24h,
        }
