"""Pure mappers from CoinGecko response bodies to internal models.

None of these functions raise on unexpected input: they return None when the
payload carries nothing usable, and the caller decides whether to log it.

Upstream shapes:

    /simple/price
        {"bitcoin": {"usd": 65000, "usd_24h_change": 2.3, "usd_market_cap": ...,
                     "usd_24h_vol": ..., "last_updated_at": 1700000000}}

    /onchain/networks/{network}/pools/{address}/ohlcv/{timeframe}
        {"data": {"attributes": {"ohlcv_list": [[ts_sec, o, h, l, c, v], ...]}}}

    /onchain/networks/{network}/pools/{address}/trades
        {"data": [{"attributes": {"price_from_in_usd": "1.0", "volume_in_usd": "5.2",
                                  "block_timestamp": "2024-04-08T16:52:35Z",
                                  "kind": "buy", "from_token_amount": "5.2"}}, ...]}
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from .models import Candle, PriceSnapshot, Trade, now_ms

MAX_TRADES = 7


def _number(value: Any) -> float | None:
    """Coerce an upstream numeric (int, float or numeric string) to float."""
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def transform_price(coin_id: str, payload: Any, now: int | None = None) -> PriceSnapshot | None:
    """Map a simple-price body to a PriceSnapshot, or None if the coin is absent."""
    if not isinstance(payload, dict):
        return None
    coin_data = payload.get(coin_id)
    if not isinstance(coin_data, dict):
        return None

    price = _number(coin_data.get("usd"))
    if price is None:
        return None

    updated_at = _number(coin_data.get("last_updated_at"))
    if updated_at:
        timestamp = int(updated_at * 1000)
    else:
        timestamp = now if now is not None else now_ms()

    return PriceSnapshot(
        coin=coin_id,
        price=price,
        change24h=_number(coin_data.get("usd_24h_change")) or 0.0,
        market_cap=_number(coin_data.get("usd_market_cap")),
        volume24h=_number(coin_data.get("usd_24h_vol")),
        timestamp=timestamp,
    )


def transform_candle(payload: Any) -> Candle | None:
    """Take the first (latest) OHLCV row, drop volume, convert seconds to ms."""
    try:
        ohlcv_list = payload["data"]["attributes"]["ohlcv_list"]
    except (KeyError, TypeError):
        return None
    if not ohlcv_list:
        return None

    row = ohlcv_list[0]
    if not isinstance(row, (list, tuple)) or len(row) < 5:
        return None
    values = [_number(v) for v in row[:5]]
    if any(v is None for v in values):
        return None

    timestamp, open_, high, low, close = values
    return (timestamp * 1000, open_, high, low, close)


def _parse_block_timestamp(value: Any) -> int | None:
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp() * 1000)


def _transform_trade(entry: Any) -> Trade | None:
    attributes = entry.get("attributes") if isinstance(entry, dict) else None
    if not isinstance(attributes, dict):
        return None

    kind = attributes.get("kind")
    price = _number(attributes.get("price_from_in_usd"))
    value = _number(attributes.get("volume_in_usd"))
    amount = _number(attributes.get("from_token_amount"))
    timestamp = _parse_block_timestamp(attributes.get("block_timestamp"))

    if kind not in ("buy", "sell") or None in (price, value, amount, timestamp):
        return None
    return Trade(price=price, value=value, timestamp=timestamp, type=kind, amount=amount)


def transform_trades(payload: Any) -> list[Trade] | None:
    """Map the first MAX_TRADES upstream trades, keeping upstream order.

    Returns None when the body or any of the kept entries is malformed, so a
    half-parsed batch never replaces a good one.
    """
    data = payload.get("data") if isinstance(payload, dict) else None
    if not isinstance(data, list):
        return None

    trades: list[Trade] = []
    for entry in data[:MAX_TRADES]:
        trade = _transform_trade(entry)
        if trade is None:
            return None
        trades.append(trade)
    return trades
