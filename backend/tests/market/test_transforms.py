"""Tests for the response transformers."""

from datetime import datetime, timezone

from app.market.transforms import MAX_TRADES, transform_candle, transform_price, transform_trades
from market_fakes import ohlcv_payload, trade_entry, trades_payload


class TestTransformPrice:
    """Unit tests for transform_price."""

    def test_basic_payload(self):
        snap = transform_price("bitcoin", {"bitcoin": {"usd": 65000, "usd_24h_change": 2.3}}, now=123)
        assert snap.coin == "bitcoin"
        assert snap.price == 65000
        assert snap.change24h == 2.3
        assert snap.timestamp == 123

    def test_full_payload(self):
        payload = {
            "ethereum": {
                "usd": 3200.5,
                "usd_24h_change": -1.2,
                "usd_market_cap": 384000000000,
                "usd_24h_vol": 15000000000,
                "last_updated_at": 1700000000,
            }
        }
        snap = transform_price("ethereum", payload)
        assert snap.market_cap == 384000000000
        assert snap.volume24h == 15000000000
        assert snap.timestamp == 1700000000000  # Seconds to ms

    def test_missing_change_defaults_to_zero(self):
        snap = transform_price("bitcoin", {"bitcoin": {"usd": 1}})
        assert snap.change24h == 0.0
        assert snap.market_cap is None
        assert snap.volume24h is None

    def test_missing_coin_returns_none(self):
        assert transform_price("bitcoin", {"ethereum": {"usd": 1}}) is None
        assert transform_price("bitcoin", {}) is None

    def test_non_dict_payload_returns_none(self):
        assert transform_price("bitcoin", None) is None
        assert transform_price("bitcoin", []) is None

    def test_missing_usd_returns_none(self):
        assert transform_price("bitcoin", {"bitcoin": {"usd_24h_change": 1.0}}) is None


class TestTransformCandle:
    """Unit tests for transform_candle."""

    def test_drops_volume_and_converts_to_ms(self):
        candle = transform_candle(ohlcv_payload([1700000000, 100, 110, 95, 105, 999]))
        assert candle == (1700000000000, 100, 110, 95, 105)
        assert len(candle) == 5

    def test_takes_first_row(self):
        candle = transform_candle(
            ohlcv_payload([1700000060, 2, 2, 2, 2, 1], [1700000000, 1, 1, 1, 1, 1])
        )
        assert candle[0] == 1700000060000

    def test_empty_list(self):
        assert transform_candle(ohlcv_payload()) is None

    def test_missing_keys(self):
        assert transform_candle({}) is None
        assert transform_candle({"data": {}}) is None
        assert transform_candle(None) is None

    def test_short_row(self):
        assert transform_candle(ohlcv_payload([1700000000, 1, 2])) is None

    def test_non_numeric_row(self):
        assert transform_candle(ohlcv_payload([1700000000, "x", 2, 3, 4, 5])) is None


class TestTransformTrades:
    """Unit tests for transform_trades."""

    def test_parses_string_fields(self):
        trades = transform_trades({"data": [trade_entry(price="101.25", kind="sell", value="50.5", amount="0.5")]})
        assert len(trades) == 1
        trade = trades[0]
        assert trade.price == 101.25
        assert trade.value == 50.5
        assert trade.amount == 0.5
        assert trade.type == "sell"
        expected_ts = int(datetime(2024, 4, 8, 16, 52, 35, tzinfo=timezone.utc).timestamp() * 1000)
        assert trade.timestamp == expected_ts

    def test_capped_at_seven_preserving_order(self):
        trades = transform_trades(trades_payload(12))
        assert len(trades) == MAX_TRADES == 7
        assert [t.price for t in trades] == [0.0, 1.0, 2.0, 3.0, 4.0, 5.0, 6.0]

    def test_empty_list(self):
        assert transform_trades({"data": []}) == []

    def test_malformed_body(self):
        assert transform_trades({}) is None
        assert transform_trades({"data": {}}) is None
        assert transform_trades(None) is None

    def test_malformed_entry_rejects_batch(self):
        payload = {"data": [trade_entry(), trade_entry(price="not-a-number")]}
        assert transform_trades(payload) is None

    def test_unknown_kind_rejects_batch(self):
        assert transform_trades({"data": [trade_entry(kind="swap")]}) is None

    def test_malformed_entry_beyond_cap_is_ignored(self):
        payload = trades_payload(7)
        payload["data"].append({"attributes": {}})
        assert len(transform_trades(payload)) == 7
