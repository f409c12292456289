"""Tests for the coin data routes and app wiring."""

import os
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient

from app.main import create_app
from app.market.exceptions import ConfigurationError, RateLimitError, UpstreamHTTPError


@pytest.fixture
def client(fetcher):
    return TestClient(create_app(fetcher=fetcher))


class TestCoinRoutes:
    """HTTP tests for /api/coins."""

    def test_health(self, client):
        assert client.get("/api/health").json() == {"status": "ok"}

    def test_trending_limited(self, client, fetcher):
        fetcher.respond(
            "search/trending",
            {"coins": [{"item": {"id": f"c{i}", "name": f"C{i}", "symbol": "C"}} for i in range(10)]},
        )

        response = client.get("/api/coins/trending")

        assert response.status_code == 200
        assert [c["id"] for c in response.json()] == ["c0", "c1", "c2", "c3", "c4", "c5"]

    def test_search_requires_query(self, client):
        assert client.get("/api/coins/search").status_code == 422

    def test_search(self, client, fetcher):
        fetcher.respond("search", {"coins": [{"id": "bitcoin", "name": "Bitcoin", "symbol": "btc"}]})
        fetcher.respond("coins/markets", [{"id": "bitcoin", "price_change_percentage_24h": -2.0}])

        response = client.get("/api/coins/search", params={"q": "bit"})

        assert response.json()[0]["data"]["price_change_percentage_24h"] == -2.0

    def test_coin_details(self, client, fetcher):
        fetcher.respond("coins/bitcoin", {"id": "bitcoin", "market_data": {"current_price": {"usd": 1}}})

        response = client.get("/api/coins/bitcoin")

        assert response.status_code == 200
        assert response.json()["id"] == "bitcoin"

    def test_coin_details_upstream_error(self, client, fetcher):
        fetcher.respond("coins/bitcoin", UpstreamHTTPError(500, "boom"))

        response = client.get("/api/coins/bitcoin")

        assert response.status_code == 502

    def test_coin_details_rate_limited(self, client, fetcher):
        fetcher.respond("coins/bitcoin", RateLimitError("429"))

        assert client.get("/api/coins/bitcoin").status_code == 429

    def test_coin_ohlc(self, client, fetcher):
        fetcher.respond("coins/bitcoin/ohlc", [[1700000000000, 1.0, 2.0, 0.5, 1.5]])

        response = client.get("/api/coins/bitcoin/ohlc", params={"days": "7"})

        assert response.json() == [[1700000000000, 1.0, 2.0, 0.5, 1.5]]
        assert fetcher.params_for("ohlc")["days"] == "7"

    def test_markets(self, client, fetcher):
        fetcher.respond("coins/markets", [{"id": "bitcoin"}])

        response = client.get("/api/coins/markets", params={"per_page": 5})

        assert response.json() == [{"id": "bitcoin"}]
        assert fetcher.params_for("coins/markets")["per_page"] == 5

    def test_pool(self, client, fetcher):
        fetcher.respond(
            "onchain/search/pools",
            {"data": [{"id": "eth_0xabc", "attributes": {"address": "0xabc", "name": "WBTC / USDC"}}]},
        )

        response = client.get("/api/coins/bitcoin/pool")

        assert response.json()["pool_id"] == "eth_0xabc"

    def test_pool_fallback(self, client, fetcher):
        fetcher.respond("onchain/search/pools", {"data": []})

        assert client.get("/api/coins/bitcoin/pool").json()["pool_id"] is None


class TestCreateApp:
    """Startup configuration."""

    def test_missing_api_key_fails_at_startup(self):
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ConfigurationError):
                create_app()

    def test_lifespan_closes_fetcher(self, fetcher):
        with TestClient(create_app(fetcher=fetcher)):
            assert fetcher.closed is False
        assert fetcher.closed is True

    def test_stream_route_registered(self, client):
        paths = {route.path for route in client.app.routes}
        assert "/api/stream/coins/{coin_id}" in paths
