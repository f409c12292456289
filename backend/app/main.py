"""FastAPI application factory for the CoinPulse backend."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.market import create_market_router, create_stream_router
from app.market.factory import MarketSettings, create_fetcher, load_settings
from app.market.interface import Fetcher

logger = logging.getLogger(__name__)


def create_app(fetcher: Fetcher | None = None, settings: MarketSettings | None = None) -> FastAPI:
    """Build the app. Settings are read here, so a missing API key fails before serving.

    Passing a fetcher (tests) skips the environment entirely.
    """
    if fetcher is None:
        settings = settings or load_settings()
        fetcher = create_fetcher(settings)

    poll_interval = settings.poll_interval if settings else 60.0
    cooldown = settings.rate_limit_cooldown if settings else 60.0

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        await fetcher.aclose()
        logger.info("Market data fetcher closed")

    app = FastAPI(title="CoinPulse", lifespan=lifespan)
    app.state.fetcher = fetcher
    app.include_router(create_market_router(fetcher))
    app.include_router(
        create_stream_router(fetcher, poll_interval=poll_interval, rate_limit_cooldown=cooldown)
    )

    @app.get("/api/health")
    async def healthcheck() -> dict:
        return {"status": "ok"}

    return app
