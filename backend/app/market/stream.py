"""SSE streaming endpoint for simulated live coin updates."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import AsyncGenerator
from typing import Literal

from fastapi import APIRouter, Request
from fastapi.responses import StreamingResponse

from .interface import Fetcher
from .models import WatchTarget
from .session import DEFAULT_POLL_INTERVAL, RATE_LIMIT_COOLDOWN, MarketSession

logger = logging.getLogger(__name__)


def create_stream_router(
    fetcher: Fetcher,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
    rate_limit_cooldown: float = RATE_LIMIT_COOLDOWN,
    emit_interval: float = 0.5,
) -> APIRouter:
    """Create the SSE streaming router with a reference to the shared fetcher.

    Each connection gets its own MarketSession; nothing is shared between
    clients except the fetcher's HTTP connection pool.
    """
    router = APIRouter(prefix="/api/stream", tags=["streaming"])

    @router.get("/coins/{coin_id}")
    async def stream_coin(
        coin_id: str,
        request: Request,
        pool_id: str | None = None,
        live_interval: Literal["1s", "1m"] | None = None,
    ) -> StreamingResponse:
        """SSE endpoint for one coin (and optionally one DEX pool).

        Emits the whole session snapshot whenever it changes:

            data: {"price": {...}, "trades": [...], "ohlcv": [...], "isConnected": true, ...}

        Includes a retry directive so the browser auto-reconnects on
        disconnection (EventSource built-in behavior).
        """
        session = MarketSession(
            fetcher,
            poll_interval=poll_interval,
            rate_limit_cooldown=rate_limit_cooldown,
        )
        target = WatchTarget(coin_id=coin_id, pool_id=pool_id or None, live_interval=live_interval)
        return StreamingResponse(
            _generate_events(session, target, request, emit_interval),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache",
                "Connection": "keep-alive",
                "X-Accel-Buffering": "no",  # Disable nginx buffering if proxied
            },
        )

    return router


async def _generate_events(
    session: MarketSession,
    target: WatchTarget,
    request: Request,
    interval: float = 0.5,
) -> AsyncGenerator[str, None]:
    """Async generator that yields SSE-formatted session snapshots.

    Checks the session version every `interval` seconds and only sends when
    it moved. Stops the session when the client disconnects.
    """
    yield "retry: 1000\n\n"

    last_version = -1
    client_ip = request.client.host if request.client else "unknown"
    logger.info("SSE client connected: %s (coin=%s)", client_ip, target.coin_id)

    await session.observe(target)
    try:
        while True:
            if await request.is_disconnected():
                logger.info("SSE client disconnected: %s", client_ip)
                break

            current_version = session.version
            if current_version != last_version:
                last_version = current_version
                payload = json.dumps(session.snapshot().to_dict())
                yield f"data: {payload}\n\n"

            await asyncio.sleep(interval)
    except asyncio.CancelledError:
        logger.info("SSE stream cancelled for: %s", client_ip)
    finally:
        await session.stop()
