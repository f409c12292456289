"""Polling session that simulates a live feed for one coin and pool.

CoinGecko's demo plan has no streaming endpoint, so a MarketSession keeps
three independent pollers (price, candle, trades) on their own timers and
merges whatever they return into one snapshot. Readers poll the snapshot
(or watch `version`); there is no event stream and no ordering guarantee
between feeds.

Lifecycle:
    session = MarketSession(fetcher)
    await session.observe(WatchTarget("bitcoin", pool_id="eth_0x..."))
    # ... read session.price / trades / ohlcv / is_connected ...
    await session.observe(WatchTarget("ethereum"))   # resets and restarts
    await session.stop()
"""

from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Awaitable, Callable, Mapping
from enum import Enum
from typing import Any

from .exceptions import CoinGeckoError, InvalidPoolIdError, RateLimitError
from .interface import Fetcher, QueryValue
from .models import Candle, LiveInterval, PoolRef, PriceSnapshot, SessionSnapshot, Trade, WatchTarget
from .pools import parse_pool_id
from .transforms import transform_candle, transform_price, transform_trades

logger = logging.getLogger(__name__)

# Every feed is tuned to the upstream cache lifetime (60s).
DEFAULT_POLL_INTERVAL = 60.0
RATE_LIMIT_COOLDOWN = 60.0


class FeedKind(str, Enum):
    PRICE = "price"
    CANDLE = "candle"
    TRADES = "trades"


class FeedState(str, Enum):
    IDLE = "idle"
    POLLING = "polling"
    RATE_LIMITED = "rate_limited"


def ohlcv_timeframe(live_interval: LiveInterval | None) -> tuple[str, str]:
    """Map a live interval to (timeframe, aggregate) for the onchain OHLCV endpoint.

    The demo API has no second granularity, so "1s" falls back to 1 minute too.
    """
    return "minute", "1"


class Feed:
    """Timer and rate-limit bookkeeping for one feed.

    Transitions:
        IDLE -> POLLING            start()
        POLLING -> RATE_LIMITED    enter_cooldown() after a 429
        RATE_LIMITED -> POLLING    first tick after the cooldown deadline
        any -> IDLE                stop()

    Each tick runs as its own task so a slow response never delays the next
    tick; overlapping ticks are allowed.
    """

    def __init__(
        self,
        kind: FeedKind,
        interval: float,
        cooldown: float,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.kind = kind
        self.interval = interval
        self.cooldown = cooldown
        self._clock = clock
        self.state = FeedState.IDLE
        self.cooldown_until: float | None = None
        self._timer: asyncio.Task | None = None
        self._in_flight: set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._timer.done()

    @property
    def rate_limited(self) -> bool:
        return self.state is FeedState.RATE_LIMITED

    def start(self, tick: Callable[[], Awaitable[None]]) -> None:
        if self._timer and not self._timer.done():
            self._timer.cancel()
        self.state = FeedState.POLLING
        self.cooldown_until = None
        self._timer = asyncio.create_task(self._run_timer(tick), name=f"{self.kind.value}-poller")

    async def stop(self) -> None:
        """Cancel the timer. In-flight ticks are left to finish; the session drops their results."""
        timer, self._timer = self._timer, None
        if timer and not timer.done():
            timer.cancel()
            try:
                await timer
            except asyncio.CancelledError:
                pass
        self.state = FeedState.IDLE
        self.cooldown_until = None

    def enter_cooldown(self) -> None:
        self.state = FeedState.RATE_LIMITED
        self.cooldown_until = self._clock() + self.cooldown
        logger.warning("Rate limited on %s. Pausing for %.0fs", self.kind.value, self.cooldown)

    def ready(self) -> bool:
        """Whether a tick may fetch now. Ends an expired cooldown as a side effect."""
        if self.state is FeedState.RATE_LIMITED:
            if self.cooldown_until is not None and self._clock() < self.cooldown_until:
                return False
            self.state = FeedState.POLLING
            self.cooldown_until = None
            logger.info("Cooldown over for %s, resuming", self.kind.value)
        return self.state is FeedState.POLLING

    async def _run_timer(self, tick: Callable[[], Awaitable[None]]) -> None:
        """Fire immediately, then every `interval` seconds."""
        while True:
            if self.ready():
                task = asyncio.create_task(self._guarded(tick), name=f"{self.kind.value}-tick")
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
            else:
                logger.debug("Skipping %s tick during cooldown", self.kind.value)
            await asyncio.sleep(self.interval)

    async def _guarded(self, tick: Callable[[], Awaitable[None]]) -> None:
        try:
            await tick()
        except Exception:
            logger.exception("Unexpected error in %s tick", self.kind.value)


class MarketSession:
    """Observable polling session for one WatchTarget.

    State is owned by the session and only mutated on the event loop.
    observe() and stop() run one at a time under `_lifecycle`, so overlapping
    calls settle on whichever ran last. Results are applied last-write-wins;
    a response that arrives after stop() or after a target change is discarded.
    """

    def __init__(
        self,
        fetcher: Fetcher,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        rate_limit_cooldown: float = RATE_LIMIT_COOLDOWN,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fetcher = fetcher
        self._feeds = {
            kind: Feed(kind, interval=poll_interval, cooldown=rate_limit_cooldown, clock=clock)
            for kind in FeedKind
        }
        self._target: WatchTarget | None = None
        self._lifecycle = asyncio.Lock()
        self._generation = 0  # Bumped on every (re)start and stop
        self._version = 0  # Bumped on every state change
        self._price: PriceSnapshot | None = None
        self._trades: tuple[Trade, ...] = ()
        self._ohlcv: Candle | None = None
        self._is_connected = False

    # --- Observable state ---

    @property
    def target(self) -> WatchTarget | None:
        return self._target

    @property
    def price(self) -> PriceSnapshot | None:
        return self._price

    @property
    def trades(self) -> list[Trade]:
        return list(self._trades)

    @property
    def ohlcv(self) -> Candle | None:
        return self._ohlcv

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def version(self) -> int:
        """Monotonic change counter. Useful for SSE change detection."""
        return self._version

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            price=self._price,
            trades=self._trades,
            ohlcv=self._ohlcv,
            is_connected=self._is_connected,
            version=self._version,
        )

    def feed_state(self, kind: FeedKind) -> FeedState:
        return self._feeds[kind].state

    def feed(self, kind: FeedKind) -> Feed:
        return self._feeds[kind]

    # --- Lifecycle ---

    async def observe(self, target: WatchTarget) -> MarketSession:
        """Start (or keep) polling for `target` and return self.

        Same target as before: no-op, no duplicate timers.
        Different coin or pool: stop, reset state, restart.
        Only live_interval changed: restart timers, keep state.
        Empty coin id: behaves like stop().
        """
        async with self._lifecycle:
            if not target.coin_id:
                await self._teardown()
                return self

            if target == self._target and self._feeds[FeedKind.PRICE].running:
                return self

            entity_changed = not target.same_entity(self._target)
            self._generation += 1
            generation = self._generation
            await self._stop_feeds()
            if entity_changed:
                self._reset()
            self._target = target

            self._feeds[FeedKind.PRICE].start(lambda: self._poll_price(generation, target))
            if target.pool_id:
                self._feeds[FeedKind.CANDLE].start(lambda: self._poll_candle(generation, target))
                self._feeds[FeedKind.TRADES].start(lambda: self._poll_trades(generation, target))

        logger.info(
            "Market session started: coin=%s pool=%s interval=%.1fs",
            target.coin_id,
            target.pool_id or "-",
            self._feeds[FeedKind.PRICE].interval,
        )
        return self

    async def stop(self) -> None:
        """Cancel all timers and clear state. Safe to call multiple times."""
        async with self._lifecycle:
            await self._teardown()

    # --- Internal ---

    async def _teardown(self) -> None:
        was_active = self._target is not None
        self._generation += 1
        await self._stop_feeds()
        self._reset()
        self._target = None
        if was_active:
            logger.info("Market session stopped")

    async def _stop_feeds(self) -> None:
        for feed in self._feeds.values():
            await feed.stop()

    def _reset(self) -> None:
        self._price = None
        self._trades = ()
        self._ohlcv = None
        self._is_connected = False
        self._version += 1

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _pool_ref(self, kind: FeedKind, target: WatchTarget) -> PoolRef | None:
        try:
            return parse_pool_id(target.pool_id)
        except InvalidPoolIdError as e:
            logger.warning("Skipping %s fetch: %s", kind.value, e)
            return None

    async def _request(
        self,
        kind: FeedKind,
        generation: int,
        endpoint: str,
        params: Mapping[str, QueryValue],
    ) -> Any | None:
        """Fetch one payload for a feed. Returns None if the cycle should be skipped."""
        try:
            payload = await self._fetcher.fetch_json(endpoint, params, cache_seconds=0)
        except RateLimitError:
            if self._is_current(generation):
                self._feeds[kind].enter_cooldown()
            return None
        except CoinGeckoError as e:
            if self._is_current(generation):
                logger.warning("%s fetch failed: %s", kind.value.capitalize(), e)
            return None

        if not self._is_current(generation):
            logger.debug("Dropping stale %s response", kind.value)
            return None
        return payload

    async def _poll_price(self, generation: int, target: WatchTarget) -> None:
        coin_id = target.coin_id
        payload = await self._request(
            FeedKind.PRICE,
            generation,
            "simple/price",
            {
                "ids": coin_id,
                "vs_currencies": "usd",
                "include_24hr_change": True,
                "include_market_cap": True,
                "include_24hr_vol": True,
                "include_last_updated_at": True,
            },
        )
        if payload is None:
            return

        snapshot = transform_price(coin_id, payload)
        if snapshot is None:
            logger.warning("Price payload has no usable entry for %s", coin_id)
            return

        self._price = snapshot
        self._is_connected = True
        self._version += 1

    async def _poll_candle(self, generation: int, target: WatchTarget) -> None:
        pool = self._pool_ref(FeedKind.CANDLE, target)
        if pool is None:
            return

        timeframe, aggregate = ohlcv_timeframe(target.live_interval)
        payload = await self._request(
            FeedKind.CANDLE,
            generation,
            f"onchain/networks/{pool.network}/pools/{pool.pool_address}/ohlcv/{timeframe}",
            {"aggregate": aggregate, "currency": "usd", "limit": 1},
        )
        if payload is None:
            return

        candle = transform_candle(payload)
        if candle is None:
            logger.debug("No OHLCV candle in payload for %s", pool.pool_address)
            return

        self._ohlcv = candle
        self._version += 1

    async def _poll_trades(self, generation: int, target: WatchTarget) -> None:
        pool = self._pool_ref(FeedKind.TRADES, target)
        if pool is None:
            return

        payload = await self._request(
            FeedKind.TRADES,
            generation,
            f"onchain/networks/{pool.network}/pools/{pool.pool_address}/trades",
            {"trade_volume_in_usd_greater_than": 0},
        )
        if payload is None:
            return

        trades = transform_trades(payload)
        if trades is None:
            logger.warning("Malformed trades payload for %s", pool.pool_address)
            return
        if not trades:
            return

        # Replace, never append.
        self._trades = tuple(trades)
        self._version += 1
