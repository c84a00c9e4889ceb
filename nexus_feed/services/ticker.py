"""
ticker.py — Periodic refresher for the market price strip.

Hold-last-good: a failed refresh leaves the previously published prices
untouched. The feed differs here: an empty feed refresh may clear the
snapshot.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Optional

from nexus_feed.core.config import settings
from nexus_feed.models.feed import CryptoPrice
from nexus_feed.sources.coingecko_adapter import CoinGeckoPriceAdapter

logger = logging.getLogger(__name__)


class MarketTickerRefresher:
    def __init__(
        self,
        adapter: Optional[CoinGeckoPriceAdapter] = None,
        interval: Optional[float] = None,
    ) -> None:
        self.adapter = adapter or CoinGeckoPriceAdapter()
        self.interval = interval if interval is not None else settings.market_refresh_interval_seconds
        self._prices: list[CryptoPrice] = []
        self._timer: Optional[asyncio.Task] = None

    @property
    def prices(self) -> list[CryptoPrice]:
        return list(self._prices)

    async def refresh(self) -> list[CryptoPrice]:
        """Fetch new prices; on any failure return (and keep) the previous list."""
        try:
            fresh = await self.adapter.fetch_prices()
        except Exception as exc:
            logger.warning("Price refresh failed, keeping %d prior quotes: %s", len(self._prices), exc)
            return self.prices

        self._prices = fresh
        return self.prices

    async def start(self) -> None:
        await self.refresh()
        self._timer = asyncio.create_task(self._tick_loop(), name="market-ticker-timer")

    async def stop(self) -> None:
        if self._timer is None:
            return
        self._timer.cancel()
        try:
            await self._timer
        except asyncio.CancelledError:
            pass
        self._timer = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            await self.refresh()
