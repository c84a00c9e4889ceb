"""
poller.py — Live polling controller for the feed.

Two states, switched only by an explicit call:

  LIVE    — a background task refreshes the current category every
            poll_interval_seconds
  PAUSED  — that task is cancelled; manual refreshes still work

Independent of the state:
  - select_category() always forces one refresh of the new category
  - request_load_more() (the "near end of list" signal) always works

In-flight guard: at most one refresh or load-more per category at a time.
The check happens when a request is dispatched; a request that finds one
already running is dropped, not queued. That is also how a timer tick and a
manual "refresh now" that collide get coalesced.

Stale responses: a fetch remembers the category it was started for and its
result is dropped if a different category is active when it completes. A
switch away and back (A, B, A) therefore still applies the A fetch that was
running all along. The generation counter only counts switches, for status
and logs.
"""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Optional

from nexus_feed.core.config import settings
from nexus_feed.models.feed import (
    FeedKey,
    FeedStatus,
    MapDataPoint,
    NewsItem,
    feed_key_label,
)
from nexus_feed.services.aggregator import FeedAggregator
from nexus_feed.services.geo_extractor import extract_for_item

logger = logging.getLogger(__name__)


class PollState(str, Enum):
    LIVE = "LIVE"
    PAUSED = "PAUSED"


class FetchKind(str, Enum):
    REFRESH = "refresh"
    LOAD_MORE = "load_more"


class LivePollingController:
    def __init__(
        self,
        aggregator: FeedAggregator,
        category: FeedKey,
        live: bool = True,
        interval: Optional[float] = None,
    ) -> None:
        self.aggregator = aggregator
        self.interval = interval if interval is not None else settings.poll_interval_seconds
        self._category: FeedKey = category
        self._state = PollState.LIVE if live else PollState.PAUSED
        self._generation = 0
        self._in_flight: dict[str, FetchKind] = {}
        self._timer: Optional[asyncio.Task] = None
        self._tick_refresh: Optional[asyncio.Task] = None

        self.selected_item: Optional[NewsItem] = None
        self.map_point: Optional[MapDataPoint] = None

    # ── Read-only state ───────────────────────────────────────────────────────

    @property
    def category(self) -> FeedKey:
        return self._category

    @property
    def state(self) -> PollState:
        return self._state

    @property
    def live(self) -> bool:
        return self._state is PollState.LIVE

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def loading(self) -> bool:
        return self._in_flight.get(feed_key_label(self._category)) is FetchKind.REFRESH

    @property
    def loading_more(self) -> bool:
        return self._in_flight.get(feed_key_label(self._category)) is FetchKind.LOAD_MORE

    def is_busy(self, key: FeedKey) -> bool:
        return feed_key_label(key) in self._in_flight

    def status(self) -> FeedStatus:
        return FeedStatus(
            category=feed_key_label(self._category),
            live=self.live,
            loading=self.loading,
            loading_more=self.loading_more,
            snapshot=self.aggregator.snapshot(self._category),
            selected_item_id=self.selected_item.id if self.selected_item else None,
            map_points=[self.map_point] if self.map_point else [],
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    async def start(self) -> None:
        logger.info(
            "Starting feed poller (category=%s, state=%s, interval=%ss)",
            feed_key_label(self._category), self._state.value, self.interval,
        )
        await self.request_refresh()
        if self.live:
            self._start_timer()

    async def stop(self) -> None:
        timer = self._timer
        self._cancel_timer()
        if timer is not None:
            try:
                await timer
            except asyncio.CancelledError:
                pass
        # A scheduled refresh outlives its timer; let it land before returning.
        pending = self._tick_refresh
        if pending is not None:
            await pending
            self._tick_refresh = None
        logger.info("Feed poller stopped")

    # ── Live / paused ─────────────────────────────────────────────────────────

    def set_live(self, live: bool) -> PollState:
        if live and not self.live:
            self._state = PollState.LIVE
            self._start_timer()
        elif not live and self.live:
            self._state = PollState.PAUSED
            self._cancel_timer()
        logger.info("Feed poller is now %s", self._state.value)
        return self._state

    def toggle_live(self) -> PollState:
        return self.set_live(not self.live)

    def _start_timer(self) -> None:
        self._cancel_timer()
        self._timer = asyncio.create_task(self._tick_loop(), name="feed-poll-timer")

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    async def _tick_loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            # Pausing cancels the timer, never a fetch that is already running.
            self._tick_refresh = asyncio.create_task(self._scheduled_refresh())
            await asyncio.shield(self._tick_refresh)

    async def _scheduled_refresh(self) -> None:
        try:
            await self.request_refresh()
        except Exception as exc:
            logger.error("Scheduled refresh failed: %s", exc, exc_info=True)

    # ── Requests ──────────────────────────────────────────────────────────────

    async def select_category(self, key: FeedKey) -> bool:
        """Switch category and force one refresh of it, LIVE or not."""
        self._category = key
        self._generation += 1
        logger.info("Category switched to %s (generation %d)", feed_key_label(key), self._generation)
        if self.live:
            # Timer phase restarts from the switch, like a freshly mounted interval.
            self._start_timer()
        return await self.request_refresh()

    async def request_refresh(self) -> bool:
        return await self._run(self._category, FetchKind.REFRESH)

    async def request_load_more(self) -> bool:
        return await self._run(self._category, FetchKind.LOAD_MORE)

    async def _run(self, key: FeedKey, kind: FetchKind) -> bool:
        """Returns False when the request was dropped by the in-flight guard."""
        label = feed_key_label(key)
        if label in self._in_flight:
            logger.debug(
                "Dropping %s for %s: %s already in flight",
                kind.value, label, self._in_flight[label].value,
            )
            return False

        self._in_flight[label] = kind
        try:
            if kind is FetchKind.REFRESH:
                page = 1
            else:
                page = self.aggregator.snapshot(key).page + 1
            items = await self.aggregator.fetch_page(key, page)

            active = feed_key_label(self._category)
            if active != label:
                logger.info(
                    "Discarding stale %s for %s (active category is %s)",
                    kind.value, label, active,
                )
                return True

            if kind is FetchKind.REFRESH:
                snap = self.aggregator.apply_refresh(key, items)
                if snap.items and self.selected_item is None:
                    self._select(snap.items[0])
            else:
                self.aggregator.apply_load_more(key, page, items)
        finally:
            del self._in_flight[label]
        return True

    # ── Selection ─────────────────────────────────────────────────────────────

    def select_item(self, item_id: str) -> tuple[NewsItem, Optional[MapDataPoint]]:
        """Open an item from the current snapshot. Raises KeyError for unknown ids."""
        for item in self.aggregator.snapshot(self._category).items:
            if item.id == item_id:
                self._select(item)
                return item, self.map_point
        raise KeyError(item_id)

    def _select(self, item: NewsItem) -> None:
        self.selected_item = item
        # Replaces the previous point; None clears the map.
        self.map_point = extract_for_item(item)
