"""
aggregator.py — Per-category feed snapshots: refresh, load-more, dedup.

Each feed key ("ALL" or a NewsCategory) owns one FeedState:
  items       — ordered, ids unique
  page        — paging cursor, reset to 1 on refresh
  generation  — bumped every time a new snapshot is published

Two transitions change a snapshot, nothing else does:
  apply_refresh    — replace wholesale, page := 1
  apply_load_more  — append unseen ids in fetch order, page := page

"ALL" fans out to Crypto, Technology and World at the same page, waits for
all three, then shuffles the concatenation. The shuffle is uniform and uses
the injected random.Random so tests can seed it.

I/O (fetch_page) is kept apart from the transitions so a caller can fetch,
decide whether the answer is still wanted, and only then apply it. The
aggregator does not guard against overlapping calls; that is the polling
controller's job.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass, field
from typing import Callable, Optional

from nexus_feed.core.config import settings
from nexus_feed.models.feed import (
    ALL,
    FeedKey,
    FeedSnapshot,
    NewsCategory,
    NewsItem,
    feed_key_label,
)
from nexus_feed.services.dispatcher import SourceDispatcher

logger = logging.getLogger(__name__)

ALL_LEGS: tuple[NewsCategory, ...] = (NewsCategory.CRYPTO, NewsCategory.TECH, NewsCategory.WORLD)

SnapshotListener = Callable[[FeedSnapshot], None]


@dataclass
class FeedState:
    items: list[NewsItem] = field(default_factory=list)
    page: int = 1
    generation: int = 0


def merge_unique(existing: list[NewsItem], incoming: list[NewsItem]) -> list[NewsItem]:
    """Items of `incoming` whose id is not already present, in incoming order."""
    seen = {item.id for item in existing}
    fresh: list[NewsItem] = []
    for item in incoming:
        if item.id in seen:
            continue
        seen.add(item.id)
        fresh.append(item)
    return fresh


class FeedAggregator:
    def __init__(
        self,
        dispatcher: SourceDispatcher,
        rng: Optional[random.Random] = None,
        keep_prior_on_empty: Optional[bool] = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.rng = rng or random.Random()
        self.keep_prior_on_empty = (
            settings.feed_keep_prior_on_empty if keep_prior_on_empty is None else keep_prior_on_empty
        )
        self._states: dict[str, FeedState] = {}
        self._listeners: list[SnapshotListener] = []

    # ── State access ──────────────────────────────────────────────────────────

    def _state(self, key: FeedKey) -> FeedState:
        label = feed_key_label(key)
        if label not in self._states:
            self._states[label] = FeedState()
        return self._states[label]

    def snapshot(self, key: FeedKey) -> FeedSnapshot:
        state = self._state(key)
        return FeedSnapshot(
            category=feed_key_label(key),
            items=list(state.items),
            page=state.page,
            generation=state.generation,
        )

    # ── Observers ─────────────────────────────────────────────────────────────

    def subscribe(self, listener: SnapshotListener) -> Callable[[], None]:
        """Register `listener` for every published snapshot. Returns an unsubscribe callable."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _publish(self, key: FeedKey) -> FeedSnapshot:
        state = self._state(key)
        state.generation += 1
        snap = self.snapshot(key)
        for listener in list(self._listeners):
            try:
                listener(snap)
            except Exception as exc:
                logger.warning("Snapshot listener failed: %s", exc)
        return snap

    # ── I/O ───────────────────────────────────────────────────────────────────

    async def fetch_page(self, key: FeedKey, page: int) -> list[NewsItem]:
        if key != ALL:
            result = await self.dispatcher.fetch(key, page)
            return result.items

        # Fan-out / fan-in: a failed leg contributes nothing but never blocks the others.
        results = await asyncio.gather(*(self.dispatcher.fetch(leg, page) for leg in ALL_LEGS))
        merged = [item for result in results for item in result.items]
        self.rng.shuffle(merged)
        return merged

    # ── Transitions ───────────────────────────────────────────────────────────

    def apply_refresh(self, key: FeedKey, items: list[NewsItem]) -> FeedSnapshot:
        state = self._state(key)
        if not items and self.keep_prior_on_empty and state.items:
            logger.info(
                "Refresh for %s returned nothing; keeping %d prior items",
                feed_key_label(key), len(state.items),
            )
            return self.snapshot(key)

        state.items = merge_unique([], items)
        state.page = 1
        return self._publish(key)

    def apply_load_more(self, key: FeedKey, page: int, items: list[NewsItem]) -> FeedSnapshot:
        state = self._state(key)
        fresh = merge_unique(state.items, items)
        state.items = state.items + fresh
        state.page = page
        logger.debug(
            "Load more for %s page %d: %d fetched, %d new",
            feed_key_label(key), page, len(items), len(fresh),
        )
        return self._publish(key)

    # ── Combined operations ───────────────────────────────────────────────────

    async def refresh(self, key: FeedKey) -> FeedSnapshot:
        items = await self.fetch_page(key, 1)
        return self.apply_refresh(key, items)

    async def load_more(self, key: FeedKey) -> FeedSnapshot:
        page = self._state(key).page + 1
        items = await self.fetch_page(key, page)
        return self.apply_load_more(key, page, items)
