"""
dispatcher.py — Routes a (category, page) request to upstream sources.

Routing is a fixed table: each category has an optional dedicated primary
source and always ends at the shared fallback source.

  Crypto, DeFi                       → CryptoCompare  → search fallback
  Technology                         → HackerNews     → search fallback
  Politics, TradFi, Sports, World    →                  search fallback

The chain is a strict waterfall: the primary is awaited to completion
before the fallback is tried, so a category never has more than one
outbound call in flight. An empty batch counts as a failure.

fetch() never raises. Every adapter error is logged and the next source in
the chain is tried; if all of them fail the result is simply empty.
"""

from __future__ import annotations

import logging
from typing import Mapping, Optional

from nexus_feed.core.errors import FeedSourceError
from nexus_feed.models.feed import DispatchResult, NewsCategory, NewsItem
from nexus_feed.sources.base import SourceAdapter

logger = logging.getLogger(__name__)


class SourceDispatcher:
    def __init__(
        self,
        fallback: SourceAdapter,
        primaries: Optional[Mapping[NewsCategory, SourceAdapter]] = None,
    ) -> None:
        self.fallback = fallback
        self.primaries: dict[NewsCategory, SourceAdapter] = dict(primaries or {})

    def chain_for(self, category: NewsCategory) -> list[SourceAdapter]:
        """Adapters tried for `category`, in order."""
        primary = self.primaries.get(category)
        if primary is None or primary is self.fallback:
            return [self.fallback]
        return [primary, self.fallback]

    async def fetch(self, category: NewsCategory, page: int = 1) -> DispatchResult:
        for adapter in self.chain_for(category):
            items = await self._try(adapter, category, page)
            if items:
                logger.debug(
                    "%s served %d items for %s (page %d)",
                    adapter.name, len(items), category.value, page,
                )
                return DispatchResult(items=items, exhausted=False)

        logger.warning("All sources empty for %s (page %d)", category.value, page)
        return DispatchResult(items=[], exhausted=True)

    async def _try(
        self, adapter: SourceAdapter, category: NewsCategory, page: int
    ) -> list[NewsItem]:
        try:
            return list(await adapter.fetch(category, page))
        except FeedSourceError as exc:
            logger.warning("Source %s failed for %s: %s", adapter.name, category.value, exc)
        except Exception as exc:
            logger.error(
                "Source %s raised unexpectedly for %s: %s",
                adapter.name, category.value, exc,
                exc_info=True,
            )
        return []
