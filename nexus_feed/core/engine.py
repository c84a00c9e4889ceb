"""
engine.py — Builds the feed engine and manages its lifecycle.

One engine per process. Routes reach it through the get_controller /
get_ticker dependencies, so tests can swap in an engine built from fake
sources with app.dependency_overrides.

Routing table lives here (see services/dispatcher.py for the rules).
"""

import logging
import random
from dataclasses import dataclass
from typing import Optional

from nexus_feed.core.config import settings
from nexus_feed.models.feed import NewsCategory, parse_feed_key
from nexus_feed.services.aggregator import FeedAggregator
from nexus_feed.services.dispatcher import SourceDispatcher
from nexus_feed.services.poller import LivePollingController
from nexus_feed.services.ticker import MarketTickerRefresher
from nexus_feed.sources.cryptocompare_adapter import CryptoCompareAdapter
from nexus_feed.sources.hackernews_adapter import HackerNewsAdapter
from nexus_feed.sources.search_adapter import SearchHeadlineAdapter

logger = logging.getLogger(__name__)


@dataclass
class FeedEngine:
    aggregator: FeedAggregator
    controller: LivePollingController
    ticker: MarketTickerRefresher
    started: bool = False


def build_dispatcher() -> SourceDispatcher:
    market_news = CryptoCompareAdapter()
    link_aggregator = HackerNewsAdapter()
    return SourceDispatcher(
        fallback=SearchHeadlineAdapter(),
        primaries={
            NewsCategory.CRYPTO: market_news,
            NewsCategory.DEFI: market_news,
            NewsCategory.TECH: link_aggregator,
        },
    )


def build_engine(
    dispatcher: Optional[SourceDispatcher] = None,
    ticker: Optional[MarketTickerRefresher] = None,
    rng: Optional[random.Random] = None,
) -> FeedEngine:
    aggregator = FeedAggregator(dispatcher or build_dispatcher(), rng=rng)
    controller = LivePollingController(
        aggregator,
        category=parse_feed_key(settings.default_category),
        live=settings.start_live,
    )
    return FeedEngine(
        aggregator=aggregator,
        controller=controller,
        ticker=ticker or MarketTickerRefresher(),
    )


class _EngineHolder:
    engine: Optional[FeedEngine] = None


engine_holder = _EngineHolder()


def get_engine() -> FeedEngine:
    if engine_holder.engine is None:
        engine_holder.engine = build_engine()
    return engine_holder.engine


async def start_engine() -> None:
    engine = get_engine()
    if engine.started:
        return
    await engine.ticker.start()
    await engine.controller.start()
    engine.started = True
    logger.info("Feed engine started")


async def stop_engine() -> None:
    engine = engine_holder.engine
    if engine is None or not engine.started:
        return
    await engine.controller.stop()
    await engine.ticker.stop()
    engine.started = False
    logger.info("Feed engine stopped")


# ── FastAPI dependencies ──────────────────────────────────────────────────────

def get_controller() -> LivePollingController:
    return get_engine().controller


def get_ticker() -> MarketTickerRefresher:
    return get_engine().ticker
