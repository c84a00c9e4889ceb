#!/usr/bin/env python3
"""
fetch_feed.py — One-shot fetch of a feed category against the live providers.

Usage (from the repo root):
    # Composite view (Crypto + Technology + World, shuffled)
    python scripts/fetch_feed.py

    # A single category, plus two "load more" pages
    python scripts/fetch_feed.py --category Politics --pages 3

    # Real Gemini search fallback (requires AI_MOCK_MODE=false + GEMINI_API_KEY)
    AI_MOCK_MODE=false python scripts/fetch_feed.py --category World

Prints one line per item with its id, source and map label, then the
current market prices. Nothing is stored.
"""

import argparse
import asyncio
import sys
from pathlib import Path

ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))

from nexus_feed.core.engine import build_engine  # noqa: E402
from nexus_feed.models.feed import parse_feed_key  # noqa: E402
from nexus_feed.services.geo_extractor import extract_for_item  # noqa: E402


async def run(category: str, pages: int) -> None:
    engine = build_engine()
    key = parse_feed_key(category)

    snapshot = await engine.aggregator.refresh(key)
    for _ in range(pages - 1):
        snapshot = await engine.aggregator.load_more(key)

    print(f"── {snapshot.category} · page {snapshot.page} · {len(snapshot.items)} items ──")
    for item in snapshot.items:
        point = extract_for_item(item)
        where = point.label if point else "-"
        print(f"{item.id:<28} {item.source[:18]:<18} {where:<10} {item.title}")

    prices = await engine.ticker.refresh()
    if prices:
        print("── market ──")
        for price in prices:
            print(f"{price.symbol:<5} {price.price:>12,.2f}  {price.change_24h:+.2f}%")
    else:
        print("── market unavailable ──")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Fetch a Nexus feed category once and print it")
    parser.add_argument(
        "--category",
        default="ALL",
        help="ALL, or a category such as Crypto, TECH, Politics (default: ALL)",
    )
    parser.add_argument(
        "--pages",
        type=int,
        default=1,
        help="Number of pages to pull; pages after the first use load-more (default: 1)",
    )
    args = parser.parse_args()
    asyncio.run(run(args.category, max(1, args.pages)))
