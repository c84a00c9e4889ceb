"""
geo_extractor.py — Keyword-based geographic focal point for a news item.

A coarse heuristic, not entity extraction:
  - upper-case title + summary
  - walk GEO_KEYWORDS in order
  - first keyword found as a plain substring wins

Substring matching is intentional and means "US" also fires inside words
like "BUSINESS". Table order decides ties, so "CHINA" beats "US" whenever
both appear. Keep the order stable; tests and the map rely on it.

USAGE
─────
    from nexus_feed.services.geo_extractor import extract, extract_for_item

    point = extract("Markets rally as China and US trade talks resume")
    # point.label → "CHINA"
"""

from __future__ import annotations

import uuid
from typing import Iterable, Optional

from nexus_feed.models.feed import MapDataPoint, NewsItem

# (keyword, lat, lng) — iteration order is the match priority
GEO_KEYWORDS: tuple[tuple[str, float, float], ...] = (
    ("CHINA",       35.8617,  104.1954),
    ("US",          37.0902,  -95.7129),
    ("USA",         37.0902,  -95.7129),
    ("UK",          55.3781,   -3.4360),
    ("LONDON",      51.5074,   -0.1278),
    ("EU",          54.5260,   15.2551),
    ("RUSSIA",      61.5240,  105.3188),
    ("JAPAN",       36.2048,  138.2529),
    ("TOKYO",       35.6762,  139.6503),
    ("INDIA",       20.5937,   78.9629),
    ("BRAZIL",     -14.2350,  -51.9253),
    ("GERMANY",     51.1657,   10.4515),
    ("FRANCE",      46.2276,    2.2137),
    ("AUSTRALIA",  -25.2744,  133.7751),
    ("DUBAI",       25.2048,   55.2708),
    ("NY",          40.7128,  -74.0060),
    ("YORK",        40.7128,  -74.0060),
    ("CALIFORNIA",  36.7783, -119.4179),
    ("BEIJING",     39.9042,  116.4074),
    ("SHANGHAI",    31.2304,  121.4737),
    ("SINGAPORE",    1.3521,  103.8198),
    ("HONG KONG",   22.3193,  114.1694),
)


def _new_point_id() -> str:
    return f"loc-{uuid.uuid4().hex[:12]}"


def extract(text: str) -> Optional[MapDataPoint]:
    """Return the first keyword match in `text`, or None."""
    haystack = text.upper()
    for keyword, lat, lng in GEO_KEYWORDS:
        if keyword in haystack:
            return MapDataPoint(id=_new_point_id(), lat=lat, lng=lng, label=keyword, intensity=1.0)
    return None


def extract_for_item(item: NewsItem) -> Optional[MapDataPoint]:
    return extract(f"{item.title} {item.summary}")


def extract_points(items: Iterable[NewsItem]) -> dict[str, MapDataPoint]:
    """One point per item id, same first-match rule. Items with no match are skipped."""
    points: dict[str, MapDataPoint] = {}
    for item in items:
        point = extract_for_item(item)
        if point is not None:
            points[item.id] = point
    return points
