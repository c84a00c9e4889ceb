"""
feed.py — Pydantic models for the aggregated news feed.

NewsItem      — one normalised feed entry (immutable once built)
MapDataPoint  — geographic focal point resolved for an item
CryptoPrice   — one ticker entry
FeedSnapshot  — ordered items held for one category + paging cursor
FeedStatus    — what the display surface polls: snapshot + progress flags
"""

from enum import Enum
from typing import Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class NewsCategory(str, Enum):
    CRYPTO = "Crypto"
    TRADFI = "TradFi"
    DEFI = "DeFi"
    POLITICS = "Politics"
    TECH = "Technology"
    SPORTS = "Sports"
    WORLD = "World"


# Composite pseudo-category: Crypto + Technology + World, shuffled together.
ALL = "ALL"

FeedKey = Union[NewsCategory, Literal["ALL"]]

Sentiment = Literal["positive", "negative", "neutral"]


def parse_feed_key(value: str) -> FeedKey:
    """
    Resolve a user-supplied category string.

    Accepts "ALL", any enum value ("Technology") or member name ("TECH"),
    case-insensitively. Raises ValueError for anything else.
    """
    wanted = value.strip().upper()
    if wanted == ALL:
        return ALL
    for category in NewsCategory:
        if wanted in (category.value.upper(), category.name):
            return category
    raise ValueError(f"Unknown category: {value!r}")


def feed_key_label(key: FeedKey) -> str:
    return key.value if isinstance(key, NewsCategory) else key


class NewsItem(BaseModel):
    """A single feed entry as produced by a source adapter."""

    model_config = ConfigDict(frozen=True)

    id: str                     # stable across re-fetches of the same upstream record
    title: str
    summary: str
    source: str                 # provider display name
    time: str                   # display-formatted ("14:05", "3 hours ago", "10m ago")
    url: Optional[str] = None
    category: NewsCategory
    sentiment: Sentiment = "neutral"


class MapDataPoint(BaseModel):
    id: str                     # ephemeral, regenerated per selection
    lat: float
    lng: float
    label: str                  # matched keyword
    intensity: float = Field(default=1.0, ge=0.0, le=1.0)


class CryptoPrice(BaseModel):
    id: str                     # "btc"
    symbol: str                 # "BTC"
    price: float                # USD
    change_24h: float           # percent


class FeedSnapshot(BaseModel):
    """Ordered items currently held for one feed key."""

    category: str               # "ALL" or a NewsCategory value
    items: list[NewsItem] = Field(default_factory=list)
    page: int = Field(default=1, ge=1)
    generation: int = 0         # bumped on every published change


class FeedStatus(BaseModel):
    """Combined view returned by GET /api/v1/feed."""

    category: str
    live: bool
    loading: bool
    loading_more: bool
    snapshot: FeedSnapshot
    selected_item_id: Optional[str] = None
    map_points: list[MapDataPoint] = Field(default_factory=list)


class DispatchResult(BaseModel):
    """What the dispatcher hands back for one (category, page) request."""

    items: list[NewsItem] = Field(default_factory=list)
    exhausted: bool = False     # every source in the chain came back empty
