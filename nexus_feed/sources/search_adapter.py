"""
SearchHeadlineAdapter — General-purpose fallback via Gemini + Google Search.

Serves Politics, TradFi, Sports and World directly, and catches Crypto, DeFi
and Technology when their dedicated provider fails or comes back empty.

Gemini is asked for plain delimited text rather than JSON:

    Title | Source | TimeAgo | Snippet ||| Title | Source | TimeAgo | Snippet

Records with fewer than four fields are dropped. The page number goes into
the prompt so "load more" asks for different stories; the model gives no
pagination guarantee, so overlap with earlier pages is expected and handled
by the aggregator's dedup.
"""

import hashlib
import logging
from typing import Optional

from google.genai import types

from nexus_feed.core.config import settings
from nexus_feed.core.errors import EmptyResult, MalformedRecord, TransportFailure
from nexus_feed.models.feed import NewsCategory, NewsItem
from nexus_feed.sources.base import SourceAdapter
from nexus_feed.sources.gemini_client import GeminiClient, gemini_client

logger = logging.getLogger(__name__)

RECORD_DELIMITER = "|||"
FIELD_DELIMITER = "|"

# Google Search grounding, as accepted by the gemini-2.x models.
SEARCH_CONFIG = types.GenerateContentConfig(
    tools=[types.Tool(google_search=types.GoogleSearch())],
)

_HEADLINE_PROMPT = """\
Search for the absolute latest {count} news headlines about {topic}.
{page_hint}Format strictly as list separated by "{record_sep}".
Pattern: Title {field_sep} Source {field_sep} TimeAgo {field_sep} Brief Snippet \
(do not generate a summary, use the lead text).
Example: Senate passes new bill {field_sep} AP News {field_sep} 10m ago {field_sep} \
The legislation aims to curb inflation...
Do not use markdown."""


def build_prompt(topic: str, page: int, count: int) -> str:
    page_hint = ""
    if page > 1:
        page_hint = (
            f"This is page {page} of results: return different, slightly older "
            f"stories than the first {(page - 1) * count} headlines.\n"
        )
    return _HEADLINE_PROMPT.format(
        count=count,
        topic=topic,
        page_hint=page_hint,
        record_sep=RECORD_DELIMITER,
        field_sep=FIELD_DELIMITER,
    )


def headline_id(category: NewsCategory, title: str, source: str) -> str:
    """Same headline from the same outlet always maps to the same id."""
    fingerprint = f"{title.strip().lower()}|{source.strip().lower()}"
    digest = hashlib.sha1(fingerprint.encode("utf-8")).hexdigest()[:12]
    return f"gen-{category.value.lower()}-{digest}"


def parse_record(raw: str, category: NewsCategory) -> NewsItem:
    parts = [p.strip() for p in raw.split(FIELD_DELIMITER)]
    if len(parts) < 4:
        raise MalformedRecord("search", f"expected 4 fields, got {len(parts)}")

    # Snippets may legitimately contain the field delimiter; keep the tail intact.
    title, source, time_ago = parts[0], parts[1], parts[2]
    snippet = f" {FIELD_DELIMITER} ".join(parts[3:])
    if not title:
        raise MalformedRecord("search", "empty title")

    return NewsItem(
        id=headline_id(category, title, source),
        title=title,
        source=source,
        time=time_ago,
        summary=snippet,
        category=category,
    )


def parse_headlines(text: str, category: NewsCategory) -> list[NewsItem]:
    """Split a delimited Gemini response into items, dropping malformed records."""
    items: list[NewsItem] = []
    seen: set[str] = set()
    for raw in text.split(RECORD_DELIMITER):
        try:
            item = parse_record(raw, category)
        except MalformedRecord as exc:
            logger.debug("Dropping search record: %s", exc)
            continue
        if item.id in seen:
            continue
        seen.add(item.id)
        items.append(item)
    return items


class SearchHeadlineAdapter(SourceAdapter):
    name = "gemini-search"

    def __init__(
        self,
        client: Optional[GeminiClient] = None,
        headline_count: Optional[int] = None,
    ) -> None:
        self.client = client or gemini_client
        self.headline_count = headline_count or settings.search_headline_count

    async def fetch(self, category: NewsCategory, page: int) -> list[NewsItem]:
        prompt = build_prompt(category.value, page, self.headline_count)
        try:
            text = await self.client.generate(
                prompt,
                response_key="headline_search",
                config=SEARCH_CONFIG,
            )
        except Exception as exc:
            raise TransportFailure(self.name, f"generation failed: {exc}") from exc

        if not text:
            raise EmptyResult(self.name, "empty response text")

        items = parse_headlines(text, category)
        if not items:
            raise EmptyResult(self.name, "no well-formed records in response")
        return items
