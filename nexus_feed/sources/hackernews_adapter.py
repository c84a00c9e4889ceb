"""
HackerNewsAdapter — Front-page stories via the HNPWA mirror.

Primary source for Technology. Like CryptoCompare it serves a fixed batch,
so repeated calls are idempotent and `page` is ignored.
"""

import logging
from typing import Any, Optional

import httpx

from nexus_feed.core.config import settings
from nexus_feed.core.errors import EmptyResult, MalformedRecord, TransportFailure
from nexus_feed.models.feed import NewsCategory, NewsItem
from nexus_feed.sources.base import HttpJsonSource, SourceAdapter

logger = logging.getLogger(__name__)


def record_to_item(record: dict[str, Any]) -> NewsItem:
    """Normalise one HNPWA story. Always tagged Technology."""
    try:
        upstream_id = record["id"]
        title = str(record["title"]).strip()
    except (KeyError, TypeError) as exc:
        raise MalformedRecord("hackernews", f"bad record: {exc!r}") from exc

    if not title:
        raise MalformedRecord("hackernews", f"story {upstream_id} has no title")

    domain = record.get("domain")
    summary = "Trending on HackerNews."
    if domain:
        summary += f" Source: {domain}"

    return NewsItem(
        id=f"hn-{upstream_id}",
        title=title,
        summary=summary,
        source="HackerNews",
        time=str(record.get("time_ago") or ""),
        url=record.get("url") or None,
        category=NewsCategory.TECH,
    )


class HackerNewsAdapter(HttpJsonSource, SourceAdapter):
    name = "hackernews"

    def __init__(
        self,
        url: Optional[str] = None,
        batch_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(url or settings.hackernews_url, transport=transport)
        self.batch_size = batch_size or settings.provider_batch_size

    async def fetch(self, category: NewsCategory, page: int) -> list[NewsItem]:
        data = await self.get_json()
        if not isinstance(data, list):
            raise TransportFailure(self.name, "expected a JSON list of stories")

        items: list[NewsItem] = []
        for record in data[: self.batch_size]:
            try:
                items.append(record_to_item(record))
            except MalformedRecord as exc:
                logger.debug("Dropping story: %s", exc)

        if not items:
            raise EmptyResult(self.name)
        return items
