"""
CryptoCompareAdapter — Market news via the CryptoCompare news API.

Primary source for Crypto and DeFi. The endpoint serves one fixed batch of
the latest stories, so `page` is ignored: every call re-fetches the same
batch and the aggregator's dedup drops what it already holds.

Record shape (fields we read):
  { "id": "41234", "title": ..., "body": ..., "url": ...,
    "published_on": 1718000000, "source_info": {"name": "CoinDesk"} }
"""

import html
import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from nexus_feed.core.config import settings
from nexus_feed.core.errors import EmptyResult, MalformedRecord, TransportFailure
from nexus_feed.models.feed import NewsCategory, NewsItem
from nexus_feed.sources.base import HttpJsonSource, SourceAdapter

logger = logging.getLogger(__name__)

_NO_SUMMARY = "No summary available."


def _format_published(epoch_seconds: Any) -> str:
    published = datetime.fromtimestamp(int(epoch_seconds), tz=timezone.utc)
    return published.strftime("%H:%M")


def record_to_item(record: dict[str, Any], category: NewsCategory) -> NewsItem:
    """Normalise one CryptoCompare record. Raises MalformedRecord."""
    try:
        upstream_id = record["id"]
        title = str(record["title"]).strip()
        body = html.unescape(str(record.get("body") or "")).strip()
        source = str(record["source_info"]["name"])
        published = _format_published(record["published_on"])
    except (KeyError, TypeError, ValueError, OverflowError) as exc:
        raise MalformedRecord("cryptocompare", f"bad record: {exc!r}") from exc

    if not title:
        raise MalformedRecord("cryptocompare", f"record {upstream_id} has no title")

    return NewsItem(
        id=f"cc-{upstream_id}",
        title=title,
        summary=body or _NO_SUMMARY,
        source=source,
        time=published,
        url=record.get("url") or None,
        category=category,
    )


class CryptoCompareAdapter(HttpJsonSource, SourceAdapter):
    name = "cryptocompare"

    def __init__(
        self,
        url: Optional[str] = None,
        batch_size: Optional[int] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(url or settings.cryptocompare_news_url, transport=transport)
        self.batch_size = batch_size or settings.provider_batch_size

    async def fetch(self, category: NewsCategory, page: int) -> list[NewsItem]:
        data = await self.get_json()

        records = data.get("Data") if isinstance(data, dict) else None
        if not isinstance(records, list):
            raise TransportFailure(self.name, "payload has no Data list")

        items: list[NewsItem] = []
        for record in records[: self.batch_size]:
            try:
                items.append(record_to_item(record, category))
            except MalformedRecord as exc:
                logger.debug("Dropping record: %s", exc)

        if not items:
            raise EmptyResult(self.name)
        return items
