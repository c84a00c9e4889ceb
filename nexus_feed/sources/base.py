"""
base.py — Shared capability every upstream news provider implements.

To add a provider:
  1. Subclass SourceAdapter and implement fetch()
  2. Register it in the routing table (core/engine.py)

fetch() returns at least one NewsItem or raises a FeedSourceError subclass.
Swallowing failures is the dispatcher's job, not the adapter's.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx

from nexus_feed.core.config import settings
from nexus_feed.core.errors import TransportFailure
from nexus_feed.models.feed import NewsCategory, NewsItem


class SourceAdapter(ABC):
    name: str = "source"

    @abstractmethod
    async def fetch(self, category: NewsCategory, page: int) -> list[NewsItem]:
        ...

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.name}>"


class HttpJsonSource:
    """
    Client for a single JSON GET endpoint, mixed into HTTP-backed adapters.

    `transport` is forwarded to httpx.AsyncClient so tests can plug in an
    httpx.MockTransport instead of hitting the network.
    """

    name: str = "http"

    def __init__(
        self,
        url: str,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.url = url
        self.timeout = timeout if timeout is not None else settings.http_timeout_seconds
        self.transport = transport

    async def get_json(self, params: Optional[dict[str, Any]] = None) -> Any:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                response = await client.get(self.url, params=params)
                response.raise_for_status()
                return response.json()
            except httpx.HTTPStatusError as exc:
                raise TransportFailure(
                    self.name,
                    f"HTTP {exc.response.status_code} — {exc.response.text[:200]}",
                ) from exc
            except httpx.HTTPError as exc:
                raise TransportFailure(self.name, f"request failed: {exc}") from exc
            except ValueError as exc:
                raise TransportFailure(self.name, f"undecodable payload: {exc}") from exc
