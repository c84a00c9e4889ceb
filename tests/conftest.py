"""
pytest configuration and shared fixtures for the Nexus Feed tests.

Key concern: tests must not reach CryptoCompare, HNPWA, CoinGecko or Gemini.
We achieve this by:
  1. Setting AI_MOCK_MODE=true so GeminiClient returns canned responses.
  2. Setting ENGINE_AUTOSTART=false so the app lifespan never starts the
     real pollers.
  3. Building dispatchers from FakeSource adapters (below) and overriding
     the engine dependencies in route tests.
"""

import asyncio
import os
from typing import Awaitable, Callable, Optional, Union

import pytest

# Set env vars BEFORE importing the app so Settings picks them up correctly
os.environ.setdefault("AI_MOCK_MODE", "true")
os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("ENGINE_AUTOSTART", "false")

from nexus_feed.models.feed import NewsCategory, NewsItem  # noqa: E402
from nexus_feed.sources.base import SourceAdapter  # noqa: E402

Response = Union[list[NewsItem], Exception]
Handler = Callable[[NewsCategory, int], Awaitable[Response]]


def build_item(
    item_id: str,
    category: NewsCategory = NewsCategory.WORLD,
    title: Optional[str] = None,
    summary: str = "Lead text.",
) -> NewsItem:
    return NewsItem(
        id=item_id,
        title=title or f"Headline {item_id}",
        summary=summary,
        source="Wire",
        time="5m ago",
        category=category,
    )


class FakeSource(SourceAdapter):
    """
    Scripted adapter.

    `responses` are consumed one per call (the last one repeats); an
    Exception entry is raised instead of returned. `handler` replaces the
    script entirely. `gate`, when given, blocks every call until set.
    `log` is shared between fakes to assert cross-adapter call order.
    """

    def __init__(
        self,
        name: str,
        responses: Optional[list[Response]] = None,
        handler: Optional[Handler] = None,
        gate: Optional[asyncio.Event] = None,
        log: Optional[list[str]] = None,
    ) -> None:
        self.name = name
        self.responses = list(responses or [[]])
        self.handler = handler
        self.gate = gate
        self.log = log if log is not None else []
        self.calls: list[tuple[NewsCategory, int]] = []

    async def fetch(self, category: NewsCategory, page: int) -> list[NewsItem]:
        self.calls.append((category, page))
        self.log.append(self.name)
        if self.gate is not None:
            await self.gate.wait()

        if self.handler is not None:
            response = await self.handler(category, page)
        else:
            index = min(len(self.calls) - 1, len(self.responses) - 1)
            response = self.responses[index]

        if isinstance(response, Exception):
            raise response
        return list(response)


@pytest.fixture()
def make_item():
    return build_item


@pytest.fixture()
def fake_source():
    return FakeSource


async def settle(rounds: int = 5) -> None:
    """Let pending tasks run up to their next await."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture()
def let_tasks_run():
    return settle
