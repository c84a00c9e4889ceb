"""
gemini_client.py — Gemini access for the search fallback adapter.

The fallback asks Gemini, grounded with Google Search, for the latest
headlines on a topic and parses the delimited text it gets back.

AI_MOCK_MODE decides where text comes from:
  true  (default) — a canned string picked by `response_key`; no network,
                    no key needed. Tests and local dev run this way.
  false           — a real client.aio.models.generate_content call. Needs
                    GEMINI_API_KEY; without one the client drops back to
                    mock mode and says so in the log.
"""

import logging
from typing import Optional

from google import genai
from google.genai import types

from nexus_feed.core.config import settings

logger = logging.getLogger(__name__)


# Mock-mode text, looked up by generate(response_key=...).
_MOCK_RESPONSES: dict[str, str] = {
    "default": (
        "[MOCK] No canned text for this key. "
        "Run with AI_MOCK_MODE=false and GEMINI_API_KEY to query Gemini."
    ),
    # Same wire format the search prompt asks for: records split on "|||",
    # fields split on "|" as Title | Source | TimeAgo | Snippet.
    "headline_search": (
        "Central banks signal slower pace of rate cuts | Reuters | 12m ago | "
        "Policy makers in the US and EU said inflation progress has stalled.|||"
        "Tokyo stocks close at record high on chip rally | Nikkei Asia | 25m ago | "
        "Semiconductor names led gains as the yen weakened against the dollar.|||"
        "Lawmakers reach deal on infrastructure package | AP News | 40m ago | "
        "The agreement clears the way for a floor vote later this week.|||"
        "Shipping rates climb as Red Sea diversions continue | Bloomberg | 1h ago | "
        "Container costs from Shanghai to Rotterdam rose for a third week.|||"
        "Grid operators warn of tight summer supply | Financial Times | 2h ago | "
        "Heatwaves across Europe are pushing demand toward peak capacity."
    ),
}


class GeminiClient:
    """One per process: share the `gemini_client` instance below."""

    def __init__(self, model_name: Optional[str] = None) -> None:
        self.mock_mode = settings.ai_mock_mode
        self.model_name = model_name or settings.gemini_model

        if not self.mock_mode:
            if not settings.gemini_api_key:
                logger.warning(
                    "GEMINI_API_KEY missing; search fallback will serve canned headlines. "
                    "Set AI_MOCK_MODE=true to silence this."
                )
                self.mock_mode = True
            else:
                self._client = genai.Client(api_key=settings.gemini_api_key)

        if self.mock_mode:
            logger.info("Gemini search client in MOCK mode")
        else:
            logger.info("Gemini search client using %s", self.model_name)

    async def generate(
        self,
        prompt: str,
        response_key: str = "default",
        config: Optional[types.GenerateContentConfig] = None,
    ) -> str:
        """
        Return the model's text for `prompt`.

        `response_key` only matters in mock mode. `config` goes straight to
        generate_content; the search adapter uses it to attach the Google
        Search tool. SDK errors are logged and re-raised.
        """
        if self.mock_mode:
            return _MOCK_RESPONSES.get(response_key, _MOCK_RESPONSES["default"])

        try:
            response = await self._client.aio.models.generate_content(
                model=self.model_name,
                contents=prompt,
                config=config,
            )
            return response.text or ""
        except Exception as exc:
            logger.error("Gemini generate failed (model=%s): %s", self.model_name, exc)
            raise


gemini_client = GeminiClient()
