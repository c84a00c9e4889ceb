"""
health.py — GET /health.

Always 200 while the process is up, including when every upstream is
down and the feed is empty. The body adds the poller state so a probe
can tell "API down" from "API up, feed paused".
"""

import logging

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from nexus_feed.core.config import settings
from nexus_feed.core.engine import get_controller
from nexus_feed.models.feed import feed_key_label
from nexus_feed.services.poller import LivePollingController

logger = logging.getLogger(__name__)
router = APIRouter()

API_VERSION = "0.1.0"


class HealthResponse(BaseModel):
    status: str      # Always "ok" if the API process is alive
    version: str
    environment: str
    feed_state: str  # "LIVE" | "PAUSED"
    category: str
    items: int       # size of the current snapshot


@router.get("", response_model=HealthResponse, summary="API health check")
async def health_check(controller: LivePollingController = Depends(get_controller)) -> HealthResponse:
    """
    Returns the liveness status of the API and the feed poller.

    The API is healthy (HTTP 200) even with an empty feed — upstream
    outages are expected and handled by fallbacks.
    """
    snapshot = controller.aggregator.snapshot(controller.category)
    return HealthResponse(
        status="ok",
        version=API_VERSION,
        environment=settings.environment,
        feed_state=controller.state.value,
        category=feed_key_label(controller.category),
        items=len(snapshot.items),
    )
