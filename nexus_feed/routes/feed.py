"""
feed.py — Feed routes for the display surface.

Routes:
  GET  /api/v1/feed                       — current status: snapshot + progress flags
  GET  /api/v1/feed/snapshot/{category}   — snapshot held for any category (or ALL)
  PUT  /api/v1/feed/category              — switch category (forces one refresh)
  POST /api/v1/feed/refresh               — manual "refresh now"
  POST /api/v1/feed/more                  — "near end of list" signal
  PUT  /api/v1/feed/live                  — set LIVE / PAUSED
  POST /api/v1/feed/live/toggle           — flip LIVE / PAUSED
  POST /api/v1/feed/select/{item_id}      — open an item, resolve its map point
  GET  /api/v1/feed/map                   — one map point per item in the current snapshot
  WS   /api/v1/feed/stream                — every published snapshot, as JSON

refresh / more return {"accepted": false} when the in-flight guard dropped
the request; the client should just wait for the running fetch.
"""

import asyncio
import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from nexus_feed.core.engine import get_controller
from nexus_feed.core.rate_limit import limiter
from nexus_feed.models.feed import (
    FeedSnapshot,
    FeedStatus,
    MapDataPoint,
    NewsItem,
    parse_feed_key,
)
from nexus_feed.services.geo_extractor import extract_points
from nexus_feed.services.poller import LivePollingController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/feed", tags=["feed"])

# Snapshots buffered per stream client; a slow client loses the oldest first.
STREAM_BACKLOG = 8


def offer_latest(queue: "asyncio.Queue[FeedSnapshot]", snapshot: FeedSnapshot) -> None:
    """put_nowait that evicts the oldest entry instead of raising QueueFull."""
    if queue.full():
        queue.get_nowait()
    queue.put_nowait(snapshot)


class CategoryRequest(BaseModel):
    category: str    # "ALL" | "Crypto" | "TECH" | ...


class LiveRequest(BaseModel):
    live: bool


class AcceptedResponse(BaseModel):
    accepted: bool   # False → dropped by the in-flight guard
    status: FeedStatus


class SelectionResponse(BaseModel):
    item: NewsItem
    point: Optional[MapDataPoint] = None


class MapResponse(BaseModel):
    points: list[MapDataPoint]


# ── Reads ─────────────────────────────────────────────────────────────────────

@router.get("", response_model=FeedStatus)
async def get_feed(controller: LivePollingController = Depends(get_controller)):
    return controller.status()


@router.get("/snapshot/{category}", response_model=FeedSnapshot)
async def get_snapshot(category: str, controller: LivePollingController = Depends(get_controller)):
    try:
        key = parse_feed_key(category)
    except ValueError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return controller.aggregator.snapshot(key)


@router.get("/map", response_model=MapResponse)
async def get_map(controller: LivePollingController = Depends(get_controller)):
    """Per-item focal points for everything in the current snapshot."""
    items = controller.aggregator.snapshot(controller.category).items
    return MapResponse(points=list(extract_points(items).values()))


# ── Commands ──────────────────────────────────────────────────────────────────

@router.put("/category", response_model=AcceptedResponse)
async def switch_category(
    payload: CategoryRequest,
    controller: LivePollingController = Depends(get_controller),
):
    try:
        key = parse_feed_key(payload.category)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc)) from exc

    accepted = await controller.select_category(key)
    return AcceptedResponse(accepted=accepted, status=controller.status())


@router.post("/refresh", response_model=AcceptedResponse)
@limiter.limit("30/minute")
async def refresh_feed(request: Request, controller: LivePollingController = Depends(get_controller)):
    accepted = await controller.request_refresh()
    return AcceptedResponse(accepted=accepted, status=controller.status())


@router.post("/more", response_model=AcceptedResponse)
@limiter.limit("60/minute")
async def load_more(request: Request, controller: LivePollingController = Depends(get_controller)):
    accepted = await controller.request_load_more()
    return AcceptedResponse(accepted=accepted, status=controller.status())


@router.put("/live", response_model=FeedStatus)
async def set_live(payload: LiveRequest, controller: LivePollingController = Depends(get_controller)):
    controller.set_live(payload.live)
    return controller.status()


@router.post("/live/toggle", response_model=FeedStatus)
async def toggle_live(controller: LivePollingController = Depends(get_controller)):
    controller.toggle_live()
    return controller.status()


@router.post("/select/{item_id}", response_model=SelectionResponse)
async def select_item(item_id: str, controller: LivePollingController = Depends(get_controller)):
    try:
        item, point = controller.select_item(item_id)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"No item {item_id!r} in current feed") from exc
    return SelectionResponse(item=item, point=point)


# ── WebSocket stream ──────────────────────────────────────────────────────────

@router.websocket("/stream")
async def feed_stream(
    websocket: WebSocket,
    controller: LivePollingController = Depends(get_controller),
):
    """
    Push the current status once, then every snapshot the aggregator publishes.

    Message format:
      { "type": "status", ...FeedStatus }     — first frame
      { "type": "snapshot", ...FeedSnapshot } — every change after that

    Inbound frames are read and ignored; reading is how a disconnect is noticed.
    """
    await websocket.accept()
    queue: asyncio.Queue[FeedSnapshot] = asyncio.Queue(maxsize=STREAM_BACKLOG)
    unsubscribe = controller.aggregator.subscribe(lambda snapshot: offer_latest(queue, snapshot))

    async def push_snapshots() -> None:
        while True:
            snapshot = await queue.get()
            await websocket.send_json({"type": "snapshot", **snapshot.model_dump(mode="json")})

    async def drain_inbound() -> None:
        while True:
            await websocket.receive_text()

    try:
        await websocket.send_json({"type": "status", **controller.status().model_dump(mode="json")})
        tasks = {asyncio.create_task(push_snapshots()), asyncio.create_task(drain_inbound())}
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            task.result()
    except WebSocketDisconnect:
        logger.info("Feed WebSocket client disconnected")
    except Exception as exc:
        logger.warning("Feed WebSocket error: %s", exc)
    finally:
        unsubscribe()
