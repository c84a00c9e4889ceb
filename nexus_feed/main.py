"""
Nexus Feed API — ASGI entry point (`uvicorn nexus_feed.main:app`).

On startup the lifespan builds the feed engine and starts it: first the
market ticker, then the feed poller, which does one refresh of the default
category before its timer begins. On shutdown both timers are cancelled.
ENGINE_AUTOSTART=false skips the start step (tests drive the engine
themselves through dependency overrides).

Route groups:
  /health           liveness + poller state
  /api/v1/feed      status, commands, map, WebSocket stream
  /api/v1/market    ticker prices
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from nexus_feed.core import engine as engine_module
from nexus_feed.core.config import settings
from nexus_feed.core.rate_limit import limiter
from nexus_feed.routes.feed import router as feed_router
from nexus_feed.routes.health import API_VERSION
from nexus_feed.routes.health import router as health_router
from nexus_feed.routes.market import router as market_router

# ─── Logging ───────────────────────────────────────────────────────────────────
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)
logger = logging.getLogger(__name__)


# ─── Lifespan ──────────────────────────────────────────────────────────────────
@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Nexus Feed API starting (env: %s)", settings.environment)
    if settings.engine_autostart:
        await engine_module.start_engine()
    else:
        logger.info("ENGINE_AUTOSTART is off; pollers not started")
    yield
    logger.info("Nexus Feed API stopping")
    await engine_module.stop_engine()


# ─── App ───────────────────────────────────────────────────────────────────────
_public_docs = settings.environment != "production"

app = FastAPI(
    title="Nexus Feed API",
    description=(
        "Live aggregated news feed with provider fallback, paging, "
        "deduplication and keyword geo-tagging."
    ),
    version=API_VERSION,
    lifespan=lifespan,
    docs_url="/docs" if _public_docs else None,
    redoc_url="/redoc" if _public_docs else None,
)

# slowapi looks the limiter up on app.state
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ─── Routers ───────────────────────────────────────────────────────────────────
app.include_router(health_router, prefix="/health", tags=["health"])
app.include_router(feed_router)
app.include_router(market_router)


@app.get("/", tags=["root"])
async def root():
    return {
        "name": "Nexus Feed API",
        "version": API_VERSION,
        "status": "running",
        "environment": settings.environment,
        "docs": "/docs" if _public_docs else None,
    }
