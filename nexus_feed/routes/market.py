"""
market.py — Market ticker routes.

Route:
  GET /api/v1/market/prices — last good price list (may be empty before the first success)
"""

from fastapi import APIRouter, Depends

from nexus_feed.core.engine import get_ticker
from nexus_feed.models.feed import CryptoPrice
from nexus_feed.services.ticker import MarketTickerRefresher

router = APIRouter(prefix="/api/v1/market", tags=["market"])


@router.get("/prices", response_model=list[CryptoPrice])
async def get_prices(ticker: MarketTickerRefresher = Depends(get_ticker)):
    return ticker.prices
