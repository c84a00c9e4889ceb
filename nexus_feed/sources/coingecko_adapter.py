"""
CoinGeckoPriceAdapter — Spot prices + 24 h change for the ticker strip.

Not a SourceAdapter: prices are a fixed symbol set with no category or page.
A payload missing any tracked asset is rejected as a whole so the ticker
never shows a half-updated row.
"""

from typing import Optional

import httpx

from nexus_feed.core.config import settings
from nexus_feed.core.errors import TransportFailure
from nexus_feed.models.feed import CryptoPrice
from nexus_feed.sources.base import HttpJsonSource

# (CoinGecko asset id, ticker id, display symbol) in display order
TRACKED_ASSETS: tuple[tuple[str, str, str], ...] = (
    ("bitcoin", "btc", "BTC"),
    ("ethereum", "eth", "ETH"),
    ("solana", "sol", "SOL"),
    ("ripple", "xrp", "XRP"),
)


class CoinGeckoPriceAdapter(HttpJsonSource):
    name = "coingecko"

    def __init__(
        self,
        url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        super().__init__(url or settings.coingecko_price_url, transport=transport)

    async def fetch_prices(self) -> list[CryptoPrice]:
        data = await self.get_json(
            params={
                "ids": ",".join(asset for asset, _, _ in TRACKED_ASSETS),
                "vs_currencies": "usd",
                "include_24hr_change": "true",
            }
        )
        if not isinstance(data, dict):
            raise TransportFailure(self.name, "expected a JSON object")

        prices: list[CryptoPrice] = []
        for asset, ticker_id, symbol in TRACKED_ASSETS:
            try:
                quote = data[asset]
                prices.append(
                    CryptoPrice(
                        id=ticker_id,
                        symbol=symbol,
                        price=float(quote["usd"]),
                        change_24h=float(quote["usd_24h_change"]),
                    )
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise TransportFailure(self.name, f"bad quote for {asset}: {exc!r}") from exc
        return prices
