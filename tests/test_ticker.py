"""
Tests for MarketTickerRefresher: last good prices are held across failures.
"""

import asyncio

from nexus_feed.core.errors import TransportFailure
from nexus_feed.models.feed import CryptoPrice
from nexus_feed.services.ticker import MarketTickerRefresher


def _quote(symbol: str, price: float) -> CryptoPrice:
    return CryptoPrice(id=symbol.lower(), symbol=symbol, price=price, change_24h=1.5)


class ScriptedPrices:
    """Stand-in for CoinGeckoPriceAdapter; the last entry repeats."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0

    async def fetch_prices(self):
        response = self.responses[min(self.calls, len(self.responses) - 1)]
        self.calls += 1
        if isinstance(response, Exception):
            raise response
        return response


class TestRefresh:
    async def test_success_replaces_prices(self):
        ticker = MarketTickerRefresher(adapter=ScriptedPrices([_quote("BTC", 64000.0)]))
        prices = await ticker.refresh()
        assert [p.symbol for p in prices] == ["BTC"]
        assert ticker.prices == prices

    async def test_failure_keeps_last_good_prices(self):
        good = [_quote("BTC", 64000.0), _quote("ETH", 3100.0)]
        ticker = MarketTickerRefresher(
            adapter=ScriptedPrices(good, TransportFailure("coingecko", "HTTP 429"))
        )

        await ticker.refresh()
        after_failure = await ticker.refresh()

        assert after_failure == good
        assert ticker.prices == good

    async def test_unexpected_error_also_keeps_prices(self):
        good = [_quote("SOL", 150.0)]
        ticker = MarketTickerRefresher(adapter=ScriptedPrices(good, RuntimeError("boom")))
        await ticker.refresh()
        assert await ticker.refresh() == good

    async def test_failure_before_first_success_is_empty(self):
        ticker = MarketTickerRefresher(adapter=ScriptedPrices(TransportFailure("coingecko", "down")))
        assert await ticker.refresh() == []
        assert ticker.prices == []

    async def test_recovers_after_failure(self):
        ticker = MarketTickerRefresher(
            adapter=ScriptedPrices(
                [_quote("BTC", 1.0)],
                TransportFailure("coingecko", "down"),
                [_quote("BTC", 2.0)],
            )
        )
        for _ in range(3):
            await ticker.refresh()
        assert ticker.prices[0].price == 2.0


class TestTimer:
    async def test_start_fetches_then_repeats(self):
        adapter = ScriptedPrices([_quote("XRP", 0.5)])
        ticker = MarketTickerRefresher(adapter=adapter, interval=0.01)

        await ticker.start()
        assert adapter.calls == 1
        await asyncio.sleep(0.1)
        await ticker.stop()

        assert adapter.calls > 1
        calls_at_stop = adapter.calls
        await asyncio.sleep(0.05)
        assert adapter.calls == calls_at_stop

    async def test_stop_without_start_is_noop(self):
        ticker = MarketTickerRefresher(adapter=ScriptedPrices([]))
        await ticker.stop()
