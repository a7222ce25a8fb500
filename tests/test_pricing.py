from __future__ import annotations

from datetime import date
from decimal import Decimal

import httpx

from wealthtrack.services.pricing import CachingPriceSource, HttpPriceSource, InMemoryPriceSource


async def test_in_memory_source_snaps_to_previous_price():
    source = InMemoryPriceSource({"INFY": {date(2024, 3, 28): "1500.50", date(2024, 4, 2): "1510"}})
    assert await source.get_price("INFY", date(2024, 3, 31)) == Decimal("1500.50")
    assert await source.get_price("INFY", date(2024, 3, 1)) is None
    assert await source.get_price("TCS", date(2024, 3, 31)) is None


async def test_caching_source_calls_delegate_once_per_key():
    calls: list[tuple[str, date]] = []

    class CountingSource:
        async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
            calls.append((symbol, as_of))
            return Decimal("10")

    cached = CachingPriceSource(CountingSource())
    for _ in range(3):
        assert await cached.get_price("GOLD", date(2024, 1, 31)) == Decimal("10")
    await cached.get_price("GOLD", date(2024, 2, 29))
    assert calls == [("GOLD", date(2024, 1, 31)), ("GOLD", date(2024, 2, 29))]


async def test_http_source_parses_prices_and_treats_errors_as_absent():
    def handler(request: httpx.Request) -> httpx.Response:
        symbol = request.url.path.rsplit("/", 1)[-1]
        if symbol == "INFY":
            assert request.url.params["as_of"] == "2024-03-31"
            assert request.headers["Authorization"] == "Bearer secret"
            return httpx.Response(200, json={"price_minor": "150025"})
        if symbol == "BROKEN":
            return httpx.Response(500, json={"detail": "boom"})
        return httpx.Response(404, json={"detail": "unknown symbol"})

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        source = HttpPriceSource("http://prices.test", token="secret", client=client)
        assert await source.get_price("INFY", date(2024, 3, 31)) == Decimal("150025")
        assert await source.get_price("MISSING", date(2024, 3, 31)) is None
        assert await source.get_price("BROKEN", date(2024, 3, 31)) is None


async def test_http_source_without_url_is_disabled():
    source = HttpPriceSource("", token=None)
    source.base_url = ""
    assert await source.get_price("INFY", date(2024, 3, 31)) is None
