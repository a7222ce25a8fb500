"""Market price lookups for quantity-bearing investments.

The engine never fetches prices itself during valuation; the snapshot
builder resolves one price per (symbol, date) through a ``PriceSource`` and
passes it to the pure valuation functions. Prices are ``Decimal`` minor
units per unit (per gram of 24K gold for the gold spot symbol).
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping, MutableMapping, Protocol

import httpx

from wealthtrack.config import get_settings

logger = logging.getLogger(__name__)


class PriceSource(Protocol):
    """Pluggable price provider."""

    async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
        ...


class InMemoryPriceSource:
    """Simple price source for tests and offline recomputation.

    Returns the latest price on or before the requested date.
    """

    def __init__(self, prices: Mapping[str, Mapping[date, Decimal | str | int]] | None = None):
        self._prices: dict[str, dict[date, Decimal]] = {}
        for symbol, series in (prices or {}).items():
            self._prices[symbol] = {d: Decimal(str(v)) for d, v in series.items()}

    async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
        series = self._prices.get(symbol)
        if not series:
            return None
        eligible = [d for d in series if d <= as_of]
        if not eligible:
            return None
        return series[max(eligible)]


class CachingPriceSource:
    """Cache wrapper to avoid refetching the same (symbol, date) pair."""

    def __init__(self, delegate: PriceSource):
        self.delegate = delegate
        self._cache: MutableMapping[tuple[str, date], Decimal | None] = {}

    async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
        key = (symbol, as_of)
        if key not in self._cache:
            self._cache[key] = await self.delegate.get_price(symbol, as_of)
        return self._cache[key]


class HttpPriceSource:
    """Price source backed by the external pricing service.

    ``GET {base_url}/prices/{symbol}?as_of=YYYY-MM-DD`` is expected to answer
    with ``{"price_minor": "..."}``. Missing prices and transport failures
    are reported as absent so valuation can fall back to its own data.
    """

    def __init__(
        self,
        base_url: str | None = None,
        *,
        token: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        settings = get_settings()
        self.base_url = (base_url or settings.pricing_service_url or "").rstrip("/")
        self.token = token if token is not None else settings.pricing_service_token
        self.timeout_seconds = timeout_seconds or settings.pricing_service_timeout_seconds
        self._client = client

    def _headers(self) -> dict[str, str]:
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}

    async def _fetch(self, client: httpx.AsyncClient, symbol: str, as_of: date) -> httpx.Response:
        return await client.get(
            f"{self.base_url}/prices/{symbol}",
            params={"as_of": as_of.isoformat()},
            headers=self._headers(),
        )

    async def get_price(self, symbol: str, as_of: date) -> Decimal | None:
        if not self.base_url:
            return None
        try:
            if self._client is not None:
                response = await self._fetch(self._client, symbol, as_of)
            else:
                async with httpx.AsyncClient(timeout=self.timeout_seconds) as client:
                    response = await self._fetch(client, symbol, as_of)
        except httpx.HTTPError as exc:
            logger.warning("Price lookup for %s on %s failed: %s", symbol, as_of, exc)
            return None

        if response.status_code == 404:
            return None
        if response.status_code >= 400:
            logger.warning(
                "Pricing service returned %s for %s on %s", response.status_code, symbol, as_of
            )
            return None
        try:
            payload: Any = response.json()
            return _parse_price(payload)
        except (ValueError, InvalidOperation) as exc:
            logger.warning("Pricing service returned an invalid payload for %s: %s", symbol, exc)
            return None


def _parse_price(payload: Any) -> Decimal | None:
    if not isinstance(payload, dict):
        raise ValueError("price payload is not an object")
    raw = payload.get("price_minor")
    if raw is None:
        return None
    price = Decimal(str(raw))
    return price if price > 0 else None


def default_price_source() -> PriceSource:
    """Price source configured from settings, cached for one unit of work."""

    settings = get_settings()
    if settings.pricing_service_url:
        return CachingPriceSource(HttpPriceSource())
    return InMemoryPriceSource()


__all__ = [
    "PriceSource",
    "InMemoryPriceSource",
    "CachingPriceSource",
    "HttpPriceSource",
    "default_price_source",
]
