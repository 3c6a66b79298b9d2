"""AXL/USD price quote with a short-lived cache.

Each refresh replaces an immutable ``PriceQuote``; readers never see a
half-updated value.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable

import bittensor as bt
import httpx

COINGECKO_PRICE_URL = "https://api.coingecko.com/api/v3/simple/price"


@dataclass(frozen=True)
class PriceQuote:
    usd: float
    fetched_at: float


class PriceCache:
    """Caches the CoinGecko AXL price for ``ttl_seconds``.

    On fetch failure the last quote is returned, or ``default_usd`` when
    there has never been one.
    """

    def __init__(
        self,
        ttl_seconds: float = 60.0,
        default_usd: float = 0.5,
        client: httpx.AsyncClient | None = None,
        url: str = COINGECKO_PRICE_URL,
        clock: Callable[[], float] = time.time,
    ):
        self.ttl_seconds = ttl_seconds
        self.default_usd = default_usd
        self.url = url
        self._client = client or httpx.AsyncClient(timeout=10.0)
        self._owns_client = client is None
        self._clock = clock
        self._quote: PriceQuote | None = None

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    @property
    def quote(self) -> PriceQuote | None:
        return self._quote

    def clear(self) -> None:
        self._quote = None

    async def get_usd(self) -> float:
        now = self._clock()
        quote = self._quote
        if quote is not None and now - quote.fetched_at < self.ttl_seconds:
            return quote.usd

        try:
            resp = await self._client.get(
                self.url, params={"ids": "axelar", "vs_currencies": "usd"},
            )
            resp.raise_for_status()
            usd = float(resp.json()["axelar"]["usd"])
        except (httpx.HTTPError, KeyError, TypeError, ValueError) as e:
            fallback = quote.usd if quote is not None else self.default_usd
            bt.logging.warning({"price_fetch_failed": {"error": str(e), "fallback": fallback}})
            return fallback

        self._quote = PriceQuote(usd=usd, fetched_at=now)
        bt.logging.debug({"price_quote": {"usd": usd}})
        return usd


__all__ = ["COINGECKO_PRICE_URL", "PriceCache", "PriceQuote"]
