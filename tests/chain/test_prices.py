"""Tests for the AXL price cache."""

import httpx
import pytest

from amplifier_rewards.chain.prices import PriceCache


class _Clock:
    def __init__(self, now: float = 1000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


def _make_cache(responses: list, clock: _Clock, **kwargs) -> tuple[PriceCache, list]:
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        response = responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return PriceCache(client=client, clock=clock, **kwargs), requests


@pytest.mark.asyncio
class TestPriceCache:

    async def test_fetches_and_caches(self):
        clock = _Clock()
        cache, requests = _make_cache([httpx.Response(200, json={"axelar": {"usd": 0.42}})], clock)

        assert await cache.get_usd() == 0.42
        clock.now += 30
        assert await cache.get_usd() == 0.42
        assert len(requests) == 1
        assert requests[0].url.params["ids"] == "axelar"
        assert cache.quote.fetched_at == 1000.0

    async def test_refreshes_after_ttl(self):
        clock = _Clock()
        cache, requests = _make_cache([
            httpx.Response(200, json={"axelar": {"usd": 0.42}}),
            httpx.Response(200, json={"axelar": {"usd": 0.50}}),
        ], clock, ttl_seconds=60)

        await cache.get_usd()
        clock.now += 61
        assert await cache.get_usd() == 0.50
        assert len(requests) == 2

    async def test_failure_keeps_last_quote(self):
        clock = _Clock()
        cache, _ = _make_cache([
            httpx.Response(200, json={"axelar": {"usd": 0.42}}),
            httpx.Response(429),
        ], clock)

        await cache.get_usd()
        clock.now += 120
        assert await cache.get_usd() == 0.42

    async def test_failure_without_quote_uses_default(self):
        cache, _ = _make_cache([httpx.ConnectError("down")], _Clock(), default_usd=0.33)
        assert await cache.get_usd() == 0.33
        assert cache.quote is None

    async def test_malformed_body_uses_default(self):
        cache, _ = _make_cache([httpx.Response(200, json={"bitcoin": {"usd": 1}})], _Clock())
        assert await cache.get_usd() == 0.5

    async def test_clear(self):
        clock = _Clock()
        cache, requests = _make_cache([
            httpx.Response(200, json={"axelar": {"usd": 0.42}}),
            httpx.Response(200, json={"axelar": {"usd": 0.44}}),
        ], clock)
        await cache.get_usd()
        cache.clear()
        assert await cache.get_usd() == 0.44
        assert len(requests) == 2
