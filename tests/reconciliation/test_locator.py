"""Tests for latest-id discovery."""

import math

import pytest

from amplifier_rewards.reconciliation.locator import CountingProbe, find_latest


def _make_sequence(latest: int):
    async def exists_at(n: int) -> bool:
        return 1 <= n <= latest
    return exists_at


@pytest.mark.asyncio
class TestFindLatest:

    @pytest.mark.parametrize("latest", [0, 1, 2, 15, 16, 17, 37, 10_000, 1_234_567])
    async def test_finds_maximum(self, latest):
        assert await find_latest(_make_sequence(latest)) == latest

    async def test_empty_sequence_single_lookup(self):
        probe = CountingProbe(_make_sequence(0))
        assert await find_latest(probe) == 0
        assert probe.calls == 1

    @pytest.mark.parametrize("latest", [37, 10_000, 1_000_000])
    async def test_logarithmic_lookups(self, latest):
        probe = CountingProbe(_make_sequence(latest))
        await find_latest(probe)
        assert probe.calls <= 2 * math.ceil(math.log2(latest)) + 3

    async def test_small_initial_probe(self):
        assert await find_latest(_make_sequence(5), initial_probe=2) == 5

    async def test_probe_limit_caps_search(self):
        assert await find_latest(_make_sequence(10_000), initial_probe=16, max_probe=64) == 64

    async def test_failed_lookup_undershoots_never_overshoots(self):
        # Readers report a failed lookup as absent.
        async def exists_at(n: int) -> bool:
            return n <= 30 and n != 24

        assert await find_latest(exists_at) == 23
