"""Latest-id discovery for append-only, 1-based record sequences.

The remote contracts expose records only through point lookups, so the
newest id is found by exponential probing followed by a binary search
between the last confirmed id and the first missing one.

A lookup that fails in transport is reported as "does not exist" by the
reader. That keeps the locator from ever overcounting existence, at the
cost of possibly undershooting the true maximum during an outage.
"""

from __future__ import annotations

from typing import Awaitable, Callable

import bittensor as bt

ExistsAt = Callable[[int], Awaitable[bool]]

INITIAL_PROBE = 16
MAX_PROBE = 1 << 40


class CountingProbe:
    """Wraps an ``exists_at`` callable and counts remote lookups."""

    def __init__(self, exists_at: ExistsAt):
        self._exists_at = exists_at
        self.calls = 0

    async def __call__(self, record_id: int) -> bool:
        self.calls += 1
        return await self._exists_at(record_id)


async def find_latest(
    exists_at: ExistsAt,
    initial_probe: int = INITIAL_PROBE,
    max_probe: int = MAX_PROBE,
) -> int:
    """Largest ``n`` with ``exists_at(n)`` true, or 0 for an empty sequence.

    Assumes records exist for every ``1 <= n <= M`` and for no ``n > M``.
    Issues O(log M) lookups.
    """
    if not await exists_at(1):
        return 0

    known = 1
    probe = max(2, initial_probe)
    while await exists_at(probe):
        known = probe
        if probe >= max_probe:
            bt.logging.warning({"id_locator": {"status": "probe_limit", "bound": probe}})
            return known
        probe *= 2
    missing = probe

    while missing - known > 1:
        mid = (known + missing) // 2
        if await exists_at(mid):
            known = mid
        else:
            missing = mid
    return known


__all__ = ["CountingProbe", "ExistsAt", "find_latest"]
