"""StateReader protocol - read-only access to remote contract state.

Implementations: LCDStateReader (REST over Cosmos LCD endpoints); tests
use in-memory doubles.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class StateReader(Protocol):
    """Point queries against smart contracts plus the chain head."""

    async def query_contract(self, contract: str, query: dict[str, Any], *, strict: bool = False) -> Any | None:
        """Run a smart query. Returns decoded data, or None when there is none.

        A remote failure also yields None unless ``strict`` is set, in which
        case it raises RemoteUnavailable.
        """
        ...

    async def latest_block_height(self) -> int:
        """Current block height. Raises RemoteUnavailable on failure."""
        ...


__all__ = ["StateReader"]
