"""LCD REST StateReader with endpoint failover.

Smart queries are sent as base64-encoded JSON in the URL path. The first
endpoint that answers the latest-block route is cached; a transport
failure that survives the retry budget drops it so the next call
re-resolves.
"""

from __future__ import annotations

import asyncio
import base64
import json
from typing import Any, Sequence
from urllib.parse import quote

import bittensor as bt
import httpx

from amplifier_rewards.errors import RemoteUnavailable

LATEST_BLOCK_PATH = "/cosmos/base/tendermint/v1beta1/blocks/latest"


def encode_query(query: dict[str, Any]) -> str:
    """Compact JSON -> base64, as the wasm smart-query route expects."""
    raw = json.dumps(query, separators=(",", ":")).encode()
    return base64.b64encode(raw).decode()


def smart_query_path(contract: str, query: dict[str, Any]) -> str:
    return f"/cosmwasm/wasm/v1/contract/{contract}/smart/{quote(encode_query(query), safe='')}"


class LCDStateReader:
    """Read-only client for CosmWasm contract state over LCD endpoints."""

    def __init__(
        self,
        endpoints: Sequence[str],
        timeout: float = 15.0,
        probe_timeout: float = 5.0,
        max_retries: int = 3,
        retry_backoff: float = 1.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not endpoints:
            raise ValueError("at least one LCD endpoint is required")
        self.endpoints = [e.rstrip("/") for e in endpoints]
        self._probe_timeout = probe_timeout
        self._max_retries = max(1, max_retries)
        self._retry_backoff = retry_backoff
        self._endpoint: str | None = None
        self._client = httpx.AsyncClient(timeout=timeout, transport=transport)

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> LCDStateReader:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.close()

    @property
    def endpoint(self) -> str | None:
        """The endpoint currently in use, if one has been resolved."""
        return self._endpoint

    # -- Endpoint selection --

    async def resolve_endpoint(self) -> str:
        """Return the cached endpoint or probe the list in order."""
        if self._endpoint is not None:
            return self._endpoint

        for endpoint in self.endpoints:
            try:
                resp = await self._client.get(
                    f"{endpoint}{LATEST_BLOCK_PATH}", timeout=self._probe_timeout,
                )
            except httpx.HTTPError as e:
                bt.logging.debug({"lcd_endpoint": {"endpoint": endpoint, "error": str(e)}})
                continue
            if resp.status_code == 200:
                self._endpoint = endpoint
                bt.logging.info({"lcd_endpoint": {"resolved": endpoint}})
                return endpoint
            bt.logging.debug({"lcd_endpoint": {"endpoint": endpoint, "status": resp.status_code}})

        raise RemoteUnavailable("All LCD endpoints failed")

    # -- Transport --

    async def _get(self, path: str) -> httpx.Response:
        """GET against the resolved endpoint with retry on transport errors
        and rate limiting."""
        last_error = ""
        for attempt in range(self._max_retries):
            endpoint = await self.resolve_endpoint()
            try:
                resp = await self._client.get(f"{endpoint}{path}")
            except httpx.TransportError as e:
                last_error = str(e) or type(e).__name__
            else:
                if resp.status_code != 429:
                    return resp
                last_error = "rate_limited"

            if attempt == self._max_retries - 1:
                break
            wait = self._retry_backoff * 2 ** attempt
            bt.logging.warning({"lcd_http_client": {"retry": attempt, "wait": wait, "error": last_error}})
            await asyncio.sleep(wait)

        failed = self._endpoint
        self._endpoint = None
        raise RemoteUnavailable(f"LCD request failed: {last_error}", endpoint=failed)

    # -- StateReader interface --

    async def latest_block_height(self) -> int:
        resp = await self._get(LATEST_BLOCK_PATH)
        if resp.status_code != 200:
            raise RemoteUnavailable(f"latest block query failed: {resp.status_code}")
        try:
            return int(resp.json()["block"]["header"]["height"])
        except (KeyError, TypeError, ValueError) as e:
            raise RemoteUnavailable(f"malformed latest block response: {e}") from e

    async def query_contract(self, contract: str, query: dict[str, Any], *, strict: bool = False) -> Any | None:
        try:
            resp = await self._get(smart_query_path(contract, query))
        except RemoteUnavailable as e:
            if strict:
                raise
            bt.logging.warning({"lcd_query_failed": {"contract": contract, "error": str(e)}})
            return None

        if resp.status_code != 200:
            # Contracts answer unknown ids with an error status.
            bt.logging.debug({"lcd_query": {"contract": contract, "status": resp.status_code}})
            return None
        try:
            body = resp.json()
        except ValueError:
            bt.logging.warning({"lcd_query": {"contract": contract, "error": "invalid_json"}})
            return None
        return body.get("data") if isinstance(body, dict) else None


__all__ = ["LCDStateReader", "encode_query", "smart_query_path"]
