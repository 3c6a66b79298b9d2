"""Check LCD endpoint health.

Probes each configured endpoint's latest-block route and reports:
- HTTP status and response time
- Reported block height and lag behind the highest endpoint
- Which endpoint the reader would pick (first healthy one in order)

Usage:
    python scripts/dev/check_endpoints.py
    python scripts/dev/check_endpoints.py --lcd https://a.example,https://b.example --lag-blocks 20
"""

from __future__ import annotations

import argparse
import sys
import time

import httpx

from amplifier_rewards.chain.http_client import LATEST_BLOCK_PATH
from amplifier_rewards.config import DEFAULT_LCD_ENDPOINTS


def probe(client: httpx.Client, endpoint: str) -> tuple[int | None, int | None, float]:
    """(status, height, seconds) for one endpoint; status None on transport error."""
    started = time.monotonic()
    try:
        resp = client.get(f"{endpoint.rstrip('/')}{LATEST_BLOCK_PATH}")
    except httpx.HTTPError:
        return None, None, time.monotonic() - started
    elapsed = time.monotonic() - started
    height = None
    if resp.status_code == 200:
        try:
            height = int(resp.json()["block"]["header"]["height"])
        except (KeyError, TypeError, ValueError):
            height = None
    return resp.status_code, height, elapsed


def main() -> None:
    parser = argparse.ArgumentParser(description="Check LCD endpoint health")
    parser.add_argument("--lcd", type=str, default=None, help="Comma-separated endpoints (default: built-in list)")
    parser.add_argument("--timeout", type=float, default=5.0, help="Per-endpoint timeout in seconds")
    parser.add_argument("--lag-blocks", type=int, default=10, help="Flag endpoints this many blocks behind")
    args = parser.parse_args()

    endpoints = [e.strip() for e in args.lcd.split(",")] if args.lcd else list(DEFAULT_LCD_ENDPOINTS)

    print(f"Probing {len(endpoints)} LCD endpoints...")
    with httpx.Client(timeout=args.timeout) as client:
        results = [(e, *probe(client, e)) for e in endpoints]

    heights = [h for _, _, h, _ in results if h is not None]
    best = max(heights) if heights else None

    print(f"\n{'Endpoint':<44}  {'HTTP':>5}  {'Height':>12}  {'Lag':>6}  {'Time':>7}  {'Status':<10}")
    print(f"{'-' * 44}  {'-' * 5}  {'-' * 12}  {'-' * 6}  {'-' * 7}  {'-' * 10}")

    selected = None
    for endpoint, status, height, elapsed in results:
        if status is None:
            print(f"{endpoint[:44]:<44}  {'-':>5}  {'-':>12}  {'-':>6}  {elapsed:>6.2f}s  {'DOWN':<10}")
            continue
        if status != 200 or height is None:
            print(f"{endpoint[:44]:<44}  {status:>5}  {'-':>12}  {'-':>6}  {elapsed:>6.2f}s  {'ERROR':<10}")
            continue

        lag = best - height
        state = "LAGGING" if lag > args.lag_blocks else "OK"
        if selected is None:
            selected = endpoint
        print(f"{endpoint[:44]:<44}  {status:>5}  {height:>12,}  {lag:>6}  {elapsed:>6.2f}s  {state:<10}")

    print(f"\n{'=' * 72}")
    print(f"Healthy endpoints: {len(heights)}/{len(endpoints)}")
    if selected is None:
        print("No healthy endpoint; every query would fail.")
        sys.exit(1)
    print(f"Reader would use: {selected}")


if __name__ == "__main__":
    main()
