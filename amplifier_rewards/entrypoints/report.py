"""Rewards report entrypoint.

Sub-commands:
    performance <address>   per-epoch participation and pending-reward estimate
    pools                   voting/signing rewards pools of every chain
    verifiers               active verifiers of one chain

Usage:
    amplifier-rewards performance axelar1... --chain flow --kind signing --epochs 5
    amplifier-rewards pools --json
    amplifier-rewards verifiers --chain flow --logging.debug
"""

from __future__ import annotations

import argparse
import asyncio
import signal
import sys
from typing import Any

import bittensor as bt

from amplifier_rewards.chain.deployment import load_deployment_config
from amplifier_rewards.chain.http_client import LCDStateReader
from amplifier_rewards.chain.pools import fetch_active_verifiers, fetch_all_chain_rewards
from amplifier_rewards.chain.prices import PriceCache
from amplifier_rewards.config import Settings, load_settings
from amplifier_rewards.constants import display_name
from amplifier_rewards.errors import RewardsError
from amplifier_rewards.reconciliation.engine import ParticipationReport, ReconciliationEngine


def _add_common_args(parser: argparse.ArgumentParser) -> None:
    bt.logging.add_args(parser)
    parser.add_argument("--lcd", type=str, default=None, help="Comma-separated LCD endpoints, tried in order")
    parser.add_argument("--deployment-config", type=str, default=None, help="Deployment JSON URL or local path")
    parser.add_argument("--json", action="store_true", help="Print JSON instead of a table")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Axelar amplifier verifier rewards")
    sub = parser.add_subparsers(dest="command", required=True)

    perf = sub.add_parser("performance", help="Per-epoch participation of one verifier")
    perf.add_argument("address", type=str, help="Verifier address (axelar1...)")
    perf.add_argument("--chain", type=str, required=True, help="Chain name, e.g. flow")
    perf.add_argument("--kind", choices=["signing", "voting"], default="signing")
    perf.add_argument("--epochs", type=int, default=None, help="Number of recent unpaid epochs to check")
    perf.add_argument("--timeout", type=float, default=None, help="Give up scanning after this many seconds")
    perf.add_argument("--concurrency", type=int, default=None, help="Outstanding record lookups")
    _add_common_args(perf)

    pools = sub.add_parser("pools", help="Rewards pools of every chain")
    _add_common_args(pools)

    verifiers = sub.add_parser("verifiers", help="Active verifiers of one chain")
    verifiers.add_argument("--chain", type=str, required=True)
    _add_common_args(verifiers)

    return parser


def _settings_from_args(args: argparse.Namespace) -> Settings:
    overrides: dict[str, Any] = {
        "deployment_config_url": args.deployment_config,
        "epochs_to_check": getattr(args, "epochs", None),
        "scan_timeout": getattr(args, "timeout", None),
        "scan_concurrency": getattr(args, "concurrency", None),
    }
    if args.lcd:
        overrides["lcd_endpoints"] = [e.strip() for e in args.lcd.split(",") if e.strip()]
    return load_settings(overrides)


def _configure_logging(args: argparse.Namespace) -> None:
    if getattr(args, "logging.trace", False):
        bt.logging.set_trace(True)
    elif getattr(args, "logging.debug", False):
        bt.logging.set_debug(True)


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def print_performance(result: ParticipationReport) -> None:
    report = result.report
    print(f"\n{display_name(result.participant, 44)} on {result.chain_name} ({result.kind})")
    print(f"{'=' * 72}")
    print(
        f"Block {result.current_height:,}  epoch {result.current_epoch}  "
        f"last distributed {result.last_distribution_epoch}  "
        f"threshold {report.threshold:.0%}"
    )
    print(f"Latest record id {result.latest_record_id:,}, {result.records_scanned:,} scanned")

    print(f"\n{'Epoch':>6}  {'Records':>8}  {'Joined':>8}  {'Rate':>7}  {'Qualified':<9}  {'Status':<16}")
    print(f"{'-' * 6}  {'-' * 8}  {'-' * 8}  {'-' * 7}  {'-' * 9}  {'-' * 16}")
    for row in report.epochs:
        print(
            f"{row.epoch:>6}  {row.total:>8}  {row.participated:>8}  {row.rate:>7.1%}  "
            f"{'yes' if row.qualified else 'no':<9}  {row.status.value:<16}"
        )

    print(f"\nQualified in {report.qualified_count}/{report.epochs_scanned} epochs")
    print(
        f"Unpaid epochs: {report.unpaid_epoch_count}, "
        f"reward per epoch: {report.reward_per_participant_per_epoch:,.2f} AXL "
        f"({result.active_verifiers} active verifiers)"
    )
    print(f"Estimated pending reward: {report.estimated_pending_reward:,.2f} AXL ({report.confidence})")
    if report.partial:
        print(f"WARNING: scan stopped early ({report.stop_reason.value}); counts are a lower bound.")


def print_pools(chains: list) -> None:
    print(f"\n{'Chain':<20}  {'Status':<8}  {'Voting/ep':>10}  {'Signing/ep':>10}  {'Monthly AXL':>12}  {'Monthly USD':>12}")
    print(f"{'-' * 20}  {'-' * 8}  {'-' * 10}  {'-' * 10}  {'-' * 12}  {'-' * 12}")
    for c in chains:
        voting = f"{c.voting_pool.rewards_per_verifier_per_epoch:,.2f}" if c.voting_pool else "-"
        signing = f"{c.signing_pool.rewards_per_verifier_per_epoch:,.2f}" if c.signing_pool else "-"
        print(
            f"{c.chain_name[:20]:<20}  {c.status:<8}  {voting:>10}  {signing:>10}  "
            f"{c.total_monthly_rewards:>12,.2f}  {c.total_monthly_rewards_usd:>12,.2f}"
        )


def print_verifiers(chain: str, verifiers: list) -> None:
    print(f"\nActive verifiers on {chain}: {len(verifiers)}")
    print(f"{'Operator':<28}  {'Address':<46}  {'Bonded AXL':>12}")
    print(f"{'-' * 28}  {'-' * 46}  {'-' * 12}")
    for v in sorted(verifiers, key=lambda v: v.bonded_amount, reverse=True):
        print(f"{display_name(v.address, 28):<28}  {v.address:<46}  {v.bonded_amount:>12,.0f}")


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------


async def run_performance(args: argparse.Namespace, settings: Settings, reader: LCDStateReader) -> int:
    deployment = await load_deployment_config(settings.deployment_config_url)
    engine = ReconciliationEngine(reader, deployment, settings)

    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        loop.add_signal_handler(sig, cancel.set)

    progress = None if args.json else (lambda line: print(line, file=sys.stderr))
    try:
        result = await engine.reconcile(
            args.address,
            args.chain,
            kind=args.kind,
            epochs_to_check=settings.epochs_to_check,
            progress=progress,
            cancel=cancel,
        )
    finally:
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.remove_signal_handler(sig)

    if result is None:
        print(f"No {args.kind} rewards pool for chain {args.chain}")
        return 0
    if args.json:
        print(result.model_dump_json(indent=2))
    else:
        print_performance(result)
    return 0


async def run_pools(args: argparse.Namespace, settings: Settings, reader: LCDStateReader) -> int:
    deployment = await load_deployment_config(settings.deployment_config_url)
    prices = PriceCache(ttl_seconds=settings.price_ttl_seconds, default_usd=settings.default_price_usd)
    try:
        price = await prices.get_usd()
    finally:
        await prices.close()

    chains = await fetch_all_chain_rewards(reader, deployment, price, concurrency=settings.scan_concurrency)
    if args.json:
        print("[" + ",".join(c.model_dump_json() for c in chains) + "]")
    else:
        print(f"AXL price: ${price:.4f}")
        print_pools(chains)
    return 0


async def run_verifiers(args: argparse.Namespace, settings: Settings, reader: LCDStateReader) -> int:
    deployment = await load_deployment_config(settings.deployment_config_url)
    verifiers = await fetch_active_verifiers(
        reader, deployment.service_registry_address, args.chain.lower(),
    )
    if args.json:
        print("[" + ",".join(v.model_dump_json() for v in verifiers) + "]")
    else:
        print_verifiers(args.chain, verifiers)
    return 0


COMMANDS = {
    "performance": run_performance,
    "pools": run_pools,
    "verifiers": run_verifiers,
}


async def run(args: argparse.Namespace, settings: Settings) -> int:
    async with LCDStateReader(
        settings.lcd_endpoints,
        timeout=settings.request_timeout,
        probe_timeout=settings.probe_timeout,
        max_retries=settings.max_retries,
        retry_backoff=settings.retry_backoff,
    ) as reader:
        return await COMMANDS[args.command](args, settings, reader)


def main(argv: list[str] | None = None) -> None:
    # .env is read by load_settings
    args = build_parser().parse_args(argv)
    _configure_logging(args)

    try:
        settings = _settings_from_args(args)
        code = asyncio.run(run(args, settings))
    except RewardsError as e:
        bt.logging.error({"amplifier_rewards": {"command": args.command, "error": str(e)}})
        sys.exit(1)
    except KeyboardInterrupt:
        bt.logging.info({"amplifier_rewards": "keyboard_interrupt"})
        sys.exit(130)
    sys.exit(code)


if __name__ == "__main__":
    main()
