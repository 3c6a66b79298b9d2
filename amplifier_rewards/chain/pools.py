"""Rewards pool queries and per-chain pool overview.

Each amplifier chain can have a voting pool (keyed by its VotingVerifier)
and a signing pool (keyed by the global Multisig, or by the chain's
MultisigProver for older pools). A pool's per-epoch rewards are split
equally among the verifiers that qualify in that epoch.
"""

from __future__ import annotations

import asyncio

import bittensor as bt
from pydantic import BaseModel, ConfigDict, ValidationError

from .deployment import ChainConfig, DeploymentConfig
from .interface import StateReader
from .models import ActiveVerifier, RewardsPool

# Measured average block time on Axelar mainnet.
BLOCK_TIME_SECONDS = 1.84
BLOCKS_PER_DAY = 24 * 60 * 60 / BLOCK_TIME_SECONDS
BLOCKS_PER_WEEK = BLOCKS_PER_DAY * 7
BLOCKS_PER_MONTH = BLOCKS_PER_DAY * 30

SERVICE_NAME = "amplifier"


async def fetch_rewards_pool(
    reader: StateReader,
    rewards_contract: str,
    chain_name: str,
    contract: str,
    strict: bool = False,
) -> RewardsPool | None:
    """The pool for (chain, contract), or None if there is none.

    With ``strict`` a transport failure raises RemoteUnavailable instead of
    reading as a missing pool.
    """
    result = await reader.query_contract(rewards_contract, {
        "rewards_pool": {"pool_id": {"chain_name": chain_name, "contract": contract}},
    }, strict=strict)
    if not isinstance(result, dict):
        return None
    try:
        return RewardsPool.model_validate(result)
    except ValidationError as e:
        bt.logging.warning({"rewards_pool_invalid": {"chain": chain_name, "error": str(e)}})
        return None


async def fetch_active_verifiers(
    reader: StateReader,
    service_registry: str,
    chain_name: str,
) -> list[ActiveVerifier]:
    result = await reader.query_contract(service_registry, {
        "active_verifiers": {"service_name": SERVICE_NAME, "chain_name": chain_name},
    })
    if not isinstance(result, list):
        return []
    return [ActiveVerifier.from_payload(v) for v in result if isinstance(v, dict)]


def rewards_per_verifier(rewards_per_epoch: float, active_verifiers: int) -> float:
    """Equal share per verifier; the whole pool when nobody is active."""
    if active_verifiers > 0:
        return rewards_per_epoch / active_verifiers
    return rewards_per_epoch


class PoolMetrics(BaseModel):
    """One rewards pool with derived per-verifier estimates."""

    model_config = ConfigDict(frozen=True)

    chain_name: str
    pool_type: str  # "voting" | "signing"
    pool_address: str

    balance: float
    rewards_per_epoch: float
    epoch_duration_blocks: int
    current_epoch: int
    participation_threshold: float

    active_verifiers: int
    rewards_per_verifier_per_epoch: float
    estimated_weekly_rewards: float
    estimated_monthly_rewards: float

    balance_usd: float
    epoch_rewards_usd: float
    weekly_rewards_usd: float
    monthly_rewards_usd: float


def calculate_pool_metrics(
    pool: RewardsPool,
    active_verifiers: int,
    price_usd: float,
    chain_name: str,
    pool_type: str,
    pool_address: str,
) -> PoolMetrics:
    numerator, denominator = pool.participation_threshold
    threshold = numerator / denominator if denominator else 0.0
    per_verifier = rewards_per_verifier(pool.rewards_per_epoch_axl, active_verifiers)

    epochs_per_week = BLOCKS_PER_WEEK / pool.epoch_duration if pool.epoch_duration else 0.0
    epochs_per_month = BLOCKS_PER_MONTH / pool.epoch_duration if pool.epoch_duration else 0.0
    weekly = per_verifier * epochs_per_week
    monthly = per_verifier * epochs_per_month

    return PoolMetrics(
        chain_name=chain_name,
        pool_type=pool_type,
        pool_address=pool_address,
        balance=pool.balance_axl,
        rewards_per_epoch=pool.rewards_per_epoch_axl,
        epoch_duration_blocks=pool.epoch_duration,
        current_epoch=pool.current_epoch_num,
        participation_threshold=threshold,
        active_verifiers=active_verifiers,
        rewards_per_verifier_per_epoch=per_verifier,
        estimated_weekly_rewards=weekly,
        estimated_monthly_rewards=monthly,
        balance_usd=pool.balance_axl * price_usd,
        epoch_rewards_usd=per_verifier * price_usd,
        weekly_rewards_usd=weekly * price_usd,
        monthly_rewards_usd=monthly * price_usd,
    )


class ChainRewards(BaseModel):
    """Voting + signing pools of one chain, with combined totals."""

    model_config = ConfigDict(frozen=True)

    chain_name: str
    chain_id: str
    status: str  # "active" | "inactive"
    voting_pool: PoolMetrics | None = None
    signing_pool: PoolMetrics | None = None

    pool_rewards_per_epoch: float = 0.0
    total_rewards_per_epoch: float = 0.0
    total_weekly_rewards: float = 0.0
    total_monthly_rewards: float = 0.0
    total_pool_balance: float = 0.0
    price_usd: float = 0.0

    @property
    def total_monthly_rewards_usd(self) -> float:
        return self.total_monthly_rewards * self.price_usd


def _funded(pool: RewardsPool | None) -> bool:
    return pool is not None and pool.balance > 0


def _sum(pools: list[PoolMetrics | None], attr: str) -> float:
    return sum(getattr(p, attr) for p in pools if p is not None)


async def fetch_chain_rewards(
    reader: StateReader,
    deployment: DeploymentConfig,
    chain: ChainConfig,
    price_usd: float,
) -> ChainRewards:
    """Query both pools of a chain. Unfunded pools count as absent."""
    rewards_contract = deployment.rewards_address
    service_registry = deployment.service_registry_address
    active_count: int | None = None

    async def _active() -> int:
        nonlocal active_count
        if active_count is None:
            active_count = len(await fetch_active_verifiers(reader, service_registry, chain.chain_key))
        return active_count

    voting_pool = None
    if chain.voting_verifier_address:
        pool = await fetch_rewards_pool(
            reader, rewards_contract, chain.chain_key, chain.voting_verifier_address,
        )
        if _funded(pool):
            voting_pool = calculate_pool_metrics(
                pool, await _active(), price_usd,
                chain.chain_name, "voting", chain.voting_verifier_address,
            )

    # Governance configures signing pools on the global Multisig; older
    # pools were keyed by the chain's MultisigProver.
    multisig = deployment.contracts.get("Multisig") or {}
    signing_candidates = [multisig.get("address"), chain.multisig_prover_address]
    signing_pool = None
    for contract in signing_candidates:
        if not contract:
            continue
        pool = await fetch_rewards_pool(reader, rewards_contract, chain.chain_key, contract)
        if _funded(pool):
            signing_pool = calculate_pool_metrics(
                pool, await _active(), price_usd,
                chain.chain_name, "signing", contract,
            )
            break

    pools = [voting_pool, signing_pool]
    return ChainRewards(
        chain_name=chain.chain_name,
        chain_id=chain.chain_id,
        status="active" if voting_pool is not None or signing_pool is not None else "inactive",
        voting_pool=voting_pool,
        signing_pool=signing_pool,
        pool_rewards_per_epoch=_sum(pools, "rewards_per_epoch"),
        total_rewards_per_epoch=_sum(pools, "rewards_per_verifier_per_epoch"),
        total_weekly_rewards=_sum(pools, "estimated_weekly_rewards"),
        total_monthly_rewards=_sum(pools, "estimated_monthly_rewards"),
        total_pool_balance=_sum(pools, "balance"),
        price_usd=price_usd,
    )


async def fetch_all_chain_rewards(
    reader: StateReader,
    deployment: DeploymentConfig,
    price_usd: float,
    concurrency: int = 4,
) -> list[ChainRewards]:
    """Pool overview for every chain: active first, then by monthly rewards."""
    semaphore = asyncio.Semaphore(max(1, concurrency))
    chains = deployment.chain_configs()

    async def _one(chain: ChainConfig) -> ChainRewards:
        async with semaphore:
            return await fetch_chain_rewards(reader, deployment, chain, price_usd)

    results = await asyncio.gather(*(_one(c) for c in chains))
    bt.logging.info({"pool_overview": {
        "chains": len(results),
        "active": sum(1 for r in results if r.status == "active"),
    }})
    return sorted(results, key=lambda r: (r.status != "active", -r.total_monthly_rewards))


__all__ = [
    "BLOCK_TIME_SECONDS",
    "ChainRewards",
    "PoolMetrics",
    "calculate_pool_metrics",
    "fetch_active_verifiers",
    "fetch_all_chain_rewards",
    "fetch_chain_rewards",
    "fetch_rewards_pool",
    "rewards_per_verifier",
]
