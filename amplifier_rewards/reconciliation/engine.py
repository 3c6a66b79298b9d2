"""Participation reconciliation for one verifier on one chain.

Flow per request:
    pool -> chain head -> unpaid epochs -> epoch windows -> latest record id
    -> backward scan -> qualification report

Nothing is cached between requests; every call reads fresh remote state.
"""

from __future__ import annotations

import asyncio

import bittensor as bt
from pydantic import BaseModel, ConfigDict

from amplifier_rewards.chain.deployment import DeploymentConfig
from amplifier_rewards.chain.interface import StateReader
from amplifier_rewards.chain.pools import (
    fetch_active_verifiers,
    fetch_rewards_pool,
    rewards_per_verifier,
)
from amplifier_rewards.config import Settings

from .evaluator import evaluate
from .locator import CountingProbe, find_latest
from .models import EpochRange, ReconciliationReport, Record, ScanResult, StopReason
from .records import RecordKind, get_record_kind
from .scanner import ProgressSink, RecordScanner
from .windows import epochs_to_scan, lower_bound, unpaid_epochs, windows_for


class ParticipationReport(BaseModel):
    """Reconciliation result plus the chain context it was computed in."""

    model_config = ConfigDict(frozen=True)

    participant: str
    chain_name: str
    kind: str  # "signing" | "voting"
    contract: str
    current_height: int
    current_epoch: int
    last_distribution_epoch: int
    epoch_length: int
    active_verifiers: int
    pool_rewards_per_epoch: float
    latest_record_id: int
    records_scanned: int
    report: ReconciliationReport


class ReconciliationEngine:
    """Answers "did this verifier qualify in the recent unpaid epochs?"."""

    def __init__(
        self,
        reader: StateReader,
        deployment: DeploymentConfig,
        settings: Settings | None = None,
    ):
        self.reader = reader
        self.deployment = deployment
        self.settings = settings or Settings()

    async def latest_record_id(self, kind: RecordKind, contract: str) -> int:
        hint = await kind.latest_hint(self.reader, contract)
        if hint is not None:
            return hint

        async def _exists(record_id: int) -> bool:
            return kind.exists(await self.reader.query_contract(contract, kind.record_query(record_id)))

        probe = CountingProbe(_exists)
        latest = await find_latest(probe)
        bt.logging.debug({"id_locator": {"kind": kind.name, "latest": latest, "lookups": probe.calls}})
        return latest

    async def reconcile(
        self,
        participant: str,
        chain_name: str,
        kind: str = "signing",
        epochs_to_check: int | None = None,
        progress: ProgressSink | None = None,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> ParticipationReport | None:
        """Reconcile ``participant``'s record on ``chain_name`` for ``kind``.

        Returns None when the chain has no rewards pool for this kind.

        Raises:
            ConfigurationError: unknown kind, missing contract, or an
                invalid pool threshold.
            RemoteUnavailable: the rewards pool or the chain head could
                not be read.
        """
        record_kind = get_record_kind(kind)
        chain_key = chain_name.lower()
        contract = self.deployment.record_contract(record_kind.name, chain_key)

        pool = await fetch_rewards_pool(
            self.reader, self.deployment.rewards_address, chain_key, contract, strict=True,
        )
        if pool is None:
            bt.logging.info({"reconcile": {"chain": chain_key, "kind": kind, "status": "no_pool"}})
            return None

        current_height = await self.reader.latest_block_height()

        active = await fetch_active_verifiers(
            self.reader, self.deployment.service_registry_address, chain_key,
        )
        reward_share = rewards_per_verifier(pool.rewards_per_epoch_axl, len(active))

        epoch_length = pool.epoch_duration or self.settings.epoch_length
        current_epoch = pool.current_epoch_num
        last_settled = pool.last_settled_epoch
        unpaid = unpaid_epochs(last_settled, current_epoch)
        count = epochs_to_check if epochs_to_check is not None else self.settings.epochs_to_check
        epochs = epochs_to_scan(unpaid, count)

        ranges = windows_for(epochs, current_height, epoch_length, current_epoch)

        bt.logging.info({
            "reconcile": {
                "participant": participant,
                "chain": chain_key,
                "kind": kind,
                "height": current_height,
                "current_epoch": current_epoch,
                "unpaid": len(unpaid),
                "epochs": epochs,
            }
        })

        if epochs:
            latest_id, scan = await self._scan(
                record_kind, contract, participant, ranges, progress, cancel,
                timeout if timeout is not None else self.settings.scan_timeout,
            )
            report = evaluate(
                scan.tallies,
                pool.participation_threshold,
                unpaid_epoch_count=len(unpaid),
                reward_per_epoch=reward_share,
                partial=scan.partial,
                stop_reason=scan.stop_reason,
            )
            records_scanned = scan.ids_scanned
        else:
            # Everything up to the current epoch is distributed.
            latest_id, records_scanned = 0, 0
            report = evaluate(
                {},
                pool.participation_threshold,
                unpaid_epoch_count=len(unpaid),
                reward_per_epoch=reward_share,
                stop_reason=StopReason.SETTLED,
            )

        return ParticipationReport(
            participant=participant,
            chain_name=chain_key,
            kind=record_kind.name,
            contract=contract,
            current_height=current_height,
            current_epoch=current_epoch,
            last_distribution_epoch=last_settled,
            epoch_length=epoch_length,
            active_verifiers=len(active),
            pool_rewards_per_epoch=pool.rewards_per_epoch_axl,
            latest_record_id=latest_id,
            records_scanned=records_scanned,
            report=report,
        )

    async def _scan(
        self,
        record_kind: RecordKind,
        contract: str,
        participant: str,
        ranges: dict[int, EpochRange],
        progress: ProgressSink | None,
        cancel: asyncio.Event | None,
        timeout: float | None,
    ) -> tuple[int, ScanResult]:
        latest_id = await self.latest_record_id(record_kind, contract)

        async def _fetch(record_id: int) -> Record | None:
            payload = await self.reader.query_contract(contract, record_kind.record_query(record_id))
            return record_kind.to_record(record_id, payload)

        scanner = RecordScanner(
            max_lookback=self.settings.lookback_for(record_kind.name),
            concurrency=self.settings.scan_concurrency,
            progress_every=record_kind.progress_every,
            label=record_kind.label,
            progress=progress,
        )
        scan = await scanner.scan(
            latest_id,
            lower_bound(ranges),
            ranges,
            participant,
            _fetch,
            cancel=cancel,
            timeout=timeout,
        )
        return latest_id, scan


__all__ = ["ParticipationReport", "ReconciliationEngine"]
