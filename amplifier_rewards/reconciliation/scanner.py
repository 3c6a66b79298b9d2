"""Backward record scan that tallies per-epoch participation.

Walks ids from the newest record down, classifying each record into an
epoch window by its completion height. Heights are assumed to shrink as
ids shrink, so the first record below the oldest window ends the scan.

Lookups may be issued ``concurrency`` at a time, but results are always
applied in strictly descending id order, and the early exit is only
taken once every higher id has been accounted for.

Assumption: the sequence is gapless. If the remote system ever pruned
old records while keeping newer ones, an out-of-order height could end
the scan early; absent records are skipped, not treated as the end.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Mapping

import bittensor as bt

from amplifier_rewards.errors import ConfigurationError, RemoteUnavailable
from .models import EpochRange, ParticipantTally, Record, ScanResult, StopReason
from .windows import epoch_for_height

FetchRecord = Callable[[int], Awaitable["Record | None"]]
ProgressSink = Callable[[str], None]


class RecordScanner:
    """Scans a record sequence backwards with a hard look-back cap."""

    def __init__(
        self,
        max_lookback: int = 5000,
        concurrency: int = 1,
        progress_every: int = 100,
        label: str = "records",
        progress: ProgressSink | None = None,
    ):
        if max_lookback <= 0:
            raise ConfigurationError(f"max_lookback must be positive, got {max_lookback}")
        if concurrency <= 0:
            raise ConfigurationError(f"concurrency must be positive, got {concurrency}")
        self.max_lookback = max_lookback
        self.concurrency = concurrency
        self.progress_every = max(1, progress_every)
        self.label = label
        self._progress = progress

    async def scan(
        self,
        latest_id: int,
        lower_bound_height: int,
        ranges: Mapping[int, EpochRange],
        participant: str,
        fetch_record: FetchRecord,
        *,
        cancel: asyncio.Event | None = None,
        timeout: float | None = None,
    ) -> ScanResult:
        """Tally ``participant``'s records per epoch.

        Stops when a record predates ``lower_bound_height``, at id 1, at the
        look-back cap, when ``cancel`` is set, or after ``timeout`` seconds.
        The last three produce a result marked partial; tallies only ever
        contain records that were fully applied before the stop.
        """
        result = ScanResult(
            tallies={epoch: ParticipantTally() for epoch in ranges},
            stop_reason=StopReason.SEQUENCE_START,
            latest_id=latest_id,
        )
        if latest_id <= 0:
            result.stop_reason = StopReason.EMPTY
            self._emit(f"No {self.label} found")
            return result

        floor = max(1, latest_id - self.max_lookback + 1)
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout if timeout is not None else None

        stop: StopReason | None = None
        next_id = latest_id
        while next_id >= floor and stop is None:
            if cancel is not None and cancel.is_set():
                stop = StopReason.CANCELLED
                break

            batch = list(range(next_id, max(floor, next_id - self.concurrency + 1) - 1, -1))
            lookups = [self._fetch(fetch_record, record_id) for record_id in batch]

            if deadline is None:
                records = await asyncio.gather(*lookups)
            else:
                remaining = deadline - loop.time()
                if remaining <= 0:
                    for lookup in lookups:
                        lookup.close()
                    stop = StopReason.TIMEOUT
                    break
                try:
                    records = await asyncio.wait_for(asyncio.gather(*lookups), remaining)
                except asyncio.TimeoutError:
                    stop = StopReason.TIMEOUT
                    break

            for record_id, record in zip(batch, records):
                if not self._apply(result, record_id, record, lower_bound_height, ranges, participant):
                    stop = StopReason.BELOW_LOWER_BOUND
                    break
            next_id = batch[-1] - 1

        if stop is None:
            stop = StopReason.SEQUENCE_START if floor == 1 else StopReason.LOOKBACK_CAP
        result.stop_reason = stop

        self._emit(
            f"Total: {result.ids_scanned} {self.label} scanned, "
            f"{result.records_mapped} mapped"
        )
        payload = {
            "record_scan": {
                "label": self.label,
                "stop_reason": stop.value,
                "latest_id": latest_id,
                "lowest_id": result.lowest_id_visited,
                "ids_scanned": result.ids_scanned,
                "mapped": result.records_mapped,
                "missing": result.records_missing,
            }
        }
        if result.partial:
            bt.logging.warning(payload)
        else:
            bt.logging.info(payload)
        return result

    def _apply(
        self,
        result: ScanResult,
        record_id: int,
        record: Record | None,
        lower_bound_height: int,
        ranges: Mapping[int, EpochRange],
        participant: str,
    ) -> bool:
        """Apply one lookup. Returns False once the scan crossed the lower bound."""
        result.ids_scanned += 1
        result.lowest_id_visited = record_id
        if result.ids_scanned % self.progress_every == 0:
            self._emit(f"Scanned {result.ids_scanned} {self.label}...")

        if record is None:
            result.records_missing += 1
            return True
        if record.completion_height < lower_bound_height:
            return False

        epoch = epoch_for_height(record.completion_height, ranges)
        if epoch is None:
            result.records_unmapped += 1
            return True

        tally = result.tallies[epoch]
        tally.total += 1
        if participant in record.participants:
            tally.participated += 1
        result.records_mapped += 1
        return True

    async def _fetch(self, fetch_record: FetchRecord, record_id: int) -> Record | None:
        try:
            return await fetch_record(record_id)
        except RemoteUnavailable as e:
            bt.logging.debug({"record_scan": {"id": record_id, "skipped": str(e)}})
            return None

    def _emit(self, message: str) -> None:
        if self._progress is not None:
            self._progress(message)
        else:
            bt.logging.debug({"record_scan_progress": message})


__all__ = ["FetchRecord", "ProgressSink", "RecordScanner"]
