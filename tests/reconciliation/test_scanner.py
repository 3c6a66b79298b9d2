"""Tests for the backward record scan."""

from __future__ import annotations

import asyncio

import pytest

from amplifier_rewards.errors import ConfigurationError, RemoteUnavailable
from amplifier_rewards.reconciliation.evaluator import evaluate
from amplifier_rewards.reconciliation.models import Record, StopReason
from amplifier_rewards.reconciliation.scanner import RecordScanner
from amplifier_rewards.reconciliation.windows import lower_bound, windows_for

ME = "axelar1me"
OTHER = "axelar1other"


def _make_records(rows: list[tuple[int, bool]]) -> dict[int, Record]:
    """ids 1..n from (completion_height, participant_present) rows."""
    records = {}
    for i, (height, present) in enumerate(rows, start=1):
        participants = frozenset({ME, OTHER} if present else {OTHER})
        records[i] = Record(id=i, completion_height=height, participants=participants)
    return records


def _make_fetch(records: dict[int, Record], calls: list[int] | None = None):
    async def fetch(record_id: int) -> Record | None:
        if calls is not None:
            calls.append(record_id)
        return records.get(record_id)
    return fetch


def _scenario_ranges():
    return windows_for([7, 8, 9], current_height=950, epoch_length=100, current_epoch=9)


def _tallies(result) -> dict[int, tuple[int, int]]:
    return {e: (t.total, t.participated) for e, t in result.tallies.items()}


# Heights of ids 1..5; the participant signed 710, one of the 850s, and 905.
SCENARIO = [(710, True), (850, True), (850, False), (900, False), (905, True)]


@pytest.mark.asyncio
class TestRecordScanner:

    @pytest.mark.parametrize("concurrency", [1, 2, 4, 16])
    async def test_scenario_tallies(self, concurrency):
        ranges = _scenario_ranges()
        scanner = RecordScanner(concurrency=concurrency)
        result = await scanner.scan(5, lower_bound(ranges), ranges, ME, _make_fetch(_make_records(SCENARIO)))

        assert _tallies(result) == {7: (1, 1), 8: (2, 1), 9: (2, 1)}
        assert result.stop_reason == StopReason.SEQUENCE_START
        assert not result.partial
        assert result.ids_scanned == 5
        assert result.records_mapped == 5

    async def test_early_exit_below_lower_bound(self):
        rows = [(500, True), (600, True), (690, True)] + SCENARIO
        records = _make_records(rows)
        calls: list[int] = []
        ranges = _scenario_ranges()

        result = await RecordScanner().scan(8, lower_bound(ranges), ranges, ME, _make_fetch(records, calls))

        assert result.stop_reason == StopReason.BELOW_LOWER_BOUND
        assert not result.partial
        assert _tallies(result) == {7: (1, 1), 8: (2, 1), 9: (2, 1)}
        # id 3 (height 690) is visited, ids 1-2 are never fetched
        assert calls == [8, 7, 6, 5, 4, 3]
        assert result.lowest_id_visited == 3

    async def test_concurrent_batch_stops_at_first_crossing(self):
        rows = [(500, True), (600, True), (690, True)] + SCENARIO
        ranges = _scenario_ranges()

        result = await RecordScanner(concurrency=4).scan(
            8, lower_bound(ranges), ranges, ME, _make_fetch(_make_records(rows)),
        )

        # Batch [4, 3, 2, 1] is fetched together but only applied down to id 3.
        assert result.stop_reason == StopReason.BELOW_LOWER_BOUND
        assert result.ids_scanned == 6
        assert _tallies(result) == {7: (1, 1), 8: (2, 1), 9: (2, 1)}

    async def test_results_applied_in_descending_order(self):
        records = _make_records(SCENARIO)
        ranges = _scenario_ranges()
        seen: list[int] = []

        async def fetch(record_id: int) -> Record | None:
            # Lower ids answer first.
            await asyncio.sleep(record_id * 0.001)
            return records.get(record_id)

        def progress(line: str) -> None:
            seen.append(line)

        scanner = RecordScanner(concurrency=5, progress_every=1, progress=progress)
        result = await scanner.scan(5, lower_bound(ranges), ranges, ME, fetch)

        assert result.lowest_id_visited == 1
        assert seen[:5] == [f"Scanned {n} records..." for n in range(1, 6)]

    async def test_lookback_cap_marks_partial(self):
        ranges = _scenario_ranges()
        calls: list[int] = []
        scanner = RecordScanner(max_lookback=3)

        result = await scanner.scan(5, lower_bound(ranges), ranges, ME, _make_fetch(_make_records(SCENARIO), calls))

        assert calls == [5, 4, 3]
        assert result.stop_reason == StopReason.LOOKBACK_CAP
        assert result.partial
        assert _tallies(result) == {7: (0, 0), 8: (1, 0), 9: (2, 1)}

    async def test_lookback_reaching_id_one_is_exhaustive(self):
        ranges = _scenario_ranges()
        result = await RecordScanner(max_lookback=5).scan(
            5, lower_bound(ranges), ranges, ME, _make_fetch(_make_records(SCENARIO)),
        )
        assert result.stop_reason == StopReason.SEQUENCE_START
        assert not result.partial

    async def test_empty_sequence(self):
        ranges = _scenario_ranges()
        lines: list[str] = []
        result = await RecordScanner(progress=lines.append).scan(
            0, lower_bound(ranges), ranges, ME, _make_fetch({}),
        )
        assert result.stop_reason == StopReason.EMPTY
        assert not result.partial
        assert _tallies(result) == {7: (0, 0), 8: (0, 0), 9: (0, 0)}
        assert lines == ["No records found"]

    @pytest.mark.parametrize("after", [1, 2, 4])
    async def test_cancel_after_n_lookups(self, after):
        records = _make_records(SCENARIO)
        ranges = _scenario_ranges()
        cancel = asyncio.Event()
        calls: list[int] = []

        async def fetch(record_id: int) -> Record | None:
            calls.append(record_id)
            if len(calls) == after:
                cancel.set()
            return records.get(record_id)

        result = await RecordScanner().scan(5, lower_bound(ranges), ranges, ME, fetch, cancel=cancel)

        assert result.stop_reason == StopReason.CANCELLED
        assert result.partial
        assert result.ids_scanned == after

        expected = await RecordScanner(max_lookback=after).scan(
            5, lower_bound(ranges), ranges, ME, _make_fetch(records),
        )
        assert _tallies(result) == _tallies(expected)

    async def test_cancel_before_start(self):
        ranges = _scenario_ranges()
        cancel = asyncio.Event()
        cancel.set()
        result = await RecordScanner().scan(
            5, lower_bound(ranges), ranges, ME, _make_fetch(_make_records(SCENARIO)), cancel=cancel,
        )
        assert result.stop_reason == StopReason.CANCELLED
        assert result.ids_scanned == 0

    async def test_timeout_marks_partial(self):
        records = _make_records(SCENARIO)
        ranges = _scenario_ranges()

        async def fetch(record_id: int) -> Record | None:
            if record_id < 4:
                await asyncio.sleep(10)
            return records.get(record_id)

        result = await RecordScanner().scan(5, lower_bound(ranges), ranges, ME, fetch, timeout=0.2)

        assert result.stop_reason == StopReason.TIMEOUT
        assert result.partial
        assert result.ids_scanned == 2
        assert _tallies(result) == {7: (0, 0), 8: (0, 0), 9: (2, 1)}

    async def test_missing_ids_are_skipped(self):
        records = _make_records(SCENARIO)
        del records[3]
        del records[4]
        ranges = _scenario_ranges()

        result = await RecordScanner().scan(5, lower_bound(ranges), ranges, ME, _make_fetch(records))

        assert result.stop_reason == StopReason.SEQUENCE_START
        assert result.records_missing == 2
        assert _tallies(result) == {7: (1, 1), 8: (1, 1), 9: (1, 1)}

    async def test_remote_failure_is_absorbed(self):
        records = _make_records(SCENARIO)
        ranges = _scenario_ranges()

        async def fetch(record_id: int) -> Record | None:
            if record_id == 4:
                raise RemoteUnavailable("boom")
            return records.get(record_id)

        result = await RecordScanner().scan(5, lower_bound(ranges), ranges, ME, fetch)

        assert result.records_missing == 1
        assert _tallies(result) == {7: (1, 1), 8: (2, 1), 9: (1, 1)}

    async def test_records_outside_windows_are_unmapped(self):
        records = _make_records(SCENARIO + [(1200, True)])
        ranges = _scenario_ranges()

        result = await RecordScanner().scan(6, lower_bound(ranges), ranges, ME, _make_fetch(records))

        assert result.records_unmapped == 1
        assert _tallies(result) == {7: (1, 1), 8: (2, 1), 9: (2, 1)}

    async def test_progress_lines(self):
        records = _make_records([(710, True)] * 5)
        ranges = _scenario_ranges()
        lines: list[str] = []

        scanner = RecordScanner(progress_every=2, label="sessions", progress=lines.append)
        await scanner.scan(5, lower_bound(ranges), ranges, ME, _make_fetch(records))

        assert lines == [
            "Scanned 2 sessions...",
            "Scanned 4 sessions...",
            "Total: 5 sessions scanned, 5 mapped",
        ]


class TestRecordScannerConfig:

    @pytest.mark.parametrize("kwargs", [
        {"max_lookback": 0},
        {"max_lookback": -5},
        {"concurrency": 0},
    ])
    def test_rejects_non_positive(self, kwargs):
        with pytest.raises(ConfigurationError):
            RecordScanner(**kwargs)


@pytest.mark.asyncio
class TestScanVerdicts:

    async def _verdict(self, present: list[bool], threshold):
        rows = [(800 + i, p) for i, p in enumerate(present)]
        ranges = windows_for([8], current_height=850, epoch_length=100, current_epoch=8)
        result = await RecordScanner().scan(len(rows), lower_bound(ranges), ranges, ME, _make_fetch(_make_records(rows)))
        return evaluate(result.tallies, threshold).epochs[0]

    async def test_always_present(self):
        verdict = await self._verdict([True] * 12, 0.8)
        assert verdict.qualified
        assert verdict.rate == 1.0

    @pytest.mark.parametrize("hits,qualified", [(8, True), (7, False)])
    async def test_threshold_boundary(self, hits, qualified):
        present = [True] * hits + [False] * (10 - hits)
        verdict = await self._verdict(present, 0.8)
        assert verdict.total == 10
        assert verdict.qualified is qualified
