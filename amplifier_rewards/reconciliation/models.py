"""Types shared by the reconciliation engine.

Request-scoped accumulators (Record, EpochRange, ParticipantTally,
ScanResult) are plain dataclasses. The report types that leave the
engine are pydantic models so they can be dumped as JSON.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Scan inputs / accumulators
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class Record:
    """One completed collective action (signing session or finished poll)."""

    id: int
    completion_height: int
    participants: frozenset[str] = frozenset()


@dataclass(frozen=True)
class EpochRange:
    """Inclusive block-height window of one epoch."""

    start: int
    end: int

    def contains(self, height: int) -> bool:
        return self.start <= height <= self.end


@dataclass
class ParticipantTally:
    """Per-epoch counters for a single participant."""

    total: int = 0
    participated: int = 0


class StopReason(str, Enum):
    """Why a record scan stopped."""

    EMPTY = "empty"  # no records exist
    SETTLED = "settled"  # every epoch already distributed, nothing scanned
    BELOW_LOWER_BOUND = "below_lower_bound"  # crossed the oldest epoch of interest
    SEQUENCE_START = "sequence_start"  # reached id 1
    LOOKBACK_CAP = "lookback_cap"
    CANCELLED = "cancelled"
    TIMEOUT = "timeout"


PARTIAL_STOP_REASONS = frozenset({
    StopReason.LOOKBACK_CAP,
    StopReason.CANCELLED,
    StopReason.TIMEOUT,
})


@dataclass
class ScanResult:
    """Outcome of a backward record scan."""

    tallies: dict[int, ParticipantTally]
    stop_reason: StopReason
    latest_id: int = 0
    lowest_id_visited: int = 0
    ids_scanned: int = 0
    records_missing: int = 0
    records_mapped: int = 0
    records_unmapped: int = 0

    @property
    def partial(self) -> bool:
        return self.stop_reason in PARTIAL_STOP_REASONS


# ---------------------------------------------------------------------------
# Report types
# ---------------------------------------------------------------------------


class ParticipationStatus(str, Enum):
    """Coarse health label for one epoch's participation rate."""

    ON_TRACK = "on_track"
    AT_RISK = "at_risk"
    BELOW_THRESHOLD = "below_threshold"
    NO_DATA = "no_data"


class EpochPerformance(BaseModel):
    """Participation verdict for one epoch."""

    model_config = ConfigDict(frozen=True)

    epoch: int
    total: int
    participated: int
    rate: float = Field(description="participated / total, 0 when total == 0")
    qualified: bool
    status: ParticipationStatus


class ReconciliationReport(BaseModel):
    """Per-epoch verdicts plus the extrapolated pending-reward estimate.

    ``estimated_pending_reward`` is an estimate: the sampled epochs may be
    fewer than the unpaid backlog, and the ledger is the source of truth
    for actual distributions. ``partial`` marks reports whose scan stopped
    before covering every epoch of interest.
    """

    model_config = ConfigDict(frozen=True)

    epochs: list[EpochPerformance] = Field(default_factory=list)
    qualified_count: int = 0
    epochs_scanned: int = 0
    unpaid_epoch_count: int = 0
    reward_per_participant_per_epoch: float = 0.0
    estimated_pending_reward: float = 0.0
    threshold: float = 0.0
    partial: bool = False
    stop_reason: StopReason | None = None

    @property
    def confidence(self) -> str:
        return "partial" if self.partial else "exhaustive"


__all__ = [
    "EpochPerformance",
    "EpochRange",
    "PARTIAL_STOP_REASONS",
    "ParticipantTally",
    "ParticipationStatus",
    "ReconciliationReport",
    "Record",
    "ScanResult",
    "StopReason",
]
