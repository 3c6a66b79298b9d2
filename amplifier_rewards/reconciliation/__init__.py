"""Participation reconciliation.

Determines, for one verifier and one chain, which recent unpaid rewards
epochs it qualified in. Records (signing sessions or polls) are found by
a backward scan from the newest id and bucketed into epoch windows by
block height; each epoch's participation rate is compared to the pool's
threshold.
"""

from .engine import ParticipationReport, ReconciliationEngine
from .evaluator import as_threshold, evaluate, participation_status
from .locator import CountingProbe, find_latest
from .models import (
    EpochPerformance,
    EpochRange,
    ParticipantTally,
    ParticipationStatus,
    ReconciliationReport,
    Record,
    ScanResult,
    StopReason,
)
from .records import PollRecordKind, RecordKind, SessionRecordKind, get_record_kind
from .scanner import RecordScanner
from .windows import epoch_for_height, epochs_to_scan, lower_bound, unpaid_epochs, windows_for

__all__ = [
    "CountingProbe",
    "EpochPerformance",
    "EpochRange",
    "ParticipantTally",
    "ParticipationReport",
    "ParticipationStatus",
    "PollRecordKind",
    "ReconciliationEngine",
    "ReconciliationReport",
    "Record",
    "RecordKind",
    "RecordScanner",
    "ScanResult",
    "SessionRecordKind",
    "StopReason",
    "as_threshold",
    "epoch_for_height",
    "epochs_to_scan",
    "evaluate",
    "find_latest",
    "get_record_kind",
    "lower_bound",
    "participation_status",
    "unpaid_epochs",
    "windows_for",
]
