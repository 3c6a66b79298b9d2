"""Qualification verdicts and pending-reward estimate.

Thresholds are handled as exact fractions so that a participant sitting
exactly on the threshold qualifies and one record short does not.
"""

from __future__ import annotations

from fractions import Fraction
from typing import Mapping, Union

from amplifier_rewards.errors import ConfigurationError
from .models import (
    EpochPerformance,
    ParticipantTally,
    ParticipationStatus,
    ReconciliationReport,
    StopReason,
)

ThresholdLike = Union[Fraction, float, int, str, tuple[int, int]]

# Rates this far above the threshold are reported as on track.
AT_RISK_MARGIN = Fraction(5, 100)


def as_threshold(value: ThresholdLike) -> Fraction:
    """Parse a qualification threshold and check it lies in (0, 1]."""
    try:
        if isinstance(value, tuple):
            numerator, denominator = value
            threshold = Fraction(int(numerator), int(denominator))
        elif isinstance(value, float):
            threshold = Fraction(str(value))
        else:
            threshold = Fraction(value)
    except (ValueError, ZeroDivisionError, TypeError) as e:
        raise ConfigurationError(f"invalid threshold {value!r}: {e}") from e

    if not 0 < threshold <= 1:
        raise ConfigurationError(f"threshold must be in (0, 1], got {threshold}")
    return threshold


def participation_status(
    tally: ParticipantTally,
    threshold: Fraction,
    margin: Fraction = AT_RISK_MARGIN,
) -> ParticipationStatus:
    if tally.total == 0:
        return ParticipationStatus.NO_DATA
    rate = Fraction(tally.participated, tally.total)
    if rate < threshold:
        return ParticipationStatus.BELOW_THRESHOLD
    if rate < threshold + margin:
        return ParticipationStatus.AT_RISK
    return ParticipationStatus.ON_TRACK


def evaluate(
    tallies: Mapping[int, ParticipantTally],
    threshold: ThresholdLike,
    *,
    unpaid_epoch_count: int = 0,
    reward_per_epoch: float = 0.0,
    partial: bool = False,
    stop_reason: StopReason | None = None,
) -> ReconciliationReport:
    """Turn per-epoch tallies into a report.

    An epoch with no observed records is never qualified. The pending
    reward extrapolates the sampled qualification rate over the whole
    unpaid backlog:

        (qualified / sampled) * unpaid_epoch_count * reward_per_epoch
    """
    fraction = as_threshold(threshold)

    rows: list[EpochPerformance] = []
    qualified_count = 0
    for epoch in sorted(tallies):
        tally = tallies[epoch]
        if tally.total > 0:
            rate = Fraction(tally.participated, tally.total)
            qualified = rate >= fraction
        else:
            rate = Fraction(0)
            qualified = False
        if qualified:
            qualified_count += 1
        rows.append(EpochPerformance(
            epoch=epoch,
            total=tally.total,
            participated=tally.participated,
            rate=float(rate),
            qualified=qualified,
            status=participation_status(tally, fraction),
        ))

    epochs_scanned = len(rows)
    estimate = 0.0
    if epochs_scanned:
        estimate = qualified_count / epochs_scanned * unpaid_epoch_count * reward_per_epoch

    return ReconciliationReport(
        epochs=rows,
        qualified_count=qualified_count,
        epochs_scanned=epochs_scanned,
        unpaid_epoch_count=unpaid_epoch_count,
        reward_per_participant_per_epoch=reward_per_epoch,
        estimated_pending_reward=estimate,
        threshold=float(fraction),
        partial=partial,
        stop_reason=stop_reason,
    )


__all__ = ["AT_RISK_MARGIN", "ThresholdLike", "as_threshold", "evaluate", "participation_status"]
