"""Tests for qualification verdicts and the pending-reward estimate."""

from fractions import Fraction

import pytest

from amplifier_rewards.errors import ConfigurationError
from amplifier_rewards.reconciliation.evaluator import as_threshold, evaluate, participation_status
from amplifier_rewards.reconciliation.models import ParticipantTally, ParticipationStatus, StopReason


def _make_tallies(**rows: tuple[int, int]) -> dict[int, ParticipantTally]:
    return {int(k.lstrip("e")): ParticipantTally(total=t, participated=p) for k, (t, p) in rows.items()}


SCENARIO = _make_tallies(e7=(1, 1), e8=(2, 1), e9=(2, 1))


class TestEvaluate:

    def test_half_threshold_qualifies_all(self):
        report = evaluate(SCENARIO, 0.5)
        assert [e.qualified for e in report.epochs] == [True, True, True]
        assert report.qualified_count == 3

    def test_sixty_percent_threshold(self):
        report = evaluate(SCENARIO, 0.6)
        assert {e.epoch: e.qualified for e in report.epochs} == {7: True, 8: False, 9: False}
        assert report.qualified_count == 1

    def test_rows_oldest_first(self):
        report = evaluate(_make_tallies(e9=(1, 1), e7=(1, 1), e8=(1, 1)), 0.8)
        assert [e.epoch for e in report.epochs] == [7, 8, 9]

    @pytest.mark.parametrize("threshold,total", [
        ((4, 5), 10),
        ((4, 5), 50),
        ((1, 2), 2),
        ((2, 3), 9),
        (0.8, 25),
    ])
    def test_boundary(self, threshold, total):
        needed = as_threshold(threshold) * total
        assert needed.denominator == 1
        at = evaluate({1: ParticipantTally(total, int(needed))}, threshold)
        below = evaluate({1: ParticipantTally(total, int(needed) - 1)}, threshold)
        assert at.epochs[0].qualified
        assert not below.epochs[0].qualified

    @pytest.mark.parametrize("threshold", [0.01, 0.5, 1.0])
    def test_empty_epoch_never_qualifies(self, threshold):
        report = evaluate({5: ParticipantTally(0, 0)}, threshold)
        assert not report.epochs[0].qualified
        assert report.epochs[0].rate == 0.0
        assert report.epochs[0].status == ParticipationStatus.NO_DATA

    def test_pending_estimate_extrapolates(self):
        report = evaluate(SCENARIO, 0.6, unpaid_epoch_count=6, reward_per_epoch=300.0)
        # 1 of 3 sampled epochs qualified -> 1/3 * 6 * 300
        assert report.estimated_pending_reward == pytest.approx(600.0)
        assert report.unpaid_epoch_count == 6
        assert report.reward_per_participant_per_epoch == 300.0

    def test_estimate_zero_without_samples(self):
        report = evaluate({}, 0.8, unpaid_epoch_count=4, reward_per_epoch=100.0)
        assert report.epochs_scanned == 0
        assert report.estimated_pending_reward == 0.0

    def test_partial_flag_carried(self):
        report = evaluate(SCENARIO, 0.5, partial=True, stop_reason=StopReason.LOOKBACK_CAP)
        assert report.partial
        assert report.confidence == "partial"
        assert report.stop_reason == StopReason.LOOKBACK_CAP

    def test_exhaustive_confidence(self):
        report = evaluate(SCENARIO, 0.5, stop_reason=StopReason.BELOW_LOWER_BOUND)
        assert report.confidence == "exhaustive"

    def test_threshold_reported_as_float(self):
        assert evaluate(SCENARIO, (4, 5)).threshold == pytest.approx(0.8)

    def test_report_dumps_to_json(self):
        dumped = evaluate(SCENARIO, 0.5, stop_reason=StopReason.SEQUENCE_START).model_dump(mode="json")
        assert dumped["stop_reason"] == "sequence_start"
        assert dumped["epochs"][0]["status"] == "on_track"


class TestAsThreshold:

    @pytest.mark.parametrize("value,expected", [
        ((4, 5), Fraction(4, 5)),
        (("8", "10"), Fraction(4, 5)),
        (0.8, Fraction(4, 5)),
        ("0.6", Fraction(3, 5)),
        (1, Fraction(1)),
        (Fraction(1, 3), Fraction(1, 3)),
    ])
    def test_parses(self, value, expected):
        assert as_threshold(value) == expected

    @pytest.mark.parametrize("value", [0, 0.0, -0.5, 1.01, (3, 2), (1, 0), "abc", None])
    def test_rejects(self, value):
        with pytest.raises(ConfigurationError):
            as_threshold(value)


class TestParticipationStatus:

    @pytest.mark.parametrize("participated,expected", [
        (100, ParticipationStatus.ON_TRACK),
        (85, ParticipationStatus.ON_TRACK),
        (84, ParticipationStatus.AT_RISK),
        (80, ParticipationStatus.AT_RISK),
        (79, ParticipationStatus.BELOW_THRESHOLD),
        (0, ParticipationStatus.BELOW_THRESHOLD),
    ])
    def test_bands(self, participated, expected):
        tally = ParticipantTally(total=100, participated=participated)
        assert participation_status(tally, Fraction(4, 5)) == expected

    def test_no_data(self):
        assert participation_status(ParticipantTally(), Fraction(4, 5)) == ParticipationStatus.NO_DATA
