"""
Tests for detection metrics and funding fairness measurements.
"""

from datetime import datetime, timezone

import pytest

from quadrant_guard.exceptions import InvalidInputError
from quadrant_guard.metrics import classify, compute_metrics, funding_changes, funding_impact
from quadrant_guard.models.contribution import ContributionRecord, GroundTruthLabel, RiskAssessment, RiskFactors
from quadrant_guard.models.funding import ProjectFundingBreakdown
from quadrant_guard.models.simulation import DetectionMetrics

ASSESSED_AT = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def labeled(fraud):
    label = GroundTruthLabel.FRAUDULENT if fraud else GroundTruthLabel.NORMAL
    return ContributionRecord(amount=100, ground_truth_label=label)


def verdict(flagged):
    return RiskAssessment(
        risk_score=0.9 if flagged else 0.1,
        is_fraudulent=flagged,
        confidence=0.7,
        risk_factors=RiskFactors(),
        explanation="",
        timestamp=ASSESSED_AT,
    )


def breakdown(project_id, direct, matching, contributors=1):
    return ProjectFundingBreakdown(
        project_id=project_id,
        direct_funding=direct,
        quadratic_sum=direct,
        contributor_count=contributors,
        matching_funds=matching,
    )


class TestDetectionMetrics:
    """Tests for confusion matrix counting and derived rates"""

    @pytest.mark.parametrize("fraud,flagged,cell", [
        (True, True, "true_positives"),
        (False, False, "true_negatives"),
        (False, True, "false_positives"),
        (True, False, "false_negatives"),
    ])
    def test_classify(self, fraud, flagged, cell):
        metrics = classify(labeled(fraud), verdict(flagged))

        assert getattr(metrics, cell) == 1
        assert metrics.total == 1

    def test_compute_metrics(self):
        truth = [True, True, True, False, False, False, False, False]
        flags = [True, True, False, True, False, False, False, False]

        metrics = compute_metrics([labeled(t) for t in truth], [verdict(f) for f in flags])

        assert metrics.true_positives == 2
        assert metrics.false_negatives == 1
        assert metrics.false_positives == 1
        assert metrics.true_negatives == 4
        assert metrics.total == len(truth)
        assert metrics.accuracy == pytest.approx(6 / 8)
        assert metrics.precision == pytest.approx(2 / 3)
        assert metrics.recall == pytest.approx(2 / 3)
        assert metrics.f1_score == pytest.approx(2 / 3)
        assert metrics.false_positive_rate == pytest.approx(1 / 5)
        assert metrics.false_negative_rate == pytest.approx(1 / 3)
        assert metrics.confusion_matrix == [[2, 1], [1, 4]]

    def test_zero_denominators(self):
        """Rates with nothing to divide by are zero."""
        metrics = DetectionMetrics()

        assert metrics.accuracy == 0.0
        assert metrics.precision == 0.0
        assert metrics.recall == 0.0
        assert metrics.f1_score == 0.0
        assert metrics.false_positive_rate == 0.0
        assert metrics.false_negative_rate == 0.0

    def test_no_true_positives_gives_zero_f1(self):
        metrics = DetectionMetrics(true_positives=0, true_negatives=5, false_positives=2, false_negatives=3)

        assert metrics.f1_score == 0.0

    def test_merge_is_associative(self):
        a = DetectionMetrics(1, 2, 3, 4)
        b = DetectionMetrics(5, 0, 1, 0)
        c = DetectionMetrics(0, 7, 0, 2)

        assert (a + b) + c == a + (b + c)
        assert (a + b + c).total == a.total + b.total + c.total

    def test_length_mismatch(self):
        with pytest.raises(InvalidInputError):
            compute_metrics([labeled(True)], [])

    def test_to_dict_keys(self):
        payload = DetectionMetrics(1, 1, 0, 0).to_dict()

        assert payload['totalContributions'] == 2
        assert payload['actualFraud'] == 1
        assert payload['detectedFraud'] == 1
        assert payload['f1Score'] == 1.0


class TestFundingFairness:
    """Tests for before/after funding comparison"""

    def test_funding_changes_sorted_by_magnitude(self):
        before = {
            'a': breakdown('a', 100, 100),
            'b': breakdown('b', 100, 400, contributors=4),
            'c': breakdown('c', 50, 10),
        }
        after = {
            'a': breakdown('a', 100, 300),
            'b': breakdown('b', 50, 200, contributors=2),
            'c': breakdown('c', 50, 10),
        }

        changes = funding_changes(before, after)

        assert [change.project_id for change in changes] == ['b', 'a', 'c']
        assert changes[0].change == pytest.approx(-250)
        assert changes[0].change_percent == pytest.approx(-50.0)
        assert changes[0].contributors_after == 2
        assert changes[1].change == pytest.approx(200)
        assert changes[2].change == 0

    def test_project_missing_after_filtering(self):
        """A project whose every contribution was flagged ends with zero funding."""
        changes = funding_changes({'gone': breakdown('gone', 40, 60)}, {})

        assert changes[0].funding_after == 0.0
        assert changes[0].contributors_after == 0
        assert changes[0].change_percent == pytest.approx(-100.0)

    def test_funding_impact(self):
        before = {'a': breakdown('a', 100, 100), 'b': breakdown('b', 100, 400)}
        after = {'a': breakdown('a', 100, 300), 'b': breakdown('b', 50, 200)}

        impact = funding_impact(before, after)

        assert impact.projects_affected == 2
        assert impact.total_before == pytest.approx(700)
        assert impact.total_after == pytest.approx(650)
        assert impact.redistribution == pytest.approx(50)
        assert impact.fairness_improvement == pytest.approx(50 / 700)

    def test_funding_impact_ignores_rounding_noise(self):
        before = {'a': breakdown('a', 100, 100)}
        after = {'a': breakdown('a', 100, 100.001)}

        assert funding_impact(before, after).projects_affected == 0

    def test_funding_impact_of_empty_round(self):
        impact = funding_impact({}, {})

        assert impact.projects_affected == 0
        assert impact.fairness_improvement == 0.0
