"""Detection quality and funding fairness measurements"""
from functools import reduce
from typing import Dict, List, Sequence

from quadrant_guard.exceptions import InvalidInputError
from quadrant_guard.models.contribution import ContributionRecord, RiskAssessment
from quadrant_guard.models.funding import FundingImpact, ProjectFundingBreakdown, ProjectFundingChange
from quadrant_guard.models.simulation import DetectionMetrics

AFFECTED_EPSILON = 0.01


def classify(record: ContributionRecord, assessment: RiskAssessment) -> DetectionMetrics:
    """Confusion matrix cell for one prediction"""
    actual = record.is_labeled_fraud
    predicted = assessment.is_fraudulent
    return DetectionMetrics(
        true_positives=int(actual and predicted),
        true_negatives=int(not actual and not predicted),
        false_positives=int(not actual and predicted),
        false_negatives=int(actual and not predicted),
    )


def compute_metrics(records: Sequence[ContributionRecord],
                    assessments: Sequence[RiskAssessment]) -> DetectionMetrics:
    """Compare each prediction with the ground truth of the record at the same index"""
    if len(records) != len(assessments):
        raise InvalidInputError(
            f"Cannot pair {len(assessments)} assessments with {len(records)} contributions"
        )
    return reduce(
        lambda total, cell: total + cell,
        (classify(record, assessment) for record, assessment in zip(records, assessments)),
        DetectionMetrics(),
    )


def funding_changes(before: Dict[str, ProjectFundingBreakdown],
                    after: Dict[str, ProjectFundingBreakdown]) -> List[ProjectFundingChange]:
    """Per-project change in total funding, largest absolute change first"""
    changes = []
    for project_id, original in before.items():
        filtered = after.get(project_id)
        changes.append(ProjectFundingChange(
            project_id=project_id,
            funding_before=original.total_funding,
            funding_after=filtered.total_funding if filtered else 0.0,
            contributors_before=original.contributor_count,
            contributors_after=filtered.contributor_count if filtered else 0,
        ))
    changes.sort(key=lambda change: abs(change.change), reverse=True)
    return changes


def funding_impact(before: Dict[str, ProjectFundingBreakdown],
                   after: Dict[str, ProjectFundingBreakdown]) -> FundingImpact:
    total_before = 0.0
    total_after = 0.0
    affected = 0
    for project_id, original in before.items():
        filtered = after.get(project_id)
        funding_after = filtered.total_funding if filtered else 0.0
        total_before += original.total_funding
        total_after += funding_after
        if abs(original.total_funding - funding_after) > AFFECTED_EPSILON:
            affected += 1
    return FundingImpact(projects_affected=affected, total_before=total_before, total_after=total_after)
