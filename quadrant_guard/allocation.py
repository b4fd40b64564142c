"""Quadratic funding allocation of a matching pool"""
import logging
import math
from typing import Dict, Iterable, List

from quadrant_guard.exceptions import ConfigurationError
from quadrant_guard.models.contribution import ContributionRecord
from quadrant_guard.models.funding import ProjectFundingBreakdown

logger = logging.getLogger(__name__)


def allocate(contributions: Iterable[ContributionRecord],
             matching_pool: float) -> Dict[str, ProjectFundingBreakdown]:
    """
    Distribute the matching pool across projects.

    Each project's subsidy is proportional to the square of the sum of square
    roots of its contributions. Projects keep the order in which they first
    appear in ``contributions``.

    Returns:
        Dict[str, ProjectFundingBreakdown]: empty when there is nothing to match
    """
    if matching_pool <= 0:
        raise ConfigurationError(f"Matching pool must be positive, got {matching_pool}")

    by_project: Dict[str, List[float]] = {}
    for contribution in contributions:
        by_project.setdefault(contribution.project_id, []).append(contribution.amount)

    quadratic_sums = {
        project_id: math.fsum(math.sqrt(amount) for amount in amounts) ** 2
        for project_id, amounts in by_project.items()
    }
    total_quadratic_sum = math.fsum(quadratic_sums.values())
    if total_quadratic_sum == 0:
        logger.info("No contributions to match, returning empty allocation")
        return {}

    return {
        project_id: ProjectFundingBreakdown(
            project_id=project_id,
            direct_funding=math.fsum(amounts),
            quadratic_sum=quadratic_sums[project_id],
            contributor_count=len(amounts),
            matching_funds=matching_pool * quadratic_sums[project_id] / total_quadratic_sum,
        )
        for project_id, amounts in by_project.items()
    }


def total_matching(allocation: Dict[str, ProjectFundingBreakdown]) -> float:
    return math.fsum(breakdown.matching_funds for breakdown in allocation.values())
