"""Quadratic funding allocation results"""
from dataclasses import dataclass


@dataclass(frozen=True)
class ProjectFundingBreakdown:
    """Funding received by one project in one allocation run"""
    project_id: str
    direct_funding: float
    quadratic_sum: float
    contributor_count: int
    matching_funds: float

    @property
    def total_funding(self) -> float:
        return self.direct_funding + self.matching_funds

    def to_dict(self) -> dict:
        return {
            'directFunding': self.direct_funding,
            'quadraticSum': self.quadratic_sum,
            'contributorCount': self.contributor_count,
            'matchingFunds': self.matching_funds,
            'totalFunding': self.total_funding,
        }


@dataclass(frozen=True)
class ProjectFundingChange:
    """Difference in a project's funding once flagged contributions are removed"""
    project_id: str
    funding_before: float
    funding_after: float
    contributors_before: int
    contributors_after: int

    @property
    def change(self) -> float:
        return self.funding_after - self.funding_before

    @property
    def change_percent(self) -> float:
        if self.funding_before == 0:
            return 0.0
        return self.change / self.funding_before * 100

    def to_dict(self) -> dict:
        return {
            'projectId': self.project_id,
            'fundingBefore': self.funding_before,
            'fundingAfter': self.funding_after,
            'change': self.change,
            'changePercent': self.change_percent,
            'contributorsBefore': self.contributors_before,
            'contributorsAfter': self.contributors_after,
        }


@dataclass(frozen=True)
class FundingImpact:
    """Round-level summary of the redistribution caused by fraud removal"""
    projects_affected: int
    total_before: float
    total_after: float

    @property
    def redistribution(self) -> float:
        return abs(self.total_before - self.total_after)

    @property
    def fairness_improvement(self) -> float:
        """Redistributed share of the original total funding"""
        if self.total_before == 0:
            return 0.0
        return self.redistribution / self.total_before

    def to_dict(self) -> dict:
        return {
            'projectsAffected': self.projects_affected,
            'totalBefore': self.total_before,
            'totalAfter': self.total_after,
            'redistribution': self.redistribution,
            'fairnessImprovement': self.fairness_improvement,
        }
