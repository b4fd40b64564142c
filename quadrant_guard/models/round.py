"""Round-level summaries of scored and generated contributions"""
from dataclasses import dataclass, field
from typing import List

from quadrant_guard.models.contribution import RiskAssessment


@dataclass(frozen=True)
class RoundAnalysis:
    """Scores for every contribution in a round plus summary counts"""
    total_contributions: int
    flagged_contributions: int
    average_risk_score: float
    results: List[RiskAssessment] = field(default_factory=list)

    @property
    def flagged_percentage(self) -> float:
        if self.total_contributions == 0:
            return 0.0
        return self.flagged_contributions / self.total_contributions * 100

    @property
    def high_risk(self) -> List[RiskAssessment]:
        return [result for result in self.results if result.is_fraudulent]

    @property
    def summary(self) -> str:
        return (
            f"Analyzed {self.total_contributions} contributions. "
            f"Flagged {self.flagged_contributions} ({self.flagged_percentage:.1f}%) as potentially fraudulent. "
            f"Average risk score: {self.average_risk_score:.3f}"
        )


@dataclass(frozen=True)
class DatasetStatistics:
    """Label balance and feature averages of a generated dataset"""
    total: int
    normal: int
    fraudulent: int
    fraud_percentage: float
    average_amount: float
    average_wallet_age: float
    average_frequency: float

    def to_dict(self) -> dict:
        return {
            'total': self.total,
            'normal': self.normal,
            'fraudulent': self.fraudulent,
            'fraudPercentage': self.fraud_percentage,
            'averageAmount': self.average_amount,
            'averageWalletAge': self.average_wallet_age,
            'averageFrequency': self.average_frequency,
        }
