"""Rule-based fraud risk scoring for funding round contributions"""
import logging
import math
from abc import ABC, abstractmethod
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Sequence, Type

from quadrant_guard.config import ScoringConfig
from quadrant_guard.exceptions import ConfigurationError
from quadrant_guard.models.contribution import ContributionRecord, RiskAssessment, RiskFactors
from quadrant_guard.models.round import RoundAnalysis

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Scorer(ABC):
    """Turns a contribution into a risk assessment"""

    def __init__(self, config: Optional[ScoringConfig] = None, clock: Optional[Clock] = None):
        self.config = config or ScoringConfig()
        self.clock = clock or utc_now

    @property
    def threshold(self) -> float:
        return self.config.threshold

    @abstractmethod
    def score(self, record: ContributionRecord) -> RiskAssessment:
        """Assess a single contribution"""

    def score_batch(self, records: Sequence[ContributionRecord],
                    max_workers: Optional[int] = None) -> List[RiskAssessment]:
        """
        Score records across a thread pool.

        Results are placed back at their record's index, so the output lines
        up with the input regardless of completion order.
        """
        if not records:
            return []
        if max_workers == 1:
            return [self.score(record) for record in records]

        results: List[Optional[RiskAssessment]] = [None] * len(records)
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            future_to_index = {executor.submit(self.score, record): i for i, record in enumerate(records)}
            for future in as_completed(future_to_index):
                results[future_to_index[future]] = future.result()
        return results

    def score_round(self, records: Sequence[ContributionRecord],
                    max_workers: Optional[int] = None) -> RoundAnalysis:
        """Score every contribution in a round and summarize"""
        results = self.score_batch(records, max_workers=max_workers)
        flagged = sum(1 for result in results if result.is_fraudulent)
        average = math.fsum(result.risk_score for result in results) / len(results) if results else 0.0
        analysis = RoundAnalysis(
            total_contributions=len(results),
            flagged_contributions=flagged,
            average_risk_score=average,
            results=results,
        )
        logger.info(analysis.summary)
        return analysis


class RuleBasedScorer(Scorer):
    """Weighted sum of six behavioral risk predicates"""

    def detect_sybil_pattern(self, record: ContributionRecord) -> bool:
        """New wallet, high frequency, low amounts, low diversity"""
        return (
            record.wallet_age < 30 and
            record.frequency > 20 and
            record.amount < 100 and
            record.unique_projects < 3
        )

    def detect_wash_trading(self, record: ContributionRecord) -> bool:
        """Repetitive amounts, high frequency, same projects"""
        return (
            abs(record.amount - record.average_amount) < 10 and
            record.frequency > 15 and
            record.unique_projects < 2
        )

    def detect_unusual_amount(self, record: ContributionRecord) -> bool:
        """Statistical outlier against the wallet's own history (z-score > 3)"""
        spread = max(record.average_amount * 0.3, 1)
        return abs(record.amount - record.average_amount) / spread > 3

    def detect_suspicious_timing(self, record: ContributionRecord) -> bool:
        """Low timing variance at high frequency indicates automation"""
        return record.time_variance < 0.1 and record.frequency > 10

    def analyze_risk_factors(self, record: ContributionRecord) -> RiskFactors:
        return RiskFactors(
            sybil_attack=self.detect_sybil_pattern(record),
            wash_trading=self.detect_wash_trading(record),
            unusual_amount=self.detect_unusual_amount(record),
            suspicious_timing=self.detect_suspicious_timing(record),
            new_wallet=record.wallet_age < 7,
            low_diversity=record.unique_projects < 2,
        )

    def calculate_risk_score(self, factors: RiskFactors) -> float:
        """Triggered weight over the weight of every evaluated factor, clamped to [0, 1]"""
        weights = self.config.weights.as_dict()
        applicable = math.fsum(weights.values())
        if applicable <= 0:
            return 0.0
        triggered = math.fsum(weights[name] for name in factors.triggered())
        return min(1.0, max(0.0, triggered / applicable))

    def calculate_confidence(self, risk_score: float) -> float:
        """Higher confidence for scores far from the threshold"""
        return min(1.0, 0.5 + abs(risk_score - self.threshold))

    def generate_explanation(self, risk_score: float, factors: RiskFactors,
                             record: ContributionRecord) -> str:
        reasons = []
        if factors.sybil_attack:
            reasons.append("Sybil attack pattern detected (new wallet, high frequency, low diversity)")
        if factors.wash_trading:
            reasons.append("Wash trading pattern detected (repetitive amounts, same projects)")
        if factors.unusual_amount:
            reasons.append(f"Unusual contribution amount ({record.amount:g} vs avg {record.average_amount:g})")
        if factors.suspicious_timing:
            reasons.append("Bot-like timing pattern detected")
        if factors.new_wallet:
            reasons.append(f"Very new wallet ({record.wallet_age:g} days old)")
        if factors.low_diversity:
            reasons.append(f"Low project diversity (only {record.unique_projects:g} projects)")

        if not reasons:
            if risk_score > self.threshold:
                return "Anomalous contribution pattern detected"
            return "Contribution appears legitimate"
        return "; ".join(reasons)

    def score(self, record: ContributionRecord) -> RiskAssessment:
        factors = self.analyze_risk_factors(record)
        risk_score = self.calculate_risk_score(factors)
        return RiskAssessment(
            risk_score=risk_score,
            is_fraudulent=risk_score > self.threshold,
            confidence=self.calculate_confidence(risk_score),
            risk_factors=factors,
            explanation=self.generate_explanation(risk_score, factors, record),
            timestamp=self.clock(),
        )


SCORERS: Dict[str, Type[Scorer]] = {
    'rule-based': RuleBasedScorer,
}


def build_scorer(name: str = 'rule-based', config: Optional[ScoringConfig] = None,
                 clock: Optional[Clock] = None) -> Scorer:
    """Instantiate a registered scorer by name"""
    try:
        scorer_cls = SCORERS[name]
    except KeyError:
        raise ConfigurationError(f"Unknown scorer '{name}', expected one of: {', '.join(sorted(SCORERS))}")
    return scorer_cls(config=config, clock=clock)
