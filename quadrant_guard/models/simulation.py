"""Simulation configuration, detection metrics and run results"""
import math
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, model_validator

from quadrant_guard.exceptions import ConfigurationError
from quadrant_guard.models.contribution import AttackType, ContributionRecord, RiskAssessment
from quadrant_guard.models.funding import FundingImpact, ProjectFundingBreakdown, ProjectFundingChange

MIX_TOLERANCE = 1e-9


class Region(str, Enum):
    DEFAULT = "default"
    LATAM = "latam"


class AttackMix(BaseModel):
    """Share of each attack archetype among fraudulent contributions"""
    model_config = ConfigDict(frozen=True)

    sybil: float = 0.4
    wash_trading: float = 0.3
    bot: float = 0.3

    @model_validator(mode='after')
    def check_ratios(self) -> 'AttackMix':
        ratios = (self.sybil, self.wash_trading, self.bot)
        if any(ratio < 0 for ratio in ratios):
            raise ConfigurationError(f"Attack mix ratios must be non-negative: {ratios}")
        if abs(math.fsum(ratios) - 1.0) > MIX_TOLERANCE:
            raise ConfigurationError(f"Attack mix ratios must sum to 1.0, got {math.fsum(ratios)}")
        return self


class SimulationConfig(BaseModel):
    """Immutable description of one simulated funding round"""
    model_config = ConfigDict(frozen=True)

    name: str
    location: str
    total_contributions: int
    projects: int = 12
    fraud_rate: float = 0.1
    attack_mix: AttackMix = AttackMix()
    matching_pool: float = 50_000
    threshold: float = 0.7
    seed: Optional[int] = None
    region: Region = Region.LATAM

    @model_validator(mode='after')
    def check_config(self) -> 'SimulationConfig':
        if self.total_contributions < 0:
            raise ConfigurationError(f"Population size must be non-negative, got {self.total_contributions}")
        if self.projects < 1:
            raise ConfigurationError(f"A round needs at least one project, got {self.projects}")
        if not 0.0 <= self.fraud_rate <= 1.0:
            raise ConfigurationError(f"Fraud rate must be within [0, 1], got {self.fraud_rate}")
        if self.matching_pool <= 0:
            raise ConfigurationError(f"Matching pool must be positive, got {self.matching_pool}")
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError(f"Detection threshold must be within [0, 1], got {self.threshold}")
        return self

    @property
    def region_tag(self) -> str:
        """Short tag used to prefix contributor ids, e.g. 'buenosaires'"""
        return self.location.split(',')[0].lower().replace(' ', '')


LATAM_ATTACK_MIX = AttackMix(sybil=0.4, wash_trading=0.35, bot=0.25)

PRESET_SIMULATIONS: Dict[str, SimulationConfig] = {
    'buenosAires': SimulationConfig(
        name='Buenos Aires Community Art Grant',
        location='Buenos Aires, Argentina',
        total_contributions=100,
        projects=12,
        matching_pool=50_000,
        fraud_rate=0.12,
        attack_mix=LATAM_ATTACK_MIX,
    ),
    'mexicoCity': SimulationConfig(
        name='Mexico City Tech Commons',
        location='Mexico City, Mexico',
        total_contributions=150,
        projects=18,
        matching_pool=75_000,
        fraud_rate=0.15,
        attack_mix=LATAM_ATTACK_MIX,
    ),
    'saoPaulo': SimulationConfig(
        name='São Paulo Social Impact Fund',
        location='São Paulo, Brazil',
        total_contributions=200,
        projects=24,
        matching_pool=100_000,
        fraud_rate=0.10,
        attack_mix=LATAM_ATTACK_MIX,
    ),
}


def _ratio(numerator: float, denominator: float) -> float:
    return numerator / denominator if denominator else 0.0


@dataclass(frozen=True)
class DetectionMetrics:
    """Confusion matrix of a detector against ground truth, with derived rates"""
    true_positives: int = 0
    true_negatives: int = 0
    false_positives: int = 0
    false_negatives: int = 0

    def __add__(self, other: 'DetectionMetrics') -> 'DetectionMetrics':
        if not isinstance(other, DetectionMetrics):
            return NotImplemented
        return DetectionMetrics(
            true_positives=self.true_positives + other.true_positives,
            true_negatives=self.true_negatives + other.true_negatives,
            false_positives=self.false_positives + other.false_positives,
            false_negatives=self.false_negatives + other.false_negatives,
        )

    @property
    def total(self) -> int:
        return self.true_positives + self.true_negatives + self.false_positives + self.false_negatives

    @property
    def actual_fraud(self) -> int:
        return self.true_positives + self.false_negatives

    @property
    def detected_fraud(self) -> int:
        return self.true_positives + self.false_positives

    @property
    def accuracy(self) -> float:
        return _ratio(self.true_positives + self.true_negatives, self.total)

    @property
    def precision(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_positives)

    @property
    def recall(self) -> float:
        return _ratio(self.true_positives, self.true_positives + self.false_negatives)

    @property
    def f1_score(self) -> float:
        return _ratio(2 * self.precision * self.recall, self.precision + self.recall)

    @property
    def false_positive_rate(self) -> float:
        return _ratio(self.false_positives, self.false_positives + self.true_negatives)

    @property
    def false_negative_rate(self) -> float:
        return _ratio(self.false_negatives, self.false_negatives + self.true_positives)

    @property
    def confusion_matrix(self) -> List[List[int]]:
        """Rows are actual fraud / actual legitimate, columns predicted fraud / predicted legitimate"""
        return [
            [self.true_positives, self.false_negatives],
            [self.false_positives, self.true_negatives],
        ]

    def to_dict(self) -> dict:
        return {
            'totalContributions': self.total,
            'actualFraud': self.actual_fraud,
            'detectedFraud': self.detected_fraud,
            'truePositives': self.true_positives,
            'trueNegatives': self.true_negatives,
            'falsePositives': self.false_positives,
            'falseNegatives': self.false_negatives,
            'accuracy': self.accuracy,
            'precision': self.precision,
            'recall': self.recall,
            'f1Score': self.f1_score,
            'falsePositiveRate': self.false_positive_rate,
            'falseNegativeRate': self.false_negative_rate,
        }


class SimulationStage(str, Enum):
    CONFIGURED = "configured"
    GENERATED = "generated"
    SCORED = "scored"
    ALLOCATED_FULL = "allocated_full"
    ALLOCATED_FILTERED = "allocated_filtered"
    REPORTED = "reported"


@dataclass(frozen=True)
class SimulationResult:
    """Everything one simulated round produced"""
    config: SimulationConfig
    contributions: List[ContributionRecord]
    assessments: List[RiskAssessment]
    metrics: DetectionMetrics
    funding_before: Dict[str, ProjectFundingBreakdown]
    funding_after: Dict[str, ProjectFundingBreakdown]
    funding_changes: List[ProjectFundingChange]
    funding_impact: FundingImpact
    processing_time_ms: float
    completed_at: datetime

    @property
    def fraud_count(self) -> int:
        return sum(1 for record in self.contributions if record.is_labeled_fraud)

    @property
    def fraud_rate(self) -> float:
        return _ratio(self.fraud_count, len(self.contributions))

    @property
    def throughput(self) -> float:
        """Contributions processed per second"""
        return _ratio(len(self.contributions), self.processing_time_ms / 1000)

    @property
    def attack_breakdown(self) -> Dict[str, int]:
        counts = Counter(record.attack_type for record in self.contributions)
        return {
            attack.value: counts.get(attack, 0)
            for attack in AttackType
            if attack != AttackType.NONE
        }

    @property
    def top_gainers(self) -> List[ProjectFundingChange]:
        return [change for change in self.funding_changes if change.change > 0][:3]

    @property
    def top_losers(self) -> List[ProjectFundingChange]:
        return [change for change in self.funding_changes if change.change < 0][:3]


@dataclass(frozen=True)
class OverallStats:
    """Totals and averages across several simulations"""
    total_contributions: int
    total_fraud: int
    total_detected: int
    metrics: DetectionMetrics
    average_accuracy: float
    average_precision: float
    average_recall: float
    average_f1_score: float

    @property
    def fraud_rate(self) -> float:
        return _ratio(self.total_fraud, self.total_contributions)

    @property
    def detection_rate(self) -> float:
        return _ratio(self.total_detected, self.total_fraud)

    def to_dict(self) -> dict:
        return {
            'totalContributions': self.total_contributions,
            'totalFraud': self.total_fraud,
            'totalDetected': self.total_detected,
            'fraudRate': self.fraud_rate,
            'detectionRate': self.detection_rate,
            'truePositives': self.metrics.true_positives,
            'trueNegatives': self.metrics.true_negatives,
            'falsePositives': self.metrics.false_positives,
            'falseNegatives': self.metrics.false_negatives,
            'avgAccuracy': self.average_accuracy,
            'avgPrecision': self.average_precision,
            'avgRecall': self.average_recall,
            'avgF1Score': self.average_f1_score,
        }


@dataclass(frozen=True)
class SimulationComparison:
    """Cross-simulation statistics and rankings (simulation names, best first)"""
    overall: OverallStats
    by_accuracy: List[str] = field(default_factory=list)
    by_fraud_rate: List[str] = field(default_factory=list)
    by_throughput: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            'overall': self.overall.to_dict(),
            'byAccuracy': list(self.by_accuracy),
            'byFraudRate': list(self.by_fraud_rate),
            'byThroughput': list(self.by_throughput),
        }
