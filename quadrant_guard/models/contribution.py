"""Domain models for contribution records and their risk assessments"""
from dataclasses import dataclass, fields
from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from quadrant_guard.exceptions import InvalidInputError

Feature = Annotated[float, Field(strict=True, ge=0, allow_inf_nan=False)]


class GroundTruthLabel(str, Enum):
    NORMAL = "normal"
    FRAUDULENT = "fraudulent"


class AttackType(str, Enum):
    NONE = "none"
    SYBIL = "sybil"
    WASH_TRADING = "wash-trading"
    BOT = "bot"


# Applied once when a record is built; average_amount falls back to amount.
# A record without timing data is treated as irregular rather than mechanical.
FEATURE_DEFAULTS: Dict[str, Any] = {
    'frequency': 0,
    'wallet_age': 0,
    'transaction_count': 0,
    'time_variance': 1.0,  # detector falls back to 1 when timing is absent, not 0
    'unique_projects': 0,
    'round_participation': 0,
    'project_id': 'unassigned',
    'contributor_id': 'anonymous',
}


class ContributionRecord(BaseModel):
    """
    One observed or synthesized contribution to a funding round.

    Ground truth fields are only populated for synthetic data and are never
    read by a scorer.
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel, extra='ignore')

    amount: Annotated[float, Field(strict=True, gt=0, allow_inf_nan=False)]
    frequency: Feature
    wallet_age: Feature
    transaction_count: Feature
    average_amount: Feature
    time_variance: Feature
    unique_projects: Feature
    round_participation: Feature
    project_id: str
    contributor_id: str
    ground_truth_label: Optional[GroundTruthLabel] = None
    attack_type: Optional[AttackType] = None

    @model_validator(mode='before')
    @classmethod
    def apply_defaults(cls, data: Any) -> Any:
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for name, default in FEATURE_DEFAULTS.items():
            if data.get(name) is None and data.get(to_camel(name)) is None:
                data[name] = default
        if data.get('average_amount') is None and data.get('averageAmount') is None:
            data['average_amount'] = data.get('amount')
        return data

    @classmethod
    def from_payload(cls, payload: Any) -> 'ContributionRecord':
        """Build a record from an external payload, raising InvalidInputError on bad data"""
        if not isinstance(payload, dict):
            raise InvalidInputError("Contribution object with valid amount is required")
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            fields_in_error = sorted({'.'.join(str(part) for part in err['loc']) for err in e.errors()})
            raise InvalidInputError(f"Invalid contribution data: {', '.join(fields_in_error)}") from e

    def to_payload(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode='json', exclude_none=True)

    @property
    def is_labeled_fraud(self) -> bool:
        """Ground truth, only meaningful for labeled data"""
        return self.ground_truth_label == GroundTruthLabel.FRAUDULENT


@dataclass(frozen=True)
class RiskFactors:
    """Named risk predicates, in fixed evaluation order"""
    sybil_attack: bool = False
    wash_trading: bool = False
    unusual_amount: bool = False
    suspicious_timing: bool = False
    new_wallet: bool = False
    low_diversity: bool = False

    def triggered(self) -> List[str]:
        return [f.name for f in fields(self) if getattr(self, f.name)]

    def to_dict(self) -> Dict[str, bool]:
        return {to_camel(f.name): getattr(self, f.name) for f in fields(self)}


class RiskAssessment(BaseModel):
    """
    Scorer output for a single contribution.

    Attributes:
        risk_score: Normalized weighted risk between 0 and 1
        is_fraudulent: True when risk_score is strictly above the threshold
        confidence: 0.5 plus the distance from the threshold, capped at 1
        risk_factors: Which predicates fired
        explanation: Human readable join of the fired predicates
        timestamp: When the assessment was produced
    """
    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    risk_score: float
    is_fraudulent: bool
    confidence: float
    risk_factors: RiskFactors
    explanation: str
    timestamp: datetime

    def to_payload(self) -> Dict[str, Any]:
        payload = self.model_dump(by_alias=True, mode='json')
        payload['riskFactors'] = self.risk_factors.to_dict()
        return payload
