"""Request/response handling for contribution analysis and dataset generation"""
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from quadrant_guard.config import ScoringConfig
from quadrant_guard.exceptions import ConfigurationError, InvalidInputError
from quadrant_guard.generator import ContributionGenerator, dataset_statistics
from quadrant_guard.models.contribution import ContributionRecord
from quadrant_guard.scoring import Scorer, build_scorer

logger = logging.getLogger(__name__)

DATASET_TYPES = ('general', 'latam', 'buenos-aires')


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


class AnalysisService:
    """Scores submitted contributions and produces synthetic datasets"""

    def __init__(self, config: Optional[ScoringConfig] = None, scorer_name: str = 'rule-based',
                 seed: Optional[int] = None, max_workers: Optional[int] = None):
        self.config = config or ScoringConfig()
        self.scorer_name = scorer_name
        self.scorer: Scorer = build_scorer(scorer_name, self.config)
        self.seed = seed
        self.max_workers = max_workers

    def analyze_contribution(self, payload: Any) -> Dict[str, Any]:
        """Analyze a single contribution for fraud"""
        if not isinstance(payload, dict) or not _is_number(payload.get('amount')):
            raise InvalidInputError("Contribution object with valid amount is required")

        record = ContributionRecord.from_payload(payload)
        assessment = self.scorer.score(record)
        logger.info(f"Scored contribution from {record.contributor_id}: {assessment.risk_score:.3f}")
        return assessment.to_payload()

    def analyze_round(self, payload: Any) -> Dict[str, Any]:
        """Analyze an entire funding round, returning the flagged subset and summary counts"""
        if not isinstance(payload, dict) or not isinstance(payload.get('contributions'), list):
            raise InvalidInputError("Contributions array is required")

        scorer = self.scorer
        threshold = payload.get('threshold')
        if threshold is not None:
            if not _is_number(threshold):
                raise InvalidInputError(f"Threshold must be a number, got {threshold!r}")
            try:
                scorer = build_scorer(self.scorer_name, self.config.with_threshold(threshold))
            except ConfigurationError as e:
                raise InvalidInputError(str(e)) from e

        try:
            records = [ContributionRecord.from_payload(item) for item in payload['contributions']]
        except InvalidInputError as e:
            logger.error(f"Rejected round {payload.get('roundId') or 'unknown'}: {e}")
            raise
        analysis = scorer.score_round(records, max_workers=self.max_workers)

        return {
            'roundId': payload.get('roundId') or 'unknown',
            'results': [result.to_payload() for result in analysis.high_risk],
            'summary': {
                'total': analysis.total_contributions,
                'flagged': analysis.flagged_contributions,
                'flaggedPercentage': analysis.flagged_percentage,
                'averageRiskScore': analysis.average_risk_score,
            },
            'summaryText': analysis.summary,
            'processedAt': datetime.now(timezone.utc).isoformat(),
        }

    def generate_dataset(self, payload: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """Generate a synthetic dataset with its statistics"""
        payload = payload or {}
        count = payload.get('count', 100)
        dataset_type = payload.get('type', 'general')
        fraud_percentage = payload.get('fraudPercentage', 0.2)

        if not isinstance(count, int) or isinstance(count, bool) or count < 0:
            raise InvalidInputError(f"Count must be a non-negative integer, got {count!r}")
        if not _is_number(fraud_percentage) or not 0.0 <= fraud_percentage <= 1.0:
            raise InvalidInputError(f"Fraud percentage must be a number within [0, 1], got {fraud_percentage!r}")
        if dataset_type not in DATASET_TYPES:
            raise InvalidInputError(f"Unknown dataset type '{dataset_type}', expected one of: {', '.join(DATASET_TYPES)}")

        generator = ContributionGenerator(seed=self.seed)
        response: Dict[str, Any] = {}
        if dataset_type == 'latam':
            dataset = generator.generate_latam_dataset(count)
        elif dataset_type == 'buenos-aires':
            dataset, metadata = generator.generate_grant_round(count)
            response['metadata'] = metadata
        else:
            dataset = generator.generate(count, fraud_percentage)

        response['data'] = [record.to_payload() for record in dataset]
        response['statistics'] = dataset_statistics(dataset).to_dict()
        logger.info(f"Generated {dataset_type} dataset with {len(dataset)} contributions")
        return response
