"""
Pytest configuration and fixtures for quadrant guard tests.
"""

from datetime import datetime, timezone

import pytest

from quadrant_guard.config import ScoringConfig
from quadrant_guard.models.contribution import ContributionRecord
from quadrant_guard.scoring import RuleBasedScorer

FIXED_TIME = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


@pytest.fixture
def fixed_clock():
    """Clock that always returns the same instant."""
    return lambda: FIXED_TIME


@pytest.fixture
def scorer(fixed_clock):
    """Rule-based scorer with default weights and threshold 0.7."""
    return RuleBasedScorer(ScoringConfig(threshold=0.7), clock=fixed_clock)


@pytest.fixture
def sybil_payload():
    """Fresh wallet sending small, frequent, undiversified contributions."""
    return {
        "amount": 50,
        "frequency": 30,
        "walletAge": 5,
        "uniqueProjects": 1,
        "averageAmount": 50,
        "timeVariance": 0.05,
        "transactionCount": 10,
        "roundParticipation": 1,
        "projectId": "project-1",
        "contributorId": "sybil-1",
    }


@pytest.fixture
def clean_payload():
    """Established, diversified contributor with irregular timing."""
    return {
        "amount": 5000,
        "frequency": 3,
        "walletAge": 200,
        "uniqueProjects": 10,
        "averageAmount": 5200,
        "timeVariance": 0.6,
        "transactionCount": 300,
        "roundParticipation": 3,
        "projectId": "project-2",
        "contributorId": "honest-1",
    }


@pytest.fixture
def sybil_record(sybil_payload):
    return ContributionRecord.from_payload(sybil_payload)


@pytest.fixture
def clean_record(clean_payload):
    return ContributionRecord.from_payload(clean_payload)


@pytest.fixture
def make_contribution():
    """Factory for minimal contributions, used by allocation tests."""
    def _make(project_id, amount, contributor_id="c", **features):
        return ContributionRecord(
            amount=amount,
            project_id=project_id,
            contributor_id=contributor_id,
            **features
        )
    return _make
