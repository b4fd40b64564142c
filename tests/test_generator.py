"""
Tests for the synthetic contribution generator.
"""

import pytest

from quadrant_guard.exceptions import ConfigurationError
from quadrant_guard.generator import (
    BOT_BURST,
    LATAM_PROFILE,
    SYBIL_BURST,
    WASH_BURST,
    ContributionGenerator,
    dataset_statistics,
    split_by_mix,
)
from quadrant_guard.models.contribution import AttackType, GroundTruthLabel
from quadrant_guard.models.simulation import AttackMix


@pytest.fixture
def generator():
    return ContributionGenerator(seed=42)


class TestArchetypes:
    """Tests for each behavioral archetype"""

    def test_normal_contribution_ranges(self, generator):
        for _ in range(200):
            record = generator.generate_normal()

            assert record.ground_truth_label == GroundTruthLabel.NORMAL
            assert record.attack_type == AttackType.NONE
            assert record.amount >= 100
            assert 30 <= record.wallet_age <= 365
            assert 1 <= record.frequency <= 10
            assert 3 <= record.unique_projects <= 20
            assert 0.3 <= record.time_variance <= 0.9

    def test_normal_contribution_with_latam_profile(self, generator):
        record = generator.generate_normal(LATAM_PROFILE)

        assert record.amount >= LATAM_PROFILE.min_amount
        assert 60 <= record.wallet_age <= 400

    def test_sybil_burst_shares_project(self, generator):
        burst = generator.generate_sybil_burst()

        assert len(burst) == SYBIL_BURST
        assert len({record.project_id for record in burst}) == 1
        assert len({record.contributor_id for record in burst}) == SYBIL_BURST
        for record in burst:
            assert record.attack_type == AttackType.SYBIL
            assert record.is_labeled_fraud
            assert 10 <= record.amount <= 200
            assert 1 <= record.wallet_age <= 30

    def test_wash_trading_burst_repeats_one_wallet(self, generator):
        burst = generator.generate_wash_trading_burst()

        assert len(burst) == WASH_BURST
        assert len({record.contributor_id for record in burst}) == 1
        for record in burst:
            assert record.attack_type == AttackType.WASH_TRADING
            assert abs(record.amount - record.average_amount) <= 50

    def test_bot_burst_uses_exact_amount(self, generator):
        burst = generator.generate_bot_burst()

        assert len(burst) == BOT_BURST
        assert len({record.amount for record in burst}) == 1
        for record in burst:
            assert record.attack_type == AttackType.BOT
            assert record.time_variance < 0.1

    def test_min_amount_must_be_positive(self):
        with pytest.raises(ConfigurationError):
            ContributionGenerator(seed=1, min_amount=0)


class TestDatasets:
    """Tests for labeled population generation"""

    @pytest.mark.parametrize("count,fraud_ratio", [(0, 0.2), (1, 0.5), (100, 0.1), (257, 0.33), (50, 1.0)])
    def test_exact_counts(self, count, fraud_ratio):
        records = ContributionGenerator(seed=5).generate(count, fraud_ratio)

        fraud = sum(1 for record in records if record.is_labeled_fraud)
        assert len(records) == count
        assert fraud == int(count * fraud_ratio)
        assert all(record.ground_truth_label is not None for record in records)

    def test_archetype_mix_split(self):
        mix = AttackMix(sybil=0.5, wash_trading=0.25, bot=0.25)
        records = ContributionGenerator(seed=8).generate(100, fraud_ratio=0.4, archetype_mix=mix)

        types = [record.attack_type for record in records]
        assert types.count(AttackType.SYBIL) == 20
        assert types.count(AttackType.WASH_TRADING) == 10
        assert types.count(AttackType.BOT) == 10
        assert types.count(AttackType.NONE) == 60

    def test_zero_ratio_archetype_is_never_generated(self):
        """Rounding leftovers never go to an archetype the mix excludes."""
        mix = AttackMix(sybil=0.5, wash_trading=0.5, bot=0.0)

        for count in (10, 11, 37, 101):
            records = ContributionGenerator(seed=count).generate(count, fraud_ratio=0.5, archetype_mix=mix)
            types = [record.attack_type for record in records]

            assert types.count(AttackType.BOT) == 0
            assert types.count(AttackType.SYBIL) + types.count(AttackType.WASH_TRADING) == count // 2

    @pytest.mark.parametrize("total,ratios,expected", [
        (10, (0.5, 0.5, 0.0), (5, 5, 0)),
        (7, (0.5, 0.5, 0.0), (4, 3, 0)),
        (20, (0.43, 0.32, 0.25), (9, 6, 5)),
        (3, (0.0, 0.0, 1.0), (0, 0, 3)),
        (0, (0.4, 0.3, 0.3), (0, 0, 0)),
    ])
    def test_split_by_mix(self, total, ratios, expected):
        mix = AttackMix(sybil=ratios[0], wash_trading=ratios[1], bot=ratios[2])

        assert split_by_mix(total, mix) == expected

    def test_seed_reproducibility(self):
        first = ContributionGenerator(seed=99).generate(150, fraud_ratio=0.3)
        second = ContributionGenerator(seed=99).generate(150, fraud_ratio=0.3)
        other = ContributionGenerator(seed=100).generate(150, fraud_ratio=0.3)

        assert first == second
        assert first != other

    def test_population_is_shuffled(self):
        records = ContributionGenerator(seed=2).generate(200, fraud_ratio=0.5)
        labels = [record.is_labeled_fraud for record in records]

        # Unshuffled output would be 100 normals followed by 100 frauds
        assert labels != sorted(labels)

    @pytest.mark.parametrize("fraud_ratio", [-0.1, 1.1])
    def test_invalid_fraud_ratio(self, generator, fraud_ratio):
        with pytest.raises(ConfigurationError):
            generator.generate(10, fraud_ratio)

    def test_invalid_count(self, generator):
        with pytest.raises(ConfigurationError):
            generator.generate(-1)

    def test_invalid_mix(self):
        with pytest.raises(ConfigurationError):
            AttackMix(sybil=0.5, wash_trading=0.5, bot=0.5)

    def test_latam_dataset_split(self, generator):
        records = generator.generate_latam_dataset(1000)
        types = [record.attack_type for record in records]

        assert len(records) == 1000
        assert types.count(AttackType.NONE) == 700
        assert types.count(AttackType.SYBIL) == 150
        assert types.count(AttackType.WASH_TRADING) == 100
        assert types.count(AttackType.BOT) == 50

    def test_grant_round_metadata(self, generator):
        records, metadata = generator.generate_grant_round(100)

        assert len(records) == 100
        assert metadata['flaggedCount'] == 30
        assert metadata['totalAmount'] == pytest.approx(sum(record.amount for record in records))
        assert metadata['averageContribution'] == pytest.approx(metadata['totalAmount'] / 100)
        assert metadata['uniqueWallets'] == len({record.contributor_id for record in records})


class TestDatasetStatistics:
    """Tests for dataset summary statistics"""

    def test_statistics(self, generator):
        records = generator.generate(100, fraud_ratio=0.2)

        stats = dataset_statistics(records)

        assert stats.total == 100
        assert stats.fraudulent == 20
        assert stats.normal == 80
        assert stats.fraud_percentage == pytest.approx(20.0)
        assert stats.average_amount > 0

    def test_empty_statistics(self):
        stats = dataset_statistics([])

        assert stats.total == 0
        assert stats.fraud_percentage == 0.0
        assert stats.to_dict()['averageAmount'] == 0.0
