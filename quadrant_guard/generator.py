"""Synthetic contribution populations with labeled ground truth"""
import logging
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from quadrant_guard.exceptions import ConfigurationError
from quadrant_guard.models.contribution import AttackType, ContributionRecord, GroundTruthLabel
from quadrant_guard.models.round import DatasetStatistics
from quadrant_guard.models.simulation import AttackMix, Region

logger = logging.getLogger(__name__)

SYBIL_BURST = 5
WASH_BURST = 8
BOT_BURST = 10


@dataclass(frozen=True)
class RegionProfile:
    """Generative ranges for legitimate contributors in one region"""
    wallet_age: Tuple[int, int]
    frequency: Tuple[int, int]
    amount_mean: float
    amount_std: float
    min_amount: float
    unique_projects: Tuple[int, int]
    transaction_count: Tuple[int, int]
    average_factor: Tuple[float, float]
    time_variance: Tuple[float, float]
    round_participation: Tuple[int, int]


DEFAULT_PROFILE = RegionProfile(
    wallet_age=(30, 365),
    frequency=(1, 10),
    amount_mean=5000,
    amount_std=2000,
    min_amount=100,
    unique_projects=(3, 20),
    transaction_count=(50, 500),
    average_factor=(0.8, 1.2),
    time_variance=(0.3, 0.9),
    round_participation=(1, 5),
)

# Established wallets, smaller community-sized amounts
LATAM_PROFILE = RegionProfile(
    wallet_age=(60, 400),
    frequency=(2, 8),
    amount_mean=2000,
    amount_std=1000,
    min_amount=50,
    unique_projects=(4, 15),
    transaction_count=(30, 200),
    average_factor=(0.7, 1.3),
    time_variance=(0.4, 0.95),
    round_participation=(1, 4),
)

REGION_PROFILES: Dict[Region, RegionProfile] = {
    Region.DEFAULT: DEFAULT_PROFILE,
    Region.LATAM: LATAM_PROFILE,
}


def default_project_ids(count: int = 12) -> List[str]:
    return [f"project-{i + 1}" for i in range(count)]


def split_by_mix(total: int, mix: AttackMix) -> Tuple[int, int, int]:
    """
    Split ``total`` into sybil, wash trading and bot counts.

    Each archetype gets the floor of its share; the leftover goes one at a
    time to the largest fractional shares. An archetype with a zero ratio
    never receives any.
    """
    ratios = (mix.sybil, mix.wash_trading, mix.bot)
    shares = [total * ratio for ratio in ratios]
    counts = [math.floor(share) for share in shares]
    remainder = total - sum(counts)
    ranked = sorted(
        (i for i, ratio in enumerate(ratios) if ratio > 0),
        key=lambda i: shares[i] - counts[i],
        reverse=True,
    )
    for i in ranked[:remainder]:
        counts[i] += 1
    return counts[0], counts[1], counts[2]


class ContributionGenerator:
    """
    Produces synthetic contributions for the normal, sybil, wash-trading and
    bot archetypes.

    All randomness comes from one ``random.Random`` owned by the generator, so
    two generators built with the same seed emit identical populations.
    """

    def __init__(
            self,
            seed: Optional[int] = None,
            rng: Optional[random.Random] = None,
            profile: RegionProfile = DEFAULT_PROFILE,
            project_ids: Optional[Sequence[str]] = None,
            contributor_prefix: str = "contributor",
            normal_mean: Optional[float] = None,
            normal_std: Optional[float] = None,
            min_amount: Optional[float] = None,
    ):
        self.rng = rng if rng is not None else random.Random(seed)
        self.profile = profile
        self.normal_mean = profile.amount_mean if normal_mean is None else normal_mean
        self.normal_std = profile.amount_std if normal_std is None else normal_std
        self.min_amount = profile.min_amount if min_amount is None else min_amount
        self.project_ids = list(project_ids) if project_ids else default_project_ids()
        self.contributor_prefix = contributor_prefix
        self._next_contributor = 0

        if self.min_amount <= 0:
            raise ConfigurationError(f"Minimum amount must be positive, got {self.min_amount}")

    # Randomness helpers

    def _randint(self, bounds: Tuple[int, int]) -> int:
        return self.rng.randint(bounds[0], bounds[1])

    def _uniform(self, bounds: Tuple[float, float]) -> float:
        return self.rng.uniform(bounds[0], bounds[1])

    def _normal(self, mean: float, std_dev: float) -> float:
        """Box-Muller transform over the generator's own uniform source"""
        u1 = 1.0 - self.rng.random()  # (0, 1], keeps log() finite
        u2 = self.rng.random()
        z0 = math.sqrt(-2.0 * math.log(u1)) * math.cos(2.0 * math.pi * u2)
        return z0 * std_dev + mean

    def _shuffle(self, records: List[ContributionRecord]) -> List[ContributionRecord]:
        """Fisher-Yates shuffle into a new list"""
        shuffled = list(records)
        for i in range(len(shuffled) - 1, 0, -1):
            j = self.rng.randint(0, i)
            shuffled[i], shuffled[j] = shuffled[j], shuffled[i]
        return shuffled

    def _new_contributor(self) -> str:
        self._next_contributor += 1
        return f"{self.contributor_prefix}-{self._next_contributor}"

    def _pick_project(self) -> str:
        return self.rng.choice(self.project_ids)

    # Archetypes

    def generate_normal(self, profile: Optional[RegionProfile] = None) -> ContributionRecord:
        """Legitimate contribution: established wallet, diverse portfolio, irregular timing"""
        profile = profile or self.profile
        if profile is self.profile:
            mean, std_dev, floor = self.normal_mean, self.normal_std, self.min_amount
        else:
            mean, std_dev, floor = profile.amount_mean, profile.amount_std, profile.min_amount

        amount = self._normal(mean, std_dev)
        average_amount = amount * self._uniform(profile.average_factor)
        return ContributionRecord(
            amount=max(floor, amount),
            frequency=self._randint(profile.frequency),
            wallet_age=self._randint(profile.wallet_age),
            transaction_count=self._randint(profile.transaction_count),
            average_amount=max(floor, average_amount),
            time_variance=self._uniform(profile.time_variance),
            unique_projects=self._randint(profile.unique_projects),
            round_participation=self._randint(profile.round_participation),
            project_id=self._pick_project(),
            contributor_id=self._new_contributor(),
            ground_truth_label=GroundTruthLabel.NORMAL,
            attack_type=AttackType.NONE,
        )

    def generate_sybil_burst(self, size: int = SYBIL_BURST) -> List[ContributionRecord]:
        """Freshly created wallets each sending a small amount to the same project"""
        project_id = self._pick_project()
        burst = []
        for _ in range(size):
            amount = self._randint((10, 200))
            burst.append(ContributionRecord(
                amount=amount,
                frequency=self._randint((15, 50)),
                wallet_age=self._randint((1, 30)),
                transaction_count=self._randint((10, 100)),
                average_amount=amount * self._uniform((0.9, 1.1)),
                time_variance=self._uniform((0.05, 0.3)),
                unique_projects=self._randint((1, 3)),
                round_participation=self._randint((1, 3)),
                project_id=project_id,
                contributor_id=self._new_contributor(),
                ground_truth_label=GroundTruthLabel.FRAUDULENT,
                attack_type=AttackType.SYBIL,
            ))
        return burst

    def generate_wash_trading_burst(self, size: int = WASH_BURST) -> List[ContributionRecord]:
        """One wallet repeating a near-identical amount into the same project"""
        project_id = self._pick_project()
        contributor_id = self._new_contributor()
        base_amount = self._randint((1000, 5000))
        wallet_age = self._randint((10, 90))
        unique_projects = self._randint((1, 2))
        burst = []
        for _ in range(size):
            burst.append(ContributionRecord(
                amount=base_amount + self._randint((-50, 50)),
                frequency=self._randint((20, 60)),
                wallet_age=wallet_age,
                transaction_count=self._randint((100, 300)),
                average_amount=base_amount,
                time_variance=self._uniform((0.02, 0.15)),
                unique_projects=unique_projects,
                round_participation=self._randint((2, 5)),
                project_id=project_id,
                contributor_id=contributor_id,
                ground_truth_label=GroundTruthLabel.FRAUDULENT,
                attack_type=AttackType.WASH_TRADING,
            ))
        return burst

    def generate_bot_burst(self, size: int = BOT_BURST) -> List[ContributionRecord]:
        """Automated wallet sending one exact amount on a mechanical schedule"""
        project_id = self._pick_project()
        contributor_id = self._new_contributor()
        amount = self._randint((500, 3000))
        wallet_age = self._randint((5, 60))
        unique_projects = self._randint((2, 5))
        burst = []
        for _ in range(size):
            burst.append(ContributionRecord(
                amount=amount,
                frequency=self._randint((25, 80)),
                wallet_age=wallet_age,
                transaction_count=self._randint((150, 400)),
                average_amount=amount,
                time_variance=self._uniform((0.01, 0.08)),
                unique_projects=unique_projects,
                round_participation=self._randint((1, 4)),
                project_id=project_id,
                contributor_id=contributor_id,
                ground_truth_label=GroundTruthLabel.FRAUDULENT,
                attack_type=AttackType.BOT,
            ))
        return burst

    def _fill(self, count: int, burst_factory) -> List[ContributionRecord]:
        """Emit whole bursts until count is reached, trimming the last one"""
        records: List[ContributionRecord] = []
        while len(records) < count:
            records.extend(burst_factory())
        return records[:count]

    # Datasets

    def generate(
            self,
            count: int,
            fraud_ratio: float = 0.2,
            archetype_mix: Optional[AttackMix] = None,
    ) -> List[ContributionRecord]:
        """
        Generate a shuffled, labeled population.

        Args:
            count: Total number of contributions
            fraud_ratio: Share of fraudulent contributions, between 0 and 1
            archetype_mix: Split of fraudulent contributions across attack types

        Returns:
            List[ContributionRecord]: exactly ``count`` records
        """
        if count < 0:
            raise ConfigurationError(f"Contribution count must be non-negative, got {count}")
        if not 0.0 <= fraud_ratio <= 1.0:
            raise ConfigurationError(f"Fraud ratio must be within [0, 1], got {fraud_ratio}")
        mix = archetype_mix or AttackMix()

        fraud_count = math.floor(count * fraud_ratio)
        sybil_count, wash_count, bot_count = split_by_mix(fraud_count, mix)

        records = [self.generate_normal() for _ in range(count - fraud_count)]
        records.extend(self._fill(sybil_count, self.generate_sybil_burst))
        records.extend(self._fill(wash_count, self.generate_wash_trading_burst))
        records.extend(self._fill(bot_count, self.generate_bot_burst))

        logger.info(
            f"Generated {len(records)} contributions "
            f"({fraud_count} fraudulent: {sybil_count} sybil, {wash_count} wash trading, {bot_count} bot)"
        )
        return self._shuffle(records)

    def generate_latam_dataset(self, count: int = 1000) -> List[ContributionRecord]:
        """70% community contributions, 15% sybil, 10% wash trading, 5% bot"""
        if count < 0:
            raise ConfigurationError(f"Contribution count must be non-negative, got {count}")
        normal_count = math.floor(count * 0.7)
        sybil_count = math.floor(count * 0.15)
        wash_count = math.floor(count * 0.1)
        bot_count = count - normal_count - sybil_count - wash_count

        records = [self.generate_normal(LATAM_PROFILE) for _ in range(normal_count)]
        records.extend(self._fill(sybil_count, self.generate_sybil_burst))
        records.extend(self._fill(wash_count, self.generate_wash_trading_burst))
        records.extend(self._fill(bot_count, self.generate_bot_burst))
        return self._shuffle(records)

    def generate_grant_round(self, count: int = 100) -> Tuple[List[ContributionRecord], Dict[str, Any]]:
        """Buenos Aires art grant round: a LATAM dataset plus round metadata"""
        contributions = self.generate_latam_dataset(count)
        total_amount = math.fsum(record.amount for record in contributions)
        metadata = {
            'totalAmount': total_amount,
            'uniqueWallets': len({record.contributor_id for record in contributions}),
            'flaggedCount': sum(1 for record in contributions if record.is_labeled_fraud),
            'averageContribution': total_amount / count if count else 0.0,
        }
        return contributions, metadata


def dataset_statistics(records: Sequence[ContributionRecord]) -> DatasetStatistics:
    """Label balance and feature averages; all zeros for an empty dataset"""
    total = len(records)
    if total == 0:
        return DatasetStatistics(0, 0, 0, 0.0, 0.0, 0.0, 0.0)

    fraudulent = sum(1 for record in records if record.is_labeled_fraud)
    normal = sum(1 for record in records if record.ground_truth_label == GroundTruthLabel.NORMAL)
    return DatasetStatistics(
        total=total,
        normal=normal,
        fraudulent=fraudulent,
        fraud_percentage=fraudulent / total * 100,
        average_amount=math.fsum(record.amount for record in records) / total,
        average_wallet_age=math.fsum(record.wallet_age for record in records) / total,
        average_frequency=math.fsum(record.frequency for record in records) / total,
    )
