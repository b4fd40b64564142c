"""Application configuration and environment settings"""
import math
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from quadrant_guard.exceptions import ConfigurationError

DEFAULT_THRESHOLD = 0.7
WEIGHT_TOLERANCE = 1e-9


class FactorWeights(BaseModel):
    """Weights of the six risk factors, in evaluation order"""
    model_config = ConfigDict(frozen=True)

    sybil_attack: float = 0.35
    wash_trading: float = 0.30
    unusual_amount: float = 0.15
    suspicious_timing: float = 0.10
    new_wallet: float = 0.05
    low_diversity: float = 0.05

    @model_validator(mode='after')
    def check_weights(self) -> 'FactorWeights':
        values = self.as_dict()
        negative = [name for name, weight in values.items() if weight < 0]
        if negative:
            raise ConfigurationError(f"Risk factor weights must be non-negative: {', '.join(negative)}")
        total = math.fsum(values.values())
        if abs(total - 1.0) > WEIGHT_TOLERANCE:
            raise ConfigurationError(f"Risk factor weights must sum to 1.0, got {total}")
        return self

    def as_dict(self) -> Dict[str, float]:
        """Weights keyed by factor name, in evaluation order"""
        return {name: getattr(self, name) for name in type(self).model_fields}

    @property
    def total(self) -> float:
        return math.fsum(self.as_dict().values())


class ScoringConfig(BaseModel):
    """Immutable scorer configuration"""
    model_config = ConfigDict(frozen=True)

    threshold: float = DEFAULT_THRESHOLD
    weights: FactorWeights = Field(default_factory=FactorWeights)

    @model_validator(mode='after')
    def check_threshold(self) -> 'ScoringConfig':
        if not 0.0 <= self.threshold <= 1.0:
            raise ConfigurationError(f"Detection threshold must be within [0, 1], got {self.threshold}")
        return self

    def with_threshold(self, threshold: float) -> 'ScoringConfig':
        """Validated copy with a different threshold"""
        return ScoringConfig(threshold=threshold, weights=self.weights)


class Settings(BaseSettings):
    """Application settings loaded from environment variables"""
    # Scoring settings
    DETECTION_THRESHOLD: float = Field(DEFAULT_THRESHOLD, description="Risk score above which a contribution is flagged")
    SCORER: str = Field("rule-based", description="Registered scorer implementation to use")
    WEIGHT_SYBIL_ATTACK: float = 0.35
    WEIGHT_WASH_TRADING: float = 0.30
    WEIGHT_UNUSUAL_AMOUNT: float = 0.15
    WEIGHT_SUSPICIOUS_TIMING: float = 0.10
    WEIGHT_NEW_WALLET: float = 0.05
    WEIGHT_LOW_DIVERSITY: float = 0.05

    # Simulation settings
    RANDOM_SEED: Optional[int] = Field(None, description="Seed for reproducible synthetic rounds")
    MAX_WORKERS: Optional[int] = Field(None, description="Worker threads used for batch scoring")

    # Output settings
    OUTPUT_DIR: str = Field("./results", description="Directory for report files")
    REPORT_PREFIX: str = Field("latam-simulation", description="File name prefix for report files")
    LOG_LEVEL: str = Field("INFO", description="Root logging level")

    @property
    def scoring_config(self) -> ScoringConfig:
        """Get the scorer configuration as a separate model"""
        return ScoringConfig(
            threshold=self.DETECTION_THRESHOLD,
            weights=FactorWeights(
                sybil_attack=self.WEIGHT_SYBIL_ATTACK,
                wash_trading=self.WEIGHT_WASH_TRADING,
                unusual_amount=self.WEIGHT_UNUSUAL_AMOUNT,
                suspicious_timing=self.WEIGHT_SUSPICIOUS_TIMING,
                new_wallet=self.WEIGHT_NEW_WALLET,
                low_diversity=self.WEIGHT_LOW_DIVERSITY,
            )
        )

    def simulation_configs(self) -> List['SimulationConfig']:
        """Preset regional rounds with this environment's threshold and seed applied"""
        from quadrant_guard.models.simulation import PRESET_SIMULATIONS

        configs = []
        for offset, preset in enumerate(PRESET_SIMULATIONS.values()):
            seed = None if self.RANDOM_SEED is None else self.RANDOM_SEED + offset
            configs.append(type(preset).model_validate({
                **preset.model_dump(),
                'threshold': self.DETECTION_THRESHOLD,
                'seed': seed,
            }))
        return configs

    model_config = SettingsConfigDict(
        env_file='.env',
        env_file_encoding='utf-8',
        case_sensitive=True
    )


settings = Settings()
