"""
Tests for settings and preset simulation configuration.
"""

import pytest
from pydantic import ValidationError

from quadrant_guard.config import Settings
from quadrant_guard.exceptions import ConfigurationError
from quadrant_guard.models.simulation import LATAM_ATTACK_MIX, PRESET_SIMULATIONS, Region, SimulationConfig


class TestSettings:
    """Tests for environment driven settings"""

    def test_defaults(self):
        config = Settings().scoring_config

        assert config.threshold == 0.7
        assert config.weights.sybil_attack == 0.35
        assert config.weights.total == pytest.approx(1.0)

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("DETECTION_THRESHOLD", "0.4")
        monkeypatch.setenv("WEIGHT_SYBIL_ATTACK", "0.30")
        monkeypatch.setenv("WEIGHT_WASH_TRADING", "0.35")

        config = Settings().scoring_config

        assert config.threshold == 0.4
        assert config.weights.sybil_attack == 0.30
        assert config.weights.wash_trading == 0.35

    def test_bad_weights(self):
        with pytest.raises(ConfigurationError):
            Settings(WEIGHT_SYBIL_ATTACK=0.9).scoring_config

    def test_simulation_configs_follow_presets(self):
        configs = Settings(DETECTION_THRESHOLD=0.6, RANDOM_SEED=10).simulation_configs()

        assert [config.name for config in configs] == [preset.name for preset in PRESET_SIMULATIONS.values()]
        assert [config.seed for config in configs] == [10, 11, 12]
        assert all(config.threshold == 0.6 for config in configs)

    def test_unseeded_simulation_configs(self):
        configs = Settings(RANDOM_SEED=None).simulation_configs()

        assert all(config.seed is None for config in configs)


class TestPresets:
    """Tests for the built-in regional rounds"""

    def test_presets(self):
        buenos_aires = PRESET_SIMULATIONS['buenosAires']

        assert buenos_aires.total_contributions == 100
        assert buenos_aires.matching_pool == 50_000
        assert buenos_aires.fraud_rate == 0.12
        assert buenos_aires.attack_mix == LATAM_ATTACK_MIX
        assert buenos_aires.region == Region.LATAM
        assert buenos_aires.region_tag == "buenosaires"
        assert PRESET_SIMULATIONS['mexicoCity'].projects == 18
        assert PRESET_SIMULATIONS['saoPaulo'].total_contributions == 200

    def test_config_is_frozen(self):
        config = SimulationConfig(name="Round", location="Lima, Peru", total_contributions=10)

        with pytest.raises(ValidationError):
            config.fraud_rate = 0.5

    def test_config_needs_a_project(self):
        with pytest.raises(ConfigurationError):
            SimulationConfig(name="Round", location="Lima, Peru", total_contributions=10, projects=0)
