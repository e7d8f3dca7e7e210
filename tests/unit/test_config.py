"""
Tests for difficulty presets and SimulationConfig.
"""
import pytest
from pydantic import ValidationError

from cardsim.config import PRESETS, Difficulty, DifficultyPreset, SimulationConfig


class TestPresets:

    @pytest.mark.parametrize("difficulty, cash", [
        (Difficulty.EASY, 1_000_000),
        (Difficulty.NORMAL, 500_000),
        (Difficulty.HARD, 250_000),
    ])
    def test_starting_cash(self, difficulty, cash):
        assert PRESETS[difficulty].starting_cash == cash

    def test_normal_preset(self):
        preset = PRESETS[Difficulty.NORMAL]
        assert preset.profit_margin_band == (1.05, 1.30)
        assert preset.expiration_range_days == (30, 90)
        assert preset.order_deadline_range_days == (2, 6)

    def test_all_bands_within_policy(self):
        for preset in PRESETS.values():
            lo, hi = preset.profit_margin_band
            assert 1.05 <= lo <= hi <= 1.30

    def test_band_outside_policy_rejected(self):
        with pytest.raises(ValidationError):
            DifficultyPreset(
                starting_cash=100_000,
                profit_margin_band=(1.0, 1.5),
                expiration_range_days=(30, 90),
                order_deadline_range_days=(2, 6)
            )

    def test_inverted_expiration_range_rejected(self):
        with pytest.raises(ValidationError):
            DifficultyPreset(
                starting_cash=100_000,
                profit_margin_band=(1.05, 1.30),
                expiration_range_days=(90, 30),
                order_deadline_range_days=(2, 6)
            )

    def test_presets_frozen(self):
        with pytest.raises(ValidationError):
            PRESETS[Difficulty.NORMAL].starting_cash = 1


class TestSimulationConfig:

    def test_defaults(self):
        config = SimulationConfig()
        assert config.difficulty is Difficulty.NORMAL
        assert config.sim_minutes_per_step == 10
        assert config.real_seconds_per_step == 3.0
        assert config.start_minute_of_day == 540
        assert config.liquidation_fraction == 0.85
        assert config.preset is PRESETS[Difficulty.NORMAL]

    def test_difficulty_from_string(self):
        assert SimulationConfig(difficulty="hard").difficulty is Difficulty.HARD

    def test_unknown_difficulty(self):
        with pytest.raises(ValidationError):
            SimulationConfig(difficulty="impossible")

    @pytest.mark.parametrize("field, value", [
        ("start_minute_of_day", 1440),
        ("sim_minutes_per_step", 0),
        ("real_seconds_per_step", -1.0),
        ("liquidation_fraction", 1.5),
        ("activity_log_size", 0),
    ])
    def test_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            SimulationConfig(**{field: value})

    def test_frozen(self):
        config = SimulationConfig()
        with pytest.raises(ValidationError):
            config.seed = 7

    def test_json_round_trip(self):
        config = SimulationConfig(difficulty=Difficulty.EASY, seed=9)
        assert SimulationConfig.model_validate(config.model_dump(mode='json')) == config
