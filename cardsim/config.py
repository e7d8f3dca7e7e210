"""
Difficulty presets and session configuration.
Selected once at game start; no runtime reconfiguration.
"""
from enum import Enum
from typing import Dict, Tuple

from pydantic import BaseModel, ConfigDict, Field, model_validator

MIN_MARGIN_MULTIPLIER = 1.05
MAX_MARGIN_MULTIPLIER = 1.30


class Difficulty(str, Enum):
    EASY = "easy"
    NORMAL = "normal"
    HARD = "hard"


class DifficultyPreset(BaseModel):
    """Economic parameters of one difficulty level"""
    model_config = ConfigDict(frozen=True)

    starting_cash: int = Field(gt=0, description="Starting cash in cents")
    profit_margin_band: Tuple[float, float]
    expiration_range_days: Tuple[int, int]
    order_deadline_range_days: Tuple[int, int]

    @model_validator(mode='after')
    def check_ranges(self) -> 'DifficultyPreset':
        lo, hi = self.profit_margin_band
        if not MIN_MARGIN_MULTIPLIER <= lo <= hi <= MAX_MARGIN_MULTIPLIER:
            raise ValueError(
                f"profit_margin_band must lie within "
                f"[{MIN_MARGIN_MULTIPLIER}, {MAX_MARGIN_MULTIPLIER}]"
            )
        exp_lo, exp_hi = self.expiration_range_days
        if not 1 <= exp_lo <= exp_hi:
            raise ValueError("expiration_range_days must be an increasing range >= 1")
        dl_lo, dl_hi = self.order_deadline_range_days
        if not 0 <= dl_lo <= dl_hi:
            raise ValueError("order_deadline_range_days must be an increasing range >= 0")
        return self


PRESETS: Dict[Difficulty, DifficultyPreset] = {
    Difficulty.EASY: DifficultyPreset(
        starting_cash=1_000_000,
        profit_margin_band=(1.10, 1.30),
        expiration_range_days=(45, 120),
        order_deadline_range_days=(3, 7),
    ),
    Difficulty.NORMAL: DifficultyPreset(
        starting_cash=500_000,
        profit_margin_band=(1.05, 1.30),
        expiration_range_days=(30, 90),
        order_deadline_range_days=(2, 6),
    ),
    Difficulty.HARD: DifficultyPreset(
        starting_cash=250_000,
        profit_margin_band=(1.05, 1.20),
        expiration_range_days=(20, 60),
        order_deadline_range_days=(2, 4),
    ),
}


class SimulationConfig(BaseModel):
    """Everything needed to start a reproducible session"""
    model_config = ConfigDict(frozen=True)

    difficulty: Difficulty = Difficulty.NORMAL
    seed: int = 42

    # Clock: sim_minutes_per_step simulated minutes per real_seconds_per_step
    sim_minutes_per_step: int = Field(default=10, gt=0)
    real_seconds_per_step: float = Field(default=3.0, gt=0)
    start_minute_of_day: int = Field(default=540, ge=0, lt=1440)

    activity_log_size: int = Field(default=50, gt=0)
    activity_tail: int = Field(default=10, ge=0)

    base_arrival_probability: float = Field(default=0.6, ge=0, le=1)
    max_orders_per_day: int = Field(default=3, ge=0)
    # Final statuses kept for closed orders, oldest evicted first
    closed_order_history: int = Field(default=256, gt=0)

    liquidation_fraction: float = Field(default=0.85, gt=0, le=1)
    expiring_soon_days: int = Field(default=15, ge=0)

    @property
    def preset(self) -> DifficultyPreset:
        return PRESETS[self.difficulty]
