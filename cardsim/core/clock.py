"""
Game clock: converts wall-clock elapsed time into simulated minutes.
Pure bookkeeping, never sleeps and never fails.
"""
from dataclasses import dataclass
from datetime import timedelta
from decimal import Decimal
from typing import List, Union
import logging

from .types import GameTime, MINUTES_PER_DAY

logger = logging.getLogger(__name__)

Elapsed = Union[int, float, Decimal, timedelta]


@dataclass
class ClockStats:
    """Clock metrics"""
    simulated_minutes: int = 0
    days_crossed: int = 0
    advances_while_paused: int = 0


class Clock:
    """
    Pausable simulated clock with:
    - Fixed real-to-simulated ratio (default 10 sim minutes per 3 real seconds)
    - Exact carry of fractional real time between advances
    - Day-boundary reporting (one entry per crossed boundary, in order)
    """

    def __init__(
        self,
        start: GameTime = GameTime(day=1, minute_of_day=540),
        sim_minutes_per_step: int = 10,
        real_seconds_per_step: float = 3.0
    ):
        if sim_minutes_per_step <= 0 or real_seconds_per_step <= 0:
            raise ValueError("Clock ratio must be positive")

        self._total_minutes = start.total_minutes
        self.sim_minutes_per_step = sim_minutes_per_step
        self.real_seconds_per_step = Decimal(str(real_seconds_per_step))

        # Real time not yet converted, scaled by sim_minutes_per_step
        self._carry = Decimal(0)
        self._paused = False

        self.stats = ClockStats()

    # ========================================================================
    # CONTROL METHODS
    # ========================================================================

    @property
    def paused(self) -> bool:
        return self._paused

    def pause(self) -> bool:
        """Pause time advancement. Returns True if the state changed."""
        if self._paused:
            return False
        self._paused = True
        logger.info(f"Clock paused at {self.now.display()}")
        return True

    def resume(self) -> bool:
        """Resume time advancement. Returns True if the state changed."""
        if not self._paused:
            return False
        self._paused = False
        logger.info(f"Clock resumed at {self.now.display()}")
        return True

    # ========================================================================
    # TIME ADVANCEMENT
    # ========================================================================

    @property
    def now(self) -> GameTime:
        return GameTime.from_total_minutes(self._total_minutes)

    def advance(self, elapsed: Elapsed) -> List[int]:
        """
        Advance by real elapsed time (seconds or timedelta).
        Returns the day numbers that began during this advance.
        """
        if self._paused:
            self.stats.advances_while_paused += 1
            return []

        seconds = self._to_seconds(elapsed)
        if seconds <= 0:
            return []

        scaled = self._carry + seconds * self.sim_minutes_per_step
        minutes = int(scaled // self.real_seconds_per_step)
        self._carry = scaled - minutes * self.real_seconds_per_step

        return self._advance(minutes)

    def advance_minutes(self, minutes: int) -> List[int]:
        """Advance by simulated minutes directly"""
        if self._paused:
            self.stats.advances_while_paused += 1
            return []
        return self._advance(max(0, int(minutes)))

    def _advance(self, minutes: int) -> List[int]:
        if minutes == 0:
            return []

        start_day = self.now.day
        self._total_minutes += minutes
        end_day = self.now.day

        crossings = list(range(start_day + 1, end_day + 1))

        self.stats.simulated_minutes += minutes
        self.stats.days_crossed += len(crossings)

        if crossings:
            logger.debug(f"Clock crossed {len(crossings)} day boundary(ies): {crossings}")
        return crossings

    @staticmethod
    def _to_seconds(elapsed: Elapsed) -> Decimal:
        if isinstance(elapsed, timedelta):
            return Decimal(str(elapsed.total_seconds()))
        if isinstance(elapsed, Decimal):
            return elapsed
        return Decimal(str(elapsed))

    # ========================================================================
    # UTILITIES
    # ========================================================================

    @property
    def real_seconds_per_day(self) -> Decimal:
        return MINUTES_PER_DAY * self.real_seconds_per_step / self.sim_minutes_per_step

    def get_stats(self) -> ClockStats:
        """Get current statistics"""
        return self.stats

    def export_state(self) -> dict:
        return {
            'total_minutes': self._total_minutes,
            'carry': str(self._carry),
            'paused': self._paused
        }

    def restore_state(self, state: dict):
        self._total_minutes = int(state['total_minutes'])
        self._carry = Decimal(state['carry'])
        self._paused = bool(state['paused'])
