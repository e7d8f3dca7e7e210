"""
Headless replay - runs a scripted session in one shot and returns all data.
"""
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Sequence
import logging

from ..config import SimulationConfig
from ..core.commands import Command, CommandResult
from ..core.snapshot import SimulationSnapshot
from ..simulation import SimulationEngine

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReplayStep:
    """Commands queued before one tick of `elapsed` real seconds"""
    elapsed: float
    commands: Sequence[Command] = ()


@dataclass
class ReplayResult:
    """Results from a replay"""
    snapshots: List[SimulationSnapshot] = field(default_factory=list)
    command_results: List[CommandResult] = field(default_factory=list)
    final_snapshot: Optional[SimulationSnapshot] = None
    final_state: Optional[dict] = None

    @property
    def accepted(self) -> int:
        return sum(1 for r in self.command_results if r.accepted)

    @property
    def rejected(self) -> int:
        return sum(1 for r in self.command_results if not r.accepted)


class ReplayRunner:
    """
    Drives an engine through a fixed script of (commands, elapsed) steps.

    No clock, no streaming - identical config and script always give
    identical snapshots.
    """

    def __init__(
        self,
        config: SimulationConfig = SimulationConfig(),
        record_every: int = 1,
        engine: Optional[SimulationEngine] = None
    ):
        if record_every < 0:
            raise ValueError("record_every cannot be negative")
        self.config = config
        self.record_every = record_every
        self.engine = engine or SimulationEngine(config)

    def run(self, steps: Iterable[ReplayStep]) -> ReplayResult:
        """
        Run every step and return the collected results.

        Args:
            steps: script to replay; record_every=0 keeps only the final snapshot
        """
        result = ReplayResult()
        count = 0

        for count, step in enumerate(steps, start=1):
            futures = [self.engine.submit(command) for command in step.commands]
            snapshot = self.engine.tick(step.elapsed)
            result.command_results.extend(f.result() for f in futures)

            if self.record_every and count % self.record_every == 0:
                result.snapshots.append(snapshot)

        result.final_snapshot = self.engine.snapshot
        result.final_state = self.engine.export_state()

        logger.info(
            f"Replay complete: {count} steps, {result.accepted} accepted, "
            f"{result.rejected} rejected, day {result.final_snapshot.day}"
        )
        return result

    def run_days(self, days: int, ticks_per_day: int = 4) -> ReplayResult:
        """Advance `days` simulated days with no commands"""
        seconds = float(self.engine.clock.real_seconds_per_day) / ticks_per_day
        return self.run(ReplayStep(elapsed=seconds) for _ in range(days * ticks_per_day))
