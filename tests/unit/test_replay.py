"""
Tests for headless replay.
"""
import json

import pytest

from cardsim.batch_sim.replay import ReplayRunner, ReplayStep
from cardsim.config import SimulationConfig
from cardsim.core.commands import Liquidate, Purchase
from cardsim.core.types import GameTime


def _dumps(result):
    return [json.dumps(s.to_dict(), sort_keys=True) for s in result.snapshots]


class TestReplayRunner:

    def test_run_days(self, config):
        result = ReplayRunner(config).run_days(3)
        assert len(result.snapshots) == 12
        assert result.final_snapshot.time == GameTime(4, 540)
        assert result.command_results == []

    def test_replay_is_deterministic(self, config):
        assert _dumps(ReplayRunner(config).run_days(5)) == _dumps(ReplayRunner(config).run_days(5))

    def test_commands_collected_in_order(self, config):
        steps = [
            ReplayStep(elapsed=3, commands=(Purchase("Starbucks", 10, 1), Liquidate("Amazon", 25, 1))),
            ReplayStep(elapsed=3),
        ]
        result = ReplayRunner(config).run(steps)

        assert [r.accepted for r in result.command_results] == [True, False]
        assert result.accepted == 1
        assert result.rejected == 1
        assert result.final_snapshot.player.cash == 499_200
        assert result.command_results[0].version == result.snapshots[0].version

    def test_record_every(self, config):
        result = ReplayRunner(config, record_every=4).run_days(2)
        assert len(result.snapshots) == 2

        final_only = ReplayRunner(config, record_every=0).run_days(2)
        assert final_only.snapshots == []
        assert final_only.final_snapshot.day == 3

    def test_final_state_is_json_safe(self, config):
        result = ReplayRunner(config).run_days(1)
        assert json.loads(json.dumps(result.final_state))['format'] == 1

    def test_invalid_record_every(self):
        with pytest.raises(ValueError):
            ReplayRunner(SimulationConfig(), record_every=-1)
