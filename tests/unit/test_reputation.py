"""
Tests for Reputation and Player.
"""
from decimal import Decimal

import pytest

from cardsim.core.errors import InsufficientFunds
from cardsim.core.player import Player
from cardsim.core.reputation import Reputation, ReputationConfig
from cardsim.core.types import Priority


class TestReputationScore:

    def test_defaults(self):
        rep = Reputation()
        assert rep.points == 300
        assert rep.fraction == pytest.approx(0.6)
        assert rep.stars == Decimal("3.0")

    def test_initial_points_clamped(self):
        assert Reputation(points=900).points == 500
        assert Reputation(points=-3).points == 0

    def test_invalid_config(self):
        with pytest.raises(ValueError):
            ReputationConfig(start_points=0)
        with pytest.raises(ValueError):
            ReputationConfig(max_points=100, start_points=100)


class TestOrderOutcomes:

    @pytest.mark.parametrize("current_day, expected", [
        (5, 10),   # on deadline
        (4, 25),   # 1 day early
        (3, 32),   # 2 days early
        (2, 36),   # 3 days early
    ])
    def test_fulfillment_gain_diminishing(self, order_factory, current_day, expected):
        order = order_factory(deadline_day=5)
        assert Reputation().fulfillment_gain(order, current_day) == expected

    def test_fulfillment_applies_gain(self, order_factory):
        rep = Reputation()
        delta = rep.on_order_fulfilled(order_factory(deadline_day=5), current_day=4)
        assert delta == 25
        assert rep.points == 325

    @pytest.mark.parametrize("priority, penalty", [
        (Priority.LOW, 20),
        (Priority.MEDIUM, 35),
        (Priority.HIGH, 50),
    ])
    def test_expiry_penalty_by_priority(self, order_factory, priority, penalty):
        rep = Reputation()
        assert rep.on_order_expired(order_factory(priority=priority)) == -penalty
        assert rep.points == 300 - penalty

    def test_clamps_at_max(self, order_factory):
        rep = Reputation(points=495)
        assert rep.on_order_fulfilled(order_factory(deadline_day=5), current_day=4) == 5
        assert rep.points == 500

    def test_clamps_at_zero(self, order_factory):
        rep = Reputation(points=10)
        assert rep.on_order_expired(order_factory(priority=Priority.HIGH)) == -10
        assert rep.points == 0


class TestPriceAdjustment:

    @pytest.mark.parametrize("points, expected", [
        (300, Decimal("1")),
        (500, Decimal("0.95")),
        (400, Decimal("0.975")),
        (0, Decimal("1.05")),
        (150, Decimal("1.025")),
    ])
    def test_band(self, points, expected):
        assert Reputation(points=points).price_adjustment() == expected


class TestPlayer:

    def test_debit(self, player):
        player.debit(800)
        assert player.cash == 499_200

    def test_debit_insufficient_leaves_cash(self, player):
        with pytest.raises(InsufficientFunds) as exc:
            player.debit(500_001)
        assert exc.value.required == 500_001
        assert exc.value.available == 500_000
        assert player.cash == 500_000

    def test_debit_to_zero(self, player):
        player.debit(500_000)
        assert player.cash == 0

    def test_credit(self, player):
        player.credit(1250)
        assert player.cash == 501_250

    def test_negative_amounts_rejected(self, player):
        with pytest.raises(ValueError):
            player.credit(-1)
        with pytest.raises(ValueError):
            player.debit(-1)

    def test_negative_starting_cash(self):
        with pytest.raises(ValueError):
            Player(-1)
