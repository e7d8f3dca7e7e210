"""
Tests for AchievementTracker and its engine wiring.

Checked behaviour:
1. Each achievement unlocks once, with its reward, when progress reaches target
2. Daily streaks (perfect week, efficiency) roll in close_day
3. Engine credits rewards and logs unlocks after the triggering command
4. Tracker state survives export/restore
"""
import json
from decimal import Decimal

import pytest

from cardsim.config import Difficulty, SimulationConfig
from cardsim.core.achievements import ACHIEVEMENTS, AchievementKind, AchievementTracker
from cardsim.core.commands import Purchase
from cardsim.core.inventory import Inventory
from cardsim.core.market_conditions import EVENT_SCHEDULE, Season
from cardsim.core.order_book import Fulfillment
from cardsim.core.types import GiftCardLot
from cardsim.simulation import SimulationEngine

MARKET_BOOM = EVENT_SCHEDULE[7]


@pytest.fixture
def tracker():
    return AchievementTracker()


@pytest.fixture
def fulfillment(order_factory):
    def make(purchase_day=1, revenue=2500, cost=1600):
        lot = GiftCardLot(1, "Starbucks", 10, cost, 1, purchase_day, purchase_day + 60)
        return Fulfillment(order_factory(), (lot,), revenue, cost, 12)
    return make


def _kinds(unlocks):
    return [u.kind for u in unlocks]


class TestDefinitions:

    def test_eighteen_unique_achievements(self):
        assert len(ACHIEVEMENTS) == 18
        assert len({spec.kind for spec in ACHIEVEMENTS}) == 18

    def test_rewards_in_cents(self):
        rewards = {spec.kind: spec.reward for spec in ACHIEVEMENTS}
        assert rewards[AchievementKind.FIRST_SALE] == 10_000
        assert rewards[AchievementKind.MILLIONAIRE] == 5_000_000


class TestTracker:

    def test_unlocks_once(self, tracker):
        first = tracker.check_orders(1, Decimal("3.0"), day=2)
        assert _kinds(first) == [AchievementKind.FIRST_SALE]
        assert first[0].reward == 10_000
        assert first[0].day == 2

        assert tracker.check_orders(1, Decimal("3.0"), day=3) == []
        assert tracker.get(AchievementKind.FIRST_SALE).unlock_day == 2
        assert tracker.total_rewards == 10_000

    def test_progress_is_capped_and_monotonic(self, tracker):
        tracker.check_orders(7, Decimal("3.0"), day=1)
        early_bird = tracker.get(AchievementKind.EARLY_BIRD)
        assert early_bird.progress == 7
        assert not early_bird.unlocked

        tracker.check_orders(3, Decimal("3.0"), day=2)
        assert early_bird.progress == 7

        tracker.check_orders(40, Decimal("3.0"), day=3)
        assert early_bird.progress == 10
        assert early_bird.unlocked

    def test_cash_thresholds(self, tracker):
        assert tracker.check_cash(999_999, day=1) == []
        assert _kinds(tracker.check_cash(5_000_000, day=2)) == [
            AchievementKind.ENTREPRENEUR, AchievementKind.BUSINESS_MOGUL
        ]
        assert _kinds(tracker.check_cash(100_000_000, day=3)) == [AchievementKind.MILLIONAIRE]

    def test_legendary_status_needs_full_stars(self, tracker):
        assert AchievementKind.LEGENDARY_STATUS not in _kinds(tracker.check_orders(0, Decimal("4.9"), 1))
        assert _kinds(tracker.check_orders(0, Decimal("5.0"), 2)) == [AchievementKind.LEGENDARY_STATUS]

    def test_speed_demon(self, tracker, fulfillment):
        unlocks = []
        for _ in range(5):
            unlocks += tracker.record_fulfillment(fulfillment(purchase_day=-10), Season.SPRING, day=1)
        assert _kinds(unlocks) == [AchievementKind.SPEED_DEMON]

    def test_speed_demon_counts_one_day(self, tracker, fulfillment):
        for day in range(1, 6):
            tracker.record_fulfillment(fulfillment(purchase_day=-10), Season.SPRING, day)
            tracker.close_day(0, day, 0, day + 1)
        assert not tracker.get(AchievementKind.SPEED_DEMON).unlocked

    def test_quick_turnaround(self, tracker, fulfillment):
        assert tracker.record_fulfillment(fulfillment(purchase_day=1), Season.SPRING, day=5) == []
        assert _kinds(tracker.record_fulfillment(fulfillment(purchase_day=2), Season.SPRING, day=5)) == [
            AchievementKind.QUICK_TURNAROUND
        ]

    def test_winter_profit(self, tracker, fulfillment):
        tracker.record_fulfillment(fulfillment(purchase_day=-10, revenue=400_000, cost=0), Season.SUMMER, 1)
        assert tracker.winter_profit == 0

        tracker.record_fulfillment(fulfillment(purchase_day=-10, revenue=300_000, cost=0), Season.WINTER, 2)
        unlocks = tracker.record_fulfillment(
            fulfillment(purchase_day=-10, revenue=250_000, cost=50_000), Season.WINTER, 2
        )
        assert AchievementKind.WINTER_WINNER in _kinds(unlocks)

    def test_market_master(self, tracker):
        for day in range(1, 5):
            assert tracker.record_purchase(Decimal("0.9"), day) == []
        assert tracker.record_purchase(Decimal("1.0"), 5) == []
        assert _kinds(tracker.record_purchase(Decimal("0.85"), 6)) == [AchievementKind.MARKET_MASTER]

    def test_perfect_week(self, tracker, fulfillment):
        unlocks = []
        for day in range(1, 8):
            tracker.record_fulfillment(fulfillment(purchase_day=-10), Season.SPRING, day)
            unlocks += tracker.close_day(0, day, 0, day + 1)
        assert AchievementKind.PERFECT_WEEK in _kinds(unlocks)

    def test_perfect_streak_breaks(self, tracker, fulfillment):
        for day in range(1, 7):
            tracker.record_fulfillment(fulfillment(purchase_day=-10), Season.SPRING, day)
            tracker.close_day(0, day, 0, day + 1)
        tracker.close_day(0, 6, 0, 8)  # nothing fulfilled
        assert tracker.consecutive_perfect_days == 0

        tracker.record_fulfillment(fulfillment(purchase_day=-10), Season.SPRING, 9)
        tracker.close_day(1, 7, 1, 10)
        assert tracker.consecutive_perfect_days == 0
        assert not tracker.get(AchievementKind.PERFECT_WEEK).unlocked

    def test_efficiency_streak(self, tracker):
        for day in range(1, 30):
            assert AchievementKind.EFFICIENCY not in _kinds(tracker.close_day(0, 9, 1, day))
        assert tracker.consecutive_efficient_days == 29

        tracker.close_day(0, 8, 2, 30)
        assert tracker.consecutive_efficient_days == 0

        for day in range(31, 61):
            unlocks = tracker.close_day(0, 100, 1, day)
        assert _kinds(unlocks) == [AchievementKind.EFFICIENCY]

    def test_no_order_history_starts_no_streak(self, tracker):
        tracker.close_day(0, 0, 0, 1)
        assert tracker.consecutive_efficient_days == 0

    def test_seasons_and_events(self, tracker):
        unlocks = []
        for index, season in enumerate((Season.SPRING, Season.SPRING, Season.SUMMER, Season.FALL)):
            unlocks += tracker.check_seasons(season, events_completed=index, day=index)
        assert unlocks == []
        assert tracker.seasons_seen == ["Spring", "Summer", "Fall"]

        unlocks = tracker.check_seasons(Season.WINTER, events_completed=10, day=300)
        assert _kinds(unlocks) == [AchievementKind.SEASON_VETERAN, AchievementKind.EVENT_SURVIVOR]

    def test_inventory_goals(self, tracker):
        inventory = Inventory()
        inventory.add_lot("Amazon", 25, 60, 2000, 1, 60)
        inventory.add_lot("Starbucks", 10, 39, 800, 1, 60)
        assert tracker.check_inventory(inventory, 1) == []

        inventory.add_lot("Target", 25, 1, 2100, 1, 60)
        inventory.add_lot("iTunes", 15, 1, 1200, 1, 60)
        assert _kinds(tracker.check_inventory(inventory, 2)) == [AchievementKind.COLLECTOR]

        inventory.add_lot("Walmart", 20, 1, 1700, 1, 60)
        assert _kinds(tracker.check_inventory(inventory, 3)) == [AchievementKind.DIVERSIFIED_PORTFOLIO]

    def test_unlocked_and_in_progress(self, tracker):
        tracker.check_orders(3, Decimal("3.0"), day=1)
        assert [a.spec.name for a in tracker.unlocked()] == ["First Sale"]
        assert [a.spec.name for a in tracker.in_progress()] == [
            "Early Bird", "Legendary Status", "Customer Favorite", "Trusted Seller"
        ]

        view = {v.kind: v for v in tracker.view()}
        assert view["first_sale"].unlocked
        assert view["early_bird"].progress == 3
        assert view["early_bird"].target == 10

    def test_state_round_trip(self, tracker, fulfillment):
        tracker.check_orders(4, Decimal("3.0"), day=2)
        tracker.record_purchase(Decimal("0.9"), 2)
        tracker.record_fulfillment(fulfillment(purchase_day=-10), Season.WINTER, 3)
        tracker.check_seasons(Season.WINTER, 2, 3)

        restored = AchievementTracker()
        restored.restore_state(json.loads(json.dumps(tracker.export_state())))

        assert restored.view() == tracker.view()
        assert restored.export_state() == tracker.export_state()


class TestEngineIntegration:

    def test_rewards_credited_after_purchase_message(self, engine):
        engine.conditions.active_events = [MARKET_BOOM.started()]
        for retailer, denomination in (("Amazon", 25), ("Starbucks", 10), ("Target", 25),
                                       ("iTunes", 15), ("Walmart", 20)):
            assert engine.execute(Purchase(retailer, denomination, 1)).accepted

        snapshot = engine.snapshot
        spent = engine.analytics.total_purchases
        assert snapshot.player.cash == 500_000 - spent + 250_000 + 100_000

        messages = [r.message for r in snapshot.activity]
        assert messages[-3].startswith("Purchased 1x Walmart $20")
        assert messages[-2:] == [
            "Achievement unlocked: Market Master (+$2,500.00)",
            "Achievement unlocked: Diversified Portfolio (+$1,000.00)",
        ]

        data = {a['kind']: a for a in snapshot.to_dict()['achievements']}
        assert data['market_master']['unlocked'] is True
        assert data['market_master']['unlock_day'] == 1
        assert data['collector']['progress'] == 5
        json.dumps(snapshot.to_dict())

    def test_rejected_purchase_makes_no_progress(self, engine):
        engine.conditions.active_events = [MARKET_BOOM.started()]
        engine.execute(Purchase("Amazon", 100, 100))
        assert engine.achievements.favorable_purchases == 0

    def test_daily_pass_unlocks(self):
        engine = SimulationEngine(SimulationConfig(difficulty=Difficulty.EASY, seed=42))
        assert engine.snapshot.player.cash == 1_000_000

        engine.tick(432)

        assert engine.snapshot.player.cash == 1_000_000 + 100_000
        assert engine.achievements.get(AchievementKind.ENTREPRENEUR).unlock_day == 2
        messages = [r.message for r in engine.snapshot.activity]
        assert "Achievement unlocked: Entrepreneur (+$1,000.00)" in messages

    def test_export_restore_keeps_achievements(self, engine):
        engine.conditions.active_events = [MARKET_BOOM.started()]
        engine.execute(Purchase("Starbucks", 10, 1))
        state = json.loads(json.dumps(engine.export_state()))

        restored = SimulationEngine.from_state(state)

        assert restored.achievements.favorable_purchases == 1
        assert restored.snapshot.to_dict() == engine.snapshot.to_dict()
