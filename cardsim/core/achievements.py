"""
Achievements: long-running goals that pay a one-off cash reward.

The tracker only observes. The engine feeds it purchases, fulfillments
and the end of each day, and credits the rewards it returns.
"""
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from .inventory import Inventory
from .market_conditions import Season
from .types import CENTS_PER_UNIT

logger = logging.getLogger(__name__)

# Purchases at or below this market price multiplier count as favorable
FAVORABLE_PRICE_MULTIPLIER = Decimal("0.9")
QUICK_TURNAROUND_DAYS = 3
EFFICIENT_SUCCESS_RATE = Decimal("0.9")


class AchievementKind(Enum):
    # Milestones
    FIRST_SALE = "first_sale"
    EARLY_BIRD = "early_bird"
    ENTREPRENEUR = "entrepreneur"
    BUSINESS_MOGUL = "business_mogul"
    MILLIONAIRE = "millionaire"
    # Performance
    PERFECT_WEEK = "perfect_week"
    SPEED_DEMON = "speed_demon"
    EFFICIENCY = "efficiency"
    MARKET_MASTER = "market_master"
    # Reputation
    LEGENDARY_STATUS = "legendary_status"
    CUSTOMER_FAVORITE = "customer_favorite"
    TRUSTED_SELLER = "trusted_seller"
    # Seasonal
    WINTER_WINNER = "winter_winner"
    SEASON_VETERAN = "season_veteran"
    EVENT_SURVIVOR = "event_survivor"
    # Inventory
    COLLECTOR = "collector"
    DIVERSIFIED_PORTFOLIO = "diversified_portfolio"
    QUICK_TURNAROUND = "quick_turnaround"


@dataclass(frozen=True)
class AchievementSpec:
    """Goal definition; target and reward are in the unit the goal counts"""
    kind: AchievementKind
    name: str
    description: str
    target: int
    reward: int  # cents


def _dollars(amount: int) -> int:
    return amount * CENTS_PER_UNIT


ACHIEVEMENTS: Tuple[AchievementSpec, ...] = (
    AchievementSpec(AchievementKind.FIRST_SALE, "First Sale",
                    "Complete your first customer order", 1, _dollars(100)),
    AchievementSpec(AchievementKind.EARLY_BIRD, "Early Bird",
                    "Complete your first 10 orders", 10, _dollars(500)),
    AchievementSpec(AchievementKind.ENTREPRENEUR, "Entrepreneur",
                    "Accumulate $10,000 in cash", _dollars(10_000), _dollars(1_000)),
    AchievementSpec(AchievementKind.BUSINESS_MOGUL, "Business Mogul",
                    "Accumulate $50,000 in cash", _dollars(50_000), _dollars(5_000)),
    AchievementSpec(AchievementKind.MILLIONAIRE, "Millionaire",
                    "Accumulate $1,000,000 in cash", _dollars(1_000_000), _dollars(50_000)),
    AchievementSpec(AchievementKind.PERFECT_WEEK, "Perfect Week",
                    "7 consecutive days with 100% order completion", 7, _dollars(2_000)),
    AchievementSpec(AchievementKind.SPEED_DEMON, "Speed Demon",
                    "Fulfill 5 orders in a single day", 5, _dollars(1_500)),
    AchievementSpec(AchievementKind.EFFICIENCY, "Efficiency Expert",
                    "Maintain 90%+ success rate for 30 days", 30, _dollars(3_000)),
    AchievementSpec(AchievementKind.MARKET_MASTER, "Market Master",
                    "Make purchases during 5 favorable market events", 5, _dollars(2_500)),
    AchievementSpec(AchievementKind.LEGENDARY_STATUS, "Legendary Status",
                    "Reach maximum 5-star reputation", 5, _dollars(2_000)),
    AchievementSpec(AchievementKind.CUSTOMER_FAVORITE, "Customer Favorite",
                    "Complete 100 customer orders", 100, _dollars(3_000)),
    AchievementSpec(AchievementKind.TRUSTED_SELLER, "Trusted Seller",
                    "Complete 500 customer orders", 500, _dollars(10_000)),
    AchievementSpec(AchievementKind.WINTER_WINNER, "Winter Winner",
                    "Earn $5,000 profit during Winter season", _dollars(5_000), _dollars(2_000)),
    AchievementSpec(AchievementKind.SEASON_VETERAN, "Season Veteran",
                    "Experience all 4 seasons", 4, _dollars(3_000)),
    AchievementSpec(AchievementKind.EVENT_SURVIVOR, "Event Survivor",
                    "Survive 10 market events", 10, _dollars(2_500)),
    AchievementSpec(AchievementKind.COLLECTOR, "Collector",
                    "Own 100+ gift cards simultaneously", 100, _dollars(2_000)),
    AchievementSpec(AchievementKind.DIVERSIFIED_PORTFOLIO, "Diversified Portfolio",
                    "Own cards from all 5 retailers", 5, _dollars(1_000)),
    AchievementSpec(AchievementKind.QUICK_TURNAROUND, "Quick Turnaround",
                    "Sell inventory within 3 days of purchase", 1, _dollars(1_500)),
)


@dataclass(frozen=True)
class AchievementView:
    """Immutable achievement state for snapshots"""
    kind: str
    name: str
    description: str
    progress: int
    target: int
    reward: int
    unlocked: bool
    unlock_day: Optional[int]


@dataclass(frozen=True)
class Unlock:
    """An achievement that was just reached"""
    kind: AchievementKind
    name: str
    reward: int
    day: int


@dataclass
class Achievement:
    spec: AchievementSpec
    progress: int = 0
    unlock_day: Optional[int] = None

    @property
    def unlocked(self) -> bool:
        return self.unlock_day is not None

    def view(self) -> AchievementView:
        return AchievementView(
            kind=self.spec.kind.value,
            name=self.spec.name,
            description=self.spec.description,
            progress=self.progress,
            target=self.spec.target,
            reward=self.spec.reward,
            unlocked=self.unlocked,
            unlock_day=self.unlock_day
        )


class AchievementTracker:
    """
    Progress bookkeeping for every achievement.

    Each record_*/check_* call returns the achievements it unlocked, in
    definition order. Progress never decreases and an achievement
    unlocks at most once.
    """

    def __init__(self, specs: Iterable[AchievementSpec] = ACHIEVEMENTS):
        self._achievements: Dict[AchievementKind, Achievement] = {
            spec.kind: Achievement(spec) for spec in specs
        }

        # Counters feeding the performance and seasonal goals
        self.completed_today = 0
        self.consecutive_perfect_days = 0
        self.consecutive_efficient_days = 0
        self.favorable_purchases = 0
        self.winter_profit = 0
        self.seasons_seen: List[str] = []
        self.total_rewards = 0

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get(self, kind: AchievementKind) -> Achievement:
        return self._achievements[kind]

    def view(self) -> Tuple[AchievementView, ...]:
        return tuple(a.view() for a in self._achievements.values())

    def unlocked(self) -> List[Achievement]:
        return [a for a in self._achievements.values() if a.unlocked]

    def in_progress(self) -> List[Achievement]:
        return [a for a in self._achievements.values() if not a.unlocked and a.progress > 0]

    # ========================================================================
    # EVENT HOOKS
    # ========================================================================

    def record_purchase(self, price_multiplier: Decimal, day: int) -> List[Unlock]:
        if Decimal(price_multiplier) > FAVORABLE_PRICE_MULTIPLIER:
            return []
        self.favorable_purchases += 1
        return self._progress(AchievementKind.MARKET_MASTER, self.favorable_purchases, day)

    def record_fulfillment(self, fulfillment, season: Season, day: int) -> List[Unlock]:
        """Count a fulfilled order toward the daily, seasonal and turnaround goals"""
        self.completed_today += 1
        unlocks = self._progress(AchievementKind.SPEED_DEMON, self.completed_today, day)

        if season is Season.WINTER:
            self.winter_profit += fulfillment.profit
            unlocks += self._progress(AchievementKind.WINTER_WINNER, max(0, self.winter_profit), day)

        if any(day - lot.purchase_day <= QUICK_TURNAROUND_DAYS for lot in fulfillment.consumed):
            unlocks += self._progress(AchievementKind.QUICK_TURNAROUND, 1, day)
        return unlocks

    def check_orders(self, orders_completed: int, stars: Decimal, day: int) -> List[Unlock]:
        unlocks = []
        for kind in (AchievementKind.FIRST_SALE, AchievementKind.EARLY_BIRD,
                     AchievementKind.CUSTOMER_FAVORITE, AchievementKind.TRUSTED_SELLER):
            unlocks += self._progress(kind, orders_completed, day)
        unlocks += self._progress(AchievementKind.LEGENDARY_STATUS, int(stars), day)
        return unlocks

    def check_cash(self, cash: int, day: int) -> List[Unlock]:
        unlocks = []
        for kind in (AchievementKind.ENTREPRENEUR, AchievementKind.BUSINESS_MOGUL,
                     AchievementKind.MILLIONAIRE):
            unlocks += self._progress(kind, cash, day)
        return unlocks

    def check_inventory(self, inventory: Inventory, day: int) -> List[Unlock]:
        retailers = {lot.retailer for lot in inventory.lots()}
        return (
            self._progress(AchievementKind.COLLECTOR, inventory.total_quantity, day)
            + self._progress(AchievementKind.DIVERSIFIED_PORTFOLIO, len(retailers), day)
        )

    def check_seasons(self, season: Season, events_completed: int, day: int) -> List[Unlock]:
        if season.value not in self.seasons_seen:
            self.seasons_seen.append(season.value)
        return (
            self._progress(AchievementKind.SEASON_VETERAN, len(self.seasons_seen), day)
            + self._progress(AchievementKind.EVENT_SURVIVOR, events_completed, day)
        )

    def close_day(
        self,
        orders_expired_today: int,
        orders_completed_total: int,
        orders_expired_total: int,
        day: int
    ) -> List[Unlock]:
        """
        Roll the daily streaks. A perfect day fulfilled at least one order
        and let none expire; an efficient day ends with a lifetime success
        rate of at least 90%. Days with no order history keep the streak.
        """
        if self.completed_today > 0 and orders_expired_today == 0:
            self.consecutive_perfect_days += 1
        else:
            self.consecutive_perfect_days = 0

        closed = orders_completed_total + orders_expired_total
        if closed > 0:
            if Decimal(orders_completed_total) / Decimal(closed) >= EFFICIENT_SUCCESS_RATE:
                self.consecutive_efficient_days += 1
            else:
                self.consecutive_efficient_days = 0

        self.completed_today = 0
        return (
            self._progress(AchievementKind.PERFECT_WEEK, self.consecutive_perfect_days, day)
            + self._progress(AchievementKind.EFFICIENCY, self.consecutive_efficient_days, day)
        )

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _progress(self, kind: AchievementKind, value: int, day: int) -> List[Unlock]:
        achievement = self._achievements.get(kind)
        if achievement is None or achievement.unlocked:
            return []

        target = achievement.spec.target
        achievement.progress = min(target, max(achievement.progress, value))
        if achievement.progress < target:
            return []

        achievement.unlock_day = day
        self.total_rewards += achievement.spec.reward
        logger.info(f"Achievement unlocked on day {day}: {achievement.spec.name}")
        return [Unlock(kind, achievement.spec.name, achievement.spec.reward, day)]

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def export_state(self) -> dict:
        return {
            'achievements': {
                kind.value: {'progress': a.progress, 'unlock_day': a.unlock_day}
                for kind, a in self._achievements.items()
            },
            'completed_today': self.completed_today,
            'consecutive_perfect_days': self.consecutive_perfect_days,
            'consecutive_efficient_days': self.consecutive_efficient_days,
            'favorable_purchases': self.favorable_purchases,
            'winter_profit': self.winter_profit,
            'seasons_seen': list(self.seasons_seen),
            'total_rewards': self.total_rewards
        }

    def restore_state(self, state: dict):
        for kind, raw in state['achievements'].items():
            achievement = self._achievements.get(AchievementKind(kind))
            if achievement is None:
                continue
            achievement.progress = int(raw['progress'])
            achievement.unlock_day = None if raw['unlock_day'] is None else int(raw['unlock_day'])
        self.completed_today = int(state['completed_today'])
        self.consecutive_perfect_days = int(state['consecutive_perfect_days'])
        self.consecutive_efficient_days = int(state['consecutive_efficient_days'])
        self.favorable_purchases = int(state['favorable_purchases'])
        self.winter_profit = int(state['winter_profit'])
        self.seasons_seen = list(state['seasons_seen'])
        self.total_rewards = int(state['total_rewards'])
