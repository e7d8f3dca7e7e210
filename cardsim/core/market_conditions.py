"""
Seasonal demand and scheduled market events.

Conditions are deterministic in the simulated day: no randomness,
so they never disturb replay of the seeded order stream.
"""
from dataclasses import dataclass, replace
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

DAYS_PER_SEASON = 90
DAYS_PER_YEAR = 4 * DAYS_PER_SEASON


class Season(Enum):
    SPRING = "Spring"
    SUMMER = "Summer"
    FALL = "Fall"
    WINTER = "Winter"

    @classmethod
    def from_day(cls, day: int) -> 'Season':
        index = ((day - 1) % DAYS_PER_YEAR) // DAYS_PER_SEASON
        return _SEASON_ORDER[index]

    @property
    def demand_modifier(self) -> Decimal:
        return _SEASON_DEMAND[self]

    def retailer_bonus(self, retailer: str) -> Decimal:
        bonuses = _SEASON_RETAILER_BONUS.get(self, {})
        if retailer in bonuses:
            return bonuses[retailer]
        return bonuses.get("*", Decimal(1))


_SEASON_ORDER = (Season.SPRING, Season.SUMMER, Season.FALL, Season.WINTER)

_SEASON_DEMAND = {
    Season.SPRING: Decimal("1.0"),
    Season.SUMMER: Decimal("1.1"),
    Season.FALL: Decimal("0.9"),
    Season.WINTER: Decimal("1.4"),
}

_SEASON_RETAILER_BONUS = {
    Season.SUMMER: {"Target": Decimal("1.2"), "Walmart": Decimal("1.1")},
    Season.FALL: {"iTunes": Decimal("1.3"), "Amazon": Decimal("1.2")},
    Season.WINTER: {
        "Amazon": Decimal("1.5"),
        "Starbucks": Decimal("1.3"),
        "iTunes": Decimal("1.4"),
        "*": Decimal("1.2"),
    },
}


@dataclass(frozen=True)
class MarketEvent:
    """Temporary price/demand shift, optionally limited to one retailer"""
    name: str
    description: str
    retailer: Optional[str]
    price_multiplier: Decimal
    demand_multiplier: Decimal
    duration_days: int
    remaining_days: int = 0

    def affects(self, retailer: str) -> bool:
        return self.retailer is None or self.retailer == retailer

    def started(self) -> 'MarketEvent':
        return replace(self, remaining_days=self.duration_days)


EVENT_SCHEDULE: Tuple[MarketEvent, ...] = (
    MarketEvent("Tech Surge", "New gadget releases drive tech gift card demand",
                "iTunes", Decimal("0.9"), Decimal("1.5"), 4),
    MarketEvent("Coffee Festival", "Local coffee festival increases Starbucks popularity",
                "Starbucks", Decimal("1.1"), Decimal("1.8"), 3),
    MarketEvent("Supply Chain Issues", "Logistics problems affect all retailers",
                None, Decimal("1.3"), Decimal("0.7"), 5),
    MarketEvent("Amazon Prime Day", "Special Amazon promotion increases demand",
                "Amazon", Decimal("0.85"), Decimal("2.0"), 2),
    MarketEvent("Back to School", "Students need supplies, Target benefits",
                "Target", Decimal("1.05"), Decimal("1.4"), 7),
    MarketEvent("Economic Downturn", "Customers tighten budgets, demand drops",
                None, Decimal("1.0"), Decimal("0.6"), 6),
    MarketEvent("Walmart Expansion", "New Walmart stores increase accessibility",
                "Walmart", Decimal("0.95"), Decimal("1.3"), 4),
    MarketEvent("Market Boom", "General economic growth benefits all retailers",
                None, Decimal("0.9"), Decimal("1.2"), 5),
)


class MarketConditions:
    """
    Season tracking plus a rolling schedule of market events.

    The next event is picked by day number, and the gap to the one
    after it is 5 + (day % 10) days.
    """

    def __init__(self, first_event_in_days: int = 4, start_day: int = 1):
        self.season = Season.from_day(start_day)
        self.active_events: List[MarketEvent] = []
        self.next_event_in_days = first_event_in_days
        self.events_completed = 0

    # ========================================================================
    # DAILY UPDATE
    # ========================================================================

    def advance_day(self, day: int) -> List[str]:
        """Age events, roll the season, start a scheduled event. Returns activity messages."""
        messages: List[str] = []

        new_season = Season.from_day(day)
        if new_season is not self.season:
            self.season = new_season
            messages.append(f"{new_season.value} season has begun")

        still_active = []
        for event in self.active_events:
            aged = replace(event, remaining_days=event.remaining_days - 1)
            if aged.remaining_days > 0:
                still_active.append(aged)
            else:
                self.events_completed += 1
                messages.append(f"Market event '{event.name}' has ended")
        self.active_events = still_active

        if self.next_event_in_days > 0:
            self.next_event_in_days -= 1
        if self.next_event_in_days == 0:
            event = EVENT_SCHEDULE[day % len(EVENT_SCHEDULE)].started()
            self.active_events.append(event)
            self.next_event_in_days = 5 + (day % 10)
            messages.append(f"New market event: {event.name} - {event.description}")
            logger.debug(f"Day {day}: started market event {event.name}")

        return messages

    # ========================================================================
    # MULTIPLIERS
    # ========================================================================

    def price_multiplier(self, retailer: str) -> Decimal:
        multiplier = self.season.retailer_bonus(retailer)
        for event in self.active_events:
            if event.affects(retailer):
                multiplier *= event.price_multiplier
        return multiplier

    def demand_multiplier(self, retailer: Optional[str] = None) -> Decimal:
        """
        Demand relative to normal. Without a retailer only market-wide
        events count; with one, its seasonal bonus and targeted events apply too.
        """
        multiplier = self.season.demand_modifier
        if retailer is not None:
            multiplier *= self.season.retailer_bonus(retailer)
        for event in self.active_events:
            if event.retailer is None or event.retailer == retailer:
                multiplier *= event.demand_multiplier
        return multiplier

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def event_names(self) -> Tuple[str, ...]:
        return tuple(e.name for e in self.active_events)

    def export_state(self) -> dict:
        return {
            'season': self.season.value,
            'next_event_in_days': self.next_event_in_days,
            'events_completed': self.events_completed,
            'active_events': [
                {'name': e.name, 'remaining_days': e.remaining_days}
                for e in self.active_events
            ]
        }

    def restore_state(self, state: dict):
        by_name = {e.name: e for e in EVENT_SCHEDULE}
        self.season = Season(state['season'])
        self.next_event_in_days = int(state['next_event_in_days'])
        self.events_completed = int(state.get('events_completed', 0))
        self.active_events = [
            replace(by_name[e['name']], remaining_days=int(e['remaining_days']))
            for e in state['active_events']
        ]
