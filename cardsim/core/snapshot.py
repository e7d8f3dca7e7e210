"""
Immutable, versioned views of committed simulation state.
Readers only ever see these; they hold no reference into live state.
"""
from dataclasses import dataclass, asdict
from decimal import Decimal
from typing import Any, Dict, Tuple

from .achievements import AchievementView
from .analytics import AnalyticsView
from .inventory import InventoryGroup
from .types import ActivityRecord, CustomerOrder, GameTime


@dataclass(frozen=True)
class PlayerView:
    cash: int
    reputation_points: int
    reputation_stars: Decimal


@dataclass(frozen=True)
class SimulationSnapshot:
    """Fully formed state as of one committed tick or command"""
    version: int
    time: GameTime
    paused: bool
    player: PlayerView
    inventory: Tuple[InventoryGroup, ...]
    orders: Tuple[CustomerOrder, ...]
    activity: Tuple[ActivityRecord, ...]
    analytics: AnalyticsView
    season: str
    market_events: Tuple[str, ...]
    achievements: Tuple[AchievementView, ...] = ()

    @property
    def day(self) -> int:
        return self.time.day

    def to_dict(self) -> Dict[str, Any]:
        """JSON-safe representation; identical state gives identical output"""
        return {
            'version': self.version,
            'time': {
                'day': self.time.day,
                'minute_of_day': self.time.minute_of_day,
                'display': self.time.display()
            },
            'paused': self.paused,
            'player': {
                'cash': self.player.cash,
                'reputation_points': self.player.reputation_points,
                'reputation_stars': str(self.player.reputation_stars)
            },
            'inventory': [asdict(group) for group in self.inventory],
            'orders': [order.to_dict() for order in self.orders],
            'activity': [
                {'day': r.day, 'minute': r.minute, 'message': r.message}
                for r in self.activity
            ],
            'analytics': asdict(self.analytics),
            'season': self.season,
            'market_events': list(self.market_events),
            'achievements': [asdict(a) for a in self.achievements]
        }
