"""
Business analytics: running totals and short rolling histories.
"""
from collections import deque
from dataclasses import dataclass
from typing import Deque, List

import numpy as np


@dataclass(frozen=True)
class AnalyticsView:
    """Immutable analytics summary for snapshots"""
    total_revenue: int
    total_purchases: int
    liquidation_revenue: int
    total_profit: int
    orders_completed: int
    orders_expired: int
    orders_declined: int
    cards_sold: int
    cards_expired: int
    expired_value: int
    best_day_revenue: int
    today_revenue: int
    recent_daily_average: float
    average_profit_margin: float


class Analytics:
    """Accumulates sales, purchases and losses over the session"""

    def __init__(self, history_days: int = 30, recent_days: int = 7):
        self.total_revenue = 0
        self.total_purchases = 0
        self.liquidation_revenue = 0
        self.orders_completed = 0
        self.orders_expired = 0
        self.orders_declined = 0
        self.cards_sold = 0
        self.cards_expired = 0
        self.expired_value = 0
        self.best_day_revenue = 0

        self.recent_days = recent_days
        self.daily_revenues: Deque[int] = deque([0], maxlen=history_days)
        self.profit_margins: List[float] = []

    # ========================================================================
    # RECORDING
    # ========================================================================

    def record_purchase(self, amount: int):
        self.total_purchases += amount

    def record_sale(self, revenue: int, cost: int, cards: int):
        self.total_revenue += revenue
        self.orders_completed += 1
        self.cards_sold += cards
        if revenue > 0:
            self.profit_margins.append((revenue - cost) / revenue * 100.0)
        self._add_today(revenue)

    def record_liquidation(self, revenue: int, cards: int):
        self.liquidation_revenue += revenue
        self.cards_sold += cards
        self._add_today(revenue)

    def record_expired_order(self):
        self.orders_expired += 1

    def record_declined_order(self):
        self.orders_declined += 1

    def record_expired_cards(self, count: int, value: int):
        self.cards_expired += count
        self.expired_value += value

    def start_new_day(self):
        self.daily_revenues.append(0)

    def _add_today(self, amount: int):
        self.daily_revenues[-1] += amount
        self.best_day_revenue = max(self.best_day_revenue, self.daily_revenues[-1])

    # ========================================================================
    # DERIVED METRICS
    # ========================================================================

    @property
    def total_profit(self) -> int:
        return self.total_revenue + self.liquidation_revenue - self.total_purchases

    def average_profit_margin(self) -> float:
        if not self.profit_margins:
            return 0.0
        return float(np.mean(self.profit_margins))

    def recent_daily_average(self) -> float:
        if len(self.daily_revenues) <= 1:
            return 0.0
        recent = list(self.daily_revenues)[-self.recent_days:]
        return float(np.mean(recent))

    def view(self) -> AnalyticsView:
        return AnalyticsView(
            total_revenue=self.total_revenue,
            total_purchases=self.total_purchases,
            liquidation_revenue=self.liquidation_revenue,
            total_profit=self.total_profit,
            orders_completed=self.orders_completed,
            orders_expired=self.orders_expired,
            orders_declined=self.orders_declined,
            cards_sold=self.cards_sold,
            cards_expired=self.cards_expired,
            expired_value=self.expired_value,
            best_day_revenue=self.best_day_revenue,
            today_revenue=self.daily_revenues[-1],
            recent_daily_average=round(self.recent_daily_average(), 2),
            average_profit_margin=round(self.average_profit_margin(), 2)
        )

    # ========================================================================
    # UTILITIES
    # ========================================================================

    _COUNTERS = (
        'total_revenue', 'total_purchases', 'liquidation_revenue',
        'orders_completed', 'orders_expired', 'orders_declined',
        'cards_sold', 'cards_expired', 'expired_value', 'best_day_revenue',
    )

    def export_state(self) -> dict:
        state = {name: getattr(self, name) for name in self._COUNTERS}
        state['daily_revenues'] = list(self.daily_revenues)
        state['profit_margins'] = list(self.profit_margins)
        return state

    def restore_state(self, state: dict):
        for name in self._COUNTERS:
            setattr(self, name, int(state[name]))
        self.daily_revenues = deque(state['daily_revenues'], maxlen=self.daily_revenues.maxlen)
        self.profit_margins = [float(m) for m in state['profit_margins']]
