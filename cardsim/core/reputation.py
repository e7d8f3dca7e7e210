"""
Player reputation: bounded integer points driven by order outcomes.
"""
from dataclasses import dataclass
from decimal import Decimal
import logging

from .types import CustomerOrder, Priority

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReputationConfig:
    """Reputation tuning. 100 points display as one star."""
    max_points: int = 500
    start_points: int = 300
    points_per_star: int = 100

    # Fulfillment gain = base_gain + floor(early_bonus * (1 - 0.5 ** days_early))
    base_gain: int = 10
    early_bonus: int = 30

    penalty_high: int = 50
    penalty_medium: int = 35
    penalty_low: int = 20

    # Wholesale price factor spans [1 - price_band, 1 + price_band]
    price_band: Decimal = Decimal("0.05")

    def __post_init__(self):
        if self.max_points <= 0:
            raise ValueError("max_points must be positive")
        if not 0 < self.start_points < self.max_points:
            raise ValueError("start_points must lie strictly inside (0, max_points)")
        if not Decimal(0) <= self.price_band < Decimal(1):
            raise ValueError("price_band must be in [0, 1)")

    def penalty_for(self, priority: Priority) -> int:
        if priority is Priority.HIGH:
            return self.penalty_high
        if priority is Priority.MEDIUM:
            return self.penalty_medium
        return self.penalty_low


class Reputation:
    """
    Reputation score clamped to [0, max_points].

    Feeds order arrival and offer generosity through `fraction`, and
    wholesale prices through `price_adjustment()`.
    """

    def __init__(self, config: ReputationConfig = ReputationConfig(), points: int = None):
        self.config = config
        self._points = config.start_points if points is None else self._clamp(points)

    @property
    def points(self) -> int:
        return self._points

    @property
    def fraction(self) -> float:
        return self._points / self.config.max_points

    @property
    def stars(self) -> Decimal:
        return (Decimal(self._points) / self.config.points_per_star).quantize(Decimal("0.1"))

    # ========================================================================
    # ORDER OUTCOMES
    # ========================================================================

    def fulfillment_gain(self, order: CustomerOrder, current_day: int) -> int:
        """Earlier fulfillment earns more, with diminishing returns"""
        days_early = max(0, order.deadline_day - current_day)
        scale = 2 ** days_early
        # floor(bonus * (1 - 0.5 ** d)) in exact integer arithmetic
        return self.config.base_gain + (self.config.early_bonus * (scale - 1)) // scale

    def on_order_fulfilled(self, order: CustomerOrder, current_day: int) -> int:
        """Apply the fulfillment gain. Returns the change actually applied."""
        return self._apply(self.fulfillment_gain(order, current_day))

    def on_order_expired(self, order: CustomerOrder) -> int:
        """Apply the priority-scaled expiry penalty. Returns the (negative) change."""
        delta = self._apply(-self.config.penalty_for(order.priority))
        logger.debug(f"Order #{order.order_id} expired, reputation {delta:+d} -> {self._points}")
        return delta

    def _apply(self, delta: int) -> int:
        before = self._points
        self._points = self._clamp(before + delta)
        return self._points - before

    def _clamp(self, points: int) -> int:
        return max(0, min(self.config.max_points, int(points)))

    # ========================================================================
    # PRICING FEEDBACK
    # ========================================================================

    def price_adjustment(self) -> Decimal:
        """
        Wholesale price factor: 1 at the starting score, down to
        1 - band at max_points, up to 1 + band at zero.
        """
        cfg = self.config
        if self._points >= cfg.start_points:
            span = cfg.max_points - cfg.start_points
            return Decimal(1) - cfg.price_band * (self._points - cfg.start_points) / span
        return Decimal(1) + cfg.price_band * (cfg.start_points - self._points) / cfg.start_points

    def __repr__(self):
        return f"Reputation(points={self._points}, stars={self.stars})"
