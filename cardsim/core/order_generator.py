"""
Daily customer order generation.

All randomness comes from the numpy Generator handed in by the caller;
the generator itself keeps no state between days, so identical inputs
and rng state always yield identical orders.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, List, Optional, Sequence, Tuple
import logging

import numpy as np

from .market import Market
from .reputation import Reputation
from .types import CustomerOrder, CustomerProfile, LineItem, Priority, Segment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SegmentProfile:
    """Customer segment: how often it appears and how much it buys per line"""
    segment: Segment
    weight: float
    max_quantity: int


DEFAULT_SEGMENTS: Tuple[SegmentProfile, ...] = (
    SegmentProfile(Segment.INDIVIDUAL, 0.6, 3),
    SegmentProfile(Segment.BUSINESS, 0.3, 5),
    SegmentProfile(Segment.RESELLER, 0.1, 8),
)

CUSTOMER_NAMES: Tuple[str, ...] = (
    "Alice", "Bob", "Charlie", "Diana", "Eve", "Frank", "Grace", "Henry",
)


@dataclass(frozen=True)
class GeneratorConfig:
    """Order generation policy"""
    profit_margin_band: Tuple[float, float] = (1.05, 1.30)
    deadline_range_days: Tuple[int, int] = (2, 6)

    base_arrival_probability: float = 0.6
    max_arrival_probability: float = 0.95
    max_orders_per_day: int = 3
    max_items_per_order: int = 2

    # Implied margin thresholds for priority
    high_margin: Decimal = Decimal("0.33")
    medium_margin: Decimal = Decimal("0.27")

    segments: Tuple[SegmentProfile, ...] = DEFAULT_SEGMENTS
    customer_names: Tuple[str, ...] = CUSTOMER_NAMES

    def __post_init__(self):
        lo, hi = self.profit_margin_band
        if not 0 < lo <= hi:
            raise ValueError("profit_margin_band must be an increasing positive range")
        dlo, dhi = self.deadline_range_days
        if not 0 <= dlo <= dhi:
            raise ValueError("deadline_range_days must be a non-negative increasing range")
        if self.medium_margin > self.high_margin:
            raise ValueError("medium_margin cannot exceed high_margin")
        if self.max_orders_per_day < 0 or self.max_items_per_order < 1:
            raise ValueError("Order limits must be positive")
        if not self.segments or not self.customer_names:
            raise ValueError("At least one segment and one customer name are required")


class OrderGenerator:
    """
    Probabilistic daily order source.

    Higher reputation raises the arrival probability of each slot and
    skews the offered-price multiplier towards the top of the band.
    """

    def __init__(self, config: GeneratorConfig = GeneratorConfig()):
        self.config = config
        weights = np.array([s.weight for s in config.segments], dtype=float)
        self._segment_p = weights / weights.sum()

    def arrival_probability(self, reputation: Reputation, demand_multiplier: float = 1.0) -> float:
        cfg = self.config
        p = cfg.base_arrival_probability * (0.5 + reputation.fraction) * float(demand_multiplier)
        return max(0.0, min(cfg.max_arrival_probability, p))

    def generate_for_day(
        self,
        day: int,
        reputation: Reputation,
        market: Market,
        rng: np.random.Generator,
        first_order_id: int,
        demand_multiplier: float = 1.0,
        listing_weights: Optional[Dict[Tuple[str, int], float]] = None
    ) -> List[CustomerOrder]:
        """
        Produce zero or more PENDING orders for `day`, with ids counting
        up from first_order_id.
        """
        listings = market.listings()
        if not listings:
            return []

        probability = self.arrival_probability(reputation, demand_multiplier)
        listing_p = self._listing_probabilities(listings, listing_weights)

        orders: List[CustomerOrder] = []
        for _ in range(self.config.max_orders_per_day):
            if rng.random() >= probability:
                continue
            order = self._build_order(
                order_id=first_order_id + len(orders),
                day=day,
                reputation=reputation,
                market=market,
                listings=listings,
                listing_p=listing_p,
                rng=rng
            )
            orders.append(order)

        if orders:
            logger.debug(f"Day {day}: generated {len(orders)} order(s) at p={probability:.3f}")
        return orders

    # ========================================================================
    # ORDER CONSTRUCTION
    # ========================================================================

    def _build_order(
        self,
        order_id: int,
        day: int,
        reputation: Reputation,
        market: Market,
        listings: Sequence[Tuple[str, int]],
        listing_p: Optional[np.ndarray],
        rng: np.random.Generator
    ) -> CustomerOrder:
        cfg = self.config

        profile = cfg.segments[int(rng.choice(len(cfg.segments), p=self._segment_p))]
        name = cfg.customer_names[int(rng.integers(len(cfg.customer_names)))]

        item_count = int(rng.integers(1, min(cfg.max_items_per_order, len(listings)) + 1))
        picks = rng.choice(len(listings), size=item_count, replace=False, p=listing_p)

        items = []
        for index in picks:
            retailer, denomination = listings[int(index)]
            quantity = int(rng.integers(1, profile.max_quantity + 1))
            items.append(LineItem(retailer, denomination, quantity))
        items = tuple(items)

        face_total = sum(item.face_value for item in items)
        multiplier = self._offer_multiplier(reputation.fraction, rng.random())
        offered = int((Decimal(face_total) * multiplier).quantize(Decimal(1), rounding=ROUND_HALF_UP))

        wholesale = sum(
            market.price(item.retailer, item.denomination, item.quantity) * item.quantity
            for item in items
        )

        dlo, dhi = cfg.deadline_range_days
        deadline = day + int(rng.integers(dlo, dhi + 1))

        return CustomerOrder(
            order_id=order_id,
            customer=CustomerProfile(name, profile.segment),
            requested_items=items,
            offered_price=offered,
            priority=self.classify(offered, wholesale),
            deadline_day=deadline,
            created_day=day
        )

    def _offer_multiplier(self, fraction: float, u: float) -> Decimal:
        """Map a uniform draw into the margin band, biased upward by reputation"""
        lo, hi = self.config.profit_margin_band
        biased = u ** (1.0 / (1.0 + fraction))
        return Decimal(repr(lo)) + (Decimal(repr(hi)) - Decimal(repr(lo))) * Decimal(biased)

    def classify(self, offered_price: int, wholesale_cost: int) -> Priority:
        """Priority from implied margin (offered - cost) / offered"""
        margin = Decimal(offered_price - wholesale_cost) / Decimal(offered_price)
        if margin >= self.config.high_margin:
            return Priority.HIGH
        if margin >= self.config.medium_margin:
            return Priority.MEDIUM
        return Priority.LOW

    @staticmethod
    def _listing_probabilities(
        listings: Sequence[Tuple[str, int]],
        weights: Optional[Dict[Tuple[str, int], float]]
    ) -> Optional[np.ndarray]:
        if not weights:
            return None
        raw = np.array([max(0.0, float(weights.get(key, 1.0))) for key in listings], dtype=float)
        if np.count_nonzero(raw) < len(raw) or raw.sum() <= 0:
            # replace=False needs every listing to stay drawable
            raw = np.where(raw > 0, raw, 1e-9)
        return raw / raw.sum()
