"""
Wholesale market: per-retailer pricing with bulk discounts.
Reads are pure; only set_available mutates the stock flags.
"""
from dataclasses import dataclass
from decimal import Decimal, ROUND_CEILING, ROUND_HALF_UP
from typing import Dict, Iterable, List, Optional, Tuple
import logging

from .errors import InsufficientStock
from .types import Retailer, CENTS_PER_UNIT

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DiscountTier:
    """Discount applied from min_quantity upwards"""
    min_quantity: int
    discount: Decimal


DEFAULT_DISCOUNT_TIERS: Tuple[DiscountTier, ...] = (
    DiscountTier(10, Decimal("0.03")),
    DiscountTier(25, Decimal("0.06")),
    DiscountTier(50, Decimal("0.10")),
)

DEFAULT_RETAILERS: Tuple[Retailer, ...] = (
    Retailer("Amazon", {25: 2000, 50: 4100, 100: 8300}),
    Retailer("Starbucks", {10: 800, 25: 2050}),
    Retailer("Target", {25: 2100, 50: 4200}),
    Retailer("iTunes", {15: 1200, 25: 2000}),
    Retailer("Walmart", {20: 1700, 50: 4250}),
)


class Market:
    """
    Wholesale price source.

    price() is monotonically non-increasing in quantity and never
    drops below floor_fraction of face value.
    """

    def __init__(
        self,
        retailers: Iterable[Retailer] = DEFAULT_RETAILERS,
        discount_tiers: Iterable[DiscountTier] = DEFAULT_DISCOUNT_TIERS,
        floor_fraction: Decimal = Decimal("0.70")
    ):
        self._retailers: Dict[str, Retailer] = {r.name: r for r in retailers}
        self.discount_tiers = tuple(sorted(discount_tiers, key=lambda t: t.min_quantity))
        self.floor_fraction = Decimal(floor_fraction)

        if self.discount_tiers != tuple(sorted(self.discount_tiers, key=lambda t: t.discount)):
            raise ValueError("Discounts must not shrink as quantity grows")
        if not Decimal(0) < self.floor_fraction <= Decimal(1):
            raise ValueError("floor_fraction must be in (0, 1]")

        # (retailer, denomination) -> available
        self._unavailable: set = set()

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    @property
    def retailers(self) -> List[Retailer]:
        return [self._retailers[name] for name in sorted(self._retailers)]

    def get_retailer(self, name: str) -> Optional[Retailer]:
        return self._retailers.get(name)

    def is_listed(self, retailer: str, denomination: int) -> bool:
        r = self._retailers.get(retailer)
        return r is not None and denomination in r.face_value_catalog

    def is_available(self, retailer: str, denomination: int) -> bool:
        return (
            self.is_listed(retailer, denomination)
            and (retailer, denomination) not in self._unavailable
        )

    def listings(self) -> List[Tuple[str, int]]:
        """Available (retailer, denomination) pairs in stable order"""
        return [
            (r.name, d)
            for r in self.retailers
            for d in r.denominations
            if (r.name, d) not in self._unavailable
        ]

    def face_value(self, retailer: str, denomination: int) -> int:
        """Face value of one card, in cents"""
        self._require_listed(retailer, denomination)
        return denomination * CENTS_PER_UNIT

    def base_price(self, retailer: str, denomination: int) -> int:
        self._require_listed(retailer, denomination)
        return self._retailers[retailer].face_value_catalog[denomination]

    def discount_for(self, quantity: int) -> Decimal:
        discount = Decimal(0)
        for tier in self.discount_tiers:
            if quantity >= tier.min_quantity:
                discount = tier.discount
        return discount

    def price(
        self,
        retailer: str,
        denomination: int,
        quantity: int,
        adjustment: Decimal = Decimal(1)
    ) -> int:
        """
        Wholesale unit cost in cents.

        adjustment scales the base price (market conditions, reputation
        band) before the bulk discount; the floor applies last.
        """
        if quantity <= 0:
            raise ValueError("Quantity must be positive")
        if not self.is_available(retailer, denomination):
            raise InsufficientStock(
                retailer, denomination, quantity, 0,
                reason="not available on the market"
            )

        base = Decimal(self.base_price(retailer, denomination))
        discounted = base * Decimal(adjustment) * (Decimal(1) - self.discount_for(quantity))
        unit = int(discounted.quantize(Decimal(1), rounding=ROUND_HALF_UP))

        return max(unit, self.floor_price(retailer, denomination))

    def floor_price(self, retailer: str, denomination: int) -> int:
        face = Decimal(self.face_value(retailer, denomination))
        return int((face * self.floor_fraction).quantize(Decimal(1), rounding=ROUND_CEILING))

    # ========================================================================
    # MUTATION METHODS
    # ========================================================================

    def set_available(self, retailer: str, denomination: int, available: bool):
        """Toggle the stock flag of a listing"""
        self._require_listed(retailer, denomination)
        key = (retailer, denomination)
        if available:
            self._unavailable.discard(key)
        else:
            self._unavailable.add(key)
        logger.info(f"Listing {retailer} ${denomination} available={available}")

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def _require_listed(self, retailer: str, denomination: int):
        if not self.is_listed(retailer, denomination):
            raise InsufficientStock(
                retailer, denomination, reason="not listed on the market"
            )

    def export_state(self) -> dict:
        return {'unavailable': sorted([list(k) for k in self._unavailable])}

    def restore_state(self, state: dict):
        self._unavailable = {(r, int(d)) for r, d in state.get('unavailable', [])}

    def __repr__(self):
        return f"Market(retailers={len(self._retailers)}, listings={len(self.listings())})"
