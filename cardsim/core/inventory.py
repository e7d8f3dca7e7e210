"""
Perishable gift card inventory.

Lots are kept per (retailer, denomination) in expiration order so that
consumption is oldest-expiration-first and aging is deterministic.
"""
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Sequence, Tuple
import logging

from sortedcontainers import SortedKeyList

from .errors import InsufficientStock
from .types import GiftCardLot, LineItem

logger = logging.getLogger(__name__)

ListingKey = Tuple[str, int]


@dataclass(frozen=True)
class InventoryGroup:
    """Holdings of one retailer/denomination, for display"""
    retailer: str
    denomination: int
    quantity: int
    lot_count: int
    total_cost: int
    soonest_expiration_day: int
    expiring_soon: bool


def _new_lot_list() -> SortedKeyList:
    return SortedKeyList(key=lambda lot: lot.sort_key)


class Inventory:
    """
    Owned gift card lots.

    Distinct purchase batches never merge; a partially consumed lot is
    replaced by a smaller copy and an emptied lot is removed.
    """

    def __init__(self):
        self._lots: Dict[ListingKey, SortedKeyList] = {}
        self._next_lot_id = 1

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def available(self, retailer: str, denomination: int) -> int:
        lots = self._lots.get((retailer, denomination))
        return sum(lot.quantity for lot in lots) if lots else 0

    def lots(self) -> List[GiftCardLot]:
        """All lots, ordered by (expiration_day, lot_id)"""
        return sorted(
            (lot for lots in self._lots.values() for lot in lots),
            key=lambda lot: lot.sort_key
        )

    def lots_for(self, retailer: str, denomination: int) -> List[GiftCardLot]:
        return list(self._lots.get((retailer, denomination), ()))

    @property
    def total_quantity(self) -> int:
        return sum(lot.quantity for lots in self._lots.values() for lot in lots)

    @property
    def total_cost(self) -> int:
        return sum(lot.total_cost for lots in self._lots.values() for lot in lots)

    def groups(self, current_day: int, expiring_soon_days: int = 15) -> List[InventoryGroup]:
        """Per retailer/denomination summary, soonest expiration highlighted"""
        result = []
        for (retailer, denomination) in sorted(self._lots):
            lots = self._lots[(retailer, denomination)]
            soonest = lots[0].expiration_day
            result.append(InventoryGroup(
                retailer=retailer,
                denomination=denomination,
                quantity=sum(lot.quantity for lot in lots),
                lot_count=len(lots),
                total_cost=sum(lot.total_cost for lot in lots),
                soonest_expiration_day=soonest,
                expiring_soon=soonest - current_day <= expiring_soon_days
            ))
        return result

    # ========================================================================
    # MUTATION METHODS
    # ========================================================================

    def add_lot(
        self,
        retailer: str,
        denomination: int,
        quantity: int,
        unit_cost: int,
        purchase_day: int,
        expiration_day: int,
        lot_id: Optional[int] = None
    ) -> GiftCardLot:
        """Append a new lot (never merged with existing lots)"""
        if quantity <= 0:
            raise ValueError("Lot quantity must be positive")
        if unit_cost < 0:
            raise ValueError("Unit cost cannot be negative")
        if expiration_day <= purchase_day:
            raise ValueError(
                f"Expiration day {expiration_day} must be after purchase day {purchase_day}"
            )

        if lot_id is None:
            lot_id = self._next_lot_id
        self._next_lot_id = max(self._next_lot_id, lot_id + 1)

        lot = GiftCardLot(
            lot_id=lot_id,
            retailer=retailer,
            denomination=denomination,
            unit_cost=unit_cost,
            quantity=quantity,
            purchase_day=purchase_day,
            expiration_day=expiration_day
        )
        self._lots.setdefault((retailer, denomination), _new_lot_list()).add(lot)
        return lot

    def age_one_day(self, current_day: int) -> List[GiftCardLot]:
        """
        Remove every lot with expiration_day <= current_day.
        Returns the removed lots in (expiration_day, lot_id) order.
        """
        expired: List[GiftCardLot] = []

        for key in list(self._lots):
            lots = self._lots[key]
            # Sorted by expiration, so expired lots form a prefix
            while lots and lots[0].expiration_day <= current_day:
                expired.append(lots.pop(0))
            if not lots:
                del self._lots[key]

        expired.sort(key=lambda lot: lot.sort_key)
        if expired:
            logger.debug(f"Day {current_day}: {len(expired)} lot(s) expired")
        return expired

    def consume(self, retailer: str, denomination: int, quantity: int) -> List[GiftCardLot]:
        """
        Remove quantity cards, oldest expiration first, splitting the last
        lot touched if needed. All-or-nothing.

        Returns the consumed slices (lot copies carrying the taken quantity).
        """
        return self.consume_many([LineItem(retailer, denomination, quantity)])

    def consume_many(self, items: Sequence[LineItem]) -> List[GiftCardLot]:
        """
        Consume several line items atomically. If any item cannot be
        covered, InsufficientStock is raised and nothing is consumed.
        """
        needed: Dict[ListingKey, int] = {}
        for item in items:
            key = (item.retailer, item.denomination)
            needed[key] = needed.get(key, 0) + item.quantity

        for (retailer, denomination), quantity in needed.items():
            have = self.available(retailer, denomination)
            if have < quantity:
                raise InsufficientStock(retailer, denomination, quantity, have)

        consumed: List[GiftCardLot] = []
        for key, quantity in needed.items():
            consumed.extend(self._take(key, quantity))
        return consumed

    def _take(self, key: ListingKey, quantity: int) -> List[GiftCardLot]:
        lots = self._lots[key]
        remaining = quantity
        taken: List[GiftCardLot] = []

        while remaining > 0:
            lot = lots[0]
            take = min(lot.quantity, remaining)
            taken.append(lot.with_quantity(take))
            remaining -= take

            lots.pop(0)
            if take < lot.quantity:
                # Partial: put back the remainder under the same lot_id
                lots.add(lot.with_quantity(lot.quantity - take))

        assert remaining == 0, "consumed more than verified available"
        if not lots:
            del self._lots[key]
        return taken

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def export_state(self) -> dict:
        return {
            'next_lot_id': self._next_lot_id,
            'lots': [lot.__dict__.copy() for lot in self.lots()]
        }

    @classmethod
    def from_state(cls, state: dict) -> 'Inventory':
        inventory = cls()
        for raw in state['lots']:
            inventory.add_lot(
                retailer=raw['retailer'],
                denomination=raw['denomination'],
                quantity=raw['quantity'],
                unit_cost=raw['unit_cost'],
                purchase_day=raw['purchase_day'],
                expiration_day=raw['expiration_day'],
                lot_id=raw['lot_id']
            )
        inventory._next_lot_id = int(state['next_lot_id'])
        return inventory

    def __len__(self):
        return sum(len(lots) for lots in self._lots.values())

    def __iter__(self) -> Iterable[GiftCardLot]:
        return iter(self.lots())

    def __repr__(self):
        return f"Inventory(lots={len(self)}, cards={self.total_quantity})"
