"""
Active customer orders, indexed in display order.
Closed orders leave the active set; only the final status of the most
recent ones is remembered.
"""
from collections import OrderedDict
from sortedcontainers import SortedDict
from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass
import logging

from .errors import InsufficientStock, UnfulfillableOrder, UnknownOrder
from .inventory import Inventory
from .player import Player
from .types import CustomerOrder, GiftCardLot, OrderStatus

logger = logging.getLogger(__name__)

OrderKey = Tuple[int, int, int]

DEFAULT_CLOSED_HISTORY = 256


@dataclass(frozen=True)
class Fulfillment:
    """Result of a successful accept-and-fulfill"""
    order: CustomerOrder
    consumed: Tuple[GiftCardLot, ...]
    revenue: int
    cost_basis: int
    reputation_delta: int

    @property
    def profit(self) -> int:
        return self.revenue - self.cost_basis


def _order_key(order: CustomerOrder) -> OrderKey:
    return (order.priority.rank, order.deadline_day, order.order_id)


class OrderBook:
    """
    Pending orders sorted by (priority, deadline, id).

    Orders move PENDING -> FULFILLED | EXPIRED | DECLINED exactly once.
    Statuses of the last `closed_history` closed orders stay queryable;
    older ones are forgotten and status() returns None for them.
    """

    def __init__(self, closed_history: int = DEFAULT_CLOSED_HISTORY):
        if closed_history <= 0:
            raise ValueError("closed_history must be positive")
        self.closed_history = closed_history
        self.closed_count = 0
        self._orders: Dict[int, CustomerOrder] = {}
        self._index: SortedDict = SortedDict()  # OrderKey -> order_id
        self._closed: "OrderedDict[int, OrderStatus]" = OrderedDict()

    # ========================================================================
    # QUERY METHODS
    # ========================================================================

    def get_order(self, order_id: int) -> Optional[CustomerOrder]:
        """Get an active order by id"""
        return self._orders.get(order_id)

    def status(self, order_id: int) -> Optional[OrderStatus]:
        if order_id in self._orders:
            return OrderStatus.PENDING
        return self._closed.get(order_id)

    def active_orders(self) -> List[CustomerOrder]:
        """Active orders, highest priority then soonest deadline first"""
        return [self._orders[order_id] for order_id in self._index.values()]

    def __len__(self):
        return len(self._orders)

    def __contains__(self, order_id: int) -> bool:
        return order_id in self._orders

    # ========================================================================
    # MUTATION METHODS
    # ========================================================================

    def insert(self, order: CustomerOrder):
        """Add a new PENDING order"""
        if order.status is not OrderStatus.PENDING:
            raise ValueError(f"Cannot insert order with status {order.status.value}")
        if order.order_id in self._orders or order.order_id in self._closed:
            raise ValueError(f"Order #{order.order_id} already known")

        self._orders[order.order_id] = order
        self._index[_order_key(order)] = order.order_id

    def expire_overdue(self, current_day: int) -> List[CustomerOrder]:
        """
        Expire every order whose deadline_day < current_day.
        Returns the expired orders in order_id order.
        """
        overdue = sorted(
            order_id for order_id, order in self._orders.items()
            if order.deadline_day < current_day
        )
        return [self._close(order_id, OrderStatus.EXPIRED, current_day) for order_id in overdue]

    def accept_and_fulfill(
        self,
        order_id: int,
        inventory: Inventory,
        player: Player,
        current_day: int
    ) -> Fulfillment:
        """
        Consume stock for every requested item, credit the offered price
        and reward reputation. All-or-nothing: on UnfulfillableOrder the
        inventory, cash and order are untouched.
        """
        order = self._require_active(order_id)

        try:
            consumed = inventory.consume_many(order.requested_items)
        except InsufficientStock as e:
            raise UnfulfillableOrder(order_id, e) from e

        player.credit(order.offered_price)
        delta = player.reputation.on_order_fulfilled(order, current_day)
        fulfilled = self._close(order_id, OrderStatus.FULFILLED, current_day)

        return Fulfillment(
            order=fulfilled,
            consumed=tuple(consumed),
            revenue=order.offered_price,
            cost_basis=sum(lot.total_cost for lot in consumed),
            reputation_delta=delta
        )

    def decline(self, order_id: int, current_day: int) -> CustomerOrder:
        """Drop an order without inventory, cash or reputation effects"""
        self._require_active(order_id)
        return self._close(order_id, OrderStatus.DECLINED, current_day)

    # ========================================================================
    # INTERNALS
    # ========================================================================

    def _require_active(self, order_id: int) -> CustomerOrder:
        order = self._orders.get(order_id)
        if order is None:
            closed = self._closed.get(order_id)
            raise UnknownOrder(order_id, closed.value if closed else None)
        return order

    def _close(self, order_id: int, status: OrderStatus, day: int) -> CustomerOrder:
        order = self._orders.pop(order_id)
        del self._index[_order_key(order)]
        closed = order.transition(status, day)
        self._remember(order_id, status)
        logger.debug(f"Order #{order_id} -> {status.value} on day {day}")
        return closed

    def _remember(self, order_id: int, status: OrderStatus):
        self._closed[order_id] = status
        self.closed_count += 1
        while len(self._closed) > self.closed_history:
            self._closed.popitem(last=False)

    # ========================================================================
    # UTILITIES
    # ========================================================================

    def export_state(self) -> dict:
        return {
            'active': [order.to_dict() for order in self.active_orders()],
            # Oldest first, so eviction order survives a restore
            'closed': [[order_id, status.value] for order_id, status in self._closed.items()],
            'closed_count': self.closed_count
        }

    @classmethod
    def from_state(cls, state: dict, closed_history: int = DEFAULT_CLOSED_HISTORY) -> 'OrderBook':
        book = cls(closed_history=closed_history)
        for order_id, status in state['closed']:
            book._remember(int(order_id), OrderStatus(status))
        book.closed_count = int(state.get('closed_count', book.closed_count))
        for raw in state['active']:
            book.insert(CustomerOrder.from_dict(raw))
        return book
