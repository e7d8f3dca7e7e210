"""
Domain models for the gift card simulation.
All models are immutable; owners replace values instead of mutating them.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Tuple, Mapping

MINUTES_PER_DAY = 1440
CENTS_PER_UNIT = 100


def format_cents(cents: int) -> str:
    """Render minor units as a dollar amount, e.g. 499200 -> $4,992.00"""
    sign = "-" if cents < 0 else ""
    whole, frac = divmod(abs(cents), CENTS_PER_UNIT)
    return f"{sign}${whole:,}.{frac:02d}"

# ============================================================================
# ENUMS
# ============================================================================

class OrderStatus(Enum):
    PENDING = "PENDING"
    FULFILLED = "FULFILLED"
    EXPIRED = "EXPIRED"
    DECLINED = "DECLINED"

    @property
    def is_terminal(self) -> bool:
        return self is not OrderStatus.PENDING


class Priority(Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Sort rank, lower sorts first"""
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


class Segment(Enum):
    INDIVIDUAL = "INDIVIDUAL"
    BUSINESS = "BUSINESS"
    RESELLER = "RESELLER"

# ============================================================================
# TIME
# ============================================================================

@dataclass(frozen=True, order=True)
class GameTime:
    """Simulated instant. Ordering follows (day, minute_of_day)."""
    day: int = 1
    minute_of_day: int = 0

    def __post_init__(self):
        if self.day < 1:
            raise ValueError("Day must be >= 1")
        if not 0 <= self.minute_of_day < MINUTES_PER_DAY:
            raise ValueError(f"minute_of_day must be in [0, {MINUTES_PER_DAY})")

    @property
    def total_minutes(self) -> int:
        return (self.day - 1) * MINUTES_PER_DAY + self.minute_of_day

    @classmethod
    def from_total_minutes(cls, total: int) -> 'GameTime':
        day, minute = divmod(total, MINUTES_PER_DAY)
        return cls(day=day + 1, minute_of_day=minute)

    def display(self) -> str:
        hour, minute = divmod(self.minute_of_day, 60)
        period = "AM" if hour < 12 else "PM"
        display_hour = hour % 12 or 12
        return f"Day {self.day} {display_hour}:{minute:02d} {period}"

# ============================================================================
# REFERENCE DATA
# ============================================================================

@dataclass(frozen=True)
class Retailer:
    """Retailer with its denomination -> wholesale price (cents) catalog"""
    name: str
    face_value_catalog: Mapping[int, int]

    def __post_init__(self):
        for denomination, wholesale in self.face_value_catalog.items():
            if denomination <= 0 or wholesale <= 0:
                raise ValueError(
                    f"{self.name}: denominations and prices must be positive"
                )

    @property
    def denominations(self) -> Tuple[int, ...]:
        return tuple(sorted(self.face_value_catalog))

# ============================================================================
# INVENTORY & ORDERS
# ============================================================================

@dataclass(frozen=True)
class GiftCardLot:
    """One purchase batch of identical cards"""
    lot_id: int
    retailer: str
    denomination: int
    unit_cost: int
    quantity: int
    purchase_day: int
    expiration_day: int

    @property
    def total_cost(self) -> int:
        return self.unit_cost * self.quantity

    @property
    def sort_key(self) -> Tuple[int, int]:
        """Oldest expiration first, then insertion order"""
        return (self.expiration_day, self.lot_id)

    def with_quantity(self, quantity: int) -> 'GiftCardLot':
        return replace(self, quantity=quantity)


@dataclass(frozen=True)
class CustomerProfile:
    name: str
    segment: Segment = Segment.INDIVIDUAL


@dataclass(frozen=True)
class LineItem:
    retailer: str
    denomination: int
    quantity: int

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError("Line item quantity must be positive")

    @property
    def face_value(self) -> int:
        return self.denomination * CENTS_PER_UNIT * self.quantity


@dataclass(frozen=True)
class CustomerOrder:
    """Immutable customer order; status changes produce a new value"""
    order_id: int
    customer: CustomerProfile
    requested_items: Tuple[LineItem, ...]
    offered_price: int
    priority: Priority
    deadline_day: int
    created_day: int
    status: OrderStatus = OrderStatus.PENDING
    closed_day: Optional[int] = None

    def __post_init__(self):
        if not self.requested_items:
            raise ValueError("Order must request at least one item")
        if self.offered_price <= 0:
            raise ValueError("Offered price must be positive")
        if self.deadline_day < self.created_day:
            raise ValueError("Deadline cannot precede creation day")

    @property
    def card_count(self) -> int:
        return sum(item.quantity for item in self.requested_items)

    @property
    def face_value_total(self) -> int:
        return sum(item.face_value for item in self.requested_items)

    def days_remaining(self, current_day: int) -> int:
        return self.deadline_day - current_day

    def transition(self, status: OrderStatus, day: int) -> 'CustomerOrder':
        """Return the order moved to a terminal status"""
        if self.status.is_terminal:
            raise ValueError(
                f"Order #{self.order_id} is {self.status.value}; terminal states are final"
            )
        if not status.is_terminal:
            raise ValueError("Orders can only move from PENDING to a terminal status")
        return replace(self, status=status, closed_day=day)

    def describe(self) -> str:
        items = ", ".join(
            f"{item.quantity}x {item.retailer} ${item.denomination}"
            for item in self.requested_items
        )
        return f"#{self.order_id} {self.customer.name}: {items} for {format_cents(self.offered_price)}"

    def to_dict(self) -> dict:
        return {
            'order_id': self.order_id,
            'customer': self.customer.name,
            'segment': self.customer.segment.value,
            'items': [
                {'retailer': i.retailer, 'denomination': i.denomination, 'quantity': i.quantity}
                for i in self.requested_items
            ],
            'offered_price': self.offered_price,
            'priority': self.priority.value,
            'deadline_day': self.deadline_day,
            'created_day': self.created_day,
            'status': self.status.value,
            'closed_day': self.closed_day
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'CustomerOrder':
        return cls(
            order_id=int(data['order_id']),
            customer=CustomerProfile(data['customer'], Segment(data['segment'])),
            requested_items=tuple(
                LineItem(i['retailer'], int(i['denomination']), int(i['quantity']))
                for i in data['items']
            ),
            offered_price=int(data['offered_price']),
            priority=Priority(data['priority']),
            deadline_day=int(data['deadline_day']),
            created_day=int(data['created_day']),
            status=OrderStatus(data.get('status', 'PENDING')),
            closed_day=data.get('closed_day')
        )

# ============================================================================
# ACTIVITY
# ============================================================================

@dataclass(frozen=True)
class ActivityRecord:
    """Immutable activity log entry"""
    day: int
    minute: int
    message: str
    sequence: int = field(default=0, compare=False)
