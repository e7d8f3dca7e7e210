"""
Shared fixtures.
"""
import pytest

from cardsim.config import SimulationConfig
from cardsim.core.inventory import Inventory
from cardsim.core.market import Market
from cardsim.core.player import Player
from cardsim.core.types import CustomerOrder, CustomerProfile, LineItem, Priority
from cardsim.simulation import SimulationEngine


@pytest.fixture
def config():
    return SimulationConfig(seed=42)


@pytest.fixture
def engine(config):
    return SimulationEngine(config)


@pytest.fixture
def market():
    return Market()


@pytest.fixture
def inventory():
    return Inventory()


@pytest.fixture
def player():
    return Player(500_000)


@pytest.fixture
def order_factory():
    """Build a PENDING order; items are (retailer, denomination, quantity) tuples."""

    def make(
        order_id=1,
        items=(("Starbucks", 10, 1),),
        offered_price=1200,
        priority=Priority.MEDIUM,
        deadline_day=5,
        created_day=1,
        customer="Alice"
    ):
        return CustomerOrder(
            order_id=order_id,
            customer=CustomerProfile(customer),
            requested_items=tuple(LineItem(r, d, q) for r, d, q in items),
            offered_price=offered_price,
            priority=priority,
            deadline_day=deadline_day,
            created_day=created_day
        )

    return make
