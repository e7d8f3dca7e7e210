"""
Core simulation components.
"""

from .types import (
    GameTime, Retailer, GiftCardLot, CustomerProfile, LineItem, CustomerOrder,
    ActivityRecord, OrderStatus, Priority, Segment, format_cents
)
from .clock import Clock
from .market import Market, DiscountTier
from .market_conditions import MarketConditions, MarketEvent, Season
from .inventory import Inventory, InventoryGroup
from .reputation import Reputation, ReputationConfig
from .player import Player
from .order_generator import OrderGenerator, GeneratorConfig
from .order_book import OrderBook, Fulfillment
from .analytics import Analytics
from .achievements import AchievementTracker, AchievementView

__all__ = [
    "GameTime",
    "Retailer",
    "GiftCardLot",
    "CustomerProfile",
    "LineItem",
    "CustomerOrder",
    "ActivityRecord",
    "OrderStatus",
    "Priority",
    "Segment",
    "format_cents",
    "Clock",
    "Market",
    "DiscountTier",
    "MarketConditions",
    "MarketEvent",
    "Season",
    "Inventory",
    "InventoryGroup",
    "Reputation",
    "ReputationConfig",
    "Player",
    "OrderGenerator",
    "GeneratorConfig",
    "OrderBook",
    "Fulfillment",
    "Analytics",
    "AchievementTracker",
    "AchievementView"
]
