"""
Gift Card Business Simulation Engine

A deterministic, tick-driven simulation of a gift card resale business:
wholesale purchasing, perishable inventory, and time-boxed customer orders.
"""

__version__ = "1.0.0"
__author__ = "Gift Card Simulation Team"

from .config import Difficulty, DifficultyPreset, SimulationConfig, PRESETS
from .core.commands import AcceptOrder, DeclineOrder, Liquidate, Pause, Purchase, Resume, CommandResult
from .core.errors import SimulationError, InsufficientFunds, InsufficientStock, UnfulfillableOrder, UnknownOrder
from .core.snapshot import SimulationSnapshot
from .simulation import SimulationEngine, SimulationRunner

__all__ = [
    "Difficulty",
    "DifficultyPreset",
    "SimulationConfig",
    "PRESETS",
    "Purchase",
    "AcceptOrder",
    "DeclineOrder",
    "Pause",
    "Resume",
    "Liquidate",
    "CommandResult",
    "SimulationError",
    "InsufficientFunds",
    "InsufficientStock",
    "UnfulfillableOrder",
    "UnknownOrder",
    "SimulationSnapshot",
    "SimulationEngine",
    "SimulationRunner"
]
