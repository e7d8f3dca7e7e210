"""
Recoverable simulation errors.

Every error here is returned to the command issuer as a rejected
CommandResult and mirrored into the activity log. None of them abort
the simulation.
"""
from typing import Optional


class SimulationError(Exception):
    """Base class for command-level failures"""

    code = "simulation_error"


class InsufficientFunds(SimulationError):
    """Purchase would drive cash below zero"""

    code = "insufficient_funds"

    def __init__(self, required: int, available: int):
        self.required = required
        self.available = available
        super().__init__(
            f"Insufficient funds: need {required} cents, have {available} cents"
        )


class InsufficientStock(SimulationError):
    """Market listing unavailable, or inventory cannot cover a consume request"""

    code = "insufficient_stock"

    def __init__(
        self,
        retailer: str,
        denomination: int,
        requested: int = 0,
        available: int = 0,
        reason: Optional[str] = None
    ):
        self.retailer = retailer
        self.denomination = denomination
        self.requested = requested
        self.available = available
        self.reason = reason or (
            f"need {requested}, have {available}"
        )
        super().__init__(
            f"Insufficient stock for {retailer} ${denomination}: {self.reason}"
        )


class UnfulfillableOrder(SimulationError):
    """Accept-order could not satisfy every requested item"""

    code = "unfulfillable_order"

    def __init__(self, order_id: int, shortfall: InsufficientStock):
        self.order_id = order_id
        self.shortfall = shortfall
        super().__init__(
            f"Cannot fulfill order #{order_id}: "
            f"{shortfall.retailer} ${shortfall.denomination} "
            f"needs {shortfall.requested}, have {shortfall.available}"
        )


class UnknownOrder(SimulationError):
    """Order id is not in the active set"""

    code = "unknown_order"

    def __init__(self, order_id: int, status: Optional[str] = None):
        self.order_id = order_id
        self.status = status
        detail = f" (already {status.lower()})" if status else ""
        super().__init__(f"Unknown order #{order_id}{detail}")
