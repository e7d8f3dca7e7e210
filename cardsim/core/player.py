"""
The player's wallet and standing.
"""
from typing import Optional

from .errors import InsufficientFunds
from .reputation import Reputation


class Player:
    """Cash in cents (never negative) plus reputation"""

    def __init__(self, cash: int, reputation: Optional[Reputation] = None):
        if cash < 0:
            raise ValueError("Starting cash cannot be negative")
        self._cash = int(cash)
        self.reputation = reputation if reputation is not None else Reputation()

    @property
    def cash(self) -> int:
        return self._cash

    def can_afford(self, amount: int) -> bool:
        return amount <= self._cash

    def debit(self, amount: int):
        """Remove cash, or raise InsufficientFunds leaving cash untouched"""
        if amount < 0:
            raise ValueError("Debit amount cannot be negative")
        if amount > self._cash:
            raise InsufficientFunds(amount, self._cash)
        self._cash -= amount
        assert self._cash >= 0

    def credit(self, amount: int):
        if amount < 0:
            raise ValueError("Credit amount cannot be negative")
        self._cash += amount

    def __repr__(self):
        return f"Player(cash={self._cash}, reputation={self.reputation.points})"
