"""
Tests for command parsing and results.
"""
import numpy as np
import pytest

from cardsim.core.commands import (
    AcceptOrder, CommandResult, DeclineOrder, Liquidate, Pause, Purchase,
    command_to_dict, parse_command
)
from cardsim.core.errors import InsufficientFunds


class TestParseCommand:

    def test_purchase(self):
        command = parse_command({"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": 2})
        assert command == Purchase("Starbucks", 10, 2)

    def test_default_quantity(self):
        assert parse_command({"type": "purchase", "retailer": "Amazon", "denomination": 25}).quantity == 1

    def test_no_argument_commands(self):
        assert parse_command({"type": "pause"}) == Pause()

    @pytest.mark.parametrize("payload", [
        {"type": "teleport"},
        {},
        {"type": "accept_order"},
        {"type": "accept_order", "order_id": 1, "extra": True},
        {"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": 0},
        {"type": "purchase", "retailer": "Starbucks", "denomination": 0},
        {"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": 1.5},
        {"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": True},
        {"type": "purchase", "retailer": "Starbucks", "denomination": "10"},
        {"type": "purchase", "retailer": ["Starbucks"], "denomination": 10},
        {"type": "liquidate", "retailer": None, "denomination": 10},
        {"type": "accept_order", "order_id": [1, 2]},
        {"type": "decline_order", "order_id": {"a": 1}},
        {"type": "decline_order", "order_id": 2.0},
        {"type": ["purchase"]},
    ])
    def test_invalid(self, payload):
        with pytest.raises(ValueError):
            parse_command(payload)

    def test_to_dict(self):
        assert command_to_dict(AcceptOrder(4)) == {"type": "accept_order", "order_id": 4}

    @pytest.mark.parametrize("payload", [None, [], "pause", 3])
    def test_payload_must_be_object(self, payload):
        with pytest.raises(ValueError):
            parse_command(payload)


class TestFieldTypes:

    def test_direct_construction_is_checked(self):
        with pytest.raises(ValueError):
            Purchase("Starbucks", 10, 1.5)
        with pytest.raises(ValueError):
            Liquidate("Starbucks", 10, -1)
        with pytest.raises(ValueError):
            DeclineOrder(None)

    def test_numpy_integers_normalised(self):
        command = Purchase("Starbucks", np.int64(10), np.int32(2))
        assert type(command.denomination) is int
        assert type(command.quantity) is int
        assert command == Purchase("Starbucks", 10, 2)

    def test_commands_are_hashable(self):
        assert len({AcceptOrder(1), AcceptOrder(1), DeclineOrder(1)}) == 2


class TestCommandResult:

    def test_rejected_to_dict(self):
        result = CommandResult(
            Purchase("Amazon", 100, 100), accepted=False, message="no",
            error=InsufficientFunds(747_000, 500_000), version=3
        )
        data = result.to_dict()
        assert data['accepted'] is False
        assert data['error'] == "insufficient_funds"
        assert data['version'] == 3
        assert data['command']['type'] == "purchase"

    def test_accepted_has_no_error(self):
        assert CommandResult(Pause(), accepted=True, message="ok").error_code is None
