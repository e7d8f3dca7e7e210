"""
Player commands and their results.
Commands are plain immutable values; the engine is the only interpreter.
Field types are checked on construction, so a command that exists is
safe to apply.
"""
from dataclasses import dataclass
from numbers import Integral
from typing import Any, Dict, Optional, Union

from .errors import SimulationError


def _check_int(command: Any, field_name: str, minimum: Optional[int] = None):
    value = getattr(command, field_name)
    if isinstance(value, bool) or not isinstance(value, Integral):
        raise ValueError(f"{field_name} must be an integer, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ValueError(f"{field_name} must be >= {minimum}, got {value}")
    # Normalise numpy integers to int
    object.__setattr__(command, field_name, int(value))


def _check_listing(command: Any):
    if not isinstance(command.retailer, str):
        raise ValueError(f"retailer must be a string, got {type(command.retailer).__name__}")
    _check_int(command, "denomination", minimum=1)
    _check_int(command, "quantity", minimum=1)


@dataclass(frozen=True)
class Purchase:
    """Buy cards wholesale from the market"""
    retailer: str
    denomination: int
    quantity: int = 1

    def __post_init__(self):
        _check_listing(self)


@dataclass(frozen=True)
class AcceptOrder:
    order_id: int

    def __post_init__(self):
        _check_int(self, "order_id")


@dataclass(frozen=True)
class DeclineOrder:
    order_id: int

    def __post_init__(self):
        _check_int(self, "order_id")


@dataclass(frozen=True)
class Pause:
    pass


@dataclass(frozen=True)
class Resume:
    pass


@dataclass(frozen=True)
class Liquidate:
    """Sell held cards to a liquidator below face value"""
    retailer: str
    denomination: int
    quantity: int = 1

    def __post_init__(self):
        _check_listing(self)


Command = Union[Purchase, AcceptOrder, DeclineOrder, Pause, Resume, Liquidate]

_COMMAND_TYPES = {
    "purchase": Purchase,
    "accept_order": AcceptOrder,
    "decline_order": DeclineOrder,
    "pause": Pause,
    "resume": Resume,
    "liquidate": Liquidate,
}

_COMMAND_NAMES = {cls: name for name, cls in _COMMAND_TYPES.items()}


def command_name(command: Command) -> str:
    return _COMMAND_NAMES[type(command)]


def parse_command(payload: Dict[str, Any]) -> Command:
    """
    Build a command from a JSON-style payload, e.g.
    {"type": "purchase", "retailer": "Starbucks", "denomination": 10, "quantity": 1}
    """
    if not isinstance(payload, dict):
        raise ValueError("Command payload must be an object")
    kind = payload.get("type")
    if not isinstance(kind, str) or kind not in _COMMAND_TYPES:
        raise ValueError(f"Unknown command type: {kind}")

    params = {k: v for k, v in payload.items() if k != "type"}
    try:
        return _COMMAND_TYPES[kind](**params)
    except TypeError as e:
        raise ValueError(f"Invalid parameters for {kind}: {e}") from e


def command_to_dict(command: Command) -> Dict[str, Any]:
    return {"type": command_name(command), **command.__dict__}


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one command"""
    command: Command
    accepted: bool
    message: str
    error: Optional[SimulationError] = None
    version: int = 0

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'command': command_to_dict(self.command),
            'accepted': self.accepted,
            'message': self.message,
            'error': self.error_code,
            'version': self.version
        }
