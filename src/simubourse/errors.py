"""Business-rule failures raised by the settlement services.

Every error carries a message that can be shown to the player as-is. They
subclass ``ValueError`` so callers that only care about "bad input" can keep
catching that.
"""

from __future__ import annotations


class SimulationError(ValueError):
    """Base class for expected, user-facing validation failures."""

    default_message = "The operation could not be completed."

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class InsufficientFunds(SimulationError):
    default_message = "Insufficient funds."


class InsufficientQuantity(SimulationError):
    default_message = "Insufficient quantity to sell."


class NoSuchHolding(SimulationError):
    default_message = "You do not hold this asset."


class InvalidAmount(SimulationError):
    default_message = "The amount must be positive."


class ZeroSharePrice(SimulationError):
    default_message = "The company's share price is zero; investment is impossible."


class Unauthorized(SimulationError):
    default_message = "You are not allowed to perform this operation."


class NotFound(SimulationError):
    default_message = "The requested item was not found."


class MarketClosed(SimulationError):
    default_message = "This market is no longer accepting bets."


class DuplicateName(SimulationError):
    default_message = "That name is already taken."


class ValidationFailed(SimulationError):
    default_message = "Invalid data."


__all__ = [
    "DuplicateName",
    "InsufficientFunds",
    "InsufficientQuantity",
    "InvalidAmount",
    "MarketClosed",
    "NoSuchHolding",
    "NotFound",
    "SimulationError",
    "Unauthorized",
    "ValidationFailed",
    "ZeroSharePrice",
]
