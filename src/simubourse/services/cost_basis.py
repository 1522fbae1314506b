"""Weighted-average cost accounting for positions.

A position carries a single blended cost per unit. Buying more re-averages it;
selling never changes it. Realized P&L is only recognised on disposal.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Optional

from ..errors import InsufficientQuantity, NoSuchHolding

# Smallest quantity kept on the books. Matches the 8-decimal NUMERIC scale of
# every quantity column, for user and company positions alike.
QUANTITY_EPSILON = Decimal("0.00000001")
UNIT_PLACES = Decimal("0.00000001")


@dataclass(frozen=True)
class Position:
    quantity: Decimal
    avg_cost: Decimal


def quantize_units(value: Decimal) -> Decimal:
    """Round quantities, prices and average costs to the stored scale."""

    return value.quantize(UNIT_PLACES, rounding=ROUND_HALF_UP)


def is_liquidated(quantity: Decimal) -> bool:
    """True when a quantity is too small to keep as a position."""

    return quantity < QUANTITY_EPSILON


def apply_acquisition(
    current: Optional[Position], add_qty: Decimal, add_price: Decimal
) -> Position:
    """Merge a new lot into an existing position.

    Examples:
        >>> apply_acquisition(Position(Decimal(10), Decimal(100)), Decimal(5), Decimal(130))
        Position(quantity=Decimal('15'), avg_cost=Decimal('110.00000000'))
    """

    if current is None or is_liquidated(current.quantity):
        return Position(quantity=add_qty, avg_cost=quantize_units(add_price))

    new_qty = current.quantity + add_qty
    total_cost = current.avg_cost * current.quantity + add_price * add_qty
    return Position(quantity=new_qty, avg_cost=quantize_units(total_cost / new_qty))


def apply_disposal(current: Optional[Position], remove_qty: Decimal) -> Optional[Position]:
    """Remove units from a position.

    Returns the remaining position with an unchanged average cost, or ``None``
    when the remainder falls below ``QUANTITY_EPSILON`` and the holding must be
    deleted.
    """

    if current is None:
        raise NoSuchHolding()
    if remove_qty > current.quantity:
        raise InsufficientQuantity(
            f"Insufficient quantity: tried to sell {remove_qty.normalize()}, "
            f"holding {current.quantity.normalize()}."
        )
    remaining = current.quantity - remove_qty
    if is_liquidated(remaining):
        return None
    return Position(quantity=remaining, avg_cost=current.avg_cost)
