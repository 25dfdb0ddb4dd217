"""
Costing -- weighted-average unit cost ("CUMP") arithmetic.

Responsibility:
    Pure calculation of a product's running weighted-average purchase cost
    as stock enters and leaves.  The stock costing service persists the
    resulting positions; this module never touches the database.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - Stock-in: c = (q_old * c_old + q_new * c_new) / (q_old + q_new).
      When q_old <= 0 the incoming cost is taken as is, which also covers
      q_old + q_new == 0.
    - Stock-out and returns leave the average unchanged; a stock-out is
      valued at the average in force at that moment.
    - Quantities are strictly positive, unit costs non-negative.

Failure modes:
    - InvalidQuantityError, InvalidUnitCostError.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from sales_kernel.domain.values import ZERO, quantize_cost
from sales_kernel.exceptions import InvalidQuantityError, InvalidUnitCostError


@dataclass(frozen=True)
class CostPosition:
    """Quantity on hand and its weighted-average unit cost."""

    quantity: Decimal = ZERO
    average_cost: Decimal = ZERO


def _check_quantity(quantity: Decimal) -> None:
    if quantity <= 0:
        raise InvalidQuantityError(quantity)


def weighted_average(
    q_old: Decimal,
    c_old: Decimal,
    q_new: Decimal,
    c_new: Decimal,
) -> Decimal:
    """Weighted-average unit cost after adding ``q_new`` units at ``c_new``."""
    if q_old <= 0:
        return quantize_cost(c_new)
    total_quantity = q_old + q_new
    if total_quantity == 0:
        return quantize_cost(c_new)
    return quantize_cost((q_old * c_old + q_new * c_new) / total_quantity)


def apply_stock_in(
    position: CostPosition,
    quantity: Decimal,
    unit_cost: Decimal,
) -> CostPosition:
    """Receive ``quantity`` units bought at ``unit_cost``."""
    _check_quantity(quantity)
    if unit_cost < 0:
        raise InvalidUnitCostError(unit_cost)
    return CostPosition(
        quantity=position.quantity + quantity,
        average_cost=weighted_average(
            position.quantity, position.average_cost, quantity, unit_cost
        ),
    )


def apply_stock_out(
    position: CostPosition,
    quantity: Decimal,
) -> tuple[CostPosition, Decimal]:
    """
    Issue ``quantity`` units.

    Returns:
        (new position, unit cost to record on the movement).  Negative stock
        is allowed (sales recorded before the delivery note); the average
        is carried unchanged.
    """
    _check_quantity(quantity)
    return (
        CostPosition(
            quantity=position.quantity - quantity,
            average_cost=position.average_cost,
        ),
        position.average_cost,
    )


def apply_return(
    position: CostPosition,
    quantity: Decimal,
) -> tuple[CostPosition, Decimal]:
    """Goods coming back on a credit note re-enter at the current average."""
    _check_quantity(quantity)
    return (
        CostPosition(
            quantity=position.quantity + quantity,
            average_cost=position.average_cost,
        ),
        position.average_cost,
    )
