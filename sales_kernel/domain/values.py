"""
Values -- monetary and quantity helpers shared by the kernel and engines.

Responsibility:
    Converts caller input into ``Decimal`` and rounds money at reporting
    boundaries.  Ledger arithmetic itself stays exact; only figures handed
    to callers are quantized.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Failure modes:
    - TypeError when a float is supplied (binary floats are refused for money).
    - ValueError on strings that are not decimal numbers.
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
MONEY_QUANTUM = Decimal("0.01")
COST_QUANTUM = Decimal("0.000001")

# Default tolerance for balance/overpayment comparisons in audit checks
MONEY_TOLERANCE = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    Coerce ``value`` to Decimal.

    Accepts Decimal, int and numeric strings.  Floats are refused because
    they cannot represent cents exactly.
    """
    if isinstance(value, Decimal):
        return value
    if isinstance(value, bool):
        raise TypeError("Boolean is not a monetary amount")
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        raise TypeError(
            f"Float amounts are not accepted ({value!r}); pass a str or Decimal"
        )
    if isinstance(value, str):
        try:
            return Decimal(value.strip().replace(",", "."))
        except InvalidOperation as exc:
            raise ValueError(f"Not a decimal number: {value!r}") from exc
    raise TypeError(f"Cannot convert {type(value).__name__} to Decimal")


def quantize_money(value: Decimal) -> Decimal:
    """Round to cents, half-up."""
    return value.quantize(MONEY_QUANTUM, rounding=ROUND_HALF_UP)


def quantize_cost(value: Decimal) -> Decimal:
    """Round a unit cost to six places, half-up."""
    return value.quantize(COST_QUANTUM, rounding=ROUND_HALF_UP)


def normalize_token(value: str | None) -> str:
    """
    Canonical form of a loosely-controlled vocabulary string.

    Upper-cased, trimmed, with spaces and hyphens folded into underscores,
    so "bon de commande", "Bon-De-Commande" and "BON_DE_COMMANDE" agree.
    """
    if value is None:
        return ""
    token = value.strip().upper()
    for sep in (" ", "-"):
        token = token.replace(sep, "_")
    while "__" in token:
        token = token.replace("__", "_")
    return token


def from_db(value: Any) -> Decimal:
    """
    Decimal from a value read back from the database.

    SQL aggregates may come back as int or float on some backends; they are
    converted through ``str`` so no binary noise leaks in.
    """
    if value is None:
        return ZERO
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))
