"""
Records -- read-side snapshots passed from selectors to engines.

Frozen dataclasses with no ORM dependency.  Selectors build them; the
reporting and audit engines consume them.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from uuid import UUID

from sales_kernel.domain.classification import ClassificationSignals


@dataclass(frozen=True)
class DocumentRecord:
    """One document as stored, plus its payment aggregate."""

    id: UUID
    number: str | None
    declared_type: str | None
    status: str | None
    total_amount: Decimal
    outstanding_balance: Decimal
    issue_date: date | None
    center_id: str | None
    payment_count: int
    paid_total: Decimal

    @property
    def has_payments(self) -> bool:
        return self.payment_count > 0

    @property
    def computed_outstanding(self) -> Decimal:
        return self.total_amount - self.paid_total

    def signals(self) -> ClassificationSignals:
        return ClassificationSignals(
            number=self.number,
            declared_type=self.declared_type,
            status=self.status,
            has_payments=self.has_payments,
        )


@dataclass(frozen=True)
class PaymentRecord:
    id: UUID
    document_id: UUID
    amount: Decimal
    method: str
    paid_at: datetime


@dataclass(frozen=True)
class MovementRecord:
    id: UUID
    product_id: UUID
    document_id: UUID | None
    movement_type: str
    quantity: Decimal
    unit_cost: Decimal
