"""
Module: sales_kernel.models.payment
Responsibility: ORM persistence for payments applied to documents.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Append-only: amount, method, paid_at and document_id never change
      (db/immutability.py).  An edit is a delete plus a new insert.
    - For a given document sum(amount) <= total_amount, enforced by the
      payment ledger under a row lock on the owning document.

Audit relevance:
    Deleting a payment (reversal) is the only removal path; the ledger
    recomputes the document balance from the remaining rows.
"""

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import ForeignKey, Index, String
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import TrackedBase, UUIDString


class Payment(TrackedBase):
    """One payment against one document."""

    __tablename__ = "payments"

    __table_args__ = (
        Index("idx_payment_document", "document_id"),
        Index("idx_payment_paid_at", "paid_at"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("documents.id", ondelete="RESTRICT"),
        nullable=False,
    )

    amount: Mapped[Decimal] = mapped_column(nullable=False)

    # Canonical PaymentMethod value
    method: Mapped[str] = mapped_column(String(20), nullable=False)

    paid_at: Mapped[datetime] = mapped_column(nullable=False)

    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    bank: Mapped[str | None] = mapped_column(String(100), nullable=True)

    third_party_name: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Payment {self.amount} {self.method} doc={self.document_id}>"
