"""
Module: sales_kernel.models.document
Responsibility: ORM persistence for commercial documents (invoices, orders,
    quotes, credit notes) and their denormalized outstanding balance.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - outstanding_balance == total_amount - sum(payments), maintained by the
      payment ledger service inside the same transaction as the payment
      insert or delete.
    - ``version`` is SQLAlchemy's version_id_col: a concurrent writer that
      read an older version fails with StaleDataError instead of silently
      overwriting the balance.

Failure modes:
    - StaleDataError on a lost optimistic-lock race (translated to
      ConcurrentModificationError by the services).

Audit relevance:
    number, declared_type and status are loosely-controlled legacy strings.
    The category is NOT stored; it is derived by
    sales_kernel.domain.classification.classify on every read.
"""

from datetime import date
from decimal import Decimal

from sqlalchemy import Date, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import TrackedBase


class Document(TrackedBase):
    """
    A commercial document issued by a center.

    Contract:
        Created by a sale/import workflow, mutated by payment application and
        explicit administrative operations, never hard-deleted by the kernel.

    Non-goals:
        - Does NOT store its category.
        - Does NOT validate status strings; legacy values are normalized when
          status is derived.
    """

    __tablename__ = "documents"

    __table_args__ = (
        Index("idx_document_center_issue_date", "center_id", "issue_date"),
        Index("idx_document_number", "number"),
        Index("idx_document_status", "status"),
    )

    number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    declared_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    status: Mapped[str] = mapped_column(String(50), nullable=False)

    # Tax inclusive
    total_amount: Mapped[Decimal] = mapped_column(nullable=False)

    outstanding_balance: Mapped[Decimal] = mapped_column(nullable=False)

    # Nullable in practice: legacy imports carry undated rows
    issue_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    center_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    client_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    # Source case file ("fiche")
    case_file_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Document {self.number!r} {self.declared_type} {self.status}>"
