"""
DocumentSelector -- documents with their payment aggregate, for reporting.

One query per call: documents left-joined to a per-document payment
aggregate (count, sum), so every record carries both the stored
outstanding balance and the figures needed to recompute it.
"""

from __future__ import annotations

from sqlalchemy import Select, func, select

from sales_kernel.domain.records import DocumentRecord
from sales_kernel.domain.values import from_db
from sales_kernel.domain.window import DateWindow
from sales_kernel.models.document import Document
from sales_kernel.models.payment import Payment
from sales_kernel.selectors.base import BaseSelector


class DocumentSelector(BaseSelector):
    """Read access to documents."""

    def _statement(self, center_id: str | None) -> Select:
        paid = (
            select(
                Payment.document_id.label("document_id"),
                func.count(Payment.id).label("payment_count"),
                func.sum(Payment.amount).label("paid_total"),
            )
            .group_by(Payment.document_id)
            .subquery()
        )
        stmt = (
            select(
                Document.id,
                Document.number,
                Document.declared_type,
                Document.status,
                Document.total_amount,
                Document.outstanding_balance,
                Document.issue_date,
                Document.center_id,
                paid.c.payment_count,
                paid.c.paid_total,
            )
            .outerjoin(paid, paid.c.document_id == Document.id)
            .order_by(Document.issue_date, Document.number, Document.id)
        )
        if center_id is not None:
            stmt = stmt.where(Document.center_id == center_id)
        return stmt

    @staticmethod
    def _to_record(row) -> DocumentRecord:
        return DocumentRecord(
            id=row.id,
            number=row.number,
            declared_type=row.declared_type,
            status=row.status,
            total_amount=from_db(row.total_amount),
            outstanding_balance=from_db(row.outstanding_balance),
            issue_date=row.issue_date,
            center_id=row.center_id,
            payment_count=int(row.payment_count or 0),
            paid_total=from_db(row.paid_total),
        )

    def list_documents(
        self,
        center_id: str | None = None,
        window: DateWindow | None = None,
    ) -> list[DocumentRecord]:
        """
        Documents issued inside ``window`` (all documents when unbounded).

        A bounded window never returns undated documents; use
        ``list_undated`` to report them.
        """
        window = DateWindow.coerce(window)
        stmt = self._statement(center_id)
        if window.start is not None:
            stmt = stmt.where(Document.issue_date >= window.start)
        if window.end is not None:
            stmt = stmt.where(Document.issue_date < window.end)
        return [self._to_record(row) for row in self.session.execute(stmt)]

    def list_undated(self, center_id: str | None = None) -> list[DocumentRecord]:
        stmt = self._statement(center_id).where(Document.issue_date.is_(None))
        return [self._to_record(row) for row in self.session.execute(stmt)]
