"""PaymentSelector -- payment rows for duplicate detection and method totals."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone

from sqlalchemy import select

from sales_kernel.domain.records import PaymentRecord
from sales_kernel.domain.values import from_db
from sales_kernel.domain.window import DateWindow
from sales_kernel.models.document import Document
from sales_kernel.models.payment import Payment
from sales_kernel.selectors.base import BaseSelector

# Slack on the SQL bound; the exact calendar-date check happens in Python.
_BOUND_SLACK = timedelta(days=1)


def _loose_bounds(window: DateWindow) -> tuple[datetime | None, datetime | None]:
    lower = upper = None
    if window.start is not None and window.start > date.min:
        lower = datetime.combine(window.start - _BOUND_SLACK, time.min, tzinfo=timezone.utc)
    if window.end is not None and window.end < date.max:
        upper = datetime.combine(window.end + _BOUND_SLACK, time.min, tzinfo=timezone.utc)
    return lower, upper


class PaymentSelector(BaseSelector):
    """Read access to payments."""

    @staticmethod
    def _to_record(payment: Payment) -> PaymentRecord:
        return PaymentRecord(
            id=payment.id,
            document_id=payment.document_id,
            amount=from_db(payment.amount),
            method=payment.method,
            paid_at=payment.paid_at,
        )

    def payments_in_window(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
    ) -> list[PaymentRecord]:
        """
        Payments whose payment date falls in ``window``.

        SQL narrows ``paid_at`` to the window widened by a day on each side,
        since backends differ in how they store time zones; the calendar date
        of ``paid_at`` is then checked against the window exactly.
        """
        window = DateWindow.coerce(window)
        stmt = select(Payment).order_by(Payment.document_id, Payment.paid_at, Payment.id)
        lower, upper = _loose_bounds(window)
        if lower is not None:
            stmt = stmt.where(Payment.paid_at >= lower)
        if upper is not None:
            stmt = stmt.where(Payment.paid_at < upper)
        if center_id is not None:
            stmt = stmt.join(Document, Document.id == Payment.document_id).where(
                Document.center_id == center_id
            )
        return [
            self._to_record(p)
            for p in self.session.execute(stmt).scalars()
            if window.contains(p.paid_at)
        ]
