"""Record factories for the pure engine tests."""

from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import uuid4

import pytest

from sales_kernel.domain.records import DocumentRecord, PaymentRecord


@pytest.fixture
def make_record():
    """
    Build a DocumentRecord.  ``outstanding`` defaults to total - paid so
    the record has no drift.
    """

    def _make(
        number,
        declared_type,
        total,
        status="VALIDATED",
        issue_date=date(2024, 3, 1),
        paid="0",
        payment_count=None,
        outstanding=None,
        center_id="C1",
    ):
        total = Decimal(str(total))
        paid = Decimal(str(paid))
        if payment_count is None:
            payment_count = 1 if paid else 0
        return DocumentRecord(
            id=uuid4(),
            number=number,
            declared_type=declared_type,
            status=status,
            total_amount=total,
            outstanding_balance=Decimal(str(outstanding)) if outstanding is not None else total - paid,
            issue_date=issue_date,
            center_id=center_id,
            payment_count=payment_count,
            paid_total=paid,
        )

    return _make


@pytest.fixture
def make_payment():
    def _make(document_id, amount, method="CASH", paid_at=None):
        return PaymentRecord(
            id=uuid4(),
            document_id=document_id,
            amount=Decimal(str(amount)),
            method=method,
            paid_at=paid_at or datetime(2024, 3, 5, 9, 0, tzinfo=timezone.utc),
        )

    return _make


@pytest.fixture
def march_book(make_record):
    """
    A small March 2024 book for center C1.

    Active invoices 1000 + 500, one credit note of 200, one paid order,
    one quote, one cancelled invoice, plus an April invoice and an
    undated invoice.
    """
    return {
        "invoice": make_record("FAC-1", "FACTURE", 1000),
        "paid_invoice": make_record("FAC-2", "FACTURE", 500, status="PAID", issue_date=date(2024, 3, 20), paid=500),
        "credit_note": make_record("AV-1", "AVOIR", 200, issue_date=date(2024, 3, 10)),
        "order": make_record("BC-1", "BON_COMMANDE", 300, issue_date=date(2024, 3, 5), paid=100),
        "quote": make_record("DV-1", "DEVIS", 400, status="QUOTE_UNCONFIRMED"),
        "cancelled": make_record("FAC-3", "FACTURE", 700, status="CANCELLED"),
        "april": make_record("FAC-4", "FACTURE", 250, issue_date=date(2024, 4, 2)),
        "undated": make_record("FAC-5", "FACTURE", 80, issue_date=None),
    }
