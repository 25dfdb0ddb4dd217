"""Tests for the append-only ORM listeners."""

from decimal import Decimal

import pytest

from sales_kernel.exceptions import ImmutabilityViolationError
from sales_kernel.models.audit_record import DocumentAuditRecord
from sales_kernel.models.payment import Payment
from sales_kernel.models.stock import StockMovement
from sales_kernel.services import StatusService


class TestAppendOnly:
    def test_payment_amount_cannot_be_updated(self, session, make_document, pay):
        doc = make_document()
        result = pay(doc.id, "10")
        payment = session.get(Payment, result.payment.id)
        payment.amount = Decimal("9")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_movement_cost_cannot_be_updated(self, session, make_product, stock, test_actor_id):
        product = make_product()
        info = stock.record_stock_in(product.id, 1, "10", test_actor_id)
        movement = session.get(StockMovement, info.id)
        movement.unit_cost = Decimal("11")
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_movement_cannot_be_deleted(self, session, make_product, stock, test_actor_id):
        product = make_product()
        info = stock.record_stock_in(product.id, 1, "10", test_actor_id)
        session.delete(session.get(StockMovement, info.id))
        with pytest.raises(ImmutabilityViolationError):
            session.flush()

    def test_audit_record_cannot_be_updated(self, session, make_document, test_actor_id, deterministic_clock):
        doc = make_document()
        StatusService(session, deterministic_clock).cancel(doc.id, test_actor_id)
        record = session.query(DocumentAuditRecord).filter_by(document_id=doc.id).one()
        record.reason = "rewritten"
        with pytest.raises(ImmutabilityViolationError):
            session.flush()
