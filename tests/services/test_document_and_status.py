"""Tests for DocumentService and the administrative status transitions."""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from sales_kernel.domain.classification import Category
from sales_kernel.exceptions import (
    DocumentNotFoundError,
    InvalidStatusTransitionError,
)
from sales_kernel.models.audit_record import AuditAction
from sales_kernel.services import StatusService


@pytest.fixture
def statuses(session, deterministic_clock):
    return StatusService(session, deterministic_clock)


class TestCreateDocument:
    def test_defaults(self, make_document):
        doc = make_document(total=Decimal("120.50"))
        assert doc.category is Category.INVOICE
        assert doc.status == "VALIDATED"
        assert doc.outstanding_balance == Decimal("120.50")
        assert doc.paid_to_date == Decimal("0")
        assert doc.payment_count == 0

    def test_quote_defaults_to_unconfirmed(self, make_document):
        doc = make_document(number="D-9", declared_type="DEVIS")
        assert doc.category is Category.QUOTE
        assert doc.status == "QUOTE_UNCONFIRMED"

    def test_legacy_status_is_stored_canonical(self, make_document):
        assert make_document(status="valide").status == "VALIDATED"

    def test_unknown_status_is_kept(self, make_document):
        assert make_document(status="EN_LITIGE").status == "EN_LITIGE"

    def test_undated_document(self, make_document):
        doc = make_document(issue_date=None)
        assert doc.issue_date is None

    def test_get_unknown(self, documents):
        with pytest.raises(DocumentNotFoundError):
            documents.get(uuid4())


class TestAdministrativeTransitions:
    def test_cancel_then_restore(self, make_document, pay, statuses, test_actor_id):
        doc = make_document(total=Decimal("100"))
        pay(doc.id, "40")

        cancelled = statuses.cancel(doc.id, test_actor_id, reason="customer left")
        assert cancelled.status == "CANCELLED"

        restored = statuses.restore(doc.id, test_actor_id)
        assert restored.status == "PARTIALLY_PAID"

        actions = [r.action for r in statuses.audit.history(doc.id)]
        assert actions == [AuditAction.CANCELLED, AuditAction.RESTORED]

    def test_archive_after_cancel_restores_pre_cancel_status(self, make_document, statuses, test_actor_id):
        doc = make_document(status="BROUILLON")
        statuses.cancel(doc.id, test_actor_id)
        statuses.archive(doc.id, test_actor_id)
        assert statuses.restore(doc.id, test_actor_id).status == "DRAFT"

    def test_cannot_cancel_twice(self, make_document, statuses, test_actor_id):
        doc = make_document()
        statuses.cancel(doc.id, test_actor_id)
        with pytest.raises(InvalidStatusTransitionError):
            statuses.cancel(doc.id, test_actor_id)

    def test_cannot_restore_live_document(self, make_document, statuses, test_actor_id):
        doc = make_document()
        with pytest.raises(InvalidStatusTransitionError):
            statuses.restore(doc.id, test_actor_id)

    def test_terminal_status_survives_refresh(self, session, make_document, statuses, test_actor_id):
        doc = make_document(total=Decimal("100"))
        statuses.archive(doc.id, test_actor_id)
        document = statuses.documents.get_for_update(doc.id)
        document.outstanding_balance = Decimal("0")
        assert statuses.refresh(document, test_actor_id) == "ARCHIVED"

    def test_get_status(self, make_document, statuses):
        doc = make_document(issue_date=date(2024, 1, 2))
        assert statuses.get_status(doc.id) == "VALIDATED"
