"""
Tests for SalesLedgerApi, the transactional facade.

Each call runs in its own committed unit of work, so these tests never use
the ``session`` fixture.
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm.exc import StaleDataError

from sales_engines.types import CheckStatus
from sales_kernel.domain.classification import Category
from sales_kernel.domain.window import DateWindow
from sales_kernel.exceptions import (
    ConcurrentModificationError,
    DocumentNotFoundError,
    InvalidPaymentTargetError,
    OverpaymentRejectedError,
    ReclassificationRejectedError,
)
from sales_kernel.models.audit_record import AuditAction
from sales_services import SalesLedgerApi
from sales_services.expenses import FixedExpenseProvider

MARCH = DateWindow(date(2024, 3, 1), date(2024, 4, 1))


@pytest.fixture
def api(session_factory, deterministic_clock):
    return SalesLedgerApi(session_factory, clock=deterministic_clock)


@pytest.fixture
def invoice(api, test_actor_id):
    return api.create_document(
        "FAC-2024-0001", "FACTURE", "1000", test_actor_id,
        issue_date=date(2024, 3, 1), center_id="C1",
    )


class TestDocumentsAndPayments:
    def test_payment_is_committed(self, api, invoice, test_actor_id):
        result = api.apply_payment(invoice.id, "250", "especes", test_actor_id)

        assert result.payment.method == "CASH"
        assert result.balance.outstanding_balance == Decimal("750")
        reread = api.get_document(invoice.id)
        assert reread.outstanding_balance == Decimal("750")
        assert reread.status == "PARTIALLY_PAID"
        assert api.get_status(invoice.id) == "PARTIALLY_PAID"

    def test_rejected_payment_leaves_nothing_behind(self, api, invoice, test_actor_id):
        with pytest.raises(OverpaymentRejectedError):
            api.apply_payment(invoice.id, "1000.01", "CASH", test_actor_id)
        assert api.list_payments(invoice.id) == []
        assert api.get_document(invoice.id).outstanding_balance == Decimal("1000")

    def test_edit_and_reverse(self, api, invoice, test_actor_id):
        first = api.apply_payment(invoice.id, "300", "CARD", test_actor_id)
        edited = api.edit_payment(first.payment.id, "200", test_actor_id)
        assert edited.balance.outstanding_balance == Decimal("800")

        balance = api.reverse_payment(edited.payment.id, test_actor_id)
        assert balance.outstanding_balance == Decimal("1000")
        assert balance.status == "VALIDATED"

    def test_recompute_balance(self, api, invoice, test_actor_id):
        api.apply_payment(invoice.id, "100", "CASH", test_actor_id)
        assert api.recompute_balance(invoice.id, test_actor_id).outstanding_balance == Decimal("900")

    def test_classify(self, api, invoice):
        assert api.classify(invoice.id) is Category.INVOICE
        assert api.classify_signals("BC-7", "FACTURE", None) is Category.ORDER
        assert api.classify_signals("X", None, "vente en instance") is Category.ORDER

    def test_unknown_document(self, api):
        with pytest.raises(DocumentNotFoundError):
            api.get_document(uuid4())


class TestAdministration:
    def test_cancel_blocks_payments_and_restore_reopens(self, api, invoice, test_actor_id):
        api.apply_payment(invoice.id, "100", "CASH", test_actor_id)
        api.cancel(invoice.id, test_actor_id, reason="duplicate entry")

        with pytest.raises(InvalidPaymentTargetError):
            api.apply_payment(invoice.id, "100", "CASH", test_actor_id)

        restored = api.restore(invoice.id, test_actor_id)
        assert restored.status == "PARTIALLY_PAID"
        actions = [r.action for r in api.document_history(invoice.id)]
        assert actions == [AuditAction.CANCELLED, AuditAction.RESTORED]

    def test_reclassify_and_revert(self, api, test_actor_id):
        order = api.create_document("BC-12", "BON_COMMANDE", "300", test_actor_id, center_id="C1")

        with pytest.raises(ReclassificationRejectedError):
            api.reclassify(order.id, Category.INVOICE, test_actor_id)

        change = api.reclassify(order.id, Category.INVOICE, test_actor_id, new_number="FAC-2024-0012")
        assert api.classify(order.id) is Category.INVOICE

        api.revert_reclassification(change.record.id, test_actor_id)
        assert api.classify(order.id) is Category.ORDER
        assert api.get_document(order.id).number == "BC-12"

    def test_promote_by_numbering(self, api, test_actor_id):
        order = api.create_document("77/2024", "BON_COMMANDE", "90", test_actor_id, center_id="C1")
        preview = api.promote_by_numbering_convention(test_actor_id, "C1")
        assert [c.id for c in preview.candidates] == [order.id]
        assert api.classify(order.id) is Category.ORDER

        api.promote_by_numbering_convention(test_actor_id, "C1", dry_run=False)
        assert api.classify(order.id) is Category.INVOICE


class TestStockAndReports:
    def test_cost_flows_into_the_summary(self, session_factory, deterministic_clock, test_actor_id):
        api = SalesLedgerApi(session_factory, clock=deterministic_clock, expenses=FixedExpenseProvider("50"))
        doc = api.create_document(
            "FAC-2024-0002", "FACTURE", "400", test_actor_id,
            issue_date=date(2024, 3, 3), center_id="C1",
        )
        lens = api.create_product("VER-01", "Verre progressif", test_actor_id, center_id="C1")
        api.record_stock_in(lens.id, 4, "30", test_actor_id)
        api.record_stock_in(lens.id, 4, "50", test_actor_id)
        out = api.record_stock_out(lens.id, 2, test_actor_id, document_id=doc.id)

        assert out.unit_cost == Decimal("40")
        assert api.get_product_cost(lens.id).average_cost == Decimal("40")

        summary = api.get_summary(MARCH, "C1")
        assert summary.revenue == Decimal("400.00")
        assert summary.cogs == Decimal("80.00")
        assert summary.net_profit == Decimal("270.00")

    def test_audit_with_raw_reference(self, api, invoice, test_actor_id):
        api.apply_payment(invoice.id, "100", "CASH", test_actor_id)
        api.apply_payment(invoice.id, "100", "CASH", test_actor_id)

        report = api.run_audit(
            MARCH, "C1",
            reference={"label": "legacy", "revenue": "1000", "categories": {"invoice": {"count": 1}}},
        )
        assert report.status is CheckStatus.WARNING
        assert report.reference_revenue == Decimal("1000.00")
        assert len(report.duplicate_groups) == 1
        assert api.get_duplicate_payments(MARCH, "C1")[0].size == 2

    def test_dashboards(self, api, invoice, test_actor_id):
        api.apply_payment(invoice.id, "600", "CARD", test_actor_id)

        assert [b.period for b in api.revenue_evolution(None, "monthly", "C1")] == ["2024-03"]
        assert api.profit_evolution(None, "C1")[0].net_profit == Decimal("1000.00")
        assert [m.method for m in api.payment_method_breakdown(MARCH, "C1")] == ["CARD"]
        assert api.receivables_position("C1").stored == Decimal("400.00")


class TestUnitOfWork:
    def test_operation_is_bound_to_log_lines(self, api, invoice, test_actor_id, captured_logs):
        api.apply_payment(invoice.id, "10", "CASH", test_actor_id)
        applied = [r for r in captured_logs() if r["message"] == "payment_applied"]
        assert applied[0]["operation"] == "apply_payment"
        assert applied[0]["actor_id"] == str(test_actor_id)

    def test_conflict_is_retried(self, api, captured_logs):
        calls = []

        def work(session):
            calls.append(1)
            if len(calls) == 1:
                raise ConcurrentModificationError("Document", "x")
            return "done"

        assert api._run("probe", work) == "done"
        assert len(calls) == 2
        assert any(r["message"] == "concurrency_retry" for r in captured_logs())

    def test_retries_are_bounded(self, api, captured_logs):
        calls = []

        def work(session):
            calls.append(1)
            raise StaleDataError("version mismatch")

        with pytest.raises(ConcurrentModificationError):
            api._run("probe", work)
        assert len(calls) == api.max_retries + 1
        assert any(r["message"] == "concurrency_retries_exhausted" for r in captured_logs())

    def test_unrelated_database_errors_are_not_retried(self, api):
        calls = []

        def work(session):
            calls.append(1)
            raise OperationalError("SELECT 1", {}, Exception("no such table: documents"))

        with pytest.raises(OperationalError):
            api._run("probe", work)
        assert len(calls) == 1
