"""Tests for ReportingService over a real database."""

from datetime import date, datetime, timezone
from decimal import Decimal

import pytest

from sales_engines.types import DuplicateGranularity, EvolutionGranularity
from sales_kernel.domain.classification import Category
from sales_kernel.domain.window import DateWindow
from sales_kernel.selectors.payment_selector import PaymentSelector
from sales_services import ReportingService
from sales_services.expenses import FixedExpenseProvider, MonthlyExpenseProvider

MARCH = DateWindow(date(2024, 3, 1), date(2024, 4, 1))


@pytest.fixture
def reporting(session):
    return ReportingService(session)


class TestSummary:
    def test_march_figures(self, march_ledger, reporting):
        summary = reporting.get_summary(MARCH, "C1")

        assert summary.revenue == Decimal("1300.00")
        assert summary.cogs == Decimal("20.00")
        assert summary.gross_margin == Decimal("1280.00")
        assert summary.net_profit == Decimal("1280.00")
        assert summary.excluded_terminal_count == 1
        assert summary.category(Category.INVOICE).document_count == 2
        assert summary.category(Category.CREDIT_NOTE).cogs == Decimal("-20.00")

    def test_return_on_an_invoice_reduces_its_cost(
        self, make_document, make_product, stock, test_actor_id, reporting
    ):
        invoice = make_document(number="FAC-2024-0100", total="500")
        frame = make_product(code="MONT-02")
        stock.record_stock_in(frame.id, 10, "10", test_actor_id)
        stock.record_stock_out(frame.id, 2, test_actor_id, document_id=invoice.id)
        stock.record_return(frame.id, 1, test_actor_id, document_id=invoice.id)

        summary = reporting.get_summary(MARCH, "C1")

        assert summary.cogs == Decimal("10.00")
        assert summary.category(Category.INVOICE).cogs == Decimal("10.00")

    def test_all_centers(self, march_ledger, reporting):
        assert reporting.get_summary(MARCH).revenue == Decimal("2200.00")

    def test_no_filter_and_full_range_agree(self, march_ledger, reporting):
        no_filter = reporting.get_summary(None, "C1")
        full_range = reporting.get_summary(DateWindow(date.min, date.max), "C1")

        assert no_filter.figures() == full_range.figures()
        assert no_filter.revenue == Decimal("1630.00")
        assert no_filter.undated_document_ids == ()

    def test_undated_documents_are_reported(self, march_ledger, reporting, captured_logs):
        summary = reporting.get_summary(MARCH, "C1")

        assert summary.undated_document_ids == (march_ledger["undated"].id,)
        warnings = [r for r in captured_logs() if r["message"] == "undated_documents_excluded"]
        assert warnings[0]["document_ids"] == [str(march_ledger["undated"].id)]

    def test_orders_are_not_revenue(self, march_ledger, reporting):
        summary = reporting.get_summary(MARCH, "C1", include_orders=True)

        block = summary.sales_without_invoice
        assert block.document_count == 1
        assert block.total_amount == Decimal("300.00")
        assert block.paid_amount == Decimal("100.00")
        assert summary.revenue == Decimal("1300.00")

    def test_fixed_expenses(self, march_ledger, session):
        summary = ReportingService(session, expenses=FixedExpenseProvider("100")).get_summary(MARCH, "C1")
        assert summary.expenses == Decimal("100.00")
        assert summary.net_profit == Decimal("1180.00")

    def test_monthly_expenses_per_center(self, march_ledger, session):
        provider = MonthlyExpenseProvider({
            None: {"2024-03": "60", "2024-04": "30"},
            "C1": {"2024-03": "10"},
            "C2": {"2024-03": "1000"},
        })
        summary = ReportingService(session, expenses=provider).get_summary(MARCH, "C1")
        assert summary.expenses == Decimal("70.00")


class TestEvolutionAndBreakdowns:
    def test_revenue_evolution(self, march_ledger, reporting):
        buckets = reporting.revenue_evolution(None, EvolutionGranularity.MONTHLY, "C1")
        assert [(b.period, b.revenue) for b in buckets] == [
            ("2024-03", Decimal("1300.00")),
            ("2024-04", Decimal("250.00")),
        ]

    def test_profit_evolution_with_monthly_expenses(self, march_ledger, session):
        provider = MonthlyExpenseProvider.for_all_centers({"2024-03": "100", "2024-05": "40"})
        buckets = ReportingService(session, expenses=provider).profit_evolution(None, "C1")
        assert [(b.period, b.net_profit) for b in buckets] == [
            ("2024-03", Decimal("1180.00")),
            ("2024-04", Decimal("250.00")),
            ("2024-05", Decimal("-40.00")),
        ]

    def test_payment_method_breakdown(self, march_ledger, reporting):
        rows = reporting.payment_method_breakdown(MARCH, "C1")
        assert [(r.method, r.payment_count, r.amount) for r in rows] == [
            ("CARD", 1, Decimal("500.00")),
            ("CASH", 2, Decimal("500.00")),
        ]

    def test_payments_outside_window_are_ignored(self, march_ledger, reporting):
        assert reporting.payment_method_breakdown(DateWindow(date(2024, 4, 1), None), "C1") == ()

    def test_duplicate_payments(self, march_ledger, pay, reporting):
        pay(march_ledger["invoice"].id, "50")
        pay(march_ledger["invoice"].id, "50")

        groups = reporting.get_duplicate_payments(MARCH, "C1", DuplicateGranularity.DAY)
        assert len(groups) == 1
        assert groups[0].document_id == march_ledger["invoice"].id
        assert groups[0].size == 2

    def test_receivables_position(self, march_ledger, reporting):
        position = reporting.receivables_position("C1")
        assert position.document_count == 6
        assert position.stored == Decimal("1330.00")
        assert position.computed_gross == position.stored
        assert position.unaccounted_credit == Decimal("0.00")


class TestPaymentWindow:
    def test_window_edges_follow_the_payment_date(self, make_document, pay, session):
        invoice = make_document(total="1000")
        before = pay(invoice.id, "10", paid_at=datetime(2024, 2, 29, 23, 59, tzinfo=timezone.utc))
        first = pay(invoice.id, "20", paid_at=datetime(2024, 3, 1, 0, 0, tzinfo=timezone.utc))
        last = pay(invoice.id, "30", paid_at=datetime(2024, 3, 31, 23, 30, tzinfo=timezone.utc))
        after = pay(invoice.id, "40", paid_at=datetime(2024, 4, 1, 0, 0, tzinfo=timezone.utc))

        selector = PaymentSelector(session)
        in_march = {p.id for p in selector.payments_in_window(MARCH, "C1")}
        everything = {p.id for p in selector.payments_in_window(None, "C1")}
        full_range = {p.id for p in selector.payments_in_window(DateWindow(date.min, date.max))}

        assert in_march == {first.payment.id, last.payment.id}
        assert everything == {before.payment.id, first.payment.id, last.payment.id, after.payment.id}
        assert full_range == everything
