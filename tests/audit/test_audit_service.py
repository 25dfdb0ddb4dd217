"""Tests for AuditService and the Excel export of its report."""

from datetime import date
from decimal import Decimal

import pytest
from openpyxl import load_workbook
from sqlalchemy import update

from sales_engines.types import CheckStatus, ReferenceTotals
from sales_kernel.domain.window import DateWindow
from sales_kernel.models.document import Document
from sales_services import AuditService
from sales_services.exporters import export_audit_report

MARCH = DateWindow(date(2024, 3, 1), date(2024, 4, 1))


@pytest.fixture
def auditor(session, deterministic_clock):
    return AuditService(session, clock=deterministic_clock)


class TestRunAudit:
    def test_paths_agree_on_a_healthy_ledger(self, march_ledger, auditor):
        report = auditor.run_audit(MARCH, "C1")

        assert report.summary.revenue == Decimal("1300.00")
        assert report.independent_revenue == Decimal("1300.00")
        assert report.findings_with_code("CATEGORY_TOTAL_MISMATCH") == ()
        assert report.findings_with_code("COGS_MISMATCH") == ()
        assert report.error_count == 0

    def test_paths_agree_on_returned_goods(
        self, make_document, make_product, stock, test_actor_id, auditor
    ):
        invoice = make_document(number="FAC-2024-0100", total="500")
        frame = make_product(code="MONT-02")
        stock.record_stock_in(frame.id, 10, "10", test_actor_id)
        stock.record_stock_out(frame.id, 2, test_actor_id, document_id=invoice.id)
        stock.record_return(frame.id, 1, test_actor_id, document_id=invoice.id)

        report = auditor.run_audit(MARCH, "C1")

        assert report.summary.cogs == Decimal("10.00")
        assert report.findings_with_code("COGS_MISMATCH") == ()

    def test_out_of_window_documents_are_listed(self, march_ledger, auditor):
        report = auditor.run_audit(MARCH, "C1")

        reasons = {d.document_id: d.reason for d in report.out_of_window}
        assert reasons == {
            march_ledger["april"].id: "after_window",
            march_ledger["undated"].id: "undated",
        }
        assert report.status is CheckStatus.WARNING

    def test_reference_gap_is_reported(self, march_ledger, auditor):
        report = auditor.run_audit(
            MARCH, "C1", reference=ReferenceTotals(revenue=Decimal("1350"), label="legacy export")
        )
        (finding,) = report.findings_with_code("REFERENCE_REVENUE_DELTA")
        assert finding.details["delta"] == "-50.00"

    def test_drifted_balance_is_reported(self, session, march_ledger, auditor):
        invoice_id = march_ledger["invoice"].id
        session.execute(
            update(Document)
            .where(Document.id == invoice_id)
            .values(outstanding_balance=Decimal("650"), version=Document.version + 1)
        )
        session.expire_all()

        report = auditor.run_audit(MARCH, "C1")
        (drift,) = report.findings_with_code("BALANCE_DRIFT")
        assert drift.document_id == invoice_id
        assert drift.details["drift"] == "50.00"

    def test_completion_is_logged(self, march_ledger, auditor, captured_logs):
        auditor.run_audit(MARCH, "C1")
        completed = [r for r in captured_logs() if r["message"] == "audit_completed"]
        assert completed[0]["status"] == "warning"
        assert completed[0]["center"] == "C1"


class TestExcelExport:
    def test_workbook_layout(self, march_ledger, pay, auditor, tmp_path):
        pay(march_ledger["invoice"].id, "25")
        pay(march_ledger["invoice"].id, "25")
        report = auditor.run_audit(MARCH, "C1")

        path = export_audit_report(report, tmp_path / "out" / "audit.xlsx")

        workbook = load_workbook(path)
        assert workbook.sheetnames == [
            "Summary",
            "Category deltas",
            "Duplicate payments",
            "Out-of-window documents",
            "Balance anomalies",
        ]
        figures = {row[0]: row[1] for row in workbook["Summary"].iter_rows(min_row=2, values_only=True)}
        assert figures["Status"] == "warning"
        assert figures["Center"] == "C1"
        assert figures["Revenue"] == pytest.approx(1300)
        assert figures["Window end"] == "2024-04-01"

        duplicates = list(workbook["Duplicate payments"].iter_rows(min_row=2, values_only=True))
        assert len(duplicates) == 1
        assert duplicates[0][0] == str(march_ledger["invoice"].id)

        out_of_window = list(workbook["Out-of-window documents"].iter_rows(min_row=2, values_only=True))
        assert {row[5] for row in out_of_window} == {"after_window", "undated"}
        assert workbook["Category deltas"].max_row == 5
