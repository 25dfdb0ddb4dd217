"""
Excel export of an audit report (openpyxl).

One workbook, five sheets: Summary, Category deltas, Duplicate payments,
Out-of-window documents, Balance anomalies.  Amounts are written as
numbers; identifiers and timestamps as text (Excel has no timezone-aware
datetimes).
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

from openpyxl import Workbook
from openpyxl.styles import Font

from sales_engines.types import AuditReport
from sales_kernel.logging_config import get_logger

logger = get_logger("services.exporters.excel")

BALANCE_ANOMALY_CODES = ("OVERPAID", "BALANCE_DRIFT")

_HEADER_FONT = Font(bold=True)


def _append_header(sheet: Any, headers: list[str]) -> None:
    sheet.append(headers)
    for cell in sheet[1]:
        cell.font = _HEADER_FONT
    sheet.freeze_panes = "A2"


def _text(value: Any) -> str | None:
    return None if value is None else str(value)


def _write_summary(sheet: Any, report: AuditReport) -> None:
    summary = report.summary
    window = report.window.describe()
    rows: list[tuple[str, Any]] = [
        ("Generated at", report.generated_at.isoformat()),
        ("Window start", window["start"] or "(unbounded)"),
        ("Window end", window["end"] or "(unbounded)"),
        ("Center", report.center_id or "(all)"),
        ("Status", report.status.value),
        ("Errors", report.error_count),
        ("Warnings", report.warning_count),
        ("Revenue", summary.revenue),
        ("Independent revenue", report.independent_revenue),
        ("Reference revenue", report.reference_revenue),
        ("COGS", summary.cogs),
        ("Gross margin", summary.gross_margin),
        ("Expenses", summary.expenses),
        ("Net profit", summary.net_profit),
        ("Undated documents", len(summary.undated_document_ids)),
    ]
    if report.receivables is not None:
        rows.extend([
            ("Receivables (stored)", report.receivables.stored),
            ("Receivables (computed net)", report.receivables.computed_net),
            ("Receivables (computed gross)", report.receivables.computed_gross),
        ])
    _append_header(sheet, ["Figure", "Value"])
    for row in rows:
        sheet.append(list(row))
    sheet.column_dimensions["A"].width = 30
    sheet.column_dimensions["B"].width = 28


def _write_category_deltas(sheet: Any, report: AuditReport) -> None:
    _append_header(sheet, [
        "Category", "Count", "Amount", "Independent count", "Independent amount",
        "Reference count", "Reference amount", "Reference count delta",
        "Reference amount delta",
    ])
    for delta in report.category_deltas:
        sheet.append([
            delta.category.value,
            delta.primary_count,
            delta.primary_amount,
            delta.independent_count,
            delta.independent_amount,
            delta.reference_count,
            delta.reference_amount,
            delta.reference_count_delta,
            delta.reference_amount_delta,
        ])


def _write_duplicates(sheet: Any, report: AuditReport) -> None:
    _append_header(sheet, [
        "Document", "Period", "Method", "Amount", "Payments", "Surplus", "Payment ids",
    ])
    for group in report.duplicate_groups:
        sheet.append([
            str(group.document_id),
            group.period,
            group.method,
            group.amount,
            group.size,
            group.surplus_amount,
            ", ".join(str(p) for p in group.payment_ids),
        ])


def _write_out_of_window(sheet: Any, report: AuditReport) -> None:
    _append_header(sheet, ["Document", "Number", "Category", "Issue date", "Total", "Reason"])
    for doc in report.out_of_window:
        sheet.append([
            str(doc.document_id),
            doc.number,
            doc.category.value,
            doc.issue_date,
            doc.total_amount,
            doc.reason,
        ])


def _write_balance_anomalies(sheet: Any, report: AuditReport) -> None:
    _append_header(sheet, ["Code", "Severity", "Document", "Message", "Details"])
    for finding in report.findings:
        if finding.code not in BALANCE_ANOMALY_CODES:
            continue
        details = finding.details or {}
        sheet.append([
            finding.code,
            finding.severity.value,
            _text(finding.document_id),
            finding.message,
            "; ".join(f"{k}={v}" for k, v in details.items()),
        ])


def export_audit_report(report: AuditReport, path: Path | str) -> Path:
    """
    Write ``report`` to an .xlsx workbook at ``path`` and return the path.

    Raises:
        OSError: the file cannot be written.
    """
    target = Path(path)
    workbook = Workbook()
    summary_sheet = workbook.active
    summary_sheet.title = "Summary"
    _write_summary(summary_sheet, report)
    _write_category_deltas(workbook.create_sheet("Category deltas"), report)
    _write_duplicates(workbook.create_sheet("Duplicate payments"), report)
    _write_out_of_window(workbook.create_sheet("Out-of-window documents"), report)
    _write_balance_anomalies(workbook.create_sheet("Balance anomalies"), report)

    target.parent.mkdir(parents=True, exist_ok=True)
    workbook.save(target)
    logger.info(
        "audit_report_exported",
        extra={
            "path": str(target),
            "status": report.status.value,
            "duplicate_group_count": len(report.duplicate_groups),
            "out_of_window_count": len(report.out_of_window),
        },
    )
    return target
