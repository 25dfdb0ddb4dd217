"""
SalesAuditChecker -- pure engine behind the Audit Reporter.

Recomputes the summary figures along a second path and diffs them against
the primary aggregation and against reference totals, then looks for the
data problems that make totals "disappear": documents dated outside the
window, undated documents, overpaid documents, drifted balances and
duplicate payments.

Architecture: sales_engines -- pure calculation, zero I/O, zero DB access.
All inputs are frozen records populated by the service layer.

The independent path differs from ``aggregation.summarize`` on purpose:
    - it starts from every document of the center and applies the window
      in Python instead of trusting the SQL date filter;
    - it takes COGS from the SQL ``GROUP BY`` aggregate instead of summing
      movement rows;
    - it accumulates per category first and derives revenue from the
      category totals.
It still classifies through ``classify``; there is one classifier.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sales_kernel.domain.classification import Category
from sales_kernel.domain.records import DocumentRecord, PaymentRecord
from sales_kernel.domain.values import MONEY_TOLERANCE, ZERO, quantize_money
from sales_kernel.domain.window import DateWindow
from sales_kernel.logging_config import get_logger
from sales_engines.aggregation import (
    DEFAULT_REVENUE_POLICY,
    RevenuePolicy,
    receivables_position,
    signed_cogs,
)
from sales_engines.duplicates import find_duplicate_payments
from sales_engines.tracer import traced_engine
from sales_engines.types import (
    AuditReport,
    CategoryDelta,
    CategoryTotal,
    CheckSeverity,
    DuplicateGranularity,
    OutOfWindowDocument,
    ReconciliationFinding,
    ReferenceTotals,
    SalesSummary,
    TallyRow,
    status_from_findings,
)

logger = get_logger("engines.audit")


@dataclass(frozen=True)
class AuditContext:
    """
    Everything the checker looks at.

    ``documents`` is every document of the center regardless of date;
    ``primary`` is the summary the Aggregator produced for ``window``.
    """

    window: DateWindow
    center_id: str | None
    generated_at: datetime
    documents: Sequence[DocumentRecord]
    payments: Sequence[PaymentRecord]
    cogs_by_document: Mapping[UUID, Decimal]
    primary: SalesSummary
    reference: ReferenceTotals | None = None
    policy: RevenuePolicy = DEFAULT_REVENUE_POLICY
    granularity: DuplicateGranularity = DuplicateGranularity.DAY
    tolerance: Decimal = MONEY_TOLERANCE
    listing_limit: int = 500


@dataclass(frozen=True)
class IndependentTotals:
    categories: Mapping[Category, CategoryTotal] = field(default_factory=dict)
    revenue: Decimal = ZERO
    cogs: Decimal = ZERO


def _money(value: Decimal) -> str:
    return str(quantize_money(value))


class SalesAuditChecker:
    """
    Pure engine for the sales audit.

    Usage:
        checker = SalesAuditChecker()
        report = checker.run_all_checks(context)
    """

    # -----------------------------------------------------------------
    # Independent recomputation
    # -----------------------------------------------------------------

    @traced_engine("sales_audit.independent", "1.0", fingerprint_fields=("window",))
    def independent_totals(
        self,
        *,
        documents: Sequence[DocumentRecord],
        cogs_by_document: Mapping[UUID, Decimal],
        window: DateWindow,
        policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
    ) -> IndependentTotals:
        counts: dict[Category, int] = defaultdict(int)
        amounts: dict[Category, Decimal] = defaultdict(lambda: ZERO)
        revenue_by_category: dict[Category, Decimal] = defaultdict(lambda: ZERO)
        cogs = ZERO

        for record in (d for d in documents if window.contains(d.issue_date)):
            if policy.is_terminal(record):
                continue
            category = policy.category(record)
            counts[category] += 1
            amounts[category] += abs(record.total_amount) if category is Category.CREDIT_NOTE else record.total_amount
            if policy.counts_as_revenue(record, category):
                revenue_by_category[category] += policy.revenue_amount(record, category)
                cogs += signed_cogs(category, cogs_by_document.get(record.id, ZERO))

        categories = {
            category: CategoryTotal(count=counts[category], amount=quantize_money(amounts[category]))
            for category in Category
        }
        return IndependentTotals(
            categories=categories,
            revenue=quantize_money(sum(revenue_by_category.values(), ZERO)),
            cogs=quantize_money(cogs),
        )

    # -----------------------------------------------------------------
    # Category and revenue deltas
    # -----------------------------------------------------------------

    def compare_totals(
        self,
        primary: SalesSummary,
        independent: IndependentTotals,
        reference: ReferenceTotals | None,
        tolerance: Decimal,
    ) -> tuple[tuple[CategoryDelta, ...], tuple[ReconciliationFinding, ...]]:
        deltas: list[CategoryDelta] = []
        findings: list[ReconciliationFinding] = []
        reference_categories = reference.categories if reference is not None else {}

        for category in Category:
            row = primary.category(category)
            other = independent.categories.get(category, CategoryTotal(0, ZERO))
            ref = reference_categories.get(category)
            delta = CategoryDelta(
                category=category,
                primary_count=row.document_count,
                primary_amount=row.total_amount,
                independent_count=other.count or 0,
                independent_amount=other.amount if other.amount is not None else ZERO,
                reference_count=ref.count if ref is not None else None,
                reference_amount=quantize_money(ref.amount) if ref is not None and ref.amount is not None else None,
            )
            deltas.append(delta)

            if delta.count_delta != 0 or abs(delta.amount_delta) > tolerance:
                findings.append(ReconciliationFinding(
                    code="CATEGORY_TOTAL_MISMATCH",
                    severity=CheckSeverity.ERROR,
                    message=(
                        f"{category.value}: aggregator has {delta.primary_count} documents "
                        f"for {delta.primary_amount}, independent path has "
                        f"{delta.independent_count} for {delta.independent_amount}"
                    ),
                    details={
                        "category": category.value,
                        "count_delta": delta.count_delta,
                        "amount_delta": str(delta.amount_delta),
                    },
                ))

            count_gap = delta.reference_count_delta
            amount_gap = delta.reference_amount_delta
            if (count_gap is not None and count_gap != 0) or (
                amount_gap is not None and abs(amount_gap) > tolerance
            ):
                findings.append(ReconciliationFinding(
                    code="REFERENCE_CATEGORY_DELTA",
                    severity=CheckSeverity.WARNING,
                    message=(
                        f"{category.value}: differs from {reference.label} "
                        f"(count delta {count_gap}, amount delta {amount_gap})"
                    ),
                    details={
                        "category": category.value,
                        "count_delta": count_gap,
                        "amount_delta": str(amount_gap) if amount_gap is not None else None,
                    },
                ))

        if abs(primary.revenue - independent.revenue) > tolerance:
            findings.append(ReconciliationFinding(
                code="REVENUE_MISMATCH",
                severity=CheckSeverity.ERROR,
                message=f"Revenue {primary.revenue} vs independent {independent.revenue}",
                details={"primary": str(primary.revenue), "independent": str(independent.revenue)},
            ))
        if abs(primary.cogs - independent.cogs) > tolerance:
            findings.append(ReconciliationFinding(
                code="COGS_MISMATCH",
                severity=CheckSeverity.ERROR,
                message=f"COGS {primary.cogs} vs independent {independent.cogs}",
                details={"primary": str(primary.cogs), "independent": str(independent.cogs)},
            ))
        if reference is not None and reference.revenue is not None:
            gap = primary.revenue - quantize_money(reference.revenue)
            if abs(gap) > tolerance:
                findings.append(ReconciliationFinding(
                    code="REFERENCE_REVENUE_DELTA",
                    severity=CheckSeverity.WARNING,
                    message=f"Revenue {primary.revenue} differs from {reference.label} by {gap}",
                    details={"reference": str(reference.revenue), "delta": str(gap)},
                ))

        return tuple(deltas), tuple(findings)

    # -----------------------------------------------------------------
    # Documents outside the window
    # -----------------------------------------------------------------

    @traced_engine("sales_audit.out_of_window", "1.0", fingerprint_fields=("window",))
    def find_out_of_window(
        self,
        *,
        documents: Sequence[DocumentRecord],
        window: DateWindow,
        policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
    ) -> tuple[OutOfWindowDocument, ...]:
        """
        Revenue-eligible documents the window leaves out.

        Undated ones are listed for every bounded window; dated ones
        only when they fall before or after it.
        """
        if window.is_unbounded:
            return ()
        result: list[OutOfWindowDocument] = []
        for record in documents:
            if window.contains(record.issue_date):
                continue
            category = policy.category(record)
            if not policy.counts_as_revenue(record, category):
                continue
            if record.issue_date is None:
                reason = "undated"
            elif window.start is not None and record.issue_date < window.start:
                reason = "before_window"
            else:
                reason = "after_window"
            result.append(OutOfWindowDocument(
                document_id=record.id,
                number=record.number,
                category=category,
                issue_date=record.issue_date,
                total_amount=quantize_money(record.total_amount),
                reason=reason,
            ))
        return tuple(result)

    def out_of_window_findings(
        self,
        documents: tuple[OutOfWindowDocument, ...],
    ) -> tuple[ReconciliationFinding, ...]:
        # Only undated documents are anomalies; the rest is context
        return tuple(
            ReconciliationFinding(
                code="UNDATED_DOCUMENT",
                severity=CheckSeverity.WARNING,
                message=f"Document {doc.number or doc.document_id} has no issue date",
                document_id=doc.document_id,
                details={"category": doc.category.value, "total_amount": str(doc.total_amount)},
            )
            for doc in documents
            if doc.reason == "undated"
        )

    # -----------------------------------------------------------------
    # Balance anomalies
    # -----------------------------------------------------------------

    @traced_engine("sales_audit.balances", "1.0", fingerprint_fields=("tolerance",))
    def check_balances(
        self,
        *,
        documents: Sequence[DocumentRecord],
        tolerance: Decimal = MONEY_TOLERANCE,
        policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
    ) -> tuple[ReconciliationFinding, ...]:
        """Overpaid documents and stored balances that drifted."""
        findings: list[ReconciliationFinding] = []
        for record in documents:
            if record.paid_total > record.total_amount + tolerance:
                findings.append(ReconciliationFinding(
                    code="OVERPAID",
                    severity=CheckSeverity.ERROR,
                    message=(
                        f"Document {record.number or record.id} received "
                        f"{_money(record.paid_total)} against a total of {_money(record.total_amount)}"
                    ),
                    document_id=record.id,
                    details={
                        "total_amount": _money(record.total_amount),
                        "paid_total": _money(record.paid_total),
                        "excess": _money(record.paid_total - record.total_amount),
                    },
                ))
            drift = record.outstanding_balance - record.computed_outstanding
            if abs(drift) > tolerance:
                findings.append(ReconciliationFinding(
                    code="BALANCE_DRIFT",
                    severity=CheckSeverity.WARNING,
                    message=(
                        f"Document {record.number or record.id} stores outstanding "
                        f"{_money(record.outstanding_balance)}, payments say "
                        f"{_money(record.computed_outstanding)}"
                    ),
                    document_id=record.id,
                    details={
                        "stored_outstanding": _money(record.outstanding_balance),
                        "computed_outstanding": _money(record.computed_outstanding),
                        "drift": _money(drift),
                        "status": record.status,
                    },
                ))
        return tuple(findings)

    # -----------------------------------------------------------------
    # Operator tally
    # -----------------------------------------------------------------

    def category_status_tally(
        self,
        documents: Sequence[DocumentRecord],
        window: DateWindow,
        policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
    ) -> tuple[TallyRow, ...]:
        counts: dict[tuple[str | None, str | None, Category], int] = defaultdict(int)
        amounts: dict[tuple[str | None, str | None, Category], Decimal] = defaultdict(lambda: ZERO)
        for record in documents:
            if not window.contains(record.issue_date):
                continue
            key = (record.declared_type, record.status, policy.category(record))
            counts[key] += 1
            amounts[key] += record.total_amount
        rows = [
            TallyRow(
                declared_type=declared_type,
                status=status,
                category=category,
                document_count=counts[(declared_type, status, category)],
                total_amount=quantize_money(amounts[(declared_type, status, category)]),
            )
            for declared_type, status, category in counts
        ]
        rows.sort(key=lambda r: (r.category.value, r.declared_type or "", r.status or ""))
        return tuple(rows)

    # -----------------------------------------------------------------
    # Full run
    # -----------------------------------------------------------------

    @traced_engine("sales_audit", "1.0")
    def run_all_checks(self, *, context: AuditContext) -> AuditReport:
        window = context.window
        policy = context.policy

        independent = self.independent_totals(
            documents=context.documents,
            cogs_by_document=context.cogs_by_document,
            window=window,
            policy=policy,
        )
        deltas, findings = self.compare_totals(
            context.primary, independent, context.reference, context.tolerance
        )

        out_of_window = self.find_out_of_window(
            documents=context.documents, window=window, policy=policy
        )
        duplicate_groups = find_duplicate_payments(
            payments=context.payments, granularity=context.granularity
        )
        duplicate_findings = tuple(
            ReconciliationFinding(
                code="DUPLICATE_PAYMENTS",
                severity=CheckSeverity.WARNING,
                message=(
                    f"{group.size} payments of {group.amount} by {group.method} "
                    f"on {group.period}"
                ),
                document_id=group.document_id,
                details={"payment_ids": [str(p) for p in group.payment_ids]},
            )
            for group in duplicate_groups
        )

        all_findings = (
            findings
            + self.out_of_window_findings(out_of_window)
            + self.check_balances(
                documents=context.documents, tolerance=context.tolerance, policy=policy
            )
            + duplicate_findings
        )

        if len(out_of_window) > context.listing_limit:
            logger.warning(
                "audit_listing_truncated",
                extra={"listed": context.listing_limit, "total": len(out_of_window)},
            )

        return AuditReport(
            window=window,
            center_id=context.center_id,
            generated_at=context.generated_at,
            status=status_from_findings(all_findings),
            summary=context.primary,
            independent_revenue=independent.revenue,
            reference_revenue=(
                quantize_money(context.reference.revenue)
                if context.reference is not None and context.reference.revenue is not None
                else None
            ),
            category_deltas=deltas,
            duplicate_groups=duplicate_groups,
            out_of_window=out_of_window[: context.listing_limit],
            findings=all_findings,
            tally=self.category_status_tally(context.documents, window, policy),
            receivables=receivables_position(documents=context.documents, policy=policy),
        )
