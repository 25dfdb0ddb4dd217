"""
Reporting and audit result types.

Pure frozen dataclasses and enums shared by the aggregation, duplicate
detection and audit engines.  Services populate the inputs (records from
``sales_kernel.domain.records``); engines return these.

Monetary fields on result types are quantized to cents at construction
time by the engine that builds them.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

from sales_kernel.domain.classification import Category
from sales_kernel.domain.values import ZERO
from sales_kernel.domain.window import DateWindow


# =============================================================================
# Enums
# =============================================================================


class CheckSeverity(str, Enum):
    """Severity level of an audit finding."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class CheckStatus(str, Enum):
    """Overall status of an audit run."""

    PASSED = "passed"
    FAILED = "failed"       # At least one ERROR finding
    WARNING = "warning"     # Warnings only, no errors


class DuplicateGranularity(str, Enum):
    """Resolution at which payment dates are compared."""

    MINUTE = "minute"
    HOUR = "hour"
    DAY = "day"


class EvolutionGranularity(str, Enum):
    DAILY = "daily"
    MONTHLY = "monthly"
    YEARLY = "yearly"


# =============================================================================
# Aggregation results
# =============================================================================


@dataclass(frozen=True)
class CategoryBreakdown:
    """
    Non-terminal documents of one category inside the window.

    ``total_amount`` is the sum of document totals (absolute values for
    credit notes); ``revenue_contribution`` is what the category adds to
    revenue (active invoices positive, credit notes negative, zero for
    orders and quotes).
    """

    category: Category
    document_count: int
    total_amount: Decimal
    revenue_contribution: Decimal
    cogs: Decimal


@dataclass(frozen=True)
class SalesWithoutInvoice:
    """Orders counted as sales although never formally invoiced."""

    document_count: int
    total_amount: Decimal
    paid_amount: Decimal
    cogs: Decimal


@dataclass(frozen=True)
class SalesSummary:
    """
    Revenue, COGS and profit for a window.

    Contract:
        ``gross_margin == revenue - cogs`` and
        ``net_profit == gross_margin - expenses``.
        ``sales_without_invoice`` is only present when it was asked for and
        is never part of ``revenue``.
    """

    window: DateWindow
    center_id: str | None
    revenue: Decimal
    cogs: Decimal
    gross_margin: Decimal
    expenses: Decimal
    net_profit: Decimal
    breakdown_by_category: tuple[CategoryBreakdown, ...]
    sales_without_invoice: SalesWithoutInvoice | None = None
    undated_document_ids: tuple[UUID, ...] = ()
    excluded_terminal_count: int = 0

    def category(self, category: Category) -> CategoryBreakdown:
        for row in self.breakdown_by_category:
            if row.category is category:
                return row
        return CategoryBreakdown(category, 0, ZERO, ZERO, ZERO)

    def figures(self) -> tuple[Decimal, ...]:
        """The headline numbers, for equality checks between windows."""
        return (self.revenue, self.cogs, self.gross_margin, self.expenses, self.net_profit)

    def to_dict(self) -> dict[str, Any]:
        return as_plain(self)


@dataclass(frozen=True)
class DuplicatePaymentGroup:
    """
    Payments on one document sharing amount, method and truncated date.

    Advisory only: same-day same-amount payments can be legitimate.
    """

    document_id: UUID
    amount: Decimal
    method: str
    period: str
    payment_ids: tuple[UUID, ...]

    @property
    def size(self) -> int:
        return len(self.payment_ids)

    @property
    def surplus_amount(self) -> Decimal:
        """Amount recorded beyond the first payment of the group."""
        return self.amount * (self.size - 1)


@dataclass(frozen=True)
class RevenueBucket:
    period: str
    revenue: Decimal
    invoice_count: int


@dataclass(frozen=True)
class ProfitBucket:
    period: str
    revenue: Decimal
    cogs: Decimal
    expenses: Decimal
    net_profit: Decimal


@dataclass(frozen=True)
class MethodTotal:
    method: str
    payment_count: int
    amount: Decimal


@dataclass(frozen=True)
class ReceivablesPosition:
    """
    Outstanding balance three ways, over non-cancelled documents.

    stored:         sum of stored outstanding balances.
    computed_net:   sum of (total - paid), overpayments offsetting debts.
    computed_gross: sum of max(0, total - paid), debts only.
    """

    document_count: int
    stored: Decimal
    computed_net: Decimal
    computed_gross: Decimal

    @property
    def unaccounted_credit(self) -> Decimal:
        return self.computed_gross - self.computed_net

    @property
    def stale_difference(self) -> Decimal:
        return self.stored - self.computed_gross


# =============================================================================
# Audit inputs and results
# =============================================================================


@dataclass(frozen=True)
class CategoryTotal:
    """Count and amount for one category; either may be unknown."""

    count: int | None = None
    amount: Decimal | None = None


@dataclass(frozen=True)
class ReferenceTotals:
    """Externally supplied figures (e.g. from the legacy system)."""

    revenue: Decimal | None = None
    categories: Mapping[Category, CategoryTotal] = field(default_factory=dict)
    label: str = "reference"


@dataclass(frozen=True)
class ReconciliationFinding:
    """
    One issue found by the audit.

    ``code`` is machine-readable (e.g. OVERPAID, OUT_OF_WINDOW).
    """

    code: str
    severity: CheckSeverity
    message: str
    document_id: UUID | None = None
    details: Mapping[str, Any] | None = None


@dataclass(frozen=True)
class CategoryDelta:
    """Primary vs independent vs reference figures for one category."""

    category: Category
    primary_count: int
    primary_amount: Decimal
    independent_count: int
    independent_amount: Decimal
    reference_count: int | None = None
    reference_amount: Decimal | None = None

    @property
    def count_delta(self) -> int:
        return self.independent_count - self.primary_count

    @property
    def amount_delta(self) -> Decimal:
        return self.independent_amount - self.primary_amount

    @property
    def reference_count_delta(self) -> int | None:
        if self.reference_count is None:
            return None
        return self.primary_count - self.reference_count

    @property
    def reference_amount_delta(self) -> Decimal | None:
        if self.reference_amount is None:
            return None
        return self.primary_amount - self.reference_amount


@dataclass(frozen=True)
class OutOfWindowDocument:
    """A document that matches classification but not the date window."""

    document_id: UUID
    number: str | None
    category: Category
    issue_date: date | None
    total_amount: Decimal
    reason: str  # "undated", "before_window", "after_window"


@dataclass(frozen=True)
class TallyRow:
    declared_type: str | None
    status: str | None
    category: Category
    document_count: int
    total_amount: Decimal


@dataclass(frozen=True)
class AuditReport:
    """
    Complete result of an audit run.

    ``status`` is derived from the highest-severity finding.
    """

    window: DateWindow
    center_id: str | None
    generated_at: datetime
    status: CheckStatus
    summary: SalesSummary
    independent_revenue: Decimal
    reference_revenue: Decimal | None
    category_deltas: tuple[CategoryDelta, ...]
    duplicate_groups: tuple[DuplicatePaymentGroup, ...]
    out_of_window: tuple[OutOfWindowDocument, ...]
    findings: tuple[ReconciliationFinding, ...]
    tally: tuple[TallyRow, ...] = ()
    receivables: ReceivablesPosition | None = None

    @property
    def is_clean(self) -> bool:
        return len(self.findings) == 0

    @property
    def error_count(self) -> int:
        return sum(1 for f in self.findings if f.severity == CheckSeverity.ERROR)

    @property
    def warning_count(self) -> int:
        return sum(1 for f in self.findings if f.severity == CheckSeverity.WARNING)

    def findings_with_code(self, code: str) -> tuple[ReconciliationFinding, ...]:
        return tuple(f for f in self.findings if f.code == code)

    def to_dict(self) -> dict[str, Any]:
        return as_plain(self)


def status_from_findings(findings: tuple[ReconciliationFinding, ...]) -> CheckStatus:
    if any(f.severity == CheckSeverity.ERROR for f in findings):
        return CheckStatus.FAILED
    if any(f.severity == CheckSeverity.WARNING for f in findings):
        return CheckStatus.WARNING
    return CheckStatus.PASSED


def as_plain(value: Any) -> Any:
    """JSON-ready copy: Decimals, UUIDs and dates become strings."""
    if isinstance(value, DateWindow):
        return value.describe()
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {f.name: as_plain(getattr(value, f.name)) for f in dataclasses.fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (Decimal, UUID)):
        return str(value)
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, Mapping):
        return {str(as_plain(k)): as_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [as_plain(v) for v in value]
    return value
