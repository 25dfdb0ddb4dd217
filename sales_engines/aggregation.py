"""
Module: sales_engines.aggregation
Responsibility:
    Revenue / COGS / profit aggregation over document records, plus the
    period evolutions, payment-method totals and receivables position the
    dashboards show.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import sales_kernel.domain and sibling engine modules.

Invariants enforced:
    - Categories come from ``sales_kernel.domain.classification.classify``
      only; no prefix or type string is inspected here.
    - CANCELLED / ARCHIVED documents never contribute to revenue or COGS.
    - Revenue = active invoices - |credit notes|.  Orders and quotes never
      enter revenue; "sales without invoice" is a separate figure.
    - The unbounded window and ``[-inf, +inf)`` are the same value, so they
      give the same summary.
    - Ledger arithmetic is exact Decimal; results are quantized to cents
      (ROUND_HALF_UP) once, at the end.

Failure modes:
    - None for malformed rows: an undated document is excluded
      from a bounded window and reported in ``undated_document_ids``.

Usage:
    from sales_engines.aggregation import summarize, RevenuePolicy

    summary = summarize(
        documents=records,
        cogs_by_document=cogs_from_movements(movements),
        expenses=Decimal("1200"),
        window=DateWindow(date(2024, 1, 1), date(2024, 2, 1)),
    )
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sales_kernel.domain.classification import (
    DEFAULT_CLASSIFICATION_RULES,
    Category,
    ClassificationRules,
    classify,
)
from sales_kernel.domain.records import DocumentRecord, MovementRecord, PaymentRecord
from sales_kernel.domain.status import (
    DEFAULT_STATUS_VOCABULARY,
    TERMINAL_STATUSES,
    DocumentStatus,
    StatusVocabulary,
)
from sales_kernel.domain.values import ZERO, quantize_money
from sales_kernel.domain.window import DateWindow
from sales_engines.tracer import traced_engine
from sales_engines.types import (
    CategoryBreakdown,
    EvolutionGranularity,
    MethodTotal,
    ProfitBucket,
    ReceivablesPosition,
    RevenueBucket,
    SalesSummary,
    SalesWithoutInvoice,
)

ACTIVE_STATUSES: frozenset[DocumentStatus] = frozenset(
    {DocumentStatus.VALIDATED, DocumentStatus.PARTIALLY_PAID, DocumentStatus.PAID}
)
ORDER_SALE_STATUSES: frozenset[DocumentStatus] = ACTIVE_STATUSES | {DocumentStatus.ORDER_PENDING}


@dataclass(frozen=True)
class RevenuePolicy:
    """
    Which documents count, and how.

    Contract:
        Built once from configuration and passed to every aggregation so
        the primary and audit paths agree on what "active" means.
    """

    rules: ClassificationRules = DEFAULT_CLASSIFICATION_RULES
    vocabulary: StatusVocabulary = DEFAULT_STATUS_VOCABULARY
    active_statuses: frozenset[DocumentStatus] = ACTIVE_STATUSES
    order_sale_statuses: frozenset[DocumentStatus] = ORDER_SALE_STATUSES

    def category(self, record: DocumentRecord) -> Category:
        return classify(record.signals(), self.rules)

    def status(self, record: DocumentRecord) -> DocumentStatus | None:
        return self.vocabulary.normalize(record.status)

    def is_terminal(self, record: DocumentRecord) -> bool:
        return self.status(record) in TERMINAL_STATUSES

    def counts_as_revenue(self, record: DocumentRecord, category: Category) -> bool:
        if self.is_terminal(record):
            return False
        if category is Category.INVOICE:
            return self.status(record) in self.active_statuses
        return category is Category.CREDIT_NOTE

    def revenue_amount(self, record: DocumentRecord, category: Category) -> Decimal:
        """Signed contribution; credit notes subtract by absolute value."""
        if category is Category.CREDIT_NOTE:
            return -abs(record.total_amount)
        return record.total_amount

    def is_sale_without_invoice(self, record: DocumentRecord, category: Category) -> bool:
        return category is Category.ORDER and self.status(record) in self.order_sale_statuses


DEFAULT_REVENUE_POLICY = RevenuePolicy()


def cogs_from_movements(movements: Iterable[MovementRecord]) -> dict[UUID, Decimal]:
    """
    Net cost value per owning document: ``-sum(quantity * unit_cost)``.

    Quantities are signed (OUT negative, IN / RETURN positive), so goods
    returned against an invoice reduce its cost instead of adding to it.
    """
    totals: dict[UUID, Decimal] = defaultdict(lambda: ZERO)
    for movement in movements:
        if movement.document_id is None:
            continue
        totals[movement.document_id] -= movement.quantity * movement.unit_cost
    return dict(totals)


def signed_cogs(category: Category, value: Decimal) -> Decimal:
    """Credit-note movements give cost back; other documents keep their net."""
    return -abs(value) if category is Category.CREDIT_NOTE else value


class _CategoryAccumulator:
    __slots__ = ("count", "amount", "revenue", "cogs")

    def __init__(self) -> None:
        self.count = 0
        self.amount = ZERO
        self.revenue = ZERO
        self.cogs = ZERO


@traced_engine(
    "aggregation", "1.0",
    fingerprint_fields=("window", "center_id", "expenses", "include_orders"),
)
def summarize(
    *,
    documents: Sequence[DocumentRecord],
    cogs_by_document: Mapping[UUID, Decimal],
    expenses: Decimal = ZERO,
    window: DateWindow | None = None,
    policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
    include_orders: bool = False,
    center_id: str | None = None,
    undated: Sequence[DocumentRecord] = (),
) -> SalesSummary:
    """
    Revenue, COGS, margin and profit for ``window``.

    Args:
        documents: candidate records; anything outside the window is skipped.
        cogs_by_document: net cost value per document id (see
            ``cogs_from_movements``).
        expenses: period expenses from the expense provider.
        window: date window, None for no filter.
        policy: classification and status policy.
        include_orders: also report the "sales without invoice" block.
        center_id: echoed into the result.
        undated: undated documents the caller already set aside.
    """
    window = DateWindow.coerce(window)
    by_category = {category: _CategoryAccumulator() for category in Category}
    undated_ids: list[UUID] = [r.id for r in undated if not policy.is_terminal(r)]
    excluded_terminal = 0

    revenue = ZERO
    cogs = ZERO
    orders = _CategoryAccumulator()
    orders_paid = ZERO

    for record in documents:
        if not window.contains(record.issue_date):
            if record.issue_date is None and not policy.is_terminal(record):
                undated_ids.append(record.id)
            continue
        if policy.is_terminal(record):
            excluded_terminal += 1
            continue

        category = policy.category(record)
        document_cogs = cogs_by_document.get(record.id, ZERO)
        acc = by_category[category]
        acc.count += 1
        acc.amount += abs(record.total_amount) if category is Category.CREDIT_NOTE else record.total_amount

        if policy.counts_as_revenue(record, category):
            contribution = policy.revenue_amount(record, category)
            cost = signed_cogs(category, document_cogs)
            acc.revenue += contribution
            acc.cogs += cost
            revenue += contribution
            cogs += cost
        elif include_orders and policy.is_sale_without_invoice(record, category):
            orders.count += 1
            orders.amount += record.total_amount
            orders.cogs += document_cogs
            orders_paid += record.paid_total

    revenue = quantize_money(revenue)
    cogs = quantize_money(cogs)
    expenses = quantize_money(expenses)
    gross_margin = revenue - cogs

    breakdown = tuple(
        CategoryBreakdown(
            category=category,
            document_count=acc.count,
            total_amount=quantize_money(acc.amount),
            revenue_contribution=quantize_money(acc.revenue),
            cogs=quantize_money(acc.cogs),
        )
        for category, acc in by_category.items()
    )

    without_invoice = None
    if include_orders:
        without_invoice = SalesWithoutInvoice(
            document_count=orders.count,
            total_amount=quantize_money(orders.amount),
            paid_amount=quantize_money(orders_paid),
            cogs=quantize_money(orders.cogs),
        )

    return SalesSummary(
        window=window,
        center_id=center_id,
        revenue=revenue,
        cogs=cogs,
        gross_margin=gross_margin,
        expenses=expenses,
        net_profit=gross_margin - expenses,
        breakdown_by_category=breakdown,
        sales_without_invoice=without_invoice,
        undated_document_ids=tuple(dict.fromkeys(undated_ids)),
        excluded_terminal_count=excluded_terminal,
    )


def period_key(day: date, granularity: EvolutionGranularity) -> str:
    if granularity is EvolutionGranularity.DAILY:
        return day.isoformat()
    if granularity is EvolutionGranularity.MONTHLY:
        return f"{day.year:04d}-{day.month:02d}"
    return f"{day.year:04d}"


def _revenue_records(
    documents: Iterable[DocumentRecord],
    window: DateWindow,
    policy: RevenuePolicy,
) -> Iterable[tuple[DocumentRecord, Category]]:
    for record in documents:
        if record.issue_date is None or not window.contains(record.issue_date):
            continue
        category = policy.category(record)
        if policy.counts_as_revenue(record, category):
            yield record, category


@traced_engine("aggregation.revenue_evolution", "1.0", fingerprint_fields=("window", "granularity"))
def revenue_evolution(
    *,
    documents: Sequence[DocumentRecord],
    window: DateWindow | None = None,
    granularity: EvolutionGranularity = EvolutionGranularity.MONTHLY,
    policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
) -> tuple[RevenueBucket, ...]:
    """Revenue per period; credit notes subtract and are not counted."""
    window = DateWindow.coerce(window)
    granularity = EvolutionGranularity(granularity)
    revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)

    for record, category in _revenue_records(documents, window, policy):
        key = period_key(record.issue_date, granularity)
        revenue[key] += policy.revenue_amount(record, category)
        if category is Category.INVOICE:
            counts[key] += 1

    return tuple(
        RevenueBucket(period=key, revenue=quantize_money(revenue[key]), invoice_count=counts[key])
        for key in sorted(revenue)
    )


@traced_engine("aggregation.profit_evolution", "1.0", fingerprint_fields=("window", "expenses_by_period"))
def profit_evolution(
    *,
    documents: Sequence[DocumentRecord],
    cogs_by_document: Mapping[UUID, Decimal],
    expenses_by_period: Mapping[str, Decimal],
    window: DateWindow | None = None,
    policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
) -> tuple[ProfitBucket, ...]:
    """Monthly revenue, COGS, expenses and net profit."""
    window = DateWindow.coerce(window)
    revenue: dict[str, Decimal] = defaultdict(lambda: ZERO)
    cogs: dict[str, Decimal] = defaultdict(lambda: ZERO)

    for record, category in _revenue_records(documents, window, policy):
        key = period_key(record.issue_date, EvolutionGranularity.MONTHLY)
        revenue[key] += policy.revenue_amount(record, category)
        cogs[key] += signed_cogs(category, cogs_by_document.get(record.id, ZERO))

    buckets = []
    for key in sorted(set(revenue) | set(expenses_by_period)):
        period_revenue = quantize_money(revenue.get(key, ZERO))
        period_cogs = quantize_money(cogs.get(key, ZERO))
        period_expenses = quantize_money(expenses_by_period.get(key, ZERO))
        buckets.append(
            ProfitBucket(
                period=key,
                revenue=period_revenue,
                cogs=period_cogs,
                expenses=period_expenses,
                net_profit=period_revenue - period_cogs - period_expenses,
            )
        )
    return tuple(buckets)


@traced_engine("aggregation.payment_methods", "1.0")
def payment_method_breakdown(*, payments: Iterable[PaymentRecord]) -> tuple[MethodTotal, ...]:
    """Count and amount per method, largest amount first."""
    amounts: dict[str, Decimal] = defaultdict(lambda: ZERO)
    counts: dict[str, int] = defaultdict(int)
    for payment in payments:
        amounts[payment.method] += payment.amount
        counts[payment.method] += 1
    rows = [
        MethodTotal(method=method, payment_count=counts[method], amount=quantize_money(amount))
        for method, amount in amounts.items()
    ]
    rows.sort(key=lambda row: (-row.amount, row.method))
    return tuple(rows)


@traced_engine("aggregation.receivables", "1.0")
def receivables_position(
    *,
    documents: Iterable[DocumentRecord],
    policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
) -> ReceivablesPosition:
    """Stored vs recomputed outstanding totals over non-cancelled documents."""
    count = 0
    stored = ZERO
    net = ZERO
    gross = ZERO
    for record in documents:
        if policy.status(record) is DocumentStatus.CANCELLED:
            continue
        balance = record.computed_outstanding
        count += 1
        stored += record.outstanding_balance
        net += balance
        gross += max(ZERO, balance)
    return ReceivablesPosition(
        document_count=count,
        stored=quantize_money(stored),
        computed_net=quantize_money(net),
        computed_gross=quantize_money(gross),
    )
