"""
ReportingService -- the Revenue / COGS / Profit Aggregator.

Composes the read-only selectors with the pure aggregation engines.
Read-only: it never adds, flushes or deletes; the caller's session only
needs READ COMMITTED, so a payment committed mid-report may or may not be
included but a half-written one never is.
"""

from __future__ import annotations

from sqlalchemy.orm import Session

from sales_engines.aggregation import (
    DEFAULT_REVENUE_POLICY,
    RevenuePolicy,
    cogs_from_movements,
    payment_method_breakdown,
    profit_evolution,
    receivables_position,
    revenue_evolution,
    summarize,
)
from sales_engines.duplicates import find_duplicate_payments
from sales_engines.types import (
    DuplicateGranularity,
    DuplicatePaymentGroup,
    EvolutionGranularity,
    MethodTotal,
    ProfitBucket,
    ReceivablesPosition,
    RevenueBucket,
    SalesSummary,
)
from sales_kernel.domain.window import DateWindow
from sales_kernel.logging_config import get_logger
from sales_kernel.selectors.document_selector import DocumentSelector
from sales_kernel.selectors.payment_selector import PaymentSelector
from sales_kernel.selectors.stock_selector import StockSelector
from sales_services.expenses import ExpenseProvider, NoExpenses

logger = get_logger("services.reporting")


class ReportingService:
    """
    Summary, evolutions and breakdowns for a window and optional center.

    Contract:
        ``get_summary(None)`` and ``get_summary(DateWindow(date.min,
        date.max))`` return the same figures.

    Non-goals:
        - Does NOT write anything.
        - Does NOT compute expenses (asks the ExpenseProvider).
    """

    def __init__(
        self,
        session: Session,
        policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
        expenses: ExpenseProvider | None = None,
    ) -> None:
        self.session = session
        self.policy = policy
        self.expenses = expenses or NoExpenses()
        self.documents = DocumentSelector(session)
        self.payments = PaymentSelector(session)
        self.stock = StockSelector(session)

    def get_summary(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
        include_orders: bool = False,
    ) -> SalesSummary:
        window = DateWindow.coerce(window)
        records = self.documents.list_documents(center_id, window)
        undated = [] if window.is_unbounded else self.documents.list_undated(center_id)
        movements = self.stock.movements_for_documents(r.id for r in records)

        summary = summarize(
            documents=records,
            cogs_by_document=cogs_from_movements(movements),
            expenses=self.expenses.total_for(window, center_id),
            window=window,
            policy=self.policy,
            include_orders=include_orders,
            center_id=center_id,
            undated=undated,
        )
        logger.info(
            "summary_computed",
            extra={
                "window": window.describe(),
                "center": center_id,
                "document_count": len(records),
                "revenue": summary.revenue,
                "cogs": summary.cogs,
                "net_profit": summary.net_profit,
                "undated_count": len(summary.undated_document_ids),
            },
        )
        if summary.undated_document_ids:
            logger.warning(
                "undated_documents_excluded",
                extra={
                    "window": window.describe(),
                    "center": center_id,
                    "document_ids": [str(i) for i in summary.undated_document_ids],
                },
            )
        return summary

    def get_duplicate_payments(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
        granularity: DuplicateGranularity = DuplicateGranularity.DAY,
    ) -> tuple[DuplicatePaymentGroup, ...]:
        """Advisory list; nothing is removed."""
        payments = self.payments.payments_in_window(window, center_id)
        groups = find_duplicate_payments(payments=payments, granularity=granularity)
        logger.info(
            "duplicate_payments_scanned",
            extra={
                "center": center_id,
                "payment_count": len(payments),
                "group_count": len(groups),
                "granularity": DuplicateGranularity(granularity).value,
            },
        )
        return groups

    def revenue_evolution(
        self,
        window: DateWindow | None = None,
        granularity: EvolutionGranularity = EvolutionGranularity.MONTHLY,
        center_id: str | None = None,
    ) -> tuple[RevenueBucket, ...]:
        window = DateWindow.coerce(window)
        records = self.documents.list_documents(center_id, window)
        return revenue_evolution(
            documents=records, window=window, granularity=granularity, policy=self.policy
        )

    def profit_evolution(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
    ) -> tuple[ProfitBucket, ...]:
        window = DateWindow.coerce(window)
        records = self.documents.list_documents(center_id, window)
        movements = self.stock.movements_for_documents(r.id for r in records)
        return profit_evolution(
            documents=records,
            cogs_by_document=cogs_from_movements(movements),
            expenses_by_period=self.expenses.by_month(window, center_id),
            window=window,
            policy=self.policy,
        )

    def payment_method_breakdown(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
    ) -> tuple[MethodTotal, ...]:
        return payment_method_breakdown(
            payments=self.payments.payments_in_window(window, center_id)
        )

    def receivables_position(self, center_id: str | None = None) -> ReceivablesPosition:
        position = receivables_position(
            documents=self.documents.list_documents(center_id), policy=self.policy
        )
        logger.info(
            "receivables_position_computed",
            extra={
                "center": center_id,
                "stored": position.stored,
                "computed_net": position.computed_net,
                "computed_gross": position.computed_gross,
            },
        )
        return position
