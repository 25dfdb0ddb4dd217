"""
AuditService -- the Audit Reporter.

Read-only.  Builds an ``AuditContext`` from the selectors (every document
of the center, the SQL COGS aggregate, the payments of the window), takes
the primary summary from ReportingService, and hands everything to the
pure ``SalesAuditChecker``.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.orm import Session

from sales_engines.aggregation import DEFAULT_REVENUE_POLICY, RevenuePolicy
from sales_engines.audit import AuditContext, SalesAuditChecker
from sales_engines.types import AuditReport, DuplicateGranularity, ReferenceTotals
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.values import MONEY_TOLERANCE
from sales_kernel.domain.window import DateWindow
from sales_kernel.logging_config import get_logger
from sales_kernel.selectors.document_selector import DocumentSelector
from sales_kernel.selectors.payment_selector import PaymentSelector
from sales_kernel.selectors.stock_selector import StockSelector
from sales_services.expenses import ExpenseProvider
from sales_services.reporting_service import ReportingService

logger = get_logger("services.audit")


class AuditService:
    """
    Runs the sales audit for a window and center.

    Non-goals:
        - Does NOT fix anything it finds.  Duplicate payments, drift and
          undated documents are reported for an operator to act on.
    """

    def __init__(
        self,
        session: Session,
        policy: RevenuePolicy = DEFAULT_REVENUE_POLICY,
        expenses: ExpenseProvider | None = None,
        clock: Clock | None = None,
        checker: SalesAuditChecker | None = None,
        granularity: DuplicateGranularity = DuplicateGranularity.DAY,
        tolerance: Decimal = MONEY_TOLERANCE,
        listing_limit: int = 500,
    ) -> None:
        self.session = session
        self.policy = policy
        self._clock = clock or SystemClock()
        self._checker = checker or SalesAuditChecker()
        self._granularity = granularity
        self._tolerance = tolerance
        self._listing_limit = listing_limit
        self.reporting = ReportingService(session, policy, expenses)

    def run_audit(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
        reference: ReferenceTotals | None = None,
    ) -> AuditReport:
        window = DateWindow.coerce(window)
        primary = self.reporting.get_summary(window, center_id)

        documents = DocumentSelector(self.session).list_documents(center_id)
        cogs = StockSelector(self.session).cogs_by_document(d.id for d in documents)
        payments = PaymentSelector(self.session).payments_in_window(window, center_id)

        context = AuditContext(
            window=window,
            center_id=center_id,
            generated_at=self._clock.now(),
            documents=documents,
            payments=payments,
            cogs_by_document=cogs,
            primary=primary,
            reference=reference,
            policy=self.policy,
            granularity=self._granularity,
            tolerance=self._tolerance,
            listing_limit=self._listing_limit,
        )
        report = self._checker.run_all_checks(context=context)

        logger.info(
            "audit_completed",
            extra={
                "window": window.describe(),
                "center": center_id,
                "status": report.status.value,
                "error_count": report.error_count,
                "warning_count": report.warning_count,
                "duplicate_group_count": len(report.duplicate_groups),
                "out_of_window_count": len(report.out_of_window),
            },
        )
        return report
