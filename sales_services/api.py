"""
SalesLedgerApi -- the public facade for controllers, reports and scripts.

Responsibility:
    Owns transaction boundaries.  Every public call opens one
    ``session_scope``, builds the kernel services it needs on that session,
    and commits (or rolls back) at the end.  Mutations that lose a race are
    retried as a whole unit of work.

Architecture position:
    Imperative shell.  Kernel services flush, selectors read, engines
    compute; only this class commits.

Invariants enforced:
    - All-or-nothing: a rejected payment, reclassification or stock
      movement leaves no partial write behind (rollback).
    - A ConcurrentModificationError (or a commit-time lock / version
      failure) is retried at most ``ledger.max_retries`` times, each retry
      re-reading everything under fresh locks.  After that it propagates.
    - Every call runs inside ``LogContext.bind(operation=...)`` so all log
      lines of the unit of work carry the operation name.

Failure modes:
    - Typed SalesKernelError subclasses from the kernel, unchanged.
    - ConcurrentModificationError once retries are exhausted.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import date, datetime
from decimal import Decimal
from typing import TypeVar
from uuid import UUID

from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.orm.exc import StaleDataError

from sales_config import get_active_config
from sales_config.bridges import (
    build_classification_rules,
    build_payment_methods,
    build_reference_totals,
    build_revenue_policy,
    build_status_vocabulary,
    duplicate_granularity,
)
from sales_config.schema import SalesLedgerConfig
from sales_engines.types import (
    AuditReport,
    DuplicateGranularity,
    DuplicatePaymentGroup,
    EvolutionGranularity,
    MethodTotal,
    ProfitBucket,
    ReceivablesPosition,
    ReferenceTotals,
    RevenueBucket,
    SalesSummary,
)
from sales_kernel.db.engine import get_session_factory, is_concurrency_failure, session_scope
from sales_kernel.db.immutability import register_immutability_listeners
from sales_kernel.domain.classification import Category, ClassificationSignals, classify
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.window import DateWindow
from sales_kernel.exceptions import ConcurrentModificationError
from sales_kernel.logging_config import LogContext, get_logger
from sales_kernel.services import (
    DocumentAuditInfo,
    DocumentBalance,
    DocumentInfo,
    DocumentService,
    PaymentInfo,
    PaymentLedgerService,
    PaymentResult,
    ProductCostInfo,
    PromotionResult,
    ReclassificationResult,
    ReclassificationService,
    StatusService,
    StockCostingService,
    StockMovementInfo,
)
from sales_services.audit_service import AuditService
from sales_services.expenses import ExpenseProvider, NoExpenses
from sales_services.reporting_service import ReportingService

logger = get_logger("services.api")

T = TypeVar("T")


class SalesLedgerApi:
    """
    One object per process; sessions are per call.

    Args:
        session_factory: sessionmaker to open units of work with.  Defaults
            to the factory of the engine set up by ``init_engine_from_url``.
        config: validated configuration.  Defaults to ``get_active_config()``.
        clock: time source for payment dates and audit timestamps.
        expenses: expense provider for net profit.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session] | None = None,
        config: SalesLedgerConfig | None = None,
        clock: Clock | None = None,
        expenses: ExpenseProvider | None = None,
    ) -> None:
        self._session_factory = session_factory or get_session_factory()
        self.config = config or get_active_config()
        self.clock = clock or SystemClock()
        self.expenses = expenses or NoExpenses()
        self.rules = build_classification_rules(self.config)
        self.vocabulary = build_status_vocabulary(self.config)
        self.methods = build_payment_methods(self.config)
        self.policy = build_revenue_policy(self.config)
        self.max_retries = self.config.ledger.max_retries
        register_immutability_listeners()

    # ------------------------------------------------------------------
    # Unit-of-work plumbing
    # ------------------------------------------------------------------

    def _run(
        self,
        operation: str,
        work: Callable[[Session], T],
        *,
        retry: bool = True,
        **context: object,
    ) -> T:
        attempts = self.max_retries + 1 if retry else 1
        for attempt in range(1, attempts + 1):
            try:
                with LogContext.bind(operation=operation, **context):
                    with session_scope(self._session_factory) as session:
                        return work(session)
            except (ConcurrentModificationError, StaleDataError, DBAPIError) as exc:
                if not isinstance(exc, ConcurrentModificationError) and not is_concurrency_failure(exc):
                    raise
                if attempt >= attempts:
                    logger.error(
                        "concurrency_retries_exhausted",
                        extra={"operation": operation, "attempts": attempt},
                    )
                    if isinstance(exc, ConcurrentModificationError):
                        raise
                    raise ConcurrentModificationError(
                        "UnitOfWork", operation, type(exc).__name__
                    ) from exc
                logger.warning(
                    "concurrency_retry",
                    extra={
                        "operation": operation,
                        "attempt": attempt,
                        "error": type(exc).__name__,
                    },
                )
        raise AssertionError("unreachable")

    def _ledger(self, session: Session) -> PaymentLedgerService:
        return PaymentLedgerService(session, self.clock, self.rules, self.vocabulary, self.methods)

    def _statuses(self, session: Session) -> StatusService:
        return StatusService(session, self.clock, self.rules, self.vocabulary)

    def _reclassification(self, session: Session) -> ReclassificationService:
        return ReclassificationService(session, self.clock, self.rules, self.vocabulary)

    def _reporting(self, session: Session) -> ReportingService:
        return ReportingService(session, self.policy, self.expenses)

    # ------------------------------------------------------------------
    # Classification and documents
    # ------------------------------------------------------------------

    def classify(self, document_id: UUID) -> Category:
        return self._run(
            "classify",
            lambda s: DocumentService(s, self.rules, self.vocabulary).get(document_id).category,
            retry=False,
            document_id=document_id,
        )

    def classify_signals(
        self,
        number: str | None,
        declared_type: str | None,
        status: str | None,
        has_payments: bool = False,
    ) -> Category:
        """Classify raw signals without touching the database."""
        return classify(
            ClassificationSignals(number, declared_type, status, has_payments), self.rules
        )

    def create_document(
        self,
        number: str | None,
        declared_type: str | None,
        total_amount: Decimal | int | str,
        actor_id: UUID,
        issue_date: date | None = None,
        center_id: str | None = None,
        status: str | None = None,
        client_id: str | None = None,
        case_file_id: str | None = None,
    ) -> DocumentInfo:
        return self._run(
            "create_document",
            lambda s: DocumentService(s, self.rules, self.vocabulary).create_document(
                number,
                declared_type,
                total_amount,
                actor_id,
                issue_date=issue_date,
                center_id=center_id,
                status=status,
                client_id=client_id,
                case_file_id=case_file_id,
            ),
            actor_id=actor_id,
            center_id=center_id,
        )

    def get_document(self, document_id: UUID) -> DocumentInfo:
        return self._run(
            "get_document",
            lambda s: DocumentService(s, self.rules, self.vocabulary).get(document_id),
            retry=False,
            document_id=document_id,
        )

    def document_history(self, document_id: UUID) -> list[DocumentAuditInfo]:
        return self._run(
            "document_history",
            lambda s: self._statuses(s).audit.history(document_id),
            retry=False,
            document_id=document_id,
        )

    # ------------------------------------------------------------------
    # Payment ledger
    # ------------------------------------------------------------------

    def apply_payment(
        self,
        document_id: UUID,
        amount: Decimal | int | str,
        method: str,
        actor_id: UUID,
        paid_at: datetime | None = None,
        reference: str | None = None,
        bank: str | None = None,
        third_party_name: str | None = None,
    ) -> PaymentResult:
        return self._run(
            "apply_payment",
            lambda s: self._ledger(s).apply_payment(
                document_id,
                amount,
                method,
                actor_id,
                paid_at=paid_at,
                reference=reference,
                bank=bank,
                third_party_name=third_party_name,
            ),
            actor_id=actor_id,
            document_id=document_id,
        )

    def reverse_payment(self, payment_id: UUID, actor_id: UUID | None = None) -> DocumentBalance:
        return self._run(
            "reverse_payment",
            lambda s: self._ledger(s).reverse_payment(payment_id, actor_id),
            actor_id=actor_id,
            payment_id=payment_id,
        )

    def edit_payment(
        self,
        payment_id: UUID,
        new_amount: Decimal | int | str,
        actor_id: UUID,
        method: str | None = None,
        paid_at: datetime | None = None,
    ) -> PaymentResult:
        return self._run(
            "edit_payment",
            lambda s: self._ledger(s).edit_payment(
                payment_id, new_amount, actor_id, method=method, paid_at=paid_at
            ),
            actor_id=actor_id,
            payment_id=payment_id,
        )

    def list_payments(self, document_id: UUID) -> list[PaymentInfo]:
        return self._run(
            "list_payments",
            lambda s: self._ledger(s).list_payments(document_id),
            retry=False,
            document_id=document_id,
        )

    def recompute_balance(self, document_id: UUID, actor_id: UUID | None = None) -> DocumentBalance:
        return self._run(
            "recompute_balance",
            lambda s: self._ledger(s).recompute_balance(document_id, actor_id),
            actor_id=actor_id,
            document_id=document_id,
        )

    # ------------------------------------------------------------------
    # Status administration
    # ------------------------------------------------------------------

    def get_status(self, document_id: UUID) -> str:
        return self._run(
            "get_status",
            lambda s: self._statuses(s).get_status(document_id),
            retry=False,
            document_id=document_id,
        )

    def cancel(self, document_id: UUID, actor_id: UUID, reason: str | None = None) -> DocumentInfo:
        return self._run(
            "cancel_document",
            lambda s: self._statuses(s).cancel(document_id, actor_id, reason),
            actor_id=actor_id,
            document_id=document_id,
        )

    def archive(self, document_id: UUID, actor_id: UUID, reason: str | None = None) -> DocumentInfo:
        return self._run(
            "archive_document",
            lambda s: self._statuses(s).archive(document_id, actor_id, reason),
            actor_id=actor_id,
            document_id=document_id,
        )

    def restore(self, document_id: UUID, actor_id: UUID, reason: str | None = None) -> DocumentInfo:
        return self._run(
            "restore_document",
            lambda s: self._statuses(s).restore(document_id, actor_id, reason),
            actor_id=actor_id,
            document_id=document_id,
        )

    # ------------------------------------------------------------------
    # Reclassification
    # ------------------------------------------------------------------

    def reclassify(
        self,
        document_id: UUID,
        target: Category,
        actor_id: UUID,
        reason: str | None = None,
        new_number: str | None = None,
    ) -> ReclassificationResult:
        return self._run(
            "reclassify_document",
            lambda s: self._reclassification(s).reclassify(
                document_id, target, actor_id, reason=reason, new_number=new_number
            ),
            actor_id=actor_id,
            document_id=document_id,
        )

    def revert_reclassification(
        self, record_id: UUID, actor_id: UUID, reason: str | None = None
    ) -> ReclassificationResult:
        return self._run(
            "revert_reclassification",
            lambda s: self._reclassification(s).revert(record_id, actor_id, reason),
            actor_id=actor_id,
        )

    def promote_by_numbering_convention(
        self,
        actor_id: UUID,
        center_id: str | None = None,
        dry_run: bool = True,
    ) -> PromotionResult:
        return self._run(
            "promote_by_numbering_convention",
            lambda s: self._reclassification(s).promote_by_numbering_convention(
                actor_id, center_id=center_id, dry_run=dry_run
            ),
            actor_id=actor_id,
            center_id=center_id,
        )

    # ------------------------------------------------------------------
    # Stock costing
    # ------------------------------------------------------------------

    def create_product(
        self, code: str, label: str, actor_id: UUID, center_id: str | None = None
    ) -> ProductCostInfo:
        return self._run(
            "create_product",
            lambda s: StockCostingService(s, self.clock).create_product(
                code, label, actor_id, center_id=center_id
            ),
            actor_id=actor_id,
            center_id=center_id,
        )

    def get_product_cost(self, product_id: UUID) -> ProductCostInfo:
        return self._run(
            "get_product_cost",
            lambda s: StockCostingService(s, self.clock).get_product_cost(product_id),
            retry=False,
        )

    def record_stock_in(
        self,
        product_id: UUID,
        quantity: Decimal | int | str,
        unit_cost: Decimal | int | str,
        actor_id: UUID,
        document_id: UUID | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovementInfo:
        return self._run(
            "record_stock_in",
            lambda s: StockCostingService(s, self.clock).record_stock_in(
                product_id, quantity, unit_cost, actor_id,
                document_id=document_id, occurred_at=occurred_at,
            ),
            actor_id=actor_id,
            document_id=document_id,
        )

    def record_stock_out(
        self,
        product_id: UUID,
        quantity: Decimal | int | str,
        actor_id: UUID,
        document_id: UUID | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovementInfo:
        return self._run(
            "record_stock_out",
            lambda s: StockCostingService(s, self.clock).record_stock_out(
                product_id, quantity, actor_id,
                document_id=document_id, occurred_at=occurred_at,
            ),
            actor_id=actor_id,
            document_id=document_id,
        )

    def record_return(
        self,
        product_id: UUID,
        quantity: Decimal | int | str,
        actor_id: UUID,
        document_id: UUID | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovementInfo:
        return self._run(
            "record_return",
            lambda s: StockCostingService(s, self.clock).record_return(
                product_id, quantity, actor_id,
                document_id=document_id, occurred_at=occurred_at,
            ),
            actor_id=actor_id,
            document_id=document_id,
        )

    def repoint_movement(
        self,
        movement_id: UUID,
        actor_id: UUID,
        product_id: UUID | None = None,
        document_id: UUID | None = None,
    ) -> StockMovementInfo:
        return self._run(
            "repoint_movement",
            lambda s: StockCostingService(s, self.clock).repoint_movement(
                movement_id, actor_id, product_id=product_id, document_id=document_id
            ),
            actor_id=actor_id,
        )

    # ------------------------------------------------------------------
    # Reporting and audit (read-only)
    # ------------------------------------------------------------------

    def get_summary(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
        include_orders: bool = False,
    ) -> SalesSummary:
        return self._run(
            "get_summary",
            lambda s: self._reporting(s).get_summary(window, center_id, include_orders),
            retry=False,
            center_id=center_id,
        )

    def get_duplicate_payments(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
        granularity: DuplicateGranularity | None = None,
    ) -> tuple[DuplicatePaymentGroup, ...]:
        chosen = granularity or duplicate_granularity(self.config)
        return self._run(
            "get_duplicate_payments",
            lambda s: self._reporting(s).get_duplicate_payments(window, center_id, chosen),
            retry=False,
            center_id=center_id,
        )

    def revenue_evolution(
        self,
        window: DateWindow | None = None,
        granularity: EvolutionGranularity = EvolutionGranularity.MONTHLY,
        center_id: str | None = None,
    ) -> tuple[RevenueBucket, ...]:
        return self._run(
            "revenue_evolution",
            lambda s: self._reporting(s).revenue_evolution(window, granularity, center_id),
            retry=False,
            center_id=center_id,
        )

    def profit_evolution(
        self, window: DateWindow | None = None, center_id: str | None = None
    ) -> tuple[ProfitBucket, ...]:
        return self._run(
            "profit_evolution",
            lambda s: self._reporting(s).profit_evolution(window, center_id),
            retry=False,
            center_id=center_id,
        )

    def payment_method_breakdown(
        self, window: DateWindow | None = None, center_id: str | None = None
    ) -> tuple[MethodTotal, ...]:
        return self._run(
            "payment_method_breakdown",
            lambda s: self._reporting(s).payment_method_breakdown(window, center_id),
            retry=False,
            center_id=center_id,
        )

    def receivables_position(self, center_id: str | None = None) -> ReceivablesPosition:
        return self._run(
            "receivables_position",
            lambda s: self._reporting(s).receivables_position(center_id),
            retry=False,
            center_id=center_id,
        )

    def run_audit(
        self,
        window: DateWindow | None = None,
        center_id: str | None = None,
        reference: ReferenceTotals | dict | None = None,
    ) -> AuditReport:
        """
        Run the sales audit.

        ``reference`` may be a ReferenceTotals or the raw mapping read by
        ``sales_config.loader.load_reference_totals``.
        """
        if reference is not None and not isinstance(reference, ReferenceTotals):
            reference = build_reference_totals(reference)

        def work(session: Session) -> AuditReport:
            service = AuditService(
                session,
                policy=self.policy,
                expenses=self.expenses,
                clock=self.clock,
                granularity=duplicate_granularity(self.config),
                tolerance=self.config.ledger.money_tolerance,
                listing_limit=self.config.audit.listing_limit,
            )
            return service.run_audit(window, center_id, reference)

        return self._run("run_audit", work, retry=False, center_id=center_id)
