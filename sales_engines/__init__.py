"""
Module: sales_engines
Responsibility:
    Package entrypoint re-exporting the pure calculation engines used by the
    reporting and audit services.

Architecture position:
    Engines -- pure calculation layer, zero I/O.
    May only import sales_kernel.domain, sales_kernel.logging_config and
    sibling engine modules.  MUST NOT import sales_services.

Invariants enforced:
    - Purity: engines never read the clock; "now" is passed in.
    - Decimal-only arithmetic for every monetary amount.
    - Determinism: identical inputs always produce identical outputs.

Audit relevance:
    Every engine invocation is traced via ``@traced_engine``
    (see ``sales_engines.tracer``), emitting SALES_ENGINE_TRACE records.
"""

from sales_engines.aggregation import (
    ACTIVE_STATUSES,
    DEFAULT_REVENUE_POLICY,
    ORDER_SALE_STATUSES,
    RevenuePolicy,
    cogs_from_movements,
    payment_method_breakdown,
    profit_evolution,
    receivables_position,
    revenue_evolution,
    summarize,
)
from sales_engines.audit import AuditContext, IndependentTotals, SalesAuditChecker
from sales_engines.duplicates import find_duplicate_payments
from sales_engines.tracer import traced_engine
from sales_engines.types import (
    AuditReport,
    CategoryBreakdown,
    CategoryDelta,
    CategoryTotal,
    CheckSeverity,
    CheckStatus,
    DuplicateGranularity,
    DuplicatePaymentGroup,
    EvolutionGranularity,
    MethodTotal,
    OutOfWindowDocument,
    ProfitBucket,
    ReceivablesPosition,
    ReconciliationFinding,
    ReferenceTotals,
    RevenueBucket,
    SalesSummary,
    SalesWithoutInvoice,
    TallyRow,
)

__all__ = [
    "ACTIVE_STATUSES",
    "AuditContext",
    "AuditReport",
    "CategoryBreakdown",
    "CategoryDelta",
    "CategoryTotal",
    "CheckSeverity",
    "CheckStatus",
    "DEFAULT_REVENUE_POLICY",
    "DuplicateGranularity",
    "DuplicatePaymentGroup",
    "EvolutionGranularity",
    "IndependentTotals",
    "MethodTotal",
    "ORDER_SALE_STATUSES",
    "OutOfWindowDocument",
    "ProfitBucket",
    "ReceivablesPosition",
    "ReconciliationFinding",
    "ReferenceTotals",
    "RevenueBucket",
    "RevenuePolicy",
    "SalesAuditChecker",
    "SalesSummary",
    "SalesWithoutInvoice",
    "TallyRow",
    "cogs_from_movements",
    "find_duplicate_payments",
    "payment_method_breakdown",
    "profit_evolution",
    "receivables_position",
    "revenue_evolution",
    "summarize",
    "traced_engine",
]
