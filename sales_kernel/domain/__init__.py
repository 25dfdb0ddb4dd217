"""
Pure domain layer.

Classification, status derivation, costing arithmetic, windows and value
helpers with NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O
"""

from sales_kernel.domain.classification import (
    DEFAULT_CLASSIFICATION_RULES,
    Category,
    ClassificationRules,
    ClassificationSignals,
    classify,
)
from sales_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from sales_kernel.domain.costing import CostPosition, weighted_average
from sales_kernel.domain.payment_methods import (
    DEFAULT_PAYMENT_METHODS,
    PaymentMethod,
    PaymentMethodVocabulary,
)
from sales_kernel.domain.records import DocumentRecord, MovementRecord, PaymentRecord
from sales_kernel.domain.status import (
    DEFAULT_STATUS_VOCABULARY,
    TERMINAL_STATUSES,
    DocumentStatus,
    StatusVocabulary,
    derive_status,
)
from sales_kernel.domain.window import NO_FILTER, DateWindow

__all__ = [
    "Category",
    "ClassificationRules",
    "ClassificationSignals",
    "Clock",
    "CostPosition",
    "DEFAULT_CLASSIFICATION_RULES",
    "DEFAULT_PAYMENT_METHODS",
    "DEFAULT_STATUS_VOCABULARY",
    "DateWindow",
    "DeterministicClock",
    "DocumentRecord",
    "DocumentStatus",
    "MovementRecord",
    "NO_FILTER",
    "PaymentMethod",
    "PaymentMethodVocabulary",
    "PaymentRecord",
    "StatusVocabulary",
    "SystemClock",
    "TERMINAL_STATUSES",
    "classify",
    "derive_status",
    "weighted_average",
]
