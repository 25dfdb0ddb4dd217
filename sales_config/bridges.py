"""
Config -> Kernel Bridges.

Functions that convert a ``SalesLedgerConfig`` into the rule objects the
kernel and engines take.  They live here because the kernel must never
import sales_config.

Usage:
    from sales_config import get_active_config
    from sales_config.bridges import build_classification_rules

    config = get_active_config()
    rules = build_classification_rules(config)
"""

from __future__ import annotations

from collections.abc import Mapping
from decimal import Decimal
from typing import Any

from sales_config.schema import SalesLedgerConfig
from sales_engines.aggregation import RevenuePolicy
from sales_engines.types import CategoryTotal, DuplicateGranularity, ReferenceTotals
from sales_kernel.domain.classification import Category, ClassificationRules
from sales_kernel.domain.payment_methods import PaymentMethod, PaymentMethodVocabulary
from sales_kernel.domain.status import DocumentStatus, StatusVocabulary


def build_classification_rules(config: SalesLedgerConfig) -> ClassificationRules:
    """
    Raises:
        ClassificationAmbiguousError: a token or prefix maps to two categories.
    """
    types = config.document_types
    return ClassificationRules(
        type_synonyms={
            Category.INVOICE: types.invoice,
            Category.ORDER: types.order,
            Category.QUOTE: types.quote,
            Category.CREDIT_NOTE: types.credit_note,
        },
        invoice_prefixes=config.numbering.invoice_prefixes,
        order_prefixes=config.numbering.order_prefixes,
        invoice_number_pattern=config.numbering.invoice_number_pattern,
        pending_sale_statuses=config.statuses.pending_sale,
    )


def build_status_vocabulary(config: SalesLedgerConfig) -> StatusVocabulary:
    return StatusVocabulary(
        synonyms={DocumentStatus(name): tokens for name, tokens in config.statuses.synonyms.items()}
    )


def build_payment_methods(config: SalesLedgerConfig) -> PaymentMethodVocabulary:
    return PaymentMethodVocabulary(
        synonyms={PaymentMethod(name): tokens for name, tokens in config.payment_methods.items()}
    )


def build_revenue_policy(config: SalesLedgerConfig) -> RevenuePolicy:
    return RevenuePolicy(
        rules=build_classification_rules(config),
        vocabulary=build_status_vocabulary(config),
        active_statuses=frozenset(DocumentStatus(s) for s in config.statuses.active),
        order_sale_statuses=frozenset(DocumentStatus(s) for s in config.statuses.order_sale),
    )


def duplicate_granularity(config: SalesLedgerConfig) -> DuplicateGranularity:
    return DuplicateGranularity(config.audit.duplicate_granularity)


def build_reference_totals(raw: Mapping[str, Any]) -> ReferenceTotals:
    """``ReferenceTotals`` from ``loader.load_reference_totals`` output."""
    categories: dict[Category, CategoryTotal] = {}
    for name, values in (raw.get("categories") or {}).items():
        amount = values.get("amount")
        categories[Category(name)] = CategoryTotal(
            count=values.get("count"),
            amount=Decimal(amount) if amount is not None else None,
        )
    revenue = raw.get("revenue")
    return ReferenceTotals(
        revenue=Decimal(revenue) if revenue is not None else None,
        categories=categories,
        label=str(raw.get("label", "reference")),
    )
