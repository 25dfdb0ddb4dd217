"""
Configuration Validator (``sales_config.validator``).

Responsibility
--------------
Checks a parsed ``SalesLedgerConfig`` before it is turned into kernel rule
objects, so a bad vocabulary fails with every problem listed at once
instead of the first exception.

Invariants enforced
-------------------
* Every category has at least one declared-type token.
* No declared-type token belongs to two categories, and no number prefix
  is both an invoice and an order prefix.
* The invoice number pattern compiles.
* Status and payment-method names are canonical.
* Policy numbers are in range.

Failure modes
-------------
* ``ConfigValidationResult.errors`` non-empty -> the configuration MUST
  NOT be used.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

from sales_config.schema import SalesLedgerConfig
from sales_kernel.domain.payment_methods import PaymentMethod
from sales_kernel.domain.status import DocumentStatus
from sales_kernel.domain.values import normalize_token

_GRANULARITIES = ("minute", "hour", "day")


@dataclass
class ConfigValidationResult:
    """
    Result of configuration validation.

    ``is_valid`` is True only when ``errors`` is empty.
    """

    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.errors) == 0

    def add_error(self, msg: str) -> None:
        self.errors.append(msg)

    def add_warning(self, msg: str) -> None:
        self.warnings.append(msg)


def validate_configuration(config: SalesLedgerConfig) -> ConfigValidationResult:
    result = ConfigValidationResult()

    _validate_document_types(config, result)
    _validate_numbering(config, result)
    _validate_statuses(config, result)
    _validate_payment_methods(config, result)
    _validate_policies(config, result)

    return result


def _validate_document_types(config: SalesLedgerConfig, result: ConfigValidationResult) -> None:
    owners: dict[str, str] = {}
    types = config.document_types
    for category, tokens in (
        ("invoice", types.invoice),
        ("order", types.order),
        ("quote", types.quote),
        ("credit_note", types.credit_note),
    ):
        if not tokens:
            result.add_error(f"document_types.{category}: no tokens configured")
        for raw in tokens:
            token = normalize_token(raw)
            owner = owners.get(token)
            if owner is not None and owner != category:
                result.add_error(
                    f"document_types: token {raw!r} is configured for both {owner} and {category}"
                )
            owners[token] = category


def _validate_numbering(config: SalesLedgerConfig, result: ConfigValidationResult) -> None:
    numbering = config.numbering
    invoice = {p.strip().upper() for p in numbering.invoice_prefixes}
    order = {p.strip().upper() for p in numbering.order_prefixes}
    for prefix in sorted(invoice & order):
        result.add_error(f"numbering: prefix {prefix!r} is both an invoice and an order prefix")
    if "" in invoice | order:
        result.add_error("numbering: empty prefix")
    try:
        re.compile(numbering.invoice_number_pattern)
    except re.error as exc:
        result.add_error(f"numbering.invoice_number_pattern: {exc}")


def _validate_statuses(config: SalesLedgerConfig, result: ConfigValidationResult) -> None:
    canonical = {s.value for s in DocumentStatus}
    statuses = config.statuses
    for name in statuses.synonyms:
        if name not in canonical:
            result.add_error(f"statuses.synonyms: unknown status {name!r}")
    for section, values in (("active", statuses.active), ("order_sale", statuses.order_sale)):
        for name in values:
            if name not in canonical:
                result.add_error(f"statuses.{section}: unknown status {name!r}")
            elif name in (DocumentStatus.CANCELLED.value, DocumentStatus.ARCHIVED.value):
                result.add_error(f"statuses.{section}: terminal status {name!r} cannot count as a sale")
    if not statuses.active:
        result.add_warning("statuses.active is empty; no invoice will count as revenue")


def _validate_payment_methods(config: SalesLedgerConfig, result: ConfigValidationResult) -> None:
    canonical = {m.value for m in PaymentMethod}
    owners: dict[str, str] = {}
    for name, tokens in config.payment_methods.items():
        if name not in canonical:
            result.add_error(f"payment_methods: unknown method {name!r}")
        for raw in tokens:
            token = normalize_token(raw)
            if token in owners and owners[token] != name:
                result.add_error(
                    f"payment_methods: token {raw!r} maps to both {owners[token]} and {name}"
                )
            owners[token] = name


def _validate_policies(config: SalesLedgerConfig, result: ConfigValidationResult) -> None:
    if config.ledger.max_retries < 0:
        result.add_error("ledger.max_retries must be >= 0")
    if config.ledger.money_tolerance < 0:
        result.add_error("ledger.money_tolerance must be >= 0")
    if config.audit.duplicate_granularity not in _GRANULARITIES:
        result.add_error(
            f"audit.duplicate_granularity must be one of {', '.join(_GRANULARITIES)}"
        )
    if config.audit.listing_limit <= 0:
        result.add_error("audit.listing_limit must be > 0")
