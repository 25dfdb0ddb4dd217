"""
Classification -- the single document classifier.

Responsibility:
    Maps a commercial document's loosely-controlled signals (free-text
    number, declared type, status, and whether payments exist) to exactly
    one ``Category``.  Every caller that needs a document's category goes
    through ``classify``; nothing else re-derives it.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Decision order (first match wins, order is fixed):
    1. declared type is a credit-note token          -> CREDIT_NOTE
    2. status is "sale pending invoice"               -> ORDER
    3. declared type is an order token, or the number
       carries an order prefix                        -> ORDER
    4. number follows the invoice numbering convention,
       or declared type is an invoice token           -> INVOICE
    5. has payments and number is not invoice-numbered -> ORDER
    6. otherwise                                      -> QUOTE

    The invoice numbering convention is an invoice prefix ("FAC...") or the
    sequence/year form ("85/2024").  Rules 4 and 5 share it.

Invariants enforced:
    - Exhaustive: every input yields one of the four categories.
    - Deterministic: the result depends only on the inputs and the rules.
    - Unambiguous vocabulary: a token or prefix configured for two
      categories is refused when the rules are built.

Failure modes:
    - ClassificationAmbiguousError from ClassificationRules construction.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from sales_kernel.domain.values import normalize_token
from sales_kernel.exceptions import ClassificationAmbiguousError


class Category(str, Enum):
    """Mutually exclusive document categories."""

    INVOICE = "invoice"
    ORDER = "order"
    QUOTE = "quote"
    CREDIT_NOTE = "credit_note"


_DEFAULT_TYPE_SYNONYMS: Mapping[Category, tuple[str, ...]] = {
    Category.INVOICE: ("FACTURE", "INVOICE"),
    Category.ORDER: ("BON_COMMANDE", "BON_DE_COMMANDE", "BON_COMM", "BC", "ORDER"),
    Category.QUOTE: ("DEVIS", "QUOTE"),
    Category.CREDIT_NOTE: ("AVOIR", "CREDIT_NOTE"),
}

_DEFAULT_PENDING_STATUSES = ("VENTE_EN_INSTANCE", "ORDER_PENDING", "SALE_PENDING_INVOICE")


@dataclass(frozen=True)
class ClassificationSignals:
    """The inputs the classifier is allowed to look at."""

    number: str | None
    declared_type: str | None
    status: str | None
    has_payments: bool = False


@dataclass(frozen=True)
class ClassificationRules:
    """
    Vocabulary and numbering conventions used by ``classify``.

    Contract:
        Tokens are compared after ``normalize_token``.  Prefixes are compared
        against the upper-cased, trimmed document number.

    Guarantees:
        - No declared-type token belongs to two categories.
        - No number prefix is both an invoice and an order prefix.
    """

    type_synonyms: Mapping[Category, tuple[str, ...]] = field(
        default_factory=lambda: dict(_DEFAULT_TYPE_SYNONYMS)
    )
    invoice_prefixes: tuple[str, ...] = ("FAC",)
    order_prefixes: tuple[str, ...] = ("BC",)
    invoice_number_pattern: str = r"^\d+/\d{4}$"
    pending_sale_statuses: tuple[str, ...] = _DEFAULT_PENDING_STATUSES

    def __post_init__(self) -> None:
        token_index: dict[str, Category] = {}
        for category, tokens in self.type_synonyms.items():
            for raw in tokens:
                token = normalize_token(raw)
                owner = token_index.get(token)
                if owner is not None and owner != category:
                    raise ClassificationAmbiguousError(
                        raw, sorted([owner.name, Category(category).name])
                    )
                token_index[token] = Category(category)
        object.__setattr__(self, "_token_index", MappingProxyType(token_index))

        invoice = {p.strip().upper() for p in self.invoice_prefixes}
        order = {p.strip().upper() for p in self.order_prefixes}
        for prefix in sorted(invoice & order):
            raise ClassificationAmbiguousError(
                prefix, [Category.INVOICE.name, Category.ORDER.name]
            )
        object.__setattr__(self, "_invoice_prefixes", tuple(sorted(invoice)))
        object.__setattr__(self, "_order_prefixes", tuple(sorted(order)))
        object.__setattr__(
            self, "_invoice_pattern", re.compile(self.invoice_number_pattern)
        )
        object.__setattr__(
            self,
            "_pending",
            frozenset(normalize_token(s) for s in self.pending_sale_statuses),
        )

    def category_for_type(self, declared_type: str | None) -> Category | None:
        """Category named by a declared-type token, or None if unrecognised."""
        return self._token_index.get(normalize_token(declared_type))

    def canonical_type(self, category: Category) -> str:
        """First configured token for ``category`` (written on reclassification)."""
        tokens = self.type_synonyms.get(category, ())
        if not tokens:
            return category.name
        return normalize_token(tokens[0])

    def is_pending_sale(self, status: str | None) -> bool:
        return normalize_token(status) in self._pending

    def has_order_prefix(self, number: str | None) -> bool:
        text = _clean_number(number)
        return bool(text) and text.startswith(self._order_prefixes)

    def matches_invoice_numbering(self, number: str | None) -> bool:
        """Invoice prefix or sequence/year ("85/2024")."""
        text = _clean_number(number)
        if not text:
            return False
        if text.startswith(self._invoice_prefixes):
            return True
        return self._invoice_pattern.match(text) is not None


def _clean_number(number: str | None) -> str:
    return (number or "").strip().upper()


DEFAULT_CLASSIFICATION_RULES = ClassificationRules()


def classify(
    signals: ClassificationSignals,
    rules: ClassificationRules = DEFAULT_CLASSIFICATION_RULES,
) -> Category:
    """
    Classify a document.  The only place a category is derived.

    Args:
        signals: number, declared type, status and payment presence.
        rules: vocabulary and numbering conventions.

    Returns:
        Exactly one Category.
    """
    declared = rules.category_for_type(signals.declared_type)

    if declared is Category.CREDIT_NOTE:
        return Category.CREDIT_NOTE

    if rules.is_pending_sale(signals.status):
        return Category.ORDER

    if declared is Category.ORDER or rules.has_order_prefix(signals.number):
        return Category.ORDER

    invoice_numbered = rules.matches_invoice_numbering(signals.number)
    if invoice_numbered or declared is Category.INVOICE:
        return Category.INVOICE

    if signals.has_payments and not invoice_numbered:
        return Category.ORDER

    return Category.QUOTE
