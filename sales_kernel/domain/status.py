"""
Status derivation -- the document lifecycle state machine.

Responsibility:
    Maps (category, total, outstanding balance, current status) to the
    lifecycle status a document should carry after a payment-ledger
    mutation, and normalizes the legacy status vocabulary.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - CANCELLED and ARCHIVED are terminal: ``derive_status`` returns them
      unchanged.  Only administrative actions enter or leave them.
    - A zero-total document never becomes PAID through the balance rule.
    - ORDER_PENDING ("sale pending invoice") is kept through balance
      transitions, so a payment never changes a document's category.
    - DRAFT is kept while no payment has been recorded.

Transition rule (non-terminal):
    total > 0 and outstanding <= 0        -> PAID
    0 < outstanding < total               -> PARTIALLY_PAID
    otherwise (no payment, zero total)    -> category default

ORDER_PENDING is an exception to the PAID row: a fully paid pending sale
stays ORDER_PENDING.  The legacy payment flow overwrote it with PAID, which
dropped the "sale pending invoice" signal and let a FAC-numbered pending
sale reclassify itself as an INVOICE on its last payment.  Promotion goes
through ReclassificationService instead.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from sales_kernel.domain.classification import Category
from sales_kernel.domain.values import normalize_token


class DocumentStatus(str, Enum):
    """Canonical lifecycle states."""

    DRAFT = "DRAFT"
    QUOTE_UNCONFIRMED = "QUOTE_UNCONFIRMED"
    VALIDATED = "VALIDATED"
    PARTIALLY_PAID = "PARTIALLY_PAID"
    PAID = "PAID"
    ORDER_PENDING = "ORDER_PENDING"
    CANCELLED = "CANCELLED"
    ARCHIVED = "ARCHIVED"


TERMINAL_STATUSES = frozenset({DocumentStatus.CANCELLED, DocumentStatus.ARCHIVED})

# Statuses kept as long as no payment exists
_STICKY_WITHOUT_PAYMENT = frozenset({DocumentStatus.DRAFT, DocumentStatus.ORDER_PENDING})

_DEFAULT_STATUS_SYNONYMS: Mapping[DocumentStatus, tuple[str, ...]] = {
    DocumentStatus.DRAFT: ("BROUILLON",),
    DocumentStatus.QUOTE_UNCONFIRMED: ("DEVIS_EN_COURS", "DEVIS_SANS_PAIEMENT", "EN_ATTENTE"),
    DocumentStatus.VALIDATED: ("VALIDE", "VALIDEE"),
    DocumentStatus.PARTIALLY_PAID: ("PARTIEL", "PARTIELLEMENT_PAYEE"),
    DocumentStatus.PAID: ("PAYEE", "SOLDEE", "ENCAISSE"),
    DocumentStatus.ORDER_PENDING: ("VENTE_EN_INSTANCE", "SALE_PENDING_INVOICE"),
    DocumentStatus.CANCELLED: ("ANNULEE", "ANNULE"),
    DocumentStatus.ARCHIVED: ("ARCHIVE", "ARCHIVEE"),
}


@dataclass(frozen=True)
class StatusVocabulary:
    """
    Legacy status strings recognised as synonyms of canonical statuses.

    Canonical names always normalize to themselves.  Unknown strings
    normalize to None and are treated as non-terminal and non-active.
    """

    synonyms: Mapping[DocumentStatus, tuple[str, ...]] = field(
        default_factory=lambda: dict(_DEFAULT_STATUS_SYNONYMS)
    )

    def __post_init__(self) -> None:
        index: dict[str, DocumentStatus] = {s.value: s for s in DocumentStatus}
        for status, tokens in self.synonyms.items():
            for raw in tokens:
                index[normalize_token(raw)] = DocumentStatus(status)
        object.__setattr__(self, "_index", MappingProxyType(index))

    def normalize(self, raw: str | None) -> DocumentStatus | None:
        if raw is None:
            return None
        return self._index.get(normalize_token(raw))


DEFAULT_STATUS_VOCABULARY = StatusVocabulary()


def default_status_for(category: Category) -> DocumentStatus:
    """Status of a document in ``category`` with no payment recorded."""
    if category is Category.QUOTE:
        return DocumentStatus.QUOTE_UNCONFIRMED
    return DocumentStatus.VALIDATED


def is_terminal(
    status: str | None,
    vocabulary: StatusVocabulary = DEFAULT_STATUS_VOCABULARY,
) -> bool:
    return vocabulary.normalize(status) in TERMINAL_STATUSES


def derive_status(
    *,
    category: Category,
    total: Decimal,
    outstanding: Decimal,
    current: str | None,
    vocabulary: StatusVocabulary = DEFAULT_STATUS_VOCABULARY,
) -> DocumentStatus:
    """
    Status after a balance change.

    Args:
        category: document category from ``classify``.
        total: document total (tax inclusive).
        outstanding: total minus payments recorded.
        current: stored status, canonical or legacy.
        vocabulary: legacy status synonyms.

    Returns:
        The derived canonical status.  Terminal statuses come back unchanged.
    """
    normalized = vocabulary.normalize(current)

    if normalized in TERMINAL_STATUSES:
        return normalized

    if normalized is DocumentStatus.ORDER_PENDING:
        return normalized

    if total > 0 and outstanding <= 0:
        return DocumentStatus.PAID

    if total > 0 and 0 < outstanding < total:
        return DocumentStatus.PARTIALLY_PAID

    if normalized in _STICKY_WITHOUT_PAYMENT:
        return normalized

    return default_status_for(category)
