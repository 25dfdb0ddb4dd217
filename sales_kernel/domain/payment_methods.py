"""
Payment method vocabulary.

Canonical methods are CASH, CARD, CHECK, TRANSFER and OTHER.  Legacy tokens
(ESPECES, CARTE, CHEQUE, VIREMENT, ...) are accepted as synonyms; anything
else is rejected so the method breakdown never grows a bucket per typo.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Mapping

from sales_kernel.domain.values import normalize_token
from sales_kernel.exceptions import InvalidPaymentMethodError


class PaymentMethod(str, Enum):
    CASH = "CASH"
    CARD = "CARD"
    CHECK = "CHECK"
    TRANSFER = "TRANSFER"
    OTHER = "OTHER"


_DEFAULT_METHOD_SYNONYMS: Mapping[PaymentMethod, tuple[str, ...]] = {
    PaymentMethod.CASH: ("ESPECES", "ESPECE", "LIQUIDE"),
    PaymentMethod.CARD: ("CARTE", "CB", "TPE", "CARTE_BANCAIRE"),
    PaymentMethod.CHECK: ("CHEQUE", "CHQ"),
    PaymentMethod.TRANSFER: ("VIREMENT", "VIR"),
    PaymentMethod.OTHER: ("AUTRE",),
}


@dataclass(frozen=True)
class PaymentMethodVocabulary:
    """Synonym table resolving raw method tokens to ``PaymentMethod``."""

    synonyms: Mapping[PaymentMethod, tuple[str, ...]] = field(
        default_factory=lambda: dict(_DEFAULT_METHOD_SYNONYMS)
    )

    def __post_init__(self) -> None:
        index: dict[str, PaymentMethod] = {m.value: m for m in PaymentMethod}
        for method, tokens in self.synonyms.items():
            for raw in tokens:
                index[normalize_token(raw)] = PaymentMethod(method)
        object.__setattr__(self, "_index", MappingProxyType(index))

    def resolve(self, raw: str | PaymentMethod | None) -> PaymentMethod:
        """
        Canonical method for ``raw``.

        Raises:
            InvalidPaymentMethodError: unknown or empty token.
        """
        if isinstance(raw, PaymentMethod):
            return raw
        method = self._index.get(normalize_token(raw))
        if method is None:
            raise InvalidPaymentMethodError(raw)
        return method


DEFAULT_PAYMENT_METHODS = PaymentMethodVocabulary()
