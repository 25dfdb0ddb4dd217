"""Tests for status derivation and the legacy status vocabulary."""

from decimal import Decimal

import pytest

from sales_kernel.domain.classification import Category
from sales_kernel.domain.status import (
    DocumentStatus,
    StatusVocabulary,
    default_status_for,
    derive_status,
    is_terminal,
)


def _derive(total, outstanding, current, category=Category.INVOICE):
    return derive_status(
        category=category,
        total=Decimal(total),
        outstanding=Decimal(outstanding),
        current=current,
    )


class TestBalanceRule:
    def test_fully_paid(self):
        assert _derive("1000", "0", "VALIDATED") is DocumentStatus.PAID

    def test_partially_paid(self):
        assert _derive("1000", "600", "VALIDATED") is DocumentStatus.PARTIALLY_PAID

    def test_no_payment_gives_category_default(self):
        assert _derive("1000", "1000", "PARTIALLY_PAID") is DocumentStatus.VALIDATED
        assert _derive("1000", "1000", None, Category.QUOTE) is DocumentStatus.QUOTE_UNCONFIRMED

    def test_zero_total_never_becomes_paid(self):
        assert _derive("0", "0", "VALIDATED") is DocumentStatus.VALIDATED

    def test_draft_kept_without_payment(self):
        assert _derive("1000", "1000", "BROUILLON") is DocumentStatus.DRAFT

    def test_draft_left_once_paid(self):
        assert _derive("1000", "400", "DRAFT") is DocumentStatus.PARTIALLY_PAID

    def test_order_pending_kept_through_payments(self):
        assert _derive("1000", "0", "VENTE_EN_INSTANCE", Category.ORDER) is DocumentStatus.ORDER_PENDING


class TestTerminalStatuses:
    @pytest.mark.parametrize("status", ["CANCELLED", "ANNULEE", "ARCHIVED", "archive"])
    def test_terminal_is_returned_unchanged(self, status):
        result = _derive("1000", "0", status)
        assert result in (DocumentStatus.CANCELLED, DocumentStatus.ARCHIVED)
        assert is_terminal(status)

    def test_unknown_status_is_not_terminal(self):
        assert not is_terminal("EN_LITIGE")
        assert _derive("1000", "1000", "EN_LITIGE") is DocumentStatus.VALIDATED


class TestVocabulary:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Brouillon", DocumentStatus.DRAFT),
            ("validée", None),
            ("VALIDEE", DocumentStatus.VALIDATED),
            ("partiel", DocumentStatus.PARTIALLY_PAID),
            ("soldee", DocumentStatus.PAID),
            ("encaisse", DocumentStatus.PAID),
            ("vente en instance", DocumentStatus.ORDER_PENDING),
            ("devis sans paiement", DocumentStatus.QUOTE_UNCONFIRMED),
            ("PAID", DocumentStatus.PAID),
            ("unknown", None),
            (None, None),
        ],
    )
    def test_normalize(self, raw, expected):
        assert StatusVocabulary().normalize(raw) is expected

    def test_default_status(self):
        assert default_status_for(Category.QUOTE) is DocumentStatus.QUOTE_UNCONFIRMED
        assert default_status_for(Category.INVOICE) is DocumentStatus.VALIDATED
        assert default_status_for(Category.CREDIT_NOTE) is DocumentStatus.VALIDATED
