"""
Tests for the document classifier.

Covers the fixed decision order, the shared invoice numbering convention
and the refusal of ambiguous vocabularies.
"""

import pytest

from sales_kernel.domain.classification import (
    Category,
    ClassificationRules,
    ClassificationSignals,
    classify,
)
from sales_kernel.exceptions import ClassificationAmbiguousError


def _classify(number, declared_type, status=None, has_payments=False, rules=None):
    signals = ClassificationSignals(number, declared_type, status, has_payments)
    if rules is None:
        return classify(signals)
    return classify(signals, rules)


class TestDecisionOrder:
    def test_credit_note_token_wins_over_everything(self):
        assert _classify("FAC-001", "AVOIR", "VENTE_EN_INSTANCE", True) is Category.CREDIT_NOTE

    def test_pending_sale_status_is_an_order_even_with_invoice_prefix(self):
        assert _classify("FAC-2024-17", "FACTURE", "sale pending invoice") is Category.ORDER

    def test_declared_order_type(self):
        assert _classify("000123", "Bon de commande", "VALIDE") is Category.ORDER

    def test_order_prefix_on_number(self):
        assert _classify("BC-0042", None, None) is Category.ORDER

    def test_order_prefix_beats_invoice_type(self):
        assert _classify("BC-0042", "FACTURE", "VALIDATED") is Category.ORDER

    def test_invoice_prefix(self):
        assert _classify("fac-2024-001", None, None) is Category.INVOICE

    def test_sequence_year_number_is_an_invoice(self):
        assert _classify("85/2024", None, "VALIDE") is Category.INVOICE

    def test_invoice_type_without_invoice_number(self):
        assert _classify("X-17", "facture", "VALIDATED") is Category.INVOICE

    def test_payments_without_invoice_numbering_make_an_order(self):
        assert _classify("X-17", "DEVIS", "VALIDATED", True) is Category.ORDER

    def test_payments_with_invoice_numbering_stay_invoice(self):
        assert _classify("12/2023", "DEVIS", None, True) is Category.INVOICE

    def test_everything_else_is_a_quote(self):
        assert _classify("X-17", "DEVIS", "DEVIS_EN_COURS") is Category.QUOTE
        assert _classify(None, None, None) is Category.QUOTE

    def test_unknown_declared_type_without_signals_is_a_quote(self):
        assert _classify("Q-1", "MYSTERY", None) is Category.QUOTE


class TestRules:
    def test_canonical_type_is_first_token(self):
        rules = ClassificationRules()
        assert rules.canonical_type(Category.INVOICE) == "FACTURE"
        assert rules.canonical_type(Category.ORDER) == "BON_COMMANDE"

    def test_numbering_convention(self):
        rules = ClassificationRules()
        assert rules.matches_invoice_numbering("FAC123")
        assert rules.matches_invoice_numbering(" 7/2022 ")
        assert not rules.matches_invoice_numbering("7/22")
        assert not rules.matches_invoice_numbering(None)
        assert not rules.matches_invoice_numbering("")

    def test_custom_prefixes(self):
        rules = ClassificationRules(invoice_prefixes=("INV",), order_prefixes=("PO",))
        assert _classify("INV-1", None, None, rules=rules) is Category.INVOICE
        assert _classify("PO-1", None, None, rules=rules) is Category.ORDER
        assert _classify("FAC-1", None, None, rules=rules) is Category.QUOTE

    def test_token_in_two_categories_is_refused(self):
        with pytest.raises(ClassificationAmbiguousError) as exc_info:
            ClassificationRules(
                type_synonyms={
                    Category.INVOICE: ("FACTURE",),
                    Category.ORDER: ("facture",),
                }
            )
        assert exc_info.value.code == "CLASSIFICATION_AMBIGUOUS"
        assert exc_info.value.categories == ["INVOICE", "ORDER"]

    def test_prefix_in_both_lists_is_refused(self):
        with pytest.raises(ClassificationAmbiguousError):
            ClassificationRules(invoice_prefixes=("FAC",), order_prefixes=("fac",))


class TestDeterminism:
    def test_same_input_same_answer(self):
        signals = ClassificationSignals("BC-1", "FACTURE", "PAYEE", True)
        assert classify(signals) is classify(signals)
