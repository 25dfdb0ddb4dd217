"""
Property-based tests for the classification, status, costing and ledger
invariants.

Boundaries fuzzed here:
- Classifier: arbitrary numbers, declared types and statuses always give
  exactly one category; credit notes and pending sales win.
- Status derivation: CANCELLED / ARCHIVED never move, whatever the balance.
- Weighted average: stays between the old and the incoming cost.
- Windows: every spelling of "no filter" contains the same dates.
- Payment ledger: random payment sequences never overpay and the stored
  balance always equals total minus recorded payments.
"""

from datetime import date
from decimal import Decimal

import pytest
from hypothesis import HealthCheck, assume, given, settings
from hypothesis import strategies as st

from sales_kernel.domain.classification import Category, ClassificationSignals, classify
from sales_kernel.domain.costing import weighted_average
from sales_kernel.domain.status import DocumentStatus, derive_status
from sales_kernel.domain.values import quantize_cost
from sales_kernel.domain.window import DateWindow
from sales_kernel.exceptions import OverpaymentRejectedError

TYPE_TOKENS = st.sampled_from([
    None, "", "FACTURE", "Facture", "bon de commande", "BC", "DEVIS", "AVOIR",
    "credit-note", "ORDER", "proforma", "ticket",
])
NUMBERS = st.one_of(
    st.none(),
    st.text(max_size=12),
    st.sampled_from(["FAC-1", "fac 2024/3", "BC-9", "85/2024", "  12/2024 ", "AV-1", "DV-3"]),
)
STATUSES = st.one_of(
    st.none(),
    st.text(max_size=10),
    st.sampled_from([s.value for s in DocumentStatus] + ["vente en instance", "Validee", "ANNULE"]),
)
AMOUNTS = st.decimals(min_value=Decimal("0"), max_value=Decimal("100000"), places=2)
COSTS = st.decimals(min_value=Decimal("0"), max_value=Decimal("5000"), places=2)
QUANTITIES = st.integers(min_value=1, max_value=500).map(Decimal)


class TestClassifierProperties:
    @given(number=NUMBERS, declared_type=TYPE_TOKENS, status=STATUSES, has_payments=st.booleans())
    def test_exactly_one_category(self, number, declared_type, status, has_payments):
        result = classify(ClassificationSignals(number, declared_type, status, has_payments))
        assert isinstance(result, Category)

    @given(number=NUMBERS, status=STATUSES, has_payments=st.booleans())
    def test_credit_note_declaration_wins(self, number, status, has_payments):
        signals = ClassificationSignals(number, "AVOIR", status, has_payments)
        assert classify(signals) is Category.CREDIT_NOTE

    @given(number=NUMBERS, declared_type=TYPE_TOKENS, has_payments=st.booleans())
    def test_pending_sale_is_an_order(self, number, declared_type, has_payments):
        assume(declared_type not in ("AVOIR", "credit-note"))
        signals = ClassificationSignals(number, declared_type, "VENTE_EN_INSTANCE", has_payments)
        assert classify(signals) is Category.ORDER

    @given(number=NUMBERS, declared_type=TYPE_TOKENS, status=STATUSES, has_payments=st.booleans())
    def test_deterministic(self, number, declared_type, status, has_payments):
        signals = ClassificationSignals(number, declared_type, status, has_payments)
        assert classify(signals) is classify(signals)


class TestStatusProperties:
    @given(
        category=st.sampled_from(list(Category)),
        total=AMOUNTS,
        outstanding=st.decimals(min_value=Decimal("-1000"), max_value=Decimal("100000"), places=2),
        terminal=st.sampled_from(["CANCELLED", "ARCHIVED", "annulee", "archive"]),
    )
    def test_terminal_statuses_never_move(self, category, total, outstanding, terminal):
        result = derive_status(category=category, total=total, outstanding=outstanding, current=terminal)
        assert result in (DocumentStatus.CANCELLED, DocumentStatus.ARCHIVED)

    @given(total=AMOUNTS.filter(lambda t: t > 0), paid=AMOUNTS)
    def test_paid_iff_nothing_outstanding(self, total, paid):
        assume(paid <= total)
        result = derive_status(
            category=Category.INVOICE, total=total, outstanding=total - paid, current="VALIDATED"
        )
        assert (result is DocumentStatus.PAID) == (paid == total)


class TestCostingProperties:
    @given(q_old=QUANTITIES, c_old=COSTS, q_new=QUANTITIES, c_new=COSTS)
    def test_average_between_costs(self, q_old, c_old, q_new, c_new):
        average = weighted_average(q_old, c_old, q_new, c_new)
        low, high = sorted((quantize_cost(c_old), quantize_cost(c_new)))
        assert low <= average <= high

    @given(q_new=QUANTITIES, c_new=COSTS, c_old=COSTS)
    def test_empty_stock_takes_incoming_cost(self, q_new, c_new, c_old):
        assert weighted_average(Decimal("0"), c_old, q_new, c_new) == c_new


class TestWindowProperties:
    @given(day=st.dates())
    def test_unbounded_spellings_agree(self, day):
        assert DateWindow().contains(day)
        assert DateWindow(date.min, date.max).contains(day)
        assert DateWindow.coerce(None) == DateWindow(date.min, date.max)

    @given(start=st.dates(), length=st.integers(min_value=0, max_value=400), day=st.dates())
    def test_half_open(self, start, length, day):
        assume(start.toordinal() + length < date.max.toordinal())
        end = date.fromordinal(start.toordinal() + length)
        window = DateWindow(start, end)
        assert window.contains(day) == (start <= day < end)


class TestLedgerProperties:
    @settings(
        max_examples=25,
        deadline=None,
        suppress_health_check=[HealthCheck.function_scoped_fixture],
    )
    @given(
        total=st.decimals(min_value=Decimal("1"), max_value=Decimal("5000"), places=2),
        payments=st.lists(st.decimals(min_value=Decimal("0.01"), max_value=Decimal("3000"), places=2), max_size=8),
    )
    def test_never_overpaid(self, make_document, ledger, test_actor_id, total, payments):
        doc = make_document(total=total)
        accepted = Decimal("0")
        for amount in payments:
            try:
                ledger.apply_payment(doc.id, amount, "CASH", test_actor_id)
            except OverpaymentRejectedError:
                assert accepted + amount > total
            else:
                accepted += amount

        balance = ledger.recompute_balance(doc.id)
        assert accepted <= total
        assert balance.paid_to_date == accepted
        assert balance.outstanding_balance == total - accepted
