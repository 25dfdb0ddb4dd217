"""Tests for money helpers, token normalization and date windows."""

from datetime import date, datetime
from decimal import Decimal

import pytest

from sales_kernel.domain.payment_methods import PaymentMethod, PaymentMethodVocabulary
from sales_kernel.domain.values import (
    from_db,
    normalize_token,
    quantize_money,
    to_decimal,
)
from sales_kernel.domain.window import DateWindow
from sales_kernel.exceptions import InvalidPaymentMethodError, InvalidWindowError


class TestValues:
    def test_to_decimal_accepts_int_str_decimal(self):
        assert to_decimal(5) == Decimal("5")
        assert to_decimal(" 12,50 ") == Decimal("12.50")
        assert to_decimal(Decimal("1.1")) == Decimal("1.1")

    def test_floats_are_refused(self):
        with pytest.raises(TypeError):
            to_decimal(0.1)

    def test_garbage_string(self):
        with pytest.raises(ValueError):
            to_decimal("twelve")

    def test_quantize_half_up(self):
        assert quantize_money(Decimal("2.345")) == Decimal("2.35")
        assert quantize_money(Decimal("-2.345")) == Decimal("-2.35")

    def test_from_db(self):
        assert from_db(None) == Decimal("0")
        assert from_db(3) == Decimal("3")
        assert from_db(0.5) == Decimal("0.5")

    def test_normalize_token(self):
        assert normalize_token(" Bon-de  commande ") == "BON_DE_COMMANDE"
        assert normalize_token(None) == ""


class TestDateWindow:
    def test_half_open(self):
        window = DateWindow(date(2024, 1, 1), date(2024, 2, 1))
        assert window.contains(date(2024, 1, 1))
        assert window.contains(datetime(2024, 1, 31, 23, 59))
        assert not window.contains(date(2024, 2, 1))

    def test_undated_only_in_unbounded(self):
        assert DateWindow().contains(None)
        assert not DateWindow(date(2024, 1, 1), None).contains(None)

    def test_infinite_bounds_equal_no_filter(self):
        assert DateWindow(date.min, date.max) == DateWindow()
        assert DateWindow(date.min, date.max).is_unbounded
        assert DateWindow.coerce(None) == DateWindow.unbounded()

    def test_inverted_window_rejected(self):
        with pytest.raises(InvalidWindowError):
            DateWindow(date(2024, 2, 1), date(2024, 1, 1))

    def test_describe(self):
        assert DateWindow(date(2024, 1, 1), None).describe() == {"start": "2024-01-01", "end": None}


class TestPaymentMethods:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("especes", PaymentMethod.CASH),
            ("CB", PaymentMethod.CARD),
            ("tpe", PaymentMethod.CARD),
            ("Chèque", None),
            ("cheque", PaymentMethod.CHECK),
            ("virement", PaymentMethod.TRANSFER),
            ("autre", PaymentMethod.OTHER),
            ("CARD", PaymentMethod.CARD),
        ],
    )
    def test_resolve(self, raw, expected):
        vocabulary = PaymentMethodVocabulary()
        if expected is None:
            with pytest.raises(InvalidPaymentMethodError):
                vocabulary.resolve(raw)
        else:
            assert vocabulary.resolve(raw) is expected

    def test_empty_method_refused(self):
        with pytest.raises(InvalidPaymentMethodError):
            PaymentMethodVocabulary().resolve(None)
