"""Tests for weighted-average cost arithmetic."""

from decimal import Decimal

import pytest

from sales_kernel.domain.costing import (
    CostPosition,
    apply_return,
    apply_stock_in,
    apply_stock_out,
    weighted_average,
)
from sales_kernel.exceptions import InvalidQuantityError, InvalidUnitCostError


class TestWeightedAverage:
    def test_five_at_ten_then_five_at_twenty(self):
        position = apply_stock_in(CostPosition(), Decimal("5"), Decimal("10"))
        position = apply_stock_in(position, Decimal("5"), Decimal("20"))
        assert position.quantity == Decimal("10")
        assert position.average_cost == Decimal("15")

    def test_empty_stock_takes_incoming_cost(self):
        assert weighted_average(Decimal("0"), Decimal("99"), Decimal("3"), Decimal("7")) == Decimal("7")

    def test_negative_stock_takes_incoming_cost(self):
        assert weighted_average(Decimal("-2"), Decimal("10"), Decimal("2"), Decimal("30")) == Decimal("30")

    def test_result_is_rounded_to_six_places(self):
        cost = weighted_average(Decimal("1"), Decimal("1"), Decimal("2"), Decimal("1.5"))
        assert cost == Decimal("1.333333")


class TestMovements:
    def test_stock_out_keeps_average_and_reports_it(self):
        position, unit_cost = apply_stock_out(CostPosition(Decimal("10"), Decimal("15")), Decimal("4"))
        assert unit_cost == Decimal("15")
        assert position == CostPosition(Decimal("6"), Decimal("15"))

    def test_stock_out_may_go_negative(self):
        position, _ = apply_stock_out(CostPosition(Decimal("1"), Decimal("8")), Decimal("3"))
        assert position.quantity == Decimal("-2")

    def test_return_reenters_at_average(self):
        position, unit_cost = apply_return(CostPosition(Decimal("6"), Decimal("15")), Decimal("1"))
        assert unit_cost == Decimal("15")
        assert position.quantity == Decimal("7")
        assert position.average_cost == Decimal("15")

    @pytest.mark.parametrize("quantity", [Decimal("0"), Decimal("-1")])
    def test_quantity_must_be_positive(self, quantity):
        with pytest.raises(InvalidQuantityError):
            apply_stock_in(CostPosition(), quantity, Decimal("1"))
        with pytest.raises(InvalidQuantityError):
            apply_stock_out(CostPosition(), quantity)

    def test_negative_unit_cost_refused(self):
        with pytest.raises(InvalidUnitCostError):
            apply_stock_in(CostPosition(), Decimal("1"), Decimal("-0.01"))

    def test_free_goods_are_allowed(self):
        position = apply_stock_in(CostPosition(Decimal("2"), Decimal("10")), Decimal("2"), Decimal("0"))
        assert position.average_cost == Decimal("5")
