"""Tests for the expense providers."""

from datetime import date
from decimal import Decimal

from sales_kernel.domain.window import DateWindow
from sales_services.expenses import FixedExpenseProvider, MonthlyExpenseProvider, NoExpenses

Q1 = DateWindow(date(2024, 1, 1), date(2024, 4, 1))


class TestExpenseProviders:
    def test_no_expenses(self):
        assert NoExpenses().total_for(Q1, None) == Decimal("0")
        assert NoExpenses().by_month(Q1, None) == {}

    def test_fixed_amount_ignores_window(self):
        provider = FixedExpenseProvider("1200.50")
        assert provider.total_for(Q1, "C1") == Decimal("1200.50")
        assert provider.total_for(DateWindow(), None) == Decimal("1200.50")

    def test_monthly_amounts_in_window(self):
        provider = MonthlyExpenseProvider.for_all_centers(
            {"2023-12": "5", "2024-01": "10", "2024-03": "30", "2024-04": "40"}
        )
        assert provider.by_month(Q1, None) == {"2024-01": Decimal("10"), "2024-03": Decimal("30")}
        assert provider.total_for(Q1, "C9") == Decimal("40")

    def test_center_amounts_add_to_shared_ones(self):
        provider = MonthlyExpenseProvider({None: {"2024-02": "10"}, "C1": {"2024-02": "5"}})
        assert provider.by_month(Q1, "C1") == {"2024-02": Decimal("15")}
        assert provider.by_month(Q1, None) == {"2024-02": Decimal("10")}
