"""
Expense providers for net-profit computation.

Expenses are an external input: the ledger never computes them.  A
provider answers "how much was spent in this window" and, for the monthly
profit evolution, "how much per month".
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date
from decimal import Decimal
from typing import Protocol

from sales_kernel.domain.values import ZERO, to_decimal
from sales_kernel.domain.window import DateWindow


class ExpenseProvider(Protocol):
    def total_for(self, window: DateWindow, center_id: str | None) -> Decimal:
        ...

    def by_month(self, window: DateWindow, center_id: str | None) -> Mapping[str, Decimal]:
        ...


class NoExpenses:
    """Gross margin equals net profit."""

    def total_for(self, window: DateWindow, center_id: str | None) -> Decimal:
        return ZERO

    def by_month(self, window: DateWindow, center_id: str | None) -> Mapping[str, Decimal]:
        return {}


class FixedExpenseProvider:
    """
    One amount for any window.

    Has no monthly split, so the profit evolution shows no expenses.
    """

    def __init__(self, amount: Decimal | int | str):
        self.amount = to_decimal(amount)

    def total_for(self, window: DateWindow, center_id: str | None) -> Decimal:
        return self.amount

    def by_month(self, window: DateWindow, center_id: str | None) -> Mapping[str, Decimal]:
        return {}


class MonthlyExpenseProvider:
    """
    Expenses booked per month ("YYYY-MM"), optionally per center.

    A month belongs to a window when its first day does.  Amounts keyed
    under center None apply to every center query.
    """

    def __init__(self, amounts: Mapping[str | None, Mapping[str, Decimal | int | str]]):
        self._amounts = {
            center: {month: to_decimal(value) for month, value in months.items()}
            for center, months in amounts.items()
        }

    @classmethod
    def for_all_centers(cls, months: Mapping[str, Decimal | int | str]) -> MonthlyExpenseProvider:
        return cls({None: months})

    def by_month(self, window: DateWindow, center_id: str | None) -> Mapping[str, Decimal]:
        result: dict[str, Decimal] = {}
        sources = [self._amounts.get(None, {})]
        if center_id is not None:
            sources.append(self._amounts.get(center_id, {}))
        for months in sources:
            for month, amount in months.items():
                year, number = (int(part) for part in month.split("-"))
                if window.contains(date(year, number, 1)):
                    result[month] = result.get(month, ZERO) + amount
        return dict(sorted(result.items()))

    def total_for(self, window: DateWindow, center_id: str | None) -> Decimal:
        return sum(self.by_month(window, center_id).values(), ZERO)
