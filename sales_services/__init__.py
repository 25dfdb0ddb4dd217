"""
Imperative shell of the sales ledger.

Reporting (revenue / COGS / profit), the audit reporter, expense
providers and the ``SalesLedgerApi`` facade that owns transactions.
"""

from sales_services.api import SalesLedgerApi
from sales_services.audit_service import AuditService
from sales_services.expenses import (
    ExpenseProvider,
    FixedExpenseProvider,
    MonthlyExpenseProvider,
    NoExpenses,
)
from sales_services.reporting_service import ReportingService

__all__ = [
    "AuditService",
    "ExpenseProvider",
    "FixedExpenseProvider",
    "MonthlyExpenseProvider",
    "NoExpenses",
    "ReportingService",
    "SalesLedgerApi",
]
