"""Read-only query selectors for the sales kernel."""

from sales_kernel.selectors.base import BaseSelector
from sales_kernel.selectors.document_selector import DocumentSelector
from sales_kernel.selectors.payment_selector import PaymentSelector
from sales_kernel.selectors.stock_selector import StockSelector

__all__ = [
    "BaseSelector",
    "DocumentSelector",
    "PaymentSelector",
    "StockSelector",
]
