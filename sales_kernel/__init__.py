"""
Sales Kernel - document classification and payment reconciliation.

Commercial documents (invoices, orders, quotes, credit notes) of a
multi-center optical retail ERP:
- One classifier for the document category
- Append-only payment ledger with a self-healing outstanding balance
- Status derivation with terminal-state protection
- Weighted-average stock costing for COGS
"""

__version__ = "0.1.0"
