"""ORM models for the sales kernel."""

from sales_kernel.models.audit_record import AuditAction, DocumentAuditRecord
from sales_kernel.models.document import Document
from sales_kernel.models.payment import Payment
from sales_kernel.models.stock import MovementType, Product, StockMovement

__all__ = [
    "AuditAction",
    "Document",
    "DocumentAuditRecord",
    "MovementType",
    "Payment",
    "Product",
    "StockMovement",
]
