"""Services for the sales kernel (write side)."""

from sales_kernel.services.document_audit import (
    DocumentAuditInfo,
    DocumentAuditService,
    DocumentChange,
)
from sales_kernel.services.document_service import DocumentInfo, DocumentService
from sales_kernel.services.payment_ledger import (
    DocumentBalance,
    PaymentInfo,
    PaymentLedgerService,
    PaymentResult,
)
from sales_kernel.services.reclassification import (
    PromotionResult,
    ReclassificationResult,
    ReclassificationService,
)
from sales_kernel.services.status_service import StatusService
from sales_kernel.services.stock_costing import (
    ProductCostInfo,
    StockCostingService,
    StockMovementInfo,
)

__all__ = [
    "DocumentAuditInfo",
    "DocumentAuditService",
    "DocumentBalance",
    "DocumentChange",
    "DocumentInfo",
    "DocumentService",
    "PaymentInfo",
    "PaymentLedgerService",
    "PaymentResult",
    "ProductCostInfo",
    "PromotionResult",
    "ReclassificationResult",
    "ReclassificationService",
    "StatusService",
    "StockCostingService",
    "StockMovementInfo",
]
