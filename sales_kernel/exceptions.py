"""
Typed exception hierarchy for the sales kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Every rejection the ledger produces has to reach the caller with a specific
reason. Callers catch by type, read a machine-readable ``code``, and pull the
structured attributes (document id, requested amount, outstanding balance)
instead of parsing messages:

    try:
        ledger.apply_payment(document_id, amount, "CASH", paid_at, actor_id)
    except OverpaymentRejectedError as e:
        return {"error": e.code, "outstanding": str(e.outstanding)}

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    SalesKernelError (base)
    |
    +-- NotFoundError
    |   +-- DocumentNotFoundError
    |   +-- PaymentNotFoundError
    |   +-- ProductNotFoundError
    |   +-- StockMovementNotFoundError
    |   +-- AuditRecordNotFoundError
    |
    +-- PaymentError
    |   +-- InvalidAmountError
    |   +-- OverpaymentRejectedError
    |   +-- InvalidPaymentTargetError
    |   +-- InvalidPaymentMethodError
    |
    +-- ClassificationError
    |   +-- ClassificationAmbiguousError
    |   +-- ReclassificationRejectedError
    |
    +-- StatusError
    |   +-- InvalidStatusTransitionError
    |
    +-- StockError
    |   +-- InvalidQuantityError
    |   +-- InvalidUnitCostError
    |
    +-- WindowError
    |   +-- InvalidWindowError
    |
    +-- ConcurrencyError
    |   +-- ConcurrentModificationError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category        | Code                        | When Raised
----------------|-----------------------------|-----------------------------------------
Not found       | DOCUMENT_NOT_FOUND          | Unknown document id
                | PAYMENT_NOT_FOUND           | Unknown payment id
                | PRODUCT_NOT_FOUND           | Unknown product id
                | STOCK_MOVEMENT_NOT_FOUND    | Unknown stock movement id
                | AUDIT_RECORD_NOT_FOUND      | Unknown document audit record id
----------------|-----------------------------|-----------------------------------------
Payment         | INVALID_AMOUNT              | Payment amount <= 0
                | OVERPAYMENT_REJECTED        | Amount exceeds outstanding balance
                | INVALID_PAYMENT_TARGET      | Credit note or cancelled/archived doc
                | INVALID_PAYMENT_METHOD      | Method token not in the vocabulary
----------------|-----------------------------|-----------------------------------------
Classification  | CLASSIFICATION_AMBIGUOUS    | A signal maps to more than one category
                | RECLASSIFICATION_REJECTED   | Target category unreachable / forbidden
----------------|-----------------------------|-----------------------------------------
Status          | INVALID_STATUS_TRANSITION   | Illegal administrative transition
----------------|-----------------------------|-----------------------------------------
Stock           | INVALID_QUANTITY            | Movement quantity <= 0
                | INVALID_UNIT_COST           | Negative unit cost
----------------|-----------------------------|-----------------------------------------
Window          | INVALID_WINDOW              | start after end
----------------|-----------------------------|-----------------------------------------
Concurrency     | CONCURRENT_MODIFICATION     | Lock / serialization failure, retry
----------------|-----------------------------|-----------------------------------------
Immutability    | IMMUTABILITY_VIOLATION      | Update of an append-only record

===============================================================================
HANDLING PATTERNS
===============================================================================

1. Validation errors (PaymentError, StockError, WindowError) are returned to
   the immediate caller. The enclosing transaction is rolled back, so nothing
   is partially applied.

2. ConcurrencyError is the only category the API facade retries.

3. ImmutabilityError signals a programming error or tampering and is logged
   at ERROR before being raised.
"""

from decimal import Decimal


class SalesKernelError(Exception):
    """
    Base exception for all sales kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    identification.
    """

    code: str = "SALES_KERNEL_ERROR"


# Not-found exceptions


class NotFoundError(SalesKernelError):
    """Base exception for unknown identifiers."""

    code: str = "NOT_FOUND"


class DocumentNotFoundError(NotFoundError):
    """Document with given ID was not found."""

    code: str = "DOCUMENT_NOT_FOUND"

    def __init__(self, document_id: str):
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class PaymentNotFoundError(NotFoundError):
    """Payment with given ID was not found."""

    code: str = "PAYMENT_NOT_FOUND"

    def __init__(self, payment_id: str):
        self.payment_id = payment_id
        super().__init__(f"Payment not found: {payment_id}")


class ProductNotFoundError(NotFoundError):
    """Product with given ID was not found."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str):
        self.product_id = product_id
        super().__init__(f"Product not found: {product_id}")


class StockMovementNotFoundError(NotFoundError):
    """Stock movement with given ID was not found."""

    code: str = "STOCK_MOVEMENT_NOT_FOUND"

    def __init__(self, movement_id: str):
        self.movement_id = movement_id
        super().__init__(f"Stock movement not found: {movement_id}")


class AuditRecordNotFoundError(NotFoundError):
    """Document audit record with given ID was not found."""

    code: str = "AUDIT_RECORD_NOT_FOUND"

    def __init__(self, record_id: str):
        self.record_id = record_id
        super().__init__(f"Document audit record not found: {record_id}")


# Payment exceptions


class PaymentError(SalesKernelError):
    """Base exception for payment ledger validation errors."""

    code: str = "PAYMENT_ERROR"


class InvalidAmountError(PaymentError):
    """Payment amount is zero or negative."""

    code: str = "INVALID_AMOUNT"

    def __init__(self, amount: Decimal | str):
        self.amount = str(amount)
        super().__init__(f"Payment amount must be positive, got {amount}")


class OverpaymentRejectedError(PaymentError):
    """
    Payment amount exceeds the document's outstanding balance.

    Recoverable by the caller reducing the amount. The ledger never clamps.
    """

    code: str = "OVERPAYMENT_REJECTED"

    def __init__(self, document_id: str, amount: Decimal, outstanding: Decimal):
        self.document_id = document_id
        self.amount = amount
        self.outstanding = outstanding
        super().__init__(
            f"Payment of {amount} exceeds outstanding balance {outstanding} "
            f"on document {document_id}"
        )


class InvalidPaymentTargetError(PaymentError):
    """Document cannot receive payments (credit note, cancelled, archived)."""

    code: str = "INVALID_PAYMENT_TARGET"

    def __init__(self, document_id: str, reason: str):
        self.document_id = document_id
        self.reason = reason
        super().__init__(f"Document {document_id} cannot receive payments: {reason}")


class InvalidPaymentMethodError(PaymentError):
    """Payment method token is not part of the configured vocabulary."""

    code: str = "INVALID_PAYMENT_METHOD"

    def __init__(self, method: str | None):
        self.method = method
        super().__init__(f"Unknown payment method: {method!r}")


# Classification exceptions


class ClassificationError(SalesKernelError):
    """Base exception for classification errors."""

    code: str = "CLASSIFICATION_ERROR"


class ClassificationAmbiguousError(ClassificationError):
    """
    A classification signal resolves to more than one category.

    Raised when a declared-type token or number prefix is configured for
    two categories. The fixed precedence order cannot decide what such a
    token means, so the rule set is refused rather than guessed at.
    """

    code: str = "CLASSIFICATION_AMBIGUOUS"

    def __init__(self, signal: str, categories: list[str]):
        self.signal = signal
        self.categories = categories
        super().__init__(
            f"Signal {signal!r} maps to more than one category: "
            f"{', '.join(categories)}"
        )


class ReclassificationRejectedError(ClassificationError):
    """Explicit reclassification request cannot be honoured."""

    code: str = "RECLASSIFICATION_REJECTED"

    def __init__(self, document_id: str, target: str, reason: str):
        self.document_id = document_id
        self.target = target
        self.reason = reason
        super().__init__(
            f"Cannot reclassify document {document_id} as {target}: {reason}"
        )


# Status exceptions


class StatusError(SalesKernelError):
    """Base exception for status errors."""

    code: str = "STATUS_ERROR"


class InvalidStatusTransitionError(StatusError):
    """Administrative status change is not allowed from the current status."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, document_id: str, current: str, requested: str):
        self.document_id = document_id
        self.current = current
        self.requested = requested
        super().__init__(
            f"Document {document_id} cannot go from {current} to {requested}"
        )


# Stock exceptions


class StockError(SalesKernelError):
    """Base exception for stock costing errors."""

    code: str = "STOCK_ERROR"


class InvalidQuantityError(StockError):
    """Movement quantity must be strictly positive."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, quantity: Decimal | str):
        self.quantity = str(quantity)
        super().__init__(f"Movement quantity must be positive, got {quantity}")


class InvalidUnitCostError(StockError):
    """Unit purchase cost must not be negative."""

    code: str = "INVALID_UNIT_COST"

    def __init__(self, unit_cost: Decimal | str):
        self.unit_cost = str(unit_cost)
        super().__init__(f"Unit cost must not be negative, got {unit_cost}")


# Window exceptions


class WindowError(SalesKernelError):
    """Base exception for aggregation window errors."""

    code: str = "WINDOW_ERROR"


class InvalidWindowError(WindowError):
    """Window start is after its end."""

    code: str = "INVALID_WINDOW"

    def __init__(self, start: str, end: str):
        self.start = start
        self.end = end
        super().__init__(f"Window start {start} is after end {end}")


# Concurrency exceptions


class ConcurrencyError(SalesKernelError):
    """Base exception for concurrency-related errors."""

    code: str = "CONCURRENCY_ERROR"


class ConcurrentModificationError(ConcurrencyError):
    """
    Optimistic-lock or serialization failure on a balance/cost update.

    The caller must retry the whole unit of work.
    """

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, entity_type: str, entity_id: str, detail: str = ""):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.detail = detail
        super().__init__(
            f"Concurrent modification of {entity_type} {entity_id}"
            + (f": {detail}" if detail else "")
        )


# Immutability exceptions


class ImmutabilityError(SalesKernelError):
    """Base exception for immutability-related errors."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an append-only record.

    Payments, stock movement quantities/costs and document audit records
    never change once written.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
