"""
ORM-level append-only enforcement.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                | Rule                                         | Why
----------------------|----------------------------------------------|-------------------------------
Payment               | No UPDATE of amount/method/paid_at/document  | Edit = reverse + reapply, so
                      | (DELETE allowed: reversal)                   | the balance is recomputed
StockMovement         | No UPDATE of quantity/unit_cost/type/time;   | Historical COGS never moves;
                      | product_id/document_id may be re-pointed;    | data-repair merges re-point
                      | no DELETE                                    |
DocumentAuditRecord   | No UPDATE, no DELETE                         | Audit trail of admin actions

updated_at / updated_by_id are metadata and may always change.

===============================================================================
HOW IT WORKS
===============================================================================

SQLAlchemy fires mapper events before UPDATE/DELETE statements are sent.
The listeners compare attribute history and raise
ImmutabilityViolationError, which aborts the flush and leaves the database
untouched.

Registration happens once at startup (the API facade and the test suite
call ``register_immutability_listeners``); registering twice is a no-op.
"""

from sqlalchemy import event
from sqlalchemy.orm.attributes import get_history

from sales_kernel.exceptions import ImmutabilityViolationError
from sales_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_PAYMENT_FROZEN_FIELDS = ("document_id", "amount", "method", "paid_at")
_MOVEMENT_FROZEN_FIELDS = ("movement_type", "quantity", "unit_cost", "occurred_at")


def _changed_fields(target, fields: tuple[str, ...]) -> list[str]:
    return [name for name in fields if get_history(target, name).has_changes()]


def _block(entity_type: str, target, operation: str, reason: str, fields=None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(target.id),
            "operation": operation,
            "fields": fields or [],
        },
    )
    raise ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(target.id),
        reason=reason,
    )


def _check_payment_immutability(mapper, connection, target):
    """Payments are append-only; an edit is reverse + reapply."""
    changed = _changed_fields(target, _PAYMENT_FROZEN_FIELDS)
    if changed:
        _block(
            "Payment",
            target,
            "UPDATE",
            f"Payment fields {', '.join(changed)} cannot be modified; "
            "reverse the payment and apply a new one",
            changed,
        )


def _check_stock_movement_immutability(mapper, connection, target):
    """Only the product/document references of a movement may change."""
    changed = _changed_fields(target, _MOVEMENT_FROZEN_FIELDS)
    if changed:
        _block(
            "StockMovement",
            target,
            "UPDATE",
            f"Stock movement fields {', '.join(changed)} cannot be modified",
            changed,
        )


def _check_stock_movement_delete(mapper, connection, target):
    _block("StockMovement", target, "DELETE", "Stock movements cannot be deleted")


def _check_audit_record_immutability(mapper, connection, target):
    _block(
        "DocumentAuditRecord",
        target,
        "UPDATE",
        "Document audit records are immutable and cannot be modified",
    )


def _check_audit_record_delete(mapper, connection, target):
    _block(
        "DocumentAuditRecord",
        target,
        "DELETE",
        "Document audit records cannot be deleted",
    )


def _listeners():
    from sales_kernel.models.audit_record import DocumentAuditRecord
    from sales_kernel.models.payment import Payment
    from sales_kernel.models.stock import StockMovement

    return (
        (Payment, "before_update", _check_payment_immutability),
        (StockMovement, "before_update", _check_stock_movement_immutability),
        (StockMovement, "before_delete", _check_stock_movement_delete),
        (DocumentAuditRecord, "before_update", _check_audit_record_immutability),
        (DocumentAuditRecord, "before_delete", _check_audit_record_delete),
    )


def register_immutability_listeners() -> None:
    """Register all append-only listeners (idempotent)."""
    for target, identifier, fn in _listeners():
        if not event.contains(target, identifier, fn):
            event.listen(target, identifier, fn)


def unregister_immutability_listeners() -> None:
    """
    Remove the listeners.

    WARNING: Only for tests that need to plant corrupted rows.
    """
    for target, identifier, fn in _listeners():
        if event.contains(target, identifier, fn):
            event.remove(target, identifier, fn)
