"""
PaymentLedgerService -- append-only payments and the outstanding balance.

Responsibility:
    Applies, reverses and edits payments against documents, keeping
    ``Document.outstanding_balance`` equal to ``total - sum(payments)`` and
    triggering status derivation after every mutation.

Architecture position:
    Kernel > Services.  Flushes only; the caller's transaction makes the
    payment row, the balance and the status change atomic.

Invariants enforced:
    - Serialized per document: every operation first re-reads the document
      with SELECT ... FOR UPDATE, then reads the payment set, validates and
      writes.  Two concurrent payments cannot both pass the overpayment
      check.
    - sum(payments) <= total: an amount above the outstanding balance is
      rejected, never clamped.
    - Self-healing balance: the outstanding balance is always recomputed
      from the full payment set, not patched incrementally.  A stored value
      that disagreed is logged as ``balance_drift_healed``.
    - Payments are append-only; edit = delete + insert.

Failure modes:
    - DocumentNotFoundError / PaymentNotFoundError.
    - InvalidAmountError (amount <= 0), OverpaymentRejectedError.
    - InvalidPaymentTargetError (credit note, cancelled, archived).
    - InvalidPaymentMethodError.
    - ConcurrentModificationError on lock / version conflicts.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from sales_kernel.domain.classification import (
    DEFAULT_CLASSIFICATION_RULES,
    Category,
    ClassificationRules,
)
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.payment_methods import (
    DEFAULT_PAYMENT_METHODS,
    PaymentMethodVocabulary,
)
from sales_kernel.domain.status import (
    DEFAULT_STATUS_VOCABULARY,
    TERMINAL_STATUSES,
    StatusVocabulary,
)
from sales_kernel.domain.values import to_decimal
from sales_kernel.exceptions import (
    InvalidAmountError,
    InvalidPaymentTargetError,
    OverpaymentRejectedError,
    PaymentNotFoundError,
)
from sales_kernel.logging_config import get_logger
from sales_kernel.models.document import Document
from sales_kernel.models.payment import Payment
from sales_kernel.services.base import BaseService
from sales_kernel.services.status_service import StatusService

logger = get_logger("services.payment_ledger")


@dataclass(frozen=True)
class PaymentInfo:
    """Immutable DTO for a recorded payment."""

    id: UUID
    document_id: UUID
    amount: Decimal
    method: str
    paid_at: datetime
    reference: str | None
    bank: str | None
    third_party_name: str | None


@dataclass(frozen=True)
class DocumentBalance:
    """Balance and status of a document after a ledger operation."""

    document_id: UUID
    total_amount: Decimal
    paid_to_date: Decimal
    outstanding_balance: Decimal
    status: str


@dataclass(frozen=True)
class PaymentResult:
    """A payment together with the balance it left behind."""

    payment: PaymentInfo
    balance: DocumentBalance


class PaymentLedgerService(BaseService[Payment]):
    """
    Payment application, reversal and edit.

    Contract:
        Every public mutator locks the owning document first and finishes
        with ``StatusService.refresh``.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: ClassificationRules = DEFAULT_CLASSIFICATION_RULES,
        vocabulary: StatusVocabulary = DEFAULT_STATUS_VOCABULARY,
        methods: PaymentMethodVocabulary = DEFAULT_PAYMENT_METHODS,
    ):
        super().__init__(session)
        self.clock = clock or SystemClock()
        self.vocabulary = vocabulary
        self.methods = methods
        self.statuses = StatusService(session, self.clock, rules, vocabulary)
        self.documents = self.statuses.documents

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _to_dto(self, payment: Payment) -> PaymentInfo:
        return PaymentInfo(
            id=payment.id,
            document_id=payment.document_id,
            amount=payment.amount,
            method=payment.method,
            paid_at=payment.paid_at,
            reference=payment.reference,
            bank=payment.bank,
            third_party_name=payment.third_party_name,
        )

    def _get_payment(self, payment_id: UUID, refresh: bool = False) -> Payment:
        if refresh:
            stmt = (
                select(Payment)
                .where(Payment.id == payment_id)
                .execution_options(populate_existing=True)
            )
            payment = self.session.execute(stmt).scalar_one_or_none()
        else:
            payment = self.session.get(Payment, payment_id)
        if payment is None:
            raise PaymentNotFoundError(str(payment_id))
        return payment

    def _check_target(self, document: Document, has_payments: bool) -> None:
        if self.vocabulary.normalize(document.status) in TERMINAL_STATUSES:
            raise InvalidPaymentTargetError(
                str(document.id), f"document is {document.status}"
            )
        if self.documents.category_of(document, has_payments) is Category.CREDIT_NOTE:
            raise InvalidPaymentTargetError(
                str(document.id), "credit notes do not receive payments"
            )

    def _outstanding(self, document: Document) -> Decimal:
        """Outstanding balance recomputed from the payment set."""
        _count, paid = self.documents.payment_totals(document.id)
        outstanding = document.total_amount - paid
        if outstanding != document.outstanding_balance:
            logger.warning(
                "balance_drift_healed",
                extra={
                    "document_id": str(document.id),
                    "stored_outstanding": document.outstanding_balance,
                    "computed_outstanding": outstanding,
                    "total_amount": document.total_amount,
                    "paid_to_date": paid,
                },
            )
        return outstanding

    def _settle(self, document: Document, actor_id: UUID | None) -> DocumentBalance:
        """Recompute the balance from the payment set and re-derive status."""
        _count, paid = self.documents.payment_totals(document.id)
        document.outstanding_balance = document.total_amount - paid
        if actor_id is not None:
            document.updated_by_id = actor_id
        self._flush("Document", document.id)
        status = self.statuses.refresh(document, actor_id)
        return DocumentBalance(
            document_id=document.id,
            total_amount=document.total_amount,
            paid_to_date=paid,
            outstanding_balance=document.outstanding_balance,
            status=status,
        )

    @staticmethod
    def _positive_amount(amount: Decimal | int | str) -> Decimal:
        value = to_decimal(amount)
        if value <= 0:
            raise InvalidAmountError(value)
        return value

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def apply_payment(
        self,
        document_id: UUID,
        amount: Decimal | int | str,
        method: str,
        actor_id: UUID,
        paid_at: datetime | None = None,
        reference: str | None = None,
        bank: str | None = None,
        third_party_name: str | None = None,
    ) -> PaymentResult:
        """
        Record a payment against a document.

        Raises:
            DocumentNotFoundError, InvalidAmountError, InvalidPaymentMethodError,
            InvalidPaymentTargetError, OverpaymentRejectedError,
            ConcurrentModificationError.
        """
        document = self.documents.get_for_update(document_id)
        value = self._positive_amount(amount)
        canonical_method = self.methods.resolve(method)

        count, _paid = self.documents.payment_totals(document.id)
        self._check_target(document, count > 0)

        outstanding = self._outstanding(document)
        if value > outstanding:
            logger.warning(
                "overpayment_rejected",
                extra={
                    "document_id": str(document.id),
                    "amount": value,
                    "outstanding_balance": outstanding,
                },
            )
            raise OverpaymentRejectedError(str(document.id), value, outstanding)

        payment = Payment(
            document_id=document.id,
            amount=value,
            method=canonical_method.value,
            paid_at=paid_at or self.clock.now(),
            reference=reference,
            bank=bank,
            third_party_name=third_party_name,
            created_by_id=actor_id,
        )
        self.session.add(payment)
        self._flush("Payment", document.id)

        balance = self._settle(document, actor_id)
        logger.info(
            "payment_applied",
            extra={
                "payment_id": str(payment.id),
                "document_id": str(document.id),
                "amount": value,
                "method": canonical_method.value,
                "outstanding_balance": balance.outstanding_balance,
                "status": balance.status,
            },
        )
        return PaymentResult(payment=self._to_dto(payment), balance=balance)

    def reverse_payment(self, payment_id: UUID, actor_id: UUID | None = None) -> DocumentBalance:
        """
        Delete a payment and recompute the owning document's balance.

        Raises:
            PaymentNotFoundError, ConcurrentModificationError.
        """
        payment = self._get_payment(payment_id)
        document = self.documents.get_for_update(payment.document_id)
        # Re-read under the document lock; a concurrent reversal may have won
        payment = self._get_payment(payment_id, refresh=True)
        amount = payment.amount

        self.session.delete(payment)
        self._flush("Payment", document.id)

        balance = self._settle(document, actor_id)
        logger.info(
            "payment_reversed",
            extra={
                "payment_id": str(payment_id),
                "document_id": str(document.id),
                "amount": amount,
                "outstanding_balance": balance.outstanding_balance,
                "status": balance.status,
            },
        )
        return balance

    def edit_payment(
        self,
        payment_id: UUID,
        new_amount: Decimal | int | str,
        actor_id: UUID,
        method: str | None = None,
        paid_at: datetime | None = None,
    ) -> PaymentResult:
        """
        Replace a payment's amount (and optionally method / date).

        Validated against the balance excluding the edited payment; applied
        as reverse + reapply so the payment rows stay append-only.  On
        rejection nothing changes.

        Raises:
            PaymentNotFoundError, InvalidAmountError, InvalidPaymentMethodError,
            InvalidPaymentTargetError, OverpaymentRejectedError,
            ConcurrentModificationError.
        """
        payment = self._get_payment(payment_id)
        document = self.documents.get_for_update(payment.document_id)
        payment = self._get_payment(payment_id, refresh=True)

        value = self._positive_amount(new_amount)
        canonical_method = self.methods.resolve(method if method is not None else payment.method)
        self._check_target(document, True)

        available = self._outstanding(document) + payment.amount
        if value > available:
            logger.warning(
                "overpayment_rejected",
                extra={
                    "document_id": str(document.id),
                    "payment_id": str(payment_id),
                    "amount": value,
                    "outstanding_balance": available,
                },
            )
            raise OverpaymentRejectedError(str(document.id), value, available)

        replacement = Payment(
            document_id=document.id,
            amount=value,
            method=canonical_method.value,
            paid_at=paid_at or payment.paid_at,
            reference=payment.reference,
            bank=payment.bank,
            third_party_name=payment.third_party_name,
            created_by_id=actor_id,
        )
        old_amount = payment.amount
        self.session.delete(payment)
        self.session.add(replacement)
        self._flush("Payment", document.id)

        balance = self._settle(document, actor_id)
        logger.info(
            "payment_edited",
            extra={
                "payment_id": str(payment_id),
                "replacement_payment_id": str(replacement.id),
                "document_id": str(document.id),
                "old_amount": old_amount,
                "new_amount": value,
                "outstanding_balance": balance.outstanding_balance,
                "status": balance.status,
            },
        )
        return PaymentResult(payment=self._to_dto(replacement), balance=balance)

    def recompute_balance(self, document_id: UUID, actor_id: UUID | None = None) -> DocumentBalance:
        """Heal a document's stored balance from its payments."""
        document = self.documents.get_for_update(document_id)
        self._outstanding(document)
        return self._settle(document, actor_id)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def list_payments(self, document_id: UUID) -> list[PaymentInfo]:
        self.documents._get_by_id(document_id)
        stmt = (
            select(Payment)
            .where(Payment.document_id == document_id)
            .order_by(Payment.paid_at, Payment.created_at)
        )
        return [self._to_dto(p) for p in self.session.execute(stmt).scalars()]

    def paid_to_date(self, document_id: UUID) -> Decimal:
        self.documents._get_by_id(document_id)
        return self.documents.payment_totals(document_id)[1]
