"""
StatusService -- the one place a document's status is written.

Responsibility:
    Applies ``sales_kernel.domain.status.derive_status`` after every payment
    ledger mutation (``refresh``) and performs the administrative
    transitions into and out of the terminal statuses.

Architecture position:
    Kernel > Services.  Called by PaymentLedgerService and
    ReclassificationService inside their transaction; never commits.

Invariants enforced:
    - Balance-driven refreshes never overwrite CANCELLED or ARCHIVED.
    - Only cancel / archive / restore enter or leave a terminal status, and
      each one writes a DocumentAuditRecord.
    - restore re-derives the status from the balance, starting from the
      status the document had before it was cancelled or archived.

Failure modes:
    - DocumentNotFoundError for unknown ids.
    - InvalidStatusTransitionError for cancel of a cancelled/archived
      document, archive of an archived one, restore of a live one.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy.orm import Session

from sales_kernel.domain.classification import (
    DEFAULT_CLASSIFICATION_RULES,
    ClassificationRules,
)
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.status import (
    DEFAULT_STATUS_VOCABULARY,
    DocumentStatus,
    StatusVocabulary,
    derive_status,
)
from sales_kernel.exceptions import InvalidStatusTransitionError
from sales_kernel.logging_config import get_logger
from sales_kernel.models.audit_record import AuditAction
from sales_kernel.models.document import Document
from sales_kernel.services.base import BaseService
from sales_kernel.services.document_audit import DocumentAuditService, DocumentChange
from sales_kernel.services.document_service import DocumentInfo, DocumentService

logger = get_logger("services.status")


class StatusService(BaseService[Document]):
    """
    Centralized status state machine.

    Contract:
        ``refresh`` is called after every change to a document's payments or
        classification signals and returns the status now stored.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        rules: ClassificationRules = DEFAULT_CLASSIFICATION_RULES,
        vocabulary: StatusVocabulary = DEFAULT_STATUS_VOCABULARY,
    ):
        super().__init__(session)
        self.clock = clock or SystemClock()
        self.vocabulary = vocabulary
        self.documents = DocumentService(session, rules, vocabulary)
        self.audit = DocumentAuditService(session, self.clock)

    def refresh(
        self,
        document: Document,
        actor_id: UUID | None = None,
        base_status: str | None = None,
    ) -> str:
        """
        Re-derive and store the status of a locked document.

        Args:
            document: row already loaded under lock by the caller.
            actor_id: recorded as updated_by_id when the status changes.
            base_status: status to derive from instead of the stored one
                (restore and reclassification use this).

        Returns:
            The status now stored on the document.
        """
        count, _paid = self.documents.payment_totals(document.id)
        current = document.status if base_status is None else base_status
        category = self.documents.category_of(document, count > 0)

        derived = derive_status(
            category=category,
            total=document.total_amount,
            outstanding=document.outstanding_balance,
            current=current,
            vocabulary=self.vocabulary,
        )

        if derived.value != document.status:
            previous = document.status
            document.status = derived.value
            if actor_id is not None:
                document.updated_by_id = actor_id
            self._flush("Document", document.id)
            logger.info(
                "status_derived",
                extra={
                    "document_id": str(document.id),
                    "category": category.value,
                    "old_status": previous,
                    "new_status": derived.value,
                    "total_amount": document.total_amount,
                    "outstanding_balance": document.outstanding_balance,
                },
            )
        return document.status

    def get_status(self, document_id: UUID) -> str:
        """Stored status of a document."""
        return self.documents.get(document_id).status

    # ------------------------------------------------------------------
    # Administrative transitions
    # ------------------------------------------------------------------

    def cancel(self, document_id: UUID, actor_id: UUID, reason: str | None = None) -> DocumentInfo:
        """Move a live document to CANCELLED."""
        document = self.documents.get_for_update(document_id)
        current = self.vocabulary.normalize(document.status)
        if current in (DocumentStatus.CANCELLED, DocumentStatus.ARCHIVED):
            raise InvalidStatusTransitionError(
                str(document_id), document.status, DocumentStatus.CANCELLED.value
            )
        return self._set_terminal(document, DocumentStatus.CANCELLED, AuditAction.CANCELLED, actor_id, reason)

    def archive(self, document_id: UUID, actor_id: UUID, reason: str | None = None) -> DocumentInfo:
        """Move a live or cancelled document to ARCHIVED."""
        document = self.documents.get_for_update(document_id)
        if self.vocabulary.normalize(document.status) is DocumentStatus.ARCHIVED:
            raise InvalidStatusTransitionError(
                str(document_id), document.status, DocumentStatus.ARCHIVED.value
            )
        return self._set_terminal(document, DocumentStatus.ARCHIVED, AuditAction.ARCHIVED, actor_id, reason)

    def restore(self, document_id: UUID, actor_id: UUID, reason: str | None = None) -> DocumentInfo:
        """
        Bring a cancelled or archived document back to life.

        The status is re-derived from the balance, starting from the status
        recorded before the most recent cancel/archive.  A document that was
        archived after being cancelled comes back to its pre-cancel status.
        """
        document = self.documents.get_for_update(document_id)
        current = self.vocabulary.normalize(document.status)
        if current not in (DocumentStatus.CANCELLED, DocumentStatus.ARCHIVED):
            raise InvalidStatusTransitionError(str(document_id), document.status, "RESTORED")

        base = self._pre_terminal_status(document.id)
        old_status = document.status
        # Leave the terminal state before deriving
        document.status = base or DocumentStatus.VALIDATED.value
        new_status = self.refresh(document, actor_id, base_status=base)
        document.updated_by_id = actor_id
        self._flush("Document", document.id)

        self.audit.record(
            document.id,
            AuditAction.RESTORED,
            actor_id,
            DocumentChange(old_status=old_status, new_status=new_status),
            reason=reason,
        )
        logger.info(
            "document_restored",
            extra={"document_id": str(document.id), "old_status": old_status, "new_status": new_status},
        )
        return self.documents.to_info(document)

    def _pre_terminal_status(self, document_id: UUID) -> str | None:
        for record in reversed(self.audit.history(document_id)):
            if record.action not in (AuditAction.CANCELLED, AuditAction.ARCHIVED):
                continue
            if self.vocabulary.normalize(record.old_status) not in (
                DocumentStatus.CANCELLED,
                DocumentStatus.ARCHIVED,
            ):
                return record.old_status
        return None

    def _set_terminal(
        self,
        document: Document,
        status: DocumentStatus,
        action: AuditAction,
        actor_id: UUID,
        reason: str | None,
    ) -> DocumentInfo:
        old_status = document.status
        document.status = status.value
        document.updated_by_id = actor_id
        self._flush("Document", document.id)

        self.audit.record(
            document.id,
            action,
            actor_id,
            DocumentChange(old_status=old_status, new_status=status.value),
            reason=reason,
        )
        logger.info(
            "document_status_set",
            extra={
                "document_id": str(document.id),
                "old_status": old_status,
                "new_status": status.value,
                "action": action.value,
            },
        )
        return self.documents.to_info(document)
