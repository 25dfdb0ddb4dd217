"""
ReclassificationService -- explicit, audited category changes.

Responsibility:
    Promotes or demotes a document between INVOICE, ORDER and QUOTE by
    rewriting the signals the classifier reads (declared type, optionally
    the number, and a pending-sale status), and undoes such a change on
    request.  Also runs the bulk "promote orders that already carry an
    invoice number" repair as a logged, reversible operation.

Architecture position:
    Kernel > Services.  Uses StatusService for the status re-derivation and
    DocumentAuditService for the trail; flushes only.

Invariants enforced:
    - Category changes only happen here, never as a side effect of a
      payment or a status change.
    - The outcome is checked with ``classify`` before anything is written:
      a reclassification the classifier would not confirm is rejected.
    - Every change writes a RECLASSIFIED record; every undo writes a
      REVERTED record pointing at it.  A record is reverted at most once.
    - CREDIT_NOTE is never a source or a target.  CANCELLED / ARCHIVED
      documents are left alone.

Failure modes:
    - DocumentNotFoundError, AuditRecordNotFoundError.
    - ReclassificationRejectedError with the reason.
    - ConcurrentModificationError.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from sales_kernel.domain.classification import (
    DEFAULT_CLASSIFICATION_RULES,
    Category,
    ClassificationRules,
    ClassificationSignals,
    classify,
)
from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.status import (
    DEFAULT_STATUS_VOCABULARY,
    StatusVocabulary,
    default_status_for,
    is_terminal,
)
from sales_kernel.exceptions import ReclassificationRejectedError
from sales_kernel.logging_config import get_logger
from sales_kernel.models.audit_record import AuditAction
from sales_kernel.models.document import Document
from sales_kernel.services.base import BaseService
from sales_kernel.services.document_audit import DocumentAuditInfo, DocumentChange
from sales_kernel.services.document_service import DocumentInfo
from sales_kernel.services.status_service import StatusService

logger = get_logger("services.reclassification")

RECLASSIFIABLE = frozenset({Category.INVOICE, Category.ORDER, Category.QUOTE})


@dataclass(frozen=True)
class ReclassificationResult:
    document: DocumentInfo
    record: DocumentAuditInfo


@dataclass(frozen=True)
class PromotionResult:
    """Outcome of ``promote_by_numbering_convention``."""

    dry_run: bool
    candidates: tuple[DocumentInfo, ...]
    promoted: tuple[UUID, ...]
    rejected: tuple[UUID, ...]


class ReclassificationService(BaseService[Document]):
    """
    Promotion / demotion of documents between categories.

    Contract:
        ``reclassify`` either changes the category to ``target`` and records
        it, or raises without touching the document.
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
        self.rules = rules
        self.vocabulary = vocabulary
        self.statuses = StatusService(session, self.clock, rules, vocabulary)
        self.documents = self.statuses.documents
        self.audit = self.statuses.audit

    def _reject(self, document_id: UUID, target: str, reason: str) -> ReclassificationRejectedError:
        logger.warning(
            "reclassification_rejected",
            extra={"document_id": str(document_id), "target": target, "reason": reason},
        )
        return ReclassificationRejectedError(str(document_id), target, reason)

    def _base_status(self, document: Document, target: Category) -> str:
        """Status to derive from once the document belongs to ``target``."""
        if self.rules.is_pending_sale(document.status) and target is not Category.ORDER:
            # A pending sale would keep classifying as ORDER
            return default_status_for(target).value
        canonical = self.vocabulary.normalize(document.status)
        return canonical.value if canonical is not None else document.status

    def reclassify(
        self,
        document_id: UUID,
        target: Category,
        actor_id: UUID,
        reason: str | None = None,
        new_number: str | None = None,
    ) -> ReclassificationResult:
        """
        Move a document into ``target``.

        Args:
            document_id: the document to change.
            target: INVOICE, ORDER or QUOTE.
            actor_id: who asked for it.
            reason: free text stored on the audit record.
            new_number: optional renumbering (e.g. "BC-12" -> "FAC-2024-12").

        Raises:
            ReclassificationRejectedError: credit note, terminal status,
                no-op, or the classifier would not yield ``target``.
        """
        target = Category(target)
        document = self.documents.get_for_update(document_id)

        if target not in RECLASSIFIABLE:
            raise self._reject(document.id, target.value, "credit notes cannot be a reclassification target")
        if is_terminal(document.status, self.vocabulary):
            raise self._reject(document.id, target.value, f"document is {document.status}")

        count, _paid = self.documents.payment_totals(document.id)
        has_payments = count > 0
        old_category = self.documents.category_of(document, has_payments)
        if old_category is Category.CREDIT_NOTE:
            raise self._reject(document.id, target.value, "credit notes are never reclassified")
        if old_category is target and new_number is None:
            raise self._reject(document.id, target.value, f"document is already {target.value}")

        number = new_number if new_number is not None else document.number
        declared_type = self.rules.canonical_type(target)
        base_status = self._base_status(document, target)

        predicted = classify(
            ClassificationSignals(number, declared_type, base_status, has_payments),
            self.rules,
        )
        if predicted is not target:
            raise self._reject(
                document.id,
                target.value,
                f"signals would still classify as {predicted.value}",
            )

        old_type, old_number, old_status = document.declared_type, document.number, document.status
        document.declared_type = declared_type
        document.number = number
        document.status = base_status
        document.updated_by_id = actor_id
        self._flush("Document", document.id)
        new_status = self.statuses.refresh(document, actor_id)

        record = self.audit.record(
            document.id,
            AuditAction.RECLASSIFIED,
            actor_id,
            DocumentChange(
                old_status=old_status,
                new_status=new_status,
                old_category=old_category.value,
                new_category=target.value,
                old_declared_type=old_type,
                new_declared_type=declared_type,
                old_number=old_number,
                new_number=number,
            ),
            reason=reason,
        )
        logger.info(
            "document_reclassified",
            extra={
                "document_id": str(document.id),
                "record_id": str(record.id),
                "old_category": old_category.value,
                "new_category": target.value,
                "old_status": old_status,
                "new_status": new_status,
                "actor": str(actor_id),
            },
        )
        return ReclassificationResult(self.documents.to_info(document), record)

    def revert(
        self,
        record_id: UUID,
        actor_id: UUID,
        reason: str | None = None,
    ) -> ReclassificationResult:
        """
        Undo a reclassification.

        Only the most recent reclassification of a document can be
        reverted, and only once.  The status is re-derived from the current
        balance starting at the status recorded before the change.
        """
        original = self.audit.get(record_id)
        document = self.documents.get_for_update(original.document_id)
        target = original.old_category or ""

        if original.action is not AuditAction.RECLASSIFIED:
            raise self._reject(document.id, target, f"record is a {original.action.value} record")
        if self.audit.is_reverted(record_id):
            raise self._reject(document.id, target, "record was already reverted")
        latest = self.audit.latest(
            document.id, (AuditAction.RECLASSIFIED, AuditAction.REVERTED)
        )
        if latest is None or latest.id != original.id:
            raise self._reject(document.id, target, "a later reclassification exists")
        if is_terminal(document.status, self.vocabulary):
            raise self._reject(document.id, target, f"document is {document.status}")

        count, _paid = self.documents.payment_totals(document.id)
        current_category = self.documents.category_of(document, count > 0)
        old_type, old_number, old_status = document.declared_type, document.number, document.status

        document.declared_type = original.old_declared_type
        document.number = original.old_number
        document.status = original.old_status or old_status
        document.updated_by_id = actor_id
        self._flush("Document", document.id)
        new_status = self.statuses.refresh(document, actor_id)
        restored_category = self.documents.category_of(document, count > 0)

        record = self.audit.record(
            document.id,
            AuditAction.REVERTED,
            actor_id,
            DocumentChange(
                old_status=old_status,
                new_status=new_status,
                old_category=current_category.value,
                new_category=restored_category.value,
                old_declared_type=old_type,
                new_declared_type=document.declared_type,
                old_number=old_number,
                new_number=document.number,
            ),
            reason=reason,
            reverts_record_id=original.id,
        )
        logger.info(
            "reclassification_reverted",
            extra={
                "document_id": str(document.id),
                "record_id": str(record.id),
                "reverts_record_id": str(original.id),
                "old_category": current_category.value,
                "new_category": restored_category.value,
                "actor": str(actor_id),
            },
        )
        return ReclassificationResult(self.documents.to_info(document), record)

    def promote_by_numbering_convention(
        self,
        actor_id: UUID,
        center_id: str | None = None,
        dry_run: bool = True,
    ) -> PromotionResult:
        """
        Promote live orders whose number already follows the invoice
        convention ("FAC..." or "85/2024").

        With ``dry_run`` the candidates are listed and nothing is written.
        """
        stmt = select(Document).order_by(Document.number, Document.id)
        if center_id is not None:
            stmt = stmt.where(Document.center_id == center_id)

        candidates: list[DocumentInfo] = []
        for document in self.session.execute(stmt).scalars():
            if is_terminal(document.status, self.vocabulary):
                continue
            if not self.rules.matches_invoice_numbering(document.number):
                continue
            info = self.documents.to_info(document)
            if info.category is Category.ORDER:
                candidates.append(info)

        promoted: list[UUID] = []
        rejected: list[UUID] = []
        if not dry_run:
            for info in candidates:
                try:
                    self.reclassify(
                        info.id,
                        Category.INVOICE,
                        actor_id,
                        reason="number follows the invoice numbering convention",
                    )
                except ReclassificationRejectedError:
                    rejected.append(info.id)
                else:
                    promoted.append(info.id)

        logger.info(
            "promotion_by_numbering_completed",
            extra={
                "dry_run": dry_run,
                "center": center_id,
                "candidate_count": len(candidates),
                "promoted_count": len(promoted),
                "rejected_count": len(rejected),
            },
        )
        return PromotionResult(
            dry_run=dry_run,
            candidates=tuple(candidates),
            promoted=tuple(promoted),
            rejected=tuple(rejected),
        )
