"""
DocumentAuditService -- append-only trail of administrative document actions.

Every reclassification, revert, cancel, archive and restore writes one
DocumentAuditRecord in the same transaction as the change it describes.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.exceptions import AuditRecordNotFoundError
from sales_kernel.logging_config import get_logger
from sales_kernel.models.audit_record import AuditAction, DocumentAuditRecord
from sales_kernel.services.base import BaseService

logger = get_logger("services.document_audit")


@dataclass(frozen=True)
class DocumentAuditInfo:
    id: UUID
    document_id: UUID
    action: AuditAction
    actor_id: UUID
    occurred_at: datetime
    reason: str | None
    old_category: str | None
    new_category: str | None
    old_declared_type: str | None
    new_declared_type: str | None
    old_number: str | None
    new_number: str | None
    old_status: str | None
    new_status: str | None
    reverts_record_id: UUID | None


@dataclass(frozen=True)
class DocumentChange:
    """Before/after values of one administrative action."""

    old_status: str | None
    new_status: str | None
    old_category: str | None = None
    new_category: str | None = None
    old_declared_type: str | None = None
    new_declared_type: str | None = None
    old_number: str | None = None
    new_number: str | None = None


class DocumentAuditService(BaseService[DocumentAuditRecord]):
    """Writes and reads document audit records."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self.clock = clock or SystemClock()

    def _to_dto(self, record: DocumentAuditRecord) -> DocumentAuditInfo:
        return DocumentAuditInfo(
            id=record.id,
            document_id=record.document_id,
            action=AuditAction(record.action),
            actor_id=record.actor_id,
            occurred_at=record.occurred_at,
            reason=record.reason,
            old_category=record.old_category,
            new_category=record.new_category,
            old_declared_type=record.old_declared_type,
            new_declared_type=record.new_declared_type,
            old_number=record.old_number,
            new_number=record.new_number,
            old_status=record.old_status,
            new_status=record.new_status,
            reverts_record_id=record.reverts_record_id,
        )

    def record(
        self,
        document_id: UUID,
        action: AuditAction,
        actor_id: UUID,
        change: DocumentChange,
        reason: str | None = None,
        reverts_record_id: UUID | None = None,
    ) -> DocumentAuditInfo:
        next_sequence = self.session.execute(
            select(func.coalesce(func.max(DocumentAuditRecord.sequence), 0)).where(
                DocumentAuditRecord.document_id == document_id
            )
        ).scalar_one() + 1

        record = DocumentAuditRecord(
            document_id=document_id,
            sequence=next_sequence,
            action=action.value,
            actor_id=actor_id,
            occurred_at=self.clock.now(),
            reason=reason,
            old_category=change.old_category,
            new_category=change.new_category,
            old_declared_type=change.old_declared_type,
            new_declared_type=change.new_declared_type,
            old_number=change.old_number,
            new_number=change.new_number,
            old_status=change.old_status,
            new_status=change.new_status,
            reverts_record_id=reverts_record_id,
        )
        self.session.add(record)
        self.session.flush()

        logger.info(
            "document_action_recorded",
            extra={
                "record_id": str(record.id),
                "document_id": str(document_id),
                "action": action.value,
                "actor": str(actor_id),
                "old_status": change.old_status,
                "new_status": change.new_status,
                "old_category": change.old_category,
                "new_category": change.new_category,
            },
        )
        return self._to_dto(record)

    def get(self, record_id: UUID) -> DocumentAuditInfo:
        record = self.session.get(DocumentAuditRecord, record_id)
        if record is None:
            raise AuditRecordNotFoundError(str(record_id))
        return self._to_dto(record)

    def history(self, document_id: UUID) -> list[DocumentAuditInfo]:
        """All records for a document, oldest first."""
        stmt = (
            select(DocumentAuditRecord)
            .where(DocumentAuditRecord.document_id == document_id)
            .order_by(DocumentAuditRecord.sequence)
        )
        return [self._to_dto(r) for r in self.session.execute(stmt).scalars()]

    def latest(
        self,
        document_id: UUID,
        actions: tuple[AuditAction, ...],
    ) -> DocumentAuditInfo | None:
        """Most recent record of one of ``actions`` for the document."""
        matching = [r for r in self.history(document_id) if r.action in actions]
        return matching[-1] if matching else None

    def is_reverted(self, record_id: UUID) -> bool:
        stmt = select(DocumentAuditRecord.id).where(
            DocumentAuditRecord.reverts_record_id == record_id
        )
        return self.session.execute(stmt).first() is not None
