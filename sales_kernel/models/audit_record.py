"""
Module: sales_kernel.models.audit_record
Responsibility: Append-only trail of administrative actions on documents:
    reclassification, reverts, cancel / archive / restore.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Records are never updated or deleted (db/immutability.py).
    - A REVERTED record points at the record it undoes through
      reverts_record_id; a record is reverted at most once.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import Base, UUIDString


class AuditAction(str, Enum):
    RECLASSIFIED = "RECLASSIFIED"
    REVERTED = "REVERTED"
    CANCELLED = "CANCELLED"
    ARCHIVED = "ARCHIVED"
    RESTORED = "RESTORED"


class DocumentAuditRecord(Base):
    """Who changed what on a document, when, and why."""

    __tablename__ = "document_audit_records"

    __table_args__ = (
        UniqueConstraint("document_id", "sequence", name="uq_doc_audit_sequence"),
        Index("idx_doc_audit_document", "document_id"),
        Index("idx_doc_audit_reverts", "reverts_record_id"),
    )

    document_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("documents.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Per-document ordinal, assigned under the document row lock
    sequence: Mapped[int] = mapped_column(Integer, nullable=False)

    action: Mapped[str] = mapped_column(String(20), nullable=False)

    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    old_category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    new_category: Mapped[str | None] = mapped_column(String(20), nullable=True)

    old_declared_type: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_declared_type: Mapped[str | None] = mapped_column(String(50), nullable=True)

    old_number: Mapped[str | None] = mapped_column(String(100), nullable=True)
    new_number: Mapped[str | None] = mapped_column(String(100), nullable=True)

    old_status: Mapped[str | None] = mapped_column(String(50), nullable=True)
    new_status: Mapped[str | None] = mapped_column(String(50), nullable=True)

    reverts_record_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("document_audit_records.id", ondelete="RESTRICT"),
        nullable=True,
    )
