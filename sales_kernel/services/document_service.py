"""
Service layer for Document operations.

Creates documents, loads them (optionally under a row lock) and exposes the
derived category through the single classifier.

Returns DocumentInfo DTOs instead of ORM entities.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from sales_kernel.domain.classification import (
    DEFAULT_CLASSIFICATION_RULES,
    Category,
    ClassificationRules,
    ClassificationSignals,
    classify,
)
from sales_kernel.domain.status import (
    DEFAULT_STATUS_VOCABULARY,
    StatusVocabulary,
    default_status_for,
)
from sales_kernel.domain.values import from_db, to_decimal
from sales_kernel.exceptions import DocumentNotFoundError
from sales_kernel.logging_config import get_logger
from sales_kernel.models.document import Document
from sales_kernel.models.payment import Payment
from sales_kernel.services.base import BaseService

logger = get_logger("services.document")


@dataclass(frozen=True)
class DocumentInfo:
    """Immutable DTO for a document and its derived figures."""

    id: UUID
    number: str | None
    declared_type: str | None
    status: str
    category: Category
    total_amount: Decimal
    outstanding_balance: Decimal
    paid_to_date: Decimal
    payment_count: int
    issue_date: date | None
    center_id: str | None
    client_id: str | None
    case_file_id: str | None


class DocumentService(BaseService[Document]):
    """
    Service for creating and reading documents.

    All category lookups go through ``category_of``, which delegates to
    ``sales_kernel.domain.classification.classify``.
    """

    def __init__(
        self,
        session: Session,
        rules: ClassificationRules = DEFAULT_CLASSIFICATION_RULES,
        vocabulary: StatusVocabulary = DEFAULT_STATUS_VOCABULARY,
    ):
        super().__init__(session)
        self.rules = rules
        self.vocabulary = vocabulary

    def _get_by_id(self, document_id: UUID) -> Document:
        document = self.session.get(Document, document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        return document

    def get_for_update(self, document_id: UUID) -> Document:
        """
        Load a document under a row lock.

        Raises:
            DocumentNotFoundError: unknown id.
            ConcurrentModificationError: lock could not be taken.
        """
        document = self._lock(Document, document_id)
        if document is None:
            raise DocumentNotFoundError(str(document_id))
        return document

    def payment_totals(self, document_id: UUID) -> tuple[int, Decimal]:
        """(number of payments, sum of amounts) currently recorded."""
        stmt = select(
            func.count(Payment.id),
            func.coalesce(func.sum(Payment.amount), 0),
        ).where(Payment.document_id == document_id)
        count, total = self.session.execute(stmt).one()
        return int(count), from_db(total)

    def category_of(self, document: Document, has_payments: bool) -> Category:
        return classify(
            ClassificationSignals(
                number=document.number,
                declared_type=document.declared_type,
                status=document.status,
                has_payments=has_payments,
            ),
            self.rules,
        )

    def to_info(self, document: Document) -> DocumentInfo:
        count, paid = self.payment_totals(document.id)
        return DocumentInfo(
            id=document.id,
            number=document.number,
            declared_type=document.declared_type,
            status=document.status,
            category=self.category_of(document, count > 0),
            total_amount=document.total_amount,
            outstanding_balance=document.outstanding_balance,
            paid_to_date=paid,
            payment_count=count,
            issue_date=document.issue_date,
            center_id=document.center_id,
            client_id=document.client_id,
            case_file_id=document.case_file_id,
        )

    def get(self, document_id: UUID) -> DocumentInfo:
        """
        Raises:
            DocumentNotFoundError: unknown id.
        """
        return self.to_info(self._get_by_id(document_id))

    def create_document(
        self,
        number: str | None,
        declared_type: str | None,
        total_amount: Decimal | int | str,
        actor_id: UUID,
        issue_date: date | None = None,
        center_id: str | None = None,
        status: str | None = None,
        client_id: str | None = None,
        case_file_id: str | None = None,
    ) -> DocumentInfo:
        """
        Register a document with no payments.

        The outstanding balance starts at the total.  Without an explicit
        status the document gets its category default (VALIDATED, or
        QUOTE_UNCONFIRMED for quotes).  A recognised legacy status is stored
        in canonical form; an unknown one is stored as given.
        """
        total = to_decimal(total_amount)

        if status is None:
            category = classify(
                ClassificationSignals(number, declared_type, None, False), self.rules
            )
            stored_status = default_status_for(category).value
        else:
            canonical = self.vocabulary.normalize(status)
            stored_status = canonical.value if canonical is not None else status

        document = Document(
            number=number,
            declared_type=declared_type,
            status=stored_status,
            total_amount=total,
            outstanding_balance=total,
            issue_date=issue_date,
            center_id=center_id,
            client_id=client_id,
            case_file_id=case_file_id,
            created_by_id=actor_id,
        )
        self.session.add(document)
        self.session.flush()

        info = self.to_info(document)
        logger.info(
            "document_created",
            extra={
                "document_id": str(document.id),
                "number": number,
                "declared_type": declared_type,
                "category": info.category.value,
                "status": stored_status,
                "total_amount": total,
            },
        )
        return info
