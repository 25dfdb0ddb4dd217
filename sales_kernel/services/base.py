"""
BaseService -- abstract base for all kernel services.

Responsibility:
    Common constructor and session-handling contract for every write
    service.  Services receive a SQLAlchemy ``Session`` and use
    ``session.flush()`` -- never ``session.commit()``.

Architecture position:
    Kernel > Services -- imperative shell infrastructure.

Invariants enforced:
    - Transaction boundaries belong to the caller (the API facade or the
      test harness).  A payment insert, the balance update and the status
      change therefore commit or roll back together.
    - Row locks: ``_lock`` re-reads a row with SELECT ... FOR UPDATE and
      refreshes the identity map, so validation runs on the committed state
      of the row.
    - Driver lock failures surface as ConcurrentModificationError.
"""

from abc import ABC
from contextlib import contextmanager
from typing import Generic, Iterator, TypeVar
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from sales_kernel.db.base import Base
from sales_kernel.db.engine import is_concurrency_failure
from sales_kernel.exceptions import ConcurrentModificationError
from sales_kernel.logging_config import get_logger

ModelType = TypeVar("ModelType", bound=Base)

logger = get_logger("services.base")


class BaseService(ABC, Generic[ModelType]):
    """
    Abstract base class for all kernel services.

    Guarantees:
        - The service never calls ``session.commit()`` or
          ``session.rollback()``.

    Non-goals:
        - Read-only reporting queries live in ``sales_kernel/selectors/``.
    """

    def __init__(self, session: Session):
        """
        Args:
            session: SQLAlchemy session for database operations.
        """
        self.session = session

    def _lock(self, model: type[Base], entity_id: UUID) -> Base | None:
        """Re-read one row under a row lock, or None if it does not exist."""
        stmt = (
            select(model)
            .where(model.id == entity_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        with self.concurrency_guard(model.__name__, entity_id):
            return self.session.execute(stmt).scalar_one_or_none()

    def _flush(self, entity_type: str, entity_id: UUID) -> None:
        with self.concurrency_guard(entity_type, entity_id):
            self.session.flush()

    @contextmanager
    def concurrency_guard(self, entity_type: str, entity_id: UUID) -> Iterator[None]:
        """Translate lock / version failures into ConcurrentModificationError."""
        try:
            yield
        except (StaleDataError, DBAPIError) as exc:
            if not is_concurrency_failure(exc):
                raise
            logger.warning(
                "concurrent_modification_detected",
                extra={
                    "entity_type": entity_type,
                    "entity_id": str(entity_id),
                    "error": type(exc).__name__,
                },
            )
            raise ConcurrentModificationError(
                entity_type, str(entity_id), type(exc).__name__
            ) from exc
