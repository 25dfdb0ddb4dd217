"""
Module: sales_kernel.selectors.base
Responsibility: Abstract base class for the read-only query selectors that
    feed the reporting and audit engines.
Architecture position: Kernel > Selectors.  May import from db/, models/
    and the plain record types in domain/records.py.  MUST NOT import from
    services/ or outer layers.

Invariants enforced:
    - Read-only access: selectors MUST NOT call session.add(),
      session.delete(), session.commit() or session.flush().
    - Selectors return frozen records, never ORM instances, so engines
      stay free of SQLAlchemy.
    - The caller owns the session and its transaction scope.
"""

from abc import ABC
from typing import Iterable, Iterator, Sequence, TypeVar

from sqlalchemy.orm import Session

T = TypeVar("T")

# Keeps IN (...) lists under every backend's bound-parameter limit
IN_CLAUSE_CHUNK = 500


class BaseSelector(ABC):
    """
    Abstract base class for all selectors.

    Contract:
        Selectors accept a Session from the caller, perform read-only
        queries, and return records or computed results.
    """

    def __init__(self, session: Session):
        self.session = session


def chunked(values: Iterable[T], size: int = IN_CLAUSE_CHUNK) -> Iterator[Sequence[T]]:
    batch: list[T] = []
    for value in values:
        batch.append(value)
        if len(batch) >= size:
            yield batch
            batch = []
    if batch:
        yield batch
