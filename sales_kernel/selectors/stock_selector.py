"""StockSelector -- movement rows and per-document cost of goods sold."""

from __future__ import annotations

from decimal import Decimal
from typing import Iterable
from uuid import UUID

from sqlalchemy import func, select

from sales_kernel.domain.records import MovementRecord
from sales_kernel.domain.values import from_db
from sales_kernel.models.stock import StockMovement
from sales_kernel.selectors.base import BaseSelector, chunked


class StockSelector(BaseSelector):
    """Read access to stock movements."""

    def movements_for_documents(self, document_ids: Iterable[UUID]) -> list[MovementRecord]:
        records: list[MovementRecord] = []
        for batch in chunked(document_ids):
            stmt = (
                select(StockMovement)
                .where(StockMovement.document_id.in_(batch))
                .order_by(StockMovement.document_id, StockMovement.occurred_at, StockMovement.id)
            )
            records.extend(
                MovementRecord(
                    id=m.id,
                    product_id=m.product_id,
                    document_id=m.document_id,
                    movement_type=m.movement_type,
                    quantity=from_db(m.quantity),
                    unit_cost=from_db(m.unit_cost),
                )
                for m in self.session.execute(stmt).scalars()
            )
        return records

    def cogs_by_document(self, document_ids: Iterable[UUID]) -> dict[UUID, Decimal]:
        """
        Net cost value per document, summed in SQL.

        Returns ``{document_id: -sum(quantity * unit_cost)}`` over the signed
        quantities; the sign for credit notes is applied by the caller.
        """
        totals: dict[UUID, Decimal] = {}
        for batch in chunked(document_ids):
            stmt = (
                select(
                    StockMovement.document_id,
                    -func.sum(StockMovement.quantity * StockMovement.unit_cost),
                )
                .where(StockMovement.document_id.in_(batch))
                .group_by(StockMovement.document_id)
            )
            for document_id, value in self.session.execute(stmt):
                totals[document_id] = from_db(value)
        return totals
