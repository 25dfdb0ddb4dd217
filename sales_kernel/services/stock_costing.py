"""
StockCostingService -- per-product weighted-average cost ledger.

Responsibility:
    Records stock movements and keeps each product's quantity on hand and
    weighted-average unit cost ("CUMP") current.  Stock-outs linked to a
    sale capture the average in force at that moment, which is what COGS
    reads later.

Architecture position:
    Kernel > Services.  Arithmetic lives in sales_kernel.domain.costing;
    this service locks, persists and logs.

Invariants enforced:
    - Cost read-modify-write is serialized per product (row lock plus the
      Product.version counter).
    - Movement quantity / unit cost are immutable once recorded; only
      ``repoint_movement`` may change a movement, and only its references.

Failure modes:
    - ProductNotFoundError, StockMovementNotFoundError, DocumentNotFoundError.
    - InvalidQuantityError, InvalidUnitCostError.
    - ConcurrentModificationError.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from sales_kernel.domain.clock import Clock, SystemClock
from sales_kernel.domain.costing import (
    CostPosition,
    apply_return,
    apply_stock_in,
    apply_stock_out,
)
from sales_kernel.domain.values import to_decimal
from sales_kernel.exceptions import (
    DocumentNotFoundError,
    ProductNotFoundError,
    StockMovementNotFoundError,
)
from sales_kernel.logging_config import get_logger
from sales_kernel.models.document import Document
from sales_kernel.models.stock import MovementType, Product, StockMovement
from sales_kernel.services.base import BaseService

logger = get_logger("services.stock_costing")


@dataclass(frozen=True)
class ProductCostInfo:
    id: UUID
    code: str
    label: str
    center_id: str | None
    quantity_on_hand: Decimal
    average_cost: Decimal


@dataclass(frozen=True)
class StockMovementInfo:
    id: UUID
    product_id: UUID
    document_id: UUID | None
    movement_type: MovementType
    quantity: Decimal
    unit_cost: Decimal
    occurred_at: datetime

    @property
    def value(self) -> Decimal:
        """abs(quantity) x unit cost."""
        return abs(self.quantity) * self.unit_cost


class StockCostingService(BaseService[Product]):
    """Weighted-average cost maintenance."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self.clock = clock or SystemClock()

    def _product_dto(self, product: Product) -> ProductCostInfo:
        return ProductCostInfo(
            id=product.id,
            code=product.code,
            label=product.name,
            center_id=product.center_id,
            quantity_on_hand=product.quantity_on_hand,
            average_cost=product.average_cost,
        )

    def _movement_dto(self, movement: StockMovement) -> StockMovementInfo:
        return StockMovementInfo(
            id=movement.id,
            product_id=movement.product_id,
            document_id=movement.document_id,
            movement_type=MovementType(movement.movement_type),
            quantity=movement.quantity,
            unit_cost=movement.unit_cost,
            occurred_at=movement.occurred_at,
        )

    def _lock_product(self, product_id: UUID) -> Product:
        product = self._lock(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return product

    def _require_document(self, document_id: UUID | None) -> None:
        if document_id is not None and self.session.get(Document, document_id) is None:
            raise DocumentNotFoundError(str(document_id))

    def _record(
        self,
        product: Product,
        movement_type: MovementType,
        signed_quantity: Decimal,
        unit_cost: Decimal,
        position: CostPosition,
        actor_id: UUID,
        document_id: UUID | None,
        occurred_at: datetime | None,
    ) -> StockMovementInfo:
        previous_cost = product.average_cost
        product.quantity_on_hand = position.quantity
        product.average_cost = position.average_cost
        product.updated_by_id = actor_id

        movement = StockMovement(
            product_id=product.id,
            document_id=document_id,
            movement_type=movement_type.value,
            quantity=signed_quantity,
            unit_cost=unit_cost,
            occurred_at=occurred_at or self.clock.now(),
            created_by_id=actor_id,
        )
        self.session.add(movement)
        self._flush("Product", product.id)

        logger.info(
            "stock_movement_recorded",
            extra={
                "movement_id": str(movement.id),
                "product_id": str(product.id),
                "document_id": str(document_id) if document_id else None,
                "movement_type": movement_type.value,
                "quantity": signed_quantity,
                "unit_cost": unit_cost,
                "quantity_on_hand": position.quantity,
            },
        )
        if previous_cost != position.average_cost:
            logger.info(
                "stock_cost_updated",
                extra={
                    "product_id": str(product.id),
                    "old_average_cost": previous_cost,
                    "new_average_cost": position.average_cost,
                },
            )
        return self._movement_dto(movement)

    # ------------------------------------------------------------------
    # Products
    # ------------------------------------------------------------------

    def create_product(
        self,
        code: str,
        label: str,
        actor_id: UUID,
        center_id: str | None = None,
    ) -> ProductCostInfo:
        product = Product(
            code=code,
            name=label,
            center_id=center_id,
            quantity_on_hand=Decimal("0"),
            average_cost=Decimal("0"),
            created_by_id=actor_id,
        )
        self.session.add(product)
        self.session.flush()
        logger.info("product_created", extra={"product_id": str(product.id), "code": code})
        return self._product_dto(product)

    def get_product_cost(self, product_id: UUID) -> ProductCostInfo:
        product = self.session.get(Product, product_id)
        if product is None:
            raise ProductNotFoundError(str(product_id))
        return self._product_dto(product)

    # ------------------------------------------------------------------
    # Movements
    # ------------------------------------------------------------------

    def record_stock_in(
        self,
        product_id: UUID,
        quantity: Decimal | int | str,
        unit_cost: Decimal | int | str,
        actor_id: UUID,
        document_id: UUID | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovementInfo:
        """Receive stock at a purchase cost; updates the weighted average."""
        qty = to_decimal(quantity)
        cost = to_decimal(unit_cost)
        product = self._lock_product(product_id)
        self._require_document(document_id)
        position = apply_stock_in(
            CostPosition(product.quantity_on_hand, product.average_cost), qty, cost
        )
        return self._record(
            product, MovementType.IN, qty, cost, position, actor_id, document_id, occurred_at
        )

    def record_stock_out(
        self,
        product_id: UUID,
        quantity: Decimal | int | str,
        actor_id: UUID,
        document_id: UUID | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovementInfo:
        """Issue stock for a sale; the movement keeps the current average cost."""
        qty = to_decimal(quantity)
        product = self._lock_product(product_id)
        self._require_document(document_id)
        position, unit_cost = apply_stock_out(
            CostPosition(product.quantity_on_hand, product.average_cost), qty
        )
        return self._record(
            product, MovementType.OUT, -qty, unit_cost, position, actor_id, document_id, occurred_at
        )

    def record_return(
        self,
        product_id: UUID,
        quantity: Decimal | int | str,
        actor_id: UUID,
        document_id: UUID | None = None,
        occurred_at: datetime | None = None,
    ) -> StockMovementInfo:
        """Goods returned against a credit note re-enter at the current average."""
        qty = to_decimal(quantity)
        product = self._lock_product(product_id)
        self._require_document(document_id)
        position, unit_cost = apply_return(
            CostPosition(product.quantity_on_hand, product.average_cost), qty
        )
        return self._record(
            product, MovementType.RETURN, qty, unit_cost, position, actor_id, document_id, occurred_at
        )

    def repoint_movement(
        self,
        movement_id: UUID,
        actor_id: UUID,
        product_id: UUID | None = None,
        document_id: UUID | None = None,
    ) -> StockMovementInfo:
        """
        Data repair: move a movement to another product and/or document.

        Quantities and costs are untouched.  Product positions are not
        re-averaged; merges re-point history, they do not replay it.
        """
        movement = self._lock(StockMovement, movement_id)
        if movement is None:
            raise StockMovementNotFoundError(str(movement_id))

        old_product, old_document = movement.product_id, movement.document_id
        if product_id is not None:
            if self.session.get(Product, product_id) is None:
                raise ProductNotFoundError(str(product_id))
            movement.product_id = product_id
        if document_id is not None:
            self._require_document(document_id)
            movement.document_id = document_id
        movement.updated_by_id = actor_id
        self._flush("StockMovement", movement.id)

        logger.info(
            "stock_movement_repointed",
            extra={
                "movement_id": str(movement.id),
                "old_product_id": str(old_product),
                "new_product_id": str(movement.product_id),
                "old_document_id": str(old_document) if old_document else None,
                "new_document_id": str(movement.document_id) if movement.document_id else None,
                "actor": str(actor_id),
            },
        )
        return self._movement_dto(movement)

    def movements_for_product(self, product_id: UUID) -> list[StockMovementInfo]:
        stmt = (
            select(StockMovement)
            .where(StockMovement.product_id == product_id)
            .order_by(StockMovement.occurred_at, StockMovement.created_at)
        )
        return [self._movement_dto(m) for m in self.session.execute(stmt).scalars()]
