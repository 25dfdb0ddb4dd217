"""
Module: sales_kernel.models.stock
Responsibility: ORM persistence for products' weighted-average cost position
    and the stock movements that feed COGS.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Product.version is a version_id_col; cost read-modify-write is
      serialized by a row lock and checked by the version counter.
    - StockMovement.quantity and unit_cost never change once recorded.
      Only product_id / document_id may be re-pointed by data repair
      (db/immutability.py).

Audit relevance:
    A stock-out captures the average cost in force when it happened, so
    later purchases never alter historical COGS.
"""

from datetime import datetime
from decimal import Decimal
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from sales_kernel.db.base import TrackedBase, UUIDString


class MovementType(str, Enum):
    IN = "IN"
    OUT = "OUT"
    RETURN = "RETURN"


class Product(TrackedBase):
    """Stock item with its running quantity and weighted-average cost."""

    __tablename__ = "products"

    __table_args__ = (UniqueConstraint("code", "center_id", name="uq_product_code_center"),)

    code: Mapped[str] = mapped_column(String(64), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    center_id: Mapped[str | None] = mapped_column(String(64), nullable=True)

    quantity_on_hand: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    average_cost: Mapped[Decimal] = mapped_column(nullable=False, default=Decimal("0"))

    version: Mapped[int] = mapped_column(Integer, nullable=False)

    __mapper_args__ = {"version_id_col": version}

    def __repr__(self) -> str:
        return f"<Product {self.code} qty={self.quantity_on_hand} cump={self.average_cost}>"


class StockMovement(TrackedBase):
    """
    A signed stock movement.

    Quantity is positive for IN / RETURN and negative for OUT.  unit_cost is
    the purchase cost (IN) or the average cost captured at the time (OUT,
    RETURN).
    """

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_movement_product", "product_id"),
        Index("idx_movement_document", "document_id"),
    )

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )

    document_id: Mapped[UUID | None] = mapped_column(
        UUIDString(),
        ForeignKey("documents.id", ondelete="RESTRICT"),
        nullable=True,
    )

    movement_type: Mapped[str] = mapped_column(String(10), nullable=False)

    quantity: Mapped[Decimal] = mapped_column(nullable=False)

    unit_cost: Mapped[Decimal] = mapped_column(nullable=False)

    occurred_at: Mapped[datetime] = mapped_column(nullable=False)
