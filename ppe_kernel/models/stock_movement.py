"""
Module: ppe_kernel.models.stock_movement
Responsibility: Append-only ledger of every change to a master item's
    current_stock counter.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - quantity_delta is the change actually applied (a floored decrement
      records the smaller applied delta, not the requested one).
    - stock_after equals the master item's current_stock immediately after
      the movement.
    - Summing quantity_delta over an item's movements yields the stock the
      counter should hold; StockReconciliationSelector relies on this.
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ppe_kernel.db.base import Base, UUIDString


class MovementType(str, Enum):
    """Why the counter moved."""

    RECEIPT = "receipt"
    ISSUE = "issue"
    CORRECTION = "correction"


class StockMovement(Base):
    """One signed change to a master item's stock."""

    __tablename__ = "stock_movements"

    __table_args__ = (
        Index("idx_stock_movement_item", "master_item_id", "recorded_at"),
    )

    master_item_id: Mapped[UUID] = mapped_column(
        ForeignKey("ppe_master_items.id", ondelete="CASCADE"),
        nullable=False,
    )

    quantity_delta: Mapped[int] = mapped_column(Integer, nullable=False)

    movement_type: Mapped[MovementType] = mapped_column(String(20), nullable=False)

    stock_after: Mapped[int] = mapped_column(Integer, nullable=False)

    reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Not a foreign key: assignment records may be hard-deleted later
    assignment_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    def __repr__(self) -> str:
        return f"<StockMovement {self.movement_type} {self.quantity_delta:+d} -> {self.stock_after}>"
