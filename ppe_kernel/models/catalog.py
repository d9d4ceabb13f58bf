"""
Module: ppe_kernel.models.catalog
Responsibility: ORM persistence for PPE categories and master items (SKUs).
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - Category code and name are unique.
    - Master item code is unique.
    - current_stock >= 0 and low_stock_threshold >= 0 (check constraints).
    - A category referenced by a master item cannot be deleted (ON DELETE
      RESTRICT); the catalog service reports CategoryInUseError first.

Audit relevance:
    current_stock is the authoritative count of un-issued units.  It is
    mutated only through StockLedgerService, which writes a StockMovement
    for every change so the counter can be reconciled.
"""

from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from ppe_kernel.db.base import TimestampedBase


class PpeCategory(TimestampedBase):
    """
    A class of equipment (cleanroom suit, hat, safety shoe, canvas shoe).

    The three flags drive per-item validation during issuance:
        tracks_serial      -- item-specific code required
        requires_size      -- size required unless a master item supplies it
        requires_condition -- new/used required
    """

    __tablename__ = "ppe_categories"

    __table_args__ = (
        UniqueConstraint("code", name="uq_ppe_category_code"),
        UniqueConstraint("name", name="uq_ppe_category_name"),
    )

    # Stable key used by capacity configuration (e.g. "SUIT")
    code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(100), nullable=False)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    tracks_serial: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_size: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    requires_condition: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    def __repr__(self) -> str:
        return f"<PpeCategory {self.code}: {self.name}>"


class PpeMasterItem(TimestampedBase):
    """
    Catalog entry of which many physical units may exist.

    Guarantees:
        - item_code is unique.
        - current_stock never goes negative (DB check plus floored decrement).
    """

    __tablename__ = "ppe_master_items"

    __table_args__ = (
        UniqueConstraint("item_code", name="uq_ppe_master_item_code"),
        CheckConstraint("current_stock >= 0", name="ck_master_item_stock_non_negative"),
        CheckConstraint("low_stock_threshold >= 0", name="ck_master_item_threshold_non_negative"),
        Index("idx_master_item_category", "category_id"),
    )

    item_code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("ppe_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    size: Mapped[str | None] = mapped_column(String(20), nullable=True)

    unit_of_measure: Mapped[str | None] = mapped_column(String(20), nullable=True)

    expected_lifespan_days: Mapped[int | None] = mapped_column(Integer, nullable=True)

    default_remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    current_stock: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    low_stock_threshold: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.low_stock_threshold

    def __repr__(self) -> str:
        return f"<PpeMasterItem {self.item_code}: {self.name} (stock={self.current_stock})>"
