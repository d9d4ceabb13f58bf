"""
Module: ppe_kernel.models.assignment
Responsibility: ORM persistence for issuance records linking one physical
    PPE unit to one employee for an active period.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - category_id is a real foreign key; the display name is resolved at
      read time, so category renames never leave stale names behind.
    - Replacement and return flip is_active and stamp deactivated_at; rows
      are hard-deleted only by employee cascade or explicit record deletion.
    - master_item_id is set to NULL if the master item is deleted.
"""

from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ppe_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from ppe_kernel.models.employee import Employee


class PpeAssignment(TimestampedBase):
    """One physical unit held (or formerly held) by one employee."""

    __tablename__ = "ppe_assignments"

    __table_args__ = (
        Index("idx_assignment_employee_category_active", "employee_id", "category_id", "is_active"),
        Index("idx_assignment_item_code", "item_code"),
    )

    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.id", ondelete="CASCADE"),
        nullable=False,
    )

    category_id: Mapped[UUID] = mapped_column(
        ForeignKey("ppe_categories.id", ondelete="RESTRICT"),
        nullable=False,
    )

    # Item-specific code / serial
    item_code: Mapped[str | None] = mapped_column(String(100), nullable=True)

    issue_date: Mapped[date] = mapped_column(Date, nullable=False)

    size: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # "new" or "used"
    condition: Mapped[str | None] = mapped_column(String(10), nullable=True)

    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    master_item_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("ppe_master_items.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Clock time the record was written; orders same-day issues
    issued_at: Mapped[datetime] = mapped_column(nullable=False)

    deactivated_at: Mapped[datetime | None] = mapped_column(nullable=True)

    employee: Mapped["Employee"] = relationship(back_populates="assignments")

    def __repr__(self) -> str:
        state = "active" if self.is_active else "inactive"
        return f"<PpeAssignment {self.item_code or '-'} ({state}) issued {self.issue_date}>"
