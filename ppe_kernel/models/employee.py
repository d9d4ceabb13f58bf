"""
Module: ppe_kernel.models.employee
Responsibility: ORM persistence for employees who hold PPE.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - employee_code is unique (uq_employee_code) and is the stable business
      identifier callers use; the UUID id is the foreign key target.
    - Deleting an employee deletes every assignment row (ON DELETE CASCADE,
      mirrored by the ORM relationship cascade).

Failure modes:
    - IntegrityError on duplicate employee_code.
"""

from datetime import date
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import Date, Index, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from ppe_kernel.db.base import TimestampedBase

if TYPE_CHECKING:
    from ppe_kernel.models.assignment import PpeAssignment


class EmployeeStatus(str, Enum):
    """Employment status."""

    ACTIVE = "active"
    SEPARATED = "separated"


class Employee(TimestampedBase):
    """
    A person to whom PPE is issued.

    Guarantees:
        - employee_code is globally unique.
        - assignments are removed with the employee.
    """

    __tablename__ = "employees"

    __table_args__ = (
        UniqueConstraint("employee_code", name="uq_employee_code"),
        Index("idx_employee_status", "status"),
    )

    employee_code: Mapped[str] = mapped_column(String(50), nullable=False)

    name: Mapped[str] = mapped_column(String(255), nullable=False)

    status: Mapped[EmployeeStatus] = mapped_column(
        String(20),
        nullable=False,
        default=EmployeeStatus.ACTIVE,
    )

    entry_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    # Process / role on the line
    process: Mapped[str | None] = mapped_column(String(100), nullable=True)

    remarks: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Locker codes (two sites, clothes and shoes each)
    locker_clothes_1: Mapped[str | None] = mapped_column(String(50), nullable=True)
    locker_shoes_1: Mapped[str | None] = mapped_column(String(50), nullable=True)
    locker_clothes_2: Mapped[str | None] = mapped_column(String(50), nullable=True)
    locker_shoes_2: Mapped[str | None] = mapped_column(String(50), nullable=True)

    assignments: Mapped[list["PpeAssignment"]] = relationship(
        back_populates="employee",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    @property
    def is_separated(self) -> bool:
        return self.status == EmployeeStatus.SEPARATED

    def __repr__(self) -> str:
        return f"<Employee {self.employee_code}: {self.name} ({self.status})>"
