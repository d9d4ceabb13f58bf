"""
Assignment read queries.

Every query joins the category so the returned AssignmentInfo carries the
category's current code and display name.  Active lists are ordered oldest
first (issue date, then the time the record was written), which is the
order replacement candidates are presented in.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from ppe_kernel.domain.dtos import AssignmentInfo, EmployeeInfo
from ppe_kernel.models.assignment import PpeAssignment
from ppe_kernel.models.catalog import PpeCategory
from ppe_kernel.models.employee import Employee
from ppe_kernel.selectors.base import BaseSelector


class AssignmentSelector(BaseSelector[PpeAssignment]):
    """Read side of the assignment repository."""

    def _base_query(self):
        return (
            select(PpeAssignment, PpeCategory)
            .join(PpeCategory, PpeAssignment.category_id == PpeCategory.id)
        )

    def _rows_to_dtos(self, rows) -> list[AssignmentInfo]:
        return [AssignmentInfo.from_model(a, c) for a, c in rows]

    def get(self, assignment_id: UUID) -> AssignmentInfo | None:
        stmt = self._base_query().where(PpeAssignment.id == assignment_id)
        row = self.session.execute(stmt).first()
        return AssignmentInfo.from_model(*row) if row else None

    def active_for_employee_category(
        self,
        employee_id: UUID,
        category_id: UUID,
    ) -> list[AssignmentInfo]:
        """Active assignments of one employee in one category, oldest first."""
        stmt = (
            self._base_query()
            .where(PpeAssignment.employee_id == employee_id)
            .where(PpeAssignment.category_id == category_id)
            .where(PpeAssignment.is_active == True)  # noqa: E712
            .order_by(PpeAssignment.issue_date, PpeAssignment.issued_at)
        )
        return self._rows_to_dtos(self.session.execute(stmt).all())

    def active_for_employee(self, employee_id: UUID) -> list[AssignmentInfo]:
        stmt = (
            self._base_query()
            .where(PpeAssignment.employee_id == employee_id)
            .where(PpeAssignment.is_active == True)  # noqa: E712
            .order_by(PpeCategory.name, PpeAssignment.issue_date, PpeAssignment.issued_at)
        )
        return self._rows_to_dtos(self.session.execute(stmt).all())

    def history_for_employee(self, employee_id: UUID) -> list[AssignmentInfo]:
        """Every assignment of the employee, active or not, newest first."""
        stmt = (
            self._base_query()
            .where(PpeAssignment.employee_id == employee_id)
            .order_by(PpeAssignment.issue_date.desc(), PpeAssignment.issued_at.desc())
        )
        return self._rows_to_dtos(self.session.execute(stmt).all())

    def count_active(self, employee_id: UUID, category_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(PpeAssignment)
            .where(PpeAssignment.employee_id == employee_id)
            .where(PpeAssignment.category_id == category_id)
            .where(PpeAssignment.is_active == True)  # noqa: E712
        )
        return self.session.execute(stmt).scalar_one()

    def count_for_category(self, category_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(PpeAssignment)
            .where(PpeAssignment.category_id == category_id)
        )
        return self.session.execute(stmt).scalar_one()

    def find_holder(
        self,
        item_code: str,
        category_id: UUID | None = None,
    ) -> EmployeeInfo | None:
        """The employee actively holding the unit with this item code, if any."""
        stmt = (
            select(Employee)
            .join(PpeAssignment, PpeAssignment.employee_id == Employee.id)
            .where(PpeAssignment.item_code == item_code.strip())
            .where(PpeAssignment.is_active == True)  # noqa: E712
        )
        if category_id is not None:
            stmt = stmt.where(PpeAssignment.category_id == category_id)
        employee = self.session.execute(stmt.limit(1)).scalar_one_or_none()
        return EmployeeInfo.from_model(employee) if employee else None
