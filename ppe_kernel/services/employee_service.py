"""
Service layer for employee records.

Returns EmployeeInfo DTOs instead of ORM entities.  Deleting an employee
removes all of their assignment records.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from ppe_kernel.domain.clock import Clock, SystemClock
from ppe_kernel.domain.dtos import EmployeeInfo
from ppe_kernel.exceptions import (
    DuplicateEmployeeError,
    EmployeeNotFoundError,
    InvalidEmployeeFieldError,
)
from ppe_kernel.logging_config import get_logger
from ppe_kernel.models.assignment import PpeAssignment
from ppe_kernel.models.employee import Employee, EmployeeStatus
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder
from ppe_kernel.services.base import BaseService

logger = get_logger("services.employee")

_EDITABLE_FIELDS = (
    "name",
    "entry_date",
    "process",
    "remarks",
    "locker_clothes_1",
    "locker_shoes_1",
    "locker_clothes_2",
    "locker_shoes_2",
)


class EmployeeService(BaseService[Employee]):
    """Create, edit, separate and delete employees."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit or AuditRecorder(session, self._clock)

    def _get_by_code(self, employee_code: str) -> Employee:
        stmt = select(Employee).where(Employee.employee_code == employee_code)
        employee = self.session.execute(stmt).scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(employee_code)
        return employee

    def get_by_code(self, employee_code: str) -> EmployeeInfo:
        """
        Raises:
            EmployeeNotFoundError
        """
        return EmployeeInfo.from_model(self._get_by_code(employee_code))

    def find_by_code(self, employee_code: str) -> EmployeeInfo | None:
        stmt = select(Employee).where(Employee.employee_code == employee_code)
        employee = self.session.execute(stmt).scalar_one_or_none()
        return EmployeeInfo.from_model(employee) if employee else None

    def get_by_id(self, employee_id: UUID) -> EmployeeInfo:
        employee = self.session.get(Employee, employee_id)
        if employee is None:
            raise EmployeeNotFoundError(str(employee_id))
        return EmployeeInfo.from_model(employee)

    def list_employees(self, status: EmployeeStatus | None = None) -> list[EmployeeInfo]:
        stmt = select(Employee)
        if status is not None:
            stmt = stmt.where(Employee.status == status)
        stmt = stmt.order_by(Employee.employee_code)
        return [EmployeeInfo.from_model(e) for e in self.session.execute(stmt).scalars()]

    def search_by_name(self, fragment: str) -> list[EmployeeInfo]:
        """Employees whose name contains ``fragment``, ignoring case."""
        fragment = fragment.strip()
        if not fragment:
            return []
        stmt = (
            select(Employee)
            .where(Employee.name.ilike(f"%{fragment}%"))
            .order_by(Employee.name, Employee.employee_code)
        )
        return [EmployeeInfo.from_model(e) for e in self.session.execute(stmt).scalars()]

    def create_employee(
        self,
        employee_code: str,
        name: str,
        entry_date: date | None = None,
        process: str | None = None,
        remarks: str | None = None,
        locker_clothes_1: str | None = None,
        locker_shoes_1: str | None = None,
        locker_clothes_2: str | None = None,
        locker_shoes_2: str | None = None,
    ) -> EmployeeInfo:
        """
        Create a new active employee.

        Raises:
            DuplicateEmployeeError: employee_code already exists.
            InvalidEmployeeFieldError: blank code or name.
        """
        employee_code = employee_code.strip()
        if not employee_code:
            raise InvalidEmployeeFieldError("employee_code")
        if not name.strip():
            raise InvalidEmployeeFieldError("name")
        if self.find_by_code(employee_code) is not None:
            raise DuplicateEmployeeError(employee_code)

        employee = Employee(
            employee_code=employee_code,
            name=name.strip(),
            status=EmployeeStatus.ACTIVE,
            entry_date=entry_date,
            process=process,
            remarks=remarks,
            locker_clothes_1=locker_clothes_1,
            locker_shoes_1=locker_shoes_1,
            locker_clothes_2=locker_clothes_2,
            locker_shoes_2=locker_shoes_2,
        )
        self.session.add(employee)
        self.session.flush()

        self._audit.record(
            AuditOperation.EMPLOYEE_CREATE,
            f"Created employee {employee_code} ({employee.name})",
        )
        logger.info("employee_created", extra={"employee_code": employee_code})
        return EmployeeInfo.from_model(employee)

    def update_employee(self, employee_code: str, /, **changes) -> EmployeeInfo:
        """
        Edit descriptive fields.  Accepted keyword arguments are the
        editable column names (name, entry_date, process, remarks and the
        four locker codes).

        Raises:
            EmployeeNotFoundError
            InvalidEmployeeFieldError: unknown field name or blank name.
        """
        unknown = sorted(set(changes) - set(_EDITABLE_FIELDS))
        if unknown:
            raise InvalidEmployeeFieldError(", ".join(unknown), "not editable")
        if "name" in changes:
            if not changes["name"] or not changes["name"].strip():
                raise InvalidEmployeeFieldError("name", "cannot be empty")
            changes["name"] = changes["name"].strip()

        employee = self._get_by_code(employee_code)
        for field_name, value in changes.items():
            setattr(employee, field_name, value)
        self.session.flush()

        self._audit.record(
            AuditOperation.EMPLOYEE_UPDATE,
            f"Updated employee {employee_code}: {', '.join(sorted(changes))}",
        )
        logger.info(
            "employee_updated",
            extra={"employee_code": employee_code, "fields": sorted(changes)},
        )
        return EmployeeInfo.from_model(employee)

    def mark_separated(self, employee_code: str) -> EmployeeInfo:
        employee = self._get_by_code(employee_code)
        employee.status = EmployeeStatus.SEPARATED
        self.session.flush()

        self._audit.record(
            AuditOperation.EMPLOYEE_UPDATE,
            f"Employee {employee_code} marked separated",
        )
        logger.info("employee_separated", extra={"employee_code": employee_code})
        return EmployeeInfo.from_model(employee)

    def delete_employee(self, employee_code: str) -> int:
        """
        Delete the employee and all their assignment records.

        Returns:
            Number of assignment records removed with the employee.
        """
        employee = self._get_by_code(employee_code)
        removed = self.session.execute(
            select(func.count())
            .select_from(PpeAssignment)
            .where(PpeAssignment.employee_id == employee.id)
        ).scalar_one()

        self.session.delete(employee)
        self.session.flush()

        self._audit.record(
            AuditOperation.EMPLOYEE_DELETE,
            f"Deleted employee {employee_code} with {removed} assignment record(s)",
        )
        logger.info(
            "employee_deleted",
            extra={"employee_code": employee_code, "assignments_removed": removed},
        )
        return removed
