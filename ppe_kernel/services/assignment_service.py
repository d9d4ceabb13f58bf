"""
AssignmentService -- write side of the assignment repository.

Responsibility:
    Inserts and deactivates assignment rows for the issuance engine, and
    provides the record maintenance paths used by management screens:
    editing a record, hard-deleting it, and returning an item.

Architecture position:
    Kernel > Services.  Flush-only; the caller owns the transaction.

Invariants enforced:
    - deactivate() only flips a row that is still active (and, when given,
      belongs to the expected employee); it reports whether a row changed
      so the engine can detect concurrent deactivation.
    - Record edits, deletions and returns are audited.
"""

from __future__ import annotations

from datetime import date
from uuid import UUID

from sqlalchemy import update
from sqlalchemy.orm import Session

from ppe_kernel.domain.clock import Clock, SystemClock
from ppe_kernel.domain.dtos import AssignmentInfo
from ppe_kernel.domain.issuance import normalize_condition
from ppe_kernel.exceptions import (
    AssignmentInactiveError,
    AssignmentNotFoundError,
    CategoryNotFoundError,
)
from ppe_kernel.logging_config import get_logger
from ppe_kernel.models.assignment import PpeAssignment
from ppe_kernel.models.catalog import PpeCategory
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder
from ppe_kernel.services.base import BaseService

logger = get_logger("services.assignment")


class AssignmentService(BaseService[PpeAssignment]):
    """Writes to ppe_assignments."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit or AuditRecorder(session, self._clock)

    def _get(self, assignment_id: UUID) -> PpeAssignment:
        assignment = self.session.get(PpeAssignment, assignment_id)
        if assignment is None:
            raise AssignmentNotFoundError(str(assignment_id))
        return assignment

    def _category(self, category_id: UUID) -> PpeCategory:
        category = self.session.get(PpeCategory, category_id)
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return category

    def _to_dto(self, assignment: PpeAssignment) -> AssignmentInfo:
        return AssignmentInfo.from_model(assignment, self._category(assignment.category_id))

    def _describe(self, assignment: PpeAssignment) -> str:
        category = self._category(assignment.category_id)
        employee_code = assignment.employee.employee_code
        return (
            f"{category.name} {assignment.item_code or '(no code)'} "
            f"of employee {employee_code}"
        )

    # ------------------------------------------------------------------
    # Issuance engine interface
    # ------------------------------------------------------------------

    def insert(
        self,
        employee_id: UUID,
        category_id: UUID,
        issue_date: date,
        item_code: str | None = None,
        size: str | None = None,
        condition: str | None = None,
        remarks: str | None = None,
        master_item_id: UUID | None = None,
    ) -> AssignmentInfo:
        """Insert one active assignment and flush it."""
        assignment = PpeAssignment(
            employee_id=employee_id,
            category_id=category_id,
            issue_date=issue_date,
            item_code=item_code,
            size=size,
            condition=condition,
            remarks=remarks,
            master_item_id=master_item_id,
            is_active=True,
            issued_at=self._clock.now(),
        )
        self.session.add(assignment)
        self.session.flush()
        logger.debug(
            "assignment_inserted",
            extra={
                "assignment_id": str(assignment.id),
                "employee_id": str(employee_id),
                "category_id": str(category_id),
            },
        )
        return self._to_dto(assignment)

    def deactivate(self, assignment_id: UUID, employee_id: UUID | None = None) -> bool:
        """
        Flip an active assignment to inactive.

        Returns:
            True if exactly one active row was changed, False if the row is
            missing, already inactive, or belongs to another employee.
        """
        stmt = (
            update(PpeAssignment)
            .where(PpeAssignment.id == assignment_id)
            .where(PpeAssignment.is_active == True)  # noqa: E712
            .values(is_active=False, deactivated_at=self._clock.now())
            .execution_options(synchronize_session="evaluate")
        )
        if employee_id is not None:
            stmt = stmt.where(PpeAssignment.employee_id == employee_id)
        result = self.session.execute(stmt)
        changed = result.rowcount == 1
        logger.debug(
            "assignment_deactivated" if changed else "assignment_deactivate_missed",
            extra={"assignment_id": str(assignment_id)},
        )
        return changed

    # ------------------------------------------------------------------
    # Record maintenance
    # ------------------------------------------------------------------

    def return_item(self, assignment_id: UUID, remarks: str | None = None) -> AssignmentInfo:
        """Deactivate an assignment without issuing a replacement."""
        assignment = self._get(assignment_id)
        if not assignment.is_active:
            raise AssignmentInactiveError(str(assignment_id))

        assignment.is_active = False
        assignment.deactivated_at = self._clock.now()
        if remarks:
            assignment.remarks = remarks
        self.session.flush()

        self._audit.record(AuditOperation.RETURN, f"Returned {self._describe(assignment)}")
        logger.info("assignment_returned", extra={"assignment_id": str(assignment_id)})
        return self._to_dto(assignment)

    def update_record(
        self,
        assignment_id: UUID,
        *,
        item_code: str | None = None,
        issue_date: date | None = None,
        size: str | None = None,
        condition: str | None = None,
        remarks: str | None = None,
        is_active: bool | None = None,
    ) -> AssignmentInfo:
        """
        Edit fields of an existing record.  Arguments left as None are
        unchanged.  Flipping is_active stamps or clears deactivated_at.

        Raises:
            AssignmentNotFoundError
            ValidationFailedError: condition other than new/used.
        """
        assignment = self._get(assignment_id)
        category = self._category(assignment.category_id)
        changes = []

        if item_code is not None:
            assignment.item_code = item_code.strip() or None
            changes.append("item_code")
        if issue_date is not None:
            assignment.issue_date = issue_date
            changes.append("issue_date")
        if size is not None:
            assignment.size = size.strip() or None
            changes.append("size")
        if condition is not None:
            assignment.condition = normalize_condition(condition, category.code, 1)
            changes.append("condition")
        if remarks is not None:
            assignment.remarks = remarks.strip() or None
            changes.append("remarks")
        if is_active is not None and is_active != assignment.is_active:
            assignment.is_active = is_active
            assignment.deactivated_at = None if is_active else self._clock.now()
            changes.append("is_active")

        self.session.flush()
        if changes:
            self._audit.record(
                AuditOperation.ASSIGNMENT_EDIT,
                f"Edited {self._describe(assignment)}: {', '.join(changes)}",
            )
            logger.info(
                "assignment_updated",
                extra={"assignment_id": str(assignment_id), "fields": changes},
            )
        return self._to_dto(assignment)

    def delete_record(self, assignment_id: UUID) -> None:
        """Hard-delete one record. Stock is not touched."""
        assignment = self._get(assignment_id)
        description = self._describe(assignment)
        self.session.delete(assignment)
        self.session.flush()

        self._audit.record(AuditOperation.ASSIGNMENT_DELETE, f"Deleted record {description}")
        logger.info("assignment_deleted", extra={"assignment_id": str(assignment_id)})
