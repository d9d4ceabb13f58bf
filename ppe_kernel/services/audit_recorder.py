"""
AuditRecorder -- fire-and-forget writer of the human-readable action log.

Responsibility:
    Appends one AuditEntry per domain event.  Each write runs in its own
    SAVEPOINT so a failed audit insert neither aborts nor surfaces in the
    caller's transaction; the failure is logged and swallowed.

Architecture position:
    Kernel > Services.  Used by every other write service.

Invariants enforced:
    - Entries are written inside the caller's transaction, so a rolled-back
      issuance leaves no audit trail for writes that never happened.
    - record() never raises for storage failures.
"""

from __future__ import annotations

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ppe_kernel.domain.clock import Clock, SystemClock
from ppe_kernel.logging_config import get_logger
from ppe_kernel.models.audit_entry import AuditEntry
from ppe_kernel.services.base import BaseService

logger = get_logger("services.audit_recorder")


class AuditOperation:
    """Operation type strings written to the audit log."""

    ISSUE = "ISSUE"
    DEACTIVATE = "DEACTIVATE"
    RETURN = "RETURN"
    STOCK_DECREMENT = "STOCK_DECREMENT"
    STOCK_RECEIPT = "STOCK_RECEIPT"
    STOCK_CORRECTION = "STOCK_CORRECTION"
    STOCK_RECONCILE = "STOCK_RECONCILE"
    ASSIGNMENT_EDIT = "ASSIGNMENT_EDIT"
    ASSIGNMENT_DELETE = "ASSIGNMENT_DELETE"
    EMPLOYEE_CREATE = "EMPLOYEE_CREATE"
    EMPLOYEE_UPDATE = "EMPLOYEE_UPDATE"
    EMPLOYEE_DELETE = "EMPLOYEE_DELETE"
    CATEGORY_CREATE = "CATEGORY_CREATE"
    CATEGORY_UPDATE = "CATEGORY_UPDATE"
    CATEGORY_DELETE = "CATEGORY_DELETE"
    MASTER_ITEM_CREATE = "MASTER_ITEM_CREATE"
    MASTER_ITEM_UPDATE = "MASTER_ITEM_UPDATE"
    MASTER_ITEM_DELETE = "MASTER_ITEM_DELETE"
    SETTINGS_SAVE = "SETTINGS_SAVE"


class AuditRecorder(BaseService[AuditEntry]):
    """Appends audit entries without ever failing the caller."""

    def __init__(self, session: Session, clock: Clock | None = None):
        super().__init__(session)
        self._clock = clock or SystemClock()

    def record(self, operation_type: str, description: str) -> None:
        try:
            with self.session.begin_nested():
                self.session.add(
                    AuditEntry(
                        recorded_at=self._clock.now(),
                        operation_type=operation_type,
                        description=description,
                    )
                )
        except SQLAlchemyError:
            logger.warning(
                "audit_record_failed",
                extra={
                    "operation_type": operation_type,
                    "description": description,
                },
                exc_info=True,
            )
