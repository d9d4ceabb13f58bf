"""Audit log queries."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from uuid import UUID

from sqlalchemy import select

from ppe_kernel.models.audit_entry import AuditEntry
from ppe_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class AuditEntryInfo:
    id: UUID
    recorded_at: datetime
    operation_type: str
    description: str


class AuditSelector(BaseSelector[AuditEntry]):
    """Filterable, newest-first view of the audit log."""

    def entries(
        self,
        date_from: date | None = None,
        date_to: date | None = None,
        operation_type: str | None = None,
        limit: int | None = None,
    ) -> list[AuditEntryInfo]:
        """
        Args:
            date_from: Inclusive start date (UTC).
            date_to: Inclusive end date (UTC).
            operation_type: Case-insensitive substring of the operation type.
            limit: Maximum rows returned.
        """
        stmt = select(AuditEntry)
        if date_from is not None:
            stmt = stmt.where(
                AuditEntry.recorded_at >= datetime.combine(date_from, time.min, tzinfo=timezone.utc)
            )
        if date_to is not None:
            stmt = stmt.where(
                AuditEntry.recorded_at
                < datetime.combine(date_to + timedelta(days=1), time.min, tzinfo=timezone.utc)
            )
        if operation_type:
            stmt = stmt.where(AuditEntry.operation_type.ilike(f"%{operation_type.strip()}%"))
        stmt = stmt.order_by(AuditEntry.recorded_at.desc())
        if limit is not None:
            stmt = stmt.limit(limit)

        return [
            AuditEntryInfo(
                id=e.id,
                recorded_at=e.recorded_at,
                operation_type=e.operation_type,
                description=e.description,
            )
            for e in self.session.execute(stmt).scalars()
        ]
