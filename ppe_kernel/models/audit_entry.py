"""
Module: ppe_kernel.models.audit_entry
Responsibility: Human-readable action log.  Written by AuditRecorder,
    read by AuditSelector.
"""

from datetime import datetime

from sqlalchemy import Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from ppe_kernel.db.base import Base


class AuditEntry(Base):
    """Timestamp, operation type and free-text description of one action."""

    __tablename__ = "audit_entries"

    __table_args__ = (
        Index("idx_audit_entry_recorded_at", "recorded_at"),
    )

    recorded_at: Mapped[datetime] = mapped_column(nullable=False)

    operation_type: Mapped[str] = mapped_column(String(100), nullable=False)

    description: Mapped[str] = mapped_column(Text, nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEntry {self.recorded_at} {self.operation_type}>"
