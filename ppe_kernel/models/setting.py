"""
Module: ppe_kernel.models.setting
Responsibility: Key/value application settings.  Capacity ceilings are
    stored one row per category under ``max_active.<CODE>``.
"""

from sqlalchemy import String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from ppe_kernel.db.base import TimestampedBase


class ApplicationSetting(TimestampedBase):
    """One persisted setting."""

    __tablename__ = "application_settings"

    __table_args__ = (
        UniqueConstraint("key", name="uq_application_setting_key"),
    )

    key: Mapped[str] = mapped_column(String(100), nullable=False)

    value: Mapped[str] = mapped_column(String(255), nullable=False)

    def __repr__(self) -> str:
        return f"<ApplicationSetting {self.key}={self.value}>"
