"""ORM models for the PPE kernel."""

from ppe_kernel.models.assignment import PpeAssignment
from ppe_kernel.models.audit_entry import AuditEntry
from ppe_kernel.models.catalog import PpeCategory, PpeMasterItem
from ppe_kernel.models.employee import Employee, EmployeeStatus
from ppe_kernel.models.setting import ApplicationSetting
from ppe_kernel.models.stock_movement import MovementType, StockMovement

__all__ = [
    "ApplicationSetting",
    "AuditEntry",
    "Employee",
    "EmployeeStatus",
    "MovementType",
    "PpeAssignment",
    "PpeCategory",
    "PpeMasterItem",
    "StockMovement",
]
