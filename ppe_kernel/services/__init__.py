"""Write services and the issuance engine."""

from ppe_kernel.services.assignment_service import AssignmentService
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder
from ppe_kernel.services.capacity_config import DEFAULT_CAPACITIES, CapacityConfig
from ppe_kernel.services.catalog_service import DEFAULT_CATEGORIES, CatalogService
from ppe_kernel.services.employee_service import EmployeeService
from ppe_kernel.services.issuance_engine import IssuanceEngine
from ppe_kernel.services.issuance_session import IssuanceSession
from ppe_kernel.services.stock_ledger import StockLedgerService

__all__ = [
    "AssignmentService",
    "AuditOperation",
    "AuditRecorder",
    "CapacityConfig",
    "CatalogService",
    "DEFAULT_CAPACITIES",
    "DEFAULT_CATEGORIES",
    "EmployeeService",
    "IssuanceEngine",
    "IssuanceSession",
    "StockLedgerService",
]
