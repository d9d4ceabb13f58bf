"""Read-only query selectors."""

from ppe_kernel.selectors.assignment_selector import AssignmentSelector
from ppe_kernel.selectors.audit_selector import AuditEntryInfo, AuditSelector
from ppe_kernel.selectors.base import BaseSelector
from ppe_kernel.selectors.catalog_selector import CatalogSelector
from ppe_kernel.selectors.stock_reconciliation_selector import (
    StockDiscrepancy,
    StockReconciliationSelector,
)

__all__ = [
    "AssignmentSelector",
    "AuditEntryInfo",
    "AuditSelector",
    "BaseSelector",
    "CatalogSelector",
    "StockDiscrepancy",
    "StockReconciliationSelector",
]
