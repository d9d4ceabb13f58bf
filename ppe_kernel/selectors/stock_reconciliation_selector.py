"""
Module: ppe_kernel.selectors.stock_reconciliation_selector
Responsibility: Stock movement history, derived stock and reconciliation
    reporting for master items.
Architecture position: Kernel > Selectors.

Invariants enforced:
    - Derived stock for an item is the sum of its movement deltas.
    - A discrepancy is reported whenever current_stock differs from the
      derived stock.  Detection never corrects; StockLedgerService.reconcile
      does that explicitly.

Audit relevance:
    The discrepancy report is the detection half of stock recovery: it
    surfaces counters changed outside the ledger so they can be investigated
    and booked.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import func, select

from ppe_kernel.domain.dtos import MasterItemInfo, StockMovementInfo
from ppe_kernel.models.catalog import PpeMasterItem
from ppe_kernel.models.stock_movement import StockMovement
from ppe_kernel.selectors.base import BaseSelector


@dataclass(frozen=True)
class StockDiscrepancy:
    """A master item whose counter disagrees with its movement ledger."""

    master_item_id: UUID
    item_code: str
    recorded_stock: int
    derived_stock: int

    @property
    def difference(self) -> int:
        """Positive when the counter holds more than the ledger explains."""
        return self.recorded_stock - self.derived_stock


class StockReconciliationSelector(BaseSelector[StockMovement]):
    """Stock movement queries and reconciliation report."""

    def movements(self, master_item_id: UUID) -> list[StockMovementInfo]:
        """All movements for one item in recording order."""
        stmt = (
            select(StockMovement)
            .where(StockMovement.master_item_id == master_item_id)
            .order_by(StockMovement.recorded_at)
        )
        return [StockMovementInfo.from_model(m) for m in self.session.execute(stmt).scalars()]

    def derived_stock(self, master_item_id: UUID) -> int:
        stmt = (
            select(func.coalesce(func.sum(StockMovement.quantity_delta), 0))
            .where(StockMovement.master_item_id == master_item_id)
        )
        return int(self.session.execute(stmt).scalar_one())

    def discrepancies(self) -> list[StockDiscrepancy]:
        """Every master item whose current_stock differs from its ledger sum."""
        derived = (
            select(
                StockMovement.master_item_id.label("master_item_id"),
                func.sum(StockMovement.quantity_delta).label("total"),
            )
            .group_by(StockMovement.master_item_id)
            .subquery()
        )
        derived_total = func.coalesce(derived.c.total, 0)
        stmt = (
            select(PpeMasterItem.id, PpeMasterItem.item_code, PpeMasterItem.current_stock, derived_total)
            .outerjoin(derived, derived.c.master_item_id == PpeMasterItem.id)
            .where(PpeMasterItem.current_stock != derived_total)
            .order_by(PpeMasterItem.item_code)
        )
        return [
            StockDiscrepancy(
                master_item_id=row[0],
                item_code=row[1],
                recorded_stock=row[2],
                derived_stock=int(row[3]),
            )
            for row in self.session.execute(stmt).all()
        ]

    def low_stock_items(self) -> list[MasterItemInfo]:
        """Items whose stock is at or below their low-stock threshold."""
        stmt = (
            select(PpeMasterItem)
            .where(PpeMasterItem.current_stock <= PpeMasterItem.low_stock_threshold)
            .order_by(PpeMasterItem.current_stock, PpeMasterItem.item_code)
        )
        return [MasterItemInfo.from_model(m) for m in self.session.execute(stmt).scalars()]
