"""
StockLedgerService -- the only writer of master item stock counters.

Responsibility:
    Maintains ``PpeMasterItem.current_stock`` and appends a StockMovement
    for every change, so the counter can always be reconciled against its
    history.

Architecture position:
    Kernel > Services.  Called by IssuanceEngine (decrement) and by catalog
    management (receive, correct, reconcile).

Invariants enforced:
    - Stock never goes negative: decrement is floored at zero and the
      movement records the delta actually applied.
    - Every counter change is paired with exactly one StockMovement whose
      stock_after equals the new counter value.
    - The master item row is read FOR UPDATE before it is changed.

Failure modes:
    - MasterItemNotFoundError if the item does not exist.
    - InvalidStockQuantityError for non-positive quantities or a negative
      corrected stock.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ppe_kernel.domain.clock import Clock, SystemClock
from ppe_kernel.domain.dtos import StockMovementInfo
from ppe_kernel.exceptions import InvalidStockQuantityError, MasterItemNotFoundError
from ppe_kernel.logging_config import get_logger
from ppe_kernel.models.catalog import PpeMasterItem
from ppe_kernel.models.stock_movement import MovementType, StockMovement
from ppe_kernel.selectors.stock_reconciliation_selector import StockReconciliationSelector
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder
from ppe_kernel.services.base import BaseService

logger = get_logger("services.stock_ledger")


class StockLedgerService(BaseService[PpeMasterItem]):
    """Counter plus movement ledger for master item stock."""

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit or AuditRecorder(session, self._clock)

    def lock_item(self, master_item_id: UUID) -> PpeMasterItem:
        """Load the master item row FOR UPDATE (no-op lock on SQLite)."""
        item = self.session.execute(
            select(PpeMasterItem)
            .where(PpeMasterItem.id == master_item_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        ).scalar_one_or_none()
        if item is None:
            raise MasterItemNotFoundError(str(master_item_id))
        return item

    def _apply(
        self,
        item: PpeMasterItem,
        delta: int,
        movement_type: MovementType,
        reason: str | None,
        assignment_id: UUID | None = None,
    ) -> StockMovementInfo:
        item.current_stock += delta
        movement = StockMovement(
            master_item_id=item.id,
            quantity_delta=delta,
            movement_type=movement_type,
            stock_after=item.current_stock,
            reason=reason,
            assignment_id=assignment_id,
            recorded_at=self._clock.now(),
        )
        self.session.add(movement)
        self.session.flush()
        return StockMovementInfo.from_model(movement)

    def decrement(
        self,
        master_item_id: UUID,
        quantity: int,
        reason: str | None = None,
        assignment_id: UUID | None = None,
    ) -> StockMovementInfo:
        """
        Take ``quantity`` units out of stock, floored at zero.

        Returns:
            The recorded movement; its quantity_delta is the negated number
            of units actually removed.
        """
        if quantity <= 0:
            raise InvalidStockQuantityError("decrement", quantity)

        item = self.lock_item(master_item_id)
        before = item.current_stock
        applied = min(quantity, before)
        if applied < quantity:
            logger.warning(
                "stock_decrement_floored",
                extra={
                    "master_item_id": str(master_item_id),
                    "item_code": item.item_code,
                    "requested": quantity,
                    "available": before,
                },
            )

        movement = self._apply(item, -applied, MovementType.ISSUE, reason, assignment_id)
        self._audit.record(
            AuditOperation.STOCK_DECREMENT,
            f"Stock of {item.item_code} ({item.name}) reduced by {applied}: "
            f"{before} -> {item.current_stock}",
        )
        logger.info(
            "stock_decremented",
            extra={
                "master_item_id": str(master_item_id),
                "item_code": item.item_code,
                "quantity": applied,
                "stock_before": before,
                "stock_after": item.current_stock,
            },
        )
        return movement

    def receive(
        self,
        master_item_id: UUID,
        quantity: int,
        reason: str | None = None,
    ) -> StockMovementInfo:
        """Add received units to stock."""
        if quantity <= 0:
            raise InvalidStockQuantityError("receive", quantity)

        item = self.lock_item(master_item_id)
        before = item.current_stock
        movement = self._apply(item, quantity, MovementType.RECEIPT, reason)
        self._audit.record(
            AuditOperation.STOCK_RECEIPT,
            f"Received {quantity} of {item.item_code} ({item.name}): "
            f"{before} -> {item.current_stock}",
        )
        logger.info(
            "stock_received",
            extra={
                "master_item_id": str(master_item_id),
                "item_code": item.item_code,
                "quantity": quantity,
                "stock_after": item.current_stock,
            },
        )
        return movement

    def correct(
        self,
        master_item_id: UUID,
        new_stock: int,
        reason: str,
    ) -> StockMovementInfo | None:
        """
        Set the counter to a counted value, booking the difference.

        Returns:
            The correction movement, or None when the counter already
            holds ``new_stock``.
        """
        if new_stock < 0:
            raise InvalidStockQuantityError("correct", new_stock)

        item = self.lock_item(master_item_id)
        before = item.current_stock
        delta = new_stock - before
        if delta == 0:
            return None

        movement = self._apply(item, delta, MovementType.CORRECTION, reason)
        self._audit.record(
            AuditOperation.STOCK_CORRECTION,
            f"Stock of {item.item_code} ({item.name}) corrected {before} -> {new_stock}: {reason}",
        )
        logger.info(
            "stock_corrected",
            extra={
                "master_item_id": str(master_item_id),
                "item_code": item.item_code,
                "stock_before": before,
                "stock_after": new_stock,
                "reason": reason,
            },
        )
        return movement

    def reconcile(self, master_item_id: UUID, reason: str) -> StockMovementInfo | None:
        """
        Book an unexplained counter difference into the ledger.

        The counter is authoritative; when it disagrees with the sum of
        movements, a correction movement for the difference is appended so
        the ledger explains the counter again.  The counter itself is not
        changed.

        Returns:
            The correction movement, or None when nothing was out of line.
        """
        item = self.lock_item(master_item_id)
        derived = StockReconciliationSelector(self.session).derived_stock(master_item_id)
        difference = item.current_stock - derived
        if difference == 0:
            return None

        movement = StockMovement(
            master_item_id=item.id,
            quantity_delta=difference,
            movement_type=MovementType.CORRECTION,
            stock_after=item.current_stock,
            reason=reason,
            recorded_at=self._clock.now(),
        )
        self.session.add(movement)
        self.session.flush()

        self._audit.record(
            AuditOperation.STOCK_RECONCILE,
            f"Ledger for {item.item_code} reconciled: derived {derived}, "
            f"counter {item.current_stock}, booked {difference:+d}: {reason}",
        )
        logger.warning(
            "stock_reconciled",
            extra={
                "master_item_id": str(master_item_id),
                "item_code": item.item_code,
                "derived_stock": derived,
                "current_stock": item.current_stock,
                "difference": difference,
            },
        )
        return StockMovementInfo.from_model(movement)
