"""
Service layer for PPE categories and master items.

Returns CategoryInfo / MasterItemInfo DTOs.  Stock of a master item is never
edited here directly: creation books an opening receipt through the stock
ledger, and later changes go through StockLedgerService.
"""

from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from ppe_kernel.domain.clock import Clock, SystemClock
from ppe_kernel.domain.dtos import CategoryInfo, MasterItemInfo
from ppe_kernel.exceptions import (
    CategoryInUseError,
    CategoryNotFoundError,
    DuplicateCategoryError,
    DuplicateMasterItemCodeError,
    InvalidCatalogFieldError,
    InvalidStockQuantityError,
    MasterItemNotFoundError,
)
from ppe_kernel.logging_config import get_logger
from ppe_kernel.models.catalog import PpeCategory, PpeMasterItem
from ppe_kernel.selectors.assignment_selector import AssignmentSelector
from ppe_kernel.selectors.catalog_selector import CatalogSelector
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder
from ppe_kernel.services.base import BaseService
from ppe_kernel.services.stock_ledger import StockLedgerService

logger = get_logger("services.catalog")


@dataclass(frozen=True)
class CategorySeed:
    code: str
    name: str
    tracks_serial: bool = False
    requires_size: bool = False
    requires_condition: bool = False


DEFAULT_CATEGORIES: tuple[CategorySeed, ...] = (
    CategorySeed("SUIT", "Cleanroom Suit", tracks_serial=True),
    CategorySeed("HAT", "Hat", tracks_serial=True),
    CategorySeed("SAFETY_SHOE", "Safety Shoe", requires_size=True, requires_condition=True),
    CategorySeed("CANVAS_SHOE", "Canvas Shoe", requires_size=True, requires_condition=True),
)


class CatalogService(BaseService[PpeCategory]):
    """
    Manages categories and master items.

    Enforces unique category codes and names, unique master item codes,
    and refuses to delete a category that is still referenced.
    """

    def __init__(
        self,
        session: Session,
        clock: Clock | None = None,
        audit: AuditRecorder | None = None,
    ):
        super().__init__(session)
        self._clock = clock or SystemClock()
        self._audit = audit or AuditRecorder(session, self._clock)
        self._ledger = StockLedgerService(session, self._clock, self._audit)

    def _get_category(self, category_id: UUID) -> PpeCategory:
        category = self.session.get(PpeCategory, category_id)
        if category is None:
            raise CategoryNotFoundError(str(category_id))
        return category

    def _get_master_item(self, master_item_id: UUID) -> PpeMasterItem:
        item = self.session.get(PpeMasterItem, master_item_id)
        if item is None:
            raise MasterItemNotFoundError(str(master_item_id))
        return item

    def _ensure_unique_category(
        self,
        code: str | None,
        name: str | None,
        exclude_id: UUID | None = None,
    ) -> None:
        for field_name, column, value in (
            ("code", PpeCategory.code, code),
            ("name", PpeCategory.name, name),
        ):
            if value is None:
                continue
            stmt = select(PpeCategory.id).where(column == value)
            if exclude_id is not None:
                stmt = stmt.where(PpeCategory.id != exclude_id)
            if self.session.execute(stmt).first() is not None:
                raise DuplicateCategoryError(field_name, value)

    # ------------------------------------------------------------------
    # Categories
    # ------------------------------------------------------------------

    def create_category(
        self,
        code: str,
        name: str,
        remarks: str | None = None,
        tracks_serial: bool = False,
        requires_size: bool = False,
        requires_condition: bool = False,
    ) -> CategoryInfo:
        """
        Create a category.

        Raises:
            DuplicateCategoryError: code or name already used.
            InvalidCatalogFieldError: blank code or name.
        """
        code = code.strip().upper()
        name = name.strip()
        if not code:
            raise InvalidCatalogFieldError("code")
        if not name:
            raise InvalidCatalogFieldError("name")
        self._ensure_unique_category(code, name)

        category = PpeCategory(
            code=code,
            name=name,
            remarks=remarks,
            tracks_serial=tracks_serial,
            requires_size=requires_size,
            requires_condition=requires_condition,
        )
        self.session.add(category)
        self.session.flush()

        self._audit.record(AuditOperation.CATEGORY_CREATE, f"Created category {code} ({name})")
        logger.info("category_created", extra={"category_code": code, "category_id": str(category.id)})
        return CategoryInfo.from_model(category)

    def update_category(
        self,
        category_id: UUID,
        name: str | None = None,
        remarks: str | None = None,
        tracks_serial: bool | None = None,
        requires_size: bool | None = None,
        requires_condition: bool | None = None,
    ) -> CategoryInfo:
        """
        Edit a category.  The code is immutable; renaming is safe because
        assignments reference the category by id.
        """
        category = self._get_category(category_id)
        if name is not None:
            name = name.strip()
            if not name:
                raise InvalidCatalogFieldError("name", "cannot be empty")
            self._ensure_unique_category(None, name, exclude_id=category_id)
            category.name = name
        if remarks is not None:
            category.remarks = remarks.strip() or None
        if tracks_serial is not None:
            category.tracks_serial = tracks_serial
        if requires_size is not None:
            category.requires_size = requires_size
        if requires_condition is not None:
            category.requires_condition = requires_condition
        self.session.flush()

        self._audit.record(
            AuditOperation.CATEGORY_UPDATE,
            f"Updated category {category.code} ({category.name})",
        )
        logger.info("category_updated", extra={"category_code": category.code})
        return CategoryInfo.from_model(category)

    def delete_category(self, category_id: UUID) -> None:
        """
        Raises:
            CategoryInUseError: master items or assignments reference it.
        """
        category = self._get_category(category_id)
        master_items = CatalogSelector(self.session).count_master_items(category_id)
        assignments = AssignmentSelector(self.session).count_for_category(category_id)
        if master_items or assignments:
            raise CategoryInUseError(category.code, master_items, assignments)

        code, name = category.code, category.name
        self.session.delete(category)
        self.session.flush()

        self._audit.record(AuditOperation.CATEGORY_DELETE, f"Deleted category {code} ({name})")
        logger.info("category_deleted", extra={"category_code": code})

    def seed_default_categories(self) -> list[CategoryInfo]:
        """Create any of the four built-in categories that are missing."""
        selector = CatalogSelector(self.session)
        created = []
        for seed in DEFAULT_CATEGORIES:
            if selector.get_category_by_code(seed.code) is not None:
                continue
            created.append(
                self.create_category(
                    seed.code,
                    seed.name,
                    tracks_serial=seed.tracks_serial,
                    requires_size=seed.requires_size,
                    requires_condition=seed.requires_condition,
                )
            )
        if created:
            logger.info(
                "default_categories_seeded",
                extra={"codes": [c.code for c in created]},
            )
        return created

    # ------------------------------------------------------------------
    # Master items
    # ------------------------------------------------------------------

    def create_master_item(
        self,
        item_code: str,
        name: str,
        category_id: UUID,
        size: str | None = None,
        unit_of_measure: str | None = None,
        expected_lifespan_days: int | None = None,
        default_remarks: str | None = None,
        initial_stock: int = 0,
        low_stock_threshold: int = 0,
    ) -> MasterItemInfo:
        """
        Create a master item.  A positive initial_stock is booked as an
        opening receipt so the ledger explains the counter from day one.

        Raises:
            DuplicateMasterItemCodeError
            CategoryNotFoundError
            InvalidCatalogFieldError: blank code or name.
            InvalidStockQuantityError: negative stock or threshold.
        """
        item_code = item_code.strip()
        if not item_code:
            raise InvalidCatalogFieldError("item_code")
        if not name.strip():
            raise InvalidCatalogFieldError("name")
        if initial_stock < 0:
            raise InvalidStockQuantityError("initial_stock", initial_stock)
        if low_stock_threshold < 0:
            raise InvalidStockQuantityError("low_stock_threshold", low_stock_threshold)
        category = self._get_category(category_id)
        if CatalogSelector(self.session).get_master_item_by_code(item_code) is not None:
            raise DuplicateMasterItemCodeError(item_code)

        item = PpeMasterItem(
            item_code=item_code,
            name=name.strip(),
            category_id=category_id,
            size=size,
            unit_of_measure=unit_of_measure,
            expected_lifespan_days=expected_lifespan_days,
            default_remarks=default_remarks,
            current_stock=0,
            low_stock_threshold=low_stock_threshold,
        )
        self.session.add(item)
        self.session.flush()

        self._audit.record(
            AuditOperation.MASTER_ITEM_CREATE,
            f"Created master item {item_code} ({item.name}) in {category.code}",
        )
        if initial_stock > 0:
            self._ledger.receive(item.id, initial_stock, reason="opening balance")

        logger.info(
            "master_item_created",
            extra={
                "item_code": item_code,
                "category_code": category.code,
                "initial_stock": initial_stock,
            },
        )
        return MasterItemInfo.from_model(item)

    def update_master_item(
        self,
        master_item_id: UUID,
        name: str | None = None,
        size: str | None = None,
        unit_of_measure: str | None = None,
        expected_lifespan_days: int | None = None,
        default_remarks: str | None = None,
        low_stock_threshold: int | None = None,
    ) -> MasterItemInfo:
        """Edit descriptive fields.  Stock changes go through the ledger."""
        item = self._get_master_item(master_item_id)
        if name is not None:
            if not name.strip():
                raise InvalidCatalogFieldError("name", "cannot be empty")
            item.name = name.strip()
        if size is not None:
            item.size = size.strip() or None
        if unit_of_measure is not None:
            item.unit_of_measure = unit_of_measure.strip() or None
        if expected_lifespan_days is not None:
            item.expected_lifespan_days = expected_lifespan_days
        if default_remarks is not None:
            item.default_remarks = default_remarks.strip() or None
        if low_stock_threshold is not None:
            if low_stock_threshold < 0:
                raise InvalidStockQuantityError("low_stock_threshold", low_stock_threshold)
            item.low_stock_threshold = low_stock_threshold
        self.session.flush()

        self._audit.record(
            AuditOperation.MASTER_ITEM_UPDATE,
            f"Updated master item {item.item_code} ({item.name})",
        )
        logger.info("master_item_updated", extra={"item_code": item.item_code})
        return MasterItemInfo.from_model(item)

    def delete_master_item(self, master_item_id: UUID) -> None:
        """Delete a master item; assignments keep their rows with no master item."""
        item = self._get_master_item(master_item_id)
        item_code, name = item.item_code, item.name
        self.session.delete(item)
        self.session.flush()
        # Assignment.master_item_id was nulled by the database.
        self.session.expire_all()

        self._audit.record(
            AuditOperation.MASTER_ITEM_DELETE,
            f"Deleted master item {item_code} ({name})",
        )
        logger.info("master_item_deleted", extra={"item_code": item_code})
