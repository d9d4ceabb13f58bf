"""Category and master item read queries."""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import func, select

from ppe_kernel.domain.dtos import CategoryInfo, MasterItemInfo
from ppe_kernel.models.catalog import PpeCategory, PpeMasterItem
from ppe_kernel.selectors.base import BaseSelector


class CatalogSelector(BaseSelector[PpeCategory]):
    """Read side of the catalog."""

    def list_categories(self) -> list[CategoryInfo]:
        stmt = select(PpeCategory).order_by(PpeCategory.name)
        return [CategoryInfo.from_model(c) for c in self.session.execute(stmt).scalars()]

    def get_category(self, category_id: UUID) -> CategoryInfo | None:
        category = self.session.get(PpeCategory, category_id)
        return CategoryInfo.from_model(category) if category else None

    def get_category_by_code(self, code: str) -> CategoryInfo | None:
        stmt = select(PpeCategory).where(PpeCategory.code == code)
        category = self.session.execute(stmt).scalar_one_or_none()
        return CategoryInfo.from_model(category) if category else None

    def master_items_by_category(self, category_id: UUID) -> list[MasterItemInfo]:
        stmt = (
            select(PpeMasterItem)
            .where(PpeMasterItem.category_id == category_id)
            .order_by(PpeMasterItem.item_code)
        )
        return [MasterItemInfo.from_model(m) for m in self.session.execute(stmt).scalars()]

    def count_master_items(self, category_id: UUID) -> int:
        stmt = (
            select(func.count())
            .select_from(PpeMasterItem)
            .where(PpeMasterItem.category_id == category_id)
        )
        return self.session.execute(stmt).scalar_one()

    def get_master_item(self, master_item_id: UUID) -> MasterItemInfo | None:
        item = self.session.get(PpeMasterItem, master_item_id)
        return MasterItemInfo.from_model(item) if item else None

    def get_master_item_by_code(self, item_code: str) -> MasterItemInfo | None:
        stmt = select(PpeMasterItem).where(PpeMasterItem.item_code == item_code)
        item = self.session.execute(stmt).scalar_one_or_none()
        return MasterItemInfo.from_model(item) if item else None

    def list_master_items(self) -> list[MasterItemInfo]:
        stmt = select(PpeMasterItem).order_by(PpeMasterItem.item_code)
        return [MasterItemInfo.from_model(m) for m in self.session.execute(stmt).scalars()]
