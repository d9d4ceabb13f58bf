"""
DTOs -- Pure domain data transfer objects.

Responsibility:
    Immutable snapshots of employees, categories, master items, assignments
    and stock movements.  Selectors and services return these; the issuance
    decision core consumes them and never sees an ORM entity.

Architecture position:
    Kernel > Domain -- pure, zero I/O.  from_model() class methods are
    boundary converters invoked only from selectors and services.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING
from uuid import UUID

if TYPE_CHECKING:
    from ppe_kernel.models.assignment import PpeAssignment
    from ppe_kernel.models.catalog import PpeCategory, PpeMasterItem
    from ppe_kernel.models.employee import Employee
    from ppe_kernel.models.stock_movement import StockMovement


@dataclass(frozen=True)
class EmployeeInfo:
    """Immutable view of an employee."""

    id: UUID
    employee_code: str
    name: str
    status: str
    entry_date: date | None
    process: str | None
    remarks: str | None
    locker_clothes_1: str | None
    locker_shoes_1: str | None
    locker_clothes_2: str | None
    locker_shoes_2: str | None

    @property
    def is_active(self) -> bool:
        return self.status == "active"

    @classmethod
    def from_model(cls, model: Employee) -> EmployeeInfo:
        return cls(
            id=model.id,
            employee_code=model.employee_code,
            name=model.name,
            status=str(getattr(model.status, "value", model.status)),
            entry_date=model.entry_date,
            process=model.process,
            remarks=model.remarks,
            locker_clothes_1=model.locker_clothes_1,
            locker_shoes_1=model.locker_shoes_1,
            locker_clothes_2=model.locker_clothes_2,
            locker_shoes_2=model.locker_shoes_2,
        )


@dataclass(frozen=True)
class CategoryInfo:
    """Immutable view of a PPE category and its validation flags."""

    id: UUID
    code: str
    name: str
    remarks: str | None = None
    tracks_serial: bool = False
    requires_size: bool = False
    requires_condition: bool = False

    @classmethod
    def from_model(cls, model: PpeCategory) -> CategoryInfo:
        return cls(
            id=model.id,
            code=model.code,
            name=model.name,
            remarks=model.remarks,
            tracks_serial=model.tracks_serial,
            requires_size=model.requires_size,
            requires_condition=model.requires_condition,
        )


@dataclass(frozen=True)
class MasterItemInfo:
    """Immutable view of a master item (SKU) including its stock counter."""

    id: UUID
    item_code: str
    name: str
    category_id: UUID
    size: str | None = None
    unit_of_measure: str | None = None
    expected_lifespan_days: int | None = None
    default_remarks: str | None = None
    current_stock: int = 0
    low_stock_threshold: int = 0

    @property
    def is_low_stock(self) -> bool:
        return self.current_stock <= self.low_stock_threshold

    @classmethod
    def from_model(cls, model: PpeMasterItem) -> MasterItemInfo:
        return cls(
            id=model.id,
            item_code=model.item_code,
            name=model.name,
            category_id=model.category_id,
            size=model.size,
            unit_of_measure=model.unit_of_measure,
            expected_lifespan_days=model.expected_lifespan_days,
            default_remarks=model.default_remarks,
            current_stock=model.current_stock,
            low_stock_threshold=model.low_stock_threshold,
        )


@dataclass(frozen=True)
class AssignmentInfo:
    """
    Immutable view of an assignment.

    category_code and category_name are resolved from the category row when
    the DTO is built, never stored on the assignment.
    """

    id: UUID
    employee_id: UUID
    category_id: UUID
    category_code: str
    category_name: str
    item_code: str | None
    issue_date: date
    size: str | None
    condition: str | None
    is_active: bool
    remarks: str | None
    master_item_id: UUID | None
    issued_at: datetime | None = None
    deactivated_at: datetime | None = None

    @classmethod
    def from_model(cls, model: PpeAssignment, category: PpeCategory) -> AssignmentInfo:
        return cls(
            id=model.id,
            employee_id=model.employee_id,
            category_id=model.category_id,
            category_code=category.code,
            category_name=category.name,
            item_code=model.item_code,
            issue_date=model.issue_date,
            size=model.size,
            condition=model.condition,
            is_active=model.is_active,
            remarks=model.remarks,
            master_item_id=model.master_item_id,
            issued_at=model.issued_at,
            deactivated_at=model.deactivated_at,
        )


@dataclass(frozen=True)
class StockMovementInfo:
    """Immutable view of one stock movement."""

    id: UUID
    master_item_id: UUID
    quantity_delta: int
    movement_type: str
    stock_after: int
    reason: str | None
    assignment_id: UUID | None
    recorded_at: datetime

    @classmethod
    def from_model(cls, model: StockMovement) -> StockMovementInfo:
        return cls(
            id=model.id,
            master_item_id=model.master_item_id,
            quantity_delta=model.quantity_delta,
            movement_type=str(getattr(model.movement_type, "value", model.movement_type)),
            stock_after=model.stock_after,
            reason=model.reason,
            assignment_id=model.assignment_id,
            recorded_at=model.recorded_at,
        )
