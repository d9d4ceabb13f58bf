"""Tests for EmployeeService."""

from datetime import date

import pytest
from sqlalchemy import func, select

from ppe_kernel.exceptions import (
    DuplicateEmployeeError,
    EmployeeNotFoundError,
    InvalidEmployeeFieldError,
)
from ppe_kernel.models.assignment import PpeAssignment
from ppe_kernel.models.employee import EmployeeStatus
from tests.factories import give_assignment


class TestEmployeeService:

    def test_create(self, employee_service):
        created = employee_service.create_employee(
            " E100 ", "Chen Wei", entry_date=date(2023, 4, 1), locker_shoes_1="L-12",
        )

        assert created.employee_code == "E100"
        assert created.is_active
        assert created.locker_shoes_1 == "L-12"
        assert employee_service.get_by_code("E100").id == created.id

    def test_duplicate_code(self, employee_service, employee):
        with pytest.raises(DuplicateEmployeeError):
            employee_service.create_employee("E001", "Someone Else")

    def test_blank_name(self, employee_service):
        with pytest.raises(InvalidEmployeeFieldError) as exc_info:
            employee_service.create_employee("E100", "  ")
        assert exc_info.value.field == "name"
        assert exc_info.value.code == "INVALID_EMPLOYEE_FIELD"

    def test_not_found(self, employee_service):
        with pytest.raises(EmployeeNotFoundError):
            employee_service.get_by_code("NOPE")
        assert employee_service.find_by_code("NOPE") is None

    def test_update_fields(self, employee_service, employee):
        updated = employee_service.update_employee("E001", process="Etching", locker_clothes_2="C-7")

        assert updated.process == "Etching"
        assert updated.locker_clothes_2 == "C-7"

    def test_employee_code_is_not_editable(self, employee_service, employee):
        with pytest.raises(InvalidEmployeeFieldError) as exc_info:
            employee_service.update_employee("E001", employee_code="E999")

        assert exc_info.value.field == "employee_code"
        assert employee_service.find_by_code("E999") is None

    def test_update_unknown_field(self, employee_service, employee):
        with pytest.raises(InvalidEmployeeFieldError):
            employee_service.update_employee("E001", badge_colour="red")

    def test_update_blank_name(self, employee_service, employee):
        with pytest.raises(InvalidEmployeeFieldError):
            employee_service.update_employee("E001", name=" ")
        assert employee_service.get_by_code("E001").name == "Alice Tan"

    def test_search_by_name(self, employee_service, employee):
        employee_service.create_employee("E002", "Bob Tanaka")
        employee_service.create_employee("E003", "Chen Wei")

        found = employee_service.search_by_name(" tan ")
        assert [e.employee_code for e in found] == ["E001", "E002"]
        assert employee_service.search_by_name("WEI")[0].employee_code == "E003"
        assert employee_service.search_by_name("nobody") == []
        assert employee_service.search_by_name("  ") == []

    def test_mark_separated(self, employee_service, employee):
        separated = employee_service.mark_separated("E001")

        assert not separated.is_active
        assert [e.employee_code for e in employee_service.list_employees(EmployeeStatus.ACTIVE)] == []
        assert len(employee_service.list_employees(EmployeeStatus.SEPARATED)) == 1

    def test_list_sorted_by_code(self, employee_service):
        for code in ("E3", "E1", "E2"):
            employee_service.create_employee(code, f"Name {code}")
        assert [e.employee_code for e in employee_service.list_employees()] == ["E1", "E2", "E3"]

    def test_delete_removes_assignments(self, session, employee_service, employee, categories):
        give_assignment(session, employee, categories["SUIT"], item_code="S-1")
        give_assignment(session, employee, categories["HAT"], item_code="H-1")

        removed = employee_service.delete_employee("E001")
        session.commit()

        assert removed == 2
        remaining = session.execute(select(func.count()).select_from(PpeAssignment)).scalar_one()
        assert remaining == 0
        assert employee_service.find_by_code("E001") is None
