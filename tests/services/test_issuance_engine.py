"""
Tests for IssuanceEngine.

Covers:
- Commit within capacity (one aggregated stock decrement, audit entries)
- Overflow by one: replacement prompt, then commit with a chosen target
- Unresolvable overflow and insufficient stock reject the whole batch
- Item validation and master item rules
- All-or-nothing behaviour when a write fails mid-commit
"""

from datetime import date
from uuid import uuid4

import pytest
from sqlalchemy import func, select
from sqlalchemy.exc import SQLAlchemyError

from ppe_kernel.domain.issuance import (
    CategoryRequest,
    IssuanceRequest,
    IssuanceStatus,
    IssueLine,
)
from ppe_kernel.exceptions import (
    CapacityExceededUnresolvableError,
    CategoryNotFoundError,
    EmployeeNotLoadedError,
    InsufficientStockError,
    MasterItemNotSelectedError,
    NoItemsSelectedError,
    PartialCommitFailureError,
    ReplacementTargetInvalidError,
    RepositoryError,
    ValidationFailedError,
)
from ppe_kernel.models.assignment import PpeAssignment
from ppe_kernel.models.audit_entry import AuditEntry
from ppe_kernel.selectors.assignment_selector import AssignmentSelector
from ppe_kernel.selectors.catalog_selector import CatalogSelector
from ppe_kernel.selectors.stock_reconciliation_selector import StockReconciliationSelector
from ppe_kernel.services.assignment_service import AssignmentService
from tests.factories import (
    give_assignment,
    make_employee,
    make_master_item,
    serial_lines,
    serial_request,
    shoe_lines,
    shoe_request,
)


def _audit_count(session, operation_type: str) -> int:
    return session.execute(
        select(func.count())
        .select_from(AuditEntry)
        .where(AuditEntry.operation_type == operation_type)
    ).scalar_one()


def _assignment_count(session) -> int:
    return session.execute(select(func.count()).select_from(PpeAssignment)).scalar_one()


def _stock(session, master_item) -> int:
    return CatalogSelector(session).get_master_item(master_item.id).current_stock


@pytest.fixture
def suit_master(session, categories):
    return make_master_item(session, categories["SUIT"], "SUIT-M", stock=10, size="M")


@pytest.fixture
def shoe_master(session, categories):
    return make_master_item(session, categories["SAFETY_SHOE"], "SHOE-42", stock=10, size="42")


@pytest.fixture
def suits_held(session, employee, categories):
    """Give the employee ``n`` active suits with increasing issue dates."""

    def _give(n: int):
        return [
            give_assignment(
                session, employee, categories["SUIT"],
                item_code=f"S-OLD-{i}", issue_date=date(2024, 1, i + 1),
            )
            for i in range(n)
        ]

    return _give


class TestCommitWithinCapacity:
    """Batches that fit the ceiling commit immediately."""

    def test_issue_below_capacity_commits(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        suits_held(2)
        result = issuance_engine.issue(
            serial_request("E001", categories["SUIT"], suit_master, "S-100")
        )

        assert result.status == IssuanceStatus.COMMITTED
        assert result.is_success
        assert len(result.issued) == 1
        assert result.issued[0].item_code == "S-100"
        assert result.issued[0].size == "M"
        assert result.deactivated == ()
        assert AssignmentSelector(session).count_active(employee.id, categories["SUIT"].id) == 3
        assert _stock(session, suit_master) == 9

    def test_stock_change_reported(self, session, issuance_engine, employee, categories, suit_master):
        result = issuance_engine.issue(
            serial_request("E001", categories["SUIT"], suit_master, "S-1", "S-2")
        )

        assert result.is_success
        assert len(result.stock_changes) == 1
        change = result.stock_changes[0]
        assert change.master_item_id == suit_master.id
        assert change.quantity == 2
        assert change.stock_before == 10
        assert change.stock_after == 8

    def test_each_unit_keeps_its_own_issue_date(
        self, session, issuance_engine, employee, categories, suit_master,
    ):
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                CategoryRequest(
                    category_id=categories["SUIT"].id,
                    lines=(
                        IssueLine(item_code="S-1", issue_date=date(2024, 4, 1)),
                        IssueLine(item_code="S-2", issue_date=date(2024, 4, 15)),
                        IssueLine(item_code="S-3"),
                    ),
                    master_item_id=suit_master.id,
                ),
            ),
        )
        result = issuance_engine.issue(request)

        assert result.is_success
        dates = {a.item_code: a.issue_date for a in result.issued}
        assert dates == {
            "S-1": date(2024, 4, 1),
            "S-2": date(2024, 4, 15),
            "S-3": date(2024, 5, 1),
        }
        stored = AssignmentSelector(session).active_for_employee_category(
            employee.id, categories["SUIT"].id,
        )
        assert [a.item_code for a in stored] == ["S-1", "S-2", "S-3"]

    def test_audit_entries_written(self, session, issuance_engine, employee, categories, suit_master):
        issuance_engine.issue(
            serial_request("E001", categories["SUIT"], suit_master, "S-1", "S-2")
        )

        assert _audit_count(session, "ISSUE") == 2
        assert _audit_count(session, "STOCK_DECREMENT") == 1
        assert _audit_count(session, "DEACTIVATE") == 0

    def test_ledger_still_explains_counter(
        self, session, issuance_engine, employee, categories, suit_master,
    ):
        issuance_engine.issue(serial_request("E001", categories["SUIT"], suit_master, "S-1"))

        selector = StockReconciliationSelector(session)
        assert selector.derived_stock(suit_master.id) == 9
        assert selector.discrepancies() == []

    def test_multiple_categories_in_one_batch(
        self, session, issuance_engine, employee, categories, suit_master, shoe_master,
    ):
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                serial_lines(categories["SUIT"], suit_master, "S-1"),
                shoe_lines(categories["SAFETY_SHOE"], shoe_master),
            ),
        )
        result = issuance_engine.issue(request)

        assert result.is_success
        assert {i.category_code for i in result.issued} == {"SUIT", "SAFETY_SHOE"}
        assert len(result.stock_changes) == 2
        assert _stock(session, suit_master) == 9
        assert _stock(session, shoe_master) == 9

    def test_empty_categories_are_skipped(
        self, session, issuance_engine, employee, categories, suit_master,
    ):
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                CategoryRequest(category_id=categories["HAT"].id),
                serial_lines(categories["SUIT"], suit_master, "S-1"),
            ),
        )

        assert issuance_engine.issue(request).is_success

    def test_uncontrolled_category_needs_no_master_item(
        self, session, issuance_engine, employee, catalog_service,
    ):
        gloves = catalog_service.create_category("GLOVE", "Gloves")
        session.commit()

        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                CategoryRequest(
                    category_id=gloves.id,
                    lines=tuple(IssueLine() for _ in range(5)),
                ),
            ),
        )
        result = issuance_engine.issue(request)

        assert result.is_success
        assert len(result.issued) == 5
        assert result.stock_changes == ()

    def test_committed_log_carries_employee_code(
        self, session, issuance_engine, employee, categories, suit_master, captured_logs,
    ):
        issuance_engine.issue(serial_request("E001", categories["SUIT"], suit_master, "S-1"))

        committed = [r for r in captured_logs() if r["message"] == "issuance_committed"]
        assert len(committed) == 1
        assert committed[0]["employee_code"] == "E001"
        assert committed[0]["issued"] == 1


class TestReplacement:
    """Overflow by exactly one pauses for a 1-for-1 replacement choice."""

    def test_at_capacity_asks_for_replacement(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        held = suits_held(3)
        result = issuance_engine.issue(
            serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        )

        assert result.status == IssuanceStatus.NEEDS_REPLACEMENT
        assert result.needs_replacement
        assert result.prompt.category.code == "SUIT"
        assert result.prompt.max_active == 3
        assert [c.id for c in result.prompt.candidates] == [a.id for a in held]
        assert "Cleanroom Suit" in result.message

    def test_prompt_writes_nothing(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        suits_held(3)
        before = _assignment_count(session)
        issuance_engine.issue(serial_request("E001", categories["SUIT"], suit_master, "S-NEW"))

        assert _assignment_count(session) == before
        assert _stock(session, suit_master) == 10
        assert _audit_count(session, "ISSUE") == 0

    def test_confirmed_target_is_replaced(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        held = suits_held(3)
        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        issuance_engine.issue(request)

        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, held[0].id))

        assert result.is_success
        assert [d.id for d in result.deactivated] == [held[0].id]
        assert result.deactivated[0].is_active is False
        assert result.deactivated[0].deactivated_at is not None
        active = AssignmentSelector(session).active_for_employee_category(
            employee.id, categories["SUIT"].id,
        )
        assert len(active) == 3
        assert held[0].id not in {a.id for a in active}
        assert "S-NEW" in {a.item_code for a in active}
        assert _stock(session, suit_master) == 9

    def test_replacement_audit_entries(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        held = suits_held(3)
        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        issuance_engine.issue(request.with_target(categories["SUIT"].id, held[1].id))

        assert _audit_count(session, "DEACTIVATE") == 1
        assert _audit_count(session, "ISSUE") == 1
        assert _audit_count(session, "STOCK_DECREMENT") == 1
        description = session.execute(
            select(AuditEntry.description).where(AuditEntry.operation_type == "ISSUE")
        ).scalar_one()
        assert description.endswith("as replacement")

    def test_shoe_at_capacity_of_one(
        self, session, issuance_engine, employee, categories, shoe_master,
    ):
        old = give_assignment(
            session, employee, categories["SAFETY_SHOE"], size="42", condition="used",
        )
        request = shoe_request("E001", categories["SAFETY_SHOE"], shoe_master)

        first = issuance_engine.issue(request)
        assert first.needs_replacement
        assert [c.id for c in first.prompt.candidates] == [old.id]

        second = issuance_engine.issue(request.with_target(categories["SAFETY_SHOE"].id, old.id))
        assert second.is_success
        assert second.issued[0].condition == "new"

    def test_two_categories_prompt_together(
        self, session, issuance_engine, employee, categories, suit_master, shoe_master, suits_held,
    ):
        suits = suits_held(3)
        shoe = give_assignment(session, employee, categories["SAFETY_SHOE"], size="42", condition="new")
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                serial_lines(categories["SUIT"], suit_master, "S-NEW"),
                shoe_lines(categories["SAFETY_SHOE"], shoe_master),
            ),
        )

        first = issuance_engine.issue(request)
        assert [p.category.code for p in first.prompts] == ["SUIT", "SAFETY_SHOE"]

        request = request.with_target(categories["SUIT"].id, suits[0].id)
        second = issuance_engine.issue(request)
        assert second.needs_replacement
        assert [p.category.code for p in second.prompts] == ["SAFETY_SHOE"]

        third = issuance_engine.issue(request.with_target(categories["SAFETY_SHOE"].id, shoe.id))
        assert third.is_success
        assert {d.id for d in third.deactivated} == {suits[0].id, shoe.id}

    def test_explicit_target_below_capacity_still_replaces(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        held = suits_held(1)
        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, held[0].id))

        assert result.is_success
        assert [d.id for d in result.deactivated] == [held[0].id]
        assert AssignmentSelector(session).count_active(employee.id, categories["SUIT"].id) == 1


class TestInvalidReplacementTarget:
    """Targets that do not name one of the employee's active units are refused."""

    def test_unknown_target(self, session, issuance_engine, employee, categories, suit_master, suits_held):
        suits_held(3)
        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, uuid4()))

        assert result.status == IssuanceStatus.REJECTED
        assert isinstance(result.error, ReplacementTargetInvalidError)

    def test_target_of_another_employee(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        suits_held(3)
        other = make_employee(session, "E002", "Bob Lim")
        foreign = give_assignment(session, other, categories["SUIT"], item_code="S-BOB")

        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, foreign.id))

        assert isinstance(result.error, ReplacementTargetInvalidError)
        assert AssignmentSelector(session).get(foreign.id).is_active is True

    def test_inactive_target(
        self, session, issuance_engine, employee, categories, suit_master, suits_held, assignment_service,
    ):
        held = suits_held(3)
        assignment_service.return_item(held[0].id)
        give_assignment(session, employee, categories["SUIT"], item_code="S-4")

        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, held[0].id))

        assert isinstance(result.error, ReplacementTargetInvalidError)

    def test_target_with_more_than_one_pending(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        held = suits_held(3)
        request = serial_request("E001", categories["SUIT"], suit_master, "S-A", "S-B")
        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, held[0].id))

        assert isinstance(result.error, ReplacementTargetInvalidError)
        assert "exactly one" in result.error.reason

    def test_target_for_category_not_in_request(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
    ):
        hat = give_assignment(session, employee, categories["HAT"], item_code="H-1")
        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        result = issuance_engine.issue(request.with_target(categories["HAT"].id, hat.id))

        assert isinstance(result.error, ReplacementTargetInvalidError)


class TestRejection:
    """Rejections carry a typed error and leave the database untouched."""

    def test_unresolvable_overflow(self, session, issuance_engine, employee, categories, shoe_master):
        give_assignment(session, employee, categories["SAFETY_SHOE"], size="42", condition="new")
        result = issuance_engine.issue(
            shoe_request("E001", categories["SAFETY_SHOE"], shoe_master, count=2)
        )

        assert result.status == IssuanceStatus.REJECTED
        error = result.error
        assert isinstance(error, CapacityExceededUnresolvableError)
        assert (error.category_code, error.active, error.pending, error.max_active) == (
            "SAFETY_SHOE", 1, 2, 1,
        )
        assert _stock(session, shoe_master) == 10

    def test_overflow_by_two_with_one_pending(
        self, session, issuance_engine, employee, categories, suit_master, suits_held, capacity_config,
    ):
        suits_held(3)
        capacity_config.set_all({"SUIT": 2})
        result = issuance_engine.issue(serial_request("E001", categories["SUIT"], suit_master, "S-X"))

        assert isinstance(result.error, CapacityExceededUnresolvableError)

    def test_insufficient_stock(self, session, issuance_engine, employee, categories):
        master = make_master_item(session, categories["SUIT"], "SUIT-L", stock=1)
        result = issuance_engine.issue(
            serial_request("E001", categories["SUIT"], master, "S-1", "S-2")
        )

        assert isinstance(result.error, InsufficientStockError)
        assert result.error.available == 1
        assert result.error.requested == 2
        assert _assignment_count(session) == 0

    def test_stock_checked_before_capacity(
        self, session, issuance_engine, employee, categories, suits_held,
    ):
        suits_held(3)
        empty = make_master_item(session, categories["SUIT"], "SUIT-XL", stock=0)
        result = issuance_engine.issue(serial_request("E001", categories["SUIT"], empty, "S-1"))

        assert isinstance(result.error, InsufficientStockError)

    def test_one_bad_category_rejects_batch(
        self, session, issuance_engine, employee, categories, suit_master, shoe_master,
    ):
        give_assignment(session, employee, categories["SAFETY_SHOE"], size="42", condition="new")
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                serial_lines(categories["SUIT"], suit_master, "S-1"),
                shoe_lines(categories["SAFETY_SHOE"], shoe_master, count=2),
            ),
        )
        result = issuance_engine.issue(request)

        assert isinstance(result.error, CapacityExceededUnresolvableError)
        assert AssignmentSelector(session).count_active(employee.id, categories["SUIT"].id) == 0
        assert _stock(session, suit_master) == 10

    def test_rejection_logged(
        self, session, issuance_engine, employee, categories, captured_logs,
    ):
        master = make_master_item(session, categories["SUIT"], "SUIT-L", stock=0)
        issuance_engine.issue(serial_request("E001", categories["SUIT"], master, "S-1"))

        rejected = [r for r in captured_logs() if r["message"] == "issuance_rejected"]
        assert rejected[0]["error_code"] == "INSUFFICIENT_STOCK"


class TestValidation:
    """Item-level validation runs before any capacity or stock decision."""

    def test_no_employee(self, issuance_engine, categories, suit_master):
        result = issuance_engine.issue(serial_request(None, categories["SUIT"], suit_master, "S-1"))
        assert isinstance(result.error, EmployeeNotLoadedError)

    def test_unknown_employee(self, issuance_engine, categories, suit_master):
        result = issuance_engine.issue(serial_request("NOPE", categories["SUIT"], suit_master, "S-1"))
        assert isinstance(result.error, EmployeeNotLoadedError)
        assert result.error.employee_code == "NOPE"

    def test_missing_issue_date(self, issuance_engine, employee, categories, suit_master):
        request = serial_request("E001", categories["SUIT"], suit_master, "S-1", issue_date=None)
        result = issuance_engine.issue(request)

        assert isinstance(result.error, ValidationFailedError)
        assert result.error.field == "issue_date"
        assert result.error.item == 1
        assert result.error.category_code == "SUIT"

    def test_no_items(self, issuance_engine, employee, categories):
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(CategoryRequest(category_id=categories["SUIT"].id),),
        )
        assert isinstance(issuance_engine.issue(request).error, NoItemsSelectedError)

    def test_serial_code_required(self, issuance_engine, employee, categories, suit_master):
        result = issuance_engine.issue(
            serial_request("E001", categories["SUIT"], suit_master, "S-1", "  ")
        )

        assert isinstance(result.error, ValidationFailedError)
        assert result.error.field == "item_code"
        assert result.error.item == 2
        assert result.error.category_code == "SUIT"

    def test_shoe_size_required(self, session, issuance_engine, employee, categories):
        sizeless = make_master_item(session, categories["SAFETY_SHOE"], "SHOE-ANY", stock=5)
        result = issuance_engine.issue(
            shoe_request("E001", categories["SAFETY_SHOE"], sizeless, size=None)
        )

        assert isinstance(result.error, ValidationFailedError)
        assert result.error.field == "size"

    def test_shoe_condition_required(self, issuance_engine, employee, categories, shoe_master):
        result = issuance_engine.issue(
            shoe_request("E001", categories["SAFETY_SHOE"], shoe_master, condition=None)
        )
        assert result.error.field == "condition"

    def test_shoe_condition_must_be_known(self, issuance_engine, employee, categories, shoe_master):
        result = issuance_engine.issue(
            shoe_request("E001", categories["SAFETY_SHOE"], shoe_master, condition="broken")
        )
        assert isinstance(result.error, ValidationFailedError)
        assert result.error.field == "condition"

    def test_condition_is_normalized(self, issuance_engine, employee, categories, shoe_master):
        result = issuance_engine.issue(
            shoe_request("E001", categories["SAFETY_SHOE"], shoe_master, condition=" Used ")
        )
        assert result.issued[0].condition == "used"

    def test_master_size_overrides_typed_size(
        self, issuance_engine, employee, categories, shoe_master,
    ):
        result = issuance_engine.issue(
            shoe_request("E001", categories["SAFETY_SHOE"], shoe_master, size="40")
        )
        assert result.issued[0].size == "42"

    def test_controlled_category_requires_master_item(self, issuance_engine, employee, categories):
        result = issuance_engine.issue(serial_request("E001", categories["SUIT"], None, "S-1"))

        assert isinstance(result.error, MasterItemNotSelectedError)
        assert result.error.category_code == "SUIT"

    def test_stocked_category_requires_master_item(
        self, session, issuance_engine, employee, catalog_service,
    ):
        gloves = catalog_service.create_category("GLOVE", "Gloves")
        session.commit()
        make_master_item(session, gloves, "GLOVE-M", stock=5)

        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(CategoryRequest(category_id=gloves.id, lines=(IssueLine(),)),),
        )
        assert isinstance(issuance_engine.issue(request).error, MasterItemNotSelectedError)

    def test_master_item_from_other_category(
        self, issuance_engine, employee, categories, shoe_master,
    ):
        result = issuance_engine.issue(serial_request("E001", categories["SUIT"], shoe_master, "S-1"))

        assert isinstance(result.error, ValidationFailedError)
        assert result.error.field == "master_item_id"

    def test_unknown_category(self, issuance_engine, employee, categories):
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(CategoryRequest(category_id=uuid4(), lines=(IssueLine(),)),),
        )
        assert isinstance(issuance_engine.issue(request).error, CategoryNotFoundError)

    def test_duplicate_category_in_batch(self, issuance_engine, employee, categories, suit_master):
        request = IssuanceRequest(
            employee_code="E001",
            issue_date=date(2024, 5, 1),
            categories=(
                serial_lines(categories["SUIT"], suit_master, "S-1"),
                serial_lines(categories["SUIT"], suit_master, "S-2"),
            ),
        )
        result = issuance_engine.issue(request)

        assert isinstance(result.error, ValidationFailedError)
        assert result.error.field == "category"


class TestAtomicCommit:
    """A failing write inside the commit rolls back every write of the batch."""

    def test_zero_row_deactivation_rolls_back(
        self, session, issuance_engine, employee, categories, suit_master, suits_held, monkeypatch,
    ):
        held = suits_held(3)
        monkeypatch.setattr(AssignmentService, "deactivate", lambda self, *a, **kw: False)

        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        result = issuance_engine.issue(request.with_target(categories["SUIT"].id, held[0].id))

        assert isinstance(result.error, PartialCommitFailureError)
        assert result.error.operation == "deactivate"
        assert result.error.succeeded == 0
        assert result.error.attempted == 3
        assert _assignment_count(session) == 3
        assert _stock(session, suit_master) == 10
        assert _audit_count(session, "ISSUE") == 0

    def test_storage_error_becomes_repository_error(
        self, session, issuance_engine, employee, categories, suit_master, monkeypatch,
    ):
        def _boom(self, **kwargs):
            raise SQLAlchemyError("disk I/O error")

        monkeypatch.setattr(AssignmentService, "insert", _boom)
        result = issuance_engine.issue(serial_request("E001", categories["SUIT"], suit_master, "S-1"))

        assert result.status == IssuanceStatus.REJECTED
        assert isinstance(result.error, RepositoryError)
        assert isinstance(result.error.cause, SQLAlchemyError)
        assert _assignment_count(session) == 0
        assert _stock(session, suit_master) == 10

    def test_partial_failure_logged(
        self, session, issuance_engine, employee, categories, suit_master, suits_held,
        monkeypatch, captured_logs,
    ):
        held = suits_held(3)
        monkeypatch.setattr(AssignmentService, "deactivate", lambda self, *a, **kw: False)
        request = serial_request("E001", categories["SUIT"], suit_master, "S-NEW")
        issuance_engine.issue(request.with_target(categories["SUIT"].id, held[0].id))

        records = [r for r in captured_logs() if r["message"] == "issuance_partial_commit_rolled_back"]
        assert records[0]["operation"] == "deactivate"
        assert records[0]["level"] == "ERROR"
