"""
Issuance decision core.

Responsibility:
    Pure validation and capacity/stock decision logic for a batch of PPE
    issuances to one employee.  Given snapshots of the requested categories,
    their master items, the employee's active assignments and the configured
    capacities, decides whether the batch commits, must wait for a 1-for-1
    replacement selection, or is rejected.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.  The imperative shell
    (ppe_kernel.services.issuance_engine) gathers snapshots, calls into this
    module, and performs the writes.

Invariants enforced:
    - Every item is validated before any capacity or stock decision.
    - Stock is checked before capacity for each category.
    - A batch with any rejected category is rejected as a whole.
    - A batch with any category needing replacement performs no writes.
    - Overflow is resolvable only when exactly one item is requested for a
      category already at its ceiling.

Failure modes:
    - Rejections are raised as IssuanceError subclasses; the shell folds
      them into a REJECTED IssuanceResult.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from uuid import UUID

from ppe_kernel.domain.dtos import AssignmentInfo, CategoryInfo, MasterItemInfo
from ppe_kernel.exceptions import (
    CapacityExceededUnresolvableError,
    InsufficientStockError,
    MasterItemNotSelectedError,
    NoItemsSelectedError,
    PpeKernelError,
    ReplacementTargetInvalidError,
    ValidationFailedError,
)


class Condition(str, Enum):
    """Physical condition of an issued unit."""

    NEW = "new"
    USED = "used"


class IssuanceStatus(str, Enum):
    """Outcome of one issuance attempt."""

    COMMITTED = "committed"
    NEEDS_REPLACEMENT = "needs_replacement"
    REJECTED = "rejected"


class CapacityVerdict(str, Enum):
    """Capacity decision for one category."""

    WITHIN = "within"
    NEEDS_REPLACEMENT = "needs_replacement"
    UNRESOLVABLE = "unresolvable"


# -----------------------------------------------------------------------------
# Request types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class IssueLine:
    """
    One physical unit requested for issuance.

    ``issue_date`` falls back to the request's date when omitted.
    """

    item_code: str | None = None
    issue_date: date | None = None
    size: str | None = None
    condition: str | None = None
    remarks: str | None = None


@dataclass(frozen=True)
class CategoryRequest:
    """All units requested for one category, with the selected master item."""

    category_id: UUID
    lines: tuple[IssueLine, ...] = ()
    master_item_id: UUID | None = None

    @property
    def pending(self) -> int:
        return len(self.lines)


@dataclass(frozen=True)
class ReplacementTarget:
    """The active assignment to deactivate in favour of the new unit."""

    category_id: UUID
    assignment_id: UUID


@dataclass(frozen=True)
class IssuanceRequest:
    """
    A batch of issuances to one employee, grouped by category.

    ``issue_date`` is the default for lines that carry no date of their own.
    """

    employee_code: str | None
    issue_date: date | None
    categories: tuple[CategoryRequest, ...] = ()
    replacement_targets: tuple[ReplacementTarget, ...] = ()

    @property
    def total_items(self) -> int:
        return sum(c.pending for c in self.categories)

    def target_for(self, category_id: UUID) -> UUID | None:
        for target in self.replacement_targets:
            if target.category_id == category_id:
                return target.assignment_id
        return None

    def with_target(self, category_id: UUID, assignment_id: UUID) -> IssuanceRequest:
        """Copy of this request with the target for ``category_id`` set."""
        kept = tuple(
            t for t in self.replacement_targets if t.category_id != category_id
        )
        return replace(
            self,
            replacement_targets=kept + (ReplacementTarget(category_id, assignment_id),),
        )


# -----------------------------------------------------------------------------
# Decision types
# -----------------------------------------------------------------------------


@dataclass(frozen=True)
class ResolvedLine:
    """A validated unit ready to become an assignment."""

    item_code: str | None
    size: str | None
    condition: str | None
    remarks: str | None
    issue_date: date


@dataclass(frozen=True)
class CategoryPlan:
    """
    Everything the decision needs for one category.

    Built by the shell from selector snapshots.  ``active`` is ordered
    oldest first; ``replacement_target`` is set only when the request named
    a target for this category.
    """

    category: CategoryInfo
    lines: tuple[ResolvedLine, ...]
    active: tuple[AssignmentInfo, ...]
    max_active: int
    master_item: MasterItemInfo | None = None
    replacement_target: AssignmentInfo | None = None

    @property
    def pending(self) -> int:
        return len(self.lines)

    @property
    def is_capacity_controlled(self) -> bool:
        return self.max_active > 0


@dataclass(frozen=True)
class ReplacementPrompt:
    """A category waiting for the caller to pick an assignment to replace."""

    category: CategoryInfo
    candidates: tuple[AssignmentInfo, ...]
    max_active: int


@dataclass(frozen=True)
class IssuanceDecision:
    """Outcome of ``decide``: either commit these plans or wait on prompts."""

    status: IssuanceStatus
    plans: tuple[CategoryPlan, ...] = ()
    prompts: tuple[ReplacementPrompt, ...] = ()


@dataclass(frozen=True)
class StockChange:
    """Net stock decrement applied to one master item by a commit."""

    master_item_id: UUID
    item_code: str
    stock_before: int
    stock_after: int
    quantity: int


@dataclass(frozen=True)
class IssuanceResult:
    """
    Tagged result returned to the caller of the issuance engine.

    Exactly one of the three shapes:
        COMMITTED          -- issued/deactivated/stock_changes populated
        NEEDS_REPLACEMENT  -- prompts populated, nothing written
        REJECTED           -- error populated, nothing written
    """

    status: IssuanceStatus
    employee_code: str | None = None
    issued: tuple[AssignmentInfo, ...] = ()
    deactivated: tuple[AssignmentInfo, ...] = ()
    stock_changes: tuple[StockChange, ...] = ()
    prompts: tuple[ReplacementPrompt, ...] = ()
    error: PpeKernelError | None = field(default=None, compare=False)

    @property
    def is_success(self) -> bool:
        return self.status == IssuanceStatus.COMMITTED

    @property
    def needs_replacement(self) -> bool:
        return self.status == IssuanceStatus.NEEDS_REPLACEMENT

    @property
    def prompt(self) -> ReplacementPrompt | None:
        """The first category awaiting a replacement selection."""
        return self.prompts[0] if self.prompts else None

    @property
    def message(self) -> str:
        if self.status == IssuanceStatus.COMMITTED:
            return (
                f"Issued {len(self.issued)} item(s), "
                f"deactivated {len(self.deactivated)} item(s)"
            )
        if self.status == IssuanceStatus.NEEDS_REPLACEMENT:
            names = ", ".join(p.category.name for p in self.prompts)
            return f"Replacement selection required for: {names}"
        return str(self.error) if self.error else "Rejected"

    @classmethod
    def committed(
        cls,
        employee_code: str,
        issued: Sequence[AssignmentInfo],
        deactivated: Sequence[AssignmentInfo],
        stock_changes: Sequence[StockChange],
    ) -> IssuanceResult:
        return cls(
            status=IssuanceStatus.COMMITTED,
            employee_code=employee_code,
            issued=tuple(issued),
            deactivated=tuple(deactivated),
            stock_changes=tuple(stock_changes),
        )

    @classmethod
    def awaiting_replacement(
        cls,
        employee_code: str,
        prompts: Sequence[ReplacementPrompt],
    ) -> IssuanceResult:
        return cls(
            status=IssuanceStatus.NEEDS_REPLACEMENT,
            employee_code=employee_code,
            prompts=tuple(prompts),
        )

    @classmethod
    def rejected(cls, employee_code: str | None, error: PpeKernelError) -> IssuanceResult:
        return cls(
            status=IssuanceStatus.REJECTED,
            employee_code=employee_code,
            error=error,
        )


# -----------------------------------------------------------------------------
# Validation
# -----------------------------------------------------------------------------


def _blank(value: str | None) -> bool:
    return value is None or not value.strip()


def validate_request_shape(request: IssuanceRequest) -> None:
    """
    Checks that do not need any stored data.

    Raises:
        NoItemsSelectedError: no category carries at least one line.
    """
    if request.total_items == 0:
        raise NoItemsSelectedError()


def normalize_condition(
    value: str | None,
    category_code: str,
    item: int,
) -> str | None:
    if _blank(value):
        return None
    normalized = value.strip().lower()
    try:
        return Condition(normalized).value
    except ValueError:
        raise ValidationFailedError(
            "condition", item, category_code, reason="must be 'new' or 'used'",
        ) from None


def resolve_lines(
    category: CategoryInfo,
    request: CategoryRequest,
    master_item: MasterItemInfo | None,
    *,
    max_active: int,
    has_master_items: bool,
    default_issue_date: date | None = None,
) -> tuple[ResolvedLine, ...]:
    """
    Validate every line of one category and apply master item defaults.

    A selected master item's size is authoritative and replaces whatever
    size the caller typed.
    A line without its own issue date takes ``default_issue_date``.

    Raises:
        MasterItemNotSelectedError: category is capacity- or stock-controlled
            and no master item was selected.
        ValidationFailedError: master item from another category, or a
            required per-item field is missing or malformed.
    """
    if (max_active > 0 or has_master_items) and master_item is None:
        raise MasterItemNotSelectedError(category.code)
    if master_item is not None and master_item.category_id != category.id:
        raise ValidationFailedError(
            "master_item_id", None, category.code,
            reason=f"{master_item.item_code} belongs to another category",
        )

    resolved = []
    for index, line in enumerate(request.lines, start=1):
        issue_date = line.issue_date or default_issue_date
        if issue_date is None:
            raise ValidationFailedError("issue_date", index, category.code)

        if category.tracks_serial and _blank(line.item_code):
            raise ValidationFailedError("item_code", index, category.code)

        size = line.size.strip() if not _blank(line.size) else None
        if master_item is not None and not _blank(master_item.size):
            size = master_item.size
        if category.requires_size and size is None:
            raise ValidationFailedError("size", index, category.code)

        condition = normalize_condition(line.condition, category.code, index)
        if category.requires_condition and condition is None:
            raise ValidationFailedError("condition", index, category.code)

        resolved.append(
            ResolvedLine(
                item_code=line.item_code.strip() if not _blank(line.item_code) else None,
                size=size,
                condition=condition,
                remarks=line.remarks.strip() if not _blank(line.remarks) else None,
                issue_date=issue_date,
            )
        )
    return tuple(resolved)


# -----------------------------------------------------------------------------
# Decision
# -----------------------------------------------------------------------------


def evaluate_capacity(
    active: int,
    pending: int,
    max_active: int,
    *,
    replacing: bool = False,
) -> CapacityVerdict:
    """
    Capacity verdict for one category.

    ``max_active <= 0`` means uncontrolled.  When ``replacing`` is set the
    target is deactivated in the same commit, so it does not count.
    """
    if replacing:
        active -= 1
    if max_active <= 0 or active + pending <= max_active:
        return CapacityVerdict.WITHIN
    if not replacing and pending == 1 and active + pending - max_active == 1:
        return CapacityVerdict.NEEDS_REPLACEMENT
    return CapacityVerdict.UNRESOLVABLE


def check_stock(master_item: MasterItemInfo | None, pending: int) -> None:
    """
    Raises:
        InsufficientStockError: requested units exceed the counter.
    """
    if master_item is not None and master_item.current_stock < pending:
        raise InsufficientStockError(
            master_item.item_code, master_item.current_stock, pending,
        )


def check_replacement_target(plan: CategoryPlan) -> None:
    """
    A target must be one of the employee's active assignments in the
    category and replaces exactly one new unit.

    Raises:
        ReplacementTargetInvalidError
    """
    target = plan.replacement_target
    if target is None:
        return
    if plan.pending != 1:
        raise ReplacementTargetInvalidError(
            str(target.id), "replacement requires exactly one new item",
        )
    if target.id not in {a.id for a in plan.active}:
        raise ReplacementTargetInvalidError(
            str(target.id),
            f"not an active {plan.category.code} assignment of this employee",
        )


def decide(plans: Sequence[CategoryPlan]) -> IssuanceDecision:
    """
    Run the capacity and stock algorithm over every category in batch order.

    Rejection in any category rejects the batch (raised).  Otherwise, if any
    category needs a replacement selection the batch waits; else it commits.

    Raises:
        InsufficientStockError, CapacityExceededUnresolvableError,
        ReplacementTargetInvalidError
    """
    prompts = []
    for plan in plans:
        check_stock(plan.master_item, plan.pending)
        check_replacement_target(plan)

        active = len(plan.active)
        verdict = evaluate_capacity(
            active,
            plan.pending,
            plan.max_active,
            replacing=plan.replacement_target is not None,
        )
        if verdict == CapacityVerdict.UNRESOLVABLE:
            raise CapacityExceededUnresolvableError(
                plan.category.code, active, plan.pending, plan.max_active,
            )
        if verdict == CapacityVerdict.NEEDS_REPLACEMENT:
            prompts.append(
                ReplacementPrompt(
                    category=plan.category,
                    candidates=plan.active,
                    max_active=plan.max_active,
                )
            )

    if prompts:
        return IssuanceDecision(
            status=IssuanceStatus.NEEDS_REPLACEMENT,
            plans=tuple(plans),
            prompts=tuple(prompts),
        )
    return IssuanceDecision(status=IssuanceStatus.COMMITTED, plans=tuple(plans))


def aggregate_stock_decrements(plans: Sequence[CategoryPlan]) -> Mapping[UUID, int]:
    """Net units to take from each master item touched by the batch."""
    totals: dict[UUID, int] = {}
    for plan in plans:
        if plan.master_item is None or plan.pending == 0:
            continue
        totals[plan.master_item.id] = totals.get(plan.master_item.id, 0) + plan.pending
    return totals
