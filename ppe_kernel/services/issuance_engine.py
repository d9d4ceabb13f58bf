"""
IssuanceEngine -- imperative shell around the issuance decision core.

Responsibility:
    Loads the employee, categories, master items (locked FOR UPDATE) and
    active assignments named by an IssuanceRequest, hands them to the pure
    decision functions in ``ppe_kernel.domain.issuance``, and when the
    decision is to commit, performs every write of the batch in one
    transaction.

Architecture position:
    Kernel > Services.  Owns the transaction boundary for issuance: with
    ``auto_commit=True`` (the default) it commits on success and rolls back
    on every other outcome.  With ``auto_commit=False`` the batch runs in a
    SAVEPOINT and the caller commits.

Invariants enforced:
    - Commit order inside the transaction: deactivations, insertions, one
      aggregated stock decrement per master item, then one audit entry per
      deactivation and per issued item (stock decrements audit themselves).
    - All-or-nothing: any failed write rolls back the whole batch,
      including its audit entries.
    - A write that changes no row raises PartialCommitFailureError inside
      the transaction, so it is rolled back like any other failure.
    - NEEDS_REPLACEMENT and REJECTED outcomes perform zero writes.

Failure modes:
    - Never raises for business or storage failures.  PpeKernelError and
      SQLAlchemyError are folded into a REJECTED IssuanceResult; storage
      errors are wrapped in RepositoryError.

Audit relevance:
    Every committed issuance leaves one ISSUE entry per unit, one
    DEACTIVATE entry per replaced unit and one STOCK_DECREMENT entry per
    master item.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from ppe_kernel.domain.clock import Clock, SystemClock
from ppe_kernel.domain.dtos import AssignmentInfo, EmployeeInfo, MasterItemInfo
from ppe_kernel.domain.issuance import (
    CategoryPlan,
    IssuanceRequest,
    IssuanceResult,
    IssuanceStatus,
    StockChange,
    aggregate_stock_decrements,
    decide,
    resolve_lines,
    validate_request_shape,
)
from ppe_kernel.exceptions import (
    CategoryNotFoundError,
    EmployeeNotLoadedError,
    MasterItemNotFoundError,
    PartialCommitFailureError,
    PpeKernelError,
    ReplacementTargetInvalidError,
    RepositoryError,
    ValidationFailedError,
)
from ppe_kernel.logging_config import LogContext, get_logger
from ppe_kernel.models.employee import Employee
from ppe_kernel.selectors.assignment_selector import AssignmentSelector
from ppe_kernel.selectors.catalog_selector import CatalogSelector
from ppe_kernel.services.assignment_service import AssignmentService
from ppe_kernel.services.audit_recorder import AuditOperation, AuditRecorder
from ppe_kernel.services.capacity_config import CapacityConfig
from ppe_kernel.services.stock_ledger import StockLedgerService

logger = get_logger("services.issuance_engine")


class IssuanceEngine:
    """
    Decides and commits PPE issuance batches.

    Usage:
        engine = IssuanceEngine(session, CapacityConfig.load(session))
        result = engine.issue(request)
        if result.needs_replacement:
            result = engine.issue(
                request.with_target(result.prompt.category.id, chosen.id)
            )
    """

    def __init__(
        self,
        session: Session,
        capacity_config: CapacityConfig,
        clock: Clock | None = None,
        auto_commit: bool = True,
    ):
        self._session = session
        self._config = capacity_config
        self._clock = clock or SystemClock()
        self._auto_commit = auto_commit

        self._audit = AuditRecorder(session, self._clock)
        self._assignments = AssignmentService(session, self._clock, self._audit)
        self._ledger = StockLedgerService(session, self._clock, self._audit)
        self._assignment_selector = AssignmentSelector(session)
        self._catalog = CatalogSelector(session)

    @property
    def capacity_config(self) -> CapacityConfig:
        return self._config

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def issue(self, request: IssuanceRequest) -> IssuanceResult:
        """
        Validate, decide and (when within capacity) commit one batch.

        Returns:
            IssuanceResult tagged COMMITTED, NEEDS_REPLACEMENT or REJECTED.
        """
        with LogContext.bind(employee_code=request.employee_code):
            logger.info(
                "issuance_requested",
                extra={
                    "categories": len(request.categories),
                    "items": request.total_items,
                    "replacement_targets": len(request.replacement_targets),
                },
            )
            try:
                employee = self._load_employee(request.employee_code)
                validate_request_shape(request)
                plans = self._build_plans(employee, request)
                decision = decide(plans)

                if decision.status == IssuanceStatus.NEEDS_REPLACEMENT:
                    self._release()
                    logger.info(
                        "issuance_awaiting_replacement",
                        extra={
                            "categories": [p.category.code for p in decision.prompts],
                            "candidates": sum(len(p.candidates) for p in decision.prompts),
                        },
                    )
                    return IssuanceResult.awaiting_replacement(
                        employee.employee_code, decision.prompts,
                    )

                result = self._commit(employee, decision.plans)
                if self._auto_commit:
                    self._session.commit()
                logger.info(
                    "issuance_committed",
                    extra={
                        "issued": len(result.issued),
                        "deactivated": len(result.deactivated),
                        "stock_changes": len(result.stock_changes),
                    },
                )
                return result

            except PartialCommitFailureError as exc:
                self._release()
                logger.error(
                    "issuance_partial_commit_rolled_back",
                    extra={
                        "succeeded": exc.succeeded,
                        "attempted": exc.attempted,
                        "operation": exc.operation,
                    },
                )
                return IssuanceResult.rejected(request.employee_code, exc)

            except PpeKernelError as exc:
                self._release()
                logger.warning(
                    "issuance_rejected",
                    extra={"error_code": exc.code, "reason": str(exc)},
                )
                return IssuanceResult.rejected(request.employee_code, exc)

            except SQLAlchemyError as exc:
                self._release()
                logger.error("issuance_repository_error", exc_info=True)
                return IssuanceResult.rejected(request.employee_code, RepositoryError(exc))

    # ------------------------------------------------------------------
    # Read phase
    # ------------------------------------------------------------------

    def _release(self) -> None:
        """End the transaction without writing when this engine owns it."""
        if self._auto_commit:
            self._session.rollback()

    def _load_employee(self, employee_code: str | None) -> EmployeeInfo:
        if not employee_code or not employee_code.strip():
            raise EmployeeNotLoadedError()
        employee = self._session.execute(
            select(Employee).where(Employee.employee_code == employee_code.strip())
        ).scalar_one_or_none()
        if employee is None:
            raise EmployeeNotLoadedError(employee_code)
        return EmployeeInfo.from_model(employee)

    def _build_plans(
        self,
        employee: EmployeeInfo,
        request: IssuanceRequest,
    ) -> list[CategoryPlan]:
        seen: set[UUID] = set()
        plans = []
        for category_request in request.categories:
            if category_request.pending == 0:
                continue
            category = self._catalog.get_category(category_request.category_id)
            if category is None:
                raise CategoryNotFoundError(str(category_request.category_id))
            if category.id in seen:
                raise ValidationFailedError(
                    "category", None, category.code,
                    reason="category appears more than once in the batch",
                )
            seen.add(category.id)

            master_item = None
            if category_request.master_item_id is not None:
                master_item = MasterItemInfo.from_model(
                    self._ledger.lock_item(category_request.master_item_id)
                )

            max_active = self._config.get(category.code)
            lines = resolve_lines(
                category,
                category_request,
                master_item,
                max_active=max_active,
                has_master_items=self._catalog.count_master_items(category.id) > 0,
                default_issue_date=request.issue_date,
            )

            target = None
            target_id = request.target_for(category.id)
            if target_id is not None:
                target = self._assignment_selector.get(target_id)
                if target is None:
                    raise ReplacementTargetInvalidError(str(target_id), "assignment not found")

            plans.append(
                CategoryPlan(
                    category=category,
                    lines=lines,
                    active=tuple(
                        self._assignment_selector.active_for_employee_category(
                            employee.id, category.id,
                        )
                    ),
                    max_active=max_active,
                    master_item=master_item,
                    replacement_target=target,
                )
            )

        for target in request.replacement_targets:
            if target.category_id not in seen:
                raise ReplacementTargetInvalidError(
                    str(target.assignment_id), "category is not part of this request",
                )
        return plans

    # ------------------------------------------------------------------
    # Write phase
    # ------------------------------------------------------------------

    def _commit(
        self,
        employee: EmployeeInfo,
        plans: list[CategoryPlan],
    ) -> IssuanceResult:
        decrements = aggregate_stock_decrements(plans)
        replacing = [p for p in plans if p.replacement_target is not None]
        attempted = len(replacing) + sum(p.pending for p in plans) + len(decrements)
        succeeded = 0

        deactivated: list[AssignmentInfo] = []
        issued: list[tuple[CategoryPlan, AssignmentInfo]] = []
        stock_changes: list[StockChange] = []

        with self._session.begin_nested():
            for plan in replacing:
                target = plan.replacement_target
                if not self._assignments.deactivate(target.id, employee.id):
                    raise PartialCommitFailureError(succeeded, attempted, "deactivate")
                succeeded += 1
                deactivated.append(self._assignment_selector.get(target.id))

            for plan in plans:
                for line in plan.lines:
                    info = self._assignments.insert(
                        employee_id=employee.id,
                        category_id=plan.category.id,
                        issue_date=line.issue_date,
                        item_code=line.item_code,
                        size=line.size,
                        condition=line.condition,
                        remarks=line.remarks,
                        master_item_id=plan.master_item.id if plan.master_item else None,
                    )
                    succeeded += 1
                    issued.append((plan, info))

            masters = {p.master_item.id: p.master_item for p in plans if p.master_item}
            for master_item_id, quantity in decrements.items():
                try:
                    movement = self._ledger.decrement(
                        master_item_id,
                        quantity,
                        reason=f"issued to {employee.employee_code}",
                    )
                except MasterItemNotFoundError:
                    raise PartialCommitFailureError(succeeded, attempted, "stock_decrement") from None
                if -movement.quantity_delta != quantity:
                    raise PartialCommitFailureError(succeeded, attempted, "stock_decrement")
                succeeded += 1
                stock_changes.append(
                    StockChange(
                        master_item_id=master_item_id,
                        item_code=masters[master_item_id].item_code,
                        stock_before=movement.stock_after + quantity,
                        stock_after=movement.stock_after,
                        quantity=quantity,
                    )
                )

            replaced_by = {p.category.id: p for p in replacing}
            for info in deactivated:
                new_item = next(i for p, i in issued if p.category.id == info.category_id)
                self._audit.record(
                    AuditOperation.DEACTIVATE,
                    f"Deactivated {info.category_name} {info.item_code or '(no code)'} "
                    f"issued {info.issue_date} to {employee.employee_code} ({employee.name}); "
                    f"replaced by {new_item.item_code or '(no code)'}",
                )
            for plan, info in issued:
                suffix = " as replacement" if plan.category.id in replaced_by else ""
                self._audit.record(
                    AuditOperation.ISSUE,
                    f"Issued {info.category_name} {info.item_code or '(no code)'}"
                    f"{_details(info)} to {employee.employee_code} ({employee.name}) "
                    f"on {info.issue_date}{suffix}",
                )

        return IssuanceResult.committed(
            employee.employee_code,
            issued=[info for _, info in issued],
            deactivated=deactivated,
            stock_changes=stock_changes,
        )


def _details(info: AssignmentInfo) -> str:
    parts = []
    if info.size:
        parts.append(f"size {info.size}")
    if info.condition:
        parts.append(info.condition)
    return f" ({', '.join(parts)})" if parts else ""
