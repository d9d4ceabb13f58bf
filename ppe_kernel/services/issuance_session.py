"""
IssuanceSession -- per-employee issuance state machine.

Responsibility:
    Tracks one caller's issuance conversation for one employee: submit a
    batch, receive a replacement prompt, confirm a replacement target, or
    withdraw.  All decisions are delegated to IssuanceEngine; this class
    only keeps the pending request and enforces the transitions declared in
    ``ISSUANCE_SESSION_WORKFLOW``.

Architecture position:
    Kernel > Services.  Holds no database state of its own.

Invariants enforced:
    - Submitting while awaiting a replacement selection, or confirming with
      no target, returns ReplacementTargetMissingError and stays awaiting.
    - An invalid target keeps the session awaiting so another can be picked.
    - committed and rejected are terminal until reset() or load_employee().
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date
from uuid import UUID, uuid4

from ppe_kernel.domain.issuance import (
    CategoryRequest,
    IssuanceRequest,
    IssuanceResult,
    IssuanceStatus,
    ReplacementPrompt,
)
from ppe_kernel.domain.workflow import (
    AWAITING_REPLACEMENT,
    COMMITTED,
    IDLE,
    ISSUANCE_SESSION_WORKFLOW,
    REJECTED,
    Workflow,
)
from ppe_kernel.exceptions import (
    InvalidSessionTransitionError,
    ReplacementTargetInvalidError,
    ReplacementTargetMissingError,
)
from ppe_kernel.logging_config import LogContext, get_logger
from ppe_kernel.services.issuance_engine import IssuanceEngine

logger = get_logger("services.issuance_session")


class IssuanceSession:
    """
    Issuance conversation for one employee at a time.

        session = IssuanceSession(engine)
        session.load_employee("E001")
        result = session.submit(date(2024, 5, 1), [CategoryRequest(...)])
        if session.state == "awaiting_replacement_selection":
            result = session.confirm_replacement(result.prompt.candidates[0].id)
    """

    def __init__(
        self,
        engine: IssuanceEngine,
        workflow: Workflow = ISSUANCE_SESSION_WORKFLOW,
    ):
        self._engine = engine
        self._workflow = workflow
        self._state = workflow.initial_state
        self._employee_code: str | None = None
        self._pending_request: IssuanceRequest | None = None
        self._last_result: IssuanceResult | None = None
        self.session_id = str(uuid4())

    @property
    def state(self) -> str:
        return self._state

    @property
    def employee_code(self) -> str | None:
        return self._employee_code

    @property
    def pending_request(self) -> IssuanceRequest | None:
        return self._pending_request

    @property
    def last_result(self) -> IssuanceResult | None:
        return self._last_result

    @property
    def prompt(self) -> ReplacementPrompt | None:
        """The replacement prompt being waited on, if any."""
        if self._state != AWAITING_REPLACEMENT or self._last_result is None:
            return None
        return self._last_result.prompt

    @property
    def is_terminal(self) -> bool:
        return self._state in self._workflow.terminal_states

    def _transition(self, action: str, to_state: str) -> None:
        if not any(t.to_state == to_state for t in self._workflow.find(self._state, action)):
            raise InvalidSessionTransitionError(self._state, action)
        from_state, self._state = self._state, to_state
        logger.info(
            "issuance_session_transition",
            extra={
                "session_id": self.session_id,
                "from_state": from_state,
                "to_state": to_state,
                "action": action,
            },
        )

    def _missing_target(self) -> IssuanceResult:
        prompt = self.prompt
        error = ReplacementTargetMissingError(prompt.category.code if prompt else None)
        logger.warning(
            "issuance_replacement_target_missing",
            extra={"session_id": self.session_id},
        )
        return IssuanceResult.rejected(self._employee_code, error)

    def _run(self, action: str, request: IssuanceRequest) -> IssuanceResult:
        with LogContext.bind(session_id=self.session_id):
            result = self._engine.issue(request)

            if result.status == IssuanceStatus.COMMITTED:
                to_state = COMMITTED
            elif result.status == IssuanceStatus.NEEDS_REPLACEMENT:
                to_state = AWAITING_REPLACEMENT
            elif (
                self._state == AWAITING_REPLACEMENT
                and isinstance(result.error, ReplacementTargetInvalidError)
            ):
                to_state = AWAITING_REPLACEMENT
            else:
                to_state = REJECTED

            self._transition(action, to_state)
            if to_state == AWAITING_REPLACEMENT:
                if result.status == IssuanceStatus.NEEDS_REPLACEMENT:
                    self._pending_request = request
                    self._last_result = result
                # A rejected target leaves the previous prompt in place.
                return result

            self._pending_request = None
            self._last_result = result
            return result

    # ------------------------------------------------------------------
    # Actions
    # ------------------------------------------------------------------

    def load_employee(self, employee_code: str) -> None:
        """Switch to another employee; any pending decision is dropped."""
        self._transition("load_employee", IDLE)
        self._employee_code = employee_code
        self._pending_request = None
        self._last_result = None

    def submit(
        self,
        issue_date: date | None,
        categories: Iterable[CategoryRequest],
    ) -> IssuanceResult:
        """
        Submit a new batch for the loaded employee.

        Raises:
            InvalidSessionTransitionError: session is committed or rejected.
        """
        if self._state == AWAITING_REPLACEMENT:
            return self._missing_target()
        if self._state != IDLE:
            raise InvalidSessionTransitionError(self._state, "submit")

        request = IssuanceRequest(
            employee_code=self._employee_code,
            issue_date=issue_date,
            categories=tuple(categories),
        )
        return self._run("submit", request)

    def confirm_replacement(self, assignment_id: UUID | None) -> IssuanceResult:
        """
        Resubmit the pending batch, deactivating ``assignment_id`` in the
        category being prompted for.

        Raises:
            InvalidSessionTransitionError: not awaiting a replacement.
        """
        if self._state != AWAITING_REPLACEMENT:
            raise InvalidSessionTransitionError(self._state, "confirm_replacement")
        if assignment_id is None:
            return self._missing_target()

        request = self._pending_request.with_target(self.prompt.category.id, assignment_id)
        return self._run("confirm_replacement", request)

    def withdraw(self) -> None:
        """Abandon the pending replacement decision."""
        self._transition("withdraw", IDLE)
        self._pending_request = None
        self._last_result = None

    def reset(self) -> None:
        """Return to idle from any state, keeping the loaded employee."""
        self._transition("reset", IDLE)
        self._pending_request = None
        self._last_result = None

    def clear(self) -> None:
        """Clear the form: return to idle and unload the employee."""
        self.reset()
        self._employee_code = None
