"""
Issuance session workflow (``ppe_kernel.domain.workflow``).

Responsibility
--------------
Pure value objects for the per-employee issuance session state machine and
the single workflow definition that drives ``IssuanceSession``.

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.

Invariants enforced
-------------------
* Transitions reference only states in ``Workflow.states``.
* ``committed`` and ``rejected`` leave only via ``reset`` or
  ``load_employee``.
"""

from __future__ import annotations

from dataclasses import dataclass

from ppe_kernel.logging_config import get_logger

logger = get_logger("domain.workflow")


@dataclass(frozen=True)
class Guard:
    """A condition that must be satisfied before a transition fires."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition. ``writes=True`` marks a committing transition."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    writes: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition.

    Contract: frozen; ``transitions`` reference only states in ``states``.
    """
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]
    terminal_states: tuple[str, ...] = ()

    def find(self, from_state: str, action: str) -> tuple[Transition, ...]:
        """All transitions leaving ``from_state`` via ``action``."""
        return tuple(
            t for t in self.transitions
            if t.from_state == from_state and t.action == action
        )

    def allows(self, from_state: str, action: str) -> bool:
        return bool(self.find(from_state, action))


# States
IDLE = "idle"
AWAITING_REPLACEMENT = "awaiting_replacement_selection"
COMMITTED = "committed"
REJECTED = "rejected"


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

WITHIN_CAPACITY = Guard(
    name="within_capacity",
    description="Every category fits its capacity and stock",
)

OVERFLOW_BY_ONE = Guard(
    name="overflow_by_one",
    description="A category exceeds capacity by exactly one with one pending item",
)

REPLACEMENT_TARGET_VALID = Guard(
    name="replacement_target_valid",
    description="Target is an active assignment of this employee in the awaiting category",
)

logger.info(
    "issuance_workflow_guards_defined",
    extra={
        "guards": [
            WITHIN_CAPACITY.name,
            OVERFLOW_BY_ONE.name,
            REPLACEMENT_TARGET_VALID.name,
        ],
    },
)


# -----------------------------------------------------------------------------
# Issuance Session Workflow
# -----------------------------------------------------------------------------

ISSUANCE_SESSION_WORKFLOW = Workflow(
    name="ppe_issuance_session",
    description="Issuance of PPE items to one employee, with 1-for-1 replacement at capacity",
    initial_state=IDLE,
    states=(
        IDLE,
        AWAITING_REPLACEMENT,
        COMMITTED,
        REJECTED,
    ),
    transitions=(
        Transition(IDLE, COMMITTED, action="submit", guard=WITHIN_CAPACITY, writes=True),
        Transition(IDLE, AWAITING_REPLACEMENT, action="submit", guard=OVERFLOW_BY_ONE),
        Transition(IDLE, REJECTED, action="submit"),
        Transition(
            AWAITING_REPLACEMENT, COMMITTED, action="confirm_replacement",
            guard=REPLACEMENT_TARGET_VALID, writes=True,
        ),
        # Another category still needs a target, or the target was rejected
        Transition(AWAITING_REPLACEMENT, AWAITING_REPLACEMENT, action="confirm_replacement"),
        Transition(AWAITING_REPLACEMENT, REJECTED, action="confirm_replacement"),
        Transition(AWAITING_REPLACEMENT, IDLE, action="withdraw"),
        Transition(IDLE, IDLE, action="load_employee"),
        Transition(AWAITING_REPLACEMENT, IDLE, action="load_employee"),
        Transition(COMMITTED, IDLE, action="load_employee"),
        Transition(REJECTED, IDLE, action="load_employee"),
        Transition(COMMITTED, IDLE, action="reset"),
        Transition(REJECTED, IDLE, action="reset"),
        Transition(AWAITING_REPLACEMENT, IDLE, action="reset"),
        Transition(IDLE, IDLE, action="reset"),
    ),
    terminal_states=(COMMITTED, REJECTED),
)

logger.info(
    "issuance_workflow_defined",
    extra={
        "workflow": ISSUANCE_SESSION_WORKFLOW.name,
        "states": list(ISSUANCE_SESSION_WORKFLOW.states),
        "transitions": len(ISSUANCE_SESSION_WORKFLOW.transitions),
    },
)
