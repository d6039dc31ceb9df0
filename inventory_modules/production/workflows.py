"""
Production Workflows.

State machine for production batches.  COMPLETED and CANCELLED are
terminal; cancellation is reachable from PENDING and IN_PROGRESS only.
"""

from dataclasses import dataclass

from inventory_kernel.logging_config import get_logger

logger = get_logger("modules.production.workflows")


@dataclass(frozen=True)
class Guard:
    """A condition for a transition."""
    name: str
    description: str


@dataclass(frozen=True)
class Transition:
    """A valid state transition."""
    from_state: str
    to_state: str
    action: str
    guard: Guard | None = None
    moves_stock: bool = False


@dataclass(frozen=True)
class Workflow:
    """A state machine definition."""
    name: str
    description: str
    initial_state: str
    states: tuple[str, ...]
    transitions: tuple[Transition, ...]

    @property
    def terminal_states(self) -> tuple[str, ...]:
        sources = {t.from_state for t in self.transitions}
        return tuple(s for s in self.states if s not in sources)

    def transition_for(self, from_state: str, action: str) -> Transition | None:
        """The transition ``action`` takes out of ``from_state``, if any."""
        for transition in self.transitions:
            if transition.from_state == from_state and transition.action == action:
                return transition
        return None


# -----------------------------------------------------------------------------
# Guards
# -----------------------------------------------------------------------------

INGREDIENTS_AVAILABLE = Guard(
    name="ingredients_available",
    description="Every ingredient has enough available stock at the completion location",
)


# -----------------------------------------------------------------------------
# Batch Workflow
# -----------------------------------------------------------------------------

BATCH_WORKFLOW = Workflow(
    name="production_batch",
    description="Production batch lifecycle",
    initial_state="PENDING",
    states=(
        "PENDING",
        "IN_PROGRESS",
        "COMPLETED",
        "CANCELLED",
    ),
    transitions=(
        Transition("PENDING", "IN_PROGRESS", action="start"),
        Transition("PENDING", "CANCELLED", action="cancel"),
        Transition(
            "IN_PROGRESS", "COMPLETED", action="complete",
            guard=INGREDIENTS_AVAILABLE, moves_stock=True,
        ),
        Transition("IN_PROGRESS", "CANCELLED", action="cancel"),
    ),
)

logger.info(
    "production_batch_workflow_registered",
    extra={
        "workflow_name": BATCH_WORKFLOW.name,
        "state_count": len(BATCH_WORKFLOW.states),
        "transition_count": len(BATCH_WORKFLOW.transitions),
        "initial_state": BATCH_WORKFLOW.initial_state,
    },
)
