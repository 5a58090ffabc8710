"""Transition rules for the todo creation lifecycle.

The creation lifecycle is small but the invariants matter: a todo only
leaves PENDING through the creation queue (commit or failure), and only a
FAILED todo can be put back into PENDING by a user retry.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Dict, Optional

from todohub.fsm.pending_state import PendingState

if TYPE_CHECKING:
    from todohub.sync.contracts import Todo


# Default transition map: defines valid pending-state transitions
PENDING_TRANSITIONS: Dict[PendingState, set[PendingState]] = {
    PendingState.PENDING: {PendingState.NONE, PendingState.FAILED},
    PendingState.FAILED: {PendingState.PENDING},  # user retry
    PendingState.NONE: set(),  # Terminal state
}


class InvalidPendingTransitionError(ValueError):
    """Raised when a todo is moved along an edge missing from the transition map."""

    def __init__(self, from_state: PendingState, to_state: PendingState) -> None:
        valid = sorted(s.value for s in PENDING_TRANSITIONS.get(from_state, set()))
        super().__init__(
            f"Invalid transition: {from_state.value} -> {to_state.value}. "
            f"Valid transitions from {from_state.value}: {valid}"
        )
        self.from_state = from_state
        self.to_state = to_state


def can_transition(from_state: PendingState, to_state: PendingState) -> bool:
    """Check if a transition is valid according to the transition map."""
    return to_state in PENDING_TRANSITIONS.get(from_state, set())


def transition_pending_state(
    todo: "Todo", next_state: PendingState, reason: Optional[str] = None
) -> "Todo":
    """Return a copy of ``todo`` moved to ``next_state``.

    Entering FAILED records ``reason`` as the todo's pending error; every
    other target state clears it.

    Args:
        todo: The todo to transition.
        next_state: The target pending state.
        reason: Failure reason, only meaningful for FAILED.

    Returns:
        A new Todo value with the updated pending state.

    Raises:
        InvalidPendingTransitionError: If the transition is not in the map.
    """
    if not can_transition(todo.pending_state, next_state):
        raise InvalidPendingTransitionError(todo.pending_state, next_state)

    error = (reason or "Unknown error") if next_state is PendingState.FAILED else None
    return todo.model_copy(update={"pending_state": next_state, "pending_error": error})
