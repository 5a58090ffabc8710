"""Finite state machine package for todohub.

This package provides the creation lifecycle of a todo (pending, failed,
committed) and its transition rules.
"""

from todohub.fsm.pending_state import PendingState
from todohub.fsm.lifecycle import (
    PENDING_TRANSITIONS,
    InvalidPendingTransitionError,
    can_transition,
    transition_pending_state,
)

__all__ = [
    "PendingState",
    "PENDING_TRANSITIONS",
    "InvalidPendingTransitionError",
    "can_transition",
    "transition_pending_state",
]
