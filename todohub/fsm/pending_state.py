"""Pending state enumeration for optimistic todo creation.

This module provides PendingState enum for tracking whether a todo exists
only in the local optimistic view or has been confirmed by the remote.
"""

from enum import Enum


class PendingState(Enum):
    """Creation lifecycle states of a todo.

    States represent how far a locally created todo has progressed:
    - NONE: Committed, the remote issue exists (also every todo loaded from the remote)
    - PENDING: Queued or in flight, exists only in the local view
    - FAILED: Issue creation failed, waiting for the user to retry or remove it

    Enum values are lowercase strings so they serialize cleanly.
    """

    NONE = "none"
    PENDING = "pending"
    FAILED = "failed"
