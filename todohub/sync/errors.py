"""Exception taxonomy for the todohub sync core."""

from __future__ import annotations

from typing import Optional


class TodoHubError(Exception):
    """Base class for todohub errors."""


class RemoteServiceError(TodoHubError):
    """A single remote call failed (network, HTTP or GraphQL error).

    Remote failures are transient from the core's point of view: they are
    recovered locally by rolling back or by marking a creation as failed.
    """

    def __init__(self, operation: str, message: str, status_code: Optional[int] = None) -> None:
        super().__init__(f"{operation} failed: {message}")
        self.operation = operation
        self.message = message
        self.status_code = status_code


class InconsistentLocalStateError(TodoHubError):
    """A todo lacks the remote identity an operation needs.

    Raised internally and converted into a surfaced error; the remote call is
    skipped instead of crashing.
    """

    def __init__(self, local_id: str, message: str) -> None:
        super().__init__(message)
        self.local_id = local_id


class DuplicateTodoError(TodoHubError):
    """The store already holds a todo with this local id or issue id."""
