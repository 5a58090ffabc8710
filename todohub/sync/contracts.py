"""Pydantic contracts for todos, pending creations and remote results."""

from __future__ import annotations

import uuid
from datetime import date, datetime, timedelta, timezone
from enum import Enum
from typing import List, Literal, Optional, Set

import pydantic as pd

from todohub.fsm.pending_state import PendingState


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def new_local_id() -> str:
    """Generate a client-local identifier for a todo."""
    return uuid.uuid4().hex


class Priority(Enum):
    """Priority values as stored in the project's single-select field."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NONE = "None"

    @property
    def sort_order(self) -> int:
        return _PRIORITY_ORDER[self]


_PRIORITY_ORDER = {
    Priority.HIGH: 0,
    Priority.MEDIUM: 1,
    Priority.LOW: 2,
    Priority.NONE: 3,
}


class Todo(pd.BaseModel):
    """One remote issue plus its project metadata, as seen by the client.

    Todos are treated as values: every mutation produces a copy through
    ``model_copy(update=...)`` and the store replaces the old value. A
    captured todo is therefore always a safe rollback target.

    Attributes:
        local_id: Client-generated key, stable for the lifetime of the row
        issue_id: Remote issue node id, None until the issue exists
        issue_number: Remote issue number (0 while pending)
        title: Issue title
        body: Issue body (the todo description)
        completed: Whether the issue is closed
        due_date: Value of the project's due date field
        priority: Value of the project's priority field
        assignees: Logins assigned to the issue
        repository: ``owner/name`` of the backing repository
        project_item_id: Project item id, set only once the issue is attached
        pending_state: Creation lifecycle marker
        pending_error: Failure reason while ``pending_state`` is FAILED
    """

    local_id: str = pd.Field(default_factory=new_local_id)
    issue_id: Optional[str] = None
    issue_number: int = 0
    title: str
    body: Optional[str] = None
    completed: bool = False
    due_date: Optional[date] = None
    priority: Priority = Priority.NONE
    assignees: Set[str] = pd.Field(default_factory=set)
    repository: str = ""
    project_item_id: Optional[str] = None
    pending_state: PendingState = PendingState.NONE
    pending_error: Optional[str] = None
    created_at: datetime = pd.Field(default_factory=utc_now)
    updated_at: datetime = pd.Field(default_factory=utc_now)

    model_config = pd.ConfigDict(extra="ignore")

    @property
    def is_pending(self) -> bool:
        return self.pending_state is PendingState.PENDING

    @property
    def is_failed(self) -> bool:
        return self.pending_state is PendingState.FAILED

    @property
    def is_committed(self) -> bool:
        return self.pending_state is PendingState.NONE and self.issue_id is not None

    @property
    def is_overdue(self) -> bool:
        if self.due_date is None:
            return False
        return self.due_date < date.today() and not self.completed

    @property
    def is_due_today(self) -> bool:
        return self.due_date is not None and self.due_date == date.today()

    @property
    def is_due_soon(self) -> bool:
        """Due after tomorrow but within the next week."""
        if self.due_date is None:
            return False
        today = date.today()
        return today + timedelta(days=1) < self.due_date <= today + timedelta(days=7)

    def __repr__(self) -> str:
        return (
            f"Todo(local_id={self.local_id!r}, title={self.title!r}, "
            f"issue_number={self.issue_number}, pending_state={self.pending_state.value!r})"
        )


class PendingCreationRecord(pd.BaseModel):
    """A queued or in-flight creation.

    ``desired_position`` indexes the incomplete-todos sublist and is the only
    field that changes after enqueue.
    """

    local_id: str
    title: str
    body: Optional[str] = None
    due_date: Optional[date] = None
    priority: Priority = Priority.NONE
    desired_position: int = 0

    model_config = pd.ConfigDict(extra="ignore")


class CreatedIssue(pd.BaseModel):
    """Result of a remote issue creation."""

    issue_id: str
    issue_number: int
    repository: str
    created_at: datetime = pd.Field(default_factory=utc_now)

    model_config = pd.ConfigDict(extra="ignore")


class Repository(pd.BaseModel):
    id: str
    name: str
    owner: str
    is_private: bool = False
    description: Optional[str] = None

    model_config = pd.ConfigDict(extra="ignore")

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.name}"


class PriorityOption(pd.BaseModel):
    id: str
    name: str

    model_config = pd.ConfigDict(extra="ignore")


class Project(pd.BaseModel):
    """A projects board and the ids of its custom fields."""

    id: str
    number: int
    title: str
    url: str = ""
    due_date_field_id: Optional[str] = None
    priority_field_id: Optional[str] = None
    priority_options: List[PriorityOption] = pd.Field(default_factory=list)

    model_config = pd.ConfigDict(extra="ignore")


ErrorKind = Literal["transient_remote_failure", "inconsistent_local_state"]


class SurfacedError(pd.BaseModel):
    """An error value handed to the presentation layer for display."""

    operation: str
    kind: ErrorKind = "transient_remote_failure"
    message: str
    local_id: Optional[str] = None
    occurred_at: datetime = pd.Field(default_factory=utc_now)

    model_config = pd.ConfigDict(extra="forbid")
