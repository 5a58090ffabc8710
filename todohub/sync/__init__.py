"""Optimistic local state for the todo list, reconciled with the remote service."""

# Public API
from todohub.sync.todo_list import TodoListState
from todohub.sync.creation_queue import CreationQueue
from todohub.sync.reconciler import ReconciliationEngine
from todohub.sync.registry import PendingCreationRegistry
from todohub.sync.store import LocalTodoStore
from todohub.sync.hooks import ErrorReporter, SyncHooks

# Contracts
from todohub.sync.contracts import (
    CreatedIssue,
    PendingCreationRecord,
    Priority,
    Project,
    PriorityOption,
    Repository,
    SurfacedError,
    Todo,
)
from todohub.sync.errors import (
    DuplicateTodoError,
    InconsistentLocalStateError,
    RemoteServiceError,
    TodoHubError,
)

# Remote services
from todohub.sync.remote import InMemoryTodoService, RemoteTodoService

__all__ = [
    "TodoListState",
    "CreationQueue",
    "ReconciliationEngine",
    "PendingCreationRegistry",
    "LocalTodoStore",
    "ErrorReporter",
    "SyncHooks",
    "CreatedIssue",
    "PendingCreationRecord",
    "Priority",
    "Project",
    "PriorityOption",
    "Repository",
    "SurfacedError",
    "Todo",
    "DuplicateTodoError",
    "InconsistentLocalStateError",
    "RemoteServiceError",
    "TodoHubError",
    "InMemoryTodoService",
    "RemoteTodoService",
]
