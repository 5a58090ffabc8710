"""TodoListState: the presentation-facing todo list.

Wires the local store, the pending creation registry, the creation queue
and the reconciliation engine around one remote service, and exposes the
operations a todo list screen needs. Local effects of every operation are
visible before the first await, so the UI never has to wait for the
network before the next action.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from typing import Any, Callable, Coroutine, List, Optional, Set

from todohub.sync.contracts import Priority, SurfacedError, Todo
from todohub.sync.creation_queue import CreationQueue
from todohub.sync.hooks import ErrorReporter, SyncHooks
from todohub.sync.reconciler import ReconciliationEngine
from todohub.sync.registry import PendingCreationRegistry
from todohub.sync.remote.base import RemoteTodoService
from todohub.sync.store import LocalTodoStore, StoreListener, TodoSnapshot

logger = logging.getLogger(__name__)

_FAR_FUTURE = date.max


class TodoListState:
    """Observable todo list backed by a remote todo service.

    Example:
        >>> state = TodoListState(InMemoryTodoService.with_sample_data())
        >>> await state.load_todos()
        >>> local_id = state.create_todo("Buy milk")
        >>> state.todos[0].is_pending
        True
        >>> await state.wait_until_idle()
        >>> state.todos[0].is_committed
        True
    """

    def __init__(self, remote: RemoteTodoService, hooks: Optional[SyncHooks] = None) -> None:
        self.remote = remote
        self.store = LocalTodoStore()
        self.registry = PendingCreationRegistry()
        self.reporter = ErrorReporter(hooks)
        self.queue = CreationQueue(self.store, self.registry, remote, self.reporter)
        self.engine = ReconciliationEngine(self.store, self.queue, remote, self.reporter)
        self._is_loading = False
        self._background: Set[asyncio.Task[Any]] = set()

    # -------------------- observation --------------------
    @property
    def todos(self) -> TodoSnapshot:
        return self.store.snapshot()

    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        return self.store.subscribe(listener)

    @property
    def is_loading(self) -> bool:
        return self._is_loading

    @property
    def error(self) -> Optional[SurfacedError]:
        """Most recent surfaced error."""
        return self.reporter.last_error

    @property
    def errors(self) -> List[SurfacedError]:
        return self.reporter.history

    def clear_errors(self) -> None:
        self.reporter.clear()

    # -------------------- sections --------------------
    @property
    def overdue_todos(self) -> List[Todo]:
        todos = [t for t in self.store if t.is_overdue and not t.completed]
        return sorted(todos, key=lambda t: t.due_date or _FAR_FUTURE)

    @property
    def today_todos(self) -> List[Todo]:
        todos = [t for t in self.store if t.is_due_today and not t.completed and not t.is_overdue]
        return sorted(todos, key=lambda t: t.priority.sort_order)

    @property
    def upcoming_todos(self) -> List[Todo]:
        today = date.today()
        todos = [
            t
            for t in self.store
            if t.due_date is not None and not t.completed and t.due_date > today
        ]
        return sorted(todos, key=lambda t: t.due_date or _FAR_FUTURE)

    @property
    def no_due_date_todos(self) -> List[Todo]:
        todos = [t for t in self.store if t.due_date is None and not t.completed]
        return sorted(todos, key=lambda t: t.priority.sort_order)

    @property
    def completed_todos(self) -> List[Todo]:
        return self.store.completed()

    # -------------------- operations --------------------
    async def load_todos(self) -> bool:
        """Full reload from the remote; keeps the current list on failure."""
        self._is_loading = True
        try:
            return await self.engine.reload()
        finally:
            self._is_loading = False

    async def refresh(self) -> bool:
        return await self.load_todos()

    def create_todo(
        self,
        title: str,
        due_date: Optional[date] = None,
        priority: Priority = Priority.NONE,
        body: Optional[str] = None,
    ) -> str:
        """Add a todo optimistically; returns its local id immediately.

        Raises:
            ValueError: If the title is blank.
        """
        title = title.strip()
        if not title:
            raise ValueError("Todo title must not be empty")
        return self.queue.enqueue(title, due_date=due_date, priority=priority, body=body)

    async def toggle_complete(self, todo: Todo) -> bool:
        return await self.engine.toggle_complete(todo)

    async def delete_todo(self, todo: Todo) -> bool:
        return await self.engine.delete_todo(todo)

    async def update_todo(self, todo: Todo) -> bool:
        return await self.engine.update_todo(todo)

    async def move_todo(self, source: int, destination: int) -> bool:
        return await self.engine.move_todo(source, destination)

    def retry_failed_todo(self, todo: Todo) -> bool:
        return self.queue.retry(todo)

    def remove_failed_todo(self, todo: Todo) -> bool:
        return self.queue.discard(todo)

    # -------------------- fire-and-reconcile --------------------
    def dispatch(self, operation: Coroutine[Any, Any, Any]) -> asyncio.Task[Any]:
        """Run an operation in the background (the UI does not await it).

        The optimistic local change is applied as soon as the task starts.
        """
        task = asyncio.get_running_loop().create_task(operation)
        self._background.add(task)
        task.add_done_callback(self._background.discard)
        return task

    async def wait_until_idle(self) -> None:
        """Wait for dispatched operations and the creation queue to settle."""
        while self._background:
            await asyncio.gather(*list(self._background))
        await self.queue.wait_until_idle()

    def __repr__(self) -> str:
        return (
            f"TodoListState(todos={len(self.store)}, pending={len(self.registry)}, "
            f"loading={self._is_loading})"
        )
