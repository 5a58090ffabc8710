"""CreationQueue: strictly sequential remote creation of optimistic todos.

New todos appear in the list immediately as PENDING rows. Their remote
creation (issue → project item → field values → position) runs one at a
time, in submission order, on a single background drain task. The user
can keep adding and reordering todos while the queue drains; the position
applied when a creation commits is whatever the registry holds at that
moment, not the position at submission time.

Failure semantics:
    - Issue creation failure marks the todo FAILED in place. It is never
      retried automatically; the user retries or discards it.
    - Once the issue exists remotely the todo is committed even if the
      project attachment, field write or position write fails afterwards;
      those failures are surfaced but do not create duplicate issues.
    - A failed creation never blocks the creations queued behind it.
"""

from __future__ import annotations

import asyncio
import logging
from collections import deque
from datetime import date
from typing import Deque, Dict, List, Optional, Set

from todohub.fsm.lifecycle import transition_pending_state
from todohub.fsm.pending_state import PendingState
from todohub.sync.contracts import CreatedIssue, PendingCreationRecord, Priority, Todo, utc_now
from todohub.sync.hooks import ErrorReporter
from todohub.sync.positions import resolve_anchor
from todohub.sync.registry import PendingCreationRegistry
from todohub.sync.remote.base import RemoteTodoService
from todohub.sync.store import LocalTodoStore

logger = logging.getLogger(__name__)


class CreationQueue:
    """Single-flight FIFO worker for remote todo creation.

    Scheduling:
        - ``enqueue`` is synchronous and returns before any await
        - at most one ``drain`` loop is active; further enqueues only append
        - every remote call is an await point; all store and registry
          mutation happens on the event loop thread, so no locks are used

    Attributes:
        is_draining: True while a drain loop is running.
        queued_ids: Local ids waiting to be processed, in order.
    """

    def __init__(
        self,
        store: LocalTodoStore,
        registry: PendingCreationRegistry,
        remote: RemoteTodoService,
        reporter: Optional[ErrorReporter] = None,
    ) -> None:
        self._store = store
        self._registry = registry
        self._remote = remote
        self._reporter = reporter or ErrorReporter()
        self._queue: Deque[PendingCreationRecord] = deque()
        self._draining = False
        self._drain_task: Optional[asyncio.Task[None]] = None
        # issue_id -> local_id for issues created remotely but not yet committed
        self._created: Dict[str, str] = {}

    @property
    def is_draining(self) -> bool:
        return self._draining

    @property
    def uncommitted_issue_ids(self) -> Set[str]:
        """Issue ids that exist remotely but whose local row is still pending."""
        return set(self._created)

    @property
    def queued_ids(self) -> List[str]:
        return [record.local_id for record in self._queue]

    # -------------------- producers --------------------
    def enqueue(
        self,
        title: str,
        due_date: Optional[date] = None,
        priority: Priority = Priority.NONE,
        body: Optional[str] = None,
    ) -> str:
        """Create an optimistic todo at the top of the list and queue its creation.

        Args:
            title: Todo title
            due_date: Optional due date for the project field
            priority: Priority for the project field
            body: Optional issue body

        Returns:
            The client-local id of the new todo.
        """
        todo = Todo(
            title=title,
            body=body,
            due_date=due_date,
            priority=priority,
            pending_state=PendingState.PENDING,
        )
        self._store.insert_at_front_of_incomplete(todo)

        # Everything already pending now sits one row lower, so two quick
        # creations still commit newest first
        self._registry.shift_positions(exclude=todo.local_id, by=1)
        record = PendingCreationRecord(
            local_id=todo.local_id,
            title=title,
            body=body,
            due_date=due_date,
            priority=priority,
            desired_position=0,
        )
        self._registry.register(record)
        self._queue.append(record)
        logger.info(f"Queued creation of {title!r} ({todo.local_id}), {len(self._queue)} in queue")

        self._ensure_draining()
        return todo.local_id

    def update_pending_position(self, local_id: str, new_position: int) -> bool:
        """Record where the user dropped a still-pending todo.

        Only the registry changes; the caller has already reordered the store.
        A registry miss is a no-op.
        """
        return self._registry.update_desired_position(local_id, new_position)

    def retry(self, todo: Todo) -> bool:
        """Re-queue a FAILED todo at its current position.

        Returns:
            False (no-op) if the todo is gone or not FAILED.
        """
        current = self._store.get(todo.local_id)
        if current is None or not current.is_failed:
            logger.debug(f"Ignoring retry of {todo.local_id}: not a failed todo")
            return False

        position = self._store.incomplete_index_of(current.local_id)
        self._store.replace(transition_pending_state(current, PendingState.PENDING))
        record = PendingCreationRecord(
            local_id=current.local_id,
            title=current.title,
            body=current.body,
            due_date=current.due_date,
            priority=current.priority,
            desired_position=position if position is not None else 0,
        )
        self._registry.register(record)
        self._queue.append(record)
        logger.info(f"Retrying creation of {current.title!r} ({current.local_id})")

        self._ensure_draining()
        return True

    def discard(self, todo: Todo) -> bool:
        """Drop a FAILED todo from the list without any remote call."""
        current = self._store.get(todo.local_id)
        if current is None or not current.is_failed:
            logger.debug(f"Ignoring discard of {todo.local_id}: not a failed todo")
            return False
        self._store.remove(current.local_id)
        logger.info(f"Discarded failed todo {current.title!r} ({current.local_id})")
        return True

    # -------------------- worker --------------------
    def _ensure_draining(self) -> None:
        if self._draining or (self._drain_task is not None and not self._drain_task.done()):
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; queued creations wait for drain()")
            return
        self._drain_task = loop.create_task(self.drain())

    async def drain(self) -> None:
        """Process queued creations one at a time until the queue is empty.

        Returns immediately if another drain loop is already active.
        """
        if self._draining:
            return
        self._draining = True
        try:
            while self._queue:
                record = self._queue.popleft()
                try:
                    await self.create_on_server(record)
                except Exception as e:
                    self._abandon(record.local_id, e)
        finally:
            self._draining = False

    async def wait_until_idle(self) -> None:
        """Wait until every queued creation has been processed."""
        while True:
            task = self._drain_task
            if task is not None and not task.done():
                await task
                continue
            if self._queue and not self._draining:
                await self.drain()
                continue
            return

    async def create_on_server(self, record: PendingCreationRecord) -> None:
        """Run the remote creation sequence for one record and reconcile the result.

        Never raises for remote failures; they become a FAILED row or a
        surfaced error.
        """
        local_id = record.local_id
        try:
            created = await self._remote.create_issue(record.title, record.body)
        except Exception as e:
            self._mark_failed(local_id, e)
            self._registry.remove(local_id)
            self._reporter.surface("create_todo", e, local_id=local_id)
            return
        self._created[created.issue_id] = local_id

        project_item_id: Optional[str] = None
        try:
            project_item_id = await self._remote.attach_to_project(created.issue_id)
        except Exception as e:
            self._reporter.surface("attach_to_project", e, local_id=local_id)

        if project_item_id is not None and (
            record.due_date is not None or record.priority is not Priority.NONE
        ):
            try:
                await self._remote.set_fields(
                    project_item_id, due_date=record.due_date, priority=record.priority
                )
            except Exception as e:
                self._reporter.surface("set_fields", e, local_id=local_id)

        try:
            await self._commit(local_id, created, project_item_id)
        finally:
            self._created.pop(created.issue_id, None)

    async def _commit(
        self, local_id: str, created: CreatedIssue, project_item_id: Optional[str]
    ) -> None:
        current = self._store.get(local_id)
        if current is None:
            self._registry.remove(local_id)
            logger.warning(
                f"Created issue #{created.issue_number} but todo {local_id} left the list"
            )
            return

        reloaded = self._store.find_by_issue_id(created.issue_id)
        if reloaded is not None and reloaded.local_id != local_id:
            # A reload fetched the new issue before this commit
            self._store.remove(reloaded.local_id)
            logger.debug(
                f"Dropped reloaded copy {reloaded.local_id} of issue #{created.issue_number}"
            )

        current_position = self._store.incomplete_index_of(local_id)
        desired_position = self._registry.desired_position(local_id)
        if desired_position is None:
            desired_position = current_position

        committed = transition_pending_state(current, PendingState.NONE).model_copy(
            update={
                "issue_id": created.issue_id,
                "issue_number": created.issue_number,
                "repository": created.repository,
                "project_item_id": project_item_id,
                "created_at": created.created_at,
                "updated_at": utc_now(),
            }
        )
        self._store.replace(committed)
        self._registry.remove(local_id)
        self._reporter.committed(committed)
        logger.info(f"Committed {committed.title!r} as issue #{created.issue_number}")

        if current_position is None or desired_position == current_position:
            return

        target = self._store.move_within_incomplete(local_id, desired_position)
        logger.debug(f"Moved {local_id} from {current_position} to {target} after commit")
        if target is None or project_item_id is None:
            return

        anchor = resolve_anchor(self._store.incomplete(), target)
        try:
            await self._remote.set_position(project_item_id, anchor)
        except Exception as e:
            self._reporter.surface("set_position", e, local_id=local_id)

    def _abandon(self, local_id: str, error: Exception) -> None:
        """Recover from an unexpected error while reconciling one creation."""
        logger.debug(f"Reconciling creation {local_id} failed", exc_info=True)
        self._registry.remove(local_id)
        self._mark_failed(local_id, error)
        self._reporter.surface("create_todo", error, local_id=local_id)

    def _mark_failed(self, local_id: str, error: Exception) -> None:
        current = self._store.get(local_id)
        if current is None or not current.is_pending:
            return
        failed = transition_pending_state(current, PendingState.FAILED, reason=str(error))
        self._store.replace(failed)

    def __repr__(self) -> str:
        return f"CreationQueue(queued={len(self._queue)}, draining={self._draining})"
