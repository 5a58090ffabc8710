"""ReconciliationEngine: optimistic mutations with remote confirmation.

Toggle, edit and delete all follow the same shape: mutate the local store
first so the UI updates instantly, perform the remote call, and restore the
captured value if the call fails. These operations are not queued and have
no ordering guarantee relative to each other or to the creation queue.

Reordering differs: positions on the remote board are relative (each move
is "place after item X"), so a failed move is not rolled back locally.
Instead the whole list is reloaded from the remote, which is the ground
truth for order.
"""

from __future__ import annotations

import logging
from typing import List, Optional

from todohub.sync.contracts import Todo, utc_now
from todohub.sync.creation_queue import CreationQueue
from todohub.sync.errors import InconsistentLocalStateError
from todohub.sync.hooks import ErrorReporter
from todohub.sync.positions import actual_destination, resolve_anchor
from todohub.sync.remote.base import RemoteTodoService
from todohub.sync.store import LocalTodoStore

logger = logging.getLogger(__name__)


class ReconciliationEngine:
    """Applies user edits locally and reconciles them with the remote service.

    Every public coroutine returns True when the remote confirmed the change
    and False when it was skipped or rolled back. None of them raise for
    remote failures; those are surfaced through the ErrorReporter.
    """

    def __init__(
        self,
        store: LocalTodoStore,
        queue: CreationQueue,
        remote: RemoteTodoService,
        reporter: Optional[ErrorReporter] = None,
    ) -> None:
        self._store = store
        self._queue = queue
        self._remote = remote
        self._reporter = reporter or ErrorReporter()

    # -------------------- toggle / delete / edit --------------------
    async def toggle_complete(self, todo: Todo) -> bool:
        """Flip completion locally, then close or reopen the issue."""
        current = self._store.get(todo.local_id)
        if current is None or not self._has_remote_issue(current, "toggle_complete"):
            return False

        was_completed = current.completed
        self._store.replace(
            current.model_copy(update={"completed": not was_completed, "updated_at": utc_now()})
        )

        try:
            if was_completed:
                await self._remote.reopen_issue(current.issue_id)
            else:
                await self._remote.close_issue(current.issue_id)
        except Exception as e:
            latest = self._store.get(current.local_id)
            if latest is not None:
                self._store.replace(latest.model_copy(update={"completed": was_completed}))
            self._reporter.surface("toggle_complete", e, local_id=current.local_id)
            return False

        logger.debug(f"{'Reopened' if was_completed else 'Closed'} issue #{current.issue_number}")
        return True

    async def delete_todo(self, todo: Todo) -> bool:
        """Remove locally, then close the issue; reinsert at the old index on failure."""
        current = self._store.get(todo.local_id)
        if current is None or not self._has_remote_issue(current, "delete_todo"):
            return False

        removed = self._store.remove(current.local_id)
        if removed is None:
            return False
        prior_index, removed_todo = removed

        try:
            await self._remote.close_issue(current.issue_id)
        except Exception as e:
            if (
                self._store.get(removed_todo.local_id) is None
                and self._store.find_by_issue_id(current.issue_id) is None
            ):
                self._store.insert(removed_todo, min(prior_index, len(self._store)))
            self._reporter.surface("delete_todo", e, local_id=current.local_id)
            return False

        logger.info(f"Deleted {current.title!r} (closed issue #{current.issue_number})")
        return True

    async def update_todo(self, todo: Todo) -> bool:
        """Store the edited value, then push issue and project field changes.

        Identity fields (local id, issue id, project item id, pending state)
        always come from the stored todo, never from the edited value.
        """
        original = self._store.get(todo.local_id)
        if original is None or not self._has_remote_issue(original, "update_todo"):
            return False

        updated = todo.model_copy(
            update={
                "issue_id": original.issue_id,
                "issue_number": original.issue_number,
                "project_item_id": original.project_item_id,
                "pending_state": original.pending_state,
                "pending_error": original.pending_error,
                "updated_at": utc_now(),
            }
        )
        self._store.replace(updated)

        try:
            await self._remote.update_issue(original.issue_id, title=updated.title, body=updated.body)
            if updated.project_item_id is not None:
                await self._remote.set_fields(
                    updated.project_item_id, due_date=updated.due_date, priority=updated.priority
                )
        except Exception as e:
            if self._store.get(original.local_id) is not None:
                self._store.replace(original)
            self._reporter.surface("update_todo", e, local_id=original.local_id)
            return False

        return True

    # -------------------- reorder --------------------
    async def move_todo(self, source: int, destination: int) -> bool:
        """Reorder the incomplete list and mirror the move remotely.

        ``source`` and ``destination`` index the incomplete sublist with
        insertion-before semantics. A pending todo only has its desired
        position recorded. A committed todo is placed after the nearest
        preceding attached, non-pending todo. A remote failure triggers a
        full reload instead of a local rollback.

        Returns:
            True if the move was applied locally (and, for committed todos
            with a project item, confirmed remotely).
        """
        incomplete = self._store.incomplete()
        if source < 0 or source >= len(incomplete):
            logger.warning(f"Ignoring move from {source}: only {len(incomplete)} incomplete todos")
            return False

        landing = actual_destination(source, destination)
        landing = max(0, min(landing, len(incomplete) - 1))
        moved = incomplete[source]
        self._store.move_incomplete(source, destination)

        if moved.is_pending:
            self._queue.update_pending_position(moved.local_id, landing)
            logger.debug(f"Pending todo {moved.local_id} will commit at position {landing}")
            return True

        if moved.project_item_id is None:
            logger.warning(
                f"Todo {moved.title!r} has no project item id, cannot update position on server"
            )
            return True

        anchor = resolve_anchor(self._store.incomplete(), landing)
        try:
            await self._remote.set_position(moved.project_item_id, anchor)
        except Exception as e:
            self._reporter.surface("move_todo", e, local_id=moved.local_id)
            await self.reload()
            return False

        logger.debug(f"Moved {moved.project_item_id} after {anchor or 'top'}")
        return True

    # -------------------- reload --------------------
    async def reload(self) -> bool:
        """Replace the list with the remote's, keeping unconfirmed local rows.

        Pending and failed todos stay at the top in their current order;
        committed todos keep their local id when the remote issue matches.
        Issues created by an in-flight creation are left to its commit.
        On failure the current list is left untouched.
        """
        try:
            remote_todos = await self._remote.list_todos()
        except Exception as e:
            self._reporter.surface("load_todos", e)
            return False

        self._store.reset(self._merge_remote(remote_todos))
        logger.info(f"Loaded {len(remote_todos)} todos from remote")
        return True

    def _merge_remote(self, remote_todos: List[Todo]) -> List[Todo]:
        local_only = [t for t in self._store if t.is_pending or t.is_failed]
        local_ids = {t.issue_id: t.local_id for t in self._store if t.issue_id is not None}
        taken = {t.local_id for t in local_only}
        # Created remotely but still shown as the pending row
        uncommitted = self._queue.uncommitted_issue_ids

        merged = list(local_only)
        for remote_todo in remote_todos:
            if remote_todo.issue_id in uncommitted:
                continue
            local_id = local_ids.get(remote_todo.issue_id)
            if local_id is not None and local_id not in taken:
                remote_todo = remote_todo.model_copy(update={"local_id": local_id})
            taken.add(remote_todo.local_id)
            merged.append(remote_todo)
        return merged

    # -------------------- helpers --------------------
    def _has_remote_issue(self, todo: Todo, operation: str) -> bool:
        if todo.issue_id is not None:
            return True
        error = InconsistentLocalStateError(
            todo.local_id, f"Todo {todo.title!r} has no remote issue yet"
        )
        self._reporter.surface(
            operation, error, local_id=todo.local_id, kind="inconsistent_local_state"
        )
        return False
