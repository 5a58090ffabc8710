"""LocalTodoStore: the ordered list of todos the UI renders.

Insertion order is the display order for incomplete todos. Completed todos
live in the same list but carry no ordering contract; whenever the
incomplete sublist is reordered the list is reassembled as
``incomplete + completed``.
"""

from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Optional, Tuple

from todohub.sync.contracts import Todo
from todohub.sync.errors import DuplicateTodoError

logger = logging.getLogger(__name__)

TodoSnapshot = Tuple[Todo, ...]
StoreListener = Callable[[TodoSnapshot], None]


class LocalTodoStore:
    """Ordered, observable collection of todos keyed by ``local_id``.

    Exactly one todo exists per ``local_id`` and no two committed todos share
    an ``issue_id``. Every mutation notifies subscribers with an immutable
    snapshot of the new list.
    """

    def __init__(self, todos: Optional[Iterable[Todo]] = None) -> None:
        self._todos: List[Todo] = []
        self._listeners: List[StoreListener] = []
        if todos:
            self._todos = self._validated(list(todos))

    # -------------------- observation --------------------
    def subscribe(self, listener: StoreListener) -> Callable[[], None]:
        """Register a listener; returns a callable that unsubscribes it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self) -> None:
        snapshot = self.snapshot()
        for listener in list(self._listeners):
            listener(snapshot)

    # -------------------- queries --------------------
    def snapshot(self) -> TodoSnapshot:
        return tuple(self._todos)

    def __len__(self) -> int:
        return len(self._todos)

    def __iter__(self):
        return iter(tuple(self._todos))

    def index_of(self, local_id: str) -> Optional[int]:
        for idx, todo in enumerate(self._todos):
            if todo.local_id == local_id:
                return idx
        return None

    def get(self, local_id: str) -> Optional[Todo]:
        idx = self.index_of(local_id)
        return None if idx is None else self._todos[idx]

    def find_by_issue_id(self, issue_id: str) -> Optional[Todo]:
        for todo in self._todos:
            if todo.issue_id == issue_id:
                return todo
        return None

    def incomplete(self) -> List[Todo]:
        return [t for t in self._todos if not t.completed]

    def completed(self) -> List[Todo]:
        return [t for t in self._todos if t.completed]

    def incomplete_index_of(self, local_id: str) -> Optional[int]:
        for idx, todo in enumerate(self.incomplete()):
            if todo.local_id == local_id:
                return idx
        return None

    # -------------------- mutation --------------------
    def insert(self, todo: Todo, index: int) -> int:
        """Insert ``todo`` at ``index`` clamped to ``[0, len]``; returns the index used."""
        self._check_unique(todo)
        target = max(0, min(index, len(self._todos)))
        self._todos.insert(target, todo)
        self._notify()
        return target

    def insert_at_front_of_incomplete(self, todo: Todo) -> int:
        """Insert ahead of the first incomplete todo (the top of the visible list)."""
        first_incomplete = next(
            (idx for idx, t in enumerate(self._todos) if not t.completed), len(self._todos)
        )
        return self.insert(todo, first_incomplete)

    def remove(self, local_id: str) -> Optional[Tuple[int, Todo]]:
        """Remove by ``local_id``; returns ``(prior_index, todo)`` or None if absent."""
        idx = self.index_of(local_id)
        if idx is None:
            return None
        todo = self._todos.pop(idx)
        self._notify()
        return idx, todo

    def replace(self, todo: Todo) -> bool:
        """Replace the todo sharing ``todo.local_id`` in place; False if absent."""
        idx = self.index_of(todo.local_id)
        if idx is None:
            return False
        self._check_unique(todo, ignore_index=idx)
        self._todos[idx] = todo
        self._notify()
        return True

    def move_incomplete(self, source: int, destination: int) -> Todo:
        """Apply a list move to the incomplete sublist.

        ``destination`` uses insertion-before semantics on the list as it was
        before the move, so moving down lands at ``destination - 1``. The
        store is reassembled as ``incomplete + completed``.

        Returns:
            The moved todo.

        Raises:
            IndexError: If ``source`` is outside the incomplete sublist.
        """
        incomplete = self.incomplete()
        if source < 0 or source >= len(incomplete):
            raise IndexError(f"move source {source} outside incomplete list of {len(incomplete)}")
        moved = incomplete.pop(source)
        actual_destination = destination - 1 if destination > source else destination
        actual_destination = max(0, min(actual_destination, len(incomplete)))
        incomplete.insert(actual_destination, moved)
        self._todos = incomplete + self.completed()
        self._notify()
        return moved

    def move_within_incomplete(self, local_id: str, target: int) -> Optional[int]:
        """Move a todo to ``min(target, len)`` of the incomplete sublist.

        Returns the index used, or None if the todo is absent or completed.
        """
        incomplete = self.incomplete()
        current = next((i for i, t in enumerate(incomplete) if t.local_id == local_id), None)
        if current is None:
            return None
        todo = incomplete.pop(current)
        index = max(0, min(target, len(incomplete)))
        incomplete.insert(index, todo)
        self._todos = incomplete + self.completed()
        self._notify()
        return index

    def reset(self, todos: Iterable[Todo]) -> None:
        """Replace the whole list (full reload)."""
        self._todos = self._validated(list(todos))
        self._notify()

    # -------------------- invariants --------------------
    def _check_unique(self, todo: Todo, ignore_index: Optional[int] = None) -> None:
        for idx, existing in enumerate(self._todos):
            if idx == ignore_index:
                continue
            if existing.local_id == todo.local_id:
                raise DuplicateTodoError(f"Todo {todo.local_id} is already in the store")
            if todo.issue_id is not None and existing.issue_id == todo.issue_id:
                raise DuplicateTodoError(f"Issue {todo.issue_id} is already in the store")

    @staticmethod
    def _validated(todos: List[Todo]) -> List[Todo]:
        local_ids: set[str] = set()
        issue_ids: set[str] = set()
        for todo in todos:
            if todo.local_id in local_ids:
                raise DuplicateTodoError(f"Todo {todo.local_id} appears twice")
            local_ids.add(todo.local_id)
            if todo.issue_id is not None:
                if todo.issue_id in issue_ids:
                    raise DuplicateTodoError(f"Issue {todo.issue_id} appears twice")
                issue_ids.add(todo.issue_id)
        return todos

    def __repr__(self) -> str:
        return (
            f"LocalTodoStore(todos={len(self._todos)}, "
            f"incomplete={len(self.incomplete())}, completed={len(self.completed())})"
        )
