"""Error surfacing and observation hooks for the sync core.

Remote failures never escape the creation queue or the reconciliation
engine. They are turned into SurfacedError values that the presentation
layer can display, and handed to the hooks configured here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from todohub.sync.contracts import ErrorKind, SurfacedError, Todo

logger = logging.getLogger(__name__)


@dataclass
class SyncHooks:
    """Callbacks for observing reconciliation outcomes."""

    on_error: Optional[Callable[[SurfacedError], None]] = field(default=None)
    on_commit: Optional[Callable[[Todo], None]] = field(default=None)


class ErrorReporter:
    """Records surfaced errors and forwards them to ``SyncHooks.on_error``."""

    def __init__(self, hooks: Optional[SyncHooks] = None, history_limit: int = 50) -> None:
        self.hooks = hooks or SyncHooks()
        self._history: List[SurfacedError] = []
        self._history_limit = history_limit

    @property
    def last_error(self) -> Optional[SurfacedError]:
        return self._history[-1] if self._history else None

    @property
    def history(self) -> List[SurfacedError]:
        return list(self._history)

    def clear(self) -> None:
        self._history.clear()

    def surface(
        self,
        operation: str,
        error: BaseException | str,
        local_id: Optional[str] = None,
        kind: ErrorKind = "transient_remote_failure",
    ) -> SurfacedError:
        message = str(error) or error.__class__.__name__
        surfaced = SurfacedError(operation=operation, kind=kind, message=message, local_id=local_id)
        if kind == "inconsistent_local_state":
            logger.warning(f"[{operation}] {message}")
        else:
            logger.error(f"[{operation}] {message}")
        self._history.append(surfaced)
        if len(self._history) > self._history_limit:
            del self._history[: len(self._history) - self._history_limit]
        if self.hooks.on_error is not None:
            self.hooks.on_error(surfaced)
        return surfaced

    def committed(self, todo: Todo) -> None:
        if self.hooks.on_commit is not None:
            self.hooks.on_commit(todo)
