"""In-process implementation of the remote todo service.

InMemoryTodoService keeps issues and a projects board in memory. It
behaves like the real service from the core's point of view (ids are
assigned remotely, project items carry positions and field values) and
adds knobs for latency and scripted failures, which the CLI demo and the
test suite use to exercise the reconciliation paths.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, NamedTuple, Optional, Set, Tuple

from todohub.sync.contracts import CreatedIssue, Priority, Project, Todo, utc_now
from todohub.sync.errors import RemoteServiceError
from todohub.sync.remote.base import RemoteTodoService

logger = logging.getLogger(__name__)


class RemoteCall(NamedTuple):
    method: str
    args: Tuple[Any, ...]


@dataclass
class _Issue:
    issue_id: str
    number: int
    title: str
    body: Optional[str]
    closed: bool = False
    assignees: Set[str] = field(default_factory=set)
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class _ProjectItem:
    item_id: str
    issue_id: str
    due_date: Optional[date] = None
    priority: Priority = Priority.NONE


class InMemoryTodoService(RemoteTodoService):
    """Remote todo service backed by dictionaries.

    Failure injection:
        - ``fail_next(method, times)`` makes the next ``times`` calls of
          ``method`` raise RemoteServiceError.
        - ``fail_titles`` makes ``create_issue`` fail for matching titles
          until the title is removed from the set.

    Latency:
        ``latency`` applies to every call; ``delays[method]`` overrides it
        per method; ``title_delays[title]`` overrides it for ``create_issue``.

    Every call is appended to ``calls`` before failure or latency is applied.
    """

    def __init__(
        self,
        repository: str = "octocat/todos",
        project: Optional[Project] = None,
        latency: float = 0.0,
        first_issue_number: int = 1,
    ) -> None:
        self.repository = repository
        self.project = project
        self.latency = latency
        self.delays: Dict[str, float] = {}
        self.title_delays: Dict[str, float] = {}
        self.fail_titles: Set[str] = set()
        self.calls: List[RemoteCall] = []
        self._failures: Dict[str, int] = {}
        self._issues: Dict[str, _Issue] = {}
        self._items: Dict[str, _ProjectItem] = {}
        self._order: List[str] = []
        self._numbers = itertools.count(first_issue_number)
        self._item_ids = itertools.count(1)

    # -------------------- test/demo knobs --------------------
    def fail_next(self, method: str, times: int = 1) -> None:
        self._failures[method] = self._failures.get(method, 0) + times

    def calls_to(self, method: str) -> List[RemoteCall]:
        return [c for c in self.calls if c.method == method]

    async def _enter(self, method: str, *args: Any, delay: Optional[float] = None) -> None:
        self.calls.append(RemoteCall(method, args))
        wait = delay if delay is not None else self.delays.get(method, self.latency)
        if wait > 0:
            await asyncio.sleep(wait)
        else:
            await asyncio.sleep(0)
        remaining = self._failures.get(method, 0)
        if remaining > 0:
            self._failures[method] = remaining - 1
            raise RemoteServiceError(method, "injected failure", status_code=502)

    # -------------------- seeding --------------------
    def seed(
        self,
        title: str,
        body: Optional[str] = None,
        closed: bool = False,
        due_date: Optional[date] = None,
        priority: Priority = Priority.NONE,
        assignees: Optional[Set[str]] = None,
        attach: bool = True,
    ) -> Todo:
        """Create an issue (and project item) synchronously, bypassing failures."""
        issue = self._new_issue(title, body)
        issue.closed = closed
        issue.assignees = set(assignees or ())
        item_id = None
        if attach and self.project is not None:
            item_id = self._new_item(issue.issue_id)
            item = self._items[item_id]
            item.due_date = due_date
            item.priority = priority
        return self._to_todo(issue, self._items.get(item_id) if item_id else None)

    @classmethod
    def with_sample_data(
        cls, repository: str = "octocat/todos", project: Optional[Project] = None, **kwargs: Any
    ) -> "InMemoryTodoService":
        """A service pre-populated with a handful of realistic todos."""
        if project is None:
            project = Project(id="PVT_demo", number=1, title="Todos")
        service = cls(repository=repository, project=project, **kwargs)
        today = date.today()
        service.seed("Review PR for auth fix", "Check the OAuth implementation",
                     due_date=today, priority=Priority.HIGH, assignees={"octocat"})
        service.seed("Update documentation", due_date=today, priority=Priority.MEDIUM)
        service.seed("Plan sprint goals", "Define objectives for Q1",
                     due_date=today + timedelta(days=5), priority=Priority.LOW)
        service.seed("Write blog post", due_date=today + timedelta(days=1), priority=Priority.MEDIUM)
        service.seed("Research new frameworks")
        service.seed("Fix overdue bug", "This should show as overdue",
                     due_date=today - timedelta(days=1), priority=Priority.HIGH)
        return service

    # -------------------- RemoteTodoService --------------------
    async def create_issue(self, title: str, body: Optional[str] = None) -> CreatedIssue:
        await self._enter("create_issue", title, body, delay=self.title_delays.get(title))
        if title in self.fail_titles:
            raise RemoteServiceError("create_issue", f"could not create issue {title!r}")
        issue = self._new_issue(title, body)
        logger.debug(f"Created issue #{issue.number} {title!r}")
        return CreatedIssue(
            issue_id=issue.issue_id,
            issue_number=issue.number,
            repository=self.repository,
            created_at=issue.created_at,
        )

    async def attach_to_project(self, issue_id: str) -> Optional[str]:
        await self._enter("attach_to_project", issue_id)
        self._require_issue("attach_to_project", issue_id)
        if self.project is None:
            return None
        for item in self._items.values():
            if item.issue_id == issue_id:
                return item.item_id
        # Fresh todos are shown first, so new items go to the top of the board
        return self._new_item(issue_id, at_top=True)

    async def set_fields(
        self,
        project_item_id: str,
        due_date: Optional[date] = None,
        priority: Optional[Priority] = None,
    ) -> None:
        await self._enter("set_fields", project_item_id, due_date, priority)
        item = self._require_item("set_fields", project_item_id)
        item.due_date = due_date
        if priority is not None:
            item.priority = priority

    async def set_position(
        self, project_item_id: str, after_project_item_id: Optional[str] = None
    ) -> None:
        await self._enter("set_position", project_item_id, after_project_item_id)
        self._require_item("set_position", project_item_id)
        if after_project_item_id is not None:
            self._require_item("set_position", after_project_item_id)
        self._order.remove(project_item_id)
        if after_project_item_id is None:
            self._order.insert(0, project_item_id)
        else:
            self._order.insert(self._order.index(after_project_item_id) + 1, project_item_id)

    async def close_issue(self, issue_id: str) -> None:
        await self._enter("close_issue", issue_id)
        issue = self._require_issue("close_issue", issue_id)
        issue.closed = True
        issue.updated_at = utc_now()

    async def reopen_issue(self, issue_id: str) -> None:
        await self._enter("reopen_issue", issue_id)
        issue = self._require_issue("reopen_issue", issue_id)
        issue.closed = False
        issue.updated_at = utc_now()

    async def update_issue(
        self, issue_id: str, title: Optional[str] = None, body: Optional[str] = None
    ) -> None:
        await self._enter("update_issue", issue_id, title, body)
        issue = self._require_issue("update_issue", issue_id)
        if title is not None:
            issue.title = title
        if body is not None:
            issue.body = body
        issue.updated_at = utc_now()

    async def list_todos(self) -> List[Todo]:
        await self._enter("list_todos")
        todos: List[Todo] = []
        attached: Set[str] = set()
        for item_id in self._order:
            item = self._items[item_id]
            attached.add(item.issue_id)
            todos.append(self._to_todo(self._issues[item.issue_id], item))
        # Open issues missing from the board, newest first
        loose = [
            issue
            for issue in self._issues.values()
            if issue.issue_id not in attached and not issue.closed
        ]
        loose.sort(key=lambda i: i.number, reverse=True)
        todos.extend(self._to_todo(issue, None) for issue in loose)
        return todos

    # -------------------- helpers --------------------
    def _new_issue(self, title: str, body: Optional[str]) -> _Issue:
        number = next(self._numbers)
        issue = _Issue(issue_id=f"I_{number}", number=number, title=title, body=body)
        self._issues[issue.issue_id] = issue
        return issue

    def _new_item(self, issue_id: str, at_top: bool = False) -> str:
        item_id = f"PVTI_{next(self._item_ids)}"
        self._items[item_id] = _ProjectItem(item_id=item_id, issue_id=issue_id)
        if at_top:
            self._order.insert(0, item_id)
        else:
            self._order.append(item_id)
        return item_id

    def _require_issue(self, method: str, issue_id: str) -> _Issue:
        issue = self._issues.get(issue_id)
        if issue is None:
            raise RemoteServiceError(method, f"issue {issue_id} not found", status_code=404)
        return issue

    def _require_item(self, method: str, item_id: str) -> _ProjectItem:
        item = self._items.get(item_id)
        if item is None:
            raise RemoteServiceError(method, f"project item {item_id} not found", status_code=404)
        return item

    def _to_todo(self, issue: _Issue, item: Optional[_ProjectItem]) -> Todo:
        return Todo(
            local_id=item.item_id if item else issue.issue_id,
            issue_id=issue.issue_id,
            issue_number=issue.number,
            title=issue.title,
            body=issue.body,
            completed=issue.closed,
            due_date=item.due_date if item else None,
            priority=item.priority if item else Priority.NONE,
            assignees=set(issue.assignees),
            repository=self.repository,
            project_item_id=item.item_id if item else None,
            created_at=issue.created_at,
            updated_at=issue.updated_at,
        )

    def project_order(self) -> List[str]:
        """Issue titles in board order (inspection helper)."""
        return [self._issues[self._items[item_id].issue_id].title for item_id in self._order]
