"""Shared pytest fixtures for todohub tests."""

from typing import Callable, List

import pytest

from todohub.sync.contracts import Priority, PriorityOption, Project, Todo
from todohub.sync.hooks import SyncHooks
from todohub.sync.remote.memory import InMemoryTodoService
from todohub.sync.todo_list import TodoListState


@pytest.fixture
def project() -> Project:
    """Project board with due date and priority fields configured."""
    return Project(
        id="PVT_test",
        number=1,
        title="Todos",
        url="https://github.com/users/octocat/projects/1",
        due_date_field_id="PVTF_due",
        priority_field_id="PVTSSF_priority",
        priority_options=[
            PriorityOption(id=f"opt_{p.value.lower()}", name=p.value)
            for p in (Priority.HIGH, Priority.MEDIUM, Priority.LOW)
        ],
    )


@pytest.fixture
def service(project: Project) -> InMemoryTodoService:
    """Empty in-memory remote; new issues are numbered from 101."""
    return InMemoryTodoService(repository="octocat/todos", project=project, first_issue_number=101)


@pytest.fixture
def surfaced_errors() -> List:
    """Collects every error surfaced through SyncHooks.on_error."""
    return []


@pytest.fixture
def state(service: InMemoryTodoService, surfaced_errors: List) -> TodoListState:
    """TodoListState wired to the in-memory service, recording surfaced errors."""
    return TodoListState(service, hooks=SyncHooks(on_error=surfaced_errors.append))


@pytest.fixture
def seed_committed(service: InMemoryTodoService) -> Callable[..., List[Todo]]:
    """Factory seeding committed, project-attached todos on the remote.

    Usage:
        def test_example(seed_committed, state):
            seed_committed("A", "B", "C")
            await state.load_todos()
    """

    def _seed(*titles: str) -> List[Todo]:
        return [service.seed(title) for title in titles]

    return _seed
