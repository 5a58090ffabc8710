"""Call contract of the remote todo service.

The reconciliation core only depends on this interface. Each operation is
an independent coroutine that may fail; implementations signal failure by
raising (``RemoteServiceError`` for expected transport/API errors).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import date
from typing import List, Optional

from todohub.sync.contracts import CreatedIssue, Priority, Todo


class RemoteTodoService(ABC):
    """Interface to the issue tracker and projects board backing the todo list."""

    @abstractmethod
    async def create_issue(self, title: str, body: Optional[str] = None) -> CreatedIssue:
        """Create an issue in the selected repository.

        Args:
            title: Issue title
            body: Optional issue body

        Returns:
            CreatedIssue with the remote id, number and repository
        """
        pass

    @abstractmethod
    async def attach_to_project(self, issue_id: str) -> Optional[str]:
        """Attach an issue to the selected project.

        Returns:
            The new project item id, or None when no project is configured
        """
        pass

    @abstractmethod
    async def set_fields(
        self,
        project_item_id: str,
        due_date: Optional[date] = None,
        priority: Optional[Priority] = None,
    ) -> None:
        """Write the due date and priority fields of a project item."""
        pass

    @abstractmethod
    async def set_position(
        self, project_item_id: str, after_project_item_id: Optional[str] = None
    ) -> None:
        """Place a project item directly after another one (None moves it to the top)."""
        pass

    @abstractmethod
    async def close_issue(self, issue_id: str) -> None:
        pass

    @abstractmethod
    async def reopen_issue(self, issue_id: str) -> None:
        pass

    @abstractmethod
    async def update_issue(
        self, issue_id: str, title: Optional[str] = None, body: Optional[str] = None
    ) -> None:
        """Update the title and/or body of an issue; None leaves a field unchanged."""
        pass

    @abstractmethod
    async def list_todos(self) -> List[Todo]:
        """Fetch every todo in remote order (full reload)."""
        pass
