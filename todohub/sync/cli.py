"""Command line entry points for todohub."""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Iterable, Optional, Sequence, Tuple

import click  # type: ignore[import-not-found]
from rich.console import Console  # type: ignore[import-not-found]
from rich.markup import escape  # type: ignore[import-not-found]
from rich.table import Table  # type: ignore[import-not-found]

from todohub.sync.contracts import Priority, SurfacedError, Todo
from todohub.sync.hooks import SyncHooks
from todohub.sync.logging_utils import setup_logging
from todohub.sync.remote.memory import InMemoryTodoService
from todohub.sync.todo_list import TodoListState
from todohub.sync.utils.config import TodoHubSettings, load_settings

console = Console()
logger = logging.getLogger(__name__)

_STATUS_STYLE = {
    "pending": "[yellow]saving…[/yellow]",
    "failed": "[red]failed[/red]",
}


def _status_label(todo: Todo) -> str:
    if todo.is_pending:
        return _STATUS_STYLE["pending"]
    if todo.is_failed:
        return _STATUS_STYLE["failed"]
    return "[green]done[/green]" if todo.completed else "open"


def render_todos(todos: Iterable[Todo], title: str) -> Table:
    """Build a rich table for a list of todos."""
    table = Table(title=title, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Status")
    table.add_column("Due")
    table.add_column("Priority")
    table.add_column("Issue", justify="right")
    for idx, todo in enumerate(todos):
        due = todo.due_date.isoformat() if todo.due_date else ""
        if todo.is_overdue:
            due = f"[red]{due}[/red]"
        elif todo.is_due_today:
            due = f"[bold]{due}[/bold]"
        elif todo.is_due_soon:
            due = f"[yellow]{due}[/yellow]"
        issue = f"#{todo.issue_number}" if todo.issue_number else ""
        priority = "" if todo.priority is Priority.NONE else todo.priority.value
        table.add_row(str(idx), escape(todo.title), _status_label(todo), due, priority, issue)
    return table


def format_surfaced_error(error: SurfacedError) -> None:
    console.print(f"[red]{escape(f'[{error.operation}]')}[/red] [dim]{escape(error.message)}[/dim]")


def _build_state(settings: TodoHubSettings, delay: float) -> Tuple[InMemoryTodoService, TodoListState]:
    service = InMemoryTodoService.with_sample_data(
        repository=settings.repository_full_name,
        project=settings.project,
        latency=delay,
    )
    state = TodoListState(service, hooks=SyncHooks(on_error=format_surfaced_error))
    return service, state


@click.group()
@click.version_option(package_name="todohub")
def main() -> None:
    """todohub: a todo list backed by GitHub issues and projects."""


@main.command(name="config")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Settings file (default: ~/.todohub/config.toml)",
)
def show_config(config_path: Optional[Path]) -> None:
    """Print the resolved settings as JSON."""
    settings = load_settings(config_path)
    console.print_json(settings.model_dump_json(indent=2))


@main.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None)
@click.option(
    "--delay",
    type=float,
    default=None,
    help="Simulated latency of every remote call in seconds (default: from settings)",
)
@click.option(
    "--fail",
    "fail_titles",
    multiple=True,
    help="Make issue creation fail for this title (repeatable)",
)
@click.option("--verbose", "-v", is_flag=True, help="Enable verbose logging")
def demo(
    config_path: Optional[Path],
    delay: Optional[float],
    fail_titles: Sequence[str],
    verbose: bool,
) -> None:
    """Walk through optimistic creation, reordering and recovery.

    Runs against an in-memory service seeded with sample todos:
    - two todos are created while the network is slow
    - the newest one is dragged down the list before it is saved
    - a committed todo is completed
    - failed creations (see --fail) are retried
    """
    settings = load_settings(config_path)
    setup_logging(verbose or settings.verbose, settings.log_file)
    latency = settings.demo_latency if delay is None else delay

    async def run_demo() -> None:
        service, state = _build_state(settings, latency)
        service.fail_titles.update(fail_titles)

        await state.load_todos()
        console.print(render_todos(state.store.incomplete(), "Loaded"))

        for title in ("Buy milk", "Call dentist", *fail_titles):
            state.create_todo(title)
        console.print(render_todos(state.store.incomplete(), "Created (not yet saved)"))

        await state.move_todo(0, 3)
        console.print(render_todos(state.store.incomplete(), "Moved 'newest' while pending"))

        await state.wait_until_idle()
        console.print(render_todos(state.store.incomplete(), "After the queue drained"))

        first_open = next((t for t in state.todos if t.is_committed and not t.completed), None)
        if first_open is not None:
            await state.toggle_complete(first_open)

        failed = [t for t in state.todos if t.is_failed]
        if failed:
            service.fail_titles.clear()
            for todo in failed:
                state.retry_failed_todo(todo)
            await state.wait_until_idle()

        console.print(render_todos(state.todos, "Final"))
        console.print(f"[dim]Board order: {json.dumps(service.project_order())}[/dim]")
        console.print(f"[dim]Remote calls: {len(service.calls)}[/dim]")

    try:
        asyncio.run(run_demo())
    except KeyboardInterrupt:
        console.print("\n[yellow]Demo interrupted[/yellow]")


@main.command()
@click.option("--config", "config_path", type=click.Path(path_type=Path), default=None)
def sections(config_path: Optional[Path]) -> None:
    """Show the sample todo list grouped by due date."""
    settings = load_settings(config_path)
    setup_logging(settings.verbose, settings.log_file)

    async def run_sections() -> None:
        _, state = _build_state(settings, 0.0)
        await state.load_todos()
        for name, todos in (
            ("Overdue", state.overdue_todos),
            ("Today", state.today_todos),
            ("Upcoming", state.upcoming_todos),
            ("No due date", state.no_due_date_todos),
            ("Completed", state.completed_todos),
        ):
            if todos:
                console.print(render_todos(todos, name))

    asyncio.run(run_sections())


if __name__ == "__main__":  # pragma: no cover
    main()
