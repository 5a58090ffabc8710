"""Tests for the todohub command line."""

import logging
from datetime import date, timedelta

import pytest
from click.testing import CliRunner

from todohub.sync.cli import main, render_todos
from todohub.sync.contracts import Todo
from todohub.fsm.pending_state import PendingState


@pytest.fixture(autouse=True)
def restore_root_logger():
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)


@pytest.fixture
def config_path(tmp_path):
    path = tmp_path / "config.toml"
    path.write_text('[repository]\nid = "R_1"\nowner = "octocat"\nname = "chores"\n')
    return path


def test_config_prints_resolved_settings(config_path):
    result = CliRunner().invoke(main, ["config", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert '"owner": "octocat"' in result.output
    assert '"name": "chores"' in result.output


def test_demo_runs_to_completion(config_path):
    result = CliRunner().invoke(main, ["demo", "--config", str(config_path), "--delay", "0"])

    assert result.exit_code == 0, result.output
    assert "After the queue drained" in result.output
    assert "Board order" in result.output
    assert "Buy milk" in result.output


def test_demo_with_failing_creation_recovers(config_path):
    result = CliRunner().invoke(
        main, ["demo", "--config", str(config_path), "--delay", "0", "--fail", "Oops"]
    )

    assert result.exit_code == 0, result.output
    assert "[create_todo]" in result.output
    assert "Oops" in result.output


def test_sections_lists_groups(config_path):
    result = CliRunner().invoke(main, ["sections", "--config", str(config_path)])

    assert result.exit_code == 0, result.output
    assert "Overdue" in result.output
    assert "No due date" in result.output


def test_render_todos_marks_pending_rows():
    todos = [
        Todo(title="Saving", pending_state=PendingState.PENDING),
        Todo(title="Saved", issue_id="I_7", issue_number=7),
    ]

    table = render_todos(todos, "Todos")

    assert table.row_count == 2
    assert table.title == "Todos"


def test_render_todos_highlights_due_dates():
    today = date.today()
    todos = [
        Todo(title="Late", due_date=today - timedelta(days=1)),
        Todo(title="Soon", due_date=today + timedelta(days=3)),
        Todo(title="Later", due_date=today + timedelta(days=30)),
    ]

    table = render_todos(todos, "Todos")

    due_cells = list(table.columns[3].cells)
    assert due_cells[0].startswith("[red]")
    assert due_cells[1].startswith("[yellow]")
    assert due_cells[2] == (today + timedelta(days=30)).isoformat()
