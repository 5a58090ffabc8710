"""Tests for the due-date helpers on Todo."""

from datetime import date, timedelta

import pytest

from todohub.sync.contracts import Todo


def _due_in(days):
    return Todo(title="Due", due_date=date.today() + timedelta(days=days))


class TestDueDates:
    """Test is_overdue, is_due_today and is_due_soon."""

    @pytest.mark.parametrize(
        "days,overdue,today,soon",
        [
            (-1, True, False, False),
            (0, False, True, False),
            (1, False, False, False),
            (2, False, False, True),
            (7, False, False, True),
            (8, False, False, False),
        ],
    )
    def test_due_date_buckets(self, days, overdue, today, soon):
        todo = _due_in(days)

        assert todo.is_overdue is overdue
        assert todo.is_due_today is today
        assert todo.is_due_soon is soon

    def test_completed_todo_is_never_overdue(self):
        todo = _due_in(-3).model_copy(update={"completed": True})

        assert todo.is_overdue is False

    def test_no_due_date(self):
        todo = Todo(title="Someday")

        assert not (todo.is_overdue or todo.is_due_today or todo.is_due_soon)
