"""Tests for CreationQueue: FIFO creation, single-flight draining and recovery."""

import asyncio
from datetime import date

import pytest

from todohub.fsm.pending_state import PendingState
from todohub.sync.contracts import Priority, Todo
from todohub.sync.creation_queue import CreationQueue
from todohub.sync.hooks import ErrorReporter, SyncHooks
from todohub.sync.registry import PendingCreationRegistry
from todohub.sync.remote.memory import InMemoryTodoService
from todohub.sync.store import LocalTodoStore


def _titles(todos):
    return [t.title for t in todos]


class ConcurrencyTrackingService(InMemoryTodoService):
    """Records the maximum number of overlapping create_issue calls."""

    def __init__(self, **kwargs):
        super().__init__(**kwargs)
        self.in_flight = 0
        self.max_in_flight = 0

    async def create_issue(self, title, body=None):
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            return await super().create_issue(title, body)
        finally:
            self.in_flight -= 1


@pytest.fixture
def parts(service):
    store = LocalTodoStore()
    registry = PendingCreationRegistry()
    queue = CreationQueue(store, registry, service, ErrorReporter())
    return store, registry, queue


class TestEnqueue:
    """Test the synchronous optimistic part of enqueue()."""

    @pytest.mark.asyncio
    async def test_enqueue_is_optimistic_and_immediate(self, parts, service):
        store, registry, queue = parts

        local_id = queue.enqueue("Buy milk")

        todo = store.get(local_id)
        assert todo is not None
        assert todo.pending_state is PendingState.PENDING
        assert todo.issue_id is None
        assert store.incomplete_index_of(local_id) == 0
        assert registry.desired_position(local_id) == 0
        assert service.calls == [], "no remote call before the caller yields"

        await queue.wait_until_idle()

    @pytest.mark.asyncio
    async def test_enqueue_shifts_other_pending_positions(self, parts):
        store, registry, queue = parts

        first = queue.enqueue("First")
        second = queue.enqueue("Second")

        assert registry.desired_position(second) == 0
        assert registry.desired_position(first) == 1
        assert _titles(store) == ["Second", "First"]

        await queue.wait_until_idle()

    def test_enqueue_without_running_loop_waits_for_drain(self, parts, service):
        store, registry, queue = parts

        local_id = queue.enqueue("Offline")

        assert store.get(local_id).is_pending
        assert queue.queued_ids == [local_id]

        asyncio.run(queue.wait_until_idle())

        assert store.get(local_id).is_committed
        assert len(registry) == 0


class TestDrain:
    """Test FIFO ordering and the single-flight guard."""

    @pytest.mark.asyncio
    async def test_creations_run_in_submission_order_despite_delays(self, parts, service):
        store, _, queue = parts
        service.title_delays = {"slow": 0.05, "fast": 0.0, "medium": 0.01}

        for title in ("slow", "fast", "medium"):
            queue.enqueue(title)
        await queue.wait_until_idle()

        created = [call.args[0] for call in service.calls_to("create_issue")]
        assert created == ["slow", "fast", "medium"]
        numbers = {t.title: t.issue_number for t in store}
        assert numbers == {"slow": 101, "fast": 102, "medium": 103}

    @pytest.mark.asyncio
    async def test_only_one_creation_in_flight(self, project):
        service = ConcurrencyTrackingService(project=project, latency=0.005)
        store = LocalTodoStore()
        queue = CreationQueue(store, PendingCreationRegistry(), service)

        for i in range(5):
            queue.enqueue(f"todo {i}")
        await asyncio.sleep(0)
        queue.enqueue("late arrival")
        await queue.wait_until_idle()

        assert service.max_in_flight == 1
        assert all(t.is_committed for t in store)

    @pytest.mark.asyncio
    async def test_second_enqueue_does_not_start_second_drain(self, parts, monkeypatch):
        _, _, queue = parts
        started = []
        original_drain = queue.drain

        async def counting_drain():
            started.append(1)
            await original_drain()

        monkeypatch.setattr(queue, "drain", counting_drain)

        queue.enqueue("A")
        queue.enqueue("B")
        await asyncio.sleep(0)
        queue.enqueue("C")
        await queue.wait_until_idle()

        assert len(started) == 1

    @pytest.mark.asyncio
    async def test_drain_is_reentrancy_guarded(self, parts, service):
        store, _, queue = parts
        service.latency = 0.01
        queue.enqueue("A")
        queue.enqueue("B")
        await asyncio.sleep(0)
        assert queue.is_draining

        await queue.drain()  # returns immediately, the active loop owns the queue

        assert any(t.is_pending for t in store)
        await queue.wait_until_idle()
        assert not queue.is_draining
        assert [c.args[0] for c in service.calls_to("create_issue")] == ["A", "B"]


class TestCommit:
    """Test reconciliation of successful creations."""

    @pytest.mark.asyncio
    async def test_commit_assigns_remote_identity_in_place(self, parts, service):
        store, registry, queue = parts

        local_id = queue.enqueue("Buy milk")
        await queue.wait_until_idle()

        todo = store.get(local_id)
        assert todo.pending_state is PendingState.NONE
        assert todo.issue_id == "I_101"
        assert todo.issue_number == 101
        assert todo.repository == "octocat/todos"
        assert todo.project_item_id is not None
        assert local_id not in registry

    @pytest.mark.asyncio
    async def test_fields_written_only_when_set(self, parts, service):
        store, _, queue = parts
        due = date(2030, 1, 15)

        with_fields = queue.enqueue("Taxes", due_date=due, priority=Priority.HIGH)
        queue.enqueue("Plain")
        await queue.wait_until_idle()

        calls = service.calls_to("set_fields")
        assert len(calls) == 1
        assert calls[0].args == (store.get(with_fields).project_item_id, due, Priority.HIGH)

    @pytest.mark.asyncio
    async def test_desired_position_applied_at_commit(self, parts, service):
        store, registry, queue = parts
        service.seed("A")
        service.seed("B")
        store.reset(await service.list_todos())
        service.calls.clear()

        local_id = queue.enqueue("New")
        queue.update_pending_position(local_id, 2)
        await queue.wait_until_idle()

        assert _titles(store) == ["A", "B", "New"]
        position_calls = service.calls_to("set_position")
        assert len(position_calls) == 1
        assert position_calls[0].args == (store.get(local_id).project_item_id, "PVTI_2")

    @pytest.mark.asyncio
    async def test_desired_position_clamped_to_list_length(self, parts):
        store, _, queue = parts

        local_id = queue.enqueue("Only")
        queue.update_pending_position(local_id, 7)
        await queue.wait_until_idle()

        assert store.incomplete_index_of(local_id) == 0

    @pytest.mark.asyncio
    async def test_attach_failure_still_commits_issue(self, parts, service):
        store, _, queue = parts
        service.fail_next("attach_to_project")

        local_id = queue.enqueue("Unattached")
        await queue.wait_until_idle()

        todo = store.get(local_id)
        assert todo.is_committed
        assert todo.project_item_id is None
        assert len(service.calls_to("create_issue")) == 1


class TestFailureAndRecovery:
    """Test failed creations, retry and discard."""

    @pytest.mark.asyncio
    async def test_failure_marks_todo_and_does_not_block_queue(self, parts, service):
        store, registry, queue = parts
        service.fail_titles = {"Boom"}

        boom = queue.enqueue("Boom")
        fine = queue.enqueue("Fine")
        await queue.wait_until_idle()

        failed = store.get(boom)
        assert failed.pending_state is PendingState.FAILED
        assert "could not create issue" in failed.pending_error
        assert store.get(fine).is_committed
        assert _titles(store) == ["Fine", "Boom"]
        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_failure_is_not_retried_automatically(self, parts, service):
        _, _, queue = parts
        service.fail_titles = {"Boom"}

        queue.enqueue("Boom")
        await queue.wait_until_idle()
        await asyncio.sleep(0.01)

        assert len(service.calls_to("create_issue")) == 1

    @pytest.mark.asyncio
    async def test_retry_requeues_at_current_position(self, parts, service):
        store, registry, queue = parts
        service.fail_titles = {"Boom"}
        boom = queue.enqueue("Boom")
        queue.enqueue("Fine")
        await queue.wait_until_idle()
        service.fail_titles.clear()

        assert queue.retry(store.get(boom)) is True
        assert store.get(boom).is_pending
        assert store.get(boom).pending_error is None
        assert registry.desired_position(boom) == 1

        await queue.wait_until_idle()

        assert store.get(boom).is_committed
        assert store.get(boom).issue_number == 102
        assert _titles(store) == ["Fine", "Boom"]

    @pytest.mark.asyncio
    async def test_retry_ignores_non_failed_todo(self, parts):
        store, _, queue = parts
        local_id = queue.enqueue("Fine")
        await queue.wait_until_idle()

        assert queue.retry(store.get(local_id)) is False
        assert store.get(local_id).is_committed

    @pytest.mark.asyncio
    async def test_discard_removes_without_remote_call(self, parts, service):
        store, _, queue = parts
        service.fail_titles = {"Boom"}
        boom = queue.enqueue("Boom")
        await queue.wait_until_idle()
        calls_before = len(service.calls)

        assert queue.discard(store.get(boom)) is True

        assert store.get(boom) is None
        assert len(service.calls) == calls_before

    @pytest.mark.asyncio
    async def test_discard_ignores_pending_todo(self, parts, service):
        store, _, queue = parts
        service.latency = 0.01
        local_id = queue.enqueue("Saving")

        assert queue.discard(store.get(local_id)) is False
        assert store.get(local_id) is not None

        await queue.wait_until_idle()


class TestReconciliationErrors:
    """Test commits racing with reloads and unexpected errors while draining."""

    @pytest.mark.asyncio
    async def test_commit_replaces_reloaded_copy_of_new_issue(self, parts, service):
        store, registry, queue = parts
        service.delays["attach_to_project"] = 0.05

        local_id = queue.enqueue("New")
        await asyncio.sleep(0.01)
        assert queue.uncommitted_issue_ids == {"I_101"}
        store.insert(Todo(title="New", issue_id="I_101", issue_number=101, local_id="I_101"), 1)

        await queue.wait_until_idle()

        assert [t.local_id for t in store] == [local_id]
        assert store.get(local_id).is_committed
        assert len(registry) == 0
        assert queue.uncommitted_issue_ids == set()

    @pytest.mark.asyncio
    async def test_drain_survives_error_while_committing(self, service):
        def on_commit(todo):
            if todo.title == "Bad":
                raise RuntimeError("listener failed")

        store = LocalTodoStore()
        registry = PendingCreationRegistry()
        reporter = ErrorReporter(SyncHooks(on_commit=on_commit))
        queue = CreationQueue(store, registry, service, reporter)

        queue.enqueue("Bad")
        good = queue.enqueue("Good")
        await queue.wait_until_idle()

        assert store.get(good).is_committed
        assert not any(t.is_pending for t in store)
        assert len(registry) == 0
        assert [(e.operation, e.message) for e in reporter.history] == [
            ("create_todo", "listener failed")
        ]
