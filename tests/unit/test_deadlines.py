"""
Tests for strict-deadline evaluation and enforcement.
"""

from datetime import datetime, timedelta

import pytest

from vendorconnect.database import TaskDB
from vendorconnect.exceptions import AuthorizationError
from vendorconnect.services import deadlines

NOW = datetime(2025, 8, 5, 12, 0)


def make_task(close_deadline=True, end_date=NOW - timedelta(hours=1), status_id=1):
    return TaskDB(id=42, title="T", close_deadline=close_deadline, end_date=end_date, status_id=status_id)


class TestEvaluation:
    """Pure deadline rules."""

    def test_expired_when_strict_and_past(self):
        assert deadlines.is_expired(make_task(), NOW)

    def test_not_expired_without_strict_flag(self):
        assert not deadlines.is_expired(make_task(close_deadline=False), NOW)

    def test_not_expired_without_end_date(self):
        assert not deadlines.is_expired(make_task(end_date=None), NOW)

    def test_not_expired_exactly_at_deadline(self):
        assert not deadlines.is_expired(make_task(end_date=NOW), NOW)

    def test_effective_status_is_rejected(self):
        assert deadlines.effective_status_id(make_task(), NOW, rejected_status_id=9) == 9

    def test_effective_status_keeps_stored_without_rejected(self):
        assert deadlines.effective_status_id(make_task(), NOW, rejected_status_id=None) == 1

    def test_enforce_is_idempotent(self):
        task = make_task()
        assert deadlines.enforce(task, NOW, 9) is True
        assert task.status_id == 9
        assert deadlines.enforce(task, NOW, 9) is False

    def test_enforce_leaves_lenient_task(self):
        task = make_task(close_deadline=False)
        assert deadlines.enforce(task, NOW, 9) is False
        assert task.status_id == 1

    def test_ensure_writable_denies_expired(self):
        with pytest.raises(AuthorizationError) as exc_info:
            deadlines.ensure_writable(make_task(), NOW, "message")
        assert "comments" in exc_info.value.message

    def test_ensure_writable_allows_open_task(self):
        deadlines.ensure_writable(make_task(end_date=NOW + timedelta(days=1)), NOW, "deliverable")


class TestLifecycleDeadlines:
    """Deadline handling through the lifecycle manager."""

    async def test_expired_task_reads_as_rejected(self, lifecycle, admin, task_data, seed, now):
        created = await lifecycle.create_task(admin, task_data(
            close_deadline=True,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ))
        view = await lifecycle.get_task(admin, created.task.id)
        assert view.expired is True
        assert view.status.id == seed.rejected_id
        assert view.task.status_id == seed.rejected_id

    async def test_lenient_deadline_keeps_status(self, lifecycle, admin, task_data, seed, now):
        created = await lifecycle.create_task(admin, task_data(
            close_deadline=False,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ))
        view = await lifecycle.get_task(admin, created.task.id)
        assert view.expired is False
        assert view.status.id == seed.active_id

    async def test_list_persists_rejection(self, lifecycle, admin, task_data, seed, now):
        await lifecycle.create_task(admin, task_data(
            close_deadline=True,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ))
        page = await lifecycle.list_tasks(admin)
        assert page.items[0].status.id == seed.rejected_id
        assert page.items[0].task.status_id == seed.rejected_id

    async def test_sweep_is_idempotent(self, lifecycle, admin, task_data, now):
        await lifecycle.create_task(admin, task_data(
            close_deadline=True,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ))
        assert await lifecycle.enforce_deadlines(1) == 1
        assert await lifecycle.enforce_deadlines(1) == 0

    async def test_collaborative_writes_refused_after_deadline(self, lifecycle, admin, sarah, task_data, now):
        created = await lifecycle.create_task(admin, task_data(
            close_deadline=True,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ))
        with pytest.raises(AuthorizationError):
            await lifecycle.add_message(sarah, created.task.id, "Done?")
        with pytest.raises(AuthorizationError):
            await lifecycle.add_deliverable(sarah, created.task.id, {"title": "Final"})

    async def test_rejected_is_not_terminal(self, lifecycle, admin, task_data, seed, now):
        created = await lifecycle.create_task(admin, task_data(
            close_deadline=True,
            start_date=now - timedelta(days=5),
            end_date=now - timedelta(days=1),
        ))
        await lifecycle.get_task(admin, created.task.id)

        view = await lifecycle.update_task(admin, created.task.id, {
            "end_date": now + timedelta(days=3),
            "status_id": seed.active_id,
        })
        assert view.expired is False
        assert view.status.id == seed.active_id
