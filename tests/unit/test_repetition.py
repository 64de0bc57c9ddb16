"""
Tests for repeating task generation.
"""

from datetime import datetime, timedelta

import pytest

from vendorconnect.database import TaskDB
from vendorconnect.services.repetition import (
    RepeatScheduler,
    add_months,
    occurrence_title,
    shift,
)

NOW = datetime(2025, 8, 5, 12, 0)


class TestScheduleMath:
    """Date arithmetic for occurrences."""

    def test_month_end_is_clamped(self):
        assert add_months(datetime(2025, 1, 31), 1) == datetime(2025, 2, 28)
        assert add_months(datetime(2024, 1, 31), 1) == datetime(2024, 2, 29)

    def test_occurrences_measured_from_start(self):
        start = datetime(2025, 1, 31)
        # Feb clamps to the 28th but March is back on the 31st
        assert shift(start, "monthly", 2) == datetime(2025, 3, 31)

    @pytest.mark.parametrize("frequency,expected", [
        ("daily", datetime(2025, 1, 4)),
        ("weekly", datetime(2025, 1, 22)),
        ("monthly", datetime(2025, 4, 1)),
        ("yearly", datetime(2028, 1, 1)),
    ])
    def test_shift(self, frequency, expected):
        assert shift(datetime(2025, 1, 1), frequency, 3) == expected

    def test_unknown_frequency(self):
        with pytest.raises(ValueError):
            shift(datetime(2025, 1, 1), "hourly", 1)

    def test_occurrence_title(self):
        assert occurrence_title("Weekly report", datetime(2025, 8, 4)) == "Weekly report 4 Aug 2025"

    def test_due_occurrences_respect_interval_and_last(self):
        scheduler = RepeatScheduler(clock=lambda: NOW, limit=50)
        task = TaskDB(
            start_date=NOW - timedelta(days=28),
            repeat_frequency="weekly",
            repeat_interval=2,
            last_repeated_at=None,
        )
        assert scheduler.due_occurrences(task, NOW) == [NOW - timedelta(days=14), NOW]

        task.last_repeated_at = NOW - timedelta(days=14)
        assert scheduler.due_occurrences(task, NOW) == [NOW]

    def test_generation_limit(self):
        scheduler = RepeatScheduler(clock=lambda: NOW, limit=3)
        task = TaskDB(start_date=NOW - timedelta(days=30), repeat_frequency="daily", repeat_interval=1)
        assert len(scheduler.due_occurrences(task, NOW)) == 3


class TestGeneration:
    """Occurrence generation against the database."""

    async def _repeating(self, lifecycle, admin, task_data, now, **overrides):
        data = task_data(
            title="Weekly report",
            start_date=now - timedelta(days=15),
            end_date=now - timedelta(days=14),
            is_repeating=True,
            repeat_frequency="weekly",
            repeat_interval=1,
        )
        data.update(overrides)
        return await lifecycle.create_task(admin, data)

    async def test_past_due_occurrences_created_once(self, lifecycle, admin, task_data, seed, now):
        parent = await self._repeating(lifecycle, admin, task_data, now)

        created = await lifecycle.generate_repeating(1)
        assert len(created) == 2
        assert await lifecycle.generate_repeating(1) == []

        children = await lifecycle.occurrences(admin, parent.task.id)
        assert [c.task.title for c in children] == ["Weekly report 28 Jul 2025", "Weekly report 4 Aug 2025"]
        for child in children:
            assert child.task.parent_task_id == parent.task.id
            assert child.task.is_repeating is False
            assert [u.id for u in child.task.users] == [seed.sarah_id]
            assert child.task.end_date - child.task.start_date == timedelta(days=1)

    async def test_stopped_task_generates_nothing(self, lifecycle, admin, task_data, now):
        parent = await self._repeating(lifecycle, admin, task_data, now)
        await lifecycle.stop_repetition(admin, parent.task.id)
        assert await lifecycle.generate_repeating(1) == []

    async def test_passed_repeat_until_stops_repetition(self, lifecycle, admin, task_data, now):
        parent = await self._repeating(lifecycle, admin, task_data, now, repeat_until=now - timedelta(days=2))
        assert await lifecycle.generate_repeating(1) == []

        view = await lifecycle.get_task(admin, parent.task.id)
        assert view.task.repeat_active is False

    async def test_list_generates_due_occurrences(self, lifecycle, admin, task_data, now):
        await self._repeating(lifecycle, admin, task_data, now)
        page = await lifecycle.list_tasks(admin)
        assert page.total == 3
