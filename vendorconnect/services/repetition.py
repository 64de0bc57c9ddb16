"""
Repeating task occurrence generation.

A repeating parent task produces child tasks on a daily/weekly/monthly/
yearly schedule. Occurrence n starts at start_date + n * interval units,
so month-end clamping never drifts. Children are independent tasks that
point back at the parent and never modify it beyond last_repeated_at.
"""

import calendar
import logging
from datetime import datetime, timedelta
from typing import Optional, List, Callable

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from ..database.models import TaskDB, RepeatFrequencyEnum
from ..database.repositories import TaskRepository
from ..utils.datetime_utils import get_local_now

logger = logging.getLogger(__name__)


def add_months(value: datetime, months: int) -> datetime:
    """Shift by whole months, clamping the day to the target month's last day."""
    month_index = value.month - 1 + months
    year = value.year + month_index // 12
    month = month_index % 12 + 1
    day = min(value.day, calendar.monthrange(year, month)[1])
    return value.replace(year=year, month=month, day=day)


def shift(start: datetime, frequency: str, steps: int) -> datetime:
    """start moved forward by `steps` units of `frequency`."""
    if frequency == RepeatFrequencyEnum.DAILY.value:
        return start + timedelta(days=steps)
    if frequency == RepeatFrequencyEnum.WEEKLY.value:
        return start + timedelta(weeks=steps)
    if frequency == RepeatFrequencyEnum.MONTHLY.value:
        return add_months(start, steps)
    if frequency == RepeatFrequencyEnum.YEARLY.value:
        return add_months(start, 12 * steps)
    raise ValueError(f"Unknown repeat frequency: {frequency}")


def occurrence_title(title: str, start: datetime) -> str:
    """'Weekly report' -> 'Weekly report 5 Aug 2025'."""
    return f"{title} {start.day} {start.strftime('%b %Y')}"


class RepeatScheduler:
    """Materialises due occurrences of repeating tasks."""

    def __init__(self, clock: Callable[[], datetime] = get_local_now, limit: Optional[int] = None):
        self.clock = clock
        self.limit = limit if limit is not None else settings.repeat_generation_limit

    def due_occurrences(self, task: TaskDB, now: datetime) -> List[datetime]:
        """Occurrence starts after the last generated one and not later than now."""
        if not task.start_date or task.repeat_frequency not in {f.value for f in RepeatFrequencyEnum}:
            return []

        interval = max(task.repeat_interval or 1, 1)
        last = task.last_repeated_at or task.start_date
        due = []
        step = 1
        while len(due) < self.limit:
            candidate = shift(task.start_date, task.repeat_frequency, step * interval)
            step += 1
            if candidate <= last:
                continue
            if candidate > now:
                break
            due.append(candidate)
        return due

    async def generate_for_task(self, repo: TaskRepository, parent: TaskDB, now: datetime) -> List[TaskDB]:
        if parent.repeat_until is not None and parent.repeat_until < now:
            logger.info(f"Task {parent.id} reached repeat_until {parent.repeat_until}; stopping repetition")
            parent.repeat_active = False
            return []

        existing = {d.date() for d in await repo.child_start_dates(parent.id)}
        duration = None
        if parent.start_date and parent.end_date:
            duration = parent.end_date - parent.start_date

        created = []
        occurrences = self.due_occurrences(parent, now)
        for start in occurrences:
            if start.date() in existing:
                logger.debug(f"Occurrence of task {parent.id} on {start.date()} exists, skipping")
                continue
            child = await repo.create(
                {
                    "admin_id": parent.admin_id,
                    "title": occurrence_title(parent.title, start)[:255],
                    "description": parent.description,
                    "status_id": parent.status_id,
                    "priority_id": parent.priority_id,
                    "task_type_id": parent.task_type_id,
                    "project_id": parent.project_id,
                    "start_date": start,
                    "end_date": start + duration if duration is not None else None,
                    "close_deadline": parent.close_deadline,
                    "deliverable_quantity": parent.deliverable_quantity,
                    "template_id": parent.template_id,
                    "template_questions": parent.template_questions,
                    "template_checklist": parent.template_checklist,
                    "template_standard_brief": parent.template_standard_brief,
                    "template_description": parent.template_description,
                    "template_deliverable_quantity": parent.template_deliverable_quantity,
                    "created_by": parent.created_by,
                    "is_repeating": False,
                    "repeat_active": False,
                    "parent_task_id": parent.id,
                },
                users=parent.users,
                clients=parent.clients,
                tags=parent.tags,
            )
            created.append(child)

        if occurrences:
            parent.last_repeated_at = occurrences[-1]
        return created

    async def generate(self, session: AsyncSession, tenant_id: Optional[int]) -> List[TaskDB]:
        """Generate every due occurrence for the tenant inside the caller's transaction."""
        repo = TaskRepository(session)
        now = self.clock()
        created: List[TaskDB] = []
        for parent in await repo.repeating_parents(tenant_id):
            created.extend(await self.generate_for_task(repo, parent, now))
        await session.flush()
        if created:
            logger.info(f"Generated {len(created)} repeating task occurrence(s) for tenant {tenant_id}")
        return created
