"""
Scheduler manager for the periodic task sweeps.

One interval job, every scheduler_interval_minutes:
- Persist Rejected for expired strict-deadline tasks
- Create due occurrences of repeating tasks

Both sweeps run per tenant. Reads already apply the same rules, so the
scheduler only keeps stored state fresh for tenants nobody is reading.
"""

import logging
from datetime import datetime
from typing import Dict, Optional

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger
import pytz

from config import settings
from ..database import Database, get_database
from ..database.repositories import UserRepository
from ..services import TaskLifecycleManager, get_event_bus

logger = logging.getLogger(__name__)

SWEEP_JOB_ID = "task_sweeps"


class SchedulerManager:
    """
    Owns the AsyncIOScheduler and the task sweep job.
    """

    def __init__(self, db: Optional[Database] = None, lifecycle: Optional[TaskLifecycleManager] = None):
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.timezone = pytz.timezone(settings.timezone)
        self._db = db
        self._lifecycle = lifecycle

    @property
    def db(self) -> Database:
        return self._db or get_database()

    @property
    def lifecycle(self) -> TaskLifecycleManager:
        if self._lifecycle is None:
            self._lifecycle = TaskLifecycleManager(self.db, bus=get_event_bus())
        return self._lifecycle

    def start(self) -> None:
        """Start the scheduler with the sweep job."""
        self.scheduler = AsyncIOScheduler(timezone=self.timezone)

        self.scheduler.add_job(
            self.run_sweeps,
            IntervalTrigger(minutes=settings.scheduler_interval_minutes),
            id=SWEEP_JOB_ID,
            name="Deadline Enforcement & Repeat Generation",
            replace_existing=True
        )
        logger.info(f"Task sweeps scheduled: every {settings.scheduler_interval_minutes} minutes")

        self.scheduler.start()
        logger.info("Scheduler started")

    def stop(self) -> None:
        """Stop the scheduler."""
        if self.scheduler:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
            logger.info("Scheduler stopped")

    async def run_sweeps(self) -> Dict[str, int]:
        """Run both sweeps for every tenant. A failing tenant does not stop the others."""
        async with self.db.session() as session:
            tenants = await UserRepository(session).tenant_ids()

        totals = {"tenants": len(tenants), "rejected": 0, "generated": 0, "failed": 0}
        for tenant_id in tenants:
            try:
                totals["rejected"] += await self.lifecycle.enforce_deadlines(tenant_id)
                totals["generated"] += len(await self.lifecycle.generate_repeating(tenant_id))
            except Exception as e:
                totals["failed"] += 1
                logger.error(f"Task sweep failed for tenant {tenant_id}: {e}", exc_info=True)

        if totals["rejected"] or totals["generated"] or totals["failed"]:
            logger.info(
                f"Task sweeps: {totals['rejected']} rejected, {totals['generated']} generated, "
                f"{totals['failed']} tenant failures across {totals['tenants']} tenants"
            )
        return totals

    def trigger_job(self, job_id: str = SWEEP_JOB_ID) -> bool:
        """Manually trigger a job."""
        if not self.scheduler:
            return False

        job = self.scheduler.get_job(job_id)
        if job:
            job.modify(next_run_time=datetime.now(self.timezone))
            return True

        return False

    def get_job_status(self) -> dict:
        """Get status of all scheduled jobs."""
        if not self.scheduler:
            return {}

        return {
            job.id: {
                "name": job.name,
                "next_run": job.next_run_time.isoformat() if job.next_run_time else None,
                "trigger": str(job.trigger),
            }
            for job in self.scheduler.get_jobs()
        }


# Singleton instance
_scheduler_manager: Optional[SchedulerManager] = None


def get_scheduler_manager() -> SchedulerManager:
    """Get the scheduler manager instance."""
    global _scheduler_manager
    if _scheduler_manager is None:
        _scheduler_manager = SchedulerManager()
    return _scheduler_manager
