"""
Read-only lookups used by the dashboard and the assistant: dashboard
counts, cross-entity search and project progress. Everything is computed
inside the principal's visibility scope.
"""

import logging
from datetime import datetime, timedelta
from typing import Optional, Dict, Any, List, Callable

from sqlalchemy import or_

from config import settings
from ..database.connection import Database
from ..database.models import TaskDB, UserDB, ProjectDB, StatusDB, PriorityDB
from ..database.repositories import TaskRepository, ReferenceRepository, ProjectRepository, UserRepository
from ..exceptions import NotFoundError
from ..utils.datetime_utils import get_local_now
from .visibility import Principal, scope

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 10


class ReportingService:
    """Aggregates for the dashboard, search and project progress."""

    def __init__(self, db: Database, clock: Callable[[], datetime] = get_local_now):
        self.db = db
        self.clock = clock

    async def dashboard(self, principal: Principal) -> Dict[str, Any]:
        now = self.clock()
        async with self.db.session() as session:
            repo = TaskRepository(session)
            reference = ReferenceRepository(session)
            tenant = principal.tenant_id
            visible = scope(principal, "task")

            statuses = await reference.list(StatusDB, tenant)
            completed = await reference.status_by_title(settings.completed_status_title, tenant)
            counts = await repo.status_counts(tenant, visible)

            not_completed = (
                or_(TaskDB.status_id.is_(None), TaskDB.status_id != completed.id)
                if completed else TaskDB.id.is_not(None)
            )
            overdue = await repo.count(
                tenant, visible, TaskDB.end_date.is_not(None), TaskDB.end_date < now, not_completed
            )
            due_soon = await repo.count(
                tenant, visible,
                TaskDB.end_date >= now, TaskDB.end_date <= now + timedelta(days=7), not_completed,
            )
            my_open = await repo.count(
                tenant, visible, TaskDB.users.any(UserDB.id == principal.user_id), not_completed
            )

        by_status = [
            {"status_id": status.id, "status": status.title, "count": counts.get(status.id, 0)}
            for status in statuses
        ]
        return {
            "total_tasks": sum(counts.values()),
            "by_status": by_status,
            "overdue": overdue,
            "due_this_week": due_soon,
            "my_open_tasks": my_open,
        }

    async def search(self, principal: Principal, query: str) -> Dict[str, Any]:
        """Case-insensitive substring search over visible tasks, projects and clients."""
        query = (query or "").strip()
        if not query:
            return {"tasks": [], "projects": [], "clients": []}

        pattern = f"%{query}%"
        async with self.db.session() as session:
            tenant = principal.tenant_id
            tasks = await TaskRepository(session).visible(
                tenant,
                scope(principal, "task"),
                or_(TaskDB.title.ilike(pattern), TaskDB.description.ilike(pattern)),
                limit=SEARCH_LIMIT,
            )
            projects_repo = ProjectRepository(session)
            projects = await projects_repo.list(
                tenant, scope(principal, "project"), search=query, limit=SEARCH_LIMIT
            )
            clients = await projects_repo.search_clients(
                tenant, query, scope(principal, "client"), limit=SEARCH_LIMIT
            )

        return {"tasks": tasks, "projects": projects, "clients": clients}

    async def project_progress(
        self, principal: Principal, project_id: Optional[int] = None, project: Optional[ProjectDB] = None
    ) -> Dict[str, Any]:
        """Total/completed/overdue counts and completion percentage for one project."""
        now = self.clock()
        async with self.db.session() as session:
            tenant = principal.tenant_id
            if project is None:
                project = await ProjectRepository(session).get(
                    project_id, tenant, scope(principal, "project")
                )
            if project is None:
                raise NotFoundError(f"Project {project_id} not found")

            repo = TaskRepository(session)
            completed = await ReferenceRepository(session).status_by_title(
                settings.completed_status_title, tenant
            )
            visible = scope(principal, "task")
            in_project = TaskDB.project_id == project.id

            total = await repo.count(tenant, visible, in_project)
            done = 0
            if completed:
                done = await repo.count(tenant, visible, in_project, TaskDB.status_id == completed.id)
            not_completed = (
                or_(TaskDB.status_id.is_(None), TaskDB.status_id != completed.id)
                if completed else TaskDB.id.is_not(None)
            )
            overdue = await repo.count(
                tenant, visible, in_project, TaskDB.end_date.is_not(None), TaskDB.end_date < now, not_completed
            )

        return {
            "project_id": project.id,
            "project": project.title,
            "total_tasks": total,
            "completed_tasks": done,
            "overdue_tasks": overdue,
            "percentage": round(done * 100 / total) if total else 0,
        }

    async def projects(self, principal: Principal) -> List[ProjectDB]:
        async with self.db.session() as session:
            return await ProjectRepository(session).list(principal.tenant_id, scope(principal, "project"))

    # ==================== LOOKUPS ====================

    async def users(self, principal: Principal, active_only: bool = True) -> List[UserDB]:
        """Tenant roster as seen by the principal."""
        async with self.db.session() as session:
            return await UserRepository(session).list_for_tenant(
                principal.tenant_id, scope(principal, "user"), active_only=active_only
            )

    async def statuses(self, principal: Principal) -> List[StatusDB]:
        async with self.db.session() as session:
            return await ReferenceRepository(session).list(StatusDB, principal.tenant_id)

    async def priorities(self, principal: Principal) -> List[PriorityDB]:
        async with self.db.session() as session:
            return await ReferenceRepository(session).list(PriorityDB, principal.tenant_id)

    async def tasks(self, principal: Principal, *conditions) -> List[TaskDB]:
        """Visible tasks in id order, optionally narrowed by extra conditions."""
        async with self.db.session() as session:
            return await TaskRepository(session).visible(
                principal.tenant_id, scope(principal, "task"), *conditions
            )

    async def tasks_titled(self, principal: Principal, title: str) -> List[TaskDB]:
        """Visible tasks whose title equals `title`, ignoring case."""
        async with self.db.session() as session:
            return await TaskRepository(session).find_by_title(
                title, principal.tenant_id, scope(principal, "task")
            )
