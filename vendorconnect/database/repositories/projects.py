"""
Repository for projects.

Projects group tasks and link clients; the task engine only reads them.
"""

import logging
from typing import Optional, List

from sqlalchemy import select, true, ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import ProjectDB, ClientDB

logger = logging.getLogger(__name__)


class ProjectRepository:
    """Repository for project lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(
        self,
        project_id: int,
        tenant_id: Optional[int],
        visibility: ColumnElement = true(),
    ) -> Optional[ProjectDB]:
        result = await self.session.execute(
            select(ProjectDB).where(
                ProjectDB.id == project_id, ProjectDB.admin_id == tenant_id, visibility
            )
        )
        return result.scalar_one_or_none()

    async def list(
        self,
        tenant_id: Optional[int],
        visibility: ColumnElement = true(),
        search: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> List[ProjectDB]:
        query = select(ProjectDB).where(ProjectDB.admin_id == tenant_id, visibility)
        if search:
            query = query.where(ProjectDB.title.ilike(f"%{search}%"))
        query = query.order_by(ProjectDB.id.asc())
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def search_clients(
        self,
        tenant_id: Optional[int],
        search: str,
        visibility: ColumnElement = true(),
        limit: int = 10,
    ) -> List[ClientDB]:
        pattern = f"%{search}%"
        result = await self.session.execute(
            select(ClientDB)
            .where(
                ClientDB.admin_id == tenant_id,
                visibility,
                ClientDB.first_name.ilike(pattern)
                | ClientDB.last_name.ilike(pattern)
                | ClientDB.company.ilike(pattern),
            )
            .order_by(ClientDB.id.asc())
            .limit(limit)
        )
        return list(result.scalars().all())
