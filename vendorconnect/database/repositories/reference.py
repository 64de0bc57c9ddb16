"""
Repository for tenant reference data.

Statuses, priorities, task types, tags, clients and brief templates are
read-only lookups for the task engine. Statuses, priorities and task
types can also be deleted when nothing references them.
"""

import logging
from typing import Optional, List, Type, TypeVar, Sequence

from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import (
    StatusDB,
    PriorityDB,
    TaskTypeDB,
    TagDB,
    ClientDB,
    TaskBriefTemplateDB,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")


class ReferenceRepository:
    """Lookups over tenant-scoped reference tables."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, model: Type[ModelT], entity_id: int, tenant_id: Optional[int]) -> Optional[ModelT]:
        result = await self.session.execute(
            select(model).where(model.id == entity_id, model.admin_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_many(
        self, model: Type[ModelT], ids: Sequence[int], tenant_id: Optional[int]
    ) -> List[ModelT]:
        """Rows for the given ids in the order the ids were given. Unknown ids are dropped."""
        if not ids:
            return []
        result = await self.session.execute(
            select(model).where(model.id.in_(list(ids)), model.admin_id == tenant_id)
        )
        by_id = {row.id: row for row in result.scalars().all()}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def list(self, model: Type[ModelT], tenant_id: Optional[int]) -> List[ModelT]:
        result = await self.session.execute(
            select(model).where(model.admin_id == tenant_id).order_by(model.id.asc())
        )
        return list(result.scalars().all())

    async def find_by_title(
        self, model: Type[ModelT], title: str, tenant_id: Optional[int]
    ) -> Optional[ModelT]:
        """First row whose title matches case-insensitively."""
        result = await self.session.execute(
            select(model)
            .where(model.admin_id == tenant_id, func.lower(model.title) == title.strip().lower())
            .order_by(model.id.asc())
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def status_by_title(self, title: str, tenant_id: Optional[int]) -> Optional[StatusDB]:
        return await self.find_by_title(StatusDB, title, tenant_id)

    async def priority_by_title(self, title: str, tenant_id: Optional[int]) -> Optional[PriorityDB]:
        return await self.find_by_title(PriorityDB, title, tenant_id)

    async def get_template(self, template_id: int, tenant_id: Optional[int]) -> Optional[TaskBriefTemplateDB]:
        return await self.get(TaskBriefTemplateDB, template_id, tenant_id)

    async def clients(self, ids: Sequence[int], tenant_id: Optional[int]) -> List[ClientDB]:
        return await self.get_many(ClientDB, ids, tenant_id)

    async def tags(self, ids: Sequence[int], tenant_id: Optional[int]) -> List[TagDB]:
        return await self.get_many(TagDB, ids, tenant_id)

    async def delete(self, entity) -> None:
        await self.session.delete(entity)
        await self.session.flush()
        logger.info(f"Deleted {type(entity).__name__} {entity.id}")


# Reference kinds that can be deleted through the API, with the task column that references them
DELETABLE_KINDS = {
    "priority": (PriorityDB, "priority_id"),
    "status": (StatusDB, "status_id"),
    "task_type": (TaskTypeDB, "task_type_id"),
}
