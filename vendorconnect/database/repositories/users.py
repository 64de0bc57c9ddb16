"""
Repository for users.

Users are resolved per request into a principal and listed as assignee
candidates for the assistant.
"""

import logging
from typing import Optional, List, Sequence

from sqlalchemy import select, true, ColumnElement
from sqlalchemy.ext.asyncio import AsyncSession

from ..models import UserDB, UserStatusEnum

logger = logging.getLogger(__name__)


class UserRepository:
    """Repository for user lookups."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, user_id: int) -> Optional[UserDB]:
        """Get a user by primary key regardless of tenant."""
        result = await self.session.execute(select(UserDB).where(UserDB.id == user_id))
        return result.scalar_one_or_none()

    async def get_in_tenant(self, user_id: int, tenant_id: Optional[int]) -> Optional[UserDB]:
        result = await self.session.execute(
            select(UserDB).where(UserDB.id == user_id, UserDB.admin_id == tenant_id)
        )
        return result.scalar_one_or_none()

    async def get_many(self, ids: Sequence[int], tenant_id: Optional[int]) -> List[UserDB]:
        """Users for the given ids in the order given. Unknown or foreign ids are dropped."""
        if not ids:
            return []
        result = await self.session.execute(
            select(UserDB).where(UserDB.id.in_(list(ids)), UserDB.admin_id == tenant_id)
        )
        by_id = {user.id: user for user in result.scalars().all()}
        return [by_id[i] for i in dict.fromkeys(ids) if i in by_id]

    async def list_for_tenant(
        self,
        tenant_id: Optional[int],
        visibility: ColumnElement = true(),
        active_only: bool = True,
    ) -> List[UserDB]:
        """Tenant users in id order (input order for the fuzzy resolver)."""
        query = select(UserDB).where(UserDB.admin_id == tenant_id, visibility)
        if active_only:
            query = query.where(UserDB.status == UserStatusEnum.ACTIVE.value)
        result = await self.session.execute(query.order_by(UserDB.id.asc()))
        return list(result.scalars().all())

    async def tenant_ids(self) -> List[int]:
        """Distinct tenant ids that own at least one user."""
        result = await self.session.execute(
            select(UserDB.admin_id).where(UserDB.admin_id.is_not(None)).distinct()
        )
        return sorted(result.scalars().all())
