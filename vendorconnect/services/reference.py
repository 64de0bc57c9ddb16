"""
Guarded deletion of reference data.

A priority, status or task type that any task still references cannot be
deleted; the bulk variant skips such rows instead of failing the batch.
"""

import logging
from typing import List

from ..database.connection import Database
from ..database.repositories import ReferenceRepository, TaskRepository, DELETABLE_KINDS
from ..exceptions import AuthorizationError, BusinessRuleError, NotFoundError
from .lifecycle import BulkResult
from .visibility import Principal

logger = logging.getLogger(__name__)

LABELS = {
    "priority": "priority",
    "status": "status",
    "task_type": "task type",
}


class ReferenceService:
    """Delete priorities, statuses and task types that nothing uses."""

    def __init__(self, db: Database):
        self.db = db

    @staticmethod
    def _check(principal: Principal, kind: str) -> None:
        if kind not in DELETABLE_KINDS:
            raise NotFoundError(f"Unknown reference kind: {kind}")
        if not principal.is_admin:
            raise AuthorizationError(f"Only admins can delete a {LABELS[kind]}")

    async def delete(self, principal: Principal, kind: str, entity_id: int) -> None:
        self._check(principal, kind)
        model, column = DELETABLE_KINDS[kind]
        label = LABELS[kind]

        async with self.db.session() as session:
            reference = ReferenceRepository(session)
            entity = await reference.get(model, entity_id, principal.tenant_id)
            if entity is None:
                raise NotFoundError(f"{label.capitalize()} {entity_id} not found")
            if await TaskRepository(session).count_referencing(column, entity_id):
                raise BusinessRuleError(f"Cannot delete {label} that is being used by tasks")
            await reference.delete(entity)

    async def delete_many(self, principal: Principal, kind: str, ids: List[int]) -> BulkResult:
        """Delete what can be deleted; report the rest as skipped."""
        self._check(principal, kind)
        model, column = DELETABLE_KINDS[kind]
        result = BulkResult()

        async with self.db.session() as session:
            reference = ReferenceRepository(session)
            tasks = TaskRepository(session)
            for entity_id in dict.fromkeys(ids):
                entity = await reference.get(model, entity_id, principal.tenant_id)
                if entity is None:
                    result.skipped.append({"id": entity_id, "reason": "not found"})
                    continue
                if await tasks.count_referencing(column, entity_id):
                    result.skipped.append({"id": entity_id, "reason": "in use"})
                    continue
                await reference.delete(entity)
                result.deleted.append(entity_id)

        logger.info(
            f"Bulk {kind} delete: {len(result.deleted)} deleted, {len(result.skipped)} skipped"
        )
        return result
