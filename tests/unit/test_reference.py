"""
Tests for guarded reference-data deletes.
"""

import pytest
from sqlalchemy import select

from vendorconnect.database import PriorityDB, StatusDB
from vendorconnect.exceptions import AuthorizationError, BusinessRuleError, NotFoundError
from vendorconnect.services import ReferenceService


@pytest.fixture
def reference(db):
    return ReferenceService(db)


class TestReferenceDelete:

    async def test_status_in_use_cannot_be_deleted(self, reference, lifecycle, admin, task_data, seed):
        await lifecycle.create_task(admin, task_data())
        with pytest.raises(BusinessRuleError) as exc_info:
            await reference.delete(admin, "status", seed.active_id)
        assert exc_info.value.status_code == 400

    async def test_priority_in_use_cannot_be_deleted(self, db, reference, lifecycle, admin, task_data, seed):
        await lifecycle.create_task(admin, task_data(priority_id=seed.medium_id))
        with pytest.raises(BusinessRuleError) as exc_info:
            await reference.delete(admin, "priority", seed.medium_id)
        assert exc_info.value.status_code == 400

        async with db.session() as session:
            row = (await session.execute(
                select(PriorityDB).where(PriorityDB.id == seed.medium_id)
            )).scalar_one_or_none()
        assert row is not None

    async def test_unused_status_deleted(self, db, reference, admin, seed):
        await reference.delete(admin, "status", seed.rejected_id)
        async with db.session() as session:
            row = (await session.execute(
                select(StatusDB).where(StatusDB.id == seed.rejected_id)
            )).scalar_one_or_none()
        assert row is None

    async def test_non_admin_refused(self, reference, requester, seed):
        with pytest.raises(AuthorizationError):
            await reference.delete(requester, "priority", seed.high_id)

    async def test_other_tenant_row_not_found(self, reference, admin, seed):
        with pytest.raises(NotFoundError):
            await reference.delete(admin, "status", seed.other_status_id)

    async def test_unknown_kind(self, reference, admin):
        with pytest.raises(NotFoundError):
            await reference.delete(admin, "colour", 1)

    async def test_bulk_delete_reports_skips(self, reference, lifecycle, admin, task_data, seed):
        await lifecycle.create_task(admin, task_data(priority_id=seed.medium_id))
        result = await reference.delete_many(admin, "priority", [seed.medium_id, seed.high_id, 999])
        assert result.deleted == [seed.high_id]
        assert result.skipped == [
            {"id": seed.medium_id, "reason": "in use"},
            {"id": 999, "reason": "not found"},
        ]

    async def test_task_type_delete(self, reference, admin, seed):
        await reference.delete(admin, "task_type", seed.design_id)
