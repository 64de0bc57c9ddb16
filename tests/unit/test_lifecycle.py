"""
Tests for TaskLifecycleManager.

Covers create/update validation, membership sync, events, repetition
toggles, deletes, messages, deliverables and brief answers.
"""

from datetime import timedelta, timezone
from unittest.mock import AsyncMock, patch

import pytest
from sqlalchemy import select, func

from vendorconnect.database import PortfolioDB, NotificationDB
from vendorconnect.database.repositories import ReferenceRepository, TaskRepository
from vendorconnect.exceptions import (
    AuthorizationError,
    BusinessRuleError,
    NotFoundError,
    ValidationError,
)
from vendorconnect.services import EventType
from vendorconnect.services.notifications import register_notification_handlers
from vendorconnect.services.storage import IncomingFile


@pytest.fixture
def events(bus):
    """Collect every event published on the test bus."""
    received = []

    async def collect(event):
        received.append(event)

    for event_type in EventType:
        bus.subscribe(event_type, collect)
    return received


class TestCreate:
    """Task creation."""

    async def test_create_with_memberships(self, lifecycle, admin, task_data, seed):
        view = await lifecycle.create_task(admin, task_data(
            client_ids=[seed.client_id], tag_ids=[seed.tag_id], task_type_id=seed.design_id,
        ))
        task = view.task
        assert task.id is not None
        assert task.admin_id == 1
        assert task.created_by == seed.admin_id
        assert [u.id for u in task.users] == [seed.sarah_id]
        assert [c.id for c in task.clients] == [seed.client_id]
        assert [t.title for t in task.tags] == ["urgent"]
        assert view.status.title == "Active"
        assert view.expired is False

    async def test_missing_fields_reported_per_field(self, lifecycle, admin, seed):
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_task(admin, {"title": "  "})
        errors = exc_info.value.errors
        assert set(errors) >= {"title", "status_id", "priority_id", "project_id"}

    async def test_reference_from_other_tenant_rejected(self, lifecycle, admin, task_data, seed):
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_task(admin, task_data(status_id=seed.other_status_id))
        assert "status_id" in exc_info.value.errors

    async def test_end_before_start_rejected(self, lifecycle, admin, task_data, now):
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_task(admin, task_data(start_date=now, end_date=now - timedelta(days=1)))
        assert "end_date" in exc_info.value.errors

    async def test_repeating_needs_start_date(self, lifecycle, admin, task_data):
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.create_task(admin, task_data(
                start_date=None, is_repeating=True, repeat_frequency="weekly",
            ))
        assert "start_date" in exc_info.value.errors

    async def test_unknown_users_are_dropped(self, lifecycle, admin, task_data, seed):
        view = await lifecycle.create_task(admin, task_data(user_ids=[seed.sarah_id, seed.outsider_id, 999]))
        assert [u.id for u in view.task.users] == [seed.sarah_id]

    async def test_assignment_event_after_commit(self, lifecycle, bus, admin, task_data, seed, events):
        view = await lifecycle.create_task(admin, task_data(user_ids=[seed.sarah_id, seed.tom_id]))
        await bus.drain()

        assert len(events) == 1
        assert events[0].event_type == EventType.TASK_ASSIGNED
        assert events[0].task_id == view.task.id
        assert events[0].user_ids == [seed.sarah_id, seed.tom_id]

    async def test_no_event_when_creation_fails(self, lifecycle, bus, admin, task_data, events):
        with pytest.raises(ValidationError):
            await lifecycle.create_task(admin, task_data(title=""))
        await bus.drain()
        assert events == []


class TestUpdate:
    """Partial updates, membership sync and completion."""

    async def test_membership_replaced_and_only_new_users_notified(
        self, lifecycle, bus, admin, task_data, seed, events
    ):
        view = await lifecycle.create_task(admin, task_data(user_ids=[seed.sarah_id]))
        await bus.drain()
        events.clear()

        updated = await lifecycle.update_task(admin, view.task.id, {"user_ids": [seed.sarah_id, seed.tom_id]})
        await bus.drain()

        assert sorted(u.id for u in updated.task.users) == [seed.sarah_id, seed.tom_id]
        assert [e.user_ids for e in events] == [[seed.tom_id]]

    async def test_empty_user_ids_clears_assignment(self, lifecycle, admin, task_data):
        view = await lifecycle.create_task(admin, task_data())
        updated = await lifecycle.update_task(admin, view.task.id, {"user_ids": []})
        assert updated.task.users == []

    async def test_absent_membership_untouched(self, lifecycle, admin, task_data, seed):
        view = await lifecycle.create_task(admin, task_data())
        updated = await lifecycle.update_task(admin, view.task.id, {"title": "Renamed"})
        assert updated.task.title == "Renamed"
        assert [u.id for u in updated.task.users] == [seed.sarah_id]

    async def test_completion_event_fires_once(self, lifecycle, bus, admin, task_data, seed, events):
        view = await lifecycle.create_task(admin, task_data())
        await bus.drain()
        events.clear()

        await lifecycle.update_status(admin, view.task.id, seed.completed_id)
        await lifecycle.update_status(admin, view.task.id, seed.completed_id)
        await bus.drain()

        completed = [e for e in events if e.event_type == EventType.TASK_COMPLETED]
        assert len(completed) == 1
        assert completed[0].user_ids == [seed.admin_id, seed.sarah_id]

    async def test_assigned_tasker_can_update(self, lifecycle, admin, sarah, task_data, seed):
        view = await lifecycle.create_task(admin, task_data())
        updated = await lifecycle.update_status(sarah, view.task.id, seed.completed_id)
        assert updated.status.id == seed.completed_id

    async def test_assigned_requester_cannot_update_foreign_task(self, lifecycle, admin, requester, task_data, seed):
        view = await lifecycle.create_task(admin, task_data(user_ids=[seed.requester_id]))
        with pytest.raises(AuthorizationError):
            await lifecycle.update_task(requester, view.task.id, {"title": "Mine now"})

    async def test_unassigned_tasker_gets_not_found(self, lifecycle, admin, tom, task_data):
        view = await lifecycle.create_task(admin, task_data())
        with pytest.raises(NotFoundError):
            await lifecycle.update_task(tom, view.task.id, {"title": "Nope"})

    async def test_deadline_update(self, lifecycle, admin, task_data, now):
        view = await lifecycle.create_task(admin, task_data())
        updated = await lifecycle.update_deadline(admin, view.task.id, now + timedelta(days=30))
        assert updated.task.end_date == now + timedelta(days=30)

    async def test_deadline_update_with_offset(self, lifecycle, admin, task_data, now):
        view = await lifecycle.create_task(admin, task_data())
        aware = (now + timedelta(days=30)).replace(tzinfo=timezone.utc)
        updated = await lifecycle.update_deadline(admin, view.task.id, aware)
        assert updated.task.end_date == now + timedelta(days=30)
        assert updated.task.end_date.tzinfo is None

    async def test_create_with_mixed_offsets(self, lifecycle, admin, task_data, now):
        view = await lifecycle.create_task(admin, task_data(
            start_date=now,
            end_date=(now + timedelta(hours=3)).replace(tzinfo=timezone(timedelta(hours=2))),
        ))
        assert view.task.end_date == now + timedelta(hours=1)
        assert view.expired is False

    async def test_failed_update_leaves_task_untouched(
        self, lifecycle, bus, admin, task_data, seed, events
    ):
        view = await lifecycle.create_task(admin, task_data())
        await bus.drain()
        events.clear()

        # users sync and the title flush succeed before the tag lookup fails
        with patch.object(ReferenceRepository, "tags", AsyncMock(side_effect=RuntimeError("tag store down"))):
            with pytest.raises(RuntimeError):
                await lifecycle.update_task(admin, view.task.id, {
                    "title": "Renamed",
                    "user_ids": [seed.tom_id],
                    "tag_ids": [seed.tag_id],
                })
        await bus.drain()

        reloaded = await lifecycle.get_task(admin, view.task.id)
        assert reloaded.task.title == "Review GHL report"
        assert [u.id for u in reloaded.task.users] == [seed.sarah_id]
        assert reloaded.task.tags == []
        assert events == []


class TestRepetitionToggles:
    """stop/resume repetition."""

    async def test_toggle_repeating_task(self, lifecycle, admin, task_data):
        view = await lifecycle.create_task(admin, task_data(is_repeating=True, repeat_frequency="weekly"))
        assert view.task.repeat_active is True

        stopped = await lifecycle.stop_repetition(admin, view.task.id)
        assert stopped.task.repeat_active is False
        assert stopped.task.is_repeating is True

        resumed = await lifecycle.resume_repetition(admin, view.task.id)
        assert resumed.task.repeat_active is True

    async def test_non_repeating_task_rejected(self, lifecycle, admin, task_data):
        view = await lifecycle.create_task(admin, task_data())
        with pytest.raises(BusinessRuleError):
            await lifecycle.stop_repetition(admin, view.task.id)

    async def test_tasker_cannot_toggle(self, lifecycle, admin, sarah, task_data):
        view = await lifecycle.create_task(admin, task_data(is_repeating=True, repeat_frequency="daily"))
        with pytest.raises(AuthorizationError):
            await lifecycle.stop_repetition(sarah, view.task.id)


class TestDelete:
    """Single and bulk deletes."""

    async def test_delete_removes_owned_rows(self, lifecycle, admin, sarah, task_data):
        view = await lifecycle.create_task(admin, task_data())
        await lifecycle.add_message(sarah, view.task.id, "On it")
        await lifecycle.add_deliverable(sarah, view.task.id, {"title": "Draft"})

        await lifecycle.delete_task(admin, view.task.id)
        with pytest.raises(NotFoundError):
            await lifecycle.get_task(admin, view.task.id)

    async def test_assignee_cannot_delete(self, lifecycle, admin, sarah, task_data):
        view = await lifecycle.create_task(admin, task_data())
        with pytest.raises(AuthorizationError):
            await lifecycle.delete_task(sarah, view.task.id)

    async def test_creator_can_delete(self, lifecycle, requester, task_data):
        view = await lifecycle.create_task(requester, task_data(user_ids=[]))
        await lifecycle.delete_task(requester, view.task.id)

    async def test_bulk_delete_skips_missing_and_forbidden(self, lifecycle, admin, sarah, task_data):
        own = await lifecycle.create_task(admin, task_data(title="One"))
        other = await lifecycle.create_task(admin, task_data(title="Two"))

        result = await lifecycle.delete_tasks(admin, [own.task.id, 999, own.task.id])
        assert result.deleted == [own.task.id]
        assert result.skipped == [{"id": 999, "reason": "not found"}]

        result = await lifecycle.delete_tasks(sarah, [other.task.id])
        assert result.deleted == []
        assert result.skipped == [{"id": other.task.id, "reason": "forbidden"}]


class TestCollaboration:
    """Messages, deliverables and brief answers."""

    async def test_messages_newest_first(self, lifecycle, admin, sarah, task_data):
        view = await lifecycle.create_task(admin, task_data())
        await lifecycle.add_message(sarah, view.task.id, "First")
        second = await lifecycle.add_message(admin, view.task.id, "  Second  ")

        assert second.message == "Second"
        assert second.sender.first_name == "Alice"

        messages, total = await lifecycle.list_messages(sarah, view.task.id)
        assert total == 2
        assert [m.message for m in messages] == ["Second", "First"]

    async def test_blank_message_rejected(self, lifecycle, admin, task_data):
        view = await lifecycle.create_task(admin, task_data())
        with pytest.raises(ValidationError):
            await lifecycle.add_message(admin, view.task.id, "   ")

    async def test_deliverable_with_file_projects_to_portfolio(
        self, db, lifecycle, bus, admin, sarah, task_data, seed, events, now
    ):
        view = await lifecycle.create_task(admin, task_data())
        deliverable = await lifecycle.add_deliverable(
            sarah,
            view.task.id,
            {"title": "Logo v1", "type": "design", "external_link": "https://example.com/logo"},
            files=[IncomingFile(filename="../logo final.png", content=b"png-bytes", content_type="image/png")],
        )
        await bus.drain()

        assert deliverable.type == "design"
        assert len(deliverable.files) == 1
        assert deliverable.files[0].file_name == "logo_final.png"
        assert deliverable.files[0].file_size == len(b"png-bytes")

        async with db.session() as session:
            portfolios = (await session.execute(select(PortfolioDB))).scalars().all()
        assert len(portfolios) == 1
        assert portfolios[0].client_id == seed.client_id
        assert portfolios[0].deliverable_id == deliverable.id

        added = [e for e in events if e.event_type == EventType.DELIVERABLE_ADDED]
        assert added[0].payload["deliverable_title"] == "Logo v1"

        completed = await lifecycle.complete_deliverable(admin, view.task.id, deliverable.id)
        assert completed.completed_at == now

        listed = await lifecycle.list_deliverables(sarah, view.task.id)
        assert [d.id for d in listed] == [deliverable.id]

    async def test_failed_deliverable_removes_saved_files(
        self, lifecycle, bus, admin, task_data, events, tmp_path
    ):
        view = await lifecycle.create_task(admin, task_data())
        await bus.drain()
        events.clear()

        with patch.object(TaskRepository, "add_deliverable", AsyncMock(side_effect=RuntimeError("disk full"))):
            with pytest.raises(RuntimeError):
                await lifecycle.add_deliverable(
                    admin,
                    view.task.id,
                    {"title": "Logo v1", "type": "design"},
                    files=[IncomingFile(filename="logo.png", content=b"png-bytes", content_type="image/png")],
                )
        await bus.drain()

        directory = tmp_path / "deliverables" / str(view.task.id)
        assert list(directory.iterdir()) == []
        assert events == []
        assert await lifecycle.list_deliverables(admin, view.task.id) == []

    async def test_invalid_deliverable_type(self, lifecycle, admin, task_data):
        view = await lifecycle.create_task(admin, task_data())
        with pytest.raises(ValidationError) as exc_info:
            await lifecycle.add_deliverable(admin, view.task.id, {"title": "Clip", "type": "video"})
        assert "type" in exc_info.value.errors

    async def test_unknown_deliverable(self, lifecycle, admin, task_data):
        view = await lifecycle.create_task(admin, task_data())
        with pytest.raises(NotFoundError):
            await lifecycle.complete_deliverable(admin, view.task.id, 999)

    async def test_question_answer_upsert(self, lifecycle, admin, sarah, task_data, seed):
        view = await lifecycle.create_task(admin, task_data(template_id=seed.template_id))
        question_id = seed.question_ids[0]

        first = await lifecycle.submit_question_answer(sarah, view.task.id, question_id, "Blue")
        second = await lifecycle.submit_question_answer(sarah, view.task.id, question_id, "Green")
        assert second.id == first.id
        assert second.answer == "Green"

        with pytest.raises(ValidationError):
            await lifecycle.submit_question_answer(sarah, view.task.id, 9999, "?")

    async def test_checklist_round_trip(self, lifecycle, admin, sarah, task_data, seed):
        view = await lifecycle.create_task(admin, task_data(template_id=seed.template_id))

        await lifecycle.submit_checklist_answer(sarah, view.task.id, seed.checklist_id, 0, True, "done")
        status = await lifecycle.checklist_status(sarah, view.task.id)
        assert status["total"] == 2
        assert status["completed_count"] == 1
        assert status["checklist"][0] == {
            "checklist_id": seed.checklist_id,
            "item_index": 0,
            "text": "Sketch",
            "completed": True,
            "notes": "done",
        }

        answer = await lifecycle.submit_checklist_answer(sarah, view.task.id, seed.checklist_id, 0, False)
        assert answer.items == {"0": {"completed": False, "notes": None}}
        status = await lifecycle.checklist_status(sarah, view.task.id)
        assert status["completed_count"] == 0

        # Answers are per user
        admin_status = await lifecycle.checklist_status(admin, view.task.id)
        assert admin_status["completed_count"] == 0

    async def test_checklist_item_must_exist(self, lifecycle, admin, sarah, task_data, seed):
        view = await lifecycle.create_task(admin, task_data(template_id=seed.template_id))
        with pytest.raises(ValidationError):
            await lifecycle.submit_checklist_answer(sarah, view.task.id, seed.checklist_id, 5, True)


class TestNotifications:
    """Notification rows written by the event subscriber."""

    async def test_assignee_notified_but_not_actor(self, db, lifecycle, bus, admin, task_data, seed):
        register_notification_handlers(bus, db)
        await lifecycle.create_task(admin, task_data(user_ids=[seed.admin_id, seed.sarah_id]))
        await bus.drain()

        async with db.session() as session:
            rows = (await session.execute(select(NotificationDB))).scalars().all()
            count = await session.scalar(select(func.count()).select_from(NotificationDB))
        assert count == 1
        assert rows[0].user_id == seed.sarah_id
        assert rows[0].type == "task_assigned"
