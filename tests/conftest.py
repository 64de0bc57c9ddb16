"""
Pytest configuration and shared fixtures.

Every database test gets a fresh in-memory SQLite database seeded with
one tenant (admin #1) and a second, unrelated tenant (admin #10).
"""

from datetime import datetime, timedelta
from types import SimpleNamespace

import pytest

from config import settings
from vendorconnect.database import (
    Database,
    UserDB,
    ClientDB,
    ProjectDB,
    StatusDB,
    PriorityDB,
    TaskTypeDB,
    TagDB,
    TaskBriefTemplateDB,
    TaskBriefQuestionDB,
    TaskBriefChecklistDB,
)
from vendorconnect.services import EventBus, Principal, TaskLifecycleManager, ReportingService
from vendorconnect.services.storage import DeliverableStorage

# Fixed "now" for every clock-dependent test
NOW = datetime(2025, 8, 5, 12, 0)


def fixed_clock() -> datetime:
    return NOW


@pytest.fixture(autouse=True)
def utc_timezone(monkeypatch):
    """Store and compare task dates in UTC regardless of the host or .env."""
    monkeypatch.setattr(settings, "timezone", "UTC")


async def seed_tenant(db: Database) -> SimpleNamespace:
    """Create the standard tenant and return the ids tests refer to."""
    await db.initialize()
    async with db.session() as session:
        admin = UserDB(
            id=1, admin_id=1, first_name="Alice", last_name="Admin",
            email="alice@example.com", phone="555-0100", roles=["admin"],
        )
        requester = UserDB(
            id=2, admin_id=1, first_name="Rita", last_name="Requester",
            email="rita@example.com", roles=["requester"],
        )
        sarah = UserDB(
            id=3, admin_id=1, first_name="Sarah", last_name="Tasker",
            email="sarah@example.com", phone="555-0133", roles=["tasker"],
        )
        tom = UserDB(
            id=4, admin_id=1, first_name="Tom", last_name="Tasker",
            email="tom@example.com", roles=["tasker"],
        )
        outsider = UserDB(
            id=10, admin_id=10, first_name="Oscar", last_name="Other",
            email="oscar@example.com", roles=["admin"],
        )
        session.add_all([admin, requester, sarah, tom, outsider])
        await session.flush()

        active = StatusDB(admin_id=1, title="Active")
        completed = StatusDB(admin_id=1, title="Completed")
        rejected = StatusDB(admin_id=1, title="Rejected")
        other_status = StatusDB(admin_id=10, title="Active")
        medium = PriorityDB(admin_id=1, title="Medium")
        high = PriorityDB(admin_id=1, title="High")
        design = TaskTypeDB(admin_id=1, title="Design")
        tag = TagDB(admin_id=1, title="urgent")
        client = ClientDB(
            admin_id=1, first_name="Carla", last_name="Client", company="Acme",
            email="carla@acme.test",
        )
        session.add_all([active, completed, rejected, other_status, medium, high, design, tag, client])
        await session.flush()

        project = ProjectDB(admin_id=1, title="Website Redesign", created_by=1)
        project.clients = [client]
        project.users = [requester]
        session.add(project)

        template = TaskBriefTemplateDB(
            admin_id=1,
            title="Logo design",
            standard_brief="Do X",
            description="Template description",
            deliverable_quantity=3,
        )
        template.questions = [
            TaskBriefQuestionDB(question_text="Preferred colours?", question_type="text"),
            TaskBriefQuestionDB(
                question_text="Style?", question_type="select", options=["flat", "3d"]
            ),
        ]
        template.checklists = [TaskBriefChecklistDB(items=["Sketch", "Vectorise"])]
        session.add(template)
        await session.flush()

        return SimpleNamespace(
            admin_id=admin.id,
            requester_id=requester.id,
            sarah_id=sarah.id,
            tom_id=tom.id,
            outsider_id=outsider.id,
            active_id=active.id,
            completed_id=completed.id,
            rejected_id=rejected.id,
            other_status_id=other_status.id,
            medium_id=medium.id,
            high_id=high.id,
            design_id=design.id,
            tag_id=tag.id,
            client_id=client.id,
            project_id=project.id,
            template_id=template.id,
            question_ids=[q.id for q in template.questions],
            checklist_id=template.checklists[0].id,
        )


@pytest.fixture
def tenant_seeder():
    """The seeding coroutine, for tests that must run it on their own loop."""
    return seed_tenant


@pytest.fixture
async def db():
    database = Database("sqlite+aiosqlite://")
    await database.initialize()
    yield database
    await database.close()


@pytest.fixture
async def seed(db):
    return await seed_tenant(db)


@pytest.fixture
def admin():
    return Principal(user_id=1, roles=("admin",), tenant_id=1)


@pytest.fixture
def requester():
    return Principal(user_id=2, roles=("requester",), tenant_id=1)


@pytest.fixture
def sarah():
    return Principal(user_id=3, roles=("tasker",), tenant_id=1)


@pytest.fixture
def tom():
    return Principal(user_id=4, roles=("tasker",), tenant_id=1)


@pytest.fixture
def outsider():
    return Principal(user_id=10, roles=("admin",), tenant_id=10)


@pytest.fixture
def bus():
    return EventBus()


@pytest.fixture
def lifecycle(db, bus, tmp_path):
    return TaskLifecycleManager(
        db,
        bus=bus,
        clock=fixed_clock,
        storage=DeliverableStorage(root=str(tmp_path)),
    )


@pytest.fixture
def reporting(db):
    return ReportingService(db, clock=fixed_clock)


@pytest.fixture
def task_data(seed):
    """Factory for a valid create payload; keyword arguments override fields."""
    def build(**overrides):
        data = {
            "title": "Review GHL report",
            "description": "Check the monthly numbers",
            "status_id": seed.active_id,
            "priority_id": seed.medium_id,
            "project_id": seed.project_id,
            "start_date": NOW - timedelta(days=1),
            "end_date": NOW + timedelta(days=6),
            "user_ids": [seed.sarah_id],
        }
        data.update(overrides)
        return data
    return build


@pytest.fixture
def now():
    return NOW
