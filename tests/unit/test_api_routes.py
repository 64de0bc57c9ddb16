"""
Tests for FastAPI route endpoints (web/routes.py and main.py).

The app runs against an in-memory SQLite database opened on the
TestClient's own event loop; services are swapped in through
app.dependency_overrides.
"""

from datetime import datetime, timedelta
from types import SimpleNamespace
from unittest.mock import patch

import pytest
from fastapi import Depends
from fastapi.testclient import TestClient

from vendorconnect.ai import ActionExecutor, SmartTaskAssistant
from vendorconnect.ai.intent import Unresolved
from vendorconnect.database import Database
from vendorconnect.main import app
from vendorconnect.services import EventBus, TaskLifecycleManager, ReportingService
from vendorconnect.services.storage import DeliverableStorage
from vendorconnect.utils import get_local_now
from vendorconnect.web.dependencies import get_db, get_lifecycle, get_reporting, get_assistant


class SilentOracle:
    async def interpret(self, message):
        return Unresolved()


async def _open_database() -> Database:
    database = Database("sqlite+aiosqlite://")
    await database.initialize()
    return database


@pytest.fixture
def api(tmp_path, tenant_seeder):
    """TestClient plus the seeded tenant."""
    with TestClient(app) as client:
        db = client.portal.call(_open_database)
        seed = client.portal.call(tenant_seeder, db)
        bus = EventBus()

        def lifecycle():
            return TaskLifecycleManager(db, bus=bus, storage=DeliverableStorage(root=str(tmp_path)))

        def assistant(
            lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
            reporting: ReportingService = Depends(get_reporting),
        ):
            return SmartTaskAssistant(ActionExecutor(lifecycle, reporting), oracle=SilentOracle())

        app.dependency_overrides[get_db] = lambda: db
        app.dependency_overrides[get_lifecycle] = lifecycle
        app.dependency_overrides[get_assistant] = assistant
        try:
            yield SimpleNamespace(client=client, seed=seed)
        finally:
            app.dependency_overrides.clear()
            client.portal.call(db.close)


def as_user(user_id):
    return {"X-User-Id": str(user_id)}


def new_task(seed, **overrides):
    now = get_local_now()
    body = {
        "title": "Review GHL report",
        "description": "Check the monthly numbers",
        "status_id": seed.active_id,
        "priority_id": seed.medium_id,
        "project_id": seed.project_id,
        "user_ids": [seed.sarah_id],
        "start_date": (now - timedelta(days=1)).isoformat(),
        "end_date": (now + timedelta(days=6)).isoformat(),
    }
    body.update(overrides)
    return body


def create(api, **overrides):
    response = api.client.post("/api/tasks", json=new_task(api.seed, **overrides), headers=as_user(api.seed.admin_id))
    assert response.status_code == 201
    return response.json()["data"]


# ==================== HEALTH & INFO ROUTES ====================

class TestHealthAndInfo:
    """Test health check and info endpoints."""

    def test_root_endpoint(self, api):
        response = api.client.get("/")
        assert response.status_code == 200
        assert response.json()["service"] == "VendorConnect Task Engine"

    def test_health(self, api):
        response = api.client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] in ("healthy", "degraded")
        assert "database" in data["services"]

    def test_health_hides_failure_detail(self, api):
        with patch("vendorconnect.main.get_database", side_effect=RuntimeError("password=hunter2")):
            response = api.client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "degraded"
        assert data["services"]["database"] == {"status": "error", "error": "unhealthy"}
        assert "hunter2" not in response.text


# ==================== AUTH ====================

class TestCallerResolution:
    """Test the X-User-Id header."""

    def test_missing_header(self, api):
        response = api.client.get("/api/tasks")
        assert response.status_code == 422
        assert "X-User-Id" in response.json()["errors"]

    def test_non_integer_header(self, api):
        response = api.client.get("/api/tasks", headers={"X-User-Id": "alice"})
        assert response.status_code == 422

    def test_unknown_user(self, api):
        response = api.client.get("/api/tasks", headers=as_user(999))
        assert response.status_code == 403
        assert response.json() == {"success": False, "message": "Unknown or inactive user"}


# ==================== TASK API ====================

class TestTaskRoutes:
    """Test the task endpoints."""

    def test_create_task(self, api):
        task = create(api)
        assert task["title"] == "Review GHL report"
        assert task["status"]["title"] == "Active"
        assert task["users"][0]["email"] == "sarah@example.com"

    def test_create_invalid_dates(self, api):
        body = new_task(api.seed, end_date="2020-01-01T00:00:00")
        body["start_date"] = "2020-02-01T00:00:00"
        response = api.client.post("/api/tasks", json=body, headers=as_user(api.seed.admin_id))
        assert response.status_code == 422
        assert response.json()["success"] is False
        assert response.json()["message"] == "The given data was invalid."

    def test_create_with_offset_dates(self, api):
        body = new_task(api.seed, start_date="2030-01-01T10:00:00+02:00", end_date="2030-01-01T09:00:00Z")
        response = api.client.post("/api/tasks", json=body, headers=as_user(api.seed.admin_id))
        assert response.status_code == 201
        data = response.json()["data"]
        assert data["start_date"] == "2030-01-01T08:00:00"
        assert data["end_date"] == "2030-01-01T09:00:00"

    def test_create_mixed_offsets_compared_in_utc(self, api):
        body = new_task(api.seed, start_date="2030-01-01T08:00:00", end_date="2030-01-01T07:00:00Z")
        response = api.client.post("/api/tasks", json=body, headers=as_user(api.seed.admin_id))
        assert response.status_code == 422
        assert response.json()["success"] is False

    def test_deadline_with_utc_suffix(self, api):
        task = create(api)
        response = api.client.put(
            f"/api/tasks/{task['id']}/deadline",
            json={"end_date": "2030-06-01T17:30:00Z"},
            headers=as_user(api.seed.admin_id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["end_date"] == "2030-06-01T17:30:00"

    def test_create_missing_references(self, api):
        response = api.client.post("/api/tasks", json={"title": "Bare"}, headers=as_user(api.seed.admin_id))
        assert response.status_code == 422
        errors = response.json()["errors"]
        assert errors["status_id"] == ["The status_id field is required."]
        assert "project_id" in errors

    def test_tasker_list_is_scoped(self, api):
        create(api)

        tom = api.client.get("/api/tasks", headers=as_user(api.seed.tom_id)).json()["data"]
        assert tom["total"] == 0
        assert tom["data"] == []

        sarah = api.client.get("/api/tasks", headers=as_user(api.seed.sarah_id)).json()["data"]
        assert sarah["total"] == 1
        assert sarah["current_page"] == 1
        assert sarah["last_page"] == 1
        assert "email" not in sarah["data"][0]["users"][0]

    def test_list_filters_and_paging(self, api):
        create(api, title="First")
        create(api, title="Second")
        response = api.client.get(
            "/api/tasks",
            params={"per_page": 1, "sort_by": "title", "sort_order": "asc"},
            headers=as_user(api.seed.admin_id),
        )
        page = response.json()["data"]
        assert [t["title"] for t in page["data"]] == ["First"]
        assert page["last_page"] == 2

        bad = api.client.get("/api/tasks", params={"sort_by": "password"}, headers=as_user(api.seed.admin_id))
        assert bad.status_code == 422

    def test_get_unknown_task(self, api):
        response = api.client.get("/api/tasks/999", headers=as_user(api.seed.admin_id))
        assert response.status_code == 404

    def test_update_and_status(self, api):
        task = create(api)
        response = api.client.put(
            f"/api/tasks/{task['id']}",
            json={"title": "Review GHL report v2", "user_ids": [api.seed.tom_id]},
            headers=as_user(api.seed.admin_id),
        )
        assert response.status_code == 200
        assert [u["id"] for u in response.json()["data"]["users"]] == [api.seed.tom_id]

        response = api.client.put(
            f"/api/tasks/{task['id']}/status",
            json={"status_id": api.seed.completed_id},
            headers=as_user(api.seed.admin_id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["status"]["title"] == "Completed"

    def test_requester_cannot_modify_foreign_task(self, api):
        task = create(api)
        response = api.client.put(
            f"/api/tasks/{task['id']}/status",
            json={"status_id": api.seed.completed_id},
            headers=as_user(api.seed.requester_id),
        )
        assert response.status_code == 404

    def test_delete_multiple(self, api):
        task = create(api)
        response = api.client.post(
            "/api/tasks/delete-multiple",
            json={"ids": [task["id"], 999]},
            headers=as_user(api.seed.admin_id),
        )
        assert response.status_code == 200
        assert response.json()["data"] == {
            "deleted": [task["id"]],
            "skipped": [{"id": 999, "reason": "not found"}],
        }

    def test_sweeps_are_admin_only(self, api):
        assert api.client.post("/api/tasks/enforce-deadlines", headers=as_user(api.seed.sarah_id)).status_code == 403

        response = api.client.post("/api/tasks/enforce-deadlines", headers=as_user(api.seed.admin_id))
        assert response.status_code == 200
        assert response.json()["data"] == {"rejected": 0}

    def test_messages(self, api):
        task = create(api)
        response = api.client.post(
            f"/api/tasks/{task['id']}/messages",
            json={"message": "Draft is up"},
            headers=as_user(api.seed.sarah_id),
        )
        assert response.status_code == 201

        listing = api.client.get(f"/api/tasks/{task['id']}/messages", headers=as_user(api.seed.admin_id))
        assert listing.json()["data"]["data"][0]["message"] == "Draft is up"


# ==================== REFERENCE DATA ====================

class TestReferenceRoutes:
    """Test guarded reference-data deletes."""

    def test_status_in_use(self, api):
        create(api)
        response = api.client.delete(f"/api/statuses/{api.seed.active_id}", headers=as_user(api.seed.admin_id))
        assert response.status_code == 400
        assert response.json()["success"] is False

    def test_priority_in_use(self, api):
        task = create(api)
        response = api.client.delete(f"/api/priorities/{api.seed.medium_id}", headers=as_user(api.seed.admin_id))
        assert response.status_code == 400
        assert response.json()["success"] is False

        fetched = api.client.get(f"/api/tasks/{task['id']}", headers=as_user(api.seed.admin_id))
        assert fetched.json()["data"]["priority"]["id"] == api.seed.medium_id

    def test_unused_priority(self, api):
        response = api.client.delete(f"/api/priorities/{api.seed.high_id}", headers=as_user(api.seed.admin_id))
        assert response.status_code == 200

    def test_tasker_forbidden(self, api):
        response = api.client.delete(f"/api/priorities/{api.seed.high_id}", headers=as_user(api.seed.sarah_id))
        assert response.status_code == 403


# ==================== LOOKUPS ====================

class TestLookups:
    """Test users, dashboard and search."""

    def test_users_pii_for_tasker(self, api):
        users = api.client.get("/api/users", headers=as_user(api.seed.sarah_id)).json()["data"]
        assert all("email" not in u and "phone" not in u for u in users)

        users = api.client.get("/api/users", headers=as_user(api.seed.admin_id)).json()["data"]
        assert users[0]["email"] == "alice@example.com"

    def test_dashboard(self, api):
        create(api)
        data = api.client.get("/api/dashboard", headers=as_user(api.seed.admin_id)).json()["data"]
        assert data["total_tasks"] == 1

    def test_search(self, api):
        create(api)
        data = api.client.get("/api/search", params={"q": "ghl"}, headers=as_user(api.seed.admin_id)).json()["data"]
        assert [t["title"] for t in data["tasks"]] == ["Review GHL report"]


# ==================== ASSISTANT ====================

class TestSmartTask:
    """Test the assistant endpoint."""

    def test_explicit_action(self, api):
        response = api.client.post(
            "/api/smart-task", json={"action": "get_dashboard"}, headers=as_user(api.seed.admin_id)
        )
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert "dashboard" in body["data"]
        assert "timestamp" in body

    def test_empty_request(self, api):
        response = api.client.post("/api/smart-task", json={}, headers=as_user(api.seed.admin_id))
        assert response.status_code == 422

    def test_failure_status_is_mirrored(self, api):
        response = api.client.post(
            "/api/smart-task", json={"message": "delete task 999"}, headers=as_user(api.seed.admin_id)
        )
        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_unresolved(self, api):
        response = api.client.post(
            "/api/smart-task", json={"message": "hello there"}, headers=as_user(api.seed.admin_id)
        )
        assert response.status_code == 200
        assert response.json()["data"]["unresolved"] is True

    def test_create_from_message(self, api):
        response = api.client.post(
            "/api/smart-task",
            json={"message": "Create a task for Sarah to review the GHL report"},
            headers=as_user(api.seed.admin_id),
        )
        assert response.status_code == 200
        assert response.json()["data"]["task"]["title"] == "review the GHL report"
