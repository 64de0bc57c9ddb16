"""
REST routes for tasks, collaboration, reference data, lookups and the
Smart Task assistant.

Every route resolves a Principal, calls one service method and wraps the
result as {success, message, data}. Errors are raised as domain
exceptions and rendered by the handlers registered in main.py.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile
from fastapi.responses import JSONResponse

from ..ai import AssistantRequest, SmartTaskAssistant
from ..exceptions import AuthorizationError
from ..models import (
    TaskCreate,
    TaskUpdate,
    StatusUpdate,
    DeadlineUpdate,
    BulkDelete,
    TaskFilter,
    MessageCreate,
    DeliverableCreate,
    QuestionAnswerSubmit,
    ChecklistAnswerSubmit,
    SmartTaskRequest,
)
from ..models import serializers
from ..services import (
    Principal,
    TaskLifecycleManager,
    ReportingService,
    ReferenceService,
    strip_pii,
)
from ..services.storage import IncomingFile
from .dependencies import (
    get_principal,
    get_lifecycle,
    get_reporting,
    get_reference_service,
    get_assistant,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

REFERENCE_PATHS = {
    "priorities": "priority",
    "statuses": "status",
    "task-types": "task_type",
}


def respond(principal: Principal, data: Any = None, message: str = "OK") -> dict:
    return {"success": True, "message": message, "data": strip_pii(data, principal)}


def _require_admin(principal: Principal, what: str) -> None:
    if not principal.is_admin:
        raise AuthorizationError(f"Only admins can {what}")


# ============================================================================
# Tasks
# ============================================================================

@router.get("/tasks")
async def list_tasks(
    filters: TaskFilter = Depends(),
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    """Paginated, role-scoped task list."""
    page = await lifecycle.list_tasks(
        principal,
        filters.filters(),
        page=filters.page,
        per_page=filters.per_page,
        sort_by=filters.sort_by,
        sort_order=filters.sort_order,
    )
    return respond(principal, {
        "data": serializers.views_payload(page.items),
        "current_page": page.page,
        "per_page": page.per_page,
        "total": page.total,
        "last_page": page.last_page,
    }, "Tasks retrieved successfully")


@router.post("/tasks", status_code=201)
async def create_task(
    body: TaskCreate,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.create_task(principal, body.to_data())
    return respond(principal, serializers.view_payload(view, detail=True), "Task created successfully")


@router.post("/tasks/delete-multiple")
async def delete_tasks(
    body: BulkDelete,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    result = await lifecycle.delete_tasks(principal, body.ids)
    return respond(principal, result.to_dict(), f"{len(result.deleted)} task(s) deleted")


@router.post("/tasks/enforce-deadlines")
async def enforce_deadlines(
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    """Persist the Rejected transition for every expired strict-deadline task of the tenant."""
    _require_admin(principal, "run the deadline sweep")
    changed = await lifecycle.enforce_deadlines(principal.tenant_id)
    return respond(principal, {"rejected": changed}, "Deadlines enforced")


@router.post("/tasks/generate-repeating")
async def generate_repeating(
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    _require_admin(principal, "generate repeating tasks")
    created = await lifecycle.generate_repeating(principal.tenant_id)
    return respond(principal, {"created": created}, f"{len(created)} occurrence(s) created")


@router.get("/tasks/{task_id}")
async def get_task(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.get_task(principal, task_id)
    return respond(principal, serializers.view_payload(view, detail=True), "Task retrieved successfully")


@router.put("/tasks/{task_id}")
async def update_task(
    task_id: int,
    body: TaskUpdate,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.update_task(principal, task_id, body.to_data(exclude_unset=True))
    return respond(principal, serializers.view_payload(view, detail=True), "Task updated successfully")


@router.delete("/tasks/{task_id}")
async def delete_task(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    await lifecycle.delete_task(principal, task_id)
    return respond(principal, None, "Task deleted successfully")


@router.put("/tasks/{task_id}/status")
async def update_status(
    task_id: int,
    body: StatusUpdate,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.update_status(principal, task_id, body.status_id)
    return respond(principal, serializers.view_payload(view), "Task status updated successfully")


@router.put("/tasks/{task_id}/deadline")
async def update_deadline(
    task_id: int,
    body: DeadlineUpdate,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.update_deadline(principal, task_id, body.end_date)
    return respond(principal, serializers.view_payload(view), "Task deadline updated successfully")


@router.post("/tasks/{task_id}/stop-repetition")
async def stop_repetition(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.stop_repetition(principal, task_id)
    return respond(principal, serializers.view_payload(view), "Task repetition stopped")


@router.post("/tasks/{task_id}/resume-repetition")
async def resume_repetition(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    view = await lifecycle.resume_repetition(principal, task_id)
    return respond(principal, serializers.view_payload(view), "Task repetition resumed")


@router.get("/tasks/{task_id}/occurrences")
async def occurrences(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    views = await lifecycle.occurrences(principal, task_id)
    return respond(principal, serializers.views_payload(views), "Occurrences retrieved successfully")


# ============================================================================
# Collaboration
# ============================================================================

@router.post("/tasks/{task_id}/messages", status_code=201)
async def add_message(
    task_id: int,
    body: MessageCreate,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    message = await lifecycle.add_message(principal, task_id, body.message)
    return respond(principal, serializers.message_payload(message), "Message sent successfully")


@router.get("/tasks/{task_id}/messages")
async def list_messages(
    task_id: int,
    page: int = Query(1, ge=1),
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    messages, total = await lifecycle.list_messages(principal, task_id, page)
    return respond(principal, {
        "data": [serializers.message_payload(m) for m in messages],
        "current_page": page,
        "total": total,
    }, "Messages retrieved successfully")


@router.post("/tasks/{task_id}/deliverables", status_code=201)
async def add_deliverable(
    task_id: int,
    title: str = Form(...),
    description: Optional[str] = Form(None),
    type: str = Form("other"),
    google_link: Optional[str] = Form(None),
    external_link: Optional[str] = Form(None),
    files: Optional[List[UploadFile]] = File(None),
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    """Multipart deliverable upload."""
    fields = DeliverableCreate(
        title=title,
        description=description,
        type=type,
        google_link=google_link,
        external_link=external_link,
    )
    incoming = [
        IncomingFile(filename=f.filename or "file", content=await f.read(), content_type=f.content_type)
        for f in (files or [])
    ]
    data = fields.model_dump()
    data["type"] = fields.type.value
    deliverable = await lifecycle.add_deliverable(principal, task_id, data, incoming)
    return respond(principal, serializers.deliverable_payload(deliverable), "Deliverable added successfully")


@router.get("/tasks/{task_id}/deliverables")
async def list_deliverables(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    deliverables = await lifecycle.list_deliverables(principal, task_id)
    return respond(
        principal,
        [serializers.deliverable_payload(d) for d in deliverables],
        "Deliverables retrieved successfully",
    )


@router.put("/tasks/{task_id}/deliverables/{deliverable_id}/complete")
async def complete_deliverable(
    task_id: int,
    deliverable_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    deliverable = await lifecycle.complete_deliverable(principal, task_id, deliverable_id)
    return respond(principal, serializers.deliverable_payload(deliverable), "Deliverable marked as completed")


@router.post("/tasks/{task_id}/question-answer")
async def submit_question_answer(
    task_id: int,
    body: QuestionAnswerSubmit,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    answer = await lifecycle.submit_question_answer(principal, task_id, body.question_id, body.answer)
    return respond(principal, serializers.question_answer_payload(answer), "Answer saved successfully")


@router.post("/tasks/{task_id}/checklist-answer")
async def submit_checklist_answer(
    task_id: int,
    body: ChecklistAnswerSubmit,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    answer = await lifecycle.submit_checklist_answer(
        principal, task_id, body.checklist_id, body.item_index, body.completed, body.notes
    )
    return respond(principal, serializers.checklist_answer_payload(answer), "Checklist answer saved successfully")


@router.get("/tasks/{task_id}/checklist-status")
async def checklist_status(
    task_id: int,
    principal: Principal = Depends(get_principal),
    lifecycle: TaskLifecycleManager = Depends(get_lifecycle),
):
    status = await lifecycle.checklist_status(principal, task_id)
    return respond(principal, status, "Checklist status retrieved successfully")


# ============================================================================
# Reference data
# ============================================================================

async def _delete_reference(kind_path: str, entity_id: int, principal: Principal, service: ReferenceService):
    kind = REFERENCE_PATHS[kind_path]
    await service.delete(principal, kind, entity_id)
    return respond(principal, None, f"{kind.replace('_', ' ').capitalize()} deleted successfully")


async def _delete_references(kind_path: str, ids: List[int], principal: Principal, service: ReferenceService):
    result = await service.delete_many(principal, REFERENCE_PATHS[kind_path], ids)
    return respond(principal, result.to_dict(), f"{len(result.deleted)} deleted, {len(result.skipped)} skipped")


@router.delete("/priorities/{entity_id}")
async def delete_priority(
    entity_id: int,
    principal: Principal = Depends(get_principal),
    service: ReferenceService = Depends(get_reference_service),
):
    return await _delete_reference("priorities", entity_id, principal, service)


@router.delete("/statuses/{entity_id}")
async def delete_status(
    entity_id: int,
    principal: Principal = Depends(get_principal),
    service: ReferenceService = Depends(get_reference_service),
):
    return await _delete_reference("statuses", entity_id, principal, service)


@router.delete("/task-types/{entity_id}")
async def delete_task_type(
    entity_id: int,
    principal: Principal = Depends(get_principal),
    service: ReferenceService = Depends(get_reference_service),
):
    return await _delete_reference("task-types", entity_id, principal, service)


@router.post("/priorities/delete-multiple")
async def delete_priorities(
    body: BulkDelete,
    principal: Principal = Depends(get_principal),
    service: ReferenceService = Depends(get_reference_service),
):
    return await _delete_references("priorities", body.ids, principal, service)


@router.post("/statuses/delete-multiple")
async def delete_statuses(
    body: BulkDelete,
    principal: Principal = Depends(get_principal),
    service: ReferenceService = Depends(get_reference_service),
):
    return await _delete_references("statuses", body.ids, principal, service)


@router.post("/task-types/delete-multiple")
async def delete_task_types(
    body: BulkDelete,
    principal: Principal = Depends(get_principal),
    service: ReferenceService = Depends(get_reference_service),
):
    return await _delete_references("task-types", body.ids, principal, service)


# ============================================================================
# Lookups
# ============================================================================

@router.get("/users")
async def list_users(
    principal: Principal = Depends(get_principal),
    reporting: ReportingService = Depends(get_reporting),
):
    users = await reporting.users(principal)
    return respond(principal, [serializers.user_payload(u) for u in users], "Users retrieved successfully")


@router.get("/projects")
async def list_projects(
    principal: Principal = Depends(get_principal),
    reporting: ReportingService = Depends(get_reporting),
):
    projects = await reporting.projects(principal)
    return respond(
        principal,
        [serializers.project_payload(p, with_members=True) for p in projects],
        "Projects retrieved successfully",
    )


@router.get("/dashboard")
async def dashboard(
    principal: Principal = Depends(get_principal),
    reporting: ReportingService = Depends(get_reporting),
):
    return respond(principal, await reporting.dashboard(principal), "Dashboard retrieved successfully")


@router.get("/search")
async def search(
    q: str = Query("", max_length=255),
    principal: Principal = Depends(get_principal),
    reporting: ReportingService = Depends(get_reporting),
):
    found = await reporting.search(principal, q)
    return respond(principal, {
        "tasks": [serializers.task_payload(t) for t in found["tasks"]],
        "projects": [serializers.project_payload(p) for p in found["projects"]],
        "clients": [serializers.client_payload(c) for c in found["clients"]],
    }, "Search completed")


# ============================================================================
# Assistant
# ============================================================================

@router.post("/smart-task")
async def smart_task(
    body: SmartTaskRequest,
    principal: Principal = Depends(get_principal),
    assistant: SmartTaskAssistant = Depends(get_assistant),
):
    """Natural-language assistant. Always answers with {success, content, data?}."""
    result = await assistant.handle(
        principal,
        AssistantRequest(message=body.message, action=body.action, params=body.params),
    )
    body_out = result.to_dict()
    if "data" in body_out:
        body_out["data"] = strip_pii(body_out["data"], principal)
    body_out["timestamp"] = datetime.now().isoformat()
    return JSONResponse(status_code=result.status_code, content=body_out)
