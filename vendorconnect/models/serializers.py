"""
ORM row -> JSON-ready dict conversion for API and assistant payloads.

Dates are ISO strings. Relations are only read when the caller loaded
them (detail views); PII stripping happens afterwards in the web layer.
"""

from datetime import date, datetime
from typing import Any, Dict, List, Optional

from ..database.models import (
    TaskDB,
    UserDB,
    ClientDB,
    ProjectDB,
    TaskMessageDB,
    TaskDeliverableDB,
    DeliverableFileDB,
    ChecklistAnswerDB,
    QuestionAnswerDB,
)


def iso(value: Optional[Any]) -> Optional[str]:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    return value


def named(entity: Any) -> Optional[Dict[str, Any]]:
    """Status, priority, task type or tag as {id, title}."""
    if entity is None:
        return None
    return {"id": entity.id, "title": entity.title}


def user_payload(user: Optional[UserDB]) -> Optional[Dict[str, Any]]:
    if user is None:
        return None
    return {
        "id": user.id,
        "first_name": user.first_name,
        "last_name": user.last_name,
        "full_name": user.full_name,
        "email": user.email,
        "phone": user.phone,
        "address": user.address,
        "dob": iso(user.dob),
        "roles": list(user.roles or []),
        "status": user.status,
    }


def client_payload(client: ClientDB) -> Dict[str, Any]:
    return {
        "id": client.id,
        "first_name": client.first_name,
        "last_name": client.last_name,
        "company": client.company,
        "email": client.email,
        "phone": client.phone,
        "address": client.address,
        "dob": iso(client.dob),
    }


def project_payload(project: Optional[ProjectDB], with_members: bool = False) -> Optional[Dict[str, Any]]:
    if project is None:
        return None
    payload = {
        "id": project.id,
        "title": project.title,
        "description": project.description,
        "start_date": iso(project.start_date),
        "end_date": iso(project.end_date),
    }
    if with_members:
        payload["clients"] = [client_payload(c) for c in project.clients]
        payload["users"] = [user_payload(u) for u in project.users]
    return payload


def file_payload(file: DeliverableFileDB) -> Dict[str, Any]:
    return {
        "id": file.id,
        "file_name": file.file_name,
        "file_path": file.file_path,
        "file_size": file.file_size,
        "mime_type": file.mime_type,
    }


def deliverable_payload(deliverable: TaskDeliverableDB) -> Dict[str, Any]:
    return {
        "id": deliverable.id,
        "task_id": deliverable.task_id,
        "title": deliverable.title,
        "description": deliverable.description,
        "type": deliverable.type,
        "google_link": deliverable.google_link,
        "external_link": deliverable.external_link,
        "completed_at": iso(deliverable.completed_at),
        "created_by": deliverable.created_by,
        "created_at": iso(deliverable.created_at),
        "files": [file_payload(f) for f in deliverable.files],
    }


def message_payload(message: TaskMessageDB) -> Dict[str, Any]:
    return {
        "id": message.id,
        "task_id": message.task_id,
        "message": message.message,
        "sender": user_payload(message.sender),
        "created_at": iso(message.created_at),
    }


def checklist_answer_payload(answer: ChecklistAnswerDB) -> Dict[str, Any]:
    return {
        "id": answer.id,
        "task_id": answer.task_id,
        "checklist_id": answer.checklist_id,
        "answer_by": answer.answer_by,
        "items": answer.items or {},
        "updated_at": iso(answer.updated_at),
    }


def question_answer_payload(answer: QuestionAnswerDB) -> Dict[str, Any]:
    return {
        "id": answer.id,
        "task_id": answer.task_id,
        "question_id": answer.question_id,
        "answer_by": answer.answer_by,
        "answer": answer.answer,
        "updated_at": iso(answer.updated_at),
    }


def task_payload(
    task: TaskDB,
    status: Any = None,
    expired: bool = False,
    detail: bool = False,
) -> Dict[str, Any]:
    """
    A task with its expanded relations.

    `status` is the effective status (Rejected for an expired strict task);
    it defaults to the stored one. `detail` adds deliverables, messages and
    brief answers, which must already be loaded.
    """
    effective = status if status is not None else task.status
    payload: Dict[str, Any] = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "status_id": effective.id if effective else task.status_id,
        "status": named(effective),
        "priority_id": task.priority_id,
        "priority": named(task.priority),
        "task_type_id": task.task_type_id,
        "task_type": named(task.task_type),
        "project_id": task.project_id,
        "project": project_payload(task.project),
        "users": [user_payload(u) for u in task.users],
        "clients": [client_payload(c) for c in task.clients],
        "tags": [named(t) for t in task.tags],
        "start_date": iso(task.start_date),
        "end_date": iso(task.end_date),
        "close_deadline": bool(task.close_deadline),
        "deadline_expired": expired,
        "is_repeating": bool(task.is_repeating),
        "repeat_frequency": task.repeat_frequency,
        "repeat_interval": task.repeat_interval,
        "repeat_until": iso(task.repeat_until),
        "repeat_active": bool(task.repeat_active),
        "parent_task_id": task.parent_task_id,
        "last_repeated_at": iso(task.last_repeated_at),
        "template_id": task.template_id,
        "template_questions": task.template_questions or [],
        "template_checklist": task.template_checklist or [],
        "template_standard_brief": task.template_standard_brief,
        "template_description": task.template_description,
        "template_deliverable_quantity": task.template_deliverable_quantity,
        "deliverable_quantity": task.deliverable_quantity,
        "created_by": task.created_by,
        "creator": user_payload(task.creator),
        "created_at": iso(task.created_at),
        "updated_at": iso(task.updated_at),
    }
    if detail:
        payload["deliverables"] = [deliverable_payload(d) for d in task.deliverables]
        payload["messages"] = [message_payload(m) for m in task.messages]
        payload["checklist_answers"] = [checklist_answer_payload(a) for a in task.checklist_answers]
        payload["question_answers"] = [question_answer_payload(a) for a in task.question_answers]
    return payload


def view_payload(view: Any, detail: bool = False) -> Dict[str, Any]:
    """Serialize a lifecycle TaskView."""
    return task_payload(view.task, status=view.status, expired=view.expired, detail=detail)


def views_payload(views: List[Any]) -> List[Dict[str, Any]]:
    return [view_payload(v) for v in views]
