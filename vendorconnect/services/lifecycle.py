"""
Task lifecycle manager.

Owns create/update/status/deadline/repetition/delete for tasks and the
collaborative writes hanging off a task (messages, deliverables, brief
answers). Every public method takes an explicit Principal and runs in
exactly one database transaction; events are published only after that
transaction commits.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, List, Dict, Any, Callable, Tuple

from sqlalchemy.ext.asyncio import AsyncSession

from config import settings
from ..database.connection import Database
from ..database.models import (
    TaskDB,
    StatusDB,
    PriorityDB,
    TaskTypeDB,
    TaskMessageDB,
    TaskDeliverableDB,
    ChecklistAnswerDB,
    QuestionAnswerDB,
    RepeatFrequencyEnum,
    DeliverableTypeEnum,
)
from ..database.repositories import (
    TaskRepository,
    ReferenceRepository,
    UserRepository,
    ProjectRepository,
)
from ..exceptions import (
    ValidationError,
    AuthorizationError,
    NotFoundError,
    BusinessRuleError,
)
from . import deadlines
from .events import EventBus, EventType, TaskEvent, get_event_bus
from .repetition import RepeatScheduler
from .storage import DeliverableStorage, IncomingFile
from .templates import BriefTemplateApplier
from .visibility import Principal, scope, can_modify_task
from ..utils.datetime_utils import get_local_now, to_naive_local

logger = logging.getLogger(__name__)

# Scalar task columns settable through create/update
TASK_FIELDS = (
    "title",
    "description",
    "status_id",
    "priority_id",
    "task_type_id",
    "project_id",
    "start_date",
    "end_date",
    "close_deadline",
    "is_repeating",
    "repeat_frequency",
    "repeat_interval",
    "repeat_until",
    "deliverable_quantity",
)

DATE_FIELDS = ("start_date", "end_date", "repeat_until")

MEMBERSHIP_FIELDS = ("user_ids", "client_ids", "tag_ids")

MESSAGES_PER_PAGE = 20


def _naive_dates(fields: Dict[str, Any]) -> Dict[str, Any]:
    for name in DATE_FIELDS:
        if isinstance(fields.get(name), datetime):
            fields[name] = to_naive_local(fields[name])
    return fields


@dataclass
class TaskView:
    """A task as it must be shown: effective status plus expiry flag."""
    task: TaskDB
    status: Optional[StatusDB]
    expired: bool


@dataclass
class TaskPage:
    items: List[TaskView]
    total: int
    page: int
    per_page: int

    @property
    def last_page(self) -> int:
        return max((self.total + self.per_page - 1) // self.per_page, 1)


@dataclass
class BulkResult:
    deleted: List[int] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {"deleted": self.deleted, "skipped": self.skipped}


@dataclass
class _Statuses:
    rejected: Optional[StatusDB]
    completed: Optional[StatusDB]

    @property
    def rejected_id(self) -> Optional[int]:
        return self.rejected.id if self.rejected else None

    @property
    def completed_id(self) -> Optional[int]:
        return self.completed.id if self.completed else None


class TaskLifecycleManager:
    """Business rules for the task lifecycle."""

    def __init__(
        self,
        db: Database,
        bus: Optional[EventBus] = None,
        clock: Callable[[], datetime] = get_local_now,
        storage: Optional[DeliverableStorage] = None,
        persist_deadlines_on_read: Optional[bool] = None,
    ):
        self.db = db
        self.bus = bus or get_event_bus()
        self.clock = clock
        self.storage = storage or DeliverableStorage()
        self.persist_on_read = (
            settings.persist_deadlines_on_read
            if persist_deadlines_on_read is None
            else persist_deadlines_on_read
        )
        self.repeater = RepeatScheduler(clock=clock)

    # ==================== HELPERS ====================

    async def _statuses(self, session: AsyncSession, tenant_id: Optional[int]) -> _Statuses:
        reference = ReferenceRepository(session)
        return _Statuses(
            rejected=await reference.status_by_title(settings.rejected_status_title, tenant_id),
            completed=await reference.status_by_title(settings.completed_status_title, tenant_id),
        )

    def _view(self, task: TaskDB, statuses: _Statuses, now: datetime) -> TaskView:
        expired = deadlines.is_expired(task, now)
        status = task.status
        if expired and statuses.rejected is not None:
            status = statuses.rejected
        return TaskView(task=task, status=status, expired=expired)

    async def _load_visible(
        self,
        session: AsyncSession,
        principal: Principal,
        task_id: int,
        detail: bool = False,
    ) -> TaskDB:
        task = await TaskRepository(session).get(
            task_id, principal.tenant_id, visibility=scope(principal, "task"), detail=detail
        )
        if task is None:
            raise NotFoundError(f"Task {task_id} not found")
        return task

    async def _load_for_write(
        self, session: AsyncSession, principal: Principal, task_id: int, statuses: _Statuses
    ) -> TaskDB:
        """Visible task with its deadline transition applied before any write is served."""
        task = await self._load_visible(session, principal, task_id)
        deadlines.enforce(task, self.clock(), statuses.rejected_id)
        return task

    @staticmethod
    def _require_role(principal: Principal) -> None:
        if not (principal.is_admin or principal.is_requester or principal.is_tasker):
            raise AuthorizationError("Your role does not allow working with tasks")

    async def _validate(
        self,
        session: AsyncSession,
        principal: Principal,
        fields: Dict[str, Any],
        existing: Optional[TaskDB] = None,
    ) -> None:
        """Field and reference validation; raises ValidationError with per-field messages."""
        errors: Dict[str, List[str]] = {}
        reference = ReferenceRepository(session)
        tenant = principal.tenant_id
        creating = existing is None

        def fail(name: str, message: str) -> None:
            errors.setdefault(name, []).append(message)

        def current(name: str) -> Any:
            if name in fields:
                return fields[name]
            return getattr(existing, name) if existing is not None else None

        if creating or "title" in fields:
            title = (fields.get("title") or "").strip()
            if not title:
                fail("title", "The title field is required.")
            elif len(title) > 255:
                fail("title", "The title may not be greater than 255 characters.")

        for name, model, required in (
            ("status_id", StatusDB, True),
            ("priority_id", PriorityDB, True),
            ("task_type_id", TaskTypeDB, False),
        ):
            if name not in fields and not creating:
                continue
            value = fields.get(name)
            if value is None:
                if required:
                    fail(name, f"The {name} field is required.")
            elif await reference.get(model, value, tenant) is None:
                fail(name, f"The selected {name} is invalid.")

        if creating or "project_id" in fields:
            project_id = fields.get("project_id")
            if project_id is None:
                fail("project_id", "The project_id field is required.")
            elif await ProjectRepository(session).get(project_id, tenant) is None:
                fail("project_id", "The selected project_id is invalid.")

        start, end = current("start_date"), current("end_date")
        if start and end and end < start:
            fail("end_date", "The end date must be a date after or equal to start date.")

        if current("is_repeating"):
            frequency = current("repeat_frequency")
            if frequency not in {f.value for f in RepeatFrequencyEnum}:
                fail("repeat_frequency", "The repeat frequency must be one of daily, weekly, monthly, yearly.")
            interval = current("repeat_interval")
            if interval is not None and interval < 1:
                fail("repeat_interval", "The repeat interval must be at least 1.")
            until = current("repeat_until")
            if until and start and until < start:
                fail("repeat_until", "The repeat until date must be a date after or equal to start date.")
            if not start:
                fail("start_date", "A repeating task needs a start date.")

        if errors:
            raise ValidationError("The given data was invalid.", errors=errors)

    # ==================== READS ====================

    async def list_tasks(
        self,
        principal: Principal,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        per_page: Optional[int] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> TaskPage:
        """Visible tasks, with deadlines enforced and due repeat occurrences generated first."""
        per_page = min(max(per_page or settings.per_page_default, 1), settings.per_page_max)
        page = max(page, 1)
        now = self.clock()

        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            repo = TaskRepository(session)

            if self.persist_on_read:
                await self.repeater.generate(session, principal.tenant_id)
                if statuses.rejected_id is not None:
                    changed = await repo.enforce_deadlines(principal.tenant_id, statuses.rejected_id, now)
                    if changed:
                        logger.info(f"Rejected {changed} expired task(s) in tenant {principal.tenant_id}")

            tasks, total = await repo.list(
                principal.tenant_id,
                scope(principal, "task"),
                filters=filters,
                page=page,
                per_page=per_page,
                sort_by=sort_by,
                sort_order=sort_order,
            )
            items = [self._view(task, statuses, now) for task in tasks]

        return TaskPage(items=items, total=total, page=page, per_page=per_page)

    async def get_task(self, principal: Principal, task_id: int) -> TaskView:
        now = self.clock()
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            task = await self._load_visible(session, principal, task_id, detail=True)
            if self.persist_on_read:
                deadlines.enforce(task, now, statuses.rejected_id)
                await session.flush()
            view = self._view(task, statuses, now)
        return view

    async def occurrences(self, principal: Principal, task_id: int) -> List[TaskView]:
        """Child occurrences generated from a repeating task."""
        now = self.clock()
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            parent = await self._load_visible(session, principal, task_id)
            children = await TaskRepository(session).children(parent.id)
            return [self._view(child, statuses, now) for child in children]

    # ==================== CREATE / UPDATE ====================

    async def create_task(self, principal: Principal, data: Dict[str, Any]) -> TaskView:
        """
        Create a task, optionally from a brief template.

        Template title/brief override request values; an unknown template id
        falls back to the request fields. Assignment notifications go out
        after commit.
        """
        self._require_role(principal)
        now = self.clock()
        events: List[TaskEvent] = []

        async with self.db.session() as session:
            reference = ReferenceRepository(session)
            tenant = principal.tenant_id

            fields = _naive_dates({k: data[k] for k in TASK_FIELDS if data.get(k) is not None})
            applied = await BriefTemplateApplier(reference).apply(data.get("template_id"), tenant)
            if applied is not None:
                fields.update(applied.task_fields(data.get("title"), data.get("description")))

            await self._validate(session, principal, fields)

            fields["title"] = fields["title"].strip()
            fields["admin_id"] = tenant
            fields["created_by"] = principal.user_id
            fields["repeat_active"] = bool(fields.get("is_repeating"))

            users = await UserRepository(session).get_many(data.get("user_ids") or [], tenant)
            clients = await reference.clients(data.get("client_ids") or [], tenant)
            tags = await reference.tags(data.get("tag_ids") or [], tenant)

            repo = TaskRepository(session)
            task = await repo.create(fields, users=users, clients=clients, tags=tags)
            task = await repo.get(task.id, tenant, detail=True)

            statuses = await self._statuses(session, tenant)
            view = self._view(task, statuses, now)

            if users:
                events.append(TaskEvent(
                    event_type=EventType.TASK_ASSIGNED,
                    tenant_id=tenant,
                    task_id=task.id,
                    task_title=task.title,
                    user_ids=[u.id for u in users],
                    actor_id=principal.user_id,
                ))

        self.bus.publish_all(events)
        return view

    async def update_task(self, principal: Principal, task_id: int, patch: Dict[str, Any]) -> TaskView:
        """
        Partial update. Presence of user_ids/client_ids/tag_ids replaces the
        whole membership set. All writes land in one transaction.
        """
        now = self.clock()
        events: List[TaskEvent] = []

        async with self.db.session() as session:
            tenant = principal.tenant_id
            statuses = await self._statuses(session, tenant)
            repo = TaskRepository(session)
            reference = ReferenceRepository(session)

            task = await self._load_for_write(session, principal, task_id, statuses)
            if not can_modify_task(principal, task):
                raise AuthorizationError("You do not have permission to update this task")

            fields = _naive_dates({k: patch[k] for k in TASK_FIELDS if k in patch})
            await self._validate(session, principal, fields, existing=task)
            if "title" in fields:
                fields["title"] = fields["title"].strip()
            if fields.get("is_repeating") and not task.is_repeating:
                fields["repeat_active"] = True

            previous_status = task.status_id
            previous_users = {u.id for u in task.users}
            await repo.apply_updates(task, fields)

            if "user_ids" in patch:
                task.users = await UserRepository(session).get_many(patch["user_ids"] or [], tenant)
            if "client_ids" in patch:
                task.clients = await reference.clients(patch["client_ids"] or [], tenant)
            if "tag_ids" in patch:
                task.tags = await reference.tags(patch["tag_ids"] or [], tenant)
            await session.flush()

            task = await repo.get(task.id, tenant, detail=True)
            view = self._view(task, statuses, now)

            added = [u.id for u in task.users if u.id not in previous_users]
            if added:
                events.append(TaskEvent(
                    event_type=EventType.TASK_ASSIGNED,
                    tenant_id=tenant,
                    task_id=task.id,
                    task_title=task.title,
                    user_ids=added,
                    actor_id=principal.user_id,
                ))
            completion = self._completion_event(task, previous_status, statuses, principal)
            if completion:
                events.append(completion)

        self.bus.publish_all(events)
        return view

    def _completion_event(
        self, task: TaskDB, previous_status: Optional[int], statuses: _Statuses, principal: Principal
    ) -> Optional[TaskEvent]:
        completed_id = statuses.completed_id
        if completed_id is None or task.status_id != completed_id or previous_status == completed_id:
            return None
        recipients = [task.created_by] if task.created_by else []
        recipients.extend(u.id for u in task.users)
        return TaskEvent(
            event_type=EventType.TASK_COMPLETED,
            tenant_id=principal.tenant_id,
            task_id=task.id,
            task_title=task.title,
            user_ids=recipients,
            actor_id=principal.user_id,
        )

    async def update_status(self, principal: Principal, task_id: int, status_id: int) -> TaskView:
        """Change status. Moving into Completed notifies; Rejected is not terminal."""
        return await self.update_task(principal, task_id, {"status_id": status_id})

    async def update_deadline(self, principal: Principal, task_id: int, end_date: Optional[datetime]) -> TaskView:
        return await self.update_task(principal, task_id, {"end_date": end_date})

    async def set_repetition(self, principal: Principal, task_id: int, active: bool) -> TaskView:
        """Stop or resume a repeating task without deleting it."""
        now = self.clock()
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            task = await self._load_visible(session, principal, task_id)

            allowed = principal.is_admin or principal.is_requester or task.created_by == principal.user_id
            if not allowed:
                raise AuthorizationError("Only admins, requesters or the task creator can change repetition")
            if not task.is_repeating:
                raise BusinessRuleError("This task is not a repeating task")

            task.repeat_active = active
            await session.flush()
            logger.info(f"Task {task.id} repetition {'resumed' if active else 'stopped'} by user {principal.user_id}")
            view = self._view(task, statuses, now)
        return view

    async def stop_repetition(self, principal: Principal, task_id: int) -> TaskView:
        return await self.set_repetition(principal, task_id, False)

    async def resume_repetition(self, principal: Principal, task_id: int) -> TaskView:
        return await self.set_repetition(principal, task_id, True)

    # ==================== DELETE ====================

    @staticmethod
    def _can_delete(principal: Principal, task: TaskDB) -> bool:
        return principal.is_admin or task.created_by == principal.user_id

    async def delete_task(self, principal: Principal, task_id: int) -> None:
        async with self.db.session() as session:
            task = await self._load_visible(session, principal, task_id)
            if not self._can_delete(principal, task):
                raise AuthorizationError("You do not have permission to delete this task")
            await TaskRepository(session).delete(task)

    async def delete_tasks(self, principal: Principal, task_ids: List[int]) -> BulkResult:
        """Best-effort bulk delete: missing or forbidden tasks are skipped, not fatal."""
        result = BulkResult()
        async with self.db.session() as session:
            repo = TaskRepository(session)
            for task_id in dict.fromkeys(task_ids):
                task = await repo.get(task_id, principal.tenant_id, visibility=scope(principal, "task"))
                if task is None:
                    result.skipped.append({"id": task_id, "reason": "not found"})
                    continue
                if not self._can_delete(principal, task):
                    result.skipped.append({"id": task_id, "reason": "forbidden"})
                    continue
                await repo.delete(task)
                result.deleted.append(task_id)
        logger.info(f"Bulk delete: {len(result.deleted)} deleted, {len(result.skipped)} skipped")
        return result

    # ==================== SWEEPS ====================

    async def enforce_deadlines(self, tenant_id: Optional[int]) -> int:
        """Persist the Rejected transition for every expired strict-deadline task of a tenant."""
        async with self.db.session() as session:
            statuses = await self._statuses(session, tenant_id)
            if statuses.rejected_id is None:
                logger.warning(f"Tenant {tenant_id} has no '{settings.rejected_status_title}' status")
                return 0
            changed = await TaskRepository(session).enforce_deadlines(
                tenant_id, statuses.rejected_id, self.clock()
            )
        logger.info(f"Deadline sweep for tenant {tenant_id}: {changed} task(s) rejected")
        return changed

    async def generate_repeating(self, tenant_id: Optional[int]) -> List[int]:
        """Materialise due repeat occurrences. Returns the new task ids."""
        async with self.db.session() as session:
            created = await self.repeater.generate(session, tenant_id)
            return [task.id for task in created]

    # ==================== MESSAGES ====================

    async def add_message(self, principal: Principal, task_id: int, message: str) -> TaskMessageDB:
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            task = await self._load_for_write(session, principal, task_id, statuses)
            deadlines.ensure_writable(task, self.clock(), "message")
            if not (message or "").strip():
                raise ValidationError("The given data was invalid.", errors={"message": ["The message field is required."]})
            row = await TaskRepository(session).add_message(task.id, principal.user_id, message.strip())
            await session.refresh(row, ["sender"])
        return row

    async def list_messages(
        self, principal: Principal, task_id: int, page: int = 1
    ) -> Tuple[List[TaskMessageDB], int]:
        async with self.db.session() as session:
            await self._load_visible(session, principal, task_id)
            return await TaskRepository(session).list_messages(task_id, max(page, 1), MESSAGES_PER_PAGE)

    # ==================== DELIVERABLES ====================

    async def add_deliverable(
        self,
        principal: Principal,
        task_id: int,
        data: Dict[str, Any],
        files: Optional[List[IncomingFile]] = None,
    ) -> TaskDeliverableDB:
        """
        Add a deliverable with files. When the task's project has clients,
        the deliverable is also projected into the first client's portfolio.
        """
        events: List[TaskEvent] = []
        stored: List[Dict[str, Any]] = []
        try:
            async with self.db.session() as session:
                statuses = await self._statuses(session, principal.tenant_id)
                task = await self._load_for_write(session, principal, task_id, statuses)
                deadlines.ensure_writable(task, self.clock(), "deliverable")

                errors: Dict[str, List[str]] = {}
                if not (data.get("title") or "").strip():
                    errors["title"] = ["The title field is required."]
                deliverable_type = data.get("type") or DeliverableTypeEnum.OTHER.value
                if deliverable_type not in {t.value for t in DeliverableTypeEnum}:
                    errors["type"] = ["The selected type is invalid."]
                if errors:
                    raise ValidationError("The given data was invalid.", errors=errors)

                stored = await self.storage.save(task.id, files or [])
                repo = TaskRepository(session)
                deliverable = await repo.add_deliverable(
                    {
                        "task_id": task.id,
                        "title": data["title"].strip(),
                        "description": data.get("description"),
                        "type": deliverable_type,
                        "google_link": data.get("google_link"),
                        "external_link": data.get("external_link"),
                        "created_by": principal.user_id,
                    },
                    stored,
                )

                project = task.project
                if project is not None and project.clients:
                    client = project.clients[0]
                    await repo.add_portfolio({
                        "admin_id": principal.tenant_id,
                        "client_id": client.id,
                        "task_id": task.id,
                        "deliverable_id": deliverable.id,
                        "title": deliverable.title,
                        "description": deliverable.description,
                        "deliverable_type": deliverable.type,
                        "status": "completed",
                        "files": [
                            {"file_name": f["file_name"], "file_path": f["file_path"], "mime_type": f["mime_type"]}
                            for f in stored
                        ],
                        "created_by": principal.user_id,
                    })
                    logger.info(f"Projected deliverable {deliverable.id} to portfolio of client {client.id}")

                recipients = [task.created_by] if task.created_by else []
                recipients.extend(u.id for u in task.users)
                events.append(TaskEvent(
                    event_type=EventType.DELIVERABLE_ADDED,
                    tenant_id=principal.tenant_id,
                    task_id=task.id,
                    task_title=task.title,
                    user_ids=recipients,
                    actor_id=principal.user_id,
                    payload={"deliverable_id": deliverable.id, "deliverable_title": deliverable.title},
                ))
        except Exception:
            # files written before a failed flush or commit have no rows
            await self.storage.discard(stored)
            raise

        self.bus.publish_all(events)
        return deliverable

    async def list_deliverables(self, principal: Principal, task_id: int) -> List[TaskDeliverableDB]:
        async with self.db.session() as session:
            await self._load_visible(session, principal, task_id)
            return await TaskRepository(session).list_deliverables(task_id)

    async def complete_deliverable(
        self, principal: Principal, task_id: int, deliverable_id: int
    ) -> TaskDeliverableDB:
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            task = await self._load_for_write(session, principal, task_id, statuses)
            now = self.clock()
            deadlines.ensure_writable(task, now, "deliverable_update")
            deliverable = await TaskRepository(session).get_deliverable(task.id, deliverable_id)
            if deliverable is None:
                raise NotFoundError(f"Deliverable {deliverable_id} not found on task {task_id}")
            deliverable.completed_at = now
            await session.flush()
        return deliverable

    # ==================== BRIEF ANSWERS ====================

    async def submit_question_answer(
        self, principal: Principal, task_id: int, question_id: int, answer: Optional[str]
    ) -> QuestionAnswerDB:
        """Upsert keyed by (task, question, answering user)."""
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            task = await self._load_for_write(session, principal, task_id, statuses)
            deadlines.ensure_writable(task, self.clock(), "question_answer")

            question_ids = {q.get("id") for q in (task.template_questions or [])}
            if question_id not in question_ids:
                raise ValidationError(
                    "The given data was invalid.",
                    errors={"question_id": ["The selected question is not part of this task's brief."]},
                )
            return await TaskRepository(session).upsert_question_answer(
                task.id, question_id, principal.user_id, answer
            )

    async def submit_checklist_answer(
        self,
        principal: Principal,
        task_id: int,
        checklist_id: int,
        item_index: int,
        completed: bool,
        notes: Optional[str] = None,
    ) -> ChecklistAnswerDB:
        """Upsert one checklist item for the answering user; resubmission overwrites."""
        async with self.db.session() as session:
            statuses = await self._statuses(session, principal.tenant_id)
            task = await self._load_for_write(session, principal, task_id, statuses)
            deadlines.ensure_writable(task, self.clock(), "checklist_answer")

            items = {(i.get("checklist_id"), i.get("item_index")) for i in (task.template_checklist or [])}
            if (checklist_id, item_index) not in items:
                raise ValidationError(
                    "The given data was invalid.",
                    errors={"item_index": ["The selected checklist item is not part of this task's brief."]},
                )
            return await TaskRepository(session).upsert_checklist_item(
                task.id, checklist_id, principal.user_id, item_index, completed, notes
            )

    async def checklist_status(self, principal: Principal, task_id: int) -> Dict[str, Any]:
        """The task's checklist snapshot merged with the principal's answers."""
        async with self.db.session() as session:
            task = await self._load_visible(session, principal, task_id)
            answers = await TaskRepository(session).checklist_answers(task.id, principal.user_id)

        answered = {a.checklist_id: a.items or {} for a in answers}
        checklist = []
        for item in task.template_checklist or []:
            state = answered.get(item.get("checklist_id"), {}).get(str(item.get("item_index")), {})
            checklist.append({
                "checklist_id": item.get("checklist_id"),
                "item_index": item.get("item_index"),
                "text": item.get("text"),
                "completed": bool(state.get("completed", False)),
                "notes": state.get("notes"),
            })

        return {
            "task_id": task.id,
            "checklist": checklist,
            "completed_count": sum(1 for item in checklist if item["completed"]),
            "total": len(checklist),
        }
