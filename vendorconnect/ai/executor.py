"""
Action executor for the Smart Task assistant.

Runs one ParsedIntent against the lifecycle and reporting services on
behalf of a Principal and renders the outcome as chat content plus a
JSON-ready data payload. Every service call goes through `_invoke`, which
logs method, target and outcome. Nothing raised below escapes `execute`:
typed errors become friendly failures with their HTTP status, anything
else becomes a generic 500.
"""

import logging
import random
import re
import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, List, Optional, Union

from config import settings
from ..database.models import RepeatFrequencyEnum, DeliverableTypeEnum, TaskDB, UserDB
from ..exceptions import VendorConnectError, ValidationError, NotFoundError
from ..models import serializers
from ..services.lifecycle import TaskLifecycleManager, TaskView
from ..services.reporting import ReportingService
from ..services.visibility import Principal
from ..utils.datetime_utils import get_local_now, to_naive_local
from .disambiguation import Disambiguation, DisambiguationPolicy
from .intent import AssistantAction, ParsedIntent
from .matching import FuzzyEntityResolver
from .responses import (
    bullet_list,
    display_name,
    format_date,
    friendly_failure,
    mask_email,
    task_line,
    tip,
)

logger = logging.getLogger(__name__)

_TASK_ID = re.compile(r"^\s*(?:task\s*)?#?\s*(\d+)\s*$", re.I)


@dataclass
class ActionResult:
    success: bool
    content: str
    data: Any = None
    status_code: int = 200
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        body: Dict[str, Any] = {"success": self.success, "content": self.content}
        if self.message:
            body["message"] = self.message
        if self.data is not None:
            body["data"] = self.data
        return body


def parse_task_id(value: Any) -> Optional[int]:
    """12, "12", "#12" and "task 12" all mean task 12."""
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value
    match = _TASK_ID.match(str(value))
    return int(match.group(1)) if match else None


def parse_due_date(value: Any) -> Optional[datetime]:
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return to_naive_local(value)
    text = str(value).strip()
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return to_naive_local(datetime.fromisoformat(text))
    except ValueError:
        raise ValidationError(
            "The given data was invalid.",
            errors={"due_date": ["The due date must be a date in YYYY-MM-DD format."]},
        )


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in {"1", "true", "yes", "y"}
    return bool(value)


class ActionExecutor:
    """Executes assistant actions. One handler per vocabulary entry."""

    def __init__(
        self,
        lifecycle: TaskLifecycleManager,
        reporting: ReportingService,
        resolver: Optional[FuzzyEntityResolver] = None,
        policy: Optional[DisambiguationPolicy] = None,
        rng: Optional[random.Random] = None,
        clock: Callable[[], datetime] = get_local_now,
    ):
        self.lifecycle = lifecycle
        self.reporting = reporting
        self.resolver = resolver or FuzzyEntityResolver()
        self.policy = policy or DisambiguationPolicy()
        self.rng = rng
        self.clock = clock

        self._handlers = {
            AssistantAction.CREATE_TASK: self._create_task,
            AssistantAction.UPDATE_TASK: self._update_task,
            AssistantAction.DELETE_TASK: self._delete_task,
            AssistantAction.GET_USER_TASKS: self._get_user_tasks,
            AssistantAction.LIST_TASKS: self._list_tasks,
            AssistantAction.GET_TASK_STATUS: self._get_task_status,
            AssistantAction.GET_TASK_UPDATES: self._get_task_updates,
            AssistantAction.ADD_TASK_MESSAGE: self._add_task_message,
            AssistantAction.ADD_TASK_ATTACHMENT: self._add_task_attachment,
            AssistantAction.GET_USERS: self._get_users,
            AssistantAction.GET_PROJECTS: self._get_projects,
            AssistantAction.GET_PROJECT_PROGRESS: self._get_project_progress,
            AssistantAction.GET_DASHBOARD: self._get_dashboard,
            AssistantAction.SEARCH_CONTENT: self._search_content,
            AssistantAction.UPDATE_TASK_STATUS: self._update_task_status,
            AssistantAction.UPDATE_TASK_PRIORITY: self._update_task_priority,
        }

    # ==================== ENTRY ====================

    async def execute(self, principal: Principal, intent: ParsedIntent) -> ActionResult:
        logger.info(
            f"Assistant action {intent.action.value} ({intent.source}) "
            f"for user {principal.user_id}: {intent.params}"
        )
        handler = self._handlers[intent.action]
        try:
            return await handler(principal, dict(intent.params or {}))
        except VendorConnectError as e:
            logger.warning(f"Assistant action {intent.action.value} failed: {e.message}")
            return self.failure(e.message, status_code=e.status_code, errors=e.errors)
        except Exception as e:
            logger.error(f"Unexpected error in assistant action {intent.action.value}: {e}", exc_info=True)
            return self.failure(
                "Something unexpected happened while handling your request.",
                status_code=500,
            )

    def failure(
        self,
        what: str,
        status_code: int = 400,
        suggestions: Optional[List[str]] = None,
        errors: Optional[Dict[str, Any]] = None,
    ) -> ActionResult:
        return ActionResult(
            success=False,
            content=friendly_failure(what, suggestions, rng=self.rng),
            data={"errors": errors} if errors else None,
            status_code=status_code,
            message=what,
        )

    async def _invoke(self, method: str, target: str, call: Awaitable[Any]) -> Any:
        """Await one service call, logging method, target, outcome and elapsed time."""
        started = time.perf_counter()
        try:
            result = await call
        except Exception as e:
            elapsed = (time.perf_counter() - started) * 1000
            logger.warning(f"{method} {target} -> failed ({elapsed:.0f}ms): {type(e).__name__}: {e}")
            raise
        elapsed = (time.perf_counter() - started) * 1000
        logger.info(f"{method} {target} -> ok ({elapsed:.0f}ms)")
        return result

    # ==================== RESOLUTION HELPERS ====================

    async def _resolve_task(
        self, principal: Principal, params: Dict[str, Any], action: AssistantAction
    ) -> Union[TaskView, Disambiguation]:
        """A task by id, or by fuzzy title which may need disambiguation."""
        task_id = parse_task_id(params.get("task_id"))
        title = (params.get("task_title") or "").strip()
        if task_id is None and title:
            task_id = parse_task_id(title)

        if task_id is None:
            if not title:
                raise ValidationError(
                    "Please tell me which task you mean, e.g. \"status of task #12\".",
                    errors={"task_id": ["A task id or task title is required."]},
                )
            tasks = await self._invoke("GET", "tasks", self.reporting.tasks(principal))
            decision = self.policy.decide(self.resolver.match_task(title, tasks), action.value)
            if decision is None:
                raise NotFoundError(f"No task matches \"{title}\".")
            if isinstance(decision, Disambiguation):
                return decision
            task_id = decision.id

        return await self._invoke("GET", f"tasks/{task_id}", self.lifecycle.get_task(principal, task_id))

    async def _resolve_user(self, principal: Principal, name: str) -> UserDB:
        users = await self._invoke("GET", "users", self.reporting.users(principal))
        user = self.resolver.match_user(name, users)
        if user is None:
            roster = [self._user_label(principal, u) for u in users] or ["No users available"]
            raise NotFoundError(
                f"User '{name}' not found.\n\n👥 Available users:\n{bullet_list(roster)}\n\n"
                f"Please check the spelling or use a different name."
            )
        return user

    @staticmethod
    def _user_label(principal: Principal, user: UserDB) -> str:
        email = user.email if principal.is_admin else mask_email(user.email)
        return f"{display_name(user)} ({email or 'no email'})"

    async def _resolve_named(
        self, principal: Principal, kind: str, name: Any, default_title: Optional[str] = None
    ) -> Any:
        """Status or priority by (fuzzy) title, falling back to a default title, then the first row."""
        loader = self.reporting.statuses if kind == "status" else self.reporting.priorities
        rows = await self._invoke("GET", f"{kind}es" if kind == "status" else "priorities", loader(principal))
        if name:
            found = self.resolver.match_titled(str(name), rows)
            if found is None:
                choices = ", ".join(r.title for r in rows) or "none configured"
                raise NotFoundError(f"Unknown {kind} '{name}'. Available: {choices}.")
            return found
        if default_title:
            for row in rows:
                if row.title.lower() == default_title.lower():
                    return row
        if not rows:
            raise NotFoundError(f"No {kind} is configured for your workspace.")
        return rows[0]

    @staticmethod
    def _disambiguate(decision: Disambiguation) -> ActionResult:
        return ActionResult(success=True, content=decision.render(), data=decision.to_data())

    # ==================== TASK WRITES ====================

    async def _create_task(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        """
        Create a task for a named user. An existing task with the same title
        (exact, or a fuzzy match above reassign_match_threshold) is reassigned
        to that user instead of being duplicated.
        """
        title = (params.get("title") or "").strip()
        user_name = (params.get("user_name") or "").strip()
        if not title:
            raise ValidationError(
                "Please tell me what the task is, e.g. \"create a task for Sarah to review the report\".",
                errors={"title": ["The title field is required."]},
            )
        if not user_name:
            raise ValidationError(
                "Please specify who to assign the task to, e.g. \"create task for [name] to [action]\".",
                errors={"user_name": ["An assignee is required."]},
            )

        user = await self._resolve_user(principal, user_name)

        existing: Optional[TaskDB] = None
        same_title = await self._invoke("GET", "tasks?title", self.reporting.tasks_titled(principal, title))
        if same_title:
            existing = same_title[0]
        else:
            tasks = await self._invoke("GET", "tasks", self.reporting.tasks(principal))
            match = self.resolver.match_task(title, tasks, threshold=settings.reassign_match_threshold)
            decision = self.policy.decide(match, AssistantAction.CREATE_TASK.value)
            if isinstance(decision, Disambiguation):
                return self._disambiguate(decision)
            existing = decision

        if existing is not None:
            view = await self._invoke(
                "PUT", f"tasks/{existing.id}",
                self.lifecycle.update_task(principal, existing.id, {"user_ids": [user.id]}),
            )
            content = (
                f"🔁 **Task Reassigned**\n\n{task_line(view.task, view.status)}\n\n"
                f"{tip(f'A task with this title already existed, so I assigned it to {display_name(user)} instead of creating a duplicate.')}"
            )
            return ActionResult(
                success=True,
                content=content,
                data={
                    "task": serializers.view_payload(view),
                    "user": serializers.user_payload(user),
                    "reassigned": True,
                },
            )

        status = await self._resolve_named(
            principal, "status", params.get("status"), settings.assistant_default_status_title
        )
        priority = await self._resolve_named(
            principal, "priority", params.get("priority"), settings.assistant_default_priority_title
        )
        project = await self._project_for_create(principal, params.get("project"))

        now = self.clock()
        due = parse_due_date(params.get("due_date")) or now + timedelta(days=settings.assistant_default_due_days)
        data: Dict[str, Any] = {
            "title": title,
            "description": params.get("description"),
            "status_id": status.id,
            "priority_id": priority.id,
            "project_id": project.id,
            "start_date": now,
            "end_date": due,
            "user_ids": [user.id],
        }
        repeating = _truthy(params.get("is_repeating"))
        if repeating:
            frequency = str(params.get("repeat_frequency") or RepeatFrequencyEnum.WEEKLY.value).lower()
            data.update(is_repeating=True, repeat_frequency=frequency, repeat_interval=1)

        view = await self._invoke("POST", "tasks", self.lifecycle.create_task(principal, data))
        recurring = f" (repeats {data['repeat_frequency']})" if repeating else ""
        hint = tip(f"You can check on this task anytime by asking: \"What tasks does {user.first_name} have?\"")
        content = (
            f"✅ **Task Created Successfully!**\n\n{task_line(view.task, view.status)}{recurring}\n\n{hint}"
        )
        return ActionResult(
            success=True,
            content=content,
            data={
                "task": serializers.view_payload(view),
                "user": serializers.user_payload(user),
                "reassigned": False,
            },
        )

    async def _project_for_create(self, principal: Principal, reference: Any) -> Any:
        projects = await self._invoke("GET", "projects", self.reporting.projects(principal))
        if reference not in (None, ""):
            project_id = parse_task_id(reference)
            for project in projects:
                if project_id is not None and project.id == project_id:
                    return project
            found = self.resolver.match_project(str(reference), projects)
            if found is None:
                raise NotFoundError(f"Project '{reference}' not found.")
            return found
        if not projects:
            raise NotFoundError("There is no project to put the task in. Create a project first.")
        return projects[0]

    async def _update_task(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        target = await self._resolve_task(principal, params, AssistantAction.UPDATE_TASK)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)

        patch: Dict[str, Any] = {}
        if params.get("title"):
            patch["title"] = params["title"]
        if "description" in params:
            patch["description"] = params["description"]
        if params.get("due_date"):
            patch["end_date"] = parse_due_date(params["due_date"])
        if params.get("priority"):
            patch["priority_id"] = (await self._resolve_named(principal, "priority", params["priority"])).id
        if params.get("status"):
            patch["status_id"] = (await self._resolve_named(principal, "status", params["status"])).id
        if params.get("user_name"):
            patch["user_ids"] = [(await self._resolve_user(principal, params["user_name"])).id]
        if not patch:
            raise ValidationError(
                "Tell me what to change: title, description, due date, priority, status or assignee.",
                errors={"params": ["No changes were given."]},
            )

        view = await self._invoke(
            "PUT", f"tasks/{target.task.id}", self.lifecycle.update_task(principal, target.task.id, patch)
        )
        return ActionResult(
            success=True,
            content=f"✏️ **Task Updated**\n\n{task_line(view.task, view.status)}",
            data={"task": serializers.view_payload(view)},
        )

    async def _delete_task(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        target = await self._resolve_task(principal, params, AssistantAction.DELETE_TASK)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        task = target.task
        await self._invoke("DELETE", f"tasks/{task.id}", self.lifecycle.delete_task(principal, task.id))
        return ActionResult(
            success=True,
            content=f"🗑️ Task #{task.id} **{task.title}** was deleted.",
            data={"task_id": task.id, "deleted": True},
        )

    async def _update_task_status(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        if not params.get("status"):
            raise ValidationError(
                "Which status should the task move to?",
                errors={"status": ["The status field is required."]},
            )
        target = await self._resolve_task(principal, params, AssistantAction.UPDATE_TASK_STATUS)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        status = await self._resolve_named(principal, "status", params["status"])
        view = await self._invoke(
            "PUT", f"tasks/{target.task.id}/status",
            self.lifecycle.update_status(principal, target.task.id, status.id),
        )
        return ActionResult(
            success=True,
            content=f"📊 Task #{view.task.id} is now **{status.title}**.\n\n{task_line(view.task, view.status)}",
            data={"task": serializers.view_payload(view)},
        )

    async def _update_task_priority(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        if not params.get("priority"):
            raise ValidationError(
                "Which priority should the task get?",
                errors={"priority": ["The priority field is required."]},
            )
        target = await self._resolve_task(principal, params, AssistantAction.UPDATE_TASK_PRIORITY)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        priority = await self._resolve_named(principal, "priority", params["priority"])
        view = await self._invoke(
            "PUT", f"tasks/{target.task.id}",
            self.lifecycle.update_task(principal, target.task.id, {"priority_id": priority.id}),
        )
        return ActionResult(
            success=True,
            content=f"🎯 Task #{view.task.id} priority set to **{priority.title}**.",
            data={"task": serializers.view_payload(view)},
        )

    async def _add_task_message(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        text = (params.get("message") or "").strip()
        if not text:
            raise ValidationError(
                "What should the comment say?",
                errors={"message": ["The message field is required."]},
            )
        target = await self._resolve_task(principal, params, AssistantAction.ADD_TASK_MESSAGE)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        message = await self._invoke(
            "POST", f"tasks/{target.task.id}/messages",
            self.lifecycle.add_message(principal, target.task.id, text),
        )
        return ActionResult(
            success=True,
            content=f"💬 Comment added to **{target.task.title}** (#{target.task.id}).",
            data={"message": serializers.message_payload(message)},
        )

    async def _add_task_attachment(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        url = (params.get("url") or "").strip()
        if not url.startswith(("http://", "https://")):
            raise ValidationError(
                "Please give me a link starting with http:// or https://.",
                errors={"url": ["The url must be a valid http(s) URL."]},
            )
        target = await self._resolve_task(principal, params, AssistantAction.ADD_TASK_ATTACHMENT)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        deliverable = await self._invoke(
            "POST", f"tasks/{target.task.id}/deliverables",
            self.lifecycle.add_deliverable(
                principal,
                target.task.id,
                {
                    "title": params.get("title") or url,
                    "type": DeliverableTypeEnum.LINK.value,
                    "external_link": url,
                },
            ),
        )
        return ActionResult(
            success=True,
            content=f"📎 Link attached to **{target.task.title}** (#{target.task.id}).",
            data={"deliverable": serializers.deliverable_payload(deliverable)},
        )

    # ==================== TASK READS ====================

    async def _get_user_tasks(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        name = (params.get("user_name") or "").strip()
        if not name:
            raise ValidationError(
                "Please specify a user name, e.g. \"show me [name]'s tasks\".",
                errors={"user_name": ["The user_name field is required."]},
            )
        user = await self._resolve_user(principal, name)
        page = await self._invoke(
            "GET", f"tasks?user_id={user.id}",
            self.lifecycle.list_tasks(principal, {"user_id": user.id}, per_page=settings.per_page_max),
        )
        name = display_name(user)
        if not page.items:
            hint = tip(f"You can create one by saying: \"Create a task for {user.first_name} to [action]\"")
            return ActionResult(
                success=True,
                content=f"📋 {name} has no tasks assigned.\n\n{hint}",
                data={"user": serializers.user_payload(user), "tasks": []},
            )
        lines = "\n\n".join(task_line(v.task, v.status, with_assignees=False) for v in page.items)
        return ActionResult(
            success=True,
            content=f"📋 **{name}'s Tasks** ({page.total} total)\n\n{lines}",
            data={"user": serializers.user_payload(user), "tasks": serializers.views_payload(page.items)},
        )

    async def _list_tasks(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        filters: Dict[str, Any] = {}
        if params.get("status"):
            filters["status_id"] = (await self._resolve_named(principal, "status", params["status"])).id
        if params.get("priority"):
            filters["priority_id"] = (await self._resolve_named(principal, "priority", params["priority"])).id
        if params.get("user_name"):
            filters["user_id"] = (await self._resolve_user(principal, params["user_name"])).id
        if params.get("search"):
            filters["search"] = params["search"]

        page = await self._invoke(
            "GET", "tasks", self.lifecycle.list_tasks(principal, filters, per_page=settings.per_page_max)
        )
        if not page.items:
            return ActionResult(
                success=True,
                content=(
                    "📋 No tasks found matching your criteria.\n\n💡 Try asking:\n"
                    + bullet_list(["\"What tasks are active?\"", "\"Show me all tasks\"", "\"What tasks does [name] have?\""])
                ),
                data={"tasks": [], "total": 0},
            )
        lines = "\n\n".join(task_line(v.task, v.status) for v in page.items)
        return ActionResult(
            success=True,
            content=f"📋 **Tasks Found** ({page.total} total)\n\n{lines}",
            data={"tasks": serializers.views_payload(page.items), "total": page.total},
        )

    async def _get_task_status(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        target = await self._resolve_task(principal, params, AssistantAction.GET_TASK_STATUS)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        task, status = target.task, target.status
        assignees = ", ".join(display_name(u) for u in task.users) or "Unassigned"
        content = (
            f"📊 **Task #{task.id} Status**\n\n"
            f"🟡 **{task.title}**\n"
            f"   └ 👤 Assigned to: {assignees}\n"
            f"   └ 📊 Status: {status.title if status else 'Unknown'}\n"
            f"   └ 🎯 Priority: {task.priority.title if task.priority else 'Medium'}\n"
            f"   └ 📁 Project: {task.project.title if task.project else 'No Project'}\n"
            f"   └ 🗓️ Due: {format_date(task.end_date)}"
        )
        if target.expired:
            content += "\n\n⛔ The strict deadline for this task has passed."
        content += "\n\n" + tip(f"Need to update this task? Just ask: \"Mark task #{task.id} as completed\"")
        return ActionResult(success=True, content=content, data={"task": serializers.view_payload(target)})

    async def _get_task_updates(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        target = await self._resolve_task(principal, params, AssistantAction.GET_TASK_UPDATES)
        if isinstance(target, Disambiguation):
            return self._disambiguate(target)
        task = target.task
        messages, total = await self._invoke(
            "GET", f"tasks/{task.id}/messages", self.lifecycle.list_messages(principal, task.id)
        )
        if not messages:
            return ActionResult(
                success=True,
                content=f"💬 No updates yet on **{task.title}** (#{task.id}).",
                data={"task_id": task.id, "messages": [], "total": 0},
            )
        lines = [
            f"**{display_name(m.sender) if m.sender else 'Someone'}** ({format_date(m.created_at)}): {m.message}"
            for m in messages
        ]
        return ActionResult(
            success=True,
            content=f"💬 **Updates on {task.title}** ({total} total)\n\n{bullet_list(lines)}",
            data={
                "task_id": task.id,
                "messages": [serializers.message_payload(m) for m in messages],
                "total": total,
            },
        )

    # ==================== LOOKUPS ====================

    async def _get_users(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        users = await self._invoke("GET", "users", self.reporting.users(principal))
        lines = [
            f"{self._user_label(principal, u)} · {', '.join(u.roles or []) or 'no role'}" for u in users
        ]
        return ActionResult(
            success=True,
            content=f"👥 **Team Members** ({len(users)} total)\n\n{bullet_list(lines) or 'No users found.'}",
            data={"users": [serializers.user_payload(u) for u in users]},
        )

    async def _get_projects(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        projects = await self._invoke("GET", "projects", self.reporting.projects(principal))
        lines = [f"**{p.title}** (#{p.id}) 🗓️ {format_date(p.end_date)}" for p in projects]
        return ActionResult(
            success=True,
            content=f"📁 **Projects** ({len(projects)} total)\n\n{bullet_list(lines) or 'No projects found.'}",
            data={"projects": [serializers.project_payload(p) for p in projects]},
        )

    async def _get_project_progress(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        reference = params.get("project") or params.get("project_id") or params.get("project_name")
        if reference in (None, ""):
            raise ValidationError(
                "Which project? e.g. \"progress of project Website Redesign\".",
                errors={"project": ["The project field is required."]},
            )
        project_id = parse_task_id(reference)
        if project_id is not None:
            progress = await self._invoke(
                "GET", f"projects/{project_id}/progress",
                self.reporting.project_progress(principal, project_id=project_id),
            )
        else:
            projects = await self._invoke("GET", "projects", self.reporting.projects(principal))
            project = self.resolver.match_project(str(reference), projects)
            if project is None:
                raise NotFoundError(f"Project '{reference}' not found.")
            progress = await self._invoke(
                "GET", f"projects/{project.id}/progress",
                self.reporting.project_progress(principal, project=project),
            )

        filled = progress["percentage"] // 10
        bar = "▓" * filled + "░" * (10 - filled)
        content = (
            f"📈 **{progress['project']}** progress\n\n"
            f"{bar} {progress['percentage']}%\n\n"
            + bullet_list([
                f"Total tasks: {progress['total_tasks']}",
                f"Completed: {progress['completed_tasks']}",
                f"Overdue: {progress['overdue_tasks']}",
            ])
        )
        return ActionResult(success=True, content=content, data={"progress": progress})

    async def _get_dashboard(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        stats = await self._invoke("GET", "dashboard", self.reporting.dashboard(principal))
        per_status = [f"{row['status']}: {row['count']}" for row in stats["by_status"]]
        content = (
            f"📊 **Dashboard**\n\n"
            + bullet_list([
                f"Total tasks: {stats['total_tasks']}",
                f"Overdue: {stats['overdue']}",
                f"Due this week: {stats['due_this_week']}",
                f"Your open tasks: {stats['my_open_tasks']}",
            ])
        )
        if per_status:
            content += "\n\n**By status**\n" + bullet_list(per_status)
        return ActionResult(success=True, content=content, data={"dashboard": stats})

    async def _search_content(self, principal: Principal, params: Dict[str, Any]) -> ActionResult:
        query = (params.get("query") or params.get("search") or "").strip()
        if not query:
            raise ValidationError(
                "What should I search for?",
                errors={"query": ["The query field is required."]},
            )
        found = await self._invoke("GET", f"search?q={query}", self.reporting.search(principal, query))
        tasks, projects, clients = found["tasks"], found["projects"], found["clients"]
        sections = []
        if tasks:
            sections.append("**Tasks**\n" + bullet_list([f"{t.title} (#{t.id})" for t in tasks]))
        if projects:
            sections.append("**Projects**\n" + bullet_list([f"{p.title} (#{p.id})" for p in projects]))
        if clients:
            sections.append("**Clients**\n" + bullet_list([
                f"{c.first_name} {c.last_name or ''}".strip() + (f" · {c.company}" if c.company else "")
                for c in clients
            ]))
        total = len(tasks) + len(projects) + len(clients)
        body = "\n\n".join(sections) if sections else "Nothing matched. Try a shorter or different word."
        return ActionResult(
            success=True,
            content=f"🔎 **Search results for \"{query}\"** ({total} found)\n\n{body}",
            data={
                "tasks": [serializers.task_payload(t) for t in tasks],
                "projects": [serializers.project_payload(p) for p in projects],
                "clients": [serializers.client_payload(c) for c in clients],
            },
        )
