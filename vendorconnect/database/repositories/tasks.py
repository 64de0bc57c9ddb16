"""
Task repository.

Handles:
- Task CRUD with users/clients/tags membership
- Filtered, paginated, visibility-scoped listing
- Bulk deadline enforcement
- Repeat occurrence lookups
- Messages, deliverables and brief answers owned by a task
"""

import logging
from typing import Optional, List, Dict, Any, Tuple, Sequence
from datetime import datetime

from sqlalchemy import select, update, func, and_, or_, true, ColumnElement
from sqlalchemy.orm import selectinload
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from ..models import (
    TaskDB,
    UserDB,
    ClientDB,
    TagDB,
    TaskDeliverableDB,
    DeliverableFileDB,
    TaskMessageDB,
    ChecklistAnswerDB,
    QuestionAnswerDB,
    NotificationDB,
    PortfolioDB,
)
from ..exceptions import DatabaseConstraintError, DatabaseOperationError

logger = logging.getLogger(__name__)

SORTABLE_COLUMNS = {
    "id": TaskDB.id,
    "title": TaskDB.title,
    "created_at": TaskDB.created_at,
    "updated_at": TaskDB.updated_at,
    "start_date": TaskDB.start_date,
    "end_date": TaskDB.end_date,
}


class TaskRepository:
    """Repository for task operations bound to one session."""

    def __init__(self, session: AsyncSession):
        self.session = session

    # ==================== TASK READS ====================

    async def get(
        self,
        task_id: int,
        tenant_id: Optional[int],
        visibility: Optional[ColumnElement] = None,
        detail: bool = False,
    ) -> Optional[TaskDB]:
        """Get a task by id within a tenant, optionally narrowed by a visibility predicate."""
        query = (
            select(TaskDB)
            .where(TaskDB.id == task_id, TaskDB.admin_id == tenant_id)
            .execution_options(populate_existing=True)
        )
        if visibility is not None:
            query = query.where(visibility)
        if detail:
            query = query.options(
                selectinload(TaskDB.deliverables),
                selectinload(TaskDB.messages),
                selectinload(TaskDB.checklist_answers),
                selectinload(TaskDB.question_answers),
            )
        result = await self.session.execute(query)
        return result.scalar_one_or_none()

    async def list(
        self,
        tenant_id: Optional[int],
        visibility: ColumnElement,
        filters: Optional[Dict[str, Any]] = None,
        page: int = 1,
        per_page: int = 15,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[TaskDB], int]:
        """List visible tasks with filters. Returns (page items, total count)."""
        conditions = [TaskDB.admin_id == tenant_id, visibility]
        conditions.extend(self._filter_conditions(filters or {}))

        total = await self.session.scalar(
            select(func.count()).select_from(TaskDB).where(and_(*conditions))
        )

        column = SORTABLE_COLUMNS.get(sort_by, TaskDB.created_at)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        tiebreak = TaskDB.id.asc() if sort_order == "asc" else TaskDB.id.desc()

        result = await self.session.execute(
            select(TaskDB)
            .where(and_(*conditions))
            .order_by(ordering, tiebreak)
            .offset((page - 1) * per_page)
            .limit(per_page)
            .execution_options(populate_existing=True)
        )
        return list(result.scalars().all()), int(total or 0)

    def _filter_conditions(self, filters: Dict[str, Any]) -> List[ColumnElement]:
        conditions = []
        search = filters.get("search")
        if search:
            pattern = f"%{search}%"
            conditions.append(or_(TaskDB.title.ilike(pattern), TaskDB.description.ilike(pattern)))
        if filters.get("user_id"):
            conditions.append(TaskDB.users.any(UserDB.id == filters["user_id"]))
        if filters.get("client_id"):
            conditions.append(TaskDB.clients.any(ClientDB.id == filters["client_id"]))
        if filters.get("status_id"):
            conditions.append(TaskDB.status_id == filters["status_id"])
        if filters.get("priority_id"):
            conditions.append(TaskDB.priority_id == filters["priority_id"])
        if filters.get("project_id"):
            conditions.append(TaskDB.project_id == filters["project_id"])
        return conditions

    async def visible(
        self,
        tenant_id: Optional[int],
        visibility: ColumnElement,
        *conditions: ColumnElement,
        limit: Optional[int] = None,
    ) -> List[TaskDB]:
        """All visible tasks matching extra conditions, oldest first."""
        query = (
            select(TaskDB)
            .where(TaskDB.admin_id == tenant_id, visibility, *conditions)
            .order_by(TaskDB.id.asc())
        )
        if limit:
            query = query.limit(limit)
        result = await self.session.execute(query)
        return list(result.scalars().all())

    async def count(
        self, tenant_id: Optional[int], visibility: ColumnElement, *conditions: ColumnElement
    ) -> int:
        total = await self.session.scalar(
            select(func.count())
            .select_from(TaskDB)
            .where(TaskDB.admin_id == tenant_id, visibility, *conditions)
        )
        return int(total or 0)

    async def status_counts(
        self, tenant_id: Optional[int], visibility: ColumnElement
    ) -> Dict[Optional[int], int]:
        """Number of visible tasks per status id."""
        result = await self.session.execute(
            select(TaskDB.status_id, func.count(TaskDB.id))
            .where(TaskDB.admin_id == tenant_id, visibility)
            .group_by(TaskDB.status_id)
        )
        return {status_id: count for status_id, count in result.all()}

    async def find_by_title(
        self, title: str, tenant_id: Optional[int], visibility: ColumnElement = true()
    ) -> List[TaskDB]:
        """Case-insensitive exact title lookup."""
        result = await self.session.execute(
            select(TaskDB)
            .where(
                TaskDB.admin_id == tenant_id,
                func.lower(TaskDB.title) == title.strip().lower(),
                visibility,
            )
            .order_by(TaskDB.id.asc())
        )
        return list(result.scalars().all())

    # ==================== TASK WRITES ====================

    async def create(
        self,
        task_data: Dict[str, Any],
        users: Sequence[UserDB] = (),
        clients: Sequence[ClientDB] = (),
        tags: Sequence[TagDB] = (),
    ) -> TaskDB:
        """Create a new task with its memberships."""
        try:
            task = TaskDB(**task_data)
            task.users = list(users)
            task.clients = list(clients)
            task.tags = list(tags)
            self.session.add(task)
            await self.session.flush()

            logger.info(f"Created task {task.id} '{task.title}' in tenant {task.admin_id}")
            return task

        except IntegrityError as e:
            logger.error(f"Constraint violation creating task: {e}")
            raise DatabaseConstraintError(
                f"Cannot create task '{task_data.get('title')}': constraint violation"
            )

        except Exception as e:
            logger.error(f"CRITICAL: Task creation failed: {e}", exc_info=True)
            raise DatabaseOperationError(f"Failed to create task: {e}")

    async def apply_updates(self, task: TaskDB, updates: Dict[str, Any]) -> TaskDB:
        """Apply scalar field updates to a loaded task."""
        for field, value in updates.items():
            setattr(task, field, value)
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.error(f"Constraint violation updating task {task.id}: {e}")
            raise DatabaseConstraintError(f"Cannot update task {task.id}: constraint violation")
        return task

    async def delete(self, task: TaskDB) -> None:
        """Hard delete a task and everything it owns."""
        task_id = task.id
        # Load owned children so the ORM cascade can remove them
        await self.get(task_id, task.admin_id, detail=True)

        # Non-owning references survive the task
        await self.session.execute(
            update(TaskDB).where(TaskDB.parent_task_id == task_id).values(parent_task_id=None)
        )
        await self.session.execute(
            update(PortfolioDB).where(PortfolioDB.task_id == task_id).values(task_id=None)
        )
        deliverable_ids = select(TaskDeliverableDB.id).where(TaskDeliverableDB.task_id == task_id)
        await self.session.execute(
            update(PortfolioDB)
            .where(PortfolioDB.deliverable_id.in_(deliverable_ids))
            .values(deliverable_id=None)
        )
        await self.session.execute(
            update(NotificationDB).where(NotificationDB.task_id == task_id).values(task_id=None)
        )

        await self.session.delete(task)
        await self.session.flush()
        logger.info(f"Deleted task {task_id}")

    async def enforce_deadlines(
        self, tenant_id: Optional[int], rejected_status_id: int, now: datetime
    ) -> int:
        """Move every expired strict-deadline task to the rejected status. Idempotent."""
        result = await self.session.execute(
            update(TaskDB)
            .where(
                TaskDB.admin_id == tenant_id,
                TaskDB.close_deadline.is_(True),
                TaskDB.end_date.is_not(None),
                TaskDB.end_date < now,
                or_(TaskDB.status_id.is_(None), TaskDB.status_id != rejected_status_id),
            )
            .values(status_id=rejected_status_id, updated_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount or 0

    async def count_referencing(self, column_name: str, value: int) -> int:
        """Number of tasks whose `column_name` foreign key equals value."""
        column = getattr(TaskDB, column_name)
        total = await self.session.scalar(
            select(func.count()).select_from(TaskDB).where(column == value)
        )
        return int(total or 0)

    # ==================== REPETITION ====================

    async def repeating_parents(self, tenant_id: Optional[int]) -> List[TaskDB]:
        result = await self.session.execute(
            select(TaskDB)
            .where(
                TaskDB.admin_id == tenant_id,
                TaskDB.is_repeating.is_(True),
                TaskDB.repeat_active.is_(True),
                TaskDB.parent_task_id.is_(None),
            )
            .order_by(TaskDB.id.asc())
        )
        return list(result.scalars().all())

    async def children(self, parent_id: int) -> List[TaskDB]:
        result = await self.session.execute(
            select(TaskDB)
            .where(TaskDB.parent_task_id == parent_id)
            .order_by(TaskDB.start_date.asc(), TaskDB.id.asc())
        )
        return list(result.scalars().all())

    async def child_start_dates(self, parent_id: int) -> List[datetime]:
        result = await self.session.execute(
            select(TaskDB.start_date).where(TaskDB.parent_task_id == parent_id)
        )
        return [row for row in result.scalars().all() if row is not None]

    # ==================== MESSAGES ====================

    async def add_message(self, task_id: int, sender_id: int, message: str) -> TaskMessageDB:
        row = TaskMessageDB(task_id=task_id, sender_id=sender_id, message=message)
        self.session.add(row)
        await self.session.flush()
        return row

    async def list_messages(
        self, task_id: int, page: int = 1, per_page: int = 20
    ) -> Tuple[List[TaskMessageDB], int]:
        """Messages newest first."""
        total = await self.session.scalar(
            select(func.count()).select_from(TaskMessageDB).where(TaskMessageDB.task_id == task_id)
        )
        result = await self.session.execute(
            select(TaskMessageDB)
            .where(TaskMessageDB.task_id == task_id)
            .order_by(TaskMessageDB.created_at.desc(), TaskMessageDB.id.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
        )
        return list(result.scalars().all()), int(total or 0)

    # ==================== DELIVERABLES ====================

    async def add_deliverable(
        self, deliverable_data: Dict[str, Any], files: Sequence[Dict[str, Any]] = ()
    ) -> TaskDeliverableDB:
        deliverable = TaskDeliverableDB(**deliverable_data)
        deliverable.files = [DeliverableFileDB(**f) for f in files]
        self.session.add(deliverable)
        await self.session.flush()
        return deliverable

    async def get_deliverable(self, task_id: int, deliverable_id: int) -> Optional[TaskDeliverableDB]:
        result = await self.session.execute(
            select(TaskDeliverableDB).where(
                TaskDeliverableDB.id == deliverable_id,
                TaskDeliverableDB.task_id == task_id,
            )
        )
        return result.scalar_one_or_none()

    async def list_deliverables(self, task_id: int) -> List[TaskDeliverableDB]:
        result = await self.session.execute(
            select(TaskDeliverableDB)
            .where(TaskDeliverableDB.task_id == task_id)
            .order_by(TaskDeliverableDB.id.asc())
        )
        return list(result.scalars().all())

    async def add_portfolio(self, portfolio_data: Dict[str, Any]) -> PortfolioDB:
        portfolio = PortfolioDB(**portfolio_data)
        self.session.add(portfolio)
        await self.session.flush()
        return portfolio

    # ==================== BRIEF ANSWERS ====================

    async def get_checklist_answer(
        self, task_id: int, checklist_id: int, user_id: int
    ) -> Optional[ChecklistAnswerDB]:
        result = await self.session.execute(
            select(ChecklistAnswerDB).where(
                ChecklistAnswerDB.task_id == task_id,
                ChecklistAnswerDB.checklist_id == checklist_id,
                ChecklistAnswerDB.answer_by == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def upsert_checklist_item(
        self,
        task_id: int,
        checklist_id: int,
        user_id: int,
        item_index: int,
        completed: bool,
        notes: Optional[str],
    ) -> ChecklistAnswerDB:
        """Insert or overwrite one checklist item answer. One row per (task, checklist, user)."""
        answer = await self.get_checklist_answer(task_id, checklist_id, user_id)
        if answer is None:
            answer = ChecklistAnswerDB(
                task_id=task_id, checklist_id=checklist_id, answer_by=user_id, items={}
            )
            self.session.add(answer)

        # Reassign so the JSON column is flagged dirty
        items = dict(answer.items or {})
        items[str(item_index)] = {"completed": bool(completed), "notes": notes}
        answer.items = items

        await self.session.flush()
        return answer

    async def checklist_answers(self, task_id: int, user_id: int) -> List[ChecklistAnswerDB]:
        result = await self.session.execute(
            select(ChecklistAnswerDB)
            .where(ChecklistAnswerDB.task_id == task_id, ChecklistAnswerDB.answer_by == user_id)
            .order_by(ChecklistAnswerDB.checklist_id.asc())
        )
        return list(result.scalars().all())

    async def upsert_question_answer(
        self, task_id: int, question_id: int, user_id: int, answer_text: Optional[str]
    ) -> QuestionAnswerDB:
        """Insert or overwrite the answer keyed by (task, question, user)."""
        result = await self.session.execute(
            select(QuestionAnswerDB).where(
                QuestionAnswerDB.task_id == task_id,
                QuestionAnswerDB.question_id == question_id,
                QuestionAnswerDB.answer_by == user_id,
            )
        )
        answer = result.scalar_one_or_none()
        if answer is None:
            answer = QuestionAnswerDB(task_id=task_id, question_id=question_id, answer_by=user_id)
            self.session.add(answer)
        answer.answer = answer_text
        await self.session.flush()
        return answer
