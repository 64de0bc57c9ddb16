"""
Deadline evaluator.

Strict-deadline tasks (close_deadline) past their end_date read as
Rejected. Reads use `effective_status_id()` which never writes; the
persisted transition is the idempotent `enforce()` / `DeadlineEnforcer`.
Collaborative writes on an expired task are refused.
"""

import logging
from datetime import datetime
from typing import Optional, Callable

from ..database.models import TaskDB
from ..exceptions import AuthorizationError

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def is_expired(task: TaskDB, now: datetime) -> bool:
    """True when the task has a strict deadline that has passed."""
    return bool(task.close_deadline) and task.end_date is not None and now > task.end_date


def effective_status_id(task: TaskDB, now: datetime, rejected_status_id: Optional[int]) -> Optional[int]:
    """Status the task must be shown with. Pure view correction, no persistence."""
    if rejected_status_id is not None and is_expired(task, now):
        return rejected_status_id
    return task.status_id


def enforce(task: TaskDB, now: datetime, rejected_status_id: Optional[int]) -> bool:
    """
    Transition an expired task to Rejected in memory.

    Returns True when the status changed. The caller's session persists
    the change. A second call is a no-op.
    """
    if rejected_status_id is None or not is_expired(task, now):
        return False
    if task.status_id == rejected_status_id:
        return False
    logger.info(f"Task {task.id} passed strict deadline {task.end_date}; marking rejected")
    task.status_id = rejected_status_id
    return True


WRITE_DENIAL_MESSAGES = {
    "message": "Cannot add comments to a task that is past its strict deadline",
    "deliverable": "Cannot add deliverables to a task that is past its strict deadline",
    "deliverable_update": "Cannot update deliverables of a task that is past its strict deadline",
    "question_answer": "Cannot submit answers for a task that is past its strict deadline",
    "checklist_answer": "Cannot submit checklist answers for a task that is past its strict deadline",
}


def ensure_writable(task: TaskDB, now: datetime, operation: str) -> None:
    """Refuse a collaborative write on an expired task, whether or not the status was persisted."""
    if is_expired(task, now):
        message = WRITE_DENIAL_MESSAGES.get(
            operation, "Cannot modify a task that is past its strict deadline"
        )
        logger.warning(f"Denied {operation} on task {task.id}: strict deadline {task.end_date} passed")
        raise AuthorizationError(message)
