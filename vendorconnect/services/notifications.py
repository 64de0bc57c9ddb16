"""
Notification subscriber.

Persists a NotificationDB row per recipient of a task event, in its own
session, after the originating transaction has committed.
"""

import logging

from ..database.connection import Database
from ..database.models import NotificationDB, NotificationTypeEnum
from .events import EventBus, EventType, TaskEvent

logger = logging.getLogger(__name__)

TITLES = {
    EventType.TASK_ASSIGNED: "New task assigned",
    EventType.TASK_COMPLETED: "Task completed",
    EventType.DELIVERABLE_ADDED: "New deliverable",
}

TYPES = {
    EventType.TASK_ASSIGNED: NotificationTypeEnum.TASK_ASSIGNED,
    EventType.TASK_COMPLETED: NotificationTypeEnum.TASK_COMPLETED,
    EventType.DELIVERABLE_ADDED: NotificationTypeEnum.DELIVERABLE_ADDED,
}


def _message(event: TaskEvent) -> str:
    if event.event_type == EventType.TASK_ASSIGNED:
        return f"You have been assigned to '{event.task_title}'"
    if event.event_type == EventType.TASK_COMPLETED:
        return f"'{event.task_title}' has been marked as completed"
    deliverable = event.payload.get("deliverable_title", "A deliverable")
    return f"{deliverable} was added to '{event.task_title}'"


class NotificationService:
    """Stores notifications for task events."""

    def __init__(self, db: Database):
        self.db = db

    async def handle(self, event: TaskEvent) -> None:
        recipients = [uid for uid in dict.fromkeys(event.user_ids) if uid != event.actor_id]
        if not recipients:
            return

        async with self.db.session() as session:
            for user_id in recipients:
                session.add(NotificationDB(
                    admin_id=event.tenant_id,
                    user_id=user_id,
                    task_id=event.task_id,
                    type=TYPES[event.event_type].value,
                    title=TITLES[event.event_type],
                    message=_message(event),
                ))

        logger.info(
            f"Stored {len(recipients)} {event.event_type.value} notification(s) for task {event.task_id}"
        )


def register_notification_handlers(bus: EventBus, db: Database) -> NotificationService:
    """Subscribe the notification store to every task event type."""
    service = NotificationService(db)
    for event_type in EventType:
        bus.subscribe(event_type, service.handle)
    return service
