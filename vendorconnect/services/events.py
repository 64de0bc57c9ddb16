"""
In-process event bus for task side effects.

Services collect events while their transaction is open and publish them
only after it commits. Each subscriber runs as a guarded background task,
so a failing subscriber is logged and can never roll back or block the
mutation that produced the event.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, Any, Optional, List, Callable, Awaitable

from ..utils.background_tasks import spawn

logger = logging.getLogger(__name__)


class EventType(Enum):
    """Events emitted by the task lifecycle."""
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    DELIVERABLE_ADDED = "deliverable_added"


@dataclass
class TaskEvent:
    """Something that happened to a task, addressed to a set of users."""
    event_type: EventType
    tenant_id: Optional[int]
    task_id: int
    task_title: str
    user_ids: List[int] = field(default_factory=list)
    actor_id: Optional[int] = None
    payload: Dict[str, Any] = field(default_factory=dict)
    created_at: datetime = field(default_factory=datetime.now)


Handler = Callable[[TaskEvent], Awaitable[None]]


class EventBus:
    """Fan-out of TaskEvents to async subscribers."""

    def __init__(self):
        self._handlers: Dict[EventType, List[Handler]] = {}
        self._pending: List[asyncio.Task] = []

    def subscribe(self, event_type: EventType, handler: Handler) -> None:
        self._handlers.setdefault(event_type, []).append(handler)

    def clear(self) -> None:
        self._handlers.clear()

    def publish(self, event: TaskEvent) -> List[asyncio.Task]:
        """Schedule every subscriber of the event. Never raises."""
        handlers = self._handlers.get(event.event_type, [])
        if not handlers:
            logger.debug(f"No subscribers for {event.event_type.value} on task {event.task_id}")
            return []

        scheduled = []
        for handler in handlers:
            name = f"event-{event.event_type.value}-{event.task_id}-{getattr(handler, '__name__', 'handler')}"
            scheduled.append(spawn(handler(event), name))

        self._pending = [task for task in self._pending if not task.done()] + scheduled
        return scheduled

    def publish_all(self, events: List[TaskEvent]) -> None:
        for event in events:
            self.publish(event)

    async def drain(self) -> None:
        """Wait for every scheduled subscriber to finish."""
        pending, self._pending = self._pending, []
        if pending:
            await asyncio.gather(*pending)


# Singleton instance
_event_bus: Optional[EventBus] = None


def get_event_bus() -> EventBus:
    """Get the event bus singleton."""
    global _event_bus
    if _event_bus is None:
        _event_bus = EventBus()
    return _event_bus
