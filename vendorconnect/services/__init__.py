"""
Services for the task engine.

- visibility: Principal and role-scoped predicates
- deadlines: strict-deadline evaluation and write guard
- templates: brief template snapshots
- lifecycle: task create/update/status/repetition/delete and task-owned writes
- repetition: repeat occurrence generation
- events / notifications: post-commit side effects
- reporting: dashboard, search and project progress
- reference: guarded reference-data deletes
"""

from .visibility import Principal, scope, strip_pii
from .events import EventBus, EventType, TaskEvent, get_event_bus
from .lifecycle import TaskLifecycleManager, TaskView, TaskPage, BulkResult
from .reporting import ReportingService
from .reference import ReferenceService

__all__ = [
    "Principal",
    "scope",
    "strip_pii",
    "EventBus",
    "EventType",
    "TaskEvent",
    "get_event_bus",
    "TaskLifecycleManager",
    "TaskView",
    "TaskPage",
    "BulkResult",
    "ReportingService",
    "ReferenceService",
]
