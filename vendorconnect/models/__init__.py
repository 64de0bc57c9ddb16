from .api_validation import (
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

__all__ = [
    "TaskCreate",
    "TaskUpdate",
    "StatusUpdate",
    "DeadlineUpdate",
    "BulkDelete",
    "TaskFilter",
    "MessageCreate",
    "DeliverableCreate",
    "QuestionAnswerSubmit",
    "ChecklistAnswerSubmit",
    "SmartTaskRequest",
]
