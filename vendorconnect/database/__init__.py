"""
Database module for the task engine.

Handles:
- Tenant-scoped users, clients, projects and reference data
- Tasks with assignment, deadline, repetition and brief snapshots
- Deliverables, messages, brief answers and notifications
"""

from .connection import (
    get_database,
    Database,
    init_database,
    close_database,
)
from .models import (
    Base,
    RoleEnum,
    UserStatusEnum,
    RepeatFrequencyEnum,
    DeliverableTypeEnum,
    NotificationTypeEnum,
    UserDB,
    ClientDB,
    ProjectDB,
    StatusDB,
    PriorityDB,
    TaskTypeDB,
    TagDB,
    TaskBriefTemplateDB,
    TaskBriefQuestionDB,
    TaskBriefChecklistDB,
    TaskDB,
    TaskDeliverableDB,
    DeliverableFileDB,
    PortfolioDB,
    TaskMessageDB,
    ChecklistAnswerDB,
    QuestionAnswerDB,
    NotificationDB,
)

__all__ = [
    "get_database",
    "Database",
    "init_database",
    "close_database",
    "Base",
    "RoleEnum",
    "UserStatusEnum",
    "RepeatFrequencyEnum",
    "DeliverableTypeEnum",
    "NotificationTypeEnum",
    "UserDB",
    "ClientDB",
    "ProjectDB",
    "StatusDB",
    "PriorityDB",
    "TaskTypeDB",
    "TagDB",
    "TaskBriefTemplateDB",
    "TaskBriefQuestionDB",
    "TaskBriefChecklistDB",
    "TaskDB",
    "TaskDeliverableDB",
    "DeliverableFileDB",
    "PortfolioDB",
    "TaskMessageDB",
    "ChecklistAnswerDB",
    "QuestionAnswerDB",
    "NotificationDB",
]
