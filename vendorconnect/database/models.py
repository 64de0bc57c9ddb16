"""
SQLAlchemy models for the task engine.

Schema includes:
- Users, clients and projects (tenant-scoped by admin_id)
- Reference data: statuses, priorities, task types, tags
- Brief templates with questions and checklists
- Tasks with assignment, deadline, repetition and template snapshot fields
- Deliverables, deliverable files and portfolio projections
- Task messages, checklist answers and question answers
- Notifications
"""

from datetime import datetime, date
from typing import Optional, List
from sqlalchemy import (
    Column,
    String,
    Text,
    Integer,
    Boolean,
    DateTime,
    Date,
    ForeignKey,
    JSON,
    Index,
    UniqueConstraint,
    Table,
)
from sqlalchemy.orm import DeclarativeBase, relationship, Mapped, mapped_column
import enum


class Base(DeclarativeBase):
    """Base class for all models."""
    pass


# ==================== ENUMS ====================

class RoleEnum(str, enum.Enum):
    ADMIN = "admin"
    SUB_ADMIN = "sub_admin"
    REQUESTER = "requester"
    TASKER = "tasker"


class UserStatusEnum(str, enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class RepeatFrequencyEnum(str, enum.Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DeliverableTypeEnum(str, enum.Enum):
    DESIGN = "design"
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    FILE = "file"
    LINK = "link"
    OTHER = "other"


class NotificationTypeEnum(str, enum.Enum):
    TASK_ASSIGNED = "task_assigned"
    TASK_COMPLETED = "task_completed"
    DELIVERABLE_ADDED = "deliverable_added"


# ==================== ASSOCIATION TABLES ====================

task_user = Table(
    "task_user",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
)

task_client = Table(
    "task_client",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id"), primary_key=True),
    Column("client_id", Integer, ForeignKey("clients.id"), primary_key=True),
)

task_tag = Table(
    "task_tag",
    Base.metadata,
    Column("task_id", Integer, ForeignKey("tasks.id"), primary_key=True),
    Column("tag_id", Integer, ForeignKey("tags.id"), primary_key=True),
)

project_client = Table(
    "project_client",
    Base.metadata,
    Column("project_id", Integer, ForeignKey("projects.id"), primary_key=True),
    Column("client_id", Integer, ForeignKey("clients.id"), primary_key=True),
)

project_user = Table(
    "project_user",
    Base.metadata,
    Column("project_id", Integer, ForeignKey("projects.id"), primary_key=True),
    Column("user_id", Integer, ForeignKey("users.id"), primary_key=True),
)


# ==================== USERS ====================

class UserDB(Base):
    """Platform users. Admin users own a tenant; everyone else points at it via admin_id."""
    __tablename__ = "users"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)

    roles: Mapped[List[str]] = mapped_column(JSON, default=list)
    status: Mapped[str] = mapped_column(String(20), default=UserStatusEnum.ACTIVE.value)
    last_login_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    def has_role(self, role: str) -> bool:
        return role in (self.roles or [])

    __table_args__ = (
        Index("idx_users_admin", "admin_id"),
        Index("idx_users_status", "status"),
    )


# ==================== CLIENTS ====================

class ClientDB(Base):
    """Clients of a tenant. Projects and tasks link to them."""
    __tablename__ = "clients"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    company: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    email: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    dob: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="active")

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()

    __table_args__ = (
        Index("idx_clients_admin", "admin_id"),
    )


# ==================== PROJECTS ====================

class ProjectDB(Base):
    """Projects for grouping related tasks."""
    __tablename__ = "projects"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Relationships
    clients: Mapped[List["ClientDB"]] = relationship(
        "ClientDB", secondary=project_client, lazy="selectin", order_by="ClientDB.id"
    )
    users: Mapped[List["UserDB"]] = relationship("UserDB", secondary=project_user, lazy="selectin")

    __table_args__ = (
        Index("idx_projects_admin", "admin_id"),
        Index("idx_projects_title", "title"),
    )


# ==================== REFERENCE DATA ====================

class StatusDB(Base):
    """Tenant-defined task statuses. 'Completed' and 'Rejected' are consulted by business rules."""
    __tablename__ = "statuses"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        Index("idx_statuses_admin", "admin_id"),
    )


class PriorityDB(Base):
    __tablename__ = "priorities"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)
    color: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)

    __table_args__ = (
        Index("idx_priorities_admin", "admin_id"),
    )


class TaskTypeDB(Base):
    __tablename__ = "task_types"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)

    __table_args__ = (
        Index("idx_task_types_admin", "admin_id"),
    )


class TagDB(Base):
    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    title: Mapped[str] = mapped_column(String(100), nullable=False)


# ==================== BRIEF TEMPLATES ====================

class TaskBriefTemplateDB(Base):
    """Reusable task skeleton: standard brief, questions and checklists."""
    __tablename__ = "task_brief_templates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    title: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    standard_brief: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deliverable_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    questions: Mapped[List["TaskBriefQuestionDB"]] = relationship(
        "TaskBriefQuestionDB",
        back_populates="template",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TaskBriefQuestionDB.id",
    )
    checklists: Mapped[List["TaskBriefChecklistDB"]] = relationship(
        "TaskBriefChecklistDB",
        back_populates="template",
        cascade="all, delete-orphan",
        lazy="selectin",
        order_by="TaskBriefChecklistDB.id",
    )


class TaskBriefQuestionDB(Base):
    __tablename__ = "task_brief_questions"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_brief_templates.id"), nullable=False)

    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    question_type: Mapped[str] = mapped_column(String(30), default="text")  # text, textarea, select, radio, checkbox
    options: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    template: Mapped["TaskBriefTemplateDB"] = relationship("TaskBriefTemplateDB", back_populates="questions")


class TaskBriefChecklistDB(Base):
    """A named checklist on a template; `items` is an ordered list of item texts."""
    __tablename__ = "task_brief_checklists"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    template_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_brief_templates.id"), nullable=False)

    items: Mapped[List[str]] = mapped_column(JSON, default=list)

    template: Mapped["TaskBriefTemplateDB"] = relationship("TaskBriefTemplateDB", back_populates="checklists")


# ==================== TASKS ====================

class TaskDB(Base):
    """Main task table with assignment, deadline, repetition and template snapshot fields."""
    __tablename__ = "tasks"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    # Core fields
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    # Classification
    status_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("statuses.id"), nullable=True)
    priority_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("priorities.id"), nullable=True)
    task_type_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("task_types.id"), nullable=True)
    project_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("projects.id"), nullable=True)

    # Timing
    start_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    end_date: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    close_deadline: Mapped[bool] = mapped_column(Boolean, default=False)

    # Repetition
    is_repeating: Mapped[bool] = mapped_column(Boolean, default=False)
    repeat_frequency: Mapped[Optional[str]] = mapped_column(String(20), nullable=True)
    repeat_interval: Mapped[int] = mapped_column(Integer, default=1)
    repeat_until: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    repeat_active: Mapped[bool] = mapped_column(Boolean, default=True)
    parent_task_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=True)
    last_repeated_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    # Brief template snapshot (captured at creation)
    template_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("task_brief_templates.id"), nullable=True
    )
    template_questions: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    template_checklist: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)
    template_standard_brief: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    template_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    template_deliverable_quantity: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    deliverable_quantity: Mapped[int] = mapped_column(Integer, default=1)

    # Origin
    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    # Reference relationships (non-owning)
    status: Mapped[Optional["StatusDB"]] = relationship("StatusDB", lazy="selectin")
    priority: Mapped[Optional["PriorityDB"]] = relationship("PriorityDB", lazy="selectin")
    task_type: Mapped[Optional["TaskTypeDB"]] = relationship("TaskTypeDB", lazy="selectin")
    project: Mapped[Optional["ProjectDB"]] = relationship("ProjectDB", lazy="selectin")
    creator: Mapped[Optional["UserDB"]] = relationship("UserDB", foreign_keys=[created_by], lazy="selectin")
    users: Mapped[List["UserDB"]] = relationship(
        "UserDB", secondary=task_user, lazy="selectin", order_by="UserDB.id"
    )
    clients: Mapped[List["ClientDB"]] = relationship(
        "ClientDB", secondary=task_client, lazy="selectin", order_by="ClientDB.id"
    )
    tags: Mapped[List["TagDB"]] = relationship("TagDB", secondary=task_tag, lazy="selectin")

    # Owned children (cascade-deleted with the task; load explicitly)
    deliverables: Mapped[List["TaskDeliverableDB"]] = relationship(
        "TaskDeliverableDB", back_populates="task", cascade="all, delete-orphan",
        order_by="TaskDeliverableDB.id",
    )
    messages: Mapped[List["TaskMessageDB"]] = relationship(
        "TaskMessageDB", back_populates="task", cascade="all, delete-orphan",
        order_by="TaskMessageDB.id",
    )
    checklist_answers: Mapped[List["ChecklistAnswerDB"]] = relationship(
        "ChecklistAnswerDB", back_populates="task", cascade="all, delete-orphan"
    )
    question_answers: Mapped[List["QuestionAnswerDB"]] = relationship(
        "QuestionAnswerDB", back_populates="task", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_tasks_admin", "admin_id"),
        Index("idx_tasks_status", "status_id"),
        Index("idx_tasks_priority", "priority_id"),
        Index("idx_tasks_project", "project_id"),
        Index("idx_tasks_end_date", "end_date"),
        Index("idx_tasks_parent", "parent_task_id"),
        Index("idx_tasks_created_by", "created_by"),
    )


# ==================== DELIVERABLES ====================

class TaskDeliverableDB(Base):
    __tablename__ = "task_deliverables"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    type: Mapped[str] = mapped_column(String(30), default=DeliverableTypeEnum.OTHER.value)
    google_link: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    external_link: Mapped[Optional[str]] = mapped_column(String(1000), nullable=True)
    completed_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    task: Mapped["TaskDB"] = relationship("TaskDB", back_populates="deliverables")
    files: Mapped[List["DeliverableFileDB"]] = relationship(
        "DeliverableFileDB", back_populates="deliverable", cascade="all, delete-orphan",
        lazy="selectin", order_by="DeliverableFileDB.id",
    )

    __table_args__ = (
        Index("idx_deliverables_task", "task_id"),
    )


class DeliverableFileDB(Base):
    __tablename__ = "deliverable_files"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    deliverable_id: Mapped[int] = mapped_column(Integer, ForeignKey("task_deliverables.id"), nullable=False)

    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    file_path: Mapped[str] = mapped_column(String(1000), nullable=False)
    file_size: Mapped[int] = mapped_column(Integer, default=0)
    mime_type: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    deliverable: Mapped["TaskDeliverableDB"] = relationship("TaskDeliverableDB", back_populates="files")


class PortfolioDB(Base):
    """One-way projection of a deliverable onto the project's client portfolio."""
    __tablename__ = "portfolios"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    client_id: Mapped[int] = mapped_column(Integer, ForeignKey("clients.id"), nullable=False)
    task_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=True)
    deliverable_id: Mapped[Optional[int]] = mapped_column(
        Integer, ForeignKey("task_deliverables.id"), nullable=True
    )

    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    deliverable_type: Mapped[Optional[str]] = mapped_column(String(30), nullable=True)
    status: Mapped[str] = mapped_column(String(20), default="completed")
    files: Mapped[Optional[list]] = mapped_column(JSON, nullable=True)

    created_by: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    __table_args__ = (
        Index("idx_portfolios_client", "client_id"),
    )


# ==================== MESSAGES & ANSWERS ====================

class TaskMessageDB(Base):
    """Comments on a task."""
    __tablename__ = "task_messages"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)
    sender_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("users.id"), nullable=True)
    message: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    task: Mapped["TaskDB"] = relationship("TaskDB", back_populates="messages")
    sender: Mapped[Optional["UserDB"]] = relationship("UserDB", lazy="selectin")

    __table_args__ = (
        Index("idx_task_messages_task", "task_id"),
    )


class ChecklistAnswerDB(Base):
    """
    One row per (task, checklist, answering user).

    `items` maps the item index (as a string key) to {"completed": bool, "notes": str}.
    """
    __tablename__ = "checklist_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)
    checklist_id: Mapped[int] = mapped_column(Integer, nullable=False)
    answer_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    items: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    task: Mapped["TaskDB"] = relationship("TaskDB", back_populates="checklist_answers")

    __table_args__ = (
        UniqueConstraint("task_id", "checklist_id", "answer_by", name="uq_checklist_answer"),
    )


class QuestionAnswerDB(Base):
    __tablename__ = "question_answers"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    task_id: Mapped[int] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=False)
    question_id: Mapped[int] = mapped_column(Integer, nullable=False)
    answer_by: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    answer: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)
    updated_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now, onupdate=datetime.now)

    task: Mapped["TaskDB"] = relationship("TaskDB", back_populates="question_answers")

    __table_args__ = (
        UniqueConstraint("task_id", "question_id", "answer_by", name="uq_question_answer"),
    )


# ==================== NOTIFICATIONS ====================

class NotificationDB(Base):
    __tablename__ = "notifications"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    admin_id: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    user_id: Mapped[int] = mapped_column(Integer, ForeignKey("users.id"), nullable=False)
    task_id: Mapped[Optional[int]] = mapped_column(Integer, ForeignKey("tasks.id"), nullable=True)

    type: Mapped[str] = mapped_column(String(50), nullable=False)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    read_at: Mapped[Optional[datetime]] = mapped_column(DateTime, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=datetime.now)

    __table_args__ = (
        Index("idx_notifications_user", "user_id"),
    )
