"""
Pydantic models for API endpoint input validation.

Field-level rules live here; reference checks (does status 7 exist in
this tenant?) and role rules stay in the lifecycle manager.
"""

from datetime import datetime
from enum import Enum
from typing import Optional, Literal, List, Dict, Any

from pydantic import BaseModel, Field, field_validator, model_validator

from ..utils.datetime_utils import to_naive_local


# ============================================
# ENUMS
# ============================================

class RepeatFrequency(str, Enum):
    """Valid repeat frequencies."""
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"
    YEARLY = "yearly"


class DeliverableType(str, Enum):
    """Valid deliverable types."""
    DESIGN = "design"
    DOCUMENT = "document"
    PRESENTATION = "presentation"
    FILE = "file"
    LINK = "link"
    OTHER = "other"


def _http_url(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    stripped = v.strip()
    if not stripped:
        return None
    if not stripped.lower().startswith(("http://", "https://")):
        raise ValueError("link must be an http(s) URL")
    return stripped


def _no_script(v: Optional[str]) -> Optional[str]:
    if v is None:
        return v
    if "<script" in v.lower() or "<iframe" in v.lower():
        raise ValueError("Text fields cannot contain script/iframe tags")
    return v


# ============================================
# TASK OPERATIONS
# ============================================

class _TaskFields(BaseModel):
    """Shared task fields and cross-field rules."""
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=20000)
    status_id: Optional[int] = Field(None, ge=1)
    priority_id: Optional[int] = Field(None, ge=1)
    task_type_id: Optional[int] = Field(None, ge=1)
    project_id: Optional[int] = Field(None, ge=1)
    user_ids: Optional[List[int]] = Field(None, max_length=200)
    client_ids: Optional[List[int]] = Field(None, max_length=200)
    tag_ids: Optional[List[int]] = Field(None, max_length=200)
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    close_deadline: Optional[bool] = None
    is_repeating: Optional[bool] = None
    repeat_frequency: Optional[RepeatFrequency] = None
    repeat_interval: Optional[int] = Field(None, ge=1, le=365)
    repeat_until: Optional[datetime] = None
    deliverable_quantity: Optional[int] = Field(None, ge=1, le=1000)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        if v is None:
            return v
        stripped = _no_script(v).strip()
        if not stripped:
            raise ValueError("title cannot be empty after stripping whitespace")
        return stripped

    @field_validator("description")
    @classmethod
    def validate_description(cls, v):
        return _no_script(v)

    @field_validator("start_date", "end_date", "repeat_until")
    @classmethod
    def validate_naive(cls, v):
        return to_naive_local(v)

    @model_validator(mode="after")
    def validate_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be a date after or equal to start_date")
        if self.start_date and self.repeat_until and self.repeat_until < self.start_date:
            raise ValueError("repeat_until must be a date after or equal to start_date")
        if self.is_repeating and self.repeat_frequency is None:
            raise ValueError("repeat_frequency is required when is_repeating is true")
        return self

    def to_data(self, exclude_unset: bool = False) -> Dict[str, Any]:
        data = self.model_dump(exclude_unset=exclude_unset)
        if isinstance(data.get("repeat_frequency"), Enum):
            data["repeat_frequency"] = data["repeat_frequency"].value
        return data


class TaskCreate(_TaskFields):
    """Validation for task creation (POST /api/tasks)."""
    title: Optional[str] = Field(None, max_length=255)
    template_id: Optional[int] = Field(None, ge=1)


class TaskUpdate(_TaskFields):
    """Validation for partial task updates (PUT /api/tasks/{id}). Only sent fields apply."""


class StatusUpdate(BaseModel):
    status_id: int = Field(..., ge=1)


class DeadlineUpdate(BaseModel):
    end_date: Optional[datetime] = None

    @field_validator("end_date")
    @classmethod
    def validate_naive(cls, v):
        return to_naive_local(v)


class BulkDelete(BaseModel):
    """Best-effort bulk delete (tasks and reference data)."""
    ids: List[int] = Field(..., min_length=1, max_length=100)

    @field_validator("ids")
    @classmethod
    def validate_ids(cls, v):
        if any(i < 1 for i in v):
            raise ValueError("ids must be positive integers")
        return v


class TaskFilter(BaseModel):
    """Input validation for task list queries."""
    search: Optional[str] = Field(None, max_length=255)
    user_id: Optional[int] = Field(None, ge=1)
    client_id: Optional[int] = Field(None, ge=1)
    status_id: Optional[int] = Field(None, ge=1)
    priority_id: Optional[int] = Field(None, ge=1)
    project_id: Optional[int] = Field(None, ge=1)
    page: int = Field(1, ge=1, le=100000)
    per_page: Optional[int] = Field(None, ge=1, le=100)
    sort_by: Literal["id", "title", "created_at", "updated_at", "start_date", "end_date"] = "created_at"
    sort_order: Literal["asc", "desc"] = "desc"

    def filters(self) -> Dict[str, Any]:
        return self.model_dump(
            include={"search", "user_id", "client_id", "status_id", "priority_id", "project_id"},
            exclude_none=True,
        )


# ============================================
# COLLABORATION
# ============================================

class MessageCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=5000)

    @field_validator("message")
    @classmethod
    def validate_message(cls, v):
        stripped = _no_script(v).strip()
        if not stripped:
            raise ValueError("message cannot be empty after stripping whitespace")
        return stripped


class DeliverableCreate(BaseModel):
    """Multipart deliverable fields (files are validated by the storage layer)."""
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = Field(None, max_length=5000)
    type: DeliverableType = DeliverableType.OTHER
    google_link: Optional[str] = Field(None, max_length=1000)
    external_link: Optional[str] = Field(None, max_length=1000)

    @field_validator("google_link", "external_link")
    @classmethod
    def validate_links(cls, v):
        return _http_url(v)


class QuestionAnswerSubmit(BaseModel):
    question_id: int = Field(..., ge=1)
    answer: Optional[str] = Field(None, max_length=10000)


class ChecklistAnswerSubmit(BaseModel):
    checklist_id: int = Field(..., ge=1)
    item_index: int = Field(..., ge=0)
    completed: bool = False
    notes: Optional[str] = Field(None, max_length=5000)


# ============================================
# ASSISTANT
# ============================================

class SmartTaskRequest(BaseModel):
    """Validation for the assistant entrypoint (POST /api/smart-task)."""
    message: str = Field("", max_length=4096)
    action: Optional[str] = Field(None, max_length=50)
    params: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def require_message_or_action(self):
        if not self.message.strip() and not (self.action or "").strip():
            raise ValueError("either message or action is required")
        return self
