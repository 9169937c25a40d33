"""Pydantic schemas for workflows, workflow steps, attachments and workflow listings."""

from datetime import date, datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from knowledgehub.schemas.common import Pagination
from knowledgehub.services.tags import normalize_tags

WorkflowStatus = Literal["draft", "active", "completed", "archived"]
WorkflowPriority = Literal["low", "medium", "high", "urgent"]
StepStatus = Literal["pending", "in_progress", "completed", "skipped"]
AttachmentType = Literal["note", "url", "file"]


def _strip_required(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError("must not be blank")
    return v


class StepCreate(BaseModel):
    """A step nested in workflow creation; its order is its position in the list."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    due_date: date | None = None
    assignee: str | None = Field(default=None, max_length=255)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _strip_required(v)


class WorkflowStepCreate(StepCreate):
    """A step added to an existing workflow."""

    step_order: int = Field(default=0, ge=0)


class WorkflowStepUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=5000)
    step_order: int | None = Field(default=None, ge=0)
    status: StepStatus | None = None
    due_date: date | None = None
    assignee: str | None = Field(default=None, max_length=255)
    notes: str | None = Field(default=None, max_length=10000)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        return None if v is None else _strip_required(v)


class WorkflowStepRead(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    workflow_id: int
    title: str
    description: str | None = None
    step_order: int
    status: str
    due_date: date | None = None
    assignee: str | None = None
    notes: str | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AttachmentCreate(BaseModel):
    attachment_type: AttachmentType
    attachment_id: int | None = None
    url: str | None = Field(default=None, max_length=2048)
    title: str | None = Field(default=None, max_length=500)
    description: str | None = Field(default=None, max_length=5000)

    @model_validator(mode="after")
    def target_present(self) -> "AttachmentCreate":
        if self.attachment_type == "note" and self.attachment_id is None:
            raise ValueError("attachment_id is required for note attachments")
        if self.attachment_type in ("url", "file") and not self.url:
            raise ValueError("url is required for url and file attachments")
        return self


class AttachmentRead(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    workflow_id: int
    attachment_type: str
    attachment_id: int | None = None
    url: str | None = None
    title: str | None = None
    description: str | None = None
    created_at: datetime


class WorkflowCreate(BaseModel):
    """New workflow, optionally with its steps; all rows are inserted atomically."""

    title: str = Field(..., min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    category: str = Field(default="general", min_length=1, max_length=50)
    priority: WorkflowPriority = "medium"
    status: Literal["draft", "active"] = "active"
    tags: list[str] = Field(default_factory=list, max_length=100)
    due_date: date | None = None
    steps: list[StepCreate] = Field(default_factory=list, max_length=50)

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _strip_required(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        return normalize_tags(v)


class WorkflowUpdate(BaseModel):
    """Partial update; only fields present in the request body are written."""

    title: str | None = Field(default=None, min_length=1, max_length=500)
    description: str | None = Field(default=None, max_length=10000)
    category: str | None = Field(default=None, min_length=1, max_length=50)
    priority: WorkflowPriority | None = None
    status: WorkflowStatus | None = None
    tags: list[str] | None = Field(default=None, max_length=100)
    due_date: date | None = None

    @field_validator("title")
    @classmethod
    def strip_title(cls, v: str | None) -> str | None:
        return None if v is None else _strip_required(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str] | None) -> list[str] | None:
        return None if v is None else normalize_tags(v)


class WorkflowRead(BaseModel):
    model_config = {"from_attributes": True}

    id: int
    user_id: int
    title: str
    description: str | None = None
    category: str
    priority: str
    status: str
    tags: list[str]
    due_date: date | None = None
    completed_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class WorkflowDetail(WorkflowRead):
    steps: list[WorkflowStepRead] = Field(default_factory=list)
    attachments: list[AttachmentRead] = Field(default_factory=list)


class WorkflowsQuery(BaseModel):
    """Query string for workflow listings. Unknown parameters are rejected."""

    model_config = {"extra": "forbid"}

    category: str | None = Field(default=None, max_length=50)
    tags: str | None = Field(default=None, max_length=1100, description="Comma-separated tags")
    search: str | None = Field(default=None, max_length=100)
    status: WorkflowStatus | None = None
    priority: WorkflowPriority | None = None
    limit: int = Field(default=50, ge=1, le=100)
    offset: int = Field(default=0, ge=0)
    sort: Literal["created_at", "updated_at", "title", "due_date", "priority", "status"] = "updated_at"
    order: Literal["asc", "desc"] = "desc"


class WorkflowData(BaseModel):
    workflow: WorkflowDetail


class WorkflowsListData(BaseModel):
    workflows: list[WorkflowRead]
    pagination: Pagination


class StepData(BaseModel):
    step: WorkflowStepRead


class AttachmentData(BaseModel):
    attachment: AttachmentRead


class WorkflowStats(BaseModel):
    """Counts over the caller's non-archived workflows."""

    total_workflows: int
    draft_workflows: int
    active_workflows: int
    completed_workflows: int
    urgent_workflows: int
    high_priority_workflows: int
    overdue_workflows: int
