"""Pydantic schemas for the tracker API and serialization. Strict validation, no DB or infrastructure."""

from datetime import date, datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from app.domain.models.notification import NotificationKind
from app.domain.models.work_item import WorkItemPriority, WorkItemStatus


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ProjectCreateRequest(BaseModel):
    """Request schema for creating a project. key_prefix may be omitted; one is derived from name."""

    name: str = Field(..., min_length=1, description="Display name")
    key_prefix: Optional[str] = Field(None, description="Uppercase A-Z, 0-9, _; max 10 characters")


class KeyPrefixChangeRequest(BaseModel):
    key_prefix: str = Field(..., min_length=1)


class WorkItemCreateRequest(BaseModel):
    """Request schema for creating a work item. Title is trimmed and validated by the domain."""

    project_id: str = Field(..., min_length=1)
    title: str
    description: Optional[str] = None
    status: WorkItemStatus = WorkItemStatus.TODO
    priority: WorkItemPriority = WorkItemPriority.MEDIUM
    assignee_id: Optional[str] = None
    sub_assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    labels: List[str] = Field(default_factory=list)


class WorkItemUpdateRequest(BaseModel):
    """
    Partial update. Only fields present in the payload are applied; an explicit
    null clears a nullable field (e.g. unassign). Absent fields are untouched.
    """

    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[WorkItemStatus] = None
    priority: Optional[WorkItemPriority] = None
    assignee_id: Optional[str] = None
    sub_assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    labels: Optional[List[str]] = None


class CommentCreateRequest(BaseModel):
    body: str = Field(..., min_length=1)


class WorkItemFilter(BaseModel):
    """Conjunctive filter for listing work items. Every set field must match."""

    project_id: Optional[str] = None
    status: Optional[List[WorkItemStatus]] = None
    exclude_status: Optional[List[WorkItemStatus]] = None
    priority: Optional[List[WorkItemPriority]] = None
    assignee_id: Optional[str] = None
    label: Optional[str] = None
    due_before: Optional[date] = None
    due_after: Optional[date] = None
    text: Optional[str] = None
    include_archived: bool = False
    sort: List[str] = Field(default_factory=lambda: ["-updated_at"])
    offset: int = Field(0, ge=0)
    limit: Optional[int] = Field(None, ge=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class ProjectResponse(BaseModel):
    id: str
    tenant_id: Optional[str] = None
    name: str
    key_prefix: Optional[str] = None
    issue_seq: int
    created_by: str
    created_at: datetime


class WorkItemResponse(BaseModel):
    """Response schema for a work item read."""

    id: str
    tenant_id: Optional[str] = None
    project_id: str
    key: str
    title: str
    description: str
    status: WorkItemStatus
    priority: WorkItemPriority
    assignee_id: Optional[str] = None
    sub_assignee_id: Optional[str] = None
    reporter_id: str
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    labels: List[str]
    created_at: datetime
    updated_at: datetime
    archived_at: Optional[datetime] = None


class WorkItemListResponse(BaseModel):
    items: List[WorkItemResponse]
    total: int
    offset: int
    limit: int


class CommentResponse(BaseModel):
    id: str
    tenant_id: str
    work_item_id: str
    author_id: str
    body: str
    created_at: datetime


class ActivityResponse(BaseModel):
    id: str
    tenant_id: str
    actor_id: str
    type: str
    message: str
    entity_id: Optional[str] = None
    project_id: Optional[str] = None
    link: Optional[str] = None
    mutation_id: Optional[str] = None
    correlation_id: Optional[str] = None
    created_at: datetime


class ActivityListResponse(BaseModel):
    items: List[ActivityResponse]
    total: int


class NotificationResponse(BaseModel):
    id: str
    tenant_id: str
    recipient_id: str
    actor_id: Optional[str] = None
    kind: NotificationKind
    title: str
    body: Optional[str] = None
    link: Optional[str] = None
    read: bool
    created_at: datetime


class NotificationListResponse(BaseModel):
    items: List[NotificationResponse]
    total: int
