"""Domain schemas. Request/response and validation."""

from app.domain.schemas.work_item import (
    ActivityListResponse,
    ActivityResponse,
    CommentCreateRequest,
    CommentResponse,
    KeyPrefixChangeRequest,
    NotificationListResponse,
    NotificationResponse,
    ProjectCreateRequest,
    ProjectResponse,
    WorkItemCreateRequest,
    WorkItemFilter,
    WorkItemListResponse,
    WorkItemResponse,
    WorkItemUpdateRequest,
)

__all__ = [
    "ActivityListResponse",
    "ActivityResponse",
    "CommentCreateRequest",
    "CommentResponse",
    "KeyPrefixChangeRequest",
    "NotificationListResponse",
    "NotificationResponse",
    "ProjectCreateRequest",
    "ProjectResponse",
    "WorkItemCreateRequest",
    "WorkItemFilter",
    "WorkItemListResponse",
    "WorkItemResponse",
    "WorkItemUpdateRequest",
]
