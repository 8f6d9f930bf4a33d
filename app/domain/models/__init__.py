"""Domain models. Pure business entities."""

from app.domain.models.notification import NotificationKind, NotificationRecord
from app.domain.models.work_item import (
    Comment,
    Project,
    WorkItem,
    WorkItemPriority,
    WorkItemStatus,
)

__all__ = [
    "Comment",
    "NotificationKind",
    "NotificationRecord",
    "Project",
    "WorkItem",
    "WorkItemPriority",
    "WorkItemStatus",
]
