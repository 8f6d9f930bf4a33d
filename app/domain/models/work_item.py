"""Projects, work items and comments as plain dataclasses; storage mapping lives in the services."""

from dataclasses import dataclass, field
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, FrozenSet, Optional


class WorkItemStatus(str, Enum):
    """Closed set of work item statuses."""

    TODO = "TODO"
    IN_PROGRESS = "IN_PROGRESS"
    DONE = "DONE"

    @property
    def label(self) -> str:
        return _STATUS_LABELS[self]


class WorkItemPriority(str, Enum):
    """Closed set of work item priorities."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"

    @property
    def label(self) -> str:
        return _PRIORITY_LABELS[self]


_STATUS_LABELS = {
    WorkItemStatus.TODO: "To do",
    WorkItemStatus.IN_PROGRESS: "In progress",
    WorkItemStatus.DONE: "Done",
}

_PRIORITY_LABELS = {
    WorkItemPriority.LOW: "Low",
    WorkItemPriority.MEDIUM: "Medium",
    WorkItemPriority.HIGH: "High",
    WorkItemPriority.URGENT: "Urgent",
}


def _iso(value: Optional[date]) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _parse_date(value: Optional[str]) -> Optional[date]:
    if not value:
        return None
    return date.fromisoformat(value)


@dataclass(frozen=True)
class Project:
    """
    Parent of work items. Owns the per-project sequence counter (issue_seq) and
    the key prefix every work item key is minted with.
    """

    id: str
    tenant_id: str
    name: str
    created_by: str
    created_at: datetime
    key_prefix: Optional[str] = None
    issue_seq: int = 0

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "key_prefix": self.key_prefix,
            "issue_seq": self.issue_seq,
            "created_by": self.created_by,
            "created_at": _iso(self.created_at),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Project":
        return cls(
            id=doc["id"],
            tenant_id=doc.get("tenant_id"),
            name=doc.get("name") or "",
            created_by=doc.get("created_by") or "",
            created_at=_parse_datetime(doc.get("created_at")),
            key_prefix=doc.get("key_prefix") or None,
            issue_seq=int(doc.get("issue_seq") or 0),
        )


@dataclass(frozen=True)
class WorkItem:
    """
    Snapshot of a work item. Immutable; a mutation produces a new snapshot via
    dataclasses.replace so previous and next can be diffed.

    id, project_id, key, sequence and created_at never change after creation.
    tenant_id is None only on legacy records written before tenant scoping.
    """

    id: str
    tenant_id: Optional[str]
    project_id: str
    key: str
    sequence: int
    title: str
    status: WorkItemStatus
    priority: WorkItemPriority
    reporter_id: str
    created_at: datetime
    updated_at: datetime
    description: str = ""
    assignee_id: Optional[str] = None
    sub_assignee_id: Optional[str] = None
    start_date: Optional[date] = None
    due_date: Optional[date] = None
    labels: FrozenSet[str] = field(default_factory=frozenset)
    archived_at: Optional[datetime] = None

    @property
    def is_archived(self) -> bool:
        return self.archived_at is not None

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "project_id": self.project_id,
            "key": self.key,
            "sequence": self.sequence,
            "title": self.title,
            "description": self.description,
            "status": self.status.value,
            "priority": self.priority.value,
            "assignee_id": self.assignee_id,
            "sub_assignee_id": self.sub_assignee_id,
            "reporter_id": self.reporter_id,
            "start_date": _iso(self.start_date),
            "due_date": _iso(self.due_date),
            "labels": sorted(self.labels),
            "created_at": _iso(self.created_at),
            "updated_at": _iso(self.updated_at),
            "archived_at": _iso(self.archived_at),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "WorkItem":
        return cls(
            id=doc["id"],
            tenant_id=doc.get("tenant_id") or None,
            project_id=doc["project_id"],
            key=doc["key"],
            sequence=int(doc.get("sequence") or 0),
            title=doc.get("title") or "",
            description=doc.get("description") or "",
            status=WorkItemStatus(doc.get("status") or WorkItemStatus.TODO.value),
            priority=WorkItemPriority(doc.get("priority") or WorkItemPriority.MEDIUM.value),
            assignee_id=doc.get("assignee_id") or None,
            sub_assignee_id=doc.get("sub_assignee_id") or None,
            reporter_id=doc.get("reporter_id") or "",
            start_date=_parse_date(doc.get("start_date")),
            due_date=_parse_date(doc.get("due_date")),
            labels=frozenset(doc.get("labels") or ()),
            created_at=_parse_datetime(doc.get("created_at")),
            updated_at=_parse_datetime(doc.get("updated_at")),
            archived_at=_parse_datetime(doc.get("archived_at")),
        )


@dataclass(frozen=True)
class Comment:
    """Free-text comment on a work item."""

    id: str
    tenant_id: str
    work_item_id: str
    author_id: str
    body: str
    created_at: datetime

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "work_item_id": self.work_item_id,
            "author_id": self.author_id,
            "body": self.body,
            "created_at": _iso(self.created_at),
        }
