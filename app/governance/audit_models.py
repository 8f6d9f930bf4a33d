"""Immutable activity record model. Domain-level immutability."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional


class ActivityType(str, Enum):
    PROJECT_CREATED = "project_created"
    PROJECT_UPDATED = "project_updated"
    ISSUE_CREATED = "issue_created"
    ISSUE_UPDATED = "issue_updated"
    ISSUE_ARCHIVED = "issue_archived"
    ISSUE_DELETED = "issue_deleted"
    ASSIGNEE_CHANGED = "assignee_changed"
    COMMENT_ADDED = "comment_added"


@dataclass(frozen=True)
class ActivityRecord:
    """
    Immutable activity record: who (actor), what (type + message), which entity
    and project, when (UTC), and the mutation that caused it. Records written
    for one mutation share mutation_id; correlation_id is the request trace id
    and may span several mutations.
    """

    id: str
    tenant_id: str
    actor_id: str
    type: ActivityType
    message: str
    created_at: datetime
    entity_id: Optional[str] = None
    project_id: Optional[str] = None
    link: Optional[str] = None
    mutation_id: Optional[str] = None
    correlation_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Structured representation for storage and JSON logging."""
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "actor_id": self.actor_id,
            "type": self.type.value,
            "message": self.message,
            "entity_id": self.entity_id,
            "project_id": self.project_id,
            "link": self.link,
            "mutation_id": self.mutation_id,
            "correlation_id": self.correlation_id,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, doc: Dict[str, Any]) -> "ActivityRecord":
        return cls(
            id=doc["id"],
            tenant_id=doc["tenant_id"],
            actor_id=doc["actor_id"],
            type=ActivityType(doc["type"]),
            message=doc.get("message") or "",
            entity_id=doc.get("entity_id"),
            project_id=doc.get("project_id"),
            link=doc.get("link"),
            mutation_id=doc.get("mutation_id"),
            correlation_id=doc.get("correlation_id"),
            created_at=datetime.fromisoformat(doc["created_at"].replace("Z", "+00:00")),
        )
