"""Notification inbox entry. Immutable except for the recipient-owned read flag."""

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from app.domain.exceptions import SelfNotificationError


class NotificationKind(str, Enum):
    ASSIGNED = "assigned"
    MENTION = "mention"
    SYSTEM = "system"


@dataclass(frozen=True)
class NotificationRecord:
    """
    Notification addressed to one recipient. Never addressed to the actor who
    caused it; construction refuses recipient == actor.
    """

    id: str
    tenant_id: str
    recipient_id: str
    actor_id: Optional[str]
    kind: NotificationKind
    title: str
    created_at: datetime
    body: Optional[str] = None
    link: Optional[str] = None
    entity_id: Optional[str] = None
    read: bool = False

    def __post_init__(self) -> None:
        if self.actor_id is not None and self.recipient_id == self.actor_id:
            raise SelfNotificationError(
                f"Notification recipient {self.recipient_id!r} is the acting party"
            )

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "recipient_id": self.recipient_id,
            "actor_id": self.actor_id,
            "kind": self.kind.value,
            "title": self.title,
            "body": self.body,
            "link": self.link,
            "entity_id": self.entity_id,
            "read": self.read,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "NotificationRecord":
        return cls(
            id=doc["id"],
            tenant_id=doc["tenant_id"],
            recipient_id=doc["recipient_id"],
            actor_id=doc.get("actor_id"),
            kind=NotificationKind(doc.get("kind") or NotificationKind.SYSTEM.value),
            title=doc.get("title") or "",
            body=doc.get("body"),
            link=doc.get("link"),
            entity_id=doc.get("entity_id"),
            read=bool(doc.get("read")),
            created_at=datetime.fromisoformat(doc["created_at"].replace("Z", "+00:00")),
        )
