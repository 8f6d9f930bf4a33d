"""Activity repository protocol and its document-store implementation."""

from typing import Protocol

from app.application.storage import Collections, DocumentGateway
from app.governance.audit_models import ActivityRecord


class AuditRepository(Protocol):
    """Protocol for persisting immutable activity records."""

    async def save(self, record: ActivityRecord) -> None:
        """Persist an immutable activity record. Must not allow mutation."""
        ...


class DocumentAuditRepository:
    """
    Append-only writes to the activity collection. Plain puts keyed by a fresh
    id: no read-modify-write, so no contention with other writers.
    """

    def __init__(self, gateway: DocumentGateway) -> None:
        self._gateway = gateway

    async def save(self, record: ActivityRecord) -> None:
        await self._gateway.put(Collections.ACTIVITY, record.id, record.to_dict())
