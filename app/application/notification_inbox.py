"""Recipient-facing notification inbox: listing and the read flag."""

import logging
from typing import List, Optional, Tuple

from app.application.exceptions import NotFoundError
from app.application.read_fan_in import Page, ReadFanIn, SortKey, eq
from app.application.storage import Collections, DocumentGateway, Transaction
from app.domain.models.notification import NotificationRecord
from app.security.exceptions import AuthorizationError
from app.security.tenant_context import TenantContext


class NotificationInbox:
    """Listing goes through the fan-in reader, scanning by recipient rather than by tenant."""

    def __init__(
        self,
        gateway: DocumentGateway,
        max_scan: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self._gateway = gateway
        self._logger = logger or logging.getLogger(__name__)
        self._reader = ReadFanIn(
            gateway, Collections.NOTIFICATIONS, max_scan=max_scan, logger=self._logger
        )

    async def list(
        self,
        tenant_id: str,
        recipient_id: str,
        *,
        unread_only: bool = False,
        page: Page = Page(),
    ) -> Tuple[List[NotificationRecord], int]:
        """Newest first. Returns (page of notifications, total matching)."""
        predicates = [eq("recipient_id", recipient_id)]
        if unread_only:
            predicates.append(eq("read", False))
        result = await self._reader.query(
            tenant_id,
            predicates,
            [SortKey("created_at", descending=True)],
            page,
            scan_field="recipient_id",
        )
        return [NotificationRecord.from_document(doc) for doc in result.items], result.total

    async def mark_read(self, tenant_id: str, recipient_id: str, notification_id: str) -> NotificationRecord:
        """Set the read flag. Only the recipient may do this; already-read notifications are left as is."""

        async def body(tx: Transaction) -> NotificationRecord:
            doc = await tx.get(Collections.NOTIFICATIONS, notification_id)
            if doc is None:
                raise NotFoundError(f"Notification {notification_id} not found")
            TenantContext.validate_access(doc.get("tenant_id"), tenant_id)
            if doc.get("recipient_id") != recipient_id:
                raise AuthorizationError("Only the recipient can mark a notification as read")
            if not doc.get("read"):
                doc = {**doc, "read": True}
                tx.set(Collections.NOTIFICATIONS, notification_id, doc)
            return NotificationRecord.from_document(doc)

        notification = await self._gateway.run_transaction(body)
        self._logger.info(
            "notification_marked_read",
            extra={"tenant_id": tenant_id, "notification_id": notification_id},
        )
        return notification
