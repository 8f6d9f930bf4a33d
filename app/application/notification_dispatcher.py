"""Assignment notifications: trigger rule, persistence and best-effort broker publish."""

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Optional, Protocol

from app.application.exceptions import PersistenceFailureError
from app.application.storage import Collections, DocumentGateway
from app.domain.models.notification import NotificationKind, NotificationRecord


class NotificationPublisher(Protocol):
    async def publish_notification(self, notification: NotificationRecord) -> None: ...


def should_notify(
    actor_id: str,
    previous_assignee: Optional[str],
    next_assignee: Optional[str],
) -> bool:
    """
    True iff there is a new assignee, it differs from the previous one, and it
    is not the actor. Unassignment, no-op reassignment and self-assignment never notify.
    """
    next_assignee = next_assignee or None
    previous_assignee = previous_assignee or None
    return (
        next_assignee is not None
        and next_assignee != previous_assignee
        and next_assignee != actor_id
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NotificationDispatcher:
    """
    Writes at most one NotificationRecord per mutation. Fire-and-forget relative
    to the mutation: a storage failure raises PersistenceFailureError for the
    caller to log and swallow; a broker failure or a publish slower than
    publish_timeout seconds is logged here and swallowed.
    Delivery is at-least-once; consumers suppress duplicates by notification id.
    """

    def __init__(
        self,
        gateway: DocumentGateway,
        publisher: Optional[NotificationPublisher] = None,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = _utcnow,
        publish_timeout: Optional[float] = None,
    ) -> None:
        self._gateway = gateway
        self._publish_timeout = publish_timeout
        self._publisher = publisher
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    async def maybe_notify(
        self,
        *,
        tenant_id: str,
        actor_id: str,
        previous_assignee: Optional[str],
        next_assignee: Optional[str],
        subject_title: str,
        entity_id: str,
        key: str,
        link: Optional[str] = None,
    ) -> Optional[NotificationRecord]:
        """Returns the stored notification, or None when the rule did not fire."""
        if not should_notify(actor_id, previous_assignee, next_assignee):
            return None

        notification = NotificationRecord(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            recipient_id=next_assignee,
            actor_id=actor_id,
            kind=NotificationKind.ASSIGNED,
            title=f"Assigned to you: {key}",
            body=subject_title,
            link=link,
            entity_id=entity_id,
            created_at=self._clock(),
        )
        try:
            await self._gateway.put(
                Collections.NOTIFICATIONS, notification.id, notification.to_document()
            )
        except Exception as e:
            self._logger.error(
                "notification_write_failed",
                extra={"tenant_id": tenant_id, "entity_id": entity_id, "recipient_id": next_assignee, "error": str(e)},
            )
            raise PersistenceFailureError(f"Notification for {key} was not written: {e}") from e
        self._logger.info(
            "notification_created",
            extra={"tenant_id": tenant_id, "entity_id": entity_id, "notification_id": notification.id},
        )

        if self._publisher is not None:
            try:
                await asyncio.wait_for(
                    self._publisher.publish_notification(notification), timeout=self._publish_timeout
                )
            except asyncio.TimeoutError:
                self._logger.error(
                    "notification_publish_timeout",
                    extra={
                        "tenant_id": tenant_id,
                        "notification_id": notification.id,
                        "timeout_s": self._publish_timeout,
                    },
                )
            except Exception as e:
                # Stored record stays authoritative; the inbox still shows it.
                self._logger.error(
                    "notification_publish_failed",
                    extra={"tenant_id": tenant_id, "notification_id": notification.id, "error": str(e)},
                )
        return notification
