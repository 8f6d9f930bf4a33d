"""Notification inbox router: the caller's notifications and the read flag."""

from typing import Annotated

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_notification_inbox, get_tenant_id, require_actor_id
from app.application.notification_inbox import NotificationInbox
from app.application.read_fan_in import Page
from app.domain.models.notification import NotificationRecord
from app.domain.schemas.work_item import NotificationListResponse, NotificationResponse

router = APIRouter()


def _to_response(notification: NotificationRecord) -> NotificationResponse:
    return NotificationResponse.model_validate(notification.to_document())


@router.get("", response_model=NotificationListResponse)
async def list_notifications(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    inbox: Annotated[NotificationInbox, Depends(get_notification_inbox)],
    unread_only: bool = False,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
):
    """Notifications addressed to the calling actor, newest first."""
    records, total = await inbox.list(
        tenant_id, actor_id, unread_only=unread_only, page=Page(offset=offset, limit=limit)
    )
    return NotificationListResponse(items=[_to_response(n) for n in records], total=total)


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_notification_read(
    notification_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    inbox: Annotated[NotificationInbox, Depends(get_notification_inbox)],
):
    return _to_response(await inbox.mark_read(tenant_id, actor_id, notification_id))
