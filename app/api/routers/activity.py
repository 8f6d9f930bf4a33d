"""Activity feed router: GET /activity (newest first)."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, Query

from app.api.dependencies import get_activity_feed, get_tenant_id
from app.application.activity_feed import ActivityFeed
from app.application.read_fan_in import Page
from app.governance.audit_models import ActivityType
from app.domain.schemas.work_item import ActivityListResponse, ActivityResponse

router = APIRouter()


@router.get("", response_model=ActivityListResponse)
async def list_activity(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    feed: Annotated[ActivityFeed, Depends(get_activity_feed)],
    project_id: Optional[str] = None,
    entity_id: Optional[str] = None,
    type: Optional[ActivityType] = None,
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[int, Query(ge=1, le=200)] = 50,
):
    records, total = await feed.list(
        tenant_id,
        project_id=project_id,
        entity_id=entity_id,
        activity_type=type,
        page=Page(offset=offset, limit=limit),
    )
    return ActivityListResponse(
        items=[ActivityResponse.model_validate(r.to_dict()) for r in records],
        total=total,
    )
