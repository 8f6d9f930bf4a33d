"""Work items API router: create, list, read, update, archive, delete, comment."""

from datetime import date
from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends, Query, Response

from app.api.dependencies import (
    get_actor_id,
    get_correlation_id,
    get_tenant_id,
    get_work_item_service,
    require_actor_id,
)
from app.application.work_item_service import WorkItemService
from app.domain.models.work_item import WorkItem, WorkItemPriority, WorkItemStatus
from app.domain.schemas.work_item import (
    CommentCreateRequest,
    CommentResponse,
    WorkItemCreateRequest,
    WorkItemFilter,
    WorkItemListResponse,
    WorkItemResponse,
    WorkItemUpdateRequest,
)

router = APIRouter()


def _to_response(item: WorkItem) -> WorkItemResponse:
    return WorkItemResponse.model_validate(item.to_document())


@router.post("", response_model=WorkItemResponse, status_code=201)
async def create_work_item(
    body: WorkItemCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    """Create a work item; the key (PREFIX-N) is allocated in the same commit."""
    item = await service.create(tenant_id, actor_id, body, correlation_id)
    return _to_response(item)


@router.get("", response_model=WorkItemListResponse)
async def list_work_items(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
    project_id: Optional[str] = None,
    status: Annotated[Optional[List[WorkItemStatus]], Query()] = None,
    exclude_status: Annotated[Optional[List[WorkItemStatus]], Query()] = None,
    priority: Annotated[Optional[List[WorkItemPriority]], Query()] = None,
    assignee_id: Optional[str] = None,
    label: Optional[str] = None,
    due_before: Optional[date] = None,
    due_after: Optional[date] = None,
    text: Optional[str] = None,
    include_archived: bool = False,
    sort: str = "-updated_at",
    offset: Annotated[int, Query(ge=0)] = 0,
    limit: Annotated[Optional[int], Query(ge=1)] = None,
):
    """Filters combine conjunctively. sort is a comma-separated list; '-' prefix means descending."""
    work_item_filter = WorkItemFilter(
        project_id=project_id,
        status=status,
        exclude_status=exclude_status,
        priority=priority,
        assignee_id=assignee_id,
        label=label,
        due_before=due_before,
        due_after=due_after,
        text=text,
        include_archived=include_archived,
        sort=[s for s in sort.split(",") if s.strip()],
        offset=offset,
        limit=limit,
    )
    page = await service.list(tenant_id, actor_id, work_item_filter)
    return WorkItemListResponse(
        items=[_to_response(item) for item in page.items],
        total=page.total,
        offset=page.offset,
        limit=page.limit,
    )


@router.get("/by-key/{key}", response_model=WorkItemResponse)
async def get_work_item_by_key(
    key: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    return _to_response(await service.get_by_key(tenant_id, key, actor_id))


@router.get("/{item_id}", response_model=WorkItemResponse)
async def get_work_item(
    item_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    return _to_response(await service.get(tenant_id, item_id, actor_id))


@router.patch("/{item_id}", response_model=WorkItemResponse)
async def update_work_item(
    item_id: str,
    body: WorkItemUpdateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    """Partial update; explicit null clears a nullable field."""
    item = await service.update(tenant_id, actor_id, item_id, body, correlation_id)
    return _to_response(item)


@router.post("/{item_id}/archive", response_model=WorkItemResponse)
async def archive_work_item(
    item_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    return _to_response(await service.archive(tenant_id, actor_id, item_id, correlation_id))


@router.delete("/{item_id}", status_code=204)
async def delete_work_item(
    item_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    await service.delete(tenant_id, actor_id, item_id, correlation_id)
    return Response(status_code=204)


@router.post("/{item_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    item_id: str,
    body: CommentCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[WorkItemService, Depends(get_work_item_service)],
):
    comment = await service.add_comment(tenant_id, actor_id, item_id, body.body, correlation_id)
    return CommentResponse.model_validate(comment.to_document())
