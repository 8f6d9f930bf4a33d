"""Projects API router: create, list, get, change key prefix."""

from typing import Annotated, List, Optional

from fastapi import APIRouter, Depends

from app.api.dependencies import (
    get_actor_id,
    get_correlation_id,
    get_project_service,
    get_tenant_id,
    require_actor_id,
)
from app.application.project_service import ProjectService
from app.domain.models.work_item import Project
from app.domain.schemas.work_item import KeyPrefixChangeRequest, ProjectCreateRequest, ProjectResponse

router = APIRouter()


def _to_response(project: Project) -> ProjectResponse:
    return ProjectResponse.model_validate(project.to_document())


@router.post("", response_model=ProjectResponse, status_code=201)
async def create_project(
    body: ProjectCreateRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[ProjectService, Depends(get_project_service)],
):
    project = await service.create(tenant_id, actor_id, body, correlation_id)
    return _to_response(project)


@router.get("", response_model=List[ProjectResponse])
async def list_projects(
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
    service: Annotated[ProjectService, Depends(get_project_service)],
):
    return [_to_response(p) for p in await service.list(tenant_id, actor_id)]


@router.get("/{project_id}", response_model=ProjectResponse)
async def get_project(
    project_id: str,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[Optional[str], Depends(get_actor_id)],
    service: Annotated[ProjectService, Depends(get_project_service)],
):
    return _to_response(await service.get(tenant_id, project_id, actor_id))


@router.patch("/{project_id}/key-prefix", response_model=ProjectResponse)
async def change_key_prefix(
    project_id: str,
    body: KeyPrefixChangeRequest,
    tenant_id: Annotated[str, Depends(get_tenant_id)],
    actor_id: Annotated[str, Depends(require_actor_id)],
    correlation_id: Annotated[str, Depends(get_correlation_id)],
    service: Annotated[ProjectService, Depends(get_project_service)],
):
    """Only allowed while the project has not minted any key."""
    project = await service.change_key_prefix(tenant_id, actor_id, project_id, body.key_prefix, correlation_id)
    return _to_response(project)
