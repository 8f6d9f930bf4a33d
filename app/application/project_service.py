"""Project application service. Projects own the key prefix and the sequence counter."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional

from app.application.exceptions import NotFoundError, PersistenceFailureError
from app.application.read_fan_in import ReadFanIn, ScopeSource, SortKey
from app.application.storage import Collections, DocumentGateway, Transaction
from app.domain.exceptions import DomainValidationError
from app.domain.models.work_item import Project
from app.domain.schemas.work_item import ProjectCreateRequest
from app.domain.validators.work_item_validator import (
    normalize_key_prefix,
    validate_actor_id,
    validate_key_prefix,
    validate_tenant_id,
)
from app.governance.audit_logger import AuditLogger
from app.governance.audit_models import ActivityType
from app.security.tenant_context import TenantContext


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _project_link(project_id: str) -> str:
    return f"/projects/{project_id}"


def _clean_prefix(raw: str) -> str:
    prefix = normalize_key_prefix(raw)
    if not prefix:
        raise DomainValidationError(f"key prefix {raw!r} has no usable characters (A-Z, 0-9, _)")
    return validate_key_prefix(prefix)


class ProjectService:
    """
    Create, read and list projects. A project may be created without a key
    prefix; the allocator derives and persists one on the first allocation.
    The prefix can only be changed while no key has been minted.
    """

    def __init__(
        self,
        gateway: DocumentGateway,
        audit_logger: AuditLogger,
        logger: logging.Logger,
        max_scan: Optional[int] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._audit = audit_logger
        self._logger = logger
        self._clock = clock
        self._reader = ReadFanIn(gateway, Collections.PROJECTS, max_scan=max_scan, logger=logger)

    async def create(
        self,
        tenant_id: str,
        actor_id: str,
        request: ProjectCreateRequest,
        correlation_id: str = "",
    ) -> Project:
        validate_tenant_id(tenant_id)
        validate_actor_id(actor_id)
        name = request.name.strip()
        if not name:
            raise DomainValidationError("project name must not be empty")
        prefix = _clean_prefix(request.key_prefix) if request.key_prefix and request.key_prefix.strip() else None

        project = Project(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            name=name,
            created_by=actor_id,
            created_at=self._clock(),
            key_prefix=prefix,
            issue_seq=0,
        )
        await self._gateway.put(Collections.PROJECTS, project.id, project.to_document())
        self._logger.info(
            "project_created",
            extra={"tenant_id": tenant_id, "correlation_id": correlation_id, "project_id": project.id},
        )
        try:
            await self._audit.log_action(
                tenant_id=tenant_id,
                actor_id=actor_id,
                activity_type=ActivityType.PROJECT_CREATED,
                message=f"Project created: {name}",
                entity_id=project.id,
                project_id=project.id,
                link=_project_link(project.id),
                mutation_id=str(uuid.uuid4()),
                correlation_id=correlation_id or None,
            )
        except PersistenceFailureError as e:
            self._logger.error(
                "audit_incomplete",
                extra={"tenant_id": tenant_id, "project_id": project.id, "error": e.message},
            )
        return project

    async def get(self, tenant_id: str, project_id: str, actor_id: Optional[str] = None) -> Project:
        doc = await self._gateway.get(Collections.PROJECTS, project_id)
        if doc is None:
            raise NotFoundError(f"Project {project_id} not found")
        TenantContext.validate_access(
            doc.get("tenant_id"), tenant_id, legacy_owner=doc.get("created_by"), actor_id=actor_id
        )
        return Project.from_document(doc)

    async def list(self, tenant_id: str, actor_id: Optional[str] = None) -> List[Project]:
        """Tenant projects plus the actor's own pre-tenant projects, by name."""
        fallback = [ScopeSource("created_by", actor_id)] if actor_id else []
        result = await self._reader.query(
            tenant_id,
            sort=[SortKey("name")],
            fallback_scopes=fallback,
        )
        return [Project.from_document(doc) for doc in result.items]

    async def change_key_prefix(
        self,
        tenant_id: str,
        actor_id: str,
        project_id: str,
        key_prefix: str,
        correlation_id: str = "",
    ) -> Project:
        """Raises DomainValidationError once any key has been minted with the current prefix."""
        validate_actor_id(actor_id)
        prefix = _clean_prefix(key_prefix)

        async def body(tx: Transaction) -> Optional[Project]:
            doc = await tx.get(Collections.PROJECTS, project_id)
            if doc is None:
                raise NotFoundError(f"Project {project_id} not found")
            TenantContext.validate_access(
                doc.get("tenant_id"), tenant_id, legacy_owner=doc.get("created_by"), actor_id=actor_id
            )
            if doc.get("key_prefix") == prefix:
                return None
            if int(doc.get("issue_seq") or 0) > 0:
                raise DomainValidationError(
                    f"key prefix of project {project_id} is fixed: keys have already been minted with it"
                )
            updated = {**doc, "key_prefix": prefix}
            tx.set(Collections.PROJECTS, project_id, updated)
            return Project.from_document(updated)

        project = await self._gateway.run_transaction(body)
        if project is None:
            return await self.get(tenant_id, project_id, actor_id)
        try:
            await self._audit.log_action(
                tenant_id=tenant_id,
                actor_id=actor_id,
                activity_type=ActivityType.PROJECT_UPDATED,
                message=f"Project key prefix set to {prefix}",
                entity_id=project_id,
                project_id=project_id,
                link=_project_link(project_id),
                mutation_id=str(uuid.uuid4()),
                correlation_id=correlation_id or None,
            )
        except PersistenceFailureError as e:
            self._logger.error(
                "audit_incomplete",
                extra={"tenant_id": tenant_id, "project_id": project_id, "error": e.message},
            )
        return project
