"""
Work item application service. Transaction boundary for every work item mutation.

Each mutation commits the item (and, on create, the project counter) in one
storage transaction. Audit records and the assignment notification are side
effects written after commit: their failure is logged and never turns a
committed mutation into an error.
"""

import logging
import uuid
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence

from app.application.change_detector import ChangeDescription, archived, deleted, diff
from app.application.exceptions import NotFoundError, PersistenceFailureError
from app.application.notification_dispatcher import NotificationDispatcher
from app.application.read_fan_in import (
    Page,
    Predicate,
    ReadFanIn,
    ScopeSource,
    SortKey,
    contains,
    eq,
    gte,
    is_in,
    is_null,
    lte,
    not_in,
    search,
)
from app.application.sequence_allocator import SequenceAllocator
from app.application.storage import Collections, DocumentGateway, Transaction
from app.domain.exceptions import DomainValidationError
from app.domain.models.work_item import Comment, WorkItem
from app.domain.schemas.work_item import WorkItemCreateRequest, WorkItemFilter, WorkItemUpdateRequest
from app.domain.validators.work_item_validator import (
    DEFAULT_LABEL_LIMIT,
    normalize_description,
    normalize_labels,
    normalize_title,
    parse_key,
    validate_actor_id,
    validate_date_range,
    validate_tenant_id,
)
from app.governance.audit_logger import AuditLogger
from app.governance.audit_models import ActivityType
from app.security.tenant_context import TenantContext

# Sort aliases accepted by list(); "key" orders numerically by sequence.
SORTABLE_FIELDS = {
    "created_at": "created_at",
    "updated_at": "updated_at",
    "start_date": "start_date",
    "due_date": "due_date",
    "title": "title",
    "sequence": "sequence",
    "key": "sequence",
}
NON_NULLABLE_FIELDS = ("title", "status", "priority")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _item_link(item_id: str) -> str:
    return f"/work-items/{item_id}"


@dataclass(frozen=True)
class WorkItemPage:
    items: List[WorkItem]
    total: int
    offset: int
    limit: int


class WorkItemService:
    """
    Orchestration only: validation, one transaction per mutation, then audit
    and notification. No HTTP, no FastAPI.
    """

    def __init__(
        self,
        gateway: DocumentGateway,
        allocator: SequenceAllocator,
        audit_logger: AuditLogger,
        dispatcher: NotificationDispatcher,
        logger: logging.Logger,
        *,
        label_limit: int = DEFAULT_LABEL_LIMIT,
        max_scan: Optional[int] = None,
        default_limit: int = 50,
        max_limit: int = 200,
        names: Optional[Mapping[str, str]] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._gateway = gateway
        self._allocator = allocator
        self._audit = audit_logger
        self._dispatcher = dispatcher
        self._logger = logger
        self._label_limit = label_limit
        self._default_limit = default_limit
        self._max_limit = max_limit
        self._names = names or {}
        self._clock = clock
        self._reader = ReadFanIn(gateway, Collections.WORK_ITEMS, max_scan=max_scan, logger=logger)

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    async def create(
        self,
        tenant_id: str,
        actor_id: str,
        request: WorkItemCreateRequest,
        correlation_id: str = "",
    ) -> WorkItem:
        """
        Allocate the key and write the item in one transaction. Nothing is
        written when validation fails; a lost allocation race is retried.
        """
        validate_tenant_id(tenant_id)
        validate_actor_id(actor_id)
        title = normalize_title(request.title)
        description = normalize_description(request.description)
        labels = normalize_labels(request.labels, self._label_limit)
        validate_date_range(request.start_date, request.due_date)
        item_id = str(uuid.uuid4())

        async def body(tx: Transaction) -> WorkItem:
            project = await tx.get(Collections.PROJECTS, request.project_id)
            if project is None:
                raise NotFoundError(f"Project {request.project_id} not found")
            TenantContext.validate_access(
                project.get("tenant_id"), tenant_id, legacy_owner=project.get("created_by"), actor_id=actor_id
            )
            allocation = await self._allocator.allocate_in(tx, request.project_id)
            now = self._clock()
            item = WorkItem(
                id=item_id,
                tenant_id=tenant_id,
                project_id=request.project_id,
                key=allocation.key,
                sequence=allocation.sequence,
                title=title,
                description=description,
                status=request.status,
                priority=request.priority,
                assignee_id=request.assignee_id or None,
                sub_assignee_id=request.sub_assignee_id or None,
                reporter_id=actor_id,
                start_date=request.start_date,
                due_date=request.due_date,
                labels=labels,
                created_at=now,
                updated_at=now,
            )
            tx.set(Collections.WORK_ITEMS, item.id, item.to_document())
            return item

        item = await self._gateway.run_transaction(body)
        self._logger.info(
            "work_item_created",
            extra={"tenant_id": tenant_id, "correlation_id": correlation_id, "work_item_id": item.id, "key": item.key},
        )
        await self._record(tenant_id, actor_id, item, diff(None, item), correlation_id)
        await self._notify(tenant_id, actor_id, None, item)
        return item

    async def update(
        self,
        tenant_id: str,
        actor_id: str,
        item_id: str,
        request: WorkItemUpdateRequest,
        correlation_id: str = "",
    ) -> WorkItem:
        """
        Apply the fields present in the request. The diff is taken against the
        snapshot read inside the transaction, so it describes exactly what
        this commit changed. An update that changes nothing writes nothing.
        """
        validate_tenant_id(tenant_id)
        validate_actor_id(actor_id)
        changes = self._normalize_patch(request)

        async def body(tx: Transaction):
            doc = await tx.get(Collections.WORK_ITEMS, item_id)
            if doc is None:
                raise NotFoundError(f"Work item {item_id} not found")
            previous = WorkItem.from_document(doc)
            TenantContext.validate_access(
                previous.tenant_id, tenant_id, legacy_owner=previous.reporter_id, actor_id=actor_id
            )
            candidate = replace(previous, **changes)
            validate_date_range(candidate.start_date, candidate.due_date)
            descriptions = diff(previous, candidate, self._names)
            if not descriptions:
                return previous, previous, descriptions
            updated = replace(candidate, updated_at=self._clock())
            tx.set(Collections.WORK_ITEMS, item_id, updated.to_document())
            return previous, updated, descriptions

        previous, item, descriptions = await self._gateway.run_transaction(body)
        if not descriptions:
            self._logger.info(
                "work_item_unchanged",
                extra={"tenant_id": tenant_id, "correlation_id": correlation_id, "work_item_id": item_id},
            )
            return item
        self._logger.info(
            "work_item_updated",
            extra={
                "tenant_id": tenant_id,
                "correlation_id": correlation_id,
                "work_item_id": item_id,
                "fields": [d.field for d in descriptions],
            },
        )
        await self._record(tenant_id, actor_id, item, descriptions, correlation_id)
        await self._notify(tenant_id, actor_id, previous.assignee_id, item)
        return item

    async def archive(self, tenant_id: str, actor_id: str, item_id: str, correlation_id: str = "") -> WorkItem:
        """Soft delete. Archiving an archived item is a validation error."""
        validate_actor_id(actor_id)

        async def body(tx: Transaction) -> WorkItem:
            item = await self._load_for_write(tx, tenant_id, actor_id, item_id)
            if item.is_archived:
                raise DomainValidationError(f"Work item {item.key} is already archived")
            now = self._clock()
            updated = replace(item, archived_at=now, updated_at=now)
            tx.set(Collections.WORK_ITEMS, item_id, updated.to_document())
            return updated

        item = await self._gateway.run_transaction(body)
        self._logger.info(
            "work_item_archived",
            extra={"tenant_id": tenant_id, "correlation_id": correlation_id, "work_item_id": item_id},
        )
        await self._record(tenant_id, actor_id, item, [archived()], correlation_id)
        return item

    async def delete(self, tenant_id: str, actor_id: str, item_id: str, correlation_id: str = "") -> WorkItem:
        """Hard delete. Returns the last snapshot; the audit trail outlives the item."""
        validate_actor_id(actor_id)

        async def body(tx: Transaction) -> WorkItem:
            item = await self._load_for_write(tx, tenant_id, actor_id, item_id)
            tx.delete(Collections.WORK_ITEMS, item_id)
            return item

        item = await self._gateway.run_transaction(body)
        self._logger.info(
            "work_item_deleted",
            extra={"tenant_id": tenant_id, "correlation_id": correlation_id, "work_item_id": item_id},
        )
        await self._record(
            tenant_id, actor_id, item, [deleted(item)], correlation_id, link=f"/projects/{item.project_id}"
        )
        return item

    async def add_comment(
        self,
        tenant_id: str,
        actor_id: str,
        item_id: str,
        body: str,
        correlation_id: str = "",
    ) -> Comment:
        validate_actor_id(actor_id)
        text = (body or "").strip()
        if not text:
            raise DomainValidationError("comment body must not be empty")
        item = await self.get(tenant_id, item_id, actor_id)
        comment = Comment(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            work_item_id=item.id,
            author_id=actor_id,
            body=text,
            created_at=self._clock(),
        )
        await self._gateway.put(Collections.COMMENTS, comment.id, comment.to_document())
        self._logger.info(
            "comment_added",
            extra={"tenant_id": tenant_id, "correlation_id": correlation_id, "work_item_id": item.id},
        )
        try:
            await self._audit.log_action(
                tenant_id=tenant_id,
                actor_id=actor_id,
                activity_type=ActivityType.COMMENT_ADDED,
                message=f"{item.key} - Comment added",
                entity_id=item.id,
                project_id=item.project_id,
                link=_item_link(item.id),
                mutation_id=str(uuid.uuid4()),
                correlation_id=correlation_id or None,
            )
        except PersistenceFailureError as e:
            self._logger.error(
                "audit_incomplete",
                extra={"tenant_id": tenant_id, "work_item_id": item.id, "error": e.message},
            )
        return comment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get(self, tenant_id: str, item_id: str, actor_id: Optional[str] = None) -> WorkItem:
        doc = await self._gateway.get(Collections.WORK_ITEMS, item_id)
        if doc is None:
            raise NotFoundError(f"Work item {item_id} not found")
        TenantContext.validate_access(
            doc.get("tenant_id"), tenant_id, legacy_owner=doc.get("reporter_id"), actor_id=actor_id
        )
        return WorkItem.from_document(doc)

    async def get_by_key(self, tenant_id: str, key: str, actor_id: Optional[str] = None) -> WorkItem:
        """Keys are unique per project, not per tenant; the oldest match wins."""
        parse_key(key)
        key = key.strip()
        result = await self._reader.query(
            tenant_id,
            [eq("key", key)],
            [SortKey("created_at")],
            Page(limit=1),
            scan_field="key",
            fallback_scopes=self._fallback_scopes(actor_id),
        )
        if not result.items:
            raise NotFoundError(f"Work item {key} not found")
        return WorkItem.from_document(result.items[0])

    async def list(
        self,
        tenant_id: str,
        actor_id: Optional[str] = None,
        work_item_filter: Optional[WorkItemFilter] = None,
    ) -> WorkItemPage:
        """Archived items are excluded unless the filter asks for them."""
        work_item_filter = work_item_filter or WorkItemFilter()
        limit = min(work_item_filter.limit or self._default_limit, self._max_limit)
        page = Page(offset=work_item_filter.offset, limit=limit)
        result = await self._reader.query(
            tenant_id,
            self._predicates(work_item_filter),
            self._sort_keys(work_item_filter.sort),
            page,
            fallback_scopes=self._fallback_scopes(actor_id),
        )
        return WorkItemPage(
            items=[WorkItem.from_document(doc) for doc in result.items],
            total=result.total,
            offset=page.offset,
            limit=limit,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _normalize_patch(self, request: WorkItemUpdateRequest) -> Dict[str, Any]:
        changes: Dict[str, Any] = {}
        for name in request.model_fields_set:
            value = getattr(request, name)
            if value is None and name in NON_NULLABLE_FIELDS:
                raise DomainValidationError(f"{name} cannot be cleared")
            if name == "title":
                value = normalize_title(value)
            elif name == "description":
                value = normalize_description(value)
            elif name == "labels":
                value = normalize_labels(value, self._label_limit)
            elif name in ("assignee_id", "sub_assignee_id"):
                value = value or None
            changes[name] = value
        return changes

    async def _load_for_write(self, tx: Transaction, tenant_id: str, actor_id: str, item_id: str) -> WorkItem:
        doc = await tx.get(Collections.WORK_ITEMS, item_id)
        if doc is None:
            raise NotFoundError(f"Work item {item_id} not found")
        TenantContext.validate_access(
            doc.get("tenant_id"), tenant_id, legacy_owner=doc.get("reporter_id"), actor_id=actor_id
        )
        return WorkItem.from_document(doc)

    @staticmethod
    def _fallback_scopes(actor_id: Optional[str]) -> List[ScopeSource]:
        # Legacy items without a tenant remain visible to their reporter.
        return [ScopeSource("reporter_id", actor_id)] if actor_id else []

    @staticmethod
    def _predicates(f: WorkItemFilter) -> List[Predicate]:
        predicates: List[Predicate] = []
        if f.project_id:
            predicates.append(eq("project_id", f.project_id))
        if f.status:
            predicates.append(is_in("status", [s.value for s in f.status]))
        if f.exclude_status:
            predicates.append(not_in("status", [s.value for s in f.exclude_status]))
        if f.priority:
            predicates.append(is_in("priority", [p.value for p in f.priority]))
        if f.assignee_id:
            predicates.append(eq("assignee_id", f.assignee_id))
        if f.label:
            predicates.append(contains("labels", f.label.strip()))
        if f.due_before is not None:
            predicates.append(lte("due_date", f.due_before.isoformat()))
        if f.due_after is not None:
            predicates.append(gte("due_date", f.due_after.isoformat()))
        if f.text and f.text.strip():
            predicates.append(search("title", f.text.strip()))
        if not f.include_archived:
            predicates.append(is_null("archived_at"))
        return predicates

    @staticmethod
    def _sort_keys(tokens: Sequence[str]) -> List[SortKey]:
        keys: List[SortKey] = []
        for token in tokens:
            parsed = SortKey.parse(token)
            if parsed.field not in SORTABLE_FIELDS:
                raise DomainValidationError(
                    f"cannot sort by {parsed.field!r}; choose from {', '.join(sorted(SORTABLE_FIELDS))}"
                )
            keys.append(SortKey(SORTABLE_FIELDS[parsed.field], parsed.descending))
        return keys

    async def _record(
        self,
        tenant_id: str,
        actor_id: str,
        item: WorkItem,
        descriptions: Sequence[ChangeDescription],
        correlation_id: str,
        link: Optional[str] = None,
    ) -> None:
        try:
            await self._audit.record(
                tenant_id=tenant_id,
                actor_id=actor_id,
                entity_id=item.id,
                project_id=item.project_id,
                descriptions=descriptions,
                key=item.key,
                link=link or _item_link(item.id),
                mutation_id=str(uuid.uuid4()),
                correlation_id=correlation_id or None,
            )
        except PersistenceFailureError as e:
            # The mutation has committed; the activity log is incomplete for it.
            self._logger.error(
                "audit_incomplete",
                extra={
                    "tenant_id": tenant_id,
                    "correlation_id": correlation_id,
                    "work_item_id": item.id,
                    "error": e.message,
                },
            )

    async def _notify(
        self,
        tenant_id: str,
        actor_id: str,
        previous_assignee: Optional[str],
        item: WorkItem,
    ) -> None:
        try:
            await self._dispatcher.maybe_notify(
                tenant_id=tenant_id,
                actor_id=actor_id,
                previous_assignee=previous_assignee,
                next_assignee=item.assignee_id,
                subject_title=item.title,
                entity_id=item.id,
                key=item.key,
                link=_item_link(item.id),
            )
        except PersistenceFailureError as e:
            self._logger.error(
                "notification_incomplete",
                extra={"tenant_id": tenant_id, "work_item_id": item.id, "error": e.message},
            )
