"""Read side of the activity log."""

from typing import List, Optional, Tuple

from app.application.read_fan_in import Page, ReadFanIn, SortKey, eq
from app.application.storage import Collections, DocumentGateway
from app.governance.audit_models import ActivityRecord, ActivityType


class ActivityFeed:
    def __init__(self, gateway: DocumentGateway, max_scan: Optional[int] = None) -> None:
        self._reader = ReadFanIn(gateway, Collections.ACTIVITY, max_scan=max_scan)

    async def list(
        self,
        tenant_id: str,
        *,
        project_id: Optional[str] = None,
        entity_id: Optional[str] = None,
        activity_type: Optional[ActivityType] = None,
        page: Page = Page(),
    ) -> Tuple[List[ActivityRecord], int]:
        """Newest first. Returns (page of records, total matching)."""
        predicates = []
        scan_field = None
        if entity_id:
            predicates.append(eq("entity_id", entity_id))
            scan_field = "entity_id"
        if project_id:
            predicates.append(eq("project_id", project_id))
        if activity_type is not None:
            predicates.append(eq("type", activity_type.value))
        result = await self._reader.query(
            tenant_id,
            predicates,
            [SortKey("created_at", descending=True)],
            page,
            scan_field=scan_field,
        )
        return [ActivityRecord.from_dict(doc) for doc in result.items], result.total
