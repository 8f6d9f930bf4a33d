"""Append-only activity logging for work item mutations. No FastAPI."""

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, List, Optional, Sequence

from app.application.change_detector import ChangeDescription, ChangeKind
from app.application.exceptions import PersistenceFailureError
from app.governance.audit_models import ActivityRecord, ActivityType
from app.governance.audit_repository import AuditRepository

_KIND_TO_TYPE = {
    ChangeKind.CREATED: ActivityType.ISSUE_CREATED,
    ChangeKind.ARCHIVED: ActivityType.ISSUE_ARCHIVED,
    ChangeKind.DELETED: ActivityType.ISSUE_DELETED,
}


def activity_type_for(description: ChangeDescription) -> ActivityType:
    """Assignee changes get their own type; every other field change is an update."""
    if description.kind is ChangeKind.UPDATED:
        if description.field == "assignee_id":
            return ActivityType.ASSIGNEE_CHANGED
        return ActivityType.ISSUE_UPDATED
    return _KIND_TO_TYPE[description.kind]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuditLogger:
    """
    Writes one immutable ActivityRecord per change description via repository.
    All records of one mutation carry the same actor, entity, project, link and
    mutation_id; only the message differs.

    Failure policy: every record is attempted. If any write failed,
    PersistenceFailureError is raised afterwards. The mutation being audited
    has already committed, so callers log and continue.
    """

    def __init__(
        self,
        repository: AuditRepository,
        logger: Optional[logging.Logger] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._repository = repository
        self._logger = logger or logging.getLogger(__name__)
        self._clock = clock

    async def record(
        self,
        *,
        tenant_id: str,
        actor_id: str,
        entity_id: str,
        project_id: Optional[str],
        descriptions: Sequence[ChangeDescription],
        key: str,
        link: Optional[str],
        mutation_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> List[ActivityRecord]:
        """
        Persist one record per description. Returns the records that were written.
        One call is one mutation: without an explicit mutation_id a fresh one is minted.
        """
        mutation_id = mutation_id or str(uuid.uuid4())
        created_at = self._clock()
        written: List[ActivityRecord] = []
        for description in descriptions:
            record = ActivityRecord(
                id=str(uuid.uuid4()),
                tenant_id=tenant_id,
                actor_id=actor_id,
                type=activity_type_for(description),
                message=f"{key} - {description.message}",
                created_at=created_at,
                entity_id=entity_id,
                project_id=project_id,
                link=link,
                mutation_id=mutation_id,
                correlation_id=correlation_id,
            )
            try:
                await self._repository.save(record)
            except Exception as e:
                self._logger.error(
                    "activity_write_failed",
                    extra={
                        "tenant_id": tenant_id,
                        "entity_id": entity_id,
                        "mutation_id": mutation_id,
                        "activity_type": record.type.value,
                        "error": str(e),
                    },
                )
                continue
            written.append(record)

        failed = len(descriptions) - len(written)
        if failed:
            raise PersistenceFailureError(
                f"{failed} of {len(descriptions)} activity records for {key} were not written",
                failed=failed,
                total=len(descriptions),
            )
        return written

    async def log_action(
        self,
        *,
        tenant_id: str,
        actor_id: str,
        activity_type: ActivityType,
        message: str,
        entity_id: Optional[str] = None,
        project_id: Optional[str] = None,
        link: Optional[str] = None,
        mutation_id: Optional[str] = None,
        correlation_id: Optional[str] = None,
    ) -> ActivityRecord:
        """Write a single free-form activity (project created, comment added)."""
        record = ActivityRecord(
            id=str(uuid.uuid4()),
            tenant_id=tenant_id,
            actor_id=actor_id,
            type=activity_type,
            message=message,
            created_at=self._clock(),
            entity_id=entity_id,
            project_id=project_id,
            link=link,
            mutation_id=mutation_id or str(uuid.uuid4()),
            correlation_id=correlation_id,
        )
        try:
            await self._repository.save(record)
        except Exception as e:
            self._logger.error(
                "activity_write_failed",
                extra={"tenant_id": tenant_id, "activity_type": activity_type.value, "error": str(e)},
            )
            raise PersistenceFailureError(f"Activity record was not written: {e}") from e
        return record
