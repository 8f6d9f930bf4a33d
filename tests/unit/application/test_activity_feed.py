"""Unit tests for the activity feed read side."""

from datetime import datetime, timedelta, timezone

import pytest

from app.application.activity_feed import ActivityFeed
from app.application.read_fan_in import Page
from app.governance.audit_models import ActivityRecord, ActivityType
from app.governance.audit_repository import DocumentAuditRepository

BASE = datetime(2024, 5, 1, tzinfo=timezone.utc)


async def _seed(gateway):
    repo = DocumentAuditRepository(gateway)
    rows = [
        ("a1", "t1", "w1", "p1", ActivityType.ISSUE_CREATED),
        ("a2", "t1", "w1", "p1", ActivityType.ISSUE_UPDATED),
        ("a3", "t1", "w2", "p2", ActivityType.ISSUE_CREATED),
        ("a4", "t2", "w9", "p9", ActivityType.ISSUE_CREATED),
    ]
    for n, (rid, tenant, entity, project, kind) in enumerate(rows):
        await repo.save(
            ActivityRecord(
                id=rid,
                tenant_id=tenant,
                actor_id="alice",
                type=kind,
                message=rid,
                created_at=BASE + timedelta(minutes=n),
                entity_id=entity,
                project_id=project,
            )
        )


@pytest.mark.asyncio
async def test_feed_is_tenant_scoped_and_newest_first(gateway):
    await _seed(gateway)
    records, total = await ActivityFeed(gateway).list("t1")
    assert [r.id for r in records] == ["a3", "a2", "a1"]
    assert total == 3


@pytest.mark.asyncio
async def test_feed_filters(gateway):
    await _seed(gateway)
    feed = ActivityFeed(gateway)

    by_entity, _ = await feed.list("t1", entity_id="w1")
    by_project, _ = await feed.list("t1", project_id="p2")
    by_type, _ = await feed.list("t1", activity_type=ActivityType.ISSUE_CREATED, page=Page(limit=1))

    assert [r.id for r in by_entity] == ["a2", "a1"]
    assert [r.id for r in by_project] == ["a3"]
    assert [r.id for r in by_type] == ["a3"]
