"""Shared fixtures for application tests: in-memory gateway and seeded projects."""

from datetime import datetime, timezone
from unittest.mock import MagicMock

import pytest

from app.application.storage import Collections, RetryPolicy
from app.domain.models.work_item import Project
from app.infrastructure.memory.document_gateway_memory import InMemoryDocumentGateway

FAST_RETRY = RetryPolicy(max_attempts=50, backoff_base_ms=1, backoff_max_ms=2)


@pytest.fixture
def gateway():
    return InMemoryDocumentGateway(FAST_RETRY)


@pytest.fixture
def logger():
    return MagicMock()


async def _seed_project(gateway, project_id="p1", tenant_id="t1", name="Alpha", key_prefix="ALP", issue_seq=0):
    project = Project(
        id=project_id,
        tenant_id=tenant_id,
        name=name,
        created_by="alice",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
        key_prefix=key_prefix,
        issue_seq=issue_seq,
    )
    await gateway.put(Collections.PROJECTS, project_id, project.to_document())
    return project


@pytest.fixture
def seed_project():
    """Async factory: await seed_project(gateway, ...) stores a project document."""
    return _seed_project
