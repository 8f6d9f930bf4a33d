"""Fixtures for API unit tests: fresh in-memory gateway, mock publisher, AsyncClient."""

from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient

from app.application.storage import RetryPolicy
from app.infrastructure.memory.document_gateway_memory import InMemoryDocumentGateway
from app.main import app


@pytest.fixture
def gateway():
    return InMemoryDocumentGateway(RetryPolicy(max_attempts=10, backoff_base_ms=1, backoff_max_ms=2))


@pytest.fixture
def mock_publisher():
    """Mock RabbitMQ publisher so tests do not connect to a real broker."""
    p = AsyncMock()
    p.publish_notification = AsyncMock(return_value=None)
    return p


@pytest.fixture
def app_with_overrides(gateway, mock_publisher):
    """App with storage and publisher overridden for testing."""
    from app.api import dependencies

    app.dependency_overrides[dependencies.get_gateway] = lambda: gateway
    app.dependency_overrides[dependencies.get_publisher] = lambda: mock_publisher
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
async def client(app_with_overrides):
    transport = ASGITransport(app=app_with_overrides)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest.fixture
def headers():
    return {"X-Tenant-ID": "tenant-1", "X-Actor-ID": "alice"}


@pytest.fixture
async def project(client, headers):
    r = await client.post("/projects", json={"name": "Alpha", "key_prefix": "ALP"}, headers=headers)
    assert r.status_code == 201
    return r.json()
