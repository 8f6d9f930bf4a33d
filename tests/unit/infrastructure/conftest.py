"""Document gateway fixtures: every backend behind the same contract."""

import pytest

from app.application.storage import RetryPolicy
from app.infrastructure.cache.document_gateway_redis import RedisDocumentGateway
from app.infrastructure.cache.redis_client import RedisClient
from app.infrastructure.database.document_gateway_db import DbDocumentGateway
from app.infrastructure.database.session import build_engine, build_sessionmaker, create_schema
from app.infrastructure.memory.document_gateway_memory import InMemoryDocumentGateway

FAST_RETRY = RetryPolicy(max_attempts=5, backoff_base_ms=1, backoff_max_ms=2)


@pytest.fixture(params=["memory", "sql", "redis"])
async def gateway(request, tmp_path):
    if request.param == "memory":
        yield InMemoryDocumentGateway(FAST_RETRY)
    elif request.param == "sql":
        engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'documents.db'}")
        await create_schema(engine)
        yield DbDocumentGateway(build_sessionmaker(engine), FAST_RETRY)
        await engine.dispose()
    else:
        fakeredis = pytest.importorskip("fakeredis")
        client = fakeredis.FakeAsyncRedis(decode_responses=True)
        await client.flushall()
        yield RedisDocumentGateway(RedisClient(client=client), FAST_RETRY)
        await client.flushall()
