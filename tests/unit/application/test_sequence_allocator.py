"""Unit tests for SequenceAllocator: monotonic keys, concurrency, prefix derivation."""

import asyncio

import pytest

from app.application.exceptions import ContentionError, NotFoundError
from app.application.sequence_allocator import SequenceAllocator
from app.application.storage import Collections, RetryPolicy
from app.domain.exceptions import InvalidKeyError
from app.domain.validators.work_item_validator import parse_key
from app.infrastructure.memory.document_gateway_memory import InMemoryDocumentGateway


@pytest.mark.asyncio
async def test_sequential_allocations_increase_by_one(gateway, seed_project):
    await seed_project(gateway)
    allocator = SequenceAllocator(gateway)

    keys = [(await allocator.allocate("p1")).key for _ in range(3)]

    assert keys == ["ALP-1", "ALP-2", "ALP-3"]
    project = await gateway.get(Collections.PROJECTS, "p1")
    assert project["issue_seq"] == 3


@pytest.mark.asyncio
async def test_allocation_continues_from_stored_counter(gateway, seed_project):
    await seed_project(gateway, issue_seq=41)
    allocation = await SequenceAllocator(gateway).allocate("p1")
    assert allocation.sequence == 42
    assert allocation.key == "ALP-42"


@pytest.mark.asyncio
async def test_concurrent_allocations_have_no_gaps_or_duplicates(gateway, seed_project):
    await seed_project(gateway)
    allocator = SequenceAllocator(gateway)

    allocations = await asyncio.gather(*(allocator.allocate("p1") for _ in range(20)))

    assert sorted(a.sequence for a in allocations) == list(range(1, 21))
    assert len({a.key for a in allocations}) == 20
    assert gateway.conflicts > 0
    project = await gateway.get(Collections.PROJECTS, "p1")
    assert project["issue_seq"] == 20


@pytest.mark.asyncio
async def test_projects_have_independent_counters(gateway, seed_project):
    await seed_project(gateway, project_id="p1", key_prefix="ALP")
    await seed_project(gateway, project_id="p2", key_prefix="BET")
    allocator = SequenceAllocator(gateway)

    await allocator.allocate("p1")
    second = await allocator.allocate("p2")

    assert second.key == "BET-1"


@pytest.mark.asyncio
async def test_prefix_is_derived_and_persisted(gateway, seed_project):
    await seed_project(gateway, name="Web app!", key_prefix=None)
    allocator = SequenceAllocator(gateway)

    first = await allocator.allocate("p1")
    second = await allocator.allocate("p1")

    assert first.key == "WEBAPP-1"
    assert second.key == "WEBAPP-2"
    project = await gateway.get(Collections.PROJECTS, "p1")
    assert project["key_prefix"] == "WEBAPP"


@pytest.mark.asyncio
async def test_prefix_falls_back_when_name_has_no_usable_characters(gateway, seed_project):
    await seed_project(gateway, name="---", key_prefix=None)
    allocation = await SequenceAllocator(gateway).allocate("p1")
    assert allocation.key == "PROJ-1"


@pytest.mark.asyncio
async def test_missing_project_raises_not_found(gateway, seed_project):
    with pytest.raises(NotFoundError):
        await SequenceAllocator(gateway).allocate("missing")


@pytest.mark.asyncio
async def test_exhausted_retries_raise_contention_error(seed_project):
    gateway = InMemoryDocumentGateway(RetryPolicy(max_attempts=1, backoff_base_ms=1, backoff_max_ms=1))
    await seed_project(gateway)
    allocator = SequenceAllocator(gateway)

    results = await asyncio.gather(
        allocator.allocate("p1"), allocator.allocate("p1"), return_exceptions=True
    )

    failures = [r for r in results if isinstance(r, ContentionError)]
    assert len(failures) == 1
    assert failures[0].attempts == 1
    project = await gateway.get(Collections.PROJECTS, "p1")
    assert project["issue_seq"] == 1


def test_parse_key_round_trips_minted_keys():
    assert parse_key("ALP-12") == ("ALP", 12)
    for bad in ("alp-1", "ALP-0", "ALP-01", "ALP", "TOOLONGPREFIX-1", "-1"):
        with pytest.raises(InvalidKeyError):
            parse_key(bad)
