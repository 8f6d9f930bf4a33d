"""Unit tests for the fan-in reader: agreement with a brute-force filter, scopes, limits."""

import random

import pytest

from app.application.exceptions import ResultSetTooLargeError
from app.application.read_fan_in import (
    Page,
    ReadFanIn,
    ScopeSource,
    SortKey,
    contains,
    eq,
    gte,
    is_in,
    is_null,
    lte,
    ne,
    not_in,
    search,
    sort_documents,
)
from app.application.storage import Collections

STATUSES = ["TODO", "IN_PROGRESS", "DONE"]
ASSIGNEES = ["alice", "bob", "carol", None]


def _documents():
    rng = random.Random(7)
    docs = []
    for n in range(1, 51):
        docs.append(
            {
                "id": f"w{n:02d}",
                "tenant_id": "t1" if n % 10 else "t2",
                "project_id": "p1" if n % 3 else "p2",
                "key": f"ALP-{n}",
                "sequence": n,
                "title": f"Task {n} {'login' if n % 4 == 0 else 'report'}",
                "status": STATUSES[n % 3],
                "assignee_id": ASSIGNEES[n % 4],
                "reporter_id": "alice",
                "labels": ["ui"] if n % 5 == 0 else [],
                "due_date": None if n % 6 == 0 else f"2024-06-{rng.randint(1, 28):02d}",
                "archived_at": "2024-05-01T00:00:00+00:00" if n % 7 == 0 else None,
            }
        )
    return docs


@pytest.fixture
async def reader(gateway):
    for doc in _documents():
        await gateway.put(Collections.WORK_ITEMS, doc["id"], doc)
    return ReadFanIn(gateway, Collections.WORK_ITEMS)


PREDICATE_SETS = [
    [],
    [eq("project_id", "p1")],
    [eq("project_id", "p1"), eq("assignee_id", "bob")],
    [is_in("status", ["TODO", "DONE"]), is_null("archived_at")],
    [not_in("status", ["DONE"]), contains("labels", "ui")],
    [gte("due_date", "2024-06-10"), lte("due_date", "2024-06-20")],
    [search("title", "LOGIN"), ne("assignee_id", "carol")],
    [is_null("assignee_id", False), is_null("due_date")],
]


@pytest.mark.parametrize("predicates", PREDICATE_SETS)
@pytest.mark.asyncio
async def test_matches_brute_force_filter(reader, predicates):
    expected = [
        d for d in _documents() if d["tenant_id"] == "t1" and all(p.matches(d) for p in predicates)
    ]
    result = await reader.query("t1", predicates, [SortKey("sequence")])

    assert [d["id"] for d in result.items] == [d["id"] for d in sorted(expected, key=lambda d: d["sequence"])]
    assert result.total == len(expected)


@pytest.mark.asyncio
async def test_scan_choice_does_not_change_the_answer(reader):
    predicates = [eq("project_id", "p1"), ne("status", "DONE"), eq("assignee_id", "bob")]

    by_tenant = await reader.query("t1", predicates)
    by_project = await reader.query("t1", predicates, scan_field="project_id")
    by_assignee = await reader.query("t1", predicates, scan_field="assignee_id")

    ids = {d["id"] for d in by_tenant.items}
    assert ids
    assert all(d["status"] != "DONE" for d in by_tenant.items)
    assert {d["id"] for d in by_project.items} == ids
    assert {d["id"] for d in by_assignee.items} == ids


@pytest.mark.asyncio
async def test_other_tenant_documents_never_leak(reader):
    result = await reader.query("t1", [eq("project_id", "p1")], scan_field="project_id")
    assert all(d["tenant_id"] == "t1" for d in result.items)


@pytest.mark.asyncio
async def test_pagination_reports_full_total(reader):
    first = await reader.query("t1", [], [SortKey("sequence")], Page(offset=0, limit=10))
    second = await reader.query("t1", [], [SortKey("sequence")], Page(offset=10, limit=10))

    assert first.total == second.total == 45
    assert len(first.items) == len(second.items) == 10
    assert {d["id"] for d in first.items}.isdisjoint(d["id"] for d in second.items)


@pytest.mark.asyncio
async def test_legacy_documents_admitted_through_fallback_scope(gateway, reader):
    await gateway.put(
        Collections.WORK_ITEMS,
        "legacy",
        {"id": "legacy", "tenant_id": None, "reporter_id": "alice", "sequence": 0},
    )
    await gateway.put(
        Collections.WORK_ITEMS,
        "legacy-bob",
        {"id": "legacy-bob", "tenant_id": None, "reporter_id": "bob", "sequence": 0},
    )

    without = await reader.query("t1")
    with_scope = await reader.query("t1", fallback_scopes=[ScopeSource("reporter_id", "alice")])

    assert "legacy" not in {d["id"] for d in without.items}
    ids = {d["id"] for d in with_scope.items}
    assert "legacy" in ids
    assert "legacy-bob" not in ids
    # A fallback scope never admits another tenant's documents.
    assert all(d["tenant_id"] in ("t1", None) for d in with_scope.items)
    assert with_scope.total == without.total + 1


@pytest.mark.asyncio
async def test_max_scan_raises(gateway, reader):
    capped = ReadFanIn(gateway, Collections.WORK_ITEMS, max_scan=10)
    with pytest.raises(ResultSetTooLargeError):
        await capped.query("t1")


@pytest.mark.asyncio
async def test_unknown_scan_field_is_rejected(reader):
    with pytest.raises(ValueError):
        await reader.query("t1", [eq("project_id", "p1")], scan_field="assignee_id")


def test_sort_puts_missing_values_last_in_both_directions():
    docs = [{"id": "a", "due": None}, {"id": "b", "due": "2024-01-02"}, {"id": "c", "due": "2024-01-01"}]

    ascending = sort_documents(docs, [SortKey("due")])
    descending = sort_documents(docs, [SortKey.parse("-due")])

    assert [d["id"] for d in ascending] == ["c", "b", "a"]
    assert [d["id"] for d in descending] == ["b", "c", "a"]


def test_sort_is_multi_key_with_id_tie_break():
    docs = [
        {"id": "3", "p": "HIGH", "t": "b"},
        {"id": "1", "p": "HIGH", "t": "b"},
        {"id": "2", "p": "LOW", "t": "a"},
    ]
    ordered = sort_documents(docs, [SortKey("p"), SortKey("t")])
    assert [d["id"] for d in ordered] == ["1", "3", "2"]
