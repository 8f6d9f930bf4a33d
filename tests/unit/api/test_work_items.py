"""Tests for /work-items, /activity and /notifications through the HTTP surface."""

from unittest.mock import AsyncMock

import pytest
from httpx import AsyncClient

from app.application.exceptions import ContentionError, ResultSetTooLargeError


async def _create(client, headers, project, **fields):
    payload = {"project_id": project["id"], "title": "Task"}
    payload.update(fields)
    r = await client.post("/work-items", json=payload, headers=headers)
    assert r.status_code == 201, r.text
    return r.json()


@pytest.mark.asyncio
async def test_create_assigns_sequential_keys(client: AsyncClient, headers, project):
    first = await _create(client, headers, project, title="  First  ")
    second = await _create(client, headers, project, title="Second")
    assert first["key"] == "ALP-1"
    assert first["title"] == "First"
    assert first["reporter_id"] == "alice"
    assert second["key"] == "ALP-2"


@pytest.mark.asyncio
async def test_blank_title_is_422_and_nothing_is_written(client: AsyncClient, headers, project):
    r = await client.post("/work-items", json={"project_id": project["id"], "title": "   "}, headers=headers)
    assert r.status_code == 422
    r = await client.get(f"/projects/{project['id']}", headers=headers)
    assert r.json()["issue_seq"] == 0


@pytest.mark.asyncio
async def test_create_in_missing_project_is_404(client: AsyncClient, headers):
    r = await client.post("/work-items", json={"project_id": "missing", "title": "x"}, headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_get_by_id_and_by_key(client: AsyncClient, headers, project):
    item = await _create(client, headers, project)
    r = await client.get(f"/work-items/{item['id']}", headers=headers)
    assert r.json()["key"] == "ALP-1"
    r = await client.get("/work-items/by-key/ALP-1", headers=headers)
    assert r.json()["id"] == item["id"]
    r = await client.get("/work-items/by-key/ALP-9", headers=headers)
    assert r.status_code == 404
    r = await client.get("/work-items/by-key/not-a-key", headers=headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_update_writes_one_activity_per_changed_field(client: AsyncClient, headers, project):
    item = await _create(client, headers, project, title="Old")
    r = await client.patch(
        f"/work-items/{item['id']}",
        json={"title": "New", "status": "IN_PROGRESS"},
        headers={**headers, "X-Correlation-ID": "corr-42"},
    )
    assert r.status_code == 200
    assert r.json()["title"] == "New"

    r = await client.get("/activity", params={"entity_id": item["id"]}, headers=headers)
    records = r.json()["items"]
    assert r.json()["total"] == 3
    updates = [a for a in records if a["type"] != "issue_created"]
    assert {a["correlation_id"] for a in updates} == {"corr-42"}
    assert len({a["mutation_id"] for a in updates}) == 1
    assert sorted(a["message"] for a in updates) == [
        "ALP-1 - Status changed: To do → In progress",
        "ALP-1 - Title changed: Old → New",
    ]


@pytest.mark.asyncio
async def test_noop_update_writes_no_activity(client: AsyncClient, headers, project):
    item = await _create(client, headers, project, title="Same")
    r = await client.patch(f"/work-items/{item['id']}", json={"title": "Same"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["updated_at"] == item["updated_at"]
    r = await client.get("/activity", params={"entity_id": item["id"]}, headers=headers)
    assert r.json()["total"] == 1


@pytest.mark.asyncio
async def test_explicit_null_unassigns(client: AsyncClient, headers, project):
    item = await _create(client, headers, project, assignee_id="bob")
    r = await client.patch(f"/work-items/{item['id']}", json={"assignee_id": None}, headers=headers)
    assert r.json()["assignee_id"] is None


@pytest.mark.asyncio
async def test_reassignment_notifies_new_assignee(client: AsyncClient, headers, project, mock_publisher):
    item = await _create(client, headers, project)
    await client.patch(f"/work-items/{item['id']}", json={"assignee_id": "bob"}, headers=headers)

    bob = {"X-Tenant-ID": "tenant-1", "X-Actor-ID": "bob"}
    r = await client.get("/notifications", headers=bob)
    body = r.json()
    assert body["total"] == 1
    notification = body["items"][0]
    assert notification["recipient_id"] == "bob"
    assert notification["actor_id"] == "alice"
    assert notification["title"] == "Assigned to you: ALP-1"
    mock_publisher.publish_notification.assert_awaited_once()

    r = await client.post(f"/notifications/{notification['id']}/read", headers=headers)
    assert r.status_code == 403
    r = await client.post(f"/notifications/{notification['id']}/read", headers=bob)
    assert r.json()["read"] is True
    r = await client.get("/notifications", params={"unread_only": True}, headers=bob)
    assert r.json()["total"] == 0


@pytest.mark.asyncio
async def test_self_assignment_does_not_notify(client: AsyncClient, headers, project):
    await _create(client, headers, project, assignee_id="alice")
    r = await client.get("/notifications", headers=headers)
    assert r.json()["total"] == 0


@pytest.mark.asyncio
async def test_archive_hides_item_from_default_listing(client: AsyncClient, headers, project):
    keep = await _create(client, headers, project, title="Keep")
    gone = await _create(client, headers, project, title="Gone")
    r = await client.post(f"/work-items/{gone['id']}/archive", headers=headers)
    assert r.status_code == 200
    assert r.json()["archived_at"] is not None

    r = await client.get("/work-items", headers=headers)
    assert [i["id"] for i in r.json()["items"]] == [keep["id"]]
    r = await client.get("/work-items", params={"include_archived": True}, headers=headers)
    assert r.json()["total"] == 2

    r = await client.post(f"/work-items/{gone['id']}/archive", headers=headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_list_filters_and_sorts(client: AsyncClient, headers, project):
    await _create(client, headers, project, title="b high", priority="HIGH", labels=["ui"])
    await _create(client, headers, project, title="a low", priority="LOW")
    await _create(client, headers, project, title="c high", priority="HIGH", status="DONE")

    r = await client.get("/work-items", params={"priority": "HIGH", "sort": "title"}, headers=headers)
    assert [i["title"] for i in r.json()["items"]] == ["b high", "c high"]
    r = await client.get("/work-items", params={"exclude_status": "DONE", "sort": "key"}, headers=headers)
    assert [i["key"] for i in r.json()["items"]] == ["ALP-1", "ALP-2"]
    r = await client.get("/work-items", params={"label": "ui"}, headers=headers)
    assert r.json()["total"] == 1
    r = await client.get("/work-items", params={"sort": "-key", "limit": 2, "offset": 1}, headers=headers)
    data = r.json()
    assert [i["key"] for i in data["items"]] == ["ALP-2", "ALP-1"]
    assert data["total"] == 3
    assert data["limit"] == 2


@pytest.mark.asyncio
async def test_unknown_sort_field_is_422(client: AsyncClient, headers, project):
    r = await client.get("/work-items", params={"sort": "reporter_id"}, headers=headers)
    assert r.status_code == 422


@pytest.mark.asyncio
async def test_delete_then_get_is_404(client: AsyncClient, headers, project):
    item = await _create(client, headers, project)
    r = await client.delete(f"/work-items/{item['id']}", headers=headers)
    assert r.status_code == 204
    r = await client.get(f"/work-items/{item['id']}", headers=headers)
    assert r.status_code == 404
    r = await client.get("/activity", params={"entity_id": item["id"]}, headers=headers)
    assert "issue_deleted" in [a["type"] for a in r.json()["items"]]


@pytest.mark.asyncio
async def test_add_comment(client: AsyncClient, headers, project):
    item = await _create(client, headers, project)
    r = await client.post(f"/work-items/{item['id']}/comments", json={"body": " looks good "}, headers=headers)
    assert r.status_code == 201
    assert r.json()["body"] == "looks good"
    assert r.json()["author_id"] == "alice"


@pytest.mark.asyncio
async def test_cross_tenant_item_access_is_403(client: AsyncClient, headers, project):
    item = await _create(client, headers, project)
    other = {"X-Tenant-ID": "tenant-2", "X-Actor-ID": "alice"}
    r = await client.get(f"/work-items/{item['id']}", headers=other)
    assert r.status_code == 403
    r = await client.patch(f"/work-items/{item['id']}", json={"title": "hijack"}, headers=other)
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_contention_maps_to_503_with_retry_after(app_with_overrides, client: AsyncClient, headers):
    from app.api import dependencies

    service = AsyncMock()
    service.create = AsyncMock(side_effect=ContentionError("busy", attempts=5))
    app_with_overrides.dependency_overrides[dependencies.get_work_item_service] = lambda: service
    r = await client.post("/work-items", json={"project_id": "p", "title": "x"}, headers=headers)
    assert r.status_code == 503
    assert r.headers["Retry-After"] == "1"


@pytest.mark.asyncio
async def test_result_set_too_large_maps_to_413(app_with_overrides, client: AsyncClient, headers):
    from app.api import dependencies

    service = AsyncMock()
    service.list = AsyncMock(side_effect=ResultSetTooLargeError("too many"))
    app_with_overrides.dependency_overrides[dependencies.get_work_item_service] = lambda: service
    r = await client.get("/work-items", headers=headers)
    assert r.status_code == 413


@pytest.mark.asyncio
async def test_change_history_uses_configured_display_names(monkeypatch, client: AsyncClient, headers, project):
    from app.api import dependencies
    from app.config.settings import AppSettings

    configured = AppSettings(actor_display_names={"bob": "Bob Builder"})
    monkeypatch.setattr(dependencies, "get_settings", lambda: configured)

    item = await _create(client, headers, project)
    await client.patch(f"/work-items/{item['id']}", json={"assignee_id": "bob"}, headers=headers)

    r = await client.get("/activity", params={"entity_id": item["id"], "type": "assignee_changed"}, headers=headers)
    assert [a["message"] for a in r.json()["items"]] == ["ALP-1 - Assignee changed: unset → Bob Builder"]
