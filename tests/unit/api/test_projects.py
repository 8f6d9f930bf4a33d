"""Tests for /projects: create, derived prefix, tenant isolation, key prefix changes."""

import pytest
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_create_project_returns_201(client: AsyncClient, headers):
    r = await client.post("/projects", json={"name": "Alpha", "key_prefix": "alp"}, headers=headers)
    assert r.status_code == 201
    data = r.json()
    assert data["name"] == "Alpha"
    assert data["key_prefix"] == "ALP"
    assert data["issue_seq"] == 0
    assert data["tenant_id"] == "tenant-1"
    assert data["created_by"] == "alice"


@pytest.mark.asyncio
async def test_prefix_derived_from_name_on_first_item(client: AsyncClient, headers):
    r = await client.post("/projects", json={"name": "web app"}, headers=headers)
    project = r.json()
    assert project["key_prefix"] is None

    r = await client.post("/work-items", json={"project_id": project["id"], "title": "First"}, headers=headers)
    assert r.json()["key"] == "WEBAPP-1"
    r = await client.get(f"/projects/{project['id']}", headers=headers)
    assert r.json()["key_prefix"] == "WEBAPP"
    assert r.json()["issue_seq"] == 1


@pytest.mark.asyncio
async def test_get_project_from_other_tenant_is_403(client: AsyncClient, headers, project):
    r = await client.get(
        f"/projects/{project['id']}", headers={"X-Tenant-ID": "tenant-2", "X-Actor-ID": "alice"}
    )
    assert r.status_code == 403


@pytest.mark.asyncio
async def test_get_missing_project_is_404(client: AsyncClient, headers):
    r = await client.get("/projects/nope", headers=headers)
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_list_projects_is_tenant_scoped(client: AsyncClient, headers, project):
    await client.post("/projects", json={"name": "Other"}, headers={"X-Tenant-ID": "tenant-2", "X-Actor-ID": "bob"})
    r = await client.get("/projects", headers=headers)
    assert [p["id"] for p in r.json()] == [project["id"]]


@pytest.mark.asyncio
async def test_change_key_prefix_before_first_key(client: AsyncClient, headers, project):
    r = await client.patch(f"/projects/{project['id']}/key-prefix", json={"key_prefix": "BETA"}, headers=headers)
    assert r.status_code == 200
    assert r.json()["key_prefix"] == "BETA"


@pytest.mark.asyncio
async def test_change_key_prefix_after_first_key_is_rejected(client: AsyncClient, headers, project):
    await client.post("/work-items", json={"project_id": project["id"], "title": "First"}, headers=headers)
    r = await client.patch(f"/projects/{project['id']}/key-prefix", json={"key_prefix": "BETA"}, headers=headers)
    assert r.status_code == 422
    r = await client.get(f"/projects/{project['id']}", headers=headers)
    assert r.json()["key_prefix"] == "ALP"


@pytest.mark.asyncio
async def test_malformed_key_prefix_is_422(client: AsyncClient, headers):
    r = await client.post("/projects", json={"name": "Alpha", "key_prefix": "!!!"}, headers=headers)
    assert r.status_code == 422
