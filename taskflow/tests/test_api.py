"""Test the JSON API routes and response envelope."""

from __future__ import annotations

import uuid

import pytest
from httpx import AsyncClient

from taskflow.config import TaskFlowSettings


@pytest.mark.asyncio
async def test_requires_bearer_token(client: AsyncClient):
    resp = await client.get("/tasks", headers={"Authorization": ""})
    assert resp.status_code == 401
    assert resp.json() == {
        "success": False,
        "error": "Authentication required",
        "code": "UNAUTHORIZED",
    }


@pytest.mark.asyncio
async def test_task_crud_roundtrip(client: AsyncClient):
    resp = await client.post("/tasks", json={"title": "Write tests", "priority": "high"})
    assert resp.status_code == 201
    body = resp.json()
    assert body["success"] is True
    task = body["data"]
    assert task["status"] == "todo"
    assert task["priority"] == "high"

    resp = await client.put(f"/tasks/{task['id']}", json={"description": "all of them"})
    assert resp.json()["data"]["version"] == 2

    resp = await client.post(f"/tasks/{task['id']}/complete")
    assert resp.json()["data"]["completed"] is True

    resp = await client.get("/tasks", params={"status": "completed"})
    assert [t["id"] for t in resp.json()["data"]] == [task["id"]]

    resp = await client.delete(f"/tasks/{task['id']}")
    assert resp.json() == {"success": True}

    resp = await client.get(f"/tasks/{task['id']}")
    assert resp.status_code == 404
    assert resp.json()["code"] == "TASK_NOT_FOUND"


@pytest.mark.asyncio
async def test_validation_errors_use_envelope(client: AsyncClient):
    resp = await client.post("/tasks", json={"title": ""})
    assert resp.status_code == 400
    body = resp.json()
    assert body["success"] is False
    assert body["code"] == "MISSING_REQUIRED_FIELD"
    assert body["errors"] == ["Task title is required"]

    resp = await client.post("/tasks", json={"title": "x", "priority": "urgent"})
    assert resp.status_code == 422
    assert resp.json()["code"] == "INVALID_INPUT"


@pytest.mark.asyncio
async def test_project_counters_over_http(client: AsyncClient):
    p = (await client.post("/projects", json={"name": "P", "mode": "personal"})).json()["data"]
    q = (await client.post("/projects", json={"name": "Q", "mode": "personal"})).json()["data"]

    t = (await client.post("/tasks", json={"title": "T", "project_id": p["id"]})).json()["data"]
    await client.post(f"/tasks/{t['id']}/complete")
    await client.put(f"/tasks/{t['id']}", json={"project_id": q["id"]})

    p_now = (await client.get(f"/projects/{p['id']}")).json()["data"]
    q_now = (await client.get(f"/projects/{q['id']}")).json()["data"]
    assert (p_now["task_count"], p_now["completed_task_count"]) == (0, 0)
    assert (q_now["task_count"], q_now["completed_task_count"]) == (1, 1)

    check = (await client.get(f"/projects/{q['id']}/deletion-check")).json()["data"]
    assert check == {
        "can_delete": True,
        "has_incomplete_tasks": False,
        "incomplete_task_count": 0,
        "total_task_count": 1,
    }

    resp = await client.delete(f"/projects/{q['id']}")
    assert resp.json()["data"] == {"deleted_tasks": 1}


@pytest.mark.asyncio
async def test_project_delete_needs_confirm(client: AsyncClient):
    p = (await client.post("/projects", json={"name": "P", "mode": "personal"})).json()["data"]
    await client.post("/tasks", json={"title": "open", "project_id": p["id"]})

    resp = await client.delete(f"/projects/{p['id']}")
    assert resp.status_code == 409
    assert resp.json()["code"] == "CONFIRMATION_REQUIRED"

    resp = await client.delete(f"/projects/{p['id']}", params={"confirm": "true"})
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_default_project_routes(client: AsyncClient):
    resp = await client.get("/projects/default/personal")
    inbox = resp.json()["data"]
    assert inbox["name"] == "Inbox"
    assert inbox["is_default"] is True

    resp = await client.put(f"/projects/{inbox['id']}", json={"name": "Renamed"})
    assert resp.json()["code"] == "CANNOT_RENAME_DEFAULT"

    resp = await client.get("/projects/default/home")
    assert resp.json()["code"] == "INVALID_MODE"


@pytest.mark.asyncio
async def test_bulk_complete_and_positions(client: AsyncClient):
    a = (await client.post("/tasks", json={"title": "a"})).json()["data"]
    b = (await client.post("/tasks", json={"title": "b"})).json()["data"]

    resp = await client.post("/tasks/bulk-complete", json={"task_ids": [a["id"], b["id"]]})
    assert all(t["completed"] for t in resp.json()["data"])

    resp = await client.post(
        "/tasks/bulk-complete", json={"task_ids": [a["id"], str(uuid.uuid4())], "completed": False}
    )
    assert resp.status_code == 404

    await client.put("/tasks/positions", json=[
        {"id": a["id"], "position": 2},
        {"id": b["id"], "position": 1},
    ])
    titles = [t["title"] for t in (await client.get("/tasks")).json()["data"]]
    assert titles == ["b", "a"]


@pytest.mark.asyncio
async def test_tags_and_profile(client: AsyncClient):
    resp = await client.post("/tags", json={"name": "work", "color": "#FF0000"})
    tag = resp.json()["data"]
    assert tag["usage_count"] == 0

    resp = await client.post("/tags", json={"name": "work"})
    assert resp.status_code == 409

    resp = await client.put(f"/tags/{tag['id']}", json={"display_name": "Work"})
    assert resp.json()["data"]["display_name"] == "Work"

    me = (await client.get("/users/me")).json()["data"]
    assert me["id"] == "user-1"

    resp = await client.put("/users/me", json={"preferences": {"timezone": "Europe/Paris"}})
    assert resp.json()["data"]["preferences"]["timezone"] == "Europe/Paris"

    stats = (await client.get("/users/me/stats")).json()["data"]
    assert stats["total_tasks"] == 0

    resp = await client.delete(f"/tags/{tag['id']}")
    assert resp.json()["success"] is True


@pytest.mark.asyncio
async def test_sync_routes(client: AsyncClient):
    status = (await client.get("/sync/status")).json()["data"]
    assert status["is_running"] is False

    result = (await client.post("/sync/run")).json()["data"]
    assert result == {"synced": 0, "conflicts": 0}

    status = (await client.get("/sync/status")).json()["data"]
    assert status["last_sync_time"] is not None


@pytest.mark.asyncio
async def test_dev_mode_token_is_uid(client: AsyncClient):
    await client.post("/tasks", json={"title": "mine"})
    resp = await client.get("/tasks", headers={"Authorization": "Bearer other-user"})
    assert resp.json()["data"] == []


@pytest.mark.asyncio
async def test_today_and_stats_routes(client: AsyncClient):
    await client.post("/tasks", json={"title": "due today"})
    today = (await client.get("/tasks/today")).json()["data"]
    assert [t["title"] for t in today] == ["due today"]

    stats = (await client.get("/tasks/stats")).json()["data"]
    assert stats["total"] == 1
    assert stats["due_today"] == 1


@pytest.mark.asyncio
async def test_complete_route_sets_explicit_state(client: AsyncClient):
    p = (await client.post("/projects", json={"name": "P", "mode": "personal"})).json()["data"]
    t = (await client.post("/tasks", json={"title": "T", "project_id": p["id"]})).json()["data"]

    for _ in range(2):
        resp = await client.post(f"/tasks/{t['id']}/complete", json={"completed": True})
        assert resp.json()["data"]["completed"] is True
    assert (await client.get(f"/projects/{p['id']}")).json()["data"]["completed_task_count"] == 1

    resp = await client.post(f"/tasks/{t['id']}/complete", json={"completed": False})
    assert resp.json()["data"]["completed"] is False
    assert (await client.get(f"/projects/{p['id']}")).json()["data"]["completed_task_count"] == 0


@pytest.mark.asyncio
async def test_null_updates_are_rejected(client: AsyncClient):
    t = (await client.post("/tasks", json={"title": "T"})).json()["data"]
    await client.post(f"/tasks/{t['id']}/complete")

    for body in ({"status": None}, {"priority": None}, {"completed": None, "title": "y"}):
        resp = await client.put(f"/tasks/{t['id']}", json=body)
        assert resp.status_code == 400
        assert resp.json()["code"] == "INVALID_INPUT"

    task = (await client.get(f"/tasks/{t['id']}")).json()["data"]
    assert task["completed"] is True
    assert task["status"] == "completed"
    assert task["title"] == "T"


@pytest.mark.asyncio
async def test_unparseable_due_date_over_http(client: AsyncClient):
    resp = await client.post("/tasks", json={"title": "x", "due_date": "next tuesday"})
    assert resp.status_code == 400
    assert resp.json()["code"] == "INVALID_FORMAT"
    assert (await client.get("/tasks")).json()["data"] == []


@pytest.mark.asyncio
async def test_malformed_position_id_uses_envelope(client: AsyncClient):
    resp = await client.put("/tasks/positions", json=[{"id": "not-a-uuid", "position": 1}])
    assert resp.status_code == 422
    assert resp.json()["code"] == "INVALID_INPUT"

    resp = await client.put("/projects/positions", json=[{"id": "nope", "position": 1}])
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_limits_come_from_app_settings(make_client):
    settings = TaskFlowSettings(
        database_url="sqlite+aiosqlite:///:memory:",
        auth_tokens="user-1:secret-token",
        max_projects_per_mode=1,
        _env_file=None,
    )
    async with make_client(settings) as client:
        codes = [
            (await client.post("/projects", json={"name": f"p{i}", "mode": "personal"})).status_code
            for i in range(3)
        ]
        resp = await client.post("/projects", json={"name": "again", "mode": "personal"})
    assert codes == [201, 400, 400]
    assert resp.json()["code"] == "PROJECT_LIMIT_EXCEEDED"


@pytest.mark.asyncio
async def test_sync_lifecycle_routes(client: AsyncClient):
    status = (await client.post("/sync/start")).json()["data"]
    assert status["is_running"] is True
    assert status["state"] == "idle"

    status = (await client.post("/sync/online", json={"online": False})).json()["data"]
    assert status["is_running"] is False
    assert status["state"] == "offline"
    resp = await client.post("/sync/run")
    assert resp.status_code == 400
    assert resp.json()["code"] == "OFFLINE_MODE"

    status = (await client.post("/sync/online", json={"online": True})).json()["data"]
    assert status["is_running"] is True

    assert (await client.post("/sync/stop")).json() == {"success": True}
    status = (await client.get("/sync/status")).json()["data"]
    assert status["is_running"] is False
    assert status["state"] == "stopped"
