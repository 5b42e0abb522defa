"""Tests for the to-do HTTP endpoints.

Covers:
- The acting user comes from X-Docket-User; missing header is a 401 error envelope
- Listing with filters, cached counts
- Marking one / all to-dos done, restoring, bulk operations
- Other users' to-dos are reported as not found
- Oversized and malformed bulk requests are rejected
"""

import pytest

from docket.config import settings
from docket.services.todos.service import TodoService


def _as(user_id: str) -> dict:
    return {"X-Docket-User": user_id}


@pytest.fixture
async def seeded(db_session, policy, issue, merge_request):
    service = TodoService(db_session, policy)
    await service.new_issue(issue, "author")
    await service.new_merge_request(merge_request, "author")
    return service


@pytest.mark.asyncio
async def test_requires_acting_user(client):
    response = await client.get("/api/v1/todos")
    assert response.status_code == 401
    error = response.json()["error"]
    assert error["code"] == "AUTHENTICATION_ERROR"
    assert error["trace_id"].startswith("trc_")


@pytest.mark.asyncio
async def test_list_todos(client, seeded):
    response = await client.get("/api/v1/todos", headers=_as("assignee"))
    assert response.status_code == 200
    todos = response.json()
    assert len(todos) == 2
    assert {t["user_id"] for t in todos} == {"assignee"}
    assert {t["target_type"] for t in todos} == {"Issue", "MergeRequest"}


@pytest.mark.asyncio
async def test_list_todos_filters(client, seeded):
    response = await client.get(
        "/api/v1/todos", params={"action": "assigned"}, headers=_as("assignee")
    )
    assert [t["action"] for t in response.json()] == ["assigned", "assigned"]

    response = await client.get(
        "/api/v1/todos", params={"state": "done"}, headers=_as("assignee")
    )
    assert response.json() == []

    response = await client.get(
        "/api/v1/todos", params={"action": "approved"}, headers=_as("assignee")
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_counts(client, seeded):
    response = await client.get("/api/v1/todos/counts", headers=_as("member"))
    assert response.status_code == 200
    assert response.json() == {"pending": 2, "done": 0}


@pytest.mark.asyncio
async def test_counts_unknown_user(client):
    response = await client.get("/api/v1/todos/counts", headers=_as("ghost"))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_mark_one_done_and_restore(client, seeded):
    todos = (await client.get("/api/v1/todos", headers=_as("member"))).json()
    todo_id = todos[0]["todo_id"]

    response = await client.post(f"/api/v1/todos/{todo_id}/mark_as_done", headers=_as("member"))
    assert response.status_code == 200
    body = response.json()
    assert body["state"] == "done"
    assert body["resolved_by_action"] == "api_done"

    counts = (await client.get("/api/v1/todos/counts", headers=_as("member"))).json()
    assert counts == {"pending": 1, "done": 1}

    response = await client.post(f"/api/v1/todos/{todo_id}/restore", headers=_as("member"))
    assert response.status_code == 200
    assert response.json()["state"] == "pending"
    assert response.json().get("resolved_by_action") is None


@pytest.mark.asyncio
async def test_other_users_todo_not_found(client, seeded):
    todos = (await client.get("/api/v1/todos", headers=_as("member"))).json()
    response = await client.post(
        f"/api/v1/todos/{todos[0]['todo_id']}/mark_as_done", headers=_as("guest")
    )
    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


@pytest.mark.asyncio
async def test_mark_all_done(client, seeded):
    response = await client.post("/api/v1/todos/mark_as_done", headers=_as("assignee"))
    assert response.status_code == 200
    body = response.json()
    assert len(body["updated_ids"]) == 2
    assert body["counts"] == {"pending": 0, "done": 2}

    todos = (await client.get("/api/v1/todos", headers=_as("assignee"))).json()
    assert {t["resolved_by_action"] for t in todos} == {"api_all_done"}


@pytest.mark.asyncio
async def test_bulk_resolve_and_restore(client, seeded):
    todos = (await client.get("/api/v1/todos", headers=_as("assignee"))).json()
    ids = [t["todo_id"] for t in todos[:1]]

    response = await client.post(
        "/api/v1/todos/bulk",
        json={"todo_ids": ids, "operation": "resolve"},
        headers=_as("assignee"),
    )
    assert response.status_code == 200
    body = response.json()
    assert sorted(body["updated_ids"]) == sorted(ids)
    assert body["counts"] == {"pending": 1, "done": 1}

    response = await client.post(
        "/api/v1/todos/bulk",
        json={"todo_ids": ids, "operation": "restore"},
        headers=_as("assignee"),
    )
    assert response.json()["counts"] == {"pending": 2, "done": 0}


@pytest.mark.asyncio
async def test_bulk_ignores_foreign_ids(client, seeded):
    theirs = (await client.get("/api/v1/todos", headers=_as("member"))).json()
    response = await client.post(
        "/api/v1/todos/bulk",
        json={"todo_ids": [t["todo_id"] for t in theirs]},
        headers=_as("assignee"),
    )
    assert response.status_code == 200
    assert response.json()["updated_ids"] == []


@pytest.mark.asyncio
async def test_bulk_too_many_ids(client, monkeypatch):
    monkeypatch.setattr(settings, "max_bulk_todo_ids", 2)
    response = await client.post(
        "/api/v1/todos/bulk",
        json={"todo_ids": ["todo_a", "todo_b", "todo_c"]},
        headers=_as("member"),
    )
    assert response.status_code == 400
    assert response.json()["error"]["code"] == "VALIDATION_ERROR"


@pytest.mark.asyncio
async def test_bulk_rejects_unknown_operation(client):
    response = await client.post(
        "/api/v1/todos/bulk",
        json={"todo_ids": ["todo_a"], "operation": "delete"},
        headers=_as("member"),
    )
    assert response.status_code == 422
