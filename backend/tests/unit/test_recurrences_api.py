"""
Integration tests for the recurrences API.

Drives the FastAPI app over an in-memory SQLite database.
"""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from httpx import ASGITransport, AsyncClient

from gtd_recurrence.api.deps import get_field_cipher, get_task_repository
from gtd_recurrence.core.config import get_settings
from gtd_recurrence.core.exceptions import StorageError
from gtd_recurrence.infrastructure.local.task_repository import SqliteTaskRepository
from gtd_recurrence.models.task import TaskCreate
from main import create_app

WEEKLY_RULE = {"kind": "weekly", "weekdays": [2, 4], "anchor_date": "2024-01-02"}


@pytest.fixture
def task_repo(session_factory):
    return SqliteTaskRepository(session_factory=session_factory)


@pytest.fixture
async def client(task_repo, cipher):
    app = create_app()
    app.dependency_overrides[get_task_repository] = lambda: task_repo
    app.dependency_overrides[get_field_cipher] = lambda: cipher
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


async def _create_series(client, **overrides):
    body = {
        "task": {"text": "Water plants", "due_date": "2024-01-02"},
        "rule": WEEKLY_RULE,
        "end_condition": {"type": "never"},
    }
    body.update(overrides)
    response = await client.post("/api/recurrences/series", json=body)
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


@pytest.mark.asyncio
async def test_preview_from_form_values(client):
    response = await client.post(
        "/api/recurrences/preview",
        json={
            "form_values": {"type": "weekly", "weekdays": ["2", "4"], "start_date": "2024-01-03"},
            "count": 3,
            "start_date": "2024-01-03",
        },
    )

    assert response.status_code == 200
    data = response.json()
    assert data["dates"] == ["2024-01-04", "2024-01-09", "2024-01-11"]
    assert data["labels"][0] == "Jan 4, 2024"
    assert data["summary"] == "Every week on Tue, Thu"
    assert data["preset"] is None


@pytest.mark.asyncio
async def test_preview_rejects_invalid_rule(client):
    response = await client.post(
        "/api/recurrences/preview",
        json={"rule": {"kind": "daily", "interval": 0, "anchor_date": "2024-01-01"}},
    )
    assert response.status_code == 422
    assert "Interval" in response.json()["detail"]


@pytest.mark.asyncio
async def test_preview_rejects_unknown_type(client):
    response = await client.post(
        "/api/recurrences/preview", json={"form_values": {"type": "hourly"}}
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_create_and_get_series(client):
    instance = await _create_series(client)

    assert instance["text"] == "Water plants"
    assert instance["due_date"] == "2024-01-02"

    response = await client.get(f"/api/recurrences/series/{instance['template_id']}")
    assert response.status_code == 200
    data = response.json()
    assert data["state"] == "active"
    assert data["summary"] == "Every week on Tue, Thu"
    assert data["template"]["text"] == "Water plants"
    assert data["template"]["occurrence_count"] == 1


@pytest.mark.asyncio
async def test_create_prefills_due_date(client):
    instance = await _create_series(
        client,
        task={"text": "Journal"},
        rule={"kind": "daily", "anchor_date": "2024-01-01"},
    )
    assert instance["due_date"] == "2024-01-02"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "rule",
    [
        {"kind": "daily", "interval": 10**9, "anchor_date": "2024-01-01"},
        {
            "kind": "monthly",
            "monthly_day_type": "weekday",
            "weekday": 9,
            "weekday_ordinal": -1,
            "anchor_date": "2024-01-01",
        },
        {"kind": "yearly", "interval": 9000, "anchor_date": "2024-01-01"},
    ],
)
async def test_create_rejects_invalid_rule_without_due_date(client, task_repo, rule):
    response = await client.post(
        "/api/recurrences/series", json={"task": {"text": "Journal"}, "rule": rule}
    )

    assert response.status_code == 422
    assert await task_repo.list_templates(get_settings().DEFAULT_USER_ID) == []


@pytest.mark.asyncio
async def test_get_unknown_series(client):
    response = await client.get(f"/api/recurrences/series/{uuid4()}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_series_is_scoped_to_user(client):
    response = await client.post(
        "/api/recurrences/series",
        json={"task": {"text": "Private", "due_date": "2024-01-02"}, "rule": WEEKLY_RULE},
        headers={"X-User-Id": "alice"},
    )
    template_id = response.json()["template_id"]

    other = await client.get(
        f"/api/recurrences/series/{template_id}", headers={"X-User-Id": "bob"}
    )
    own = await client.get(
        f"/api/recurrences/series/{template_id}", headers={"X-User-Id": "alice"}
    )

    assert other.status_code == 404
    assert own.status_code == 200


@pytest.mark.asyncio
async def test_generate_stop_and_delete(client):
    instance = await _create_series(client)
    template_id = instance["template_id"]

    generated = await client.post(
        f"/api/recurrences/series/{template_id}/generate", json={"from_date": "2024-01-02"}
    )
    assert generated.status_code == 200
    assert generated.json()["due_date"] == "2024-01-04"

    stopped = await client.post(f"/api/recurrences/series/{template_id}/stop")
    assert stopped.status_code == 200
    assert stopped.json()["state"] == "ended"
    assert stopped.json()["template"]["end_condition"] == {"type": "after_count", "count": 2}

    ended = await client.post(
        f"/api/recurrences/series/{template_id}/generate", json={"from_date": "2024-01-04"}
    )
    assert ended.status_code == 200
    assert ended.json() is None

    deleted = await client.delete(f"/api/recurrences/series/{template_id}")
    assert deleted.json() == {"deleted_count": 2}

    missing = await client.delete(f"/api/recurrences/series/{template_id}")
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_rule(client):
    instance = await _create_series(client)

    response = await client.patch(
        f"/api/recurrences/series/{instance['template_id']}",
        json={"rule": {"kind": "weekly", "weekdays": [1, 2, 3, 4, 5], "anchor_date": "2024-01-02"}},
    )

    assert response.status_code == 200
    assert response.json()["preset"] == "weekdays"


@pytest.mark.asyncio
async def test_complete_generates_successor(client):
    instance = await _create_series(client)

    response = await client.post(f"/api/recurrences/tasks/{instance['id']}/complete")

    assert response.status_code == 200
    data = response.json()
    assert data["task"]["completed"] is True
    assert data["task"]["gtd_status"] == "done"
    assert data["next_instance"]["due_date"] == "2024-01-04"


@pytest.mark.asyncio
async def test_convert_task(client, task_repo, cipher):
    user_id = get_settings().DEFAULT_USER_ID
    existing = await task_repo.create(user_id, TaskCreate(text=cipher.encrypt("Old")))

    response = await client.post(
        f"/api/recurrences/tasks/{existing.id}/convert",
        json={"task": {"text": "Pay rent", "due_date": "2024-02-01"}, "rule": WEEKLY_RULE},
    )

    assert response.status_code == 200
    assert response.json()["id"] == str(existing.id)
    assert response.json()["template_id"] is not None


@pytest.mark.asyncio
async def test_catch_up_endpoint(client):
    instance = await _create_series(client)
    await client.post(f"/api/recurrences/tasks/{instance['id']}/complete")

    response = await client.post("/api/recurrences/catch-up")

    # The successor generated on completion is still open
    assert response.status_code == 200
    assert response.json() == []


@pytest.mark.asyncio
async def test_storage_failure_maps_to_503(cipher):
    repo = AsyncMock()
    repo.get.side_effect = StorageError("database is locked")
    app = create_app()
    app.dependency_overrides[get_task_repository] = lambda: repo
    app.dependency_overrides[get_field_cipher] = lambda: cipher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        response = await ac.get(f"/api/recurrences/series/{uuid4()}")

    assert response.status_code == 503
