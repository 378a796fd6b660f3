from datetime import datetime, timedelta
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import pytest

from backend.settings import reset_settings

MARCH = {"from": "2024-03-01T00:00:00Z", "to": "2024-04-01T00:00:00Z"}


def _parse(value):
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


def _create_personal_event(client, headers, **overrides):
    body = {"title": "Study group", "start": "2024-03-10T09:00:00Z", "end": "2024-03-10T10:00:00Z"}
    body.update(overrides)
    response = client.post("/api/events", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["event"]


def _create_task(client, headers, project_id, **body):
    response = client.post(f"/api/projects/{project_id}/tasks", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["task"]


def _create_project_event(client, headers, project_id, **overrides):
    body = {"title": "Sprint review", "start": "2024-03-12T13:00:00Z", "end": "2024-03-12T14:00:00Z"}
    body.update(overrides)
    response = client.post(f"/api/projects/{project_id}/events", json=body, headers=headers)
    assert response.status_code == 201, response.text
    return response.json()["event"]


def test_requires_bearer_token(client):
    assert client.get("/api/calendar").status_code == 401
    response = client.get("/api/calendar", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_personal_event_shows_up_with_default_color(client, auth_headers):
    headers = auth_headers()
    event = _create_personal_event(client, headers)

    response = client.get("/api/calendar", params=MARCH, headers=headers)

    assert response.status_code == 200
    items = response.json()["items"]
    assert len(items) == 1
    item = items[0]
    assert item["_id"] == event["_id"]
    assert item["kind"] == "event"
    assert item["title"] == "Study group"
    assert item["start"] == "2024-03-10T09:00:00.000Z"
    assert item["end"] == "2024-03-10T10:00:00.000Z"
    assert item["allDay"] is False
    assert item["color"] == "#2563eb"
    assert "project" not in item


def test_stored_personal_color_wins(client, auth_headers):
    headers = auth_headers()
    _create_personal_event(client, headers, color="#123456")

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert items[0]["color"] == "#123456"


def test_task_deadline_becomes_full_day_item(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    task = _create_task(client, headers, project["_id"], title="Draft chapter", status="doing", deadline="2024-03-15T14:30:00Z")

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert len(items) == 1
    item = items[0]
    assert item["_id"] == task["_id"]
    assert item["kind"] == "task"
    assert item["status"] == "doing"
    assert item["color"] == "#f59e0b"
    assert item["allDay"] is True
    assert item["start"] == "2024-03-15T00:00:00.000Z"
    assert item["end"] == "2024-03-15T23:59:59.999Z"
    assert item["project"] == {"_id": project["_id"], "name": "Thesis"}
    assert _parse(item["end"]) - _parse(item["start"]) == timedelta(days=1) - timedelta(milliseconds=1)


@pytest.mark.parametrize(
    "status,color",
    [("todo", "#ef4444"), ("doing", "#f59e0b"), ("done", "#22c55e")],
)
def test_task_color_follows_status(client, auth_headers, make_project, status, color):
    headers = auth_headers()
    project = make_project()
    _create_task(client, headers, project["_id"], title="Read paper", status=status, deadline="2024-03-20T09:00:00Z")

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert [item["color"] for item in items] == [color]


def test_tasks_without_deadline_are_skipped(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    _create_task(client, headers, project["_id"], title="Someday")

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert items == []


def test_deadline_span_uses_calendar_timezone(client, auth_headers, make_project, monkeypatch):
    try:
        ZoneInfo("America/Sao_Paulo")
    except ZoneInfoNotFoundError:
        pytest.skip("tz database not available")
    headers = auth_headers()
    project = make_project()
    _create_task(client, headers, project["_id"], title="Submit", deadline="2024-03-16T01:00:00Z")
    monkeypatch.setenv("CALENDAR_TIMEZONE", "America/Sao_Paulo")
    reset_settings()

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert items[0]["start"] == "2024-03-15T03:00:00.000Z"
    assert items[0]["end"] == "2024-03-16T02:59:59.999Z"


def test_dashboard_merges_sources_in_order(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    _create_task(client, headers, project["_id"], title="Deadline", deadline="2024-03-05T12:00:00Z")
    _create_project_event(client, headers, project["_id"])
    _create_personal_event(client, headers)

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert [(item["kind"], item["title"]) for item in items] == [
        ("event", "Study group"),
        ("event", "Sprint review"),
        ("task", "Deadline"),
    ]
    assert items[1]["color"] == "#ef4444"
    assert items[1]["project"]["_id"] == project["_id"]


def test_member_sees_project_items(client, auth_headers, make_project):
    project = make_project(members=["bob"])
    _create_project_event(client, auth_headers("alice"), project["_id"])
    _create_personal_event(client, auth_headers("alice"))

    items = client.get("/api/calendar", params=MARCH, headers=auth_headers("bob")).json()["items"]

    assert [item["title"] for item in items] == ["Sprint review"]


def test_project_scope_leaves_out_personal_events(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    other = make_project(name="Other")
    _create_personal_event(client, headers)
    _create_project_event(client, headers, project["_id"])
    _create_project_event(client, headers, other["_id"], title="Elsewhere")

    params = {**MARCH, "projectId": project["_id"]}
    items = client.get("/api/calendar", params=params, headers=headers).json()["items"]

    assert [item["title"] for item in items] == ["Sprint review"]


def test_foreign_project_scope_is_empty(client, auth_headers, make_project):
    project = make_project(owner="alice")
    _create_project_event(client, auth_headers("alice"), project["_id"])

    params = {**MARCH, "projectId": project["_id"]}
    response = client.get("/api/calendar", params=params, headers=auth_headers("mallory"))

    assert response.status_code == 200
    assert response.json() == {"items": []}


def test_unknown_project_scope_is_empty(client, auth_headers):
    response = client.get("/api/calendar", params={"projectId": "does-not-exist"}, headers=auth_headers())

    assert response.status_code == 200
    assert response.json() == {"items": []}


def test_window_uses_overlap(client, auth_headers):
    headers = auth_headers()
    _create_personal_event(client, headers, title="Before", start="2024-02-28T09:00:00Z", end="2024-02-28T10:00:00Z")
    _create_personal_event(client, headers, title="Straddles", start="2024-02-29T23:00:00Z", end="2024-03-01T01:00:00Z")
    _create_personal_event(client, headers, title="Ends at from", start="2024-02-29T22:00:00Z", end="2024-03-01T00:00:00Z")
    _create_personal_event(client, headers, title="Starts at to", start="2024-04-01T00:00:00Z", end="2024-04-01T01:00:00Z")

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert [item["title"] for item in items] == ["Straddles"]


def test_inverted_window_yields_no_events(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    _create_project_event(client, headers, project["_id"], start="2024-03-01T00:00:00Z", end="2024-03-30T00:00:00Z")
    _create_personal_event(client, headers, start="2024-03-01T00:00:00Z", end="2024-03-30T00:00:00Z")

    params = {"from": "2024-03-20T00:00:00Z", "to": "2024-03-10T00:00:00Z"}
    response = client.get("/api/calendar", params=params, headers=headers)

    assert response.status_code == 200
    assert response.json() == {"items": []}


def test_malformed_bounds_are_ignored(client, auth_headers):
    headers = auth_headers()
    _create_personal_event(client, headers)
    _create_personal_event(client, headers, title="Next year", start="2025-01-10T09:00:00Z", end="2025-01-10T10:00:00Z")

    params = {"from": "not-a-date", "to": "also-bad"}
    response = client.get("/api/calendar", params=params, headers=headers)

    assert response.status_code == 200
    assert sorted(item["title"] for item in response.json()["items"]) == ["Next year", "Study group"]


def test_one_malformed_bound_keeps_the_other(client, auth_headers):
    headers = auth_headers()
    _create_personal_event(client, headers)
    _create_personal_event(client, headers, title="Next year", start="2025-01-10T09:00:00Z", end="2025-01-10T10:00:00Z")

    params = {"from": "garbage", "to": "2024-12-31T00:00:00Z"}
    items = client.get("/api/calendar", params=params, headers=headers).json()["items"]

    assert [item["title"] for item in items] == ["Study group"]


def test_repeated_reads_are_identical(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    _create_personal_event(client, headers)
    _create_project_event(client, headers, project["_id"])
    _create_task(client, headers, project["_id"], title="Deadline", deadline="2024-03-05T12:00:00Z")

    first = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]
    second = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    key = lambda item: (item["kind"], item["_id"])
    assert sorted(first, key=key) == sorted(second, key=key)
    assert len(first) == 3


def test_unrepresentable_bound_is_ignored(client, auth_headers):
    headers = auth_headers()
    _create_personal_event(client, headers)

    params = {"from": "0001-01-01T00:00:00+01:00", "to": "2024-04-01T00:00:00Z"}
    response = client.get("/api/calendar", params=params, headers=headers)

    assert response.status_code == 200
    assert [item["title"] for item in response.json()["items"]] == ["Study group"]


def test_deadlines_on_window_edges_are_included(client, auth_headers, make_project):
    headers = auth_headers()
    project = make_project()
    _create_task(client, headers, project["_id"], title="at-from", deadline="2024-03-01T00:00:00Z")
    _create_task(client, headers, project["_id"], title="at-to", deadline="2024-04-01T00:00:00Z")
    _create_task(client, headers, project["_id"], title="after", deadline="2024-04-01T00:00:00.001Z")

    items = client.get("/api/calendar", params=MARCH, headers=headers).json()["items"]

    assert [item["title"] for item in items] == ["at-from", "at-to"]


def test_storage_failure_surfaces_message(client, auth_headers, monkeypatch):
    from backend import repositories

    async def broken(*args, **kwargs):
        raise RuntimeError("database is locked")

    monkeypatch.setattr(repositories, "list_project_events", broken)

    response = client.get("/api/calendar", params=MARCH, headers=auth_headers())

    assert response.status_code == 500
    assert response.json() == {"error": "database is locked"}
