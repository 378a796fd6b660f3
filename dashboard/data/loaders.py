from __future__ import annotations

import logging

from dashboard.calendar_grid import fetch_window, item_api_path, parse_items, to_iso
from dashboard.data import api_client

logger = logging.getLogger(__name__)


def load_calendar_items(cursor, project_id: str | None = None):
    range_from, range_to = fetch_window(cursor)
    params = {"from": to_iso(range_from), "to": to_iso(range_to)}
    if project_id:
        params["projectId"] = project_id
    payload = api_client.request("GET", "/api/calendar", params=params)
    items = parse_items(payload.get("items"))
    logger.debug("Loaded %d calendar items for %s", len(items), params)
    return items


def load_projects() -> list[dict]:
    return api_client.request("GET", "/api/projects").get("projects", [])


def load_project_tasks(project_id: str) -> list[dict]:
    return api_client.request("GET", f"/api/projects/{project_id}/tasks").get("tasks", [])


def create_task(project_id: str, body: dict) -> dict:
    return api_client.request("POST", f"/api/projects/{project_id}/tasks", json=body).get("task", {})


def delete_task(task_id: str) -> None:
    api_client.request("DELETE", f"/api/tasks/{task_id}")


def create_project(name: str, description: str = "") -> dict:
    return api_client.request("POST", "/api/projects", json={"name": name, "description": description}).get(
        "project", {}
    )


def join_project(join_code: str) -> dict:
    return api_client.request("POST", "/api/projects/join", json={"joinCode": join_code}).get("project", {})


def send_task_patch(task_id: str, patch: dict) -> dict:
    return api_client.request("PATCH", f"/api/tasks/{task_id}", json=patch).get("task", {})


def create_event(body: dict, project_id: str | None = None) -> dict:
    path = f"/api/projects/{project_id}/events" if project_id else "/api/events"
    return api_client.request("POST", path, json=body).get("event", {})


def update_event(item, body: dict) -> dict:
    path = item_api_path(item)
    if not path:
        raise ValueError("Tasks cannot be edited from the calendar")
    return api_client.request("PATCH", path, json=body).get("event", {})


def delete_event(item) -> None:
    path = item_api_path(item)
    if not path:
        raise ValueError("Tasks cannot be deleted from the calendar")
    api_client.request("DELETE", path)
