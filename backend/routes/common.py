from __future__ import annotations

from fastapi import HTTPException

from backend import repositories


async def load_project_or_404(project_id: str, user_id: str) -> dict:
    project = await repositories.get_accessible_project(project_id, user_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    return project


def project_payload(row: dict) -> dict:
    return {
        "_id": row["id"],
        "name": row["name"],
        "description": row.get("description") or "",
        "color": row.get("color"),
        "owner": row["owner_id"],
        "members": list(row.get("members") or []),
        "joinCode": row.get("join_code"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }


def personal_event_payload(row: dict) -> dict:
    return {
        "_id": row["id"],
        "kind": "event",
        "title": row["title"],
        "description": row.get("description") or "",
        "start": row["start_at"],
        "end": row["end_at"],
        "allDay": bool(row.get("all_day")),
        "color": row.get("color"),
    }


def project_event_payload(row: dict) -> dict:
    return {
        "_id": row["id"],
        "kind": "event",
        "title": row["title"],
        "description": row.get("description") or "",
        "start": row["start_at"],
        "end": row["end_at"],
        "allDay": bool(row.get("all_day")),
        "project": {"_id": row["project_id"]},
        "createdBy": row.get("created_by"),
    }


def task_payload(row: dict) -> dict:
    payload = {
        "_id": row["id"],
        "project": row["project_id"],
        "title": row["title"],
        "description": row.get("description") or "",
        "status": row.get("status") or "todo",
        "createdBy": row.get("created_by"),
        "assignedTo": row.get("assigned_to"),
        "deadline": row.get("deadline"),
        "createdAt": row.get("created_at"),
        "updatedAt": row.get("updated_at"),
    }
    if row.get("project_name") is not None:
        payload["project"] = {"_id": row["project_id"], "name": row["project_name"]}
    return payload
