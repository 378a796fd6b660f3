from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query

from backend import repositories
from backend.auth import require_user_id
from backend.routes.common import load_project_or_404, task_payload
from backend.schemas import TaskCreate, TaskPatch
from backend.timeutils import parse_instant, utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

DUE_WINDOW = timedelta(days=7)


def _parse_deadline(value):
    """Empty or null clears the deadline; anything unparseable is rejected."""
    if value is None or value == "":
        return None
    deadline = parse_instant(value)
    if deadline is None:
        raise HTTPException(status_code=400, detail="Invalid deadline")
    return deadline


async def _load_task_or_404(task_id: str, user_id: str) -> tuple[dict, dict]:
    task = await repositories.get_task(task_id)
    if not task:
        raise HTTPException(status_code=404, detail="Task not found")
    project = await repositories.get_accessible_project(task["project_id"], user_id)
    if not project:
        raise HTTPException(status_code=404, detail="Task not found")
    return task, project


@router.get("/api/projects/{project_id}/tasks")
async def list_project_tasks(project_id: str, user_id: str = Depends(require_user_id)):
    await load_project_or_404(project_id, user_id)
    rows = await repositories.list_project_tasks(project_id)
    return {"tasks": [task_payload(row) for row in rows]}


@router.post("/api/projects/{project_id}/tasks", status_code=201)
async def create_task(project_id: str, payload: TaskCreate, user_id: str = Depends(require_user_id)):
    await load_project_or_404(project_id, user_id)
    data = payload.model_dump(exclude_unset=True)
    data["deadline"] = _parse_deadline(data.get("deadline"))
    try:
        record = await repositories.create_task(project_id, user_id, data)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return {"task": task_payload(record)}


@router.get("/api/tasks/due")
async def list_due_tasks(
    range_from: str | None = Query(None, alias="from"),
    range_to: str | None = Query(None, alias="to"),
    user_id: str = Depends(require_user_id),
):
    now = utc_now()
    start = parse_instant(range_from) or now
    end = parse_instant(range_to) or now + DUE_WINDOW
    project_ids = await repositories.list_accessible_project_ids(user_id)
    rows = await repositories.list_task_deadlines(project_ids, start, end)
    return {"tasks": [task_payload(row) for row in rows]}


@router.patch("/api/tasks/{task_id}")
async def patch_task(task_id: str, payload: TaskPatch, user_id: str = Depends(require_user_id)):
    _, project = await _load_task_or_404(task_id, user_id)
    data = payload.model_dump(exclude_unset=True)
    patch: dict = {}
    if isinstance(data.get("title"), str):
        patch["title"] = data["title"].strip()
        if not patch["title"]:
            raise HTTPException(status_code=400, detail="Title is required")
    if isinstance(data.get("description"), str):
        patch["description"] = data["description"].strip()
    if isinstance(data.get("status"), str):
        patch["status"] = data["status"]
    if "deadline" in data:
        patch["deadline"] = _parse_deadline(data["deadline"])
    if "assigned_to" in data:
        assignee = data["assigned_to"] or None
        if assignee and assignee != project["owner_id"] and assignee not in project["members"]:
            raise HTTPException(status_code=400, detail="Assignee must be a project member")
        patch["assigned_to"] = assignee
    try:
        record = await repositories.update_task(task_id, patch)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info("Task %s updated by %s: %s", task_id, user_id, sorted(patch))
    return {"task": task_payload(record)}


@router.delete("/api/tasks/{task_id}")
async def delete_task(task_id: str, user_id: str = Depends(require_user_id)):
    await _load_task_or_404(task_id, user_id)
    await repositories.delete_task(task_id)
    return {"ok": True}
