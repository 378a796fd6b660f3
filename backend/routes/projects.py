from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException

from backend import repositories
from backend.auth import require_user_id
from backend.routes.common import load_project_or_404, project_payload
from backend.schemas import ProjectCreate, ProjectJoin

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/api/projects")
async def list_projects(user_id: str = Depends(require_user_id)):
    rows = await repositories.list_projects_for_user(user_id)
    return {"projects": [project_payload(row) for row in rows]}


@router.post("/api/projects", status_code=201)
async def create_project(payload: ProjectCreate, user_id: str = Depends(require_user_id)):
    try:
        record = await repositories.create_project(user_id, payload.model_dump(exclude_unset=True))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    logger.info("Project %s created by %s", record["id"], user_id)
    return {"project": project_payload(record)}


@router.post("/api/projects/join")
async def join_project(payload: ProjectJoin, user_id: str = Depends(require_user_id)):
    join_code = (payload.join_code or "").strip().upper()
    if not join_code:
        raise HTTPException(status_code=400, detail="Join code is required")
    project = await repositories.get_project_by_join_code(join_code)
    if not project:
        raise HTTPException(status_code=404, detail="Invalid join code")
    if project["owner_id"] != user_id and user_id not in project["members"]:
        await repositories.add_member(project["id"], user_id)
        project = await repositories.get_project(project["id"])
    return {"project": project_payload(project)}


@router.get("/api/projects/{project_id}")
async def get_project(project_id: str, user_id: str = Depends(require_user_id)):
    project = await load_project_or_404(project_id, user_id)
    return {"project": project_payload(project)}


@router.post("/api/projects/{project_id}/leave")
async def leave_project(project_id: str, user_id: str = Depends(require_user_id)):
    project = await repositories.get_project(project_id)
    if not project:
        raise HTTPException(status_code=404, detail="Project not found")
    if project["owner_id"] == user_id:
        raise HTTPException(
            status_code=400,
            detail="Owner cannot leave. Transfer ownership or delete project.",
        )
    await repositories.remove_member(project_id, user_id)
    return {"ok": True}
