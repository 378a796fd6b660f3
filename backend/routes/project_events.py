from __future__ import annotations

import logging
from datetime import timedelta

from fastapi import APIRouter, Depends, HTTPException, Query

from backend import repositories
from backend.auth import require_user_id
from backend.routes.common import load_project_or_404, project_event_payload, project_payload
from backend.schemas import EventCreate, EventPatch
from backend.services import event_rules
from backend.timeutils import parse_instant, utc_now

logger = logging.getLogger(__name__)

router = APIRouter()

DEFAULT_LOOKBACK = timedelta(days=30)
DEFAULT_LOOKAHEAD = timedelta(days=60)


def _range_or_400(range_from: str | None, range_to: str | None):
    now = utc_now()
    start = parse_instant(range_from) if range_from else now - DEFAULT_LOOKBACK
    end = parse_instant(range_to) if range_to else now + DEFAULT_LOOKAHEAD
    if start is None or end is None:
        raise HTTPException(status_code=400, detail="Invalid date range")
    return start, end


async def _load_editable_event(project_id: str, event_id: str, user_id: str) -> dict:
    project = await load_project_or_404(project_id, user_id)
    event = await repositories.get_project_event(project_id, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if project["owner_id"] != user_id and event.get("created_by") != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return event


@router.get("/api/projects/{project_id}/events")
async def list_project_events(
    project_id: str,
    range_from: str | None = Query(None, alias="from"),
    range_to: str | None = Query(None, alias="to"),
    user_id: str = Depends(require_user_id),
):
    project = await load_project_or_404(project_id, user_id)
    start, end = _range_or_400(range_from, range_to)
    rows = await repositories.list_project_events([project_id], start, end)
    return {
        "events": [project_event_payload(row) for row in rows],
        "project": project_payload(project),
    }


@router.post("/api/projects/{project_id}/events", status_code=201)
async def create_project_event(project_id: str, payload: EventCreate, user_id: str = Depends(require_user_id)):
    await load_project_or_404(project_id, user_id)
    title = event_rules.clean_title(payload.title)
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        start, end = event_rules.resolve_new_event_times(payload.start, payload.end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record = await repositories.create_project_event(
        project_id,
        user_id,
        {
            "title": title,
            "description": (payload.description or "").strip(),
            "start": start,
            "end": end,
            "all_day": payload.all_day,
        },
    )
    logger.info("Project event %s created in %s by %s", record["id"], project_id, user_id)
    return {"event": project_event_payload(record)}


@router.patch("/api/projects/{project_id}/events/{event_id}")
async def patch_project_event(
    project_id: str,
    event_id: str,
    payload: EventPatch,
    user_id: str = Depends(require_user_id),
):
    event = await _load_editable_event(project_id, event_id, user_id)
    try:
        updates = event_rules.build_event_patch(event, payload.model_dump(exclude_unset=True), allow_color=False)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record = await repositories.update_project_event(project_id, event_id, updates)
    return {"event": project_event_payload(record)}


@router.delete("/api/projects/{project_id}/events/{event_id}")
async def delete_project_event(project_id: str, event_id: str, user_id: str = Depends(require_user_id)):
    await _load_editable_event(project_id, event_id, user_id)
    await repositories.delete_project_event(event_id)
    return {"ok": True}
