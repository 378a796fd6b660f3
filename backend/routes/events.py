from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from backend import repositories
from backend.auth import require_user_id
from backend.routes.common import personal_event_payload
from backend.schemas import EventCreate, EventPatch
from backend.services import event_rules
from backend.timeutils import parse_instant

logger = logging.getLogger(__name__)

router = APIRouter()


async def _load_owned_event(event_id: str, user_id: str) -> dict:
    event = await repositories.get_personal_event(event_id)
    if not event:
        raise HTTPException(status_code=404, detail="Event not found")
    if event["owner_id"] != user_id:
        raise HTTPException(status_code=403, detail="Forbidden")
    return event


@router.get("/api/events")
async def list_events(
    range_from: str | None = Query(None, alias="from"),
    range_to: str | None = Query(None, alias="to"),
    user_id: str = Depends(require_user_id),
):
    rows = await repositories.list_personal_events(user_id, parse_instant(range_from), parse_instant(range_to))
    return {"events": [personal_event_payload(row) for row in rows]}


@router.post("/api/events", status_code=201)
async def create_event(payload: EventCreate, user_id: str = Depends(require_user_id)):
    title = event_rules.clean_title(payload.title)
    if not title:
        raise HTTPException(status_code=400, detail="Title is required")
    try:
        start, end = event_rules.resolve_new_event_times(payload.start, payload.end)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record = await repositories.create_personal_event(
        user_id,
        {
            "title": title,
            "description": (payload.description or "").strip(),
            "start": start,
            "end": end,
            "all_day": payload.all_day,
            "color": payload.color,
        },
    )
    logger.info("Personal event %s created for %s", record["id"], user_id)
    return {"event": personal_event_payload(record)}


@router.patch("/api/events/{event_id}")
async def patch_event(event_id: str, payload: EventPatch, user_id: str = Depends(require_user_id)):
    event = await _load_owned_event(event_id, user_id)
    try:
        updates = event_rules.build_event_patch(event, payload.model_dump(exclude_unset=True), allow_color=True)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    record = await repositories.update_personal_event(event_id, updates)
    return {"event": personal_event_payload(record)}


@router.delete("/api/events/{event_id}")
async def delete_event(event_id: str, user_id: str = Depends(require_user_id)):
    await _load_owned_event(event_id, user_id)
    await repositories.delete_personal_event(event_id)
    return {"ok": True}
