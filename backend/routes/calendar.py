from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query

from backend.auth import require_user_id
from backend.schemas import CalendarResponse
from backend.services import calendar_service
from backend.timeutils import parse_instant

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get(
    "/api/calendar",
    response_model=CalendarResponse,
    response_model_by_alias=True,
    response_model_exclude_none=True,
)
async def calendar_feed(
    range_from: str | None = Query(None, alias="from"),
    range_to: str | None = Query(None, alias="to"),
    project_id: str | None = Query(None, alias="projectId"),
    user_id: str = Depends(require_user_id),
):
    scope = (project_id or "").strip() or None
    try:
        items = await calendar_service.collect_calendar_items(
            user_id,
            range_from=parse_instant(range_from),
            range_to=parse_instant(range_to),
            project_id=scope,
        )
    except Exception as exc:
        logger.exception("Failed to build calendar: %s", exc)
        raise HTTPException(status_code=500, detail=str(exc) or "Server error")
    return CalendarResponse(items=items)
