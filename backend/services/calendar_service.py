from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from backend import repositories
from backend.schemas import EventItem, ProjectRef, TaskItem
from backend.timeutils import from_iso, local_day_span, to_iso

logger = logging.getLogger(__name__)

PERSONAL_EVENT_COLOR = "#2563eb"
PROJECT_EVENT_COLOR = "#ef4444"
TASK_STATUS_COLORS = {
    "done": "#22c55e",
    "doing": "#f59e0b",
}
TASK_DEFAULT_COLOR = "#ef4444"


def task_color(status: str | None) -> str:
    return TASK_STATUS_COLORS.get(status or "", TASK_DEFAULT_COLOR)


def _project_ref(row: dict) -> ProjectRef | None:
    if not row.get("project_id"):
        return None
    return ProjectRef(id=row["project_id"], name=row.get("project_name"))


def personal_event_item(row: dict) -> EventItem:
    return EventItem(
        id=row["id"],
        title=row["title"],
        start=to_iso(from_iso(row["start_at"])),
        end=to_iso(from_iso(row["end_at"])),
        all_day=bool(row.get("all_day")),
        color=row.get("color") or PERSONAL_EVENT_COLOR,
    )


def project_event_item(row: dict) -> EventItem:
    return EventItem(
        id=row["id"],
        title=row["title"],
        start=to_iso(from_iso(row["start_at"])),
        end=to_iso(from_iso(row["end_at"])),
        all_day=bool(row.get("all_day")),
        project=_project_ref(row),
        color=PROJECT_EVENT_COLOR,
    )


def task_deadline_item(row: dict) -> TaskItem:
    start, end = local_day_span(from_iso(row["deadline"]))
    return TaskItem(
        id=row["id"],
        title=row["title"],
        start=to_iso(start),
        end=to_iso(end),
        all_day=True,
        status=row.get("status") or "todo",
        project=_project_ref(row),
        color=task_color(row.get("status")),
    )


async def _no_rows() -> list[dict]:
    return []


async def collect_calendar_items(
    user_id: str,
    range_from: datetime | None = None,
    range_to: datetime | None = None,
    project_id: str | None = None,
) -> list[EventItem | TaskItem]:
    """Merge personal events, project events and task deadlines visible to a user.

    With `project_id` the view is restricted to that project and personal
    events are left out; a project the user cannot see yields no items.
    The result is personal, then project events, then tasks, each in its
    own start order.
    """
    if project_id:
        project = await repositories.get_accessible_project(project_id, user_id)
        if not project:
            logger.info("Calendar scope %s not accessible for user %s", project_id, user_id)
            return []
        project_ids = [project_id]
    else:
        project_ids = await repositories.list_accessible_project_ids(user_id)

    personal_query = (
        _no_rows() if project_id else repositories.list_personal_events(user_id, range_from, range_to)
    )
    personal, events, tasks = await asyncio.gather(
        personal_query,
        repositories.list_project_events(project_ids, range_from, range_to),
        repositories.list_task_deadlines(project_ids, range_from, range_to),
    )

    items: list[EventItem | TaskItem] = []
    items.extend(personal_event_item(row) for row in personal)
    items.extend(project_event_item(row) for row in events)
    items.extend(task_deadline_item(row) for row in tasks)
    return items
