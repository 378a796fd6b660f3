"""Month grid, fetch window and per-day bucketing for the calendar tab.

Everything here is a pure function of its inputs so the calendar can be
exercised without a Streamlit session. Weeks always run Monday to Sunday.
"""

from __future__ import annotations

import calendar
import os
from dataclasses import dataclass, field, replace
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dashboard.constants import EVENT_DOT_COLOR, STATUS_COLORS

END_OF_DAY = time(23, 59, 59, 999000)
ONE_HOUR = timedelta(hours=1)


def local_zone():
    name = os.getenv("CALENDAR_TIMEZONE", "UTC")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def today(tz=None) -> date:
    return datetime.now(tz or local_zone()).date()


def _as_date(value) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def month_first_day(cursor) -> date:
    return _as_date(cursor).replace(day=1)


def month_last_day(cursor) -> date:
    first = month_first_day(cursor)
    return first.replace(day=calendar.monthrange(first.year, first.month)[1])


def shift_month(cursor, delta: int) -> date:
    first = month_first_day(cursor)
    index = first.year * 12 + (first.month - 1) + delta
    return date(index // 12, index % 12 + 1, 1)


def month_label(cursor) -> str:
    first = month_first_day(cursor)
    return f"{calendar.month_name[first.month]} {first.year}"


def month_cells(cursor) -> list[date | None]:
    """Days of the cursor's month padded with None to whole Monday-first weeks."""
    first = month_first_day(cursor)
    last = month_last_day(cursor)
    cells: list[date | None] = [None] * first.weekday()
    cells.extend(first.replace(day=day) for day in range(1, last.day + 1))
    remainder = len(cells) % 7
    if remainder:
        cells.extend([None] * (7 - remainder))
    return cells


def month_weeks(cursor) -> list[list[date | None]]:
    cells = month_cells(cursor)
    return [cells[idx : idx + 7] for idx in range(0, len(cells), 7)]


def grid_bounds(cursor) -> tuple[date, date]:
    first = month_first_day(cursor)
    last = month_last_day(cursor)
    grid_start = first - timedelta(days=first.weekday())
    grid_end = last + timedelta(days=6 - last.weekday())
    return grid_start, grid_end


def fetch_window(cursor, tz=None) -> tuple[datetime, datetime]:
    # Spans the whole rendered grid, overflow days included.
    zone = tz or local_zone()
    grid_start, grid_end = grid_bounds(cursor)
    return (
        datetime.combine(grid_start, time.min, tzinfo=zone),
        datetime.combine(grid_end, END_OF_DAY, tzinfo=zone),
    )


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_timestamp(value: str) -> datetime:
    parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass(frozen=True)
class ProjectRef:
    id: str
    name: str | None = None


@dataclass(frozen=True)
class EventItem:
    id: str
    title: str
    start: datetime
    end: datetime
    all_day: bool = False
    project: ProjectRef | None = None
    color: str | None = None
    description: str = ""
    kind: str = field(default="event", init=False)


@dataclass(frozen=True)
class TaskItem:
    id: str
    title: str
    start: datetime
    end: datetime
    status: str = "todo"
    all_day: bool = True
    project: ProjectRef | None = None
    color: str | None = None
    kind: str = field(default="task", init=False)


def _project_ref(payload) -> ProjectRef | None:
    if not isinstance(payload, dict) or not payload.get("_id"):
        return None
    return ProjectRef(id=str(payload["_id"]), name=payload.get("name"))


def parse_item(payload: dict) -> EventItem | TaskItem:
    kind = payload.get("kind")
    common = {
        "id": str(payload["_id"]),
        "title": payload.get("title") or "",
        "start": parse_timestamp(payload["start"]),
        "end": parse_timestamp(payload["end"]),
        "all_day": bool(payload.get("allDay")),
        "project": _project_ref(payload.get("project")),
        "color": payload.get("color"),
    }
    if kind == "event":
        return EventItem(description=payload.get("description") or "", **common)
    if kind == "task":
        return TaskItem(status=payload.get("status") or "todo", **common)
    raise ValueError(f"Unknown calendar item kind: {kind!r}")


def parse_items(payloads) -> list[EventItem | TaskItem]:
    return [parse_item(payload) for payload in payloads or []]


def item_key(item: EventItem | TaskItem) -> str:
    return f"{item.kind}-{item.id}"


def dot_color(item: EventItem | TaskItem) -> str:
    if item.color:
        return item.color
    if isinstance(item, TaskItem):
        return STATUS_COLORS.get(item.status, STATUS_COLORS["todo"])
    return EVENT_DOT_COLOR


def item_api_path(item: EventItem | TaskItem) -> str | None:
    """CRUD path for an event; tasks are not edited from the calendar."""
    if isinstance(item, TaskItem):
        return None
    if item.project is not None:
        return f"/api/projects/{item.project.id}/events/{item.id}"
    return f"/api/events/{item.id}"


def day_key(day) -> str:
    return _as_date(day).isoformat()


def bucket_by_day(items, tz=None) -> dict[str, list[EventItem | TaskItem]]:
    """Group items by the local calendar day of their start, earliest first."""
    zone = tz or local_zone()
    buckets: dict[str, list[EventItem | TaskItem]] = {}
    for item in items:
        key = item.start.astimezone(zone).date().isoformat()
        buckets.setdefault(key, []).append(item)
    for values in buckets.values():
        values.sort(key=lambda item: item.start)
    return buckets


def parse_hhmm(value: str | None) -> tuple[int, int]:
    """Split "HH:MM" (or a bare hour) into integers; out-of-range or non-numeric input raises ValueError."""
    raw = str(value or "").strip()
    hour_part, _, minute_part = raw.partition(":")
    if not hour_part.isdigit() or (minute_part and not minute_part.isdigit()):
        raise ValueError(f"Invalid time: {raw!r}")
    hour = int(hour_part)
    minute = int(minute_part) if minute_part else 0
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time: {raw!r}")
    return hour, minute


def time_hhmm(value: datetime, tz=None) -> str:
    return value.astimezone(tz or local_zone()).strftime("%H:%M")


def build_day_span(day, all_day: bool, start_hhmm: str, end_hhmm: str, tz=None) -> tuple[datetime, datetime]:
    """Start/end for an event placed on `day`; a non-positive span becomes one hour."""
    zone = tz or local_zone()
    target = _as_date(day)
    if all_day:
        start = datetime.combine(target, time.min, tzinfo=zone)
        end = datetime.combine(target, END_OF_DAY, tzinfo=zone)
    else:
        start_h, start_m = parse_hhmm(start_hhmm)
        end_h, end_m = parse_hhmm(end_hhmm)
        start = datetime.combine(target, time(start_h, start_m), tzinfo=zone)
        end = datetime.combine(target, time(end_h, end_m), tzinfo=zone)
    if end <= start:
        end = start + ONE_HOUR
    return start, end


def build_event_body(day, title: str, description: str, all_day: bool, start_hhmm: str, end_hhmm: str, tz=None) -> dict:
    start, end = build_day_span(day, all_day, start_hhmm, end_hhmm, tz=tz)
    return {
        "title": (title or "").strip(),
        "description": (description or "").strip(),
        "start": to_iso(start),
        "end": to_iso(end),
        "allDay": bool(all_day),
    }


@dataclass(frozen=True)
class CalendarViewState:
    selected_day: str | None = None
    editing_item_key: str | None = None

    def select_day(self, day) -> "CalendarViewState":
        return replace(self, selected_day=day_key(day) if day else None, editing_item_key=None)

    def start_editing(self, key: str) -> "CalendarViewState":
        if not self.selected_day:
            return self
        return replace(self, editing_item_key=key)

    def stop_editing(self) -> "CalendarViewState":
        return replace(self, editing_item_key=None)

    def selected_date(self) -> date | None:
        return date.fromisoformat(self.selected_day) if self.selected_day else None

    def is_editing(self, item) -> bool:
        return self.editing_item_key is not None and self.editing_item_key == item_key(item)

    def to_dict(self) -> dict:
        return {"selected_day": self.selected_day, "editing_item_key": self.editing_item_key}

    @classmethod
    def from_dict(cls, payload) -> "CalendarViewState":
        payload = payload or {}
        return cls(
            selected_day=payload.get("selected_day"),
            editing_item_key=payload.get("editing_item_key"),
        )
