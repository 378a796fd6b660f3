from __future__ import annotations

from datetime import datetime, timedelta

from backend.timeutils import from_iso, parse_instant

MIN_DURATION = timedelta(hours=1)


def clean_title(value) -> str:
    return value.strip() if isinstance(value, str) else ""


def resolve_new_event_times(raw_start, raw_end) -> tuple[datetime, datetime]:
    start = parse_instant(raw_start)
    if start is None:
        raise ValueError("Invalid start")
    if raw_end is None or raw_end == "":
        try:
            return start, start + MIN_DURATION
        except OverflowError as exc:
            raise ValueError("Invalid start") from exc
    end = parse_instant(raw_end)
    if end is None:
        raise ValueError("Invalid end")
    if end <= start:
        raise ValueError("End must be after start")
    return start, end


def resolve_patched_times(current: dict, patch: dict) -> dict:
    """Return the start_at/end_at updates implied by a partial event patch.

    Moving only the start keeps the stored duration, at least one hour.
    Moving only the end must keep it after the stored start.
    """
    has_start = "start" in patch
    has_end = "end" in patch
    next_start = parse_instant(patch.get("start")) if has_start else None
    next_end = parse_instant(patch.get("end")) if has_end else None
    if has_start and next_start is None:
        raise ValueError("Invalid start")
    if has_end and next_end is None:
        raise ValueError("Invalid end")

    current_start = from_iso(current["start_at"])
    current_end = from_iso(current["end_at"])

    if next_start and next_end:
        if next_end <= next_start:
            raise ValueError("End must be after start")
        return {"start_at": next_start, "end_at": next_end}
    if next_start:
        duration = max(current_end - current_start, MIN_DURATION)
        return {"start_at": next_start, "end_at": next_start + duration}
    if next_end:
        if next_end <= current_start:
            raise ValueError("End must be after start")
        return {"end_at": next_end}
    return {}


def build_event_patch(current: dict, patch: dict, allow_color: bool) -> dict:
    updates: dict = {}
    if isinstance(patch.get("title"), str):
        updates["title"] = clean_title(patch["title"])
        if not updates["title"]:
            raise ValueError("Title is required")
    if isinstance(patch.get("description"), str):
        updates["description"] = patch["description"].strip()
    if isinstance(patch.get("all_day"), bool):
        updates["all_day"] = patch["all_day"]
    if allow_color and isinstance(patch.get("color"), str):
        updates["color"] = patch["color"]
    updates.update(resolve_patched_times(current, patch))
    return updates
