from __future__ import annotations

from datetime import date, datetime, time, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from backend.settings import get_settings

END_OF_DAY = time(23, 59, 59, 999000)


def calendar_zone() -> ZoneInfo | timezone:
    name = get_settings().calendar_timezone
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError):
        return timezone.utc


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_instant(value) -> datetime | None:
    """Parse an ISO-8601 timestamp or date into an aware datetime.

    Naive values are read in the calendar timezone. Anything that is not a
    parseable string yields None.
    """
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        return None
    else:
        raw = value.strip()
        if not raw:
            return None
        try:
            parsed = datetime.fromisoformat(raw.replace("Z", "+00:00"))
        except ValueError:
            return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=calendar_zone())
    try:
        parsed.astimezone(timezone.utc)
    except OverflowError:
        # Parses, but has no UTC equivalent (e.g. year 1 with a positive offset).
        return None
    return parsed


def to_iso(value: datetime) -> str:
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def from_iso(value: str) -> datetime:
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


def local_day_span(instant: datetime) -> tuple[datetime, datetime]:
    """Midnight to 23:59:59.999 of the calendar date `instant` falls on."""
    zone = calendar_zone()
    day: date = instant.astimezone(zone).date()
    start = datetime.combine(day, time.min, tzinfo=zone)
    end = datetime.combine(day, END_OF_DAY, tzinfo=zone)
    return start, end
