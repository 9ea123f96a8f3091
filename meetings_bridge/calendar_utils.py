"""Utility functions for shaping calendar events into meetings."""

from datetime import UTC, datetime, timedelta
from typing import Any

NO_TITLE = "No Title"

MOCK_USER = {
    "name": "Mock User (No Creds)",
    "email": "mock@local.dev",
    "avatar": "https://ui-avatars.com/api/?name=Mock+User&background=random",
}

MOCK_MEETING_DESCRIPTION = "Add valid credentials to .env to see real data."


def get_event_time(event_datetime: dict[str, Any] | None) -> str:
    """Extract time string from event datetime object.

    Handles both all-day events (date) and timed events (dateTime).
    """
    if not event_datetime:
        return ""
    return event_datetime.get("dateTime") or event_datetime.get("date") or ""


def parse_event_time(event_datetime: dict[str, Any] | None) -> datetime | None:
    """Parse an event start/end object into a timezone-aware datetime.

    All-day dates are read as midnight UTC. Timed values without an offset
    are assumed to be UTC. Returns None when nothing parseable is present.
    """
    time_str = get_event_time(event_datetime)
    if not time_str:
        return None

    try:
        if "T" in time_str:
            dt = datetime.fromisoformat(time_str.replace("Z", "+00:00"))
        else:
            dt = datetime.strptime(time_str, "%Y-%m-%d")
    except ValueError:
        return None

    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt


def to_iso(dt: datetime) -> str:
    """Format a datetime as ISO-8601 UTC with milliseconds and a Z suffix."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def get_time_min_rfc3339(days_back: int = 7, now: datetime | None = None) -> str:
    """Get the lower bound of the event window, N days before now."""
    now = now or datetime.now(UTC)
    return to_iso(now - timedelta(days=days_back))


def transform_event(event: dict[str, Any]) -> dict[str, Any]:
    """Reshape a Google Calendar event into a meeting record."""
    return {
        "id": event.get("id", ""),
        "title": event.get("summary") or NO_TITLE,
        "startTime": get_event_time(event.get("start")),
        "endTime": get_event_time(event.get("end")),
        "attendees": event.get("attendees") or [],
        "description": event.get("description"),
        "link": event.get("htmlLink"),
    }


def split_events(
    events: list[dict[str, Any]], now: datetime | None = None
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Partition events into (upcoming, past) meeting records.

    An event is upcoming when it starts strictly after ``now`` and past when it
    starts at or before ``now``. Events without a parseable start are dropped.
    Input order is preserved within each list. Every event is compared against
    the same ``now``, the instant the request's event window was computed from.
    """
    now = now or datetime.now(UTC)
    upcoming: list[dict[str, Any]] = []
    past: list[dict[str, Any]] = []

    for event in events:
        start = parse_event_time(event.get("start"))
        if start is None:
            continue
        if start > now:
            upcoming.append(transform_event(event))
        else:
            past.append(transform_event(event))

    return upcoming, past


def mock_meeting(now: datetime | None = None) -> dict[str, Any]:
    """Build the placeholder meeting shown when no calendar is connected."""
    now = now or datetime.now(UTC)
    return {
        "id": "mock1",
        "title": "Mock Meeting (Server)",
        "startTime": to_iso(now),
        "endTime": to_iso(now + timedelta(hours=1)),
        "attendees": [],
        "description": MOCK_MEETING_DESCRIPTION,
    }
