"""Event lifecycle status derived from declared start/end timestamps.

Status is never stored on the event row. Callers re-derive it on every
render/poll because `now` keeps moving.

Rule (order matters):
1. start present and now < start -> "upcoming"
2. end present and now > end     -> "ended"
3. otherwise                     -> "live"

An event with a future start and a past end (malformed data) is therefore
"upcoming": the start check wins.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Dict, Iterable, List

from .types import EventRow, EventStatus, Timestamp

EVENT_STATUSES: tuple[EventStatus, ...] = ("live", "upcoming", "ended")


def parse_timestamp(value: Timestamp) -> datetime | None:
    """Coerce an ISO-8601 string or datetime to an aware UTC datetime.

    Unparseable values return None so they behave like a missing bound.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            return None
        if stripped.endswith("Z"):
            stripped = stripped[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(stripped)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def classify_event_status(
    now: datetime, start: Timestamp = None, end: Timestamp = None
) -> EventStatus:
    """Derive {upcoming, live, ended} from bounds and the current time."""
    current = parse_timestamp(now)
    if current is None:
        raise ValueError("now must be a datetime or ISO-8601 string")
    start_at = parse_timestamp(start)
    end_at = parse_timestamp(end)
    if start_at is not None and current < start_at:
        return "upcoming"
    if end_at is not None and current > end_at:
        return "ended"
    return "live"


def event_status(event: EventRow, now: datetime) -> EventStatus:
    return classify_event_status(now, event.get("start_date"), event.get("end_date"))


def is_registration_open(event: EventRow, now: datetime) -> bool:
    if not event.get("is_active") or not event.get("registration_open"):
        return False
    return event_status(event, now) != "ended"


def is_voting_open(event: EventRow, now: datetime) -> bool:
    if not event.get("is_active"):
        return False
    return event_status(event, now) == "live"


def filter_events_by_status(
    events: Iterable[EventRow], now: datetime, status: EventStatus
) -> List[EventRow]:
    return [event for event in events if event_status(event, now) == status]


def summarize_event_statuses(events: Iterable[EventRow], now: datetime) -> Dict[str, int]:
    """Count active events per status (dashboard tiles)."""
    counts: Dict[str, int] = {status: 0 for status in EVENT_STATUSES}
    for event in events:
        if not event.get("is_active"):
            continue
        counts[event_status(event, now)] += 1
    return counts
