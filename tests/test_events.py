from datetime import datetime, timedelta, timezone

from storyseed_core import (
    classify_event_status,
    event_status,
    filter_events_by_status,
    is_registration_open,
    is_voting_open,
    summarize_event_statuses,
)

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=timezone.utc)
DAY = timedelta(days=1)


def test_classify_live_between_bounds():
    assert classify_event_status(NOW, NOW - DAY, NOW + DAY) == "live"


def test_classify_upcoming_and_ended():
    assert classify_event_status(NOW, NOW + DAY, NOW + 2 * DAY) == "upcoming"
    assert classify_event_status(NOW, NOW - 2 * DAY, NOW - DAY) == "ended"


def test_no_bounds_is_live():
    assert classify_event_status(NOW) == "live"
    assert classify_event_status(NOW, None, NOW + DAY) == "live"
    assert classify_event_status(NOW, NOW - DAY, None) == "live"


def test_future_start_wins_over_past_end():
    # Malformed row: start in the future, end in the past.
    assert classify_event_status(NOW, NOW + DAY, NOW - DAY) == "upcoming"


def test_boundaries_are_live():
    assert classify_event_status(NOW, NOW, NOW) == "live"


def test_accepts_iso_strings_and_naive_datetimes():
    assert classify_event_status(NOW, "2026-03-09T00:00:00Z", "2026-03-11") == "live"
    naive_start = datetime(2026, 3, 11, 0, 0)
    assert classify_event_status(NOW, naive_start) == "upcoming"


def test_unparseable_bounds_are_ignored():
    assert classify_event_status(NOW, "not a date", "") == "live"


def test_every_combination_returns_a_single_status():
    offsets = [None, -2 * DAY, -DAY, timedelta(0), DAY, 2 * DAY]
    for start_off in offsets:
        for end_off in offsets:
            start = None if start_off is None else NOW + start_off
            end = None if end_off is None else NOW + end_off
            status = classify_event_status(NOW, start, end)
            assert status in {"upcoming", "live", "ended"}
            if start is not None and start > NOW:
                assert status == "upcoming"


def _events():
    return [
        {"id": "e1", "name": "Summer", "start_date": NOW - DAY, "end_date": NOW + DAY,
         "is_active": True, "registration_open": True},
        {"id": "e2", "name": "Monsoon", "start_date": NOW + DAY, "end_date": NOW + 5 * DAY,
         "is_active": True, "registration_open": True},
        {"id": "e3", "name": "Diwali", "start_date": NOW - 5 * DAY, "end_date": NOW - DAY,
         "is_active": True, "registration_open": True},
        {"id": "e4", "name": "Draft", "is_active": False, "registration_open": False},
    ]


def test_event_helpers():
    events = _events()
    assert event_status(events[0], NOW) == "live"
    assert is_voting_open(events[0], NOW) is True
    assert is_voting_open(events[1], NOW) is False
    assert is_voting_open(events[3], NOW) is False
    assert is_registration_open(events[1], NOW) is True
    assert is_registration_open(events[2], NOW) is False
    assert [e["id"] for e in filter_events_by_status(events, NOW, "live")] == ["e1", "e4"]


def test_summary_skips_inactive_events():
    assert summarize_event_statuses(_events(), NOW) == {"live": 1, "upcoming": 1, "ended": 1}
