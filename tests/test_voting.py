from datetime import timedelta

from storyseed_core import (
    MemoryStore,
    VoteLedger,
    Voter,
    cast_community_vote,
    cast_judge_vote,
    compute_community_leaderboard,
)
from storyseed_core.storage import read_json

HOUR = timedelta(hours=1)


def test_never_voted_contestant_is_allowed(store, now):
    ledger = VoteLedger(store, "e1")
    assert ledger.can_vote("reg-1", now).allowed is True
    assert ledger.can_vote("reg-1", now).retry_after is None


def test_cooldown_blocks_for_24_hours(store, now):
    ledger = VoteLedger(store, "e1")
    ledger.record_vote("reg-1", now, "Ravi", "98765 43210")
    blocked = ledger.can_vote("reg-1", now + 23 * HOUR)
    assert blocked.allowed is False
    assert blocked.hours_remaining == 1
    assert ledger.can_vote("reg-1", now + 24 * HOUR).allowed is True
    assert ledger.can_vote("reg-1", now + 24 * HOUR + timedelta(seconds=1)).allowed is True


def test_hours_remaining_rounds_up(store, now):
    ledger = VoteLedger(store, "e1")
    ledger.record_vote("reg-1", now)
    eligibility = ledger.can_vote("reg-1", now + timedelta(minutes=30))
    assert eligibility.retry_after == timedelta(hours=23, minutes=30)
    assert eligibility.hours_remaining == 24
    assert "~24 hours remaining" in eligibility.message


def test_record_vote_overwrites_existing_record(store, now):
    ledger = VoteLedger(store, "e1")
    ledger.record_vote("reg-1", now)
    ledger.record_vote("reg-2", now)
    ledger.record_vote("reg-1", now + 30 * HOUR)
    records = ledger.records()
    assert sorted(r["contestantId"] for r in records) == ["reg-1", "reg-2"]
    assert ledger.voted_at("reg-1") == now + 30 * HOUR


def test_ledger_is_scoped_per_event(store, now):
    VoteLedger(store, "e1").record_vote("reg-1", now)
    assert VoteLedger(store, "e2").can_vote("reg-1", now).allowed is True
    assert "vote_records_e1" in store


def test_malformed_ledger_is_ignored(now):
    store = MemoryStore({"vote_records_e1": "{not json"})
    ledger = VoteLedger(store, "e1")
    assert ledger.records() == []
    assert ledger.can_vote("reg-1", now).allowed is True

    store.set_item("vote_records_e1", '[{"contestantId": "reg-1"}, 7, {"contestantId": "reg-2", "timestamp": "x"}]')
    assert ledger.records() == []


def test_stored_records_use_web_client_keys(store, now):
    VoteLedger(store, "e1").record_vote("reg-1", now, "Ravi", "+91 98765-43210")
    raw = read_json(store, "vote_records_e1")
    assert raw == [
        {
            "contestantId": "reg-1",
            "timestamp": int(now.timestamp() * 1000),
            "voterName": "Ravi",
            "voterPhone": "919876543210",
        }
    ]


def _live_event(now):
    return {
        "id": "e1",
        "name": "Summer Championship",
        "start_date": now - timedelta(days=1),
        "end_date": now + timedelta(days=1),
        "is_active": True,
    }


def test_vote_cycle_end_to_end(backend, tables, store, now):
    tables.rows["registrations"] = [{"id": "x", "event_id": "e1", "story_title": "X"}]
    event = _live_event(now)
    ledger = VoteLedger(store, "e1")
    voter = Voter(name="Meera", phone="9876543210")

    first = cast_community_vote(backend, ledger, event, "x", voter, now)
    assert first.accepted is True

    retry = cast_community_vote(backend, ledger, event, "x", voter, now + HOUR)
    assert retry.accepted is False
    assert retry.reason == "cooldown"
    assert retry.eligibility.hours_remaining == 23
    assert "~23 hours remaining" in retry.eligibility.message

    board = compute_community_leaderboard(tables.rows["registrations"], tables.rows["votes"])
    assert board.rows[0].vote_count == 1

    later = now + 25 * HOUR
    again = cast_community_vote(backend, ledger, event, "x", voter, later)
    assert again.accepted is True
    board = compute_community_leaderboard(tables.rows["registrations"], tables.rows["votes"])
    assert board.rows[0].vote_count == 2
    assert ledger.voted_at("x") == later
    assert len(ledger.records()) == 1


def test_vote_refused_when_event_not_live(backend, store, now):
    event = _live_event(now)
    event["start_date"] = now + timedelta(days=2)
    event["end_date"] = now + timedelta(days=3)
    ledger = VoteLedger(store, "e1")
    out = cast_community_vote(backend, ledger, event, "x", Voter("A", "1"), now, require_live=True)
    assert out.accepted is False
    assert out.reason == "voting_closed"


def test_gate_alone_decides_after_event_window(backend, tables, store, now):
    tables.rows["registrations"] = [{"id": "x", "event_id": "e1", "story_title": "X"}]
    event = _live_event(now)
    ledger = VoteLedger(store, "e1")
    voter = Voter(name="Meera", phone="9876543210")
    assert cast_community_vote(backend, ledger, event, "x", voter, now).accepted is True

    after_end = now + timedelta(days=2)
    assert cast_community_vote(backend, ledger, event, "x", voter, after_end).accepted is True
    closed = cast_community_vote(
        backend, ledger, event, "x", voter, after_end + 25 * HOUR, require_live=True
    )
    assert closed.reason == "voting_closed"
    assert len(tables.rows["votes"]) == 2


def test_failed_insert_leaves_ledger_untouched(backend, tables, store, now):
    tables.fail.add(("insert", "votes"))
    ledger = VoteLedger(store, "e1")
    out = cast_community_vote(backend, ledger, _live_event(now), "x", Voter("A", "1"), now)
    assert out.accepted is False
    assert out.reason == "external_failure"
    assert ledger.records() == []


def test_judge_vote_validates_score(backend, tables):
    ok = cast_judge_vote(backend, "x", "judge-1", 8.5, feedback="Lovely pacing")
    assert ok.accepted is True
    assert tables.rows["votes"][0]["score"] == 8.5
    assert tables.rows["votes"][0]["feedback"] == "Lovely pacing"

    too_high = cast_judge_vote(backend, "x", "judge-1", 11)
    assert too_high.accepted is False
    assert too_high.reason.startswith("invalid_score")
    assert len(tables.rows["votes"]) == 1
