"""Vote eligibility gate and vote casting.

The gate is an advisory, device-scoped throttle: one VoteRecord per
contestant lives in the local store under `vote_records_{eventId}`, and a
record stops blocking exactly VOTE_COOLDOWN after its timestamp. Clearing
storage or switching devices bypasses it; real abuse resistance needs a
server-side check keyed by authenticated identity.

Concurrent tabs writing the same ledger key race; last write wins.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

from pydantic import ValidationError as PydanticValidationError

from .backend import BackendError, StudioBackend
from .config import StudioConfig
from .events import is_voting_open, parse_timestamp
from .storage import LocalStore, read_json, write_json
from .types import EventRow, VoteRecord
from .validation import InputSanitizer, JudgeScore, first_error

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Eligibility:
    allowed: bool
    retry_after: timedelta | None = None

    @property
    def hours_remaining(self) -> int | None:
        """Whole hours left, rounded up for display ("~23 hours remaining")."""
        if self.retry_after is None:
            return None
        return math.ceil(self.retry_after.total_seconds() / 3600)

    @property
    def message(self) -> str | None:
        hours = self.hours_remaining
        if hours is None:
            return None
        unit = "hour" if hours == 1 else "hours"
        return f"You already voted for this story (~{hours} {unit} remaining)."


@dataclass(frozen=True)
class Voter:
    name: str
    phone: str
    user_id: str | None = None


@dataclass(frozen=True)
class VoteOutcome:
    accepted: bool
    reason: str | None = None
    eligibility: Eligibility | None = None
    vote: Dict[str, Any] | None = None


def _to_epoch_ms(moment: datetime) -> int:
    aware = parse_timestamp(moment)
    if aware is None:
        raise ValueError("moment must be a datetime")
    return int(aware.timestamp() * 1000)


def _from_epoch_ms(value: int) -> datetime:
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc)


def _coerce_record(raw: Any) -> VoteRecord | None:
    if not isinstance(raw, dict):
        return None
    contestant = raw.get("contestantId")
    timestamp = raw.get("timestamp")
    if contestant in (None, ""):
        return None
    if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
        return None
    if not math.isfinite(timestamp):
        return None
    return {
        "contestantId": str(contestant),
        "timestamp": int(timestamp),
        "voterName": str(raw.get("voterName") or ""),
        "voterPhone": str(raw.get("voterPhone") or ""),
    }


class VoteLedger:
    """Per-event local ledger of the latest vote per contestant."""

    def __init__(self, store: LocalStore, event_id: str):
        self.store = store
        self.event_id = event_id
        self.key = StudioConfig.vote_ledger_key(event_id)

    def records(self) -> List[VoteRecord]:
        raw = read_json(self.store, self.key, default=[])
        if not isinstance(raw, list):
            return []
        records = []
        for item in raw:
            record = _coerce_record(item)
            if record is not None:
                records.append(record)
        return records

    def latest(self, contestant_id: str) -> VoteRecord | None:
        latest: VoteRecord | None = None
        for record in self.records():
            if record["contestantId"] != str(contestant_id):
                continue
            if latest is None or record["timestamp"] > latest["timestamp"]:
                latest = record
        return latest

    def can_vote(self, contestant_id: str, now: datetime) -> Eligibility:
        record = self.latest(contestant_id)
        if record is None:
            return Eligibility(allowed=True)
        elapsed = timedelta(milliseconds=_to_epoch_ms(now) - record["timestamp"])
        cooldown = StudioConfig.VOTE_COOLDOWN
        if elapsed >= cooldown:
            return Eligibility(allowed=True)
        return Eligibility(allowed=False, retry_after=cooldown - elapsed)

    def record_vote(
        self,
        contestant_id: str,
        now: datetime,
        voter_name: str = "",
        voter_phone: str = "",
    ) -> VoteRecord:
        """Overwrite the contestant's record with a fresh timestamp."""
        record: VoteRecord = {
            "contestantId": str(contestant_id),
            "timestamp": _to_epoch_ms(now),
            "voterName": InputSanitizer.sanitize_name(voter_name or ""),
            "voterPhone": InputSanitizer.phone_digits(voter_phone),
        }
        kept = [r for r in self.records() if r["contestantId"] != record["contestantId"]]
        kept.append(record)
        write_json(self.store, self.key, kept)
        return record

    def voted_at(self, contestant_id: str) -> datetime | None:
        record = self.latest(contestant_id)
        return _from_epoch_ms(record["timestamp"]) if record else None


def cast_community_vote(
    backend: StudioBackend,
    ledger: VoteLedger,
    event: EventRow,
    registration_id: str,
    voter: Voter,
    now: datetime,
    *,
    require_live: bool = False,
) -> VoteOutcome:
    """Insert a public vote if the local 24h gate allows it.

    The gate alone decides; pass require_live=True to also refuse votes
    outside the event's start/end window. The ledger is only written after
    the backend accepted the row, so a failed insert leaves the voter free
    to try again.
    """
    if require_live and not is_voting_open(event, now):
        return VoteOutcome(accepted=False, reason="voting_closed")
    eligibility = ledger.can_vote(registration_id, now)
    if not eligibility.allowed:
        return VoteOutcome(accepted=False, reason="cooldown", eligibility=eligibility)

    row = {"registration_id": registration_id, "user_id": voter.user_id, "score": None}
    try:
        stored = backend.tables.insert("votes", row)
    except BackendError as e:
        logger.warning(f"Vote insert failed for {registration_id}: {e}")
        return VoteOutcome(accepted=False, reason="external_failure", eligibility=eligibility)

    ledger.record_vote(registration_id, now, voter.name, voter.phone)
    return VoteOutcome(accepted=True, eligibility=eligibility, vote=stored or row)


def cast_judge_vote(
    backend: StudioBackend,
    registration_id: str,
    judge_id: str,
    score: float,
    feedback: str | None = None,
) -> VoteOutcome:
    """Store a judge evaluation (0-10). Judges are not throttled locally."""
    try:
        validated = JudgeScore(
            registrationId=registration_id,
            judgeId=judge_id,
            score=score,
            feedback=feedback,
        )
    except PydanticValidationError as e:
        _, message = first_error(e)
        return VoteOutcome(accepted=False, reason=f"invalid_score: {message}")

    row = {
        "registration_id": validated.registrationId,
        "user_id": validated.judgeId,
        "score": validated.score,
    }
    if validated.feedback:
        row["feedback"] = validated.feedback
    try:
        stored = backend.tables.insert("votes", row)
    except BackendError as e:
        logger.warning(f"Judge vote insert failed for {registration_id}: {e}")
        return VoteOutcome(accepted=False, reason="external_failure")
    return VoteOutcome(accepted=True, vote=stored or row)
