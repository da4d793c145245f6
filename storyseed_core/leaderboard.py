"""Community and judge leaderboards (derived, never stored).

Single source of truth for ranking across the public page and dashboards:
- Votes are partitioned by voter role: judge user ids vs. everyone else.
- Community board: vote_count desc, then registration id asc.
- Judge board: average_score desc, then total_reviews desc, then registration id asc.
  Registrations with no judge reviews are absent, not zero-scored.
- Rank is the 1-based position in the sorted sequence; every call recomputes
  from the raw rows.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from typing import Collection, Iterable, Literal, Sequence

from .config import StudioConfig
from .types import RegistrationRow, VoteRow

logger = logging.getLogger(__name__)

CommunitySort = Literal["votes", "views", "trending"]


@dataclass(frozen=True)
class CommunityEntry:
    registration_id: str
    rank: int
    story_title: str
    contestant_name: str
    category: str
    event_id: str | None
    user_id: str | None
    vote_count: int
    overall_views: int


@dataclass(frozen=True)
class JudgeEntry:
    registration_id: str
    rank: int
    story_title: str
    contestant_name: str
    category: str
    event_id: str | None
    user_id: str | None
    average_score: float
    total_reviews: int


@dataclass(frozen=True)
class LeaderboardResult:
    rows: tuple
    podium: tuple
    rest: tuple

    @property
    def is_empty(self) -> bool:
        return not self.rows


@dataclass
class _JudgeTally:
    total: float = 0.0
    count: int = 0


def _contestant_name(reg: RegistrationRow) -> str:
    first = (reg.get("first_name") or "").strip()
    last = (reg.get("last_name") or "").strip()
    return f"{first} {last}".strip()


def _registrations_in_scope(
    registrations: Iterable[RegistrationRow], event_id: str | None
) -> list[RegistrationRow]:
    scoped: list[RegistrationRow] = []
    for reg in registrations:
        if not reg.get("id"):
            continue
        if event_id is not None and str(reg.get("event_id")) != str(event_id):
            continue
        scoped.append(reg)
    return scoped


def round_half_up(value: float, places: int = 1) -> float:
    """Round like the web client's Math.round(x * 10) / 10 (halves go up)."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def partition_votes(
    votes: Iterable[VoteRow], judge_user_ids: Collection[str]
) -> tuple[list[VoteRow], list[VoteRow]]:
    """Split vote rows into (community, judge) by the voter's role."""
    community: list[VoteRow] = []
    judge: list[VoteRow] = []
    for vote in votes:
        if vote.get("user_id") in judge_user_ids:
            judge.append(vote)
        else:
            community.append(vote)
    return community, judge


def _split_podium(rows: Sequence, podium_places: int) -> LeaderboardResult:
    podium_places = max(0, int(podium_places))
    rows = tuple(rows)
    return LeaderboardResult(rows=rows, podium=rows[:podium_places], rest=rows[podium_places:])


def _trending_score(vote_count: int, views: int) -> float:
    return (
        vote_count * StudioConfig.TRENDING_VOTE_WEIGHT
        + views * StudioConfig.TRENDING_VIEW_WEIGHT
    )


def compute_community_leaderboard(
    registrations: Iterable[RegistrationRow],
    votes: Iterable[VoteRow],
    judge_user_ids: Collection[str] = frozenset(),
    *,
    event_id: str | None = None,
    podium_places: int = StudioConfig.PODIUM_PLACES,
    sort_by: CommunitySort = "votes",
) -> LeaderboardResult:
    """
    Rank every registration in scope by community votes.

    Args:
      registrations: registration rows (all events; filtered by event_id).
      votes: raw vote rows; judge votes are excluded via judge_user_ids.
      judge_user_ids: ids of users holding the judge role.
      event_id: restrict to one event; None means all events.
      podium_places: how many leading rows form the podium.
      sort_by: "votes" (default), "views" or "trending".
    """
    if sort_by not in {"votes", "views", "trending"}:
        raise ValueError(f"sort_by must be votes, views or trending, got {sort_by}")
    scoped = _registrations_in_scope(registrations, event_id)
    known_ids = {str(reg["id"]) for reg in scoped}

    community, _ = partition_votes(votes, judge_user_ids)
    counts: dict[str, int] = {}
    dropped = 0
    for vote in community:
        reg_id = str(vote.get("registration_id"))
        if reg_id not in known_ids:
            dropped += 1
            continue
        counts[reg_id] = counts.get(reg_id, 0) + 1
    if dropped:
        logger.debug(f"Community leaderboard ignored {dropped} out-of-scope votes")

    def sort_key(reg: RegistrationRow) -> tuple:
        vote_count = counts.get(str(reg["id"]), 0)
        views = int(reg.get("overall_views") or 0)
        if sort_by == "views":
            primary: float = views
        elif sort_by == "trending":
            primary = _trending_score(vote_count, views)
        else:
            primary = vote_count
        return (-primary, str(reg["id"]))

    ordered = sorted(scoped, key=sort_key)
    rows = [
        CommunityEntry(
            registration_id=str(reg["id"]),
            rank=position,
            story_title=reg.get("story_title") or "",
            contestant_name=_contestant_name(reg),
            category=reg.get("category") or "",
            event_id=reg.get("event_id"),
            user_id=reg.get("user_id"),
            vote_count=counts.get(str(reg["id"]), 0),
            overall_views=int(reg.get("overall_views") or 0),
        )
        for position, reg in enumerate(ordered, start=1)
    ]
    return _split_podium(rows, podium_places)


def _coerce_score(value) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        score = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(score):
        return None
    if not StudioConfig.MIN_SCORE <= score <= StudioConfig.MAX_SCORE:
        return None
    return score


def compute_judge_leaderboard(
    registrations: Iterable[RegistrationRow],
    votes: Iterable[VoteRow],
    judge_user_ids: Collection[str],
    *,
    event_id: str | None = None,
    podium_places: int = StudioConfig.PODIUM_PLACES,
) -> LeaderboardResult:
    """Rank registrations by average judge score (1 decimal, halves up).

    Judge votes without a numeric score in 0-10 are skipped. Entries
    without any review are left out entirely.
    """
    scoped = _registrations_in_scope(registrations, event_id)
    by_id = {str(reg["id"]): reg for reg in scoped}

    _, judge_votes = partition_votes(votes, judge_user_ids)
    tallies: dict[str, _JudgeTally] = {}
    for vote in judge_votes:
        reg_id = str(vote.get("registration_id"))
        if reg_id not in by_id:
            continue
        score = _coerce_score(vote.get("score"))
        if score is None:
            continue
        tally = tallies.setdefault(reg_id, _JudgeTally())
        tally.total += score
        tally.count += 1

    scored = [
        (reg_id, round_half_up(tally.total / tally.count, 1), tally.count)
        for reg_id, tally in tallies.items()
        if tally.count > 0
    ]
    scored.sort(key=lambda item: (-item[1], -item[2], item[0]))

    rows = []
    for position, (reg_id, average, reviews) in enumerate(scored, start=1):
        reg = by_id[reg_id]
        rows.append(
            JudgeEntry(
                registration_id=reg_id,
                rank=position,
                story_title=reg.get("story_title") or "",
                contestant_name=_contestant_name(reg),
                category=reg.get("category") or "",
                event_id=reg.get("event_id"),
                user_id=reg.get("user_id"),
                average_score=average,
                total_reviews=reviews,
            )
        )
    return _split_podium(rows, podium_places)


def search_entries(rows: Iterable, query: str | None) -> list:
    """Case-insensitive match on title, contestant, category or user id."""
    rows = list(rows)
    needle = (query or "").strip().lower()
    if not needle:
        return rows
    matches = []
    for row in rows:
        haystacks = (row.story_title, row.contestant_name, row.category, row.user_id or "")
        if any(needle in value.lower() for value in haystacks):
            matches.append(row)
    return matches
