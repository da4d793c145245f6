"""Announced outcomes: a contestant's placement and prize display."""
from __future__ import annotations

from typing import Literal

from .leaderboard import LeaderboardResult
from .types import EventRow

Placement = Literal["winner", "runner_up", "second_runner_up", "participant"]

CURRENCY_SYMBOLS = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "INR": "₹",
    "JPY": "¥",
    "AUD": "A$",
    "CAD": "C$",
}


def placement_for(event: EventRow, registration_id: str | None) -> Placement | None:
    """Where a registration finished; None if the user did not enter."""
    if not registration_id:
        return None
    if event.get("winner_id") == registration_id:
        return "winner"
    if event.get("runner_up_id") == registration_id:
        return "runner_up"
    if event.get("second_runner_up_id") == registration_id:
        return "second_runner_up"
    return "participant"


def format_prize(amount: float | None, currency: str | None) -> str | None:
    if amount is None:
        return None
    code = (currency or "INR").upper()
    symbol = CURRENCY_SYMBOLS.get(code, f"{code} ")
    if float(amount).is_integer():
        return f"{symbol}{int(amount):,}"
    return f"{symbol}{amount:,.2f}"


def suggest_podium(result: LeaderboardResult) -> list[str]:
    """Registration ids for winner, runner-up, second runner-up (in order)."""
    return [row.registration_id for row in result.podium]
