"""Studio-wide constants shared by the core modules."""
from __future__ import annotations

from datetime import timedelta
from typing import Optional


class StudioConfig:
    """Tunables for voting, ranking and registration."""

    # Community vote cooldown per (device, contestant)
    VOTE_COOLDOWN = timedelta(hours=24)

    # Entries displayed on the podium; the rest go to the table
    PODIUM_PLACES = 3

    # Judge score bounds
    MIN_SCORE = 0.0
    MAX_SCORE = 10.0

    # Registration wizard
    PHONE_DIGITS = 10
    OTP_DIGITS = 6
    MIN_AGE = 5
    MAX_AGE = 18
    STORY_CATEGORIES = (
        "Fantasy",
        "Adventure",
        "Family",
        "Sci-Fi",
        "Humor",
        "Mystery",
    )
    MEDIA_BUCKET = "story-media"
    # Automation webhook receiving each submission; None disables forwarding
    WEBHOOK_URL: Optional[str] = None

    # Trending blend on the public leaderboard
    TRENDING_VOTE_WEIGHT = 0.7
    TRENDING_VIEW_WEIGHT = 0.3

    # Local storage keys (client-only state)
    VOTE_LEDGER_KEY = "vote_records_{event_id}"
    USER_PHONE_KEY = "story_seed_user_phone"
    USER_ID_KEY = "story_seed_user_id"
    SESSION_ID_KEY = "story_seed_session_id"
    PREFERENCES_KEY = "storyseed_preferences"

    @classmethod
    def vote_ledger_key(cls, event_id: str) -> str:
        return cls.VOTE_LEDGER_KEY.format(event_id=event_id)
