"""Type definitions for backend rows and locally persisted records."""
from __future__ import annotations

from datetime import datetime
from typing import List, Literal, Optional, TypedDict, Union

Timestamp = Union[str, datetime, None]

EventStatus = Literal["upcoming", "live", "ended"]
Role = Literal["user", "judge", "admin"]


class EventRow(TypedDict, total=False):
    """An `events` row as returned by the backend."""
    id: str
    name: str
    description: Optional[str]
    start_date: Timestamp
    end_date: Timestamp
    is_active: bool
    registration_open: bool
    results_announced: bool

    # Outcomes picked by an admin once results are announced
    winner_id: Optional[str]
    runner_up_id: Optional[str]
    second_runner_up_id: Optional[str]
    prize_amount: Optional[float]
    prize_currency: Optional[str]


class RegistrationRow(TypedDict, total=False):
    """A contest entry (`registrations` row)."""
    id: str
    event_id: Optional[str]
    user_id: Optional[str]
    story_title: str
    category: str
    class_level: str
    first_name: str
    last_name: str
    age: int
    phone: str
    overall_votes: int
    overall_views: int


class VoteRow(TypedDict, total=False):
    """A `votes` row. `score` is only meaningful for judge votes (0-10)."""
    registration_id: str
    user_id: Optional[str]
    score: Optional[float]


class VoteRecord(TypedDict):
    """
    Local eligibility record, persisted as JSON under `vote_records_{eventId}`.

    Keys keep the casing the web client writes so ledgers stay readable
    by both sides.
    """
    contestantId: str
    timestamp: int  # epoch ms
    voterName: str
    voterPhone: str


class Preferences(TypedDict):
    language: Literal["en", "ta"]
    theme: Literal["system", "light", "dark"]


class WizardState(TypedDict, total=False):
    """
    TypedDict representing the registration wizard state.

    All fields are optional (total=False); default_wizard_state() fills
    every key.
    """
    step: str  # 'phone_verify' | 'personal_info' | 'story_details' | 'review' | 'submitted'
    phoneStage: str  # 'phone_entry' | 'otp_entry' | 'verified'
    phone: str  # digits only
    userId: Optional[str]

    # PersonalInfo
    firstName: str
    lastName: str
    age: Optional[int]
    email: str
    city: str
    eventId: Optional[str]

    # StoryDetails
    storyTitle: str
    category: str
    classLevel: str
    description: str
    mediaName: Optional[str]
    mediaContentType: Optional[str]

    # Submitted
    registrationId: Optional[str]
    idempotencyKey: Optional[str]
    completedSteps: List[str]


class WizardCommand(TypedDict, total=False):
    """TypedDict for commands sent to apply_wizard_command()."""
    type: str

    # REQUEST_OTP
    phone: str
    # OTP_VERIFIED
    code: str
    userId: str
    # SUBMIT_PERSONAL_INFO
    firstName: str
    lastName: str
    age: Optional[int]
    email: str
    city: str
    eventId: Optional[str]
    # SUBMIT_STORY_DETAILS
    storyTitle: str
    category: str
    classLevel: str
    description: str
    mediaName: Optional[str]
    mediaContentType: Optional[str]
    # MARK_SUBMITTED
    registrationId: str
    idempotencyKey: str
