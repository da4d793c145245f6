from .backend import BackendError, ChangeEvent, Session, StudioBackend
from .config import StudioConfig
from .events import (
    classify_event_status,
    event_status,
    filter_events_by_status,
    is_registration_open,
    is_voting_open,
    summarize_event_statuses,
)
from .leaderboard import (
    CommunityEntry,
    JudgeEntry,
    LeaderboardResult,
    compute_community_leaderboard,
    compute_judge_leaderboard,
    partition_votes,
    search_entries,
)
from .preferences import load_preferences, save_preferences
from .realtime import LeaderboardFeed, LeaderboardSnapshot
from .registration import (
    RegistrationWizard,
    WizardError,
    WizardOutcome,
    apply_wizard_command,
    default_wizard_state,
)
from .results import format_prize, placement_for, suggest_podium
from .session import SessionProvider, fetch_judge_ids, resolve_role
from .storage import LocalStore, MemoryStore
from .types import EventRow, RegistrationRow, VoteRecord, VoteRow, WizardCommand, WizardState
from .validation import InputSanitizer, JudgeScore, PersonalInfo, StoryDetails
from .voting import (
    Eligibility,
    VoteLedger,
    VoteOutcome,
    Voter,
    cast_community_vote,
    cast_judge_vote,
)

__all__ = [
    "BackendError",
    "ChangeEvent",
    "Session",
    "StudioBackend",
    "StudioConfig",
    "classify_event_status",
    "event_status",
    "filter_events_by_status",
    "is_registration_open",
    "is_voting_open",
    "summarize_event_statuses",
    "CommunityEntry",
    "JudgeEntry",
    "LeaderboardResult",
    "compute_community_leaderboard",
    "compute_judge_leaderboard",
    "partition_votes",
    "search_entries",
    "load_preferences",
    "save_preferences",
    "LeaderboardFeed",
    "LeaderboardSnapshot",
    "RegistrationWizard",
    "WizardError",
    "WizardOutcome",
    "apply_wizard_command",
    "default_wizard_state",
    "format_prize",
    "placement_for",
    "suggest_podium",
    "SessionProvider",
    "fetch_judge_ids",
    "resolve_role",
    "LocalStore",
    "MemoryStore",
    "EventRow",
    "RegistrationRow",
    "VoteRecord",
    "VoteRow",
    "WizardCommand",
    "WizardState",
    "InputSanitizer",
    "JudgeScore",
    "PersonalInfo",
    "StoryDetails",
    "Eligibility",
    "VoteLedger",
    "VoteOutcome",
    "Voter",
    "cast_community_vote",
    "cast_judge_vote",
]
