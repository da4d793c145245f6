"""Language/theme preferences persisted as one JSON blob."""
from __future__ import annotations

from .config import StudioConfig
from .storage import LocalStore, read_json, write_json
from .types import Preferences

LANGUAGES = ("en", "ta")
THEMES = ("system", "light", "dark")


def default_preferences() -> Preferences:
    # Light by default even when the OS prefers dark.
    return {"language": "en", "theme": "light"}


def load_preferences(store: LocalStore) -> Preferences:
    prefs = default_preferences()
    stored = read_json(store, StudioConfig.PREFERENCES_KEY, default=None)
    if not isinstance(stored, dict):
        return prefs
    if stored.get("language") in LANGUAGES:
        prefs["language"] = stored["language"]
    if stored.get("theme") in THEMES:
        prefs["theme"] = stored["theme"]
    return prefs


def save_preferences(store: LocalStore, prefs: Preferences) -> Preferences:
    if prefs.get("language") not in LANGUAGES:
        raise ValueError(f"language must be one of {LANGUAGES}")
    if prefs.get("theme") not in THEMES:
        raise ValueError(f"theme must be one of {THEMES}")
    cleaned: Preferences = {"language": prefs["language"], "theme": prefs["theme"]}
    write_json(store, StudioConfig.PREFERENCES_KEY, cleaned)
    return cleaned
