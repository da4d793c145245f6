"""Live leaderboards driven by backend change notifications.

Any change on `votes` or `registrations` triggers a full re-fetch and
recompute of both boards; there is no incremental patching. Bursts of
notifications simply recompute again (idempotent, last write wins).
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, List

from .backend import BackendError, ChangeEvent, StudioBackend
from .config import StudioConfig
from .leaderboard import (
    LeaderboardResult,
    compute_community_leaderboard,
    compute_judge_leaderboard,
)
from .session import fetch_judge_ids

logger = logging.getLogger(__name__)

WATCHED_TABLES = ("votes", "registrations")


@dataclass(frozen=True)
class LeaderboardSnapshot:
    event_id: str | None
    community: LeaderboardResult
    judge: LeaderboardResult


class LeaderboardFeed:
    """Keeps both leaderboards fresh for one event filter (None = all events)."""

    def __init__(
        self,
        backend: StudioBackend,
        on_update: Callable[[LeaderboardSnapshot], None],
        *,
        event_id: str | None = None,
        on_error: Callable[[BackendError], None] | None = None,
        podium_places: int = StudioConfig.PODIUM_PLACES,
    ):
        if backend.realtime is None:
            raise ValueError("LeaderboardFeed requires a realtime client")
        self.backend = backend
        self.on_update = on_update
        self.on_error = on_error
        self.event_id = event_id
        self.podium_places = podium_places
        self.snapshot: LeaderboardSnapshot | None = None
        self._handles: List[Any] = []
        self._alive = False

    @property
    def alive(self) -> bool:
        return self._alive

    def start(self) -> LeaderboardSnapshot | None:
        if self._alive:
            return self.snapshot
        self._alive = True
        for table in WATCHED_TABLES:
            self._handles.append(self.backend.realtime.subscribe(table, self._on_change))
        return self.refresh()

    def close(self) -> None:
        self._alive = False
        handles, self._handles = self._handles, []
        for handle in handles:
            self.backend.realtime.unsubscribe(handle)

    def _on_change(self, event: ChangeEvent) -> None:
        if not self._alive:
            return
        logger.debug(f"{event.kind} on {event.table}; recomputing leaderboards")
        self.refresh()

    def refresh(self) -> LeaderboardSnapshot | None:
        """Fetch everything again and recompute; keeps the last snapshot on failure."""
        tables = self.backend.tables
        filters = {"event_id": self.event_id} if self.event_id is not None else None
        try:
            registrations = tables.select("registrations", filters)
            votes = tables.select("votes", columns="registration_id, user_id, score")
            judge_ids = fetch_judge_ids(tables)
        except BackendError as e:
            logger.warning(f"Leaderboard refresh failed: {e}")
            if self._alive and self.on_error is not None:
                self.on_error(e)
            return self.snapshot

        if not self._alive:
            # The view went away while the fetch was in flight.
            return self.snapshot

        snapshot = LeaderboardSnapshot(
            event_id=self.event_id,
            community=compute_community_leaderboard(
                registrations,
                votes,
                judge_ids,
                event_id=self.event_id,
                podium_places=self.podium_places,
            ),
            judge=compute_judge_leaderboard(
                registrations,
                votes,
                judge_ids,
                event_id=self.event_id,
                podium_places=self.podium_places,
            ),
        )
        self.snapshot = snapshot
        self.on_update(snapshot)
        return snapshot
