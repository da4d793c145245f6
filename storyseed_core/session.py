"""Explicit session provider with a defined lifecycle.

Consumers receive a SessionProvider instance (no ambient/global lookup):

    provider = SessionProvider(auth, store)
    provider.init()
    remove = provider.on_change(listener)
    ...
    provider.teardown()

Session hints are mirrored into the local store so a reload can show the
verified phone before the backend answers.
"""
from __future__ import annotations

import logging
from typing import Callable, Iterable, List, Set

from .backend import AuthClient, BackendError, Session, TableClient
from .config import StudioConfig
from .storage import LocalStore
from .types import Role

logger = logging.getLogger(__name__)

SessionListener = Callable[[Session | None], None]

_ROLE_PRECEDENCE = {"admin": 3, "judge": 2, "user": 1}


class SessionProvider:
    def __init__(self, auth: AuthClient, store: LocalStore):
        self.auth = auth
        self.store = store
        self.current: Session | None = None
        self._listeners: List[SessionListener] = []
        self._unsubscribe: Callable[[], None] | None = None
        self._active = False

    @property
    def is_authenticated(self) -> bool:
        return self.current is not None

    def init(self) -> Session | None:
        """Load the current session and start following auth changes."""
        if self._active:
            return self.current
        self._active = True
        try:
            session = self.auth.get_session()
        except BackendError as e:
            logger.warning(f"Could not load session: {e}")
            session = None
        self._apply(session)
        self._unsubscribe = self.auth.on_session_change(self._handle_change)
        return self.current

    def on_change(self, listener: SessionListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return remove

    def teardown(self) -> None:
        self._active = False
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
        self._listeners.clear()

    def _handle_change(self, session: Session | None) -> None:
        if not self._active:
            return
        self._apply(session)
        for listener in list(self._listeners):
            listener(session)

    def _apply(self, session: Session | None) -> None:
        self.current = session
        if session is None:
            for key in (
                StudioConfig.USER_PHONE_KEY,
                StudioConfig.USER_ID_KEY,
                StudioConfig.SESSION_ID_KEY,
            ):
                self.store.remove_item(key)
            return
        self.store.set_item(StudioConfig.USER_ID_KEY, session.user_id)
        if session.phone:
            self.store.set_item(StudioConfig.USER_PHONE_KEY, session.phone)
        if session.session_id:
            self.store.set_item(StudioConfig.SESSION_ID_KEY, session.session_id)


def _pick_role(roles: Iterable[str]) -> Role:
    best: Role = "user"
    for role in roles:
        if _ROLE_PRECEDENCE.get(role, 0) > _ROLE_PRECEDENCE[best]:
            best = role  # type: ignore[assignment]
    return best


def resolve_role(tables: TableClient, user_id: str) -> Role:
    """Highest role held by the user (admin > judge > user)."""
    rows = tables.select("user_roles", {"user_id": user_id}, columns="user_id, role")
    return _pick_role(row.get("role") for row in rows)


def fetch_judge_ids(tables: TableClient) -> Set[str]:
    rows = tables.select("user_roles", columns="user_id, role")
    return {str(row["user_id"]) for row in rows if row.get("role") == "judge" and row.get("user_id")}
