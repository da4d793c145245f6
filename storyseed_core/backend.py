"""Collaborator interfaces for the hosted backend (auth, tables, files, realtime).

The core never talks to a transport directly. Parents (the web layer, a
script, a test) hand in objects that satisfy these protocols; any row store
reachable over HTTP will do.

Conventions:
- Rows travel as plain dicts.
- Failures raise BackendError; callers catch it at the call site and treat
  the operation as not-happened. Nothing in the core retries.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol


class BackendError(Exception):
    """A collaborator call failed (network drop, rejected write, bad code...)."""

    def __init__(self, message: str, *, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


@dataclass(frozen=True)
class Session:
    user_id: str
    phone: str | None = None
    session_id: str | None = None


@dataclass(frozen=True)
class ChangeEvent:
    """Realtime notification payload (INSERT / UPDATE / DELETE on a table)."""

    table: str
    kind: str
    record: Dict[str, Any] | None = None


SessionCallback = Callable[[Optional[Session]], None]
ChangeCallback = Callable[[ChangeEvent], None]


class AuthClient(Protocol):
    def send_otp(self, phone: str) -> None:
        ...

    def verify_otp(self, phone: str, code: str) -> str:
        """Return the verified user id."""
        ...

    def get_session(self) -> Session | None:
        ...

    def on_session_change(self, callback: SessionCallback) -> Callable[[], None]:
        """Register callback; returns an unsubscribe function."""
        ...


class TableClient(Protocol):
    def select(
        self,
        table: str,
        filters: Mapping[str, Any] | None = None,
        columns: str = "*",
    ) -> List[Dict[str, Any]]:
        ...

    def insert(self, table: str, record: Mapping[str, Any]) -> Dict[str, Any]:
        """Insert and return the stored row (with generated id)."""
        ...

    def update(
        self, table: str, filters: Mapping[str, Any], patch: Mapping[str, Any]
    ) -> None:
        ...


class RealtimeClient(Protocol):
    def subscribe(
        self,
        table: str,
        on_change: ChangeCallback,
        filters: Mapping[str, Any] | None = None,
    ) -> Any:
        """Return an opaque subscription handle."""
        ...

    def unsubscribe(self, handle: Any) -> None:
        ...


class StorageClient(Protocol):
    def upload(self, bucket: str, filename: str, data: bytes) -> str:
        """Store bytes and return their public URL."""
        ...


class WebhookClient(Protocol):
    def post(
        self,
        url: str,
        fields: Mapping[str, Any],
        files: Mapping[str, tuple[str, bytes]] | None = None,
    ) -> None:
        ...


@dataclass
class StudioBackend:
    """Bundle of collaborators handed to orchestration helpers."""

    auth: AuthClient
    tables: TableClient
    realtime: RealtimeClient | None = None
    storage: StorageClient | None = None
    webhook: WebhookClient | None = None


__all__ = [
    "AuthClient",
    "BackendError",
    "ChangeCallback",
    "ChangeEvent",
    "RealtimeClient",
    "Session",
    "SessionCallback",
    "StorageClient",
    "StudioBackend",
    "TableClient",
    "WebhookClient",
]
