"""Client-local key/value storage (the browser's localStorage equivalent)."""
from __future__ import annotations

import json
import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class LocalStore(Protocol):
    def get_item(self, key: str) -> str | None:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryStore:
    """In-process LocalStore; one instance per device/profile."""

    def __init__(self, initial: Dict[str, str] | None = None):
        self._items: Dict[str, str] = dict(initial or {})

    def get_item(self, key: str) -> str | None:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)

    def __contains__(self, key: str) -> bool:
        return key in self._items


def read_json(store: LocalStore, key: str, default: Any = None) -> Any:
    """Load a JSON value; missing or malformed entries yield `default`."""
    raw = store.get_item(key)
    if raw is None:
        return default
    try:
        return json.loads(raw)
    except (TypeError, ValueError):
        logger.debug(f"Ignoring malformed JSON under {key!r}")
        return default


def write_json(store: LocalStore, key: str, value: Any) -> None:
    store.set_item(key, json.dumps(value, ensure_ascii=False, separators=(",", ":")))
