"""
Session manager: the narrow get/set/clear contract around the bearer token.

Why:
    The persisted token is the only shared mutable cell of the access-control
    core. Everything else receives an explicit `Session` value derived from it.

Behavior:
    - Reads always go back to storage, so a logout performed elsewhere (another
      tab, another console worker, an auth-rejection handler) is observed on
      the next read.
    - Writes run under a lock; storage backends apply them atomically so a
      reader never sees a half-written value. Across processes, last write wins.
    - No network calls.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Callable, Dict, List, Optional, Protocol

from .domain import Session
from .errors import ValidationFailed

TOKEN_KEY = "acousticsfx-admin-token"

AUTHENTICATED = "authenticated"
UNAUTHENTICATED = "unauthenticated"

logger = logging.getLogger("admin_console.identity_access.session")


class TokenStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]:
        ...

    def set_item(self, key: str, value: str) -> None:
        ...

    def remove_item(self, key: str) -> None:
        ...


class MemoryTokenStorage:
    """Process-local storage (tests, scripts)."""

    def __init__(self) -> None:
        self._items: Dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class FileTokenStorage:
    """JSON file storage for command-line use; survives process restarts.

    Updates are written to a temporary file and moved into place with
    `os.replace`, which is atomic on POSIX and Windows.
    """

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = Path(path)

    def _load(self) -> Dict[str, str]:
        try:
            raw = self.path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        try:
            data = json.loads(raw)
        except ValueError:
            logger.warning("Ignoring unreadable token storage file")
            return {}
        return {str(k): str(v) for k, v in data.items()} if isinstance(data, dict) else {}

    def _store(self, items: Dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".tokens-")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(items, fh)
            os.chmod(tmp, 0o600)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._store(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if key in items:
            del items[key]
            self._store(items)


class BrowserStorage:
    """Storage view onto one browser session kept by a console session store."""

    def __init__(self, store, session_id: str) -> None:
        self.store = store
        self.session_id = session_id

    def get_item(self, key: str) -> Optional[str]:
        return self.store.get_value(self.session_id, key)

    def set_item(self, key: str, value: str) -> None:
        self.store.set_value(self.session_id, key, value)

    def remove_item(self, key: str) -> None:
        self.store.remove_value(self.session_id, key)


Listener = Callable[[str], None]


class SessionManager:
    def __init__(self, storage: TokenStorage, key: str = TOKEN_KEY) -> None:
        self.storage = storage
        self.key = key
        self._lock = threading.Lock()
        self._listeners: List[Listener] = []

    def get_token(self) -> Optional[str]:
        try:
            token = self.storage.get_item(self.key)
        except Exception as exc:
            # Unreadable storage counts as signed out.
            logger.warning("Token storage read failed: %s", exc.__class__.__name__)
            return None
        return token or None

    @property
    def is_authenticated(self) -> bool:
        return self.get_token() is not None

    def current(self) -> Optional[Session]:
        token = self.get_token()
        return Session(token) if token else None

    def set_token(self, token: str) -> None:
        if not isinstance(token, str) or not token.strip():
            raise ValidationFailed("missing_token", field="token")
        with self._lock:
            self.storage.set_item(self.key, token)
        self._notify(AUTHENTICATED)

    def clear_token(self) -> None:
        with self._lock:
            self.storage.remove_item(self.key)
        self._notify(UNAUTHENTICATED)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state listener; returns an unsubscribe callable."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    def _notify(self, state: str) -> None:
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception as exc:
                logger.warning("Session listener failed: %s", exc.__class__.__name__)


__all__ = [
    "TOKEN_KEY",
    "AUTHENTICATED",
    "UNAUTHENTICATED",
    "TokenStorage",
    "MemoryTokenStorage",
    "FileTokenStorage",
    "BrowserStorage",
    "SessionManager",
]
