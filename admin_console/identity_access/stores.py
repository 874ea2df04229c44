"""
In-memory browser session store for development and tests.

Why: The browser only ever holds an opaque session id cookie. Everything the
console would otherwise keep in the browser's local storage (most importantly
the Credential Store bearer token) lives server-side in the record's
`values` mapping. For production, use the DB-backed store in `stores_db`.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Optional
import secrets
import threading
import time


def _now() -> int:
    return int(time.time())


@dataclass
class BrowserSessionRecord:
    session_id: str
    values: Dict[str, str] = field(default_factory=dict)
    expires_at: Optional[int] = None


class SessionStore:
    def __init__(self, ttl_seconds: int = 8 * 3600):
        self.ttl_seconds = ttl_seconds
        self._data: Dict[str, BrowserSessionRecord] = {}
        self._lock = threading.Lock()

    def create(self, *, ttl_seconds: Optional[int] = None) -> BrowserSessionRecord:
        sid = secrets.token_urlsafe(24)
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        rec = BrowserSessionRecord(session_id=sid, expires_at=_now() + ttl)
        with self._lock:
            self._data[sid] = rec
        return rec

    def get(self, session_id: str) -> Optional[BrowserSessionRecord]:
        with self._lock:
            rec = self._data.get(session_id)
            if not rec:
                return None
            if rec.expires_at and rec.expires_at < _now():
                self._data.pop(session_id, None)
                return None
            # Hand out a copy so readers never observe a half-applied update.
            return BrowserSessionRecord(rec.session_id, dict(rec.values), rec.expires_at)

    def get_value(self, session_id: str, key: str) -> Optional[str]:
        rec = self.get(session_id)
        return rec.values.get(key) if rec else None

    def set_value(self, session_id: str, key: str, value: str) -> None:
        with self._lock:
            rec = self._data.get(session_id)
            if rec is None:
                raise KeyError(session_id)
            rec.values = {**rec.values, key: value}

    def remove_value(self, session_id: str, key: str) -> None:
        with self._lock:
            rec = self._data.get(session_id)
            if rec is None:
                return
            rec.values = {k: v for k, v in rec.values.items() if k != key}

    def delete(self, session_id: str) -> None:
        with self._lock:
            self._data.pop(session_id, None)
