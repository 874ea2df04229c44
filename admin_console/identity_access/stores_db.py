"""
Database-backed browser session store for production use (Postgres).

Why: In-memory sessions are lost on restart and do not scale across console
instances. This store persists browser sessions in Postgres while keeping the
cookie opaque. The `data` column is a JSON object holding the
browser's local storage (e.g. the Credential Store bearer token).

Security:
- Use a dedicated login role; the table must not be reachable by anonymous
  clients.
- Tokens are stored server-side only; never log `data`.

Note: This module uses psycopg3. It is imported only when enabled via
`SESSIONS_BACKEND=db`. Tests use the in-memory store or a fake driver.

Expected schema::

    create table console_sessions (
        session_id text primary key,
        data jsonb not null default '{}'::jsonb,
        expires_at timestamptz not null
    );
"""
from __future__ import annotations

from typing import Optional
import os
import re
import secrets
import time

try:
    import psycopg
    from psycopg.types.json import Json
    HAVE_PSYCOPG = True
except ImportError:  # pragma: no cover - optional dependency in dev
    psycopg = None  # type: ignore
    HAVE_PSYCOPG = False

from .stores import BrowserSessionRecord


_TABLE_RE = re.compile(r"^[A-Za-z_][A-Za-z0-9_]{0,62}(?:\.[A-Za-z_][A-Za-z0-9_]{0,62})?$")


def _now() -> int:
    return int(time.time())


class DBSessionStore:
    """Postgres-backed browser session store.

    Parameters
    ----------
    dsn:
        Psycopg3 connection string.
    table:
        Table name, optionally schema-qualified. Defaults to `public.console_sessions`.
    ttl_seconds:
        Lifetime of newly created sessions.
    """

    def __init__(self, dsn: str | None = None, table: str = "public.console_sessions", ttl_seconds: int = 8 * 3600) -> None:
        if not HAVE_PSYCOPG:
            raise RuntimeError("psycopg3 is required for DBSessionStore")
        self._dsn = dsn or os.getenv("SESSION_DATABASE_URL") or os.getenv("DATABASE_URL", "")
        if not self._dsn:
            raise RuntimeError("No database DSN provided for DBSessionStore")
        # Table name is interpolated into SQL; only accept plain identifiers.
        if not _TABLE_RE.match(table or ""):
            raise ValueError("Invalid table name")
        self._table = table
        self.ttl_seconds = ttl_seconds

    def create(self, *, ttl_seconds: Optional[int] = None) -> BrowserSessionRecord:
        sid = secrets.token_urlsafe(24)
        ttl = ttl_seconds if ttl_seconds is not None else self.ttl_seconds
        expires_at = _now() + ttl
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"insert into {self._table} (session_id, data, expires_at) "
                    f"values (%s, %s, to_timestamp(%s))",
                    (sid, Json({}), expires_at),
                )
        return BrowserSessionRecord(session_id=sid, values={}, expires_at=expires_at)

    def get(self, session_id: str) -> Optional[BrowserSessionRecord]:
        with psycopg.connect(self._dsn) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"select session_id, data, extract(epoch from expires_at)::bigint "
                    f"from {self._table} where session_id = %s and expires_at > now()",
                    (session_id,),
                )
                row = cur.fetchone()
        if not row:
            return None
        values = row[1] if isinstance(row[1], dict) else {}
        return BrowserSessionRecord(
            session_id=row[0],
            values={str(k): str(v) for k, v in values.items()},
            expires_at=int(row[2]) if row[2] is not None else None,
        )

    def get_value(self, session_id: str, key: str) -> Optional[str]:
        rec = self.get(session_id)
        return rec.values.get(key) if rec else None

    def set_value(self, session_id: str, key: str, value: str) -> None:
        # Single-statement jsonb merge keeps the update atomic.
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update {self._table} set data = data || %s where session_id = %s",
                    (Json({key: value}), session_id),
                )

    def remove_value(self, session_id: str, key: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(
                    f"update {self._table} set data = data - %s where session_id = %s",
                    (key, session_id),
                )

    def delete(self, session_id: str) -> None:
        with psycopg.connect(self._dsn, autocommit=True) as conn:
            with conn.cursor() as cur:
                cur.execute(f"delete from {self._table} where session_id = %s", (session_id,))
