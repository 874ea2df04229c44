"""
Identity resolver: session token -> current admin and effective tabs.

Why:
    Every guarded page and the navigation need the signed-in admin's tabs.
    Fetching `/auth/me` per render would hammer the Credential Store, so the
    result is cached per token for a short freshness window and concurrent
    callers share one in-flight request.

Failure handling:
    - No automatic retry. An authentication rejection is a signal, not a
      transient error: the cache entry is dropped, rejection listeners run
      (the web adapter clears the token there) and the error propagates.
    - Transport failures propagate as retryable errors; the session is kept
      and nothing is cached.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, List, Optional, Sequence, Union

from .credential_client import CredentialStoreClient, MeResult
from .domain import DEFAULT_TAB_CATALOG, AdminAccount, DefaultGrant, ExplicitGrant, Role, Session
from .errors import AuthenticationRejected
from .policy import effective_allowed_tabs

logger = logging.getLogger("admin_console.identity_access.resolver")

DEFAULT_TTL_SECONDS = 5 * 60

RejectionListener = Callable[[Session], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class ResolvedIdentity:
    admin: AdminAccount
    catalog: tuple[str, ...]
    allowed_tabs: tuple[str, ...]

    def can_use(self, tab_key: str) -> bool:
        return tab_key in self.allowed_tabs


@dataclass
class _CacheEntry:
    identity: ResolvedIdentity
    fetched_at: float


def identity_from_me(result: MeResult, fallback_catalog: Sequence[str] = DEFAULT_TAB_CATALOG) -> ResolvedIdentity:
    """Build the resolved identity, always routing tabs through the policy.

    The identity endpoint reports the tabs the store granted. That list is
    treated as the admin's explicit grant; a missing list means "default".
    The policy then applies the super_admin and default rules on top.
    """
    catalog = tuple(result.catalog or fallback_catalog)
    admin = result.admin
    if result.allowed_tabs_raw is None:
        grant = DefaultGrant()
    else:
        grant = ExplicitGrant(result.allowed_tabs_raw)
    if admin.role is Role.SUPER_ADMIN:
        grant = DefaultGrant()
    admin = AdminAccount(id=admin.id, email=admin.email, role=admin.role, grant=grant)
    return ResolvedIdentity(admin=admin, catalog=catalog, allowed_tabs=effective_allowed_tabs(admin, catalog))


class IdentityResolver:
    def __init__(
        self,
        client: CredentialStoreClient,
        *,
        ttl_seconds: float = DEFAULT_TTL_SECONDS,
        catalog: Sequence[str] = DEFAULT_TAB_CATALOG,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.client = client
        self.ttl_seconds = ttl_seconds
        self.catalog = tuple(catalog)
        self._clock = clock
        self._cache: Dict[str, _CacheEntry] = {}
        self._inflight: Dict[str, asyncio.Future] = {}
        # Bumped by every invalidation; a fetch started before a bump is not cached.
        self._generation = 0
        self._listeners: List[RejectionListener] = []

    def add_rejection_listener(self, listener: RejectionListener) -> None:
        self._listeners.append(listener)

    def cached(self, session: Optional[Session]) -> Optional[ResolvedIdentity]:
        """Return a fresh cached identity without touching the network."""
        if session is None:
            return None
        entry = self._cache.get(session.token)
        if entry is None:
            return None
        if self._expired(entry):
            self._cache.pop(session.token, None)
            return None
        return entry.identity

    def invalidate(self, session: Optional[Session] = None) -> None:
        """Drop cached identities; fetches already in flight are not cached either."""
        self._generation += 1
        if session is None:
            self._cache.clear()
            self._inflight.clear()
        else:
            self._cache.pop(session.token, None)
            self._inflight.pop(session.token, None)

    def _expired(self, entry: _CacheEntry) -> bool:
        return self._clock() - entry.fetched_at >= self.ttl_seconds

    def _sweep(self) -> None:
        for token in [t for t, e in self._cache.items() if self._expired(e)]:
            del self._cache[token]

    async def resolve(
        self,
        session: Optional[Session],
        *,
        on_rejected: Optional[RejectionListener] = None,
    ) -> Optional[ResolvedIdentity]:
        if session is None:
            return None
        hit = self.cached(session)
        if hit is not None:
            return hit

        token = session.token
        future = self._inflight.get(token)
        if future is None:
            future = asyncio.ensure_future(self._fetch(session, self._generation))
            self._inflight[token] = future
            future.add_done_callback(lambda f, t=token: self._forget_inflight(t, f))
        try:
            # shield: one caller going away must not cancel the shared fetch
            return await asyncio.shield(future)
        except AuthenticationRejected:
            await self._notify(session, on_rejected)
            raise

    def _forget_inflight(self, token: str, future: asyncio.Future) -> None:
        if self._inflight.get(token) is future:
            del self._inflight[token]

    async def _fetch(self, session: Session, generation: int) -> ResolvedIdentity:
        try:
            result = await self.client.me(session)
        except AuthenticationRejected:
            self._cache.pop(session.token, None)
            logger.info("Identity rejected by credential store; session will be cleared")
            raise
        identity = identity_from_me(result, self.catalog)
        if generation != self._generation:
            logger.debug("Identity fetched across an invalidation; not cached")
            return identity
        self._sweep()
        self._cache[session.token] = _CacheEntry(identity=identity, fetched_at=self._clock())
        return identity

    async def _notify(self, session: Session, on_rejected: Optional[RejectionListener]) -> None:
        listeners = list(self._listeners)
        if on_rejected is not None:
            listeners.append(on_rejected)
        for listener in listeners:
            try:
                outcome = listener(session)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as exc:
                logger.warning("Rejection listener failed: %s", exc.__class__.__name__)


__all__ = [
    "DEFAULT_TTL_SECONDS",
    "ResolvedIdentity",
    "identity_from_me",
    "IdentityResolver",
]
