"""
Identity resolver tests: caching window, request coalescing, and the
no-retry handling of rejected and failed identity lookups.
"""

from __future__ import annotations

import anyio
import pytest

from admin_console.identity_access.credential_client import MeResult
from admin_console.identity_access.domain import AdminAccount, ExplicitGrant, Role, Session
from admin_console.identity_access.errors import AuthenticationRejected, TransportFailure
from admin_console.identity_access.resolver import IdentityResolver, identity_from_me
from admin_console.identity_access.session import MemoryTokenStorage, SessionManager

CATALOG = ("overview", "users", "products", "blogs")


class _FakeClient:
    def __init__(self, result=None, error=None):
        self.result = result or MeResult(
            admin=AdminAccount(id="a1", email="a@example.com", role=Role.ADMIN),
            allowed_tabs_raw=None,
            catalog=CATALOG,
        )
        self.error = error
        self.calls = 0
        self.gate = None

    async def me(self, session):
        self.calls += 1
        # The answer is read before the gate opens, like a response already on the wire.
        result, error = self.result, self.error
        if self.gate is not None:
            await self.gate.wait()
        if error is not None:
            raise error
        return result


def _me_with_tabs(tabs):
    return MeResult(
        admin=AdminAccount(id="a1", email="a@example.com", role=Role.ADMIN),
        allowed_tabs_raw=tabs,
        catalog=CATALOG,
    )


class _Clock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.mark.anyio
async def test_no_session_resolves_to_none_without_request():
    client = _FakeClient()
    resolver = IdentityResolver(client)
    assert await resolver.resolve(None) is None
    assert client.calls == 0


@pytest.mark.anyio
async def test_identity_is_cached_within_ttl_and_refetched_after():
    client = _FakeClient()
    clock = _Clock()
    resolver = IdentityResolver(client, ttl_seconds=60, clock=clock)
    session = Session("tok-1")

    first = await resolver.resolve(session)
    second = await resolver.resolve(session)
    assert first is second
    assert client.calls == 1

    clock.now += 61
    assert resolver.cached(session) is None
    await resolver.resolve(session)
    assert client.calls == 2


@pytest.mark.anyio
async def test_concurrent_resolves_share_one_request():
    client = _FakeClient()
    client.gate = anyio.Event()
    resolver = IdentityResolver(client)
    session = Session("tok-1")
    results = []

    async def _resolve():
        results.append(await resolver.resolve(session))

    async with anyio.create_task_group() as tg:
        for _ in range(5):
            tg.start_soon(_resolve)
        await anyio.sleep(0.01)
        client.gate.set()

    assert client.calls == 1
    assert len(results) == 5
    assert all(r is results[0] for r in results)


@pytest.mark.anyio
async def test_rejection_clears_session_and_is_not_retried():
    client = _FakeClient(error=AuthenticationRejected("authentication_rejected", "expired"))
    resolver = IdentityResolver(client)
    manager = SessionManager(MemoryTokenStorage())
    manager.set_token("tok-1")
    notified = []
    resolver.add_rejection_listener(notified.append)

    def _clear(_session):
        manager.clear_token()

    with pytest.raises(AuthenticationRejected):
        await resolver.resolve(manager.current(), on_rejected=_clear)

    assert client.calls == 1
    assert manager.get_token() is None
    assert notified == [Session("tok-1")]
    # Signed out now: no further identity requests.
    assert await resolver.resolve(manager.current()) is None
    assert client.calls == 1


@pytest.mark.anyio
async def test_transport_failure_keeps_session_and_caches_nothing():
    client = _FakeClient(error=TransportFailure("server_error", "boom", status=502))
    resolver = IdentityResolver(client)
    manager = SessionManager(MemoryTokenStorage())
    manager.set_token("tok-1")

    with pytest.raises(TransportFailure):
        await resolver.resolve(manager.current(), on_rejected=lambda _s: manager.clear_token())

    assert manager.get_token() == "tok-1"
    assert resolver.cached(manager.current()) is None


@pytest.mark.anyio
async def test_invalidate_forces_refetch():
    client = _FakeClient()
    resolver = IdentityResolver(client)
    session = Session("tok-1")
    await resolver.resolve(session)
    resolver.invalidate(session)
    await resolver.resolve(session)
    assert client.calls == 2


@pytest.mark.anyio
async def test_invalidate_while_fetch_in_flight_does_not_cache_old_grant():
    client = _FakeClient(result=_me_with_tabs(("users", "products")))
    client.gate = anyio.Event()
    resolver = IdentityResolver(client, catalog=CATALOG)
    session = Session("tok-1")
    results = []

    async def _resolve():
        results.append(await resolver.resolve(session))

    async with anyio.create_task_group() as tg:
        tg.start_soon(_resolve)
        await anyio.sleep(0.01)
        # The grant changes while the first lookup is still waiting on the store.
        client.result = _me_with_tabs(("products",))
        resolver.invalidate()
        client.gate.set()

    assert results[0].can_use("users")
    assert resolver.cached(session) is None

    client.gate = None
    fresh = await resolver.resolve(session)
    assert not fresh.can_use("users")
    assert resolver.cached(session) is fresh
    assert client.calls == 2


@pytest.mark.anyio
async def test_expired_identities_are_dropped_from_cache():
    client = _FakeClient()
    clock = _Clock()
    resolver = IdentityResolver(client, ttl_seconds=60, clock=clock)
    for n in range(50):
        await resolver.resolve(Session(f"tok-{n}"))
    assert len(resolver._cache) == 50

    clock.now += 61
    await resolver.resolve(Session("tok-new"))
    assert len(resolver._cache) == 1

    clock.now += 61
    assert resolver.cached(Session("tok-new")) is None
    assert len(resolver._cache) == 0


    assert client.calls == 2


def test_identity_from_me_routes_tabs_through_policy():
    result = MeResult(
        admin=AdminAccount(id="a1", email="a@example.com", role=Role.EDITOR),
        allowed_tabs_raw=("blogs",),
        catalog=CATALOG,
    )
    identity = identity_from_me(result)
    assert identity.admin.grant == ExplicitGrant(("blogs",))
    assert identity.allowed_tabs == ("blogs",)
    assert identity.can_use("users") is False


def test_identity_from_me_super_admin_gets_full_catalog():
    result = MeResult(
        admin=AdminAccount(id="a1", email="a@example.com", role=Role.SUPER_ADMIN),
        allowed_tabs_raw=("overview",),
        catalog=None,
    )
    identity = identity_from_me(result, fallback_catalog=CATALOG)
    assert identity.allowed_tabs == CATALOG


def test_identity_from_me_missing_tabs_means_default():
    result = MeResult(
        admin=AdminAccount(id="a1", email="a@example.com", role=Role.ADMIN),
        allowed_tabs_raw=None,
        catalog=CATALOG,
    )
    assert identity_from_me(result).allowed_tabs == ("overview", "products", "blogs")
