"""
Admin roster manager tests against the in-process fake Credential Store.

Covers validation before any request, last-super-admin protection using
request-time counts, and that the store's own rejection surfaces unchanged.
"""

from __future__ import annotations

import pytest
from httpx import ASGITransport

from admin_console.identity_access.credential_client import CredentialStoreClient
from admin_console.identity_access.domain import DefaultGrant, ExplicitGrant, Role, Session
from admin_console.identity_access.errors import PolicyDenied, ValidationFailed
from admin_console.identity_access.resolver import IdentityResolver
from admin_console.identity_access.roster import (
    MAX_PAGE_LIMIT,
    SELF_DEMOTION_WARNING,
    AdminRosterManager,
    self_edit_warning,
)
from admin_console.tests.fake_credential_store import FakeCredentialStore


class _Env:
    def __init__(self):
        self.store = FakeCredentialStore()
        self.root_id = self.store.add_admin("root@example.com", role="super_admin")
        self.session = Session(self.store.issue_token(self.root_id))
        self.client = CredentialStoreClient("http://store.test", transport=ASGITransport(app=self.store.app))
        self.resolver = IdentityResolver(self.client)
        self.roster = AdminRosterManager(self.client, self.resolver)


@pytest.fixture
async def env():
    e = _Env()
    yield e
    await e.client.aclose()


@pytest.mark.anyio
async def test_list_admins_caps_limit(env):
    page = await env.roster.list_admins(env.session, page="1", limit=str(MAX_PAGE_LIMIT + 50))
    assert page.limit == MAX_PAGE_LIMIT
    assert [a.email for a in page.admins] == ["root@example.com"]


@pytest.mark.anyio
@pytest.mark.parametrize("page, limit", [(0, 20), ("x", 20), (1, -5)])
async def test_list_admins_rejects_invalid_paging_without_request(env, page, limit):
    before = len(env.store.calls)
    with pytest.raises(ValidationFailed):
        await env.roster.list_admins(env.session, page=page, limit=limit)
    assert len(env.store.calls) == before


@pytest.mark.anyio
async def test_create_admin_defaults_role_and_grant(env):
    created = await env.roster.create_admin(env.session, " New@Example.com ", "pw")
    assert created.email == "new@example.com"
    assert created.role is Role.ADMIN
    assert created.grant == DefaultGrant()
    assert env.store.payloads[-1] == {"email": "new@example.com", "password": "pw", "role": "admin"}


@pytest.mark.anyio
async def test_create_super_admin_never_sends_tabs(env):
    await env.roster.create_admin(env.session, "s@example.com", "pw", role=Role.SUPER_ADMIN, visible_tabs=["blogs"])
    assert "visibleTabs" not in env.store.payloads[-1]


@pytest.mark.anyio
async def test_create_admin_with_empty_grant_sends_empty_list(env):
    created = await env.roster.create_admin(env.session, "e@example.com", "pw", role=Role.EDITOR, visible_tabs=[])
    assert env.store.payloads[-1]["visibleTabs"] == []
    assert created.grant == ExplicitGrant(())


@pytest.mark.anyio
@pytest.mark.parametrize(
    "email, password, tabs, code",
    [
        ("", "pw", None, "missing_email"),
        ("no-at-sign", "pw", None, "invalid_email"),
        ("a@example.com", "", None, "missing_password"),
        ("a@example.com", "pw", ["reports"], "unknown_tabs"),
    ],
)
async def test_create_admin_validates_before_request(env, email, password, tabs, code):
    before = len(env.store.calls)
    with pytest.raises(ValidationFailed) as exc:
        await env.roster.create_admin(env.session, email, password, visible_tabs=tabs)
    assert exc.value.code == code
    assert len(env.store.calls) == before


@pytest.mark.anyio
async def test_demoting_last_super_admin_is_denied_locally(env):
    before = env.store.count("PATCH", f"/admin/admins/{env.root_id}")
    with pytest.raises(PolicyDenied) as exc:
        await env.roster.update_admin(env.session, env.root_id, role=Role.ADMIN)
    assert "super admin" in exc.value.reason
    assert env.store.count("PATCH", f"/admin/admins/{env.root_id}") == before
    assert env.store.admins[env.root_id]["role"] == "super_admin"


@pytest.mark.anyio
async def test_deleting_last_super_admin_is_denied_locally(env):
    with pytest.raises(PolicyDenied):
        await env.roster.delete_admin(env.session, env.root_id)
    assert env.store.count("DELETE", f"/admin/admins/{env.root_id}") == 0
    assert env.root_id in env.store.admins


@pytest.mark.anyio
async def test_counts_are_read_at_request_time(env):
    second = env.store.add_admin("two@example.com", role="super_admin")
    counts = await env.roster.current_role_counts(env.session)
    assert counts[Role.SUPER_ADMIN] == 2

    # The other super admin disappears behind our back: the next check sees it.
    del env.store.admins[second]
    with pytest.raises(PolicyDenied):
        await env.roster.update_admin(env.session, env.root_id, role=Role.EDITOR)
    assert env.store.count("PATCH", f"/admin/admins/{env.root_id}") == 0


@pytest.mark.anyio
async def test_store_rejection_surfaces_as_policy_denied(env, monkeypatch):
    second = env.store.add_admin("two@example.com", role="super_admin")
    stale = await env.roster._full_roster(env.session)
    del env.store.admins[second]

    async def _stale_roster(_session):
        return stale

    # Local counts still show two super admins; the store knows better.
    monkeypatch.setattr(env.roster, "_full_roster", _stale_roster)
    with pytest.raises(PolicyDenied) as exc:
        await env.roster.update_admin(env.session, env.root_id, role=Role.ADMIN)
    assert exc.value.code == "last_super_admin"
    assert env.store.count("PATCH", f"/admin/admins/{env.root_id}") == 1
    assert env.store.admins[env.root_id]["role"] == "super_admin"



@pytest.mark.anyio
async def test_promoting_to_super_admin_drops_grant(env):
    target = env.store.add_admin("ed@example.com", role="editor", visible_tabs=["blogs"])
    updated = await env.roster.update_admin(
        env.session, target, role=Role.SUPER_ADMIN, grant=ExplicitGrant(("events",))
    )
    assert env.store.payloads[-1] == {"role": "super_admin"}
    assert updated.role is Role.SUPER_ADMIN


@pytest.mark.anyio
async def test_grant_only_edit_of_super_admin_sends_nothing(env):
    before = env.store.count("PATCH", f"/admin/admins/{env.root_id}")
    unchanged = await env.roster.update_admin(env.session, env.root_id, grant=DefaultGrant())
    assert unchanged.id == env.root_id
    assert unchanged.role is Role.SUPER_ADMIN
    assert env.store.count("PATCH", f"/admin/admins/{env.root_id}") == before
    assert env.store.payloads == []


@pytest.mark.anyio
async def test_update_rejects_unknown_tabs_and_empty_update(env):
    target = env.store.add_admin("ed@example.com", role="editor")
    with pytest.raises(ValidationFailed) as exc:
        await env.roster.update_admin(env.session, target, grant=ExplicitGrant(("reports",)))
    assert exc.value.field == "visibleTabs"
    with pytest.raises(ValidationFailed) as exc:
        await env.roster.update_admin(env.session, target)
    assert exc.value.code == "nothing_to_update"


@pytest.mark.anyio
async def test_update_unknown_admin_is_not_found(env):
    with pytest.raises(ValidationFailed) as exc:
        await env.roster.update_admin(env.session, "missing", role=Role.EDITOR)
    assert exc.value.code == "not_found"


@pytest.mark.anyio
async def test_mutation_invalidates_cached_identity(env):
    await env.resolver.resolve(env.session)
    assert env.resolver.cached(env.session) is not None
    target = env.store.add_admin("ed@example.com", role="editor")
    await env.roster.delete_admin(env.session, target)
    assert env.resolver.cached(env.session) is None
    assert target not in env.store.admins


def test_self_edit_warning_only_for_own_role_change():
    from admin_console.identity_access.domain import AdminAccount

    me = AdminAccount(id="a1", email="me@example.com", role=Role.SUPER_ADMIN)
    other = AdminAccount(id="a2", email="o@example.com", role=Role.ADMIN)
    assert self_edit_warning(me, me, Role.ADMIN) == SELF_DEMOTION_WARNING
    assert self_edit_warning(me, me, Role.SUPER_ADMIN) is None
    assert self_edit_warning(other, me, Role.EDITOR) is None
    assert self_edit_warning(me, None, Role.ADMIN) is None
