"""
Pytest configuration for the admin console tests.

Why: Force AnyIO to use the asyncio backend, keep environment toggles from
leaking between tests and wire the console app to an in-process fake
Credential Store.
"""
from __future__ import annotations

import pytest
from httpx import ASGITransport

from admin_console.identity_access.stores import SessionStore
from admin_console.tests.fake_credential_store import FakeCredentialStore

STORE_URL = "http://store.test"


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(autouse=True)
def _clear_console_env(monkeypatch: pytest.MonkeyPatch):
    """Default to dev semantics unless a test opts into prod explicitly."""
    for var in (
        "CONSOLE_ENV",
        "CONSOLE_TRUST_PROXY",
        "CREDENTIAL_STORE_URL",
        "CREDENTIAL_STORE_TIMEOUT",
        "IDENTITY_CACHE_TTL_SECONDS",
        "SESSION_TTL_SECONDS",
        "SESSIONS_BACKEND",
        "ALLOW_MEMORY_SESSIONS",
        "DATABASE_URL",
        "SESSION_DATABASE_URL",
    ):
        monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture
def fake_store() -> FakeCredentialStore:
    return FakeCredentialStore()


@pytest.fixture
def console_app(fake_store: FakeCredentialStore, monkeypatch: pytest.MonkeyPatch):
    """The console app with its services bound to `fake_store`."""
    from admin_console.web import main

    monkeypatch.setenv("CREDENTIAL_STORE_URL", STORE_URL)
    main.configure_services(transport=ASGITransport(app=fake_store.app), session_store=SessionStore())
    yield main.app
    monkeypatch.delenv("CREDENTIAL_STORE_URL", raising=False)
    main.configure_services()
