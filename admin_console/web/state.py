"""
Service wiring shared by the console routes.

The app keeps one `ConsoleServices` bundle on `app.state.services`. Routes
read it from the request so tests can swap the Credential Store transport or
the browser-session store without monkeypatching module globals.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Optional

import httpx
from fastapi import Request

from ..identity_access.credential_client import CredentialStoreClient
from ..identity_access.resolver import IdentityResolver
from ..identity_access.roster import AdminRosterManager
from ..identity_access.stores import SessionStore
from .config import Settings

logger = logging.getLogger("admin_console.web.state")


@dataclass
class ConsoleServices:
    settings: Settings
    session_store: Any
    client: CredentialStoreClient
    resolver: IdentityResolver
    roster: AdminRosterManager


def build_session_store(settings: Settings, *, under_pytest: bool = False):
    """In-memory store by default; Postgres when SESSIONS_BACKEND=db."""
    if settings.sessions_backend == "db" and not under_pytest:
        from ..identity_access.stores_db import DBSessionStore

        return DBSessionStore(ttl_seconds=settings.session_ttl)
    return SessionStore(ttl_seconds=settings.session_ttl)


def build_services(
    settings: Settings,
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    session_store: Any = None,
    under_pytest: bool = False,
) -> ConsoleServices:
    client = CredentialStoreClient(
        settings.credential_store_url,
        timeout=settings.credential_store_timeout,
        transport=transport,
    )
    resolver = IdentityResolver(client, ttl_seconds=settings.identity_cache_ttl)
    store = session_store if session_store is not None else build_session_store(settings, under_pytest=under_pytest)
    logger.info(
        "Console services ready: store=%s sessions=%s",
        settings.credential_store_url,
        store.__class__.__name__,
    )
    return ConsoleServices(
        settings=settings,
        session_store=store,
        client=client,
        resolver=resolver,
        roster=AdminRosterManager(client, resolver),
    )


def services(request: Request) -> ConsoleServices:
    return request.app.state.services
