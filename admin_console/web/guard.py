"""
Route guard for console sections.

Why:
    Hiding a link is not access control. Every section handler calls
    `guard_section` before rendering; the decision is recomputed per request
    from the resolved identity and never cached on the page.

Behavior:
    - `evaluate` is the pure decision: RESOLVING while the identity is unknown,
      ALLOWED when the tab is in the effective tab set, DENIED otherwise.
    - `guard_section` awaits resolution, so a server-rendered page never shows
      protected content or redirects before the identity is known. A browser
      without a session goes to the sign-in entry point; a denied admin goes
      to the dashboard overview.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Optional, Tuple

from fastapi import Request
from fastapi.responses import Response

from ..identity_access.resolver import ResolvedIdentity
from ..identity_access.session import SessionManager
from .auth_utils import redirect
from .state import services

logger = logging.getLogger("admin_console.web.guard")

LOGIN_PATH = "/"
DENIED_REDIRECT = "/dashboard"


class GuardState(str, Enum):
    RESOLVING = "resolving"
    ALLOWED = "allowed"
    DENIED = "denied"


def evaluate(identity: Optional[ResolvedIdentity], tab_key: str) -> GuardState:
    if identity is None:
        return GuardState.RESOLVING
    if tab_key in identity.allowed_tabs:
        return GuardState.ALLOWED
    return GuardState.DENIED


def session_manager(request: Request) -> Optional[SessionManager]:
    return getattr(request.state, "session_manager", None)


async def current_identity(request: Request) -> Optional[ResolvedIdentity]:
    """Resolve the signed-in admin for this browser.

    An authentication rejection clears this browser's token before the error
    propagates to the app's handler.
    """
    manager = session_manager(request)
    if manager is None:
        return None

    def _clear_token(_session) -> None:
        manager.clear_token()

    return await services(request).resolver.resolve(manager.current(), on_rejected=_clear_token)


async def guard_section(request: Request, tab_key: str) -> Tuple[Optional[ResolvedIdentity], Optional[Response]]:
    """Return `(identity, None)` when allowed, else `(None, redirect)`."""
    identity = await current_identity(request)
    state = evaluate(identity, tab_key)
    if state is GuardState.ALLOWED:
        return identity, None
    if identity is None:
        return None, redirect(request, LOGIN_PATH, htmx_status=401)
    logger.info("Section denied: tab=%s admin=%s", tab_key, identity.admin.id)
    return None, redirect(request, DENIED_REDIRECT)
