"Admin console"
from __future__ import annotations

import logging
import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Optional

import httpx
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles

from ..identity_access.errors import AuthenticationRejected, PolicyDenied, TransportFailure, ValidationFailed
from ..identity_access.session import BrowserStorage, SessionManager
from . import config
from .auth_utils import NO_STORE, SESSION_COOKIE_NAME, is_htmx, redirect
from .components.pages import ErrorPage
from .guard import LOGIN_PATH, session_manager
from .rendering import layout_response
from .routes.admins import admins_router
from .routes.auth import auth_router
from .routes.dashboard import dashboard_router
from .state import build_services


def _under_pytest() -> bool:
    return "pytest" in sys.modules or bool(os.getenv("PYTEST_CURRENT_TEST"))


def _should_load_dotenv() -> bool:
    """Decide if we should load a local .env file.

    - Never load under pytest to avoid contaminating test env.
    - Allow explicit opt-out via CONSOLE_ENABLE_DOTENV (default true outside pytest).
    """
    if _under_pytest():
        return False
    flag = (os.getenv("CONSOLE_ENABLE_DOTENV", "true") or "").strip().lower()
    return flag in ("1", "true", "yes")


if _should_load_dotenv():
    from dotenv import load_dotenv

    load_dotenv()

# Minimal production safety checks (fail-fast on insecure config)
config.ensure_secure_config_on_startup()

logger = logging.getLogger("admin_console.web")


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    await app.state.services.client.aclose()


app = FastAPI(title="Admin console", description="Administration console", version="0.1.0", lifespan=lifespan)

static_dir = Path(__file__).parent / "static"
app.mount("/static", StaticFiles(directory=str(static_dir)), name="static")

# Specific user-management paths must win over the generic section route.
app.include_router(auth_router)
app.include_router(admins_router)
app.include_router(dashboard_router)


def configure_services(
    *,
    transport: Optional[httpx.AsyncBaseTransport] = None,
    session_store: Any = None,
) -> None:
    """(Re)build the service bundle from the current environment.

    Tests pass an ASGI transport to route Credential Store calls in-process.
    """
    app.state.services = build_services(
        config.load_settings(),
        transport=transport,
        session_store=session_store,
        under_pytest=_under_pytest(),
    )


configure_services()


# --- Browser session & auth enforcement ------------------------------------------

def _is_public_path(path: str) -> bool:
    return path == LOGIN_PATH or path.startswith("/auth/") or _is_asset_path(path)


def _is_asset_path(path: str) -> bool:
    return path.startswith("/static/") or path in ("/health", "/favicon.ico")


@app.middleware("http")
async def auth_enforcement(request: Request, call_next):
    path = request.url.path
    if _is_asset_path(path):
        return await call_next(request)

    store = request.app.state.services.session_store
    sid = request.cookies.get(SESSION_COOKIE_NAME)
    rec = None
    if sid:
        try:
            rec = store.get(sid)
        except Exception as exc:
            logger.warning("Session store get failed: %s", exc.__class__.__name__)

    request.state.browser_session_id = rec.session_id if rec else None
    request.state.session_manager = SessionManager(BrowserStorage(store, rec.session_id)) if rec else None
    if _is_public_path(path):
        return await call_next(request)

    manager = request.state.session_manager
    if manager is None or not manager.is_authenticated:
        if is_htmx(request):
            # Security: prevent intermediaries from caching unauthenticated HTMX responses
            return Response(status_code=401, headers={"HX-Redirect": LOGIN_PATH, "Cache-Control": NO_STORE, "Vary": "HX-Request"})
        return RedirectResponse(url=LOGIN_PATH, status_code=302, headers={"Cache-Control": NO_STORE})
    return await call_next(request)


# --- Security Headers Middleware ----------------------------------------------

@app.middleware("http")
async def security_headers(request: Request, call_next):
    response = await call_next(request)
    response.headers.setdefault(
        "Content-Security-Policy",
        "default-src 'self'; script-src 'self'; style-src 'self'; img-src 'self' data:; form-action 'self'; frame-ancestors 'none';",
    )
    response.headers.setdefault("X-Frame-Options", "DENY")
    response.headers.setdefault("X-Content-Type-Options", "nosniff")
    response.headers.setdefault("Referrer-Policy", "strict-origin-when-cross-origin")
    response.headers.setdefault("Permissions-Policy", "geolocation=(), microphone=(), camera=()")
    # HSTS: always on (dev = prod)
    response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
    return response


# --- Error mapping -------------------------------------------------------------

def _cached_identity(request: Request):
    """Identity for the sidebar of error pages; never calls the store."""
    manager = session_manager(request)
    if manager is None:
        return None
    return request.app.state.services.resolver.cached(manager.current())


@app.exception_handler(AuthenticationRejected)
async def on_authentication_rejected(request: Request, exc: AuthenticationRejected):
    """Expired or revoked token: clear it and return to sign-in, silently."""
    manager = session_manager(request)
    if manager is not None:
        request.app.state.services.resolver.invalidate(manager.current())
        manager.clear_token()
    return redirect(request, LOGIN_PATH, htmx_status=401)


@app.exception_handler(TransportFailure)
async def on_transport_failure(request: Request, exc: TransportFailure):
    logger.warning("Credential store unavailable: code=%s status=%s", exc.code, exc.status)
    retry = str(request.url.path) if request.method == "GET" else "/dashboard"
    page = ErrorPage(
        "Something went wrong",
        "The console could not reach the account service. Your session is still active.",
        retry_href=retry,
    )
    return layout_response(request, "Unavailable", page.render(), identity=_cached_identity(request), status_code=503)


@app.exception_handler(PolicyDenied)
async def on_policy_denied(request: Request, exc: PolicyDenied):
    identity = _cached_identity(request)
    page = ErrorPage("Not allowed", exc.reason, retry_href="/dashboard")
    return layout_response(request, "Not allowed", page.render(), identity=identity, status_code=403)


@app.exception_handler(ValidationFailed)
async def on_validation_failed(request: Request, exc: ValidationFailed):
    identity = _cached_identity(request)
    page = ErrorPage("Invalid request", exc.message, retry_href="/dashboard")
    return layout_response(request, "Invalid request", page.render(), identity=identity, status_code=400)


# --- Health & lifecycle --------------------------------------------------------

@app.get("/health")
async def health():
    return JSONResponse({"status": "healthy"}, headers={"Cache-Control": NO_STORE})


def run() -> None:
    """Console entry point (`admin-console`)."""
    import uvicorn

    logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO").upper())
    uvicorn.run(
        "admin_console.web.main:app",
        host=os.getenv("HOST", "127.0.0.1"),
        port=int(os.getenv("PORT", "8000")),
        proxy_headers=(os.getenv("CONSOLE_TRUST_PROXY", "false").lower() == "true"),
    )
