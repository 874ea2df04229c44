"""
Authentication routes: sign-in entry point, sign-up, logout, password reset.

Why:
    Keep auth endpoints in a dedicated router; the middleware allowlists `/`
    and `/auth/*` so these pages work without a session.

Notes:
    - A successful sign-in or sign-up always starts a fresh browser session
      (the previous one is destroyed) and stores the bearer token in it.
    - Credential errors are shown inline. Transport failures propagate to the
      app's handler, which renders a retry page and keeps the session.
"""

from __future__ import annotations

import logging
from typing import Dict, Optional

from fastapi import APIRouter, Request
from fastapi.responses import RedirectResponse

from ...identity_access.errors import AuthenticationRejected, PolicyDenied, ValidationFailed
from ...identity_access.session import BrowserStorage, SessionManager
from ..auth_utils import NO_STORE, clear_session_cookie, redirect, set_session_cookie
from ..components.forms.auth_forms import ForgotPasswordForm, LoginForm, ResetPasswordForm, SignupForm
from ..guard import DENIED_REDIRECT, LOGIN_PATH, session_manager
from ..rendering import layout_response
from ..security import is_same_origin
from ..state import services

auth_router = APIRouter(tags=["Auth"])
logger = logging.getLogger("admin_console.web.auth")

ORIGIN_REJECTED = "This form was submitted from another site. Reload the page and try again."
FORGOT_PASSWORD_NOTICE = "If an account exists for that email, a reset link is on its way."


async def _form_values(request: Request) -> Dict[str, str]:
    form = await request.form()
    return {key: str(value) for key, value in form.items()}


def _required(values: Dict[str, str], *fields: str) -> Dict[str, str]:
    errors = {}
    for name in fields:
        if not values.get(name, "").strip():
            errors[name] = "This field is required."
    return errors


def _start_browser_session(request: Request, token: str):
    """Rotate the browser session and persist `token` in it."""
    svc = services(request)
    store = svc.session_store
    old_sid: Optional[str] = getattr(request.state, "browser_session_id", None)
    if old_sid:
        try:
            store.delete(old_sid)
        except Exception as exc:
            logger.warning("Session delete failed during sign-in: %s", exc.__class__.__name__)
    rec = store.create()
    SessionManager(BrowserStorage(store, rec.session_id)).set_token(token)
    resp = redirect(request, DENIED_REDIRECT, status_code=303)
    set_session_cookie(resp, rec.session_id, svc.settings.environment, max_age=svc.settings.session_ttl)
    return resp


@auth_router.get("/")
async def login_page(request: Request):
    """Sign-in entry point; signed-in browsers go straight to the dashboard."""
    manager = session_manager(request)
    if manager is not None and manager.is_authenticated:
        return redirect(request, DENIED_REDIRECT)
    return layout_response(request, "Sign in", LoginForm().render())


async def _credential_flow(request: Request, form_cls, title: str, action):
    if not is_same_origin(request):
        return layout_response(request, title, form_cls(error=ORIGIN_REJECTED).render(), status_code=403)
    values = await _form_values(request)
    email = values.get("email", "").strip()
    keep = {"email": email}
    field_errors = _required(values, "email", "password")
    if field_errors:
        return layout_response(request, title, form_cls(values=keep, field_errors=field_errors).render(), status_code=400)
    try:
        result = await action(email=email, password=values["password"])
    except AuthenticationRejected:
        form = form_cls(values=keep, error="Invalid email or password.")
        return layout_response(request, title, form.render(), status_code=401)
    except ValidationFailed as exc:
        errors = {exc.field: exc.message} if exc.field else {}
        form = form_cls(values=keep, error=None if errors else exc.message, field_errors=errors)
        return layout_response(request, title, form.render(), status_code=400)
    except PolicyDenied as exc:
        return layout_response(request, title, form_cls(values=keep, error=exc.reason).render(), status_code=403)
    logger.info("Admin signed in: id=%s", result.admin.id)
    return _start_browser_session(request, result.token)


@auth_router.post("/auth/login")
async def auth_login(request: Request):
    return await _credential_flow(request, LoginForm, "Sign in", services(request).client.login)


@auth_router.get("/auth/signup")
async def signup_page(request: Request):
    return layout_response(request, "Create account", SignupForm().render())


@auth_router.post("/auth/signup")
async def auth_signup(request: Request):
    return await _credential_flow(request, SignupForm, "Create account", services(request).client.signup)


@auth_router.get("/auth/logout")
async def auth_logout(request: Request):
    """Clear the token, destroy the browser session and return to sign-in.

    Best-effort: storage failures are logged and never block the logout.
    """
    svc = services(request)
    manager = session_manager(request)
    if manager is not None:
        svc.resolver.invalidate(manager.current())
        try:
            manager.clear_token()
        except Exception as exc:
            logger.warning("Token clear failed during logout: %s", exc.__class__.__name__)
    sid = getattr(request.state, "browser_session_id", None)
    if sid:
        try:
            svc.session_store.delete(sid)
        except Exception as exc:
            logger.warning("Session delete failed during logout: %s", exc.__class__.__name__)
    resp = RedirectResponse(url=LOGIN_PATH, status_code=302, headers={"Cache-Control": NO_STORE})
    clear_session_cookie(resp, svc.settings.environment)
    return resp


@auth_router.get("/auth/forgot-password")
async def forgot_password_page(request: Request):
    return layout_response(request, "Forgot password", ForgotPasswordForm().render())


@auth_router.post("/auth/forgot-password")
async def forgot_password(request: Request):
    if not is_same_origin(request):
        return layout_response(request, "Forgot password", ForgotPasswordForm(error=ORIGIN_REJECTED).render(), status_code=403)
    values = await _form_values(request)
    email = values.get("email", "").strip()
    field_errors = _required(values, "email")
    if field_errors:
        form = ForgotPasswordForm(values={"email": email}, field_errors=field_errors)
        return layout_response(request, "Forgot password", form.render(), status_code=400)
    try:
        message = await services(request).client.forgot_password(email=email)
    except ValidationFailed as exc:
        form = ForgotPasswordForm(values={"email": email}, error=exc.message)
        return layout_response(request, "Forgot password", form.render(), status_code=400)
    return layout_response(request, "Forgot password", ForgotPasswordForm(notice=message or FORGOT_PASSWORD_NOTICE).render())


@auth_router.get("/auth/reset-password")
async def reset_password_page(request: Request, token: str = ""):
    return layout_response(request, "Reset password", ResetPasswordForm(values={"token": token}).render())


@auth_router.post("/auth/reset-password")
async def reset_password(request: Request):
    if not is_same_origin(request):
        return layout_response(request, "Reset password", ResetPasswordForm(error=ORIGIN_REJECTED).render(), status_code=403)
    values = await _form_values(request)
    keep = {"token": values.get("token", "")}
    field_errors = _required(values, "newPassword")
    if not keep["token"]:
        form = ResetPasswordForm(values=keep, error="This reset link is invalid. Request a new one.")
        return layout_response(request, "Reset password", form.render(), status_code=400)
    if field_errors:
        form = ResetPasswordForm(values=keep, field_errors=field_errors)
        return layout_response(request, "Reset password", form.render(), status_code=400)
    try:
        message = await services(request).client.reset_password(token=keep["token"], new_password=values["newPassword"])
    except (ValidationFailed, AuthenticationRejected) as exc:
        # A rejected reset token is not a session event; stay on the form.
        form = ResetPasswordForm(values=keep, error=exc.message)
        return layout_response(request, "Reset password", form.render(), status_code=400)
    notice = message or "Your password has been updated. You can sign in now."
    return layout_response(request, "Sign in", LoginForm(notice=notice).render())
