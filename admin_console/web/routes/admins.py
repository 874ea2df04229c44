"""
User management routes (admin roster) under `/dashboard/users`.

Permissions:
    Every handler is guarded by the `users` tab. Role and deletion rules are
    checked by `AdminRosterManager` against counts read at request time; the
    Credential Store re-checks and its rejection is shown the same way.

Behavior:
    - Mutations follow post/redirect/get (303 to the listing) on success.
      A change to one's own role is applied and answered with an advisory
      page instead, since the next listing may no longer be reachable.
    - `PolicyDenied` re-renders the page with the reason (403), the roster is
      left unchanged. `ValidationFailed` re-renders with field errors (400).
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from ...identity_access.domain import USERS_TAB, DefaultGrant, ExplicitGrant, Grant, Role
from ...identity_access.errors import PolicyDenied, ValidationFailed
from ...identity_access.resolver import ResolvedIdentity
from ...identity_access.roster import DEFAULT_PAGE_LIMIT, self_edit_warning
from ..auth_utils import redirect
from ..components.alert import Alert
from ..components.pages import ErrorPage
from ..components.roster import AdminCreateForm, AdminEditForm, AdminTable
from ..guard import current_identity, guard_section, session_manager
from ..rendering import layout_response
from ..security import is_same_origin
from ..state import services
from .auth import ORIGIN_REJECTED

admins_router = APIRouter(tags=["Admins"])
logger = logging.getLogger("admin_console.web.admins")

USERS_PATH = "/dashboard/users"
TITLE = "User management"
SELF_EDIT_SAVED = "Your role was updated."


def _session(request: Request):
    return session_manager(request).current()  # type: ignore[union-attr]


def _grant_from_form(form: Any) -> Grant:
    mode = str(form.get("tabsMode") or "default")
    if mode == "default":
        return DefaultGrant()
    if mode == "custom":
        return ExplicitGrant(tuple(str(v) for v in form.getlist("visibleTabs")))
    raise ValidationFailed("invalid_tabs_mode", "Choose default or custom tab access.", field="visibleTabs")


def _field_errors(exc: ValidationFailed) -> Dict[str, str]:
    return {exc.field: exc.message} if exc.field else {}


async def _roster_page(
    request: Request,
    identity: ResolvedIdentity,
    *,
    page: Any = 1,
    limit: Any = DEFAULT_PAGE_LIMIT,
    error: Optional[str] = None,
    create_values: Optional[Dict[str, object]] = None,
    create_error: Optional[str] = None,
    field_errors: Optional[Dict[str, str]] = None,
    status_code: int = 200,
) -> HTMLResponse:
    roster = services(request).roster
    try:
        listing = await roster.list_admins(_session(request), page=page, limit=limit)
    except ValidationFailed as exc:
        error = exc.message
        status_code = 400
        listing = await roster.list_admins(_session(request))
    content = (
        f'<h1>{TITLE}</h1>{Alert(error).render()}'
        f'{AdminTable(listing, actor_id=identity.admin.id).render()}'
        f"{AdminCreateForm(listing.tab_catalog, values=create_values, error=create_error, field_errors=field_errors).render()}"
    )
    return layout_response(request, TITLE, content, identity=identity, status_code=status_code)


@admins_router.get(USERS_PATH, response_class=HTMLResponse)
async def admins_list(request: Request, page: str = "1", limit: str = str(DEFAULT_PAGE_LIMIT)):
    identity, denial = await guard_section(request, USERS_TAB)
    if denial is not None:
        return denial
    return await _roster_page(request, identity, page=page, limit=limit)


@admins_router.post(USERS_PATH, response_class=HTMLResponse)
async def admins_create(request: Request):
    identity, denial = await guard_section(request, USERS_TAB)
    if denial is not None:
        return denial
    if not is_same_origin(request):
        return await _roster_page(request, identity, error=ORIGIN_REJECTED, status_code=403)
    form = await request.form()
    values: Dict[str, object] = {
        "email": str(form.get("email") or "").strip(),
        "role": str(form.get("role") or Role.ADMIN.value),
        "tabsMode": str(form.get("tabsMode") or "default"),
        "visibleTabs": [str(v) for v in form.getlist("visibleTabs")],
    }
    try:
        grant = _grant_from_form(form)
        created = await services(request).roster.create_admin(
            _session(request),
            values["email"],
            str(form.get("password") or ""),
            role=Role.parse(values["role"]),
            visible_tabs=list(grant.tabs) if isinstance(grant, ExplicitGrant) else None,
        )
    except ValidationFailed as exc:
        errors = _field_errors(exc)
        return await _roster_page(
            request, identity, create_values=values, create_error=None if errors else exc.message,
            field_errors=errors, status_code=400,
        )
    except PolicyDenied as exc:
        return await _roster_page(request, identity, create_values=values, create_error=exc.reason, status_code=403)
    logger.info("Admin %s created by %s", created.id, identity.admin.id)
    return redirect(request, USERS_PATH, status_code=303)


async def _not_found(request: Request, identity: ResolvedIdentity) -> HTMLResponse:
    page = ErrorPage("Admin not found", "This admin no longer exists.", retry_href=USERS_PATH)
    return layout_response(request, TITLE, page.render(), identity=identity, status_code=404)


@admins_router.get(USERS_PATH + "/{admin_id}/edit", response_class=HTMLResponse)
async def admins_edit_form(request: Request, admin_id: str):
    identity, denial = await guard_section(request, USERS_TAB)
    if denial is not None:
        return denial
    try:
        target, catalog = await services(request).roster.get_admin(_session(request), admin_id)
    except ValidationFailed:
        return await _not_found(request, identity)
    return layout_response(request, TITLE, AdminEditForm(target, catalog).render(), identity=identity)


@admins_router.post(USERS_PATH + "/{admin_id}", response_class=HTMLResponse)
async def admins_update(request: Request, admin_id: str):
    identity, denial = await guard_section(request, USERS_TAB)
    if denial is not None:
        return denial
    roster = services(request).roster
    session = _session(request)
    try:
        target, catalog = await roster.get_admin(session, admin_id)
    except ValidationFailed:
        return await _not_found(request, identity)

    def _edit(status_code: int, **kwargs) -> HTMLResponse:
        page = AdminEditForm(target, catalog, selected_role=selected, **kwargs)
        return layout_response(request, TITLE, page.render(), identity=identity, status_code=status_code)

    form = await request.form()
    selected = str(form.get("role") or target.role.value)
    if not is_same_origin(request):
        return _edit(403, error=ORIGIN_REJECTED)
    try:
        new_role = Role.parse(selected)
        grant = _grant_from_form(form)
    except ValidationFailed as exc:
        return _edit(400, error=None if exc.field else exc.message, field_errors=_field_errors(exc))

    try:
        await roster.update_admin(
            session,
            target.id,
            role=new_role if new_role is not target.role else None,
            grant=grant,
        )
    except PolicyDenied as exc:
        return _edit(403, error=exc.reason)
    except ValidationFailed as exc:
        return _edit(400, error=None if exc.field else exc.message, field_errors=_field_errors(exc))
    logger.info("Admin %s updated by %s", target.id, identity.admin.id)
    warning = self_edit_warning(target, identity.admin, new_role)
    if warning:
        # Saved already; the sidebar reflects the new role.
        content = (
            f"<h1>{TITLE}</h1>{Alert(SELF_EDIT_SAVED, 'success').render()}{Alert(warning, 'warning').render()}"
            '<p><a href="/dashboard">Back to the dashboard</a></p>'
        )
        return layout_response(request, TITLE, content, identity=await current_identity(request) or identity)
    return redirect(request, USERS_PATH, status_code=303)


@admins_router.post(USERS_PATH + "/{admin_id}/delete", response_class=HTMLResponse)
async def admins_delete(request: Request, admin_id: str):
    identity, denial = await guard_section(request, USERS_TAB)
    if denial is not None:
        return denial
    if not is_same_origin(request):
        return await _roster_page(request, identity, error=ORIGIN_REJECTED, status_code=403)
    try:
        await services(request).roster.delete_admin(_session(request), admin_id)
    except PolicyDenied as exc:
        return await _roster_page(request, identity, error=exc.reason, status_code=403)
    except ValidationFailed as exc:
        return await _roster_page(request, identity, error=exc.message, status_code=400)
    logger.info("Admin %s deleted by %s", admin_id, identity.admin.id)
    return redirect(request, USERS_PATH, status_code=303)
