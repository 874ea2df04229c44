"""
Dashboard routes: the overview and one landing page per content section.

The overview is reachable by every signed-in admin (it is where denied
section requests land). Every section page is guarded by its own tab key.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import HTMLResponse

from ...identity_access.domain import USERS_TAB
from ..auth_utils import redirect
from ..components.layout import role_label
from ..components.navigation import MENU_ITEMS, filter_menu, menu_item_for
from ..components.pages import ErrorPage, OverviewPage, SectionPage
from ..guard import LOGIN_PATH, current_identity, guard_section
from ..rendering import layout_response

dashboard_router = APIRouter(tags=["Dashboard"])


@dashboard_router.get("/dashboard", response_class=HTMLResponse)
async def dashboard_overview(request: Request):
    identity = await current_identity(request)
    if identity is None:
        return redirect(request, LOGIN_PATH, htmx_status=401)
    page = OverviewPage(
        identity.admin.email,
        role_label(identity.admin.role),
        filter_menu(MENU_ITEMS, identity.allowed_tabs),
    )
    return layout_response(request, "Overview", page.render(), identity=identity)


@dashboard_router.get("/dashboard/{tab_key}", response_class=HTMLResponse)
async def dashboard_section(request: Request, tab_key: str):
    item = menu_item_for(tab_key)
    if item is None or tab_key in ("overview", USERS_TAB):
        identity = await current_identity(request)
        page = ErrorPage("Not found", "This page does not exist.")
        return layout_response(request, "Not found", page.render(), identity=identity, status_code=404)
    identity, denial = await guard_section(request, tab_key)
    if denial is not None:
        return denial
    return layout_response(request, item.label, SectionPage(item).render(), identity=identity)
