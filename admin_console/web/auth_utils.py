"""
Shared authentication utilities for the console web adapter.

Why:
    Cookie policy and HTMX-aware redirects are needed by the middleware, the
    auth router and the route guard. Keeping them here avoids drift.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import RedirectResponse, Response

NO_STORE = "private, no-store"


def cookie_opts(environment: str) -> dict:
    """Return hardened cookie flags (dev = prod).

    Returns a mapping with keys:
      - secure: True
      - samesite: "lax"
    """
    return {"secure": True, "samesite": "lax"}


def is_htmx(request: Request) -> bool:
    return bool(request.headers.get("HX-Request"))


def redirect(
    request: Request,
    url: str,
    *,
    status_code: int = 302,
    htmx_status: int = 204,
    headers: Optional[dict] = None,
) -> Response:
    """Redirect that HTMX can follow.

    HTMX does not follow 302s for XHR swaps, so HX requests get an
    `HX-Redirect` header with `htmx_status` instead.
    """
    merged = {"Cache-Control": NO_STORE, "Vary": "HX-Request"}
    merged.update(headers or {})
    if is_htmx(request):
        merged["HX-Redirect"] = url
        return Response(status_code=htmx_status, headers=merged)
    return RedirectResponse(url=url, status_code=status_code, headers=merged)


SESSION_COOKIE_NAME = "console_session"


def set_session_cookie(response: Response, value: str, environment: str, *, max_age: Optional[int] = None) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value=value,
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        max_age=max_age,
    )


def clear_session_cookie(response: Response, environment: str) -> None:
    opts = cookie_opts(environment)
    response.set_cookie(
        key=SESSION_COOKIE_NAME,
        value="",
        httponly=True,
        secure=opts["secure"],
        samesite=opts["samesite"],
        path="/",
        expires=0,
        max_age=0,
    )
