from __future__ import annotations

from typing import Optional

from fastapi import Request
from fastapi.responses import HTMLResponse

from ..identity_access.resolver import ResolvedIdentity
from .auth_utils import NO_STORE, is_htmx
from .components.layout import Layout


def layout_response(
    request: Request,
    title: str,
    content: str,
    *,
    identity: Optional[ResolvedIdentity] = None,
    status_code: int = 200,
) -> HTMLResponse:
    """Render `content` inside the layout; HTMX requests get only the fragment.

    Every console page is personalized, so responses are never cached.
    """
    layout = Layout(title, content, identity=identity, current_path=request.url.path, show_nav=identity is not None)
    body = layout.render_fragment() if is_htmx(request) else layout.render()
    return HTMLResponse(body, status_code=status_code, headers={"Cache-Control": NO_STORE, "Vary": "HX-Request"})
