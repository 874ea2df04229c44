"""
Layout component for the admin console.

Wraps pre-rendered page content into a complete HTML document with the
identity-filtered sidebar.
"""

from typing import Optional

from ...identity_access.resolver import ResolvedIdentity
from .base import Component
from .navigation import Navigation

ROLE_LABELS = {
    "super_admin": "Super admin",
    "admin": "Admin",
    "editor": "Editor",
}


def role_label(role: object) -> str:
    value = getattr(role, "value", role)
    return ROLE_LABELS.get(str(value or ""), "Admin")


class Layout(Component):
    """Main layout component that assembles the complete page."""

    def __init__(
        self,
        title: str,
        content: str,
        identity: Optional[ResolvedIdentity] = None,
        current_path: str = "/dashboard",
        show_nav: bool = True,
    ):
        """
        Args:
            title: Page title (will be escaped)
            content: Main content HTML (pre-rendered components)
            identity: Resolved admin; the sidebar is omitted without one
            current_path: Current URL path for active navigation highlighting
            show_nav: Whether to show the sidebar (default: True)
        """
        self.title = title
        self.content = content
        self.identity = identity
        self.current_path = current_path
        self.show_nav = show_nav

    def _nav_html(self) -> str:
        if not self.show_nav or self.identity is None:
            return ""
        admin = self.identity.admin
        return Navigation(
            self.identity.allowed_tabs,
            self.current_path,
            email=admin.email,
            role_label=role_label(admin.role),
        ).render()

    def render(self) -> str:
        return f"""<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{self.escape(self.title)} - Admin</title>
    <link rel="stylesheet" href="/static/css/console.css">
</head>
<body>
    {self._nav_html()}
    <main id="main-content" class="main-content" role="main">
        {self.content}
    </main>
</body>
</html>"""

    def render_fragment(self) -> str:
        """Return only the inner content for HTMX swaps."""
        return self.content
