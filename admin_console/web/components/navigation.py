"""
Navigation component for the admin console.

The sidebar is derived from the signed-in admin's effective tabs on every
render. Items the admin may not use are omitted entirely, not disabled.
Visibility alone never grants access: the route guard re-checks each section.
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from .base import Component


@dataclass(frozen=True)
class MenuItem:
    href: str
    tab_key: str
    label: str
    # Only highlight on an exact path match (the overview is a prefix of all).
    exact: bool = False


MENU_ITEMS: tuple[MenuItem, ...] = (
    MenuItem("/dashboard", "overview", "Overview", exact=True),
    MenuItem("/dashboard/users", "users", "User management"),
    MenuItem("/dashboard/categories", "categories", "Categories"),
    MenuItem("/dashboard/products", "products", "Products"),
    MenuItem("/dashboard/testimonials", "testimonials", "Testimonials"),
    MenuItem("/dashboard/contact", "contact", "Contact details"),
    MenuItem("/dashboard/newsletter", "newsletter", "Newsletter"),
    MenuItem("/dashboard/blogs", "blogs", "Blogs & articles"),
    MenuItem("/dashboard/content", "content", "Site content"),
    MenuItem("/dashboard/case-studies", "case-studies", "Case studies"),
    MenuItem("/dashboard/events", "events", "Events"),
    MenuItem("/dashboard/clients", "clients", "Our Clients"),
    MenuItem("/dashboard/trusted-partners", "trusted-partners", "Trusted Partners"),
)


def filter_menu(items: Iterable[MenuItem], allowed_tabs: Iterable[str]) -> List[MenuItem]:
    """Keep the items whose tab key is allowed, in menu order."""
    allowed = set(allowed_tabs)
    return [item for item in items if item.tab_key in allowed]


def menu_item_for(tab_key: str, items: Sequence[MenuItem] = MENU_ITEMS) -> Optional[MenuItem]:
    return next((item for item in items if item.tab_key == tab_key), None)


class Navigation(Component):
    """Sidebar with the admin's allowed sections plus a sign-out link."""

    def __init__(
        self,
        allowed_tabs: Iterable[str] = (),
        current_path: str = "/dashboard",
        *,
        email: str = "",
        role_label: str = "",
        items: Sequence[MenuItem] = MENU_ITEMS,
    ):
        self.items = filter_menu(items, allowed_tabs)
        self.current_path = current_path or "/"
        self.email = email
        self.role_label = role_label

    def active_href(self) -> Optional[str]:
        """Single active href by best prefix match."""
        best: Optional[str] = None
        for item in self.items:
            if item.href == self.current_path:
                return item.href
            if item.exact:
                continue
            if self.current_path.startswith(item.href + "/") and len(item.href) > len(best or ""):
                best = item.href
        return best

    def render(self) -> str:
        active = self.active_href()
        links = "".join(self._render_link(item, item.href == active) for item in self.items)
        return f"""
    <aside class="sidebar" id="sidebar" aria-label="Sidebar">
        <nav class="sidebar-nav" aria-label="Dashboard navigation">
            <div class="sidebar-header"><span class="sidebar-title">Admin</span></div>
            <div class="sidebar-items">{links}{self._render_logout()}</div>
            <div class="sidebar-footer">
                <div class="user-email">{self.escape(self.email)}</div>
                <div class="user-role">{self.escape(self.role_label)}</div>
            </div>
        </nav>
    </aside>"""

    def _render_link(self, item: MenuItem, is_active: bool) -> str:
        attrs = self.attributes(
            href=item.href,
            class_=self.classes("sidebar-link", active=is_active),
            data_tab=item.tab_key,
            aria_current="page" if is_active else None,
        )
        return f"<a {attrs}>{self.escape(item.label)}</a>"

    def _render_logout(self) -> str:
        # Full navigation; logout destroys the browser session.
        return '<a href="/auth/logout" class="sidebar-link sidebar-logout">Sign out</a>'
