"""
Navigation filter tests: the sidebar shows exactly the allowed sections.
"""

from __future__ import annotations

from admin_console.identity_access.domain import DEFAULT_TAB_CATALOG
from admin_console.web.components.navigation import MENU_ITEMS, Navigation, filter_menu, menu_item_for


def test_menu_covers_catalog_in_order():
    assert tuple(item.tab_key for item in MENU_ITEMS) == DEFAULT_TAB_CATALOG


def test_filter_keeps_menu_order_and_only_allowed_items():
    items = filter_menu(MENU_ITEMS, ["blogs", "overview", "users"])
    assert [item.tab_key for item in items] == ["overview", "users", "blogs"]


def test_filter_with_no_tabs_is_empty():
    assert filter_menu(MENU_ITEMS, []) == []


def test_rendered_sidebar_omits_disallowed_links():
    html = Navigation(["overview", "products"], "/dashboard/products", email="ed@example.com").render()
    assert 'href="/dashboard/products"' in html
    assert 'href="/dashboard/users"' not in html
    assert 'href="/dashboard/blogs"' not in html
    assert 'href="/auth/logout"' in html


def test_active_link_uses_best_prefix_match():
    nav = Navigation(["overview", "users"], "/dashboard/users/a1/edit")
    assert nav.active_href() == "/dashboard/users"
    assert 'aria-current="page"' in nav.render()


def test_overview_is_only_active_on_exact_path():
    assert Navigation(["overview"], "/dashboard").active_href() == "/dashboard"
    assert Navigation(["overview"], "/dashboard/blogs").active_href() is None


def test_email_is_escaped():
    html = Navigation(["overview"], "/dashboard", email="<b>x</b>@example.com").render()
    assert "<b>x</b>" not in html
    assert "&lt;b&gt;" in html


def test_menu_item_lookup():
    assert menu_item_for("case-studies").label == "Case studies"
    assert menu_item_for("reports") is None
