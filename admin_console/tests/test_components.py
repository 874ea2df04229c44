"""
Component rendering tests for forms and the admin table.
"""

from __future__ import annotations

from admin_console.identity_access.domain import AdminAccount, ExplicitGrant, Role
from admin_console.identity_access.roster import RosterPage
from admin_console.web.components.forms import LoginForm, ResetPasswordForm, TextInputField
from admin_console.web.components.roster import AdminEditForm, AdminTable, Pager

CATALOG = ("overview", "users", "blogs")


def test_password_value_is_never_rendered():
    html = TextInputField("password", "Password").render(value="hunter2", input_type="password")
    assert "hunter2" not in html


def test_login_form_shows_error_and_keeps_email():
    html = LoginForm(values={"email": "a@example.com"}, error="Invalid email or password.").render()
    assert 'role="alert"' in html
    assert 'value="a@example.com"' in html


def test_reset_form_carries_token_hidden():
    html = ResetPasswordForm(values={"token": "abc"}).render()
    assert 'type="hidden" name="token" value="abc"' in html
    assert 'name="newPassword"' in html


def test_admin_table_marks_current_admin_and_escapes_email():
    page = RosterPage(
        admins=[
            AdminAccount(id="a1", email="me@example.com", role=Role.SUPER_ADMIN),
            AdminAccount(id="a2", email="<x>@example.com", role=Role.EDITOR, grant=ExplicitGrant(("blogs",))),
        ],
        tab_catalog=CATALOG,
        total=2,
        page=1,
        limit=20,
        total_pages=1,
    )
    html = AdminTable(page, actor_id="a1").render()
    assert '<span class="badge">you</span>' in html
    assert "&lt;x&gt;@example.com" in html
    assert 'action="/dashboard/users/a2/delete"' in html
    assert "Custom(1)" in html


def test_empty_roster_message():
    page = RosterPage(admins=[], tab_catalog=CATALOG, total=0, page=1, limit=20, total_pages=1)
    assert "No admins found." in AdminTable(page).render()


def test_pager_links():
    html = Pager(2, 3, 10).render()
    assert 'href="/dashboard/users?page=1&amp;limit=10"' in html
    assert 'href="/dashboard/users?page=3&amp;limit=10"' in html
    assert Pager(1, 1, 10).render() == ""


def test_edit_form_preselects_explicit_grant():
    admin = AdminAccount(id="a2", email="ed@example.com", role=Role.EDITOR, grant=ExplicitGrant(("blogs",)))
    html = AdminEditForm(admin, CATALOG).render()
    assert '<option value="custom" selected>' in html
    assert 'id="visibleTabs-blogs" name="visibleTabs" value="blogs" checked' in html
