"""
Admin roster components: listing table, pager and create/edit forms.

Tab access is submitted as a mode (`default` / `custom`) plus checkboxes so
the "no explicit grant" state stays distinguishable from an empty custom
grant.
"""

from typing import Dict, Optional, Sequence

from ...identity_access.domain import AdminAccount, ExplicitGrant, Role
from ...identity_access.policy import describe_grant
from ...identity_access.roster import RosterPage
from .alert import Alert
from .base import Component
from .forms.fields import CheckboxGroupField, SelectField, SubmitButton, TextInputField
from .layout import role_label
from .navigation import menu_item_for

ROLE_OPTIONS = [(role.value, role_label(role)) for role in (Role.ADMIN, Role.EDITOR, Role.SUPER_ADMIN)]
TAB_MODE_OPTIONS = [("default", "Default (all sections except user management)"), ("custom", "Custom")]


def tab_options(catalog: Sequence[str]) -> list[tuple[str, str]]:
    options = []
    for key in catalog:
        item = menu_item_for(key)
        options.append((key, item.label if item else key))
    return options


class AdminTable(Component):
    def __init__(self, page: RosterPage, *, actor_id: Optional[str] = None) -> None:
        self.page = page
        self.actor_id = actor_id

    def _row(self, admin: AdminAccount) -> str:
        grant = describe_grant(admin, self.page.tab_catalog)
        you = ' <span class="badge">you</span>' if admin.id == self.actor_id else ""
        delete_attrs = self.attributes(method="post", action=f"/dashboard/users/{admin.id}/delete", class_="inline-form")
        return (
            f'<tr id="admin-{self.escape(admin.id)}">'
            f"<td>{self.escape(admin.email)}{you}</td>"
            f"<td>{self.escape(role_label(admin.role))}</td>"
            f'<td title="{self.escape(", ".join(grant.tabs))}">{self.escape(grant.label)}</td>'
            f'<td class="actions"><a href="/dashboard/users/{self.escape(admin.id)}/edit">Edit</a>'
            f"<form {delete_attrs}>{SubmitButton('Delete', variant='danger').render()}</form></td>"
            "</tr>"
        )

    def render(self) -> str:
        if not self.page.admins:
            return '<p class="empty-state">No admins found.</p>'
        rows = "".join(self._row(admin) for admin in self.page.admins)
        return (
            '<table class="table admin-table">'
            "<thead><tr><th>Email</th><th>Role</th><th>Tabs</th><th></th></tr></thead>"
            f"<tbody>{rows}</tbody></table>"
            f"{Pager(self.page.page, self.page.total_pages, self.page.limit).render()}"
        )


class Pager(Component):
    def __init__(self, page: int, total_pages: int, limit: int) -> None:
        self.page = page
        self.total_pages = total_pages
        self.limit = limit

    def render(self) -> str:
        if self.total_pages <= 1:
            return ""
        prev_link = (
            f'<a href="/dashboard/users?page={self.page - 1}&amp;limit={self.limit}" rel="prev">Previous</a>'
            if self.page > 1
            else ""
        )
        next_link = (
            f'<a href="/dashboard/users?page={self.page + 1}&amp;limit={self.limit}" rel="next">Next</a>'
            if self.page < self.total_pages
            else ""
        )
        return (
            f'<nav class="pager" aria-label="Pagination">{prev_link}'
            f"<span>Page {self.page} of {self.total_pages}</span>{next_link}</nav>"
        )


class _GrantFields(Component):
    def __init__(self, catalog: Sequence[str], *, mode: str, checked: Sequence[str], error: Optional[str]) -> None:
        self.catalog = catalog
        self.mode = mode
        self.checked = checked
        self.error = error

    def render(self) -> str:
        mode = SelectField(
            "tabsMode", "Tab access", help_text="Ignored for super admins; they always see every section."
        ).render(TAB_MODE_OPTIONS, selected=self.mode)
        boxes = CheckboxGroupField("visibleTabs", "Custom tabs", error_text=self.error).render(
            tab_options(self.catalog), checked=self.checked
        )
        return mode + boxes


class AdminCreateForm(Component):
    def __init__(
        self,
        catalog: Sequence[str],
        *,
        values: Optional[Dict[str, object]] = None,
        error: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None,
    ) -> None:
        self.catalog = catalog
        self.values = values or {}
        self.error = error
        self.field_errors = field_errors or {}

    def render(self) -> str:
        email = TextInputField("email", "Email", required=True, error_text=self.field_errors.get("email")).render(
            value=str(self.values.get("email", "")), input_type="email", autocomplete="off"
        )
        password = TextInputField(
            "password", "Password", required=True, error_text=self.field_errors.get("password")
        ).render(input_type="password", autocomplete="new-password")
        role = SelectField("role", "Role", error_text=self.field_errors.get("role")).render(
            ROLE_OPTIONS, selected=str(self.values.get("role", Role.ADMIN.value))
        )
        checked = self.values.get("visibleTabs") or []
        grant = _GrantFields(
            self.catalog,
            mode=str(self.values.get("tabsMode", "default")),
            checked=list(checked),  # type: ignore[arg-type]
            error=self.field_errors.get("visibleTabs"),
        ).render()
        return f"""
<section class="card" id="admin-create">
    <h2>Add admin</h2>
    {Alert(self.error).render()}
    <form method="post" action="/dashboard/users" novalidate>
        {email}{password}{role}{grant}
        {SubmitButton("Create admin").render()}
    </form>
</section>"""


class AdminEditForm(Component):
    def __init__(
        self,
        admin: AdminAccount,
        catalog: Sequence[str],
        *,
        error: Optional[str] = None,
        selected_role: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None,
    ) -> None:
        self.admin = admin
        self.catalog = catalog
        self.error = error
        self.selected_role = selected_role or admin.role.value
        self.field_errors = field_errors or {}

    def render(self) -> str:
        grant = self.admin.grant
        explicit = isinstance(grant, ExplicitGrant)
        role = SelectField("role", "Role", error_text=self.field_errors.get("role")).render(
            ROLE_OPTIONS, selected=self.selected_role
        )
        tabs = _GrantFields(
            self.catalog,
            mode="custom" if explicit else "default",
            checked=grant.tabs if explicit else (),
            error=self.field_errors.get("visibleTabs"),
        ).render()
        return f"""
<section class="card" id="admin-edit">
    <h2>Edit {self.escape(self.admin.email)}</h2>
    {Alert(self.error).render()}
    <form method="post" action="/dashboard/users/{self.escape(self.admin.id)}" novalidate>
        {role}{tabs}
        {SubmitButton("Save changes").render()}
    </form>
    <p><a href="/dashboard/users">Back to user management</a></p>
</section>"""
