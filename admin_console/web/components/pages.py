"""Page bodies that are not forms: overview, section placeholder, error."""

from typing import Sequence

from .base import Component
from .navigation import MenuItem


class OverviewPage(Component):
    def __init__(self, email: str, role_label: str, sections: Sequence[MenuItem]) -> None:
        self.email = email
        self.role_label = role_label
        self.sections = sections

    def render(self) -> str:
        cards = "".join(
            f'<li><a class="card-link" href="{self.escape(item.href)}">{self.escape(item.label)}</a></li>'
            for item in self.sections
            if item.tab_key != "overview"
        )
        body = f'<ul class="section-grid">{cards}</ul>' if cards else '<p class="empty-state">No sections are assigned to your account.</p>'
        return f"""
<section class="overview">
    <h1>Welcome back</h1>
    <p class="muted">Signed in as {self.escape(self.email)} ({self.escape(self.role_label)}).</p>
    {body}
</section>"""


class SectionPage(Component):
    """Landing page of a content section; its records live in their own module."""

    def __init__(self, item: MenuItem) -> None:
        self.item = item

    def render(self) -> str:
        return f"""
<section class="section" data-tab="{self.escape(self.item.tab_key)}">
    <h1>{self.escape(self.item.label)}</h1>
    <p class="empty-state">Nothing to show yet.</p>
</section>"""


class ErrorPage(Component):
    def __init__(self, heading: str, message: str, *, retry_href: str = "") -> None:
        self.heading = heading
        self.message = message
        self.retry_href = retry_href

    def render(self) -> str:
        retry = (
            f'<p><a class="button button--primary" href="{self.escape(self.retry_href)}">Try again</a></p>'
            if self.retry_href
            else ""
        )
        return f"""
<section class="error-page" role="alert">
    <h1>{self.escape(self.heading)}</h1>
    <p>{self.escape(self.message)}</p>
    {retry}
</section>"""
