from typing import Optional

from .base import Component


class Alert(Component):
    """Inline status message ("error", "warning" or "success")."""

    def __init__(self, message: Optional[str], kind: str = "error") -> None:
        self.message = message
        self.kind = kind

    def render(self) -> str:
        if not self.message:
            return ""
        role = "alert" if self.kind == "error" else "status"
        attrs = self.attributes(class_=f"alert alert--{self.kind}", role=role)
        return f"<div {attrs}>{self.escape(self.message)}</div>"
