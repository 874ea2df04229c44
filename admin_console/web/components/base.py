"""
Base class for the console's server-rendered components.

Components are plain Python objects with a `render()` method returning HTML.
All dynamic text goes through `escape`; attribute values through `attributes`.
"""

from typing import Any, Optional
import html


class Component:
    """Base class for all console UI components."""

    def render(self) -> str:
        raise NotImplementedError("Subclasses must implement render()")

    @staticmethod
    def escape(text: Optional[Any]) -> str:
        """Escape HTML entities; `None` renders as the empty string."""
        return html.escape(str(text)) if text is not None else ""

    @staticmethod
    def classes(*args: str, **conditionals: bool) -> str:
        """Build a class string from fixed and conditional class names.

        Example:
            >>> Component.classes("menu-link", active=True, muted=False)
            'menu-link active'
        """
        names = [name for name in args if name]
        names.extend(key.replace("_", "-") for key, value in conditionals.items() if value)
        return " ".join(names)

    @staticmethod
    def attributes(**attrs: Any) -> str:
        """Build an HTML attribute string.

        A trailing underscore escapes reserved names (`class_`, `for_`); inner
        underscores become hyphens (`aria_label` -> `aria-label`). `True`
        renders a bare boolean attribute, `False`/`None` drop the attribute.

        Example:
            >>> Component.attributes(name="role", required=True, disabled=False)
            'name="role" required'
        """
        result = []
        for key, value in attrs.items():
            if key.endswith("_"):
                key = key[:-1]
            else:
                key = key.replace("_", "-")
            if value is True:
                result.append(key)
            elif value is not False and value is not None:
                result.append(f'{key}="{html.escape(str(value))}"')
        return " ".join(result)
