"""
Form field components.

Small components that keep label, input, help and error markup consistent
across the auth and roster forms.
"""

from typing import Iterable, Optional, Sequence, Tuple

from ..base import Component


class FormField(Component):
    """Wrapper that renders label, input slot, help, and error text."""

    def __init__(
        self,
        field_id: str,
        label: str,
        *,
        required: bool = False,
        help_text: Optional[str] = None,
        error_text: Optional[str] = None,
    ) -> None:
        self.field_id = field_id
        self.label = label
        self.required = required
        self.help_text = help_text
        self.error_text = error_text

    def _describedby(self) -> Optional[str]:
        ids = []
        if self.help_text:
            ids.append(f"{self.field_id}-help")
        if self.error_text:
            ids.append(f"{self.field_id}-error")
        return " ".join(ids) or None

    def render(self, input_html: str) -> str:
        state_class = " form-field--error" if self.error_text else ""
        required_marker = '<span class="form-required" aria-hidden="true">*</span>' if self.required else ""
        help_html = (
            f'<p class="form-help" id="{self.field_id}-help">{self.escape(self.help_text)}</p>'
            if self.help_text
            else ""
        )
        error_html = (
            f'<p class="form-error" role="alert" id="{self.field_id}-error">{self.escape(self.error_text)}</p>'
            if self.error_text
            else ""
        )
        label_attrs = self.attributes(for_=self.field_id, class_="form-label")
        return (
            f'<div class="form-field{state_class}">'
            f"<label {label_attrs}>{self.escape(self.label)}{required_marker}</label>"
            f"{input_html}{help_html}{error_html}"
            "</div>"
        )


class TextInputField(FormField):
    """Single-line input ('text', 'email' or 'password')."""

    def render(
        self,
        *,
        value: str = "",
        input_type: str = "text",
        autocomplete: Optional[str] = None,
        **attrs: str,
    ) -> str:
        input_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            type=input_type,
            # Password values are never echoed back into the page.
            value=None if input_type == "password" else value,
            autocomplete=autocomplete,
            required=self.required,
            aria_describedby=self._describedby(),
            aria_invalid="true" if self.error_text else "false",
            **attrs,
        )
        return super().render(f"<input {input_attrs}>")


class SelectField(FormField):
    """Drop-down over (value, label) options."""

    def render(self, options: Sequence[Tuple[str, str]], *, selected: str = "") -> str:
        opts = "".join(
            f"<option {self.attributes(value=value, selected=value == selected)}>{self.escape(label)}</option>"
            for value, label in options
        )
        select_attrs = self.attributes(
            id=self.field_id,
            name=self.field_id,
            aria_describedby=self._describedby(),
        )
        return super().render(f"<select {select_attrs}>{opts}</select>")


class CheckboxGroupField(FormField):
    """A fieldset of checkboxes sharing one form name."""

    def render(self, options: Sequence[Tuple[str, str]], *, checked: Iterable[str] = ()) -> str:
        checked_set = set(checked)
        boxes = []
        for value, label in options:
            box_id = f"{self.field_id}-{value}"
            attrs = self.attributes(
                type="checkbox",
                id=box_id,
                name=self.field_id,
                value=value,
                checked=value in checked_set,
            )
            boxes.append(
                f'<label class="checkbox" for="{self.escape(box_id)}"><input {attrs}> {self.escape(label)}</label>'
            )
        return super().render(f'<div class="checkbox-group">{"".join(boxes)}</div>')


class SubmitButton(Component):
    def __init__(self, label: str, *, variant: str = "primary") -> None:
        self.label = label
        self.variant = variant

    def render(self) -> str:
        attrs = self.attributes(type="submit", class_=f"button button--{self.variant}")
        return f"<button {attrs}>{self.escape(self.label)}</button>"
