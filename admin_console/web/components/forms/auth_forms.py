"""
Sign-in, sign-up and password reset forms.

All forms post same-origin to `/auth/*`. Field errors come from
`ValidationFailed.field`; everything else is shown in the banner.
"""

from typing import Dict, Optional

from ..alert import Alert
from ..base import Component
from .fields import SubmitButton, TextInputField


class _AuthForm(Component):
    heading = ""
    action = ""
    submit_label = ""

    def __init__(
        self,
        *,
        values: Optional[Dict[str, str]] = None,
        error: Optional[str] = None,
        field_errors: Optional[Dict[str, str]] = None,
        notice: Optional[str] = None,
    ) -> None:
        self.values = values or {}
        self.error = error
        self.field_errors = field_errors or {}
        self.notice = notice

    def _fields(self) -> str:
        raise NotImplementedError

    def _links(self) -> str:
        return ""

    def _email(self) -> str:
        return TextInputField(
            "email", "Email", required=True, error_text=self.field_errors.get("email")
        ).render(value=self.values.get("email", ""), input_type="email", autocomplete="email")

    def _password(self, field_id: str = "password", label: str = "Password", autocomplete: str = "current-password") -> str:
        return TextInputField(
            field_id, label, required=True, error_text=self.field_errors.get(field_id)
        ).render(input_type="password", autocomplete=autocomplete)

    def render(self) -> str:
        return f"""
<section class="auth-card">
    <h1>{self.escape(self.heading)}</h1>
    {Alert(self.error).render()}
    {Alert(self.notice, "success").render()}
    <form method="post" action="{self.action}" class="auth-form" novalidate>
        {self._fields()}
        {SubmitButton(self.submit_label).render()}
    </form>
    {self._links()}
</section>"""


class LoginForm(_AuthForm):
    heading = "Sign in"
    action = "/auth/login"
    submit_label = "Sign in"

    def _fields(self) -> str:
        return self._email() + self._password()

    def _links(self) -> str:
        return (
            '<p class="auth-links"><a href="/auth/forgot-password">Forgot password?</a>'
            ' · <a href="/auth/signup">Create an account</a></p>'
        )


class SignupForm(_AuthForm):
    heading = "Create account"
    action = "/auth/signup"
    submit_label = "Create account"

    def _fields(self) -> str:
        return self._email() + self._password(autocomplete="new-password")

    def _links(self) -> str:
        return '<p class="auth-links"><a href="/">Back to sign in</a></p>'


class ForgotPasswordForm(_AuthForm):
    heading = "Forgot password"
    action = "/auth/forgot-password"
    submit_label = "Send reset link"

    def _fields(self) -> str:
        return self._email()

    def _links(self) -> str:
        return '<p class="auth-links"><a href="/">Back to sign in</a></p>'


class ResetPasswordForm(_AuthForm):
    heading = "Reset password"
    action = "/auth/reset-password"
    submit_label = "Set new password"

    def _fields(self) -> str:
        token_attrs = self.attributes(type="hidden", name="token", value=self.values.get("token", ""))
        return f"<input {token_attrs}>" + self._password("newPassword", "New password", "new-password")

    def _links(self) -> str:
        return '<p class="auth-links"><a href="/">Back to sign in</a></p>'
