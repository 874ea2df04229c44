"""
Form components for the admin console.

Provides basic building blocks such as FormField and SubmitButton that are
used by the auth pages and the admin roster.
"""

from .fields import CheckboxGroupField, FormField, SelectField, SubmitButton, TextInputField
from .auth_forms import ForgotPasswordForm, LoginForm, ResetPasswordForm, SignupForm

__all__ = [
    "FormField",
    "TextInputField",
    "SelectField",
    "CheckboxGroupField",
    "SubmitButton",
    "LoginForm",
    "SignupForm",
    "ForgotPasswordForm",
    "ResetPasswordForm",
]
