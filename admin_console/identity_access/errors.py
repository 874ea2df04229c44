"""
Error taxonomy for the access-control core.

Why: Web adapters must react differently to each failure kind (silent
redirect, inline message, generic retry). Every error carries a stable
machine `code`, mirroring the code-carrying verification errors used
elsewhere in identity_access, so routes and tests never match on prose.
"""

from __future__ import annotations

from typing import Optional


class ConsoleError(Exception):
    """Base class for access-control failures."""

    code: str = "console_error"

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None):
        self.code = code or self.code
        self.message = message or self.code
        super().__init__(self.message)


class AuthenticationRejected(ConsoleError):
    """The bearer credential is invalid or expired (HTTP 401).

    Never retried: the session is cleared and the browser lands on sign-in.
    """

    code = "authentication_rejected"


class PolicyDenied(ConsoleError):
    """The operation would violate an authorization invariant."""

    code = "policy_denied"

    @property
    def reason(self) -> str:
        return self.message


class ValidationFailed(ConsoleError):
    """Malformed input; `field` names the offending form field when known."""

    code = "validation_failed"

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None, *, field: Optional[str] = None):
        super().__init__(code, message)
        self.field = field


class TransportFailure(ConsoleError):
    """Network or server error unrelated to authorization; safe to retry."""

    code = "transport_failure"

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None, *, status: Optional[int] = None):
        super().__init__(code, message)
        self.status = status


__all__ = [
    "ConsoleError",
    "AuthenticationRejected",
    "PolicyDenied",
    "ValidationFailed",
    "TransportFailure",
]
