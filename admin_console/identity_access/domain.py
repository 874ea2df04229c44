"""
Identity domain types: roles, tab grants and admin accounts.

Why:
- Centralize the closed role set so policy functions can be checked
  exhaustively and unknown role strings never leak into authorization.
- Make the three-way `visibleTabs` flag explicit: absent means "default",
  an empty list means "explicitly no tabs", a populated list is a custom grant.

Wire helpers (`*_from_wire`) translate Credential Store payloads into these
types and raise `ValidationFailed` on malformed data instead of guessing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Optional, Sequence, Union

from .errors import ValidationFailed


class Role(str, Enum):
    """Admin roles, ordered by privilege for display only."""

    SUPER_ADMIN = "super_admin"
    ADMIN = "admin"
    EDITOR = "editor"

    @classmethod
    def parse(cls, value: object) -> "Role":
        if isinstance(value, Role):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError as exc:
            raise ValidationFailed("invalid_role", field="role") from exc


# Explicit default for new accounts when the caller does not choose a role.
DEFAULT_ROLE = Role.ADMIN

USERS_TAB = "users"

DEFAULT_TAB_CATALOG: tuple[str, ...] = (
    "overview",
    "users",
    "categories",
    "products",
    "testimonials",
    "contact",
    "newsletter",
    "blogs",
    "content",
    "case-studies",
    "events",
    "clients",
    "trusted-partners",
)


@dataclass(frozen=True)
class DefaultGrant:
    """No explicit grant stored; the policy derives the tab set."""


@dataclass(frozen=True)
class ExplicitGrant:
    """Explicitly stored tab keys (may be empty)."""

    tabs: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        # Keep first occurrence order, drop duplicates.
        object.__setattr__(self, "tabs", tuple(dict.fromkeys(self.tabs)))


Grant = Union[DefaultGrant, ExplicitGrant]


@dataclass(frozen=True)
class AdminAccount:
    id: str
    email: str
    role: Role = DEFAULT_ROLE
    grant: Grant = field(default_factory=DefaultGrant)

    @property
    def is_super_admin(self) -> bool:
        return self.role is Role.SUPER_ADMIN


@dataclass(frozen=True)
class Session:
    """Explicit session value handed to the resolver and the route guard."""

    token: str

    def __repr__(self) -> str:  # never print bearer tokens
        return "Session(token=***)"


def grant_from_wire(value: object) -> Grant:
    """Map a wire `visibleTabs` value onto the Grant variant."""
    if value is None:
        return DefaultGrant()
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ValidationFailed("invalid_visible_tabs", field="visibleTabs")
    keys = []
    for item in value:
        if not isinstance(item, str) or not item.strip():
            raise ValidationFailed("invalid_visible_tabs", field="visibleTabs")
        keys.append(item.strip())
    return ExplicitGrant(tuple(keys))


def grant_to_wire(grant: Grant) -> Optional[list[str]]:
    if isinstance(grant, ExplicitGrant):
        return list(grant.tabs)
    return None


def catalog_from_wire(value: object, fallback: Sequence[str] = DEFAULT_TAB_CATALOG) -> tuple[str, ...]:
    """Return the catalog sent by the store, or the configured fallback."""
    if value is None:
        return tuple(fallback)
    if isinstance(value, str) or not isinstance(value, Sequence):
        raise ValidationFailed("invalid_tab_catalog", field="tabKeys")
    return tuple(dict.fromkeys(str(k) for k in value if isinstance(k, str) and k))


def admin_from_wire(payload: object, *, grant_key: str = "visibleTabs") -> AdminAccount:
    """Build an AdminAccount from a Credential Store admin object.

    `grant_key` selects which list carries the raw grant: roster listings use
    `visibleTabs`, while `/auth/me` and login responses carry `allowedTabs`.
    """
    if not isinstance(payload, Mapping):
        raise ValidationFailed("invalid_admin_payload")
    admin_id = payload.get("id")
    email = payload.get("email")
    if not admin_id or not isinstance(email, str) or not email:
        raise ValidationFailed("invalid_admin_payload")
    role_raw = payload.get("role")
    role = Role.parse(role_raw) if role_raw not in (None, "") else DEFAULT_ROLE
    return AdminAccount(
        id=str(admin_id),
        email=email,
        role=role,
        grant=grant_from_wire(payload.get(grant_key)),
    )


def admin_to_dict(admin: AdminAccount) -> dict[str, Any]:
    return {
        "id": admin.id,
        "email": admin.email,
        "role": admin.role.value,
        "visibleTabs": grant_to_wire(admin.grant),
    }


__all__ = [
    "Role",
    "DEFAULT_ROLE",
    "USERS_TAB",
    "DEFAULT_TAB_CATALOG",
    "DefaultGrant",
    "ExplicitGrant",
    "Grant",
    "AdminAccount",
    "Session",
    "grant_from_wire",
    "grant_to_wire",
    "catalog_from_wire",
    "admin_from_wire",
    "admin_to_dict",
]
