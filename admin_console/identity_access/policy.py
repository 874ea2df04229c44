"""
Authorization policy: pure functions over admin accounts and the tab catalog.

Why:
    Every consumer (navigation, route guard, roster manager, display) must
    derive access from the same rules instead of reading raw grants. Keeping
    the rules side-effect free lets us test them exhaustively without HTTP.

Rules:
    - `super_admin` always sees the full catalog.
    - Other roles with a default grant see the catalog minus `users`.
    - Other roles with an explicit grant see exactly that grant.
    - The last remaining `super_admin` can neither leave the role nor be
      deleted. Callers must pass role counts fetched at request time.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from .domain import AdminAccount, DefaultGrant, Role, USERS_TAB
from .errors import PolicyDenied


LAST_SUPER_ADMIN_REASON = "At least one super admin must remain."


@dataclass(frozen=True)
class PolicyDecision:
    allowed: bool
    reason: Optional[str] = None

    def raise_for_denial(self) -> None:
        if not self.allowed:
            raise PolicyDenied("last_super_admin", self.reason)


ALLOWED = PolicyDecision(True)


def denied(reason: str) -> PolicyDecision:
    return PolicyDecision(False, reason)


@dataclass(frozen=True)
class GrantDescription:
    label: str
    tabs: tuple[str, ...]


def default_tabs(catalog: Sequence[str]) -> tuple[str, ...]:
    """Catalog minus the admin-account management tab."""
    return tuple(key for key in catalog if key != USERS_TAB)


def effective_allowed_tabs(admin: AdminAccount, catalog: Sequence[str]) -> tuple[str, ...]:
    """Return the tabs `admin` may use right now, in catalog order.

    Explicitly granted keys the catalog does not know (yet) are kept after the
    catalog-ordered keys so an explicit grant is honoured exactly.
    """
    if admin.role is Role.SUPER_ADMIN:
        return tuple(catalog)
    grant = admin.grant
    if isinstance(grant, DefaultGrant):
        return default_tabs(catalog)
    granted = set(grant.tabs)
    ordered = [key for key in catalog if key in granted]
    known = set(ordered)
    ordered.extend(key for key in grant.tabs if key not in known)
    return tuple(ordered)


def role_counts(admins: Iterable[AdminAccount]) -> Counter:
    counts: Counter = Counter({role: 0 for role in Role})
    for admin in admins:
        counts[admin.role] += 1
    return counts


def _is_last_super_admin(admin: AdminAccount, counts: Counter) -> bool:
    return admin.role is Role.SUPER_ADMIN and counts.get(Role.SUPER_ADMIN, 0) <= 1


def can_change_role(admin: AdminAccount, counts: Counter, new_role: Optional[Role] = None) -> PolicyDecision:
    """Decide whether `admin` may leave their current role.

    `new_role` is optional: omitted means "any role other than the current
    one". Assigning the role an account already has is always allowed.
    """
    if new_role is not None and new_role is admin.role:
        return ALLOWED
    if _is_last_super_admin(admin, counts):
        return denied(f"Cannot change the role of {admin.email}: {LAST_SUPER_ADMIN_REASON}")
    return ALLOWED


def can_delete(admin: AdminAccount, counts: Counter) -> PolicyDecision:
    if _is_last_super_admin(admin, counts):
        return denied(f"Cannot delete {admin.email}: {LAST_SUPER_ADMIN_REASON}")
    return ALLOWED


def describe_grant(admin: AdminAccount, catalog: Sequence[str]) -> GrantDescription:
    """Classify a grant for display ("All", "Default", "Custom(n)").

    Presentation only; never use the label to decide access. An explicit grant
    whose set equals the default set is shown as "Default", compared as sets so
    a same-sized grant that swaps `users` in is shown as custom.
    """
    tabs = effective_allowed_tabs(admin, catalog)
    if admin.role is Role.SUPER_ADMIN:
        return GrantDescription("All", tabs)
    grant = admin.grant
    if isinstance(grant, DefaultGrant) or set(grant.tabs) == set(default_tabs(catalog)):
        return GrantDescription("Default", tabs)
    return GrantDescription(f"Custom({len(grant.tabs)})", tabs)


__all__ = [
    "LAST_SUPER_ADMIN_REASON",
    "PolicyDecision",
    "ALLOWED",
    "denied",
    "GrantDescription",
    "default_tabs",
    "effective_allowed_tabs",
    "role_counts",
    "can_change_role",
    "can_delete",
    "describe_grant",
]
