"""Admin roster service layer (list/create/update/delete admin accounts).

Why:
    Encapsulates the roster use cases so the web adapter stays thin and the
    invariant checks can be unit-tested without FastAPI.

Invariant handling:
    Role changes and deletions are checked against role counts fetched from
    the Credential Store at request time, never against a cached listing. The
    check is optimistic: the store re-validates authoritatively and its
    rejection surfaces as a normal `PolicyDenied`. A local "allowed" never
    skips the round-trip.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence

from .credential_client import UNSET, AdminsPage, CredentialStoreClient
from .domain import DEFAULT_ROLE, AdminAccount, DefaultGrant, ExplicitGrant, Grant, Role, Session
from .errors import ValidationFailed
from .policy import can_change_role, can_delete, role_counts
from .resolver import IdentityResolver

logger = logging.getLogger("admin_console.identity_access.roster")

DEFAULT_PAGE_LIMIT = 20
MAX_PAGE_LIMIT = 100

SELF_DEMOTION_WARNING = (
    "You are changing your own role. Saving may remove your access to some "
    "sections, including user management."
)


@dataclass(frozen=True)
class RosterPage:
    admins: List[AdminAccount]
    tab_catalog: tuple[str, ...]
    total: int
    page: int
    limit: int
    total_pages: int


def _positive_int(value: object, *, field: str, maximum: Optional[int] = None) -> int:
    if isinstance(value, bool):
        raise ValidationFailed(f"invalid_{field}", field=field)
    try:
        number = int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError) as exc:
        raise ValidationFailed(f"invalid_{field}", field=field) from exc
    if number < 1:
        raise ValidationFailed(f"invalid_{field}", field=field)
    if maximum is not None:
        number = min(number, maximum)
    return number


def _normalize_email(value: object) -> str:
    if not isinstance(value, str):
        raise ValidationFailed("missing_email", "Email is required.", field="email")
    email = value.strip().lower()
    if not email:
        raise ValidationFailed("missing_email", "Email is required.", field="email")
    local, _, domain = email.rpartition("@")
    if not local or not domain:
        raise ValidationFailed("invalid_email", "Enter a valid email address.", field="email")
    return email


def _require_password(value: object) -> str:
    if not isinstance(value, str) or not value:
        raise ValidationFailed("missing_password", "Password is required.", field="password")
    return value


def _check_grant(grant: Grant, catalog: Sequence[str]) -> Grant:
    if isinstance(grant, ExplicitGrant):
        unknown = [key for key in grant.tabs if key not in catalog]
        if unknown:
            raise ValidationFailed(
                "unknown_tabs", f"Unknown tabs: {', '.join(unknown)}", field="visibleTabs"
            )
    return grant


def _find(roster: AdminsPage, admin_id: str) -> AdminAccount:
    target = next((a for a in roster.admins if a.id == str(admin_id)), None)
    if target is None:
        raise ValidationFailed("not_found", "Admin not found.", field="id")
    return target


def self_edit_warning(target: AdminAccount, actor: Optional[AdminAccount], new_role: Optional[Role]) -> Optional[str]:
    """Advisory text when the signed-in admin edits their own role.

    Not an invariant: a super_admin may demote themselves while another one
    remains. The warning only makes the consequence visible.
    """
    if actor is None or target.id != actor.id:
        return None
    if new_role is None or new_role is target.role:
        return None
    return SELF_DEMOTION_WARNING


class AdminRosterManager:
    def __init__(self, client: CredentialStoreClient, resolver: Optional[IdentityResolver] = None) -> None:
        self.client = client
        self.resolver = resolver

    async def list_admins(self, session: Session, page: object = 1, limit: object = DEFAULT_PAGE_LIMIT) -> RosterPage:
        page_n = _positive_int(page, field="page")
        limit_n = _positive_int(limit, field="limit", maximum=MAX_PAGE_LIMIT)
        result = await self.client.list_admins(session, page=page_n, limit=limit_n)
        return RosterPage(
            admins=list(result.admins),
            tab_catalog=result.tab_keys,
            total=result.total,
            page=result.page,
            limit=result.limit,
            total_pages=result.total_pages,
        )

    async def _full_roster(self, session: Session) -> AdminsPage:
        """Fetch every page so counts reflect the roster right now."""
        first = await self.client.list_admins(session, page=1, limit=MAX_PAGE_LIMIT)
        admins = list(first.admins)
        page = 1
        while page < first.total_pages:
            page += 1
            nxt = await self.client.list_admins(session, page=page, limit=MAX_PAGE_LIMIT)
            if not nxt.admins:
                break
            admins.extend(nxt.admins)
        return AdminsPage(
            admins=admins,
            tab_keys=first.tab_keys,
            total=len(admins),
            page=1,
            limit=len(admins),
            total_pages=1,
        )

    async def current_role_counts(self, session: Session) -> Counter:
        roster = await self._full_roster(session)
        return role_counts(roster.admins)

    async def get_admin(self, session: Session, admin_id: str) -> tuple[AdminAccount, tuple[str, ...]]:
        """Return one admin plus the tab catalog, read fresh from the store."""
        roster = await self._full_roster(session)
        return _find(roster, admin_id), roster.tab_keys

    async def create_admin(
        self,
        session: Session,
        email: object,
        password: object,
        role: Optional[Role] = None,
        visible_tabs: Optional[Sequence[str]] = None,
        *,
        catalog: Optional[Sequence[str]] = None,
    ) -> AdminAccount:
        email_n = _normalize_email(email)
        password_n = _require_password(password)
        role_n = Role.parse(role) if role is not None else DEFAULT_ROLE
        tabs: Optional[List[str]] = None
        if visible_tabs is not None and role_n is not Role.SUPER_ADMIN:
            grant = _check_grant(ExplicitGrant(tuple(visible_tabs)), catalog or self.client.catalog)
            tabs = list(grant.tabs)
        created = await self.client.create_admin(
            session, email=email_n, password=password_n, role=role_n.value, visible_tabs=tabs
        )
        logger.info("Admin created: id=%s role=%s", created.id, created.role.value)
        return created

    async def update_admin(
        self,
        session: Session,
        admin_id: str,
        role: Optional[Role] = None,
        grant: Any = UNSET,
    ) -> AdminAccount:
        if role is None and grant is UNSET:
            raise ValidationFailed("nothing_to_update", "Choose a role or tabs to change.")
        new_role = Role.parse(role) if role is not None else None
        roster = await self._full_roster(session)
        target = _find(roster, admin_id)
        if new_role is not None:
            can_change_role(target, role_counts(roster.admins), new_role).raise_for_denial()

        effective_role = new_role or target.role
        if effective_role is Role.SUPER_ADMIN:
            # super_admin always has every tab; a submitted grant is ignored.
            grant = UNSET
            if new_role is None:
                return target
        elif grant is not UNSET:
            if not isinstance(grant, (DefaultGrant, ExplicitGrant)):
                raise ValidationFailed("invalid_visible_tabs", field="visibleTabs")
            grant = _check_grant(grant, roster.tab_keys)

        updated = await self.client.update_admin(
            session,
            target.id,
            role=new_role.value if new_role is not None else UNSET,
            grant=grant,
        )
        logger.info("Admin updated: id=%s role=%s", updated.id, updated.role.value)
        self._invalidate_identity(session)
        return updated

    async def delete_admin(self, session: Session, admin_id: str) -> None:
        roster = await self._full_roster(session)
        target = _find(roster, admin_id)
        can_delete(target, role_counts(roster.admins)).raise_for_denial()
        await self.client.delete_admin(session, target.id)
        logger.info("Admin deleted: id=%s", target.id)
        self._invalidate_identity(session)

    def _invalidate_identity(self, session: Session) -> None:
        # Any signed-in admin's grant may have changed; re-fetch on next resolve.
        if self.resolver is not None:
            self.resolver.invalidate()


__all__ = [
    "DEFAULT_PAGE_LIMIT",
    "MAX_PAGE_LIMIT",
    "SELF_DEMOTION_WARNING",
    "RosterPage",
    "self_edit_warning",
    "AdminRosterManager",
]
