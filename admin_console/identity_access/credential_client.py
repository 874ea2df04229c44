"""
Async HTTP client for the Credential Store (auth + admin roster endpoints).

Design:
- Framework-agnostic; the web adapter and tools both call into it.
- Uses httpx.AsyncClient. Pass `transport=` to route requests elsewhere (tests
  use `httpx.ASGITransport` against an in-process store).
- Maps HTTP outcomes onto the error taxonomy so callers never inspect status
  codes themselves:
    401            -> AuthenticationRejected
    403            -> PolicyDenied
    400/409/422    -> PolicyDenied when the body carries a policy code,
                      else ValidationFailed
    404            -> ValidationFailed("not_found")
    other / network -> TransportFailure

Security:
- Never log tokens, passwords or response bodies.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx

from .domain import (
    DEFAULT_TAB_CATALOG,
    AdminAccount,
    Session,
    admin_from_wire,
    catalog_from_wire,
    grant_to_wire,
)
from .errors import AuthenticationRejected, PolicyDenied, TransportFailure, ValidationFailed

logger = logging.getLogger("admin_console.identity_access.credential_client")

POLICY_CODES = frozenset({"policy_denied", "last_super_admin", "forbidden"})

# Sentinel for "field not submitted" in PATCH bodies.
UNSET: Any = object()


@dataclass(frozen=True)
class LoginResult:
    token: str
    admin: AdminAccount
    allowed_tabs: tuple[str, ...]


@dataclass(frozen=True)
class MeResult:
    admin: AdminAccount
    # Server-computed tabs as sent on the wire; the policy decides what counts.
    allowed_tabs_raw: Optional[tuple[str, ...]]
    catalog: Optional[tuple[str, ...]]


@dataclass(frozen=True)
class AdminsPage:
    admins: List[AdminAccount]
    tab_keys: tuple[str, ...]
    total: int
    page: int
    limit: int
    total_pages: int


def _error_details(resp: httpx.Response) -> tuple[str, Optional[str], Optional[str]]:
    try:
        body = resp.json()
    except ValueError:
        body = {}
    if not isinstance(body, dict):
        body = {}
    message = str(body.get("error") or body.get("message") or resp.reason_phrase or "request_failed")
    code = body.get("code")
    field = body.get("field")
    return message, (str(code) if code else None), (str(field) if field else None)


def raise_for_response(resp: httpx.Response) -> None:
    """Raise the taxonomy error matching an unsuccessful response."""
    if resp.status_code < 400:
        return
    message, code, field = _error_details(resp)
    status = resp.status_code
    if status == 401:
        raise AuthenticationRejected(code or "authentication_rejected", message)
    if status == 403:
        raise PolicyDenied(code or "forbidden", message)
    if status in (400, 409, 422):
        if (code or "") in POLICY_CODES or status == 409:
            raise PolicyDenied(code or "policy_denied", message)
        raise ValidationFailed(code or "invalid_request", message, field=field)
    if status == 404:
        raise ValidationFailed(code or "not_found", message, field=field)
    raise TransportFailure(code or "server_error", message, status=status)


class CredentialStoreClient:
    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        catalog: tuple[str, ...] = DEFAULT_TAB_CATALOG,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.transport = transport
        self.catalog = catalog
        self._client: Optional[httpx.AsyncClient] = None

    def _http(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=self.timeout,
                transport=self.transport,
                headers={"Accept": "application/json"},
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self,
        method: str,
        path: str,
        *,
        session: Optional[Session] = None,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
    ) -> Any:
        headers: Dict[str, str] = {}
        if session is not None:
            headers["Authorization"] = f"Bearer {session.token}"
        try:
            resp = await self._http().request(method, path, json=json, params=params, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Credential store %s %s failed: %s", method, path, exc.__class__.__name__)
            raise TransportFailure("network_error", "The credential store could not be reached.") from exc
        if resp.status_code >= 400:
            logger.info("Credential store %s %s -> %s", method, path, resp.status_code)
        raise_for_response(resp)
        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise TransportFailure("invalid_response", "Unexpected response from the credential store.") from exc

    # --- Auth -------------------------------------------------------------------

    def _login_result(self, body: Any) -> LoginResult:
        if not isinstance(body, dict) or not body.get("token"):
            raise TransportFailure("invalid_response", "Login response without token.")
        admin_raw = body.get("admin") or {}
        admin = admin_from_wire(admin_raw, grant_key="allowedTabs")
        tabs = admin_raw.get("allowedTabs") if isinstance(admin_raw, dict) else None
        return LoginResult(
            token=str(body["token"]),
            admin=admin,
            allowed_tabs=tuple(tabs or ()),
        )

    async def login(self, *, email: str, password: str) -> LoginResult:
        body = await self._request("POST", "/auth/login", json={"email": email, "password": password})
        return self._login_result(body)

    async def signup(self, *, email: str, password: str) -> LoginResult:
        body = await self._request("POST", "/auth/signup", json={"email": email, "password": password})
        return self._login_result(body)

    async def me(self, session: Session) -> MeResult:
        body = await self._request("GET", "/auth/me", session=session)
        admin_raw = (body or {}).get("admin") if isinstance(body, dict) else None
        if not isinstance(admin_raw, dict):
            raise TransportFailure("invalid_response", "Identity response without admin.")
        raw_tabs = admin_raw.get("allowedTabs")
        catalog_raw = body.get("tabKeys")
        return MeResult(
            admin=admin_from_wire(admin_raw, grant_key="allowedTabs"),
            allowed_tabs_raw=tuple(raw_tabs) if isinstance(raw_tabs, list) else None,
            catalog=catalog_from_wire(catalog_raw) if catalog_raw is not None else None,
        )

    async def forgot_password(self, *, email: str) -> str:
        body = await self._request("POST", "/auth/forgot-password", json={"email": email})
        return str((body or {}).get("message", ""))

    async def reset_password(self, *, token: str, new_password: str) -> str:
        body = await self._request(
            "POST", "/auth/reset-password", json={"token": token, "newPassword": new_password}
        )
        return str((body or {}).get("message", ""))

    # --- Admin roster -------------------------------------------------------------

    async def list_admins(self, session: Session, *, page: Optional[int] = None, limit: Optional[int] = None) -> AdminsPage:
        params: Dict[str, Any] = {}
        if page is not None:
            params["page"] = page
        if limit is not None:
            params["limit"] = limit
        body = await self._request("GET", "/admin/admins", session=session, params=params or None)
        if not isinstance(body, dict):
            raise TransportFailure("invalid_response", "Unexpected admin listing.")
        admins = [admin_from_wire(item) for item in body.get("admins") or []]
        return AdminsPage(
            admins=admins,
            tab_keys=catalog_from_wire(body.get("tabKeys"), fallback=self.catalog),
            total=int(body.get("total", len(admins))),
            page=int(body.get("page", page or 1)),
            limit=int(body.get("limit", limit or len(admins) or 1)),
            total_pages=int(body.get("totalPages", 1)),
        )

    async def create_admin(
        self,
        session: Session,
        *,
        email: str,
        password: str,
        role: Optional[str] = None,
        visible_tabs: Optional[List[str]] = None,
    ) -> AdminAccount:
        payload: Dict[str, Any] = {"email": email, "password": password}
        if role is not None:
            payload["role"] = role
        if visible_tabs is not None:
            payload["visibleTabs"] = list(visible_tabs)
        body = await self._request("POST", "/admin/admins", session=session, json=payload)
        return admin_from_wire((body or {}).get("admin"))

    async def update_admin(self, session: Session, admin_id: str, *, role: Any = UNSET, grant: Any = UNSET) -> AdminAccount:
        payload: Dict[str, Any] = {}
        if role is not UNSET:
            payload["role"] = role
        if grant is not UNSET:
            payload["visibleTabs"] = grant_to_wire(grant)
        body = await self._request("PATCH", f"/admin/admins/{admin_id}", session=session, json=payload)
        return admin_from_wire((body or {}).get("admin"))

    async def delete_admin(self, session: Session, admin_id: str) -> None:
        await self._request("DELETE", f"/admin/admins/{admin_id}", session=session)


__all__ = [
    "UNSET",
    "LoginResult",
    "MeResult",
    "AdminsPage",
    "raise_for_response",
    "CredentialStoreClient",
]
