"""
Configuration and startup security checks for the admin console.

Why: The console forwards admin credentials to the Credential Store and keeps
bearer tokens server-side. A production deployment with a plaintext store URL
or process-local sessions would leak or silently drop them. This module reads
settings from the environment and provides a single guard that enforces
minimal production safety without burdening local development.

Permissions: The caller needs no special privileges. The functions only read
environment variables; the guard raises `SystemExit` on fatal misconfiguration.
"""
from __future__ import annotations

import os
from dataclasses import dataclass

DEFAULT_CREDENTIAL_STORE_URL = "http://localhost:8080/api"
DEFAULT_CREDENTIAL_STORE_TIMEOUT = 10.0
DEFAULT_IDENTITY_CACHE_TTL = 300.0
DEFAULT_SESSION_TTL = 8 * 3600


def _is_prod_like(env: str) -> bool:
    env_l = (env or "").lower()
    return env_l in {"prod", "production", "stage", "staging"}


def _float_env(name: str, default: float) -> float:
    raw = (os.getenv(name, "") or "").strip()
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise SystemExit(f"Refusing to start: {name} must be a number (got {raw!r}).")
    if value <= 0:
        raise SystemExit(f"Refusing to start: {name} must be positive.")
    return value


@dataclass(frozen=True)
class Settings:
    environment: str = "dev"
    credential_store_url: str = DEFAULT_CREDENTIAL_STORE_URL
    credential_store_timeout: float = DEFAULT_CREDENTIAL_STORE_TIMEOUT
    identity_cache_ttl: float = DEFAULT_IDENTITY_CACHE_TTL
    session_ttl: int = DEFAULT_SESSION_TTL
    sessions_backend: str = "memory"

    @property
    def is_prod_like(self) -> bool:
        return _is_prod_like(self.environment)


def load_settings() -> Settings:
    """Build settings from the process environment (read at call time)."""
    return Settings(
        environment=(os.getenv("CONSOLE_ENV", "dev") or "dev").strip().lower(),
        credential_store_url=(os.getenv("CREDENTIAL_STORE_URL", "") or DEFAULT_CREDENTIAL_STORE_URL).strip(),
        credential_store_timeout=_float_env("CREDENTIAL_STORE_TIMEOUT", DEFAULT_CREDENTIAL_STORE_TIMEOUT),
        identity_cache_ttl=_float_env("IDENTITY_CACHE_TTL_SECONDS", DEFAULT_IDENTITY_CACHE_TTL),
        session_ttl=int(_float_env("SESSION_TTL_SECONDS", DEFAULT_SESSION_TTL)),
        sessions_backend=(os.getenv("SESSIONS_BACKEND", "memory") or "memory").strip().lower(),
    )


def ensure_secure_config_on_startup() -> None:
    """Fail fast on insecure production configuration.

    Checks (prod/stage only):
    - CREDENTIAL_STORE_URL must use https; bearer tokens travel on every call.
    - Browser sessions must be DB-backed unless ALLOW_MEMORY_SESSIONS=true.
    - DATABASE_URL / SESSION_DATABASE_URL must not disable TLS.
    """
    env = os.getenv("CONSOLE_ENV", "dev")
    if not _is_prod_like(env):
        return  # dev/test remain permissive

    url = (os.getenv("CREDENTIAL_STORE_URL", "") or DEFAULT_CREDENTIAL_STORE_URL).strip().lower()
    if not url.startswith("https://"):
        raise SystemExit(
            "Refusing to start: CREDENTIAL_STORE_URL must use https in production."
        )

    backend = (os.getenv("SESSIONS_BACKEND", "memory") or "").strip().lower()
    allow_memory = (os.getenv("ALLOW_MEMORY_SESSIONS", "false") or "").strip().lower() == "true"
    if backend != "db" and not allow_memory:
        raise SystemExit(
            "Refusing to start: SESSIONS_BACKEND=db is required in production "
            "(set ALLOW_MEMORY_SESSIONS=true for a single-instance deployment)."
        )

    for key in ("DATABASE_URL", "SESSION_DATABASE_URL"):
        if "sslmode=disable" in (os.getenv(key, "") or ""):
            raise SystemExit(
                f"Refusing to start: {key} contains sslmode=disable in production. Use sslmode=require or verify TLS."
            )
