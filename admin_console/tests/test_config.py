"""
Security config guard and settings tests.

Production/staging must fail fast on a plaintext Credential Store URL,
process-local sessions without explicit opt-in, or TLS-disabled DSNs, while
development stays permissive.
"""
from __future__ import annotations

import pytest

from admin_console.web import config as cfg
from admin_console.web.auth_utils import cookie_opts


def _prod(monkeypatch: pytest.MonkeyPatch, **env: str) -> None:
    monkeypatch.setenv("CONSOLE_ENV", "prod")
    monkeypatch.setenv("CREDENTIAL_STORE_URL", "https://store.example.com/api")
    monkeypatch.setenv("SESSIONS_BACKEND", "db")
    for key, value in env.items():
        monkeypatch.setenv(key, value)


def test_dev_is_permissive(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CONSOLE_ENV", "dev")
    monkeypatch.setenv("CREDENTIAL_STORE_URL", "http://localhost:8080/api")
    cfg.ensure_secure_config_on_startup()


def test_prod_with_secure_settings_starts(monkeypatch: pytest.MonkeyPatch):
    _prod(monkeypatch, DATABASE_URL="postgresql://u:p@db/console?sslmode=require")
    cfg.ensure_secure_config_on_startup()


def test_prod_requires_https_store(monkeypatch: pytest.MonkeyPatch):
    _prod(monkeypatch, CREDENTIAL_STORE_URL="http://store.example.com/api")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_prod_requires_db_sessions_unless_opted_out(monkeypatch: pytest.MonkeyPatch):
    _prod(monkeypatch, SESSIONS_BACKEND="memory")
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()
    monkeypatch.setenv("ALLOW_MEMORY_SESSIONS", "true")
    cfg.ensure_secure_config_on_startup()


@pytest.mark.parametrize("key", ["DATABASE_URL", "SESSION_DATABASE_URL"])
def test_prod_rejects_tls_disabled_dsn(monkeypatch: pytest.MonkeyPatch, key: str):
    _prod(monkeypatch, **{key: "postgresql://u:p@db/console?sslmode=disable"})
    with pytest.raises(SystemExit):
        cfg.ensure_secure_config_on_startup()


def test_load_settings_defaults():
    settings = cfg.load_settings()
    assert settings.environment == "dev"
    assert settings.credential_store_url == "http://localhost:8080/api"
    assert settings.identity_cache_ttl == 300
    assert settings.sessions_backend == "memory"
    assert settings.is_prod_like is False


def test_load_settings_reads_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("CONSOLE_ENV", "Staging")
    monkeypatch.setenv("IDENTITY_CACHE_TTL_SECONDS", "60")
    monkeypatch.setenv("CREDENTIAL_STORE_TIMEOUT", "2.5")
    settings = cfg.load_settings()
    assert settings.environment == "staging"
    assert settings.is_prod_like is True
    assert settings.identity_cache_ttl == 60
    assert settings.credential_store_timeout == 2.5


@pytest.mark.parametrize("raw", ["soon", "0", "-5"])
def test_invalid_numbers_abort(monkeypatch: pytest.MonkeyPatch, raw: str):
    monkeypatch.setenv("IDENTITY_CACHE_TTL_SECONDS", raw)
    with pytest.raises(SystemExit):
        cfg.load_settings()


def test_cookie_flags_are_hardened_in_every_environment():
    assert cookie_opts("dev") == {"secure": True, "samesite": "lax"}
    assert cookie_opts("prod") == {"secure": True, "samesite": "lax"}
