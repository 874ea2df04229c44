"""
Identity & access core: domain types, authorization policy, Credential Store
client, session management, identity resolution and the admin roster.

Framework-agnostic; the web adapter lives in `admin_console.web`.
"""
