"""DTOs for the browser-session auth context and login bootstrap."""

from __future__ import annotations

from dataclasses import dataclass

from crm_gateway.domain.enums import AuthMethod


@dataclass(frozen=True)
class AuthContext:
    """Session-scoped auth record (one active method at a time)."""

    auth_method: AuthMethod = AuthMethod.MANUAL
    tenant_id: str | None = None
    user_email: str | None = None


@dataclass(frozen=True)
class LoginPrefill:
    """Values shown in the manual login form."""

    email: str = ""
    password: str = ""


@dataclass(frozen=True)
class BootstrapResult:
    """Outcome of inspecting the landing URL on initial load.

    On success `redirect_to` is the page originally requested with every
    auth query parameter removed. When `show_login_form` is set the frontend
    renders the manual form pre-filled with `prefill`.
    """

    auth_method: AuthMethod
    authenticated: bool
    redirect_to: str | None = None
    show_login_form: bool = False
    prefill: LoginPrefill | None = None
    tenant_id: str | None = None
    user_email: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class LogoutResult:
    """Result of a best-effort logout. Local state is always cleared."""

    remote_ok: bool
    error: str | None = None
