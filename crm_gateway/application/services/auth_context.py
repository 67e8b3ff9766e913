"""Auth context: which of token SSO, email SSO or manual login a session uses.

The context lives in session-scoped storage under four keys (authToken,
authMethod, tenantId, userEmail). AuthContextStore is the only code that
touches those keys. AuthContextMerger runs once on initial load: it inspects
the landing URL, picks the method, drives the matching login and works out
where to send the user afterwards.

Precedence on load: token + user id > email > manual. Auth query parameters
never survive into the redirect target.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import dataclass
from urllib.parse import parse_qsl, urlencode, urlsplit

from crm_gateway.application.dtos.auth import AuthContext, BootstrapResult, LoginPrefill
from crm_gateway.application.interfaces.stores import ISessionGuard
from crm_gateway.domain.enums import AuthMethod
from crm_gateway.domain.exceptions import AuthError

logger = logging.getLogger(__name__)

AUTH_TOKEN_KEY = "authToken"
AUTH_METHOD_KEY = "authMethod"
TENANT_ID_KEY = "tenantId"
USER_EMAIL_KEY = "userEmail"
AUTH_CONTEXT_KEYS = (AUTH_TOKEN_KEY, AUTH_METHOD_KEY, TENANT_ID_KEY, USER_EMAIL_KEY)

# Query parameters that carry auth context; stripped before any redirect.
AUTH_QUERY_PARAMS = frozenset({"token", "userId", "uid", "tenant", "db", "email", "user"})


class AuthContextStore:
    """Read/write/clear access to the auth context in session storage."""

    def __init__(self, storage: MutableMapping[str, str]) -> None:
        self._storage = storage

    def read(self) -> AuthContext:
        raw_method = self._storage.get(AUTH_METHOD_KEY)
        method = (
            AuthMethod(raw_method) if raw_method in AuthMethod.values() else AuthMethod.MANUAL
        )
        return AuthContext(
            auth_method=method,
            tenant_id=self._storage.get(TENANT_ID_KEY),
            user_email=self._storage.get(USER_EMAIL_KEY),
        )

    @property
    def token(self) -> str | None:
        return self._storage.get(AUTH_TOKEN_KEY)

    def write(
        self,
        method: AuthMethod,
        *,
        token: str | None = None,
        tenant_id: str | None = None,
        user_email: str | None = None,
    ) -> AuthContext:
        """Replace the stored context (one active method at a time)."""
        self.clear()
        self._storage[AUTH_METHOD_KEY] = method.value
        if token:
            self._storage[AUTH_TOKEN_KEY] = token
        if tenant_id:
            self._storage[TENANT_ID_KEY] = tenant_id
        if user_email:
            self._storage[USER_EMAIL_KEY] = user_email
        return self.read()

    def clear(self) -> None:
        for key in AUTH_CONTEXT_KEYS:
            self._storage.pop(key, None)


@dataclass(frozen=True)
class LandingParams:
    """Auth inputs found in the landing URL."""

    token: str | None = None
    user_id: str | None = None
    tenant_id: str | None = None
    email: str | None = None


def _first(params: dict[str, str], *names: str) -> str | None:
    for name in names:
        value = params.get(name)
        if value:
            return value
    return None


def parse_landing_params(url: str) -> LandingParams:
    params = dict(parse_qsl(urlsplit(url).query))
    return LandingParams(
        token=_first(params, "token"),
        user_id=_first(params, "userId", "uid"),
        tenant_id=_first(params, "tenant", "db"),
        email=_first(params, "email", "user"),
    )


def strip_auth_params(url: str) -> str:
    """Return the in-app path of `url` without any auth query parameter.

    Example:
        >>> strip_auth_params("/invoice/read/9?token=abc&userId=42&tab=items")
        '/invoice/read/9?tab=items'
    """
    parts = urlsplit(url)
    kept = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k not in AUTH_QUERY_PARAMS]
    path = parts.path or "/"
    if kept:
        path = f"{path}?{urlencode(kept)}"
    if parts.fragment:
        path = f"{path}#{parts.fragment}"
    return path


class AuthContextMerger:
    """Chooses the session's auth method on initial load and runs its login."""

    def __init__(
        self,
        guard: ISessionGuard,
        store: AuthContextStore,
        fallback_credentials: tuple[str, str] | None = None,
    ) -> None:
        self._guard = guard
        self._store = store
        self._fallback_credentials = fallback_credentials

    def _prefill(self) -> LoginPrefill:
        if self._fallback_credentials is None:
            return LoginPrefill()
        email, password = self._fallback_credentials
        return LoginPrefill(email=email, password=password)

    def _manual(self, method: AuthMethod, params: LandingParams, error: str | None = None) -> BootstrapResult:
        return BootstrapResult(
            auth_method=method,
            authenticated=False,
            show_login_form=True,
            prefill=self._prefill(),
            tenant_id=params.tenant_id,
            user_email=params.email,
            error=error,
        )

    async def bootstrap(self, url: str) -> BootstrapResult:
        """Inspect the landing URL, persist the chosen method and try auto-login.

        Auto-login failures are not fatal: they are logged and the caller gets
        the manual login form pre-filled with the fallback credentials.
        """
        params = parse_landing_params(url)
        if params.token and params.user_id:
            method = AuthMethod.TOKEN
            self._store.write(method, token=params.token, tenant_id=params.tenant_id)
        elif params.email:
            if params.token:
                logger.warning("Token in URL without a user id; using email sign-in")
            method = AuthMethod.EMAIL
            self._store.write(method, tenant_id=params.tenant_id, user_email=params.email)
        else:
            if params.token:
                logger.warning("Token in URL without a user id; manual login required")
            return self._manual(AuthMethod.MANUAL, params)

        try:
            if method is AuthMethod.TOKEN:
                await self._guard.login_with_token(params.user_id, params.token)
            else:
                if self._fallback_credentials is None:
                    raise AuthError("No fallback credentials configured for email sign-in")
                await self._guard.login(*self._fallback_credentials)
        except AuthError as e:
            logger.warning("Auto-login via %s failed: %s", method.value, e.message)
            return self._manual(method, params, error=e.message)

        logger.info("Auto-login via %s succeeded (tenant=%s)", method.value, params.tenant_id)
        return BootstrapResult(
            auth_method=method,
            authenticated=True,
            redirect_to=strip_auth_params(url),
            tenant_id=params.tenant_id,
            user_email=params.email,
        )
