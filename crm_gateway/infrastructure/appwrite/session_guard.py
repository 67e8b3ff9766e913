"""Session guard for the document store.

Every store operation calls ensure_auth() first. The guard re-checks the
remote session on every call (no success caching) and, when there is none,
establishes one: a remembered token exchange first, then the configured
fallback email/password, otherwise AuthError.

A guard is built per request for one browser session. Sessions that belong
to a user (token logins) are kept in that browser session's state; the
session opened with the fallback service account is shared through
ServiceSession, since every caller without a session of its own uses it.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from typing import Any

from crm_gateway.application.dtos.auth import LogoutResult
from crm_gateway.application.interfaces.stores import IAuthProvider
from crm_gateway.domain.exceptions import AuthError, GatewayException, TransportError

logger = logging.getLogger(__name__)

STORE_SESSION_KEY = "storeSession"
TOKEN_USER_KEY = "storeTokenUser"
TOKEN_SECRET_KEY = "storeTokenSecret"
GUARD_STATE_KEYS = (STORE_SESSION_KEY, TOKEN_USER_KEY, TOKEN_SECRET_KEY)


class ServiceSession:
    """Secret of the document store session opened with the fallback credentials."""

    def __init__(self) -> None:
        self.secret: str | None = None


def session_secret(state: MutableMapping[str, str], service: ServiceSession | None) -> str | None:
    """Secret a browser session authenticates with: its own, else the service one."""
    own = state.get(STORE_SESSION_KEY)
    if own:
        return own
    return service.secret if service is not None else None


class SessionGuard:
    """Ensures a valid document-store session before store calls.

    `state` is the browser session's storage. It holds the session secret of
    a token login and the token pair (user id + secret) that is tried again
    before the fallback credentials.
    """

    def __init__(
        self,
        provider: IAuthProvider,
        fallback_credentials: tuple[str, str] | None = None,
        state: MutableMapping[str, str] | None = None,
        service_session: ServiceSession | None = None,
    ) -> None:
        self._provider = provider
        self._fallback_credentials = fallback_credentials
        self._state: MutableMapping[str, str] = state if state is not None else {}
        self._service_session = service_session

    @property
    def has_fallback_credentials(self) -> bool:
        return self._fallback_credentials is not None

    def _token_credentials(self) -> tuple[str, str] | None:
        user_id = self._state.get(TOKEN_USER_KEY)
        secret = self._state.get(TOKEN_SECRET_KEY)
        if user_id and secret:
            return user_id, secret
        return None

    def _forget_token(self) -> None:
        for key in GUARD_STATE_KEYS:
            self._state.pop(key, None)

    async def ensure_auth(self) -> None:
        """Guarantee a session for the rest of the call chain.

        Raises:
            AuthError: No session and no way to create one, or the auth
                provider is unreachable.
        """
        try:
            session = await self._provider.get_session()
        except TransportError as e:
            raise AuthError(f"Auth provider is not reachable: {e.message}") from e
        if session:
            return

        token_credentials = self._token_credentials()
        if token_credentials is not None:
            try:
                await self.login_with_token(*token_credentials)
                return
            except AuthError as e:
                logger.warning("Token re-authentication failed: %s", e.message)
                self._forget_token()

        if self._fallback_credentials is not None:
            email, password = self._fallback_credentials
            await self.login(email, password)
            return

        raise AuthError(
            "No active document store session and no credentials configured for auto-login"
        )

    async def login(self, email: str, password: str) -> None:
        """Create a session from an email/password pair.

        A session opened with the fallback credentials becomes the shared
        service session; any other stays with this browser session.

        Raises:
            AuthError: Credentials rejected or provider unreachable.
        """
        try:
            session = await self._provider.create_email_session(email, password)
        except AuthError:
            raise
        except GatewayException as e:
            raise AuthError(f"Document store login failed: {e.message}") from e
        if self._service_session is not None and (email, password) == self._fallback_credentials:
            self._service_session.secret = self._secret(session)
            self._state.pop(STORE_SESSION_KEY, None)
        else:
            self._state[STORE_SESSION_KEY] = self._secret(session)

    async def login_with_token(self, user_id: str, secret: str) -> None:
        """Exchange a user id + token secret for a session and remember the pair.

        Raises:
            AuthError: Missing input, token rejected, or provider unreachable.
        """
        if not user_id or not secret:
            raise AuthError("Token login requires both a user id and a token")
        try:
            session = await self._provider.create_token_session(user_id, secret)
        except AuthError:
            raise
        except GatewayException as e:
            raise AuthError(f"Token authentication failed: {e.message}") from e
        self._state[STORE_SESSION_KEY] = self._secret(session)
        self._state[TOKEN_USER_KEY] = user_id
        self._state[TOKEN_SECRET_KEY] = secret

    @staticmethod
    def _secret(session: dict[str, Any]) -> str:
        return str(session.get("secret") or "")

    async def logout(self) -> LogoutResult:
        """Delete this browser session's remote session; local state is cleared even if that fails.

        The shared service session is never deleted on behalf of one browser.
        """
        owns_remote = self._service_session is None or bool(self._state.get(STORE_SESSION_KEY))
        remote_error: str | None = None
        try:
            if owns_remote:
                await self._provider.delete_session()
        except GatewayException as e:
            remote_error = e.message
            logger.warning("Remote session deletion failed: %s", e.message)
        finally:
            self._forget_token()
            self._provider.clear_local_session()
        return LogoutResult(remote_ok=remote_error is None, error=remote_error)
