"""Login/logout across both stores.

The primary API owns the user's identity; the document store session is a
follow-up established with the session's persisted auth method. A secondary
login failure never blocks a successful primary login.

The primary API's user token is kept in the browser session's state, never
returned to the browser. Logout forgets the whole browser session.
"""

from __future__ import annotations

import logging
from collections.abc import MutableMapping
from dataclasses import replace
from typing import Any

from crm_gateway.application.dtos.auth import LogoutResult
from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.application.interfaces.stores import IPrimaryCrudClient, ISessionGuard
from crm_gateway.application.services.auth_context import AuthContextStore
from crm_gateway.domain.enums import AuthMethod
from crm_gateway.domain.exceptions import AuthError, GatewayException

logger = logging.getLogger(__name__)

PRIMARY_TOKEN_KEY = "primaryToken"


class AuthService:
    def __init__(
        self,
        primary: IPrimaryCrudClient,
        guard: ISessionGuard,
        store: AuthContextStore,
        fallback_credentials: tuple[str, str] | None = None,
        session: MutableMapping[str, str] | None = None,
    ) -> None:
        self._primary = primary
        self._guard = guard
        self._store = store
        self._fallback_credentials = fallback_credentials
        self._session: MutableMapping[str, str] = session if session is not None else {}

    async def login(self, credentials: dict[str, Any]) -> ResultEnvelope:
        """Log in to the primary API, then open a document store session."""
        try:
            envelope = await self._primary.login(credentials)
        except GatewayException as e:
            logger.error("Primary login failed: %s [%s]", e.message, e.error_code)
            return ResultEnvelope.failed(e.message)
        if not envelope.success:
            return envelope
        envelope = self._keep_primary_token(envelope)

        try:
            await self._login_secondary()
        except AuthError as e:
            logger.warning("Document store login after primary login failed: %s", e.message)
        return envelope

    def _keep_primary_token(self, envelope: ResultEnvelope) -> ResultEnvelope:
        if not isinstance(envelope.result, dict):
            return envelope
        result = dict(envelope.result)
        token = result.pop("token", None)
        if token:
            self._session[PRIMARY_TOKEN_KEY] = str(token)
        return replace(envelope, result=result)

    async def _login_secondary(self) -> None:
        method = self._store.read().auth_method
        if method is AuthMethod.TOKEN:
            # The token pair from bootstrap is in the session state; the guard
            # falls back to the configured credentials on its own.
            await self._guard.ensure_auth()
            return
        if self._fallback_credentials is None:
            raise AuthError("No fallback credentials configured for the document store")
        await self._guard.login(*self._fallback_credentials)

    async def logout(self) -> tuple[ResultEnvelope, LogoutResult]:
        """Best-effort logout of both stores; the browser session is always dropped."""
        try:
            envelope = await self._primary.logout()
        except GatewayException as e:
            logger.warning("Primary logout failed: %s", e.message)
            envelope = ResultEnvelope.failed(e.message)
        try:
            secondary = await self._guard.logout()
        finally:
            self._store.clear()
            self._session.clear()
        return envelope, secondary
