"""Unit tests for AuthService (login/logout across both stores)."""

import logging
from unittest.mock import AsyncMock

import pytest

from crm_gateway.application.dtos.auth import LogoutResult
from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.application.services.auth_context import AuthContextStore
from crm_gateway.application.services.auth_service import PRIMARY_TOKEN_KEY, AuthService
from crm_gateway.infrastructure.session import InMemorySessionStorage
from crm_gateway.domain.enums import AuthMethod
from crm_gateway.domain.exceptions import AuthError, TransportError

FALLBACK = ("service@example.com", "service-password")
CREDENTIALS = {"email": "admin@crm.test", "password": "pw", "remember": False}


@pytest.fixture
def session_guard() -> AsyncMock:
    mock = AsyncMock()
    mock.logout.return_value = LogoutResult(remote_ok=True)
    return mock


@pytest.fixture
def storage() -> dict[str, str]:
    return {}


@pytest.fixture
def service(primary, session_guard, storage) -> AuthService:
    return AuthService(primary, session_guard, AuthContextStore(storage), FALLBACK, session=storage)


@pytest.mark.asyncio
async def test_login_manual_uses_fallback_credentials(service, primary, session_guard) -> None:
    primary.login.return_value = ResultEnvelope.ok({"name": "Admin"})
    result = await service.login(CREDENTIALS)
    assert result.success is True
    primary.login.assert_awaited_once_with(CREDENTIALS)
    session_guard.login.assert_awaited_once_with(*FALLBACK)


@pytest.mark.asyncio
async def test_login_token_method_reuses_guard_token(service, primary, session_guard, storage) -> None:
    AuthContextStore(storage).write(AuthMethod.TOKEN, token="abc")
    primary.login.return_value = ResultEnvelope.ok({})
    await service.login(CREDENTIALS)
    session_guard.ensure_auth.assert_awaited_once()
    session_guard.login.assert_not_awaited()


@pytest.mark.asyncio
async def test_login_rejected_by_primary_skips_document_store(service, primary, session_guard) -> None:
    primary.login.return_value = ResultEnvelope.failed("Invalid credentials")
    result = await service.login(CREDENTIALS)
    assert result.success is False
    assert result.message == "Invalid credentials"
    session_guard.login.assert_not_awaited()


@pytest.mark.asyncio
async def test_document_store_login_failure_is_not_fatal(service, primary, session_guard, caplog) -> None:
    primary.login.return_value = ResultEnvelope.ok({})
    session_guard.login.side_effect = AuthError("Invalid credentials")
    with caplog.at_level(logging.WARNING):
        result = await service.login(CREDENTIALS)
    assert result.success is True
    assert "Document store login after primary login failed" in caplog.text


@pytest.mark.asyncio
async def test_login_primary_unreachable(service, primary) -> None:
    primary.login.side_effect = TransportError("Primary API is not reachable", "primary")
    result = await service.login(CREDENTIALS)
    assert result.success is False
    assert result.message == "Primary API is not reachable"


@pytest.mark.asyncio
async def test_logout_clears_context_even_when_primary_fails(service, primary, session_guard, storage) -> None:
    AuthContextStore(storage).write(AuthMethod.EMAIL, user_email="a@b.test", tenant_id="t")
    primary.logout.side_effect = TransportError("timeout", "primary")
    session_guard.logout.return_value = LogoutResult(remote_ok=False, error="gone")

    envelope, secondary = await service.logout()

    assert envelope.success is False
    assert secondary.remote_ok is False
    session_guard.logout.assert_awaited_once()
    assert storage == {}


@pytest.mark.asyncio
async def test_primary_token_stays_in_session_state(service, primary, storage) -> None:
    primary.login.return_value = ResultEnvelope.ok({"token": "jwt-1", "name": "Admin"})

    envelope = await service.login(CREDENTIALS)

    assert envelope.result == {"name": "Admin"}
    assert storage[PRIMARY_TOKEN_KEY] == "jwt-1"


@pytest.mark.asyncio
async def test_logout_drops_the_browser_session(primary, session_guard) -> None:
    registry = InMemorySessionStorage()
    state = registry.for_session("tab-1")
    service = AuthService(primary, session_guard, AuthContextStore(state), FALLBACK, session=state)
    primary.login.return_value = ResultEnvelope.ok({"token": "jwt-1"})
    await service.login(CREDENTIALS)
    assert "tab-1" in registry

    await service.logout()

    assert "tab-1" not in registry
    assert len(registry) == 0
