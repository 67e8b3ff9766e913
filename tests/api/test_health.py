"""Smoke tests for health endpoints and app wiring."""

import pytest
from httpx import AsyncClient

from crm_gateway.core.config import get_settings


async def test_health_returns_ok(client: AsyncClient) -> None:
    """GET /api/v1/health returns 200 and status ok."""
    response = await client.get("/api/v1/health")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


async def test_health_issues_session_and_request_ids(client: AsyncClient) -> None:
    response = await client.get("/api/v1/health", headers={"X-Session-ID": "tab-1"})
    assert response.headers["X-Session-ID"] == "tab-1"
    assert response.headers["X-Request-ID"]


async def test_ready_requires_document_store_configuration(client: AsyncClient) -> None:
    """Project id is unset in tests, so readiness reports it."""
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 503
    assert "APPWRITE_PROJECT_ID" in response.json()["message"]


async def test_ready_when_configured(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("APPWRITE_PROJECT_ID", "project-1")
    get_settings.cache_clear()
    response = await client.get("/api/v1/health/ready")
    assert response.status_code == 200
    assert response.json() == {"status": "ok"}
