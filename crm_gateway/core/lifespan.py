"""Application lifespan: startup and shutdown.

Single place for all startup/shutdown logic. Used by main.py; no business
logic here, only wiring of infrastructure (store clients, service session,
collection cache, session storage, telemetry). Session-bound collaborators
(session guard, entity router) are built per request in api/v1/dependencies.py.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from crm_gateway.core.config import get_settings
from crm_gateway.infrastructure.appwrite import (
    AppwriteRESTClient,
    CollectionCache,
    ServiceSession,
)
from crm_gateway.infrastructure.primary import PrimaryCrudClient
from crm_gateway.infrastructure.session import InMemorySessionStorage

logger = logging.getLogger(__name__)


@asynccontextmanager
async def create_lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: telemetry (if enabled, so httpx clients are instrumented),
    store clients, service session, collection cache, session storage. Shutdown order: store clients close, telemetry shutdown.
    """
    settings = get_settings()

    # ---- Startup ----
    if settings.telemetry_enabled:
        from crm_gateway.shared.telemetry.telemetry import TelemetryConfig, set_telemetry

        telemetry = TelemetryConfig(
            service_name=settings.app_name,
            service_version=settings.app_version,
            environment=settings.telemetry_environment,
        )
        telemetry.setup_telemetry(
            exporter_type=settings.telemetry_exporter,
            otlp_endpoint=settings.telemetry_otlp_endpoint,
            sample_rate=settings.telemetry_sample_rate,
        )
        set_telemetry(telemetry)
        telemetry.instrument(app)
        logger.info("Telemetry initialized")

    fallback = settings.fallback_credentials()
    app.state.document_store = AppwriteRESTClient(
        settings.appwrite_endpoint,
        settings.appwrite_project_id,
        timeout=settings.appwrite_timeout_seconds,
    )
    app.state.primary_client = PrimaryCrudClient(
        settings.primary_api_url, timeout=settings.primary_timeout_seconds
    )
    app.state.service_session = ServiceSession()
    app.state.collection_cache = CollectionCache()
    app.state.session_storage = InMemorySessionStorage(
        ttl_seconds=settings.session_ttl_seconds,
        max_sessions=settings.session_max_entries,
    )
    if fallback is None:
        logger.warning("No fallback document store credentials configured; auto-login disabled")

    yield

    # ---- Shutdown ----
    await app.state.document_store.aclose()
    await app.state.primary_client.aclose()
    logger.info("Store clients closed")

    from crm_gateway.shared.telemetry.telemetry import get_telemetry, set_telemetry

    telemetry_instance = get_telemetry()
    if telemetry_instance is not None:
        telemetry_instance.shutdown()
        set_telemetry(None)
        logger.info("Telemetry shutdown complete")
