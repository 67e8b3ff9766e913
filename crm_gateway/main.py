"""FastAPI application entry point.

Wiring only: logging, lifespan, exception handlers, middleware, routers.
See crm_gateway.core.lifespan and crm_gateway.core.exception_handlers.

Settings are loaded inside create_app() so that tests can set env (and
clear the get_settings cache) before calling create_app().
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from crm_gateway.api.v1 import api_router, ws_router
from crm_gateway.core.config import get_settings
from crm_gateway.core.exception_handlers import register_exception_handlers
from crm_gateway.core.lifespan import create_lifespan
from crm_gateway.middleware import SessionIDMiddleware
from crm_gateway.shared.telemetry.logging import setup_logging


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    settings = get_settings()
    setup_logging()
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        debug=settings.debug,
        lifespan=create_lifespan,
    )

    register_exception_handlers(app)

    # First added = innermost. CORS must see the session header on preflight.
    app.add_middleware(
        SessionIDMiddleware,
        session_header=settings.session_header_name,
        request_id_header=settings.request_id_header,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in settings.allowed_origins.split(",") if o.strip()],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=[settings.session_header_name, settings.request_id_header],
    )

    app.include_router(api_router, prefix="/api/v1")
    app.include_router(ws_router, prefix="/ws")

    return app


app = create_app()
