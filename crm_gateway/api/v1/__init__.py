"""API v1: REST routes under /api/v1 and the live-search websocket."""

from crm_gateway.api.v1.router import api_router, ws_router

__all__ = ["api_router", "ws_router"]
