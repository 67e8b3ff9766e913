"""API v1 router aggregation.

Includes all endpoint modules with consistent prefix and tags. The websocket
router is mounted separately under /ws by the app factory.
"""

from fastapi import APIRouter

from crm_gateway.api.v1.endpoints import auth, entities, health, search_ws

api_router = APIRouter()

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(entities.router, prefix="/entities", tags=["entities"])

ws_router = APIRouter()
ws_router.include_router(search_ws.router, tags=["websocket"])
