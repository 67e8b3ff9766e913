"""Health check endpoints. No store calls; used for liveness and readiness probes."""

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from crm_gateway.core.config import get_settings
from crm_gateway.schemas.health import (
    HealthResponse,
    ReadinessErrorResponse,
    ReadinessResponse,
)

router = APIRouter()


@router.get("", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Return simple ok status for liveness."""
    return HealthResponse()


@router.get(
    "/ready",
    response_model=ReadinessResponse,
    responses={503: {"description": "Document store not configured", "model": ReadinessErrorResponse}},
)
async def readiness_check() -> ReadinessResponse | JSONResponse:
    """Return 200 when the document store project and database are configured, else 503."""
    settings = get_settings()
    missing = [
        name
        for name, value in (
            ("APPWRITE_PROJECT_ID", settings.appwrite_project_id),
            ("APPWRITE_DATABASE_ID", settings.appwrite_database_id),
        )
        if not value
    ]
    if not missing:
        return ReadinessResponse()
    return JSONResponse(
        status_code=503,
        content=ReadinessErrorResponse(
            status="not_ready",
            message=f"Missing configuration: {', '.join(missing)}",
        ).model_dump(),
    )
