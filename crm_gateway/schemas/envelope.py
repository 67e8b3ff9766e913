"""Result envelope API schemas."""

from typing import Any

from pydantic import BaseModel, Field


class PaginationSchema(BaseModel):
    page: int = Field(..., ge=1)
    count: int = Field(..., ge=0, description="Total records in the store")
    pages: int = Field(..., ge=0)


class EnvelopeResponse(BaseModel):
    """Response for every entity verb. Failures are `success=false`, not HTTP errors."""

    success: bool
    result: Any = None
    message: str | None = None
    pagination: PaginationSchema | None = None


class ManyRequest(BaseModel):
    """Request body for POST /entities/{entity}/many."""

    ids: list[str] = Field(default_factory=list, description="Document ids to fetch")
