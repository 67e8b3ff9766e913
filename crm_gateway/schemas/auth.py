"""Auth API schemas."""

from pydantic import BaseModel, Field

from crm_gateway.domain.enums import AuthMethod
from crm_gateway.schemas.envelope import EnvelopeResponse


class BootstrapRequest(BaseModel):
    """Request body for POST /auth/bootstrap: the URL the user landed on."""

    url: str = Field(..., min_length=1, description="Landing path with query string")


class LoginPrefillSchema(BaseModel):
    email: str = ""
    password: str = ""


class BootstrapResponse(BaseModel):
    auth_method: AuthMethod
    authenticated: bool
    redirect_to: str | None = None
    show_login_form: bool = False
    prefill: LoginPrefillSchema | None = None
    tenant_id: str | None = None
    user_email: str | None = None
    error: str | None = None


class LoginRequest(BaseModel):
    """Request body for login (forwarded to the primary API)."""

    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)
    remember: bool = False


class LogoutResponse(BaseModel):
    primary: EnvelopeResponse
    secondary_ok: bool
    secondary_error: str | None = None


class AuthContextResponse(BaseModel):
    """Response for GET /auth/context."""

    auth_method: AuthMethod
    tenant_id: str | None = None
    user_email: str | None = None
