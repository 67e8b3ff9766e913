"""Auth API: landing-URL bootstrap, login/logout across both stores, context."""

from dataclasses import asdict
from typing import Annotated

from fastapi import APIRouter, Depends

from crm_gateway.api.v1.dependencies import (
    get_auth_context_merger,
    get_auth_context_store,
    get_auth_service,
)
from crm_gateway.application.services.auth_context import AuthContextMerger, AuthContextStore
from crm_gateway.application.services.auth_service import AuthService
from crm_gateway.schemas.auth import (
    AuthContextResponse,
    BootstrapRequest,
    BootstrapResponse,
    LoginRequest,
    LogoutResponse,
)
from crm_gateway.schemas.envelope import EnvelopeResponse

router = APIRouter()


@router.post("/bootstrap", response_model=BootstrapResponse)
async def bootstrap(
    body: BootstrapRequest,
    merger: Annotated[AuthContextMerger, Depends(get_auth_context_merger)],
):
    """Pick the session's auth method from the landing URL and try auto-login.

    Failed auto-login is not an error: the response asks for the manual form.
    """
    result = await merger.bootstrap(body.url)
    return BootstrapResponse.model_validate(asdict(result))


@router.post("/login", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def login(
    body: LoginRequest,
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Log in to the primary API, then to the document store (best effort)."""
    envelope = await auth_service.login(body.model_dump())
    return EnvelopeResponse.model_validate(envelope.to_dict())


@router.post("/logout", response_model=LogoutResponse, response_model_exclude_unset=True)
async def logout(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
):
    """Log out of both stores. The session's auth context is always cleared."""
    envelope, secondary = await auth_service.logout()
    return LogoutResponse(
        primary=EnvelopeResponse.model_validate(envelope.to_dict()),
        secondary_ok=secondary.remote_ok,
        secondary_error=secondary.error,
    )


@router.get("/context", response_model=AuthContextResponse)
async def get_context(
    store: Annotated[AuthContextStore, Depends(get_auth_context_store)],
):
    """Current session's auth method, tenant and email."""
    context = store.read()
    return AuthContextResponse(
        auth_method=context.auth_method,
        tenant_id=context.tenant_id,
        user_email=context.user_email,
    )
