"""Application DTOs (no dependency on HTTP or store wire formats)."""

from crm_gateway.application.dtos.auth import (
    AuthContext,
    BootstrapResult,
    LoginPrefill,
    LogoutResult,
)
from crm_gateway.application.dtos.envelope import Pagination, ResultEnvelope
from crm_gateway.application.dtos.query import DocumentPage, Query

__all__ = [
    "AuthContext",
    "BootstrapResult",
    "DocumentPage",
    "LoginPrefill",
    "LogoutResult",
    "Pagination",
    "Query",
    "ResultEnvelope",
]
