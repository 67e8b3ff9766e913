"""Application services: document transform, entity routing, auth context, debounce."""

from crm_gateway.application.services.auth_context import (
    AuthContextMerger,
    AuthContextStore,
    strip_auth_params,
)
from crm_gateway.application.services.auth_service import AuthService
from crm_gateway.application.services.debounce import Debouncer
from crm_gateway.application.services.document_transform import (
    CUSTOMER,
    TICKET,
    DocumentMapping,
    to_canonical,
    to_store_shape,
)
from crm_gateway.application.services.entity_router import ENTITY_BACKENDS, EntityRouter

__all__ = [
    "AuthContextMerger",
    "AuthContextStore",
    "AuthService",
    "CUSTOMER",
    "Debouncer",
    "DocumentMapping",
    "ENTITY_BACKENDS",
    "EntityRouter",
    "TICKET",
    "strip_auth_params",
    "to_canonical",
    "to_store_shape",
]
