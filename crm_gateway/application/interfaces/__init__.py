"""Application interfaces (ports) for store clients and session storage."""

from crm_gateway.application.interfaces.stores import (
    IAuthProvider,
    ICollectionResolver,
    IDocumentStore,
    IPrimaryCrudClient,
    ISessionGuard,
)

__all__ = [
    "IAuthProvider",
    "ICollectionResolver",
    "IDocumentStore",
    "IPrimaryCrudClient",
    "ISessionGuard",
]
