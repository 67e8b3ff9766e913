"""Document store (Appwrite REST) integration: client, session guard, collections."""

from crm_gateway.infrastructure.appwrite._rest_client import AppwriteRESTClient
from crm_gateway.infrastructure.appwrite.collections import (
    CollectionCache,
    CollectionResolver,
)
from crm_gateway.infrastructure.appwrite.session_guard import (
    ServiceSession,
    SessionGuard,
    session_secret,
)

__all__ = [
    "AppwriteRESTClient",
    "CollectionCache",
    "CollectionResolver",
    "ServiceSession",
    "SessionGuard",
    "session_secret",
]
