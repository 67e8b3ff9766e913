"""Store and auth ports for the application layer.

Protocols define the contracts infrastructure implementations fulfill.
All types reference application DTOs only; no infrastructure imports.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from crm_gateway.application.dtos.auth import LogoutResult
    from crm_gateway.application.dtos.envelope import ResultEnvelope
    from crm_gateway.application.dtos.query import DocumentPage, Query


class IDocumentStore(Protocol):
    """Secondary document database (collections of schemaless documents)."""

    async def list_collections(self, database_id: str) -> list[dict[str, Any]]:
        """Return collection descriptors (each with `$id` and `name`)."""

    async def list_documents(
        self, database_id: str, collection_id: str, queries: list[Query]
    ) -> DocumentPage:
        """Return matching documents and the total match count."""

    async def create_document(
        self, database_id: str, collection_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        """Create a document with a store-generated id; return it."""

    async def get_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> dict[str, Any]:
        """Return one document; raise NotFoundError when missing."""

    async def update_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        """Patch a document; return the updated document."""

    async def delete_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> None:
        """Delete one document."""


class IAuthProvider(Protocol):
    """Secondary store account/session API."""

    async def get_session(self) -> dict[str, Any] | None:
        """Return the current session, or None when there is none."""

    async def create_email_session(self, email: str, password: str) -> dict[str, Any]:
        """Create a session from an email/password pair."""

    async def create_token_session(self, user_id: str, secret: str) -> dict[str, Any]:
        """Exchange a user id + one-time token secret for a session."""

    async def delete_session(self) -> None:
        """Delete the current remote session."""

    def clear_local_session(self) -> None:
        """Drop any locally held session credentials."""


class ISessionGuard(Protocol):
    """Guarantees a valid secondary-store session before store calls."""

    async def ensure_auth(self) -> None:
        """Raise AuthError when no session exists and none can be established."""

    async def login(self, email: str, password: str) -> None:
        """Create a session from credentials; raise AuthError on failure."""

    async def login_with_token(self, user_id: str, secret: str) -> None:
        """Create a session by token exchange; raise AuthError on failure."""

    async def logout(self) -> LogoutResult:
        """Best-effort logout; never raises."""


class IPrimaryCrudClient(Protocol):
    """Primary CRM REST API (generic CRUD per entity)."""

    async def list(self, entity: str, page: int, items: int) -> ResultEnvelope: ...

    async def create(self, entity: str, data: dict[str, Any]) -> ResultEnvelope: ...

    async def read(self, entity: str, id: str) -> ResultEnvelope: ...

    async def update(self, entity: str, id: str, data: dict[str, Any]) -> ResultEnvelope: ...

    async def delete(self, entity: str, id: str) -> ResultEnvelope: ...

    async def search(
        self, entity: str, q: str, fields: str | None = None
    ) -> ResultEnvelope: ...

    async def filter(
        self, entity: str, field: str | None, value: str | None
    ) -> ResultEnvelope: ...

    async def login(self, credentials: dict[str, Any]) -> ResultEnvelope: ...

    async def logout(self) -> ResultEnvelope: ...


class ICollectionResolver(Protocol):
    """Maps logical collection names to physical collection ids."""

    async def resolve(self, logical_name: str, database_id: str | None = None) -> str:
        """Return the collection id; raise NotFoundError when none exists."""
