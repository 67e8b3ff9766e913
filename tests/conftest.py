"""Pytest configuration and fixtures for the gateway.

Provides an in-memory document store (which also plays the auth provider),
a mocked primary API client, the real session guard / collection resolver /
entity router wired over them, and an HTTP client against an app whose
state holds the shared fakes (routes bind them per browser session). Every test gets a fresh collection cache.
"""

import copy
from collections.abc import AsyncIterator
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import ASGITransport, AsyncClient

from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.application.dtos.query import DocumentPage, Query
from crm_gateway.application.services.entity_router import EntityRouter
from crm_gateway.core.config import get_settings
from crm_gateway.domain.exceptions import AuthError, GatewayException, NotFoundError
from crm_gateway.infrastructure.appwrite import (
    CollectionCache,
    CollectionResolver,
    ServiceSession,
    SessionGuard,
)
from crm_gateway.infrastructure.session import InMemorySessionStorage

DATABASE_ID = "crm"
FALLBACK_CREDENTIALS = ("service@example.com", "service-password")
VALID_TOKEN = ("user-42", "token-abc")


class FakeDocumentStore:
    """In-memory document database + account API.

    Interprets the Query primitives the router sends (equal, search,
    orderDesc, limit, offset) the way the hosted store does: filters first,
    `total` counts all matches, then order and page.

    Sessions are keyed by secret. for_session() returns a copy bound to one
    secret that shares documents, sessions, call logs and counters.
    """

    def __init__(self) -> None:
        self.collections: list[dict[str, Any]] = [
            {"$id": "col-cust", "name": "customers"},
            {"$id": "col-tick", "name": "tickets"},
        ]
        self.documents: dict[str, list[dict[str, Any]]] = {}
        self.sessions: dict[str, dict[str, Any]] = {
            "session-1": {"$id": "session-1", "secret": "session-1"}
        }
        self.secret: str | None = "session-1"
        self.email_credentials = FALLBACK_CREDENTIALS
        self.tokens = {VALID_TOKEN}
        self.fail_with: GatewayException | None = None
        self.delete_session_error: GatewayException | None = None
        self.calls: list[str] = []
        self.queries: list[list[Query]] = []
        self._counters = {"seq": 0, "sessions": 0, "local_cleared": 0}

    def for_session(self, secret: str | None) -> "FakeDocumentStore":
        bound = copy.copy(self)
        bound.secret = secret or None
        return bound

    @property
    def session(self) -> dict[str, Any] | None:
        return self.sessions.get(self.secret) if self.secret else None

    @session.setter
    def session(self, value: dict[str, Any] | None) -> None:
        if value is None:
            self.sessions.pop(self.secret, None)
        else:
            self.secret = value["secret"]
            self.sessions[self.secret] = value

    @property
    def local_cleared(self) -> int:
        return self._counters["local_cleared"]

    def _open_session(self, provider: str) -> dict[str, Any]:
        self._counters["sessions"] += 1
        secret = f"secret-{self._counters['sessions']}"
        self.session = {"$id": f"session-{provider}", "provider": provider, "secret": secret}
        return dict(self.session)

    def add(self, collection_id: str, **data: Any) -> dict[str, Any]:
        """Seed a document; later documents get later $createdAt values."""
        self._counters["seq"] += 1
        seq = self._counters["seq"]
        stamp = f"2024-01-01T00:00:{seq:02d}.000+00:00"
        doc = {
            "$id": data.pop("id", f"doc-{seq}"),
            "$createdAt": stamp,
            "$updatedAt": stamp,
            "$permissions": [],
            "$collectionId": collection_id,
            "$databaseId": DATABASE_ID,
            **data,
        }
        self.documents.setdefault(collection_id, []).append(doc)
        return doc

    def _check(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_with is not None:
            raise self.fail_with

    # ---- Auth provider ----

    async def get_session(self) -> dict[str, Any] | None:
        self.calls.append("get_session")
        return self.session

    async def create_email_session(self, email: str, password: str) -> dict[str, Any]:
        self.calls.append("create_email_session")
        if (email, password) != self.email_credentials:
            raise AuthError("Invalid credentials")
        return self._open_session("email")

    async def create_token_session(self, user_id: str, secret: str) -> dict[str, Any]:
        self.calls.append("create_token_session")
        if (user_id, secret) not in self.tokens:
            raise AuthError("Invalid token")
        return self._open_session("token")

    async def delete_session(self) -> None:
        self.calls.append("delete_session")
        if self.delete_session_error is not None:
            raise self.delete_session_error
        if self.session is None:
            raise AuthError("No session")
        self.session = None

    def clear_local_session(self) -> None:
        self.secret = None
        self._counters["local_cleared"] += 1

    # ---- Document store ----

    async def list_collections(self, database_id: str) -> list[dict[str, Any]]:
        self._check("list_collections")
        return list(self.collections)

    async def list_documents(
        self, database_id: str, collection_id: str, queries: list[Query]
    ) -> DocumentPage:
        self._check("list_documents")
        self.queries.append(list(queries))
        docs = list(self.documents.get(collection_id, []))
        for q in queries:
            if q.method == "equal":
                docs = [d for d in docs if d.get(q.attribute) in q.values]
            elif q.method == "search":
                needle = str(q.values[0]).lower()
                docs = [d for d in docs if needle in str(d.get(q.attribute) or "").lower()]
        total = len(docs)
        limit, offset = None, 0
        for q in queries:
            if q.method == "orderDesc":
                docs.sort(key=lambda d: d.get(q.attribute) or "", reverse=True)
            elif q.method == "limit":
                limit = q.values[0]
            elif q.method == "offset":
                offset = q.values[0]
        end = None if limit is None else offset + limit
        return DocumentPage(total=total, documents=docs[offset:end])

    async def create_document(
        self, database_id: str, collection_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        self._check("create_document")
        return self.add(collection_id, **data)

    def _find(self, collection_id: str, document_id: str) -> dict[str, Any]:
        for doc in self.documents.get(collection_id, []):
            if doc["$id"] == document_id:
                return doc
        raise NotFoundError("document", document_id)

    async def get_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> dict[str, Any]:
        self._check("get_document")
        return self._find(collection_id, document_id)

    async def update_document(
        self, database_id: str, collection_id: str, document_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        self._check("update_document")
        doc = self._find(collection_id, document_id)
        doc.update(data)
        doc["$updatedAt"] = "2024-02-01T00:00:00.000+00:00"
        return doc

    async def delete_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> None:
        self._check("delete_document")
        doc = self._find(collection_id, document_id)
        self.documents[collection_id].remove(doc)


@pytest.fixture
def store() -> FakeDocumentStore:
    return FakeDocumentStore()


@pytest.fixture
def primary() -> AsyncMock:
    """Primary API client; every verb answers an empty successful envelope by default."""
    mock = AsyncMock()
    mock.for_session = MagicMock(return_value=mock)
    for verb in ("list", "create", "read", "update", "delete", "search", "filter", "login", "logout"):
        getattr(mock, verb).return_value = ResultEnvelope.ok([])
    return mock


@pytest.fixture
def guard(store: FakeDocumentStore) -> SessionGuard:
    return SessionGuard(store, FALLBACK_CREDENTIALS)


@pytest.fixture
def cache() -> CollectionCache:
    return CollectionCache()


@pytest.fixture
def resolver(
    store: FakeDocumentStore, guard: SessionGuard, cache: CollectionCache
) -> CollectionResolver:
    return CollectionResolver(store, guard, cache, default_database_id=DATABASE_ID)


@pytest.fixture
def entity_router(
    primary: AsyncMock,
    store: FakeDocumentStore,
    guard: SessionGuard,
    resolver: CollectionResolver,
) -> EntityRouter:
    return EntityRouter(primary, store, guard, resolver, default_database_id=DATABASE_ID)


@pytest.fixture
def app(
    monkeypatch: pytest.MonkeyPatch,
    primary: AsyncMock,
    store: FakeDocumentStore,
    cache: CollectionCache,
):
    """App with lifespan-built state replaced by the in-memory fakes."""
    monkeypatch.setenv("APPWRITE_FALLBACK_EMAIL", FALLBACK_CREDENTIALS[0])
    monkeypatch.setenv("APPWRITE_FALLBACK_PASSWORD", FALLBACK_CREDENTIALS[1])
    monkeypatch.setenv("APPWRITE_DATABASE_ID", DATABASE_ID)
    monkeypatch.setenv("SEARCH_DEBOUNCE_MS", "20")
    get_settings.cache_clear()

    from crm_gateway.main import create_app

    application = create_app()
    application.state.document_store = store
    application.state.primary_client = primary
    application.state.service_session = ServiceSession()
    application.state.collection_cache = cache
    application.state.session_storage = InMemorySessionStorage()
    yield application
    get_settings.cache_clear()


@pytest.fixture
async def client(app) -> AsyncIterator[AsyncClient]:
    """Async HTTP client against the FastAPI app (ASGI)."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
