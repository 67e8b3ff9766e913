"""Entity router: one CRUD surface over two stores.

Each verb looks the entity up in ENTITY_BACKENDS. Secondary entities go
through session guard -> collection resolver -> document store -> document
transform. Everything else goes to the primary CRUD client: verbatim, or
through a PrimaryEntityMapping when the entity lives inside another primary
entity (interactions are stored as taxes rows).

The router is the error containment boundary: gateway errors raised beneath
it become failed result envelopes, shaped by the verb's FailurePolicy.
Reads (SWALLOW) come back as `success=False` with an empty result so list
screens render an empty state; writes (SURFACE) come back as `success=False`
with a message the caller must show.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from crm_gateway.application.dtos.envelope import Pagination, ResultEnvelope
from crm_gateway.application.dtos.query import CREATED_AT, DOCUMENT_ID, Query
from crm_gateway.application.interfaces.stores import (
    ICollectionResolver,
    IDocumentStore,
    IPrimaryCrudClient,
    ISessionGuard,
)
from crm_gateway.application.services.document_transform import (
    DocumentMapping,
    mapping_for,
    to_canonical,
    to_store_shape,
)
from crm_gateway.application.services.interaction_transform import (
    PRIMARY_MAPPINGS,
    PrimaryEntityMapping,
)
from crm_gateway.domain.enums import Backend, FailurePolicy
from crm_gateway.domain.exceptions import GatewayException, ValidationException
from crm_gateway.shared.telemetry.tracing import add_span_attributes

logger = logging.getLogger(__name__)

# Entities served by the document store. Anything not listed uses the primary API.
ENTITY_BACKENDS: dict[str, Backend] = {
    "client": Backend.SECONDARY,
    "ticket": Backend.SECONDARY,
}

VERB_POLICIES: dict[str, FailurePolicy] = {
    "list": FailurePolicy.SWALLOW,
    "read": FailurePolicy.SWALLOW,
    "search": FailurePolicy.SWALLOW,
    "filter": FailurePolicy.SWALLOW,
    "get_many": FailurePolicy.SWALLOW,
    "create": FailurePolicy.SURFACE,
    "update": FailurePolicy.SURFACE,
    "delete": FailurePolicy.SURFACE,
}

DEFAULT_SEARCH_ITEMS = 50

_FAILURE_MESSAGES = {
    "list": "Failed to list documents",
    "read": "Failed to read document",
    "search": "Failed to search documents",
    "filter": "Failed to filter documents",
    "get_many": "Failed to fetch documents",
    "create": "Failed to create document",
    "update": "Failed to update document",
    "delete": "Failed to delete document",
}


class EntityRouter:
    """Routes entity CRUD to the primary API or the document store."""

    def __init__(
        self,
        primary: IPrimaryCrudClient,
        store: IDocumentStore,
        guard: ISessionGuard,
        resolver: ICollectionResolver,
        default_database_id: str = "",
        *,
        backends: dict[str, Backend] | None = None,
        policies: dict[str, FailurePolicy] | None = None,
        primary_mappings: dict[str, PrimaryEntityMapping] | None = None,
    ) -> None:
        self._primary = primary
        self._store = store
        self._guard = guard
        self._resolver = resolver
        self._default_database_id = default_database_id
        self._backends = backends if backends is not None else ENTITY_BACKENDS
        self._policies = policies if policies is not None else VERB_POLICIES
        self._primary_mappings = (
            primary_mappings if primary_mappings is not None else PRIMARY_MAPPINGS
        )

    def backend_for(self, entity: str) -> Backend:
        return self._backends.get(entity, Backend.PRIMARY)

    def policy_for(self, verb: str) -> FailurePolicy:
        return self._policies.get(verb, FailurePolicy.SURFACE)

    # ---- Public verbs ----

    async def list(
        self,
        entity: str,
        page: int = 1,
        items: int = 10,
        *,
        q: str | None = None,
        status: str | None = None,
        database_id: str | None = None,
    ) -> ResultEnvelope:
        """One page of records, newest first.

        `q` (text search) and `status` narrow document store lists; the
        primary API's list endpoint takes no filters.
        """
        page, items = int(page), int(items)
        if self.backend_for(entity) is Backend.PRIMARY:
            if q or status:
                call = self._unsupported(entity, "list filters")
            else:
                call = partial(self._on_primary, "list", entity, page, items)
        else:
            call = partial(self._secondary_list, entity, page, items, database_id, q, status)
        return await self._dispatch(
            "list", entity, call, empty=[], pagination=Pagination.empty(max(page, 1))
        )

    async def read(
        self, entity: str, id: str, *, database_id: str | None = None
    ) -> ResultEnvelope:
        if self.backend_for(entity) is Backend.PRIMARY:
            call = partial(self._on_primary, "read", entity, id)
        else:
            call = partial(self._secondary_read, entity, id, database_id)
        return await self._dispatch("read", entity, call, empty=None)

    async def create(
        self, entity: str, data: dict[str, Any], *, database_id: str | None = None
    ) -> ResultEnvelope:
        if self.backend_for(entity) is Backend.PRIMARY:
            call = partial(self._on_primary, "create", entity, data)
        else:
            call = partial(self._secondary_create, entity, data, database_id)
        return await self._dispatch("create", entity, call, empty=None)

    async def update(
        self,
        entity: str,
        id: str,
        data: dict[str, Any],
        *,
        database_id: str | None = None,
    ) -> ResultEnvelope:
        if self.backend_for(entity) is Backend.PRIMARY:
            call = partial(self._on_primary, "update", entity, id, data)
        else:
            call = partial(self._secondary_update, entity, id, data, database_id)
        return await self._dispatch("update", entity, call, empty=None)

    async def delete(
        self, entity: str, id: str, *, database_id: str | None = None
    ) -> ResultEnvelope:
        if self.backend_for(entity) is Backend.PRIMARY:
            call = partial(self._on_primary, "delete", entity, id)
        else:
            call = partial(self._secondary_delete, entity, id, database_id)
        return await self._dispatch("delete", entity, call, empty=None)

    async def search(
        self,
        entity: str,
        q: str = "",
        items: int = DEFAULT_SEARCH_ITEMS,
        fields: str | None = None,
        *,
        database_id: str | None = None,
    ) -> ResultEnvelope:
        if self.backend_for(entity) is Backend.PRIMARY:
            call = partial(self._on_primary, "search", entity, q, fields)
        else:
            call = partial(self._secondary_search, entity, q, int(items), database_id)
        return await self._dispatch("search", entity, call, empty=[])

    async def filter(
        self,
        entity: str,
        field: str | None = None,
        value: Any = None,
        *,
        database_id: str | None = None,
    ) -> ResultEnvelope:
        if self.backend_for(entity) is Backend.PRIMARY:
            call = partial(self._on_primary, "filter", entity, field, value)
        else:
            call = partial(self._secondary_filter, entity, field, value, database_id)
        return await self._dispatch("filter", entity, call, empty=[])

    async def get_many(
        self, entity: str, ids: list[str], *, database_id: str | None = None
    ) -> ResultEnvelope:
        """Fetch documents by id list (newest first). Document store entities only."""
        if self.backend_for(entity) is Backend.PRIMARY:
            call = self._unsupported(entity, "get_many")
        else:
            call = partial(self._secondary_get_many, entity, ids, database_id)
        return await self._dispatch("get_many", entity, call, empty=[])

    # ---- Containment ----

    async def _dispatch(
        self,
        verb: str,
        entity: str,
        call: Callable[[], Awaitable[ResultEnvelope]],
        *,
        empty: Any,
        pagination: Pagination | None = None,
    ) -> ResultEnvelope:
        backend = self.backend_for(entity)
        add_span_attributes(entity=entity, verb=verb, backend=backend.value)
        try:
            return await call()
        except GatewayException as e:
            message = e.message or _FAILURE_MESSAGES[verb]
            if self.policy_for(verb) is FailurePolicy.SURFACE:
                logger.error(
                    "%s %s on %s store failed: %s [%s]",
                    verb, entity, backend.value, message, e.error_code,
                )
                return ResultEnvelope.failed(message)
            logger.warning(
                "%s %s on %s store failed, returning empty result: %s [%s]",
                verb, entity, backend.value, message, e.error_code,
            )
            return ResultEnvelope.failed(message, result=empty, pagination=pagination)

    @staticmethod
    def _unsupported(entity: str, verb: str) -> Callable[[], Awaitable[ResultEnvelope]]:
        async def call() -> ResultEnvelope:
            raise ValidationException(f"'{verb}' is not supported for entity '{entity}'", "entity")

        return call

    # ---- Primary API path ----

    async def _on_primary(self, verb: str, entity: str, *args: Any) -> ResultEnvelope:
        mapping = self._primary_mappings.get(entity)
        if mapping is None:
            return await getattr(self._primary, verb)(entity, *args)

        target = mapping.primary_entity
        if verb in ("update", "delete"):
            # Only rows that decode as this entity may be changed through it.
            owned = mapping.record(await self._primary.read(target, args[0]))
            if not owned.success:
                return owned
        if verb in ("create", "update"):
            args = (*args[:-1], mapping.to_primary(args[-1]))
        envelope = await getattr(self._primary, verb)(target, *args)
        if verb in ("list", "search", "filter"):
            return mapping.records(envelope)
        if verb in ("read", "create", "update"):
            return mapping.record(envelope)
        return envelope

    # ---- Document store path ----

    async def _prepare(
        self, entity: str, database_id: str | None
    ) -> tuple[DocumentMapping, str, str]:
        """Authenticate, then resolve the entity's mapping, database and collection."""
        try:
            mapping = mapping_for(entity)
        except KeyError:
            raise ValidationException(
                f"No document mapping for entity '{entity}'", "entity"
            ) from None
        await self._guard.ensure_auth()
        database_id = database_id or self._default_database_id
        collection_id = await self._resolver.resolve(mapping.collection, database_id)
        return mapping, database_id, collection_id

    async def _secondary_list(
        self,
        entity: str,
        page: int,
        items: int,
        database_id: str | None,
        q: str | None = None,
        status: str | None = None,
    ) -> ResultEnvelope:
        if page < 1 or items < 1:
            raise ValidationException("page and items must be positive", "page")
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        queries = [
            Query.limit(items),
            Query.offset((page - 1) * items),
            Query.order_desc(CREATED_AT),
        ]
        if q:
            queries.append(Query.search(mapping.search_field, q))
        if status:
            status_field = mapping.owned_field("status")
            if status_field is None:
                raise ValidationException(
                    f"Entity '{entity}' has no status to filter on", "status"
                )
            queries.append(Query.equal(status_field.store_key, status))
        result = await self._store.list_documents(database_id, collection_id, queries)
        records = [to_canonical(doc, mapping) for doc in result.documents]
        return ResultEnvelope.ok(records, Pagination.for_total(page, result.total, items))

    async def _secondary_read(
        self, entity: str, id: str, database_id: str | None
    ) -> ResultEnvelope:
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        doc = await self._store.get_document(database_id, collection_id, id)
        return ResultEnvelope.ok(to_canonical(doc, mapping))

    async def _secondary_create(
        self, entity: str, data: dict[str, Any], database_id: str | None
    ) -> ResultEnvelope:
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        doc = await self._store.create_document(
            database_id, collection_id, to_store_shape(data, mapping)
        )
        return ResultEnvelope.ok(to_canonical(doc, mapping))

    async def _secondary_update(
        self, entity: str, id: str, data: dict[str, Any], database_id: str | None
    ) -> ResultEnvelope:
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        doc = await self._store.update_document(
            database_id, collection_id, id, to_store_shape(data, mapping)
        )
        return ResultEnvelope.ok(to_canonical(doc, mapping))

    async def _secondary_delete(
        self, entity: str, id: str, database_id: str | None
    ) -> ResultEnvelope:
        _, database_id, collection_id = await self._prepare(entity, database_id)
        await self._store.delete_document(database_id, collection_id, id)
        return ResultEnvelope.ok({"_id": id})

    async def _secondary_search(
        self, entity: str, q: str, items: int, database_id: str | None
    ) -> ResultEnvelope:
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        queries = [Query.limit(items), Query.order_desc(CREATED_AT)]
        if q:
            queries.append(Query.search(mapping.search_field, q))
        result = await self._store.list_documents(database_id, collection_id, queries)
        return ResultEnvelope.ok([to_canonical(doc, mapping) for doc in result.documents])

    async def _secondary_filter(
        self, entity: str, field: str | None, value: Any, database_id: str | None
    ) -> ResultEnvelope:
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        queries = [Query.order_desc(CREATED_AT)]
        if field and value not in (None, ""):
            queries.append(Query.equal(field, value))
        result = await self._store.list_documents(database_id, collection_id, queries)
        return ResultEnvelope.ok([to_canonical(doc, mapping) for doc in result.documents])

    async def _secondary_get_many(
        self, entity: str, ids: list[str], database_id: str | None
    ) -> ResultEnvelope:
        if not ids:
            return ResultEnvelope.ok([])
        mapping, database_id, collection_id = await self._prepare(entity, database_id)
        queries = [Query.equal(DOCUMENT_ID, list(ids)), Query.order_desc(CREATED_AT)]
        result = await self._store.list_documents(database_id, collection_id, queries)
        return ResultEnvelope.ok([to_canonical(doc, mapping) for doc in result.documents])
