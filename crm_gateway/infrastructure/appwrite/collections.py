"""Collection resolution for the document store.

Logical names (entity or collection names used in code) are mapped to the
store's physical collection ids by listing the database's collections once
per process. Resolved ids are cached in an explicitly owned CollectionCache
that is never invalidated; restarting the process is the only way to pick up
renamed collections.

Example:
    cache = CollectionCache()
    resolver = CollectionResolver(client, guard, cache, default_database_id="crm")
    collection_id = await resolver.resolve("client")
"""

from __future__ import annotations

import logging

from crm_gateway.application.interfaces.stores import IDocumentStore, ISessionGuard
from crm_gateway.domain.exceptions import NotFoundError, ValidationException

logger = logging.getLogger(__name__)

COLLECTION_CUSTOMERS = "customers"
COLLECTION_TICKETS = "tickets"

# Known names each logical collection may be deployed under (exact match first).
COLLECTION_ALIASES: dict[str, tuple[str, ...]] = {
    COLLECTION_CUSTOMERS: ("customers", "customer", "client", "clients"),
    COLLECTION_TICKETS: ("tickets", "ticket"),
}

# Entity names accepted by resolve() in place of the collection name.
ENTITY_COLLECTIONS: dict[str, str] = {
    "client": COLLECTION_CUSTOMERS,
    "ticket": COLLECTION_TICKETS,
}


class CollectionCache:
    """Process-wide map of (database id, logical name) -> collection id.

    Construct once at startup and inject; tests build a fresh one per case.
    """

    def __init__(self) -> None:
        self._ids: dict[tuple[str, str], str] = {}

    def get(self, database_id: str, logical_name: str) -> str | None:
        return self._ids.get((database_id, logical_name))

    def set(self, database_id: str, logical_name: str, collection_id: str) -> None:
        self._ids[(database_id, logical_name)] = collection_id

    def __len__(self) -> int:
        return len(self._ids)


def _logical_name(name: str) -> str:
    return ENTITY_COLLECTIONS.get(name, name)


def _match(collections: list[dict], aliases: tuple[str, ...]) -> str | None:
    """Return the id of the first collection whose id or name is an alias."""
    for collection in collections:
        if collection.get("$id") in aliases or collection.get("name") in aliases:
            return collection["$id"]
    lowered = {a.lower() for a in aliases}
    for collection in collections:
        cid = str(collection.get("$id") or "").lower()
        cname = str(collection.get("name") or "").lower()
        if cid in lowered or cname in lowered:
            return collection["$id"]
    return None


class CollectionResolver:
    """Resolves logical collection names to physical ids (memoized)."""

    def __init__(
        self,
        store: IDocumentStore,
        guard: ISessionGuard,
        cache: CollectionCache,
        default_database_id: str = "",
    ) -> None:
        self._store = store
        self._guard = guard
        self._cache = cache
        self._default_database_id = default_database_id

    async def resolve(self, logical_name: str, database_id: str | None = None) -> str:
        """Return the collection id for a logical name.

        Order: exact alias match on id or name, case-insensitive match, then the
        first listed collection (logged as a warning).

        Raises:
            NotFoundError: The database lists no collections.
            ValidationException: No database id is configured.
            AuthError, TransportError: Listing collections failed.
        """
        database_id = database_id or self._default_database_id
        if not database_id:
            raise ValidationException("No document store database configured", "database_id")
        logical = _logical_name(logical_name)
        cached = self._cache.get(database_id, logical)
        if cached is not None:
            return cached

        await self._guard.ensure_auth()
        collections = await self._store.list_collections(database_id)
        aliases = COLLECTION_ALIASES.get(logical, (logical,))
        collection_id = _match(collections, aliases)
        if collection_id is None:
            if not collections:
                raise NotFoundError("collection", logical)
            first = collections[0]
            collection_id = first["$id"]
            logger.warning(
                "No collection matches '%s' in database %s; falling back to first collection %s (%s)",
                logical,
                database_id,
                collection_id,
                first.get("name"),
            )
        self._cache.set(database_id, logical, collection_id)
        return collection_id
