"""Document shape reconciliation between the document store and the frontend.

The store marks its own metadata with a ``$`` prefix (``$id``, ``$createdAt``,
``$updatedAt``, ``$permissions``, ...). The frontend consumes canonical
records: ``_id``, ``createdAt``, ``updatedAt`` plus the entity's fields, each
one always present (never missing) so form binding stays stable.

Writes are intentionally lossy: fields derived from relationships (a
customer's flattened contact, a ticket's client name) are never written back.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class OwnedField:
    """A field the document store owns and that is written back.

    Attributes:
        name: Canonical (frontend) field name.
        store_name: Attribute name in the document store; defaults to `name`.
        default: Value used when the field is absent or empty upstream.
        prefer: Store attributes (dotted paths allowed) tried before `store_name`.
        read_from: Store attributes tried, in order, after `store_name`.
    """

    name: str
    store_name: str | None = None
    default: Any = ""
    prefer: tuple[str, ...] = ()
    read_from: tuple[str, ...] = ()

    @property
    def store_key(self) -> str:
        return self.store_name or self.name


@dataclass(frozen=True)
class DocumentMapping:
    """How one entity's documents map to canonical records.

    Attributes:
        entity: Frontend entity name (e.g. 'client').
        collection: Logical collection name resolved by the collection resolver.
        owned: Store-owned fields, in canonical order.
        derived: Client-only fields computed from the raw document.
        search_field: Store attribute used for text search.
    """

    entity: str
    collection: str
    owned: tuple[OwnedField, ...]
    derived: Callable[[dict[str, Any]], dict[str, Any]] | None = None
    derived_fields: tuple[str, ...] = ()
    search_field: str = "name"
    extra_meta: dict[str, str] = field(default_factory=dict)

    def owned_field(self, name: str) -> OwnedField | None:
        for owned in self.owned:
            if owned.name == name:
                return owned
        return None


def _default(value: Any) -> Any:
    # Lists are copied so callers cannot mutate a shared default.
    return list(value) if isinstance(value, list) else value


def _lookup(doc: dict[str, Any], path: str) -> Any:
    value: Any = doc
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _first_present(doc: dict[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        value = _lookup(doc, key)
        if value not in (None, "", []):
            return value
    return None


def _flatten_customer_contact(doc: dict[str, Any]) -> dict[str, Any]:
    """Flatten the first related contact into scalar contact/phone/email (first wins)."""
    contacts = doc.get("customer_contact_ids") or []
    if not isinstance(contacts, list) or not contacts or not isinstance(contacts[0], dict):
        return {"contact": "", "phone": "", "email": ""}
    primary = contacts[0]
    first_name = primary.get("first_name") or ""
    last_name = primary.get("last_name") or ""
    return {
        "contact": f"{first_name} {last_name}".strip(),
        "phone": primary.get("contact_number") or primary.get("phone") or "",
        "email": primary.get("email") or "",
    }


def _ticket_relations(doc: dict[str, Any]) -> dict[str, Any]:
    """Resolve the ticket's customer and assignee relationships into scalars."""
    customer = doc.get("customer_id")
    if isinstance(customer, dict):
        client_id = customer.get("$id") or ""
        client_name = customer.get("name") or ""
    else:
        client_id = customer or ""
        client_name = ""
    assigned = doc.get("assignee_ids") or doc.get("assigned_to") or []
    if not isinstance(assigned, list):
        assigned = [assigned]
    return {
        "clientId": client_id,
        "clientName": client_name,
        "assignedTo": [a.get("$id", "") if isinstance(a, dict) else a for a in assigned],
        "ticketNumber": doc.get("$id") or "",
    }


CUSTOMER = DocumentMapping(
    entity="client",
    collection="customers",
    owned=(
        OwnedField("name"),
        OwnedField("address"),
        OwnedField("abn"),
    ),
    derived=_flatten_customer_contact,
    derived_fields=("contact", "phone", "email"),
    search_field="name",
    extra_meta={"modified": "$updatedAt"},
)

TICKET = DocumentMapping(
    entity="ticket",
    collection="tickets",
    owned=(
        OwnedField("title", store_name="workflow", default="No Title", read_from=("title",)),
        OwnedField("description"),
        OwnedField("status", default="open", prefer=("status_id.label",)),
        OwnedField("priority", default="medium"),
        OwnedField("category"),
        OwnedField("tags", default=[]),
    ),
    derived=_ticket_relations,
    derived_fields=("clientId", "clientName", "assignedTo", "ticketNumber"),
    # Titles are written to `workflow`; see the title field above.
    search_field="workflow",
)

MAPPINGS: dict[str, DocumentMapping] = {m.entity: m for m in (CUSTOMER, TICKET)}


def mapping_for(entity: str) -> DocumentMapping:
    """Return the document mapping for a secondary-store entity.

    Raises:
        KeyError: If the entity has no document mapping.
    """
    return MAPPINGS[entity]


def to_canonical(
    doc: dict[str, Any] | None, mapping: DocumentMapping = CUSTOMER
) -> dict[str, Any] | None:
    """Map a store document to the canonical record shape.

    Returns None for None input. Store metadata is dropped except for the id
    and timestamps, which are renamed. Every owned and derived field is
    present in the output.
    """
    if doc is None:
        return None
    record: dict[str, Any] = {
        "_id": doc.get("$id") or "",
        "createdAt": doc.get("$createdAt") or "",
        "updatedAt": doc.get("$updatedAt") or "",
    }
    for owned in mapping.owned:
        keys = (*owned.prefer, owned.store_key, *owned.read_from)
        value = _first_present(doc, keys)
        record[owned.name] = value if value is not None else _default(owned.default)
    if mapping.derived is not None:
        derived = mapping.derived(doc)
        for name in mapping.derived_fields:
            value = derived.get(name)
            record[name] = value if value is not None else ""
    for name, meta_key in mapping.extra_meta.items():
        record[name] = doc.get(meta_key) or ""
    return record


def to_store_shape(
    record: dict[str, Any], mapping: DocumentMapping = CUSTOMER
) -> dict[str, Any]:
    """Project a canonical record onto the fields the store owns.

    Client-only keys (`_id`, timestamps, derived fields, unknown keys) are
    dropped. Empty values become the field default, which keeps the
    projection stable under a to_canonical round trip.
    """
    shape: dict[str, Any] = {}
    for owned in mapping.owned:
        value = record.get(owned.name)
        if value in (None, "", []):
            value = _default(owned.default)
        shape[owned.store_key] = value
    return shape

