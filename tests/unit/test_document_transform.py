"""Unit tests for document transform (store document <-> canonical record)."""

from crm_gateway.application.services.document_transform import (
    CUSTOMER,
    TICKET,
    mapping_for,
    to_canonical,
    to_store_shape,
)

CUSTOMER_DOC = {
    "$id": "c1",
    "$createdAt": "2024-01-01T00:00:00.000+00:00",
    "$updatedAt": "2024-01-02T00:00:00.000+00:00",
    "$permissions": ['read("any")'],
    "$collectionId": "customers",
    "$databaseId": "crm",
    "name": "Acme Pty Ltd",
    "address": "1 George St",
    "abn": "51 824 753 556",
    "customer_contact_ids": [
        {"first_name": "Jane", "last_name": "Doe", "contact_number": "0400 000 000", "email": "jane@acme.test"},
        {"first_name": "John", "last_name": "Roe", "phone": "0411 111 111", "email": "john@acme.test"},
    ],
}


def test_to_canonical_none_returns_none() -> None:
    assert to_canonical(None) is None


def test_to_canonical_renames_metadata_and_drops_store_fields() -> None:
    record = to_canonical(CUSTOMER_DOC)
    assert record["_id"] == "c1"
    assert record["createdAt"] == "2024-01-01T00:00:00.000+00:00"
    assert record["updatedAt"] == "2024-01-02T00:00:00.000+00:00"
    assert record["modified"] == record["updatedAt"]
    assert not [k for k in record if k.startswith("$")]
    assert "customer_contact_ids" not in record


def test_to_canonical_flattens_first_contact_only() -> None:
    record = to_canonical(CUSTOMER_DOC)
    assert record["contact"] == "Jane Doe"
    assert record["phone"] == "0400 000 000"
    assert record["email"] == "jane@acme.test"


def test_to_canonical_contact_phone_falls_back_to_phone_attribute() -> None:
    doc = {"$id": "c2", "customer_contact_ids": [{"first_name": "Solo", "phone": "123"}]}
    record = to_canonical(doc)
    assert record["contact"] == "Solo"
    assert record["phone"] == "123"
    assert record["email"] == ""


def test_to_canonical_fills_every_field_for_sparse_document() -> None:
    record = to_canonical({"$id": "c3"})
    for key in ("_id", "createdAt", "updatedAt", "name", "address", "abn", "contact", "phone", "email", "modified"):
        assert key in record
    assert record["name"] == ""
    assert record["contact"] == ""


def test_to_store_shape_drops_client_only_fields() -> None:
    record = to_canonical(CUSTOMER_DOC)
    shape = to_store_shape(record)
    assert shape == {"name": "Acme Pty Ltd", "address": "1 George St", "abn": "51 824 753 556"}


def test_to_store_shape_ignores_unknown_keys_and_fills_defaults() -> None:
    shape = to_store_shape({"name": "Beta", "contact": "ignored", "extra": 1})
    assert shape == {"name": "Beta", "address": "", "abn": ""}


def test_store_shape_is_stable_through_canonical_round_trip() -> None:
    for record in (
        {"name": "Acme", "address": "", "abn": "1"},
        {"_id": "x", "name": "Beta", "phone": "999"},
        {},
    ):
        shape = to_store_shape(record)
        assert to_store_shape(to_canonical(shape)) == shape


def test_ticket_mapping_reads_workflow_title_and_status_label() -> None:
    doc = {
        "$id": "t1",
        "$createdAt": "2024-03-01T00:00:00.000+00:00",
        "workflow": "Printer on fire",
        "status_id": {"label": "in_progress"},
        "status": "open",
        "customer_id": {"$id": "c1", "name": "Acme"},
        "assignee_ids": [{"$id": "u1"}, "u2"],
    }
    record = to_canonical(doc, TICKET)
    assert record["title"] == "Printer on fire"
    assert record["status"] == "in_progress"
    assert record["priority"] == "medium"
    assert record["tags"] == []
    assert record["clientId"] == "c1"
    assert record["clientName"] == "Acme"
    assert record["assignedTo"] == ["u1", "u2"]
    assert record["ticketNumber"] == "t1"


def test_ticket_defaults_and_store_shape() -> None:
    record = to_canonical({"$id": "t2", "title": ""}, TICKET)
    assert record["title"] == "No Title"
    assert record["status"] == "open"
    shape = to_store_shape(record, TICKET)
    assert shape["workflow"] == "No Title"
    assert "clientName" not in shape
    assert to_store_shape(to_canonical(shape, TICKET), TICKET) == shape


def test_ticket_default_tags_are_not_shared() -> None:
    first = to_canonical({"$id": "a"}, TICKET)
    first["tags"].append("x")
    assert to_canonical({"$id": "b"}, TICKET)["tags"] == []


def test_mapping_for_known_entities() -> None:
    assert mapping_for("client") is CUSTOMER
    assert mapping_for("ticket") is TICKET
