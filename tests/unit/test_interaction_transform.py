"""Unit tests for interactions kept as primary `taxes` rows, alone and through the router."""

import json

import pytest

from crm_gateway.application.dtos.envelope import Pagination, ResultEnvelope
from crm_gateway.application.services.interaction_transform import (
    INTERACTION,
    from_taxes_row,
    interaction_to_taxes,
    to_taxes_row,
)

INTERACTION_RECORD = {
    "subject": "Follow-up call",
    "description": "Discussed renewal",
    "type": "meeting",
    "client": "c1",
    "interactionStatus": "scheduled",
    "notes": "Bring the contract",
    "ticketIds": ["t1", "t2"],
    "date": "2024-03-01T10:00:00.000Z",
    "duration": 30,
}

TAXES_ROW = {"_id": "tax-1", "name": "GST", "value": "10", "notes": "", "enabled": True}


def _stored(record: dict, row_id: str = "x1") -> dict:
    return {**to_taxes_row(record), "_id": row_id, "created": "2024-03-01", "updated": "2024-03-02", "enabled": True}


def test_interaction_round_trip_through_taxes_row() -> None:
    row = to_taxes_row(INTERACTION_RECORD)

    assert row["name"] == "Follow-up call"
    assert row["value"] == "meeting"
    assert row["status"] == "scheduled"
    extra = json.loads(row["notes"])
    assert extra["isInteraction"] is True
    assert extra["originalData"] == INTERACTION_RECORD

    record = from_taxes_row(_stored(INTERACTION_RECORD))
    assert {k: record[k] for k in INTERACTION_RECORD} == INTERACTION_RECORD
    assert record["_id"] == "x1"
    assert record["created"] == "2024-03-01"
    assert record["enabled"] is True


def test_defaults_for_sparse_interaction() -> None:
    record = from_taxes_row(_stored({"subject": "Ping"}))
    assert record["type"] == "call"
    assert record["interactionStatus"] == "completed"
    assert record["ticketIds"] == []
    assert record["duration"] == 0
    assert record["date"].endswith("Z")


def test_rows_that_are_not_interactions_decode_to_none() -> None:
    assert from_taxes_row(TAXES_ROW) is None
    assert from_taxes_row({**TAXES_ROW, "notes": "plain text notes"}) is None
    assert from_taxes_row({**TAXES_ROW, "notes": json.dumps({"isInteraction": False})}) is None
    assert from_taxes_row({**TAXES_ROW, "notes": "[1, 2]"}) is None


def test_missing_date_falls_back_to_row_creation() -> None:
    row = _stored({"subject": "Ping"})
    extra = json.loads(row["notes"])
    extra.pop("date")
    row["notes"] = json.dumps(extra)
    assert from_taxes_row(row)["date"] == "2024-03-01"


def test_form_body_uses_taxes_field_names() -> None:
    row = interaction_to_taxes(
        {"name": "Site visit", "value": "visit", "status": "completed", "client": "c9", "notes": "ok"}
    )
    assert row["name"] == "Site visit"
    assert row["value"] == "visit"
    assert row["client"] == "c9"
    extra = json.loads(row["notes"])
    assert extra["additionalNotes"] == "ok"
    assert extra["originalData"]["subject"] == "Site visit"


def test_list_result_keeps_only_interactions() -> None:
    envelope = ResultEnvelope.ok([TAXES_ROW, _stored(INTERACTION_RECORD)], Pagination(1, 2, 1))
    result = INTERACTION.records(envelope)
    assert [r["subject"] for r in result.result] == ["Follow-up call"]
    assert result.pagination == Pagination(1, 2, 1)


@pytest.mark.asyncio
async def test_router_lists_interactions_from_taxes(entity_router, primary) -> None:
    primary.list.return_value = ResultEnvelope.ok([TAXES_ROW, _stored(INTERACTION_RECORD)])

    result = await entity_router.list("interaction", 1, 10)

    primary.list.assert_awaited_once_with("taxes", 1, 10)
    assert result.success is True
    assert [r["_id"] for r in result.result] == ["x1"]


@pytest.mark.asyncio
async def test_router_create_encodes_and_decodes(entity_router, primary) -> None:
    primary.create.side_effect = lambda entity, data: ResultEnvelope.ok({**data, "_id": "new"})

    result = await entity_router.create("interaction", INTERACTION_RECORD)

    entity, sent = primary.create.await_args.args
    assert entity == "taxes"
    assert sent["name"] == "Follow-up call"
    assert result.result["_id"] == "new"
    assert result.result["ticketIds"] == ["t1", "t2"]


@pytest.mark.asyncio
async def test_router_read_of_plain_taxes_row_is_not_found(entity_router, primary) -> None:
    primary.read.return_value = ResultEnvelope.ok(TAXES_ROW)
    result = await entity_router.read("interaction", "tax-1")
    assert result.success is False
    assert result.result is None


@pytest.mark.asyncio
async def test_router_never_deletes_plain_taxes_rows(entity_router, primary) -> None:
    primary.read.return_value = ResultEnvelope.ok(TAXES_ROW)
    result = await entity_router.delete("interaction", "tax-1")
    assert result.success is False
    primary.delete.assert_not_awaited()

    primary.read.return_value = ResultEnvelope.ok(_stored(INTERACTION_RECORD))
    result = await entity_router.delete("interaction", "x1")
    primary.delete.assert_awaited_once_with("taxes", "x1")
