"""Interactions stored as rows of the primary API's `taxes` entity.

The primary API has no interaction entity, so an interaction is written as a
taxes row: the headline fields map onto taxes columns and everything else
goes into the row's `notes` as a JSON blob flagged with `isInteraction`.
Rows without that flag are real taxes rows and never surface as
interactions.

    interaction            taxes row
    -----------            ---------
    subject            ->  name
    description        ->  description
    type               ->  value            (default "call")
    client             ->  client
    interactionStatus  ->  status           (default "completed")
    notes, ticketIds,
    date, duration     ->  notes (JSON)
"""

from __future__ import annotations

import json
from collections.abc import Callable
from dataclasses import dataclass, replace
from datetime import datetime, timezone
from typing import Any

from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.domain.exceptions import NotFoundError

INTERACTION_FLAG = "isInteraction"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def to_taxes_row(interaction: dict[str, Any]) -> dict[str, Any]:
    """Encode an interaction record as a taxes row."""
    extra = {
        "additionalNotes": interaction.get("notes") or "",
        "ticketIds": list(interaction.get("ticketIds") or []),
        "date": interaction.get("date") or _now_iso(),
        "duration": interaction.get("duration") or 0,
        INTERACTION_FLAG: True,
        "originalData": interaction,
    }
    return {
        "name": interaction.get("subject") or "",
        "description": interaction.get("description") or "",
        "value": interaction.get("type") or "call",
        "client": interaction.get("client") or "",
        "status": interaction.get("interactionStatus") or "completed",
        "notes": json.dumps(extra),
    }


def _notes_blob(notes: Any) -> dict[str, Any]:
    try:
        extra = json.loads(notes or "{}")
    except (TypeError, ValueError):
        return {"additionalNotes": notes or "", "ticketIds": [], INTERACTION_FLAG: False}
    return extra if isinstance(extra, dict) else {}


def from_taxes_row(row: dict[str, Any]) -> dict[str, Any] | None:
    """Decode a taxes row; None when the row is not an interaction."""
    extra = _notes_blob(row.get("notes"))
    if not extra.get(INTERACTION_FLAG):
        return None
    return {
        "_id": row.get("_id"),
        "subject": row.get("name") or "",
        "description": row.get("description") or "",
        "type": row.get("value") or "call",
        "client": row.get("client") or "",
        "interactionStatus": row.get("status") or "completed",
        "notes": extra.get("additionalNotes") or "",
        "ticketIds": list(extra.get("ticketIds") or []),
        "date": extra.get("date") or row.get("created"),
        "duration": extra.get("duration") or 0,
        "created": row.get("created"),
        "updated": row.get("updated"),
        "enabled": row.get("enabled"),
    }


def from_form(form: dict[str, Any]) -> dict[str, Any]:
    """Interaction record from the interaction form, which uses taxes field names.

    The date is always the submission time.
    """
    return {
        "subject": form.get("name"),
        "description": form.get("description"),
        "type": form.get("value"),
        "client": form.get("client"),
        "interactionStatus": form.get("status"),
        "notes": form.get("notes"),
        "ticketIds": form.get("ticketIds") or [],
        "date": _now_iso(),
    }


def _is_form(data: dict[str, Any]) -> bool:
    return "subject" not in data and "name" in data


def interaction_to_taxes(data: dict[str, Any]) -> dict[str, Any]:
    """Encode a write body: an interaction record or the interaction form."""
    return to_taxes_row(from_form(data) if _is_form(data) else data)


@dataclass(frozen=True)
class PrimaryEntityMapping:
    """A frontend entity kept in another entity of the primary API."""

    entity: str
    primary_entity: str
    to_primary: Callable[[dict[str, Any]], dict[str, Any]]
    from_primary: Callable[[dict[str, Any]], dict[str, Any] | None]

    def records(self, envelope: ResultEnvelope) -> ResultEnvelope:
        """Decode a list result, dropping rows that do not belong to the entity.

        Pagination is the primary API's and still counts the dropped rows.
        """
        if not envelope.success or not isinstance(envelope.result, list):
            return envelope
        rows = [row for row in envelope.result if isinstance(row, dict)]
        decoded = (self.from_primary(row) for row in rows)
        return replace(envelope, result=[r for r in decoded if r is not None])

    def record(self, envelope: ResultEnvelope) -> ResultEnvelope:
        """Decode a single-row result.

        Raises:
            NotFoundError: The row exists but does not belong to the entity.
        """
        if not envelope.success or not isinstance(envelope.result, dict):
            return envelope
        record = self.from_primary(envelope.result)
        if record is None:
            raise NotFoundError(self.entity, str(envelope.result.get("_id") or ""))
        return replace(envelope, result=record)


INTERACTION = PrimaryEntityMapping(
    entity="interaction",
    primary_entity="taxes",
    to_primary=interaction_to_taxes,
    from_primary=from_taxes_row,
)

PRIMARY_MAPPINGS: dict[str, PrimaryEntityMapping] = {INTERACTION.entity: INTERACTION}
