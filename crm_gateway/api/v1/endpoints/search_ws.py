"""Live search websocket: /ws/search/{entity}.

The client sends each keystroke's query (plain text, or JSON `{"q": ...}`).
Queries are debounced server-side; only the last query of a quiet window is
searched, and results that a newer query has superseded are dropped instead
of being sent. Nothing is sent once the client has gone away.
"""

import json
import logging
from collections.abc import Awaitable, Callable
from functools import partial
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from crm_gateway.api.v1.dependencies import build_session_scope
from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.application.services.debounce import Debouncer
from crm_gateway.core.config import get_settings

logger = logging.getLogger(__name__)

router = APIRouter()


def _parse_query(raw: str) -> str:
    try:
        data = json.loads(raw)
    except ValueError:
        return raw.strip()
    if isinstance(data, dict):
        return str(data.get("q") or "").strip()
    return raw.strip()


class LiveSearch:
    """Debounced search feed for one connection."""

    def __init__(
        self,
        search: Callable[[str], Awaitable[ResultEnvelope]],
        send: Callable[[dict[str, Any]], Awaitable[None]],
        delay_seconds: float,
    ) -> None:
        self._search = search
        self._send = send
        self._closed = False
        self._debouncer = Debouncer(delay_seconds, self._run)

    def submit(self, q: str) -> int:
        return self._debouncer.trigger(q)

    async def _run(self, q: str) -> None:
        generation = self._debouncer.generation
        envelope = await self._search(q)
        if self._closed:
            logger.debug("Connection closed; dropping search result for %r", q)
            return
        if self._debouncer.is_stale(generation):
            logger.debug("Dropping stale search result for %r", q)
            return
        await self._send({"q": q, **envelope.to_dict()})

    async def close(self) -> None:
        """Stop sending, drop the pending query and wait for in-flight searches."""
        self._closed = True
        self._debouncer.cancel()
        await self._debouncer.drain()


@router.websocket("/search/{entity}")
async def search_websocket(websocket: WebSocket, entity: str):
    """Debounced type-ahead search over one entity.

    The session id (header or `?session=`) selects the browser session, so the
    search runs with that session's credentials against its tenant database.
    """
    scope = build_session_scope(websocket.app.state, websocket.state.session_id)
    context = scope.context.read()
    await websocket.accept()

    live = LiveSearch(
        partial(scope.entity_router.search, entity, database_id=context.tenant_id),
        websocket.send_json,
        get_settings().search_debounce_ms / 1000,
    )
    try:
        while True:
            live.submit(_parse_query(await websocket.receive_text()))
    except WebSocketDisconnect:
        pass
    finally:
        await live.close()
