"""API tests for the debounced live-search websocket."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest
from starlette.testclient import TestClient

from crm_gateway.api.v1.endpoints.search_ws import LiveSearch
from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.core.config import get_settings
from crm_gateway.domain.exceptions import TransportError


def test_search_websocket_sends_last_query_result(app, store, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SEARCH_DEBOUNCE_MS", "300")
    get_settings.cache_clear()
    store.add("col-cust", name="Acme")
    store.add("col-cust", name="Acorn")

    with TestClient(app).websocket_connect("/ws/search/client?session=tab-1") as ws:
        ws.send_text("ac")
        ws.send_json({"q": "acme"})
        message = ws.receive_json()

    assert message["q"] == "acme"
    assert message["success"] is True
    assert [r["name"] for r in message["result"]] == ["Acme"]
    assert len(store.queries) == 1


def test_search_websocket_failure_is_empty_result(app, store) -> None:
    store.fail_with = TransportError("Document store timed out", "secondary")
    with TestClient(app).websocket_connect("/ws/search/client") as ws:
        ws.send_text("acme")
        message = ws.receive_json()
    assert message["success"] is False
    assert message["result"] == []


@pytest.mark.asyncio
async def test_result_finishing_after_close_is_not_sent(caplog: pytest.LogCaptureFixture) -> None:
    started = asyncio.Event()
    release = asyncio.Event()

    async def slow_search(q: str) -> ResultEnvelope:
        started.set()
        await release.wait()
        return ResultEnvelope.ok([{"name": q}])

    send = AsyncMock(side_effect=RuntimeError("Cannot call send once a close message has been sent"))
    live = LiveSearch(slow_search, send, 0.01)
    live.submit("acme")
    await started.wait()

    closing = asyncio.create_task(live.close())
    await asyncio.sleep(0)
    release.set()
    with caplog.at_level(logging.ERROR):
        await closing

    send.assert_not_awaited()
    assert "Debounced callback failed" not in caplog.text


@pytest.mark.asyncio
async def test_close_drops_pending_query() -> None:
    search = AsyncMock(return_value=ResultEnvelope.ok([]))
    send = AsyncMock()
    live = LiveSearch(search, send, 0.05)
    live.submit("acme")
    await live.close()
    search.assert_not_awaited()
    send.assert_not_awaited()
