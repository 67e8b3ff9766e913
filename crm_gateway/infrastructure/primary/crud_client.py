"""HTTP client for the primary CRM REST API (generic CRUD per entity).

The API already answers with result envelopes, including on 4xx/5xx where
the body carries `{success: false, message}`; those are returned as-is.
Only transport failures (and non-JSON error bodies) raise TransportError.

The API authenticates a user with the JWT it issues at login (sent back as
the `token` cookie). The gateway never stores it in a cookie jar: login()
returns it in the result and a session-bound client sends it per call.
"""

from __future__ import annotations

import copy
import time
from dataclasses import replace
from typing import Any
from urllib.parse import quote

import httpx

from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.domain.exceptions import TransportError
from crm_gateway.infrastructure._http import disable_cookie_persistence, stateless_client
from crm_gateway.shared.telemetry.tracing import traced

_STORE = "primary"
TOKEN_COOKIE = "token"


class PrimaryCrudClient:
    """Generic CRUD client: `{base}/{entity}/{verb}` endpoints returning envelopes.

    The instance built at startup is anonymous and keeps no cookies.
    for_session(token) returns a copy that sends one user's token as a
    bearer credential and shares the same HTTP client.
    """

    def __init__(
        self,
        base_url: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url if base_url.endswith("/") else f"{base_url}/"
        self._owns_http = http_client is None
        if http_client is None:
            http_client = stateless_client(timeout)
        else:
            disable_cookie_persistence(http_client)
        self._http = http_client
        self._token: str | None = None

    def for_session(self, token: str | None) -> PrimaryCrudClient:
        bound = copy.copy(self)
        bound._owns_http = False
        bound._token = token or None
        return bound

    async def aclose(self) -> None:
        if self._owns_http:
            await self._http.aclose()

    async def _send(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> httpx.Response:
        url = f"{self._base_url}{path}"
        headers = {"Authorization": f"Bearer {self._token}"} if self._token else None
        try:
            return await self._http.request(
                method, url, params=params, json=body, headers=headers
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Primary API timed out: {e}", _STORE) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Primary API is not reachable: {e}", _STORE) from e

    @staticmethod
    def _envelope(resp: httpx.Response) -> ResultEnvelope:
        try:
            data = resp.json()
        except ValueError:
            data = None
        if not isinstance(data, dict):
            raise TransportError(
                f"Primary API returned a non-envelope response ({resp.status_code})",
                _STORE,
                resp.status_code,
            )
        return ResultEnvelope.from_dict(data)

    async def _call(self, method: str, path: str, **kwargs: Any) -> ResultEnvelope:
        return self._envelope(await self._send(method, path, **kwargs))

    @staticmethod
    def _entity(entity: str) -> str:
        return quote(entity, safe="")

    @traced("primary.list")
    async def list(self, entity: str, page: int, items: int) -> ResultEnvelope:
        return await self._call(
            "GET", f"{self._entity(entity)}/list", params={"page": page, "items": items}
        )

    @traced("primary.create")
    async def create(self, entity: str, data: dict[str, Any]) -> ResultEnvelope:
        return await self._call("POST", f"{self._entity(entity)}/create", body=data)

    @traced("primary.read")
    async def read(self, entity: str, id: str) -> ResultEnvelope:
        return await self._call("GET", f"{self._entity(entity)}/read/{quote(id, safe='')}")

    @traced("primary.update")
    async def update(self, entity: str, id: str, data: dict[str, Any]) -> ResultEnvelope:
        return await self._call(
            "PATCH", f"{self._entity(entity)}/update/{quote(id, safe='')}", body=data
        )

    @traced("primary.delete")
    async def delete(self, entity: str, id: str) -> ResultEnvelope:
        return await self._call(
            "DELETE", f"{self._entity(entity)}/delete/{quote(id, safe='')}"
        )

    @traced("primary.search")
    async def search(
        self, entity: str, q: str, fields: str | None = None
    ) -> ResultEnvelope:
        params: dict[str, Any] = {"q": q}
        if fields:
            params["fields"] = fields
        return await self._call("GET", f"{self._entity(entity)}/search", params=params)

    @traced("primary.filter")
    async def filter(
        self, entity: str, field: str | None, value: str | None
    ) -> ResultEnvelope:
        params: dict[str, Any] = {}
        if field and value is not None:
            params = {"filter": field, "equal": value}
        return await self._call("GET", f"{self._entity(entity)}/filter", params=params)

    async def login(self, credentials: dict[str, Any]) -> ResultEnvelope:
        """Log in; a successful result carries the issued user token under `token`."""
        # Timestamp defeats intermediary caches, as the API's own frontend does.
        resp = await self._send(
            "POST", "login", params={"timestamp": int(time.time() * 1000)}, body=credentials
        )
        envelope = self._envelope(resp)
        token = resp.cookies.get(TOKEN_COOKIE)
        if envelope.success and token and isinstance(envelope.result, dict):
            envelope = replace(envelope, result={TOKEN_COOKIE: token, **envelope.result})
        return envelope

    async def logout(self) -> ResultEnvelope:
        return await self._call(
            "POST", "logout", params={"timestamp": int(time.time() * 1000)}
        )
