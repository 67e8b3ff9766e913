"""Thin Appwrite REST v1 client (no SDK).

Covers the account session calls and the database document calls the
gateway uses. All HTTP calls go through one httpx.AsyncClient so they do not
block the event loop. The shared client keeps no cookies: a browser session
binds its own copy with for_session(secret), and the secret is sent as the
X-Appwrite-Session header on each call.
"""

from __future__ import annotations

import copy
import json
from typing import Any
from urllib.parse import quote

import httpx

from crm_gateway.application.dtos.query import DocumentPage, Query
from crm_gateway.domain.exceptions import AuthError, NotFoundError, TransportError
from crm_gateway.infrastructure._http import disable_cookie_persistence, stateless_client
from crm_gateway.shared.telemetry.tracing import traced

_STORE = "secondary"
_RESPONSE_FORMAT = "1.5.0"
_UNIQUE_ID = "unique()"


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text or resp.reason_phrase
    if isinstance(body, dict) and body.get("message"):
        return str(body["message"])
    return resp.reason_phrase


def _encode_queries(queries: list[Query]) -> list[tuple[str, str]]:
    """Appwrite expects each query as a JSON string in a repeated `queries[]` param."""
    return [("queries[]", json.dumps(q.to_dict(), separators=(",", ":"))) for q in queries]


class AppwriteRESTClient:
    """Document database + account client for one Appwrite project.

    The instance built at startup is unauthenticated. for_session() returns a
    copy bound to one session secret that shares the same HTTP client.
    """

    def __init__(
        self,
        endpoint: str,
        project_id: str,
        *,
        timeout: float = 30.0,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._endpoint = endpoint.rstrip("/")
        self._project_id = project_id
        self._owns_http = http_client is None
        if http_client is None:
            http_client = stateless_client(timeout)
        else:
            disable_cookie_persistence(http_client)
        self._http = http_client
        self._session_secret: str | None = None

    def for_session(self, secret: str | None) -> AppwriteRESTClient:
        """Return a client that authenticates with `secret` (None: no session)."""
        bound = copy.copy(self)
        bound._owns_http = False
        bound._session_secret = secret or None
        return bound

    @property
    def session_secret(self) -> str | None:
        return self._session_secret

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    def _headers(self) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "X-Appwrite-Project": self._project_id,
            "X-Appwrite-Response-Format": _RESPONSE_FORMAT,
        }
        if self._session_secret:
            headers["X-Appwrite-Session"] = self._session_secret
        return headers

    async def _send(
        self,
        method: str,
        path: str,
        *,
        body: dict[str, Any] | None = None,
        params: list[tuple[str, str]] | None = None,
        resource: tuple[str, str] | None = None,
    ) -> httpx.Response:
        """Perform one call; map transport and status failures to gateway errors.

        Args:
            resource: (type, id) reported by NotFoundError on 404.
        """
        url = f"{self._endpoint}{path}"
        try:
            resp = await self._http.request(
                method, url, headers=self._headers(), json=body, params=params
            )
        except httpx.TimeoutException as e:
            raise TransportError(f"Document store timed out: {e}", _STORE) from e
        except httpx.HTTPError as e:
            raise TransportError(f"Document store is not reachable: {e}", _STORE) from e
        if resp.status_code in (401, 403):
            raise AuthError(_error_message(resp))
        if resp.status_code == 404:
            resource_type, resource_id = resource or ("resource", path)
            raise NotFoundError(resource_type, resource_id)
        if resp.status_code >= 400:
            raise TransportError(_error_message(resp), _STORE, resp.status_code)
        return resp

    @staticmethod
    def _json(resp: httpx.Response) -> dict[str, Any]:
        if resp.status_code == 204 or not resp.content:
            return {}
        return resp.json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        return self._json(await self._send(method, path, **kwargs))

    async def _create_session(self, path: str, body: dict[str, Any]) -> dict[str, Any]:
        resp = await self._send("POST", path, body=body)
        session = self._json(resp)
        # Client-side sessions come back with an empty secret; the secret is
        # then only in the session cookie, which the shared jar never keeps.
        secret = session.get("secret") or resp.cookies.get(f"a_session_{self._project_id}")
        if not secret:
            raise AuthError("Document store returned a session without a secret")
        self._session_secret = secret
        return {**session, "secret": secret}

    # ---- Account ----

    async def get_session(self) -> dict[str, Any] | None:
        """Return the current session, or None when unauthenticated."""
        if not self._session_secret:
            return None
        try:
            return await self._request("GET", "/account/sessions/current")
        except (AuthError, NotFoundError):
            return None

    @traced("appwrite.create_email_session")
    async def create_email_session(self, email: str, password: str) -> dict[str, Any]:
        return await self._create_session(
            "/account/sessions/email", {"email": email, "password": password}
        )

    @traced("appwrite.create_token_session")
    async def create_token_session(self, user_id: str, secret: str) -> dict[str, Any]:
        return await self._create_session(
            "/account/sessions/token", {"userId": user_id, "secret": secret}
        )

    async def delete_session(self) -> None:
        await self._request("DELETE", "/account/sessions/current")

    def clear_local_session(self) -> None:
        """Forget the session secret this client is bound to."""
        self._session_secret = None

    # ---- Databases ----

    def _collection_path(self, database_id: str, collection_id: str) -> str:
        return (
            f"/databases/{quote(database_id, safe='')}"
            f"/collections/{quote(collection_id, safe='')}/documents"
        )

    @traced("appwrite.list_collections")
    async def list_collections(self, database_id: str) -> list[dict[str, Any]]:
        out = await self._request(
            "GET",
            f"/databases/{quote(database_id, safe='')}/collections",
            resource=("database", database_id),
        )
        return list(out.get("collections") or [])

    @traced("appwrite.list_documents")
    async def list_documents(
        self, database_id: str, collection_id: str, queries: list[Query]
    ) -> DocumentPage:
        out = await self._request(
            "GET",
            self._collection_path(database_id, collection_id),
            params=_encode_queries(queries),
            resource=("collection", collection_id),
        )
        return DocumentPage(
            total=int(out.get("total") or 0),
            documents=list(out.get("documents") or []),
        )

    @traced("appwrite.create_document")
    async def create_document(
        self, database_id: str, collection_id: str, data: dict[str, Any]
    ) -> dict[str, Any]:
        return await self._request(
            "POST",
            self._collection_path(database_id, collection_id),
            body={"documentId": _UNIQUE_ID, "data": data},
            resource=("collection", collection_id),
        )

    @traced("appwrite.get_document")
    async def get_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> dict[str, Any]:
        return await self._request(
            "GET",
            f"{self._collection_path(database_id, collection_id)}/{quote(document_id, safe='')}",
            resource=("document", document_id),
        )

    @traced("appwrite.update_document")
    async def update_document(
        self,
        database_id: str,
        collection_id: str,
        document_id: str,
        data: dict[str, Any],
    ) -> dict[str, Any]:
        return await self._request(
            "PATCH",
            f"{self._collection_path(database_id, collection_id)}/{quote(document_id, safe='')}",
            body={"data": data},
            resource=("document", document_id),
        )

    @traced("appwrite.delete_document")
    async def delete_document(
        self, database_id: str, collection_id: str, document_id: str
    ) -> None:
        await self._request(
            "DELETE",
            f"{self._collection_path(database_id, collection_id)}/{quote(document_id, safe='')}",
            resource=("document", document_id),
        )
