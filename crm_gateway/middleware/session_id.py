"""Browser session and request id middleware.

The auth context is scoped to a browser session. The frontend sends its
session id in the session header; when absent (first load) a new one is
issued and echoed on the response so the client can keep sending it.
Websocket connections read the same header (or a `session` query parameter,
since browsers cannot set headers on websocket handshakes).

Client-provided ids are sanitized (length + character set) before they reach
logs or storage keys. Raw ASGI, no BaseHTTPMiddleware.
"""

import re
import uuid
from typing import Callable
from urllib.parse import parse_qsl

ID_MAX_LENGTH = 64
ID_ALLOWED_PATTERN = re.compile(r"^[a-zA-Z0-9_-]{1," + str(ID_MAX_LENGTH) + r"}$")


def _get_header(scope: dict, name: str) -> str | None:
    want = name.lower().encode()
    for k, v in scope.get("headers", []):
        if k.lower() == want:
            return v.decode("utf-8", errors="replace")
    return None


def _get_query_param(scope: dict, name: str) -> str | None:
    query = scope.get("query_string", b"").decode("utf-8", errors="replace")
    return dict(parse_qsl(query)).get(name)


def sanitize_id(raw: str | None) -> str:
    """Return raw if it is a safe id, otherwise a fresh UUID."""
    if not raw or not ID_ALLOWED_PATTERN.match(raw.strip()):
        return str(uuid.uuid4())
    return raw.strip()


def SessionIDMiddleware(
    app: Callable,
    session_header: str = "X-Session-ID",
    request_id_header: str = "X-Request-ID",
) -> Callable:
    """Attach session_id (and request_id for HTTP) to scope state."""

    async def asgi_app(scope: dict, receive: Callable, send: Callable) -> None:
        if scope["type"] == "websocket":
            raw = _get_header(scope, session_header) or _get_query_param(scope, "session")
            scope.setdefault("state", {})["session_id"] = sanitize_id(raw)
            await app(scope, receive, send)
            return
        if scope["type"] != "http":
            await app(scope, receive, send)
            return

        session_id = sanitize_id(_get_header(scope, session_header))
        request_id = sanitize_id(_get_header(scope, request_id_header))
        state = scope.setdefault("state", {})
        state["session_id"] = session_id
        state["request_id"] = request_id

        async def send_wrapper(message: dict) -> None:
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((session_header.encode(), session_id.encode()))
                headers.append((request_id_header.encode(), request_id.encode()))
                message["headers"] = headers
            await send(message)

        await app(scope, receive, send_wrapper)

    return asgi_app
