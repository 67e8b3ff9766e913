"""httpx client helpers shared by the store clients.

Store clients are shared by every browser session, so they must never keep
per-user credentials in a cookie jar. Credentials travel as explicit
headers on each call instead.
"""

from __future__ import annotations

from http.cookiejar import DefaultCookiePolicy

import httpx


def disable_cookie_persistence(client: httpx.AsyncClient) -> None:
    """Make `client` drop every Set-Cookie it receives."""
    client.cookies.jar.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    client.cookies.clear()


def stateless_client(timeout: float) -> httpx.AsyncClient:
    client = httpx.AsyncClient(timeout=timeout)
    disable_cookie_persistence(client)
    return client
