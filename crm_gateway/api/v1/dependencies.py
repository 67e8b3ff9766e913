"""Presentation-layer dependency injection (composition root).

Process-wide collaborators (store clients, collection cache, service
session, session storage) are built in the lifespan and read from
app.state. Everything that carries credentials is built per request for the
caller's browser session: the store clients are bound to that session's own
secrets, and the session guard, entity router and auth services sit on top of
them. Routes depend only on these functions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, Request
from starlette.datastructures import State

from crm_gateway.application.interfaces.stores import IPrimaryCrudClient
from crm_gateway.application.services.auth_context import AuthContextMerger, AuthContextStore
from crm_gateway.application.services.auth_service import PRIMARY_TOKEN_KEY, AuthService
from crm_gateway.application.services.entity_router import EntityRouter
from crm_gateway.core.config import get_settings
from crm_gateway.infrastructure.appwrite import CollectionResolver, SessionGuard, session_secret
from crm_gateway.infrastructure.session import SessionState


@dataclass(frozen=True)
class SessionScope:
    """Collaborators bound to one browser session."""

    state: SessionState
    context: AuthContextStore
    guard: SessionGuard
    primary: IPrimaryCrudClient
    entity_router: EntityRouter


def build_session_scope(app_state: State, session_id: str) -> SessionScope:
    """Bind the shared store clients to one browser session's credentials."""
    settings = get_settings()
    state = app_state.session_storage.for_session(session_id)
    store = app_state.document_store.for_session(
        session_secret(state, app_state.service_session)
    )
    primary = app_state.primary_client.for_session(state.get(PRIMARY_TOKEN_KEY))
    guard = SessionGuard(
        store,
        settings.fallback_credentials(),
        state,
        app_state.service_session,
    )
    resolver = CollectionResolver(
        store,
        guard,
        app_state.collection_cache,
        default_database_id=settings.appwrite_database_id,
    )
    entity_router = EntityRouter(
        primary,
        store,
        guard,
        resolver,
        default_database_id=settings.appwrite_database_id,
    )
    return SessionScope(
        state=state,
        context=AuthContextStore(state),
        guard=guard,
        primary=primary,
        entity_router=entity_router,
    )


def get_session_id(request: Request) -> str:
    """Session id set by SessionIDMiddleware."""
    return request.state.session_id


def get_session_scope(
    request: Request,
    session_id: Annotated[str, Depends(get_session_id)],
) -> SessionScope:
    return build_session_scope(request.app.state, session_id)


def get_entity_router(
    scope: Annotated[SessionScope, Depends(get_session_scope)],
) -> EntityRouter:
    return scope.entity_router


def get_auth_context_store(
    scope: Annotated[SessionScope, Depends(get_session_scope)],
) -> AuthContextStore:
    return scope.context


def get_database_id(
    store: Annotated[AuthContextStore, Depends(get_auth_context_store)],
) -> str | None:
    """Tenant id from the session's auth context; None means the configured default."""
    return store.read().tenant_id


def get_auth_context_merger(
    scope: Annotated[SessionScope, Depends(get_session_scope)],
) -> AuthContextMerger:
    return AuthContextMerger(scope.guard, scope.context, get_settings().fallback_credentials())


def get_auth_service(
    scope: Annotated[SessionScope, Depends(get_session_scope)],
) -> AuthService:
    return AuthService(
        scope.primary,
        scope.guard,
        scope.context,
        get_settings().fallback_credentials(),
        session=scope.state,
    )
