"""Entity API: thin routes delegating to the EntityRouter.

Every route answers 200 with a result envelope; store failures come back as
`success=false` envelopes, never as HTTP errors.
"""

from typing import Annotated, Any

from fastapi import APIRouter, Body, Depends, Query

from crm_gateway.api.v1.dependencies import get_database_id, get_entity_router
from crm_gateway.application.dtos.envelope import ResultEnvelope
from crm_gateway.application.services.entity_router import DEFAULT_SEARCH_ITEMS, EntityRouter
from crm_gateway.schemas.envelope import EnvelopeResponse, ManyRequest

router = APIRouter()


def _response(envelope: ResultEnvelope) -> EnvelopeResponse:
    return EnvelopeResponse.model_validate(envelope.to_dict())


@router.get("/{entity}/list", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def list_entities(
    entity: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
    page: int = Query(1, ge=1),
    items: int = Query(10, ge=1, le=100),
    q: str | None = Query(None, description="Text search (document store entities)"),
    status: str | None = Query(None, description="Exact status (tickets)"),
):
    """List one page of records, newest first."""
    return _response(
        await router_.list(
            entity, page, items, q=q or None, status=status or None, database_id=database_id
        )
    )


@router.post("/{entity}/create", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def create_entity(
    entity: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
    data: Annotated[dict[str, Any], Body()],
):
    return _response(await router_.create(entity, data, database_id=database_id))


@router.get("/{entity}/read/{id}", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def read_entity(
    entity: str,
    id: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
):
    return _response(await router_.read(entity, id, database_id=database_id))


@router.patch("/{entity}/update/{id}", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def update_entity(
    entity: str,
    id: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
    data: Annotated[dict[str, Any], Body()],
):
    return _response(await router_.update(entity, id, data, database_id=database_id))


@router.delete("/{entity}/delete/{id}", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def delete_entity(
    entity: str,
    id: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
):
    return _response(await router_.delete(entity, id, database_id=database_id))


@router.get("/{entity}/search", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def search_entities(
    entity: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
    q: str = "",
    fields: str | None = None,
    items: int = Query(DEFAULT_SEARCH_ITEMS, ge=1, le=100),
):
    """Search by the entity's search field (document store) or `fields` (primary API)."""
    return _response(
        await router_.search(entity, q, items, fields, database_id=database_id)
    )


@router.get("/{entity}/filter", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def filter_entities(
    entity: str,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
    filter: str | None = None,
    equal: str | None = None,
):
    """Records whose `filter` field equals `equal`; both omitted returns all."""
    return _response(
        await router_.filter(entity, filter, equal, database_id=database_id)
    )


@router.post("/{entity}/many", response_model=EnvelopeResponse, response_model_exclude_unset=True)
async def get_many_entities(
    entity: str,
    body: ManyRequest,
    router_: Annotated[EntityRouter, Depends(get_entity_router)],
    database_id: Annotated[str | None, Depends(get_database_id)],
):
    """Fetch records by id list, newest first."""
    return _response(await router_.get_many(entity, body.ids, database_id=database_id))
