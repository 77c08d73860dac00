"""CRUD and listing endpoints, one router per resource."""

import logging
from typing import Annotated, Callable, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Request, Response

from ..auth.dependencies import AdminPrincipal, CurrentPrincipal, security
from ..config import Settings, get_settings
from ..db.connection import get_db_pool
from ..db.records import (
    PostgresRecordStore, RecordStore, scope_to_principal,
    create_record, get_record, update_record, delete_record
)
from ..models.records import RecordCreate, RecordResponse, RecordUpdate
from ..pagination import (
    CursorPaginatedResponse, OffsetPaginatedResponse, assemble_keyset, assemble_offset,
    build_filter, create_link_header, decode_cursor, group_query_params,
    paginate_keyset, paginate_offset, parse_direction, resolve_sort
)
from ..pagination.params import clamp_limit
from ..resources import RESOURCES, ResourceConfig


logger = logging.getLogger(__name__)

StoreFactory = Callable[[ResourceConfig], RecordStore]

CURSOR_LINK_EXCLUDED = ("cursor", "direction")


async def get_store_factory() -> StoreFactory:
    """Build stores backed by the shared PostgreSQL pool."""
    pool = await get_db_pool()
    return lambda resource: PostgresRecordStore(pool, resource.collection)


def create_resource_router(resource: ResourceConfig) -> APIRouter:
    """Create the router serving ``resource``.

    Args:
        resource: Listing and validation configuration of the resource

    Returns:
        Router with offset and cursor listings plus CRUD endpoints
    """
    router = APIRouter(
        prefix=f"/{resource.name}",
        tags=[resource.title],
        dependencies=[Depends(security)],
        responses={
            401: {"description": "Unauthorized"},
            404: {"description": "Not Found"}
        }
    )

    async def get_store(factory: Annotated[StoreFactory, Depends(get_store_factory)]) -> RecordStore:
        return factory(resource)

    Store = Annotated[RecordStore, Depends(get_store)]
    AppSettings = Annotated[Settings, Depends(get_settings)]

    def listing_filter(request: Request, principal):
        raw = group_query_params(request.query_params.multi_items())
        filter = build_filter(raw, resource.filter_fields, resource.search_fields)
        return scope_to_principal(filter, principal)

    @router.get(
        "",
        response_model=OffsetPaginatedResponse,
        summary=f"List {resource.name}",
        description=(
            "Page-number listing. Filter keys: "
            + (", ".join(resource.filter_fields) or "none")
            + ". `search` matches " + (", ".join(resource.search_fields) or "nothing") + "."
        ),
        responses={400: {"description": "Bad Request - Invalid sort or filter"}}
    )
    async def list_records(
        request: Request,
        principal: CurrentPrincipal,
        store: Store,
        settings: AppSettings,
        page: Annotated[Optional[str], Query(description="1-based page number")] = None,
        limit: Annotated[Optional[str], Query(description="Records per page")] = None,
        sort_by: Annotated[Optional[str], Query(alias="sortBy", description="field:asc|desc[,...]")] = None
    ) -> OffsetPaginatedResponse:
        """List records with page numbers and a total count."""
        filter = listing_filter(request, principal)
        sort = resolve_sort(sort_by, resource.sort_fields, default=resource.default_sort)
        limit = clamp_limit(limit, settings.max_page_size, settings.default_page_size)

        result = await paginate_offset(filter, sort, page, limit, store, max_limit=settings.max_page_size)
        return assemble_offset(result)

    @router.get(
        "/cursor",
        response_model=CursorPaginatedResponse,
        summary=f"List {resource.name} by cursor",
        description="Keyset listing for feeds and infinite scroll. Accepts the same filter keys as the page listing.",
        responses={400: {"description": "Bad Request - Invalid sort, filter or direction"}}
    )
    async def list_records_by_cursor(
        request: Request,
        response: Response,
        principal: CurrentPrincipal,
        store: Store,
        settings: AppSettings,
        cursor: Annotated[Optional[str], Query(description="Cursor from a previous page")] = None,
        direction: Annotated[Optional[str], Query(description="next or prev")] = None,
        limit: Annotated[Optional[str], Query(description="Records per page")] = None,
        sort_by: Annotated[Optional[str], Query(alias="sortBy", description="field:asc|desc[,...]")] = None
    ) -> CursorPaginatedResponse:
        """List records after (or before) a cursor.

        A cursor that cannot be decoded for the current sort restarts the
        listing from the beginning. The response carries an RFC 8288 Link
        header pointing at the neighbouring pages.
        """
        direction = parse_direction(direction)
        filter = listing_filter(request, principal)
        sort = resolve_sort(sort_by, resource.sort_fields, default=resource.default_sort)
        limit = clamp_limit(limit, settings.cursor_max_page_size, settings.cursor_default_page_size)

        result = await paginate_keyset(
            filter, sort, decode_cursor(cursor, sort), limit, direction, store,
            max_limit=settings.cursor_max_page_size
        )
        body = assemble_keyset(result)

        params = {
            key: request.query_params.getlist(key)
            for key in request.query_params.keys()
            if key not in CURSOR_LINK_EXCLUDED
        }
        base_url = str(request.url.replace(query=""))
        link = create_link_header(base_url.rstrip("?"), params, body.pagination.next_cursor, body.pagination.prev_cursor)
        if link:
            response.headers["Link"] = link

        return body

    @router.post(
        "",
        response_model=RecordResponse,
        status_code=201,
        summary=f"Create a {resource.name} record",
        responses={400: {"description": "Bad Request - Schema validation failed"}}
    )
    async def create(payload: RecordCreate, principal: CurrentPrincipal, store: Store) -> RecordResponse:
        record = await create_record(store, resource, principal, payload.body)
        return RecordResponse(data=record)

    @router.get("/{record_id}", response_model=RecordResponse, summary=f"Get a {resource.name} record")
    async def read(record_id: UUID, principal: CurrentPrincipal, store: Store) -> RecordResponse:
        record = await get_record(store, resource, principal, record_id)
        return RecordResponse(data=record)

    @router.patch(
        "/{record_id}",
        response_model=RecordResponse,
        summary=f"Update a {resource.name} record",
        description="Top-level keys in the body replace the stored ones; the result is validated again."
    )
    async def update(
        record_id: UUID,
        payload: RecordUpdate,
        principal: CurrentPrincipal,
        store: Store
    ) -> RecordResponse:
        record = await update_record(store, resource, principal, record_id, payload.body)
        return RecordResponse(data=record)

    @router.delete(
        "/{record_id}",
        status_code=204,
        summary=f"Delete a {resource.name} record",
        responses={
            204: {"description": "Record deleted"},
            403: {"description": "Forbidden - Admin role required"}
        }
    )
    async def delete(record_id: UUID, principal: AdminPrincipal, store: Store) -> Response:
        await delete_record(store, resource, principal, record_id)
        return Response(status_code=204)

    return router


resource_routers = [create_resource_router(resource) for resource in RESOURCES]
