"""Record storage and CRUD operations shared by every resource."""

import logging
from typing import Any, Dict, Optional, Protocol
from uuid import UUID

import asyncpg
import jsonschema

from ..auth.api_key import Principal
from ..errors.problem_details import BadRequestError, InternalServerError, NotFoundError
from ..pagination.executor import QueryExecutor, Record
from ..pagination.filters import Equals, FilterExpression
from ..resources import SYSTEM_FIELDS, ResourceConfig
from .executor import RECORD_COLUMNS, PostgresQueryExecutor, row_to_record, to_json


logger = logging.getLogger(__name__)

OWNER_FIELD = "createdBy"


class RecordStore(QueryExecutor, Protocol):
    """Query executor that can also write records of one collection."""

    async def insert(self, body: Dict[str, Any], owner_id: str) -> Record:
        ...

    async def fetch(self, record_id: UUID) -> Optional[Record]:
        ...

    async def replace(self, record_id: UUID, body: Dict[str, Any]) -> Optional[Record]:
        ...

    async def remove(self, record_id: UUID) -> bool:
        ...


def body_of(record: Record) -> Dict[str, Any]:
    """The client-owned part of a record."""
    return {k: v for k, v in record.items() if k not in SYSTEM_FIELDS}


class PostgresRecordStore(PostgresQueryExecutor):
    """Records of one collection in the ``records`` table."""

    async def insert(self, body: Dict[str, Any], owner_id: str) -> Record:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO records (collection, owner_id, body)
                VALUES ($1, $2, $3::jsonb)
                RETURNING {RECORD_COLUMNS}
                """,
                self.collection, owner_id, to_json(body)
            )
        return row_to_record(row)

    async def fetch(self, record_id: UUID) -> Optional[Record]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {RECORD_COLUMNS} FROM records WHERE id = $1 AND collection = $2",
                record_id, self.collection
            )
        return row_to_record(row) if row else None

    async def replace(self, record_id: UUID, body: Dict[str, Any]) -> Optional[Record]:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE records SET body = $3::jsonb, updated_at = now()
                WHERE id = $1 AND collection = $2
                RETURNING {RECORD_COLUMNS}
                """,
                record_id, self.collection, to_json(body)
            )
        return row_to_record(row) if row else None

    async def remove(self, record_id: UUID) -> bool:
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM records WHERE id = $1 AND collection = $2",
                record_id, self.collection
            )
        # asyncpg returns the command tag, e.g. "DELETE 1"
        return result.split()[-1] != "0"


def scope_to_principal(filter: FilterExpression, principal: Principal) -> FilterExpression:
    """Restrict a listing to the caller's own records unless they are an admin."""
    if principal.is_admin:
        return filter
    return filter.with_predicate(OWNER_FIELD, Equals(value=principal.user_id))


def validate_body(resource: ResourceConfig, body: Dict[str, Any]) -> None:
    """Validate a record body for ``resource``.

    Args:
        resource: Resource the record belongs to
        body: Record body to validate

    Raises:
        BadRequestError: If the body sets a system field or violates the schema
        InternalServerError: If the resource's schema itself is invalid
    """
    reserved = sorted(k for k in body if k in SYSTEM_FIELDS)
    if reserved:
        raise BadRequestError(f"Fields managed by the server cannot be set: {', '.join(reserved)}")

    if not resource.json_schema:
        return

    try:
        jsonschema.validate(body, resource.json_schema, format_checker=jsonschema.FormatChecker())
    except jsonschema.ValidationError as e:
        logger.info(f"Record validation failed for {resource.name}: {e.message}")
        raise BadRequestError(f"Record validation failed: {e.message}")
    except jsonschema.SchemaError as e:
        logger.error(f"Invalid schema for {resource.name}: {e.message}")
        raise InternalServerError("Resource schema is invalid")


async def _guard(operation: str, call):
    try:
        return await call
    except asyncpg.PostgresError as e:
        logger.error(f"Database error during {operation}: {e}")
        raise InternalServerError("Database error")


def _visible(record: Optional[Record], principal: Principal) -> bool:
    return record is not None and (principal.is_admin or record.get(OWNER_FIELD) == principal.user_id)


async def create_record(
    store: RecordStore,
    resource: ResourceConfig,
    principal: Principal,
    body: Dict[str, Any]
) -> Record:
    """Validate and store a new record owned by ``principal``.

    Raises:
        BadRequestError: If the body fails validation
        InternalServerError: If the database operation fails
    """
    validate_body(resource, body)
    record = await _guard("create", store.insert(body, principal.user_id))
    logger.info(f"Created {resource.name} record {record['id']} for user {principal.user_id}")
    return record


async def get_record(
    store: RecordStore,
    resource: ResourceConfig,
    principal: Principal,
    record_id: UUID
) -> Record:
    """Fetch one record visible to ``principal``.

    Raises:
        NotFoundError: If the record does not exist or belongs to someone else
    """
    record = await _guard("get", store.fetch(record_id))
    if not _visible(record, principal):
        raise NotFoundError(f"{resource.title} record '{record_id}' not found")
    return record


async def update_record(
    store: RecordStore,
    resource: ResourceConfig,
    principal: Principal,
    record_id: UUID,
    changes: Dict[str, Any]
) -> Record:
    """Shallow-merge ``changes`` into a record and validate the result.

    Raises:
        NotFoundError: If the record does not exist or belongs to someone else
        BadRequestError: If the merged body fails validation
    """
    current = await get_record(store, resource, principal, record_id)
    merged = {**body_of(current), **changes}
    validate_body(resource, merged)

    record = await _guard("update", store.replace(record_id, merged))
    if record is None:
        raise NotFoundError(f"{resource.title} record '{record_id}' not found")

    logger.info(f"Updated {resource.name} record {record_id} for user {principal.user_id}")
    return record


async def delete_record(
    store: RecordStore,
    resource: ResourceConfig,
    principal: Principal,
    record_id: UUID
) -> None:
    """Delete a record. Callers enforce the admin requirement.

    Raises:
        NotFoundError: If the record does not exist
    """
    if not await _guard("delete", store.remove(record_id)):
        raise NotFoundError(f"{resource.title} record '{record_id}' not found")
    logger.info(f"Deleted {resource.name} record {record_id} by user {principal.user_id}")
