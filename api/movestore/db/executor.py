"""PostgreSQL query executor for JSON document collections.

Translates filter expressions and sort specifications into parameterised SQL
over the ``records`` table. System fields live in real columns; every other
field is a path into the JSONB ``body``. Field paths and values are always
bound as parameters, never interpolated.
"""

import json
import logging
from datetime import date, datetime, time, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Tuple
from uuid import UUID

from asyncpg import Pool

from ..pagination.exceptions import InvalidFilter
from ..pagination.executor import Record
from ..pagination.filters import (
    Comparison, ComparisonOp, Equals, FilterExpression, Matches, OneOf, Range, TextSearch
)
from ..pagination.sort import SortDirection, SortSpec


logger = logging.getLogger(__name__)


# API field -> (column, SQL type)
SYSTEM_COLUMNS: Dict[str, Tuple[str, str]] = {
    "id": ("id", "uuid"),
    "createdAt": ("created_at", "timestamptz"),
    "updatedAt": ("updated_at", "timestamptz"),
    "createdBy": ("owner_id", "text"),
}

RECORD_COLUMNS = "id, owner_id, body, created_at, updated_at"

_COMPARISON_OPERATORS = {
    ComparisonOp.EQ: "=",
    ComparisonOp.LT: "<",
    ComparisonOp.GT: ">",
}

_NULL_CHECKS = {
    ComparisonOp.IS_NULL: "IS NULL",
    ComparisonOp.NOT_NULL: "IS NOT NULL",
}


class QueryParams:
    """Collects positional query arguments and hands out ``$n`` placeholders."""

    def __init__(self, *values: Any):
        self.values: List[Any] = list(values)

    def add(self, value: Any) -> str:
        self.values.append(value)
        return f"${len(self.values)}"


def _json_default(value: Any) -> Any:
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, UUID):
        return str(value)
    if isinstance(value, Decimal):
        return float(value)
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def to_json(value: Any) -> str:
    return json.dumps(value, default=_json_default)


def _column_value(field: str, sql_type: str, value: Any) -> Any:
    try:
        if sql_type == "uuid":
            return value if isinstance(value, UUID) else UUID(str(value))
        if sql_type == "timestamptz":
            if isinstance(value, datetime):
                return value
            if isinstance(value, date):
                return datetime.combine(value, time.min, tzinfo=timezone.utc)
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
            return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    except ValueError as e:
        raise InvalidFilter(f"Invalid value '{value}' for '{field}'", field=field) from e
    return str(value)


def field_expression(field: str, params: QueryParams, as_text: bool = False) -> str:
    """SQL expression reading ``field`` from a records row.

    A JSON ``null`` reads as SQL NULL, the same as a missing key.
    """
    if field in SYSTEM_COLUMNS:
        column, _ = SYSTEM_COLUMNS[field]
        return f"{column}::text" if as_text else column
    path = params.add(field.split("."))
    if as_text:
        return f"(body #>> {path}::text[])"
    return f"NULLIF(body #> {path}::text[], 'null'::jsonb)"


def value_expression(field: str, value: Any, params: QueryParams) -> str:
    """Placeholder for ``value`` typed to match ``field_expression(field)``."""
    if field in SYSTEM_COLUMNS:
        _, sql_type = SYSTEM_COLUMNS[field]
        return f"{params.add(_column_value(field, sql_type, value))}::{sql_type}"
    return f"{params.add(to_json(value))}::jsonb"


def _predicate_sql(field: str, predicate: Any, params: QueryParams) -> str:
    if isinstance(predicate, Equals):
        return f"{field_expression(field, params)} = {value_expression(field, predicate.value, params)}"

    if isinstance(predicate, Matches):
        operator = "~*" if predicate.case_insensitive else "~"
        return f"{field_expression(field, params, as_text=True)} {operator} {params.add(predicate.pattern)}"

    if isinstance(predicate, Range):
        parts = []
        if predicate.min is not None:
            parts.append(f"{field_expression(field, params)} >= {value_expression(field, predicate.min, params)}")
        if predicate.max is not None:
            parts.append(f"{field_expression(field, params)} <= {value_expression(field, predicate.max, params)}")
        return " AND ".join(parts) or "TRUE"

    if isinstance(predicate, OneOf):
        if field in SYSTEM_COLUMNS:
            _, sql_type = SYSTEM_COLUMNS[field]
            values = [_column_value(field, sql_type, v) for v in predicate.values]
            return f"{field_expression(field, params)} = ANY({params.add(values)}::{sql_type}[])"
        values = [to_json(v) for v in predicate.values]
        return f"{field_expression(field, params)} = ANY({params.add(values)}::jsonb[])"

    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _search_sql(search: TextSearch, params: QueryParams) -> str:
    pattern = params.add(search.pattern)
    matches = [f"{field_expression(f, params, as_text=True)} ~* {pattern}" for f in search.fields]
    return "(" + " OR ".join(matches) + ")"


def _comparison_sql(comparison: Comparison, params: QueryParams) -> str:
    if comparison.op in _NULL_CHECKS:
        return f"{field_expression(comparison.field, params)} {_NULL_CHECKS[comparison.op]}"
    operator = _COMPARISON_OPERATORS[comparison.op]
    return (
        f"{field_expression(comparison.field, params)} {operator} "
        f"{value_expression(comparison.field, comparison.value, params)}"
    )


def build_where_clause(collection: str, filter: FilterExpression, params: QueryParams) -> str:
    """Build the WHERE clause for a collection listing.

    Args:
        collection: Collection name, always the first condition
        filter: Filter expression to translate
        params: Parameter collector shared with the rest of the query

    Returns:
        SQL condition (without the ``WHERE`` keyword)
    """
    conditions = [f"collection = {params.add(collection)}"]

    for field, predicate in filter.predicates.items():
        conditions.append(_predicate_sql(field, predicate, params))

    if filter.search is not None and filter.search.fields:
        conditions.append(_search_sql(filter.search, params))

    if filter.seek is not None:
        branches = [
            "(" + " AND ".join(_comparison_sql(c, params) for c in branch) + ")"
            for branch in filter.seek.branches
        ]
        conditions.append("(" + " OR ".join(branches) + ")")

    return " AND ".join(conditions)


def build_order_clause(sort: SortSpec, params: QueryParams) -> str:
    """Build the ORDER BY list; nulls sort before values in ascending order."""
    keys = []
    for key in sort.fields:
        if key.direction is SortDirection.DESC:
            keys.append(f"{field_expression(key.field, params)} DESC NULLS LAST")
        else:
            keys.append(f"{field_expression(key.field, params)} ASC NULLS FIRST")
    return ", ".join(keys)


def row_to_record(row: Mapping[str, Any]) -> Record:
    """Flatten a records row into the API's record shape."""
    body = row["body"]
    if isinstance(body, str):
        body = json.loads(body)
    return {
        **body,
        "id": str(row["id"]),
        "createdAt": row["created_at"],
        "updatedAt": row["updated_at"],
        "createdBy": row["owner_id"],
    }


class PostgresQueryExecutor:
    """Runs find/count queries for one collection.

    Database errors are not caught here; they reach the caller unchanged.
    """

    def __init__(self, pool: Pool, collection: str):
        self.pool = pool
        self.collection = collection

    def build_find_query(
        self,
        filter: FilterExpression,
        sort: SortSpec,
        skip: Optional[int],
        limit: int
    ) -> Tuple[str, List[Any]]:
        params = QueryParams()
        where = build_where_clause(self.collection, filter, params)
        order = build_order_clause(sort, params)
        query = (
            f"SELECT {RECORD_COLUMNS} FROM records "
            f"WHERE {where} ORDER BY {order} LIMIT {params.add(limit)}"
        )
        if skip:
            query += f" OFFSET {params.add(skip)}"
        return query, params.values

    def build_count_query(self, filter: FilterExpression) -> Tuple[str, List[Any]]:
        params = QueryParams()
        where = build_where_clause(self.collection, filter, params)
        return f"SELECT COUNT(*) FROM records WHERE {where}", params.values

    async def find(
        self,
        filter: FilterExpression,
        sort: SortSpec,
        *,
        skip: Optional[int] = None,
        limit: int
    ) -> List[Record]:
        query, args = self.build_find_query(filter, sort, skip, limit)
        logger.debug(f"find on {self.collection}: {query}")
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(query, *args)
        return [row_to_record(row) for row in rows]

    async def count(self, filter: FilterExpression) -> int:
        query, args = self.build_count_query(filter)
        async with self.pool.acquire() as conn:
            return await conn.fetchval(query, *args)
