"""Tests for SQL generation in the PostgreSQL executor."""

import json
from datetime import date, datetime, timezone
from uuid import UUID

import pytest

from movestore.db.executor import (
    PostgresQueryExecutor, QueryParams, build_order_clause, build_where_clause, row_to_record
)
from movestore.pagination.cursor import Cursor
from movestore.pagination.exceptions import InvalidFilter
from movestore.pagination.filters import (
    Equals, FilterExpression, Matches, OneOf, Range, TextSearch
)
from movestore.pagination.keyset import build_seek_boundary
from movestore.pagination.sort import resolve_sort


RECORD_ID = UUID("0b7d6a52-6c43-4c8e-8b0e-5d1c7e2f9a10")


class TestWhereClause:
    """Test build_where_clause."""

    def test_collection_only(self):
        params = QueryParams()

        where = build_where_clause("moves", FilterExpression(), params)

        assert where == "collection = $1"
        assert params.values == ["moves"]

    def test_equals_on_body_path(self):
        params = QueryParams()
        filter = FilterExpression().with_predicate("payment.status", Equals(value="open"))

        where = build_where_clause("moves", filter, params)

        assert where == "collection = $1 AND NULLIF(body #> $2::text[], 'null'::jsonb) = $3::jsonb"
        assert params.values == ["moves", ["payment", "status"], '"open"']

    def test_equals_on_system_column(self):
        params = QueryParams()
        filter = FilterExpression().with_predicate("createdBy", Equals(value="user-1"))

        where = build_where_clause("moves", filter, params)

        assert where == "collection = $1 AND owner_id = $2::text"
        assert params.values == ["moves", "user-1"]

    def test_matches_reads_text(self):
        params = QueryParams()
        filter = FilterExpression().with_predicate("name", Matches(pattern="acme"))

        where = build_where_clause("clients", filter, params)

        assert where.endswith("(body #>> $2::text[]) ~* $3")
        assert params.values[1:] == [["name"], "acme"]

    def test_range_with_dates(self):
        params = QueryParams()
        filter = FilterExpression().with_predicate(
            "moveDate", Range(min=date(2026, 5, 1), max=date(2026, 5, 31))
        )

        where = build_where_clause("moves", filter, params)

        assert "NULLIF(body #> $2::text[], 'null'::jsonb) >= $3::jsonb" in where
        assert "NULLIF(body #> $4::text[], 'null'::jsonb) <= $5::jsonb" in where
        assert params.values[2] == '"2026-05-01"'
        assert params.values[4] == '"2026-05-31"'

    def test_range_on_timestamp_column(self):
        params = QueryParams()
        start = datetime(2026, 5, 1, tzinfo=timezone.utc)
        filter = FilterExpression().with_predicate("createdAt", Range(min=start))

        where = build_where_clause("moves", filter, params)

        assert where == "collection = $1 AND created_at >= $2::timestamptz"
        assert params.values[1] == start

    def test_one_of_on_body(self):
        params = QueryParams()
        filter = FilterExpression().with_predicate("status", OneOf(values=("planned", "quoted")))

        where = build_where_clause("moves", filter, params)

        assert where.endswith("NULLIF(body #> $2::text[], 'null'::jsonb) = ANY($3::jsonb[])")
        assert params.values[2] == ['"planned"', '"quoted"']

    def test_search_shares_one_pattern(self):
        params = QueryParams()
        filter = FilterExpression(search=TextSearch(term="a+b", fields=("customer.name", "notes")))

        where = build_where_clause("moves", filter, params)

        assert "(body #>> $3::text[]) ~* $2 OR (body #>> $4::text[]) ~* $2" in where
        assert params.values[1] == r"a\+b"

    def test_seek_boundary(self):
        params = QueryParams()
        sort = resolve_sort("moveDate:asc", ["moveDate"])
        seek = build_seek_boundary(sort, Cursor(key=("2026-05-01",), id=str(RECORD_ID)))

        where = build_where_clause("moves", FilterExpression(seek=seek), params)

        assert where == (
            "collection = $1 AND ((NULLIF(body #> $2::text[], 'null'::jsonb) > $3::jsonb) OR "
            "(NULLIF(body #> $4::text[], 'null'::jsonb) = $5::jsonb AND id < $6::uuid))"
        )
        assert params.values[5] == RECORD_ID

    def test_seek_descending_admits_null_tail(self):
        params = QueryParams()
        sort = resolve_sort("costs.total:desc", ["costs.total"])
        seek = build_seek_boundary(sort, Cursor(key=(500,), id=str(RECORD_ID)))

        where = build_where_clause("moves", FilterExpression(seek=seek), params)

        assert where == (
            "collection = $1 AND ((NULLIF(body #> $2::text[], 'null'::jsonb) < $3::jsonb) OR "
            "(NULLIF(body #> $4::text[], 'null'::jsonb) IS NULL) OR "
            "(NULLIF(body #> $5::text[], 'null'::jsonb) = $6::jsonb AND id < $7::uuid))"
        )
        assert params.values[2] == "500"

    def test_seek_from_null_cursor_value(self):
        params = QueryParams()
        sort = resolve_sort("costs.total:desc", ["costs.total"])
        seek = build_seek_boundary(sort, Cursor(key=(None,), id=str(RECORD_ID)))

        where = build_where_clause("moves", FilterExpression(seek=seek), params)

        assert where == (
            "collection = $1 AND ((NULLIF(body #> $2::text[], 'null'::jsonb) IS NULL AND id < $3::uuid))"
        )
        assert params.values == ["moves", ["costs", "total"], RECORD_ID]

    def test_values_are_never_interpolated(self):
        params = QueryParams()
        hostile = "x'; DROP TABLE records; --"
        filter = FilterExpression().with_predicate(hostile, Equals(value=hostile))

        where = build_where_clause("moves", filter, params)

        assert "DROP" not in where
        assert params.values[2] == json.dumps(hostile)

    def test_invalid_uuid(self):
        params = QueryParams()
        filter = FilterExpression().with_predicate("id", Equals(value="not-a-uuid"))

        with pytest.raises(InvalidFilter):
            build_where_clause("moves", filter, params)


class TestOrderClause:
    """Test build_order_clause."""

    def test_directions_and_nulls(self):
        params = QueryParams("moves")
        sort = resolve_sort("costs.total:asc", ["costs.total"])

        order = build_order_clause(sort, params)

        assert order == "NULLIF(body #> $2::text[], 'null'::jsonb) ASC NULLS FIRST, id DESC NULLS LAST"
        assert params.values == ["moves", ["costs", "total"]]

    def test_default_sort_uses_columns(self):
        order = build_order_clause(resolve_sort(None, []), QueryParams())

        assert order == "created_at DESC NULLS LAST, id DESC NULLS LAST"


class TestPostgresQueryExecutor:
    """Test PostgresQueryExecutor with a mocked pool."""

    def test_find_query_with_skip(self):
        executor = PostgresQueryExecutor(pool=None, collection="moves")

        query, args = executor.build_find_query(FilterExpression(), resolve_sort(None, []), skip=40, limit=20)

        assert query == (
            "SELECT id, owner_id, body, created_at, updated_at FROM records "
            "WHERE collection = $1 ORDER BY created_at DESC NULLS LAST, id DESC NULLS LAST "
            "LIMIT $2 OFFSET $3"
        )
        assert args == ["moves", 20, 40]

    def test_find_query_without_skip(self):
        executor = PostgresQueryExecutor(pool=None, collection="moves")

        query, args = executor.build_find_query(FilterExpression(), resolve_sort(None, []), skip=None, limit=11)

        assert "OFFSET" not in query
        assert args == ["moves", 11]

    @pytest.mark.asyncio
    async def test_find_maps_rows(self, mock_db_pool):
        pool, conn = mock_db_pool
        created = datetime(2026, 5, 1, tzinfo=timezone.utc)
        conn.fetch.return_value = [{
            "id": RECORD_ID,
            "owner_id": "user-1",
            "body": '{"status": "planned"}',
            "created_at": created,
            "updated_at": created,
        }]
        executor = PostgresQueryExecutor(pool, "moves")

        records = await executor.find(FilterExpression(), resolve_sort(None, []), limit=5)

        assert records == [{
            "status": "planned",
            "id": str(RECORD_ID),
            "createdAt": created,
            "updatedAt": created,
            "createdBy": "user-1",
        }]
        assert conn.fetch.await_args.args[1:] == ("moves", 5)

    @pytest.mark.asyncio
    async def test_count(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetchval.return_value = 42
        executor = PostgresQueryExecutor(pool, "clients")
        filter = FilterExpression().with_predicate("city", Equals(value="Berlin"))

        assert await executor.count(filter) == 42

        query = conn.fetchval.await_args.args[0]
        assert query.startswith("SELECT COUNT(*) FROM records WHERE collection = $1")

    @pytest.mark.asyncio
    async def test_database_errors_propagate(self, mock_db_pool):
        pool, conn = mock_db_pool
        conn.fetch.side_effect = ConnectionResetError("connection lost")
        executor = PostgresQueryExecutor(pool, "moves")

        with pytest.raises(ConnectionResetError):
            await executor.find(FilterExpression(), resolve_sort(None, []), limit=5)


def test_row_to_record_accepts_decoded_body():
    created = datetime(2026, 5, 1, tzinfo=timezone.utc)

    record = row_to_record({
        "id": RECORD_ID, "owner_id": "u", "body": {"a": 1}, "created_at": created, "updated_at": created
    })

    assert record["a"] == 1
    assert record["id"] == str(RECORD_ID)
