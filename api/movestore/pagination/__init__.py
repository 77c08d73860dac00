"""Pagination module: filtering, sorting, offset and keyset pagination."""

from .cursor import (
    Cursor,
    encode_cursor,
    decode_cursor,
    cursor_from_record,
    create_link_header
)
from .exceptions import PaginationError, InvalidSort, InvalidFilter
from .executor import QueryExecutor, MemoryQueryExecutor, Record
from .filters import (
    FilterType,
    ValueType,
    FilterField,
    FilterExpression,
    Equals,
    Matches,
    Range,
    OneOf,
    TextSearch,
    build_filter
)
from .keyset import paginate_keyset, build_seek_boundary
from .offset import paginate_offset
from .page import (
    Page,
    OffsetPaginatedResponse,
    CursorPaginatedResponse,
    assemble_offset,
    assemble_keyset
)
from .params import PaginationDirection, parse_direction, group_query_params
from .sort import SortDirection, SortField, SortSpec, resolve_sort

__all__ = [
    "Cursor",
    "encode_cursor",
    "decode_cursor",
    "cursor_from_record",
    "create_link_header",
    "PaginationError",
    "InvalidSort",
    "InvalidFilter",
    "QueryExecutor",
    "MemoryQueryExecutor",
    "Record",
    "FilterType",
    "ValueType",
    "FilterField",
    "FilterExpression",
    "Equals",
    "Matches",
    "Range",
    "OneOf",
    "TextSearch",
    "build_filter",
    "paginate_keyset",
    "build_seek_boundary",
    "paginate_offset",
    "Page",
    "OffsetPaginatedResponse",
    "CursorPaginatedResponse",
    "assemble_offset",
    "assemble_keyset",
    "PaginationDirection",
    "parse_direction",
    "group_query_params",
    "SortDirection",
    "SortField",
    "SortSpec",
    "resolve_sort"
]
