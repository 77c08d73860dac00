"""Keyset (cursor) pagination.

Instead of skipping rows, each page seeks past the boundary record of the
previous one using the lexicographic condition

    (f1 cmp v1) OR (f1 = v1 AND f2 cmp v2) OR ... OR (f1 = v1 AND ... AND id cmp id0)

where ``cmp`` is ``<`` for a descending field and ``>`` for an ascending one.
Nulls sort first ascending and last descending, so a descending ``f < v``
also admits ``f IS NULL`` and an equality on a null value becomes
``f IS NULL``. Because the sort always ends with the unique id the order is
total, so following cursors visits every matching record exactly once.
"""

import logging
from typing import Any, List, Optional, Union

from .cursor import Cursor, encode_cursor
from .executor import QueryExecutor
from .filters import Comparison, ComparisonOp, FilterExpression, SeekBoundary
from .page import KeysetPageMeta, Page
from .params import DEFAULT_MAX_LIMIT, PaginationDirection, clamp_limit
from .sort import SortDirection, SortField, SortSpec


logger = logging.getLogger(__name__)


def _equal_to(field: str, value: Any) -> Comparison:
    if value is None:
        return Comparison(field=field, op=ComparisonOp.IS_NULL)
    return Comparison(field=field, op=ComparisonOp.EQ, value=value)


def _after(key: SortField, value: Any, nullable: bool = True) -> List[Comparison]:
    """Alternatives for ``key`` lying strictly past ``value``.

    Nulls come first in ascending order and last in descending order.
    """
    if not nullable:
        op = ComparisonOp.LT if key.direction is SortDirection.DESC else ComparisonOp.GT
        return [Comparison(field=key.field, op=op, value=value)]
    if key.direction is SortDirection.ASC:
        if value is None:
            return [Comparison(field=key.field, op=ComparisonOp.NOT_NULL)]
        return [Comparison(field=key.field, op=ComparisonOp.GT, value=value)]
    if value is None:
        return []
    return [
        Comparison(field=key.field, op=ComparisonOp.LT, value=value),
        Comparison(field=key.field, op=ComparisonOp.IS_NULL),
    ]


def build_seek_boundary(sort: SortSpec, cursor: Cursor) -> SeekBoundary:
    """Build the seek condition selecting records strictly after ``cursor``.

    Null cursor values are matched with ``IS NULL`` and checked against the
    null placement of their direction, so optional sort fields page through
    every record.

    Args:
        sort: Effective sort (already negated for backward traversal)
        cursor: Boundary record's sort-key values and id

    Returns:
        OR-of-ANDs boundary ending with the tie-breaker branch
    """
    values = list(cursor.key) + [cursor.id]
    last = len(sort.fields) - 1
    branches = []
    for i, key in enumerate(sort.fields):
        equal_prefix = tuple(_equal_to(prev.field, values[j]) for j, prev in enumerate(sort.fields[:i]))
        # The trailing tie-breaker is never null
        for comparison in _after(key, values[i], nullable=i < last):
            branches.append(equal_prefix + (comparison,))
    return SeekBoundary(branches=tuple(branches))


async def paginate_keyset(
    filter: FilterExpression,
    sort: SortSpec,
    cursor: Optional[Cursor],
    limit: Union[int, str, None],
    direction: PaginationDirection,
    executor: QueryExecutor,
    max_limit: int = DEFAULT_MAX_LIMIT
) -> Page:
    """Fetch the page after (or before) ``cursor``.

    Backward traversal walks the reversed order from the cursor and flips the
    result in memory, so items always come back in the declared sort order.
    One extra record is requested to learn whether more exist. A non-empty
    page always carries ``prev_cursor`` (its first item); ``next_cursor``
    (its last item) is set when more records follow or when walking
    backward. Executor errors and cancellation propagate unchanged.

    Args:
        filter: Filter expression for the collection
        sort: Declared sort specification
        cursor: Boundary record, or None for the start of the sequence
        limit: Page size, clamped to ``[1, max_limit]``
        direction: ``next`` walks forward, ``prev`` walks backward
        executor: Store capability running the query
        max_limit: Ceiling for ``limit``

    Returns:
        Page with keyset metadata and fresh cursors
    """
    limit = clamp_limit(limit, max_limit)
    backward = direction is PaginationDirection.PREV
    effective = sort.reversed() if backward else sort

    query = filter
    if cursor is not None:
        query = filter.with_seek(build_seek_boundary(effective, cursor))

    rows = await executor.find(query, effective, limit=limit + 1)

    has_more = len(rows) > limit
    items: List[dict] = rows[:limit]
    if backward:
        items.reverse()

    next_cursor = None
    prev_cursor = None
    if items:
        # Cursors use the declared sort so they work in either direction
        if has_more or backward:
            next_cursor = encode_cursor(items[-1], sort)
        prev_cursor = encode_cursor(items[0], sort)

    logger.debug(
        f"Keyset page ({direction.value}): {len(items)} items, has_more={has_more}, "
        f"from_cursor={cursor is not None}"
    )

    return Page(
        items=items,
        meta=KeysetPageMeta(
            has_more=has_more,
            next_cursor=next_cursor,
            prev_cursor=prev_cursor,
            limit=limit,
            direction=direction
        )
    )
