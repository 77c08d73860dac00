"""Query executor capability consumed by the paginators.

An executor runs ``find``/``count`` for a store-agnostic filter and sort. How
those translate into a concrete query language is the executor's business.
``MemoryQueryExecutor`` evaluates them directly over a list of dict records.
"""

import re
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Protocol

from .cursor import resolve_path
from .filters import (
    Comparison, ComparisonOp, Equals, FilterExpression, Matches, OneOf, Range, TextSearch
)
from .sort import SortDirection, SortSpec


Record = Dict[str, Any]


class QueryExecutor(Protocol):
    """Read capability of a document collection."""

    async def find(
        self,
        filter: FilterExpression,
        sort: SortSpec,
        *,
        skip: Optional[int] = None,
        limit: int
    ) -> List[Record]:
        ...

    async def count(self, filter: FilterExpression) -> int:
        ...


def _comparable(value: Any, other: Any) -> Any:
    """Bring a stored value to the type of the value it is compared with.

    Documents keep dates as ISO strings while filters carry date objects.
    """
    if isinstance(value, str):
        if isinstance(other, datetime):
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
            if parsed.tzinfo is None and other.tzinfo is not None:
                parsed = parsed.replace(tzinfo=other.tzinfo)
            return parsed
        if isinstance(other, date):
            return date.fromisoformat(value[:10])
    if isinstance(value, datetime) and type(other) is date:
        return value.date()
    return value


def _compare(value: Any, other: Any) -> int:
    value = _comparable(value, other)
    if value == other:
        return 0
    return -1 if value < other else 1


def _matches_predicate(value: Any, predicate: Any) -> bool:
    if isinstance(predicate, Equals):
        return value is not None and _compare(value, predicate.value) == 0
    if isinstance(predicate, Matches):
        if value is None:
            return False
        flags = re.IGNORECASE if predicate.case_insensitive else 0
        return re.search(predicate.pattern, str(value), flags) is not None
    if isinstance(predicate, Range):
        if value is None:
            return False
        if predicate.min is not None and _compare(value, predicate.min) < 0:
            return False
        if predicate.max is not None and _compare(value, predicate.max) > 0:
            return False
        return True
    if isinstance(predicate, OneOf):
        return value is not None and any(_compare(value, v) == 0 for v in predicate.values)
    raise TypeError(f"Unsupported predicate: {predicate!r}")


def _matches_search(record: Record, search: TextSearch) -> bool:
    pattern = re.compile(search.pattern, re.IGNORECASE)
    for field in search.fields:
        value = resolve_path(record, field)
        if value is not None and pattern.search(str(value)):
            return True
    return False


def _matches_comparison(record: Record, comparison: Comparison) -> bool:
    value = resolve_path(record, comparison.field)
    if comparison.op is ComparisonOp.IS_NULL:
        return value is None
    if comparison.op is ComparisonOp.NOT_NULL:
        return value is not None
    if value is None or comparison.value is None:
        return False
    result = _compare(value, comparison.value)
    if comparison.op is ComparisonOp.EQ:
        return result == 0
    if comparison.op is ComparisonOp.LT:
        return result < 0
    return result > 0


def matches(record: Record, filter: FilterExpression) -> bool:
    """Whether ``record`` satisfies every part of ``filter``."""
    for field, predicate in filter.predicates.items():
        if not _matches_predicate(resolve_path(record, field), predicate):
            return False
    if filter.search is not None and not _matches_search(record, filter.search):
        return False
    if filter.seek is not None:
        if not any(
            all(_matches_comparison(record, c) for c in branch)
            for branch in filter.seek.branches
        ):
            return False
    return True


def sort_records(records: Iterable[Record], sort: SortSpec) -> List[Record]:
    """Sort records by every key of ``sort``, honoring mixed directions."""
    ordered = list(records)
    # Stable sorts applied from the least significant key upwards
    for key in reversed(sort.fields):
        ordered.sort(
            key=lambda r, f=key.field: (resolve_path(r, f) is not None, resolve_path(r, f)),
            reverse=key.direction is SortDirection.DESC
        )
    return ordered


class MemoryQueryExecutor:
    """Executor over an in-process list of records."""

    def __init__(self, records: Optional[Iterable[Record]] = None):
        self.records: List[Record] = list(records or [])

    async def find(
        self,
        filter: FilterExpression,
        sort: SortSpec,
        *,
        skip: Optional[int] = None,
        limit: int
    ) -> List[Record]:
        selected = sort_records((r for r in self.records if matches(r, filter)), sort)
        start = skip or 0
        return [dict(r) for r in selected[start:start + limit]]

    async def count(self, filter: FilterExpression) -> int:
        return sum(1 for r in self.records if matches(r, filter))
