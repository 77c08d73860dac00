"""Lenient parsing of pagination query parameters."""

from enum import Enum
from typing import Dict, Iterable, List, Optional, Tuple, Union

from .exceptions import PaginationError


DEFAULT_PAGE_SIZE = 20
DEFAULT_MAX_LIMIT = 100

# Query keys owned by pagination; everything else may be a filter key
RESERVED_PARAMS = frozenset({"page", "limit", "sortBy", "cursor", "direction"})


class PaginationDirection(str, Enum):
    """Traversal direction for keyset pagination."""

    NEXT = "next"
    PREV = "prev"


def _parse_int(value: Union[int, str, None]) -> Optional[int]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    try:
        return int(str(value).strip())
    except ValueError:
        return None


def clamp_page(page: Union[int, str, None]) -> int:
    """1-based page number; anything unreadable or below 1 becomes 1."""
    parsed = _parse_int(page)
    if parsed is None or parsed < 1:
        return 1
    return parsed


def clamp_limit(
    limit: Union[int, str, None],
    max_limit: int = DEFAULT_MAX_LIMIT,
    default: int = DEFAULT_PAGE_SIZE
) -> int:
    """Page size clamped to ``[1, max_limit]``; unreadable values use ``default``."""
    max_limit = max(1, max_limit)
    parsed = _parse_int(limit)
    if parsed is None:
        parsed = default
    return min(max(parsed, 1), max_limit)


def parse_direction(value: Optional[str]) -> PaginationDirection:
    """Read the ``direction`` parameter, defaulting to ``next``.

    Raises:
        PaginationError: If the value is neither ``next`` nor ``prev``
    """
    if value is None or value == "":
        return PaginationDirection.NEXT
    try:
        return PaginationDirection(value.strip().lower())
    except ValueError:
        raise PaginationError(
            f"Invalid direction '{value}'. Allowed: next, prev",
            field="direction"
        )


def group_query_params(items: Iterable[Tuple[str, str]]) -> Dict[str, List[str]]:
    """Group multi-valued query items by key, dropping pagination keys."""
    grouped: Dict[str, List[str]] = {}
    for key, value in items:
        if key in RESERVED_PARAMS:
            continue
        grouped.setdefault(key, []).append(value)
    return grouped
