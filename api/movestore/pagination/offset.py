"""Page-number pagination over skip/limit windows.

Skipping is linear in the offset for most stores and a record can shift across
a page boundary when the collection changes between two requests. This mode is
meant for "jump to page N" screens over moderate result sets; use keyset
pagination for feeds.
"""

import asyncio
import logging
import math
from typing import Union

from .executor import QueryExecutor
from .filters import FilterExpression
from .page import OffsetPageMeta, Page
from .params import DEFAULT_MAX_LIMIT, clamp_limit, clamp_page
from .sort import SortSpec


logger = logging.getLogger(__name__)


async def paginate_offset(
    filter: FilterExpression,
    sort: SortSpec,
    page: Union[int, str, None],
    limit: Union[int, str, None],
    executor: QueryExecutor,
    max_limit: int = DEFAULT_MAX_LIMIT
) -> Page:
    """Fetch one numbered page plus the total count.

    ``find`` and ``count`` are issued concurrently; if either fails the whole
    call fails with that error. The count is taken fresh on every call.

    Args:
        filter: Filter expression for the collection
        sort: Sort specification
        page: 1-based page number, clamped to at least 1
        limit: Page size, clamped to ``[1, max_limit]``
        executor: Store capability running the queries
        max_limit: Ceiling for ``limit``

    Returns:
        Page with offset metadata
    """
    page = clamp_page(page)
    limit = clamp_limit(limit, max_limit)
    skip = (page - 1) * limit

    items, total_count = await asyncio.gather(
        executor.find(filter, sort, skip=skip, limit=limit),
        executor.count(filter)
    )

    total_pages = math.ceil(total_count / limit) if total_count else 0
    logger.debug(f"Offset page {page}/{total_pages}: skip={skip} limit={limit} total={total_count}")

    return Page(
        items=items,
        meta=OffsetPageMeta(
            page=page,
            total_pages=total_pages,
            total_count=total_count,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1 and total_count > 0
        )
    )
