"""Page results and the JSON envelopes they are returned in."""

from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .params import PaginationDirection


class OffsetPageMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_prev: bool


class KeysetPageMeta(BaseModel):
    model_config = ConfigDict(frozen=True)

    has_more: bool
    next_cursor: Optional[str] = None
    prev_cursor: Optional[str] = None
    limit: int
    direction: PaginationDirection = PaginationDirection.NEXT


class Page(BaseModel):
    """One window of records and its pagination metadata."""

    items: List[Dict[str, Any]]
    meta: Union[OffsetPageMeta, KeysetPageMeta]


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class OffsetPagination(_CamelModel):
    current_page: int = Field(description="1-based page number")
    total_pages: int = Field(description="Number of pages for the current filter")
    total_count: int = Field(description="Number of matching records")
    limit: int = Field(description="Page size")
    has_next_page: bool
    has_prev_page: bool
    next_page: Optional[int] = None
    prev_page: Optional[int] = None


class CursorPagination(_CamelModel):
    has_more: bool = Field(description="Whether more records exist in the traversal direction")
    next_cursor: Optional[str] = Field(default=None, description="Cursor for the following page")
    prev_cursor: Optional[str] = Field(default=None, description="Cursor for the preceding page")
    limit: int = Field(description="Page size")


class OffsetPaginatedResponse(_CamelModel):
    """Envelope for page-number listings."""

    success: bool = True
    data: List[Dict[str, Any]]
    pagination: OffsetPagination


class CursorPaginatedResponse(_CamelModel):
    """Envelope for cursor listings."""

    success: bool = True
    data: List[Dict[str, Any]]
    pagination: CursorPagination


def assemble_offset(page: Page) -> OffsetPaginatedResponse:
    meta = page.meta
    if not isinstance(meta, OffsetPageMeta):
        raise TypeError("assemble_offset needs an offset page")
    return OffsetPaginatedResponse(
        data=page.items,
        pagination=OffsetPagination(
            current_page=meta.page,
            total_pages=meta.total_pages,
            total_count=meta.total_count,
            limit=meta.limit,
            has_next_page=meta.has_next,
            has_prev_page=meta.has_prev,
            next_page=meta.page + 1 if meta.has_next else None,
            prev_page=meta.page - 1 if meta.has_prev else None
        )
    )


def assemble_keyset(page: Page) -> CursorPaginatedResponse:
    meta = page.meta
    if not isinstance(meta, KeysetPageMeta):
        raise TypeError("assemble_keyset needs a keyset page")
    return CursorPaginatedResponse(
        data=page.items,
        pagination=CursorPagination(
            has_more=meta.has_more,
            next_cursor=meta.next_cursor,
            prev_cursor=meta.prev_cursor,
            limit=meta.limit
        )
    )
