"""Input errors raised while building pagination, sort and filter parameters."""

from typing import Any, Optional

from ..errors.problem_details import BadRequestError


class PaginationError(BadRequestError):
    """400 error for malformed pagination input."""

    def __init__(self, detail: str, error: str = "PAGINATION_ERROR", **extensions: Any):
        super().__init__(detail, error=error, **extensions)
        self.error = error


class InvalidSort(PaginationError):
    """Requested sort field or direction is not allowed."""

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail, error="SORT_VALIDATION_ERROR", field=field)
        self.field = field


class InvalidFilter(PaginationError):
    """Filter value cannot be read as its declared type."""

    def __init__(self, detail: str, field: Optional[str] = None):
        super().__init__(detail, error="FILTER_VALIDATION_ERROR", field=field)
        self.field = field
