"""Problem Details (RFC 9457) responses for the Move Store API."""

from typing import Optional, Dict, Any
from pydantic import BaseModel, Field
from fastapi import Request
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse


PROBLEM_JSON = "application/problem+json"


class ProblemDetail(BaseModel):
    """Problem Details as defined in RFC 9457."""

    type: str = Field(default="about:blank", description="A URI reference that identifies the problem type")
    title: str = Field(description="A short, human-readable summary of the problem type")
    status: int = Field(description="The HTTP status code")
    detail: Optional[str] = Field(default=None, description="A human-readable explanation specific to this occurrence")
    instance: Optional[str] = Field(default=None, description="A URI reference that identifies the specific occurrence")

    # Extension members (e.g. "field", "error") are kept as extra attributes
    model_config = {"extra": "allow"}


def _build_problem(
    status: int,
    title: str,
    detail: Optional[str],
    type_uri: str,
    instance: Optional[str],
    request: Optional[Request],
    extensions: Dict[str, Any]
) -> ProblemDetail:
    if instance is None and request is not None:
        instance = str(request.url.path)
    return ProblemDetail(
        type=type_uri,
        title=title,
        status=status,
        detail=detail,
        instance=instance,
        **extensions
    )


def _problem_response(problem: ProblemDetail) -> JSONResponse:
    return JSONResponse(
        status_code=problem.status,
        content=jsonable_encoder(problem.model_dump(exclude_none=True)),
        headers={"Content-Type": PROBLEM_JSON}
    )


class ProblemDetailException(Exception):
    """Base exception rendered as a Problem Details response."""

    def __init__(
        self,
        status: int,
        title: str,
        detail: Optional[str] = None,
        type_uri: str = "about:blank",
        instance: Optional[str] = None,
        **extensions: Any
    ):
        self.status = status
        self.title = title
        self.detail = detail
        self.type_uri = type_uri
        self.instance = instance
        self.extensions = extensions
        super().__init__(detail or title)

    @property
    def is_client_error(self) -> bool:
        return 400 <= self.status < 500

    def to_problem_detail(self, request: Optional[Request] = None) -> ProblemDetail:
        return _build_problem(
            self.status, self.title, self.detail, self.type_uri, self.instance, request, self.extensions
        )

    def to_response(self, request: Optional[Request] = None) -> JSONResponse:
        return _problem_response(self.to_problem_detail(request))


class BadRequestError(ProblemDetailException):
    """400 Bad Request error."""

    def __init__(self, detail: str, **extensions: Any):
        super().__init__(status=400, title="Bad Request", detail=detail, **extensions)


class UnauthorizedError(ProblemDetailException):
    """401 Unauthorized error."""

    def __init__(self, detail: str = "Authentication required", **extensions: Any):
        super().__init__(status=401, title="Unauthorized", detail=detail, **extensions)


class ForbiddenError(ProblemDetailException):
    """403 Forbidden error."""

    def __init__(self, detail: str = "Access denied", **extensions: Any):
        super().__init__(status=403, title="Forbidden", detail=detail, **extensions)


class NotFoundError(ProblemDetailException):
    """404 Not Found error."""

    def __init__(self, detail: str = "Resource not found", **extensions: Any):
        super().__init__(status=404, title="Not Found", detail=detail, **extensions)


class TooManyRequestsError(ProblemDetailException):
    """429 Too Many Requests error with a Retry-After header."""

    def __init__(self, detail: str = "Rate limit exceeded", retry_after: Optional[int] = None, **extensions: Any):
        if retry_after:
            extensions["retry_after"] = retry_after
        super().__init__(status=429, title="Too Many Requests", detail=detail, **extensions)

    def to_response(self, request: Optional[Request] = None) -> JSONResponse:
        response = super().to_response(request)
        if "retry_after" in self.extensions:
            response.headers["Retry-After"] = str(self.extensions["retry_after"])
        return response


class InternalServerError(ProblemDetailException):
    """500 Internal Server Error."""

    def __init__(self, detail: str = "Internal server error", **extensions: Any):
        super().__init__(status=500, title="Internal Server Error", detail=detail, **extensions)


class ServiceUnavailableError(ProblemDetailException):
    """503 Service Unavailable error."""

    def __init__(self, detail: str = "Service temporarily unavailable", **extensions: Any):
        super().__init__(status=503, title="Service Unavailable", detail=detail, **extensions)


def create_problem_response(
    status: int,
    title: str,
    detail: Optional[str] = None,
    type_uri: str = "about:blank",
    instance: Optional[str] = None,
    request: Optional[Request] = None,
    **extensions: Any
) -> JSONResponse:
    """Create a Problem Details response without raising."""
    return _problem_response(
        _build_problem(status, title, detail, type_uri, instance, request, extensions)
    )
