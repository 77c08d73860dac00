"""Tests for error handling and Problem Details implementation."""

import json
from unittest.mock import Mock

import pytest

from movestore.errors.problem_details import (
    ProblemDetail,
    ProblemDetailException,
    BadRequestError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    TooManyRequestsError,
    InternalServerError,
    ServiceUnavailableError,
    create_problem_response
)
from movestore.pagination.exceptions import InvalidFilter, InvalidSort, PaginationError


@pytest.fixture
def mock_request():
    request = Mock()
    request.url.path = "/v1/moves"
    return request


class TestProblemDetail:
    """Test ProblemDetail model."""

    def test_defaults(self):
        problem = ProblemDetail(title="Test Error", status=400)

        assert problem.type == "about:blank"
        assert problem.detail is None
        assert problem.instance is None

    def test_extension_members(self):
        problem = ProblemDetail(title="Bad Request", status=400, error="SORT_VALIDATION_ERROR", field="x")

        assert problem.error == "SORT_VALIDATION_ERROR"
        assert problem.model_dump()["field"] == "x"


class TestProblemDetailException:
    """Test ProblemDetailException and subclasses."""

    def test_response(self, mock_request):
        exc = ProblemDetailException(status=409, title="Conflict", detail="Already there", code=7)

        response = exc.to_response(mock_request)

        assert response.status_code == 409
        assert response.headers["Content-Type"] == "application/problem+json"
        assert json.loads(response.body) == {
            "type": "about:blank",
            "title": "Conflict",
            "status": 409,
            "detail": "Already there",
            "instance": "/v1/moves",
            "code": 7
        }

    def test_explicit_instance_wins(self, mock_request):
        exc = NotFoundError("gone", instance="/custom")

        assert exc.to_problem_detail(mock_request).instance == "/custom"

    @pytest.mark.parametrize("exc_class,status,title", [
        (BadRequestError, 400, "Bad Request"),
        (UnauthorizedError, 401, "Unauthorized"),
        (ForbiddenError, 403, "Forbidden"),
        (NotFoundError, 404, "Not Found"),
        (TooManyRequestsError, 429, "Too Many Requests"),
        (InternalServerError, 500, "Internal Server Error"),
        (ServiceUnavailableError, 503, "Service Unavailable"),
    ])
    def test_subclasses(self, exc_class, status, title):
        exc = exc_class("detail text")

        assert exc.status == status
        assert exc.title == title
        assert exc.detail == "detail text"
        assert str(exc) == "detail text"
        assert exc.is_client_error is (status < 500)

    def test_too_many_requests_sets_retry_after(self, mock_request):
        response = TooManyRequestsError(retry_after=12).to_response(mock_request)

        assert response.status_code == 429
        assert response.headers["Retry-After"] == "12"
        assert json.loads(response.body)["retry_after"] == 12

    def test_create_problem_response(self):
        response = create_problem_response(status=418, title="Teapot", detail=None)

        assert response.status_code == 418
        assert json.loads(response.body) == {"type": "about:blank", "title": "Teapot", "status": 418}


class TestPaginationErrors:
    """Pagination input errors are 400 problems with an error code."""

    def test_invalid_sort(self, mock_request):
        exc = InvalidSort("Sorting by 'x' is not allowed", field="x")

        body = json.loads(exc.to_response(mock_request).body)

        assert isinstance(exc, BadRequestError)
        assert body["status"] == 400
        assert body["error"] == "SORT_VALIDATION_ERROR"
        assert body["field"] == "x"

    def test_invalid_filter(self, mock_request):
        body = json.loads(InvalidFilter("bad", field="totalMin").to_response(mock_request).body)

        assert body["error"] == "FILTER_VALIDATION_ERROR"
        assert body["field"] == "totalMin"

    def test_pagination_error(self):
        exc = PaginationError("bad direction")

        assert exc.error == "PAGINATION_ERROR"
        assert exc.status == 400

    def test_missing_field_is_omitted(self, mock_request):
        body = json.loads(InvalidSort("Empty sort field").to_response(mock_request).body)

        assert "field" not in body
