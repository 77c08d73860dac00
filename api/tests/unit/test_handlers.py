"""Tests for exception handlers."""

import json
from unittest.mock import Mock

import pytest
from fastapi import HTTPException
from fastapi.exceptions import RequestValidationError
from pydantic import BaseModel, Field, ValidationError

from movestore.errors.handlers import (
    general_exception_handler,
    http_exception_handler,
    problem_detail_exception_handler,
    pydantic_validation_exception_handler,
    validation_exception_handler
)
from movestore.errors.problem_details import InternalServerError, NotFoundError


@pytest.fixture
def mock_request():
    request = Mock()
    request.url.path = "/v1/clients"
    request.method = "GET"
    return request


class TestExceptionHandlers:
    """Test exception handlers."""

    @pytest.mark.asyncio
    async def test_problem_detail_exception_handler(self, mock_request):
        response = await problem_detail_exception_handler(mock_request, NotFoundError("nope"))

        assert response.status_code == 404
        assert json.loads(response.body)["detail"] == "nope"

    @pytest.mark.asyncio
    async def test_server_problem_is_logged_as_error(self, mock_request, caplog):
        with caplog.at_level("INFO", logger="movestore.errors.handlers"):
            await problem_detail_exception_handler(mock_request, InternalServerError("Database error"))

        assert caplog.records[-1].levelname == "ERROR"

    @pytest.mark.asyncio
    async def test_http_exception_handler(self, mock_request):
        exc = HTTPException(status_code=405, detail="Method not allowed", headers={"Allow": "GET"})

        response = await http_exception_handler(mock_request, exc)

        assert response.status_code == 405
        assert response.headers["Allow"] == "GET"
        assert json.loads(response.body)["title"] == "Method Not Allowed"

    @pytest.mark.asyncio
    async def test_validation_exception_handler(self, mock_request):
        exc = RequestValidationError([
            {"loc": ("body", "body"), "msg": "Field required", "type": "missing"},
            {"loc": ("path", "record_id"), "msg": "Input should be a valid UUID", "type": "uuid_parsing"},
        ])

        response = await validation_exception_handler(mock_request, exc)
        body = json.loads(response.body)

        assert response.status_code == 422
        assert response.headers["Content-Type"] == "application/problem+json"
        assert body["detail"] == (
            "Validation failed: body -> body: Field required; "
            "path -> record_id: Input should be a valid UUID"
        )
        assert len(body["validation_errors"]) == 2

    @pytest.mark.asyncio
    async def test_pydantic_validation_exception_handler(self, mock_request):
        class Sample(BaseModel):
            count: int = Field(..., gt=0)

        with pytest.raises(ValidationError) as exc_info:
            Sample(count=-1)

        response = await pydantic_validation_exception_handler(mock_request, exc_info.value)

        assert response.status_code == 400
        assert "count" in json.loads(response.body)["detail"]

    @pytest.mark.asyncio
    async def test_general_exception_handler_hides_details(self, mock_request):
        response = await general_exception_handler(mock_request, RuntimeError("password=hunter2"))

        assert response.status_code == 500
        assert b"hunter2" not in response.body
        assert json.loads(response.body)["detail"] == "An unexpected error occurred"
