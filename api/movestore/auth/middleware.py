"""Authentication middleware for Bearer token processing."""

import logging
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .api_key import Principal, validate_api_key
from ..errors.problem_details import UnauthorizedError


logger = logging.getLogger(__name__)

DEFAULT_SKIP_PATHS = ["/health", "/ready", "/live", "/", "/docs", "/redoc", "/openapi.json"]


class AuthenticationMiddleware(BaseHTTPMiddleware):
    """Resolve the Bearer API key of every request to a principal.

    The principal is stored on ``request.state.principal``. Requests without
    a valid key get a 401 problem response and never reach the routes.
    """

    def __init__(self, app, skip_paths: Optional[list[str]] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or DEFAULT_SKIP_PATHS

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.skip_paths:
            return await call_next(request)

        try:
            principal = await self._authenticate_request(request)
        except UnauthorizedError as e:
            logger.warning(f"Authentication failed for {request.url.path}: {e.detail}")
            return e.to_response(request)

        request.state.principal = principal
        logger.debug(f"Authenticated {principal.user_id} ({principal.role.value}) for {request.url.path}")

        return await call_next(request)

    async def _authenticate_request(self, request: Request) -> Principal:
        """Authenticate a request.

        Raises:
            UnauthorizedError: If the header is missing or malformed, or the key is unknown
        """
        auth_header = request.headers.get("Authorization")
        if not auth_header:
            raise UnauthorizedError("Missing Authorization header")

        token = extract_bearer_token(auth_header)

        try:
            principal = await validate_api_key(token)
        except Exception as e:
            logger.error(f"Error validating API key: {e}")
            raise UnauthorizedError("Authentication failed due to internal error")

        if principal is None:
            raise UnauthorizedError("Invalid or expired bearer token")
        return principal


def extract_bearer_token(authorization: str) -> str:
    """Extract bearer token from Authorization header.

    Args:
        authorization: The Authorization header value

    Returns:
        The extracted token

    Raises:
        UnauthorizedError: If the header format is invalid
    """
    if not authorization.startswith("Bearer "):
        raise UnauthorizedError("Invalid Authorization header format. Expected 'Bearer <token>'")

    token = authorization[7:]
    if not token:
        raise UnauthorizedError("Empty bearer token")

    return token
