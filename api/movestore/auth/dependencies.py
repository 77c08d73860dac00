"""FastAPI dependencies for authentication and authorization."""

import logging
from typing import Annotated

from fastapi import Depends, Request
from fastapi.security import HTTPBearer

from .api_key import Principal
from ..errors.problem_details import UnauthorizedError, ForbiddenError


logger = logging.getLogger(__name__)

# Documents the scheme in OpenAPI; the middleware does the checking
security = HTTPBearer(
    scheme_name="bearerApiKey",
    description="API key authentication using Bearer token",
    auto_error=False
)


async def get_current_principal(request: Request) -> Principal:
    """Get the principal injected by the authentication middleware.

    Raises:
        UnauthorizedError: If the request was not authenticated
    """
    principal = getattr(request.state, "principal", None)
    if principal is None:
        raise UnauthorizedError("Request is not authenticated")
    return principal


async def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)]
) -> Principal:
    """Allow only admin principals.

    Raises:
        ForbiddenError: If the caller is not an admin
    """
    if not principal.is_admin:
        logger.info(f"User {principal.user_id} denied admin-only operation")
        raise ForbiddenError("This operation requires the admin role")
    return principal


CurrentPrincipal = Annotated[Principal, Depends(get_current_principal)]
AdminPrincipal = Annotated[Principal, Depends(require_admin)]
