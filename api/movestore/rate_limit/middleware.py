"""Rate limiting middleware keyed on the authenticated principal."""

import logging
import math
from typing import Optional

from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware

from .storage import get_rate_limit_storage
from .token_bucket import RateLimitConfig, RateLimitResult
from ..auth.middleware import DEFAULT_SKIP_PATHS
from ..config import get_settings
from ..errors.problem_details import TooManyRequestsError


logger = logging.getLogger(__name__)

WRITE_METHODS = {"POST", "PUT", "PATCH", "DELETE"}


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Enforce token bucket limits per user, per user for writes, and per client IP.

    Runs inside the authentication middleware and reads the principal it
    stored on ``request.state``. A request over any limit gets a 429 problem
    response with a ``Retry-After`` header.
    """

    def __init__(self, app, skip_paths: Optional[list[str]] = None, rate_limits: Optional[str] = None):
        super().__init__(app)
        self.skip_paths = skip_paths or DEFAULT_SKIP_PATHS
        self.rate_limits = RateLimitConfig.parse_rate_limits(rate_limits or get_settings().rate_limits)
        self.storage = get_rate_limit_storage()

        logger.info(f"Rate limiting initialized with limits: {self.rate_limits}")

    async def dispatch(self, request: Request, call_next):
        if request.url.path in self.skip_paths:
            return await call_next(request)

        try:
            result = self._check_rate_limits(request)
        except Exception as e:
            # Limiter failures let the request through
            logger.error(f"Error in rate limiting middleware: {e}")
            return await call_next(request)

        if not result.allowed:
            retry_after = max(1, math.ceil(result.retry_after))
            logger.warning(
                f"Rate limit exceeded for {self._get_user_id(request) or self._get_client_ip(request)} "
                f"on {request.method} {request.url.path}; retry after {retry_after}s"
            )
            error = TooManyRequestsError(
                detail="Rate limit exceeded. Please retry after the specified time.",
                retry_after=retry_after
            )
            return error.to_response(request)

        return await call_next(request)

    def _consume(self, kind: str, identity: str) -> Optional[RateLimitResult]:
        if kind not in self.rate_limits:
            return None
        capacity, refill_rate = self.rate_limits[kind]
        return self.storage.get_bucket(f"{kind}:{identity}", capacity, refill_rate).consume()

    def _check_rate_limits(self, request: Request) -> RateLimitResult:
        """Check every limit that applies to ``request``; the first denial wins."""
        checks = []
        user_id = self._get_user_id(request)
        if user_id:
            checks.append(("user", user_id))
            if self._is_write_operation(request):
                checks.append(("write", user_id))
        client_ip = self._get_client_ip(request)
        if client_ip:
            checks.append(("ip", client_ip))

        for kind, identity in checks:
            result = self._consume(kind, identity)
            if result is not None and not result.allowed:
                return result

        return RateLimitResult(allowed=True, retry_after=0.0)

    def _get_user_id(self, request: Request) -> Optional[str]:
        """User id of the principal set by the authentication middleware."""
        principal = getattr(request.state, "principal", None)
        return principal.user_id if principal is not None else None

    def _get_client_ip(self, request: Request) -> Optional[str]:
        """Client address, honoring common proxy headers."""
        forwarded_for = request.headers.get("X-Forwarded-For")
        if forwarded_for:
            return forwarded_for.split(",")[0].strip()

        real_ip = request.headers.get("X-Real-IP")
        if real_ip:
            return real_ip

        if request.client:
            return request.client.host

        return None

    def _is_write_operation(self, request: Request) -> bool:
        return request.method.upper() in WRITE_METHODS
