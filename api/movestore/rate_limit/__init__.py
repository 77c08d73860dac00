"""Per-user rate limiting for the Move Store API."""

from .token_bucket import TokenBucket, RateLimitResult, RateLimitConfig
from .storage import RateLimitStorage, get_rate_limit_storage, reset_rate_limit_storage
from .middleware import RateLimitMiddleware

__all__ = [
    "TokenBucket",
    "RateLimitResult",
    "RateLimitConfig",
    "RateLimitStorage",
    "get_rate_limit_storage",
    "reset_rate_limit_storage",
    "RateLimitMiddleware",
]
