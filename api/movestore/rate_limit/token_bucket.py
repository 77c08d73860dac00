"""Token bucket algorithm and rate limit configuration parsing."""

import time
from dataclasses import dataclass
from typing import Dict, NamedTuple, Tuple


# Period suffix -> seconds
PERIODS = {"s": 1, "m": 60, "h": 3600}


class RateLimitResult(NamedTuple):
    """Outcome of one bucket check."""
    allowed: bool
    retry_after: float  # seconds until a token is available


@dataclass
class TokenBucket:
    """Bucket refilled at ``refill_rate`` tokens per second up to ``capacity``.

    Every request takes one token; an empty bucket denies the request.
    """
    capacity: int
    refill_rate: float
    tokens: float
    last_refill: float

    @classmethod
    def create(cls, capacity: int, refill_rate: float) -> "TokenBucket":
        """Create a full bucket."""
        return cls(
            capacity=capacity,
            refill_rate=refill_rate,
            tokens=float(capacity),
            last_refill=time.time()
        )

    def _refill_tokens(self, now: float) -> None:
        elapsed = now - self.last_refill
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)
        self.last_refill = now

    def consume(self, tokens: int = 1) -> RateLimitResult:
        """Take ``tokens`` from the bucket if it holds enough.

        Returns:
            RateLimitResult with the wait until enough tokens exist when denied
        """
        self._refill_tokens(time.time())

        if self.tokens >= tokens:
            self.tokens -= tokens
            return RateLimitResult(allowed=True, retry_after=0.0)

        missing = tokens - self.tokens
        return RateLimitResult(allowed=False, retry_after=missing / self.refill_rate)


class RateLimitConfig:
    """Parsing of the ``RATE_LIMITS`` setting."""

    @staticmethod
    def parse_rate_string(rate_str: str) -> Tuple[int, float]:
        """Parse ``'60/m'``, ``'10/s'`` or ``'600/5m'`` into capacity and tokens per second.

        Raises:
            ValueError: If the rate string is invalid
        """
        try:
            capacity_str, period = rate_str.split("/")
            capacity = int(capacity_str)

            unit = period[-1:]
            if unit not in PERIODS:
                raise ValueError(f"Unknown period format: {period}")
            count = int(period[:-1]) if len(period) > 1 else 1
            period_seconds = count * PERIODS[unit]

            if capacity < 1 or period_seconds < 1:
                raise ValueError("capacity and period must be positive")

            return capacity, capacity / period_seconds
        except ValueError as e:
            raise ValueError(f"Invalid rate string '{rate_str}': {e}") from e

    @staticmethod
    def parse_rate_limits(rate_limits_str: str) -> Dict[str, Tuple[int, float]]:
        """Parse a setting like ``"user:120/m,write:30/m,ip:600/5m"``.

        Entries without a ``:`` are ignored.

        Returns:
            Limit kind mapped to ``(capacity, refill_rate)``
        """
        limits = {}

        for limit_spec in rate_limits_str.split(","):
            limit_spec = limit_spec.strip()
            if ":" not in limit_spec:
                continue

            limit_type, rate_str = limit_spec.split(":", 1)
            limits[limit_type.strip()] = RateLimitConfig.parse_rate_string(rate_str.strip())

        return limits
