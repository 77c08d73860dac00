"""In-memory storage for rate limiting state."""

import threading
import time
from typing import Dict, Optional

from .token_bucket import TokenBucket


class RateLimitStorage:
    """Thread-safe map of bucket key to token bucket.

    Idle, nearly full buckets are dropped every ``cleanup_interval`` seconds.
    """

    def __init__(self, cleanup_interval: int = 300):
        self._buckets: Dict[str, TokenBucket] = {}
        self._lock = threading.RLock()
        self._cleanup_interval = cleanup_interval
        self._last_cleanup = time.time()

    def _cleanup_expired_buckets(self) -> None:
        now = time.time()
        if now - self._last_cleanup < self._cleanup_interval:
            return

        cutoff_time = now - self._cleanup_interval * 2
        expired_keys = [
            key for key, bucket in self._buckets.items()
            if bucket.last_refill < cutoff_time and bucket.tokens >= bucket.capacity * 0.9
        ]
        for key in expired_keys:
            del self._buckets[key]

        self._last_cleanup = now

    def get_bucket(self, key: str, capacity: int, refill_rate: float) -> TokenBucket:
        """Get or create the bucket for ``key``.

        A bucket whose limits changed is rebuilt with the same fill ratio.
        """
        with self._lock:
            self._cleanup_expired_buckets()

            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = TokenBucket.create(capacity, refill_rate)
            elif bucket.capacity != capacity or bucket.refill_rate != refill_rate:
                ratio = bucket.tokens / bucket.capacity if bucket.capacity > 0 else 1.0
                bucket = self._buckets[key] = TokenBucket(
                    capacity=capacity,
                    refill_rate=refill_rate,
                    tokens=min(capacity, capacity * ratio),
                    last_refill=bucket.last_refill
                )

            return bucket

    def clear_all(self) -> None:
        with self._lock:
            self._buckets.clear()

    def get_bucket_count(self) -> int:
        with self._lock:
            return len(self._buckets)


# Global storage instance
_storage_instance: Optional[RateLimitStorage] = None
_storage_lock = threading.Lock()


def get_rate_limit_storage() -> RateLimitStorage:
    """Get the process-wide rate limit storage."""
    global _storage_instance

    if _storage_instance is None:
        with _storage_lock:
            if _storage_instance is None:
                _storage_instance = RateLimitStorage()

    return _storage_instance


def reset_rate_limit_storage() -> None:
    """Drop the global storage and every bucket in it."""
    global _storage_instance

    with _storage_lock:
        if _storage_instance is not None:
            _storage_instance.clear_all()
        _storage_instance = None
