"""
Token bucket rate limiting for the admin pipeline endpoints.

Each client gets its own bucket; a request that finds its bucket empty is
rejected immediately rather than queued.
"""

import threading
import time
from typing import Any, Dict, Optional

from backend.logger import logger


class TokenBucketRateLimiter:
    """
    Token bucket rate limiter.

    Implements classic token bucket algorithm for rate limiting with
    configurable refill rate and burst capacity.
    """

    def __init__(
        self,
        tokens_per_second: float,
        max_tokens: int,
        name: str = "default",
    ):
        """
        Initialize token bucket rate limiter.

        Args:
            tokens_per_second: Token refill rate per second
            max_tokens: Maximum bucket capacity (burst size)
            name: Identifier for this rate limiter
        """
        self.tokens_per_second = tokens_per_second
        self.max_tokens = max_tokens
        self.tokens = float(max_tokens)
        self.last_update = time.monotonic()
        self.name = name
        self.accepted_count = 0
        self.rejected_count = 0
        self._lock = threading.Lock()

    def try_acquire(self, tokens: int = 1) -> bool:
        """
        Take tokens from the bucket without waiting.

        Args:
            tokens: Number of tokens to acquire

        Returns:
            True if tokens acquired, False if the bucket is empty
        """
        with self._lock:
            self._refill()
            if self.tokens >= tokens:
                self.tokens -= tokens
                self.accepted_count += 1
                return True
            self.rejected_count += 1

        logger.warning(f"Rate limiter '{self.name}': rejected request, bucket empty")
        return False

    def _refill(self) -> None:
        """Refill tokens based on elapsed time."""
        now = time.monotonic()
        elapsed = now - self.last_update

        self.tokens = min(
            self.max_tokens, self.tokens + elapsed * self.tokens_per_second
        )
        self.last_update = now

    def get_stats(self) -> Dict[str, Any]:
        """
        Get rate limiter statistics.

        Returns:
            Dictionary with counters and current state
        """
        return {
            "name": self.name,
            "tokens_per_second": self.tokens_per_second,
            "max_tokens": self.max_tokens,
            "current_tokens": self.tokens,
            "accepted_count": self.accepted_count,
            "rejected_count": self.rejected_count,
        }


class ClientRateLimiter:
    """Per-client token buckets sharing one rate configuration."""

    def __init__(
        self,
        requests_per_minute: int,
        name: str = "admin",
        idle_ttl_sec: float = 120.0,
    ):
        """
        Initialize per-client limiter.

        Args:
            requests_per_minute: Sustained rate and burst size per client
            name: Identifier used in logs
            idle_ttl_sec: Buckets untouched this long are dropped; must be at
                least the 60s a bucket needs to refill completely
        """
        self.requests_per_minute = requests_per_minute
        self.name = name
        self.idle_ttl_sec = max(idle_ttl_sec, 60.0)
        self._buckets: Dict[str, TokenBucketRateLimiter] = {}
        self._last_prune = time.monotonic()
        self._lock = threading.Lock()

    def check(self, client_id: Optional[str]) -> bool:
        """
        Consume one request for a client.

        Args:
            client_id: Client key (IP address or token); None shares one bucket

        Returns:
            True if the request is allowed
        """
        key = client_id or "anonymous"
        with self._lock:
            self._prune_idle()
            bucket = self._buckets.get(key)
            if bucket is None:
                bucket = self._buckets[key] = TokenBucketRateLimiter(
                    self.requests_per_minute / 60.0,
                    self.requests_per_minute,
                    name=f"{self.name}:{key}",
                )
        return bucket.try_acquire()

    def _prune_idle(self) -> None:
        """Drop buckets idle past the TTL; they have refilled and equal a new bucket."""
        now = time.monotonic()
        if now - self._last_prune < self.idle_ttl_sec:
            return
        self._last_prune = now

        idle = [
            key
            for key, bucket in self._buckets.items()
            if now - bucket.last_update >= self.idle_ttl_sec
        ]
        for key in idle:
            del self._buckets[key]
        if idle:
            logger.debug(f"Rate limiter '{self.name}': evicted {len(idle)} idle client bucket(s)")

    def __len__(self) -> int:
        return len(self._buckets)
