"""
Outbound request rate limiting using the token bucket algorithm.

Explorer services reject or throttle bursts, so a backend acquires one
token before every request it sends.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass, field

from loguru import logger

from btcexplorer.exceptions import RateLimiterError

DEFAULT_INTERVAL_MS = 250

# Tolerance for float drift when refilling
_EPSILON = 1e-9


@dataclass
class TokenBucket:
    """
    Token bucket for rate limiting.

    Tokens are added at a fixed rate up to a maximum capacity.
    Each request consumes one token.
    """

    capacity: int  # Maximum tokens (burst allowance)
    refill_rate: float  # Tokens per second
    tokens: float = field(init=False)
    last_refill: float = field(init=False)

    def __post_init__(self) -> None:
        self.tokens = float(self.capacity)
        self.last_refill = time.monotonic()

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self.last_refill
        self.last_refill = now
        self.tokens = min(self.capacity, self.tokens + elapsed * self.refill_rate)

    def consume(self, tokens: int = 1) -> bool:
        """
        Try to consume tokens. Returns True if successful, False if rate limited.
        """
        self._refill()

        if self.tokens + _EPSILON >= tokens:
            self.tokens = max(0.0, self.tokens - tokens)
            return True
        return False

    def wait_time(self, tokens: int = 1) -> float:
        """Seconds until `tokens` will be available."""
        self._refill()
        missing = tokens - self.tokens
        if missing <= _EPSILON:
            return 0.0
        return missing / self.refill_rate

    def reset(self) -> None:
        """Reset bucket to full capacity."""
        self.tokens = float(self.capacity)
        self.last_refill = time.monotonic()


class RateLimiter:
    """
    Async gate allowing one request per interval.

    Owned by a single backend instance. Concurrent callers on that instance
    queue on an internal lock and are released one token at a time.

    Configuration:
    - interval_ms: milliseconds needed to refill one token (default 250)
    - capacity: burst size (default 1)
    """

    def __init__(self, interval_ms: float = DEFAULT_INTERVAL_MS, capacity: int = 1):
        if interval_ms <= 0:
            raise ValueError(f"Rate limit interval must be positive, got {interval_ms}")
        if capacity < 1:
            raise ValueError(f"Rate limit capacity must be at least 1, got {capacity}")

        self.interval_ms = interval_ms
        self.capacity = capacity
        self._bucket = TokenBucket(capacity=capacity, refill_rate=1000.0 / interval_ms)
        self._lock = asyncio.Lock()
        self._waits = 0

    @property
    def wait_count(self) -> int:
        """Number of times a caller had to be suspended."""
        return self._waits

    async def acquire(self, tokens: int = 1) -> None:
        """
        Take tokens, suspending until they are available.

        Raises:
            RateLimiterError: If more tokens are requested than the bucket can ever hold
        """
        if tokens < 1 or tokens > self.capacity:
            raise RateLimiterError(
                f"Cannot acquire {tokens} token(s) from a bucket of capacity {self.capacity}"
            )

        async with self._lock:
            while not self._bucket.consume(tokens):
                delay = self._bucket.wait_time(tokens)
                self._waits += 1
                logger.trace(f"Rate limited, waiting {delay:.3f}s")
                await asyncio.sleep(delay)
