"""
Token bucket rate limiter for external API calls.

Hey future me - TMDB throttles us (~40 req/10s) and batch syncs run several artists
concurrently. One limiter per service, shared by every request to that service, keeps the
combined traffic under the provider limit.

ALGORITHM: Token Bucket
- Bucket holds max_tokens
- Tokens refill at refill_rate per second
- Each request consumes 1 token; empty bucket = wait

ADAPTIVE BACKOFF on 429:
- Retry-After header wins when the provider sends one
- Otherwise 1s, 2s, 4s... (reset after the next success)

USAGE:
    limiter = RateLimiter.for_tmdb()

    async with limiter:
        response = await client.get(url)

    # On 429:
    await limiter.handle_rate_limit_response(retry_after)
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field

logger = logging.getLogger(__name__)


@dataclass
class RateLimiterConfig:
    """Configuration for rate limiter."""

    max_tokens: int = 10  # Bucket size
    refill_rate: float = 2.0  # Tokens per second
    max_backoff_seconds: float = 120.0
    initial_backoff_seconds: float = 1.0
    backoff_multiplier: float = 2.0


@dataclass
class RateLimiter:
    """Token bucket rate limiter with adaptive backoff."""

    config: RateLimiterConfig = field(default_factory=RateLimiterConfig)
    name: str = "default"

    _tokens: float = field(default=0.0, init=False)
    _last_refill: float = field(default_factory=time.monotonic, init=False)
    _current_backoff: float = field(default=0.0, init=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, init=False)

    def __post_init__(self) -> None:
        self._tokens = float(self.config.max_tokens)
        self._current_backoff = self.config.initial_backoff_seconds

    @classmethod
    def for_tmdb(cls) -> "RateLimiter":
        """Rate limiter for the TMDB API.

        TMDB allows roughly 40 requests per 10 seconds. We stay at half of that:
        20 burst, 2 req/sec sustained.
        """
        return cls(
            config=RateLimiterConfig(
                max_tokens=20,
                refill_rate=2.0,
                max_backoff_seconds=120.0,
                initial_backoff_seconds=1.0,
            ),
            name="tmdb",
        )

    def _refill_tokens(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self.config.max_tokens, self._tokens + elapsed * self.config.refill_rate)
        self._last_refill = now

    async def acquire(self) -> None:
        """Acquire one token, waiting if necessary."""
        async with self._lock:
            self._refill_tokens()

            while self._tokens < 1.0:
                wait_time = (1.0 - self._tokens) / self.config.refill_rate
                logger.debug(f"RateLimiter[{self.name}]: no tokens, waiting {wait_time:.2f}s")
                # Sleeping while holding the lock keeps waiters in FIFO order
                await asyncio.sleep(wait_time)
                self._refill_tokens()

            self._tokens -= 1.0

    async def handle_rate_limit_response(self, retry_after: float | None = None) -> float:
        """Wait after a 429 response.

        Args:
            retry_after: Retry-After header value in seconds, if the provider sent one

        Returns:
            The actual wait time used
        """
        async with self._lock:
            wait_time = float(retry_after) if retry_after is not None else self._current_backoff
            wait_time = min(wait_time, self.config.max_backoff_seconds)

            logger.warning(
                f"RateLimiter[{self.name}]: 429 rate limited, waiting {wait_time:.1f}s "
                f"(backoff level: {self._current_backoff:.1f}s)"
            )

            self._current_backoff = min(
                self._current_backoff * self.config.backoff_multiplier,
                self.config.max_backoff_seconds,
            )
            # Drain the bucket so concurrent callers wait too
            self._tokens = 0.0

        await asyncio.sleep(wait_time)
        return wait_time

    def reset_backoff(self) -> None:
        """Reset backoff after a successful request."""
        self._current_backoff = self.config.initial_backoff_seconds

    async def __aenter__(self) -> "RateLimiter":
        await self.acquire()
        return self

    async def __aexit__(
        self, exc_type: type | None, exc_val: Exception | None, exc_tb: object
    ) -> None:
        if exc_type is None:
            self.reset_backoff()

    @property
    def available_tokens(self) -> float:
        """Current available tokens (for debugging and tests)."""
        self._refill_tokens()
        return self._tokens


__all__ = ["RateLimiter", "RateLimiterConfig"]
