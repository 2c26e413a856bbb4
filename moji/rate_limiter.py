"""
Rate Limiter for outbound API requests

Token bucket with a capacity of one permit. Each client builds its own
limiter from a requests-per-minute budget; after the first request callers
are spaced evenly at the steady rate and never burst above it.

Usage:
    limiter = RateLimiter.from_requests_per_minute(120)
    await limiter.wait()

    # Give up waiting when an event fires
    cancel = asyncio.Event()
    await limiter.wait(cancel)  # raises RequestCanceled if cancel wins
"""

import asyncio
import logging
import time
from typing import Optional

logger = logging.getLogger(__name__)

# 240/min = 4 req/s, the stash-box suggested default.
DEFAULT_MAX_REQUESTS_PER_MINUTE = 240


class RequestCanceled(RuntimeError):
    """The caller's cancel event fired before a permit was granted."""


def resolve_requests_per_minute(max_requests_per_minute: Optional[int]) -> int:
    """Return the configured budget, or the default when it is unset or not positive."""
    if max_requests_per_minute is None or max_requests_per_minute <= 0:
        return DEFAULT_MAX_REQUESTS_PER_MINUTE
    return max_requests_per_minute


class RateLimiter:
    """
    Async token-bucket rate limiter.

    Features:
    - Steady refill of requests_per_second permits
    - Capacity of one permit (no bursting), bucket starts full
    - FIFO grants for concurrent waiters
    - Cancellable waits that never consume a permit
    - Metrics tracking
    """

    def __init__(self, requests_per_second: float):
        """
        Initialize rate limiter.

        Args:
            requests_per_second: Permit refill rate. Must be positive.
        """
        if requests_per_second <= 0:
            raise ValueError(f"requests_per_second must be positive, got {requests_per_second}")

        self.requests_per_second = requests_per_second
        self.min_interval = 1.0 / requests_per_second
        self.capacity = 1

        self._tokens: float = float(self.capacity)
        self._last_refill: float = time.monotonic()
        # asyncio.Lock wakes waiters in arrival order
        self._lock = asyncio.Lock()

        # Metrics
        self._total_requests = 0
        self._total_wait_time = 0.0
        self._total_canceled = 0

        logger.info(f"RateLimiter initialized: {requests_per_second:.2f} req/sec")

    @classmethod
    def from_requests_per_minute(cls, max_requests_per_minute: Optional[int] = None) -> "RateLimiter":
        """Build a limiter from a per-minute budget, falling back to the default."""
        rpm = resolve_requests_per_minute(max_requests_per_minute)
        if rpm != max_requests_per_minute:
            logger.debug(
                f"max_requests_per_minute={max_requests_per_minute!r} not usable, "
                f"keeping default of {rpm}/min"
            )
        return cls(requests_per_second=rpm / 60.0)

    def _refill(self) -> None:
        now = time.monotonic()
        elapsed = now - self._last_refill
        self._tokens = min(self.capacity, self._tokens + elapsed * self.requests_per_second)
        self._last_refill = now

    def _time_until_permit(self) -> float:
        self._refill()
        if self._tokens >= 1:
            return 0.0
        return (1 - self._tokens) / self.requests_per_second

    async def _acquire(self) -> None:
        """Wait for and take one permit. Nothing is taken if this is cancelled."""
        async with self._lock:
            delay = self._time_until_permit()
            while delay > 0:
                await asyncio.sleep(delay)
                delay = self._time_until_permit()
            self._tokens -= 1

    async def wait(self, cancel: Optional[asyncio.Event] = None) -> float:
        """
        Block until a permit is granted.

        Args:
            cancel: Optional event; if it is set before a permit is granted
                the wait ends with RequestCanceled.

        Returns:
            Seconds spent waiting.

        Raises:
            RequestCanceled: If cancel fired first. No permit is consumed.
        """
        start_wait = time.monotonic()

        if cancel is not None and cancel.is_set():
            self._total_canceled += 1
            raise RequestCanceled("Canceled before a rate limit permit was granted")

        # Every caller joins the lock queue here, before its first await
        acquire = asyncio.ensure_future(self._acquire())
        if cancel is None:
            try:
                await acquire
            except asyncio.CancelledError:
                acquire.cancel()
                raise
        else:
            await self._acquire_or_cancel(acquire, cancel)

        wait_time = time.monotonic() - start_wait
        self._total_wait_time += wait_time
        self._total_requests += 1
        return wait_time

    async def _acquire_or_cancel(self, acquire: asyncio.Future, cancel: asyncio.Event) -> None:
        canceled = asyncio.ensure_future(cancel.wait())
        try:
            await asyncio.wait({acquire, canceled}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            acquire.cancel()
            canceled.cancel()
            raise

        if acquire.done():
            canceled.cancel()
            acquire.result()
            return

        acquire.cancel()
        await asyncio.wait({acquire})
        self._total_canceled += 1
        raise RequestCanceled("Canceled before a rate limit permit was granted")

    def get_metrics(self) -> dict:
        """Get rate limiter metrics."""
        return {
            "total_requests": self._total_requests,
            "total_canceled": self._total_canceled,
            "total_wait_time": round(self._total_wait_time, 3),
            "avg_wait_time": round(self._total_wait_time / max(1, self._total_requests), 3),
            "requests_per_second": self.requests_per_second,
            "requests_per_minute": round(self.requests_per_second * 60.0, 3),
        }
