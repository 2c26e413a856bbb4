"""Tests for the rate limiter module."""

import asyncio
import time
import pytest

from moji.rate_limiter import (
    DEFAULT_MAX_REQUESTS_PER_MINUTE,
    RateLimiter,
    RequestCanceled,
    resolve_requests_per_minute,
)


class TestResolveRequestsPerMinute:
    """Tests for the per-minute budget fallback."""

    def test_positive_value_is_kept(self):
        assert resolve_requests_per_minute(120) == 120

    def test_none_uses_default(self):
        assert resolve_requests_per_minute(None) == DEFAULT_MAX_REQUESTS_PER_MINUTE

    def test_zero_uses_default(self):
        assert resolve_requests_per_minute(0) == DEFAULT_MAX_REQUESTS_PER_MINUTE

    def test_negative_uses_default(self):
        assert resolve_requests_per_minute(-5) == DEFAULT_MAX_REQUESTS_PER_MINUTE

    def test_default_is_240(self):
        assert DEFAULT_MAX_REQUESTS_PER_MINUTE == 240


class TestRateLimiter:
    """Tests for RateLimiter class."""

    def test_rejects_non_positive_rate(self):
        with pytest.raises(ValueError):
            RateLimiter(requests_per_second=0)

    def test_from_requests_per_minute(self):
        limiter = RateLimiter.from_requests_per_minute(120)
        assert limiter.requests_per_second == 2.0
        assert limiter.min_interval == 0.5
        assert limiter.capacity == 1

    @pytest.mark.parametrize("rpm", [None, 0, -10])
    def test_from_requests_per_minute_falls_back_to_default(self, rpm):
        limiter = RateLimiter.from_requests_per_minute(rpm)
        assert limiter.requests_per_second == 4.0

    @pytest.mark.asyncio
    async def test_first_wait_is_immediate(self):
        """Bucket starts full, so the first caller never waits."""
        limiter = RateLimiter(requests_per_second=1.0)

        wait_time = await limiter.wait()

        assert wait_time < 0.05

    @pytest.mark.asyncio
    async def test_respects_rate_limit(self):
        """Requests should be spaced by min_interval."""
        limiter = RateLimiter(requests_per_second=10.0)  # 0.1s interval

        start = time.monotonic()
        for _ in range(3):
            await limiter.wait()
        elapsed = time.monotonic() - start

        # 3 requests at 10/sec should take at least 0.2s (2 intervals)
        assert elapsed >= 0.18

    @pytest.mark.asyncio
    async def test_no_burst_after_idle(self):
        """Capacity is one permit, so idling does not bank extra requests."""
        limiter = RateLimiter(requests_per_second=10.0)
        await asyncio.sleep(0.3)

        start = time.monotonic()
        await limiter.wait()
        await limiter.wait()
        elapsed = time.monotonic() - start

        assert elapsed >= 0.08

    @pytest.mark.asyncio
    async def test_concurrent_waiters_are_spaced(self):
        """N concurrent callers at R/s span at least (N-1)/R seconds."""
        limiter = RateLimiter(requests_per_second=20.0)
        grants = []

        async def worker():
            await limiter.wait()
            grants.append(time.monotonic())

        await asyncio.gather(*(worker() for _ in range(5)))

        assert len(grants) == 5
        assert max(grants) - min(grants) >= 4 / 20.0 - 0.02

    @pytest.mark.asyncio
    async def test_fifo_ordering(self):
        """Queued waiters are granted in arrival order."""
        limiter = RateLimiter(requests_per_second=20.0)
        await limiter.wait()  # Drain the initial permit
        order = []

        async def make_request(label: str):
            await limiter.wait()
            order.append(label)

        tasks = []
        for label in ["first", "second", "third", "fourth"]:
            tasks.append(asyncio.create_task(make_request(label)))
            await asyncio.sleep(0)

        await asyncio.gather(*tasks)

        assert order == ["first", "second", "third", "fourth"]

    @pytest.mark.asyncio
    async def test_fifo_with_mixed_cancel_callers(self):
        """Callers with and without a cancel event share one arrival order."""
        limiter = RateLimiter(requests_per_second=20.0)
        order = []

        async def caller(label: str, cancel):
            await limiter.wait(cancel)
            order.append(label)

        await asyncio.gather(
            caller("A-with-cancel", asyncio.Event()),
            caller("B-no-cancel", None),
            caller("C-with-cancel", asyncio.Event()),
            caller("D-no-cancel", None),
        )

        assert order == ["A-with-cancel", "B-no-cancel", "C-with-cancel", "D-no-cancel"]

    @pytest.mark.asyncio
    async def test_default_budget_spacing(self):
        """Zero rpm keeps 240/min: first two calls at least 0.25s apart."""
        limiter = RateLimiter.from_requests_per_minute(0)

        start = time.monotonic()
        await limiter.wait()
        first = time.monotonic()
        await limiter.wait()
        second = time.monotonic()

        assert first - start < 0.05
        assert second - first >= 0.24

    @pytest.mark.asyncio
    async def test_metrics_tracking(self):
        """Metrics should track requests and wait time."""
        limiter = RateLimiter(requests_per_second=100.0)

        for _ in range(3):
            await limiter.wait()

        metrics = limiter.get_metrics()
        assert metrics["total_requests"] == 3
        assert metrics["total_canceled"] == 0
        assert metrics["requests_per_second"] == 100.0
        assert metrics["requests_per_minute"] == 6000.0
        assert metrics["total_wait_time"] >= 0


class TestRateLimiterCancel:
    """Tests for cancellable waits."""

    @pytest.mark.asyncio
    async def test_already_set_event_cancels_immediately(self):
        limiter = RateLimiter(requests_per_second=1.0)
        cancel = asyncio.Event()
        cancel.set()

        with pytest.raises(RequestCanceled):
            await limiter.wait(cancel)

        # The full bucket was not touched
        assert await limiter.wait() < 0.05
        assert limiter.get_metrics()["total_canceled"] == 1

    @pytest.mark.asyncio
    async def test_cancel_while_waiting(self):
        limiter = RateLimiter(requests_per_second=5.0)  # 0.2s interval
        await limiter.wait()
        cancel = asyncio.Event()

        async def fire():
            await asyncio.sleep(0.05)
            cancel.set()

        start = time.monotonic()
        firing = asyncio.create_task(fire())
        with pytest.raises(RequestCanceled):
            await limiter.wait(cancel)
        await firing

        assert time.monotonic() - start < 0.15

    @pytest.mark.asyncio
    async def test_canceled_wait_does_not_consume_permit(self):
        limiter = RateLimiter(requests_per_second=5.0)  # 0.2s interval
        await limiter.wait()
        cancel = asyncio.Event()

        async def fire():
            await asyncio.sleep(0.05)
            cancel.set()

        start = time.monotonic()
        firing = asyncio.create_task(fire())
        with pytest.raises(RequestCanceled):
            await limiter.wait(cancel)
        await firing

        # Had the canceled caller taken a permit, this would land near 0.4s
        await limiter.wait()
        assert time.monotonic() - start < 0.3

    @pytest.mark.asyncio
    async def test_unset_event_does_not_block_grant(self):
        limiter = RateLimiter(requests_per_second=10.0)
        cancel = asyncio.Event()

        await limiter.wait(cancel)
        await limiter.wait(cancel)

        metrics = limiter.get_metrics()
        assert metrics["total_requests"] == 2
        assert metrics["total_canceled"] == 0

    @pytest.mark.asyncio
    async def test_task_cancellation_releases_queue(self):
        """A cancelled task does not hold up the callers behind it."""
        limiter = RateLimiter(requests_per_second=5.0)
        await limiter.wait()

        stuck = asyncio.create_task(limiter.wait())
        await asyncio.sleep(0.01)
        stuck.cancel()
        with pytest.raises(asyncio.CancelledError):
            await stuck

        start = time.monotonic()
        await limiter.wait()
        assert time.monotonic() - start < 0.25
