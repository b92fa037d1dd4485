"""
Tests for the HeaderThrottle class.
"""

import asyncio
import time
import pytest

from httpx_throttled import HeaderThrottle, LimiterClosedError, RateLimitInfo

# Matches the clock_factory fixture's reset moment
RESET_EPOCH = 1_700_000_000


def exhausted(reset=RESET_EPOCH, remaining=0):
    return RateLimitInfo(remaining=remaining, used=5000 - remaining, reset=reset)


async def settle():
    """Give the background task a chance to evaluate queued snapshots."""
    await asyncio.sleep(0.01)


class ManualClock:
    """Epoch clock that only moves when told to."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now


class TestHeaderThrottleInit:
    """Tests for HeaderThrottle initialization."""

    def test_starts_open(self):
        throttle = HeaderThrottle(threshold=10)

        assert throttle.threshold == 10
        assert throttle.is_open
        assert throttle.closed_until is None
        assert throttle.pending == 0

    def test_invalid_threshold(self):
        with pytest.raises(ValueError, match="threshold must be non-negative"):
            HeaderThrottle(threshold=-1)

    @pytest.mark.asyncio
    async def test_acquire_while_open_returns_immediately(self):
        throttle = HeaderThrottle(threshold=10)

        await throttle.acquire(timeout=0.01)


class TestHeaderThrottleClosing:
    """Tests for the OPEN -> CLOSED-UNTIL transition."""

    @pytest.mark.asyncio
    async def test_observe_closes_gate_before_returning(self, clock_factory):
        """Tasks woken in the same loop iteration already see the gate closed."""
        throttle = HeaderThrottle(threshold=0, clock=clock_factory(30.0))

        throttle.observe(exhausted())

        assert not throttle.is_open
        assert throttle.closed_until == RESET_EPOCH

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_low_remaining_closes_gate(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(2.0))

        throttle.observe(exhausted())
        await settle()

        assert not throttle.is_open
        assert throttle.closed_until == RESET_EPOCH
        with pytest.raises(TimeoutError):
            await throttle.acquire(timeout=0.01)

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_remaining_equal_to_threshold_closes_gate(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(2.0))

        throttle.observe(exhausted(remaining=50))
        await settle()

        assert not throttle.is_open

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_remaining_above_threshold_keeps_gate_open(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(2.0))

        throttle.observe(exhausted(remaining=51))
        await settle()

        assert throttle.is_open
        await throttle.acquire(timeout=0.01)

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_invalid_snapshot_is_ignored(self):
        throttle = HeaderThrottle(threshold=50)

        throttle.observe(RateLimitInfo(remaining=0, used=0, reset=0))
        await settle()

        assert throttle.is_open
        assert throttle.pending == 0
        await throttle.acquire(timeout=0.01)

    @pytest.mark.asyncio
    async def test_elapsed_reset_does_not_close(self, clock_factory):
        """A snapshot whose reset already passed means no wait."""
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(-5.0))

        throttle.observe(exhausted())
        await settle()

        assert throttle.is_open
        await throttle.acquire(timeout=0.01)

        throttle.close()
        await throttle.wait_closed()


class TestHeaderThrottleReopening:
    """Tests for the CLOSED-UNTIL -> OPEN transition."""

    @pytest.mark.asyncio
    async def test_reopens_at_reset(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(0.1))

        throttle.observe(exhausted())
        await settle()

        start = time.monotonic()
        await throttle.acquire(timeout=1.0)
        elapsed = time.monotonic() - start

        assert throttle.is_open
        assert throttle.closed_until is None
        assert 0.05 <= elapsed < 0.5

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_all_waiters_released_together(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(0.1))
        throttle.observe(exhausted())
        await settle()

        waiters = [asyncio.create_task(throttle.acquire()) for _ in range(5)]
        await asyncio.sleep(0.02)
        assert not any(w.done() for w in waiters)

        await asyncio.wait_for(asyncio.gather(*waiters), timeout=1.0)

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_cancelled_waiter_leaves_gate_unchanged(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(0.2))
        throttle.observe(exhausted())
        await settle()

        waiter = asyncio.create_task(throttle.acquire())
        await asyncio.sleep(0.01)
        waiter.cancel()
        with pytest.raises(asyncio.CancelledError):
            await waiter

        assert not throttle.is_open
        await throttle.acquire(timeout=1.0)

        throttle.close()
        await throttle.wait_closed()


    @pytest.mark.asyncio
    async def test_timer_waits_for_wall_clock_to_reach_reset(self):
        clock = ManualClock(RESET_EPOCH - 0.05)
        throttle = HeaderThrottle(threshold=50, clock=clock)

        throttle.observe(exhausted())
        await asyncio.sleep(0.15)

        assert not throttle.is_open

        clock.now = RESET_EPOCH
        await throttle.acquire(timeout=1.0)
        assert throttle.is_open

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_snapshot_from_ended_window_does_not_reclose(self):
        """The wall clock can lag the timer that ended the closure."""
        clock = ManualClock(RESET_EPOCH - 0.05)
        throttle = HeaderThrottle(threshold=50, clock=clock)
        throttle.observe(exhausted())
        await settle()
        clock.now = RESET_EPOCH
        await throttle.acquire(timeout=1.0)

        clock.now = RESET_EPOCH - 0.01
        throttle.observe(exhausted())

        assert throttle.is_open
        await throttle.acquire(timeout=0.01)

        throttle.close()
        await throttle.wait_closed()


class TestHeaderThrottleSerialization:
    """Observations are evaluated one at a time, in order."""

    @pytest.mark.asyncio
    async def test_recovered_quota_does_not_shorten_closure(self, clock_factory):
        """
        A later snapshot reporting plenty of quota waits behind the active
        closure instead of reopening the gate early, and the gate ends open.
        """
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(0.2))

        throttle.observe(exhausted())
        await settle()
        throttle.observe(RateLimitInfo(remaining=100, used=4900, reset=RESET_EPOCH + 3600))
        await asyncio.sleep(0.05)

        assert not throttle.is_open
        assert throttle.pending == 1

        await throttle.acquire(timeout=1.0)
        await settle()

        assert throttle.is_open
        assert throttle.pending == 0

        throttle.close()
        await throttle.wait_closed()

    @pytest.mark.asyncio
    async def test_stale_earlier_reset_is_not_installed(self, clock_factory):
        """
        A snapshot with an earlier reset queued during a closure neither
        reopens the gate at its own reset time nor re-closes it afterwards.
        """
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(0.2))

        throttle.observe(exhausted())
        await settle()
        throttle.observe(exhausted(reset=RESET_EPOCH - 1))
        await asyncio.sleep(0.05)

        assert not throttle.is_open
        assert throttle.closed_until == RESET_EPOCH

        await throttle.acquire(timeout=1.0)
        await settle()

        assert throttle.is_open
        await throttle.acquire(timeout=0.01)

        throttle.close()
        await throttle.wait_closed()


class TestHeaderThrottleClose:
    """Tests for close()."""

    @pytest.mark.asyncio
    async def test_acquire_after_close_raises(self):
        throttle = HeaderThrottle(threshold=10)
        throttle.close()

        with pytest.raises(LimiterClosedError):
            await throttle.acquire()

    @pytest.mark.asyncio
    async def test_close_releases_parked_waiters(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(30.0))
        throttle.observe(exhausted())
        await settle()

        waiter = asyncio.create_task(throttle.acquire())
        await asyncio.sleep(0.01)
        throttle.close()

        with pytest.raises(LimiterClosedError):
            await asyncio.wait_for(waiter, timeout=1.0)
        await throttle.wait_closed()
        assert throttle.is_open

    @pytest.mark.asyncio
    async def test_observe_after_close_is_ignored(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(30.0))
        throttle.close()

        throttle.observe(exhausted())
        await settle()

        assert throttle.is_open
        assert throttle.pending == 0

    @pytest.mark.asyncio
    async def test_wait_closed_without_worker(self):
        throttle = HeaderThrottle(threshold=10)
        throttle.close()
        throttle.close()

        await throttle.wait_closed()
        assert throttle.closed


class TestHeaderThrottleEventLoops:
    """The throttle survives the end of the event loop that started its worker."""

    def test_worker_restarts_on_new_event_loop(self, clock_factory):
        throttle = HeaderThrottle(threshold=50, clock=clock_factory(30.0))

        async def observe_exhausted():
            throttle.observe(exhausted())
            await settle()
            assert not throttle.is_open

        asyncio.run(observe_exhausted())
        assert throttle.is_open

        async def observe_again():
            await observe_exhausted()
            with pytest.raises(TimeoutError):
                await throttle.acquire(timeout=0.01)
            throttle.close()
            await throttle.wait_closed()

        asyncio.run(observe_again())
        assert throttle.closed
