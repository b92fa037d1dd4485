"""
Header Throttle
===============

Primary rate limit gate driven by ``x-ratelimit-*`` response headers.

The gate is normally open. When a response reports that the remaining quota
has dropped to or below the threshold, the gate closes for *all* requests
until the reported reset time: the primary limit is a hard wall, and letting
even a fraction of traffic through after exhaustion only produces error
responses.

A snapshot that arrives while the gate is open and nothing is queued is
judged on the spot, and if it calls for a closure the gate shuts before
``observe()`` returns. The timer and the reopen belong to a single background
task, which also handles, in submission order, every snapshot that arrives
during a closure. Such a snapshot is only looked at after the closure has
ended, so two responses arriving together cannot race to replace it.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

from .exceptions import LimiterClosedError
from .rate_limit_info import RateLimitInfo

logger = logging.getLogger(__name__)


class HeaderThrottle:
    """
    All-or-nothing admission gate fed by response snapshots.

    Args:
        threshold: Close the gate when ``remaining <= threshold`` (must be >= 0)
        clock: Returns the current epoch time in seconds (default: time.time)

    Example:
        ```python
        throttle = HeaderThrottle(threshold=100)

        await throttle.acquire(timeout=30.0)
        response = await send(request)
        throttle.observe(RateLimitInfo.from_response(response))
        ```

    Note:
        ``close()`` force-opens the gate so that nothing stays parked on it;
        the woken tasks raise ``LimiterClosedError``.
    """

    def __init__(
        self,
        threshold: int,
        clock: Callable[[], float] = time.time,
    ):
        if threshold < 0:
            raise ValueError("threshold must be non-negative")

        self._threshold = threshold
        self._clock = clock

        self._open = asyncio.Event()
        self._open.set()
        self._observations: asyncio.Queue = asyncio.Queue()
        self._worker: Optional[asyncio.Task] = None
        self._closed_until: Optional[int] = None
        self._closed = False
        # Reset of the most recent closure that has ended.
        self._last_reset = 0

    @property
    def threshold(self) -> int:
        """Remaining-quota level at or below which the gate closes."""
        return self._threshold

    @property
    def is_open(self) -> bool:
        """True when admissions currently pass without waiting."""
        return self._open.is_set()

    @property
    def closed_until(self) -> Optional[int]:
        """Epoch seconds of the installed closure, or None while open."""
        return self._closed_until

    @property
    def pending(self) -> int:
        """Observations queued but not yet evaluated."""
        return self._observations.qsize()

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self, timeout: Optional[float] = None) -> None:
        """
        Wait until the gate is open.

        Returns immediately while the gate is open.

        Args:
            timeout: Seconds to wait before giving up, None = wait forever

        Raises:
            TimeoutError: If the gate did not reopen within ``timeout``
            LimiterClosedError: If the throttle is closed
            asyncio.CancelledError: If the waiting task is cancelled
        """
        if self._closed:
            raise LimiterClosedError("header throttle is closed")

        if not self._open.is_set():
            logger.debug(
                "Admission waiting for rate limit reset at %s",
                self._closed_until,
            )
            async with asyncio.timeout(timeout):
                await self._open.wait()

            if self._closed:
                raise LimiterClosedError("header throttle is closed")

    def observe(self, info: RateLimitInfo) -> None:
        """
        Submit a snapshot.

        Never blocks. While the gate is open and nothing is queued, a
        snapshot that calls for a closure closes the gate before this method
        returns, so no task woken in the same loop iteration can slip past
        it. Everything else is queued for the background task. Invalid
        snapshots and observations made after ``close()`` are ignored. Must be
        called from a running event loop.
        """
        if self._closed or not info.valid:
            return

        self._ensure_worker()
        if self._open.is_set() and self._observations.empty():
            if not self._try_close(info):
                return
        self._observations.put_nowait(info)

    def _ensure_worker(self) -> None:
        loop = asyncio.get_running_loop()
        worker = self._worker
        if worker is not None and not worker.done() and worker.get_loop() is loop:
            return

        if worker is not None:
            # The previous worker ended with its event loop; the queue and
            # event may be bound to that loop.
            leftover = []
            while not self._observations.empty():
                leftover.append(self._observations.get_nowait())
            self._observations = asyncio.Queue()
            for info in leftover:
                self._observations.put_nowait(info)
            self._open = asyncio.Event()
            self._open.set()
            self._closed_until = None
            logger.debug("Restarting header throttle worker on a new event loop")

        self._worker = loop.create_task(self._run())

    async def _run(self) -> None:
        try:
            while True:
                info = await self._observations.get()
                await self._evaluate(info)
        finally:
            self._closed_until = None
            self._open.set()

    def _try_close(self, info: RateLimitInfo) -> bool:
        """Close the gate until ``info.reset`` if the snapshot calls for it."""
        if info.remaining > self._threshold:
            return False

        # A snapshot from a window that already ended, even if the wall clock
        # lags the timer that ended it.
        if info.reset <= self._last_reset:
            return False

        delay = info.time_to_reset(self._clock())
        if delay <= 0:
            logger.debug(
                "Ignoring rate limit snapshot with elapsed reset "
                "(remaining=%d, reset=%d)",
                info.remaining,
                info.reset,
            )
            return False

        logger.warning(
            "Primary rate limit low (remaining=%d, threshold=%d); "
            "pausing admissions for %.2fs",
            info.remaining,
            self._threshold,
            delay,
        )
        self._closed_until = info.reset
        self._open.clear()
        return True

    async def _evaluate(self, info: RateLimitInfo) -> None:
        installed = not self._open.is_set() and self._closed_until == info.reset
        if not installed and not self._try_close(info):
            return

        try:
            # The timer may fire slightly before the wall clock reaches reset.
            delay = info.time_to_reset(self._clock())
            while delay > 0:
                await asyncio.sleep(delay)
                delay = info.time_to_reset(self._clock())
            self._last_reset = max(self._last_reset, info.reset)
        finally:
            self._closed_until = None
            self._open.set()
        logger.info("Rate limit window reset; admissions resumed")

    def close(self) -> None:
        """
        Stop the background task and release every parked waiter.

        Further observations are ignored and further acquisitions raise
        ``LimiterClosedError``.
        """
        if self._closed:
            return

        self._closed = True
        if self._worker is not None:
            self._worker.cancel()
        self._closed_until = None
        self._open.set()
        logger.debug("Header throttle closed")

    async def wait_closed(self) -> None:
        """Wait for the background task to finish after ``close()``."""
        worker = self._worker
        if worker is not None and worker.get_loop() is asyncio.get_running_loop():
            await asyncio.gather(worker, return_exceptions=True)

    def __repr__(self) -> str:
        state = "open" if self.is_open else f"closed_until={self._closed_until}"
        return f"HeaderThrottle(threshold={self._threshold}, {state})"
