"""
Admission Semaphore
===================

Bounded concurrency gate for the secondary rate limit: at most ``capacity``
requests may be in flight at once.
"""

import asyncio
from typing import Optional

from .exceptions import LimiterClosedError


class AdmissionSemaphore:
    """
    Counting gate with timeout-aware acquisition and a closed state.

    Slots have no identity, so a bounded semaphore plus a counter is all the
    bookkeeping needed.

    Args:
        capacity: Maximum simultaneous holders (must be at least 1)

    Example:
        ```python
        semaphore = AdmissionSemaphore(capacity=10)

        await semaphore.acquire(timeout=5.0)
        try:
            response = await send(request)
        finally:
            semaphore.release()
        ```

    Note:
        ``close()`` does not revoke slots already held. Tasks parked in
        ``acquire()`` when it runs keep waiting until a slot frees up or their
        own timeout fires; a parked task that then receives a slot hands it
        straight back and raises ``LimiterClosedError``.
    """

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError("capacity must be at least 1")

        self._capacity = capacity
        self._semaphore = asyncio.BoundedSemaphore(capacity)
        self._outstanding = 0
        self._closed = False

    @property
    def capacity(self) -> int:
        """Maximum number of slots."""
        return self._capacity

    @property
    def outstanding(self) -> int:
        """Slots currently acquired and not yet released."""
        return self._outstanding

    @property
    def closed(self) -> bool:
        return self._closed

    async def acquire(self, timeout: Optional[float] = None) -> None:
        """
        Wait for a free slot.

        Args:
            timeout: Seconds to wait before giving up, None = wait forever

        Raises:
            TimeoutError: If no slot freed up within ``timeout``
            LimiterClosedError: If the semaphore is closed
            asyncio.CancelledError: If the waiting task is cancelled
        """
        if self._closed:
            raise LimiterClosedError("admission semaphore is closed")

        async with asyncio.timeout(timeout):
            await self._semaphore.acquire()

        if self._closed:
            self._semaphore.release()
            raise LimiterClosedError("admission semaphore is closed")

        self._outstanding += 1

    def release(self) -> None:
        """
        Free one slot, waking at most one waiter.

        Raises:
            ValueError: If there is no outstanding slot to release
        """
        if self._outstanding == 0:
            raise ValueError("release() called without a matching acquire()")
        self._outstanding -= 1
        self._semaphore.release()

    def close(self) -> None:
        """Refuse all further acquisitions."""
        self._closed = True

    def __repr__(self) -> str:
        return (
            f"AdmissionSemaphore(capacity={self._capacity}, "
            f"outstanding={self._outstanding}, closed={self._closed})"
        )
