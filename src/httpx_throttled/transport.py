"""
Rate-Limited Transport
======================

An ``httpx.AsyncBaseTransport`` that puts both rate limit gates in front of
another transport.

GitHub, for example, limits each app installation to 5000 requests per hour
(the primary limit, reported through ``x-ratelimit-*`` headers) and to 100
concurrent requests (the secondary limit). Other installations of the same
app get their own allowances, so each installation should get its own
transport.
"""

import asyncio
import logging
import time
from typing import Callable, Optional

import httpx

from .header_throttle import HeaderThrottle
from .rate_limit_info import RateLimitInfo
from .semaphore import AdmissionSemaphore

logger = logging.getLogger(__name__)


class RateLimitTransport(httpx.AsyncBaseTransport):
    """
    Transport enforcing the primary and secondary rate limits.

    Every request first waits at the header throttle, then takes an admission
    slot, and is only then handed to the wrapped transport. When the wrapped
    transport returns (or raises), the slot is released and the response
    headers are fed to the throttle.

    Args:
        transport: Wrapped transport (default: httpx.AsyncHTTPTransport())
        max_concurrent: Maximum requests in flight (default: 100)
        threshold: Remaining quota at which all admissions stop,
            None = same as max_concurrent (default: None)
        clock: Epoch-seconds clock used by the throttle (default: time.time)

    Example:
        ```python
        transport = RateLimitTransport(max_concurrent=100)

        async with httpx.AsyncClient(
            base_url="https://api.github.com",
            transport=transport,
            timeout=httpx.Timeout(10.0, pool=60.0),
        ) as client:
            responses = await asyncio.gather(*[
                client.get(f"/repos/{repo}") for repo in repos
            ])
        ```

    Note:
        The throttle is checked before the semaphore, so requests parked
        behind an exhausted primary limit never hold a concurrency slot.
        The admission wait is bounded by the request's pool timeout; when it
        runs out the request fails with ``httpx.PoolTimeout`` without being
        sent.
    """

    def __init__(
        self,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        max_concurrent: int = 100,
        *,
        threshold: Optional[int] = None,
        clock: Callable[[], float] = time.time,
    ):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        if threshold is None:
            threshold = max_concurrent

        self._transport = transport if transport is not None else httpx.AsyncHTTPTransport()
        self._semaphore = AdmissionSemaphore(max_concurrent)
        self._throttle = HeaderThrottle(threshold, clock=clock)

    @property
    def max_concurrent(self) -> int:
        """Maximum requests in flight."""
        return self._semaphore.capacity

    @property
    def threshold(self) -> int:
        """Remaining quota at which all admissions stop."""
        return self._throttle.threshold

    @property
    def semaphore(self) -> AdmissionSemaphore:
        return self._semaphore

    @property
    def throttle(self) -> HeaderThrottle:
        return self._throttle

    async def acquire(self, timeout: Optional[float] = None) -> None:
        """
        Wait for admission: header throttle first, then a concurrency slot.

        Both waits share one deadline. A task that was parked on the
        semaphore while the throttle closed gives its slot back and returns
        to the throttle.

        Args:
            timeout: Seconds to wait in total, None = wait forever

        Raises:
            TimeoutError: If admission was not granted within ``timeout``
            LimiterClosedError: If the transport is closed
        """
        async with asyncio.timeout(timeout):
            while True:
                await self._throttle.acquire()
                await self._semaphore.acquire()
                if self._throttle.is_open:
                    return
                self._semaphore.release()
                logger.debug("Rate limit closed while waiting for a slot; back to the throttle")

    def release(self, response: Optional[httpx.Response]) -> None:
        """
        Free the concurrency slot and observe the response, if there is one.

        Must follow a successful ``acquire()``.
        """
        self._semaphore.release()
        if response is not None:
            self._throttle.observe(RateLimitInfo.from_headers(response.headers))

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        timeout = request.extensions.get("timeout", {}).get("pool")
        try:
            await self.acquire(timeout)
        except TimeoutError as exc:
            logger.debug("Admission timed out for %s %s", request.method, request.url)
            raise httpx.PoolTimeout(
                "Timed out waiting for rate limit admission", request=request
            ) from exc

        response = None
        try:
            response = await self._transport.handle_async_request(request)
            return response
        finally:
            self.release(response)

    def close(self) -> None:
        """Close both gates. Requests sent afterwards raise LimiterClosedError."""
        self._semaphore.close()
        self._throttle.close()

    async def aclose(self) -> None:
        """Close both gates and the wrapped transport."""
        self.close()
        await self._throttle.wait_closed()
        await self._transport.aclose()

    def __repr__(self) -> str:
        return (
            f"RateLimitTransport(max_concurrent={self.max_concurrent}, "
            f"threshold={self.threshold})"
        )
