"""
Throttled Node Classes
======================

Drop-in replacement for PocketFlow's AsyncParallelBatchNode whose HTTP calls
all go through one rate-limited transport.

Classes:
    - ThrottledRequestBatchNode: Parallel batch node with a shared throttled client
"""

import asyncio
from typing import Any, List, Optional

import httpx
from pocketflow import AsyncNode, BatchNode

from .transport import RateLimitTransport


class ThrottledRequestBatchNode(AsyncNode, BatchNode):
    """
    Parallel batch node with a rate-limited HTTP client.

    Items are executed concurrently, like AsyncParallelBatchNode, but every
    request made through ``self.client`` passes the header throttle and the
    admission semaphore of the node's transport. The batch can be as large
    as you like; the transport decides how much of it is on the wire.

    Configuration can be set via:
    1. Class attributes (for subclasses)
    2. Constructor keyword arguments (for instances)

    Class Attributes:
        max_concurrent (int): Maximum requests in flight (default: 100)
        threshold (int | None): Remaining quota at which requests stop,
            None = same as max_concurrent (default: None)
        base_url (str): Base URL for the client (default: "")
        timeout (httpx.Timeout): Client timeouts. The pool timeout bounds the
            wait for admission, so it is off by default: a closure lasts until
            the reported reset (default: 10s, pool=None)

    Example:
        ```python
        class FetchRepoNode(ThrottledRequestBatchNode):
            max_concurrent = 20
            base_url = "https://api.github.com"

            async def prep_async(self, shared):
                return shared["repos"]

            async def exec_async(self, repo):
                response = await self.client.get(f"/repos/{repo}")
                response.raise_for_status()
                return response.json()

            async def post_async(self, shared, prep_res, exec_res_list):
                shared["details"] = exec_res_list
                await self.aclose()
                return "default"
        ```

    Note:
        Pass ``transport=`` to share one transport (for example from
        TransportRegistry) between several nodes. A shared transport is
        left open by ``aclose()``.
    """

    max_concurrent: int = 100
    threshold: Optional[int] = None
    base_url: str = ""
    timeout: httpx.Timeout = httpx.Timeout(10.0, pool=None)

    def __init__(
        self,
        max_retries: int = 1,
        wait: int = 0,
        *,
        max_concurrent: Optional[int] = None,
        threshold: Optional[int] = None,
        base_url: Optional[str] = None,
        transport: Optional[RateLimitTransport] = None,
        timeout: Optional[httpx.Timeout] = None,
    ):
        """
        Initialize the throttled request node.

        Args:
            max_retries: Maximum retry attempts for exec_async (default: 1, no retry)
            wait: Seconds to wait between retries (default: 0)
            max_concurrent: Override class-level max_concurrent setting
            threshold: Override class-level threshold setting
            base_url: Override class-level base_url setting
            transport: Shared transport to use instead of creating one
            timeout: Override class-level timeout setting
        """
        super().__init__(max_retries, wait)

        if max_concurrent is not None:
            self.max_concurrent = max_concurrent
        if threshold is not None:
            self.threshold = threshold
        if base_url is not None:
            self.base_url = base_url
        if timeout is not None:
            self.timeout = timeout

        self._transport = transport
        self._owns_transport = transport is None
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def transport(self) -> RateLimitTransport:
        """
        Lazy-initialized rate-limited transport.

        Created on first access so that configuration can be set after
        instantiation but before execution.
        """
        if self._transport is None:
            self._transport = RateLimitTransport(
                max_concurrent=self.max_concurrent,
                threshold=self.threshold,
            )
        return self._transport

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-initialized client bound to ``transport``."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                transport=self.transport,
                timeout=self.timeout,
            )
        return self._client

    async def aclose(self) -> None:
        """
        Close the client, and the transport if the node created it.

        The node can be run again afterwards; a fresh client (and transport,
        if owned) is created on next use.

        A client over a shared transport is dropped without ``aclose()``:
        closing it would close the transport for every other user, and the
        transport holds all of its connections.
        """
        if self._owns_transport:
            if self._client is not None:
                await self._client.aclose()
            elif self._transport is not None:
                await self._transport.aclose()
            self._transport = None
        self._client = None

    async def _exec(self, items: List[Any]) -> List[Any]:
        """
        Execute all items concurrently.

        Args:
            items: List of items from prep_async to process

        Returns:
            List of results in the same order as input items
        """
        if not items:
            return []

        tasks = [super(ThrottledRequestBatchNode, self)._exec(item) for item in items]
        return await asyncio.gather(*tasks)
