"""
Exception Classes
=================

Custom exceptions raised by the gates and offered to callers for signaling
rate limit events upward.
"""

from typing import Optional

import httpx

from .rate_limit_info import RateLimitInfo


class LimiterClosedError(RuntimeError):
    """
    Raised when a gate is used after it has been closed.

    Both the admission semaphore and the header throttle raise it from
    ``acquire()`` once ``close()`` has run, so a request sent through a
    closed ``RateLimitTransport`` fails without touching the network.
    """


class RateLimitHit(Exception):
    """
    Raised when a rate limit is encountered.

    The transport itself never raises this: it only delays admission. Client
    code raises it to signal a rate limited response (for example a 403 or
    429 from the upstream API) to its own callers, carrying the parsed
    snapshot along.

    Attributes:
        retry_after: Optional hint for how long to wait before retrying (seconds)
        source: Optional identifier of the rate limit source (e.g., "github")
        info: The RateLimitInfo snapshot of the failing response, if any

    Example:
        ```python
        response = await client.get("/repos/octocat/hello-world")
        if response.status_code in (403, 429):
            raise RateLimitHit.from_response(response, source="github")
        ```
    """

    def __init__(
        self,
        message: str = "Rate limit hit",
        retry_after: Optional[float] = None,
        source: Optional[str] = None,
        info: Optional[RateLimitInfo] = None,
    ):
        """
        Initialize the rate limit exception.

        Args:
            message: Human-readable description of the rate limit
            retry_after: Optional seconds to wait before retrying
            source: Optional identifier for the rate limit source
            info: Optional snapshot parsed from the failing response
        """
        super().__init__(message)
        self.retry_after = retry_after
        self.source = source
        self.info = info

    @classmethod
    def from_response(
        cls,
        response: httpx.Response,
        message: str = "Rate limit hit",
        source: Optional[str] = None,
    ) -> "RateLimitHit":
        """
        Build the exception from a rate limited response.

        ``retry_after`` is the time left until the reported reset, or None
        when the response has no usable reset time.
        """
        info = RateLimitInfo.from_response(response)
        retry_after = None
        if info.valid:
            wait = info.time_to_reset()
            if wait > 0:
                retry_after = wait
        return cls(message, retry_after=retry_after, source=source, info=info)

    def __repr__(self) -> str:
        parts = [f"RateLimitHit({self.args[0]!r}"]
        if self.retry_after is not None:
            parts.append(f", retry_after={self.retry_after}")
        if self.source is not None:
            parts.append(f", source={self.source!r}")
        parts.append(")")
        return "".join(parts)
